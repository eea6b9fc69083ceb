# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Transfer Functions

Rational SISO transfer functions with an optional pure time delay:

    G(s) = N(s) / D(s) · exp(-T_t s)          (continuous, dt is None)
    G(z) = N(z) / D(z)                        (discrete, sampling period dt)

Numerator and denominator are coefficient arrays, highest power first.

Supported algebra:
- Series connection:     G1 * G2
- Parallel connection:   G1 + G2,  G1 - G2
- Division and powers:   G1 / G2,  G ** k
- Feedback:              G.feedback(H)  =  G / (1 + G H)
- Scalars mix freely:    2 * G,  1 + G,  1 / G

Every operation returns a new object; TransferFunction instances are never
mutated after construction.

Examples
--------
>>> G = TransferFunction([1], [1, 20, 93.75, 0])
>>> T = G.feedback()                       # unity negative feedback
>>> T.den
array([  1.  ,  20.  ,  93.75,   1.  ])
>>> G(1j)                                  # Horner evaluation at s = j
(-0.0002...-0.0106...j)
"""

import numbers
from typing import Optional, Sequence, Union

import numpy as np
import sympy as sp

from ctrlcourse.control.exceptions import (
    MalformedPolynomialError,
    PoleEvaluationError,
    SingularOperationError,
)
from ctrlcourse.control.polynomial import (
    as_coefficients,
    degree,
    horner,
    is_zero_polynomial,
    poly_add,
    poly_from_roots,
    poly_mul,
    poly_scale,
    poly_sub,
    real_if_close,
    trim_leading_zeros,
)
from ctrlcourse.types.core import ArrayLike, Coefficients, ComplexLike, Roots
from ctrlcourse.types.options import DEFAULT_POLE_TOLERANCE, SystemType, validate_sampling_period


def _is_scalar(value) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


class TransferFunction:
    """
    SISO transfer function N/D with optional time delay and sampling period.

    Parameters
    ----------
    num : ArrayLike
        Numerator coefficients, highest power first
    den : ArrayLike
        Denominator coefficients, highest power first (not the zero polynomial)
    delay : float
        Pure time delay T_t >= 0 [s] (continuous systems only)
    dt : Optional[float]
        Sampling period; None for a continuous-time system

    Raises
    ------
    MalformedPolynomialError
        If a coefficient sequence is invalid or the denominator is zero
    ValueError
        If the delay is negative, or nonzero for a discrete system

    Examples
    --------
    >>> G = TransferFunction([1, 1], [1, 2])
    >>> G.poles()
    array([-2.])
    >>> Gd = TransferFunction([1], [1, -0.5], dt=0.1)
    >>> Gd.system_type
    'discrete'
    """

    # Let numpy scalars defer to the reflected operators below
    __array_ufunc__ = None

    def __init__(
        self,
        num: ArrayLike,
        den: ArrayLike,
        delay: float = 0.0,
        dt: Optional[float] = None,
    ):
        self.num: Coefficients = as_coefficients(num, name="num")
        self.den: Coefficients = as_coefficients(den, name="den")
        if is_zero_polynomial(self.den):
            raise MalformedPolynomialError("den must not be the zero polynomial")

        delay = float(delay)
        if not np.isfinite(delay) or delay < 0.0:
            raise ValueError(f"delay must be a finite non-negative number, got {delay}")
        if dt is not None:
            dt = validate_sampling_period(dt)
            if delay != 0.0:
                raise ValueError(
                    "Discrete systems represent delays as powers of z^-1, "
                    f"got delay={delay} with dt={dt}",
                )
        self.delay = delay
        self.dt = dt

    @classmethod
    def _from_arithmetic(cls, num, den, delay=0.0, dt=None) -> "TransferFunction":
        """Build from results of internal arithmetic (already trimmed)."""
        return cls(trim_leading_zeros(num), trim_leading_zeros(den), delay=delay, dt=dt)

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def system_type(self) -> SystemType:
        return "continuous" if self.dt is None else "discrete"

    @property
    def is_discrete(self) -> bool:
        return self.dt is not None

    @property
    def order(self) -> int:
        """Degree of the denominator."""
        return degree(self.den)

    @property
    def relative_degree(self) -> int:
        """deg D - deg N (pole excess)."""
        return degree(self.den) - degree(self.num)

    @property
    def is_proper(self) -> bool:
        return self.relative_degree >= 0

    @property
    def is_strictly_proper(self) -> bool:
        return self.relative_degree > 0 or is_zero_polynomial(self.num)

    def poles(self) -> Roots:
        """Roots of the denominator."""
        return real_if_close(np.roots(self.den))

    def zeros(self) -> Roots:
        """Roots of the numerator (empty for a zero or constant numerator)."""
        if is_zero_polynomial(self.num):
            return np.array([])
        return real_if_close(np.roots(self.num))

    def dc_gain(self) -> float:
        """
        Static gain G(0) (continuous) or G(1) (discrete).

        Returns inf when the system has a pole at the evaluation point
        (integrating behaviour) and a nonzero numerator there.
        """
        point = 1.0 if self.is_discrete else 0.0
        num_value = horner(self.num, point)
        den_value = horner(self.den, point)
        if self._is_pole(np.asarray(point), np.asarray(den_value)).any():
            return np.inf if num_value != 0 else np.nan
        return float(np.real(num_value / den_value))

    # ========================================================================
    # Evaluation
    # ========================================================================

    def _is_pole(self, points: np.ndarray, den_values: np.ndarray) -> np.ndarray:
        scale = horner(np.abs(self.den), np.abs(points))
        return np.abs(den_values) <= DEFAULT_POLE_TOLERANCE * np.maximum(scale, 1e-300)

    def evaluate(self, s: Union[ComplexLike, ArrayLike]):
        """
        Evaluate G at one or more complex points by Horner's rule.

        Parameters
        ----------
        s : complex or array of complex
            Evaluation point(s): s for continuous, z for discrete systems

        Returns
        -------
        complex or np.ndarray
            N(s)/D(s) · exp(-T_t s), with the shape of s

        Raises
        ------
        PoleEvaluationError
            If any point is (numerically) a root of D

        Examples
        --------
        >>> G = TransferFunction([1], [1, 1])
        >>> G.evaluate(0.0)
        (1+0j)
        >>> G.evaluate(-1.0)  # PoleEvaluationError
        """
        points = np.asarray(s, dtype=complex)
        den_values = horner(self.den, points)

        at_pole = self._is_pole(points, den_values)
        if np.any(at_pole):
            raise PoleEvaluationError(points[at_pole].ravel()[0] if points.ndim else points[()])

        values = horner(self.num, points) / den_values
        if self.delay:
            values = values * np.exp(-self.delay * points)
        return values

    __call__ = evaluate

    # ========================================================================
    # Algebra
    # ========================================================================

    def _coerce(self, other) -> Optional["TransferFunction"]:
        if isinstance(other, TransferFunction):
            if self.dt != other.dt:
                raise ValueError(
                    f"Cannot combine systems with sampling periods {self.dt} and {other.dt}",
                )
            return other
        if _is_scalar(other):
            return TransferFunction([other], [1.0], dt=self.dt)
        return None

    def __mul__(self, other):
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        return TransferFunction._from_arithmetic(
            poly_mul(self.num, other.num),
            poly_mul(self.den, other.den),
            delay=self.delay + other.delay,
            dt=self.dt,
        )

    def __rmul__(self, other):
        return self.__mul__(other)

    def __add__(self, other):
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        if not np.isclose(self.delay, other.delay, rtol=0.0, atol=1e-12):
            raise ValueError(
                f"Cannot add systems with different delays ({self.delay} and {other.delay}); "
                f"the sum is not a rational function times a single delay",
            )
        if np.array_equal(self.den, other.den):
            num = poly_add(self.num, other.num)
            den = self.den
        else:
            num = poly_add(poly_mul(self.num, other.den), poly_mul(other.num, self.den))
            den = poly_mul(self.den, other.den)
        return TransferFunction._from_arithmetic(num, den, delay=self.delay, dt=self.dt)

    def __radd__(self, other):
        return self.__add__(other)

    def __neg__(self):
        return TransferFunction(-self.num, self.den, delay=self.delay, dt=self.dt)

    def __sub__(self, other):
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        return self.__add__(-other)

    def __rsub__(self, other):
        return (-self).__add__(other)

    def __truediv__(self, other):
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        if is_zero_polynomial(other.num):
            raise SingularOperationError("Division by the zero transfer function")
        delay = self.delay - other.delay
        if delay < -1e-12:
            raise ValueError(
                f"Division would produce a negative delay ({delay}); the result is not causal",
            )
        return TransferFunction._from_arithmetic(
            poly_mul(self.num, other.den),
            poly_mul(self.den, other.num),
            delay=max(delay, 0.0),
            dt=self.dt,
        )

    def __rtruediv__(self, other):
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        return other.__truediv__(self)

    def __pow__(self, exponent: int):
        if not isinstance(exponent, numbers.Integral):
            raise TypeError(f"Only integer powers are supported, got {exponent!r}")
        if exponent < 0:
            return TransferFunction([1.0], [1.0], dt=self.dt) / (self ** (-exponent))
        result = TransferFunction([1.0], [1.0], dt=self.dt)
        for _ in range(int(exponent)):
            result = result * self
        return result

    def feedback(self, other=None, sign: int = -1) -> "TransferFunction":
        """
        Close a loop around this transfer function.

        T = G / (1 - sign · G H)

        With the default sign = -1 this is negative feedback G / (1 + G H).
        In polynomial form:

            num = N_G · D_H
            den = D_G · D_H - sign · N_G · N_H

        Parameters
        ----------
        other : TransferFunction or scalar, optional
            Feedback path H (default 1: unity feedback)
        sign : int
            -1 for negative (default) or +1 for positive feedback

        Returns
        -------
        TransferFunction
            Closed loop; self unchanged if H is identically zero

        Raises
        ------
        ValueError
            If either path carries a time delay (the closed loop is no
            longer rational), or sign is not ±1

        Examples
        --------
        >>> G = TransferFunction([1], [1, 0])   # integrator
        >>> G.feedback().den
        array([1., 1.])
        >>> G.feedback(0) is not G
        True
        """
        if sign not in (-1, 1):
            raise ValueError(f"sign must be -1 or +1, got {sign}")
        if other is None:
            other = 1.0
        other = self._coerce(other)
        if other is None:
            raise TypeError("Feedback path must be a TransferFunction or a scalar")

        if is_zero_polynomial(other.num):
            return TransferFunction(self.num, self.den, delay=self.delay, dt=self.dt)
        if self.delay or other.delay:
            raise ValueError(
                "Cannot close a loop around a delayed system with a rational transfer function",
            )

        num = poly_mul(self.num, other.den)
        den = poly_sub(poly_mul(self.den, other.den), poly_scale(poly_mul(self.num, other.num), sign))
        if is_zero_polynomial(den):
            raise SingularOperationError("Closed loop has an identically zero denominator")
        return TransferFunction._from_arithmetic(num, den, dt=self.dt)

    def normalized(self) -> "TransferFunction":
        """Same system with a monic denominator."""
        lead = self.den[0]
        return TransferFunction(self.num / lead, self.den / lead, delay=self.delay, dt=self.dt)

    # ========================================================================
    # Conversions
    # ========================================================================

    @classmethod
    def from_zpk(
        cls,
        zeros: Sequence[complex],
        poles: Sequence[complex],
        gain: float = 1.0,
        delay: float = 0.0,
        dt: Optional[float] = None,
    ) -> "TransferFunction":
        """
        Build k · Π(s - z_i) / Π(s - p_i).

        Examples
        --------
        >>> G = TransferFunction.from_zpk([], [0, -7.5, -12.5])
        >>> G.den
        array([  1.  ,  20.  ,  93.75,   0.  ])
        """
        return cls(
            poly_from_roots(zeros, gain=gain),
            poly_from_roots(poles),
            delay=delay,
            dt=dt,
        )

    def to_sympy(self, symbol: Optional[sp.Symbol] = None) -> sp.Expr:
        """
        SymPy expression N/D (times exp(-T_t s) when delayed).

        The default symbol is s for continuous and z for discrete systems.
        """
        if symbol is None:
            symbol = sp.Symbol("z" if self.is_discrete else "s")
        num = sp.Poly([sp.nsimplify(c) for c in self.num], symbol).as_expr()
        den = sp.Poly([sp.nsimplify(c) for c in self.den], symbol).as_expr()
        expr = num / den
        if self.delay:
            expr = expr * sp.exp(-sp.nsimplify(self.delay) * symbol)
        return expr

    @classmethod
    def from_sympy(
        cls,
        expr: sp.Expr,
        symbol: sp.Symbol,
        dt: Optional[float] = None,
    ) -> "TransferFunction":
        """
        Build from a rational SymPy expression in symbol.

        Raises
        ------
        MalformedPolynomialError
            If the expression is not rational in symbol or contains other
            free symbols

        Examples
        --------
        >>> s = sp.Symbol('s')
        >>> TransferFunction.from_sympy((s + 1) / (s**2 + 3*s + 2), s).den
        array([1., 3., 2.])
        """
        num, den = sp.fraction(sp.cancel(sp.together(sp.sympify(expr))))
        try:
            num_coeffs = [complex(c) for c in sp.Poly(num, symbol).all_coeffs()]
            den_coeffs = [complex(c) for c in sp.Poly(den, symbol).all_coeffs()]
        except (sp.PolynomialError, TypeError) as exc:
            raise MalformedPolynomialError(
                f"Expression {expr} is not a rational function of {symbol} with numeric coefficients",
            ) from exc
        return cls(num_coeffs, den_coeffs, dt=dt)

    def to_z_inverse(self):
        """
        Coefficients in powers of z^-1, normalized so a[0] = 1.

        G(z) = (b0 + b1 z^-1 + ... + bn z^-n) / (1 + a1 z^-1 + ... + an z^-n)

        This is the (b, a) pair expected by ``scipy.signal.lfilter``.

        Raises
        ------
        ValueError
            If the system is continuous or improper (non-causal)
        """
        if not self.is_discrete:
            raise ValueError("to_z_inverse requires a discrete system (dt is None)")
        if not self.is_proper:
            raise ValueError("Improper discrete system is not causal")
        n = len(self.den)
        b = np.concatenate([np.zeros(n - len(self.num)), self.num]) / self.den[0]
        a = self.den / self.den[0]
        return b, a

    @classmethod
    def from_z_inverse(cls, b: ArrayLike, a: ArrayLike, dt: float) -> "TransferFunction":
        """
        Build a discrete system from coefficients in powers of z^-1.

        Common factors of z are cancelled.

        Examples
        --------
        >>> G = TransferFunction.from_z_inverse([0, 1], [1, -0.5], dt=1.0)
        >>> G.num, G.den
        (array([1.]), array([ 1. , -0.5]))
        """
        b = np.atleast_1d(np.asarray(b, dtype=float))
        a = np.atleast_1d(np.asarray(a, dtype=float))
        if a.size == 0 or a[0] == 0:
            raise MalformedPolynomialError("a[0] must be nonzero")
        size = max(len(b), len(a))
        num = np.concatenate([b, np.zeros(size - len(b))])
        den = np.concatenate([a, np.zeros(size - len(a))])
        while len(den) > 1 and num[-1] == 0 and den[-1] == 0:
            num, den = num[:-1], den[:-1]
        return cls(trim_leading_zeros(num), den, dt=dt)

    def __repr__(self) -> str:
        parts = [f"num={self.num.tolist()}", f"den={self.den.tolist()}"]
        if self.delay:
            parts.append(f"delay={self.delay}")
        if self.dt is not None:
            parts.append(f"dt={self.dt}")
        return f"TransferFunction({', '.join(parts)})"


# ============================================================================
# Free Functions
# ============================================================================


def tf(
    num: ArrayLike,
    den: ArrayLike,
    delay: float = 0.0,
    dt: Optional[float] = None,
) -> TransferFunction:
    """Shorthand constructor."""
    return TransferFunction(num, den, delay=delay, dt=dt)


def series(*systems) -> TransferFunction:
    """
    Series connection G_1 · G_2 · ... · G_k.

    Examples
    --------
    >>> series(tf([1], [1, 1]), tf([1], [1, 2])).den
    array([1., 3., 2.])
    """
    if not systems:
        raise ValueError("series requires at least one system")
    result = systems[0]
    for system in systems[1:]:
        result = result * system
    return result


def parallel(*systems) -> TransferFunction:
    """Parallel connection G_1 + G_2 + ... + G_k."""
    if not systems:
        raise ValueError("parallel requires at least one system")
    result = systems[0]
    for system in systems[1:]:
        result = result + system
    return result


def feedback(forward: TransferFunction, backward=None, sign: int = -1) -> TransferFunction:
    """
    Closed loop forward / (1 - sign · forward · backward).

    See Also
    --------
    TransferFunction.feedback
    """
    return forward.feedback(backward, sign=sign)


__all__ = [
    "TransferFunction",
    "tf",
    "series",
    "parallel",
    "feedback",
]
