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
State-Space Models

SISO state-space models and their link to transfer functions:

    dx/dt = A x + B u          (x[k+1] = A x[k] + B u[k] when discrete)
    y     = C x + D u

Realization (controllable companion form) of

    G(s) = (b_{n-1} s^{n-1} + ... + b0) / (s^n + a_{n-1} s^{n-1} + ... + a0) + D

        | 0    1    0   ...  0       |        | 0 |
        | 0    0    1   ...  0       |        | 0 |
    A = | ...                        |    B = |...|    C = [b0 b1 ... b_{n-1}]
        | -a0  -a1  -a2 ... -a_{n-1} |        | 1 |

Also provides the Kalman rank tests and Ackermann's formula for state
feedback and observer design.

Usage
-----
>>> G = TransferFunction([1], [1, 3, 2])
>>> sys = StateSpaceModel.from_transfer_function(G)
>>> sys.A
array([[ 0.,  1.],
       [-2., -3.]])
>>> sys.to_transfer_function().den
array([1., 3., 2.])
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from ctrlcourse.control.exceptions import MalformedPolynomialError, SingularOperationError
from ctrlcourse.control.polynomial import poly_from_roots, real_if_close, trim_leading_zeros
from ctrlcourse.control.stability import analyze_stability
from ctrlcourse.control.transfer_function import TransferFunction
from ctrlcourse.types.control_classical import (
    ControllabilityInfo,
    LuenbergerObserverResult,
    ObservabilityInfo,
    PolePlacementResult,
    StabilityInfo,
)
from ctrlcourse.types.core import (
    ArrayLike,
    Coefficients,
    FeedthroughMatrix,
    InputMatrix,
    OutputMatrix,
    StateMatrix,
)
from ctrlcourse.types.options import DEFAULT_TOLERANCE, SystemType, validate_sampling_period

# ============================================================================
# Matrix Validation
# ============================================================================


def as_matrix(
    M: ArrayLike,
    name: str = "matrix",
    shape: Optional[Tuple[int, int]] = None,
) -> np.ndarray:
    """
    Convert to a finite 2-D float64 array, optionally checking its shape.

    Raises
    ------
    ValueError
        If the array is not 2-D, not finite, or has the wrong shape
    """
    array = np.asarray(M, dtype=float)
    if array.ndim < 2:
        array = np.atleast_2d(array)
    if array.ndim != 2:
        raise ValueError(f"{name} must be 2-D, got shape {array.shape}")
    if not np.all(np.isfinite(array)):
        raise ValueError(f"{name} must be finite")
    if shape is not None and array.shape != shape:
        raise ValueError(f"{name} must have shape {shape}, got {array.shape}")
    return array


def _matrix_polynomial(coefficients: Coefficients, A: np.ndarray) -> np.ndarray:
    """Evaluate p(A) by Horner's rule, coefficients highest power first."""
    result = np.zeros_like(A)
    identity = np.eye(A.shape[0])
    for c in coefficients:
        result = result @ A + c * identity
    return result


# ============================================================================
# State-Space Model
# ============================================================================


class StateSpaceModel:
    """
    SISO state-space model (A, B, C, D) with optional sampling period.

    Parameters
    ----------
    A : StateMatrix
        State matrix (n, n)
    B : InputMatrix
        Input matrix (n, 1)
    C : OutputMatrix
        Output matrix (1, n)
    D : FeedthroughMatrix
        Feedthrough (1, 1), default 0
    dt : Optional[float]
        Sampling period; None for continuous time

    Examples
    --------
    >>> sys = StateSpaceModel([[0, 1], [-2, -3]], [[0], [1]], [[1, 0]])
    >>> sys.eigenvalues()
    array([-1., -2.])
    """

    def __init__(
        self,
        A: StateMatrix,
        B: InputMatrix,
        C: OutputMatrix,
        D: FeedthroughMatrix = 0.0,
        dt: Optional[float] = None,
    ):
        A = np.asarray(A, dtype=float)
        n = A.shape[0] if A.ndim == 2 else int(A.size ** 0.5)
        self.A = as_matrix(A.reshape(n, n), name="A", shape=(n, n))
        self.B = as_matrix(np.asarray(B, dtype=float).reshape(n, 1), name="B", shape=(n, 1))
        self.C = as_matrix(np.asarray(C, dtype=float).reshape(1, n), name="C", shape=(1, n))
        self.D = as_matrix(np.asarray(D, dtype=float).reshape(1, 1), name="D", shape=(1, 1))
        self.dt = None if dt is None else validate_sampling_period(dt)

    @property
    def n_states(self) -> int:
        return self.A.shape[0]

    @property
    def system_type(self) -> SystemType:
        return "continuous" if self.dt is None else "discrete"

    # ========================================================================
    # Conversions
    # ========================================================================

    @classmethod
    def from_transfer_function(cls, system: TransferFunction) -> "StateSpaceModel":
        """
        Controllable companion-form realization of a transfer function.

        Proper (not strictly proper) systems are split into a constant
        feedthrough D = b_m / a_m and a strictly proper remainder, which is
        realized in companion form.

        Raises
        ------
        ValueError
            If the transfer function has a time delay
        MalformedPolynomialError
            If the transfer function is improper

        Examples
        --------
        >>> G = TransferFunction([1, 1], [1, 2])   # 1 - 1/(s + 2)
        >>> sys = StateSpaceModel.from_transfer_function(G)
        >>> sys.A, sys.C, sys.D
        (array([[-2.]]), array([[-1.]]), array([[1.]]))
        """
        if system.delay:
            raise ValueError(
                f"A time delay ({system.delay}) has no finite-dimensional state-space realization",
            )
        if not system.is_proper:
            raise MalformedPolynomialError(
                f"Cannot realize an improper transfer function (numerator degree "
                f"{len(system.num) - 1} > denominator degree {len(system.den) - 1})",
            )

        den = system.den / system.den[0]
        n = len(den) - 1
        num = np.concatenate([np.zeros(n + 1 - len(system.num)), system.num]) / system.den[0]

        feedthrough = num[0]
        remainder = num - feedthrough * den

        A = np.zeros((n, n))
        if n > 0:
            A[:-1, 1:] = np.eye(n - 1)
            A[-1, :] = -den[1:][::-1]
        B = np.zeros((n, 1))
        if n > 0:
            B[-1, 0] = 1.0
        C = remainder[1:][::-1].reshape(1, n)

        return cls(A, B, C, feedthrough, dt=system.dt)

    def characteristic_polynomial(self) -> Coefficients:
        """det(sI - A), highest power first (monic)."""
        if self.n_states == 0:
            return np.ones(1)
        return np.real(np.poly(self.A))

    def to_transfer_function(self) -> TransferFunction:
        """
        Transfer function C (sI - A)^-1 B + D.

        Uses the determinant identity

            C (sI - A)^-1 B = (det(sI - A + BC) - det(sI - A)) / det(sI - A)

        Examples
        --------
        >>> sys = StateSpaceModel([[0, 1], [-2, -3]], [[0], [1]], [[1, 0]])
        >>> G = sys.to_transfer_function()
        >>> G.num, G.den
        (array([1.]), array([1., 3., 2.]))
        """
        den = self.characteristic_polynomial()
        d = float(self.D[0, 0])
        if self.n_states == 0:
            return TransferFunction([d], [1.0], dt=self.dt)

        closed = np.real(np.poly(self.A - self.B @ self.C))
        num = closed - den + d * den
        scale = max(np.max(np.abs(num)), np.max(np.abs(den)))
        num = trim_leading_zeros(num, tolerance=1e-10 * scale)
        return TransferFunction(num, den, dt=self.dt)

    # ========================================================================
    # Analysis
    # ========================================================================

    def eigenvalues(self) -> np.ndarray:
        return real_if_close(np.linalg.eigvals(self.A))

    def stability(self, tolerance: float = DEFAULT_TOLERANCE) -> StabilityInfo:
        """Eigenvalue stability in the model's own time domain."""
        return analyze_stability(self.A, system_type=self.system_type, tolerance=tolerance)

    def __repr__(self) -> str:
        return (
            f"StateSpaceModel(n_states={self.n_states}, "
            f"system_type='{self.system_type}'" + (f", dt={self.dt})" if self.dt else ")")
        )


def tf2ss(system: TransferFunction) -> StateSpaceModel:
    """Companion-form realization. See StateSpaceModel.from_transfer_function."""
    return StateSpaceModel.from_transfer_function(system)


def ss2tf(model: StateSpaceModel) -> TransferFunction:
    """Transfer function of a state-space model."""
    return model.to_transfer_function()


# ============================================================================
# Controllability Analysis
# ============================================================================


def analyze_controllability(
    A: StateMatrix,
    B: InputMatrix,
    tolerance: Optional[float] = None,
) -> ControllabilityInfo:
    """
    Test controllability of linear system (A, B).

    Controllability matrix:
        C = [B, AB, A²B, ..., Aⁿ⁻¹B]

    System is controllable ⟺ rank(C) = n

    Args:
        A: State matrix (n, n)
        B: Input matrix (n, 1)
        tolerance: Rank tolerance (None for numpy's default)

    Returns:
        ControllabilityInfo containing:
            - controllability_matrix: C matrix (n, n)
            - rank: Numerical rank
            - is_controllable: True if full rank

    Examples
    --------
    >>> A = np.array([[0, 1], [-2, -3]])
    >>> B = np.array([[0], [1]])
    >>> analyze_controllability(A, B)['is_controllable']
    True
    >>>
    >>> # Uncontrollable: decoupled mode without input
    >>> A = np.array([[1, 0], [0, 2]])
    >>> B = np.array([[1], [0]])
    >>> analyze_controllability(A, B)['rank']
    1
    """
    A_np = as_matrix(A, name="A")
    nx = A_np.shape[0]
    B_np = as_matrix(np.asarray(B, dtype=float).reshape(nx, -1), name="B")

    if A_np.shape != (nx, nx):
        raise ValueError(f"A must be square, got shape {A_np.shape}")
    nu = B_np.shape[1]

    # Build controllability matrix: C = [B, AB, A²B, ..., Aⁿ⁻¹B]
    C = np.zeros((nx, nx * nu))
    C[:, :nu] = B_np
    AB = B_np.copy()
    for i in range(1, nx):
        AB = A_np @ AB
        C[:, i * nu : (i + 1) * nu] = AB

    rank = np.linalg.matrix_rank(C, tol=tolerance)

    result: ControllabilityInfo = {
        "controllability_matrix": C,
        "rank": int(rank),
        "is_controllable": bool(rank == nx),
    }
    return result


# ============================================================================
# Observability Analysis
# ============================================================================


def analyze_observability(
    A: StateMatrix,
    C: OutputMatrix,
    tolerance: Optional[float] = None,
) -> ObservabilityInfo:
    """
    Test observability of linear system (A, C).

    Observability matrix:
        O = [C; CA; CA²; ...; CAⁿ⁻¹]

    System is observable ⟺ rank(O) = n

    Examples
    --------
    >>> A = np.array([[0, 1], [-2, -3]])
    >>> C = np.array([[1, 0]])
    >>> analyze_observability(A, C)['is_observable']
    True
    """
    A_np = as_matrix(A, name="A")
    nx = A_np.shape[0]
    C_np = as_matrix(np.asarray(C, dtype=float).reshape(-1, nx), name="C")

    if A_np.shape != (nx, nx):
        raise ValueError(f"A must be square, got shape {A_np.shape}")
    ny = C_np.shape[0]

    O = np.zeros((nx * ny, nx))
    O[:ny, :] = C_np
    CA = C_np.copy()
    for i in range(1, nx):
        CA = CA @ A_np
        O[i * ny : (i + 1) * ny, :] = CA

    rank = np.linalg.matrix_rank(O, tol=tolerance)

    result: ObservabilityInfo = {
        "observability_matrix": O,
        "rank": int(rank),
        "is_observable": bool(rank == nx),
    }
    return result


# ============================================================================
# Pole Placement (Ackermann)
# ============================================================================


def place_poles_ackermann(
    A: StateMatrix,
    B: InputMatrix,
    poles: Sequence[complex],
) -> PolePlacementResult:
    """
    State feedback u = -K x placing the eigenvalues of A - BK.

    Ackermann's formula:

        K = [0 ... 0 1] · C⁻¹ · φ(A)

    where C is the controllability matrix and φ the desired characteristic
    polynomial. Complex poles must come in conjugate pairs.

    Raises
    ------
    SingularOperationError
        If (A, B) is not controllable
    ValueError
        If the number of poles differs from the number of states

    Examples
    --------
    >>> A = np.array([[0, 1], [-2, -3]])
    >>> B = np.array([[0], [1]])
    >>> place_poles_ackermann(A, B, [-5, -6])['gain']
    array([[28.,  8.]])
    """
    A_np = as_matrix(A, name="A")
    nx = A_np.shape[0]
    B_np = as_matrix(np.asarray(B, dtype=float).reshape(nx, 1), name="B", shape=(nx, 1))
    poles = np.asarray(poles, dtype=complex)
    if poles.size != nx:
        raise ValueError(f"Expected {nx} desired poles, got {poles.size}")

    info = analyze_controllability(A_np, B_np)
    if not info["is_controllable"]:
        raise SingularOperationError(
            f"System is not controllable (rank {info['rank']} < {nx}); poles cannot be placed",
        )

    phi = _matrix_polynomial(poly_from_roots(poles), A_np)
    last_row = np.zeros((1, nx))
    last_row[0, -1] = 1.0
    K = last_row @ np.linalg.solve(info["controllability_matrix"], phi)

    result: PolePlacementResult = {
        "gain": K,
        "desired_poles": real_if_close(poles),
        "achieved_poles": real_if_close(np.linalg.eigvals(A_np - B_np @ K)),
        "is_controllable": True,
    }
    return result


def design_observer_ackermann(
    A: StateMatrix,
    C: OutputMatrix,
    poles: Sequence[complex],
) -> LuenbergerObserverResult:
    """
    Luenberger observer gain L placing the eigenvalues of A - LC.

    Dual of place_poles_ackermann:

        L = φ(A) · O⁻¹ · [0 ... 0 1]ᵀ

    Raises
    ------
    SingularOperationError
        If (A, C) is not observable

    Examples
    --------
    >>> A = np.array([[0, 1], [-2, -3]])
    >>> C = np.array([[1, 0]])
    >>> design_observer_ackermann(A, C, [-10, -10])['gain']
    array([[17.],
           [47.]])
    """
    A_np = as_matrix(A, name="A")
    nx = A_np.shape[0]
    C_np = as_matrix(np.asarray(C, dtype=float).reshape(1, nx), name="C", shape=(1, nx))
    poles = np.asarray(poles, dtype=complex)
    if poles.size != nx:
        raise ValueError(f"Expected {nx} desired poles, got {poles.size}")

    info = analyze_observability(A_np, C_np)
    if not info["is_observable"]:
        raise SingularOperationError(
            f"System is not observable (rank {info['rank']} < {nx}); observer poles cannot be placed",
        )

    phi = _matrix_polynomial(poly_from_roots(poles), A_np)
    last_column = np.zeros((nx, 1))
    last_column[-1, 0] = 1.0
    L = phi @ np.linalg.solve(info["observability_matrix"], last_column)

    result: LuenbergerObserverResult = {
        "gain": L,
        "desired_poles": real_if_close(poles),
        "achieved_poles": real_if_close(np.linalg.eigvals(A_np - L @ C_np)),
        "is_observable": True,
    }
    return result


__all__ = [
    "as_matrix",
    "StateSpaceModel",
    "tf2ss",
    "ss2tf",
    "analyze_controllability",
    "analyze_observability",
    "place_poles_ackermann",
    "design_observer_ackermann",
]
