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
Polynomial Utilities

Pure functions on coefficient arrays, highest power first:

    p(s) = c[0] s^n + c[1] s^(n-1) + ... + c[n]

This is the ordering of ``numpy.polyval`` and ``numpy.roots``. The
Routh-Hurwitz routines take the opposite (constant term first) order;
``to_ascending`` / ``to_descending`` convert between the two.

Type Promotion
--------------
Every public entry point converts its input once with ``as_coefficients``:
- int / float → float64
- complex with zero imaginary part → float64
- genuinely complex → complex128
- NaN / inf, empty or multi-dimensional input → MalformedPolynomialError

Usage
-----
>>> p = as_coefficients([1, 3, 3, 1])      # (s + 1)^3
>>> horner(p, -1.0)
0.0
>>> poly_mul([1, 1], [1, 2])
array([1., 3., 2.])
"""

from typing import Iterable

import numpy as np

from ctrlcourse.control.exceptions import MalformedPolynomialError
from ctrlcourse.types.core import ArrayLike, AscendingCoefficients, Coefficients

# ============================================================================
# Validation and Promotion
# ============================================================================


def _promote(array: np.ndarray) -> np.ndarray:
    """Cast to float64, or complex128 when an imaginary part is nonzero."""
    if np.iscomplexobj(array):
        if np.all(np.imag(array) == 0):
            return np.real(array).astype(np.float64)
        return array.astype(np.complex128)
    return array.astype(np.float64)


def as_coefficients(
    coefficients: ArrayLike,
    name: str = "coefficients",
    allow_leading_zeros: bool = False,
) -> Coefficients:
    """
    Validate and convert a coefficient sequence (highest power first).

    Parameters
    ----------
    coefficients : ArrayLike
        Scalar or 1-D sequence of numbers
    name : str
        Name used in error messages
    allow_leading_zeros : bool
        If True, leading zeros are stripped. If False (default), a leading
        zero raises: it would silently change the degree.

    Returns
    -------
    Coefficients
        New float64 (or complex128) array

    Raises
    ------
    MalformedPolynomialError
        If the sequence is empty, not 1-D, not numeric, contains NaN/inf,
        or has a leading zero while allow_leading_zeros is False

    Examples
    --------
    >>> as_coefficients([1, 2])
    array([1., 2.])
    >>> as_coefficients(3)
    array([3.])
    >>> as_coefficients([0, 1, 2])  # MalformedPolynomialError
    """
    try:
        array = np.atleast_1d(np.asarray(coefficients))
        array = _promote(array)
    except (TypeError, ValueError) as exc:
        raise MalformedPolynomialError(f"{name} must be numeric, got {coefficients!r}") from exc

    if array.ndim != 1:
        raise MalformedPolynomialError(f"{name} must be one-dimensional, got shape {array.shape}")
    if array.size == 0:
        raise MalformedPolynomialError(f"{name} must not be empty")
    if not np.all(np.isfinite(array)):
        raise MalformedPolynomialError(f"{name} must be finite, got {array}")

    if array.size > 1 and array[0] == 0:
        if not allow_leading_zeros:
            raise MalformedPolynomialError(
                f"{name} has a zero leading coefficient {array}; "
                f"remove it explicitly instead of inflating the degree",
            )
        array = trim_leading_zeros(array)

    return array


def trim_leading_zeros(coefficients: ArrayLike, tolerance: float = 0.0) -> Coefficients:
    """
    Strip leading coefficients with |c| <= tolerance.

    The zero polynomial is returned as ``[0.0]``.

    Examples
    --------
    >>> trim_leading_zeros([0.0, 0.0, 1.0, 2.0])
    array([1., 2.])
    >>> trim_leading_zeros([0.0, 0.0])
    array([0.])
    """
    array = np.atleast_1d(np.asarray(coefficients))
    nonzero = np.flatnonzero(np.abs(array) > tolerance)
    if nonzero.size == 0:
        return np.zeros(1, dtype=array.dtype)
    return array[nonzero[0]:].copy()


def is_zero_polynomial(coefficients: ArrayLike) -> bool:
    """True if every coefficient is exactly zero."""
    return bool(np.all(np.asarray(coefficients) == 0))


def degree(coefficients: ArrayLike) -> int:
    """
    Degree of a polynomial after stripping leading zeros.

    The zero polynomial has degree 0 here (it never appears as a
    denominator, so no -inf convention is needed).
    """
    return len(trim_leading_zeros(coefficients)) - 1


# ============================================================================
# Ordering Conversion
# ============================================================================


def to_ascending(coefficients: ArrayLike) -> AscendingCoefficients:
    """Highest-power-first → constant-term-first."""
    return np.asarray(coefficients)[::-1].copy()


def to_descending(coefficients: ArrayLike) -> Coefficients:
    """Constant-term-first → highest-power-first."""
    return np.asarray(coefficients)[::-1].copy()


# ============================================================================
# Evaluation
# ============================================================================


def horner(coefficients: ArrayLike, s):
    """
    Evaluate a polynomial with Horner's rule.

    p(s) = (...((c[0] s + c[1]) s + c[2]) s + ...) + c[n]

    Parameters
    ----------
    coefficients : ArrayLike
        Coefficients, highest power first
    s : scalar or array
        Evaluation point(s), real or complex

    Returns
    -------
    scalar or np.ndarray
        p(s) with the shape of s

    Examples
    --------
    >>> horner([1, 3, 3, 1], 1.0)
    8.0
    >>> horner([1, 0, 1], 1j)
    0j
    """
    coefficients = np.asarray(coefficients)
    points = np.asarray(s)
    dtype = np.result_type(coefficients.dtype, points.dtype, np.float64)

    value = np.zeros(points.shape, dtype=dtype)
    for c in coefficients:
        value = value * points + c

    if value.ndim == 0:
        return value[()]
    return value


# ============================================================================
# Algebra
# ============================================================================


def poly_add(p: ArrayLike, q: ArrayLike) -> Coefficients:
    """
    Sum of two polynomials, aligned at the constant term.

    Leading terms that cancel are trimmed.

    Examples
    --------
    >>> poly_add([1, 2, 3], [4, 5])
    array([1., 6., 8.])
    >>> poly_add([1, 2], [-1, 0])
    array([2.])
    """
    p = np.atleast_1d(np.asarray(p))
    q = np.atleast_1d(np.asarray(q))
    size = max(len(p), len(q))
    dtype = np.result_type(p.dtype, q.dtype, np.float64)

    total = np.zeros(size, dtype=dtype)
    total[size - len(p):] += p
    total[size - len(q):] += q
    return trim_leading_zeros(total)


def poly_sub(p: ArrayLike, q: ArrayLike) -> Coefficients:
    """Difference p - q of two polynomials."""
    return poly_add(p, -np.atleast_1d(np.asarray(q)))


def poly_mul(p: ArrayLike, q: ArrayLike) -> Coefficients:
    """
    Product of two polynomials (convolution of their coefficients).

    Examples
    --------
    >>> poly_mul([1, 7.5], [1, 12.5])
    array([ 1.  , 20.  , 93.75])
    """
    product = np.convolve(np.atleast_1d(p), np.atleast_1d(q))
    return trim_leading_zeros(_promote(product))


def poly_scale(p: ArrayLike, factor) -> Coefficients:
    """Multiply every coefficient by a scalar factor."""
    return trim_leading_zeros(_promote(np.atleast_1d(np.asarray(p)) * factor))


def poly_power(p: ArrayLike, exponent: int) -> Coefficients:
    """
    Integer power p(s)^k, k >= 0.

    Examples
    --------
    >>> poly_power([1, 1], 3)
    array([1., 3., 3., 1.])
    """
    if exponent < 0:
        raise ValueError(f"exponent must be non-negative, got {exponent}")
    result = np.ones(1)
    for _ in range(int(exponent)):
        result = poly_mul(result, p)
    return result


def poly_derivative(p: ArrayLike) -> Coefficients:
    """
    Derivative dp/ds.

    The derivative of a constant is the zero polynomial ``[0.0]``.
    """
    p = np.atleast_1d(np.asarray(p))
    if len(p) == 1:
        return np.zeros(1)
    return _promote(np.polyder(p))


def poly_from_roots(roots: Iterable[complex], gain: float = 1.0) -> Coefficients:
    """
    Polynomial gain · Π (s - r_i).

    Conjugate pairs produce real coefficients; tiny imaginary residue from
    rounding is dropped.
    """
    roots = np.asarray(list(roots), dtype=complex)
    coefficients = np.poly(roots) if roots.size else np.ones(1)
    coefficients = np.asarray(coefficients) * gain
    if np.iscomplexobj(coefficients):
        scale = max(np.max(np.abs(coefficients)), 1.0)
        if np.all(np.abs(np.imag(coefficients)) <= 1e-12 * scale):
            coefficients = np.real(coefficients)
    return _promote(coefficients)


def real_if_close(values: np.ndarray, tolerance: float = 1e-9) -> np.ndarray:
    """Drop imaginary parts that are negligible relative to the largest entry."""
    values = np.asarray(values)
    if not np.iscomplexobj(values):
        return values
    scale = max(np.max(np.abs(values)) if values.size else 0.0, 1.0)
    if np.all(np.abs(np.imag(values)) <= tolerance * scale):
        return np.real(values).astype(np.float64)
    return values


__all__ = [
    "as_coefficients",
    "trim_leading_zeros",
    "is_zero_polynomial",
    "degree",
    "to_ascending",
    "to_descending",
    "horner",
    "poly_add",
    "poly_sub",
    "poly_mul",
    "poly_scale",
    "poly_power",
    "poly_derivative",
    "poly_from_roots",
    "real_if_close",
]
