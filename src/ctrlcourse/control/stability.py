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
Stability Analysis

Algebraic and eigenvalue stability tests for linear systems.

Polynomial tests take the characteristic polynomial with the CONSTANT TERM
FIRST, as written in most textbooks:

    A(s) = a0 + a1 s + a2 s^2 + ... + am s^m   →   [a0, a1, ..., am]

Functions:
- hurwitz_matrix: m×m Hurwitz matrix H[i][j] = a_{2j-i+1}
- routh_hurwitz: Hurwitz minor test with stable / marginal / unstable verdict
- routh_array: Routh table and right half-plane root count
- routh_hurwitz_symbolic: stability conditions on a design parameter (SymPy)
- naslin_coefficients: damping indicators α_i = a_i² / (a_{i-1} a_{i+1})
- analyze_stability: eigenvalue test on a state matrix

All functions are pure and return TypedDict results.

Usage
-----
>>> result = routh_hurwitz([3, 2, 2, 5])          # 5s³ + 2s² + 2s + 3
>>> result['classification'], result['failed_minor']
('unstable', 2)
>>>
>>> K = sp.Symbol('K', real=True)
>>> routh_hurwitz_symbolic([3 + K, 2, 2, 5], K)['stable_set']
Interval.open(-3, -11/5)
"""

from typing import Optional, Sequence, Tuple

import numpy as np
import sympy as sp

from ctrlcourse.control.exceptions import MalformedPolynomialError, SingularOperationError
from ctrlcourse.control.polynomial import as_coefficients, to_ascending, to_descending
from ctrlcourse.types.control_classical import (
    NaslinResult,
    RouthArrayResult,
    RouthHurwitzResult,
    StabilityInfo,
    SymbolicHurwitzResult,
)
from ctrlcourse.types.core import ArrayLike, AscendingCoefficients, StateMatrix
from ctrlcourse.types.options import (
    DEFAULT_NASLIN_BOUNDS,
    DEFAULT_ROUTH_TOLERANCE,
    DEFAULT_TOLERANCE,
    StabilityClass,
    validate_system_type,
)

# ============================================================================
# Helpers
# ============================================================================


def _as_ascending(coefficients: ArrayLike, min_degree: int = 1) -> AscendingCoefficients:
    """Validate a0..am (real, finite, a_m != 0, m >= min_degree)."""
    # Validation is done in descending order so the leading-zero check hits a_m
    descending = as_coefficients(to_descending(np.atleast_1d(coefficients)), name="coefficients")
    if np.iscomplexobj(descending):
        raise MalformedPolynomialError(
            f"Stability tests require real coefficients, got {descending}",
        )
    if len(descending) - 1 < min_degree:
        raise MalformedPolynomialError(
            f"Polynomial degree must be at least {min_degree}, got {len(descending) - 1}",
        )
    return to_ascending(descending)


def _classification_flags(classification: StabilityClass) -> dict:
    return {
        "classification": classification,
        "is_stable": classification == "stable",
        "is_marginally_stable": classification == "marginally_stable",
        "is_unstable": classification == "unstable",
    }


# ============================================================================
# Routh-Hurwitz Criterion
# ============================================================================


def hurwitz_matrix(coefficients: ArrayLike) -> np.ndarray:
    """
    Build the m×m Hurwitz matrix of a0 + a1 s + ... + am s^m.

    H[i][j] = a_{2j-i+1}   (0-based; entries outside 0..m are zero)

    For m = 4:

        | a1  a3  0   0  |
        | a0  a2  a4  0  |
        | 0   a1  a3  0  |
        | 0   a0  a2  a4 |

    Parameters
    ----------
    coefficients : ArrayLike
        a0..am, constant term first, a_m != 0, m >= 1

    Returns
    -------
    np.ndarray
        Hurwitz matrix, shape (m, m)

    Examples
    --------
    >>> hurwitz_matrix([3, 2, 2, 5])
    array([[2., 5., 0.],
           [3., 2., 0.],
           [0., 2., 5.]])
    """
    a = _as_ascending(coefficients)
    m = len(a) - 1

    H = np.zeros((m, m))
    for i in range(m):
        for j in range(m):
            k = 2 * j - i + 1
            if 0 <= k <= m:
                H[i, j] = a[k]
    return H


def _leading_minors(H: np.ndarray) -> np.ndarray:
    return np.array([np.linalg.det(H[:k, :k]) for k in range(1, H.shape[0] + 1)])


def routh_hurwitz(
    coefficients: ArrayLike,
    tolerance: float = DEFAULT_ROUTH_TOLERANCE,
) -> RouthHurwitzResult:
    """
    Routh-Hurwitz stability test of a characteristic polynomial.

    Necessary condition: every coefficient a_i > 0 (after normalizing the
    sign so that a_m > 0). Sufficient condition: every leading principal
    minor of the Hurwitz matrix is positive.

    Decision:
    1. A coefficient below -tolerance → 'unstable', citing its index
    2. A minor below -tolerance → 'unstable', citing its order k (1-based)
    3. A coefficient or minor within tolerance of zero → the Routh table
       decides: 'unstable' if its first column changes sign, otherwise
       'marginally_stable'
    4. Otherwise → 'stable'

    The comparisons use the coefficient vector scaled to unit max-norm, so
    the verdict does not depend on the overall magnitude of the polynomial.
    The reported minors are those of the unscaled (sign-normalized)
    coefficients.

    Parameters
    ----------
    coefficients : ArrayLike
        a0..am, constant term first, a_m != 0, m >= 1
    tolerance : float
        Zero threshold for scaled coefficients and minors

    Returns
    -------
    RouthHurwitzResult
        Classification, Hurwitz matrix, minors and the failing index

    Raises
    ------
    MalformedPolynomialError
        If the sequence is empty, has a_m == 0, is complex or has m < 1

    Examples
    --------
    >>> routh_hurwitz([6, 11, 6, 1])['is_stable']     # (s+1)(s+2)(s+3)
    True
    >>> routh_hurwitz([1, 1, 1, 1])['classification']  # roots -1, ±j
    'marginally_stable'
    >>> routh_hurwitz([1, 0, 0, 1])['classification']  # s³ + 1
    'unstable'

    Notes
    -----
    A coefficient of exactly zero alone never proves instability (s² + 1
    has roots on the imaginary axis), which is why zero coefficients are
    only checked after the minors. Nor does it prove marginal stability:
    s⁴ + 6s² + 25 has only zero minors and roots ±1 ± 2j.
    """
    a = _as_ascending(coefficients)
    if a[-1] < 0:
        a = -a

    H = hurwitz_matrix(a)
    scaled = a / np.max(np.abs(a))

    failed_coefficient: Optional[int] = None
    failed_minor: Optional[int] = None

    negative = np.flatnonzero(scaled < -tolerance)
    if negative.size:
        failed_coefficient = int(negative[0])
        classification = "unstable"
        minors = np.array([])
        reason = f"Coefficient a{failed_coefficient} = {a[failed_coefficient]:g} is negative"
    else:
        minors = _leading_minors(H)
        scaled_minors = _leading_minors(hurwitz_matrix(scaled))

        negative_minors = np.flatnonzero(scaled_minors < -tolerance)
        zero_coefficients = np.flatnonzero(np.abs(scaled) <= tolerance)
        zero_minors = np.flatnonzero(np.abs(scaled_minors) <= tolerance)

        if negative_minors.size:
            failed_minor = int(negative_minors[0]) + 1
            classification = "unstable"
            reason = f"Hurwitz minor det(H{failed_minor}) = {minors[failed_minor - 1]:g} is negative"
        elif zero_coefficients.size or zero_minors.size:
            if zero_coefficients.size:
                failed_coefficient = int(zero_coefficients[0])
            if zero_minors.size:
                failed_minor = int(zero_minors[0]) + 1
            # Vanishing minors are inconclusive; the Routh table counts RHP roots
            rhp_roots = routh_array(a, tolerance=tolerance)["sign_changes"]
            if rhp_roots:
                classification = "unstable"
                reason = f"Coefficient or Hurwitz minor vanishes and {rhp_roots} roots lie in the right half-plane"
            else:
                classification = "marginally_stable"
                reason = "Coefficient or Hurwitz minor vanishes: roots on the imaginary axis"
        else:
            classification = "stable"
            reason = "All coefficients and Hurwitz minors are positive"

    result: RouthHurwitzResult = {
        "coefficients": a,
        "hurwitz_matrix": H,
        "minors": minors,
        **_classification_flags(classification),
        "failed_coefficient": failed_coefficient,
        "failed_minor": failed_minor,
        "reason": reason,
    }
    return result


def routh_array(
    coefficients: ArrayLike,
    epsilon: float = 1e-9,
    tolerance: float = DEFAULT_ROUTH_TOLERANCE,
) -> RouthArrayResult:
    """
    Build the Routh table of a0 + a1 s + ... + am s^m.

    Row 0 holds a_m, a_{m-2}, ...; row 1 holds a_{m-1}, a_{m-3}, ...;
    each further entry is

        r[i][j] = (r[i-1][0] r[i-2][j+1] - r[i-2][0] r[i-1][j+1]) / r[i-1][0]

    Special cases:
    - A zero pivot (first element) is replaced by ε
    - An all-zero row is replaced by the derivative of the auxiliary
      polynomial formed from the row above

    The number of sign changes in the first column equals the number of
    roots in the open right half-plane (roots on the imaginary axis are
    not counted).

    Examples
    --------
    >>> result = routh_array([8, 2, 1, 1])      # s³ + s² + 2s + 8
    >>> result['first_column']
    array([ 1.,  1., -6.,  8.])
    >>> result['sign_changes']
    2
    """
    a = _as_ascending(coefficients)
    descending = to_descending(a)
    m = len(a) - 1
    width = m // 2 + 1
    zero = tolerance * np.max(np.abs(a))

    table = np.zeros((m + 1, width))
    table[0, : len(descending[0::2])] = descending[0::2]
    table[1, : len(descending[1::2])] = descending[1::2]

    substitutions = 0
    for i in range(1, m + 1):
        if i >= 2:
            pivot = table[i - 1, 0]
            for j in range(width - 1):
                table[i, j] = (pivot * table[i - 2, j + 1] - table[i - 2, 0] * table[i - 1, j + 1]) / pivot

        if np.all(np.abs(table[i]) <= zero):
            # Auxiliary polynomial of power p = m - (i - 1)
            power = m - (i - 1)
            table[i] = [table[i - 1, k] * (power - 2 * k) for k in range(width)]
        if i < m and abs(table[i, 0]) <= zero:
            table[i, 0] = epsilon
            substitutions += 1

    first_column = table[:, 0].copy()
    signs = np.sign(first_column[np.abs(first_column) > 0])
    sign_changes = int(np.sum(signs[1:] != signs[:-1]))

    result: RouthArrayResult = {
        "table": table,
        "first_column": first_column,
        "sign_changes": sign_changes,
        "epsilon_substitutions": substitutions,
    }
    return result


def routh_hurwitz_symbolic(
    coefficients: Sequence,
    symbol: sp.Symbol,
) -> SymbolicHurwitzResult:
    """
    Stability conditions for a polynomial with a free design parameter.

    Every coefficient and Hurwitz minor must be strictly positive; the
    stable parameter range is the intersection of the solution sets of
    these inequalities over the reals.

    Parameters
    ----------
    coefficients : Sequence
        a0..am as numbers or SymPy expressions in symbol (a_m > 0 assumed)
    symbol : sp.Symbol
        Design parameter

    Returns
    -------
    SymbolicHurwitzResult
        Coefficients, simplified minors, conditions and the stable set

    Examples
    --------
    >>> K = sp.Symbol('K')
    >>> result = routh_hurwitz_symbolic([3 + K, 2, 2, 5], K)
    >>> result['minors'][1]
    -5*K - 11
    >>> result['stable_set']
    Interval.open(-3, -11/5)
    """
    a = [sp.sympify(c) for c in coefficients]
    if len(a) < 2:
        raise MalformedPolynomialError(f"Polynomial degree must be at least 1, got {len(a) - 1}")
    m = len(a) - 1

    H = sp.zeros(m, m)
    for i in range(m):
        for j in range(m):
            k = 2 * j - i + 1
            if 0 <= k <= m:
                H[i, j] = a[k]

    minors = [sp.expand(sp.simplify(H[:k, :k].det())) for k in range(1, m + 1)]
    conditions = [sp.Gt(expr, 0) for expr in a + minors]

    stable_set = sp.S.Reals
    for condition in conditions:
        if condition is sp.true:
            continue
        if condition is sp.false:
            stable_set = sp.S.EmptySet
            break
        stable_set = stable_set.intersect(sp.solveset(condition, symbol, domain=sp.S.Reals))

    result: SymbolicHurwitzResult = {
        "coefficients": a,
        "minors": minors,
        "conditions": conditions,
        "stable_set": stable_set,
    }
    return result


# ============================================================================
# Naslin Coefficients
# ============================================================================


def naslin_coefficients(
    coefficients: ArrayLike,
    bounds: Tuple[float, float] = DEFAULT_NASLIN_BOUNDS,
) -> NaslinResult:
    """
    Naslin coefficients of a closed-loop characteristic polynomial.

    α_i = a_i² / (a_{i-1} a_{i+1}),   i = 1..m-1

    Small α (towards 1.5) gives a fast closed loop, large α (towards 2.5)
    a well damped one.

    Args:
        coefficients: a0..am, constant term first, m >= 2
        bounds: Admissible open interval (lower, upper)

    Returns:
        NaslinResult with the coefficients and whether all lie in the bounds

    Raises:
        SingularOperationError: If a neighbouring coefficient is zero

    Example:
        >>> # PID loop around 0.5 / (s^3 + 3.5 s^2 + 3.5 s + 1)
        >>> a = [2.344727, 5.359375, 6.125, 3.5, 1.0]
        >>> naslin_coefficients(a)['alphas']
        array([2., 2., 2.])
    """
    a = _as_ascending(coefficients, min_degree=2)
    lower, upper = bounds
    if lower >= upper:
        raise ValueError(f"bounds must satisfy lower < upper, got {bounds}")

    denominators = a[:-2] * a[2:]
    if np.any(denominators == 0):
        raise SingularOperationError(
            "Naslin coefficients are undefined when a coefficient is zero",
        )
    alphas = a[1:-1] ** 2 / denominators

    result: NaslinResult = {
        "alphas": alphas,
        "bounds": (float(lower), float(upper)),
        "within_bounds": bool(np.all((alphas > lower) & (alphas < upper))),
    }
    return result


# ============================================================================
# Eigenvalue Stability
# ============================================================================


def analyze_stability(
    A: StateMatrix,
    system_type: str = "continuous",
    tolerance: float = DEFAULT_TOLERANCE,
) -> StabilityInfo:
    """
    Analyze system stability via eigenvalue analysis.

    Stability criteria:
        Continuous (dx/dt = Ax): All Re(λ) < 0 (left half-plane)
        Discrete (x[k+1] = Ax): All |λ| < 1 (inside unit circle)

    Args:
        A: State matrix (n, n)
        system_type: 'continuous' or 'discrete'
        tolerance: Tolerance for marginal stability detection

    Returns:
        StabilityInfo containing:
            - eigenvalues: Eigenvalues of A (complex array)
            - magnitudes: |λ| for all eigenvalues
            - max_real_part: spectral abscissa max Re(λ)
            - spectral_radius: max |λ|
            - classification: 'stable', 'marginally_stable' or 'unstable'
            - is_stable / is_marginally_stable / is_unstable flags

    Examples
    --------
    >>> A = np.array([[0, 1], [-2, -3]])
    >>> analyze_stability(A)['is_stable']
    True
    >>>
    >>> A_marginal = np.array([[0, 1], [-1, 0]])  # Pure oscillation
    >>> analyze_stability(A_marginal)['classification']
    'marginally_stable'
    >>>
    >>> Ad = np.array([[0.9, 0.1], [0, 0.8]])
    >>> analyze_stability(Ad, system_type='discrete')['spectral_radius']
    0.9

    Notes
    -----
    The classification of a companion matrix agrees with routh_hurwitz on
    its characteristic polynomial, up to the respective tolerances.

    An empty (0, 0) matrix, the realization of a static gain, is stable
    with max_real_part = -inf and spectral_radius = 0.
    """
    A_np = np.atleast_2d(np.asarray(A, dtype=float))
    if A_np.ndim != 2 or A_np.shape[0] != A_np.shape[1]:
        raise ValueError(f"A must be square matrix, got shape {A_np.shape}")
    system_type = validate_system_type(system_type)

    eigenvalues = np.linalg.eigvals(A_np)
    magnitudes = np.abs(eigenvalues)
    if eigenvalues.size == 0:
        # Static gain: no modes
        spectral_radius = 0.0
        max_real = -np.inf
    else:
        spectral_radius = float(np.max(magnitudes))
        max_real = float(np.max(np.real(eigenvalues)))

    if system_type == "continuous":
        margin = max_real
    else:
        margin = spectral_radius - 1.0

    if margin < -tolerance:
        classification = "stable"
    elif margin <= tolerance:
        classification = "marginally_stable"
    else:
        classification = "unstable"

    result: StabilityInfo = {
        "eigenvalues": eigenvalues,
        "magnitudes": magnitudes,
        "max_real_part": max_real,
        "spectral_radius": spectral_radius,
        **_classification_flags(classification),
    }
    return result


__all__ = [
    "hurwitz_matrix",
    "routh_hurwitz",
    "routh_array",
    "routh_hurwitz_symbolic",
    "naslin_coefficients",
    "analyze_stability",
]
