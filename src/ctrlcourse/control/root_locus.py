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
Root Locus

Closed-loop pole locations of the unity feedback loop around K·G(s),
G = N/D, as the gain K sweeps from 0 to ∞:

    D(s) + K N(s) = 0

Rules provided:
- root_locus: numerical trace, one column per branch
- asymptotes: centroid s_a = (Σ poles - Σ zeros)/(n - m) and angles
  φ_i = (2i + 1)·180°/(n - m)
- breakaway_points: real roots of N D' - N' D with K = -D/N >= 0
- imaginary_axis_crossings: critical gains where a branch crosses s = jω
- gain_at_point: K from the magnitude condition at a point on the locus

Usage
-----
>>> G = TransferFunction([1], [1, 20, 93.75, 0])   # 1/(s(s+7.5)(s+12.5))
>>> np.sort(root_locus(G, gains=[0.0])['roots'][0].real)
array([-12.5,  -7.5,   0. ])
>>> imaginary_axis_crossings(G)[0]['gain']
1875.0
"""

import warnings
from typing import List, Optional

import numpy as np
from scipy.optimize import linear_sum_assignment

from ctrlcourse.control.exceptions import SingularOperationError
from ctrlcourse.control.polynomial import (
    horner,
    is_zero_polynomial,
    poly_add,
    poly_derivative,
    poly_mul,
    poly_scale,
    poly_sub,
    real_if_close,
    trim_leading_zeros,
)
from ctrlcourse.control.transfer_function import TransferFunction
from ctrlcourse.types.control_classical import (
    AsymptoteInfo,
    AxisCrossing,
    BreakawayPoint,
    RootLocusResult,
)
from ctrlcourse.types.core import ArrayLike, ComplexLike
from ctrlcourse.types.options import DEFAULT_NUM_GAINS

# Cost assigned to NaN roots when matching branches
_UNMATCHED_COST = 1e300


def _check_open_loop(system: TransferFunction) -> None:
    if system.delay:
        raise ValueError("Root locus requires a rational open loop (no time delay)")
    if is_zero_polynomial(system.num):
        raise ValueError("Root locus of a zero open loop is undefined")


def _default_gains(system: TransferFunction, num_gains: int) -> np.ndarray:
    scale = np.max(np.abs(system.den)) / np.max(np.abs(system.num))
    return np.concatenate([[0.0], np.logspace(-3, 3, num_gains - 1) * scale])


def _match_branches(previous: np.ndarray, current: np.ndarray) -> np.ndarray:
    """Reorder current so that current[j] continues previous[j]."""
    cost = np.abs(previous[:, None] - current[None, :])
    cost = np.where(np.isnan(cost), _UNMATCHED_COST, cost)
    _, columns = linear_sum_assignment(cost)
    return current[columns]


# ============================================================================
# Root Locus Trace
# ============================================================================


def root_locus(
    system: TransferFunction,
    gains: Optional[ArrayLike] = None,
    num_gains: int = DEFAULT_NUM_GAINS,
) -> RootLocusResult:
    """
    Closed-loop poles of D(s) + K N(s) for a sequence of gains.

    Successive rows are matched by minimum total displacement
    (scipy.optimize.linear_sum_assignment), so each column of 'roots'
    follows one branch.

    Parameters
    ----------
    system : TransferFunction
        Open loop G = N/D without time delay
    gains : Optional[ArrayLike]
        Gains K >= 0 to evaluate. Default: 0 followed by a log sweep over
        six decades scaled to the coefficient magnitudes.
    num_gains : int
        Size of the default sweep

    Returns
    -------
    RootLocusResult
        gains, roots (n_gain, n), open-loop poles and zeros

    Warns
    -----
    RuntimeWarning
        If the characteristic degree drops for some gain (leading terms
        cancel); the missing roots are NaN

    Examples
    --------
    >>> G = TransferFunction([1], [1, 20, 93.75, 0])
    >>> result = root_locus(G, gains=[0.0, 1875.0])
    >>> np.sort_complex(result['roots'][1])
    array([-20.-0.j        ,   0.-9.68245837j,   0.+9.68245837j])
    """
    _check_open_loop(system)
    if gains is None:
        gains = _default_gains(system, num_gains)
    gains = np.atleast_1d(np.asarray(gains, dtype=float))
    if gains.ndim != 1 or gains.size == 0:
        raise ValueError(f"gains must be a non-empty 1-D sequence, got shape {gains.shape}")

    order = max(len(system.den), len(system.num)) - 1
    roots = np.full((gains.size, order), np.nan, dtype=complex)
    dropped = []

    for index, gain in enumerate(gains):
        characteristic = poly_add(system.den, poly_scale(system.num, gain))
        current = np.full(order, np.nan, dtype=complex)
        if not is_zero_polynomial(characteristic):
            found = np.roots(characteristic)
            current[: found.size] = found
            if found.size < order:
                dropped.append(gain)
        else:
            dropped.append(gain)

        if index == 0:
            roots[index] = current
        else:
            roots[index] = _match_branches(roots[index - 1], current)

    if dropped:
        warnings.warn(
            f"Characteristic polynomial loses degree at K = {dropped[:3]}; "
            f"missing closed-loop poles are reported as NaN",
            RuntimeWarning,
        )

    result: RootLocusResult = {
        "gains": gains,
        "roots": roots,
        "open_loop_poles": system.poles(),
        "open_loop_zeros": system.zeros(),
    }
    return result


# ============================================================================
# Construction Rules
# ============================================================================


def asymptotes(system: TransferFunction) -> AsymptoteInfo:
    """
    Asymptotes of the branches that diverge to infinity.

    s_a = (Σ p_i - Σ z_j) / (n - m)
    φ_i = (2i + 1)·180° / (n - m),   i = 0..n-m-1

    The pole and zero sums are read from the second coefficients
    (Vieta), so no roots are computed.

    Raises
    ------
    ValueError
        If the open loop is improper (m > n)

    Examples
    --------
    >>> info = asymptotes(TransferFunction([1], [1, 20, 93.75, 0]))
    >>> info['center'], info['angles_deg']
    (-6.666666666666667, array([ 60., 180., 300.]))
    """
    _check_open_loop(system)
    n = len(system.den) - 1
    m = len(system.num) - 1
    count = n - m
    if count < 0:
        raise ValueError(f"Improper open loop: {m} zeros > {n} poles")

    if count == 0:
        result: AsymptoteInfo = {"center": None, "angles_deg": np.array([]), "count": 0}
        return result

    pole_sum = -system.den[1] / system.den[0] if n >= 1 else 0.0
    zero_sum = -system.num[1] / system.num[0] if m >= 1 else 0.0

    result: AsymptoteInfo = {
        "center": float(np.real(pole_sum - zero_sum) / count),
        "angles_deg": (2 * np.arange(count) + 1) * 180.0 / count,
        "count": count,
    }
    return result


def breakaway_points(system: TransferFunction, tolerance: float = 1e-8) -> List[BreakawayPoint]:
    """
    Branch points of the root locus on the real axis.

    Candidates are the real roots of dK/ds = 0 with K(s) = -D(s)/N(s),
    i.e. of N D' - N' D. Only candidates with a feasible gain K >= 0 are
    kept.

    Returns
    -------
    List[BreakawayPoint]
        Sorted by location (most negative first)

    Examples
    --------
    >>> points = breakaway_points(TransferFunction([1], [1, 20, 93.75, 0]))
    >>> round(points[0]['point'], 3), round(points[0]['gain'], 2)
    (-3.034, 128.26)
    """
    _check_open_loop(system)
    condition = poly_sub(
        poly_mul(system.num, poly_derivative(system.den)),
        poly_mul(poly_derivative(system.num), system.den),
    )
    if is_zero_polynomial(condition) or len(condition) < 2:
        return []

    points: List[BreakawayPoint] = []
    for candidate in np.roots(condition):
        if abs(candidate.imag) > tolerance * max(1.0, abs(candidate)):
            continue
        s = float(candidate.real)
        num_value = horner(system.num, s)
        if abs(num_value) <= tolerance * max(1.0, np.max(np.abs(system.num))):
            continue
        gain = -horner(system.den, s) / num_value
        if gain < -tolerance:
            continue
        points.append({"point": s, "gain": float(max(gain, 0.0))})

    points.sort(key=lambda p: p["point"])
    return points


def imaginary_axis_crossings(
    system: TransferFunction,
    tolerance: float = 1e-8,
) -> List[AxisCrossing]:
    """
    Gains at which a root locus branch crosses the imaginary axis.

    On s = jω the characteristic equation requires K = -D(jω)/N(jω) to be
    real, i.e.

        Im( D(jω) · N(-jω) ) = 0

    which is a real polynomial in ω. Only crossings with ω >= 0 and K > 0
    are reported (the start of a branch at an open-loop pole on the axis
    is not a crossing).

    Examples
    --------
    >>> crossing = imaginary_axis_crossings(TransferFunction([1], [1, 20, 93.75, 0]))[0]
    >>> crossing['frequency'] ** 2, crossing['gain']
    (93.75, 1875.0)
    """
    _check_open_loop(system)
    if system.is_discrete:
        raise ValueError("Imaginary-axis crossings apply to continuous systems; use |z| = 1 instead")

    def substitute(coefficients, unit):
        # p(unit·ω) as a polynomial in ω
        powers = np.arange(len(coefficients) - 1, -1, -1)
        return coefficients * unit ** powers

    product = poly_mul(substitute(system.den, 1j), substitute(system.num, -1j))
    scale = np.max(np.abs(product))
    condition = trim_leading_zeros(np.imag(product), tolerance=tolerance * scale)
    if is_zero_polynomial(condition) or len(condition) < 2:
        return []

    crossings: List[AxisCrossing] = []
    for candidate in np.roots(condition):
        if abs(candidate.imag) > tolerance * max(1.0, abs(candidate)):
            continue
        omega = abs(float(candidate.real))
        point = 1j * omega
        num_value = horner(system.num, point)
        if abs(num_value) <= tolerance:
            continue
        gain = -horner(system.den, point) / num_value
        if gain.real <= tolerance or abs(gain.imag) > 1e-6 * max(1.0, abs(gain)):
            continue
        if any(np.isclose(omega, c["frequency"], rtol=1e-9, atol=tolerance) for c in crossings):
            continue
        crossings.append({"frequency": omega, "gain": float(gain.real)})

    crossings.sort(key=lambda c: c["gain"])
    return crossings


def gain_at_point(
    system: TransferFunction,
    point: ComplexLike,
    tolerance: float = 1e-6,
) -> float:
    """
    Gain K placing a closed-loop pole at the given point.

    K = -D(s)/N(s), which is real and non-negative only on the locus.

    Raises
    ------
    SingularOperationError
        If the point is a zero of G (K would be infinite)
    ValueError
        If the point does not lie on the root locus (K not real and
        non-negative within tolerance)

    Examples
    --------
    >>> gain_at_point(TransferFunction([1], [1, 20, 93.75, 0]), -20.0)
    1875.0
    """
    _check_open_loop(system)
    s = complex(point)
    num_value = horner(system.num, s)
    if num_value == 0:
        raise SingularOperationError(f"s = {s} is an open-loop zero; the gain is unbounded")

    gain = real_if_close(np.asarray(-horner(system.den, s) / num_value), tolerance=tolerance)
    if np.iscomplexobj(gain) or gain < -tolerance * max(1.0, abs(gain)):
        raise ValueError(f"s = {s} is not on the root locus (K = {complex(gain):.6g})")
    return float(max(gain, 0.0))


__all__ = [
    "root_locus",
    "asymptotes",
    "breakaway_points",
    "imaginary_axis_crossings",
    "gain_at_point",
]
