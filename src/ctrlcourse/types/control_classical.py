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
Classical Control Theory Types

Result types for classical control theory algorithms:
- Stability analysis (eigenvalues, Routh-Hurwitz, Routh array, Naslin)
- Controllability, observability, pole placement and observers
- Discretization
- Root locus construction
- Frequency response and stability margins
- Time responses
- Dead-beat and PID / Ziegler-Nichols design

These types provide structured return values from the analysis functions,
so a lesson can pick out exactly the quantity it wants to print or plot.

Mathematical Background
----------------------
Routh-Hurwitz (constant term first, a0..am):
    Necessary:  all a_i > 0
    Sufficient: det(H_k) > 0 for k = 1..m,  H[i][j] = a_{2j-i+1}

Eigenvalue stability:
    Continuous: all Re(λ) < 0
    Discrete:   all |λ| < 1

Margins (open loop G):
    Gain margin:  GM = -20 log10 |G(jω_pc)|   where ∠G(jω_pc) = -180°
    Phase margin: PM = ∠G(jω_gc) + 180°       where |G(jω_gc)| = 1

Usage
-----
>>> from ctrlcourse.types.control_classical import RouthHurwitzResult
>>>
>>> result: RouthHurwitzResult = routh_hurwitz([3, 2, 2, 5])
>>> result['classification']
'unstable'
>>> result['failed_minor']
2
"""

from typing import TYPE_CHECKING, List, Optional, Tuple

import numpy as np
from typing_extensions import TypedDict

from .core import (
    ComplexResponse,
    ControllabilityMatrix,
    FrequencyArray,
    GainArray,
    GainMatrix,
    InputMatrix,
    ObservabilityMatrix,
    SignalArray,
    StateMatrix,
    TimeArray,
)
from .options import ControllerType, StabilityClass

if TYPE_CHECKING:
    import sympy as sp

    from ctrlcourse.control.transfer_function import TransferFunction


# ============================================================================
# Stability Analysis Types
# ============================================================================


class StabilityInfo(TypedDict):
    """
    Eigenvalue-based stability analysis result.

    Stability Criteria:
    - Continuous: All Re(λ) < 0 (left half-plane)
    - Discrete: All |λ| < 1 (inside unit circle)

    Fields
    ------
    eigenvalues : np.ndarray
        Eigenvalues of the system matrix (complex)
    magnitudes : np.ndarray
        Absolute values |λ|
    max_real_part : float
        max Re(λ) (spectral abscissa)
    spectral_radius : float
        max |λ|
    classification : StabilityClass
        'stable', 'marginally_stable' or 'unstable'
    is_stable : bool
        True if asymptotically stable
    is_marginally_stable : bool
        True if the dominant eigenvalue lies on the boundary
    is_unstable : bool
        True if any eigenvalue lies outside the stability region

    Examples
    --------
    >>> A = np.array([[0, 1], [-2, -3]])
    >>> info: StabilityInfo = analyze_stability(A, system_type='continuous')
    >>> info['is_stable']
    True
    """

    eigenvalues: np.ndarray
    magnitudes: np.ndarray
    max_real_part: float
    spectral_radius: float
    classification: StabilityClass
    is_stable: bool
    is_marginally_stable: bool
    is_unstable: bool


class RouthHurwitzResult(TypedDict):
    """
    Routh-Hurwitz stability test result.

    Fields
    ------
    coefficients : np.ndarray
        Coefficients a0..am as tested (sign-normalized so that a_m > 0)
    hurwitz_matrix : np.ndarray
        The m×m Hurwitz matrix H_m
    minors : np.ndarray
        Leading principal minors det(H_1), ..., det(H_m); empty when the
        coefficient test already failed
    classification : StabilityClass
        'stable', 'marginally_stable' or 'unstable'
    is_stable, is_marginally_stable, is_unstable : bool
        Boolean views of the classification
    failed_coefficient : Optional[int]
        Index i of the first coefficient a_i <= 0 (None if all positive)
    failed_minor : Optional[int]
        Order k of the first minor det(H_k) < 0 or ≈ 0 (None if all positive)
    reason : str
        Human-readable explanation of the classification

    Examples
    --------
    >>> result = routh_hurwitz([3, 2, 2, 5])
    >>> result['minors'][1]   # det(H_2) = 2*2 - 3*5
    -11.0
    """

    coefficients: np.ndarray
    hurwitz_matrix: np.ndarray
    minors: np.ndarray
    classification: StabilityClass
    is_stable: bool
    is_marginally_stable: bool
    is_unstable: bool
    failed_coefficient: Optional[int]
    failed_minor: Optional[int]
    reason: str


class RouthArrayResult(TypedDict):
    """
    Routh table result.

    Fields
    ------
    table : np.ndarray
        Routh array, shape (m+1, ceil((m+1)/2)), row 0 is the s^m row
    first_column : np.ndarray
        First column of the table
    sign_changes : int
        Number of sign changes in the first column, equal to the number of
        roots in the open right half-plane
    epsilon_substitutions : int
        Number of zero pivots replaced by ε
    """

    table: np.ndarray
    first_column: np.ndarray
    sign_changes: int
    epsilon_substitutions: int


class SymbolicHurwitzResult(TypedDict):
    """
    Symbolic Routh-Hurwitz conditions for a parametrized polynomial.

    Fields
    ------
    coefficients : List[sp.Expr]
        Coefficients a0..am as SymPy expressions
    minors : List[sp.Expr]
        Simplified leading principal minors det(H_1)..det(H_m)
    conditions : List[sp.Basic]
        All strict positivity conditions (coefficients and minors)
    stable_set : sp.Set
        Set of parameter values satisfying every condition

    Examples
    --------
    >>> K = sp.Symbol('K', real=True)
    >>> result = routh_hurwitz_symbolic([3 + K, 2, 2, 5], K)
    >>> result['stable_set']
    Interval.open(-3, -11/5)
    """

    coefficients: List["sp.Expr"]
    minors: List["sp.Expr"]
    conditions: List["sp.Basic"]
    stable_set: "sp.Set"


class NaslinResult(TypedDict):
    """
    Naslin coefficient analysis.

    α_i = a_i² / (a_{i-1} a_{i+1}),  i = 1..m-1

    Fields
    ------
    alphas : np.ndarray
        Naslin coefficients α_1..α_{m-1}
    bounds : Tuple[float, float]
        Admissible interval (lower, upper), usually (1.5, 2.5)
    within_bounds : bool
        True if every α_i lies strictly inside the bounds
    """

    alphas: np.ndarray
    bounds: Tuple[float, float]
    within_bounds: bool


class ControllabilityInfo(TypedDict):
    """
    Controllability analysis result.

    Controllability Test:
    - rank([B, AB, ..., A^(n-1) B]) == n

    Fields
    ------
    controllability_matrix : ControllabilityMatrix
        [B, AB, ..., A^(n-1) B]
    rank : int
        Numerical rank
    is_controllable : bool
        True if full rank
    """

    controllability_matrix: ControllabilityMatrix
    rank: int
    is_controllable: bool


class ObservabilityInfo(TypedDict):
    """
    Observability analysis result.

    Observability Test:
    - rank([C; CA; ...; C A^(n-1)]) == n

    Fields
    ------
    observability_matrix : ObservabilityMatrix
        [C; CA; ...; C A^(n-1)]
    rank : int
        Numerical rank
    is_observable : bool
        True if full rank
    """

    observability_matrix: ObservabilityMatrix
    rank: int
    is_observable: bool


class PolePlacementResult(TypedDict):
    """
    Pole placement (eigenvalue assignment) result.

    Design state feedback gain K such that (A - BK) has the desired
    eigenvalues.

    Fields
    ------
    gain : GainMatrix
        State feedback gain K, shape (1, n)
    desired_poles : np.ndarray
        Requested closed-loop eigenvalues
    achieved_poles : np.ndarray
        Eigenvalues of (A - BK)
    is_controllable : bool
        Always True for a returned result (uncontrollable systems raise)
    """

    gain: GainMatrix
    desired_poles: np.ndarray
    achieved_poles: np.ndarray
    is_controllable: bool


class LuenbergerObserverResult(TypedDict):
    """
    Luenberger observer design result.

    Observer dynamics: x̂˙ = A x̂ + B u + L (y - C x̂)
    Error dynamics:    e˙ = (A - LC) e

    Fields
    ------
    gain : GainMatrix
        Observer gain L, shape (n, 1)
    desired_poles : np.ndarray
        Requested observer eigenvalues
    achieved_poles : np.ndarray
        Eigenvalues of (A - LC)
    is_observable : bool
        Always True for a returned result (unobservable systems raise)
    """

    gain: GainMatrix
    desired_poles: np.ndarray
    achieved_poles: np.ndarray
    is_observable: bool


# ============================================================================
# Discretization Types
# ============================================================================


class DiscretizationResult(TypedDict):
    """
    Matrix discretization result x[k+1] = A_d x[k] + B_d u[k].

    Fields
    ------
    Ad : StateMatrix
        Discrete state matrix
    Bd : InputMatrix
        Discrete input matrix
    dt : float
        Sampling period
    method : str
        Discretization method ('zoh', 'tustin')
    formula : str
        'closed_form' when A⁻¹(e^{AT} - I)B was used, 'integral' when the
        block matrix exponential was needed (singular A), 'bilinear' for
        Tustin
    """

    Ad: StateMatrix
    Bd: InputMatrix
    dt: float
    method: str
    formula: str


# ============================================================================
# Root Locus Types
# ============================================================================


class RootLocusResult(TypedDict):
    """
    Root locus trace.

    Fields
    ------
    gains : GainArray
        Swept gains K, shape (n_gain,)
    roots : np.ndarray
        Closed-loop poles, shape (n_gain, n); column j follows one branch.
        Entries are NaN where the characteristic degree drops.
    open_loop_poles : np.ndarray
        Roots of D(s) (equal to roots[0] when gains[0] == 0)
    open_loop_zeros : np.ndarray
        Roots of N(s)
    """

    gains: GainArray
    roots: np.ndarray
    open_loop_poles: np.ndarray
    open_loop_zeros: np.ndarray


class AsymptoteInfo(TypedDict):
    """
    Root locus asymptotes.

    s_a = (Σ poles - Σ zeros) / (n - m),  φ_i = (2i+1)·180° / (n - m)

    Fields
    ------
    center : Optional[float]
        Asymptote centroid s_a (None when n == m)
    angles_deg : np.ndarray
        Asymptote angles in degrees, i = 0..n-m-1
    count : int
        Number of asymptotes n - m
    """

    center: Optional[float]
    angles_deg: np.ndarray
    count: int


class BreakawayPoint(TypedDict):
    """
    Branch (bifurcation) point of the root locus on the real axis.

    Fields
    ------
    point : float
        Location s on the real axis
    gain : float
        Gain K(s) = -D(s)/N(s) at which the branches meet (>= 0)
    """

    point: float
    gain: float


class AxisCrossing(TypedDict):
    """
    Intersection of a root locus branch with the imaginary axis.

    Fields
    ------
    frequency : float
        ω >= 0 of the crossing s = jω
    gain : float
        Critical gain K at the crossing
    """

    frequency: float
    gain: float


# ============================================================================
# Frequency Response Types
# ============================================================================


class BodeResult(TypedDict):
    """
    Bode diagram data.

    Fields
    ------
    omega : FrequencyArray
        Angular frequencies [rad/s]
    response : ComplexResponse
        Complex values G(jω)
    magnitude : np.ndarray
        |G(jω)|
    magnitude_db : np.ndarray
        20 log10 |G(jω)|
    phase_deg : np.ndarray
        Unwrapped phase [deg]
    phase_rad : np.ndarray
        Unwrapped phase [rad]
    """

    omega: FrequencyArray
    response: ComplexResponse
    magnitude: np.ndarray
    magnitude_db: np.ndarray
    phase_deg: np.ndarray
    phase_rad: np.ndarray


class NyquistResult(TypedDict):
    """
    Nyquist diagram data for ω >= 0 (the ω < 0 branch is the conjugate).

    Fields
    ------
    omega : FrequencyArray
        Angular frequencies [rad/s]
    response : ComplexResponse
        Complex values G(jω)
    real : np.ndarray
        Re G(jω)
    imag : np.ndarray
        Im G(jω)
    """

    omega: FrequencyArray
    response: ComplexResponse
    real: np.ndarray
    imag: np.ndarray


class StabilityMargins(TypedDict):
    """
    Gain and phase margins of an open loop.

    Fields
    ------
    gain_margin : float
        Linear gain margin 1/|G(jω_pc)| (inf if the phase never crosses -180°)
    gain_margin_db : float
        -20 log10 |G(jω_pc)|
    phase_crossover_frequency : float
        ω_pc [rad/s] (NaN if none)
    phase_margin : float
        ∠G(jω_gc) + 180° [deg] (inf if |G| never crosses 1)
    gain_crossover_frequency : float
        ω_gc [rad/s] (NaN if none)
    margins_positive : bool
        True when both margins are positive (closed loop stable for
        open loops without right half-plane poles)
    """

    gain_margin: float
    gain_margin_db: float
    phase_crossover_frequency: float
    phase_margin: float
    gain_crossover_frequency: float
    margins_positive: bool


# ============================================================================
# Time Response Types
# ============================================================================


class TimeResponse(TypedDict, total=False):
    """
    Time response of a system.

    Fields
    ------
    time : TimeArray
        Time samples [s] (sample index times dt for discrete systems)
    output : SignalArray
        Output y(t)
    states : np.ndarray
        State trajectory, shape (n_steps, n) (continuous systems only)
    input : SignalArray
        Applied input u(t)
    success : bool
        solver success flag (continuous systems)
    """

    time: TimeArray
    output: SignalArray
    states: np.ndarray
    input: SignalArray
    success: bool


# ============================================================================
# Controller Design Types
# ============================================================================


class DeadbeatResult(TypedDict):
    """
    Dead-beat controller design result.

    G_c(z) = A(z⁻¹) / (B(1) - B(z⁻¹)),  G_CL(z) = B(z⁻¹) / B(1)

    Fields
    ------
    controller : TransferFunction
        Discrete controller G_c
    open_loop : TransferFunction
        G_p · G_c
    closed_loop : TransferFunction
        Finite impulse response B(z⁻¹)/B(1)
    settling_steps : int
        Samples until the step response reaches the reference exactly
    settling_time : float
        settling_steps · dt
    """

    controller: "TransferFunction"
    open_loop: "TransferFunction"
    closed_loop: "TransferFunction"
    settling_steps: int
    settling_time: float


class FirstOrderDelayFit(TypedDict):
    """
    First-order-plus-delay approximation K e^{-T_d s} / (1 + T_g s).

    Fields
    ------
    gain : float
        Static gain K (final value / step amplitude)
    delay_time : float
        T_d: tangent intersection with the initial value
    rise_time : float
        T_g: time between the two tangent intersections
    inflection_time : float
        Time of maximum slope
    slope : float
        Maximum slope of the response
    transfer_function : TransferFunction
        The fitted model
    """

    gain: float
    delay_time: float
    rise_time: float
    inflection_time: float
    slope: float
    transfer_function: "TransferFunction"


class PIDTuningResult(TypedDict):
    """
    PID controller parameters from a tuning rule.

    G_c(s) = K_p (1 + 1/(T_n s) + T_v s) = K_p + K_i/s + K_d s

    Fields
    ------
    controller_type : ControllerType
        'P', 'PI' or 'PID'
    kp : float
        Proportional gain
    tn : Optional[float]
        Integral (reset) time T_n (None for P)
    tv : Optional[float]
        Derivative time T_v (None for P and PI)
    ki : float
        Integral gain K_p / T_n (0 if unused)
    kd : float
        Derivative gain K_p T_v (0 if unused)
    transfer_function : TransferFunction
        Controller transfer function
    """

    controller_type: ControllerType
    kp: float
    tn: Optional[float]
    tv: Optional[float]
    ki: float
    kd: float
    transfer_function: "TransferFunction"


__all__ = [
    # Stability
    "StabilityInfo",
    "RouthHurwitzResult",
    "RouthArrayResult",
    "SymbolicHurwitzResult",
    "NaslinResult",
    "ControllabilityInfo",
    "ObservabilityInfo",
    "PolePlacementResult",
    "LuenbergerObserverResult",
    # Discretization
    "DiscretizationResult",
    # Root locus
    "RootLocusResult",
    "AsymptoteInfo",
    "BreakawayPoint",
    "AxisCrossing",
    # Frequency response
    "BodeResult",
    "NyquistResult",
    "StabilityMargins",
    # Time response
    "TimeResponse",
    # Design
    "DeadbeatResult",
    "FirstOrderDelayFit",
    "PIDTuningResult",
]
