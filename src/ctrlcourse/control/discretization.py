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
Discretization

Conversion of continuous-time systems to discrete time with sampling
period T.

Methods:
- 'zoh': Zero-order hold (exact for piecewise-constant inputs)
    Ad = exp(A T)
    Bd = ∫[0,T] exp(A τ) dτ B = A⁻¹ (Ad - I) B   (A invertible)
- 'tustin': Bilinear transform s = (2/T)(z - 1)/(z + 1), optionally
  prewarped so that the response at ω_p is matched exactly
- 'euler': Forward difference s = (z - 1)/T
- 'backward_euler': Backward difference s = (z - 1)/(T z)
- 'matched': Pole-zero mapping z = exp(s T) with DC gain matching

For singular A (a pole at the origin) the ZOH input matrix is taken from
the block matrix exponential

    expm([[A, B], [0, 0]] T) = [[Ad, Bd], [0, I]]

instead of inverting A.

Usage
-----
>>> ad, bd = zoh_scalar(-2.0, 1.0, 0.2)
>>> ad
0.6703200460356393
>>>
>>> G = TransferFunction([1, 1], [1, 2])
>>> Gd = c2d(G, 0.1, method='tustin')
>>> Gd.to_z_inverse()
(array([ 0.95454545, -0.86363636]), array([ 1.        , -0.81818182]))
"""

from typing import Optional, Tuple

import numpy as np
from scipy.linalg import expm

from ctrlcourse.control.polynomial import (
    poly_add,
    poly_from_roots,
    poly_mul,
    poly_power,
    poly_scale,
    real_if_close,
)
from ctrlcourse.control.state_space import StateSpaceModel, as_matrix
from ctrlcourse.control.transfer_function import TransferFunction
from ctrlcourse.types.control_classical import DiscretizationResult
from ctrlcourse.types.core import InputMatrix, ScalarLike, StateMatrix
from ctrlcourse.types.options import validate_discretization_method, validate_sampling_period

# Above this condition number A is treated as singular for the ZOH closed form
_SINGULAR_CONDITION = 1e12

# Weights α of the generalized bilinear transform: 0 forward, 1/2 Tustin, 1 backward
_GBT_ALPHA = {"euler": 0.0, "tustin": 0.5, "backward_euler": 1.0}


# ============================================================================
# Zero-Order Hold
# ============================================================================


def zoh_scalar(a: ScalarLike, b: ScalarLike, dt: ScalarLike) -> Tuple[float, float]:
    """
    Zero-order hold of the first-order system dx/dt = a x + b u.

    a_d = exp(a T)
    b_d = (b / a)(exp(a T) - 1)    (b T in the limit a → 0)

    Parameters
    ----------
    a : float
        Continuous pole
    b : float
        Input gain
    dt : float
        Sampling period T > 0

    Returns
    -------
    Tuple[float, float]
        (a_d, b_d)

    Examples
    --------
    >>> zoh_scalar(-2.0, 1.0, 0.2)
    (0.6703200460356393, 0.16483997698218035)
    >>> zoh_scalar(0.0, 3.0, 0.5)   # integrator
    (1.0, 1.5)
    """
    dt = validate_sampling_period(dt)
    a = float(a)
    b = float(b)

    a_d = float(np.exp(a * dt))
    if a == 0.0:
        b_d = b * dt
    else:
        # expm1 keeps full precision when |a T| is small
        b_d = b * float(np.expm1(a * dt)) / a
    return a_d, b_d


def zoh_matrix(A: StateMatrix, B: InputMatrix, dt: float) -> DiscretizationResult:
    """
    Zero-order hold of dx/dt = A x + B u.

    Ad = expm(A T)
    Bd = A⁻¹ (Ad - I) B                    if A is well conditioned
    Bd = upper-right block of expm(M T)    otherwise, M = [[A, B], [0, 0]]

    Returns
    -------
    DiscretizationResult
        Ad, Bd and the formula actually used ('closed_form' or 'integral')

    Examples
    --------
    >>> result = zoh_matrix([[0, 1], [0, 0]], [[0], [1]], 0.1)   # double integrator
    >>> result['Bd']
    array([[0.005],
           [0.1  ]])
    >>> result['formula']
    'integral'
    """
    dt = validate_sampling_period(dt)
    A_np = as_matrix(A, name="A")
    nx = A_np.shape[0]
    if A_np.shape != (nx, nx):
        raise ValueError(f"A must be square, got shape {A_np.shape}")
    B_np = as_matrix(np.asarray(B, dtype=float).reshape(nx, -1), name="B")
    nu = B_np.shape[1]

    Ad = expm(A_np * dt)
    if nx > 0 and np.linalg.cond(A_np) < _SINGULAR_CONDITION:
        Bd = np.linalg.solve(A_np, (Ad - np.eye(nx)) @ B_np)
        formula = "closed_form"
    else:
        M = np.zeros((nx + nu, nx + nu))
        M[:nx, :nx] = A_np
        M[:nx, nx:] = B_np
        block = expm(M * dt)
        Ad = block[:nx, :nx]
        Bd = block[:nx, nx:]
        formula = "integral"

    result: DiscretizationResult = {
        "Ad": Ad,
        "Bd": Bd,
        "dt": dt,
        "method": "zoh",
        "formula": formula,
    }
    return result


# ============================================================================
# State-Space Discretization
# ============================================================================


def discretize_state_space(
    model: StateSpaceModel,
    dt: float,
    method: str = "zoh",
) -> StateSpaceModel:
    """
    Discretize a continuous state-space model.

    'zoh' keeps C and D. The difference methods use the generalized
    bilinear transform with weight α (0 euler, 1/2 tustin, 1 backward):

        Ad = (I - α A T)⁻¹ (I + (1 - α) A T)
        Bd = (I - α A T)⁻¹ B T
        Cd = C (I - α A T)⁻¹
        Dd = D + α C Bd

    Raises
    ------
    ValueError
        If the model is already discrete or the method is 'matched'
        (defined for transfer functions only)

    Examples
    --------
    >>> sys = StateSpaceModel([[-2.0]], [[1.0]], [[1.0]])
    >>> discretize_state_space(sys, 0.2).A
    array([[0.67032005]])
    """
    if model.dt is not None:
        raise ValueError(f"Model is already discrete (dt={model.dt})")
    method = validate_discretization_method(method)
    dt = validate_sampling_period(dt)

    if method == "zoh":
        result = zoh_matrix(model.A, model.B, dt)
        return StateSpaceModel(result["Ad"], result["Bd"], model.C, model.D, dt=dt)
    if method == "matched":
        raise ValueError("Matched pole-zero discretization is defined for transfer functions only")

    alpha = _GBT_ALPHA[method]
    nx = model.n_states
    ima = np.eye(nx) - alpha * dt * model.A
    Ad = np.linalg.solve(ima, np.eye(nx) + (1.0 - alpha) * dt * model.A)
    Bd = np.linalg.solve(ima, dt * model.B)
    Cd = np.linalg.solve(ima.T, model.C.T).T
    Dd = model.D + alpha * (model.C @ Bd)
    return StateSpaceModel(Ad, Bd, Cd, Dd, dt=dt)


# ============================================================================
# Transfer Function Discretization
# ============================================================================


def _substitute_moebius(
    system: TransferFunction,
    alpha: float,
    beta: float,
    gamma: float,
    delta: float,
    dt: float,
) -> TransferFunction:
    """
    Substitute s = (α z + β)/(γ z + δ) into N(s)/D(s).

    Both polynomials are multiplied by (γ z + δ)^n with n = max(deg N, deg D):

        P(z) = Σ_k p_k (α z + β)^k (γ z + δ)^(n-k)
    """
    n = max(len(system.num), len(system.den)) - 1
    upper = np.array([alpha, beta])
    lower = np.array([gamma, delta])

    def collect(coefficients):
        total = np.zeros(1)
        degree = len(coefficients) - 1
        for index, c in enumerate(coefficients):
            k = degree - index
            term = poly_mul(poly_power(upper, k), poly_power(lower, n - k))
            total = poly_add(total, poly_scale(term, c))
        return total

    return TransferFunction._from_arithmetic(collect(system.num), collect(system.den), dt=dt).normalized()


def _matched(system: TransferFunction, dt: float, tolerance: float = 1e-9) -> TransferFunction:
    """z = exp(s T) for every finite pole and zero, then match the low-frequency gain."""
    poles = np.atleast_1d(system.poles())
    zeros = np.atleast_1d(system.zeros())

    origin_poles = np.abs(poles) <= tolerance
    origin_zeros = np.abs(zeros) <= tolerance

    # Low-frequency gain with the roots at the origin factored out
    continuous_gain = (system.num[0] / system.den[0]) * np.real(
        np.prod(-zeros[~origin_zeros]) / np.prod(-poles[~origin_poles]),
    )

    discrete_poles = np.exp(poles * dt)
    discrete_zeros = np.exp(zeros * dt)
    discrete_gain = np.real(
        np.prod(1.0 - discrete_zeros[~origin_zeros]) / np.prod(1.0 - discrete_poles[~origin_poles]),
    )
    # z - 1 ≈ s T near the origin
    gain = continuous_gain / discrete_gain * dt ** (int(origin_poles.sum()) - int(origin_zeros.sum()))

    return TransferFunction(
        real_if_close(poly_from_roots(discrete_zeros, gain=gain)),
        real_if_close(poly_from_roots(discrete_poles)),
        dt=dt,
    )


def _delay_steps(delay: float, dt: float) -> int:
    steps = delay / dt
    rounded = int(round(steps))
    if not np.isclose(steps, rounded, rtol=0.0, atol=1e-9):
        raise ValueError(
            f"Delay {delay} is not an integer multiple of the sampling period {dt}",
        )
    return rounded


def c2d(
    system: TransferFunction,
    dt: float,
    method: str = "zoh",
    prewarp_frequency: Optional[float] = None,
) -> TransferFunction:
    """
    Discretize a continuous transfer function.

    Parameters
    ----------
    system : TransferFunction
        Continuous system, optionally with a delay that is an integer
        multiple of dt (it becomes z^-d)
    dt : float
        Sampling period T
    method : str
        'zoh', 'tustin', 'euler', 'backward_euler' or 'matched'
    prewarp_frequency : Optional[float]
        Tustin only: frequency ω_p [rad/s] at which the continuous and
        discrete responses agree, s = (ω_p / tan(ω_p T / 2))(z - 1)/(z + 1)

    Returns
    -------
    TransferFunction
        Discrete system in z (highest power first, monic denominator for
        the substitution methods)

    Raises
    ------
    ValueError
        If the system is already discrete, the delay is not a multiple of
        dt, or the prewarp frequency is at or beyond Nyquist

    Examples
    --------
    >>> G = TransferFunction([1], [5, 1, 1])
    >>> b, a = c2d(G, 0.5).to_z_inverse()
    >>> np.round(b, 4), np.round(a, 4)
    (array([0.    , 0.0241, 0.0233]), array([ 1.    , -1.8575,  0.9048]))
    """
    if system.is_discrete:
        raise ValueError(f"System is already discrete (dt={system.dt})")
    method = validate_discretization_method(method)
    dt = validate_sampling_period(dt)
    if prewarp_frequency is not None and method != "tustin":
        raise ValueError("prewarp_frequency is only used with method='tustin'")

    steps = _delay_steps(system.delay, dt) if system.delay else 0
    rational = TransferFunction(system.num, system.den)

    if method == "zoh":
        model = StateSpaceModel.from_transfer_function(rational)
        discrete = discretize_state_space(model, dt, method="zoh").to_transfer_function()
    elif method == "tustin":
        if prewarp_frequency is None:
            c = 2.0 / dt
        else:
            half_angle = prewarp_frequency * dt / 2.0
            if not 0.0 < half_angle < np.pi / 2.0:
                raise ValueError(
                    f"prewarp_frequency must lie in (0, π/T) = (0, {np.pi / dt}), "
                    f"got {prewarp_frequency}",
                )
            c = prewarp_frequency / np.tan(half_angle)
        discrete = _substitute_moebius(rational, c, -c, 1.0, 1.0, dt)
    elif method == "euler":
        discrete = _substitute_moebius(rational, 1.0, -1.0, 0.0, dt, dt)
    elif method == "backward_euler":
        discrete = _substitute_moebius(rational, 1.0, -1.0, dt, 0.0, dt)
    else:
        discrete = _matched(rational, dt)

    if steps:
        shift = np.zeros(steps + 1)
        shift[0] = 1.0
        discrete = TransferFunction(discrete.num, poly_mul(discrete.den, shift), dt=dt)
    return discrete


def tustin(
    system: TransferFunction,
    dt: float,
    prewarp_frequency: Optional[float] = None,
) -> TransferFunction:
    """Bilinear (Tustin) discretization. See c2d."""
    return c2d(system, dt, method="tustin", prewarp_frequency=prewarp_frequency)


__all__ = [
    "zoh_scalar",
    "zoh_matrix",
    "discretize_state_space",
    "c2d",
    "tustin",
]
