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
Controller Tuning

PID controllers and the Ziegler-Nichols tuning rules.

Controller parametrizations:
    G_c(s) = K_p (1 + 1/(T_n s) + T_v s) = K_p + K_i/s + K_d s
    K_i = K_p / T_n,  K_d = K_p T_v

Step-response rules (plant approximated by K e^{-T_d s} / (1 + T_g s)):

    | type | K_p                | T_n     | T_v     |
    |------|--------------------|---------|---------|
    | P    | T_g / (K T_d)      |         |         |
    | PI   | 0.9 T_g / (K T_d)  | 3.3 T_d |         |
    | PID  | 1.2 T_g / (K T_d)  | 2 T_d   | 0.5 T_d |

Ultimate-gain rules (critical gain K_u, oscillation period T_u):

    | type | K_p      | T_n      | T_v       |
    |------|----------|----------|-----------|
    | P    | 0.5 K_u  |          |           |
    | PI   | 0.45 K_u | T_u/1.2  |           |
    | PID  | 0.6 K_u  | 0.5 T_u  | 0.125 T_u |

The step-response rules need T_d and T_g, traditionally read off a
tangent drawn by hand through the inflection point of the step response.
fit_tangent_approximation automates this by taking the tangent at the
sample of maximum slope; results differ slightly from a hand-drawn
tangent.

Usage
-----
>>> G = TransferFunction([0.125], [1, 1.5, 0.75, 0.125])    # 1/(2s + 1)^3
>>> step = step_response(G, config={'t_final': 40.0, 'num_points': 4001})
>>> fit = fit_tangent_approximation(step['time'], step['output'])
>>> round(fit['delay_time'], 2), round(fit['rise_time'], 2)
(1.61, 7.39)
>>> ziegler_nichols_step(fit['gain'], fit['delay_time'], fit['rise_time'], 'PI')['kp']
4.12...
"""

from typing import Optional, Tuple

import numpy as np

from ctrlcourse.control.polynomial import trim_leading_zeros
from ctrlcourse.control.root_locus import imaginary_axis_crossings
from ctrlcourse.control.transfer_function import TransferFunction
from ctrlcourse.types.control_classical import FirstOrderDelayFit, PIDTuningResult
from ctrlcourse.types.core import ArrayLike
from ctrlcourse.types.options import validate_controller_type

# Step-response table: (K_p factor, T_n / T_d, T_v / T_d)
_STEP_RULES = {
    "P": (1.0, None, None),
    "PI": (0.9, 3.3, None),
    "PID": (1.2, 2.0, 0.5),
}

# Ultimate-gain table: (K_p / K_u, T_n / T_u, T_v / T_u)
_ULTIMATE_RULES = {
    "P": (0.5, None, None),
    "PI": (0.45, 1.0 / 1.2, None),
    "PID": (0.6, 0.5, 0.125),
}


# ============================================================================
# PID Controllers
# ============================================================================


def pid_controller(kp: float, ki: float = 0.0, kd: float = 0.0) -> TransferFunction:
    """
    Ideal PID controller K_p + K_i/s + K_d s.

    Returns (K_d s² + K_p s + K_i)/s, or the polynomial K_d s + K_p when
    there is no integral action.

    Examples
    --------
    >>> pid_controller(4.5, 0.9)
    TransferFunction(num=[4.5, 0.9], den=[1.0, 0.0])
    """
    if ki == 0.0:
        return TransferFunction(trim_leading_zeros([kd, kp]), [1.0])
    return TransferFunction(trim_leading_zeros([kd, kp, ki]), [1.0, 0.0])


def _tuning_result(controller: str, kp: float, tn: Optional[float], tv: Optional[float]) -> PIDTuningResult:
    ki = kp / tn if tn else 0.0
    kd = kp * tv if tv else 0.0

    result: PIDTuningResult = {
        "controller_type": controller,
        "kp": float(kp),
        "tn": None if tn is None else float(tn),
        "tv": None if tv is None else float(tv),
        "ki": float(ki),
        "kd": float(kd),
        "transfer_function": pid_controller(kp, ki, kd),
    }
    return result


# ============================================================================
# Ziegler-Nichols
# ============================================================================


def ziegler_nichols_step(
    gain: float,
    delay_time: float,
    rise_time: float,
    controller: str = "PID",
) -> PIDTuningResult:
    """
    Ziegler-Nichols tuning from a step-response approximation.

    Args:
        gain: Static plant gain K
        delay_time: Delay T_d (tangent intersection with the initial value)
        rise_time: Rise time T_g (between the two tangent intersections)
        controller: 'P', 'PI' or 'PID'

    Returns:
        PIDTuningResult with K_p, T_n, T_v, K_i, K_d and the controller

    Raises:
        ValueError: If a time is not positive, the gain is zero or the
            controller type is unknown

    Example:
        >>> result = ziegler_nichols_step(1.0, 1.54, 7.7, 'PI')
        >>> round(result['kp'], 2), round(result['tn'], 3)
        (4.5, 5.082)
    """
    controller = validate_controller_type(controller)
    if delay_time <= 0 or rise_time <= 0:
        raise ValueError(
            f"delay_time and rise_time must be positive, got {delay_time} and {rise_time}",
        )
    if gain == 0:
        raise ValueError("Plant gain must be nonzero")

    factor, tn_ratio, tv_ratio = _STEP_RULES[controller]
    kp = factor * rise_time / (gain * delay_time)
    tn = None if tn_ratio is None else tn_ratio * delay_time
    tv = None if tv_ratio is None else tv_ratio * delay_time
    return _tuning_result(controller, kp, tn, tv)


def ziegler_nichols_ultimate(
    ultimate_gain: float,
    ultimate_period: float,
    controller: str = "PID",
) -> PIDTuningResult:
    """
    Ziegler-Nichols tuning from the stability limit of a P-controlled loop.

    Example:
        >>> ziegler_nichols_ultimate(1875.0, 0.649, 'P')['kp']
        937.5
    """
    controller = validate_controller_type(controller)
    if ultimate_gain <= 0 or ultimate_period <= 0:
        raise ValueError(
            f"ultimate_gain and ultimate_period must be positive, "
            f"got {ultimate_gain} and {ultimate_period}",
        )

    factor, tn_ratio, tv_ratio = _ULTIMATE_RULES[controller]
    kp = factor * ultimate_gain
    tn = None if tn_ratio is None else tn_ratio * ultimate_period
    tv = None if tv_ratio is None else tv_ratio * ultimate_period
    return _tuning_result(controller, kp, tn, tv)


def ultimate_gain_and_period(plant: TransferFunction) -> Tuple[float, float]:
    """
    Critical gain K_u and oscillation period T_u = 2π/ω of K·G in unity
    negative feedback, from the first imaginary-axis crossing of the root
    locus.

    Raises:
        ValueError: If no branch crosses the imaginary axis for K > 0

    Example:
        >>> ku, tu = ultimate_gain_and_period(TransferFunction([1], [1, 20, 93.75, 0]))
        >>> ku
        1875.0
    """
    crossings = [c for c in imaginary_axis_crossings(plant) if c["frequency"] > 0]
    if not crossings:
        raise ValueError("Closed loop never reaches the stability limit; no ultimate gain exists")
    first = crossings[0]
    return first["gain"], 2.0 * np.pi / first["frequency"]


# ============================================================================
# Tangent Fit
# ============================================================================


def fit_tangent_approximation(
    time: ArrayLike,
    output: ArrayLike,
    amplitude: float = 1.0,
) -> FirstOrderDelayFit:
    """
    Approximate a step response by K e^{-T_d s} / (1 + T_g s).

    The tangent is taken at the sample of maximum slope (the inflection
    point of an S-shaped response):
    - T_d: where the tangent meets the initial value
    - T_g: time for the tangent to rise from the initial to the final value
    - K: (final value - initial value) / amplitude

    The response must have settled at its last sample.

    Parameters
    ----------
    time : ArrayLike
        Strictly increasing sample times
    output : ArrayLike
        Step response samples
    amplitude : float
        Height of the applied step

    Returns
    -------
    FirstOrderDelayFit
        K, T_d, T_g, inflection time and slope, and the fitted model

    Raises
    ------
    ValueError
        If the arrays are mismatched, too short, or the response never
        rises (or falls) towards its final value
    """
    time = np.asarray(time, dtype=float)
    output = np.asarray(output, dtype=float)
    if time.ndim != 1 or time.shape != output.shape:
        raise ValueError(f"time and output must be 1-D of equal length, got {time.shape} and {output.shape}")
    if time.size < 3:
        raise ValueError("At least three samples are required")
    if np.any(np.diff(time) <= 0):
        raise ValueError("time must be strictly increasing")
    if amplitude == 0:
        raise ValueError("amplitude must be nonzero")

    initial = output[0]
    final = output[-1]
    change = final - initial
    if change == 0:
        raise ValueError("Response does not change; no tangent can be fitted")

    direction = np.sign(change)
    slopes = np.gradient(output, time)
    index = int(np.argmax(direction * slopes))
    slope = slopes[index]
    if direction * slope <= 0:
        raise ValueError("Response never moves towards its final value")

    inflection_time = time[index]
    delay_time = max(inflection_time - (output[index] - initial) / slope, 0.0)
    rise_time = change / slope
    gain = change / amplitude

    result: FirstOrderDelayFit = {
        "gain": float(gain),
        "delay_time": float(delay_time),
        "rise_time": float(rise_time),
        "inflection_time": float(inflection_time),
        "slope": float(slope),
        "transfer_function": TransferFunction([gain], [rise_time, 1.0], delay=delay_time),
    }
    return result


__all__ = [
    "pid_controller",
    "ziegler_nichols_step",
    "ziegler_nichols_ultimate",
    "ultimate_gain_and_period",
    "fit_tangent_approximation",
]
