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
Time Responses

Step, impulse and initial-condition responses of SISO systems.

Continuous systems are simulated on their state-space realization with
scipy.integrate.solve_ivp (dense output, so a pure delay T_t is applied
by evaluating the delay-free solution at t - T_t). Discrete transfer
functions run their difference equation (simulate_difference_equation);
discrete state-space models are iterated directly.

Usage
-----
>>> G = TransferFunction([1], [1, 1])
>>> response = step_response(G, config={'t_final': 5.0, 'num_points': 6})
>>> np.round(response['output'], 4)
array([0.    , 0.6321, 0.8647, 0.9502, 0.9817, 0.9933])
"""

import warnings
from typing import Optional, Tuple, Union

import numpy as np
from scipy.integrate import solve_ivp

from ctrlcourse.control.digital_control import simulate_difference_equation
from ctrlcourse.control.state_space import StateSpaceModel
from ctrlcourse.control.transfer_function import TransferFunction
from ctrlcourse.types.control_classical import TimeResponse
from ctrlcourse.types.core import ArrayLike
from ctrlcourse.types.options import (
    DEFAULT_ATOL,
    DEFAULT_INTEGRATION_METHOD,
    DEFAULT_NUM_TIME_POINTS,
    DEFAULT_RTOL,
    TimeGridConfig,
)

System = Union[TransferFunction, StateSpaceModel]

# ============================================================================
# Helpers
# ============================================================================


def _split(system: System) -> Tuple[StateSpaceModel, float]:
    """State-space realization and delay of a system."""
    if isinstance(system, StateSpaceModel):
        return system, 0.0
    if isinstance(system, TransferFunction):
        rational = TransferFunction(system.num, system.den, dt=system.dt)
        return StateSpaceModel.from_transfer_function(rational), system.delay
    raise TypeError(f"Expected TransferFunction or StateSpaceModel, got {type(system).__name__}")


def _default_final_time(model: StateSpaceModel, delay: float) -> float:
    """About seven time constants of the slowest stable mode."""
    eigenvalues = np.linalg.eigvals(model.A) if model.n_states else np.array([])
    if model.dt is not None:
        nonzero = eigenvalues[np.abs(eigenvalues) > 0]
        decay = -np.log(np.abs(nonzero)) / model.dt
    else:
        decay = -np.real(eigenvalues)
    decay = decay[decay > 1e-9]
    if decay.size == 0:
        return 10.0 + delay
    return float(np.clip(7.0 / np.min(decay), 1.0, 1e4)) + delay


def _time_grid(
    model: StateSpaceModel,
    delay: float,
    config: Optional[TimeGridConfig],
    t: Optional[ArrayLike],
) -> np.ndarray:
    if t is not None:
        t = np.atleast_1d(np.asarray(t, dtype=float))
        if t.ndim != 1 or np.any(np.diff(t) <= 0) or t[0] < 0:
            raise ValueError("t must be a non-negative, strictly increasing 1-D sequence")
        return t

    config = config or {}
    t_final = float(config.get("t_final", _default_final_time(model, delay)))
    if t_final <= 0:
        raise ValueError(f"t_final must be positive, got {t_final}")
    if model.dt is not None:
        steps = int(np.floor(t_final / model.dt + 1e-9))
        return np.arange(steps + 1) * model.dt
    return np.linspace(0.0, t_final, int(config.get("num_points", DEFAULT_NUM_TIME_POINTS)))


def _simulate_continuous(
    model: StateSpaceModel,
    delay: float,
    t: np.ndarray,
    x0: np.ndarray,
    u: float,
    config: Optional[TimeGridConfig],
) -> TimeResponse:
    """
    Integrate dx/dt = A x + B u with constant u starting from x0 at t = T_t.

    Before the delay has elapsed the state is zero.
    """
    config = config or {}
    n = model.n_states
    shifted = t - delay
    active = shifted >= 0.0

    states = np.zeros((t.size, n))
    success = True
    if n > 0 and np.any(active):
        t_end = float(shifted[-1])

        def ode_func(_t, x):
            return model.A @ x + model.B[:, 0] * u

        sol = solve_ivp(
            fun=ode_func,
            t_span=(0.0, max(t_end, 1e-12)),
            y0=x0,
            method=config.get("method", DEFAULT_INTEGRATION_METHOD),
            dense_output=True,
            rtol=config.get("rtol", DEFAULT_RTOL),
            atol=config.get("atol", DEFAULT_ATOL),
        )
        success = bool(sol.success)
        if not success:
            warnings.warn(f"Integration failed: {sol.message}", RuntimeWarning)
        states[active] = sol.sol(shifted[active]).T

    output = states @ model.C[0] + model.D[0, 0] * u * active

    result: TimeResponse = {
        "time": t,
        "output": output,
        "states": states,
        "input": np.full(t.size, u, dtype=float),
        "success": success,
    }
    return result


def _simulate_discrete_model(model: StateSpaceModel, x0: np.ndarray, u: np.ndarray) -> TimeResponse:
    n = model.n_states
    states = np.zeros((u.size, n))
    x = x0.astype(float)
    for k in range(u.size):
        states[k] = x
        x = model.A @ x + model.B[:, 0] * u[k]
    output = states @ model.C[0] + model.D[0, 0] * u

    result: TimeResponse = {
        "time": np.arange(u.size) * model.dt,
        "output": output,
        "states": states,
        "input": u,
        "success": True,
    }
    return result


# ============================================================================
# Public API
# ============================================================================


def step_response(
    system: System,
    config: Optional[TimeGridConfig] = None,
    t: Optional[ArrayLike] = None,
    amplitude: float = 1.0,
) -> TimeResponse:
    """
    Response to a step of the given amplitude from zero initial state.

    Parameters
    ----------
    system : TransferFunction or StateSpaceModel
        Continuous or discrete system (continuous delays allowed)
    config : Optional[TimeGridConfig]
        t_final, num_points and solver options
    t : Optional[ArrayLike]
        Explicit time grid (continuous systems); overrides config
    amplitude : float
        Step height

    Returns
    -------
    TimeResponse
        time, output, input (and states / success for realizations)

    Examples
    --------
    >>> Gd = TransferFunction([0.5], [1, -0.5], dt=1.0)
    >>> step_response(Gd, config={'t_final': 3.0})['output']
    array([0.   , 0.5  , 0.75 , 0.875])
    """
    if isinstance(system, TransferFunction) and system.is_discrete:
        steps = _time_grid(_split(system)[0], 0.0, config, None)
        u = np.full(steps.size, float(amplitude))
        return simulate_difference_equation(system, u)

    model, delay = _split(system)
    t = _time_grid(model, delay, config, t if model.dt is None else None)
    if model.dt is not None:
        return _simulate_discrete_model(model, np.zeros(model.n_states), np.full(t.size, float(amplitude)))
    return _simulate_continuous(model, delay, t, np.zeros(model.n_states), float(amplitude), config)


def impulse_response(
    system: System,
    config: Optional[TimeGridConfig] = None,
    t: Optional[ArrayLike] = None,
) -> TimeResponse:
    """
    Response to a unit impulse.

    Continuous: the Dirac impulse moves the state to x(0+) = B, after which
    the free response C exp(At) B is returned. A nonzero feedthrough D would
    add D·δ(t), which cannot be sampled and is omitted with a warning.

    Discrete: response to the unit pulse δ[k].

    Examples
    --------
    >>> G = TransferFunction([1], [1, 1])
    >>> np.round(impulse_response(G, t=[0.0, 1.0])['output'], 4)
    array([1.    , 0.3679])
    """
    if isinstance(system, TransferFunction) and system.is_discrete:
        steps = _time_grid(_split(system)[0], 0.0, config, None)
        pulse = np.zeros(steps.size)
        pulse[0] = 1.0
        return simulate_difference_equation(system, pulse)

    model, delay = _split(system)
    if model.dt is not None:
        t = _time_grid(model, delay, config, None)
        pulse = np.zeros(t.size)
        pulse[0] = 1.0
        return _simulate_discrete_model(model, np.zeros(model.n_states), pulse)

    if model.D[0, 0] != 0.0:
        warnings.warn(
            f"System has direct feedthrough D = {model.D[0, 0]}; "
            f"the Dirac component D·δ(t) of the impulse response is omitted",
            UserWarning,
        )
    t = _time_grid(model, delay, config, t)
    return _simulate_continuous(model, delay, t, model.B[:, 0].copy(), 0.0, config)


def initial_response(
    system: System,
    x0: ArrayLike,
    config: Optional[TimeGridConfig] = None,
    t: Optional[ArrayLike] = None,
) -> TimeResponse:
    """
    Free response from the initial state x0 (zero input).

    For a TransferFunction, x0 refers to the companion-form states
    (see StateSpaceModel.from_transfer_function).

    Examples
    --------
    >>> sys = StateSpaceModel([[-1.0]], [[1.0]], [[1.0]])
    >>> np.round(initial_response(sys, [2.0], t=[0.0, 1.0])['output'], 4)
    array([2.    , 0.7358])
    """
    model, delay = _split(system)
    x0 = np.atleast_1d(np.asarray(x0, dtype=float))
    if x0.shape != (model.n_states,):
        raise ValueError(f"x0 must have shape ({model.n_states},), got {x0.shape}")

    t = _time_grid(model, 0.0, config, t if model.dt is None else None)
    if model.dt is not None:
        return _simulate_discrete_model(model, x0, np.zeros(t.size))
    # A delay acts on the input only; the free response is undelayed
    return _simulate_continuous(model, 0.0, t, x0, 0.0, config)


__all__ = [
    "step_response",
    "impulse_response",
    "initial_response",
]
