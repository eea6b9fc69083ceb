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
Digital Control

Dead-beat controller design and difference-equation simulation for
discrete transfer functions written in powers of z^-1:

    G_p(z) = B(z^-1) / A(z^-1)
           = (b0 + b1 z^-1 + ... + bn z^-n) / (1 + a1 z^-1 + ... + am z^-m)

A plant dead time z^-d appears as leading zeros of B.

Functions:
- deadbeat_controller: finite-settling controller G_c = A / (B(1) - B)
- simulate_difference_equation: run y[k] from u[k] with zero initial state

Usage
-----
>>> Gp = TransferFunction.from_z_inverse([0, 0.0241, 0.0233], [1, -1.8575, 0.9048], dt=0.5)
>>> design = deadbeat_controller(Gp)
>>> design['settling_steps']
2
>>> simulate_difference_equation(design['closed_loop'], np.ones(4))['output'].round(4)
array([0.    , 0.5084, 1.    , 1.    ])
"""

import warnings

import numpy as np
from scipy.signal import lfilter

from ctrlcourse.control.exceptions import SingularOperationError
from ctrlcourse.control.transfer_function import TransferFunction
from ctrlcourse.types.control_classical import DeadbeatResult, TimeResponse
from ctrlcourse.types.core import ArrayLike

# ============================================================================
# Dead-Beat Design
# ============================================================================


def deadbeat_controller(plant: TransferFunction) -> DeadbeatResult:
    """
    Dead-beat controller for a stable discrete plant.

    G_c(z)  = A(z^-1) / (B(1) - B(z^-1))
    G_OL(z) = B(z^-1) / (B(1) - B(z^-1))
    G_CL(z) = B(z^-1) / B(1)

    The closed loop is a finite impulse response: its step response
    reaches the reference exactly after n steps, n being the highest
    power of z^-1 in B.

    Parameters
    ----------
    plant : TransferFunction
        Discrete, proper plant

    Returns
    -------
    DeadbeatResult
        Controller, open loop, closed loop and dead-beat time

    Raises
    ------
    ValueError
        If the plant is continuous
    SingularOperationError
        If B(1) = 0 (plant without static gain)

    Warns
    -----
    UserWarning
        If the plant has poles on or outside the unit circle; the
        controller cancels them only on paper

    Examples
    --------
    >>> Gp = TransferFunction.from_z_inverse([0, 0.0241, 0.0233], [1, -1.8575, 0.9048], dt=0.5)
    >>> result = deadbeat_controller(Gp)
    >>> np.round(result['closed_loop'].to_z_inverse()[0], 4)
    array([0.    , 0.5084, 0.4916])
    >>> result['settling_time']
    1.0
    """
    if not plant.is_discrete:
        raise ValueError("Dead-beat design requires a discrete plant (dt is None)")
    if np.any(np.abs(plant.poles()) >= 1.0):
        warnings.warn(
            "Plant has poles on or outside the unit circle; the dead-beat controller "
            "cancels them only in the transfer function, not in the real loop",
            UserWarning,
        )

    b, a = plant.to_z_inverse()
    static = float(np.sum(b))
    if np.isclose(static, 0.0, rtol=0.0, atol=1e-14 * max(1.0, np.max(np.abs(b)))):
        raise SingularOperationError("B(1) = 0: plant has no static gain, dead-beat design is undefined")

    denominator = -b.copy()
    denominator[0] += static

    controller = TransferFunction.from_z_inverse(a, denominator, dt=plant.dt)
    closed_loop = TransferFunction.from_z_inverse(b / static, [1.0], dt=plant.dt)
    steps = int(np.flatnonzero(b)[-1])

    result: DeadbeatResult = {
        "controller": controller,
        "open_loop": plant * controller,
        "closed_loop": closed_loop,
        "settling_steps": steps,
        "settling_time": steps * plant.dt,
    }
    return result


# ============================================================================
# Difference Equations
# ============================================================================


def simulate_difference_equation(system: TransferFunction, u: ArrayLike) -> TimeResponse:
    """
    Run the difference equation of a discrete transfer function.

    y[k] = b0 u[k] + ... + bn u[k-n] - a1 y[k-1] - ... - am y[k-m]

    with zero initial conditions (scipy.signal.lfilter).

    Examples
    --------
    >>> G = TransferFunction.from_z_inverse([0, 0.5084, 0.4916], [1], dt=0.5)
    >>> simulate_difference_equation(G, np.ones(4))['output']
    array([0.    , 0.5084, 1.    , 1.    ])
    """
    if not system.is_discrete:
        raise ValueError("Difference equations require a discrete system (dt is None)")
    u = np.atleast_1d(np.asarray(u, dtype=float))
    if u.ndim != 1:
        raise ValueError(f"u must be one-dimensional, got shape {u.shape}")

    b, a = system.to_z_inverse()
    result: TimeResponse = {
        "time": np.arange(u.size) * system.dt,
        "output": lfilter(b, a, u),
        "input": u,
    }
    return result


__all__ = [
    "deadbeat_controller",
    "simulate_difference_equation",
]
