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
Classical Control Analysis and Design
=====================================

Transfer-function algebra, stability criteria, state-space realizations,
discretization, root locus, frequency response, time response and
controller tuning for SISO systems.

Transfer Functions
------------------
>>> from ctrlcourse.control import TransferFunction, feedback
>>>
>>> G = TransferFunction([1], [1, 20, 93.75, 0])
>>> T = feedback(100 * G)
>>> T.poles()

Stability
---------
>>> from ctrlcourse.control import routh_hurwitz, routh_array
>>>
>>> routh_hurwitz([3, 2, 2, 5])['classification']   # ascending a0..an
'unstable'
>>> routh_array([8, 2, 1, 1])['sign_changes']
2

Discretization and Digital Control
----------------------------------
>>> from ctrlcourse.control import c2d, deadbeat_controller
>>>
>>> Gz = c2d(TransferFunction([1], [5, 1, 1]), dt=0.5, method='zoh')
>>> deadbeat_controller(Gz)['closed_loop']

Frequency Domain
----------------
>>> from ctrlcourse.control import bode, stability_margins
>>>
>>> margins = stability_margins(G)
>>> margins['phase_margin']

Authors
-------
Gil Benezer

License
-------
GNU Affero General Public License v3.0
"""

from .exceptions import (
    ControlError,
    MalformedPolynomialError,
    PoleEvaluationError,
    SingularOperationError,
)

# Transfer functions and state space
from .transfer_function import TransferFunction, feedback, parallel, series, tf
from .state_space import (
    StateSpaceModel,
    analyze_controllability,
    analyze_observability,
    design_observer_ackermann,
    place_poles_ackermann,
    ss2tf,
    tf2ss,
)

# Stability
from .stability import (
    analyze_stability,
    hurwitz_matrix,
    naslin_coefficients,
    routh_array,
    routh_hurwitz,
    routh_hurwitz_symbolic,
)

# Discretization and digital control
from .discretization import c2d, discretize_state_space, tustin, zoh_matrix, zoh_scalar
from .digital_control import deadbeat_controller, simulate_difference_equation

# Root locus
from .root_locus import (
    asymptotes,
    breakaway_points,
    gain_at_point,
    imaginary_axis_crossings,
    root_locus,
)

# Frequency and time domain
from .frequency_response import (
    bode,
    closed_loop_rhp_poles,
    frequency_grid,
    frequency_response,
    nyquist,
    nyquist_encirclements,
    stability_margins,
)
from .time_response import impulse_response, initial_response, step_response

# Tuning
from .tuning import (
    fit_tangent_approximation,
    pid_controller,
    ultimate_gain_and_period,
    ziegler_nichols_step,
    ziegler_nichols_ultimate,
)

# Export public API
__all__ = [
    # Errors
    "ControlError",
    "MalformedPolynomialError",
    "SingularOperationError",
    "PoleEvaluationError",
    # Classes
    "TransferFunction",
    "StateSpaceModel",
    # Transfer function algebra
    "tf",
    "series",
    "parallel",
    "feedback",
    # State space
    "tf2ss",
    "ss2tf",
    "analyze_controllability",
    "analyze_observability",
    "place_poles_ackermann",
    "design_observer_ackermann",
    # Stability
    "hurwitz_matrix",
    "routh_hurwitz",
    "routh_array",
    "routh_hurwitz_symbolic",
    "naslin_coefficients",
    "analyze_stability",
    # Discretization
    "zoh_scalar",
    "zoh_matrix",
    "discretize_state_space",
    "c2d",
    "tustin",
    "deadbeat_controller",
    "simulate_difference_equation",
    # Root locus
    "root_locus",
    "asymptotes",
    "breakaway_points",
    "imaginary_axis_crossings",
    "gain_at_point",
    # Frequency response
    "frequency_grid",
    "frequency_response",
    "bode",
    "nyquist",
    "stability_margins",
    "nyquist_encirclements",
    "closed_loop_rhp_poles",
    # Time response
    "step_response",
    "impulse_response",
    "initial_response",
    # Tuning
    "pid_controller",
    "ziegler_nichols_step",
    "ziegler_nichols_ultimate",
    "ultimate_gain_and_period",
    "fit_tangent_approximation",
]
