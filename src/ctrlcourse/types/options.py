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
Option and Configuration Types

Defines types related to:
- Time domain selection (continuous / discrete)
- Discretization methods
- Controller structures for tuning rules
- Frequency grid configuration
- Numerical tolerances and defaults

Every routine in the library receives its parameters explicitly. The
configuration dictionaries below replace the slider-bound globals a
lesson would otherwise mutate: the caller builds a dict, passes it in,
and re-invokes the (pure) function when a value changes.

Usage
-----
>>> from ctrlcourse.types.options import FrequencyGridConfig, validate_system_type
>>>
>>> grid: FrequencyGridConfig = {
...     'omega_min': 1e-2,
...     'omega_max': 1e2,
...     'num_points': 500,
...     'spacing': 'log',
... }
>>> validate_system_type('continuous')
'continuous'
"""

from typing import Literal, Tuple

from typing_extensions import TypedDict

from .core import ScalarLike

# ============================================================================
# Option Literals
# ============================================================================

SystemType = Literal["continuous", "discrete"]
"""
Time domain of a linear system.

- 'continuous': Laplace variable s, stable if Re(λ) < 0
- 'discrete': z variable, stable if |λ| < 1
"""

DiscretizationMethod = Literal["zoh", "tustin", "euler", "backward_euler", "matched"]
"""
Continuous → discrete conversion method.

- 'zoh': Zero-order hold, exact for piecewise-constant inputs
- 'tustin': Bilinear transform s = (2/T)(z-1)/(z+1)
- 'euler': Forward difference s = (z-1)/T
- 'backward_euler': Backward difference s = (z-1)/(T z)
- 'matched': Pole-zero mapping z = exp(sT) with DC gain matching
"""

ControllerType = Literal["P", "PI", "PID"]
"""Controller structure selected from a tuning table."""

GridSpacing = Literal["log", "linear"]
"""Spacing of a generated frequency grid."""

StabilityClass = Literal["stable", "marginally_stable", "unstable"]
"""
Stability classification shared by all stability tests.

- 'stable': all poles strictly inside the stability region
- 'marginally_stable': poles on the boundary (within tolerance)
- 'unstable': at least one pole outside the stability region
"""


# ============================================================================
# Configuration Dictionaries
# ============================================================================


class FrequencyGridConfig(TypedDict, total=False):
    """
    Configuration for a frequency sweep.

    Attributes
    ----------
    omega_min : float
        Lowest angular frequency [rad/s]
    omega_max : float
        Highest angular frequency [rad/s]
    num_points : int
        Number of samples
    spacing : GridSpacing
        'log' (default) or 'linear'

    Examples
    --------
    >>> config: FrequencyGridConfig = {'omega_min': 0.1, 'omega_max': 100.0}
    >>> omega = frequency_grid(config)
    """

    omega_min: float
    omega_max: float
    num_points: int
    spacing: GridSpacing


class TimeGridConfig(TypedDict, total=False):
    """
    Configuration for a time-domain simulation.

    Attributes
    ----------
    t_final : float
        Final simulation time [s]
    num_points : int
        Number of output samples (continuous systems)
    rtol : float
        Relative tolerance forwarded to scipy.integrate.solve_ivp
    atol : float
        Absolute tolerance forwarded to scipy.integrate.solve_ivp
    method : str
        solve_ivp method name ('RK45', 'LSODA', ...)

    Examples
    --------
    >>> config: TimeGridConfig = {'t_final': 20.0, 'num_points': 401}
    >>> response = step_response(G, config=config)
    """

    t_final: float
    num_points: int
    rtol: float
    atol: float
    method: str


# ============================================================================
# Constants
# ============================================================================

VALID_SYSTEM_TYPES: Tuple[str, ...] = ("continuous", "discrete")
"""Tuple of valid system_type values."""

VALID_DISCRETIZATION_METHODS: Tuple[str, ...] = (
    "zoh",
    "tustin",
    "euler",
    "backward_euler",
    "matched",
)
"""Tuple of valid discretization method names."""

VALID_CONTROLLER_TYPES: Tuple[str, ...] = ("P", "PI", "PID")
"""Tuple of valid controller structures for the tuning tables."""

VALID_GRID_SPACINGS: Tuple[str, ...] = ("log", "linear")

DEFAULT_TOLERANCE: float = 1e-10
"""
Default tolerance for eigenvalue-based marginal stability detection.

Eigenvalues with |Re(λ)| <= tolerance (continuous) or ||λ| - 1| <= tolerance
(discrete) are treated as lying on the stability boundary.
"""

DEFAULT_ROUTH_TOLERANCE: float = 1e-9
"""
Default tolerance for Routh-Hurwitz minors.

Applied to minors of the coefficient vector scaled to unit max-norm, so
the value is independent of the magnitude of the coefficients.
"""

DEFAULT_POLE_TOLERANCE: float = 1e-12
"""Relative tolerance below which |D(s)| counts as a pole at s."""

DEFAULT_NUM_FREQUENCIES: int = 1000
"""Default number of points of a generated frequency grid."""

DEFAULT_NUM_GAINS: int = 400
"""Default number of gains in a generated root-locus sweep."""

DEFAULT_NUM_TIME_POINTS: int = 501
"""Default number of samples of a continuous time response."""

DEFAULT_INTEGRATION_METHOD: str = "RK45"
"""Default solve_ivp method for time responses."""

DEFAULT_RTOL: float = 1e-8
DEFAULT_ATOL: float = 1e-10

DEFAULT_NASLIN_BOUNDS: Tuple[float, float] = (1.5, 2.5)
"""Admissible range of the Naslin coefficients."""


# ============================================================================
# Validation Utilities
# ============================================================================


def validate_system_type(system_type: str) -> SystemType:
    """
    Validate a system_type option.

    Parameters
    ----------
    system_type : str
        'continuous' or 'discrete'

    Returns
    -------
    SystemType
        The validated value

    Raises
    ------
    ValueError
        If system_type is not valid

    Examples
    --------
    >>> validate_system_type('discrete')
    'discrete'
    >>> validate_system_type('sampled')  # ValueError
    """
    if system_type not in VALID_SYSTEM_TYPES:
        raise ValueError(
            f"system_type must be 'continuous' or 'discrete', got '{system_type}'",
        )
    return system_type


def validate_discretization_method(method: str) -> DiscretizationMethod:
    """
    Validate a discretization method name.

    Raises
    ------
    ValueError
        If method is unknown

    Examples
    --------
    >>> validate_discretization_method('tustin')
    'tustin'
    >>> validate_discretization_method('exact')  # ValueError
    """
    if method not in VALID_DISCRETIZATION_METHODS:
        raise ValueError(
            f"Invalid discretization method '{method}'. "
            f"Choose from: {VALID_DISCRETIZATION_METHODS}",
        )
    return method


def validate_controller_type(controller: str) -> ControllerType:
    """
    Validate a controller structure name ('P', 'PI' or 'PID').

    The check is case-insensitive; the canonical upper-case name is returned.
    """
    normalized = controller.upper() if isinstance(controller, str) else controller
    if normalized not in VALID_CONTROLLER_TYPES:
        raise ValueError(
            f"Invalid controller type '{controller}'. " f"Choose from: {VALID_CONTROLLER_TYPES}",
        )
    return normalized


def validate_sampling_period(dt: ScalarLike) -> float:
    """
    Validate a sampling period.

    Raises
    ------
    ValueError
        If dt is not a finite positive number
    """
    dt = float(dt)
    if not dt > 0.0 or dt == float("inf"):
        raise ValueError(f"Sampling period dt must be positive and finite, got {dt}")
    return dt


__all__ = [
    # Literals
    "SystemType",
    "DiscretizationMethod",
    "ControllerType",
    "GridSpacing",
    "StabilityClass",
    # Configuration
    "FrequencyGridConfig",
    "TimeGridConfig",
    # Constants
    "VALID_SYSTEM_TYPES",
    "VALID_DISCRETIZATION_METHODS",
    "VALID_CONTROLLER_TYPES",
    "VALID_GRID_SPACINGS",
    "DEFAULT_TOLERANCE",
    "DEFAULT_ROUTH_TOLERANCE",
    "DEFAULT_POLE_TOLERANCE",
    "DEFAULT_NUM_FREQUENCIES",
    "DEFAULT_NUM_GAINS",
    "DEFAULT_NUM_TIME_POINTS",
    "DEFAULT_INTEGRATION_METHOD",
    "DEFAULT_RTOL",
    "DEFAULT_ATOL",
    "DEFAULT_NASLIN_BOUNDS",
    # Utilities
    "validate_system_type",
    "validate_discretization_method",
    "validate_controller_type",
    "validate_sampling_period",
]
