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
Types Module - Type Definitions for ctrlcourse

Central import point for all type definitions. Organized into
domain-specific modules but re-exported here for convenience.

Usage
-----
>>> from ctrlcourse.types import (
...     Coefficients,
...     StateMatrix,
...     RouthHurwitzResult,
...     FrequencyGridConfig,
... )

Module Organization
------------------
- core: Coefficient, matrix, grid and signal aliases
- options: Option literals, configuration dicts, defaults, validators
- control_classical: TypedDict results of every analysis routine
"""

# ============================================================================
# Core Types
# ============================================================================

from .core import (
    ArrayLike,
    AscendingCoefficients,
    Coefficients,
    ComplexLike,
    ComplexResponse,
    ControllabilityMatrix,
    FeedthroughMatrix,
    FrequencyArray,
    GainArray,
    GainMatrix,
    InputMatrix,
    ObservabilityMatrix,
    OutputMatrix,
    Roots,
    ScalarLike,
    SignalArray,
    StateMatrix,
    TimeArray,
)

# ============================================================================
# Options and Configuration
# ============================================================================

from .options import (
    DEFAULT_ATOL,
    DEFAULT_INTEGRATION_METHOD,
    DEFAULT_NASLIN_BOUNDS,
    DEFAULT_NUM_FREQUENCIES,
    DEFAULT_NUM_GAINS,
    DEFAULT_NUM_TIME_POINTS,
    DEFAULT_POLE_TOLERANCE,
    DEFAULT_ROUTH_TOLERANCE,
    DEFAULT_RTOL,
    DEFAULT_TOLERANCE,
    VALID_CONTROLLER_TYPES,
    VALID_DISCRETIZATION_METHODS,
    VALID_GRID_SPACINGS,
    VALID_SYSTEM_TYPES,
    ControllerType,
    DiscretizationMethod,
    FrequencyGridConfig,
    GridSpacing,
    StabilityClass,
    SystemType,
    TimeGridConfig,
    validate_controller_type,
    validate_discretization_method,
    validate_sampling_period,
    validate_system_type,
)

# ============================================================================
# Result Types
# ============================================================================

from .control_classical import (
    AsymptoteInfo,
    AxisCrossing,
    BodeResult,
    BreakawayPoint,
    ControllabilityInfo,
    DeadbeatResult,
    DiscretizationResult,
    FirstOrderDelayFit,
    LuenbergerObserverResult,
    NaslinResult,
    NyquistResult,
    ObservabilityInfo,
    PIDTuningResult,
    PolePlacementResult,
    RootLocusResult,
    RouthArrayResult,
    RouthHurwitzResult,
    StabilityInfo,
    StabilityMargins,
    SymbolicHurwitzResult,
    TimeResponse,
)

__all__ = [
    # Core
    "ArrayLike",
    "ScalarLike",
    "ComplexLike",
    "Coefficients",
    "AscendingCoefficients",
    "Roots",
    "StateMatrix",
    "InputMatrix",
    "OutputMatrix",
    "FeedthroughMatrix",
    "GainMatrix",
    "ControllabilityMatrix",
    "ObservabilityMatrix",
    "FrequencyArray",
    "GainArray",
    "TimeArray",
    "ComplexResponse",
    "SignalArray",
    # Options
    "SystemType",
    "DiscretizationMethod",
    "ControllerType",
    "GridSpacing",
    "StabilityClass",
    "FrequencyGridConfig",
    "TimeGridConfig",
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
    "validate_system_type",
    "validate_discretization_method",
    "validate_controller_type",
    "validate_sampling_period",
    # Results
    "StabilityInfo",
    "RouthHurwitzResult",
    "RouthArrayResult",
    "SymbolicHurwitzResult",
    "NaslinResult",
    "ControllabilityInfo",
    "ObservabilityInfo",
    "PolePlacementResult",
    "LuenbergerObserverResult",
    "DiscretizationResult",
    "RootLocusResult",
    "AsymptoteInfo",
    "BreakawayPoint",
    "AxisCrossing",
    "BodeResult",
    "NyquistResult",
    "StabilityMargins",
    "TimeResponse",
    "DeadbeatResult",
    "FirstOrderDelayFit",
    "PIDTuningResult",
]
