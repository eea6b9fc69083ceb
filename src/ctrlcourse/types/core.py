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
Core Types - Fundamental Building Blocks

Defines the basic array types used throughout the library:
- Polynomial coefficient sequences
- State-space matrices (A, B, C, D)
- Frequency and gain grids
- Complex-valued responses

All types are thin aliases over NumPy arrays. Their purpose is semantic:
a function signature taking ``Coefficients`` tells the reader which
ordering convention applies without reading the docstring.

Coefficient Ordering
--------------------
- ``Coefficients``: highest power first, as in ``numpy.polyval`` and
  ``numpy.roots``. Used by TransferFunction and most routines.
- ``AscendingCoefficients``: constant term first (a0, a1, ..., am). Used
  by the Routh-Hurwitz and Naslin entry points, matching the notation of
  the Hurwitz matrix.

Usage
-----
>>> from ctrlcourse.types.core import Coefficients, StateMatrix
>>>
>>> def characteristic(A: StateMatrix) -> Coefficients:
...     return np.poly(A)
"""

from typing import Sequence, Union

import numpy as np

# ============================================================================
# Basic Array Types
# ============================================================================

ArrayLike = Union[np.ndarray, Sequence[float], Sequence[complex]]
"""
Anything NumPy can turn into an array.

Lists, tuples and arrays are accepted at every public entry point and
converted once, at the module boundary.
"""

ScalarLike = Union[float, int, np.number]
"""
Real scalar value (Python number or NumPy scalar).

Examples
--------
>>> dt: ScalarLike = 0.1
>>> gain: ScalarLike = 1875
"""

ComplexLike = Union[complex, float, int, np.number]
"""Scalar that may be complex, e.g. a point s of the complex plane."""


# ============================================================================
# Polynomial Types
# ============================================================================

Coefficients = np.ndarray
"""
Polynomial coefficients, highest power first.

Shape (n+1,) for a polynomial of degree n. The leading coefficient is
nonzero unless the polynomial is the zero polynomial ``[0.0]``.

Examples
--------
>>> # s^3 + 3 s^2 + 3 s + 1
>>> den: Coefficients = np.array([1.0, 3.0, 3.0, 1.0])
"""

AscendingCoefficients = np.ndarray
"""
Polynomial coefficients, constant term first (a0, a1, ..., am).

Examples
--------
>>> # 5 s^3 + 2 s^2 + 2 s + 3
>>> a: AscendingCoefficients = np.array([3.0, 2.0, 2.0, 5.0])
"""

Roots = np.ndarray
"""Complex roots of a polynomial (poles or zeros), shape (n,)."""


# ============================================================================
# State-Space Matrix Types
# ============================================================================

StateMatrix = np.ndarray
"""
State matrix A, shape (n, n).

Eigenvalues of A are the poles of the realized transfer function.
"""

InputMatrix = np.ndarray
"""Input matrix B, shape (n, 1) for the single-input systems handled here."""

OutputMatrix = np.ndarray
"""Output matrix C, shape (1, n)."""

FeedthroughMatrix = np.ndarray
"""Direct feed-through D, shape (1, 1)."""

GainMatrix = np.ndarray
"""
Feedback or observer gain.

- State feedback K: shape (1, n), u = -K x
- Observer gain L: shape (n, 1)
"""

ControllabilityMatrix = np.ndarray
"""Controllability matrix [B, AB, ..., A^(n-1) B], shape (n, n)."""

ObservabilityMatrix = np.ndarray
"""Observability matrix [C; CA; ...; C A^(n-1)], shape (n, n)."""


# ============================================================================
# Grid and Response Types
# ============================================================================

FrequencyArray = np.ndarray
"""Angular frequencies ω in rad/s, shape (n_freq,), strictly positive for log grids."""

GainArray = np.ndarray
"""Scalar loop gains K swept by the root locus, shape (n_gain,)."""

TimeArray = np.ndarray
"""Monotonically increasing time samples, shape (n_steps,)."""

ComplexResponse = np.ndarray
"""Complex frequency response G(jω), shape (n_freq,)."""

SignalArray = np.ndarray
"""Sampled scalar signal, shape (n_steps,)."""


__all__ = [
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
]
