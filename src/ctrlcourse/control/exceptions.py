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
Exceptions raised by the control routines.

- MalformedPolynomialError: bad coefficient sequences (empty, not 1-D,
  non-finite, leading zero, wrong degree)
- SingularOperationError: division by a zero pole or determinant that has
  no exact fallback
- PoleEvaluationError: a transfer function evaluated at one of its poles

Numerical ambiguity (a Hurwitz minor within tolerance of zero) is not an
error; it is reported as a 'marginally_stable' classification.
"""


class ControlError(Exception):
    """Base class for all errors raised by ctrlcourse."""

    pass


class MalformedPolynomialError(ControlError, ValueError):
    """Raised when a coefficient sequence is empty, malformed or of the wrong degree"""

    pass


class SingularOperationError(ControlError, ArithmeticError):
    """Raised when an operation would divide by a zero pole or determinant"""

    pass


class PoleEvaluationError(SingularOperationError):
    """
    Raised when a transfer function is evaluated at a root of its denominator.

    Attributes
    ----------
    point : complex
        The offending evaluation point
    """

    def __init__(self, point, message=None):
        self.point = point
        if message is None:
            message = f"Transfer function has a pole at the evaluation point s = {point}"
        super().__init__(message)


__all__ = [
    "ControlError",
    "MalformedPolynomialError",
    "SingularOperationError",
    "PoleEvaluationError",
]
