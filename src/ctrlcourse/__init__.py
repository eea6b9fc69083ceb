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
ctrlcourse: classical control engineering in Python

Subpackages
-----------
- ctrlcourse.types: type aliases, option literals and result TypedDicts
- ctrlcourse.control: analysis and design routines

>>> import ctrlcourse
>>> from ctrlcourse.control import TransferFunction, routh_hurwitz
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
