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
Core Types

Scalar and state aliases shared across the arm feedforward package.

The arm is modeled as a first-order state-space system:

    x = [θ, ω]    angle from horizontal [rad], angular velocity [rad/s]
    u = [V]       applied voltage [V]

Usage
-----
>>> from armff.types.core import ScalarLike, StateVector
>>> dt: ScalarLike = 0.02
>>> x0: StateVector = np.array([0.0, 1.5])
"""

from typing import Tuple, Union

import numpy as np
from numpy.typing import NDArray

ScalarLike = Union[float, int, np.number]
"""
Scalar value accepted by every evaluation method.

Python floats/ints and NumPy scalars are all valid. Results are always
returned as Python floats.
"""

ArrayLike = NDArray[np.float64]
"""NumPy array of float64 values."""

StateVector = ArrayLike
"""
Arm state x = [θ, ω] with shape (2,).

Examples
--------
>>> x: StateVector = np.array([np.pi / 4, 0.0])  # 45°, at rest
"""

ControlVector = ArrayLike
"""
Control input u = [V] with shape (1,).

Examples
--------
>>> u: ControlVector = np.array([12.0])
"""

StateDerivative = ArrayLike
"""Time derivative dx/dt = [ω, α] with shape (2,)."""

TimeSpan = Tuple[float, float]
"""Integration interval (t_start, t_end) in seconds."""

TimePoints = ArrayLike
"""Time grid (T,) in seconds."""

StateTrajectory = ArrayLike
"""State trajectory (T, nx), time-major."""


__all__ = [
    "ScalarLike",
    "ArrayLike",
    "StateVector",
    "ControlVector",
    "StateDerivative",
    "TimeSpan",
    "TimePoints",
    "StateTrajectory",
]
