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
ArmFeedforwardSym
=================

Open-loop voltage feedforward for a single-jointed arm, with the inverse
relations that bound achievable velocity and acceleration.

>>> from armff import ArmFeedforward
>>> ff = ArmFeedforward(ks=0.2, kg=0.8, kv=1.5, ka=0.1)
>>> round(ff.calculate(0.0, 2.0, 1.0), 6)
4.1
>>> voltage = ff.calculate_discrete(0.3, 2.0, 2.02, 0.02)
>>> round(ff.max_achievable_velocity(12.0, 0.0, 1.0), 3)
7.267

Authors
-------
Gil Benezer

License
-------
GNU Affero General Public License v3.0
"""

from .controller import ArmFeedforward, DiscreteVoltageSolver
from .types import DiscreteFeedforwardResult, FeedforwardGains, SolverOptions

__version__ = "0.1.0"

__all__ = [
    "ArmFeedforward",
    "DiscreteVoltageSolver",
    "FeedforwardGains",
    "SolverOptions",
    "DiscreteFeedforwardResult",
]
