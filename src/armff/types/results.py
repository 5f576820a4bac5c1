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
Result Types

TypedDict results returned by integrators and by the discrete solver.

Result types are TypedDict so they stay plain dictionaries at runtime
while keeping key names checked by type checkers and IDEs.
"""

from typing import Any

from typing_extensions import TypedDict

from .core import StateTrajectory, TimePoints


class IntegrationResult(TypedDict, total=False):
    """
    Result from continuous-time integration.

    Shape Convention
    ----------------
    - t: (T,)     time points
    - x: (T, nx)  state at each time point, time-major

    Fields
    ------
    t : TimePoints
    x : StateTrajectory
    success : bool
    message : str
    nfev : int
        Function evaluations counted by the integrator
    nsteps : int
        Integration steps taken
    integration_time : float
        Wall-clock time [s]
    solver : str
        Integrator name
    sol : Any
        Dense output object (adaptive integrators only, when requested)
    """

    t: TimePoints
    x: StateTrajectory
    success: bool
    message: str
    nfev: int
    nsteps: int
    integration_time: float
    solver: str
    sol: Any


class DiscreteFeedforwardResult(TypedDict):
    """
    Result from the discrete-time feedforward solve.

    Fields
    ------
    voltage : float
        Constant voltage applied over the interval [V]
    converged : bool
        Whether the final velocity met the tolerance
    iterations : int
        Root-finder iterations (0 when no integration was needed)
    residual : float
        v(dt) - next_velocity at the returned voltage [rad/s]
    final_angle : float
        θ(dt) reached with the returned voltage [rad]
    final_velocity : float
        v(dt) reached with the returned voltage [rad/s]
    nfev : int
        Dynamics evaluations spent across all iterations
    method : str
        Integration method name ('algebraic' when ka == 0)
    message : str
        Human-readable status
    """

    voltage: float
    converged: bool
    iterations: int
    residual: float
    final_angle: float
    final_velocity: float
    nfev: int
    method: str
    message: str


__all__ = ["IntegrationResult", "DiscreteFeedforwardResult"]
