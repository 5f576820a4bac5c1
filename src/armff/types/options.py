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
Solver Options

Configuration for the discrete-time feedforward solver.

The discrete evaluator finds the constant voltage V that carries the arm
from velocity v0 to v1 over dt. It wraps a scalar root-find on V around
numerical integration of the arm dynamics over [0, dt].

Defaults
--------
- method="rk4", substeps=20 : classic RK4 with dt/20 steps
- max_iterations=50         : bound on root-finder iterations
- velocity_tolerance=1e-9   : |v(dt) - v1| <= tol * max(1, |v1|)
- rtol=1e-10, atol=1e-12    : only used by adaptive (SciPy) methods
"""

from dataclasses import dataclass

DEFAULT_METHOD = "rk4"
DEFAULT_SUBSTEPS = 20
DEFAULT_MAX_ITERATIONS = 50
DEFAULT_VELOCITY_TOLERANCE = 1e-9


@dataclass(frozen=True)
class SolverOptions:
    """
    Frozen options for the discrete-time voltage solver.

    Parameters
    ----------
    method : str
        Integration method. 'rk4' or 'euler' (fixed step), or any
        scipy.integrate.solve_ivp method ('RK45', 'DOP853', 'LSODA', ...).
    substeps : int
        Number of fixed steps per dt for fixed-step methods.
    max_iterations : int
        Maximum root-finder iterations.
    velocity_tolerance : float
        Relative tolerance on the final velocity error.
    rtol, atol : float
        Tolerances forwarded to adaptive integrators.

    Raises
    ------
    ValueError
        If any count or tolerance is not positive.

    Examples
    --------
    >>> SolverOptions()
    SolverOptions(method='rk4', substeps=20, max_iterations=50, velocity_tolerance=1e-09, rtol=1e-10, atol=1e-12)
    >>> SolverOptions(method="DOP853", rtol=1e-12).method
    'DOP853'
    """

    method: str = DEFAULT_METHOD
    substeps: int = DEFAULT_SUBSTEPS
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    velocity_tolerance: float = DEFAULT_VELOCITY_TOLERANCE
    rtol: float = 1e-10
    atol: float = 1e-12

    def __post_init__(self):
        if not isinstance(self.method, str) or not self.method:
            raise ValueError(f"method must be a non-empty string, got {self.method!r}")
        if int(self.substeps) != self.substeps or self.substeps < 1:
            raise ValueError(f"substeps must be a positive integer, got {self.substeps}")
        if int(self.max_iterations) != self.max_iterations or self.max_iterations < 1:
            raise ValueError(
                f"max_iterations must be a positive integer, got {self.max_iterations}"
            )
        for name in ("velocity_tolerance", "rtol", "atol"):
            value = getattr(self, name)
            if not value > 0:
                raise ValueError(f"{name} must be positive, got {value}")


__all__ = [
    "SolverOptions",
    "DEFAULT_METHOD",
    "DEFAULT_SUBSTEPS",
    "DEFAULT_MAX_ITERATIONS",
    "DEFAULT_VELOCITY_TOLERANCE",
]
