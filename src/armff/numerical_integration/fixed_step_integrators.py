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
Fixed-Step Integrators

Implements classic fixed time-step integration methods:
- Explicit Euler (1st order)
- RK4 (4th order)

The control input is held constant across each step, which matches the
zero-order-hold voltage a motor controller applies between updates.
"""

import time
from typing import TYPE_CHECKING, Callable, Optional

import numpy as np

from armff.numerical_integration.integrator_base import IntegratorBase, StepMode
from armff.types.core import ControlVector, ScalarLike, StateVector, TimePoints, TimeSpan
from armff.types.results import IntegrationResult

if TYPE_CHECKING:
    from armff.systems.arm_dynamics import SymbolicArmDynamics


class FixedStepIntegrator(IntegratorBase):
    """
    Shared multi-step driver for fixed-step methods.

    Subclasses only implement ``step`` and ``name``.
    """

    def __init__(
        self, system: "SymbolicArmDynamics", dt: ScalarLike, backend: str = "numpy", **options
    ):
        super().__init__(system, dt, StepMode.FIXED, backend, **options)

    def integrate(
        self,
        x0: StateVector,
        u_func: Callable[[ScalarLike, StateVector], ControlVector],
        t_span: TimeSpan,
        t_eval: Optional[TimePoints] = None,
        dense_output: bool = False,
    ) -> IntegrationResult:
        """
        Integrate using fixed steps.

        Parameters
        ----------
        x0 : np.ndarray
            Initial state
        u_func : Callable
            Control policy (t, x) → u
        t_span : Tuple[float, float]
            (t_start, t_end)
        t_eval : Optional[np.ndarray]
            Specific times to evaluate (if None, uses a uniform grid that
            lands exactly on t_end with steps no larger than dt)
        dense_output : bool
            Ignored for fixed-step methods

        Returns
        -------
        IntegrationResult
            TypedDict with trajectory and diagnostics
        """
        start_time = time.time()
        fev_before = self._stats["total_fev"]

        t0, tf = t_span

        if t_eval is None:
            # Guard against round-off adding a spurious extra step
            ratio = (tf - t0) / self.dt
            num_steps = max(1, int(np.ceil(ratio * (1.0 - 1e-12))))
            t_eval = np.linspace(t0, tf, num_steps + 1)

        t_points = np.asarray(t_eval, dtype=np.float64)

        x = np.asarray(x0, dtype=np.float64)
        trajectory = [x]

        for i in range(len(t_points) - 1):
            t = t_points[i]
            dt_step = float(t_points[i + 1] - t_points[i])

            u = u_func(float(t), x)
            x = self.step(x, u, dt=dt_step)
            trajectory.append(x)

        x_traj = np.stack(trajectory)

        elapsed = time.time() - start_time
        self._stats["total_time"] += elapsed

        result: IntegrationResult = {
            "t": t_points,
            "x": x_traj,
            "success": True,
            "message": f"{self.name} integration completed",
            "nfev": self._stats["total_fev"] - fev_before,
            "nsteps": len(t_points) - 1,
            "integration_time": elapsed,
            "solver": self.name,
        }

        return result


class ExplicitEulerIntegrator(FixedStepIntegrator):
    """
    Explicit Euler integrator (Forward Euler).

    First-order method: x_{k+1} = x_k + dt * f(x_k, u_k)

    Characteristics:
    - Order: 1 (error ∝ dt)
    - Function evaluations: 1 per step

    Mostly useful as a cheap reference when checking convergence of the
    higher-order methods.
    """

    def step(
        self, x: StateVector, u: ControlVector, dt: Optional[ScalarLike] = None
    ) -> StateVector:
        dt = dt if dt is not None else self.dt

        dx = self._evaluate_dynamics(x, u)
        x_next = x + dt * dx

        self._stats["total_steps"] += 1

        return x_next

    @property
    def name(self) -> str:
        return "Explicit Euler"


class RK4Integrator(FixedStepIntegrator):
    """
    Classic 4th-order Runge-Kutta integrator.

    Algorithm:
        k1 = f(x_k, u_k)
        k2 = f(x_k + 0.5*dt*k1, u_k)
        k3 = f(x_k + 0.5*dt*k2, u_k)
        k4 = f(x_k + dt*k3, u_k)
        x_{k+1} = x_k + (dt/6) * (k1 + 2*k2 + 2*k3 + k4)

    Characteristics:
    - Order: 4 (error ∝ dt⁴)
    - Function evaluations: 4 per step

    The static friction term sign(ω) is discontinuous at ω = 0, so accuracy
    drops to first order on the one step where the velocity changes sign.
    Smaller steps shrink that error like any other.

    Examples
    --------
    >>> from armff.systems import SymbolicArmDynamics
    >>> from armff.types import FeedforwardGains
    >>> arm = SymbolicArmDynamics(FeedforwardGains(ks=0.0, kg=0.0, kv=3.0, ka=0.5))
    >>> integrator = RK4Integrator(arm, dt=0.001)
    >>> x_next = integrator.step(np.array([0.0, 1.0]), np.array([6.0]))
    """

    def step(
        self, x: StateVector, u: ControlVector, dt: Optional[ScalarLike] = None
    ) -> StateVector:
        dt = dt if dt is not None else self.dt

        k1 = self._evaluate_dynamics(x, u)
        k2 = self._evaluate_dynamics(x + 0.5 * dt * k1, u)
        k3 = self._evaluate_dynamics(x + 0.5 * dt * k2, u)
        k4 = self._evaluate_dynamics(x + dt * k3, u)

        x_next = x + (dt / 6.0) * (k1 + 2 * k2 + 2 * k3 + k4)

        self._stats["total_steps"] += 1

        return x_next

    @property
    def name(self) -> str:
        return "RK4 (Fixed Step)"


__all__ = ["FixedStepIntegrator", "ExplicitEulerIntegrator", "RK4Integrator"]
