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
Discrete-Time Voltage Solver

Finds the constant voltage V that carries the arm from velocity v0 to v1
over an interval dt while the angle evolves with the motion:

    ka⋅dω/dt = V - ks⋅sign(ω) - kg⋅cos(θ) - kv⋅ω
    dθ/dt = ω
    θ(0) = θ0, ω(0) = v0, find V such that ω(dt) = v1

The gravity term couples angle and velocity, so there is no closed form
when kg ≠ 0. The solver wraps a scalar root-find on V around numerical
integration of the dynamics over [0, dt].

Algorithm
---------
1. Seed V with the continuous feedforward at the start of the interval,
   using the average acceleration (v1 - v0)/dt.
2. Take Newton-like secant steps on r(V) = ω(dt; V) - v1. The first
   slope is the exact sensitivity of the gravity-free linear model,

       dω(dt)/dV = (1 - exp(-kv⋅dt/ka)) / kv      (dt/ka when kv = 0)

   so a gravity-free transition converges in a single correction.
3. If the secant iteration stalls, bracket the root (r is increasing in
   V) and finish with Brent's method.

The RK4 sub-step count grows with dt⋅kv/ka and dt⋅sqrt(|kg|/ka) so small
inertia gains stay inside the method's stability region.

Convergence is declared when |r(V)| <= velocity_tolerance⋅max(1, |v1|).
If the iteration bound is reached first, a RuntimeWarning is issued and
the best voltage found is returned.
"""

import math
import warnings
from typing import Optional

import numpy as np
from scipy.optimize import brentq

from armff.numerical_integration.integrator_factory import IntegratorFactory
from armff.systems.arm_dynamics import SymbolicArmDynamics
from armff.types.core import ScalarLike
from armff.types.gains import FeedforwardGains
from armff.types.options import SolverOptions
from armff.types.results import DiscreteFeedforwardResult


def validate_dt(dt: ScalarLike) -> float:
    """
    Check that the interval is a positive number.

    Raises
    ------
    ValueError
        If dt <= 0 or dt is NaN
    """
    dt = float(dt)
    if not dt > 0.0:
        raise ValueError(f"dt must be a positive number, got {dt}!")
    return dt


class _ResidualTracker:
    """
    Evaluates r(V) = ω(dt; V) - v1 and remembers the best point seen.

    Local to a single solve call.
    """

    def __init__(self, integrator, x0: np.ndarray, dt: float, next_velocity: float):
        self.integrator = integrator
        self.x0 = x0
        self.dt = dt
        self.next_velocity = next_velocity

        self.evaluations = 0
        self.nfev = 0
        self.best_voltage = np.nan
        self.best_state = np.full(2, np.nan)
        self.best_residual = np.inf

    def propagate(self, voltage: float) -> np.ndarray:
        """State [θ(dt), ω(dt)] under constant voltage."""
        u = np.array([voltage], dtype=np.float64)
        result = self.integrator.integrate(self.x0, lambda t, x: u, (0.0, self.dt))
        self.nfev += result["nfev"]
        if not result["success"]:
            raise RuntimeError(
                f"{self.integrator.name} failed at V={voltage}: {result['message']}"
            )
        return result["x"][-1]

    def __call__(self, voltage: float) -> float:
        self.evaluations += 1
        state = self.propagate(voltage)
        r = float(state[1] - self.next_velocity)
        if abs(r) < abs(self.best_residual):
            self.best_voltage = float(voltage)
            self.best_state = state
            self.best_residual = r
        return r


class DiscreteVoltageSolver:
    """
    Solve for the voltage producing a velocity transition over dt.

    The solver itself holds no per-call state: every ``solve`` creates its
    own integrator, so one instance can serve many threads.

    Parameters
    ----------
    gains : FeedforwardGains
        Arm gains; ka must be strictly positive
    options : Optional[SolverOptions]
        Integration method, step count and tolerances

    Raises
    ------
    ValueError
        If ka == 0 or the integration method is unknown

    Examples
    --------
    >>> solver = DiscreteVoltageSolver(FeedforwardGains(0.1, 0.5, 1.0, 0.1))
    >>> result = solver.solve(0.0, 1.0, 1.2, 0.02)
    >>> assert result["converged"]
    """

    def __init__(self, gains: FeedforwardGains, options: Optional[SolverOptions] = None):
        self.gains = gains
        self.options = options if options is not None else SolverOptions()
        self.method = IntegratorFactory.normalize_method(self.options.method)
        self.system = SymbolicArmDynamics(gains)

    def initial_slope(self, dt: float) -> float:
        """dω(dt)/dV of the gravity-free, friction-free model."""
        kv, ka = self.gains.kv, self.gains.ka
        if kv == 0.0:
            return dt / ka
        return float(-np.expm1(-kv * dt / ka) / kv)

    def substep_count(self, dt: float) -> int:
        """
        Number of fixed sub-steps across dt.

        At least ``options.substeps``, and enough that each sub-step spans
        no more than one velocity time constant ka/kv or one radian of the
        gravity oscillation sqrt(|kg|/ka). RK4 goes unstable once
        h⋅kv/ka passes about 2.8.
        """
        g = self.gains
        rate = g.kv / g.ka + math.sqrt(abs(g.kg) / g.ka)
        return max(int(self.options.substeps), int(math.ceil(dt * rate)))

    def make_integrator(self, dt: float):
        """Fresh integrator for one solve over [0, dt]."""
        return IntegratorFactory.create(
            self.system,
            method=self.method,
            dt=dt / self.substep_count(dt),
            rtol=self.options.rtol,
            atol=self.options.atol,
        )

    def initial_guess(
        self, current_angle: float, current_velocity: float, next_velocity: float, dt: float
    ) -> float:
        """Continuous feedforward at the start of the interval with average acceleration."""
        g = self.gains
        acceleration = (next_velocity - current_velocity) / dt
        return float(
            g.ks * np.sign(current_velocity)
            + g.kg * np.cos(current_angle)
            + g.kv * current_velocity
            + g.ka * acceleration
        )

    def solve(
        self,
        current_angle: ScalarLike,
        current_velocity: ScalarLike,
        next_velocity: ScalarLike,
        dt: ScalarLike,
        *,
        stacklevel: int = 2,
    ) -> DiscreteFeedforwardResult:
        """
        Solve for the constant voltage over [0, dt].

        Parameters
        ----------
        current_angle : float
            Angle from horizontal at the start of the interval [rad]
        current_velocity : float
            Velocity at the start of the interval [rad/s]
        next_velocity : float
            Velocity to reach at the end of the interval [rad/s]
        dt : float
            Interval length [s]
        stacklevel : int
            Passed to ``warnings.warn`` so a non-convergence warning points at
            the calling code

        Returns
        -------
        DiscreteFeedforwardResult
            Voltage plus convergence diagnostics. Non-finite inputs give a
            NaN voltage with ``converged=False``.

        Raises
        ------
        ValueError
            If dt <= 0
        RuntimeError
            If an adaptive integrator fails outright
        """
        dt = validate_dt(dt)
        current_angle = float(current_angle)
        current_velocity = float(current_velocity)
        next_velocity = float(next_velocity)

        max_iterations = int(self.options.max_iterations)
        tol = self.options.velocity_tolerance * max(1.0, abs(next_velocity))

        if not np.all(np.isfinite([current_angle, current_velocity, next_velocity, dt])):
            return self._nonfinite_result("Non-finite inputs; nothing to solve")

        integrator = self.make_integrator(dt)
        x0 = np.array([current_angle, current_velocity], dtype=np.float64)
        tracker = _ResidualTracker(integrator, x0, dt, next_velocity)

        v_prev = self.initial_guess(current_angle, current_velocity, next_velocity, dt)
        r_prev = tracker(v_prev)
        if not np.isfinite(r_prev):
            return self._nonfinite_result("Non-finite velocity after integration", tracker)
        if abs(r_prev) <= tol:
            return self._result(tracker, True, "Converged on initial guess")

        # Secant iteration seeded with the linear-model sensitivity
        slope = self.initial_slope(dt)
        while tracker.evaluations < max_iterations:
            v_next = v_prev - r_prev / slope
            r_next = tracker(v_next)
            if abs(r_next) <= tol:
                return self._result(
                    tracker, True, f"Secant iteration converged after {tracker.evaluations} evaluations"
                )
            if v_next == v_prev or not np.isfinite(r_next):
                break
            new_slope = (r_next - r_prev) / (v_next - v_prev)
            if not new_slope > 0.0:
                break
            v_prev, r_prev, slope = v_next, r_next, new_slope

        if tracker.evaluations < max_iterations:
            if self._bracket_and_refine(tracker, tol, max_iterations):
                return self._result(
                    tracker, True, f"Brent refinement converged after {tracker.evaluations} evaluations"
                )

        message = (
            f"Discrete feedforward did not converge within {max_iterations} iterations "
            f"(velocity error {tracker.best_residual:.3e} rad/s, tolerance {tol:.3e})"
        )
        warnings.warn(message, RuntimeWarning, stacklevel=stacklevel)
        return self._result(tracker, False, message)

    def _bracket_and_refine(
        self, tracker: _ResidualTracker, tol: float, max_iterations: int
    ) -> bool:
        """
        Bracket the root around the best voltage so far and refine with Brent.

        The residual is increasing in V, so the bracket grows away from the
        best point in the direction that flips the residual's sign. Stays
        within the remaining evaluation budget.
        """
        center = tracker.best_voltage
        r_center = tracker.best_residual
        step = max(abs(r_center) / self.initial_slope(tracker.dt), 1e-9)

        def budget_left() -> bool:
            return tracker.evaluations < max_iterations

        if r_center > 0.0:
            hi, lo = center, center - step
            while tracker(lo) > 0.0:
                if not budget_left():
                    return False
                step *= 2.0
                lo = center - step
        else:
            lo, hi = center, center + step
            while tracker(hi) < 0.0:
                if not budget_left():
                    return False
                step *= 2.0
                hi = center + step

        if abs(tracker.best_residual) <= tol:
            return True
        # brentq evaluates both bracket ends before iterating
        maxiter = max_iterations - tracker.evaluations - 2
        if maxiter <= 0:
            return False

        brentq(
            tracker,
            lo,
            hi,
            xtol=1e-14,
            maxiter=maxiter,
            full_output=True,
            disp=False,
        )
        return abs(tracker.best_residual) <= tol

    def _result(
        self, tracker: _ResidualTracker, converged: bool, message: str
    ) -> DiscreteFeedforwardResult:
        return {
            "voltage": tracker.best_voltage,
            "converged": converged,
            "iterations": tracker.evaluations,
            "residual": tracker.best_residual,
            "final_angle": float(tracker.best_state[0]),
            "final_velocity": float(tracker.best_state[1]),
            "nfev": tracker.nfev,
            "method": self.method,
            "message": message,
        }

    def _nonfinite_result(
        self, message: str, tracker: Optional[_ResidualTracker] = None
    ) -> DiscreteFeedforwardResult:
        return {
            "voltage": np.nan,
            "converged": False,
            "iterations": tracker.evaluations if tracker is not None else 0,
            "residual": np.nan,
            "final_angle": np.nan,
            "final_velocity": np.nan,
            "nfev": tracker.nfev if tracker is not None else 0,
            "method": self.method,
            "message": message,
        }


__all__ = ["DiscreteVoltageSolver", "validate_dt"]
