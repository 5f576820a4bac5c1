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
Scipy Integrator

Adaptive integration of the arm dynamics using scipy.integrate.solve_ivp.

Supported Methods:
- RK45: Explicit Runge-Kutta 5(4) - general purpose
- RK23: Explicit Runge-Kutta 3(2) - low accuracy/fast
- DOP853: Explicit Runge-Kutta 8 - high accuracy
- Radau: Implicit Runge-Kutta (Radau IIA) - stiff systems
- BDF: Backward Differentiation Formula - very stiff systems
- LSODA: Automatic stiffness detection and switching

A small acceleration gain ka relative to kv makes the velocity mode fast
(time constant ka/kv), which is where the implicit methods pay off.
"""

import time
from typing import TYPE_CHECKING, Callable, Optional

import numpy as np
from scipy.integrate import solve_ivp

from armff.numerical_integration.integrator_base import IntegratorBase, StepMode
from armff.types.core import ControlVector, ScalarLike, StateVector, TimePoints, TimeSpan
from armff.types.results import IntegrationResult

if TYPE_CHECKING:
    from armff.systems.arm_dynamics import SymbolicArmDynamics

SCIPY_METHODS = ["RK45", "RK23", "DOP853", "Radau", "BDF", "LSODA"]


class ScipyIntegrator(IntegratorBase):
    """
    Adaptive integrator using scipy.integrate.solve_ivp.

    Examples
    --------
    >>> from armff.systems import SymbolicArmDynamics
    >>> from armff.types import FeedforwardGains
    >>> arm = SymbolicArmDynamics(FeedforwardGains(ks=0.0, kg=0.0, kv=3.0, ka=0.5))
    >>> integrator = ScipyIntegrator(arm, method='DOP853', rtol=1e-10, atol=1e-12)
    >>> result = integrator.integrate(
    ...     x0=np.array([0.0, 1.0]),
    ...     u_func=lambda t, x: np.array([6.0]),
    ...     t_span=(0.0, 0.02)
    ... )
    >>> assert result["success"]
    """

    def __init__(
        self,
        system: "SymbolicArmDynamics",
        dt: Optional[ScalarLike] = None,
        method: str = "RK45",
        backend: str = "numpy",
        **options,
    ):
        """
        Initialize scipy adaptive integrator.

        Parameters
        ----------
        system : SymbolicArmDynamics
            System to integrate
        dt : Optional[float]
            Initial time step guess, forwarded as ``first_step`` unless that
            option is given explicitly
        method : str
            Solver method: 'RK45', 'RK23', 'DOP853', 'Radau', 'BDF', 'LSODA'
        backend : str
            Must be 'numpy'
        **options : dict
            Solver options:
            - rtol: Relative tolerance (default: 1e-6)
            - atol: Absolute tolerance (default: 1e-8)
            - max_step: Maximum step size (default: inf)
            - first_step: Initial step size (default: auto)

        Raises
        ------
        ValueError
            If backend is not 'numpy' or method is unknown
        """
        if backend != "numpy":
            raise ValueError("ScipyIntegrator only supports NumPy backend.")

        super().__init__(system, dt, StepMode.ADAPTIVE, backend, **options)

        if method not in SCIPY_METHODS:
            raise ValueError(f"Invalid method '{method}'. Choose from: {SCIPY_METHODS}")

        self.method = method
        self._first_step_given = dt is not None

    def step(
        self, x: StateVector, u: ControlVector, dt: Optional[ScalarLike] = None
    ) -> StateVector:
        """
        Integrate from t=0 to t=dt with u held constant and return the final state.

        Raises
        ------
        RuntimeError
            If the solver reports failure
        """
        dt = dt if dt is not None else self.dt

        result = self.integrate(
            x0=x,
            u_func=lambda t, x_cur: u,
            t_span=(0.0, dt),
            t_eval=np.array([0.0, dt]),
        )

        if not result["success"]:
            raise RuntimeError(f"{self.name} failed over dt={dt}: {result['message']}")

        return result["x"][-1]

    def integrate(
        self,
        x0: StateVector,
        u_func: Callable[[ScalarLike, StateVector], ControlVector],
        t_span: TimeSpan,
        t_eval: Optional[TimePoints] = None,
        dense_output: bool = False,
    ) -> IntegrationResult:
        """
        Integrate using scipy.solve_ivp with adaptive stepping.

        Parameters
        ----------
        x0 : np.ndarray
            Initial state (nx,)
        u_func : Callable[[float, np.ndarray], np.ndarray]
            Control policy (t, x) → u
        t_span : Tuple[float, float]
            Integration interval (t_start, t_end)
        t_eval : Optional[np.ndarray]
            Specific times at which to store solution.
            If None, solver chooses time points automatically
        dense_output : bool
            If True, compute continuous solution (allows interpolation)

        Returns
        -------
        IntegrationResult
            TypedDict; x is time-major (T, nx). ``success`` is False when
            the solver gave up, and ``message`` says why.
        """
        start_time = time.time()
        fev_before = self._stats["total_fev"]

        def ode_func(t: float, x: np.ndarray) -> np.ndarray:
            u = u_func(t, x)
            return self._evaluate_dynamics(x, np.asarray(u))

        t0, tf = t_span
        first_step = self.options.get("first_step", None)
        if first_step is None and self._first_step_given:
            first_step = min(self.dt, tf - t0)

        sol = solve_ivp(
            fun=ode_func,
            t_span=t_span,
            y0=np.asarray(x0, dtype=np.float64),
            method=self.method,
            t_eval=t_eval,
            dense_output=dense_output,
            rtol=self.rtol,
            atol=self.atol,
            max_step=self.options.get("max_step", np.inf),
            first_step=first_step,
        )

        elapsed = time.time() - start_time
        self._stats["total_time"] += elapsed
        # solve_ivp doesn't report accepted steps; count grid intervals
        nsteps = max(len(sol.t) - 1, 0)
        self._stats["total_steps"] += nsteps

        result: IntegrationResult = {
            "t": sol.t,
            "x": sol.y.T,
            "success": bool(sol.success),
            "message": sol.message,
            "nfev": self._stats["total_fev"] - fev_before,
            "nsteps": nsteps,
            "integration_time": elapsed,
            "solver": self.name,
        }

        if dense_output and getattr(sol, "sol", None) is not None:
            result["sol"] = sol.sol

        return result

    @property
    def name(self) -> str:
        stiff_indicator = " (Stiff)" if self.method in ["Radau", "BDF"] else ""
        auto_indicator = " (Auto-Stiffness)" if self.method == "LSODA" else ""
        return f"scipy.{self.method}{stiff_indicator}{auto_indicator}"

    def __repr__(self) -> str:
        return (
            f"ScipyIntegrator(method='{self.method}', "
            f"rtol={self.rtol:.1e}, atol={self.atol:.1e})"
        )


__all__ = ["ScipyIntegrator", "SCIPY_METHODS"]
