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
Integrator Base - Abstract Interface for Numerical Integration

Provides a unified interface for integrating the arm dynamics with both
fixed and adaptive time stepping.

This module defines the abstract base class that all integrators must implement,
along with the StepMode enum for specifying integration behavior.

Integrators evaluate the system through its call protocol:

    dx = system(x, u, backend="numpy")
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from armff.types.core import ControlVector, ScalarLike, StateVector, TimePoints, TimeSpan
from armff.types.results import IntegrationResult

if TYPE_CHECKING:
    from armff.systems.arm_dynamics import SymbolicArmDynamics


class StepMode(Enum):
    """
    Integration step mode.

    Attributes
    ----------
    FIXED : str
        Fixed time step - integrator uses constant dt
        Best for: control-loop rates, repeatable cost per solve

    ADAPTIVE : str
        Adaptive time step - integrator adjusts dt based on error estimates
        Best for: reference solutions, high accuracy requirements
    """

    FIXED = "fixed"
    ADAPTIVE = "adaptive"


class IntegratorBase(ABC):
    """
    Abstract base class for numerical integrators.

    All integrators must implement:
    - step(): Single integration step
    - integrate(): Multi-step integration over interval
    - name: Integrator name for display

    Examples
    --------
    >>> import numpy as np
    >>> from armff.numerical_integration import RK4Integrator
    >>> from armff.systems import SymbolicArmDynamics
    >>> from armff.types import FeedforwardGains
    >>> system = SymbolicArmDynamics(FeedforwardGains(ks=0.0, kg=0.0, kv=3.0, ka=0.5))
    >>> integrator = RK4Integrator(system, dt=0.001)
    >>> x_next = integrator.step(np.array([0.0, 1.0]), np.array([6.0]))
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
        step_mode: StepMode = StepMode.FIXED,
        backend: str = "numpy",
        **options,
    ):
        """
        Initialize integrator.

        Parameters
        ----------
        system : SymbolicArmDynamics
            Continuous-time system to integrate
        dt : Optional[float]
            Time step:
            - FIXED mode: Required, constant step size
            - ADAPTIVE mode: Initial guess, will be adjusted
        step_mode : StepMode
            FIXED or ADAPTIVE stepping
        backend : str
            Backend to use (only 'numpy')
        **options : dict
            Integrator-specific options:
            - rtol : float
                Relative tolerance (adaptive only, default: 1e-6)
            - atol : float
                Absolute tolerance (adaptive only, default: 1e-8)
            - max_steps : int
                Maximum number of steps (adaptive only, default: 10000)

        Raises
        ------
        ValueError
            If FIXED mode specified without dt, with a non-positive dt,
            or if backend is invalid
        """
        self.system = system
        self.dt = dt
        self.step_mode = step_mode
        self.backend = backend
        self.options = options

        if step_mode == StepMode.FIXED and dt is None:
            raise ValueError(
                "Time step dt is required for FIXED step mode. Specify dt in constructor."
            )

        if step_mode == StepMode.ADAPTIVE and dt is None:
            self.dt = 0.01

        if not self.dt > 0:
            raise ValueError(f"Time step dt must be positive, got {self.dt}")

        valid_backends = ["numpy"]
        if backend not in valid_backends:
            raise ValueError(f"Invalid backend '{backend}'. Must be one of {valid_backends}")

        self.rtol = options.get("rtol", 1e-6)
        self.atol = options.get("atol", 1e-8)
        self.max_steps = options.get("max_steps", 10000)

        self._stats = {
            "total_steps": 0,
            "total_fev": 0,
            "total_time": 0.0,
        }

    @abstractmethod
    def step(
        self, x: StateVector, u: ControlVector, dt: Optional[ScalarLike] = None
    ) -> StateVector:
        """
        Take one integration step: x(t) → x(t + dt).

        Parameters
        ----------
        x : np.ndarray
            Current state (nx,)
        u : np.ndarray
            Control input (nu,), held constant over the step
        dt : Optional[float]
            Step size (uses self.dt if None)

        Returns
        -------
        np.ndarray
            Next state x(t + dt)
        """

    @abstractmethod
    def integrate(
        self,
        x0: StateVector,
        u_func: Callable[[ScalarLike, StateVector], ControlVector],
        t_span: TimeSpan,
        t_eval: Optional[TimePoints] = None,
        dense_output: bool = False,
    ) -> IntegrationResult:
        """
        Integrate over time interval with control policy.

        Parameters
        ----------
        x0 : np.ndarray
            Initial state (nx,)
        u_func : Callable[[float, np.ndarray], np.ndarray]
            Control policy: (t, x) → u
        t_span : Tuple[float, float]
            Integration interval (t_start, t_end)
        t_eval : Optional[np.ndarray]
            Specific times at which to store solution
        dense_output : bool
            If True, return dense interpolated solution (adaptive only)

        Returns
        -------
        IntegrationResult
            TypedDict containing t, x, success, message, nfev, nsteps,
            integration_time, solver

        Raises
        ------
        RuntimeError
            If integration fails
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable integrator name, e.g. 'RK4 (Fixed Step)'."""

    # ========================================================================
    # Common Utilities (Shared by All Integrators)
    # ========================================================================

    def _evaluate_dynamics(self, x: StateVector, u: ControlVector) -> StateVector:
        """Evaluate system dynamics, counting function evaluations."""
        self._stats["total_fev"] += 1
        return self.system(x, u, backend=self.backend)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get integration statistics.

        Returns
        -------
        dict
            Statistics with keys:
            - 'total_steps': Total integration steps taken
            - 'total_fev': Total function evaluations
            - 'total_time': Total integration time
            - 'avg_fev_per_step': Average function evaluations per step
        """
        avg_fev = self._stats["total_fev"] / max(1, self._stats["total_steps"])

        return {
            **self._stats,
            "avg_fev_per_step": avg_fev,
        }

    def reset_stats(self):
        """Reset integration statistics to zero."""
        self._stats["total_steps"] = 0
        self._stats["total_fev"] = 0
        self._stats["total_time"] = 0.0

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(dt={self.dt}, mode={self.step_mode.value}, "
            f"backend={self.backend})"
        )


__all__ = ["IntegratorBase", "StepMode"]
