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
Integrator Factory

Creates the appropriate integrator from a method name.

Method names are case-insensitive:
- 'rk4', 'euler'                      → fixed-step integrators (dt required)
- 'RK45', 'RK23', 'DOP853', 'Radau',
  'BDF', 'LSODA'                      → ScipyIntegrator (adaptive)

Examples
--------
>>> from armff.systems import SymbolicArmDynamics
>>> from armff.types import FeedforwardGains
>>> arm = SymbolicArmDynamics(FeedforwardGains(ks=0.0, kg=0.0, kv=3.0, ka=0.5))
>>> integrator = create_integrator(arm, method="rk4", dt=0.001)
>>> integrator = create_integrator(arm, method="dop853", rtol=1e-10, atol=1e-12)
"""

from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

from armff.numerical_integration.fixed_step_integrators import (
    ExplicitEulerIntegrator,
    RK4Integrator,
)
from armff.numerical_integration.integrator_base import IntegratorBase, StepMode
from armff.numerical_integration.scipy_integrator import SCIPY_METHODS, ScipyIntegrator
from armff.types.core import ScalarLike

if TYPE_CHECKING:
    from armff.systems.arm_dynamics import SymbolicArmDynamics


class IntegratorType(Enum):
    """Integrator families available to the factory."""

    FIXED_STEP = "fixed_step"
    SCIPY = "scipy"


FIXED_STEP_METHODS = {
    "rk4": RK4Integrator,
    "euler": ExplicitEulerIntegrator,
}

_SCIPY_LOOKUP: Dict[str, str] = {m.lower(): m for m in SCIPY_METHODS}


class IntegratorFactory:
    """
    Factory for creating integrators by method name.

    Examples
    --------
    >>> from armff.systems import SymbolicArmDynamics
    >>> from armff.types import FeedforwardGains
    >>> arm = SymbolicArmDynamics(FeedforwardGains(ks=0.0, kg=0.0, kv=3.0, ka=0.5))
    >>> IntegratorFactory.create(arm, method="rk4", dt=0.001)
    RK4Integrator(dt=0.001, mode=fixed, backend=numpy)
    >>> IntegratorFactory.list_methods()["fixed_step"]
    ['euler', 'rk4']
    """

    @classmethod
    def normalize_method(cls, method: str) -> str:
        """
        Map a case-insensitive method name to its canonical spelling.

        Raises
        ------
        ValueError
            If the method is unknown
        """
        key = str(method).strip().lower()
        if key in FIXED_STEP_METHODS:
            return key
        if key in _SCIPY_LOOKUP:
            return _SCIPY_LOOKUP[key]
        raise ValueError(
            f"Unknown integration method '{method}'. "
            f"Available: {sorted(FIXED_STEP_METHODS)} + {SCIPY_METHODS}"
        )

    @classmethod
    def integrator_type(cls, method: str) -> IntegratorType:
        """Family of a method name."""
        if cls.normalize_method(method) in FIXED_STEP_METHODS:
            return IntegratorType.FIXED_STEP
        return IntegratorType.SCIPY

    @classmethod
    def step_mode(cls, method: str) -> StepMode:
        """FIXED for fixed-step methods, ADAPTIVE for scipy methods."""
        if cls.integrator_type(method) == IntegratorType.FIXED_STEP:
            return StepMode.FIXED
        return StepMode.ADAPTIVE

    @classmethod
    def create(
        cls,
        system: "SymbolicArmDynamics",
        method: str = "rk4",
        dt: Optional[ScalarLike] = None,
        **options,
    ) -> IntegratorBase:
        """
        Create an integrator.

        Parameters
        ----------
        system : SymbolicArmDynamics
            System to integrate
        method : str
            Method name (case-insensitive)
        dt : Optional[float]
            Step size; required for fixed-step methods, initial guess for
            adaptive ones
        **options
            Additional integrator options (rtol, atol, max_step, ...)

        Returns
        -------
        IntegratorBase
            Configured integrator

        Raises
        ------
        ValueError
            If the method is unknown, or a fixed-step method has no dt
        """
        canonical = cls.normalize_method(method)

        if canonical in FIXED_STEP_METHODS:
            return FIXED_STEP_METHODS[canonical](system, dt=dt, **options)

        return ScipyIntegrator(system, dt=dt, method=canonical, **options)

    @staticmethod
    def list_methods() -> Dict[str, List[str]]:
        """Available method names grouped by integrator family."""
        return {
            IntegratorType.FIXED_STEP.value: sorted(FIXED_STEP_METHODS),
            IntegratorType.SCIPY.value: list(SCIPY_METHODS),
        }


def create_integrator(
    system: "SymbolicArmDynamics",
    method: str = "rk4",
    dt: Optional[ScalarLike] = None,
    **options,
) -> IntegratorBase:
    """
    Create an integrator (alias for IntegratorFactory.create()).

    Examples
    --------
    >>> from armff.systems import SymbolicArmDynamics
    >>> from armff.types import FeedforwardGains
    >>> arm = SymbolicArmDynamics(FeedforwardGains(ks=0.0, kg=0.0, kv=3.0, ka=0.5))
    >>> integrator = create_integrator(arm, dt=0.001)
    >>> integrator = create_integrator(arm, method='LSODA')
    """
    return IntegratorFactory.create(system, method, dt, **options)


__all__ = [
    "IntegratorFactory",
    "IntegratorType",
    "FIXED_STEP_METHODS",
    "create_integrator",
]
