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
Numerical Integration
=====================

Integrators for the arm dynamics dx/dt = f(x, u) with the voltage u held
constant over each interval.

>>> from armff.numerical_integration import create_integrator
>>> from armff.systems import SymbolicArmDynamics
>>> from armff.types import FeedforwardGains
>>> arm = SymbolicArmDynamics(FeedforwardGains(ks=0.0, kg=0.0, kv=3.0, ka=0.5))
>>> integrator = create_integrator(arm, method="rk4", dt=0.001)

Supported Methods
-----------------
- Fixed step: 'euler', 'rk4'
- Adaptive (SciPy): 'RK45', 'RK23', 'DOP853', 'Radau', 'BDF', 'LSODA'
"""

from .fixed_step_integrators import (
    ExplicitEulerIntegrator,
    FixedStepIntegrator,
    RK4Integrator,
)
from .integrator_base import IntegratorBase, StepMode
from .integrator_factory import IntegratorFactory, IntegratorType, create_integrator
from .scipy_integrator import ScipyIntegrator

__all__ = [
    # Base classes and enums
    "IntegratorBase",
    "StepMode",
    # Factory
    "IntegratorFactory",
    "IntegratorType",
    "create_integrator",
    # Fixed-step integrators
    "FixedStepIntegrator",
    "ExplicitEulerIntegrator",
    "RK4Integrator",
    # Adaptive
    "ScipyIntegrator",
]
