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
Symbolic Single-Jointed Arm Dynamics

A motor driving a beam that pivots against gravity, in the voltage-gain
form used for feedforward.

Physical System:
---------------
The applied voltage balances four effects:
- Static friction (ks, sign of velocity)
- Gravity torque (kg, proportional to cos(θ), θ measured from horizontal)
- Viscous/back-EMF losses (kv, proportional to angular velocity)
- Inertia (ka, proportional to angular acceleration)

    V = ks⋅sign(ω) + kg⋅cos(θ) + kv⋅ω + ka⋅α

State Space:
-----------
State: x = [θ, ω]
    - θ (theta): Arm angle from horizontal [rad]
      * θ = 0: arm parallel to the floor (maximum gravity load)
      * θ = π/2: arm pointing straight up (no gravity load)
    - ω (omega): Angular velocity [rad/s]

Control: u = [V]
    - V: Applied voltage [V], held constant over an integration step

Dynamics:
--------
Solving the voltage balance for α gives the first-order system:

    dx/dt = [ω, (V - ks⋅sign(ω) - kg⋅cos(θ) - kv⋅ω) / ka]ᵀ

The dynamics only exist for ka > 0. With ka = 0 the voltage balance is
algebraic and there is nothing to integrate.
"""

from typing import Dict, List

import numpy as np
import sympy as sp

from armff.systems.codegen_utils import generate_numpy_function
from armff.types.core import ControlVector, StateDerivative, StateVector
from armff.types.gains import FeedforwardGains


class SymbolicArmDynamics:
    """
    Single-jointed arm driven by a constant voltage.

    Callable as ``system(x, u, backend="numpy")`` returning dx/dt, which is
    the interface the integrators in ``armff.numerical_integration`` expect.

    Parameters
    ----------
    gains : FeedforwardGains
        Arm gains. ``gains.ka`` must be strictly positive.

    Raises
    ------
    ValueError
        If ka == 0 (the model has no differential part).

    Examples
    --------
    >>> gains = FeedforwardGains(ks=0.1, kg=0.5, kv=1.0, ka=0.2)
    >>> arm = SymbolicArmDynamics(gains)
    >>> dx = arm(np.array([0.0, 0.0]), np.array([0.5]))
    >>> assert np.allclose(dx, 0.0)
    """

    nx = 2
    nu = 1
    order = 1

    def __init__(self, gains: FeedforwardGains):
        if gains.ka <= 0.0:
            raise ValueError(
                f"Arm dynamics require a positive acceleration gain, got ka={gains.ka}. "
                "With ka == 0 the voltage balance is algebraic."
            )
        self.gains = gains
        self.define_system()

        # Gains stay symbolic and are passed at call time. Substituting them
        # lets SymPy distribute 1/ka, after which V - kg*cos(θ) no longer
        # cancels exactly for a held arm.
        self._param_values = tuple(self.parameters.values())
        self._f_numpy = generate_numpy_function(
            self._f_sym, self.state_vars + self.control_vars + list(self.parameters)
        )

    def define_system(self):
        theta, omega = sp.symbols("theta omega", real=True)
        alpha = sp.symbols("alpha", real=True)
        V = sp.symbols("V", real=True)
        ks, kg = sp.symbols("k_s k_g", real=True)
        kv, ka = sp.symbols("k_v k_a", real=True, nonnegative=True)

        self.parameters: Dict[sp.Symbol, float] = {
            ks: self.gains.ks,
            kg: self.gains.kg,
            kv: self.gains.kv,
            ka: self.gains.ka,
        }
        self.state_vars: List[sp.Symbol] = [theta, omega]
        self.control_vars: List[sp.Symbol] = [V]
        self.acceleration_var = alpha

        self._voltage_sym = ks * sp.sign(omega) + kg * sp.cos(theta) + kv * omega + ka * alpha
        theta_ddot = (V - ks * sp.sign(omega) - kg * sp.cos(theta) - kv * omega) / ka
        self._f_sym = sp.Matrix([omega, theta_ddot])

    @property
    def f_sym(self) -> sp.Matrix:
        """Symbolic right-hand side dx/dt with gains left as symbols."""
        return self._f_sym

    @property
    def voltage_sym(self) -> sp.Expr:
        """Symbolic feedforward voltage V(θ, ω, α) with gains left as symbols."""
        return self._voltage_sym

    def __call__(
        self, x: StateVector, u: ControlVector, backend: str = "numpy"
    ) -> StateDerivative:
        """
        Evaluate dx/dt at state x under voltage u.

        Parameters
        ----------
        x : np.ndarray
            State [θ, ω], shape (2,)
        u : np.ndarray
            Voltage [V], shape (1,)
        backend : str
            Only 'numpy' is supported

        Returns
        -------
        np.ndarray
            [ω, α], shape (2,)
        """
        if backend != "numpy":
            raise ValueError(f"Invalid backend '{backend}'. Must be one of ['numpy']")

        x = np.asarray(x, dtype=np.float64)
        u = np.atleast_1d(np.asarray(u, dtype=np.float64))
        return self._f_numpy(x[0], x[1], u[0], *self._param_values)

    def print_equations(self):
        """Print the symbolic voltage balance and state equations."""
        print("=" * 70)
        print(f"{self.__class__.__name__}")
        print("=" * 70)
        print(f"State Variables: {self.state_vars}")
        print(f"Control Variables: {self.control_vars}")
        print(f"Parameters: { {str(k): v for k, v in self.parameters.items()} }")
        print("\nVoltage balance:")
        print(f"  V = {self._voltage_sym}")
        print("\nDynamics: dx/dt = f(x, u)")
        for var, expr in zip(self.state_vars, self._f_sym):
            print(f"  d{var}/dt = {expr}")
        print("=" * 70)


__all__ = ["SymbolicArmDynamics"]
