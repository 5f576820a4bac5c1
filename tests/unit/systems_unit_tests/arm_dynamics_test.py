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
Unit tests for SymbolicArmDynamics

Tests cover:
1. Construction and symbolic structure
2. Numerical evaluation of dx/dt
3. Agreement between the symbolic voltage balance and ArmFeedforward
   (including the bound formulas, re-derived with SymPy)
"""

import numpy as np
import pytest
import sympy as sp

from armff import ArmFeedforward
from armff.systems import SymbolicArmDynamics
from armff.types import FeedforwardGains


@pytest.fixture
def gains():
    return FeedforwardGains(ks=0.3, kg=1.4, kv=1.1, ka=0.2)


@pytest.fixture
def arm(gains):
    return SymbolicArmDynamics(gains)


# ============================================================================
# Test Class 1: Construction
# ============================================================================


class TestConstruction:
    """Test model structure"""

    def test_dimensions(self, arm):
        assert arm.nx == 2
        assert arm.nu == 1
        assert arm.order == 1

    def test_symbols(self, arm):
        assert [str(s) for s in arm.state_vars] == ["theta", "omega"]
        assert [str(s) for s in arm.control_vars] == ["V"]
        assert {str(k): v for k, v in arm.parameters.items()} == {
            "k_s": 0.3,
            "k_g": 1.4,
            "k_v": 1.1,
            "k_a": 0.2,
        }

    def test_f_sym_shape(self, arm):
        assert arm.f_sym.shape == (2, 1)
        assert arm.f_sym[0] == arm.state_vars[1]

    def test_requires_inertia(self):
        with pytest.raises(ValueError, match="ka=0.0"):
            SymbolicArmDynamics(FeedforwardGains(ks=0.1, kg=0.2, kv=0.3, ka=0.0))

    def test_print_equations(self, arm, capsys):
        arm.print_equations()
        out = capsys.readouterr().out
        assert "SymbolicArmDynamics" in out
        assert "dtheta/dt = omega" in out


# ============================================================================
# Test Class 2: Evaluation
# ============================================================================


class TestEvaluation:
    """Test numerical dx/dt"""

    @pytest.mark.parametrize(
        "theta, omega, voltage",
        [(0.0, 0.0, 2.0), (0.5, 1.5, 6.0), (-1.0, -2.0, -4.0), (2.0, 0.3, 0.0)],
    )
    def test_matches_formula(self, arm, gains, theta, omega, voltage):
        dx = arm(np.array([theta, omega]), np.array([voltage]))

        alpha = (
            voltage
            - gains.ks * np.sign(omega)
            - gains.kg * np.cos(theta)
            - gains.kv * omega
        ) / gains.ka
        np.testing.assert_allclose(dx, [omega, alpha], rtol=1e-12, atol=1e-12)

    def test_scalar_control_accepted(self, arm):
        dx = arm(np.array([0.0, 1.0]), 3.0)
        assert dx.shape == (2,)

    def test_held_arm_has_zero_derivative(self, arm, gains):
        voltage = gains.kg * np.cos(0.7)
        dx = arm(np.array([0.7, 0.0]), np.array([voltage]))
        np.testing.assert_array_equal(dx, [0.0, 0.0])

    def test_invalid_backend(self, arm):
        with pytest.raises(ValueError, match="Invalid backend"):
            arm(np.zeros(2), np.zeros(1), backend="torch")


# ============================================================================
# Test Class 3: Consistency with ArmFeedforward
# ============================================================================


class TestConsistency:
    """The symbolic voltage balance is the feedforward formula"""

    def test_voltage_expression_matches_calculate(self, arm, gains):
        ff = ArmFeedforward.from_gains(gains)
        theta, omega = arm.state_vars
        alpha = arm.acceleration_var
        voltage = sp.lambdify(
            [theta, omega, alpha], arm.voltage_sym.subs(arm.parameters), "numpy"
        )

        for sample in [(0.2, 1.0, 3.0), (-0.8, -2.0, 0.5), (1.0, 0.0, -1.0)]:
            assert voltage(*sample) == pytest.approx(ff.calculate(*sample), abs=1e-12)

    def test_velocity_bounds_match_symbolic_inversion(self, arm, gains):
        ff = ArmFeedforward.from_gains(gains)
        theta, omega = arm.state_vars
        alpha = arm.acceleration_var
        V = arm.control_vars[0]

        # Positive velocity branch for the max bound, negative for the min bound
        positive = arm.voltage_sym.subs(sp.sign(omega), 1)
        negative = arm.voltage_sym.subs(sp.sign(omega), -1)
        v_max = sp.solve(sp.Eq(V, positive), omega)[0]
        v_min = sp.solve(sp.Eq(-V, negative), omega)[0]

        args = {V: 12.0, theta: 0.4, alpha: 2.5}
        args.update(arm.parameters)
        assert float(v_max.subs(args)) == pytest.approx(
            ff.max_achievable_velocity(12.0, 0.4, 2.5), rel=1e-12
        )
        assert float(v_min.subs(args)) == pytest.approx(
            ff.min_achievable_velocity(12.0, 0.4, 2.5), rel=1e-12
        )

    def test_acceleration_bound_matches_symbolic_inversion(self, arm, gains):
        ff = ArmFeedforward.from_gains(gains)
        theta, omega = arm.state_vars
        alpha = arm.acceleration_var
        V = arm.control_vars[0]

        a_max = sp.solve(sp.Eq(V, arm.voltage_sym), alpha)[0]

        for velocity in [-1.5, 0.0, 2.0]:
            args = {V: 12.0, theta: -0.3, omega: velocity}
            args.update(arm.parameters)
            assert float(a_max.subs(args)) == pytest.approx(
                ff.max_achievable_acceleration(12.0, -0.3, velocity), rel=1e-12
            )
