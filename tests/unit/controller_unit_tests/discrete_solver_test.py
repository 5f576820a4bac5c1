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
Unit Tests for the Discrete-Time Voltage Solver

Tests cover:
1. Agreement with the closed-form solution when gravity is absent
2. Re-integration of the returned voltage with a high-accuracy solver
3. Convergence to the continuous feedforward as dt → 0
4. Gravity accounted for across the whole interval
5. Integration method selection
6. Diagnostics, non-convergence warning and non-finite inputs
7. Concurrent use
"""

import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from armff import ArmFeedforward, FeedforwardGains, SolverOptions
from armff.controller.discrete_solver import (
    DiscreteVoltageSolver,
    _ResidualTracker,
    validate_dt,
)
from armff.numerical_integration import ScipyIntegrator
from armff.systems import SymbolicArmDynamics


def closed_form_voltage(ks, kv, ka, v0, v1, dt):
    """Exact voltage for ka dv/dt = V - ks - kv v with v > 0 throughout."""
    decay = math.exp(-kv * dt / ka)
    return ks + kv * (v1 - v0 * decay) / (1.0 - decay)


def reintegrate(gains, angle, v0, voltage, dt):
    """Final state under constant voltage using a tight DOP853 solve."""
    arm = SymbolicArmDynamics(gains)
    integrator = ScipyIntegrator(arm, method="DOP853", rtol=1e-12, atol=1e-12)
    u = np.array([voltage])
    result = integrator.integrate(np.array([angle, v0]), lambda t, x: u, (0.0, dt))
    assert result["success"]
    return result["x"][-1]


@pytest.fixture
def arm_ff():
    return ArmFeedforward(ks=0.4, kg=1.5, kv=1.2, ka=0.12)


# ============================================================================
# Test Class 1: Closed-Form Agreement
# ============================================================================


class TestClosedForm:
    """Without gravity the transition has an exact exponential solution"""

    @pytest.mark.parametrize(
        "ks, kv, ka, v0, v1, dt",
        [
            (0.0, 1.0, 0.1, 1.0, 1.5, 0.02),
            (0.3, 2.0, 0.05, 2.0, 1.0, 0.01),
            (0.1, 0.5, 0.4, 0.5, 3.0, 0.05),
        ],
    )
    def test_matches_exponential_solution(self, ks, kv, ka, v0, v1, dt):
        ff = ArmFeedforward(ks=ks, kg=0.0, kv=kv, ka=ka)
        expected = closed_form_voltage(ks, kv, ka, v0, v1, dt)
        assert ff.calculate_discrete(0.7, v0, v1, dt) == pytest.approx(expected, rel=1e-6)

    def test_zero_kv_is_constant_acceleration(self):
        ff = ArmFeedforward(ks=0.2, kg=0.0, kv=0.0, ka=0.5)
        # ka dv/dt = V - ks → V = ks + ka (v1 - v0) / dt
        assert ff.calculate_discrete(0.0, 1.0, 2.0, 0.02) == pytest.approx(0.2 + 0.5 * 50.0)

    def test_gravity_free_converges_quickly(self):
        ff = ArmFeedforward(ks=0.0, kg=0.0, kv=1.0, ka=0.1)
        result = ff.solve_discrete(0.0, 1.0, 1.5, 0.02)
        assert result["converged"]
        assert result["iterations"] <= 3

    @pytest.mark.parametrize("ka", [0.01, 0.002, 0.0005])
    def test_fast_velocity_time_constant(self, ka):
        # dt⋅kv/ka runs from 6 to 120, past RK4's stability limit at 20 sub-steps
        ff = ArmFeedforward(ks=0.0, kg=0.0, kv=3.0, ka=ka)
        result = ff.solve_discrete(0.0, 1.0, 2.0, 0.02)
        assert result["converged"]

        expected = closed_form_voltage(0.0, 3.0, ka, 1.0, 2.0, 0.02)
        assert result["voltage"] == pytest.approx(expected, rel=1e-6)

    def test_stiff_gains_reach_next_velocity(self):
        gains = FeedforwardGains(ks=0.2, kg=1.0, kv=3.0, ka=0.0005)
        result = DiscreteVoltageSolver(gains).solve(0.4, 1.0, 2.0, 0.02)
        assert result["converged"]

        final = reintegrate(gains, 0.4, 1.0, result["voltage"], 0.02)
        assert final[1] == pytest.approx(2.0, abs=1e-6)


# ============================================================================
# Test Class 2: Re-integration
# ============================================================================


class TestReintegration:
    """The returned voltage actually produces the commanded velocity"""

    @pytest.mark.parametrize(
        "angle, v0, v1, dt",
        [
            (0.0, 1.0, 1.4, 0.02),
            (0.9, 3.0, 2.0, 0.05),
            (-0.5, -2.0, -2.5, 0.02),
            (1.3, 0.2, 0.8, 0.1),
        ],
    )
    def test_final_velocity_reached(self, arm_ff, angle, v0, v1, dt):
        result = arm_ff.solve_discrete(angle, v0, v1, dt)
        assert result["converged"]

        final = reintegrate(arm_ff.gains, angle, v0, result["voltage"], dt)
        assert final[1] == pytest.approx(v1, abs=1e-6)
        assert final[0] == pytest.approx(result["final_angle"], abs=1e-6)

    def test_velocity_reversal(self, arm_ff):
        # RK4 drops to first order on the step where sign(ω) flips
        fine = ArmFeedforward.from_gains(arm_ff.gains, SolverOptions(substeps=200))
        result = fine.solve_discrete(0.4, 0.5, -0.5, 0.05)
        assert result["converged"]

        final = reintegrate(arm_ff.gains, 0.4, 0.5, result["voltage"], 0.05)
        assert final[1] == pytest.approx(-0.5, abs=1e-3)


# ============================================================================
# Test Class 3: Consistency with the Continuous Form
# ============================================================================


class TestContinuousLimit:
    """As dt → 0 with fixed acceleration the discrete result approaches the continuous one"""

    def test_error_shrinks_with_dt(self, arm_ff):
        angle, v0, acceleration = 0.5, 2.0, 3.0
        continuous = arm_ff.calculate(angle, v0, acceleration)

        errors = []
        for dt in [0.05, 0.005, 0.0005]:
            discrete = arm_ff.calculate_discrete(angle, v0, v0 + acceleration * dt, dt)
            errors.append(abs(discrete - continuous))

        assert errors[0] > errors[1] > errors[2]
        assert errors[-1] < 1e-2

    def test_holding_at_rest_is_pure_gravity(self, arm_ff):
        result = arm_ff.solve_discrete(0.3, 0.0, 0.0, 0.02)
        assert result["converged"]
        assert result["iterations"] == 1
        assert result["voltage"] == pytest.approx(arm_ff.kg * math.cos(0.3))

    def test_gravity_over_interval_lowers_voltage(self):
        ff = ArmFeedforward(ks=0.0, kg=2.0, kv=1.0, ka=0.1)
        # Arm sweeping up from horizontal: average gravity load is below the initial one
        continuous = ff.calculate(0.0, 5.0, 0.0)
        discrete = ff.calculate_discrete(0.0, 5.0, 5.0, 0.1)
        assert discrete < continuous - 0.02


# ============================================================================
# Test Class 4: Method Selection
# ============================================================================


class TestMethods:
    """Fixed-step and adaptive inner integrators agree"""

    @pytest.mark.parametrize("method", ["RK45", "DOP853", "LSODA"])
    def test_adaptive_methods_agree_with_rk4(self, method):
        gains = FeedforwardGains(ks=0.3, kg=1.0, kv=1.5, ka=0.2)
        reference = DiscreteVoltageSolver(gains).solve(0.6, 1.0, 1.3, 0.02)
        adaptive = DiscreteVoltageSolver(gains, SolverOptions(method=method)).solve(
            0.6, 1.0, 1.3, 0.02
        )
        assert adaptive["converged"]
        assert adaptive["voltage"] == pytest.approx(reference["voltage"], rel=1e-5)

    def test_method_name_is_normalized(self):
        solver = DiscreteVoltageSolver(
            FeedforwardGains(0.0, 1.0, 1.0, 0.1), SolverOptions(method="dop853")
        )
        assert solver.method == "DOP853"

    def test_unknown_method_rejected(self):
        with pytest.raises(ValueError, match="Unknown integration method"):
            ArmFeedforward(0.0, 1.0, 1.0, 0.1, options=SolverOptions(method="leapfrog"))

    def test_euler_is_less_accurate_than_rk4(self):
        gains = FeedforwardGains(ks=0.0, kg=0.0, kv=1.0, ka=0.1)
        expected = closed_form_voltage(0.0, 1.0, 0.1, 1.0, 1.5, 0.02)
        rk4 = DiscreteVoltageSolver(gains).solve(0.0, 1.0, 1.5, 0.02)["voltage"]
        euler = DiscreteVoltageSolver(gains, SolverOptions(method="euler")).solve(
            0.0, 1.0, 1.5, 0.02
        )["voltage"]
        assert abs(rk4 - expected) < abs(euler - expected)


# ============================================================================
# Test Class 5: Diagnostics
# ============================================================================


class TestDiagnostics:
    """Result fields, warnings and edge cases"""

    def test_result_fields(self, arm_ff):
        result = arm_ff.solve_discrete(0.2, 1.0, 1.2, 0.02)
        assert set(result) == {
            "voltage",
            "converged",
            "iterations",
            "residual",
            "final_angle",
            "final_velocity",
            "nfev",
            "method",
            "message",
        }
        assert result["method"] == "rk4"
        assert result["nfev"] == 4 * 20 * result["iterations"]
        assert abs(result["residual"]) <= 1e-9 * 1.2
        assert result["final_velocity"] == pytest.approx(1.2, abs=1e-8)

    def test_calculate_discrete_matches_solve(self, arm_ff):
        assert arm_ff.calculate_discrete(0.2, 1.0, 1.2, 0.02) == (
            arm_ff.solve_discrete(0.2, 1.0, 1.2, 0.02)["voltage"]
        )

    def test_non_convergence_warns(self):
        ff = ArmFeedforward(0.1, 2.0, 1.0, 0.1, options=SolverOptions(max_iterations=1))
        with pytest.warns(RuntimeWarning, match="did not converge"):
            result = ff.solve_discrete(0.0, 4.0, 4.5, 0.1)
        assert not result["converged"]
        assert result["iterations"] == 1
        assert np.isfinite(result["voltage"])

    def test_warning_points_at_caller(self):
        gains = FeedforwardGains(0.1, 2.0, 1.0, 0.1)
        options = SolverOptions(max_iterations=1)
        ff = ArmFeedforward.from_gains(gains, options)

        with pytest.warns(RuntimeWarning, match="did not converge") as record:
            ff.calculate_discrete(0.0, 4.0, 4.5, 0.1)
            ff.solve_discrete(0.0, 4.0, 4.5, 0.1)
            DiscreteVoltageSolver(gains, options).solve(0.0, 4.0, 4.5, 0.1)

        filenames = [w.filename for w in record if issubclass(w.category, RuntimeWarning)]
        assert filenames == [__file__] * 3

    @pytest.mark.parametrize("max_iterations", [3, 4, 5, 6, 8])
    def test_brent_refinement_stays_within_budget(self, max_iterations):
        solver = DiscreteVoltageSolver(FeedforwardGains(0.3, 2.0, 1.0, 0.1))
        dt = 0.1
        tracker = _ResidualTracker(solver.make_integrator(dt), np.array([0.0, 4.0]), dt, 4.5)
        tracker(solver.initial_guess(0.0, 4.0, 4.5, dt))

        # Tolerance below round-off so Brent runs until the budget is spent
        solver._bracket_and_refine(tracker, 1e-300, max_iterations)
        assert tracker.evaluations <= max_iterations

    def test_non_finite_inputs_give_nan(self, arm_ff):
        result = arm_ff.solve_discrete(float("nan"), 1.0, 1.2, 0.02)
        assert math.isnan(result["voltage"])
        assert not result["converged"]

    @pytest.mark.parametrize("dt", [0.0, -1e-3, float("nan")])
    def test_validate_dt(self, dt):
        with pytest.raises(ValueError):
            validate_dt(dt)

    def test_solver_requires_inertia(self):
        with pytest.raises(ValueError, match="positive acceleration gain"):
            DiscreteVoltageSolver(FeedforwardGains(0.0, 1.0, 1.0, 0.0))

    def test_substep_count_follows_time_constant(self):
        slow = DiscreteVoltageSolver(FeedforwardGains(0.0, 1.5, 1.2, 0.12))
        assert slow.substep_count(0.02) == 20

        fast = DiscreteVoltageSolver(FeedforwardGains(0.0, 0.0, 3.0, 0.0005))
        assert 120 <= fast.substep_count(0.02) <= 121

        swinging = DiscreteVoltageSolver(FeedforwardGains(0.0, 400.0, 0.0, 0.01))
        assert swinging.substep_count(0.5) >= 100

    def test_initial_slope_without_kv(self):
        solver = DiscreteVoltageSolver(FeedforwardGains(0.0, 0.0, 0.0, 0.5))
        assert solver.initial_slope(0.02) == pytest.approx(0.04)


# ============================================================================
# Test Class 6: Concurrency
# ============================================================================


class TestConcurrency:
    """One model shared by many threads"""

    def test_parallel_calls_match_serial(self, arm_ff):
        inputs = [(0.1 * i, 0.5 * i, 0.5 * i + 0.1, 0.02) for i in range(-6, 7)]
        serial = [arm_ff.calculate_discrete(*args) for args in inputs]

        with ThreadPoolExecutor(max_workers=8) as pool:
            parallel = list(pool.map(lambda args: arm_ff.calculate_discrete(*args), inputs))

        assert parallel == serial
