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
Arm Feedforward

Computes feedforward voltages for a simple arm: a motor acting against the
force of gravity on a beam suspended at an angle.

    V = ks⋅sign(ω) + kg⋅cos(θ) + kv⋅ω + ka⋅α

Angles are measured from the horizontal: with θ = 0 the arm is parallel
to the floor. If your encoder does not follow this convention, add the
offset before calling into this module.

Rearranging the voltage balance gives the achievable-motion bounds used to
keep velocity and acceleration constraints of a trapezoidal profile
simultaneously achievable.

Division by a zero gain in the bound formulas follows IEEE-754 (±inf or
NaN) rather than raising: a zero velocity gain places no bound on velocity.
"""

from typing import Optional

import numpy as np

from armff.controller.discrete_solver import DiscreteVoltageSolver, validate_dt
from armff.types.core import ScalarLike
from armff.types.gains import FeedforwardGains
from armff.types.options import SolverOptions
from armff.types.results import DiscreteFeedforwardResult


class ArmFeedforward:
    """
    Feedforward model for a single-jointed arm.

    Immutable once constructed; safe to share across threads.

    Parameters
    ----------
    ks : float
        Static gain [V]
    kg : float
        Gravity gain [V]
    kv : float
        Velocity gain [V/(rad/s)], must be >= 0
    ka : float, default=0.0
        Acceleration gain [V/(rad/s²)], must be >= 0
    options : Optional[SolverOptions]
        Configuration for ``calculate_discrete`` (keyword only)

    Raises
    ------
    ValueError
        For kv < 0 or ka < 0

    Examples
    --------
    >>> ff = ArmFeedforward(ks=1.0, kg=2.0, kv=3.0)
    >>> ff.calculate(0.0, 4.0)
    15.0
    >>> ff.max_achievable_velocity(12.0, 0.0, 0.0)
    3.0
    """

    __slots__ = ("_gains", "_options", "_solver")

    def __init__(
        self,
        ks: ScalarLike,
        kg: ScalarLike,
        kv: ScalarLike,
        ka: ScalarLike = 0.0,
        *,
        options: Optional[SolverOptions] = None,
    ):
        self._gains = FeedforwardGains(ks, kg, kv, ka)
        self._options = options if options is not None else SolverOptions()
        # The integration machinery only exists when there is inertia to integrate
        self._solver = (
            DiscreteVoltageSolver(self._gains, self._options) if self._gains.ka > 0.0 else None
        )

    @classmethod
    def from_gains(
        cls, gains: FeedforwardGains, options: Optional[SolverOptions] = None
    ) -> "ArmFeedforward":
        """Build a model from an existing gain record."""
        return cls(gains.ks, gains.kg, gains.kv, gains.ka, options=options)

    # ========================================================================
    # Accessors
    # ========================================================================

    @property
    def ks(self) -> float:
        """The static gain, in volts."""
        return self._gains.ks

    @property
    def kg(self) -> float:
        """The gravity gain, in volts."""
        return self._gains.kg

    @property
    def kv(self) -> float:
        """The velocity gain, in V/(rad/s)."""
        return self._gains.kv

    @property
    def ka(self) -> float:
        """The acceleration gain, in V/(rad/s²)."""
        return self._gains.ka

    @property
    def gains(self) -> FeedforwardGains:
        """All four gains as an immutable record."""
        return self._gains

    @property
    def options(self) -> SolverOptions:
        """Discrete solver configuration."""
        return self._options

    # ========================================================================
    # Feedforward
    # ========================================================================

    def calculate(
        self,
        position: ScalarLike,
        velocity: ScalarLike,
        acceleration: ScalarLike = 0.0,
    ) -> float:
        """
        Calculate the feedforward from the gains and references.

        Parameters
        ----------
        position : float
            Angle reference from horizontal [rad]
        velocity : float
            Velocity reference [rad/s]
        acceleration : float, default=0.0
            Acceleration reference [rad/s²]

        Returns
        -------
        float
            Feedforward voltage [V]. No static friction is applied when the
            velocity is exactly zero.
        """
        with np.errstate(invalid="ignore"):
            return float(
                self.ks * np.sign(velocity)
                + self.kg * np.cos(position)
                + self.kv * velocity
                + self.ka * acceleration
            )

    def calculate_discrete(
        self,
        current_angle: ScalarLike,
        current_velocity: ScalarLike,
        next_velocity: ScalarLike,
        dt: ScalarLike,
    ) -> float:
        """
        Calculate the voltage that moves the arm between two velocity references.

        The voltage is held constant over dt while the angle evolves with the
        motion, so the gravity load is accounted for over the whole interval
        rather than at its start.

        Parameters
        ----------
        current_angle : float
            Current angle from horizontal [rad]
        current_velocity : float
            Current velocity reference [rad/s]
        next_velocity : float
            Next velocity reference [rad/s]
        dt : float
            Time between velocity references [s]

        Returns
        -------
        float
            Feedforward voltage [V]

        Raises
        ------
        ValueError
            If dt <= 0
        """
        return self._solve_discrete(current_angle, current_velocity, next_velocity, dt)["voltage"]

    def solve_discrete(
        self,
        current_angle: ScalarLike,
        current_velocity: ScalarLike,
        next_velocity: ScalarLike,
        dt: ScalarLike,
    ) -> DiscreteFeedforwardResult:
        """
        Same as ``calculate_discrete`` but returns solver diagnostics.

        With ka == 0 the voltage balance is algebraic and the result is the
        continuous feedforward at the average acceleration, with
        ``method='algebraic'`` and zero iterations.
        """
        return self._solve_discrete(current_angle, current_velocity, next_velocity, dt)

    def _solve_discrete(self, current_angle, current_velocity, next_velocity, dt):
        # stacklevel 4 = solve → _solve_discrete → public method → caller
        dt = validate_dt(dt)

        if self._solver is None:
            acceleration = (next_velocity - current_velocity) / dt
            voltage = self.calculate(current_angle, current_velocity, acceleration)
            return {
                "voltage": voltage,
                "converged": True,
                "iterations": 0,
                "residual": 0.0,
                "final_angle": float(current_angle),
                "final_velocity": float(next_velocity),
                "nfev": 0,
                "method": "algebraic",
                "message": "ka == 0; voltage balance is algebraic",
            }

        return self._solver.solve(
            current_angle, current_velocity, next_velocity, dt, stacklevel=4
        )

    # ========================================================================
    # Achievable bounds
    # ========================================================================

    def max_achievable_velocity(
        self, max_voltage: ScalarLike, angle: ScalarLike, acceleration: ScalarLike
    ) -> float:
        """
        Maximum achievable velocity given a voltage supply, angle and acceleration.

        Enter the acceleration constraint of a trapezoidal profile to get a
        simultaneously-achievable velocity constraint.

        Parameters
        ----------
        max_voltage : float
            Maximum voltage that can be supplied to the arm [V]
        angle : float
            Arm angle from horizontal [rad]
        acceleration : float
            Arm acceleration [rad/s²]

        Returns
        -------
        float
            Maximum possible velocity [rad/s]
        """
        # Assume max velocity is positive
        with np.errstate(divide="ignore", invalid="ignore"):
            return float(
                np.float64(max_voltage - self.ks - np.cos(angle) * self.kg - acceleration * self.ka)
                / np.float64(self.kv)
            )

    def min_achievable_velocity(
        self, max_voltage: ScalarLike, angle: ScalarLike, acceleration: ScalarLike
    ) -> float:
        """
        Minimum achievable velocity given a voltage supply, angle and acceleration.

        Parameters
        ----------
        max_voltage : float
            Maximum voltage that can be supplied to the arm [V]
        angle : float
            Arm angle from horizontal [rad]
        acceleration : float
            Arm acceleration [rad/s²]

        Returns
        -------
        float
            Minimum possible velocity [rad/s]
        """
        # Assume min velocity is negative, ks flips sign
        with np.errstate(divide="ignore", invalid="ignore"):
            return float(
                np.float64(-max_voltage + self.ks - np.cos(angle) * self.kg - acceleration * self.ka)
                / np.float64(self.kv)
            )

    def max_achievable_acceleration(
        self, max_voltage: ScalarLike, angle: ScalarLike, velocity: ScalarLike
    ) -> float:
        """
        Maximum achievable acceleration given a voltage supply, angle and velocity.

        Enter the velocity constraint of a trapezoidal profile to get a
        simultaneously-achievable acceleration constraint.

        Parameters
        ----------
        max_voltage : float
            Maximum voltage that can be supplied to the arm [V]
        angle : float
            Arm angle from horizontal [rad]
        velocity : float
            Arm velocity [rad/s]

        Returns
        -------
        float
            Maximum possible acceleration [rad/s²]
        """
        with np.errstate(divide="ignore", invalid="ignore"):
            return float(
                np.float64(
                    max_voltage
                    - self.ks * np.sign(velocity)
                    - np.cos(angle) * self.kg
                    - velocity * self.kv
                )
                / np.float64(self.ka)
            )

    def min_achievable_acceleration(
        self, max_voltage: ScalarLike, angle: ScalarLike, velocity: ScalarLike
    ) -> float:
        """
        Minimum achievable acceleration given a voltage supply, angle and velocity.

        Defined as the maximum achievable acceleration under the negated
        voltage supply, so the static friction sign convention is shared.
        """
        return self.max_achievable_acceleration(-max_voltage, angle, velocity)

    # ========================================================================
    # Dunder methods
    # ========================================================================

    def __eq__(self, other) -> bool:
        if not isinstance(other, ArmFeedforward):
            return NotImplemented
        return self._gains == other._gains and self._options == other._options

    def __hash__(self) -> int:
        return hash((self._gains, self._options))

    def __repr__(self) -> str:
        return (
            f"ArmFeedforward(ks={self.ks}, kg={self.kg}, kv={self.kv}, ka={self.ka})"
        )


__all__ = ["ArmFeedforward"]
