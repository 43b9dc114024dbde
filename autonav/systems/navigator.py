# autonav/systems/navigator.py
"""Point-to-point navigation with six-group thrust allocation.

Each tick the navigator picks a desired velocity towards the target, runs the
per-axis velocity error through three PID controllers to get a desired
acceleration, converts it to force with the vehicle mass and splits that force
over the forward/backward/up/down/right/left thruster groups.
"""

import logging
from enum import Enum
from typing import Dict, List

import numpy as np

from autonav.config import NavigatorConfig
from autonav.control.pid import PIDController
from autonav.systems.base_system import BaseSystem
from autonav.utils.errors import empty_group_error, missing_device_error, success_dict
from autonav.utils.math_utils import as_vector, clamp, normalize

logger = logging.getLogger(__name__)


class ThrustDirection(Enum):
    """Direction a thruster group pushes the vehicle."""

    FORWARD = "forward"
    BACKWARD = "backward"
    UP = "up"
    DOWN = "down"
    RIGHT = "right"
    LEFT = "left"

    def vector(self, frame) -> np.ndarray:
        """World unit vector of this direction for ``frame``."""
        if self is ThrustDirection.FORWARD:
            return frame.forward
        if self is ThrustDirection.BACKWARD:
            return -frame.forward
        if self is ThrustDirection.UP:
            return frame.up
        if self is ThrustDirection.DOWN:
            return -frame.up
        if self is ThrustDirection.RIGHT:
            return frame.right
        return -frame.right


class Navigator(BaseSystem):
    """Velocity-controlled point-to-point navigator."""

    component = "Navigator"

    def __init__(self, binding, config: NavigatorConfig = None):
        super().__init__(binding, config or NavigatorConfig())
        gains = self.config.gains
        dt = self.config.time_step
        self.pid_x = PIDController.from_gains(gains, dt)
        self.pid_y = PIDController.from_gains(gains, dt)
        self.pid_z = PIDController.from_gains(gains, dt)

        self.precision = self.config.precision
        self.braking_distance_factor = self.config.braking_distance_factor
        self.factor_gravity = self.config.factor_gravity

        self.groups: Dict[ThrustDirection, List] = {d: [] for d in ThrustDirection}
        self.last_desired_speed = 0.0
        self.last_commanded_force = np.zeros(3)

    def initialize(self):
        error = self._require_reference()
        if error is None and not self.binding.thrusters:
            error = missing_device_error(self.component, "thrusters")
        if error is not None:
            return self._finish_initialize(error)

        self.groups = self._classify_thrusters(self.binding.thrusters)
        for direction in ThrustDirection:
            if not self.groups[direction]:
                return self._finish_initialize(
                    empty_group_error(self.component, direction.value, "thrusters"))

        counts = {d.value: len(group) for d, group in self.groups.items()}
        return self._finish_initialize(success_dict("Navigator ready", groups=counts))

    def _classify_thrusters(self, thrusters) -> Dict[ThrustDirection, List]:
        frame = self.reference.frame
        threshold = self.config.classification_threshold
        groups = {d: [] for d in ThrustDirection}

        for thruster in thrusters:
            best = None
            best_dot = threshold
            for direction in ThrustDirection:
                dot = float(np.dot(thruster.direction, direction.vector(frame)))
                if dot > best_dot:
                    best, best_dot = direction, dot
            if best is None:
                logger.debug(f"Thruster {thruster.id} matches no direction group; skipped")
                continue
            groups[best].append(thruster)
        return groups

    def desired_speed(self, distance: float, max_speed: float) -> float:
        """Speed to hold at ``distance`` from the target.

        Proportional to distance (braking), capped at ``max_speed`` and kept
        above a floor that shrinks close to the target.
        """
        precision = self.precision
        min_speed = precision
        if distance < precision * 2:
            min_speed = max(precision / 2, distance / 2)
        elif distance < precision * 10:
            min_speed = precision * 5
        return min(max_speed, max(min_speed, distance / self.braking_distance_factor))

    def navigate_to(self, target, max_speed: float = 20.0) -> bool:
        """Run one navigation tick towards ``target``.

        Returns:
            bool: True once within precision and (nearly) stopped
        """
        if not self.enabled:
            return False
        reference = self.reference
        position = reference.position
        velocity = reference.linear_velocity

        to_target = as_vector(target) - position
        distance = float(np.linalg.norm(to_target))

        if distance < self.precision and reference.speed < self.precision:
            self.stop()
            logger.debug("Arrived at %s", np.round(as_vector(target), 2))
            return True

        desired_speed = self.desired_speed(distance, max_speed)
        velocity_error = normalize(to_target) * desired_speed - velocity

        acceleration = np.array([
            self.pid_x.control(float(velocity_error[0])),
            self.pid_y.control(float(velocity_error[1])),
            self.pid_z.control(float(velocity_error[2])),
        ])
        if self.factor_gravity:
            acceleration = acceleration - reference.gravity

        force = acceleration * reference.mass
        self.last_desired_speed = desired_speed
        self.last_commanded_force = force
        logger.debug("distance=%.2f desired_speed=%.2f force=%s",
                     distance, desired_speed, np.round(force, 1))
        self._apply_force(force)
        return False

    def _apply_force(self, force):
        frame = self.reference.frame
        for direction in ThrustDirection:
            required = max(0.0, float(np.dot(force, direction.vector(frame))))
            self._set_group_ratio(direction, required)

    def _set_group_ratio(self, direction: ThrustDirection, required_force: float):
        group = self.groups[direction]
        capacity = sum(t.max_effective_thrust for t in group)
        ratio = clamp(required_force / capacity, 0.0, 1.0) if capacity > 0 else 0.0
        for thruster in group:
            thruster.override_ratio = ratio

    def reset(self):
        self.pid_x.reset()
        self.pid_y.reset()
        self.pid_z.reset()

    def stop(self):
        """Zero every thruster group and clear controller history."""
        for direction in ThrustDirection:
            for thruster in self.groups[direction]:
                thruster.override_ratio = 0.0
        self.reset()
        self.last_desired_speed = 0.0
        self.last_commanded_force = np.zeros(3)

    def get_position(self) -> np.ndarray:
        return self.reference.position

    def get_state(self):
        state = super().get_state()
        state.update({
            "groups": {d.value: len(g) for d, g in self.groups.items()},
            "desired_speed": self.last_desired_speed,
            "commanded_force": self.last_commanded_force.tolist(),
        })
        return state
