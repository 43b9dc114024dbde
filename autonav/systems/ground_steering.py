# autonav/systems/ground_steering.py
"""Four-corner wheel steering for ground vehicles.

Wheels are grouped by quadrant relative to the centre of mass. Wheels on the
right side are mounted mirrored, so their propulsion is inverted; rear wheels
steer opposite to front wheels.
"""

import logging
from enum import Enum
from typing import Dict, List

import numpy as np

from autonav.config import SteeringConfig
from autonav.control.pid import AnglePIDController
from autonav.systems.base_system import BaseSystem
from autonav.utils.errors import missing_device_error, success_dict
from autonav.utils.math_utils import as_vector, bearing_to, clamp, distance, yaw_pitch_roll

logger = logging.getLogger(__name__)


class SuspensionQuadrant(Enum):
    FORWARD_LEFT = "forward_left"
    FORWARD_RIGHT = "forward_right"
    BACKWARD_LEFT = "backward_left"
    BACKWARD_RIGHT = "backward_right"


# (propulsion sign, steering sign) per quadrant
_CONTROL_SIGNS = {
    SuspensionQuadrant.FORWARD_LEFT: (1.0, 1.0),
    SuspensionQuadrant.FORWARD_RIGHT: (-1.0, 1.0),
    SuspensionQuadrant.BACKWARD_LEFT: (1.0, -1.0),
    SuspensionQuadrant.BACKWARD_RIGHT: (-1.0, -1.0),
}


class GroundSteering(BaseSystem):
    """Drive and steer a wheeled vehicle."""

    component = "GroundSteering"

    def __init__(self, binding, config: SteeringConfig = None):
        super().__init__(binding, config or SteeringConfig())
        self.heading_pid = AnglePIDController.from_gains(self.config.gains, self.config.time_step)
        self.arrival_distance = self.config.arrival_distance
        self.groups: Dict[SuspensionQuadrant, List] = {q: [] for q in SuspensionQuadrant}
        self.last_heading_error = 0.0

    def initialize(self):
        error = self._require_reference()
        if error is not None:
            return self._finish_initialize(error)

        self.groups = self._classify_suspensions(self.binding.suspensions)
        if not any(self.groups.values()):
            return self._finish_initialize(missing_device_error(self.component, "suspensions"))

        counts = {q.value: len(g) for q, g in self.groups.items()}
        return self._finish_initialize(success_dict("Ground steering ready", groups=counts))

    def _classify_suspensions(self, suspensions) -> Dict[SuspensionQuadrant, List]:
        reference = self.reference
        frame = reference.frame
        groups = {q: [] for q in SuspensionQuadrant}
        for suspension in suspensions:
            offset = as_vector(suspension.position) - reference.center_of_mass
            is_forward = np.dot(offset, frame.forward) > 0
            is_right = np.dot(offset, frame.right) > 0
            if is_forward:
                quadrant = SuspensionQuadrant.FORWARD_RIGHT if is_right else SuspensionQuadrant.FORWARD_LEFT
            else:
                quadrant = SuspensionQuadrant.BACKWARD_RIGHT if is_right else SuspensionQuadrant.BACKWARD_LEFT
            groups[quadrant].append(suspension)
        return groups

    def set_controls(self, propulsion: float, steering: float):
        """Write propulsion and steering overrides to every wheel."""
        for quadrant, (propulsion_sign, steering_sign) in _CONTROL_SIGNS.items():
            for suspension in self.groups[quadrant]:
                suspension.propulsion_override = propulsion_sign * propulsion
                suspension.steering_override = steering_sign * steering

    def _drive(self, propulsion: float, steering: float):
        if self.enabled:
            self.set_controls(propulsion, steering)

    def navigate_forward(self, propulsion: float):
        self._drive(propulsion, 0.0)

    def navigate_backward(self, propulsion: float):
        self._drive(-propulsion, 0.0)

    def navigate_forward_right(self, propulsion: float):
        self._drive(propulsion, 1.0)

    def navigate_forward_left(self, propulsion: float):
        self._drive(propulsion, -1.0)

    def navigate_backward_right(self, propulsion: float):
        self._drive(-propulsion, 1.0)

    def navigate_backward_left(self, propulsion: float):
        self._drive(-propulsion, -1.0)

    def stop(self):
        self.set_controls(0.0, 0.0)
        self.heading_pid.reset()

    def set_handbrake(self, enabled: bool):
        for group in self.groups.values():
            for suspension in group:
                suspension.brake = bool(enabled)

    def steer_towards(self, destination, propulsion: float) -> bool:
        """Drive towards ``destination`` holding the bearing with a PID.

        Returns:
            bool: True (and stopped) once within ``arrival_distance``
        """
        if not self.enabled:
            return False
        reference = self.reference
        frame = reference.frame
        if distance(frame.position, destination) < self.arrival_distance:
            self.stop()
            logger.info("Ground steering arrived")
            return True

        yaw, _, _ = yaw_pitch_roll(frame.forward, frame.right, reference.gravity)
        bearing = bearing_to(frame.position, frame.forward, frame.right,
                             reference.gravity, destination)
        steering = self.heading_pid.control_angles(bearing, yaw)
        self.last_heading_error = self.heading_pid.last_error
        self._drive(propulsion, clamp(steering, -1.0, 1.0))
        return False

    def get_state(self):
        state = super().get_state()
        state.update({
            "groups": {q.value: len(g) for q, g in self.groups.items()},
            "heading_error": self.last_heading_error,
        })
        return state
