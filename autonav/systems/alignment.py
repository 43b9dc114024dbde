# autonav/systems/alignment.py
"""Attitude aligner: turns the vehicle to a target orientation with gyros.

Errors are rotation axes obtained from cross products between the current
and target basis vectors. Expressed in the reference frame, the forward error
gives pitch (local X) and yaw (local Y), the up error gives roll (local Z).
Each axis runs through its own PID; the commanded rates are mapped to world
space through the reference frame and written into every gyro in that gyro's
own frame.
"""

import logging
import math
from typing import Tuple

import numpy as np

from autonav.config import AlignmentConfig
from autonav.control.pid import PIDController
from autonav.core.frame import OrientationFrame
from autonav.systems.base_system import BaseSystem
from autonav.utils.errors import missing_device_error, success_dict
from autonav.utils.math_utils import (
    as_vector, bearing_to, horizontal_reference, normalize, rotation_axis_error, rotate_about_axis, world_up, yaw_pitch_roll,
    DEGENERATE_LENGTH_SQUARED,
)

logger = logging.getLogger(__name__)


class AttitudeAligner(BaseSystem):
    """Gyro-driven attitude controller."""

    component = "Alignment"

    def __init__(self, binding, config: AlignmentConfig = None):
        super().__init__(binding, config or AlignmentConfig())
        gains = self.config.gains
        dt = self.config.time_step
        self.pitch_pid = PIDController.from_gains(gains, dt)
        self.yaw_pid = PIDController.from_gains(gains, dt)
        self.roll_pid = PIDController.from_gains(gains, dt)
        self.precision = self.config.precision

        # Diagnostics from the last tick
        self.last_errors = np.zeros(3)
        self.last_right_error = np.zeros(3)
        self.last_command = np.zeros(3)

    @property
    def gyros(self):
        return self.binding.gyros

    def initialize(self):
        error = self._require_reference()
        if error is None and not self.gyros:
            error = missing_device_error(self.component, "gyroscopes")
        if error is not None:
            return self._finish_initialize(error)
        return self._finish_initialize(success_dict("Alignment ready", gyros=len(self.gyros)))

    def align_with_frame(self, target: OrientationFrame) -> bool:
        """Run one alignment tick towards ``target``.

        Returns:
            bool: True once aligned and (nearly) not rotating
        """
        if not self.enabled:
            return False
        reference = self.reference
        current = reference.frame

        forward_error = rotation_axis_error(current.forward, target.forward, current.up)
        up_error = rotation_axis_error(current.up, target.up, current.forward)
        self.last_right_error = np.cross(current.right, target.right)

        local_forward = current.to_local(forward_error)
        local_up = current.to_local(up_error)
        pitch_error = float(local_forward[0])
        yaw_error = float(local_forward[1])
        roll_error = float(local_up[2])
        self.last_errors = np.array([pitch_error, yaw_error, roll_error])

        angular_speed = float(np.linalg.norm(reference.angular_velocity))
        if (abs(pitch_error) < self.precision and abs(yaw_error) < self.precision
                and abs(roll_error) < self.precision and angular_speed < self.precision):
            logger.debug("Aligned (angular speed %.4f)", angular_speed)
            self.stop()
            return True

        command = np.array([
            self.pitch_pid.control(pitch_error),
            self.yaw_pid.control(yaw_error),
            self.roll_pid.control(roll_error),
        ])
        self.last_command = command
        self._apply_rates(current.to_world(command))
        return False

    def _apply_rates(self, world_rates):
        for gyro in self.gyros:
            local = gyro.frame.to_local(world_rates)
            gyro.set_rates(pitch=local[0], yaw=local[1], roll=local[2])

    def align_with_target(self, position) -> bool:
        """Turn to face a world point, level against gravity when present."""
        current = self.reference.frame
        direction = as_vector(position) - current.position
        if np.dot(direction, direction) < DEGENERATE_LENGTH_SQUARED:
            # Standing on the target: nothing to face
            self.stop()
            return True

        gravity = self.reference.gravity
        if np.dot(gravity, gravity) > DEGENERATE_LENGTH_SQUARED:
            up_hint = world_up(gravity)
        else:
            up_hint = current.up
        target = OrientationFrame.from_forward_up(direction, up_hint, position=current.position)
        return self.align_with_frame(target)

    def align_with_yaw_pitch_roll(self, yaw: float, pitch: float, roll: float) -> bool:
        return self.align_with_frame(self.yaw_pitch_roll_to_frame(yaw, pitch, roll))

    def calculate_yaw_pitch_roll(self) -> Tuple[float, float, float]:
        """Current gravity-relative (yaw, pitch, roll) in radians."""
        frame = self.reference.frame
        return yaw_pitch_roll(frame.forward, frame.right, self.reference.gravity)

    def calculate_bearing_to(self, destination) -> float:
        """Absolute yaw of the horizontal direction to ``destination``."""
        frame = self.reference.frame
        return bearing_to(frame.position, frame.forward, frame.right,
                          self.reference.gravity, destination)

    def yaw_pitch_roll_to_frame(self, yaw: float, pitch: float, roll: float) -> OrientationFrame:
        """Frame at the current position with the given gravity-relative angles.

        Inverse of :meth:`calculate_yaw_pitch_roll` for zero roll; roll is
        applied as a rotation about the resulting forward axis.
        """
        up = world_up(self.reference.gravity)
        reference = horizontal_reference(up)
        reference_right = np.cross(reference, up)

        heading = math.cos(yaw) * reference + math.sin(yaw) * reference_right
        forward = math.cos(pitch) * heading + math.sin(pitch) * up
        pitched_up = -math.sin(pitch) * heading + math.cos(pitch) * up
        right = np.cross(forward, pitched_up)

        # Positive roll raises the right side
        right = normalize(rotate_about_axis(right, forward, -roll))
        new_up = normalize(np.cross(right, forward))
        return OrientationFrame(
            position=self.reference.frame.position.copy(),
            forward=normalize(forward),
            right=right,
            up=new_up,
        )

    def reset(self):
        self.pitch_pid.reset()
        self.yaw_pid.reset()
        self.roll_pid.reset()

    def stop(self):
        """Release every gyro override."""
        for gyro in self.gyros:
            gyro.release()
        self.reset()

    def get_state(self):
        state = super().get_state()
        state.update({
            "precision": self.precision,
            "errors": self.last_errors.tolist(),
            "right_error": self.last_right_error.tolist(),
            "command": self.last_command.tolist(),
        })
        return state
