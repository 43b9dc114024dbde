"""Orientation frames: a position plus forward/right/up basis in world space."""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from autonav.utils.math_utils import as_vector, normalize, project_on_plane, EPSILON


def _zero():
    return np.zeros(3)


@dataclass
class OrientationFrame:
    """Pose of a vehicle or device.

    The basis is right-handed with ``right = forward x up``. Local coordinates
    of a direction are ``(x=right, y=up, z=forward)``, which is also the
    (pitch, yaw, roll) axis order used for orientation actuator commands.

    Attributes:
        position: World position
        forward: Unit forward vector (world)
        right: Unit right vector (world)
        up: Unit up vector (world)
    """

    position: np.ndarray = field(default_factory=_zero)
    forward: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0]))
    right: np.ndarray = field(default_factory=lambda: np.array([0.0, -1.0, 0.0]))
    up: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 1.0]))

    def __post_init__(self):
        self.position = as_vector(self.position)
        self.forward = as_vector(self.forward)
        self.right = as_vector(self.right)
        self.up = as_vector(self.up)

    @classmethod
    def identity(cls, position=None) -> "OrientationFrame":
        """Frame facing world +X with +Z up."""
        return cls(position=_zero() if position is None else position)

    @classmethod
    def from_forward_up(cls, forward, up, position=None) -> "OrientationFrame":
        """Build an orthonormal frame from a forward direction and an up hint.

        ``up`` is orthogonalized against ``forward``. If the hint is parallel to
        forward, any perpendicular direction is chosen.
        """
        forward = normalize(forward, default=[1.0, 0.0, 0.0])
        up = project_on_plane(up, forward)
        if np.linalg.norm(up) < EPSILON:
            # Hint parallel to forward: pick the world axis least aligned with it
            axis = np.eye(3)[int(np.argmin(np.abs(forward)))]
            up = project_on_plane(axis, forward)
        up = normalize(up)
        right = np.cross(forward, up)
        return cls(
            position=_zero() if position is None else position,
            forward=forward,
            right=right,
            up=up,
        )

    def rotation_matrix(self) -> np.ndarray:
        """3x3 matrix whose rows are right, up, forward (world -> local)."""
        return np.vstack([self.right, self.up, self.forward])

    def to_local(self, direction) -> np.ndarray:
        """Express a world direction in local (right, up, forward) components."""
        return self.rotation_matrix() @ as_vector(direction)

    def to_world(self, local) -> np.ndarray:
        """Express a local (right, up, forward) direction in world space."""
        return self.rotation_matrix().T @ as_vector(local)

    def copy(self) -> "OrientationFrame":
        return OrientationFrame(self.position.copy(), self.forward.copy(),
                                self.right.copy(), self.up.copy())

    def to_dict(self, precision: Optional[int] = None) -> dict:
        def fmt(vec):
            values = [float(v) for v in vec]
            return [round(v, precision) for v in values] if precision is not None else values

        return {
            "position": fmt(self.position),
            "forward": fmt(self.forward),
            "right": fmt(self.right),
            "up": fmt(self.up),
        }
