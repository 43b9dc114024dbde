"""Vector helpers and gravity-relative attitude math with degenerate-case guards."""

import math
import logging
from typing import Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

EPSILON = 1e-10
# Squared length below which a projected reference axis is considered degenerate
DEGENERATE_LENGTH_SQUARED = 1e-6

WORLD_X = np.array([1.0, 0.0, 0.0])
WORLD_Y = np.array([0.0, 1.0, 0.0])
WORLD_Z = np.array([0.0, 0.0, 1.0])


def as_vector(value) -> np.ndarray:
    """Coerce a sequence or dict {x, y, z} into a float numpy vector.

    Args:
        value: Sequence of three numbers, numpy array or dict with x/y/z keys

    Returns:
        np.ndarray: Copy of the vector as float array
    """
    if isinstance(value, dict):
        return np.array([value.get("x", 0.0), value.get("y", 0.0), value.get("z", 0.0)], dtype=float)
    return np.array(value, dtype=float)


def clamp(value, min_value, max_value):
    """Clamp a value between min and max."""
    return max(min_value, min(max_value, value))


def normalize(vector, default=None) -> np.ndarray:
    """Normalize a vector to unit length.

    Args:
        vector: Vector to normalize
        default: Returned when the vector is too short to normalize
            (zero vector if omitted)

    Returns:
        np.ndarray: Unit vector, or the default
    """
    vector = as_vector(vector)
    mag = np.linalg.norm(vector)
    if mag < EPSILON:
        return np.zeros(3) if default is None else as_vector(default)
    return vector / mag


def distance(a, b) -> float:
    """Euclidean distance between two points."""
    return float(np.linalg.norm(as_vector(a) - as_vector(b)))


def project_on_plane(vector, normal) -> np.ndarray:
    """Remove the component of ``vector`` along the unit ``normal``."""
    vector = as_vector(vector)
    normal = as_vector(normal)
    return vector - np.dot(vector, normal) * normal


def rotate_about_axis(vector, axis, angle: float) -> np.ndarray:
    """Rotate ``vector`` around unit ``axis`` by ``angle`` radians (Rodrigues).

    Positive angles follow the right-hand rule around the axis.
    """
    vector = as_vector(vector)
    axis = normalize(axis)
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    return (vector * cos_a
            + np.cross(axis, vector) * sin_a
            + axis * np.dot(axis, vector) * (1.0 - cos_a))


def world_up(gravity) -> np.ndarray:
    """Up direction opposite to gravity.

    Falls back to world +Z when no gravity is present so that gravity-relative
    math stays defined in free space.
    """
    gravity = as_vector(gravity)
    if np.dot(gravity, gravity) < DEGENERATE_LENGTH_SQUARED:
        return WORLD_Z.copy()
    return -normalize(gravity)


def horizontal_reference(up) -> np.ndarray:
    """Horizontal yaw reference: world X projected on the horizontal plane.

    If world X is (nearly) parallel to ``up`` world Y is used instead.
    """
    reference = project_on_plane(WORLD_X, up)
    if np.dot(reference, reference) <= DEGENERATE_LENGTH_SQUARED:
        reference = project_on_plane(WORLD_Y, up)
    return normalize(reference)


def yaw_pitch_roll(forward, right, gravity) -> Tuple[float, float, float]:
    """Compute gravity-relative yaw, pitch and roll in radians.

    Yaw is the signed angle of the horizontal forward direction from the
    horizontal reference (positive turning right). Pitch and roll are the
    angles of forward and right from the horizontal plane (positive nose up,
    right side up).

    Args:
        forward: Vehicle forward unit vector (world)
        right: Vehicle right unit vector (world)
        gravity: Gravity vector (world), may be zero

    Returns:
        tuple: (yaw, pitch, roll) in radians
    """
    up = world_up(gravity)
    down = -up
    forward = as_vector(forward)
    right = as_vector(right)

    forward_horizontal = project_on_plane(forward, up)
    if np.dot(forward_horizontal, forward_horizontal) > DEGENERATE_LENGTH_SQUARED:
        forward_horizontal = normalize(forward_horizontal)
        reference = horizontal_reference(up)
        reference_right = np.cross(reference, up)
        yaw = math.atan2(np.dot(forward_horizontal, reference_right),
                         np.dot(forward_horizontal, reference))
    else:
        # Nose straight up or down: yaw is undefined
        yaw = 0.0

    pitch = math.acos(clamp(float(np.dot(forward, down)), -1.0, 1.0)) - math.pi / 2
    roll = math.acos(clamp(float(np.dot(right, down)), -1.0, 1.0)) - math.pi / 2
    return yaw, pitch, roll


def bearing_to(position, forward, right, gravity, destination,
               min_distance: float = 0.1) -> float:
    """Absolute yaw of the horizontal direction towards ``destination``.

    The vehicle's applied yaw is first removed from its forward vector by an
    inverse rotation around the gravity axis, recovering the unrotated
    reference heading; the bearing is the signed angle from that heading to
    the horizontal projection of the direction to the destination, using the
    same sign convention as :func:`yaw_pitch_roll`.

    Returns:
        float: Bearing in radians, 0.0 when closer than ``min_distance``
    """
    position = as_vector(position)
    destination = as_vector(destination)
    if distance(position, destination) < min_distance:
        return 0.0

    up = world_up(gravity)
    current_yaw, _, _ = yaw_pitch_roll(forward, right, gravity)

    # Positive yaw is a clockwise turn about up, so a +yaw spin undoes it
    unrotated_forward = rotate_about_axis(forward, up, current_yaw)

    direction = normalize(destination - position)
    projected = project_on_plane(direction, up)
    if np.dot(projected, projected) < DEGENERATE_LENGTH_SQUARED:
        return current_yaw
    projected = normalize(projected)

    dot = float(np.dot(unrotated_forward, projected))
    cross_up = float(np.dot(np.cross(unrotated_forward, projected), up))
    return math.atan2(-cross_up, dot)


def rotation_axis_error(current, target, fallback_axis) -> np.ndarray:
    """Rotation axis turning ``current`` towards ``target`` (both unit vectors).

    The cross product magnitude is sin(angle), which collapses for errors past
    90 degrees; in that case the axis is scaled to unit length, and for exactly
    opposite vectors ``fallback_axis`` is used.
    """
    current = as_vector(current)
    target = as_vector(target)
    axis = np.cross(current, target)
    if np.dot(current, target) >= 0.0:
        return axis

    mag = np.linalg.norm(axis)
    if mag < EPSILON:
        return normalize(fallback_axis)
    return axis / mag


def closest_within(point, candidates, radius: float) -> Optional[np.ndarray]:
    """Return the first candidate within ``radius`` of ``point``, if any."""
    point = as_vector(point)
    for candidate in candidates:
        if np.linalg.norm(as_vector(candidate) - point) < radius:
            return candidate
    return None
