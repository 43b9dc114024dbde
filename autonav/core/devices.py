"""Device models the control core is bound to at initialization.

Each model is built from a config dict and exposes the attributes the core
reads and writes each tick. Vehicle integrations bind their real hardware
by providing objects with the same attributes; the core never looks devices
up by name or type itself.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from autonav.core.frame import OrientationFrame
from autonav.utils.math_utils import as_vector, normalize, EPSILON

logger = logging.getLogger(__name__)


def _frame_from_config(config: dict) -> OrientationFrame:
    """Build a frame from ``position``/``forward``/``up`` config keys."""
    return OrientationFrame.from_forward_up(
        config.get("forward", [1, 0, 0]),
        config.get("up", [0, 0, 1]),
        position=as_vector(config.get("position", [0, 0, 0])),
    )


class ReferenceSensor:
    """Reference orientation/position sensor (the vehicle's control seat).

    Provides the vehicle pose and motion state used by every component.
    """

    def __init__(self, config: dict = None):
        config = config or {}
        self.id = config.get("id", "reference")
        self.frame = _frame_from_config(config)
        self.linear_velocity = as_vector(config.get("linear_velocity", [0, 0, 0]))
        self.angular_velocity = as_vector(config.get("angular_velocity", [0, 0, 0]))
        self.gravity = as_vector(config.get("gravity", [0, 0, 0]))
        self.mass = float(config.get("mass", 1000.0))
        com = config.get("center_of_mass")
        self.center_of_mass = as_vector(com) if com is not None else self.frame.position.copy()
        self.bounding_radius = float(config.get("bounding_radius", 5.0))

    @property
    def position(self) -> np.ndarray:
        return self.frame.position

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.linear_velocity))


class Gyro:
    """Orientation actuator commanded with local pitch/yaw/roll rates."""

    def __init__(self, config: dict = None):
        config = config or {}
        self.id = config.get("id", "gyro")
        self.frame = _frame_from_config(config)
        self.override = False
        self.power = 1.0
        self.pitch = 0.0
        self.yaw = 0.0
        self.roll = 0.0

    def set_rates(self, pitch: float, yaw: float, roll: float):
        self.override = True
        self.pitch = float(pitch)
        self.yaw = float(yaw)
        self.roll = float(roll)

    def release(self):
        self.override = False
        self.pitch = 0.0
        self.yaw = 0.0
        self.roll = 0.0


class Thruster:
    """Thrust actuator applying force along one fixed direction."""

    def __init__(self, config: dict = None):
        config = config or {}
        self.id = config.get("id", "thruster")
        self.position = as_vector(config.get("position", [0, 0, 0]))

        # Direction of the force applied to the vehicle (unit vector, world)
        direction = as_vector(config.get("direction", [1, 0, 0]))
        mag = np.linalg.norm(direction)
        self.direction = direction / mag if mag > EPSILON else direction

        self.max_thrust = float(config.get("max_thrust", 1000.0))
        self.max_effective_thrust = float(config.get("max_effective_thrust", self.max_thrust))

        # Commanded fraction of maximum thrust (0.0 to 1.0)
        self.override_ratio = 0.0

    def get_force(self) -> np.ndarray:
        """Current commanded force vector (world)."""
        return self.direction * (self.override_ratio * self.max_effective_thrust)


class Connector:
    """Coupling device used at docking waypoints.

    ``connect`` locks only when the connector is ``connectable`` (in range and
    aligned with another connector). ``other_forward`` is the forward vector
    of the connector on the other side while connected.
    """

    def __init__(self, config: dict = None):
        config = config or {}
        self.id = config.get("id", "connector")
        self.connectable = bool(config.get("connectable", False))
        self.is_connected = bool(config.get("connected", False))
        other = config.get("other_forward")
        self.other_forward = as_vector(other) if other is not None else None
        self.connect_attempts = 0

    def connect(self):
        self.connect_attempts += 1
        if self.connectable:
            self.is_connected = True

    def disconnect(self):
        self.is_connected = False


class ProximitySensor:
    """Binary sensor that activates when an obstacle enters its volume."""

    def __init__(self, config: dict = None):
        config = config or {}
        self.id = config.get("id", "sensor")
        self.position = as_vector(config.get("position", [0, 0, 0]))
        self.is_active = bool(config.get("active", False))


class RangingProbe:
    """Forward ranging device (raycasting camera).

    ``raycast`` takes a distance and a direction in the probe's local
    (right, up, forward) frame and returns the world hit position or None.
    The model resolves hits against spherical obstacles given in config.
    """

    def __init__(self, config: dict = None):
        config = config or {}
        self.id = config.get("id", "probe")
        self.frame = _frame_from_config(config)
        self.raycast_enabled = False
        self.obstacles = [
            (as_vector(o.get("center", [0, 0, 0])), float(o.get("radius", 1.0)))
            for o in config.get("obstacles", [])
        ]
        self.raycast_count = 0

    def raycast(self, distance: float, local_direction) -> Optional[np.ndarray]:
        self.raycast_count += 1
        origin = self.frame.position
        direction = normalize(self.frame.to_world(local_direction))
        closest = None
        for center, radius in self.obstacles:
            # Ray/sphere intersection, nearest non-negative root
            offset = origin - center
            b = np.dot(offset, direction)
            c = np.dot(offset, offset) - radius * radius
            disc = b * b - c
            if disc < 0:
                continue
            t = -b - np.sqrt(disc)
            if t < 0:
                t = -b + np.sqrt(disc)
            if 0 <= t <= distance and (closest is None or t < closest):
                closest = t
        if closest is None:
            return None
        return origin + direction * closest


class Suspension:
    """Independently steered and driven wheel unit of a ground vehicle."""

    def __init__(self, config: dict = None):
        config = config or {}
        self.id = config.get("id", "wheel")
        self.position = as_vector(config.get("position", [0, 0, 0]))
        self.propulsion_override = 0.0
        self.steering_override = 0.0
        self.brake = False


class DetectionSensor:
    """Sensor with an adjustable detection extent along one axis.

    Used by the ground probe: the sensor is active when ground lies within
    ``extent``.
    """

    def __init__(self, config: dict = None):
        config = config or {}
        self.id = config.get("id", "ground_sensor")
        self.extent = float(config.get("extent", 1.0))
        self.enabled = False
        ground = config.get("ground_distance")
        self.ground_distance = float(ground) if ground is not None else None

    @property
    def is_active(self) -> bool:
        return (self.enabled and self.ground_distance is not None
                and self.ground_distance <= self.extent)


@dataclass
class VehicleBinding:
    """Devices handed to the core at initialization.

    Only the reference sensor is required by every component; each component
    reports what else it needs when initialized.
    """

    reference: Optional[ReferenceSensor] = None
    gyros: List[Gyro] = field(default_factory=list)
    thrusters: List[Thruster] = field(default_factory=list)
    connector: Optional[Connector] = None
    proximity_sensors: List[ProximitySensor] = field(default_factory=list)
    ranging_probe: Optional[RangingProbe] = None
    suspensions: List[Suspension] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: dict) -> "VehicleBinding":
        """Build device models from a vehicle config dict.

        Args:
            config: Dict with optional keys ``reference``, ``gyros``,
                ``thrusters``, ``connector``, ``proximity_sensors``,
                ``ranging_probe``, ``suspensions``
        """
        config = config or {}

        def single(key, factory):
            return factory(config[key]) if config.get(key) is not None else None

        binding = cls(
            reference=single("reference", ReferenceSensor),
            gyros=[Gyro(c) for c in config.get("gyros", [])],
            thrusters=[Thruster(c) for c in config.get("thrusters", [])],
            connector=single("connector", Connector),
            proximity_sensors=[ProximitySensor(c) for c in config.get("proximity_sensors", [])],
            ranging_probe=single("ranging_probe", RangingProbe),
            suspensions=[Suspension(c) for c in config.get("suspensions", [])],
        )
        logger.debug(
            "Vehicle binding: %d gyros, %d thrusters, %d proximity sensors, %d suspensions",
            len(binding.gyros), len(binding.thrusters),
            len(binding.proximity_sensors), len(binding.suspensions),
        )
        return binding
