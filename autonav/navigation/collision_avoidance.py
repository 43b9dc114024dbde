# autonav/navigation/collision_avoidance.py
"""Point-to-point navigation that detours around obstacles.

Four proximity sensors on the forward corners of the vehicle trigger a scan
for a clear heading; a forward ranging probe throttles speed while the path
ahead is clear. States: Idle, Aligning, Navigating, Scanning. A failed scan
ends in Idle with the STUCK status.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

from autonav.config import AvoidanceConfig
from autonav.core.event_bus import EventBus
from autonav.core.state_machine import Context, State
from autonav.systems.base_system import BaseSystem
from autonav.utils.errors import empty_group_error, error_dict, missing_device_error, success_dict
from autonav.utils.math_utils import as_vector, closest_within, distance, normalize

logger = logging.getLogger(__name__)

TOP_RIGHT = "forward-top-right"
TOP_LEFT = "forward-top-left"
BOTTOM_RIGHT = "forward-bottom-right"
BOTTOM_LEFT = "forward-bottom-left"
CORNERS = (TOP_RIGHT, TOP_LEFT, BOTTOM_RIGHT, BOTTOM_LEFT)

# Ring candidates at 45 degrees off forward: (name, right, up, corners that must be clear)
RING_CANDIDATES = (
    ("centre-right", 1, 0, (TOP_RIGHT, BOTTOM_RIGHT)),
    ("centre-left", -1, 0, (TOP_LEFT, BOTTOM_LEFT)),
    ("top-centre", 0, 1, (TOP_RIGHT, TOP_LEFT)),
    ("bottom-centre", 0, -1, (BOTTOM_RIGHT, BOTTOM_LEFT)),
    ("top-right", 1, 1, (TOP_RIGHT, TOP_LEFT)),
    ("bottom-right", 1, -1, (BOTTOM_RIGHT, BOTTOM_LEFT)),
    ("top-left", -1, 1, (TOP_RIGHT, TOP_LEFT)),
    ("bottom-left", -1, -1, (BOTTOM_RIGHT, BOTTOM_LEFT)),
)

# Fallback candidates at 90 degrees: (name, right, up)
CARDINAL_CANDIDATES = (
    ("right", 1, 0),
    ("left", -1, 0),
    ("up", 0, 1),
    ("down", 0, -1),
)

# Probe ray offsets in units of the probe spread: centre, corners, edge midpoints
PROBE_OFFSETS = (
    (0, 0),
    (1, 1), (-1, 1), (1, -1), (-1, -1),
    (0, 1), (0, -1), (1, 0), (-1, 0),
)


class AvoidanceStatus(Enum):
    IDLE = "idle"
    NAVIGATING = "navigating"
    ARRIVED = "arrived"
    STUCK = "stuck"


class AvoidanceIdleState(State):
    name = "Idle"

    def enter(self):
        self.context.probe.raycast_enabled = False
        self.context.aligner.stop()
        self.context.navigator.stop()

    def execute(self):
        pass


class AvoidanceAligningState(State):
    """Turn towards the target before moving."""

    name = "Aligning"

    def __init__(self, context, target):
        super().__init__(context)
        self.target = as_vector(target)

    def enter(self):
        pass

    def execute(self):
        if self.context.aligner.align_with_target(self.target):
            self.context.transition_to(AvoidanceNavigatingState(self.context, self.target))


class AvoidanceNavigatingState(State):
    name = "Navigating"

    def __init__(self, context, target):
        super().__init__(context)
        self.target = as_vector(target)

    def enter(self):
        pass

    def execute(self):
        context = self.context
        if context.any_corner_active():
            logger.info("Obstacle detected by proximity sensors")
            context.navigator.stop()
            context.event_bus.publish("obstacle_detected", {
                "position": context.reference.position.tolist(),
                "target": self.target.tolist(),
            }, source=context.avoider)
            context.transition_to(AvoidanceScanningState(context, self.target))
            return

        config = context.config
        remaining = distance(context.reference.position, self.target)
        speed = max(config.min_speed, min(context.max_speed, remaining / config.speed_distance_divisor))

        lookahead = speed * config.lookahead_factor
        closest = context.probe_obstacles(lookahead)
        if closest is not None:
            speed = max(config.min_speed, min(speed, closest / config.speed_distance_divisor))
            logger.debug("Obstacle at %.1f, slowing to %.1f", closest, speed)
        context.last_speed = speed

        context.navigator.precision = config.arrival_precision
        if context.navigator.navigate_to(self.target, speed):
            if context.is_detour:
                context.is_detour = False
                context.transition_to(AvoidanceAligningState(context, context.target))
            else:
                logger.info("Collision avoidance: arrived")
                context.navigation_state = AvoidanceStatus.ARRIVED
                context.event_bus.publish("avoidance_arrived", {
                    "target": context.target.tolist(),
                }, source=context.avoider)
                context.transition_to(AvoidanceIdleState(context))


class AvoidanceScanningState(State):
    """Search for a clear detour heading around a detected obstacle.

    Candidates already proposed during this scan (within the duplicate
    radius) are never proposed again.
    """

    name = "Scanning"

    def __init__(self, context, target):
        super().__init__(context)
        self.target = as_vector(target)
        self.scanned: List[np.ndarray] = []

    def enter(self):
        pass

    def execute(self):
        context = self.context
        if not context.aligner.align_with_target(self.target):
            return

        active = context.corner_states()
        if not any(active.values()):
            context.is_detour = True
            context.transition_to(AvoidanceNavigatingState(context, self.target))
            return

        candidate = self.next_candidate(active)
        if candidate is not None:
            self.scanned.append(candidate)
            self.target = candidate
            return

        logger.warning("Collision avoidance: stuck")
        context.navigation_state = AvoidanceStatus.STUCK
        context.event_bus.publish("avoidance_stuck", {
            "position": context.reference.position.tolist(),
            "target": context.target.tolist(),
        }, source=context.avoider)
        context.transition_to(AvoidanceIdleState(context))

    def next_candidate(self, active: Dict[str, bool]) -> Optional[np.ndarray]:
        context = self.context
        frame = context.reference.frame
        position = frame.position
        detour = context.config.detour_distance

        for name, right, up, gates in RING_CANDIDATES:
            if any(active[corner] for corner in gates):
                continue
            candidate = position + normalize(frame.forward + frame.right * right + frame.up * up) * detour
            if not self._is_scanned(candidate):
                logger.debug(f"Scanning: trying {name}")
                return candidate

        for name, right, up in CARDINAL_CANDIDATES:
            candidate = position + normalize(frame.right * right + frame.up * up) * detour
            if not self._is_scanned(candidate):
                logger.debug(f"Scanning: trying {name} 90")
                return candidate
        return None

    def _is_scanned(self, candidate) -> bool:
        radius = self.context.config.duplicate_radius
        return closest_within(candidate, self.scanned, radius) is not None


class AvoidanceContext(Context):
    def __init__(self, avoider):
        super().__init__()
        self.avoider = avoider
        self.target = np.zeros(3)
        self.is_detour = False
        self.max_speed = 20.0
        self.navigation_state = AvoidanceStatus.IDLE
        self.last_speed = 0.0
        self.last_obstacle_distance: Optional[float] = None

    @property
    def reference(self):
        return self.avoider.reference

    @property
    def probe(self):
        return self.avoider.binding.ranging_probe

    @property
    def navigator(self):
        return self.avoider.navigator

    @property
    def aligner(self):
        return self.avoider.aligner

    @property
    def config(self) -> AvoidanceConfig:
        return self.avoider.config

    @property
    def event_bus(self) -> EventBus:
        return self.avoider.event_bus

    def corner_states(self) -> Dict[str, bool]:
        return {
            corner: any(sensor.is_active for sensor in sensors)
            for corner, sensors in self.avoider.corners.items()
        }

    def any_corner_active(self) -> bool:
        return any(self.corner_states().values())

    def probe_obstacles(self, lookahead: float) -> Optional[float]:
        """Closest hit of the nine forward rays within ``lookahead``, if any."""
        probe = self.probe
        spread = self.reference.bounding_radius * self.config.probe_spread
        origin = probe.frame.position

        closest = None
        for right, up in PROBE_OFFSETS:
            local = normalize([right * spread, up * spread, lookahead])
            hit = probe.raycast(lookahead, local)
            if hit is None:
                continue
            hit_distance = distance(origin, hit)
            if closest is None or hit_distance < closest:
                closest = hit_distance

        if closest is not None and closest > lookahead:
            closest = None
        self.last_obstacle_distance = closest
        return closest

    def on_transition(self, previous, state):
        logger.info(f"CollisionAvoider: {state.state_name}")


class CollisionAvoider(BaseSystem):
    """Navigator wrapper that scans for detours when the way ahead is blocked."""

    component = "CollisionAvoider"

    def __init__(self, binding, navigator, aligner, config: AvoidanceConfig = None, event_bus=None):
        super().__init__(binding, config or AvoidanceConfig())
        self.navigator = navigator
        self.aligner = aligner
        self.event_bus = event_bus or EventBus.get_instance()
        self.corners: Dict[str, List] = {corner: [] for corner in CORNERS}
        self.context = AvoidanceContext(self)

    def initialize(self):
        error = self._require_reference()
        if error is None and self.binding.ranging_probe is None:
            error = missing_device_error(self.component, "ranging probe")
        if error is None and len(self.binding.proximity_sensors) < 4:
            error = error_dict(
                "NOT_ENOUGH_SENSORS",
                f"{self.component}: Need at least 4 proximity sensors for collision avoidance!",
            )
        if error is None:
            self.corners = self._classify_sensors(self.binding.proximity_sensors)
            for corner in CORNERS:
                if not self.corners[corner]:
                    error = empty_group_error(self.component, corner, "sensor")
                    break
        if error is not None:
            return self._finish_initialize(error)

        result = self._finish_initialize(success_dict("Collision avoidance ready"))
        self.context.transition_to(AvoidanceIdleState(self.context))
        return result

    def _classify_sensors(self, sensors) -> Dict[str, List]:
        reference = self.reference
        frame = reference.frame
        corners = {corner: [] for corner in CORNERS}
        for sensor in sensors:
            offset = as_vector(sensor.position) - reference.center_of_mass
            if np.dot(offset, frame.forward) <= 0:
                continue
            is_right = np.dot(offset, frame.right) > 0
            is_up = np.dot(offset, frame.up) > 0
            if is_up:
                corner = TOP_RIGHT if is_right else TOP_LEFT
            else:
                corner = BOTTOM_RIGHT if is_right else BOTTOM_LEFT
            corners[corner].append(sensor)
        return corners

    @property
    def navigation_state(self) -> AvoidanceStatus:
        return self.context.navigation_state

    @property
    def state_name(self) -> Optional[str]:
        return self.context.state_name

    def navigate_to(self, target, max_speed: float = 20.0) -> bool:
        """Start navigating to ``target``; progress is made by ``execute``."""
        if not self.initialized:
            logger.warning(f"{self.component}: Not initialized!")
            return False
        if not self.enabled:
            logger.warning(f"{self.component}: Disabled")
            return False

        context = self.context
        if not context.is_in(AvoidanceIdleState):
            self.stop()
        context.target = as_vector(target)
        context.max_speed = max_speed
        context.is_detour = False
        context.navigation_state = AvoidanceStatus.NAVIGATING
        self.binding.ranging_probe.raycast_enabled = True
        context.transition_to(AvoidanceAligningState(context, context.target))
        return True

    def stop(self):
        if not self.initialized:
            return
        self.context.navigation_state = AvoidanceStatus.IDLE
        self.context.transition_to(AvoidanceIdleState(self.context))

    def execute(self):
        if self.initialized and self.enabled:
            self.context.execute()

    def get_state(self):
        state = super().get_state()
        state.update({
            "state": self.state_name,
            "navigation_state": self.navigation_state.value,
            "speed": self.context.last_speed,
            "obstacle_distance": self.context.last_obstacle_distance,
        })
        return state
