# tests/navigation/test_collision_avoidance.py
"""Tests for obstacle detouring navigation."""

import math

import numpy as np
import pytest

from autonav.config import AvoidanceConfig
from autonav.core.devices import VehicleBinding
from autonav.core.event_bus import EventBus
from autonav.navigation.collision_avoidance import (
    AvoidanceStatus, CollisionAvoider, BOTTOM_LEFT, TOP_RIGHT,
)


class FakeNavigator:

    def __init__(self, arrive=True):
        self.arrive = arrive
        self.calls = []
        self.stops = 0
        self.precision = 0.1

    def navigate_to(self, target, max_speed=20.0):
        self.calls.append((np.array(target, dtype=float), max_speed))
        return self.arrive

    def stop(self):
        self.stops += 1


class FakeAligner:

    def __init__(self):
        self.targets = []
        self.stops = 0

    def align_with_target(self, target):
        self.targets.append(np.array(target, dtype=float))
        return True

    def stop(self):
        self.stops += 1


# Identity frame: forward +X, right -Y, up +Z
CORNER_SENSORS = [
    {"id": "tr", "position": [2, -1, 1]},
    {"id": "tl", "position": [2, 1, 1]},
    {"id": "br", "position": [2, -1, -1]},
    {"id": "bl", "position": [2, 1, -1]},
]


def make_binding(sensors=None, obstacles=(), probe=True):
    config = {
        "reference": {"position": [0, 0, 0]},
        "proximity_sensors": CORNER_SENSORS if sensors is None else sensors,
    }
    if probe:
        config["ranging_probe"] = {"obstacles": list(obstacles)}
    return VehicleBinding.from_config(config)


def make_avoider(binding=None, navigator=None, event_bus=None, config=None):
    avoider = CollisionAvoider(binding or make_binding(), navigator or FakeNavigator(),
                               FakeAligner(), config=config, event_bus=event_bus or EventBus())
    result = avoider.initialize()
    assert result["ok"], result
    return avoider


def set_active(avoider, *sensor_ids):
    for sensor in avoider.binding.proximity_sensors:
        sensor.is_active = sensor.id in sensor_ids


def scanning_avoider(event_bus=None):
    """Avoider that has just detected an obstacle ahead and is scanning."""
    avoider = make_avoider(navigator=FakeNavigator(arrive=False), event_bus=event_bus)
    avoider.navigate_to([100, 0, 0])
    avoider.execute()
    set_active(avoider, "tr")
    avoider.execute()
    assert avoider.state_name == "Scanning"
    return avoider


class TestInitialization:

    def test_ready(self):
        avoider = make_avoider()
        assert avoider.state_name == "Idle"
        assert avoider.navigation_state == AvoidanceStatus.IDLE
        assert [s.id for s in avoider.corners[TOP_RIGHT]] == ["tr"]
        assert [s.id for s in avoider.corners[BOTTOM_LEFT]] == ["bl"]

    def test_rear_sensor_is_ignored(self):
        sensors = CORNER_SENSORS + [{"id": "rear", "position": [-2, 1, 1]}]
        avoider = make_avoider(make_binding(sensors))
        classified = [s.id for group in avoider.corners.values() for s in group]
        assert "rear" not in classified

    def test_missing_probe(self):
        avoider = CollisionAvoider(make_binding(probe=False), FakeNavigator(), FakeAligner(),
                                   event_bus=EventBus())
        result = avoider.initialize()
        assert result["message"] == "CollisionAvoider: No ranging probe found!"

    def test_not_enough_sensors(self):
        avoider = CollisionAvoider(make_binding(CORNER_SENSORS[:3]), FakeNavigator(), FakeAligner(),
                                   event_bus=EventBus())
        result = avoider.initialize()
        assert result["error"] == "NOT_ENOUGH_SENSORS"

    def test_empty_corner(self):
        sensors = CORNER_SENSORS[:3] + [{"id": "tr2", "position": [3, -1, 1]}]
        avoider = CollisionAvoider(make_binding(sensors), FakeNavigator(), FakeAligner(),
                                   event_bus=EventBus())
        result = avoider.initialize()

        assert not result["ok"]
        assert result["error"] == "EMPTY_FORWARD_BOTTOM_LEFT_GROUP"
        assert result["message"] == "CollisionAvoider: No forward-bottom-left sensor found!"

    def test_navigate_requires_initialize(self):
        avoider = CollisionAvoider(make_binding(), FakeNavigator(), FakeAligner(), event_bus=EventBus())
        assert not avoider.navigate_to([10, 0, 0])


class TestNavigating:

    def test_aligns_then_navigates(self):
        avoider = make_avoider(navigator=FakeNavigator(arrive=False))
        assert avoider.navigate_to([100, 0, 0])
        assert avoider.state_name == "Aligning"
        assert avoider.navigation_state == AvoidanceStatus.NAVIGATING
        assert avoider.binding.ranging_probe.raycast_enabled

        avoider.execute()
        assert avoider.state_name == "Navigating"
        avoider.execute()
        target, speed = avoider.navigator.calls[-1]
        assert np.allclose(target, [100, 0, 0])
        # 100 / 5 = 20, capped by max speed
        assert speed == pytest.approx(20.0)

    def test_speed_floor_near_target(self):
        avoider = make_avoider(navigator=FakeNavigator(arrive=False))
        avoider.navigate_to([3, 0, 0])
        avoider.execute()
        avoider.execute()
        assert avoider.context.last_speed == pytest.approx(2.0)

    def test_probe_throttles_speed(self):
        binding = make_binding(obstacles=[{"center": [30, 0, 0], "radius": 1.0}])
        avoider = make_avoider(binding, navigator=FakeNavigator(arrive=False))
        avoider.navigate_to([100, 0, 0])
        avoider.execute()
        avoider.execute()

        assert avoider.context.last_obstacle_distance == pytest.approx(29.0)
        assert avoider.context.last_speed == pytest.approx(29.0 / 5.0)
        assert binding.ranging_probe.raycast_count == 9

    def test_obstacle_beyond_lookahead_is_ignored(self):
        binding = make_binding(obstacles=[{"center": [95, 0, 0], "radius": 1.0}])
        avoider = make_avoider(binding, navigator=FakeNavigator(arrive=False))
        avoider.navigate_to([100, 0, 0])
        avoider.execute()
        avoider.execute()

        assert avoider.context.last_obstacle_distance is None
        assert avoider.context.last_speed == pytest.approx(20.0)

    def test_arrival(self):
        bus = EventBus()
        arrived = []
        bus.subscribe("avoidance_arrived", lambda payload: arrived.append(payload))
        avoider = make_avoider(event_bus=bus)
        avoider.navigate_to([100, 0, 0])
        avoider.execute()
        avoider.execute()

        assert avoider.state_name == "Idle"
        assert avoider.navigation_state == AvoidanceStatus.ARRIVED
        assert arrived == [{"target": [100.0, 0.0, 0.0]}]
        assert not avoider.binding.ranging_probe.raycast_enabled

    def test_stop(self):
        avoider = make_avoider(navigator=FakeNavigator(arrive=False))
        avoider.navigate_to([100, 0, 0])
        avoider.execute()
        avoider.stop()

        assert avoider.state_name == "Idle"
        assert avoider.navigation_state == AvoidanceStatus.IDLE
        assert avoider.navigator.stops >= 1

    def test_arrival_precision_from_config(self):
        navigator = FakeNavigator(arrive=False)
        avoider = make_avoider(navigator=navigator, config=AvoidanceConfig(arrival_precision=0.01))
        avoider.navigate_to([100, 0, 0])
        avoider.execute()
        avoider.execute()

        assert navigator.precision == 0.01
        assert len(navigator.calls) == 1

    def test_disabled_does_not_drive(self):
        navigator = FakeNavigator(arrive=False)
        avoider = make_avoider(navigator=navigator)
        avoider.navigate_to([100, 0, 0])
        avoider.execute()
        avoider.power_off()

        avoider.execute()
        assert navigator.calls == []
        assert not avoider.navigate_to([50, 0, 0])
        assert avoider.state_name == "Idle"

        avoider.power_on()
        assert avoider.navigate_to([50, 0, 0])
        avoider.execute()
        avoider.execute()
        assert len(navigator.calls) == 1

    def test_get_state(self):
        avoider = make_avoider()
        state = avoider.get_state()
        assert state["state"] == "Idle"
        assert state["navigation_state"] == "idle"


class TestScanning:

    def test_obstacle_stops_and_publishes(self):
        bus = EventBus()
        detected = []
        bus.subscribe("obstacle_detected", lambda payload: detected.append(payload))
        avoider = scanning_avoider(bus)

        assert avoider.navigator.stops >= 2
        assert detected[0]["target"] == [100.0, 0.0, 0.0]

    def test_candidate_is_away_from_blocked_corner(self):
        avoider = scanning_avoider()
        avoider.execute()

        scan = avoider.context.current_state
        # top-right blocked: first open ring candidate is centre-left, 45 degrees off forward
        expected = np.array([1.0, 1.0, 0.0]) / math.sqrt(2.0) * 10.0
        assert np.allclose(scan.target, expected)
        assert np.allclose(avoider.aligner.targets[-1], [100, 0, 0])

    def test_twelve_unique_candidates_then_stuck(self):
        bus = EventBus()
        stuck = []
        bus.subscribe("avoidance_stuck", lambda payload: stuck.append(payload))
        avoider = scanning_avoider(bus)
        scan = avoider.context.current_state

        for _ in range(4):
            avoider.execute()
        set_active(avoider, "bl")
        for _ in range(4):
            avoider.execute()
        for _ in range(4):
            avoider.execute()

        assert avoider.state_name == "Scanning"
        assert len(scan.scanned) == 12
        for i, a in enumerate(scan.scanned):
            for b in scan.scanned[i + 1:]:
                assert np.linalg.norm(a - b) > 0.1
        # cardinal fallbacks: right, left, up, down at 90 degrees
        assert np.allclose(scan.scanned[8], [0, -10, 0])
        assert np.allclose(scan.scanned[11], [0, 0, -10])

        avoider.execute()
        assert avoider.state_name == "Idle"
        assert avoider.navigation_state == AvoidanceStatus.STUCK
        assert len(stuck) == 1

    def test_every_corner_blocked_uses_cardinals(self):
        avoider = scanning_avoider()
        set_active(avoider, "tr", "tl", "br", "bl")
        scan = avoider.context.current_state

        for _ in range(4):
            avoider.execute()
        assert len(scan.scanned) == 4
        assert np.allclose(scan.scanned[0], [0, -10, 0])

        avoider.execute()
        assert avoider.navigation_state == AvoidanceStatus.STUCK

    def test_detour_then_original_target(self):
        avoider = scanning_avoider()
        avoider.execute()
        detour = avoider.context.current_state.target.copy()

        set_active(avoider)
        avoider.execute()
        assert avoider.state_name == "Navigating"
        assert avoider.context.is_detour

        avoider.navigator.arrive = True
        avoider.execute()
        assert np.allclose(avoider.navigator.calls[-1][0], detour)
        assert avoider.state_name == "Aligning"
        assert not avoider.context.is_detour

        avoider.execute()
        avoider.execute()
        assert np.allclose(avoider.navigator.calls[-1][0], [100, 0, 0])
        assert avoider.navigation_state == AvoidanceStatus.ARRIVED
