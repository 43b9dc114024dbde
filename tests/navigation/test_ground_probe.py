# tests/navigation/test_ground_probe.py
"""Tests for the ground distance search."""

import pytest

from autonav.config import GroundProbeConfig
from autonav.core.devices import DetectionSensor
from autonav.navigation.ground_probe import GroundProbe, bisect_distance


def run_probe(probe, limit=100):
    for _ in range(limit):
        result = probe.update()
        if result is not None:
            return result
    raise AssertionError("ground search did not finish")


class TestBisectDistance:

    def test_finds_threshold(self):
        found = bisect_distance(lambda extent: extent >= 12.34, 0.0, 50.0, 0.01)
        assert 12.34 <= found <= 12.35

    def test_detected_at_low(self):
        assert bisect_distance(lambda extent: True, 3.0, 50.0, 0.1) == 3.0

    def test_nothing_detected(self):
        assert bisect_distance(lambda extent: False, 0.0, 50.0, 0.1) is None


class TestGroundProbe:

    def test_finds_ground(self):
        sensor = DetectionSensor({"extent": 1.0, "ground_distance": 20.3})
        probe = GroundProbe(sensor, search_range=50.0, precision=0.1)
        result = run_probe(probe)

        assert result.found
        # Distance is measured beyond the base extent
        assert 19.3 <= result.distance <= 19.4
        assert sensor.extent == 1.0
        assert not sensor.enabled
        assert not probe.searching

    def test_first_update_only_starts(self):
        sensor = DetectionSensor({"extent": 1.0, "ground_distance": 0.5})
        probe = GroundProbe(sensor)
        assert probe.update() is None
        assert probe.searching
        assert sensor.enabled

    def test_ground_within_base_extent(self):
        sensor = DetectionSensor({"extent": 1.0, "ground_distance": 0.5})
        result = run_probe(GroundProbe(sensor))
        assert result.found
        assert result.distance == 0.0

    def test_no_ground_in_range(self):
        sensor = DetectionSensor({"extent": 1.0, "ground_distance": 80.0})
        probe = GroundProbe(sensor, search_range=50.0)
        result = run_probe(probe)

        assert not result.found
        assert result.distance is None
        assert probe.steps == 2
        assert sensor.extent == 1.0

    def test_one_extent_per_update(self):
        sensor = DetectionSensor({"extent": 0.0, "ground_distance": 10.0})
        probe = GroundProbe(sensor, search_range=64.0, precision=1.0)
        run_probe(probe)
        # base, range, then halving 64 down to 1
        assert probe.steps == 2 + 6

    def test_result_is_kept(self):
        sensor = DetectionSensor({"extent": 1.0, "ground_distance": 0.5})
        probe = GroundProbe(sensor)
        result = run_probe(probe)
        assert probe.update() is result

    def test_config_defaults(self):
        probe = GroundProbe(DetectionSensor(), config=GroundProbeConfig(search_range=25.0, precision=0.5))
        assert probe.search_range == 25.0
        assert probe.precision == 0.5

    def test_restart(self):
        sensor = DetectionSensor({"extent": 1.0, "ground_distance": 5.0})
        probe = GroundProbe(sensor, precision=0.5)
        first = run_probe(probe)
        probe.start()
        assert probe.searching
        second = run_probe(probe)
        assert second.distance == pytest.approx(first.distance)

    @pytest.mark.parametrize("ground", [0.5, 3.2, 17.0, 49.9, 80.0])
    def test_matches_direct_search(self, ground):
        sensor = DetectionSensor({"extent": 1.0, "ground_distance": ground})
        result = run_probe(GroundProbe(sensor, search_range=50.0, precision=0.1))

        expected = bisect_distance(lambda extent: ground <= extent, 1.0, 51.0, 0.1)
        if expected is None:
            assert not result.found
        else:
            assert result.distance == pytest.approx(expected - 1.0)
