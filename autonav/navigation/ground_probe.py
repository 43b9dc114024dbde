# autonav/navigation/ground_probe.py
"""Ground distance search with an adjustable-extent detection sensor.

The sensor reports whether ground lies within its current extent. The search
checks the base extent, then the far end of the range, then bisects until the
detecting/non-detecting bracket is narrower than the precision.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Generator, Optional

from autonav.config import GroundProbeConfig

logger = logging.getLogger(__name__)


def _bracket_search(low: float, high: float,
                    precision: float) -> Generator[float, bool, Optional[float]]:
    """Yield extents to test; each is answered with ``send(detected)``.

    The generator's return value is the smallest detecting extent found, or
    None when nothing is detected even at ``high``.
    """
    if (yield low):
        return low
    if not (yield high):
        return None

    while high - low > precision:
        mid = (low + high) / 2.0
        if (yield mid):
            high = mid
        else:
            low = mid
    return high


def bisect_distance(detects: Callable[[float], bool], low: float, high: float,
                    precision: float) -> Optional[float]:
    """Smallest extent in [low, high] at which ``detects`` is true, within precision.

    ``detects`` must be monotonic: once true at some extent, true beyond it.

    Returns:
        float or None when nothing is detected even at ``high``
    """
    search = _bracket_search(low, high, precision)
    extent = next(search)
    try:
        while True:
            extent = search.send(bool(detects(extent)))
    except StopIteration as done:
        return done.value


@dataclass
class GroundProbeResult:
    found: bool
    distance: Optional[float] = None


class GroundProbe:
    """Tick-driven form of ``bisect_distance``: one sensor extent per ``update``."""

    def __init__(self, sensor, search_range: float = None, precision: float = None,
                 config: GroundProbeConfig = None):
        config = config or GroundProbeConfig()
        self.sensor = sensor
        self.search_range = config.search_range if search_range is None else search_range
        self.precision = config.precision if precision is None else precision
        self.result: Optional[GroundProbeResult] = None
        self.steps = 0
        self._base = 0.0
        self._search = None

    @property
    def searching(self) -> bool:
        return self._search is not None and self.result is None

    def start(self):
        """Enable the sensor at its current extent and begin searching."""
        self._base = float(self.sensor.extent)
        self._search = _bracket_search(self._base, self._base + self.search_range, self.precision)
        self.result = None
        self.steps = 0
        self.sensor.enabled = True
        self.sensor.extent = next(self._search)
        logger.debug(f"Ground search started: range {self.search_range}, precision {self.precision}")

    def _finish(self, found: bool, distance: Optional[float]) -> GroundProbeResult:
        self.sensor.extent = self._base
        self.sensor.enabled = False
        self.result = GroundProbeResult(found, distance)
        if found:
            logger.info(f"Ground found at {distance:.2f} after {self.steps} steps")
        else:
            logger.info(f"No ground within {self.search_range}")
        return self.result

    def update(self) -> Optional[GroundProbeResult]:
        """Read the sensor and move to the next extent.

        Returns:
            None while searching, the result once done
        """
        if self.result is not None:
            return self.result
        if self._search is None:
            self.start()
            return None

        self.steps += 1
        try:
            self.sensor.extent = self._search.send(bool(self.sensor.is_active))
        except StopIteration as done:
            if done.value is None:
                return self._finish(False, None)
            return self._finish(True, done.value - self._base)
        return None
