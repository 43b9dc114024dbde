# autonav/navigation/path.py
"""Recorded waypoint paths and their persisted text format.

A library is saved as path records joined by a delimiter line::

    NAME:dock_run
    SPEED:20.00
    WAYPOINTS:1
    WP0:
      POS:1.00000000,2.00000000,3.00000000
      FWD:1.00000000,0.00000000,0.00000000
      RGT:0.00000000,-1.00000000,0.00000000
      UP:0.00000000,0.00000000,1.00000000
      DOCK:True
      DOCKDIR:1.00000000,0.00000000,0.00000000
    ---PATH---
    NAME:...

Lines are matched by prefix. Unparseable lines are skipped, so records written
before docking directions existed (no ``DOCKDIR`` line) still load. A record
without waypoints is dropped.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

import numpy as np

from autonav.core.frame import OrientationFrame
from autonav.utils.errors import PathNotFoundError
from autonav.utils.math_utils import as_vector, EPSILON

logger = logging.getLogger(__name__)

PATH_DELIMITER = "\n---PATH---\n"
DEFAULT_PATH_SPEED = 20.0


def _format_vector(vector) -> str:
    return ",".join(f"{float(v):.8f}" for v in vector)


def _parse_vector(text: str) -> Optional[np.ndarray]:
    parts = text.split(",")
    if len(parts) != 3:
        return None
    try:
        return np.array([float(p) for p in parts])
    except ValueError:
        return None


def _parse_bool(text: str) -> Optional[bool]:
    value = text.strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return None


@dataclass
class Waypoint:
    """Recorded pose plus docking data.

    Attributes:
        frame: Vehicle frame at recording time
        is_docking: Whether the connector was locked when recorded
        docking_direction: Forward of the connector docked to, zero if unknown
    """

    frame: OrientationFrame = field(default_factory=OrientationFrame)
    is_docking: bool = False
    docking_direction: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        self.docking_direction = as_vector(self.docking_direction)

    @property
    def position(self) -> np.ndarray:
        return self.frame.position

    def approach_direction(self) -> np.ndarray:
        """Direction to back away along when approaching or leaving the waypoint."""
        if np.linalg.norm(self.docking_direction) > EPSILON:
            return self.docking_direction
        return self.frame.forward

    def approach_point(self, distance: float) -> np.ndarray:
        return self.frame.position + self.approach_direction() * distance

    def to_dict(self, precision: Optional[int] = None) -> dict:
        payload = self.frame.to_dict(precision)
        payload["is_docking"] = self.is_docking
        direction = [float(v) for v in self.docking_direction]
        if precision is not None:
            direction = [round(v, precision) for v in direction]
        payload["docking_direction"] = direction
        return payload


@dataclass
class Path:
    """Named, ordered list of waypoints with a cruise speed."""

    name: str
    speed: float = DEFAULT_PATH_SPEED
    waypoints: List[Waypoint] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.waypoints)

    def reversed_copy(self, name: Optional[str] = None) -> "Path":
        """Copy with the waypoint order reversed."""
        waypoints = [
            Waypoint(wp.frame.copy(), wp.is_docking, wp.docking_direction.copy())
            for wp in reversed(self.waypoints)
        ]
        return Path(name or self.name, self.speed, waypoints)

    def describe(self) -> str:
        """Multi-line human readable listing."""
        if not self.waypoints:
            return "No waypoints recorded."

        blocks = []
        for i, wp in enumerate(self.waypoints, start=1):
            frame = wp.frame
            blocks.append(
                f"{i}: P: {np.round(frame.position, 2).tolist()}\n"
                f"F: {np.round(frame.forward, 2).tolist()}\n"
                f"R: {np.round(frame.right, 2).tolist()}\n"
                f"U: {np.round(frame.up, 2).tolist()}\n"
                f"Is Docking: {wp.is_docking}"
            )
        return f"Path: {self.name}\n" + "\n\n".join(blocks)

    def to_dict(self, precision: Optional[int] = None) -> dict:
        return {
            "name": self.name,
            "speed": self.speed,
            "waypoints": [wp.to_dict(precision) for wp in self.waypoints],
        }


def serialize_path(path: Path) -> str:
    lines = [
        f"NAME:{path.name}",
        f"SPEED:{path.speed:.2f}",
        f"WAYPOINTS:{len(path.waypoints)}",
    ]
    for i, wp in enumerate(path.waypoints):
        frame = wp.frame
        lines.extend([
            f"WP{i}:",
            f"  POS:{_format_vector(frame.position)}",
            f"  FWD:{_format_vector(frame.forward)}",
            f"  RGT:{_format_vector(frame.right)}",
            f"  UP:{_format_vector(frame.up)}",
            f"  DOCK:{wp.is_docking}",
            f"  DOCKDIR:{_format_vector(wp.docking_direction)}",
        ])
    return "\n".join(lines) + "\n"


# Waypoint line prefix -> attribute written on the waypoint being parsed
_VECTOR_FIELDS = {
    "POS:": "position",
    "FWD:": "forward",
    "RGT:": "right",
    "UP:": "up",
    "DOCKDIR:": "docking_direction",
}


def _apply_waypoint_line(waypoint: Waypoint, line: str) -> bool:
    if line.startswith("DOCK:"):
        value = _parse_bool(line[len("DOCK:"):])
        if value is None:
            return False
        waypoint.is_docking = value
        return True

    for prefix, attribute in _VECTOR_FIELDS.items():
        if line.startswith(prefix):
            vector = _parse_vector(line[len(prefix):])
            if vector is None:
                return False
            if attribute == "docking_direction":
                waypoint.docking_direction = vector
            else:
                setattr(waypoint.frame, attribute, vector)
            return True
    return False


def deserialize_path(text: str) -> Optional[Path]:
    """Parse one path record.

    Returns:
        Path or None when the record holds no waypoints
    """
    path = Path("unnamed")
    current = None

    for raw in text.split("\n"):
        line = raw.strip()
        if not line:
            continue
        if line.startswith("NAME:"):
            path.name = line[len("NAME:"):]
        elif line.startswith("SPEED:"):
            try:
                path.speed = float(line[len("SPEED:"):])
            except ValueError:
                logger.debug(f"Skipping unparseable speed line: {line!r}")
        elif line.startswith("WAYPOINTS:"):
            continue
        elif line.startswith("WP") and line.endswith(":"):
            current = Waypoint()
            path.waypoints.append(current)
        elif current is not None and _apply_waypoint_line(current, line):
            continue
        else:
            logger.debug(f"Skipping unparseable path line: {line!r}")

    if not path.waypoints:
        return None
    return path


class PathLibrary:
    """Named paths in insertion order."""

    def __init__(self):
        self._paths: Dict[str, Path] = {}

    def __contains__(self, name) -> bool:
        return name in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[Path]:
        return iter(list(self._paths.values()))

    def names(self) -> List[str]:
        return list(self._paths.keys())

    def get(self, name: str) -> Optional[Path]:
        return self._paths.get(name)

    def require(self, name: str) -> Path:
        path = self._paths.get(name)
        if path is None:
            raise PathNotFoundError(f"Path '{name}' not found")
        return path

    def add(self, path: Path):
        """Store ``path``, replacing any path with the same name."""
        self._paths[path.name] = path

    def remove(self, name: str) -> bool:
        return self._paths.pop(name, None) is not None

    def clear(self):
        self._paths.clear()

    def save(self) -> str:
        return PATH_DELIMITER.join(serialize_path(p) for p in self._paths.values())

    def load(self, text: str) -> int:
        """Merge paths parsed from ``text``; returns the number loaded."""
        if not text:
            return 0
        loaded = 0
        for section in text.split(PATH_DELIMITER):
            if not section.strip():
                continue
            path = deserialize_path(section)
            if path is None:
                logger.debug("Dropping path record without waypoints")
                continue
            self._paths[path.name] = path
            loaded += 1
        return loaded

    @classmethod
    def from_text(cls, text: str) -> "PathLibrary":
        library = cls()
        library.load(text)
        return library

    @classmethod
    def load_file(cls, filepath: str) -> "PathLibrary":
        with open(filepath, 'r') as f:
            library = cls.from_text(f.read())
        logger.info(f"Loaded {len(library)} paths from {filepath}")
        return library

    def save_file(self, filepath: str):
        with open(filepath, 'w') as f:
            f.write(self.save())
        logger.info(f"Saved {len(self)} paths to {filepath}")
