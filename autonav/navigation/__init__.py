"""Path recording/playback, collision avoidance and ground probing."""

from autonav.navigation.path import Waypoint, Path, PathLibrary, serialize_path, deserialize_path
from autonav.navigation.path_executor import PathExecutor, PathNavStatus
from autonav.navigation.collision_avoidance import CollisionAvoider, AvoidanceStatus
from autonav.navigation.ground_probe import GroundProbe, GroundProbeResult, bisect_distance

__all__ = [
    'Waypoint', 'Path', 'PathLibrary', 'serialize_path', 'deserialize_path',
    'PathExecutor', 'PathNavStatus', 'CollisionAvoider', 'AvoidanceStatus',
    'GroundProbe', 'GroundProbeResult', 'bisect_distance',
]
