"""Vehicle control systems bound to device sets."""

from autonav.systems.base_system import BaseSystem
from autonav.systems.alignment import AttitudeAligner
from autonav.systems.navigator import Navigator, ThrustDirection
from autonav.systems.ground_steering import GroundSteering, SuspensionQuadrant

__all__ = [
    'BaseSystem', 'AttitudeAligner', 'Navigator', 'ThrustDirection',
    'GroundSteering', 'SuspensionQuadrant',
]
