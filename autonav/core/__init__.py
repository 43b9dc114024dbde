"""Core infrastructure: frames, devices, state machine and event bus."""

from autonav.core.frame import OrientationFrame
from autonav.core.state_machine import State, Context
from autonav.core.event_bus import EventBus
from autonav.core.devices import (
    ReferenceSensor, Gyro, Thruster, Connector, ProximitySensor,
    RangingProbe, Suspension, DetectionSensor, VehicleBinding,
)

__all__ = [
    'OrientationFrame', 'State', 'Context', 'EventBus',
    'ReferenceSensor', 'Gyro', 'Thruster', 'Connector', 'ProximitySensor',
    'RangingProbe', 'Suspension', 'DetectionSensor', 'VehicleBinding',
]
