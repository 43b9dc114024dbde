# autonav/config.py
"""Tunable parameters for the control core.

Every component takes one of the dataclasses below. Defaults are the values
the components were tuned with; ``load_config`` reads overrides from a YAML or
JSON file with one section per component::

    alignment:
      gains: {kp: 10.0, ki: 0.0, kd: 0.0}
      precision: 0.01
    navigator:
      braking_distance_factor: 3.0
    path:
      approach_distance: 2.0
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

import yaml

from autonav.utils.errors import ValidationError

logger = logging.getLogger(__name__)

#: Nominal control tick (seconds)
DEFAULT_TIME_STEP = 1.0 / 6.0


def _parse_float(value: Any, label: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} must be a number") from exc


def _parse_bool(value: Any, label: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false", "yes", "no", "on", "off"):
        return value.lower() in ("true", "yes", "on")
    if isinstance(value, (int, float)):
        return bool(value)
    raise ValidationError(f"{label} must be a boolean")


def _update_from_dict(instance, data: Optional[Dict[str, Any]], section: str):
    """Overwrite scalar fields of ``instance`` with values from ``data``."""
    if not data:
        return instance
    if not isinstance(data, dict):
        raise ValidationError(f"{section} must be a mapping")

    known = {f.name: f for f in fields(instance)}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown {section} setting: {key}")
            continue
        label = f"{section}.{key}"
        current = getattr(instance, key)
        if isinstance(current, PIDGains):
            setattr(instance, key, _update_from_dict(PIDGains(**current.to_dict()), value, label))
        elif isinstance(current, bool):
            setattr(instance, key, _parse_bool(value, label))
        else:
            setattr(instance, key, _parse_float(value, label))
    return instance


def _to_dict(instance) -> Dict[str, Any]:
    payload = {}
    for f in fields(instance):
        value = getattr(instance, f.name)
        payload[f.name] = value.to_dict() if hasattr(value, "to_dict") else value
    return payload


@dataclass
class PIDGains:
    """Proportional, integral and derivative gains."""

    kp: float = 0.0
    ki: float = 0.0
    kd: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], section: str = "gains") -> "PIDGains":
        return _update_from_dict(cls(), data, section)

    def to_dict(self) -> Dict[str, float]:
        return {"kp": self.kp, "ki": self.ki, "kd": self.kd}


@dataclass
class AlignmentConfig:
    """Attitude aligner tuning.

    ``precision`` bounds every axis error and the angular speed at convergence.
    """

    gains: PIDGains = field(default_factory=lambda: PIDGains(kp=10.0))
    time_step: float = DEFAULT_TIME_STEP
    precision: float = 0.01

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AlignmentConfig":
        return _update_from_dict(cls(), data, "alignment")

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass
class NavigatorConfig:
    """Point-to-point navigator tuning."""

    gains: PIDGains = field(default_factory=lambda: PIDGains(kp=3.0, ki=1.0))
    time_step: float = DEFAULT_TIME_STEP
    factor_gravity: bool = False
    braking_distance_factor: float = 3.0
    precision: float = 0.1
    # Minimum dot product for a thruster to join a direction group
    classification_threshold: float = 0.7

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "NavigatorConfig":
        return _update_from_dict(cls(), data, "navigator")

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass
class PathConfig:
    """Waypoint path executor precisions and docking geometry."""

    normal_nav_precision: float = 0.2
    normal_align_precision: float = 0.01
    docking_nav_precision: float = 0.1
    docking_align_precision: float = 0.01
    approach_distance: float = 2.0
    nudge_distance: float = 0.01
    default_speed: float = 20.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PathConfig":
        return _update_from_dict(cls(), data, "path")

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass
class AvoidanceConfig:
    """Collision avoidance geometry."""

    detour_distance: float = 10.0
    min_speed: float = 2.0
    # Cruise speed is distance / speed_distance_divisor
    speed_distance_divisor: float = 5.0
    # Raycast lookahead is speed * lookahead_factor
    lookahead_factor: float = 4.0
    # Off-centre rays sit at bounding radius * probe_spread
    probe_spread: float = 0.5
    duplicate_radius: float = 0.1
    arrival_precision: float = 0.1

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AvoidanceConfig":
        return _update_from_dict(cls(), data, "avoidance")

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass
class SteeringConfig:
    """Ground vehicle heading hold."""

    gains: PIDGains = field(default_factory=lambda: PIDGains(kp=1.0))
    time_step: float = DEFAULT_TIME_STEP
    arrival_distance: float = 1.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SteeringConfig":
        return _update_from_dict(cls(), data, "steering")

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass
class GroundProbeConfig:
    """Bisection ground search."""

    search_range: float = 50.0
    precision: float = 0.1

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GroundProbeConfig":
        return _update_from_dict(cls(), data, "ground_probe")

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass
class ControlConfig:
    """All component settings."""

    alignment: AlignmentConfig = field(default_factory=AlignmentConfig)
    navigator: NavigatorConfig = field(default_factory=NavigatorConfig)
    path: PathConfig = field(default_factory=PathConfig)
    avoidance: AvoidanceConfig = field(default_factory=AvoidanceConfig)
    steering: SteeringConfig = field(default_factory=SteeringConfig)
    ground_probe: GroundProbeConfig = field(default_factory=GroundProbeConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ControlConfig":
        data = data or {}
        if not isinstance(data, dict):
            raise ValidationError("Configuration must be a mapping")
        return cls(
            alignment=AlignmentConfig.from_dict(data.get("alignment")),
            navigator=NavigatorConfig.from_dict(data.get("navigator")),
            path=PathConfig.from_dict(data.get("path")),
            avoidance=AvoidanceConfig.from_dict(data.get("avoidance")),
            steering=SteeringConfig.from_dict(data.get("steering")),
            ground_probe=GroundProbeConfig.from_dict(data.get("ground_probe")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


def load_config(filepath: str) -> ControlConfig:
    """Load control settings from a YAML or JSON file.

    Args:
        filepath: Path to config file (.yaml, .yml or .json)

    Returns:
        ControlConfig: Settings with file values over the defaults

    Raises:
        ValidationError: Unsupported extension or invalid values
    """
    _, ext = os.path.splitext(filepath)

    with open(filepath, 'r') as f:
        if ext in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        elif ext == '.json':
            data = json.load(f)
        else:
            raise ValidationError(f"Unsupported file format: {ext}")

    config = ControlConfig.from_dict(data)
    logger.info(f"Loaded control config from {filepath}")
    return config


def save_config(config: ControlConfig, filepath: str):
    """Write settings to YAML or JSON by extension."""
    _, ext = os.path.splitext(filepath)
    payload = config.to_dict()
    with open(filepath, 'w') as f:
        if ext in ['.yaml', '.yml']:
            yaml.safe_dump(payload, f, sort_keys=False)
        elif ext == '.json':
            json.dump(payload, f, indent=2)
        else:
            raise ValidationError(f"Unsupported file format: {ext}")
