"""Feedback controllers."""

from .pid import PIDController, AnglePIDController, wrap_angle

__all__ = ['PIDController', 'AnglePIDController', 'wrap_angle']
