# autonav/systems/base_system.py

"""Common interface for vehicle control systems."""

import logging

from autonav.utils.errors import missing_device_error

logger = logging.getLogger(__name__)


class BaseSystem:
    """Base class providing shared fields and helpers for control systems.

    A system is bound to a :class:`autonav.core.devices.VehicleBinding` and
    must be initialized before use. ``initialize`` never raises; it returns a
    success or error dict and leaves ``initialized`` False on failure.
    """

    #: Name used in initialization messages
    component = "System"

    def __init__(self, binding, config=None):
        self.binding = binding
        self.config = config
        self.enabled = True
        self.initialized = False
        self.last_error = None

    @property
    def reference(self):
        return self.binding.reference if self.binding is not None else None

    def initialize(self):
        """Validate and classify bound devices."""
        raise NotImplementedError("initialize must be implemented by subclasses")

    def _require_reference(self):
        if self.reference is None:
            return missing_device_error(self.component, "remote control")
        return None

    def _finish_initialize(self, result):
        self.initialized = bool(result.get("ok"))
        self.last_error = None if self.initialized else result
        if self.initialized:
            logger.info(f"{self.component} initialized")
        else:
            logger.warning(result.get("message"))
        return result

    def get_state(self):
        return {
            "component": self.component,
            "enabled": self.enabled,
            "initialized": self.initialized,
        }

    def power_on(self):
        self.enabled = True
        return {"status": f"{self.component} enabled"}

    def power_off(self):
        self.enabled = False
        self.stop()
        return {"status": f"{self.component} disabled"}

    def stop(self):
        """Release every actuator this system commands."""
