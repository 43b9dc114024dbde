# autonav/core/event_bus.py
"""Publish/subscribe hub for control-core events.

Components publish state changes (``path_state_changed``, ``docked``,
``obstacle_detected``, ``avoidance_arrived``, ``avoidance_stuck``) with
themselves as ``source``. The bus also keeps a bounded log of recent events
for telemetry.
"""

from collections import deque

DEFAULT_HISTORY = 200


class EventBus:
    _instance = None

    @staticmethod
    def get_instance():
        if EventBus._instance is None:
            EventBus._instance = EventBus()
        return EventBus._instance

    def __init__(self, history=DEFAULT_HISTORY):
        self.listeners = {}
        self.history = deque(maxlen=history)

    def subscribe(self, event_name, callback):
        self.listeners.setdefault(event_name, []).append(callback)

    def publish(self, event_name, payload=None, source=None):
        """Record an event and deliver it to every subscriber.

        Callbacks taking a single ``payload`` argument are called with it; if
        that raises ``TypeError`` the optional ``source`` is passed as well.
        """
        self.history.append({
            "event": event_name,
            "payload": payload,
            "source": getattr(source, "component", None),
        })
        for callback in list(self.listeners.get(event_name, [])):
            try:
                callback(payload)
            except TypeError:
                callback(payload, source)

    def get_recent_events(self, limit=50, event_name=None):
        """Most recent events, oldest first, optionally of one kind."""
        events = [e for e in self.history if event_name is None or e["event"] == event_name]
        return events[-limit:] if limit else []
