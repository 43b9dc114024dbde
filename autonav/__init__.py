"""autonav: motion control and waypoint path execution for autonomous vehicles."""

__version__ = "0.1.0"
