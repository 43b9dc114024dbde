# autonav/navigation/path_executor.py
"""Waypoint path recording and playback with docking choreography.

The executor is a state machine ticked by ``update()``:

    Idle -> Recording -> Idle
    Idle -> StartPath -> Aligning -> Moving -> Aligning ... -> StopPath -> Idle
                      \\-> Undocking (start docked)
    Aligning -> Docking (approach, align, final approach) -> Connecting
    Connecting -> Undocking -> Docking | Moving

Every transition is logged and published on the event bus as
``path_state_changed``. A confirmed connection publishes ``docked``.
"""

import logging
from dataclasses import dataclass, asdict
from typing import List, Optional

import numpy as np

from autonav.config import PathConfig
from autonav.core.event_bus import EventBus
from autonav.core.state_machine import Context, State
from autonav.navigation.path import Path, PathLibrary, Waypoint
from autonav.systems.base_system import BaseSystem
from autonav.utils.errors import missing_device_error, success_dict

logger = logging.getLogger(__name__)


@dataclass
class PathNavStatus:
    """Snapshot of the executor, refreshed whenever a state is entered."""

    idle: bool = True
    recording: bool = False
    navigating: bool = False
    moving: bool = False
    docking: bool = False
    undocking: bool = False
    current_path_index: int = 0
    path_name: Optional[str] = None
    current_state_name: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class PathState(State):
    """Base for executor states; class flags are copied into the status on enter."""

    idle = False
    recording = False
    navigating = False
    moving = False
    docking = False
    undocking = False

    def enter(self):
        status = self.context.status
        status.idle = self.idle
        status.recording = self.recording
        status.navigating = self.navigating
        status.moving = self.moving
        status.docking = self.docking
        status.undocking = self.undocking
        status.current_state_name = self.state_name

    def execute(self):
        pass


class IdleState(PathState):
    name = "Idle"
    idle = True


class RecordingState(PathState):
    name = "Recording"
    recording = True

    def __init__(self, context, path: Path):
        super().__init__(context)
        self.path = path

    def add_waypoint(self) -> Waypoint:
        """Capture the current pose and connector state as a waypoint."""
        reference = self.context.reference
        connector = self.context.connector
        is_docking = bool(connector.is_connected)

        docking_direction = np.zeros(3)
        if is_docking and connector.other_forward is not None:
            docking_direction = np.array(connector.other_forward, dtype=float)

        waypoint = Waypoint(
            frame=reference.frame.copy(),
            is_docking=is_docking,
            docking_direction=docking_direction,
        )
        self.path.waypoints.append(waypoint)
        logger.info(f"Recorded waypoint {len(self.path.waypoints)} on '{self.path.name}'"
                    f"{' (docking)' if is_docking else ''}")
        return waypoint


class StartPathState(PathState):
    name = "StartPath"
    navigating = True

    def execute(self):
        if self.context.current_waypoint.is_docking:
            self.context.transition_to(UndockingState(self.context))
        else:
            self.context.transition_to(AligningState(self.context))


class StopPathState(PathState):
    """Transient: stops actuators, then goes idle."""

    name = "StopPath"

    def execute(self):
        self.context.navigator.stop()
        self.context.aligner.stop()
        self.context.transition_to(IdleState(self.context))


class AligningState(PathState):
    name = "Aligning"
    navigating = True

    def execute(self):
        context = self.context
        waypoint = context.current_waypoint
        config = context.config
        context.aligner.precision = (config.docking_align_precision if waypoint.is_docking
                                     else config.normal_align_precision)

        if context.aligner.align_with_frame(waypoint.frame):
            if waypoint.is_docking:
                context.transition_to(DockingState(context))
            else:
                context.transition_to(MovingState(context))


class MovingState(PathState):
    name = "Moving"
    navigating = True
    moving = True

    def execute(self):
        context = self.context
        waypoint = context.current_waypoint
        context.navigator.precision = context.config.normal_nav_precision

        if context.navigator.navigate_to(waypoint.position, context.max_speed):
            if context.advance():
                context.transition_to(AligningState(context))
            else:
                context.transition_to(StopPathState(context))


class DockingState(PathState):
    """Approach point, then waypoint orientation, then the exact position."""

    name = "Docking"
    navigating = True
    docking = True

    APPROACH = "approach"
    ALIGN = "align"
    FINAL = "final"

    def enter(self):
        super().enter()
        self.phase = self.APPROACH

    def execute(self):
        context = self.context
        waypoint = context.current_waypoint
        config = context.config

        if self.phase == self.APPROACH:
            context.navigator.precision = config.normal_nav_precision
            target = waypoint.approach_point(config.approach_distance)
            if context.navigator.navigate_to(target, context.max_speed):
                logger.debug("Docking: approach point reached")
                self.phase = self.ALIGN
        elif self.phase == self.ALIGN:
            context.aligner.precision = config.docking_align_precision
            if context.aligner.align_with_frame(waypoint.frame):
                logger.debug("Docking: aligned with docking frame")
                self.phase = self.FINAL
        else:
            context.navigator.precision = config.docking_nav_precision
            if context.navigator.navigate_to(waypoint.position, context.max_speed):
                context.transition_to(ConnectingState(context))


class ConnectingState(PathState):
    """Engage the connector, nudging around the docking position on failure.

    Candidates form a 3x3 grid of ``nudge_distance`` offsets along the
    waypoint's up and right axes (rows up to down, columns left to right),
    with the centre cell replaced by a forward nudge. They are visited
    starting at the centre: 4, 5, 6, 7, 8, 0, 1, 2, 3.
    """

    name = "Connecting"
    navigating = True
    docking = True

    VISIT_ORDER = (4, 5, 6, 7, 8, 0, 1, 2, 3)

    def enter(self):
        super().enter()
        waypoint = self.context.current_waypoint
        self.candidates = self.build_candidates(waypoint, self.context.config.nudge_distance)
        self.next_candidate = 0
        self.context.connector.connect()

    @classmethod
    def build_candidates(cls, waypoint: Waypoint, nudge: float) -> List[np.ndarray]:
        frame = waypoint.frame
        grid = []
        for up in (1, 0, -1):
            for right in (-1, 0, 1):
                grid.append(frame.position + frame.up * up * nudge + frame.right * right * nudge)
        grid[4] = frame.position + frame.forward * nudge
        return [grid[i] for i in cls.VISIT_ORDER]

    def execute(self):
        context = self.context
        if context.connector.is_connected:
            self._on_connected()
            return

        if self.next_candidate >= len(self.candidates):
            logger.warning(f"Docking aborted: no connection at waypoint {context.current_path_index}")
            context.transition_to(StopPathState(context))
            return

        context.navigator.precision = context.config.docking_nav_precision
        if context.navigator.navigate_to(self.candidates[self.next_candidate], context.max_speed):
            logger.debug(f"Connect attempt at nudge {self.next_candidate + 1}")
            context.connector.connect()
            self.next_candidate += 1

    def _on_connected(self):
        context = self.context
        logger.info(f"Docked at waypoint {context.current_path_index}")
        context.event_bus.publish("docked", {
            "path": context.status.path_name,
            "index": context.current_path_index,
        }, source=context.executor)

        if context.is_last_waypoint():
            context.advance()
            context.transition_to(StopPathState(context))
        else:
            context.transition_to(UndockingState(context))


class UndockingState(PathState):
    """Leave the current (docked) waypoint via its approach point."""

    name = "Undocking"
    navigating = True
    undocking = True

    def execute(self):
        context = self.context
        waypoint = context.current_waypoint
        if context.connector.is_connected:
            context.connector.disconnect()

        context.navigator.precision = context.config.normal_nav_precision
        target = waypoint.approach_point(context.config.approach_distance)
        if context.navigator.navigate_to(target, context.max_speed):
            if not context.advance():
                context.transition_to(StopPathState(context))
            elif context.current_waypoint.is_docking:
                context.transition_to(DockingState(context))
            else:
                context.transition_to(MovingState(context))


# States from which stop_path() aborts the run
ACTIVE_STATES = (StartPathState, AligningState, MovingState, DockingState,
                 ConnectingState, UndockingState)


class PathNavContext(Context):
    """Holds the path being run and the collaborators states drive."""

    def __init__(self, executor):
        super().__init__()
        self.executor = executor
        self.status = PathNavStatus()
        self.current_path: Optional[Path] = None
        self.is_reversed = False
        self.max_speed = 20.0
        self._current_path_index = 0
        self.transition_to(IdleState(self))

    @property
    def reference(self):
        return self.executor.reference

    @property
    def connector(self):
        return self.executor.binding.connector

    @property
    def navigator(self):
        return self.executor.navigator

    @property
    def aligner(self):
        return self.executor.aligner

    @property
    def config(self) -> PathConfig:
        return self.executor.config

    @property
    def event_bus(self) -> EventBus:
        return self.executor.event_bus

    @property
    def current_path_index(self) -> int:
        return self._current_path_index

    @current_path_index.setter
    def current_path_index(self, value: int):
        self._current_path_index = value
        self.status.current_path_index = value

    @property
    def current_waypoint(self) -> Waypoint:
        return self.current_path.waypoints[self._current_path_index]

    def _step(self) -> int:
        return -1 if self.is_reversed else 1

    def _in_bounds(self, index: int) -> bool:
        return 0 <= index < len(self.current_path.waypoints)

    def is_last_waypoint(self) -> bool:
        return not self._in_bounds(self._current_path_index + self._step())

    def advance(self) -> bool:
        """Step to the next waypoint; False once the path is complete."""
        self.current_path_index = self._current_path_index + self._step()
        return self._in_bounds(self._current_path_index)

    def start_path(self, path: Path, max_speed: float, reverse: bool = False, start_index: int = 0):
        self.current_path = path
        self.max_speed = max_speed
        self.is_reversed = reverse
        self.status.path_name = path.name

        count = len(path.waypoints)
        if reverse:
            # Start index counts from the end
            index = count - 1 if start_index == 0 else count - 1 - start_index
        else:
            index = start_index
        if not 0 <= index < count:
            index = count - 1 if reverse else 0
        self.current_path_index = index
        self.transition_to(StartPathState(self))

    def on_transition(self, previous, state):
        logger.info(f"PathExecutor: {state.state_name}")
        self.event_bus.publish("path_state_changed", {
            "previous": previous.state_name if previous else None,
            "state": state.state_name,
            "path": self.status.path_name,
            "index": self._current_path_index,
        }, source=self.executor)


class PathExecutor(BaseSystem):
    """Records and replays waypoint paths using a navigator and an aligner."""

    component = "PathExecutor"

    def __init__(self, binding, navigator, aligner, config: PathConfig = None, event_bus=None):
        super().__init__(binding, config or PathConfig())
        self.navigator = navigator
        self.aligner = aligner
        self.event_bus = event_bus or EventBus.get_instance()
        self.library = PathLibrary()
        self.context = PathNavContext(self)

    def initialize(self):
        error = self._require_reference()
        if error is None and self.binding.connector is None:
            error = missing_device_error(self.component, "connector")
        if error is not None:
            return self._finish_initialize(error)
        return self._finish_initialize(success_dict("Path executor ready"))

    @property
    def status(self) -> PathNavStatus:
        return self.context.status

    @property
    def state_name(self) -> Optional[str]:
        return self.context.state_name

    # ----- Recording -----
    def start_recording(self, name: str) -> bool:
        """Begin recording a new path, replacing any path with that name."""
        if not self.status.idle:
            logger.warning(f"Cannot record '{name}' while {self.state_name}")
            return False
        path = Path(name, speed=self.config.default_speed)
        self.library.add(path)
        self.status.path_name = name
        self.context.transition_to(RecordingState(self.context, path))
        return True

    def add_waypoint(self) -> Optional[Waypoint]:
        state = self.context.current_state
        if not isinstance(state, RecordingState):
            return None
        return state.add_waypoint()

    def stop_recording(self) -> bool:
        if not self.context.is_in(RecordingState):
            return False
        self.context.transition_to(IdleState(self.context))
        return True

    def clear_path(self, name: str) -> bool:
        if not self.status.idle:
            return False
        return self.library.remove(name)

    # ----- Playback -----
    def start_path(self, name: str, reverse: bool = False, start_index: int = 0) -> bool:
        """Run the named path; ignored if it is missing or empty."""
        if not self.enabled:
            logger.warning(f"{self.component}: Disabled")
            return False
        path = self.library.get(name)
        if path is None or not path.waypoints:
            logger.warning(f"Path '{name}' not found or empty")
            return False
        self.context.start_path(path, path.speed, reverse, start_index)
        return True

    def stop_path(self) -> bool:
        if not self.context.is_in(*ACTIVE_STATES):
            return False
        self.context.transition_to(StopPathState(self.context))
        return True

    def update(self):
        """Run one tick of the active state."""
        if not self.enabled:
            return
        self.context.execute()

    def stop(self):
        self.navigator.stop()
        self.aligner.stop()
        self.context.transition_to(IdleState(self.context))

    # ----- Library -----
    def get_path_names(self) -> List[str]:
        return self.library.names()

    def get_path_point_count(self, name: str) -> int:
        path = self.library.get(name)
        return len(path.waypoints) if path else 0

    def has_path(self, name: str) -> bool:
        return self.get_path_point_count(name) > 0

    def get_path(self, name: str) -> Optional[Path]:
        return self.library.get(name)

    def save(self) -> str:
        return self.library.save()

    def load(self, text: str) -> int:
        return self.library.load(text)

    def get_state(self):
        state = super().get_state()
        state.update(self.status.to_dict())
        return state
