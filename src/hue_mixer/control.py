"""Control-surface side of the bridge.

The reconciliation core only talks to the `Control` protocol: an object with
mutable display properties and a subscribe-by-event-name ``on()`` method. A
host integrates its own control surface by passing a `ControlFactory` to the
registry. `Assignment` is the in-memory implementation used by the CLI and the
tests.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

__all__ = ["Assignment", "AssignmentOptions", "Control", "ControlFactory", "GestureHandler"]

GestureHandler = Callable[..., None]


@dataclass(frozen=True)
class AssignmentOptions:
    """Initial display state of a new control."""

    name: str
    muted: bool
    volume: float
    throttle: int  # UI debounce hint in milliseconds
    running: bool = False


class Control(Protocol):
    """A control-surface assignment the sync engine can read and update."""

    id: str
    name: str
    muted: bool
    volume: float
    running: bool
    throttle: int

    def on(self, event: str, handler: GestureHandler) -> None:
        """Subscribe to a named gesture event."""
        ...


ControlFactory = Callable[[str, AssignmentOptions], Control]


class Assignment:
    """In-memory control with synchronous event dispatch."""

    def __init__(self, assignment_id: str, options: AssignmentOptions) -> None:
        self.id: str = assignment_id
        self.name: str = options.name
        self.muted: bool = options.muted
        self.running: bool = options.running
        self.throttle: int = options.throttle
        self._volume: float = 0.0
        self.volume = options.volume
        self._handlers: defaultdict[str, list[GestureHandler]] = defaultdict(list)

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        self._volume = min(1.0, max(0.0, float(value)))

    def on(self, event: str, handler: GestureHandler) -> None:
        self._handlers[event].append(handler)

    def emit(self, event: str, *args: object) -> None:
        """Dispatch a gesture to every handler subscribed to `event`."""
        for handler in list(self._handlers.get(event, ())):
            handler(*args)

    def subscribed_events(self) -> list[str]:
        return [event for event, handlers in self._handlers.items() if handlers]

    def __repr__(self) -> str:
        return (
            f"Assignment(id={self.id!r}, name={self.name!r}, muted={self.muted}, "
            f"volume={self.volume:.3f}, running={self.running})"
        )
