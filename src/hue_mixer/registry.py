"""Control registry: local shadow state for every bridge resource.

Each light and group seen by a sync pass gets one `ControlRecord` pairing its
control-surface assignment with the last brightness and hue the bridge
reported. The assignment is created on first sighting and only mutated after
that, because the control surface keeps a reference to it.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum

from hue_mixer.const import (
    BRI_MAX,
    COLORLOOP_SCENE,
    GROUP_NAME_SUFFIX,
    GROUP_THROTTLE_MS,
    HUE_MAX,
    LIGHT_NAME_SUFFIX,
    LIGHT_THROTTLE_MS,
)
from hue_mixer.control import Assignment, AssignmentOptions, Control, ControlFactory
from hue_mixer.logging_abstraction import get_logger
from hue_mixer.models import Resource, ResourceKind, Scene

logger = get_logger(__name__)

__all__ = ["ControlRecord", "ControlRegistry", "Controlling"]


class Controlling(StrEnum):
    """Channel the single fader of a control currently drives."""

    BRIGHTNESS = "brightness"
    HUE = "hue"


@dataclass(eq=False)
class ControlRecord:
    resource_id: str
    kind: ResourceKind
    assignment: Control
    controlling: Controlling = Controlling.BRIGHTNESS
    brightness: int = BRI_MAX
    hue: int = 0
    scenes: list[str] = field(default_factory=list)
    current_scene: int | None = None

    def channel_volume(self, controlling: Controlling | None = None) -> float:
        """Fader position for a channel's cached raw value, defaulting to the active channel."""
        if (controlling or self.controlling) is Controlling.HUE:
            return self.hue / HUE_MAX
        return self.brightness / BRI_MAX

    def refresh_display(self) -> None:
        """Push the active channel's position and the mode indicator onto the assignment."""
        self.assignment.volume = self.channel_volume()
        self.assignment.running = self.controlling is Controlling.HUE

    def toggle_controlling(self) -> Controlling:
        """Switch the fader to the other channel, restoring that channel's cached position."""
        if self.controlling is Controlling.BRIGHTNESS:
            self.controlling = Controlling.HUE
        else:
            self.controlling = Controlling.BRIGHTNESS
        self.refresh_display()
        return self.controlling

    def advance_scene(self) -> str | None:
        """Move to the next scene, wrapping at the end. Returns None when there are no scenes."""
        if not self.scenes:
            return None
        previous = -1 if self.current_scene is None else self.current_scene
        self.current_scene = (previous + 1) % len(self.scenes)
        return self.scenes[self.current_scene]


class ControlRegistry:
    """Maps bridge resource ids to control records, one table per resource kind.

    Args:
        control_factory: Builds the control-surface object for a new resource.
        on_created: Called once per new record, used to subscribe gesture handlers.

    """

    lp: str = "ControlRegistry:"

    def __init__(
        self,
        control_factory: ControlFactory = Assignment,
        on_created: Callable[[ControlRecord], None] | None = None,
    ) -> None:
        self._control_factory: ControlFactory = control_factory
        self._on_created: Callable[[ControlRecord], None] | None = on_created
        self.lights: dict[str, ControlRecord] = {}
        self.groups: dict[str, ControlRecord] = {}

    def set_on_created(self, on_created: Callable[[ControlRecord], None]) -> None:
        self._on_created = on_created

    def get_light(self, light_id: str) -> ControlRecord | None:
        return self.lights.get(light_id)

    def get_group(self, group_id: str) -> ControlRecord | None:
        return self.groups.get(group_id)

    def records(self) -> Iterator[ControlRecord]:
        yield from self.lights.values()
        yield from self.groups.values()

    def upsert_light(self, light_id: str, resource: Resource) -> ControlRecord:
        return self._upsert(self.lights, ResourceKind.LIGHT, light_id, resource)

    def upsert_group(self, group_id: str, resource: Resource) -> ControlRecord:
        record = self._upsert(self.groups, ResourceKind.GROUP, group_id, resource)
        # repopulated by attach_scenes later in the same pass
        record.scenes = [COLORLOOP_SCENE]
        return record

    def attach_scenes(self, scenes: Mapping[str, Scene]) -> int:
        """Append each scene to its group's record; returns how many were attached.

        Must run after every group of the pass has been upserted. Scenes whose
        group has no record are dropped.
        """
        attached = 0
        for scene_id, scene in scenes.items():
            record = self.groups.get(scene.group) if scene.group is not None else None
            if record is None:
                logger.debug("%s Dropping scene %s: unknown group %s", self.lp, scene_id, scene.group)
                continue
            record.scenes.append(scene_id)
            attached += 1
        return attached

    def _upsert(
        self,
        table: dict[str, ControlRecord],
        kind: ResourceKind,
        resource_id: str,
        resource: Resource,
    ) -> ControlRecord:
        record = table.get(resource_id)
        if record is None:
            record = self._create(kind, resource_id, resource)
            table[resource_id] = record
            if self._on_created is not None:
                self._on_created(record)
            return record

        assignment = record.assignment
        assignment.name = _display_name(kind, resource.name)
        assignment.muted = not resource.on
        record.brightness = resource.bri
        record.hue = resource.hue
        record.refresh_display()
        return record

    def _create(self, kind: ResourceKind, resource_id: str, resource: Resource) -> ControlRecord:
        throttle = LIGHT_THROTTLE_MS if kind is ResourceKind.LIGHT else GROUP_THROTTLE_MS
        assignment = self._control_factory(
            f"{kind}-{resource_id}",
            AssignmentOptions(
                name=_display_name(kind, resource.name),
                muted=not resource.on,
                volume=resource.bri / BRI_MAX,
                throttle=throttle,
            ),
        )
        record = ControlRecord(
            resource_id=resource_id,
            kind=kind,
            assignment=assignment,
            brightness=resource.bri,
            hue=resource.hue,
        )
        logger.info(
            "%s Created control for %s %s",
            self.lp,
            kind,
            resource_id,
            extra={"name": assignment.name, "bri": resource.bri, "hue": resource.hue, "on": resource.on},
        )
        return record


def _display_name(kind: ResourceKind, name: str) -> str:
    suffix = LIGHT_NAME_SUFFIX if kind is ResourceKind.LIGHT else GROUP_NAME_SUFFIX
    return f"{name} {suffix}"
