"""Models for Hue bridge resources.

Bridge JSON is decoded once, here, into `Resource` and `Scene` values with
their defaults resolved (bri 254, hue 0), so sync code never has to guess at
missing fields.

Light response structure (``GET /lights``):
    {
        "1": {"name": "Desk", "state": {"on": true, "bri": 127, "hue": 8418, "sat": 140, ...}},
        ...
    }

Groups carry the same fields under ``action`` plus a ``lights`` id list, and
scenes reference their owning group through ``group``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from hue_mixer.const import BRI_MAX
from hue_mixer.logging_abstraction import get_logger

logger = get_logger(__name__)

__all__ = [
    "HueGroup",
    "HueLight",
    "HueScene",
    "LightState",
    "Resource",
    "ResourceKind",
    "Scene",
    "decode_groups",
    "decode_lights",
    "decode_scenes",
]


class ResourceKind(StrEnum):
    LIGHT = "light"
    GROUP = "group"


class LightState(BaseModel):
    """The ``state`` object of a light, or the ``action`` object of a group."""

    model_config = ConfigDict(extra="ignore")

    on: bool = False
    bri: int = BRI_MAX
    hue: int = 0
    sat: int = 0
    effect: str = "none"
    colormode: str | None = None

    @field_validator("on", "bri", "hue", "sat", "effect", mode="before")
    @classmethod
    def _null_to_default(cls, value: Any, info: Any) -> Any:
        # the bridge reports null for channels a bulb does not have
        if value is None:
            return cls.model_fields[info.field_name].default
        return value


class HueLight(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    state: LightState = Field(default_factory=LightState)


class HueGroup(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    action: LightState = Field(default_factory=LightState)
    lights: list[str] = Field(default_factory=list)
    type: str | None = None

    @field_validator("lights", mode="before")
    @classmethod
    def _ids_as_str(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(v) for v in value]
        return value


class HueScene(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    group: str | None = None
    lights: list[str] = Field(default_factory=list)

    @field_validator("group", mode="before")
    @classmethod
    def _group_as_str(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("lights", mode="before")
    @classmethod
    def _ids_as_str(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(v) for v in value]
        return value


class Resource(BaseModel):
    """A light or group as seen by the sync engine."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: ResourceKind
    name: str
    on: bool = False
    bri: int = BRI_MAX
    hue: int = 0
    sat: int = 0
    effect: str = "none"
    lights: tuple[str, ...] = ()

    @classmethod
    def from_light(cls, resource_id: str, light: HueLight) -> Resource:
        state = light.state
        return cls(
            id=resource_id,
            kind=ResourceKind.LIGHT,
            name=light.name,
            on=state.on,
            bri=state.bri,
            hue=state.hue,
            sat=state.sat,
            effect=state.effect,
        )

    @classmethod
    def from_group(cls, resource_id: str, group: HueGroup) -> Resource:
        action = group.action
        return cls(
            id=resource_id,
            kind=ResourceKind.GROUP,
            name=group.name,
            on=action.on,
            bri=action.bri,
            hue=action.hue,
            sat=action.sat,
            effect=action.effect,
            lights=tuple(group.lights),
        )


class Scene(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    group: str | None = None
    lights: tuple[str, ...] = ()


def decode_lights(payload: dict[str, Any]) -> dict[str, Resource]:
    """Decode a ``GET /lights`` body, skipping entries that fail validation."""
    lights: dict[str, Resource] = {}
    for light_id, raw in payload.items():
        try:
            lights[str(light_id)] = Resource.from_light(str(light_id), HueLight.model_validate(raw))
        except ValidationError as e:
            logger.warning(
                "Skipping malformed light %s (%d validation errors)",
                light_id,
                e.error_count(),
                extra={"errors": e.errors()},
            )
    return lights


def decode_groups(payload: dict[str, Any]) -> dict[str, Resource]:
    """Decode a ``GET /groups`` body, skipping entries that fail validation."""
    groups: dict[str, Resource] = {}
    for group_id, raw in payload.items():
        try:
            groups[str(group_id)] = Resource.from_group(str(group_id), HueGroup.model_validate(raw))
        except ValidationError as e:
            logger.warning(
                "Skipping malformed group %s (%d validation errors)",
                group_id,
                e.error_count(),
                extra={"errors": e.errors()},
            )
    return groups


def decode_scenes(payload: dict[str, Any]) -> dict[str, Scene]:
    """Decode a ``GET /scenes`` body, skipping entries that fail validation."""
    scenes: dict[str, Scene] = {}
    for scene_id, raw in payload.items():
        try:
            scene = HueScene.model_validate(raw)
        except ValidationError as e:
            logger.warning(
                "Skipping malformed scene %s (%d validation errors)",
                scene_id,
                e.error_count(),
                extra={"errors": e.errors()},
            )
            continue
        scenes[str(scene_id)] = Scene(id=str(scene_id), name=scene.name, group=scene.group, lights=tuple(scene.lights))
    return scenes
