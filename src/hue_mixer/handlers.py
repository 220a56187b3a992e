"""Gesture handlers: turn control-surface events into bridge writes.

Every handler applies its local change synchronously, before the write is
started, so gestures never observe each other's half-applied state. The write
itself runs as a background task; on success it asks the sync engine for a
throttled resync, on failure the change is left for the next periodic sync to
correct.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from functools import partial
from typing import Any

from hue_mixer.bridge_client import HueBridgeClient
from hue_mixer.const import (
    ASSIGN_PRESSED,
    BRI_MAX,
    COLORLOOP_SCENE,
    GROUP_VOLUME_TRANSITION,
    HUE_MAX,
    LIGHT_VOLUME_TRANSITION,
    MUTE_PRESSED,
    QUICK_TRANSITION,
    RUN_PRESSED,
    SAT_MAX,
    VOLUME_CHANGED,
)
from hue_mixer.correlation import correlation_context
from hue_mixer.exceptions import HueBridgeError
from hue_mixer.logging_abstraction import get_logger
from hue_mixer.models import ResourceKind
from hue_mixer.registry import ControlRecord, Controlling

logger = get_logger(__name__)

__all__ = ["ControlHandlers", "mute_payload", "scene_payload", "volume_payload"]


def volume_payload(record: ControlRecord, volume: float) -> dict[str, Any]:
    """Bridge state for a fader position, on whichever channel the record controls."""
    transition = LIGHT_VOLUME_TRANSITION if record.kind is ResourceKind.LIGHT else GROUP_VOLUME_TRANSITION
    if record.controlling is Controlling.HUE:
        return {"hue": round(volume * HUE_MAX), "sat": SAT_MAX, "transitiontime": transition}
    return {"bri": round(volume * BRI_MAX), "transitiontime": transition}


def mute_payload(record: ControlRecord, muted: bool) -> dict[str, Any]:
    return {"on": not muted, "bri": record.brightness, "transitiontime": QUICK_TRANSITION}


def scene_payload(scene_id: str) -> dict[str, Any]:
    return {
        "on": True,
        "scene": scene_id,
        "effect": "colorloop" if scene_id == COLORLOOP_SCENE else "none",
        "transitiontime": QUICK_TRANSITION,
    }


class ControlHandlers:
    """Subscribes gesture handlers to new records and runs their bridge writes."""

    lp: str = "ControlHandlers:"

    def __init__(self, client: HueBridgeClient, request_resync: Callable[[], None]) -> None:
        self.client: HueBridgeClient = client
        self._request_resync: Callable[[], None] = request_resync
        self._tasks: set[asyncio.Task[bool]] = set()

    @property
    def pending_writes(self) -> int:
        return len(self._tasks)

    def attach(self, record: ControlRecord) -> None:
        """Subscribe this record's gestures; groups also get scene recall."""
        assignment = record.assignment
        assignment.on(VOLUME_CHANGED, partial(self.volume_changed, record))
        assignment.on(MUTE_PRESSED, partial(self.mute_pressed, record))
        assignment.on(RUN_PRESSED, partial(self.run_pressed, record))
        if record.kind is ResourceKind.GROUP:
            assignment.on(ASSIGN_PRESSED, partial(self.assign_pressed, record))

    def volume_changed(self, record: ControlRecord, volume: float) -> asyncio.Task[bool]:
        assignment = record.assignment
        assignment.volume = volume
        payload = volume_payload(record, assignment.volume)
        # keep the cache in step so a mode toggle or mute before the resync uses the new value
        if record.controlling is Controlling.HUE:
            record.hue = payload["hue"]
        else:
            record.brightness = payload["bri"]
        return self._spawn_write(record, payload, VOLUME_CHANGED)

    def mute_pressed(self, record: ControlRecord) -> asyncio.Task[bool]:
        assignment = record.assignment
        assignment.muted = not assignment.muted
        return self._spawn_write(record, mute_payload(record, assignment.muted), MUTE_PRESSED)

    def run_pressed(self, record: ControlRecord) -> Controlling:
        """Switch the fader between brightness and hue. Local only, nothing is written."""
        controlling = record.toggle_controlling()
        logger.debug(
            "%s %s now controls %s",
            self.lp,
            record.assignment.id,
            controlling,
            extra={"volume": round(record.assignment.volume, 3)},
        )
        return controlling

    def assign_pressed(self, record: ControlRecord) -> asyncio.Task[bool] | None:
        """Recall the next scene of a group."""
        scene_id = record.advance_scene()
        if scene_id is None:
            logger.debug("%s %s has no scenes to recall", self.lp, record.assignment.id)
            return None

        def _reflect_on() -> None:
            record.assignment.muted = False

        return self._spawn_write(record, scene_payload(scene_id), ASSIGN_PRESSED, on_success=_reflect_on)

    def _spawn_write(
        self,
        record: ControlRecord,
        payload: dict[str, Any],
        gesture: str,
        on_success: Callable[[], None] | None = None,
    ) -> asyncio.Task[bool]:
        task = asyncio.create_task(
            self._write(record, payload, gesture, on_success),
            name=f"{gesture}_{record.kind}_{record.resource_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(self._on_write_done)
        return task

    def _on_write_done(self, task: asyncio.Task[bool]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.exception(
                "%s Write task %s crashed",
                self.lp,
                task.get_name(),
                exc_info=exc,
                extra={"error_type": type(exc).__name__},
            )

    async def _write(
        self,
        record: ControlRecord,
        payload: dict[str, Any],
        gesture: str,
        on_success: Callable[[], None] | None,
    ) -> bool:
        with correlation_context():
            try:
                if record.kind is ResourceKind.LIGHT:
                    _ = await self.client.write_light_state(record.resource_id, payload)
                else:
                    _ = await self.client.write_group_action(record.resource_id, payload)
            except HueBridgeError as e:
                logger.warning(
                    "%s %s write for %s failed, leaving it to the next sync: %s",
                    self.lp,
                    gesture,
                    record.assignment.id,
                    e,
                    extra={"payload": payload},
                )
                return False

            if on_success is not None:
                on_success()
            self._request_resync()
            return True

    async def cancel_pending(self) -> None:
        """Cancel writes still waiting on the bridge."""
        tasks = list(self._tasks)
        for task in tasks:
            _ = task.cancel()
        _ = await asyncio.gather(*tasks, return_exceptions=True)
