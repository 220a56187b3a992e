"""Sync engine: keeps the control registry in step with the bridge.

Lights and groups are refreshed as two independent families. Each family has
an in-flight latch, so overlapping requests for the same family share one
refresh while the other family stays free to run. Writes from the control
surface ask for a throttled resync, which the debounce scheduler collapses
into as few full refreshes as possible.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from enum import StrEnum
from typing import Any

from hue_mixer.bridge_client import HueBridgeClient
from hue_mixer.const import DEFAULT_SYNC_INTERVAL, RESYNC_PERIOD
from hue_mixer.correlation import correlation_context
from hue_mixer.debounce import DebounceScheduler
from hue_mixer.logging_abstraction import get_logger
from hue_mixer.registry import ControlRegistry

logger = get_logger(__name__)

__all__ = ["FamilySync", "SyncEngine", "SyncState"]


class SyncState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"


class FamilySync:
    """In-flight latch for one resource family.

    While a refresh is RUNNING, `trigger()` hands back the same task instead of
    starting another. The latch returns to IDLE from the task's done callback,
    so it clears whether the refresh succeeded, failed or was cancelled.
    """

    def __init__(self, family: str, refresh: Callable[[], Coroutine[Any, Any, None]]) -> None:
        self.family: str = family
        self.completed: int = 0
        self.failed: int = 0
        self._refresh: Callable[[], Coroutine[Any, Any, None]] = refresh
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> SyncState:
        return SyncState.IDLE if self._task is None else SyncState.RUNNING

    @property
    def in_flight(self) -> asyncio.Task[None] | None:
        return self._task

    def trigger(self) -> asyncio.Task[None]:
        if self._task is not None:
            return self._task
        task = asyncio.create_task(self._refresh(), name=f"sync_{self.family}")
        self._task = task
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[None]) -> None:
        if self._task is task:
            self._task = None
        if task.cancelled():
            logger.debug("Sync of %s cancelled", self.family)
            return
        exc = task.exception()
        if exc is not None:
            self.failed += 1
            logger.warning(
                "Sync of %s failed: %s",
                self.family,
                exc,
                extra={"family": self.family, "error_type": type(exc).__name__},
            )
        else:
            self.completed += 1


class SyncEngine:
    """Periodic and on-demand refresh of lights and groups from the bridge."""

    lp: str = "SyncEngine:"

    def __init__(
        self,
        client: HueBridgeClient,
        registry: ControlRegistry,
        *,
        sync_interval: float = DEFAULT_SYNC_INTERVAL,
        resync_period: float = RESYNC_PERIOD,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self.client: HueBridgeClient = client
        self.registry: ControlRegistry = registry
        self.sync_interval: float = sync_interval
        self.running: bool = False
        self._sleep: Callable[[float], Awaitable[object]] = sleep
        self._lights: FamilySync = FamilySync("lights", self._sync_lights)
        self._groups: FamilySync = FamilySync("groups", self._sync_groups)
        self._resync: DebounceScheduler = DebounceScheduler(
            resync_period,
            self._resync_all,
            clock=clock,
            sleep=sleep,
            name="throttled_resync",
        )
        self._periodic_tasks: list[asyncio.Task[None]] = []

    @property
    def lights_state(self) -> SyncState:
        return self._lights.state

    @property
    def groups_state(self) -> SyncState:
        return self._groups.state

    @property
    def resync(self) -> DebounceScheduler:
        return self._resync

    def sync_lights(self) -> asyncio.Task[None]:
        """Refresh lights, or return the refresh already in flight."""
        return self._lights.trigger()

    def sync_groups(self) -> asyncio.Task[None]:
        """Refresh groups and their scenes, or return the refresh already in flight."""
        return self._groups.trigger()

    def request_throttled_sync(self) -> None:
        """Ask for a full refresh once control writes have settled."""
        self._resync.request()

    async def _resync_all(self) -> None:
        # failures are logged by the family latches; the next tick or periodic pass retries
        _ = await asyncio.gather(self.sync_lights(), self.sync_groups(), return_exceptions=True)

    async def _sync_lights(self) -> None:
        with correlation_context():
            logger.debug("%s Syncing lights", self.lp)
            lights = await self.client.list_lights()
            for light_id, resource in lights.items():
                _ = self.registry.upsert_light(light_id, resource)
            logger.debug("%s Synced lights", self.lp, extra={"count": len(lights)})

    async def _sync_groups(self) -> None:
        with correlation_context():
            logger.debug("%s Syncing groups", self.lp)
            groups, scenes = await asyncio.gather(self.client.list_groups(), self.client.list_scenes())
            for group_id, resource in groups.items():
                _ = self.registry.upsert_group(group_id, resource)
            attached = self.registry.attach_scenes(scenes)
            logger.debug(
                "%s Synced groups",
                self.lp,
                extra={"count": len(groups), "scenes": len(scenes), "scenes_attached": attached},
            )

    async def _periodic_sync(self, family: str, trigger: Callable[[], asyncio.Task[None]]) -> None:
        logger.info("%s Starting periodic %s sync (every %s seconds)", self.lp, family, self.sync_interval)
        while self.running:
            await self._sleep(self.sync_interval)
            if not self.running:
                break
            try:
                await trigger()
            except Exception:
                logger.debug("%s Periodic %s sync failed, next attempt in %ss", self.lp, family, self.sync_interval)

    async def start(self) -> None:
        """Populate the registry and start one periodic refresh loop per family."""
        if self.running:
            return
        self.running = True
        _ = self.sync_lights()
        _ = self.sync_groups()
        self._periodic_tasks = [
            asyncio.create_task(self._periodic_sync("lights", self.sync_lights), name="periodic_sync_lights"),
            asyncio.create_task(self._periodic_sync("groups", self.sync_groups), name="periodic_sync_groups"),
        ]

    async def stop(self) -> None:
        """Cancel periodic loops, the resync timer and any refresh still in flight."""
        self.running = False
        await self._resync.cancel()
        tasks = list(self._periodic_tasks)
        tasks.extend(t for t in (self._lights.in_flight, self._groups.in_flight) if t is not None)
        for task in tasks:
            _ = task.cancel()
        _ = await asyncio.gather(*tasks, return_exceptions=True)
        self._periodic_tasks = []
        logger.info("%s Stopped", self.lp)
