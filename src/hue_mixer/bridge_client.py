"""Hue bridge REST client.

Reads the ``lights``, ``groups`` and ``scenes`` collections and writes partial
state updates. The client holds no light state of its own; failures raise a
`HueBridgeError` subclass and the caller decides what to do about them.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable
from typing import Any, cast

import aiohttp

from hue_mixer.exceptions import BridgeConfigError, BridgeResponseError, BridgeTransportError
from hue_mixer.instrumentation import timed_async
from hue_mixer.logging_abstraction import get_logger
from hue_mixer.models import Resource, Scene, decode_groups, decode_lights, decode_scenes
from hue_mixer.settings import BridgeSettings

logger = get_logger(__name__)

__all__ = ["HueBridgeClient"]


def _raise_for_errors(path: str, body: object) -> None:
    """Raise BridgeResponseError when a response body carries ``{"error": ...}`` items.

    The bridge answers HTTP 200 for rejected requests, e.g.:
        [{"error": {"type": 1, "address": "/lights", "description": "unauthorized user"}}]
    """
    if not isinstance(body, list):
        return
    errors: list[dict[str, object]] = []
    for item in cast("list[object]", body):
        if isinstance(item, dict) and "error" in item:
            error = cast("dict[str, object]", item)["error"]
            errors.append(cast("dict[str, object]", error) if isinstance(error, dict) else {"description": error})
    if errors:
        raise BridgeResponseError(path, errors)


class HueBridgeClient:
    """Async client for the Hue v1 REST API.

    The base URL ``http://<address>/api/<username>`` is resolved once from the
    settings. When the address or username is missing the resulting
    BridgeConfigError is kept and raised again by every call, so a
    misconfigured process fails the same way for its whole lifetime.
    """

    lp: str = "HueBridgeClient"
    http_session: aiohttp.ClientSession | None = None

    def __init__(self, settings: BridgeSettings | Awaitable[BridgeSettings]) -> None:
        """Initialize the client.

        Args:
            settings: Bridge settings, or an awaitable resolving to them when the
                settings are still being loaded.

        """
        self._settings_source: BridgeSettings | Awaitable[BridgeSettings] = settings
        self.settings: BridgeSettings | None = settings if isinstance(settings, BridgeSettings) else None
        self._base_url: asyncio.Future[str] | None = None

    async def close(self) -> None:
        """Close the aiohttp session if it exists and is not closed."""
        if self.http_session and not self.http_session.closed:
            logger.debug("%s:close: Closing aiohttp ClientSession", self.lp)
            await self.http_session.close()
        self.http_session = None

    async def _check_session(self) -> aiohttp.ClientSession:
        if not self.http_session or self.http_session.closed:
            logger.debug("%s:_check_session: Creating new aiohttp ClientSession", self.lp)
            self.http_session = aiohttp.ClientSession()
        return self.http_session

    async def _resolve_base_url(self) -> str:
        settings = self._settings_source
        if inspect.isawaitable(settings):
            settings = await settings
        self.settings = settings = cast("BridgeSettings", settings)

        if not settings.address:
            raise BridgeConfigError("address", "No Philips Hue IP given to connect to.")
        if not settings.username:
            raise BridgeConfigError("username", "No Philips Hue user given to log in as.")

        logger.info("%s Using bridge at %s", self.lp, settings.address)
        return f"http://{settings.address}/api/{settings.username}"

    async def base_url(self) -> str:
        """Return the API base URL, raising the cached BridgeConfigError if resolution failed."""
        if self._base_url is None:
            self._base_url = asyncio.ensure_future(self._resolve_base_url())
        # shielded so a cancelled caller does not cancel resolution for everyone else
        return await asyncio.shield(self._base_url)

    async def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> object:
        base_url = await self.base_url()
        session = await self._check_session()
        api_timeout = self.settings.api_timeout if self.settings else None

        try:
            async with session.request(
                method,
                f"{base_url}{path}",
                json=payload,
                timeout=aiohttp.ClientTimeout(total=api_timeout),
            ) as resp:
                resp.raise_for_status()
                body: object = await resp.json(content_type=None)
        except aiohttp.ClientResponseError as e:
            raise BridgeTransportError(method, path, e.message, e.status) from e
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            raise BridgeTransportError(method, path, str(e) or type(e).__name__) from e

        _raise_for_errors(path, body)
        return body

    async def _get_collection(self, path: str) -> dict[str, Any]:
        body = await self._request("GET", path)
        if not isinstance(body, dict):
            raise BridgeTransportError("GET", path, f"expected a JSON object, got {type(body).__name__}")
        return cast("dict[str, Any]", body)

    @timed_async("list_lights")
    async def list_lights(self) -> dict[str, Resource]:
        return decode_lights(await self._get_collection("/lights"))

    @timed_async("list_groups")
    async def list_groups(self) -> dict[str, Resource]:
        return decode_groups(await self._get_collection("/groups"))

    @timed_async("list_scenes")
    async def list_scenes(self) -> dict[str, Scene]:
        return decode_scenes(await self._get_collection("/scenes"))

    @timed_async("write_light_state")
    async def write_light_state(self, light_id: str, state: dict[str, Any]) -> object:
        """PUT a partial state to ``/lights/<id>/state``."""
        logger.debug("%s Writing light state", self.lp, extra={"light_id": light_id, "state": state})
        return await self._request("PUT", f"/lights/{light_id}/state", state)

    @timed_async("write_group_action")
    async def write_group_action(self, group_id: str, action: dict[str, Any]) -> object:
        """PUT a partial action to ``/groups/<id>/action``."""
        logger.debug("%s Writing group action", self.lp, extra={"group_id": group_id, "action": action})
        return await self._request("PUT", f"/groups/{group_id}/action", action)
