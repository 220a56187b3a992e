from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from pathlib import Path

import dotenv
import uvloop

from hue_mixer.bridge_client import HueBridgeClient
from hue_mixer.const import HUE_MIXER_DEBUG, HUE_MIXER_VERSION
from hue_mixer.control import Assignment, ControlFactory
from hue_mixer.correlation import correlation_context, ensure_correlation_id
from hue_mixer.handlers import ControlHandlers
from hue_mixer.logging_abstraction import PACKAGE_LOGGER, get_logger
from hue_mixer.registry import ControlRegistry
from hue_mixer.settings import BridgeSettings, load_settings
from hue_mixer.sync_engine import SyncEngine

logger = get_logger(__name__)

# aiohttp logs every connection problem we already report ourselves
logging.getLogger("aiohttp").setLevel(logging.ERROR)


class HueMixerBridge:
    """Wires the bridge client, registry, sync engine and gesture handlers together."""

    lp: str = "HueMixerBridge:"

    def __init__(self, settings: BridgeSettings, control_factory: ControlFactory = Assignment) -> None:
        self.settings: BridgeSettings = settings
        self.client: HueBridgeClient = HueBridgeClient(settings)
        self.registry: ControlRegistry = ControlRegistry(control_factory)
        self.engine: SyncEngine = SyncEngine(self.client, self.registry, sync_interval=settings.sync_interval)
        self.handlers: ControlHandlers = ControlHandlers(self.client, self.engine.request_throttled_sync)
        self.registry.set_on_created(self.handlers.attach)
        self._stop_requested: asyncio.Event | None = None

    async def sync_once(self) -> bool:
        """Refresh both families once and log the resulting controls. Returns False if either failed."""
        results = await asyncio.gather(self.engine.sync_lights(), self.engine.sync_groups(), return_exceptions=True)
        failures = [r for r in results if isinstance(r, BaseException)]
        for record in self.registry.records():
            assignment = record.assignment
            logger.info(
                "%s %s",
                self.lp,
                assignment.name,
                extra={
                    "id": assignment.id,
                    "on": not assignment.muted,
                    "volume": round(assignment.volume, 3),
                    "controlling": record.controlling,
                    "scenes": len(record.scenes),
                },
            )
        return not failures

    async def run(self) -> None:
        """Run until request_stop() is called."""
        _ = ensure_correlation_id()
        self._stop_requested = asyncio.Event()
        await self.engine.start()
        logger.info("%s Running", self.lp, extra={"sync_interval": self.engine.sync_interval})
        _ = await self._stop_requested.wait()

    def request_stop(self) -> None:
        logger.info("%s Stop requested", self.lp)
        if self._stop_requested is not None:
            self._stop_requested.set()

    async def stop(self) -> None:
        await self.handlers.cancel_pending()
        await self.engine.stop()
        await self.client.close()


def set_debug() -> None:
    """Switch the package logger, and so every hue_mixer module, to DEBUG."""
    get_logger(PACKAGE_LOGGER).set_level(logging.DEBUG)


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Drive Philips Hue lights from a mixer control surface")
    _ = parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Path to the YAML settings file (hueip, hueuser, synctime)",
    )
    _ = parser.add_argument("--env", help="Path to an environment file", default=None, type=Path)
    _ = parser.add_argument("-D", "--debug", action="store_true", help="Enable debug logging")
    _ = parser.add_argument(
        "--once",
        action="store_true",
        help="Sync lights and groups once, print the controls and exit",
    )
    args = parser.parse_args(argv)

    if args.debug or HUE_MIXER_DEBUG:
        set_debug()
        logger.debug("Debug logging enabled")

    if args.env:
        env_path = args.env.expanduser().resolve()
        if not env_path.exists():
            logger.error("Environment file not found", extra={"path": str(env_path)})
        elif dotenv.load_dotenv(env_path, override=True):
            logger.info("Environment variables loaded", extra={"source": str(env_path)})
        else:
            logger.warning("No environment variables loaded from file", extra={"path": str(env_path)})

    return args


async def _async_main(args: argparse.Namespace) -> int:
    settings = await load_settings(args.settings)
    bridge = HueMixerBridge(settings)

    if args.once:
        try:
            ok = await bridge.sync_once()
        finally:
            await bridge.stop()
        return 0 if ok else 1

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, bridge.request_stop)
    logger.debug("Signal handlers configured for SIGINT & SIGTERM")

    try:
        await bridge.run()
    finally:
        await bridge.stop()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for hue-mixer."""
    with correlation_context():
        logger.info("Starting hue-mixer", extra={"version": HUE_MIXER_VERSION})
        args = parse_cli(argv)
        try:
            exit_code = uvloop.run(_async_main(args))
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
            return 0
        except Exception as e:
            logger.exception("Fatal error in main loop", extra={"error": str(e)})
            return 1
        logger.info("hue-mixer stopped", extra={"exit_code": exit_code})
        return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
