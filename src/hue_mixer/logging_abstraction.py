"""Logging abstraction layer for hue-mixer.

Human-readable output for the console plus optional JSON lines for log
shipping, both tagged with the active correlation ID.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import cast, override

from hue_mixer.correlation import get_correlation_id

__all__ = [
    "HueMixerLogger",
    "HumanReadableFormatter",
    "JSONFormatter",
    "PACKAGE_LOGGER",
    "get_logger",
]


class JSONFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, Mapping) and extra_data:
            context_map = cast("Mapping[str, object]", extra_data)
            log_data["context"] = dict(context_map)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formatter that outputs human-readable logs with correlation IDs."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(correlation_id)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id = get_correlation_id()
        record.correlation_id = f"[{correlation_id[:8]}]" if correlation_id else "[--------]"

        formatted = super().format(record)

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, Mapping) and extra_data:
            context_map = cast("Mapping[str, object]", extra_data)
            context_str = " | ".join(f"{k}={v}" for k, v in context_map.items())
            formatted = f"{formatted} | {context_str}"

        return formatted


PACKAGE_LOGGER = "hue_mixer"


def _is_module_logger(name: str) -> bool:
    return name.startswith(f"{PACKAGE_LOGGER}.")


class HueMixerLogger:
    """Logger wrapper with structured context and dual-format output.

    Level and handlers live on the package logger ``hue_mixer``. Module loggers
    (``hue_mixer.sync_engine`` and so on) stay at NOTSET and propagate to it, so
    switching the package logger to DEBUG covers every module at once.
    """

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str | None = "stdout",
    ) -> None:
        """Initialize HueMixerLogger.

        Args:
            name: Logger name (typically module name)
            log_format: Output format - "json", "human", or "both"
            json_file: Path for JSON output file (None to disable file output)
            human_output: "stdout", "stderr", or file path for human-readable output

        """
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)
        self.log_format: str = log_format

        if _is_module_logger(name):
            return

        # already configured, keep whatever level set_level() chose
        if self.logger.handlers:
            return

        from hue_mixer.const import HUE_MIXER_DEBUG

        self.logger.setLevel(logging.DEBUG if HUE_MIXER_DEBUG else logging.INFO)
        self._configure_handlers(json_file, human_output)

    def _configure_handlers(
        self,
        json_file: str | Path | None,
        human_output: str | None,
    ) -> None:
        handler_level = self.logger.level

        if self.log_format in ("json", "both") and json_file:
            try:
                json_path = Path(json_file)
                json_path.parent.mkdir(parents=True, exist_ok=True)
                json_handler = logging.FileHandler(json_path, mode="a")
                json_handler.setFormatter(JSONFormatter())
                json_handler.setLevel(handler_level)
                self.logger.addHandler(json_handler)
            except OSError as e:
                print(f"Warning: Failed to create JSON log file {json_file}: {e}", file=sys.stderr)

        if self.log_format in ("human", "both"):
            normalized_output = human_output or "stdout"
            human_handler: logging.Handler
            if normalized_output == "stdout":
                human_handler = logging.StreamHandler(sys.stdout)
            elif normalized_output == "stderr":
                human_handler = logging.StreamHandler(sys.stderr)
            else:
                try:
                    human_path = Path(normalized_output)
                    human_path.parent.mkdir(parents=True, exist_ok=True)
                    human_handler = logging.FileHandler(human_path, mode="a")
                except OSError as e:
                    print(f"Warning: Failed to create human log file {human_output}: {e}", file=sys.stderr)
                    human_handler = logging.StreamHandler(sys.stdout)

            human_handler.setFormatter(HumanReadableFormatter())
            human_handler.setLevel(handler_level)
            self.logger.addHandler(human_handler)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        extra_payload: Mapping[str, object] | None = None
        if extra:
            extra_payload = {"extra_data": dict(extra)}

        self.logger.log(level, msg, *args, extra=extra_payload)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(
        self,
        msg: str,
        *args: object,
        exc_info: BaseException | bool = True,
        extra: Mapping[str, object] | None = None,
    ) -> None:
        """Log with a traceback.

        Inside an ``except`` block the active exception is used; done callbacks
        pass the task's exception as `exc_info` instead.
        """
        log_extra = {"extra_data": dict(extra)} if extra else None
        self.logger.exception(msg, *args, exc_info=exc_info, extra=log_extra)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)


def get_logger(
    name: str,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> HueMixerLogger:
    """Get or create a HueMixerLogger instance.

    Arguments left as None fall back to the HUE_MIXER_LOG_* environment settings.
    Asking for a module logger sets up the package logger first, with the same
    output arguments.
    """
    from hue_mixer.const import (
        HUE_MIXER_LOG_FORMAT,
        HUE_MIXER_LOG_HUMAN_OUTPUT,
        HUE_MIXER_LOG_JSON_FILE,
    )

    log_format = log_format or HUE_MIXER_LOG_FORMAT
    json_file = json_file or HUE_MIXER_LOG_JSON_FILE
    human_output = human_output or HUE_MIXER_LOG_HUMAN_OUTPUT

    if _is_module_logger(name):
        _ = HueMixerLogger(PACKAGE_LOGGER, log_format, json_file, human_output)
    return HueMixerLogger(name, log_format, json_file, human_output)
