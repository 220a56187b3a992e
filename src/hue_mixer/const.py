import os

from hue_mixer import __version__

__all__ = [
    "ASSIGN_PRESSED",
    "BRI_MAX",
    "COLORLOOP_SCENE",
    "DEFAULT_SETTINGS_PATH",
    "DEFAULT_SYNC_INTERVAL",
    "ENV_BRIDGE_IP",
    "ENV_BRIDGE_USER",
    "ENV_SETTINGS_PATH",
    "ENV_SYNC_INTERVAL",
    "GROUP_NAME_SUFFIX",
    "GROUP_THROTTLE_MS",
    "GROUP_VOLUME_TRANSITION",
    "HUE_MAX",
    "HUE_MIXER_DEBUG",
    "HUE_MIXER_LOG_FORMAT",
    "HUE_MIXER_LOG_HUMAN_OUTPUT",
    "HUE_MIXER_LOG_JSON_FILE",
    "HUE_MIXER_PERF_THRESHOLD_MS",
    "HUE_MIXER_PERF_TRACKING",
    "HUE_MIXER_VERSION",
    "LIGHT_NAME_SUFFIX",
    "LIGHT_THROTTLE_MS",
    "LIGHT_VOLUME_TRANSITION",
    "MUTE_PRESSED",
    "QUICK_TRANSITION",
    "RESYNC_PERIOD",
    "RUN_PRESSED",
    "SAT_MAX",
    "VOLUME_CHANGED",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
HUE_MIXER_VERSION: str = __version__

# Hue v1 API value ranges
BRI_MAX: int = 254
HUE_MAX: int = 65535
SAT_MAX: int = 254

# synthetic scene entry, always first in a group's scene list
COLORLOOP_SCENE: str = "colorloop"

# control-surface gesture event names
VOLUME_CHANGED = "volumeChanged"
MUTE_PRESSED = "mutePressed"
RUN_PRESSED = "runPressed"
ASSIGN_PRESSED = "assignPressed"

LIGHT_NAME_SUFFIX = "(light)"
GROUP_NAME_SUFFIX = "(room)"

# UI debounce hints handed to the control surface, in milliseconds
LIGHT_THROTTLE_MS: int = 100
GROUP_THROTTLE_MS: int = 1000

# transitiontime is expressed in 100 ms steps
LIGHT_VOLUME_TRANSITION: int = 1
GROUP_VOLUME_TRANSITION: int = 10
QUICK_TRANSITION: int = 1

RESYNC_PERIOD: float = 0.2
DEFAULT_SYNC_INTERVAL: int = 30

DEFAULT_SETTINGS_PATH: str = "~/.config/hue-mixer/settings.yaml"

# settings overrides, read each time settings are loaded so --env files apply
ENV_SETTINGS_PATH = "HUE_MIXER_SETTINGS"
ENV_BRIDGE_IP = "HUE_MIXER_BRIDGE_IP"
ENV_BRIDGE_USER = "HUE_MIXER_BRIDGE_USER"
ENV_SYNC_INTERVAL = "HUE_MIXER_SYNC_INTERVAL"

HUE_MIXER_DEBUG: bool = os.environ.get("HUE_MIXER_DEBUG", "0").casefold() in YES_ANSWER

# Logging Configuration
HUE_MIXER_LOG_FORMAT: str = os.environ.get("HUE_MIXER_LOG_FORMAT", "human")  # "json", "human", or "both"
HUE_MIXER_LOG_JSON_FILE: str | None = os.environ.get("HUE_MIXER_LOG_JSON_FILE") or None
HUE_MIXER_LOG_HUMAN_OUTPUT: str = os.environ.get("HUE_MIXER_LOG_HUMAN_OUTPUT", "stdout")  # "stdout", "stderr", or file path

# Performance Instrumentation
HUE_MIXER_PERF_TRACKING: bool = os.environ.get("HUE_MIXER_PERF_TRACKING", "true").casefold() in YES_ANSWER
_perf_threshold = os.environ.get("HUE_MIXER_PERF_THRESHOLD_MS", "500")
HUE_MIXER_PERF_THRESHOLD_MS: int = int(_perf_threshold) if _perf_threshold and _perf_threshold.isdigit() else 500
