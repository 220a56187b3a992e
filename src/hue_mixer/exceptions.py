"""Exception hierarchy for bridge communication errors."""

from __future__ import annotations


class HueBridgeError(Exception):
    """Base class for every failure talking to the Hue bridge."""


class BridgeConfigError(HueBridgeError):
    """Bridge address or username missing from the settings.

    Raised once while the client resolves its base URL; the client caches it and
    re-raises it on every later call for the lifetime of the process.

    Attributes:
        missing: Name of the missing setting

    """

    def __init__(self, missing: str, message: str) -> None:
        self.missing: str = missing
        super().__init__(message)


class BridgeTransportError(HueBridgeError):
    """HTTP request failed (connection refused, non-2xx status, bad JSON).

    Attributes:
        method: HTTP method of the failed request
        path: Resource path relative to the API base
        status: HTTP status when the bridge answered, otherwise None

    """

    def __init__(self, method: str, path: str, reason: str, status: int | None = None) -> None:
        self.method: str = method
        self.path: str = path
        self.status: int | None = status
        self.reason: str = reason
        super().__init__(f"{method} {path} failed: {reason}")


class BridgeResponseError(HueBridgeError):
    """The bridge answered 200 but reported errors in the response body.

    Attributes:
        path: Resource path relative to the API base
        errors: Error objects from the bridge, each with type/address/description

    """

    def __init__(self, path: str, errors: list[dict[str, object]]) -> None:
        self.path: str = path
        self.errors: list[dict[str, object]] = errors
        descriptions = ", ".join(str(e.get("description", e)) for e in errors)
        super().__init__(f"Bridge rejected {path}: {descriptions}")
