"""
Session configuration.

Values come from keyword arguments or, through ``SessionConfig.from_env``,
from environment variables:

    DEVSESSION_HOST               Host to bind (default: all interfaces)
    DEVSESSION_PORT               Port to start searching from (default: 8080)
    DEVSESSION_MODE               spa, ssr, pwa, cordova, capacitor, electron
    DEVSESSION_TARGET             android or ios (cordova/capacitor only)
    DEVSESSION_DEVTOOLS           1/true/yes to start standalone devtools
    DEVSESSION_READINESS_TIMEOUT  Seconds to wait for the endpoint before
                                  launching a platform shell (0 disables)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, List, Optional

from devsession.errors import SessionConfigError
from devsession.types import PlatformMode

DEFAULT_PORT = 8080
DEFAULT_DEVTOOLS_PORT = 8098
MAX_PORT = 65535
MOBILE_TARGETS = ("android", "ios")

_TRUTHY = ("1", "true", "yes", "on")


@dataclass
class SessionConfig:
    """
    Configuration for a development session.

    Attributes:
        host: Requested host (None means all interfaces)
        port: Requested port, start of the free-port search
        mode: Development mode
        target: Target platform for cordova/capacitor
        devtools: Start the standalone devtools process
        extra_args: Trailing command-line arguments forwarded to the platform shell
        max_port: Upper bound of the free-port search (inclusive)
        readiness_timeout: Seconds to wait for the endpoint to answer HTTP
            before launching a platform shell (0 disables)
        devtools_port: Port of the standalone devtools process
    """
    host: Optional[str] = None
    port: int = DEFAULT_PORT
    mode: PlatformMode = PlatformMode.SPA
    target: Optional[str] = None
    devtools: bool = False
    extra_args: List[str] = field(default_factory=list)
    max_port: int = MAX_PORT
    readiness_timeout: float = 10.0
    devtools_port: int = DEFAULT_DEVTOOLS_PORT

    def __post_init__(self) -> None:
        """Normalize and validate configuration on creation."""
        if not isinstance(self.mode, PlatformMode):
            try:
                self.mode = PlatformMode(str(self.mode).lower())
            except ValueError:
                raise SessionConfigError(f"Unknown mode: {self.mode}") from None
        if self.target is not None:
            self.target = self.target.lower()
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if not 0 <= self.port <= MAX_PORT:
            raise SessionConfigError(f"port must be 0-{MAX_PORT}, got {self.port}")

        if not self.port <= self.max_port <= MAX_PORT:
            raise SessionConfigError(
                f"max_port must be between port ({self.port}) and {MAX_PORT}, "
                f"got {self.max_port}"
            )

        if self.mode.requires_target:
            if not self.target:
                raise SessionConfigError(
                    f"Mode {self.mode.value} requires a target platform "
                    f"({', '.join(MOBILE_TARGETS)})"
                )
            if self.target not in MOBILE_TARGETS:
                raise SessionConfigError(
                    f"Unknown {self.mode.value} target: {self.target}"
                )

        if self.readiness_timeout < 0:
            raise SessionConfigError("readiness_timeout must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> "SessionConfig":
        """
        Build a configuration from DEVSESSION_* environment variables.

        Keyword arguments take precedence over the environment.

        Raises:
            SessionConfigError: If a value cannot be parsed or is invalid
        """
        values: dict[str, Any] = {}

        host = os.environ.get("DEVSESSION_HOST")
        if host:
            values["host"] = host

        port = os.environ.get("DEVSESSION_PORT")
        if port:
            values["port"] = _parse_int("DEVSESSION_PORT", port)

        mode = os.environ.get("DEVSESSION_MODE")
        if mode:
            values["mode"] = mode

        target = os.environ.get("DEVSESSION_TARGET")
        if target:
            values["target"] = target

        devtools = os.environ.get("DEVSESSION_DEVTOOLS")
        if devtools:
            values["devtools"] = devtools.lower() in _TRUTHY

        timeout = os.environ.get("DEVSESSION_READINESS_TIMEOUT")
        if timeout:
            try:
                values["readiness_timeout"] = float(timeout)
            except ValueError:
                raise SessionConfigError(
                    f"DEVSESSION_READINESS_TIMEOUT must be a number, got {timeout!r}"
                ) from None

        values.update(overrides)
        return cls(**values)


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise SessionConfigError(f"{name} must be an integer, got {value!r}") from None
