"""
Type definitions for devsession.

Defines enums and dataclasses used across the package for:
- Modes and controller states
- Address requests and results
- Build configuration snapshots handed to hooks, endpoints and launchers
- Hook invocations
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional


WILDCARD_HOST = "0.0.0.0"
LOOPBACK_ALIASES = ("localhost", "127.0.0.1", "::1")


# =============================================================================
# Enums
# =============================================================================


class PlatformMode(str, Enum):
    """
    Development mode of the session.

    - SPA / SSR / PWA: web modes, served to a browser only
    - CORDOVA / CAPACITOR: mobile-hybrid modes, need a target platform and
      an address reachable from a device or emulator
    - ELECTRON: desktop shell mode
    """
    SPA = "spa"
    SSR = "ssr"
    PWA = "pwa"
    CORDOVA = "cordova"
    CAPACITOR = "capacitor"
    ELECTRON = "electron"

    @property
    def is_web(self) -> bool:
        return self in (PlatformMode.SPA, PlatformMode.SSR, PlatformMode.PWA)

    @property
    def is_mobile(self) -> bool:
        return self in (PlatformMode.CORDOVA, PlatformMode.CAPACITOR)

    @property
    def requires_target(self) -> bool:
        return self.is_mobile


class SessionState(str, Enum):
    """States of the session controller."""
    IDLE = "idle"
    RESOLVING = "resolving"
    BUILDING = "building"
    STARTING = "starting"
    LISTENING = "listening"
    STOPPING = "stopping"
    FAILED = "failed"


class HookPhase(str, Enum):
    """Lifecycle phases that run user and extension hooks."""
    BEFORE_DEV = "beforeDev"
    AFTER_DEV = "afterDev"


# =============================================================================
# Addresses
# =============================================================================


@dataclass(frozen=True)
class AddressRequest:
    """Host and port as requested by the user."""
    host: Optional[str]
    port: int


@dataclass(frozen=True)
class AddressResult:
    """Host and port the serving endpoint binds to."""
    host: str
    port: int

    @property
    def url(self) -> str:
        """URL a browser or shell on this machine can open."""
        host = "localhost" if self.host == WILDCARD_HOST else self.host
        if ":" in host:
            host = f"[{host}]"
        return f"http://{host}:{self.port}"


@dataclass(frozen=True)
class Resolution:
    """
    Outcome of one address negotiation.

    Attributes:
        address: Resolved bind address
        sticky_host: Host to remember for later cycles (None if not discovered)
        port_substituted: True if the requested port was occupied
    """
    address: AddressResult
    sticky_host: Optional[str] = None
    port_substituted: bool = False


# =============================================================================
# Build configuration
# =============================================================================


HookFn = Callable[["BuildConfig"], Awaitable[Any]]


@dataclass
class BuildHooks:
    """User hooks configured on the build section."""
    before_dev: Optional[HookFn] = None
    after_dev: Optional[HookFn] = None

    def for_phase(self, phase: str) -> Optional[HookFn]:
        if phase == HookPhase.BEFORE_DEV.value:
            return self.before_dev
        if phase == HookPhase.AFTER_DEV.value:
            return self.after_dev
        return None


@dataclass
class BuildConfig:
    """
    Snapshot of the compiled build configuration.

    Produced by the build compiler; the session records the address the
    endpoint is served on in ``dev_server``.
    """
    build: BuildHooks = field(default_factory=BuildHooks)
    devtools: bool = False
    dev_server: Optional[AddressResult] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def app_url(self) -> Optional[str]:
        if self.dev_server is None:
            return None
        return self.dev_server.url


@dataclass
class SessionContext:
    """Context shared with extensions and platform launchers."""
    mode: PlatformMode
    target: Optional[str] = None
    dev: bool = True
    devtools: bool = False
    extra_args: List[str] = field(default_factory=list)


# =============================================================================
# Hooks
# =============================================================================


@dataclass
class HookInvocation:
    """
    One hook call within a phase.

    Attributes:
        phase: Phase name (beforeDev, afterDev)
        source: "user-config" or the extension id
        body: Zero-argument coroutine factory running the hook
    """
    phase: str
    source: str
    body: Callable[[], Awaitable[Any]]
