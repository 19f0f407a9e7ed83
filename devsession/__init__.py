"""
devsession: Dev-mode session orchestration.

Keeps exactly one compiled app and one listening dev server alive across a
long-running development session.

This package provides:
- Address negotiation (loopback rewriting, external IP discovery for
  mobile modes, free port search)
- Sequential lifecycle hooks (beforeDev, afterDev) for user config and extensions
- Platform launchers for Cordova, Capacitor and Electron
- A session controller that serializes rebuild/restart cycles

Installation:
    pip install devsession
    pip install devsession[test]   # With test tooling

Quickstart:
    from devsession import Session, SessionConfig

    session = Session(
        config=SessionConfig(host="localhost", port=8080, mode="spa"),
        compiler=my_compiler,
        endpoint_factory=MyDevServer,
    )
    await session.start()

    watcher.on_build_change(session.notify_build_changed)
    watcher.on_app_change(session.notify_app_changed)

    await session.serve_forever()
"""

from devsession.types import (
    PlatformMode,
    SessionState,
    HookPhase,
    AddressRequest,
    AddressResult,
    BuildConfig,
    BuildHooks,
    SessionContext,
    WILDCARD_HOST,
)
from devsession.errors import (
    DevSessionError,
    SessionConfigError,
    NetworkError,
    NetworkPortUnavailable,
    NetworkAddressUnavailable,
    UnknownNetworkError,
    CompilerError,
    HookError,
    LauncherError,
    EndpointError,
)
from devsession.config import SessionConfig
from devsession.network import (
    AddressNegotiator,
    PortProber,
    ExternalIPResolver,
)
from devsession.hooks import (
    ExtensionRegistry,
    HookPipeline,
)
from devsession.platforms import (
    PlatformLauncher,
    create_launcher,
)
from devsession.session import (
    Session,
    BuildCompiler,
    ServingEndpoint,
    run,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Types
    "PlatformMode",
    "SessionState",
    "HookPhase",
    "AddressRequest",
    "AddressResult",
    "BuildConfig",
    "BuildHooks",
    "SessionContext",
    "WILDCARD_HOST",
    # Errors
    "DevSessionError",
    "SessionConfigError",
    "NetworkError",
    "NetworkPortUnavailable",
    "NetworkAddressUnavailable",
    "UnknownNetworkError",
    "CompilerError",
    "HookError",
    "LauncherError",
    "EndpointError",
    # Config
    "SessionConfig",
    # Network
    "AddressNegotiator",
    "PortProber",
    "ExternalIPResolver",
    # Hooks
    "ExtensionRegistry",
    "HookPipeline",
    # Platforms
    "PlatformLauncher",
    "create_launcher",
    # Session
    "Session",
    "BuildCompiler",
    "ServingEndpoint",
    "run",
]
