"""
Exception types for devsession.

Provides typed exceptions for:
- Address negotiation (port search, host binding)
- Build compilation
- Lifecycle hooks
- Platform launching and serving endpoint startup
"""

from __future__ import annotations

from typing import Optional


class DevSessionError(Exception):
    """Base exception for all devsession errors."""
    pass


class SessionConfigError(DevSessionError):
    """
    Raised when session configuration is invalid.
    
    This includes:
    - Unknown mode or target platform
    - Missing target for cordova/capacitor
    - Port values outside 0-65535
    """
    pass


# =============================================================================
# Network Errors
# =============================================================================


class NetworkError(DevSessionError):
    """
    Base for failures while negotiating the endpoint address.
    
    Fatal during the first resolution of a session, non-fatal afterwards.
    """
    
    def __init__(
        self,
        message: str,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ):
        self.host = host
        self.port = port
        super().__init__(message)


class NetworkPortUnavailable(NetworkError):
    """Raised when no free port exists within the search bound."""
    pass


class NetworkAddressUnavailable(NetworkError):
    """Raised when the host cannot be bound (no matching interface)."""
    pass


class UnknownNetworkError(NetworkError):
    """Raised for any other failure of the port/address layer."""
    pass


# =============================================================================
# Build & Lifecycle Errors
# =============================================================================


class CompilerError(DevSessionError):
    """
    Raised when the build compiler fails to prepare or compile.
    
    Always fatal for the session.
    """
    pass


class HookError(DevSessionError):
    """
    Raised when a lifecycle hook body fails.
    
    Aborts the remainder of its phase.
    
    Example:
        try:
            await pipeline.run("beforeDev", build_config)
        except HookError as e:
            logger.error(f"{e.source} failed during {e.phase}: {e.detail}")
    """
    
    def __init__(self, phase: str, source: str, detail: str):
        self.phase = phase
        self.source = source
        self.detail = detail
        super().__init__(f"{phase} hook from {source} failed: {detail}")
    
    def __repr__(self) -> str:
        return (
            f"HookError(phase={self.phase!r}, source={self.source!r}, "
            f"detail={self.detail!r})"
        )


class LauncherError(DevSessionError):
    """Raised when a platform shell or emulator cannot be initialized or started."""
    pass


class EndpointError(DevSessionError):
    """Raised when the serving endpoint fails to start listening."""
    pass
