"""
Address negotiation for the serving endpoint.

Handles:
- Loopback host rewriting to the wildcard bind address
- External IP discovery for mobile-testing modes
- Free port search starting at the requested port

Usage:
    negotiator = AddressNegotiator()
    resolution = await negotiator.negotiate(
        AddressRequest(host="localhost", port=8080),
        PlatformMode.SPA,
    )
    print(resolution.address.url)
"""

from __future__ import annotations

import asyncio
import errno
import ipaddress
import logging
import socket
import sys
from typing import Callable, List, Optional, Sequence

import psutil

from devsession.config import MAX_PORT
from devsession.errors import (
    NetworkAddressUnavailable,
    NetworkError,
    NetworkPortUnavailable,
    UnknownNetworkError,
)
from devsession.types import (
    LOOPBACK_ALIASES,
    WILDCARD_HOST,
    AddressRequest,
    AddressResult,
    PlatformMode,
    Resolution,
)

logger = logging.getLogger(__name__)

# Errors meaning "this port is taken, try the next one"
_PORT_BUSY_ERRNOS = (errno.EADDRINUSE, errno.EACCES)


# =============================================================================
# Port probing
# =============================================================================


class PortProber:
    """
    Finds the nearest bindable port on a host.

    Ports are tried one bind attempt at a time, in ascending order.
    """

    def __init__(self, max_port: int = MAX_PORT):
        self.max_port = max_port

    async def find_open_port(
        self,
        host: str,
        start: int,
        reserved: Optional[int] = None,
    ) -> int:
        """
        Find the first available port on ``host`` at or above ``start``.

        Args:
            host: Host to bind
            start: First port to try
            reserved: Port currently held by this session's own endpoint;
                counted as available because it is released before rebinding

        Returns:
            The available port

        Raises:
            NetworkPortUnavailable: If no port up to max_port is free
            NetworkAddressUnavailable: If the host cannot be bound at all
            UnknownNetworkError: On any other socket failure
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._search, host, start, reserved)

    def _search(self, host: str, start: int, reserved: Optional[int]) -> int:
        sockaddr_info = _bind_target(host, start)
        for port in range(start, self.max_port + 1):
            if port == reserved or self.is_port_free(sockaddr_info, host, port):
                return port
        raise NetworkPortUnavailable(
            f"No open port found on {host} between {start} and {self.max_port}",
            host=host,
            port=start,
        )

    @staticmethod
    def is_port_free(sockaddr_info: tuple, host: str, port: int) -> bool:
        """Try one bind on ``port``; True if it succeeded."""
        family, socktype, proto, sockaddr = sockaddr_info
        sockaddr = (sockaddr[0], port) + tuple(sockaddr[2:])
        logger.debug(f"Probing {host}:{port}")
        try:
            with socket.socket(family, socktype, proto) as sock:
                if sys.platform != "win32":
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                sock.bind(sockaddr)
        except OSError as e:
            if e.errno in _PORT_BUSY_ERRNOS:
                return False
            if e.errno == errno.EADDRNOTAVAIL:
                raise NetworkAddressUnavailable(
                    f"No network interface matches {host}",
                    host=host,
                    port=port,
                ) from e
            raise UnknownNetworkError(
                f"Failed to check {host}:{port}: {e}",
                host=host,
                port=port,
            ) from e
        return True


def _bind_target(host: str, port: int) -> tuple:
    """Resolve ``host`` to (family, socktype, proto, sockaddr) for binding."""
    try:
        infos = socket.getaddrinfo(
            host, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
        )
    except socket.gaierror as e:
        raise NetworkAddressUnavailable(
            f"Cannot resolve host {host}: {e}",
            host=host,
            port=port,
        ) from e
    family, socktype, proto, _, sockaddr = infos[0]
    return family, socktype, proto, sockaddr


# =============================================================================
# External IP discovery
# =============================================================================


def list_external_ipv4() -> List[str]:
    """List IPv4 addresses of interfaces that are up and not loopback."""
    stats = psutil.net_if_stats()
    addresses = []
    for name, addrs in psutil.net_if_addrs().items():
        if name in stats and not stats[name].isup:
            continue
        for addr in addrs:
            if addr.family != socket.AF_INET:
                continue
            if ipaddress.ip_address(addr.address).is_loopback:
                continue
            addresses.append(addr.address)
    return addresses


class ExternalIPResolver:
    """
    Discovers an address a mobile device or emulator can reach.

    The result is memoized; discovery runs at most once per resolver.
    """

    def __init__(self, choose: Optional[Callable[[Sequence[str]], str]] = None):
        self._choose = choose
        self._cached: Optional[str] = None

    async def resolve(self) -> str:
        """
        Return a routable non-loopback IPv4 address.

        Raises:
            NetworkAddressUnavailable: If the machine has no external address
        """
        if self._cached is not None:
            return self._cached

        loop = asyncio.get_running_loop()
        addresses = await loop.run_in_executor(None, list_external_ipv4)

        if not addresses:
            raise NetworkAddressUnavailable(
                "No external IP detected. A mobile device needs one to reach "
                "the dev server; please specify a host."
            )

        if len(addresses) == 1:
            chosen = addresses[0]
        elif self._choose is not None:
            chosen = self._choose(addresses)
        else:
            chosen = addresses[0]
            logger.info(
                f"Multiple external IPs detected ({', '.join(addresses)}), "
                f"using {chosen}"
            )

        logger.debug(f"External IP resolved to {chosen}")
        self._cached = chosen
        return chosen


# =============================================================================
# Negotiation
# =============================================================================


def rewrite_host(host: Optional[str]) -> str:
    """Map loopback aliases and an absent host to the wildcard address."""
    if not host or host.lower() in LOOPBACK_ALIASES:
        return WILDCARD_HOST
    return host


class AddressNegotiator:
    """
    Resolves a requested host/port into the address the endpoint binds to.

    Session state (sticky host, the address of the running endpoint) is
    passed in on every call; the negotiator keeps none of its own.
    """

    def __init__(
        self,
        prober: Optional[PortProber] = None,
        ip_resolver: Optional[ExternalIPResolver] = None,
    ):
        self.prober = prober or PortProber()
        self.ip_resolver = ip_resolver or ExternalIPResolver()

    async def negotiate(
        self,
        request: AddressRequest,
        mode: PlatformMode,
        sticky_host: Optional[str] = None,
        held: Optional[AddressResult] = None,
    ) -> Resolution:
        """
        Resolve ``request`` for ``mode``.

        Args:
            request: Requested host and port
            mode: Session mode
            sticky_host: Host resolved in an earlier cycle, reused as-is
            held: Address of the endpoint still serving from the last cycle

        Returns:
            Resolution with the address and the sticky host to keep

        Raises:
            NetworkPortUnavailable, NetworkAddressUnavailable, UnknownNetworkError
        """
        try:
            if sticky_host:
                host = sticky_host
            else:
                host = rewrite_host(request.host)
                if mode.is_mobile and host == WILDCARD_HOST:
                    host = await self.ip_resolver.resolve()
                    sticky_host = host

            reserved = held.port if held is not None and held.host == host else None
            port = await self.prober.find_open_port(host, request.port, reserved)
        except NetworkError:
            raise
        except Exception as e:
            raise UnknownNetworkError(
                f"Unknown network error: {e}",
                host=request.host,
                port=request.port,
            ) from e

        substituted = port != request.port
        if substituted:
            logger.warning(
                f"Port {request.port} is in use, setting port to closest one "
                f"available: {port}"
            )

        return Resolution(
            address=AddressResult(host=host, port=port),
            sticky_host=sticky_host,
            port_substituted=substituted,
        )


def describe_failure(error: NetworkError) -> str:
    """User-facing explanation for an address negotiation failure."""
    if isinstance(error, NetworkPortUnavailable):
        return (
            "Could not find an open port. Please configure a lower one "
            "to start searching with."
        )
    if isinstance(error, NetworkAddressUnavailable):
        return (
            "Invalid host specified. No network address matches. "
            "Please specify another one."
        )
    return f"Unknown network error occurred: {error}"
