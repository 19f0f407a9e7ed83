"""
Dev session controller.

Keeps one compiled app and one listening endpoint alive for the lifetime
of a development session. Rebuild cycles triggered by change notifications
are chained so that each one fully settles before the next begins.

Usage:
    session = Session(
        config=SessionConfig.from_env(),
        compiler=my_compiler,
        endpoint_factory=MyDevServer,
    )
    await session.start()

    # From the file watcher:
    session.notify_build_changed()   # resolve -> compile -> restart
    session.notify_app_changed()     # incremental regeneration only

    await session.serve_forever()
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Awaitable, Callable, Optional, Protocol, runtime_checkable

from devsession._core.health import wait_reachable
from devsession.config import SessionConfig
from devsession.errors import (
    CompilerError,
    DevSessionError,
    EndpointError,
    LauncherError,
    NetworkError,
)
from devsession.hooks import ExtensionRegistry, ExtensionRunner, HookPipeline
from devsession.network import AddressNegotiator, PortProber, describe_failure
from devsession.platforms import DevtoolsLauncher, PlatformLauncher, create_launcher
from devsession.types import (
    AddressRequest,
    AddressResult,
    BuildConfig,
    HookPhase,
    SessionContext,
    SessionState,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Collaborator contracts
# =============================================================================


@runtime_checkable
class BuildCompiler(Protocol):
    """Produces the build configuration and build-dependent output."""

    async def prepare(self) -> None:
        ...

    async def compile(self, address: AddressResult) -> None:
        ...

    def get_build_config(self) -> BuildConfig:
        ...

    async def regenerate(self) -> None:
        ...


@runtime_checkable
class ServingEndpoint(Protocol):
    """Serves the app; ``stop`` must release the bound address before returning."""

    async def listen(self) -> None:
        ...

    async def stop(self) -> None:
        ...


EndpointFactory = Callable[[BuildConfig], ServingEndpoint]


# =============================================================================
# Session
# =============================================================================


class Session:
    """
    Orchestrates a development session.

    Attributes:
        state: Current controller state
        sticky_host: Host discovered on the first mobile resolution, reused after
        has_ever_succeeded: True once an address has been resolved
        has_listened: True once an endpoint has listened
        endpoint: The active serving endpoint, if any
        address: Address the active endpoint is bound to
        build_config: Build config the active endpoint was built from
        failure: The error that failed the session, if any
    """

    def __init__(
        self,
        config: SessionConfig,
        compiler: BuildCompiler,
        endpoint_factory: EndpointFactory,
        extensions: Optional[ExtensionRunner] = None,
        negotiator: Optional[AddressNegotiator] = None,
        launcher: Optional[PlatformLauncher] = None,
        devtools: Optional[DevtoolsLauncher] = None,
    ):
        self.config = config
        self.compiler = compiler
        self.endpoint_factory = endpoint_factory
        self.extensions = extensions or ExtensionRegistry()
        self.negotiator = negotiator or AddressNegotiator(
            prober=PortProber(max_port=config.max_port)
        )
        self.launcher = launcher or create_launcher(config.mode)
        self.devtools = devtools or DevtoolsLauncher()
        self.pipeline = HookPipeline(self.extensions)
        self.context = SessionContext(
            mode=config.mode,
            target=config.target,
            devtools=config.devtools,
            extra_args=list(config.extra_args),
        )

        self.state = SessionState.IDLE
        self.sticky_host: Optional[str] = None
        self.has_ever_succeeded = False
        self.has_listened = False
        self.endpoint: Optional[ServingEndpoint] = None
        self.address: Optional[AddressResult] = None
        self.build_config: Optional[BuildConfig] = None
        self.failure: Optional[BaseException] = None

        self._chain: Optional[asyncio.Task] = None
        self._started = False
        self._failed = asyncio.Event()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """
        Run the first cycle: prepare, resolve, compile, run beforeDev,
        start the endpoint, launch the platform shell, run afterDev.

        Raises:
            DevSessionError: If the first cycle fails
        """
        if self._started:
            raise RuntimeError("Session already started")
        self._started = True
        self._enqueue(self._first_cycle, "Startup")
        await self.drain()

    def notify_build_changed(self) -> asyncio.Task:
        """Queue a full rebuild cycle (resolve, compile, restart)."""
        logger.info("Rebuilding app...")
        return self._enqueue(self._rebuild_cycle, "Rebuild")

    def notify_app_changed(self) -> asyncio.Task:
        """Queue an incremental regeneration of the app."""
        logger.info("App changed, regenerating...")
        return self._enqueue(self._regenerate, "App regeneration")

    async def drain(self) -> None:
        """
        Wait until every queued cycle has settled.

        Raises:
            DevSessionError: If the session has failed
        """
        while self._chain is not None:
            tail = self._chain
            await asyncio.wait([tail])
            if tail is self._chain:
                break
        if self.failure is not None:
            raise self.failure

    async def serve_forever(self) -> None:
        """
        Block until the session fails.

        Raises:
            DevSessionError: The error that failed the session
        """
        await self._failed.wait()
        raise self.failure

    async def close(self) -> None:
        """Let queued cycles settle, then stop the endpoint and any shell."""
        if self._chain is not None:
            await asyncio.wait([self._chain])

        if self.endpoint is not None:
            self.state = SessionState.STOPPING
            await self._stop_quietly("dev server", self.endpoint.stop)
            self.endpoint = None
        await self._stop_quietly("platform launcher", self.launcher.stop)
        await self._stop_quietly("devtools", self.devtools.stop)

        if self.state is not SessionState.FAILED:
            self.state = SessionState.IDLE

    @property
    def exit_code(self) -> int:
        return 1 if self.failure is not None else 0

    # -------------------------------------------------------------------------
    # Chain
    # -------------------------------------------------------------------------

    def _enqueue(self, work: Callable[[], Awaitable[None]], label: str) -> asyncio.Task:
        if not self._started:
            raise RuntimeError("Session not started")

        previous = self._chain

        async def step() -> None:
            if previous is not None:
                await asyncio.wait([previous])
            if self.state is SessionState.FAILED:
                return
            try:
                await work()
            except Exception as e:
                self._handle_error(e, label)

        self._chain = asyncio.get_running_loop().create_task(step())
        return self._chain

    def _handle_error(self, error: Exception, label: str) -> None:
        if self.has_listened and not isinstance(error, CompilerError):
            logger.error(f"{label} failed, keeping the session alive: {error}")
            self.state = (
                SessionState.LISTENING if self.endpoint is not None else SessionState.IDLE
            )
            return

        logger.error(f"Dev session failed: {error}")
        self.state = SessionState.FAILED
        self.failure = error
        self._failed.set()

    # -------------------------------------------------------------------------
    # Cycles
    # -------------------------------------------------------------------------

    async def _first_cycle(self) -> None:
        await self.extensions.register_extensions(self.context)
        await self._prepare()

        address = await self._resolve()
        build_config = await self._compile(address)

        if self.config.devtools:
            await self.devtools.start(self.config.devtools_port)
        await self.pipeline.run(HookPhase.BEFORE_DEV.value, build_config)
        await self._init_launcher()
        await self._regenerate()

        await self._restart_endpoint(build_config, address)
        try:
            await self._launch(build_config)
        finally:
            # afterDev follows the first listen even if the shell fails to launch
            await self.pipeline.run(HookPhase.AFTER_DEV.value, build_config)

    async def _rebuild_cycle(self) -> None:
        address = await self._resolve()
        if address is None:
            self.state = (
                SessionState.LISTENING if self.endpoint is not None else SessionState.IDLE
            )
            return

        build_config = await self._compile(address)
        await self._restart_endpoint(build_config, address)
        await self._launch(build_config)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    async def _prepare(self) -> None:
        try:
            await self.compiler.prepare()
        except CompilerError:
            raise
        except Exception as e:
            raise CompilerError(f"Build configuration has errors: {e}") from e

    async def _resolve(self) -> Optional[AddressResult]:
        """
        Negotiate the endpoint address.

        Returns None when a later cycle cannot resolve; the running endpoint
        is left untouched in that case.
        """
        self.state = SessionState.RESOLVING
        request = AddressRequest(host=self.config.host, port=self.config.port)
        held = self.address if self.endpoint is not None else None

        try:
            resolution = await self.negotiator.negotiate(
                request,
                self.config.mode,
                sticky_host=self.sticky_host,
                held=held,
            )
        except NetworkError as e:
            logger.warning(describe_failure(e))
            if not self.has_ever_succeeded:
                raise
            return None

        if self.sticky_host is None and resolution.sticky_host is not None:
            self.sticky_host = resolution.sticky_host
        self.has_ever_succeeded = True
        return resolution.address

    async def _compile(self, address: AddressResult) -> BuildConfig:
        self.state = SessionState.BUILDING
        try:
            await self.compiler.compile(address)
        except CompilerError:
            raise
        except Exception as e:
            raise CompilerError(f"Compilation failed: {e}") from e

        build_config = dataclasses.replace(
            self.compiler.get_build_config(), dev_server=address
        )
        if self.config.devtools:
            build_config.devtools = True
        return build_config

    async def _regenerate(self) -> None:
        try:
            await self.compiler.regenerate()
        except CompilerError:
            raise
        except Exception as e:
            raise CompilerError(f"Regenerating app failed: {e}") from e

    async def _init_launcher(self) -> None:
        try:
            await self.launcher.init(self.context)
        except LauncherError:
            raise
        except Exception as e:
            raise LauncherError(f"Failed to initialize {self.config.mode.value}: {e}") from e

    async def _restart_endpoint(self, build_config: BuildConfig, address: AddressResult) -> None:
        previous_config = self.build_config
        previous_address = self.address

        if self.endpoint is not None:
            self.state = SessionState.STOPPING
            logger.info("Stopping dev server")
            await self.endpoint.stop()
            self.endpoint = None

        self.state = SessionState.STARTING
        endpoint = self.endpoint_factory(build_config)
        try:
            await endpoint.listen()
        except Exception as e:
            if previous_config is not None and previous_address is not None:
                await self._restore(previous_config, previous_address)
            raise EndpointError(
                f"Dev server failed to listen on {address.host}:{address.port}: {e}"
            ) from e

        self.endpoint = endpoint
        self.address = address
        self.build_config = build_config
        self.state = SessionState.LISTENING
        self.has_listened = True
        logger.info(f"Dev server listening at {address.url}")

    async def _restore(self, build_config: BuildConfig, address: AddressResult) -> None:
        logger.warning(f"Restoring previous dev server at {address.url}")
        endpoint = self.endpoint_factory(build_config)
        try:
            await endpoint.listen()
        except Exception as e:
            logger.error(f"Could not restore previous dev server: {e}")
            return
        self.endpoint = endpoint
        self.state = SessionState.LISTENING

    async def _launch(self, build_config: BuildConfig) -> None:
        url = build_config.app_url
        if not self.config.mode.is_web and self.config.readiness_timeout > 0:
            if not await wait_reachable(url, timeout=self.config.readiness_timeout):
                logger.warning(
                    f"Dev server at {url} did not answer within "
                    f"{self.config.readiness_timeout}s, launching anyway"
                )

        try:
            await self.launcher.run(build_config, list(self.config.extra_args))
        except LauncherError:
            raise
        except Exception as e:
            raise LauncherError(f"Failed to launch {self.config.mode.value}: {e}") from e

    @staticmethod
    async def _stop_quietly(name: str, stop: Callable[[], Awaitable[None]]) -> None:
        try:
            await stop()
        except Exception as e:
            logger.warning(f"Failed to stop {name}: {e}")


# =============================================================================
# Runner
# =============================================================================


def run(session_factory: Callable[[], Session]) -> None:
    """
    Run a session until it fails or is interrupted.

    The session is built inside the event loop by ``session_factory``.

    Raises:
        SystemExit: With code 1 if the session failed
    """

    async def main() -> None:
        session = session_factory()
        try:
            await session.start()
            await session.serve_forever()
        finally:
            await session.close()

    try:
        asyncio.run(main())
    except DevSessionError as e:
        raise SystemExit(1) from e
