"""
Lifecycle hooks.

A phase runs the user hook from the build config first (if configured),
then every extension hook registered for that phase, in registration order.
Each hook settles before the next one starts; the first failure aborts the
rest of the phase with a HookError.

Usage:
    registry = ExtensionRegistry()

    async def announce(api, payload):
        print(f"{api.ext_id} sees {payload['build_config'].app_url}")

    registry.register("my-ext", "afterDev", announce)

    pipeline = HookPipeline(registry)
    await pipeline.run("afterDev", build_config)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)

from devsession.errors import HookError
from devsession.types import BuildConfig, HookInvocation, SessionContext

logger = logging.getLogger(__name__)

USER_SOURCE = "user-config"

ExtensionHookFn = Callable[["ExtensionApi", Dict[str, Any]], Awaitable[Any]]


@dataclass
class ExtensionApi:
    """Handle given to extension hooks."""
    ext_id: str
    context: Optional[SessionContext] = None


@dataclass
class ExtensionHook:
    """A hook registered by an extension for one phase."""
    api: ExtensionApi
    fn: ExtensionHookFn

    @property
    def ext_id(self) -> str:
        return self.api.ext_id


@runtime_checkable
class ExtensionRunner(Protocol):
    """Collaborator contract for extension registries."""

    async def register_extensions(self, context: SessionContext) -> None:
        ...

    async def run_hook(
        self,
        phase: str,
        callback: Callable[[ExtensionHook], Awaitable[Any]],
    ) -> None:
        ...


class ExtensionRegistry:
    """
    In-memory extension registry.

    Extensions register hooks with ``register``; ``register_extensions``
    binds the session context into every extension's api handle.
    """

    def __init__(self) -> None:
        self._hooks: Dict[str, List[ExtensionHook]] = {}
        self._apis: Dict[str, ExtensionApi] = {}

    def register(self, ext_id: str, phase: str, fn: ExtensionHookFn) -> None:
        api = self._apis.setdefault(ext_id, ExtensionApi(ext_id=ext_id))
        self._hooks.setdefault(phase, []).append(ExtensionHook(api=api, fn=fn))

    async def register_extensions(self, context: SessionContext) -> None:
        for api in self._apis.values():
            api.context = context
        logger.debug(f"Registered {len(self._apis)} extension(s)")

    async def run_hook(
        self,
        phase: str,
        callback: Callable[[ExtensionHook], Awaitable[Any]],
    ) -> None:
        for hook in list(self._hooks.get(phase, [])):
            await callback(hook)

    @property
    def extension_ids(self) -> List[str]:
        return list(self._apis)


@dataclass
class HookPipeline:
    """
    Sequential executor of lifecycle phases.

    No timeout is imposed; a hook that never settles stalls its phase.
    """
    extensions: ExtensionRunner = field(default_factory=ExtensionRegistry)

    async def run(self, phase: str, build_config: BuildConfig) -> None:
        """
        Run every hook of ``phase`` to completion, in order.

        Raises:
            HookError: On the first hook that fails; later hooks do not run
        """
        user_hook = build_config.build.for_phase(phase)
        if user_hook is not None:
            await self._invoke(
                HookInvocation(
                    phase=phase,
                    source=USER_SOURCE,
                    body=lambda: user_hook(build_config),
                )
            )

        async def run_extension_hook(hook: ExtensionHook) -> None:
            logger.info(f"Extension({hook.ext_id}): Running {phase} hook...")
            await self._invoke(
                HookInvocation(
                    phase=phase,
                    source=hook.ext_id,
                    body=lambda: hook.fn(hook.api, {"build_config": build_config}),
                )
            )

        await self.extensions.run_hook(phase, run_extension_hook)

    @staticmethod
    async def _invoke(invocation: HookInvocation) -> None:
        logger.debug(f"Running {invocation.phase} hook from {invocation.source}")
        try:
            await invocation.body()
        except HookError:
            raise
        except Exception as e:
            raise HookError(invocation.phase, invocation.source, str(e)) from e
