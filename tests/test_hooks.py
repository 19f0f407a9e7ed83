"""Tests for devsession.hooks module."""

import asyncio
import logging

import pytest

from devsession.errors import HookError
from devsession.hooks import (
    USER_SOURCE,
    ExtensionRegistry,
    ExtensionRunner,
    HookPipeline,
)
from devsession.types import BuildConfig, BuildHooks, PlatformMode, SessionContext


def _recorder(calls, name, delay=0):
    async def hook(api, payload):
        calls.append(f"{name}:start")
        await asyncio.sleep(delay)
        calls.append(f"{name}:end")

    return hook


class TestExtensionRegistry:
    """Tests for ExtensionRegistry."""

    def test_satisfies_runner_protocol(self):
        assert isinstance(ExtensionRegistry(), ExtensionRunner)

    @pytest.mark.asyncio
    async def test_runs_hooks_in_registration_order(self):
        registry = ExtensionRegistry()
        seen = []
        registry.register("b-ext", "beforeDev", _recorder([], "b"))
        registry.register("a-ext", "beforeDev", _recorder([], "a"))
        registry.register("c-ext", "afterDev", _recorder([], "c"))

        async def callback(hook):
            seen.append(hook.ext_id)

        await registry.run_hook("beforeDev", callback)

        assert seen == ["b-ext", "a-ext"]

    @pytest.mark.asyncio
    async def test_unknown_phase_runs_nothing(self):
        registry = ExtensionRegistry()
        seen = []

        async def callback(hook):
            seen.append(hook)

        await registry.run_hook("onPublish", callback)

        assert seen == []

    @pytest.mark.asyncio
    async def test_register_extensions_binds_context(self):
        registry = ExtensionRegistry()
        registry.register("my-ext", "beforeDev", _recorder([], "x"))
        context = SessionContext(mode=PlatformMode.SPA)

        await registry.register_extensions(context)

        assert registry.extension_ids == ["my-ext"]
        assert registry._apis["my-ext"].context is context


class TestHookPipeline:
    """Tests for HookPipeline.run."""

    @pytest.mark.asyncio
    async def test_user_hook_runs_first(self):
        calls = []

        async def user_hook(build_config):
            calls.append("user")

        registry = ExtensionRegistry()
        registry.register("ext", "beforeDev", _recorder(calls, "ext"))
        config = BuildConfig(build=BuildHooks(before_dev=user_hook))

        await HookPipeline(registry).run("beforeDev", config)

        assert calls == ["user", "ext:start", "ext:end"]

    @pytest.mark.asyncio
    async def test_hooks_do_not_overlap(self):
        """Each hook settles before the next begins."""
        calls = []
        registry = ExtensionRegistry()
        registry.register("slow", "afterDev", _recorder(calls, "slow", delay=0.01))
        registry.register("fast", "afterDev", _recorder(calls, "fast"))

        await HookPipeline(registry).run("afterDev", BuildConfig())

        assert calls == ["slow:start", "slow:end", "fast:start", "fast:end"]

    @pytest.mark.asyncio
    async def test_user_hook_receives_build_config(self):
        received = []

        async def user_hook(build_config):
            received.append(build_config)

        config = BuildConfig(build=BuildHooks(after_dev=user_hook))

        await HookPipeline().run("afterDev", config)

        assert received == [config]

    @pytest.mark.asyncio
    async def test_extension_hook_receives_api_and_payload(self):
        received = []

        async def hook(api, payload):
            received.append((api.ext_id, payload["build_config"]))

        registry = ExtensionRegistry()
        registry.register("my-ext", "beforeDev", hook)
        config = BuildConfig()

        await HookPipeline(registry).run("beforeDev", config)

        assert received == [("my-ext", config)]

    @pytest.mark.asyncio
    async def test_failure_aborts_phase(self):
        calls = []

        async def broken(api, payload):
            raise RuntimeError("kaboom")

        registry = ExtensionRegistry()
        registry.register("first", "beforeDev", _recorder(calls, "first"))
        registry.register("broken", "beforeDev", broken)
        registry.register("last", "beforeDev", _recorder(calls, "last"))

        with pytest.raises(HookError) as exc_info:
            await HookPipeline(registry).run("beforeDev", BuildConfig())

        assert calls == ["first:start", "first:end"]
        assert exc_info.value.phase == "beforeDev"
        assert exc_info.value.source == "broken"
        assert "kaboom" in exc_info.value.detail
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_user_hook_failure_skips_extensions(self):
        calls = []

        async def user_hook(build_config):
            raise ValueError("bad user hook")

        registry = ExtensionRegistry()
        registry.register("ext", "beforeDev", _recorder(calls, "ext"))
        config = BuildConfig(build=BuildHooks(before_dev=user_hook))

        with pytest.raises(HookError) as exc_info:
            await HookPipeline(registry).run("beforeDev", config)

        assert exc_info.value.source == USER_SOURCE
        assert calls == []

    @pytest.mark.asyncio
    async def test_logs_extension_identity(self, caplog):
        registry = ExtensionRegistry()
        registry.register("my-ext", "afterDev", _recorder([], "x"))

        with caplog.at_level(logging.INFO, logger="devsession.hooks"):
            await HookPipeline(registry).run("afterDev", BuildConfig())

        assert "Extension(my-ext): Running afterDev hook..." in caplog.messages

    @pytest.mark.asyncio
    async def test_no_hooks_is_noop(self):
        await HookPipeline().run("beforeDev", BuildConfig())
