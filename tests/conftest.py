"""
Pytest configuration for devsession tests.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from devsession.config import SessionConfig
from devsession.hooks import ExtensionRegistry
from devsession.network import AddressNegotiator
from devsession.session import Session
from devsession.types import BuildConfig, BuildHooks

# Note: With pytest-asyncio in auto mode, no event_loop fixture needed


class FakeCompiler:
    """Build compiler recording every call into a shared event log."""

    def __init__(self, events, build=None):
        self.events = events
        self.build = build or BuildHooks()
        self.prepare_error = None
        self.compile_error = None
        self.regenerate_error = None
        self.compiled = []

    async def prepare(self):
        self.events.append("prepare")
        if self.prepare_error:
            raise self.prepare_error

    async def compile(self, address):
        self.events.append("compile")
        self.compiled.append(address)
        if self.compile_error:
            raise self.compile_error

    def get_build_config(self):
        return BuildConfig(build=self.build)

    async def regenerate(self):
        await asyncio.sleep(0)
        self.events.append("regenerate")
        if self.regenerate_error:
            raise self.regenerate_error


class FakeEndpoint:
    """Serving endpoint recording listen/stop into a shared event log."""

    instances = []

    def __init__(self, build_config, events, fail_listen=False):
        self.build_config = build_config
        self.events = events
        self.fail_listen = fail_listen
        self.listening = False
        self.index = len(FakeEndpoint.instances)
        FakeEndpoint.instances.append(self)

    async def listen(self):
        await asyncio.sleep(0)
        if self.fail_listen:
            raise OSError("address in use")
        self.listening = True
        self.events.append(f"listen:{self.index}")

    async def stop(self):
        await asyncio.sleep(0)
        self.listening = False
        self.events.append(f"stop:{self.index}")


@pytest.fixture
def events():
    """Shared, ordered log of collaborator calls."""
    FakeEndpoint.instances = []
    return []


@pytest.fixture
def compiler(events):
    return FakeCompiler(events)


@pytest.fixture
def endpoint_factory(events):
    """Factory whose endpoints fail to listen when ``factory.fail_next`` is set."""

    def factory(build_config):
        fail = factory.fail_next > 0
        if fail:
            factory.fail_next -= 1
        return FakeEndpoint(build_config, events, fail_listen=fail)

    factory.fail_next = 0
    return factory


@pytest.fixture
def mock_prober():
    """Port prober reporting the requested port as free."""
    prober = MagicMock()
    prober.find_open_port = AsyncMock(
        side_effect=lambda host, start, reserved=None: start
    )
    return prober


@pytest.fixture
def mock_ip_resolver():
    resolver = MagicMock()
    resolver.resolve = AsyncMock(return_value="192.168.1.20")
    return resolver


@pytest.fixture
def mock_launcher(events):
    launcher = MagicMock()
    launcher.init = AsyncMock(side_effect=lambda context: events.append("init"))
    launcher.run = AsyncMock(
        side_effect=lambda build_config, extra_args: events.append("run")
    )
    launcher.stop = AsyncMock()
    return launcher


@pytest.fixture
def mock_devtools():
    devtools = MagicMock()
    devtools.start = AsyncMock()
    devtools.stop = AsyncMock()
    return devtools


@pytest.fixture
def registry():
    return ExtensionRegistry()


@pytest.fixture
def make_session(
    compiler, endpoint_factory, mock_prober, mock_ip_resolver, mock_launcher, mock_devtools, registry
):
    """Build a Session wired to fakes; keyword arguments go to SessionConfig."""

    def make(**config_values):
        config_values.setdefault("readiness_timeout", 0)
        return Session(
            config=SessionConfig(**config_values),
            compiler=compiler,
            endpoint_factory=endpoint_factory,
            extensions=registry,
            negotiator=AddressNegotiator(prober=mock_prober, ip_resolver=mock_ip_resolver),
            launcher=mock_launcher,
            devtools=mock_devtools,
        )

    return make
