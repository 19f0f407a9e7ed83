"""Tests for devsession.types module."""

import pytest

from devsession.types import (
    WILDCARD_HOST,
    AddressResult,
    BuildConfig,
    BuildHooks,
    HookPhase,
    PlatformMode,
    SessionState,
)


class TestPlatformMode:
    """Tests for PlatformMode enum."""

    def test_values(self):
        assert [m.value for m in PlatformMode] == [
            "spa", "ssr", "pwa", "cordova", "capacitor", "electron",
        ]

    @pytest.mark.parametrize("mode", ["spa", "ssr", "pwa"])
    def test_web(self, mode):
        assert PlatformMode(mode).is_web
        assert not PlatformMode(mode).is_mobile

    @pytest.mark.parametrize("mode", ["cordova", "capacitor"])
    def test_mobile(self, mode):
        assert PlatformMode(mode).is_mobile
        assert PlatformMode(mode).requires_target

    def test_electron(self):
        assert not PlatformMode.ELECTRON.is_web
        assert not PlatformMode.ELECTRON.is_mobile
        assert not PlatformMode.ELECTRON.requires_target

    def test_string_comparison(self):
        assert PlatformMode.SPA == "spa"


class TestSessionState:
    def test_states(self):
        assert {s.value for s in SessionState} == {
            "idle", "resolving", "building", "starting", "listening", "stopping", "failed",
        }


class TestAddressResult:
    """Tests for AddressResult.url."""

    def test_wildcard_url_uses_localhost(self):
        assert AddressResult(WILDCARD_HOST, 8080).url == "http://localhost:8080"

    def test_ip_url(self):
        assert AddressResult("192.168.1.20", 8081).url == "http://192.168.1.20:8081"

    def test_ipv6_url_bracketed(self):
        assert AddressResult("fe80::1", 8080).url == "http://[fe80::1]:8080"

    def test_hashable(self):
        assert AddressResult("a", 1) == AddressResult("a", 1)
        assert len({AddressResult("a", 1), AddressResult("a", 1)}) == 1


class TestBuildConfig:
    """Tests for BuildConfig and BuildHooks."""

    def test_app_url_without_address(self):
        assert BuildConfig().app_url is None

    def test_app_url(self):
        config = BuildConfig(dev_server=AddressResult(WILDCARD_HOST, 9000))
        assert config.app_url == "http://localhost:9000"

    def test_hooks_for_phase(self):
        async def before(config):
            pass

        hooks = BuildHooks(before_dev=before)
        assert hooks.for_phase(HookPhase.BEFORE_DEV.value) is before
        assert hooks.for_phase("afterDev") is None
        assert hooks.for_phase("onPublish") is None
