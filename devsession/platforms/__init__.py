"""
Platform launchers, one per mode.

Usage:
    launcher = create_launcher(PlatformMode.ELECTRON)
    await launcher.init(context)
    await launcher.run(build_config, extra_args)
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from devsession.platforms.base import PlatformLauncher, WebLauncher
from devsession.platforms.capacitor import CapacitorLauncher
from devsession.platforms.cordova import CordovaLauncher
from devsession.platforms.devtools import DevtoolsLauncher
from devsession.platforms.electron import ElectronLauncher
from devsession.types import PlatformMode


def create_launcher(mode: PlatformMode, root: Optional[Path] = None) -> PlatformLauncher:
    """Return the launcher for ``mode``."""
    if mode.is_web:
        return WebLauncher(mode, root)
    if mode is PlatformMode.CORDOVA:
        return CordovaLauncher(root)
    if mode is PlatformMode.CAPACITOR:
        return CapacitorLauncher(root)
    if mode is PlatformMode.ELECTRON:
        return ElectronLauncher(root)
    raise ValueError(f"No launcher for mode {mode}")


__all__ = [
    "PlatformLauncher",
    "WebLauncher",
    "CordovaLauncher",
    "CapacitorLauncher",
    "ElectronLauncher",
    "DevtoolsLauncher",
    "create_launcher",
]
