"""
Electron launcher.

Respawns the Electron shell after every endpoint start, passing the dev
server URL through the ``APP_URL`` environment variable.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from devsession._core.process import ManagedProcess, resolve_command
from devsession.platforms.base import PlatformLauncher
from devsession.types import BuildConfig, PlatformMode, SessionContext

logger = logging.getLogger(__name__)

PROJECT_DIR = "src-electron"
DEFAULT_MAIN = "electron-main.js"


class ElectronLauncher(PlatformLauncher):
    """Runs the desktop shell."""

    mode = PlatformMode.ELECTRON

    def __init__(self, root: Optional[Path] = None, process: Optional[ManagedProcess] = None):
        super().__init__(root)
        self.process = process or ManagedProcess("electron")

    async def init(self, context: SessionContext) -> None:
        self._require_dir(PROJECT_DIR)
        self.context = context

    async def run(self, build_config: BuildConfig, extra_args: List[str]) -> None:
        url = self._require_url(build_config)
        main = build_config.extras.get("electron_main") or str(
            self.root / PROJECT_DIR / DEFAULT_MAIN
        )

        cmd = [resolve_command("electron"), main, *extra_args]
        logger.info(f"Starting Electron against {url}")
        await self.process.start(cmd, cwd=self.root, env={"APP_URL": url})

    async def stop(self) -> None:
        await self.process.stop()
