"""
Capacitor launcher.

Writes the dev server URL into ``src-capacitor/capacitor.config.json``,
syncs the native project and opens it in the platform IDE.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

from devsession._core.process import ManagedProcess, resolve_command, run_command
from devsession.errors import LauncherError
from devsession.platforms.base import PlatformLauncher
from devsession.types import BuildConfig, PlatformMode, SessionContext

logger = logging.getLogger(__name__)

PROJECT_DIR = "src-capacitor"
CONFIG_FILE = "capacitor.config.json"


def set_server_url(config_json: Path, url: str) -> None:
    """
    Set ``server.url`` in a capacitor.config.json.

    Raises:
        LauncherError: If the file cannot be read or is not a JSON object
    """
    try:
        config = json.loads(config_json.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise LauncherError(f"Cannot read {config_json}: {e}") from e
    if not isinstance(config, dict):
        raise LauncherError(f"{config_json} must contain a JSON object")

    server = config.setdefault("server", {})
    server["url"] = url
    server["cleartext"] = url.startswith("http://")

    config_json.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")


class CapacitorLauncher(PlatformLauncher):
    """Syncs and opens the native Capacitor project (android, ios)."""

    mode = PlatformMode.CAPACITOR

    def __init__(self, root: Optional[Path] = None, process: Optional[ManagedProcess] = None):
        super().__init__(root)
        self.process = process or ManagedProcess("capacitor IDE")
        self._url: Optional[str] = None

    async def init(self, context: SessionContext) -> None:
        self._require_dir(PROJECT_DIR)
        self.context = context

    async def run(self, build_config: BuildConfig, extra_args: List[str]) -> None:
        url = self._require_url(build_config)
        if url == self._url:
            return

        project_dir = self.root / PROJECT_DIR
        set_server_url(project_dir / CONFIG_FILE, url)

        npx = resolve_command("npx")
        target = self.context.target
        logger.info(f"Syncing Capacitor {target} project against {url}")
        await run_command([npx, "cap", "sync", target], cwd=project_dir)
        await self.process.start([npx, "cap", "open", target, *extra_args], cwd=project_dir)
        self._url = url

    async def stop(self) -> None:
        await self.process.stop()
