"""
Cordova launcher.

Points the Cordova app at the dev server by rewriting the ``<content src>``
of ``src-cordova/config.xml``, then runs ``cordova run <target>``.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional

from devsession._core.process import ManagedProcess, resolve_command
from devsession.errors import LauncherError
from devsession.platforms.base import PlatformLauncher
from devsession.types import BuildConfig, PlatformMode, SessionContext

logger = logging.getLogger(__name__)

PROJECT_DIR = "src-cordova"
WIDGET_NS = "http://www.w3.org/ns/widgets"


def set_content_src(config_xml: Path, url: str) -> None:
    """
    Set ``<content src="...">`` in a Cordova config.xml.

    Raises:
        LauncherError: If the file cannot be read or parsed
    """
    ET.register_namespace("", WIDGET_NS)
    try:
        tree = ET.parse(config_xml)
    except (OSError, ET.ParseError) as e:
        raise LauncherError(f"Cannot read {config_xml}: {e}") from e

    root = tree.getroot()
    content = root.find(f"{{{WIDGET_NS}}}content")
    if content is None:
        content = root.find("content")
    if content is None:
        content = ET.SubElement(root, f"{{{WIDGET_NS}}}content")
    content.set("src", url)

    tree.write(config_xml, encoding="utf-8", xml_declaration=True)


class CordovaLauncher(PlatformLauncher):
    """Runs the app on a Cordova platform (android, ios)."""

    mode = PlatformMode.CORDOVA

    def __init__(self, root: Optional[Path] = None, process: Optional[ManagedProcess] = None):
        super().__init__(root)
        self.process = process or ManagedProcess("cordova")
        self._url: Optional[str] = None

    async def init(self, context: SessionContext) -> None:
        self._require_dir(PROJECT_DIR)
        self.context = context

    async def run(self, build_config: BuildConfig, extra_args: List[str]) -> None:
        url = self._require_url(build_config)
        if url == self._url and self.process.is_running:
            return

        self._url = url
        project_dir = self.root / PROJECT_DIR
        set_content_src(project_dir / "config.xml", url)

        cmd = [resolve_command("cordova"), "run", self.context.target, *extra_args]
        logger.info(f"Running Cordova on {self.context.target} against {url}")
        await self.process.start(cmd, cwd=project_dir)

    async def stop(self) -> None:
        await self.process.stop()
