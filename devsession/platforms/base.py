"""
Platform launcher interface.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from devsession.errors import LauncherError
from devsession.types import BuildConfig, PlatformMode, SessionContext

logger = logging.getLogger(__name__)


class PlatformLauncher(ABC):
    """
    Starts or refreshes the external shell for a mode.

    ``init`` runs once per session before the first endpoint start; ``run``
    runs after every successful endpoint start.
    """

    mode: PlatformMode

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root is not None else Path.cwd()
        self.context: Optional[SessionContext] = None

    @abstractmethod
    async def init(self, context: SessionContext) -> None:
        ...

    @abstractmethod
    async def run(self, build_config: BuildConfig, extra_args: List[str]) -> None:
        ...

    async def stop(self) -> None:
        """Stop any process the launcher started."""

    def _require_dir(self, name: str) -> Path:
        path = self.root / name
        if not path.is_dir():
            raise LauncherError(
                f"{self.mode.value} project folder not found: {path}"
            )
        return path

    @staticmethod
    def _require_url(build_config: BuildConfig) -> str:
        url = build_config.app_url
        if url is None:
            raise LauncherError("Build config has no dev server address")
        return url


class WebLauncher(PlatformLauncher):
    """Web modes are opened in a browser; nothing to launch."""

    def __init__(self, mode: PlatformMode = PlatformMode.SPA, root: Optional[Path] = None):
        super().__init__(root)
        self.mode = mode

    async def init(self, context: SessionContext) -> None:
        self.context = context

    async def run(self, build_config: BuildConfig, extra_args: List[str]) -> None:
        logger.debug(f"App available at {build_config.app_url}")
