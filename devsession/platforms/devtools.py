"""
Standalone devtools process.
"""

from __future__ import annotations

import logging
from typing import Optional

from devsession._core.process import ManagedProcess, resolve_command

logger = logging.getLogger(__name__)

DEVTOOLS_COMMAND = "vue-devtools"


class DevtoolsLauncher:
    """Starts the standalone devtools app once per session."""

    def __init__(self, command: str = DEVTOOLS_COMMAND, process: Optional[ManagedProcess] = None):
        self.command = command
        self.process = process or ManagedProcess("devtools")

    async def start(self, port: int) -> None:
        if self.process.is_running:
            return
        logger.info(f"Starting devtools on port {port}")
        await self.process.start([resolve_command(self.command)], env={"PORT": str(port)})

    async def stop(self) -> None:
        await self.process.stop()
