"""
External process management for platform shells and devtools.

Handles:
- Process startup with an extended environment
- Watching for unexpected exits
- Graceful termination with a kill fallback
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from devsession.errors import LauncherError

logger = logging.getLogger(__name__)


def resolve_command(name: str) -> str:
    """
    Locate an executable on PATH.

    Raises:
        LauncherError: If the executable cannot be found
    """
    path = shutil.which(name)
    if path is None:
        raise LauncherError(f"Command not found on PATH: {name}")
    return path


async def start_process(
    cmd: Sequence[str],
    cwd: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
) -> asyncio.subprocess.Process:
    """
    Start an external process.

    Args:
        cmd: Command and arguments
        cwd: Working directory
        env: Variables added to the current environment

    Returns:
        The asyncio subprocess

    Raises:
        LauncherError: If the process fails to start
    """
    full_env = dict(os.environ)
    if env:
        full_env.update(env)

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd) if cwd else None,
            env=full_env,
        )
    except Exception as e:
        raise LauncherError(f"Failed to start {cmd[0]}: {e}") from e

    logger.debug(f"Started {' '.join(cmd)} (PID: {process.pid})")
    return process


async def run_command(
    cmd: Sequence[str],
    cwd: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
) -> None:
    """
    Run a command to completion.

    Raises:
        LauncherError: If the command cannot start or exits non-zero
    """
    process = await start_process(cmd, cwd=cwd, env=env)
    return_code = await process.wait()
    if return_code != 0:
        raise LauncherError(f"{' '.join(cmd)} exited with code {return_code}")


class ManagedProcess:
    """
    A long-running external process owned by the session.

    Handles:
    - Startup and graceful shutdown
    - Logging (and an optional callback) on unexpected exit
    """

    def __init__(
        self,
        name: str,
        on_exit: Optional[Callable[[int], None]] = None,
        stop_timeout: float = 5.0,
    ):
        self.name = name
        self.on_exit = on_exit
        self.stop_timeout = stop_timeout

        self._process: Optional[asyncio.subprocess.Process] = None
        self._running = False
        self._watch_task: Optional[asyncio.Task] = None

    async def start(
        self,
        cmd: List[str],
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> None:
        """Start the process, stopping a previous one first."""
        await self.stop()
        self._process = await start_process(cmd, cwd=cwd, env=env)
        self._running = True
        self._watch_task = asyncio.create_task(self._watch(self._process))
        logger.info(f"Started {self.name}")

    async def stop(self) -> None:
        """Stop the process gracefully."""
        self._running = False

        if self._watch_task:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None

        if self._process:
            if self._process.returncode is None:
                self._process.terminate()
                try:
                    await asyncio.wait_for(self._process.wait(), timeout=self.stop_timeout)
                except asyncio.TimeoutError:
                    self._process.kill()
                    await self._process.wait()
                logger.debug(f"Stopped {self.name}")
            self._process = None

    async def _watch(self, process: asyncio.subprocess.Process) -> None:
        return_code = await process.wait()

        if not self._running:
            return  # Intentional shutdown

        self._running = False
        logger.warning(f"{self.name} exited with code {return_code}")
        if self.on_exit is not None:
            self.on_exit(return_code)

    @property
    def is_running(self) -> bool:
        """Check if the process is running."""
        return self._process is not None and self._process.returncode is None

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None
