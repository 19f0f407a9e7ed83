"""
Process and endpoint plumbing for devsession.

This module handles:
- Starting and stopping external processes (platform shells, devtools)
- Waiting for the serving endpoint to answer HTTP
"""

from devsession._core.process import (
    ManagedProcess,
    resolve_command,
    run_command,
    start_process,
)
from devsession._core.health import wait_reachable

__all__ = [
    # Process
    "ManagedProcess",
    "resolve_command",
    "run_command",
    "start_process",
    # Health
    "wait_reachable",
]
