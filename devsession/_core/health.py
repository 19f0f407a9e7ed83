"""
Readiness check for the serving endpoint.
"""

from __future__ import annotations

import asyncio
import logging

import requests

logger = logging.getLogger(__name__)


def _answers(url: str, timeout: float) -> bool:
    try:
        requests.get(url, timeout=timeout)
    except requests.exceptions.RequestException as e:
        logger.debug(f"Endpoint {url} not reachable yet: {e}")
        return False
    return True


async def wait_reachable(
    url: str,
    timeout: float = 10.0,
    interval: float = 0.5,
) -> bool:
    """
    Wait for the endpoint at ``url`` to answer HTTP requests.

    Any HTTP response counts as reachable, whatever its status code.

    Args:
        url: Endpoint URL
        timeout: Maximum time to wait in seconds
        interval: Time between attempts in seconds

    Returns:
        True if the endpoint answered, False if the timeout expired
    """
    loop = asyncio.get_running_loop()
    start_time = loop.time()

    while True:
        if await loop.run_in_executor(None, _answers, url, interval):
            logger.debug(f"Endpoint {url} is reachable")
            return True
        if loop.time() - start_time >= timeout:
            return False
        await asyncio.sleep(interval)
