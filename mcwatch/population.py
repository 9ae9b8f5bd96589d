"""
Population Counter.

Counts player-data files as a proxy for every player the server has seen.
"""

import asyncio
import logging
import os
import threading
from pathlib import Path
from typing import Union

from .errors import FileSystemError

logger = logging.getLogger(__name__)


def count_entries(path: Union[str, Path]) -> int:
    """Count directory entries, raising FileSystemError if listing fails."""
    try:
        with os.scandir(path) as entries:
            return sum(1 for _ in entries)
    except OSError as e:
        raise FileSystemError(f"cannot list {path}: {e}") from e


def _resolve(future: asyncio.Future, result=None, error=None):
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


def _run_in_daemon_thread(func, *args) -> asyncio.Future:
    """
    Run a blocking call on a daemon thread.

    Unlike the default executor, the thread is never joined at shutdown, so
    a listing stuck on a stalled volume cannot hold up process exit.
    """
    loop = asyncio.get_event_loop()
    future = loop.create_future()

    def worker():
        try:
            outcome = {"result": func(*args)}
        except Exception as e:
            outcome = {"error": e}
        try:
            loop.call_soon_threadsafe(lambda: _resolve(future, **outcome))
        except RuntimeError:
            # loop already closed; nobody is waiting
            pass

    threading.Thread(target=worker, name="population-count", daemon=True).start()
    return future


class PopulationCounter:
    """Counts entries of the player-data directory without blocking the loop."""

    async def count(self, path: Union[str, Path]) -> int:
        """
        Return the number of entries in path.

        A directory that cannot be listed counts as zero; the failure is
        logged at warning level so it can be told apart from an empty
        directory.
        """
        try:
            return await _run_in_daemon_thread(count_entries, path)
        except FileSystemError as e:
            logger.warning(f"Population unavailable, reporting 0: {e}")
            return 0
