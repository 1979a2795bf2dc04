"""
Per-resource write queue.

Background saves to the same document key run strictly in the order they
were submitted; saves to different keys run concurrently. Failures are
logged and dropped, never raised to the mutating caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from kungfu import Result, Error

from kixstore._logging import get_logger

log = get_logger("write_queue")

type Write = Callable[[], Awaitable[Result[Any, Any]]]


class WriteQueue:
    """
    Example:
        queue = WriteQueue()
        queue.submit("carts/u1", lambda: store.set(CARTS, "u1", doc_v1))
        queue.submit("carts/u1", lambda: store.set(CARTS, "u1", doc_v2))
        await queue.flush()   # doc_v2 landed last
    """

    def __init__(self) -> None:
        self._tails: dict[str, asyncio.Task[None]] = {}
        self._failures = 0

    @property
    def failures(self) -> int:
        """Count of saves that failed since creation."""
        return self._failures

    @property
    def pending(self) -> int:
        return len(self._tails)

    def submit(self, key: str, write: Write) -> asyncio.Task[None]:
        """
        Queue `write` behind earlier writes to `key`.

        Note: Requires a running event loop.
        """
        previous = self._tails.get(key)

        async def run() -> None:
            if previous is not None:
                await asyncio.wait([previous])
            try:
                result = await write()
            except Exception as exc:
                self._failures += 1
                log.error("background_save_failed", key=key, error=str(exc))
                return
            match result:
                case Error(err):
                    self._failures += 1
                    log.warning("background_save_failed", key=key, error=str(err))
                case _:
                    log.debug("background_save_done", key=key)

        task = asyncio.get_running_loop().create_task(run())
        self._tails[key] = task

        def release(done: asyncio.Task[None]) -> None:
            if self._tails.get(key) is done:
                del self._tails[key]

        task.add_done_callback(release)
        return task

    async def flush(self) -> None:
        """Wait until every submitted write has finished."""
        while self._tails:
            await asyncio.wait(list(self._tails.values()))


__all__ = ("WriteQueue", "Write")
