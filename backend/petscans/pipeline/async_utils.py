"""
First-success fan-out: run coroutines concurrently, return the first accepted
result, cancel the rest.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)


async def first_success(
    coros: Iterable[Awaitable[Any]],
    accept: Callable[[Any], bool] = lambda result: result is not None,
) -> Tuple[Optional[Any], list[BaseException]]:
    """
    Returns (winner, errors). winner is None when no coroutine produced an
    accepted result; errors holds every exception raised by a finished loser.
    Pending tasks are cancelled on return and when the caller is cancelled.
    """
    tasks = [asyncio.ensure_future(c) for c in coros]
    errors: list[BaseException] = []
    pending = set(tasks)
    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            # Keep submission order among tasks that finished together
            for task in sorted(done, key=tasks.index):
                if task.cancelled():
                    continue
                exc = task.exception()
                if exc is not None:
                    errors.append(exc)
                    continue
                result = task.result()
                if accept(result):
                    return result, errors
        return None, errors
    finally:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.debug("FIRST_SUCCESS cancelled %d pending task(s)", len(pending))
