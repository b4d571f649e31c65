"""Time-boxing helpers: race an awaitable against a timer without cancelling it."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Abandoned tasks stay referenced here until they finish so they are not garbage collected
_abandoned: set[asyncio.Task] = set()


def _discard(task: asyncio.Task) -> None:
    _abandoned.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Abandoned task finished with %s: %s",
                     type(task.exception()).__name__, task.exception())


def abandon(task: asyncio.Task) -> None:
    """Stop waiting for *task* but let it run to completion in the background."""
    if task.done():
        _discard(task)
        return
    _abandoned.add(task)
    task.add_done_callback(_discard)


def pending_abandoned() -> int:
    return len(_abandoned)


async def with_timeout(awaitable: Awaitable[T], seconds: float, label: str = "operation") -> T:
    """Await *awaitable* for at most *seconds*.

    Raises TimeoutError when the timer wins. The losing task is abandoned,
    not cancelled; its eventual result or exception is discarded.
    """
    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=seconds)
    if task in done:
        return task.result()
    abandon(task)
    raise TimeoutError(f"{label} timed out after {seconds:g}s")


async def try_with_timeout(
    awaitable: Awaitable[T], seconds: float, label: str = "operation"
) -> Optional[T]:
    """Like :func:`with_timeout` but returns None on timeout or error."""
    try:
        return await with_timeout(awaitable, seconds, label)
    except TimeoutError:
        logger.debug("%s timed out after %gs", label, seconds)
        return None
    except Exception as e:
        logger.debug("%s failed: %s", label, e)
        return None
