"""Fan-out join combinators.

- ``gather_all_or_nothing``: every call must succeed; the first failure
  rejects the whole join and no partial result list escapes.
- ``gather_with_default``: every position yields a value; an individual
  failure is replaced by a default.
"""

import asyncio
from typing import Any, Awaitable, Iterable, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def gather_all_or_nothing(awaitables: Iterable[Awaitable[T]]) -> list[T]:
    """Run awaitables concurrently and return results in input order.

    Raises:
        Exception: The first exception raised by any awaitable. Sibling tasks
            still running at that point are cancelled.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        # Reap cancelled siblings so their exceptions are not reported as unretrieved
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def gather_with_default(
    awaitables: Iterable[Awaitable[T]], default: Any, label: str = "task"
) -> list[Any]:
    """Run awaitables concurrently, substituting ``default`` for any failure.

    Cancellation is not swallowed.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)

    joined = []
    for index, result in enumerate(results):
        if isinstance(result, Exception):
            logger.warning(
                "fanout.item_defaulted",
                label=label,
                index=index,
                error=str(result),
                error_type=type(result).__name__,
            )
            joined.append(default)
        elif isinstance(result, BaseException):
            raise result
        else:
            joined.append(result)
    return joined
