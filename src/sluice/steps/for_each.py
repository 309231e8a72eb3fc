import inspect
from contextlib import aclosing
from typing import Any, Awaitable, Callable, Optional

from sluice.base import Terminal, T
from sluice.cancellation import CancelSignal, OperatorContext
from sluice.mapper import BoundedMapper
from sluice.options import OperatorOptions, bind_context, validate_callable
from sluice.stream import SKIP, Source


def _discarding(func: Callable[..., Any]) -> Callable[[Any, OperatorContext], Any]:
    call = bind_context(func, 1)

    async def settle(outcome: Awaitable[Any]):
        await outcome
        return SKIP

    def transform(item, context):
        outcome = call(item, context)
        if inspect.isawaitable(outcome):
            return settle(outcome)
        return SKIP

    return transform


class ForEach(Terminal[T, None]):
    """Run a side effect for every item.

    Invocations go through the bounded mapper, so they are started in order,
    at most ``concurrency`` at a time, and the first failure stops the rest.
    Their return values are discarded.

    Example:
        >>> async def upload(record):
        ...     await bucket.put(record["key"], record["body"])
        >>> await (records | for_each(upload, concurrency=16)).run()
    """

    def __init__(
        self,
        func: Callable[..., Any],
        *,
        concurrency: int = 1,
        signal: Optional[CancelSignal] = None,
    ):
        self.func = validate_callable(func)
        self.options = OperatorOptions(concurrency=concurrency, signal=signal)

    async def _consume(self, source: Source[T]) -> None:
        mapper = BoundedMapper(source, _discarding(self.func), self.options)
        async with aclosing(mapper.__aiter__()) as outputs:
            async for _ in outputs:
                pass


def for_each(
    func: Callable[..., Any],
    *,
    concurrency: int = 1,
    signal: Optional[CancelSignal] = None,
) -> ForEach[Any]:
    """Create a terminal calling ``func`` on every item."""
    return ForEach(func, concurrency=concurrency, signal=signal)
