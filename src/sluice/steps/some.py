import inspect
from contextlib import aclosing
from typing import Any, Awaitable, Callable, Optional

from sluice.base import Terminal, T
from sluice.cancellation import CancelSignal, OperatorContext
from sluice.options import bind_context, validate_callable
from sluice.stream import Source
from sluice.steps.filter import Filter, Predicate


async def _negate(verdict: Awaitable[Any]) -> bool:
    return not await verdict


def _negated(predicate: Predicate) -> Callable[[Any, OperatorContext], Any]:
    call = bind_context(predicate, 1)

    def negated(item, context):
        verdict = call(item, context)
        if inspect.isawaitable(verdict):
            return _negate(verdict)
        return not verdict

    return negated


class Some(Terminal[T, bool]):
    """True as soon as one item matches the predicate, False if none does.

    Runs the predicate through a Filter with the given concurrency; the first
    delivered match closes the filter and, through it, the source.
    """

    def __init__(
        self,
        predicate: Predicate,
        *,
        concurrency: int = 1,
        signal: Optional[CancelSignal] = None,
    ):
        self.filter = Filter(predicate, concurrency=concurrency, signal=signal)

    async def _consume(self, source: Source[T]) -> bool:
        async with aclosing(self.filter(source)) as matches:
            async for _ in matches:
                return True
        return False


class Every(Terminal[T, bool]):
    """True unless some item fails the predicate.

    Implemented as ``not some(not predicate)``, so it stops at the first
    failing item.
    """

    def __init__(
        self,
        predicate: Predicate,
        *,
        concurrency: int = 1,
        signal: Optional[CancelSignal] = None,
    ):
        validate_callable(predicate)
        self.some = Some(_negated(predicate), concurrency=concurrency, signal=signal)

    async def _consume(self, source: Source[T]) -> bool:
        return not await self.some(source)


def some(
    predicate: Predicate,
    *,
    concurrency: int = 1,
    signal: Optional[CancelSignal] = None,
) -> Some[Any]:
    """Create a terminal checking whether any item matches.

    Example:
        >>> await ([1, 2, 3] | some(lambda x: x % 2 == 0)).run()
        True
    """
    return Some(predicate, concurrency=concurrency, signal=signal)


def every(
    predicate: Predicate,
    *,
    concurrency: int = 1,
    signal: Optional[CancelSignal] = None,
) -> Every[Any]:
    """Create a terminal checking whether all items match.

    Example:
        >>> await ([2, 4, 5] | every(lambda x: x % 2 == 0)).run()
        False
    """
    return Every(predicate, concurrency=concurrency, signal=signal)
