import asyncio
import inspect
import logging
from contextlib import aclosing
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sluice.base import Terminal, T
from sluice.cancellation import CancellationScope, CancelSignal, OperatorContext
from sluice.errors import EmptyReduceError
from sluice.options import bind_context, validate_callable, validate_signal
from sluice.stream import Source

U = TypeVar("U")

logger = logging.getLogger("sluice.reduce")


class _NotProvided:
    """Sentinel to indicate no initial value was provided.

    This is used to distinguish between an explicit None initial value
    and no initial value being provided at all.
    """

    def __repr__(self):
        return "NOT_PROVIDED"


NOT_PROVIDED = _NotProvided()


async def _settle(result: Awaitable[U], scope: CancellationScope) -> U:
    """Await a reducer result unless the scope gets cancelled first."""
    outcome = asyncio.ensure_future(result)
    watcher = asyncio.ensure_future(scope.wait())
    try:
        done, _ = await asyncio.wait(
            {outcome, watcher}, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        outcome.cancel()
        raise
    finally:
        watcher.cancel()

    if outcome in done:
        return outcome.result()

    logger.debug("Reduce cancelled while the reducer was running")
    outcome.cancel()
    try:
        await outcome
    except asyncio.CancelledError:
        pass
    raise scope.error()


class Reduce(Terminal[T, U]):
    """Fold a sequence into a single value, left to right.

    The reducer is called as ``reducer(accumulator, item)`` or, if it asks
    for it, ``reducer(accumulator, item, context)``; it may be async. Without
    an initial value the first item seeds the accumulator and the reducer is
    called n-1 times for n items.

    The fold owns a cancellation scope tied to ``signal``. A signal that is
    already cancelled closes the source without pulling anything; one that
    fires mid-fold interrupts the running reducer and raises ``AbortError``.

    Example:
        >>> await (range(1, 6) | reduce(lambda acc, x: acc + x)).run()
        15
        >>> await (range(1, 6) | reduce(lambda acc, x: acc + x, 100)).run()
        115

    Raises:
        EmptyReduceError: If the sequence is empty and no initial value was given.
    """

    def __init__(
        self,
        reducer: Callable[..., Awaitable[U] | U],
        initial: U | _NotProvided = NOT_PROVIDED,
        *,
        signal: Optional[CancelSignal] = None,
    ):
        """Initialize the Reduce terminal.

        Args:
            reducer: Binary function that takes (accumulator, item) and returns new accumulator
            initial: Initial value for the accumulator. If not provided, the first item is used.
            signal: Optional external cancellation signal
        """
        self.reducer = validate_callable(reducer, "reducer")
        self.initial = initial
        self.signal = validate_signal(signal)
        self._call = bind_context(reducer, 2)

    async def _consume(self, source: Source[T]) -> U:
        if self.signal is not None and self.signal.cancelled:
            await source.aclose()
            raise self.signal.error()

        accumulator = self.initial
        has_accumulator = self.initial is not NOT_PROVIDED

        with CancellationScope(self.signal) as scope:
            context = OperatorContext(scope)
            try:
                async with aclosing(source):
                    async for item in source:
                        scope.raise_if_cancelled()

                        if not has_accumulator:
                            accumulator = item
                            has_accumulator = True
                            continue

                        result = self._call(accumulator, item, context)
                        if inspect.isawaitable(result):
                            result = await _settle(result, scope)
                        accumulator = result
            finally:
                # Reducers still watching the context see the fold is over.
                scope.cancel()

        if not has_accumulator:
            raise EmptyReduceError()
        return accumulator


def reduce(
    reducer: Callable[..., Awaitable[U] | U],
    initial: U | _NotProvided = NOT_PROVIDED,
    *,
    signal: Optional[CancelSignal] = None,
) -> Reduce[Any, Any]:
    """Create a reduce terminal that accumulates items into a single value.

    Args:
        reducer: Binary function that takes (accumulator, item) and returns
                a new accumulator value. Can be async.
        initial: Initial value for the accumulator. If not provided, the
                first item in the sequence is used as the initial value.
        signal: Optional external cancellation signal.

    Examples:
        >>> # Find maximum
        >>> await ([3, 7, 2, 9, 1] | reduce(max)).run()
        9

        >>> async def async_accumulate(acc, item):
        ...     await asyncio.sleep(0.01)  # Simulate async work
        ...     return acc + item ** 2
        >>>
        >>> await (range(5) | reduce(async_accumulate, 0)).run()
        30
    """
    return Reduce(reducer, initial, signal=signal)
