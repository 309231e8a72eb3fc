import inspect
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from sluice.base import Step, T
from sluice.cancellation import CancelSignal, OperatorContext
from sluice.mapper import BoundedMapper
from sluice.options import OperatorOptions, bind_context, validate_callable
from sluice.stream import SKIP, Source

Predicate = Callable[..., Awaitable[bool] | bool]


def _keep_or_skip(predicate: Predicate) -> Callable[[Any, OperatorContext], Any]:
    """Turn a predicate into a transform returning the item or ``SKIP``.

    Synchronous predicates give a synchronous answer, so rejected items never
    occupy a slot of the mapper's queue.
    """
    call = bind_context(predicate, 1)

    async def settle(item, verdict):
        return item if await verdict else SKIP

    def transform(item, context):
        verdict = call(item, context)
        if inspect.isawaitable(verdict):
            return settle(item, verdict)
        return item if verdict else SKIP

    return transform


class Filter(Step[T, T]):
    """Pipeline step that filters items based on a predicate function.

    The Filter step only allows items that satisfy the predicate condition
    to pass through to the next step. Items that don't match are dropped
    from the pipeline, in order, with the same concurrency and cancellation
    behaviour as Map.

    The predicate function can be synchronous or asynchronous and should
    return a truthy value for items to keep.

    Example:
        >>> # Keep only even numbers
        >>> pipeline = range(10) | filter(lambda x: x % 2 == 0)
        >>> await pipeline.collect()  # [0, 2, 4, 6, 8]
    """

    def __init__(
        self,
        predicate: Predicate,
        *,
        concurrency: int = 1,
        signal: Optional[CancelSignal] = None,
    ):
        """Initialize the Filter step.

        Args:
            predicate: Function that returns True for items to keep
            concurrency: Maximum number of concurrent predicate invocations
            signal: Optional external cancellation signal
        """
        self.predicate = validate_callable(predicate)
        self.options = OperatorOptions(concurrency=concurrency, signal=signal)

    def _apply(self, source: Source[T]) -> AsyncIterator[T]:
        return BoundedMapper(
            source, _keep_or_skip(self.predicate), self.options
        ).__aiter__()


def filter(
    predicate: Predicate,
    *,
    concurrency: int = 1,
    signal: Optional[CancelSignal] = None,
) -> Filter[Any]:
    """Create a filter step that keeps items matching a predicate.

    Args:
        predicate: Function that returns True for items to keep, False to drop.
                  Can be async or sync, and may accept a ``context`` argument.
        concurrency: Maximum number of concurrent predicate invocations.
        signal: Optional external cancellation signal.

    Returns:
        A Filter step that can be used in pipelines

    Examples:
        >>> evens = filter(lambda x: x % 2 == 0)
        >>> result = await (range(6) | evens).collect()
        >>> # [0, 2, 4]

        >>> async def is_valid_email(email):
        ...     await asyncio.sleep(0.01)
        ...     return '@' in email and '.' in email
        >>>
        >>> emails = ["test@example.com", "invalid", "user@domain.org"]
        >>> valid = await (emails | filter(is_valid_email, concurrency=4)).collect()
        >>> # ["test@example.com", "user@domain.org"]
    """
    return Filter(predicate, concurrency=concurrency, signal=signal)
