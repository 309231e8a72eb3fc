from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

from sluice.base import Step, T, U
from sluice.cancellation import CancelSignal
from sluice.mapper import BoundedMapper
from sluice.options import OperatorOptions, validate_callable
from sluice.stream import Source, _Skip


Transform = Callable[..., Union[Awaitable[Union[U, _Skip]], U, _Skip]]


class Map(Step[T, U]):
    """Map operation to transform each item with bounded concurrency.

    Up to ``concurrency`` invocations of ``func`` may be awaiting at once;
    results are delivered in input order. ``func`` may return ``SKIP`` to
    produce nothing for an item.
    """

    def __init__(
        self,
        func: Transform,
        *,
        concurrency: int = 1,
        signal: Optional[CancelSignal] = None,
    ):
        self.func = validate_callable(func)
        self.options = OperatorOptions(concurrency=concurrency, signal=signal)

    def _apply(self, source: Source[T]) -> AsyncIterator[U]:
        return BoundedMapper(source, self.func, self.options).__aiter__()


def map(
    func: Transform,
    *,
    concurrency: int = 1,
    signal: Optional[CancelSignal] = None,
) -> Map[Any, Any]:
    """Map operation to transform each item of a sequence.

    Args:
        func: Sync or async callable ``func(item)`` or ``func(item, context)``.
        concurrency: Maximum number of concurrent invocations.
        signal: Optional external cancellation signal.

    Examples:
        >>> await (range(4) | map(lambda x: x * x)).collect()
        [0, 1, 4, 9]

        >>> async def fetch(url, context):
        ...     if context.cancelled:
        ...         return SKIP
        ...     return await client.get(url)
        >>> pages = await (urls | map(fetch, concurrency=10)).collect()
    """
    return Map(func, concurrency=concurrency, signal=signal)
