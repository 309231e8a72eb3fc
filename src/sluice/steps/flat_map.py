from contextlib import aclosing
from typing import Any, AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable, Optional, Union

from sluice.base import Step, T, U
from sluice.cancellation import CancelSignal
from sluice.errors import InvalidArgumentTypeError
from sluice.mapper import BoundedMapper
from sluice.options import OperatorOptions, validate_callable
from sluice.stream import Source

SubSequence = Union[Iterable[U], AsyncIterable[U]]


async def _flatten(sequences: AsyncIterator[SubSequence]) -> AsyncIterator[U]:
    async with aclosing(sequences):
        async for sequence in sequences:
            if hasattr(sequence, "__aiter__"):
                inner = sequence.__aiter__()
                if hasattr(inner, "aclose"):
                    async with aclosing(inner):
                        async for item in inner:
                            yield item
                else:
                    async for item in inner:
                        yield item
            elif hasattr(sequence, "__iter__"):
                for item in sequence:
                    yield item
            else:
                raise InvalidArgumentTypeError(
                    "fn result", ["Iterable", "AsyncIterable"], sequence
                )


class FlatMap(Step[T, U]):
    """Pipeline step that maps each item to a sub-sequence and splices them.

    Sub-sequences are produced through the bounded mapper, so up to
    ``concurrency`` of them may be computed ahead, but each one is drained
    completely, in input order, before the next one starts.

    The function may return any iterable (list, tuple, generator, ...) or any
    async iterable, directly or through an awaitable.

    Example:
        >>> sentences = ["hello world", "python rocks"]
        >>> await (sentences | flat_map(str.split)).collect()
        ['hello', 'world', 'python', 'rocks']
    """

    def __init__(
        self,
        func: Callable[..., Union[Awaitable[SubSequence], SubSequence]],
        *,
        concurrency: int = 1,
        signal: Optional[CancelSignal] = None,
    ):
        self.func = validate_callable(func)
        self.options = OperatorOptions(concurrency=concurrency, signal=signal)

    def _apply(self, source: Source[T]) -> AsyncIterator[U]:
        sequences = BoundedMapper(source, self.func, self.options).__aiter__()
        return _flatten(sequences)


def flat_map(
    func: Callable[..., Union[Awaitable[SubSequence], SubSequence]],
    *,
    concurrency: int = 1,
    signal: Optional[CancelSignal] = None,
) -> FlatMap[Any, Any]:
    """Create a flat_map step that applies a function and flattens the results.

    Examples:
        >>> sizes = [3, 2, 4]
        >>> await (sizes | flat_map(range)).collect()
        [0, 1, 2, 0, 1, 0, 1, 2, 3]

        >>> async def pages(user):
        ...     async for page in api.list_pages(user):
        ...         yield page
        >>> all_pages = await (users | flat_map(pages)).collect()

    Note:
        Empty sub-sequences are valid and contribute no items.
    """
    return FlatMap(func, concurrency=concurrency, signal=signal)
