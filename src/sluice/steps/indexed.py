from contextlib import aclosing
from typing import Any, AsyncIterator, Optional, Tuple

from sluice.base import Step, T
from sluice.cancellation import CancelSignal
from sluice.options import validate_signal
from sluice.stream import Source


class AsIndexedPairs(Step[T, Tuple[int, T]]):
    """Pair each item with its zero-based position in the sequence.

    Pulls sequentially, one item at a time; there is nothing to run
    concurrently.

    Example:
        >>> await (["a", "b"] | as_indexed_pairs()).collect()
        [(0, 'a'), (1, 'b')]
    """

    def __init__(self, *, signal: Optional[CancelSignal] = None):
        self.signal = validate_signal(signal)

    async def _pairs(self, source: Source[T]) -> AsyncIterator[Tuple[int, T]]:
        index = 0
        async with aclosing(source):
            async for item in source:
                if self.signal is not None:
                    self.signal.raise_if_cancelled()
                yield index, item
                index += 1

    def _apply(self, source: Source[T]) -> AsyncIterator[Tuple[int, T]]:
        return self._pairs(source)


def as_indexed_pairs(*, signal: Optional[CancelSignal] = None) -> AsIndexedPairs[Any]:
    """Create a step yielding ``(index, item)`` tuples."""
    return AsIndexedPairs(signal=signal)
