from contextlib import aclosing
from typing import Any, AsyncIterator, Optional

from sluice.base import Step, T
from sluice.cancellation import CancelSignal
from sluice.options import to_integer_or_infinity, validate_signal
from sluice.stream import Source


class Drop(Step[T, T]):
    """Pipeline step that discards the first N items from the sequence.

    Items are discarded as they arrive, so the step keeps no buffer and
    preserves the order of the remaining items.

    Example:
        >>> # Skip and take combination (pagination)
        >>> page_2 = await (
        ...     range(100)
        ...     | drop(10)   # Skip first page
        ...     | take(10)   # Take second page
        ... ).collect()
        >>> # [10, 11, 12, 13, 14, 15, 16, 17, 18, 19]
    """

    def __init__(self, n: Any, *, signal: Optional[CancelSignal] = None):
        """Initialize the Drop step.

        Args:
            n: Number of items to drop. Non-numeric values count as 0.
            signal: Optional external cancellation signal

        Raises:
            OutOfRangeError: If n is negative
        """
        self.n = to_integer_or_infinity(n)
        self.signal = validate_signal(signal)

    def _check(self):
        if self.signal is not None:
            self.signal.raise_if_cancelled()

    async def _drop(self, source: Source[T]) -> AsyncIterator[T]:
        remaining = self.n
        async with aclosing(source):
            self._check()
            async for item in source:
                self._check()
                if remaining > 0:
                    remaining -= 1
                    continue
                yield item

    def _apply(self, source: Source[T]) -> AsyncIterator[T]:
        return self._drop(source)


def drop(n: Any, *, signal: Optional[CancelSignal] = None) -> Drop[Any]:
    """Create a drop step that ignores the first N items from the sequence.

    Args:
        n: Number of items to drop from the beginning. Must be non-negative.
        signal: Optional external cancellation signal.

    Raises:
        OutOfRangeError: If n is negative

    Examples:
        >>> result = await (range(5) | drop(2)).collect()
        >>> # [2, 3, 4]

        >>> lines = ["# Header", "data1", "data2", "data3"]
        >>> data_only = await (lines | drop(1)).collect()
        >>> # ["data1", "data2", "data3"]
    """
    return Drop(n, signal=signal)
