from contextlib import aclosing
from typing import Any, AsyncIterator, Optional

from sluice.base import Step, T
from sluice.cancellation import CancelSignal
from sluice.options import to_integer_or_infinity, validate_signal
from sluice.stream import Source


class Take(Step[T, T]):
    """Take only the first N items of a sequence.

    The source is never pulled once N items have been delivered: the step
    ends and closes it instead, which stops any upstream operator as well.

    Example:
        >>> await (itertools.count() | take(3)).collect()
        [0, 1, 2]
    """

    def __init__(self, n: Any, *, signal: Optional[CancelSignal] = None):
        """Initialize the Take step.

        Args:
            n: Number of items to take. Non-numeric values count as 0.
            signal: Optional external cancellation signal

        Raises:
            OutOfRangeError: If n is negative
        """
        self.n = to_integer_or_infinity(n)
        self.signal = validate_signal(signal)

    def _check(self):
        if self.signal is not None:
            self.signal.raise_if_cancelled()

    async def _take(self, source: Source[T]) -> AsyncIterator[T]:
        remaining = self.n
        async with aclosing(source):
            self._check()
            if remaining <= 0:
                return

            async for item in source:
                self._check()
                remaining -= 1
                yield item
                if remaining <= 0:
                    return

    def _apply(self, source: Source[T]) -> AsyncIterator[T]:
        return self._take(source)


def take(n: Any, *, signal: Optional[CancelSignal] = None) -> Take[Any]:
    """Create a take step that keeps only the first N items of the sequence.

    Args:
        n: Number of items to take. Floats are floored, infinity takes
            everything and non-numeric values count as 0.
        signal: Optional external cancellation signal.

    Raises:
        OutOfRangeError: If n is negative

    Examples:
        >>> result = await (itertools.count() | take(3)).collect()
        >>> # [0, 1, 2]

        >>> # The source is closed as soon as the third item is delivered
        >>> first_pages = await (crawl(site) | take(3)).collect()
    """
    return Take(n, signal=signal)
