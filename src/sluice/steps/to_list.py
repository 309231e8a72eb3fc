from contextlib import aclosing
from typing import Any, List, Optional

from sluice.base import Terminal, T
from sluice.cancellation import CancelSignal
from sluice.options import validate_signal
from sluice.stream import Source


class ToList(Terminal[T, List[T]]):
    """Collect every item of a sequence into a list, in order.

    The signal is checked before pulling starts and before each item is
    accepted; a cancelled signal raises ``AbortError`` and the partial list is
    discarded.
    """

    def __init__(self, *, signal: Optional[CancelSignal] = None):
        self.signal = validate_signal(signal)

    def _check(self):
        if self.signal is not None:
            self.signal.raise_if_cancelled()

    async def _consume(self, source: Source[T]) -> List[T]:
        items: List[T] = []
        async with aclosing(source):
            self._check()
            async for item in source:
                self._check()
                items.append(item)
        return items


def to_list(*, signal: Optional[CancelSignal] = None) -> ToList[Any]:
    """Create a terminal collecting a sequence into a list.

    Example:
        >>> await (range(3) | map(str) | to_list()).run()
        ['0', '1', '2']
    """
    return ToList(signal=signal)
