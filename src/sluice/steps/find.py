from contextlib import aclosing
from typing import Any, Optional

from sluice.base import Terminal, T
from sluice.cancellation import CancelSignal
from sluice.stream import Source
from sluice.steps.filter import Filter, Predicate


class Find(Terminal[T, Optional[T]]):
    """Return the first item matching the predicate, or ``default``.

    Like Some, it stops pulling at the first match.
    """

    def __init__(
        self,
        predicate: Predicate,
        *,
        default: Any = None,
        concurrency: int = 1,
        signal: Optional[CancelSignal] = None,
    ):
        self.filter = Filter(predicate, concurrency=concurrency, signal=signal)
        self.default = default

    async def _consume(self, source: Source[T]) -> Optional[T]:
        async with aclosing(self.filter(source)) as matches:
            async for match in matches:
                return match
        return self.default


def find(
    predicate: Predicate,
    *,
    default: Any = None,
    concurrency: int = 1,
    signal: Optional[CancelSignal] = None,
) -> Find[Any]:
    """Create a terminal returning the first matching item.

    Example:
        >>> await (users | find(lambda u: u["admin"])).run()
        {'name': 'root', 'admin': True}
    """
    return Find(predicate, default=default, concurrency=concurrency, signal=signal)
