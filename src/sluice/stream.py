from typing import Any, AsyncIterator, Generic, Iterable, Optional, TypeVar, Union
import asyncio

from sluice.errors import InvalidArgumentTypeError

T = TypeVar("T")


class _Skip:
    """Type of the ``SKIP`` marker.

    A transform returning ``SKIP`` produces no output for its input item. When
    it is returned synchronously it never takes a slot in the mapper's queue.
    """

    _instance: Optional["_Skip"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "SKIP"

    def __reduce__(self):
        return (_Skip, ())


class _Eof:
    """Sentinel object to signal the end of a sequence.

    Enqueued by the mapper's producer once the source is exhausted. When the
    consumer reaches it, the output sequence ends.
    """

    _instance: Optional["_Eof"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "EOF"

    def __reduce__(self):
        return (_Eof, ())


SKIP = _Skip()
EOF = _Eof()


class Source(Generic[T]):
    """A sequence that can be pulled item by item and closed early.

    Wraps any async iterator. ``aclose()`` may be called any number of times,
    including while the sequence is only partially consumed; it forwards to the
    wrapped iterator's own ``aclose()`` when there is one.

    Example:
        >>> source = as_source(range(3))
        >>> await source.__anext__()  # 0
        >>> await source.aclose()
        >>> await source.__anext__()  # raises StopAsyncIteration
    """

    def __init__(self, iterator: AsyncIterator[T]):
        self._iterator = iterator
        self.closed = False

    def __aiter__(self) -> "Source[T]":
        return self

    async def __anext__(self) -> T:
        if self.closed:
            raise StopAsyncIteration
        return await self._iterator.__anext__()

    async def aclose(self):
        if self.closed:
            return
        self.closed = True

        aclose = getattr(self._iterator, "aclose", None)
        if aclose is not None:
            await aclose()


async def _iterate(data: Iterable[T]) -> AsyncIterator[T]:
    for item in data:
        yield item


def as_source(data: Union["Source[T]", AsyncIterator[T], Iterable[T], Any]) -> Source[T]:
    """Adapt sync or async iterables into a ``Source``.

    Raises:
        InvalidArgumentTypeError: If ``data`` is not iterable.

    """
    if isinstance(data, Source):
        return data
    if hasattr(data, "__aiter__"):
        return Source(data.__aiter__())
    if hasattr(data, "__iter__"):
        return Source(_iterate(data))

    raise InvalidArgumentTypeError("source", ["AsyncIterable", "Iterable"], data)


class Wakeup:
    """Single-fire wake signal between two cooperating tasks.

    At most one task waits at a time. ``fire()`` resumes that task exactly
    once; firing while nobody waits does nothing, so a waiter must re-check
    its condition before calling ``wait()``.
    """

    def __init__(self):
        self._waiter: Optional[asyncio.Future] = None

    async def wait(self):
        if self._waiter is not None:
            raise RuntimeError("Wakeup already has a waiter")

        waiter = asyncio.get_running_loop().create_future()
        self._waiter = waiter
        try:
            await waiter
        finally:
            if self._waiter is waiter:
                self._waiter = None

    def fire(self) -> bool:
        """Wake the waiting task. Returns False if nobody was waiting."""
        waiter, self._waiter = self._waiter, None
        if waiter is None or waiter.done():
            return False

        waiter.set_result(None)
        return True


class Stream(Generic[T]):
    """Output sequence of a step, owning the source it pulls from.

    Closing a stream closes its source even when the stream was never
    iterated, so an abandoned pipeline still releases everything upstream.
    """

    def __init__(self, iterator: AsyncIterator[T], source: Source[Any]):
        self._iterator = iterator
        self.source = source

    def __aiter__(self) -> "Stream[T]":
        return self

    async def __anext__(self) -> T:
        return await self._iterator.__anext__()

    async def aclose(self):
        try:
            aclose = getattr(self._iterator, "aclose", None)
            if aclose is not None:
                await aclose()
        finally:
            await self.source.aclose()
