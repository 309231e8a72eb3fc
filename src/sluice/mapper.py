import asyncio
import inspect
import logging
from collections import deque
from typing import Any, AsyncIterator, Callable, Deque, Generic, Optional, TypeVar

from sluice.cancellation import CancellationScope, OperatorContext
from sluice.options import OperatorOptions, bind_context, validate_callable
from sluice.stream import EOF, SKIP, Source, Wakeup, as_source

T = TypeVar("T")
U = TypeVar("U")

logger = logging.getLogger("sluice.mapper")


class BoundedMapper(Generic[T, U]):
    """Order-preserving concurrent map over an async sequence.

    The mapper runs two cooperating tasks over one ordered queue of pending
    slots:

    - a producer task that pulls the source, invokes the transform and
      enqueues one slot per result, suspending while ``concurrency`` slots are
      outstanding;
    - the consumer, which is the async iterator handed to the caller. It
      always awaits the oldest slot, so outputs come out in source order no
      matter which invocation finishes first.

    A transform may return a value, an awaitable, or ``SKIP``. A ``SKIP``
    returned synchronously is dropped before it takes a slot; an awaitable
    that resolves to ``SKIP`` holds its slot until it settles and is then
    dropped.

    The first failure (from the transform, the source, or a cancellation
    request) stops pulling. Results queued before it are still delivered, then
    the failure is raised. Tearing the iterator down, for any reason, cancels
    the invocation's scope, cancels outstanding work, closes the source and
    detaches from the external signal.

    Example:
        >>> async def fetch(url):
        ...     async with session.get(url) as response:
        ...         return await response.text()
        >>>
        >>> async for page in BoundedMapper(urls, fetch, OperatorOptions(concurrency=8)):
        ...     parse(page)

    Attributes:
        source: The source being pulled.
        options: Concurrency limit and external signal.
        scope: Cancellation scope of this invocation, handed to the transform
            through ``OperatorContext.signal``.

    """

    def __init__(
        self,
        source: Any,
        fn: Callable[..., Any],
        options: Optional[OperatorOptions] = None,
    ):
        validate_callable(fn)

        self.source: Source[T] = as_source(source)
        self.fn = fn
        self.options = options or OperatorOptions()
        self.scope = CancellationScope(self.options.signal)
        self.context = OperatorContext(self.scope)

        self._call = bind_context(fn, 1)
        self._queue: Deque[asyncio.Future] = deque()
        self._has_data = Wakeup()
        self._has_room = Wakeup()
        self._stopped = False
        self._iterated = False

    @property
    def concurrency(self) -> int:
        return self.options.concurrency

    @property
    def pending(self) -> int:
        """Number of slots enqueued but not yet delivered."""
        return len(self._queue)

    def __aiter__(self) -> AsyncIterator[U]:
        if self._iterated:
            raise RuntimeError("BoundedMapper can only be iterated once")
        self._iterated = True
        return self._consume()

    def _stop(self, reason: str):
        if not self._stopped:
            logger.debug("Producer stopping: %s", reason)
            self._stopped = True

    def _on_slot_done(self, slot: asyncio.Future):
        if slot.cancelled():
            return
        if slot.exception() is not None:
            self._stop("transform failed")

    def _failed_slot(self, error: BaseException) -> asyncio.Future:
        slot = asyncio.get_running_loop().create_future()
        slot.set_exception(error)
        return slot

    def _settled_slot(self, value: Any) -> asyncio.Future:
        slot = asyncio.get_running_loop().create_future()
        slot.set_result(value)
        return slot

    def _invoke(self, item: T):
        """Run the transform on one item; return a slot or ``SKIP``."""
        try:
            result = self._call(item, self.context)
        except Exception as e:
            # Synchronous failures keep their position in the output.
            self._stop("transform failed")
            return self._failed_slot(e)

        if result is SKIP:
            return SKIP

        if inspect.isawaitable(result):
            slot = asyncio.ensure_future(result)
            slot.add_done_callback(self._on_slot_done)
            return slot

        return self._settled_slot(result)

    def _enqueue(self, slot: asyncio.Future):
        self._queue.append(slot)
        self._has_data.fire()

    async def _pump(self):
        """Producer: pull, transform and enqueue until stopped or exhausted."""
        try:
            while not self._stopped:
                self.scope.raise_if_cancelled()

                try:
                    item = await self.source.__anext__()
                except StopAsyncIteration:
                    self._enqueue(self._settled_slot(EOF))
                    return

                if self._stopped:
                    return
                self.scope.raise_if_cancelled()

                slot = self._invoke(item)
                if slot is SKIP:
                    continue

                self._enqueue(slot)
                if not self._stopped and len(self._queue) >= self.concurrency:
                    await self._has_room.wait()

        except Exception as e:
            self._stop(f"{type(e).__name__} while pulling")
            self._enqueue(self._failed_slot(e))

        finally:
            self._stopped = True
            self._has_data.fire()

    async def _consume(self) -> AsyncIterator[U]:
        """Consumer: deliver settled slots in order."""
        self.scope.open()
        self.scope.add_listener(self._on_cancel)
        producer = asyncio.create_task(self._pump())

        try:
            while True:
                while self._queue:
                    value = await self._queue[0]

                    if value is EOF:
                        return

                    self.scope.raise_if_cancelled()

                    if value is not SKIP:
                        yield value

                    self._queue.popleft()
                    self._has_room.fire()

                self.scope.raise_if_cancelled()
                await self._has_data.wait()

        finally:
            await self._teardown(producer)

    def _on_cancel(self, reason: Any):
        # Consumer waiting on an empty queue must notice the cancellation.
        self._has_data.fire()

    async def _teardown(self, producer: "asyncio.Task[None]"):
        self._stopped = True
        self.scope.remove_listener(self._on_cancel)
        self.scope.cancel()
        self._has_room.fire()

        producer.cancel()
        outstanding = [slot for slot in self._queue if not slot.done()]
        for slot in outstanding:
            slot.cancel()

        try:
            # The producer reports its own failures through slots.
            await asyncio.gather(producer, *outstanding, return_exceptions=True)

            # Only the first failure reaches the caller.
            for slot in self._queue:
                if slot.done() and not slot.cancelled():
                    slot.exception()
            self._queue.clear()

            logger.debug(
                "Mapper torn down, %d in-flight invocation(s) cancelled",
                len(outstanding),
            )
            await self.source.aclose()
        finally:
            self.scope.close()
