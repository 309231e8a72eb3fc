"""Cancellation primitives shared by every operator."""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, List, Optional

from sluice.errors import AbortError

logger = logging.getLogger("sluice.cancellation")

Listener = Callable[[Any], None]


class CancelSignal:
    """An externally controlled cancellation source.

    Operators never cancel a signal they were given; they only listen to it.
    Listeners run synchronously, in registration order, exactly once, when
    ``cancel()`` is first called. A listener that raises does not stop the
    others; its error is logged and the first one is re-raised afterwards.

    Example:
        >>> signal = CancelSignal()
        >>> task = asyncio.create_task((source | map(fetch, signal=signal)).collect())
        >>> signal.cancel("user pressed stop")
        >>> await task  # raises AbortError with reason "user pressed stop"
    """

    def __init__(self):
        self._cancelled = False
        self._reason: Any = None
        self._listeners: List[Listener] = []
        self._event: Optional[asyncio.Event] = None

    @property
    def cancelled(self) -> bool:
        """True once ``cancel()`` has been called."""
        return self._cancelled

    @property
    def reason(self) -> Any:
        return self._reason

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, listener: Listener):
        """Register a callback receiving the reason when cancellation happens."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener):
        """Remove a previously registered callback. Unknown callbacks are ignored."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def cancel(self, reason: Any = None):
        """Request cancellation. Calls after the first one have no effect."""
        if self._cancelled:
            return

        self._cancelled = True
        self._reason = reason
        if self._event is not None:
            self._event.set()

        listeners, self._listeners = self._listeners, []
        first_error: Optional[Exception] = None
        for listener in listeners:
            try:
                listener(reason)
            except Exception as e:
                logger.exception("Cancellation listener %r failed", listener)
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise first_error

    def error(self) -> AbortError:
        """Build the error describing this signal's cancellation."""
        return AbortError(reason=self._reason)

    def raise_if_cancelled(self):
        if self._cancelled:
            raise self.error()

    async def wait(self):
        """Suspend until the signal is cancelled."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()


class ScopeState(Enum):
    """Lifecycle of a cancellation scope."""

    ACTIVE = "active"
    REQUESTED = "requested"
    CLOSED = "closed"


class CancellationScope(CancelSignal):
    """Per-invocation cancellation scope bound to an optional parent signal.

    Each operator invocation owns one scope. It is cancelled by the parent
    signal, by consumer teardown, or by the operator itself, and is closed
    exactly once when the invocation ends. Entering the scope registers a
    single listener on the parent; leaving it removes that listener whatever
    the exit path.

    Attributes:
        parent: The external signal this scope follows, if any.

    """

    def __init__(self, parent: Optional[CancelSignal] = None):
        super().__init__()
        self.parent = parent
        self._listening = False
        self._closed = False

    @property
    def state(self) -> ScopeState:
        if self._closed:
            return ScopeState.CLOSED
        if self.cancelled:
            return ScopeState.REQUESTED
        return ScopeState.ACTIVE

    def _on_parent_cancel(self, reason: Any):
        logger.debug("Cancellation requested by parent signal: %r", reason)
        self.cancel(reason)

    def open(self) -> "CancellationScope":
        """Attach to the parent signal."""
        if self._closed:
            raise RuntimeError("Cancellation scope already closed")

        if self.parent is not None and not self._listening:
            if self.parent.cancelled:
                self.cancel(self.parent.reason)
            else:
                self.parent.add_listener(self._on_parent_cancel)
                self._listening = True
        return self

    def close(self):
        """Detach from the parent signal. Safe to call more than once."""
        if self._closed:
            return

        self._closed = True
        if self._listening:
            self.parent.remove_listener(self._on_parent_cancel)
            self._listening = False

    def __enter__(self) -> "CancellationScope":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class OperatorContext:
    """Handed to user callables that ask for it.

    A callable receives the context when it declares a parameter named
    ``context`` or one positional parameter more than the operator needs.

    Attributes:
        signal: The invocation's cancellation scope; user code can poll
            ``signal.cancelled``, register listeners or ``await signal.wait()``.

    """

    __slots__ = ("signal",)

    def __init__(self, signal: CancelSignal):
        self.signal = signal

    @property
    def cancelled(self) -> bool:
        return self.signal.cancelled

    def __repr__(self):
        return f"OperatorContext(cancelled={self.cancelled})"
