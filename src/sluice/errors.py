"""Error types raised by Sluice operators."""

from typing import Any, Iterable, Optional


class SluiceError(Exception):
    """Base class for errors raised by the operators themselves.

    Failures coming from user callables or from the source sequence are never
    wrapped; they propagate as-is at their position in the output order.
    """

    code: str = "ERR_SLUICE"


class InvalidArgumentTypeError(SluiceError, TypeError):
    """An operator argument has the wrong type."""

    code = "ERR_INVALID_ARG_TYPE"

    def __init__(self, name: str, expected: Iterable[str], actual: Any):
        """Create the error.

        Args:
            name: Name of the offending argument.
            expected: Names of the accepted types.
            actual: The value that was received.

        """
        self.name = name
        self.expected = tuple(expected)
        self.actual = actual
        super().__init__(
            f'The "{name}" argument must be of type {" or ".join(self.expected)}. '
            f"Received {type(actual).__name__}"
        )


class OutOfRangeError(SluiceError, ValueError):
    """A numeric operator argument is outside its accepted range."""

    code = "ERR_OUT_OF_RANGE"

    def __init__(self, name: str, bound: str, actual: Any):
        self.name = name
        self.bound = bound
        self.actual = actual
        super().__init__(
            f'The value of "{name}" is out of range. It must be {bound}. Received {actual!r}'
        )


class MissingArgumentsError(SluiceError, TypeError):
    """A required argument was not supplied."""

    code = "ERR_MISSING_ARGS"

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or f'The "{name}" argument must be specified')


class EmptyReduceError(MissingArgumentsError):
    """Raised when folding an empty sequence without an initial value."""

    def __init__(self):
        super().__init__(
            "reduce", "Reduce of an empty stream requires an initial value"
        )


class AbortError(SluiceError):
    """Raised when an operator observes a cancellation request.

    Attributes:
        reason: Whatever was passed to ``CancelSignal.cancel``; ``None`` when
            the operator was torn down without an explicit reason.

    """

    code = "ABORT_ERR"

    def __init__(self, message: str = "The operation was aborted", reason: Any = None):
        self.reason = reason
        super().__init__(message)
        if isinstance(reason, BaseException):
            self.__cause__ = reason
