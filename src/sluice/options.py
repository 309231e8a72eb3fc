"""Operator configuration and argument validation."""

import inspect
import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Callable, Optional

from sluice.cancellation import CancelSignal
from sluice.errors import InvalidArgumentTypeError, OutOfRangeError


@dataclass(frozen=True)
class OperatorOptions:
    """Options recognized by every operator.

    Attributes:
        concurrency: Maximum number of outstanding transform invocations for
            one operator invocation. Floats are floored; must end up >= 1.
        signal: External cancellation source observed by the operator.

    """

    concurrency: int = 1
    signal: Optional[CancelSignal] = None

    def __post_init__(self):
        concurrency = self.concurrency
        if isinstance(concurrency, bool) or not isinstance(concurrency, Real):
            raise InvalidArgumentTypeError("concurrency", ["int"], concurrency)
        if math.isnan(concurrency) or concurrency < 1:
            raise OutOfRangeError("concurrency", ">= 1", concurrency)
        if math.isinf(concurrency):
            raise OutOfRangeError("concurrency", "a finite integer", concurrency)
        object.__setattr__(self, "concurrency", math.floor(concurrency))

        validate_signal(self.signal)


def validate_callable(func: Any, name: str = "fn") -> Callable:
    if not callable(func):
        raise InvalidArgumentTypeError(name, ["Function", "AsyncFunction"], func)
    return func


def validate_signal(signal: Any) -> Optional[CancelSignal]:
    if signal is not None and not isinstance(signal, CancelSignal):
        raise InvalidArgumentTypeError("signal", ["CancelSignal"], signal)
    return signal


def to_integer_or_infinity(number: Any) -> float:
    """Coerce a take/drop count.

    Values that do not convert to a number (or convert to NaN) become 0,
    negative values are rejected, finite values are floored and infinity is
    kept as is.

    Raises:
        OutOfRangeError: If the number is negative.

    """
    try:
        number = float(number)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    if number < 0:
        raise OutOfRangeError("number", ">= 0", number)
    if math.isinf(number):
        return number
    return math.floor(number)


def context_arity(func: Callable, arity: int) -> Optional[str]:
    """Tell how ``func`` wants to receive an ``OperatorContext``.

    Returns ``"keyword"`` if it declares a ``context`` parameter,
    ``"positional"`` if it has more than ``arity`` required positional
    parameters, and ``None`` otherwise. A bare ``*args`` never asks for the
    context, so wrappers and builtins like ``print`` get the plain arguments.
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return None

    params = signature.parameters
    if "context" in params:
        param = params["context"]
        if param.kind in (
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.KEYWORD_ONLY,
        ):
            return "keyword"

    required = 0
    for param in params.values():
        if (
            param.kind
            in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
            and param.default is inspect.Parameter.empty
        ):
            required += 1

    return "positional" if required > arity else None


def bind_context(func: Callable, arity: int) -> Callable:
    """Wrap ``func`` so it can always be called as ``f(*args, context)``."""
    mode = context_arity(func, arity)

    if mode == "keyword":
        return lambda *args: func(*args[:-1], context=args[-1])
    if mode == "positional":
        return func
    return lambda *args: func(*args[:-1])
