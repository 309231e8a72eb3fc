"""
Sluice: Bounded, Ordered Operators for Async Sequences

Composable operators over asynchronous sequences: values pulled lazily from
an async (or plain) iterable and processed without blocking the event loop.

Key Features:
- Bounded concurrency: at most N transform invocations in flight per operator
- Ordered output: results come out in input order, whatever finishes first
- Lazy pulling: nothing is read from the source until the output is consumed
- Prompt cancellation through CancelSignal, with clean teardown of
  in-flight work and listeners
- Early termination: take(), some(), find() close the source as soon as
  they are satisfied

Quick Start:
    import sluice as s

    # Transform with up to 8 concurrent requests, results in order
    pages = await (urls | s.map(fetch, concurrency=8)).collect()

    # Streaming processing
    async for item in (source | s.filter(is_valid) | s.take(10)).stream():
        process(item)

    # Terminal operators
    total = await (numbers | s.reduce(lambda acc, x: acc + x, 0)).run()

    # Cancellation
    signal = s.CancelSignal()
    task = asyncio.create_task((source | s.map(slow, signal=signal)).collect())
    signal.cancel("shutting down")  # task raises s.AbortError
"""

from .steps import (
    AsIndexedPairs,
    Drop,
    Every,
    Filter,
    Find,
    FlatMap,
    ForEach,
    Map,
    NOT_PROVIDED,
    Reduce,
    Some,
    Take,
    ToList,
    as_indexed_pairs,
    drop,
    every,
    filter,
    find,
    flat_map,
    for_each,
    map,
    reduce,
    some,
    take,
    to_list,
)

from .errors import (
    AbortError,
    EmptyReduceError,
    InvalidArgumentTypeError,
    MissingArgumentsError,
    OutOfRangeError,
    SluiceError,
)

from .cancellation import CancelSignal, CancellationScope, OperatorContext, ScopeState
from .mapper import BoundedMapper
from .options import OperatorOptions
from .stream import EOF, SKIP, Source, Stream, as_source
from .base import Pipeline, Step, Terminal

__version__ = "0.1.0"

__all__ = [
    "AsIndexedPairs",
    "Drop",
    "Every",
    "Filter",
    "Find",
    "FlatMap",
    "ForEach",
    "Map",
    "NOT_PROVIDED",
    "Reduce",
    "Some",
    "Take",
    "ToList",
    "as_indexed_pairs",
    "drop",
    "every",
    "filter",
    "find",
    "flat_map",
    "for_each",
    "map",
    "reduce",
    "some",
    "take",
    "to_list",
    "AbortError",
    "EmptyReduceError",
    "InvalidArgumentTypeError",
    "MissingArgumentsError",
    "OutOfRangeError",
    "SluiceError",
    "CancelSignal",
    "CancellationScope",
    "OperatorContext",
    "ScopeState",
    "BoundedMapper",
    "OperatorOptions",
    "EOF",
    "SKIP",
    "Source",
    "Stream",
    "as_source",
    "Pipeline",
    "Step",
    "Terminal",
]
