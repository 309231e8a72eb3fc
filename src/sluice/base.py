from contextlib import aclosing
from typing import Any, AsyncIterator, Generic, Iterable, List, Optional, TypeVar, Union
from abc import ABC

from sluice.cancellation import CancelSignal
from sluice.stream import Source, Stream, as_source

# Type variables
T = TypeVar("T")
U = TypeVar("U")
V = TypeVar("V")
R = TypeVar("R")

Input = Union[Source[T], AsyncIterator[T], Iterable[T]]


class WithPipeline(ABC, Generic[T, U]):
    """Abstract base for objects that can be chained in pipelines.

    WithPipeline defines the interface for objects that support the pipe
    operator (|) for chaining operations together. This includes individual
    steps, terminals and complete pipelines.

    The class supports two chaining patterns:
    1. step | step  -> Pipeline (forward chaining)
    2. data | step  -> Pipeline (data binding)
    """

    def __or__(self, other: "WithPipeline[U, V]") -> "Pipeline[T, V]":
        """Chain this object with another using | operator."""
        return self.then(other)

    def then(self, other: "WithPipeline[U, V]") -> "Pipeline[T, V]":
        """Chain this object with another sequentially.

        Raises:
            NotImplementedError: Must be implemented by subclasses
        """
        raise NotImplementedError

    def __ror__(self, other: Input[T]) -> "Pipeline[T, U]":
        """Support data | step syntax (reverse pipe operator)."""
        return self.with_input(other)

    def with_input(self, data: Input[T]) -> "Pipeline[T, U]":
        """Create a pipeline with this object and the given input data.

        Raises:
            NotImplementedError: Must be implemented by subclasses
        """
        raise NotImplementedError


class Step(WithPipeline[T, U]):
    """Base class for sequence-returning operators.

    A step turns a source sequence into a new lazily pulled async sequence.
    Nothing is pulled until the returned sequence is iterated. Steps can be:
    - Chained together: step1 | step2 | step3
    - Applied to data: data | step
    - Called directly: step(source) -> AsyncIterator

    Subclasses must implement _apply. Argument validation happens in their
    constructors, so errors surface before any pulling begins.
    """

    def __call__(self, source: Input[T]) -> Stream[U]:
        """Apply this step to a source sequence."""
        source = as_source(source)
        return Stream(self._apply(source), source)

    def _apply(self, source: Source[T]) -> AsyncIterator[U]:
        """Build the output sequence of this step.

        Raises:
            NotImplementedError: Must be implemented by subclasses
        """
        raise NotImplementedError

    def then(self, other: WithPipeline[U, V]) -> "Pipeline[T, V]":
        """Chain this step with another step, terminal or pipeline."""
        return Pipeline([self]).then(other)

    def with_input(self, data: Input[T]) -> "Pipeline[T, U]":
        """Create a pipeline with this step and input data."""
        return Pipeline([self], input_data=data)


class Terminal(WithPipeline[T, R]):
    """Base class for operators that consume a sequence down to one result.

    Terminals end a pipeline: ``data | step | terminal`` builds a pipeline
    whose ``run()`` returns the terminal's result. Called directly,
    ``await terminal(source)`` consumes the source.
    """

    async def __call__(self, source: Input[T]) -> R:
        return await self._consume(as_source(source))

    async def _consume(self, source: Source[T]) -> R:
        """Consume the source into a result.

        Raises:
            NotImplementedError: Must be implemented by subclasses
        """
        raise NotImplementedError

    def then(self, other: WithPipeline[Any, Any]) -> "Pipeline[T, Any]":
        raise TypeError(f"Cannot chain after terminal {type(self).__name__}")

    def with_input(self, data: Input[T]) -> "Pipeline[T, R]":
        return Pipeline([], input_data=data, terminal=self)


class Pipeline(Step[T, U]):
    """A pipeline composed of sequence steps and an optional terminal.

    Usage patterns:
    1. Build from steps: Pipeline([step1, step2, step3])
    2. Chain with |: step1 | step2 | step3
    3. Apply to data: data | pipeline
    4. End with a terminal: data | step | reduce(add)

    Example:
        >>> pipeline = range(10) | map(lambda x: x * 2) | filter(lambda x: x > 5)
        >>> await pipeline.collect()
        [6, 8, 10, 12, 14, 16, 18]
        >>> await (range(4) | reduce(lambda acc, x: acc + x)).run()
        6

    Attributes:
        steps: Steps to apply in order
        input_data: Optional input data for the pipeline
        terminal: Optional terminal consuming the last step's output
    """

    steps: List[Step[Any, Any]]

    def __init__(
        self,
        steps: List[Step[Any, Any]],
        input_data: Optional[Input[T]] = None,
        terminal: Optional[Terminal[Any, Any]] = None,
    ):
        """Initialize a new Pipeline.

        Args:
            steps: Steps to execute in sequence
            input_data: Optional input data for the pipeline
            terminal: Optional terminal ending the pipeline
        """
        if not isinstance(steps, list):
            raise TypeError(f"steps must be a list, got {type(steps).__name__}")
        for step in steps:
            if not isinstance(step, Step):
                raise TypeError(f"steps must contain Step objects, got {type(step).__name__}")
        if terminal is not None and not isinstance(terminal, Terminal):
            raise TypeError(
                f"terminal must be a Terminal, got {type(terminal).__name__}"
            )

        self.steps = steps
        self.input_data = input_data
        self.terminal = terminal

    def _get_source(self, input_data: Optional[Input[T]]) -> Source[T]:
        """Resolve which input to run on.

        Raises:
            ValueError: If no input is provided or input is provided twice
        """
        if input_data is not None and self.input_data is not None:
            raise ValueError("Input provided twice")

        data_to_process = input_data if input_data is not None else self.input_data
        if data_to_process is None:
            raise ValueError("No input provided")

        return as_source(data_to_process)

    def _chain(self, source: Source[T]) -> Any:
        sequence: Any = source
        for step in self.steps:
            sequence = step(sequence)
        return sequence

    def _apply(self, source: Source[T]) -> AsyncIterator[U]:
        if self.terminal is not None:
            raise TypeError("Pipeline ends with a terminal, use run() instead")
        return self._chain(source)

    async def stream(self, input_data: Optional[Input[T]] = None) -> AsyncIterator[U]:
        """Execute the pipeline and yield results as they become available.

        Leaving the loop early closes every step and the source.

        Raises:
            ValueError: If no input data is provided
        """
        source = self._get_source(input_data)
        async with aclosing(self._apply(source)) as sequence:
            async for item in sequence:
                yield item

    async def collect(
        self,
        input_data: Optional[Input[T]] = None,
        *,
        signal: Optional[CancelSignal] = None,
    ) -> List[U]:
        """Execute the pipeline and collect all results into a list."""
        from sluice.steps.to_list import ToList

        return await ToList(signal=signal)(self._apply(self._get_source(input_data)))

    async def run(self, input_data: Optional[Input[T]] = None) -> Any:
        """Execute the pipeline: the terminal's result, or the collected list."""
        if self.terminal is None:
            return await self.collect(input_data)

        return await self.terminal(self._chain(self._get_source(input_data)))

    def then(self, other: WithPipeline[Any, V]) -> "Pipeline[T, V]":
        """Chain this pipeline with another step, terminal or pipeline."""
        if self.terminal is not None:
            raise TypeError(
                f"Cannot chain after terminal {type(self.terminal).__name__}"
            )

        if isinstance(other, Pipeline):
            if other.input_data is not None:
                raise ValueError("Cannot chain a pipeline that already has input")
            return Pipeline(
                self.steps + other.steps,
                input_data=self.input_data,
                terminal=other.terminal,
            )
        elif isinstance(other, Terminal):
            return Pipeline(self.steps, input_data=self.input_data, terminal=other)
        elif isinstance(other, Step):
            return Pipeline(self.steps + [other], input_data=self.input_data)
        else:
            raise TypeError(f"Cannot chain {type(other).__name__} into a pipeline")

    def with_input(self, data: Input[T]) -> "Pipeline[T, U]":
        """Support data | pipeline syntax."""
        if self.input_data is not None:
            raise ValueError("Input provided twice")

        return Pipeline(self.steps, input_data=data, terminal=self.terminal)
