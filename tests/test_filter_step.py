import asyncio

import sluice as s
from sluice.steps.filter import _keep_or_skip


async def test_filter_operation():
    pipeline = range(10) | s.filter(lambda x: x % 2 == 0)
    assert await pipeline.collect() == [0, 2, 4, 6, 8]


async def test_async_predicate_keeps_order():
    async def is_even(x):
        await asyncio.sleep(0.001 * (10 - x))
        return x % 2 == 0

    result = await (range(10) | s.filter(is_even, concurrency=4)).collect()
    assert result == [0, 2, 4, 6, 8]


async def test_truthy_values_are_kept():
    result = await (["", "a", 0, 1, None, [1]] | s.filter(lambda x: x)).collect()
    assert result == ["a", 1, [1]]


async def test_rejected_items_do_not_take_buffer_slots():
    """Concurrency 1 over a source where nearly every item is rejected."""
    rejected_pulls = 0

    async def source():
        nonlocal rejected_pulls
        for i in range(1000):
            if i % 100 != 99:
                rejected_pulls += 1
            yield i

    mapper = s.BoundedMapper(
        source(),
        _keep_or_skip(lambda x: x % 100 == 99),
        s.OperatorOptions(concurrency=1),
    )
    result = []
    async for item in mapper:
        assert mapper.pending <= 1
        result.append(item)

    assert result == [99, 199, 299, 399, 499, 599, 699, 799, 899, 999]
    assert rejected_pulls == 990


async def test_mostly_rejected_filter_does_not_block():
    result = await asyncio.wait_for(
        (range(10_000) | s.filter(lambda x: x % 100 == 0)).collect(), timeout=5
    )
    assert result == list(range(0, 10_000, 100))


async def test_filter_after_map():
    pipeline = range(5) | s.map(lambda x: x * 3) | s.filter(lambda x: x > 5)
    assert await pipeline.collect() == [6, 9, 12]


async def test_predicate_with_context():
    def predicate(item, context):
        return not context.cancelled and item > 1

    assert await ([1, 2, 3] | s.filter(predicate)).collect() == [2, 3]
