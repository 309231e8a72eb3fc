import asyncio
from contextlib import aclosing

import pytest

import sluice as s


async def naturals():
    n = 0
    while True:
        yield n
        n += 1


class TestCancelSignal:
    def test_listeners_run_once_with_reason(self):
        signal = s.CancelSignal()
        calls = []
        signal.add_listener(calls.append)

        signal.cancel("stop")
        signal.cancel("again")

        assert calls == ["stop"]
        assert signal.cancelled
        assert signal.reason == "stop"
        assert signal.listener_count == 0

    def test_raising_listener_does_not_block_others(self, caplog):
        parent = s.CancelSignal()
        calls = []

        def broken(reason):
            raise RuntimeError("listener bug")

        parent.add_listener(broken)
        scope = s.CancellationScope(parent).open()
        parent.add_listener(calls.append)

        with pytest.raises(RuntimeError, match="listener bug"):
            parent.cancel("stop")

        assert scope.cancelled
        assert scope.reason == "stop"
        assert calls == ["stop"]
        assert parent.listener_count == 0
        assert "Cancellation listener" in caplog.text
        scope.close()

    async def test_operator_still_aborts_after_raising_listener(self):
        signal = s.CancelSignal()

        def broken(reason):
            raise RuntimeError("listener bug")

        signal.add_listener(broken)

        async def slow(x):
            await asyncio.sleep(0.005)
            return x

        task = asyncio.create_task((naturals() | s.map(slow, signal=signal)).collect())
        await asyncio.sleep(0.02)

        with pytest.raises(RuntimeError):
            signal.cancel("stop")

        with pytest.raises(s.AbortError):
            await asyncio.wait_for(task, timeout=1)
        assert signal.listener_count == 0

    def test_remove_unknown_listener_is_ignored(self):
        signal = s.CancelSignal()
        signal.remove_listener(print)
        assert signal.listener_count == 0

    def test_error_carries_reason(self):
        signal = s.CancelSignal()
        signal.cancel("timeout")

        with pytest.raises(s.AbortError) as exc_info:
            signal.raise_if_cancelled()

        assert exc_info.value.reason == "timeout"
        assert exc_info.value.code == "ABORT_ERR"

    def test_exception_reason_becomes_cause(self):
        reason = ConnectionError("peer gone")
        error = s.AbortError(reason=reason)
        assert error.__cause__ is reason

    async def test_wait_resumes_on_cancel(self):
        signal = s.CancelSignal()
        waiter = asyncio.create_task(signal.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        signal.cancel()
        await asyncio.wait_for(waiter, timeout=1)


class TestCancellationScope:
    def test_lifecycle(self):
        parent = s.CancelSignal()
        scope = s.CancellationScope(parent)
        assert scope.state is s.ScopeState.ACTIVE
        assert parent.listener_count == 0

        with scope:
            assert parent.listener_count == 1
            parent.cancel("bye")
            assert scope.state is s.ScopeState.REQUESTED
            assert scope.reason == "bye"

        assert scope.state is s.ScopeState.CLOSED

    def test_listener_removed_exactly_once(self):
        parent = s.CancelSignal()
        scope = s.CancellationScope(parent).open()
        other = s.CancellationScope(parent).open()
        assert parent.listener_count == 2

        scope.close()
        scope.close()
        assert parent.listener_count == 1

        other.close()
        assert parent.listener_count == 0

    def test_opening_under_cancelled_parent(self):
        parent = s.CancelSignal()
        parent.cancel("early")

        with s.CancellationScope(parent) as scope:
            assert scope.cancelled
            assert scope.reason == "early"
            assert parent.listener_count == 0

    def test_own_cancel_does_not_touch_parent(self):
        parent = s.CancelSignal()
        with s.CancellationScope(parent) as scope:
            scope.cancel()
        assert not parent.cancelled

    def test_cannot_reopen(self):
        scope = s.CancellationScope()
        scope.close()
        with pytest.raises(RuntimeError):
            scope.open()


class TestOperatorCancellation:
    async def test_external_cancel_mid_stream(self):
        signal = s.CancelSignal()

        async def slow(x):
            await asyncio.sleep(0.005)
            return x

        seen = []

        async def consume():
            async for item in (naturals() | s.map(slow, concurrency=2, signal=signal)).stream():
                seen.append(item)

        task = asyncio.create_task(consume())
        await asyncio.sleep(0.05)
        signal.cancel("user pressed stop")

        with pytest.raises(s.AbortError) as exc_info:
            await asyncio.wait_for(task, timeout=1)

        assert exc_info.value.reason == "user pressed stop"
        assert seen == list(range(len(seen)))
        assert signal.listener_count == 0

    async def test_cancel_wakes_consumer_waiting_for_data(self):
        signal = s.CancelSignal()
        never = asyncio.Event()

        async def stalled():
            yield 1
            await never.wait()
            yield 2

        task = asyncio.create_task((stalled() | s.map(lambda x: x, signal=signal)).collect())
        await asyncio.sleep(0.01)
        signal.cancel("stalled")

        with pytest.raises(s.AbortError):
            await asyncio.wait_for(task, timeout=1)
        assert signal.listener_count == 0

    async def test_transform_sees_cancellation_through_context(self):
        signal = s.CancelSignal()
        observed = []

        async def cooperative(x, context):
            await context.signal.wait()
            observed.append(context.signal.reason)
            return x

        task = asyncio.create_task(([1] | s.map(cooperative, signal=signal)).collect())
        await asyncio.sleep(0.01)
        signal.cancel("shutdown")

        with pytest.raises(s.AbortError):
            await asyncio.wait_for(task, timeout=1)
        assert observed == ["shutdown"]

    @pytest.mark.parametrize(
        "outcome",
        ["success", "failure", "early_close"],
    )
    async def test_no_listener_leak(self, outcome):
        signal = s.CancelSignal()

        def fn(x):
            if outcome == "failure" and x == 3:
                raise ValueError(x)
            return x

        stream = s.map(fn, concurrency=2, signal=signal)(range(10))
        async with aclosing(stream):
            try:
                async for item in stream:
                    assert signal.listener_count == 1
                    if outcome == "early_close" and item == 2:
                        break
            except ValueError:
                assert outcome == "failure"

        assert signal.listener_count == 0
        assert not signal.cancelled

    async def test_early_close_cancels_in_flight_work(self):
        cancelled = []

        async def work(x):
            if x == 0:
                return x
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(x)
                raise
            return x

        stream = s.map(work, concurrency=3)(naturals())
        async with aclosing(stream):
            async for item in stream:
                assert item == 0
                await asyncio.sleep(0.01)
                break

        assert sorted(cancelled) == [1, 2]

    async def test_context_cancelled_on_teardown(self):
        contexts = []

        def remember(x, context):
            contexts.append(context)
            return x

        stream = s.map(remember)(naturals())
        async with aclosing(stream):
            async for _ in stream:
                break

        assert contexts
        assert contexts[0].cancelled
        assert contexts[0].signal.state is s.ScopeState.CLOSED

    async def test_pre_cancelled_signal_on_steps(self):
        signal = s.CancelSignal()
        signal.cancel()

        for step in (s.drop(1, signal=signal), s.as_indexed_pairs(signal=signal)):
            with pytest.raises(s.AbortError):
                await ([1, 2, 3] | step).collect()
