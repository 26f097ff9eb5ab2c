"""Tests for stream handles and the stream registry."""

import threading
import time
from unittest.mock import Mock

import grpc
import pytest

from joblet_client.errors import ChannelError, RpcError, TimeoutError
from joblet_client.streams import EventKind, StreamEvent, StreamHandle, StreamRegistry

from .fixtures import MockRpcError


class TestStreamHandle:
    """Tests for StreamHandle."""

    def test_exactly_one_terminal_event(self) -> None:
        handle = StreamHandle("JobService.GetJobLogs")
        assert handle.emit(StreamEvent.data(b"a"))
        assert handle.emit(StreamEvent.ended())
        assert not handle.emit(StreamEvent.data(b"late"))
        assert not handle.emit(StreamEvent.failed(RpcError("m", MockRpcError(grpc.StatusCode.INTERNAL))))
        assert [e.kind for e in handle] == [EventKind.DATA, EventKind.END]

    def test_cancel_is_idempotent(self) -> None:
        on_cancel = Mock()
        call = Mock()
        handle = StreamHandle("JobService.GetJobLogs", on_cancel=on_cancel)
        handle.attach(call)

        assert handle.cancel()
        assert not handle.cancel()

        on_cancel.assert_called_once_with()
        call.cancel.assert_called_once_with()
        assert handle.terminal_event.kind is EventKind.CANCELLED

    def test_cancel_after_end_is_noop(self) -> None:
        on_cancel = Mock()
        handle = StreamHandle("JobService.GetJobLogs", on_cancel=on_cancel)
        handle.emit(StreamEvent.ended())
        assert not handle.cancel()
        on_cancel.assert_not_called()

    def test_attach_after_terminal_cancels_call(self) -> None:
        handle = StreamHandle("JobService.GetJobLogs")
        handle.cancel()
        call = Mock()
        assert not handle.attach(call)
        call.cancel.assert_called_once_with()

    def test_callback_may_cancel_its_own_stream(self) -> None:
        events = []

        def on_data(payload) -> None:
            events.append(payload)
            handle.cancel()

        handle = StreamHandle("MonitoringService.StreamSystemMetrics", on_data=on_data)
        handle.emit(StreamEvent.data("sample"))
        assert not handle.emit(StreamEvent.data("next"))
        assert events == ["sample"]
        assert handle.terminal_event.kind is EventKind.CANCELLED

    def test_failing_callback_does_not_break_stream(self) -> None:
        handle = StreamHandle("JobService.GetJobLogs", on_data=Mock(side_effect=ValueError("boom")))
        assert handle.emit(StreamEvent.data(b"a"))
        assert handle.emit(StreamEvent.ended())
        assert handle.wait(timeout=0)
        assert handle.terminal_event.kind is EventKind.END

    @pytest.mark.parametrize(
        "callback, event",
        [
            ("on_end", StreamEvent.ended()),
            ("on_cancel", StreamEvent.cancelled()),
            ("on_error", StreamEvent.failed(RpcError("m", MockRpcError(grpc.StatusCode.INTERNAL)))),
        ],
    )
    def test_failing_terminal_callback_still_finishes(self, callback, event) -> None:
        registry = StreamRegistry()
        handle = StreamHandle("JobService.GetJobLogs", **{callback: Mock(side_effect=RuntimeError("boom"))})
        registry.register(handle)

        assert handle.emit(event)

        assert handle.wait(timeout=1)
        assert handle.terminal_event is event
        assert len(registry) == 0

    def test_failing_done_callback_still_finishes(self) -> None:
        handle = StreamHandle("JobService.GetJobLogs")
        later = Mock()
        handle.add_done_callback(Mock(side_effect=RuntimeError("boom")))
        handle.add_done_callback(later)
        handle.emit(StreamEvent.ended())
        assert handle.wait(timeout=0)
        later.assert_called_once_with(handle)

    def test_callback_only_handle_does_not_buffer_data(self) -> None:
        received = []
        handle = StreamHandle("MonitoringService.StreamSystemMetrics", on_data=received.append)
        assert not handle.buffered
        for i in range(1000):
            handle.emit(StreamEvent.data(i))
        handle.emit(StreamEvent.ended())

        assert len(received) == 1000
        assert [event.kind for event in handle.events(timeout=1)] == [EventKind.END]

    def test_buffering_can_be_requested_with_callbacks(self) -> None:
        received = []
        handle = StreamHandle("JobService.GetJobLogs", on_data=received.append, buffer_events=True)
        handle.emit(StreamEvent.data(b"a"))
        handle.emit(StreamEvent.ended())
        assert received == [b"a"]
        assert list(handle.messages(timeout=1)) == [b"a"]

    def test_slow_callback_does_not_block_cancel(self) -> None:
        order = []
        entered = threading.Event()
        release = threading.Event()

        def on_data(payload) -> None:
            entered.set()
            release.wait(5)
            order.append(("data", payload))

        handle = StreamHandle(
            "JobService.GetJobLogs",
            on_data=on_data,
            on_cancel=lambda: order.append(("cancelled", None)),
        )
        call = Mock()
        handle.attach(call)
        reader = threading.Thread(target=handle.emit, args=(StreamEvent.data(b"a"),))
        reader.start()
        assert entered.wait(2)

        started = time.monotonic()
        assert handle.cancel()
        assert time.monotonic() - started < 1
        call.cancel.assert_called_once_with()
        assert handle.is_terminal
        assert not handle.wait(timeout=0)

        release.set()
        reader.join(2)
        assert handle.wait(timeout=2)
        assert order == [("data", b"a"), ("cancelled", None)]

    def test_done_callback_runs_once(self) -> None:
        handle = StreamHandle("JobService.GetJobLogs")
        done = Mock()
        handle.add_done_callback(done)
        handle.emit(StreamEvent.ended())
        handle.cancel()
        done.assert_called_once_with(handle)

    def test_done_callback_on_terminal_runs_immediately(self) -> None:
        handle = StreamHandle("JobService.GetJobLogs")
        handle.emit(StreamEvent.ended())
        done = Mock()
        handle.add_done_callback(done)
        done.assert_called_once_with(handle)

    def test_messages_yields_payloads(self) -> None:
        handle = StreamHandle("JobService.GetJobLogs")
        handle.emit(StreamEvent.data(b"one"))
        handle.emit(StreamEvent.data(b"two"))
        handle.emit(StreamEvent.ended())
        assert list(handle.messages(timeout=1)) == [b"one", b"two"]

    def test_messages_raises_stream_error(self) -> None:
        handle = StreamHandle("JobService.GetJobLogs")
        handle.emit(StreamEvent.data(b"one"))
        handle.emit(StreamEvent.failed(RpcError("JobService.GetJobLogs", MockRpcError(grpc.StatusCode.NOT_FOUND))))
        received = []
        with pytest.raises(RpcError):
            for payload in handle.messages(timeout=1):
                received.append(payload)
        assert received == [b"one"]

    def test_events_timeout(self) -> None:
        handle = StreamHandle("JobService.GetJobLogs")
        with pytest.raises(TimeoutError):
            next(handle.events(timeout=0.01))

    def test_context_manager_cancels(self) -> None:
        with StreamHandle("JobService.GetJobLogs") as handle:
            pass
        assert handle.terminal_event.kind is EventKind.CANCELLED


class TestStreamRegistry:
    """Tests for StreamRegistry."""

    def test_register_and_unregister_on_terminal(self) -> None:
        registry = StreamRegistry()
        handle = StreamHandle("JobService.GetJobLogs")
        registry.register(handle)
        assert registry.active() == [handle]
        handle.emit(StreamEvent.ended())
        assert registry.active() == []

    def test_cancel_all(self) -> None:
        registry = StreamRegistry()
        handles = [StreamHandle("JobService.GetJobLogs") for _ in range(3)]
        for handle in handles:
            registry.register(handle)
        handles[0].emit(StreamEvent.ended())

        assert registry.cancel_all() == 2
        assert len(registry) == 0
        assert all(h.is_terminal for h in handles)
        assert registry.cancel_all() == 0

    def test_cancel_all_during_concurrent_registration(self) -> None:
        registry = StreamRegistry()
        stop = threading.Event()
        registered = []

        def register_forever() -> None:
            while not stop.is_set():
                handle = StreamHandle("MonitoringService.StreamSystemMetrics")
                try:
                    registry.register(handle)
                except ChannelError:
                    return
                registered.append(handle)

        workers = [threading.Thread(target=register_forever) for _ in range(4)]
        for w in workers:
            w.start()
        registry.close()
        stop.set()
        for w in workers:
            w.join()

        assert len(registry) == 0
        assert all(h.is_terminal for h in registered)

    def test_closed_registry_refuses(self) -> None:
        registry = StreamRegistry()
        registry.close()
        assert registry.closed
        with pytest.raises(ChannelError):
            registry.register(StreamHandle("JobService.GetJobLogs"))
