"""Uniform invocation over unary and server-streaming RPCs.

Unary calls resolve a single-assignment future from grpc's completion
callback. Streaming calls are pumped on a reader thread into a StreamHandle.
Both shapes fail with the same error types: RpcError, or TimeoutError for an
exceeded deadline. Nothing is retried here; retry policy belongs to callers.
"""

import threading
from concurrent import futures
from typing import Any, Optional

import grpc

from .errors import ChannelError, ClientError, RpcError, TimeoutError, TransportError
from .log import get_logger
from .streams import (
    DataCallback,
    EndCallback,
    ErrorCallback,
    StreamEvent,
    StreamHandle,
    StreamRegistry,
)

logger = get_logger(__name__)


def translate_error(
    error: grpc.RpcError, method_name: str, timeout: Optional[float] = None
) -> ClientError:
    """Normalize a grpc failure into the client's error types."""
    code = error.code() if hasattr(error, "code") else None
    if code == grpc.StatusCode.DEADLINE_EXCEEDED:
        return TimeoutError(method_name, timeout, error)
    return RpcError(method_name, error)


class CallFuture(futures.Future):
    """Future that settles exactly once from a grpc completion."""

    def __init__(self, method_name: str):
        super().__init__()
        self.method_name = method_name
        self._settle_lock = threading.Lock()

    def settle(self, value: Any = None, error: Optional[BaseException] = None) -> bool:
        """Resolve or reject the future. Later attempts are ignored."""
        with self._settle_lock:
            if self.done():
                return False
            try:
                if error is not None:
                    self.set_exception(error)
                else:
                    self.set_result(value)
            except futures.InvalidStateError:
                # Cancelled by the caller between done() and set_*().
                return False
            return True


class CallAdapter:
    """Invokes stub multicallables with uniform completion and error handling."""

    def __init__(self, registry: Optional[StreamRegistry] = None):
        self.registry = registry if registry is not None else StreamRegistry()

    def invoke(
        self,
        method,
        request,
        method_name: str,
        timeout: Optional[float] = None,
    ) -> CallFuture:
        """Start a unary call and return a future for its response.

        Cancelling the returned future cancels the underlying call.

        Raises:
            ChannelError: the client has been closed; no call is started.
        """
        if self.registry.closed:
            raise ChannelError("client is closed")
        result = CallFuture(method_name)
        call = method.future(request, timeout=timeout)

        def _complete(done_call) -> None:
            try:
                response = done_call.result()
            except grpc.FutureCancelledError:
                result.cancel()
            except grpc.RpcError as e:
                error = translate_error(e, method_name, timeout)
                if isinstance(error, TimeoutError):
                    done_call.cancel()
                logger.warning("rpc_failed", method=method_name, code=error.code.name)
                result.settle(error=error)
            else:
                result.settle(value=response)

        def _propagate_cancel(fut: futures.Future) -> None:
            if fut.cancelled():
                call.cancel()

        result.add_done_callback(_propagate_cancel)
        call.add_done_callback(_complete)
        return result

    def call(
        self,
        method,
        request,
        method_name: str,
        timeout: Optional[float] = None,
    ) -> Any:
        """Run a unary call and block until it completes."""
        return self.invoke(method, request, method_name, timeout).result()

    def subscribe(
        self,
        method,
        request,
        method_name: str,
        on_data: Optional[DataCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_end: Optional[EndCallback] = None,
        on_cancel: Optional[EndCallback] = None,
        timeout: Optional[float] = None,
        buffer_events: Optional[bool] = None,
    ) -> StreamHandle:
        """Start a server-streaming call without blocking the caller.

        Data events are queued for iteration only when ``buffer_events`` is
        true; it defaults to true when no ``on_data`` callback is given.

        Raises:
            ChannelError: the registry is closed; no call is started.
        """
        handle = StreamHandle(
            method_name,
            on_data=on_data,
            on_error=on_error,
            on_end=on_end,
            on_cancel=on_cancel,
            buffer_events=buffer_events,
        )
        self.registry.register(handle)
        try:
            call = method(request, timeout=timeout)
        except grpc.RpcError as e:
            handle.emit(StreamEvent.failed(translate_error(e, method_name, timeout)))
            return handle
        except Exception as e:
            logger.warning("stream_start_failed", method=method_name, error=repr(e))
            handle.emit(StreamEvent.failed(TransportError(method_name, e)))
            return handle
        if not handle.attach(call):
            return handle

        reader = threading.Thread(
            target=self._pump,
            args=(handle, call, timeout),
            name=f"joblet-stream-{method_name}-{handle.id[:8]}",
            daemon=True,
        )
        try:
            reader.start()
        except RuntimeError as e:
            call.cancel()
            handle.emit(StreamEvent.failed(TransportError(method_name, e)))
            return handle
        logger.debug("stream_started", stream_id=handle.id, method=method_name)
        return handle

    @staticmethod
    def _pump(handle: StreamHandle, call, timeout: Optional[float]) -> None:
        try:
            for response in call:
                if not handle.emit(StreamEvent.data(response)):
                    return
        except grpc.RpcError as e:
            if handle.is_terminal:
                return
            error = translate_error(e, handle.method_name, timeout)
            logger.warning("rpc_failed", method=handle.method_name, code=error.code.name)
            handle.emit(StreamEvent.failed(error))
        except Exception as e:
            handle.emit(StreamEvent.failed(TransportError(handle.method_name, e)))
        else:
            handle.emit(StreamEvent.ended())
