"""Test doubles for grpc calls shared by the unit tests.

- MockRpcError: a grpc.RpcError carrying a status code and details
- FakeFuture / FakeUnaryMethod: unary multicallable driven by the test
- ImmediateUnaryMethod: unary multicallable that completes at once
- FakeStreamCall / FakeStreamMethod: server-streaming call fed by the test
"""

import queue
import threading

import grpc


class MockRpcError(grpc.RpcError):
    """Mock RpcError for testing.

    grpc.RpcError itself doesn't have code/details methods - those come
    from grpc.Call. Real gRPC errors inherit from both.
    """

    def __init__(self, code: grpc.StatusCode, details: str = ""):
        super().__init__()
        self._code = code
        self._details = details

    def code(self) -> grpc.StatusCode:
        return self._code

    def details(self) -> str:
        return self._details


class FakeFuture:
    """Stands in for the grpc.Future returned by ``multicallable.future``."""

    def __init__(self):
        self._lock = threading.Lock()
        self._callbacks = []
        self._done = False
        self._value = None
        self._error = None
        self.cancel_count = 0

    def add_done_callback(self, fn) -> None:
        with self._lock:
            if not self._done:
                self._callbacks.append(fn)
                return
        fn(self)

    def result(self, timeout=None):
        if self._error is not None:
            raise self._error
        return self._value

    def cancel(self) -> bool:
        self.cancel_count += 1
        return self._finish(error=grpc.FutureCancelledError())

    def succeed(self, value) -> bool:
        return self._finish(value=value)

    def fail(self, error) -> bool:
        return self._finish(error=error)

    def _finish(self, value=None, error=None) -> bool:
        with self._lock:
            if self._done:
                return False
            self._done = True
            self._value = value
            self._error = error
            callbacks, self._callbacks = self._callbacks, []
        for fn in callbacks:
            fn(self)
        return True


class FakeUnaryMethod:
    """Unary multicallable whose futures the test completes by hand."""

    def __init__(self):
        self.calls = []
        self.futures = []

    def future(self, request, timeout=None):
        self.calls.append((request, timeout))
        fut = FakeFuture()
        self.futures.append(fut)
        return fut

    def __call__(self, request, timeout=None):
        raise AssertionError("unary calls go through future()")


_END = object()


class FakeStreamCall:
    """Iterable call; items are pushed by the test and read by the pump."""

    def __init__(self):
        self._items = queue.Queue()
        self.cancelled = threading.Event()

    def push(self, item) -> None:
        self._items.put(item)

    def finish(self) -> None:
        self._items.put(_END)

    def fail(self, error) -> None:
        self._items.put(error)

    def cancel(self) -> bool:
        self.cancelled.set()
        self._items.put(MockRpcError(grpc.StatusCode.CANCELLED, "Locally cancelled"))
        return True

    def __iter__(self):
        return self

    def __next__(self):
        item = self._items.get(timeout=5)
        if item is _END:
            raise StopIteration
        if isinstance(item, BaseException):
            raise item
        return item


class FakeStreamMethod:
    """Unary-stream multicallable returning FakeStreamCall objects."""

    def __init__(self, error=None):
        self.calls = []
        self.streams = []
        self._error = error

    def __call__(self, request, timeout=None):
        self.calls.append((request, timeout))
        if self._error is not None:
            raise self._error
        call = FakeStreamCall()
        self.streams.append(call)
        return call


class ImmediateUnaryMethod(FakeUnaryMethod):
    """Unary multicallable whose calls complete as soon as they start."""

    def __init__(self, response=None, error=None):
        super().__init__()
        self._response = response
        self._error = error

    def future(self, request, timeout=None):
        fut = super().future(request, timeout)
        if self._error is not None:
            fut.fail(self._error)
        else:
            fut.succeed(self._response)
        return fut
