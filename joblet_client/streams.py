"""Server-streaming call handles and the registry that owns them.

A stream delivers zero or more ``data`` events followed by exactly one
terminal event (``end``, ``error`` or ``cancelled``). Once terminal, a handle
emits nothing further and ``cancel`` becomes a no-op.
"""

import collections
import enum
import queue
import threading
import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .errors import ChannelError, ClientError, TimeoutError
from .log import get_logger

logger = get_logger(__name__)

DataCallback = Callable[[Any], None]
ErrorCallback = Callable[[ClientError], None]
EndCallback = Callable[[], None]


class EventKind(str, enum.Enum):
    DATA = "data"
    ERROR = "error"
    END = "end"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class StreamEvent:
    """One event in a stream's ordered sequence."""

    kind: EventKind
    payload: Any = None
    error: Optional[ClientError] = None

    @property
    def is_terminal(self) -> bool:
        return self.kind is not EventKind.DATA

    @classmethod
    def data(cls, payload: Any) -> "StreamEvent":
        return cls(EventKind.DATA, payload=payload)

    @classmethod
    def failed(cls, error: ClientError) -> "StreamEvent":
        return cls(EventKind.ERROR, error=error)

    @classmethod
    def ended(cls) -> "StreamEvent":
        return cls(EventKind.END)

    @classmethod
    def cancelled(cls) -> "StreamEvent":
        return cls(EventKind.CANCELLED)


class StreamHandle:
    """Handle for one active server-streaming call.

    Callbacks run outside the handle's lock, one event at a time and in
    arrival order, so a slow callback never blocks ``cancel``. Events are
    also queued for iteration when ``buffer_events`` is true, which is the
    default only when no ``on_data`` callback is given. An unbuffered handle
    still queues its terminal event. Iterate a handle from a single
    consumer::

        for event in handle:
            if event.kind is EventKind.DATA:
                print(event.payload)
    """

    def __init__(
        self,
        method_name: str,
        on_data: Optional[DataCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_end: Optional[EndCallback] = None,
        on_cancel: Optional[EndCallback] = None,
        buffer_events: Optional[bool] = None,
    ):
        self.id = uuid.uuid4().hex
        self.method_name = method_name
        self._on_data = on_data
        self._on_error = on_error
        self._on_end = on_end
        self._on_cancel = on_cancel
        self._buffered = on_data is None if buffer_events is None else buffer_events
        self._lock = threading.Lock()
        self._events: "queue.Queue[StreamEvent]" = queue.Queue()
        self._pending: "collections.deque[StreamEvent]" = collections.deque()
        # True while some thread is running callbacks for this handle.
        self._delivering = False
        self._terminal: Optional[StreamEvent] = None
        self._finished = False
        self._done = threading.Event()
        self._drained = False
        self._done_callbacks: list[Callable[["StreamHandle"], None]] = []
        self._call = None

    def __repr__(self) -> str:
        state = self._terminal.kind.value if self._terminal else "active"
        return f"StreamHandle(id={self.id!r}, method={self.method_name!r}, state={state!r})"

    @property
    def is_terminal(self) -> bool:
        return self._terminal is not None

    @property
    def terminal_event(self) -> Optional[StreamEvent]:
        """The event that ended the stream, or None while active."""
        return self._terminal

    @property
    def buffered(self) -> bool:
        """Whether data events are queued for ``events()``."""
        return self._buffered

    def attach(self, call) -> bool:
        """Bind the underlying grpc call.

        Returns False, after cancelling the call, if the handle went terminal
        before the call existed.
        """
        with self._lock:
            if self._terminal is None:
                self._call = call
                return True
        call.cancel()
        return False

    def add_done_callback(self, fn: Callable[["StreamHandle"], None]) -> None:
        """Run ``fn(handle)`` once the handle has finished (immediately if it has)."""
        with self._lock:
            if not self._finished:
                self._done_callbacks.append(fn)
                return
        fn(self)

    def emit(self, event: StreamEvent) -> bool:
        """Accept an event unless the handle is already terminal.

        The event is delivered before this returns, unless another thread is
        already delivering, in which case that thread delivers it in order.
        """
        with self._lock:
            if self._terminal is not None:
                return False
            if event.is_terminal:
                self._terminal = event
            if self._buffered or event.is_terminal:
                self._events.put(event)
            self._pending.append(event)
            if self._delivering:
                return True
            self._delivering = True
        self._deliver()
        return True

    def _deliver(self) -> None:
        while True:
            with self._lock:
                if not self._pending:
                    self._delivering = False
                    return
                event = self._pending.popleft()
            try:
                self._notify(event)
            finally:
                if event.is_terminal:
                    self._finish(event)

    def _notify(self, event: StreamEvent) -> None:
        if event.kind is EventKind.DATA:
            callback, args = self._on_data, (event.payload,)
        elif event.kind is EventKind.ERROR:
            callback, args = self._on_error, (event.error,)
        elif event.kind is EventKind.END:
            callback, args = self._on_end, ()
        else:
            callback, args = self._on_cancel, ()
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception(
                "stream_callback_failed",
                stream_id=self.id,
                method=self.method_name,
                kind=event.kind.value,
            )

    def _finish(self, event: StreamEvent) -> None:
        with self._lock:
            done_callbacks, self._done_callbacks = self._done_callbacks, []
            self._finished = True
        try:
            for fn in done_callbacks:
                try:
                    fn(self)
                except Exception:
                    logger.exception(
                        "stream_done_callback_failed",
                        stream_id=self.id,
                        method=self.method_name,
                    )
        finally:
            self._done.set()
        logger.debug(
            "stream_finished",
            stream_id=self.id,
            method=self.method_name,
            outcome=event.kind.value,
        )

    def cancel(self) -> bool:
        """Cancel the stream. Returns False if it was already terminal."""
        if not self.emit(StreamEvent.cancelled()):
            return False
        with self._lock:
            call = self._call
        if call is not None:
            call.cancel()
        logger.info("stream_cancelled", stream_id=self.id, method=self.method_name)
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the stream has finished. Returns False on timeout."""
        return self._done.wait(timeout)

    def events(self, timeout: Optional[float] = None) -> Iterator[StreamEvent]:
        """Yield events up to and including the terminal one.

        ``timeout`` bounds the wait for each event. An unbuffered handle
        yields only its terminal event.
        """
        while not self._drained:
            try:
                event = self._events.get(timeout=timeout)
            except queue.Empty:
                raise TimeoutError(self.method_name, timeout) from None
            if event.is_terminal:
                self._drained = True
            yield event

    def __iter__(self) -> Iterator[StreamEvent]:
        return self.events()

    def messages(self, timeout: Optional[float] = None) -> Iterator[Any]:
        """Yield data payloads; raise the stream's error if it fails."""
        for event in self.events(timeout):
            if event.kind is EventKind.DATA:
                yield event.payload
            elif event.kind is EventKind.ERROR:
                raise event.error

    def __enter__(self) -> "StreamHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()


class StreamRegistry:
    """Tracks active streams so they can be listed and cancelled together."""

    def __init__(self):
        self._lock = threading.Lock()
        self._handles: dict[str, StreamHandle] = {}
        self._closed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, handle: StreamHandle) -> None:
        """Track a handle until it goes terminal.

        Raises:
            ChannelError: the registry has been closed.
        """
        with self._lock:
            if self._closed:
                raise ChannelError("client is closed")
            self._handles[handle.id] = handle
        handle.add_done_callback(self.unregister)

    def unregister(self, handle: StreamHandle) -> None:
        with self._lock:
            self._handles.pop(handle.id, None)

    def active(self) -> list[StreamHandle]:
        """Return a snapshot of the non-terminal handles."""
        with self._lock:
            return list(self._handles.values())

    def cancel_all(self) -> int:
        """Cancel every active stream; returns how many were cancelled.

        Drains until empty, so a handle registered while this runs is
        cancelled too.
        """
        cancelled = 0
        while True:
            with self._lock:
                if not self._handles:
                    break
                handles = list(self._handles.values())
                self._handles.clear()
            for handle in handles:
                if handle.cancel():
                    cancelled += 1
        if cancelled:
            logger.info("streams_cancelled", count=cancelled)
        return cancelled

    def close(self) -> int:
        """Refuse new registrations and cancel everything still active."""
        with self._lock:
            self._closed = True
        return self.cancel_all()
