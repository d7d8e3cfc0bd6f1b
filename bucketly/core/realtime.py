"""Real-time change channels on top of Firestore snapshot listeners."""

from __future__ import annotations

import json
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_query import BaseQuery
    from google.cloud.firestore_v1.document import DocumentReference

logger = logging.getLogger(__name__)

HEARTBEAT_SECONDS = 15.0

ADDED = "added"
MODIFIED = "modified"
REMOVED = "removed"


@dataclass(frozen=True)
class ChangeEvent:
    """A single document change delivered by a subscription."""

    kind: str
    doc_id: str
    data: dict[str, Any] = field(default_factory=dict)


_CLOSED = object()


class Subscription:
    """An iterable channel of ChangeEvents for a query or document.

    Firestore invokes the snapshot callback on its own watch thread, so events
    are handed to consumers through a thread-safe queue. ``unsubscribe`` stops
    the listener and ends any iteration in progress. Calling it more than once
    is a no-op.
    """

    def __init__(
        self,
        target: BaseQuery | DocumentReference,
        kinds: tuple[str, ...] = (ADDED, MODIFIED, REMOVED),
        skip_initial: bool = True,
        transform: Optional[Callable[[str, dict[str, Any]], dict[str, Any]]] = None,
    ) -> None:
        self.kinds = kinds
        self._skip_initial = skip_initial
        self._transform = transform
        self._queue: queue.Queue[Any] = queue.Queue()
        self._closed = threading.Event()
        self._initial_seen = threading.Event()
        self._watch = target.on_snapshot(self._on_snapshot)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def _on_snapshot(self, docs: Any, changes: Any, read_time: Any) -> None:
        if self.closed:
            return
        if not self._initial_seen.is_set():
            self._initial_seen.set()
            if self._skip_initial:
                return

        for change in changes:
            kind = change.type.name.lower()
            if kind not in self.kinds:
                continue
            doc = change.document
            data = doc.to_dict() or {}
            if self._transform:
                try:
                    data = self._transform(doc.id, data)
                except Exception as e:
                    logger.error(f"Error transforming change for {doc.id}: {e}")
                    continue
            self._queue.put(ChangeEvent(kind, doc.id, data))

    def next_event(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Block for the next event; None on timeout or once unsubscribed."""
        if self.closed and self._queue.empty():
            return None
        try:
            event = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if event is _CLOSED:
            # Leave the marker for any other reader.
            self._queue.put(_CLOSED)
            return None
        return event

    def __iter__(self) -> Iterator[ChangeEvent]:
        while True:
            event = self.next_event()
            if event is None:
                return
            yield event

    def unsubscribe(self) -> None:
        if self.closed:
            return
        self._closed.set()
        try:
            self._watch.unsubscribe()
        finally:
            self._queue.put(_CLOSED)

    close = unsubscribe

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.unsubscribe()


def event_stream(
    subscription: Subscription, heartbeat: float = HEARTBEAT_SECONDS
) -> Iterator[str]:
    """Render a subscription as server-sent events.

    A comment line is sent whenever no event arrived within ``heartbeat``
    seconds so proxies keep the connection open. The subscription is closed
    when the client goes away.
    """
    try:
        yield ": connected\n\n"
        while not subscription.closed:
            event = subscription.next_event(timeout=heartbeat)
            if event is None:
                yield ": keep-alive\n\n"
                continue
            payload = json.dumps({"id": event.doc_id, **event.data}, default=str)
            yield f"event: {event.kind}\ndata: {payload}\n\n"
    finally:
        subscription.unsubscribe()
