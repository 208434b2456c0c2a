"""
Document Store
==============

Bounded Context: Persistence + Realtime Sync

Hierarchical keyed-document store with realtime change subscriptions.

Design:
- Collections addressed by slash paths ("productions/abc/props")
- Documents are plain JSON-compatible dicts (copied on every read and write)
- Last-write-wins, no versioning or conflict detection
- Listeners receive ChangeEvent objects; an initial snapshot is delivered as
  ADDED events when a listener attaches
- Listeners run outside the store lock (snapshot pattern)

Architecture:
    DocumentStore (abstract)
        ↓
    MemoryDocumentStore (thread-safe, in-process)
        ↓
    JsonFileDocumentStore (write-through JSON file)

Subscriptions:
    subscribe(path, callback) -> Subscription      (callback channel)
    watch(path)               -> ChangeStream      (iterator, explicit close)

Example:
    >>> store = MemoryDocumentStore()
    >>> sub = store.subscribe("productions/p1/props", print)
    >>> store.add("productions/p1/props", {"name": "Skull", "start": "SL"})
    >>> sub.unsubscribe()
"""

import copy
import itertools
import json
import os
import queue
import threading
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from .errors import DocumentNotFoundError
from .logging import LogEvent, StructuredLogger, create_logger


ALL_COLLECTIONS = "*"


class ChangeKind(str, Enum):
    """Kind of document change delivered to listeners."""
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class ChangeEvent:
    """
    Immutable change notification.

    Attributes:
        kind: added / modified / removed
        collection: Collection path the document lives in
        doc_id: Document identifier
        data: Document contents after the change (None when removed)
        origin: Identifier of the store instance that made the write
        timestamp: Epoch seconds of the write
    """
    kind: ChangeKind
    collection: str
    doc_id: str
    data: Optional[Dict[str, Any]] = None
    origin: str = ""
    timestamp: float = 0.0

    def __post_init__(self):
        if not self.collection:
            raise ValueError("ChangeEvent collection cannot be empty")
        if not self.doc_id:
            raise ValueError("ChangeEvent doc_id cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind.value,
            'collection': self.collection,
            'doc_id': self.doc_id,
            'data': self.data,
            'origin': self.origin,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChangeEvent':
        try:
            return cls(
                kind=ChangeKind(data['kind']),
                collection=data['collection'],
                doc_id=data['doc_id'],
                data=data.get('data'),
                origin=data.get('origin', ''),
                timestamp=float(data.get('timestamp', 0.0)),
            )
        except KeyError as e:
            raise ValueError(f"Missing required ChangeEvent field: {e}")


ChangeCallback = Callable[[ChangeEvent], None]


class Subscription:
    """
    Handle for a realtime listener.

    unsubscribe() detaches the listener; calling it again is a no-op.
    """

    def __init__(self, store: 'DocumentStore', path: str, listener_id: int):
        self._store = store
        self.path = path
        self.listener_id = listener_id
        self._active = True
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
        self._store._remove_listener(self.path, self.listener_id)

    def __enter__(self) -> 'Subscription':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unsubscribe()


class ChangeStream:
    """
    Blocking iterator over change events with explicit cancellation.

    Events are buffered in a queue fed by a store subscription. close()
    cancels the subscription and ends iteration.

    Example:
        >>> stream = store.watch("productions/p1/props")
        >>> for event in stream:
        ...     if event.kind is ChangeKind.REMOVED:
        ...         stream.close()
    """

    _CLOSED = object()

    def __init__(self):
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._subscription: Optional[Subscription] = None
        self._closed = False

    def _attach(self, subscription: Subscription) -> None:
        self._subscription = subscription

    def _push(self, event: ChangeEvent) -> None:
        if not self._closed:
            self._queue.put(event)

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """
        Return the next event, or None on timeout or once closed.
        """
        if self._closed and self._queue.empty():
            return None
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is self._CLOSED:
            return None
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._subscription is not None:
            self._subscription.unsubscribe()
        self._queue.put(self._CLOSED)

    def __iter__(self) -> Iterator[ChangeEvent]:
        return self

    def __next__(self) -> ChangeEvent:
        if self._closed and self._queue.empty():
            raise StopIteration
        item = self._queue.get()
        if item is self._CLOSED:
            raise StopIteration
        return item

    def __enter__(self) -> 'ChangeStream':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class DocumentStore(ABC):
    """
    Abstract keyed-document store.

    Paths are slash-separated collection paths; documents are dicts.
    """

    origin: str

    @abstractmethod
    def get(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return a copy of the document, or None if absent."""

    @abstractmethod
    def set(self, path: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        """Create or overwrite (merge=True: shallow-merge) a document."""

    @abstractmethod
    def add(self, path: str, data: Dict[str, Any]) -> str:
        """Create a document with a generated id and return the id."""

    @abstractmethod
    def update(self, path: str, doc_id: str, changes: Dict[str, Any]) -> None:
        """Shallow-merge fields into an existing document."""

    @abstractmethod
    def delete(self, path: str, doc_id: str) -> None:
        """Delete a document (no-op when absent)."""

    @abstractmethod
    def list(
        self,
        path: str,
        where: Optional[Dict[str, Any]] = None
    ) -> List[Tuple[str, Dict[str, Any]]]:
        """Return (doc_id, data) pairs, optionally filtered by field equality."""

    @abstractmethod
    def subscribe(self, path: str, callback: ChangeCallback) -> Subscription:
        """Attach a realtime listener to a collection (or ALL_COLLECTIONS)."""

    @abstractmethod
    def apply_remote(self, event: ChangeEvent) -> None:
        """Apply a change that was made by another store instance."""

    @abstractmethod
    def _remove_listener(self, path: str, listener_id: int) -> None:
        """Detach a listener (called by Subscription)."""

    def watch(self, path: str) -> ChangeStream:
        """Return a ChangeStream fed by a subscription to path."""
        stream = ChangeStream()
        stream._attach(self.subscribe(path, stream._push))
        return stream


class MemoryDocumentStore(DocumentStore):
    """
    Thread-safe in-memory document store.

    Thread Safety:
        All reads and writes hold an RLock. Listener callbacks run after the
        lock is released, on the writing thread.
    """

    def __init__(
        self,
        origin: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        logger: Optional[StructuredLogger] = None,
    ):
        self.origin = origin or f"store-{uuid.uuid4().hex[:8]}"
        self._clock = clock
        self.logger = logger or create_logger("store")
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._listeners: Dict[str, Dict[int, ChangeCallback]] = {}
        self._listener_ids = itertools.count(1)
        self._lock = threading.RLock()

    # ===== Reads =====

    def get(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._collections.get(path, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def list(
        self,
        path: str,
        where: Optional[Dict[str, Any]] = None
    ) -> List[Tuple[str, Dict[str, Any]]]:
        with self._lock:
            docs = self._collections.get(path, {})
            result = []
            for doc_id, data in docs.items():
                if where and any(data.get(k) != v for k, v in where.items()):
                    continue
                result.append((doc_id, copy.deepcopy(data)))
            return result

    def collections(self) -> List[str]:
        """Return every collection path that holds at least one document."""
        with self._lock:
            return [path for path, docs in self._collections.items() if docs]

    # ===== Writes =====

    def set(self, path: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        with self._lock:
            docs = self._collections.setdefault(path, {})
            existing = docs.get(doc_id)
            if merge and existing is not None:
                new_doc = {**existing, **copy.deepcopy(data)}
            else:
                new_doc = copy.deepcopy(data)
            docs[doc_id] = new_doc
            kind = ChangeKind.ADDED if existing is None else ChangeKind.MODIFIED
            event = self._make_event(kind, path, doc_id, new_doc)
        self._dispatch(event)

    def add(self, path: str, data: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self.set(path, doc_id, data)
        return doc_id

    def update(self, path: str, doc_id: str, changes: Dict[str, Any]) -> None:
        with self._lock:
            docs = self._collections.get(path, {})
            if doc_id not in docs:
                raise DocumentNotFoundError(path, doc_id)
            docs[doc_id] = {**docs[doc_id], **copy.deepcopy(changes)}
            event = self._make_event(ChangeKind.MODIFIED, path, doc_id, docs[doc_id])
        self._dispatch(event)

    def delete(self, path: str, doc_id: str) -> None:
        with self._lock:
            docs = self._collections.get(path, {})
            if doc_id not in docs:
                return
            del docs[doc_id]
            event = self._make_event(ChangeKind.REMOVED, path, doc_id, None)
        self._dispatch(event)

    def apply_remote(self, event: ChangeEvent) -> None:
        """
        Apply a change event from another store (last write wins).

        The event keeps its original origin so relays can skip it.
        """
        with self._lock:
            docs = self._collections.setdefault(event.collection, {})
            if event.kind is ChangeKind.REMOVED:
                if event.doc_id not in docs:
                    return
                del docs[event.doc_id]
            else:
                docs[event.doc_id] = copy.deepcopy(event.data or {})

        self.logger.debug(
            event=LogEvent.STORE_REMOTE_APPLIED,
            message="Applied remote change",
            metadata={
                'collection': event.collection,
                'doc_id': event.doc_id,
                'kind': event.kind.value,
                'origin': event.origin,
            }
        )
        self._dispatch(event)

    # ===== Subscriptions =====

    def subscribe(self, path: str, callback: ChangeCallback) -> Subscription:
        """
        Attach a listener and deliver the current contents as ADDED events.
        """
        with self._lock:
            listener_id = next(self._listener_ids)
            self._listeners.setdefault(path, {})[listener_id] = callback
            if path == ALL_COLLECTIONS:
                snapshot = [
                    (p, doc_id, copy.deepcopy(data))
                    for p, docs in self._collections.items()
                    for doc_id, data in docs.items()
                ]
            else:
                snapshot = [
                    (path, doc_id, copy.deepcopy(data))
                    for doc_id, data in self._collections.get(path, {}).items()
                ]

        self.logger.debug(
            event=LogEvent.STORE_SUBSCRIBED,
            message="Listener attached",
            metadata={'collection': path, 'listener_id': listener_id}
        )

        for p, doc_id, data in snapshot:
            self._invoke(callback, ChangeEvent(
                kind=ChangeKind.ADDED,
                collection=p,
                doc_id=doc_id,
                data=data,
                origin=self.origin,
                timestamp=self._clock(),
            ))

        return Subscription(self, path, listener_id)

    def _remove_listener(self, path: str, listener_id: int) -> None:
        with self._lock:
            self._listeners.get(path, {}).pop(listener_id, None)
        self.logger.debug(
            event=LogEvent.STORE_UNSUBSCRIBED,
            message="Listener detached",
            metadata={'collection': path, 'listener_id': listener_id}
        )

    def listener_count(self, path: Optional[str] = None) -> int:
        with self._lock:
            if path is not None:
                return len(self._listeners.get(path, {}))
            return sum(len(v) for v in self._listeners.values())

    # ===== Internals =====

    def _make_event(
        self,
        kind: ChangeKind,
        path: str,
        doc_id: str,
        data: Optional[Dict[str, Any]]
    ) -> ChangeEvent:
        return ChangeEvent(
            kind=kind,
            collection=path,
            doc_id=doc_id,
            data=copy.deepcopy(data) if data is not None else None,
            origin=self.origin,
            timestamp=self._clock(),
        )

    def _dispatch(self, event: ChangeEvent) -> None:
        with self._lock:
            callbacks = list(self._listeners.get(event.collection, {}).values())
            callbacks += list(self._listeners.get(ALL_COLLECTIONS, {}).values())

        for callback in callbacks:
            self._invoke(callback, event)

    def _invoke(self, callback: ChangeCallback, event: ChangeEvent) -> None:
        try:
            callback(event)
        except Exception as e:
            self.logger.error(
                event=LogEvent.LISTENER_ERROR,
                message="Store listener raised",
                exc_info=e,
                metadata={'collection': event.collection, 'doc_id': event.doc_id}
            )


class JsonFileDocumentStore(MemoryDocumentStore):
    """
    MemoryDocumentStore written through to a JSON file.

    The whole store is rewritten after every change (temp file + rename), so
    a crashed run leaves the last checkpoint on disk for recovery.

    Example:
        >>> store = JsonFileDocumentStore(Path("data/hamlet.json"))
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        origin: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        logger: Optional[StructuredLogger] = None,
    ):
        super().__init__(origin=origin, clock=clock, logger=logger)
        self.file_path = Path(file_path)
        self._save_lock = threading.Lock()
        self._load()

    def _load(self) -> None:
        if not self.file_path.exists():
            return
        with open(self.file_path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Store file {self.file_path} must contain a JSON object")
        with self._lock:
            self._collections = {
                path: {doc_id: dict(doc) for doc_id, doc in docs.items()}
                for path, docs in data.items()
            }

    def save(self) -> None:
        # One writer at a time owns the temp file until it replaces the store file
        with self._save_lock:
            with self._lock:
                payload = json.dumps(self._collections, indent=2, sort_keys=True)
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.file_path.with_name(self.file_path.name + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.file_path)

    def _dispatch(self, event: ChangeEvent) -> None:
        try:
            self.save()
        except OSError as e:
            self.logger.error(
                event=LogEvent.STORE_ERROR,
                message="Failed to write store file",
                exc_info=e,
                metadata={'file': str(self.file_path)}
            )
        super()._dispatch(event)
