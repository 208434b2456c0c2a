"""
Production Repository
=====================

Bounded Context: Typed access to one production's documents

The store holds plain dicts; this layer converts them to validated records on
the way out and serializes records on the way in, so malformed documents are
rejected at the store boundary instead of deep inside the timer or extractor.

Design:
- RecordCollection: typed get/list/add/save/update/delete/subscribe for one
  collection path and one record class
- ProductionRepository: named collections under productions/<id>/...
- Invalid documents are skipped in list() and logged; get() raises

Example:
    >>> repo = ProductionRepository(store, "p1")
    >>> note = repo.line_notes.add(LineNote(...))
    >>> sub = repo.cast.subscribe(lambda event, member: print(event.kind, member))
"""

import dataclasses
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from .errors import DocumentNotFoundError, SchemaValidationError
from .logging import LogEvent, StructuredLogger, create_logger
from .schemas import (
    CastMember,
    CheckStateRecord,
    LineNote,
    Member,
    Production,
    PropNote,
    RunSession,
)
from .store import ChangeEvent, ChangeKind, ChangeStream, DocumentStore, Subscription


R = TypeVar('R')

PRODUCTIONS = "productions"

COLLECTIONS = (
    "members",
    "props",
    "propNotes",
    "zones",
    "lineNotes",
    "sessions",
    "cast",
    "checkState",
)


class RecordCollection(Generic[R]):
    """
    Typed view of one collection.

    Records must expose an `id` attribute plus to_dict()/from_dict().
    """

    def __init__(
        self,
        store: DocumentStore,
        path: str,
        record_type: Type[R],
        logger: StructuredLogger,
    ):
        self.store = store
        self.path = path
        self.record_type = record_type
        self.logger = logger

    def _decode(self, doc_id: str, data: Dict[str, Any]) -> R:
        return self.record_type.from_dict({**data, 'id': doc_id})

    def _encode(self, record: R) -> Dict[str, Any]:
        data = record.to_dict()
        data.pop('id', None)
        return data

    def get(self, doc_id: str) -> Optional[R]:
        data = self.store.get(self.path, doc_id)
        if data is None:
            return None
        return self._decode(doc_id, data)

    def require(self, doc_id: str) -> R:
        record = self.get(doc_id)
        if record is None:
            raise DocumentNotFoundError(self.path, doc_id)
        return record

    def list(self, where: Optional[Dict[str, Any]] = None) -> List[R]:
        records = []
        for doc_id, data in self.store.list(self.path, where):
            try:
                records.append(self._decode(doc_id, data))
            except SchemaValidationError as e:
                self.logger.warning(
                    event=LogEvent.SCHEMA_VALIDATION_ERROR,
                    message="Skipping invalid document",
                    metadata={'collection': self.path, 'doc_id': doc_id, 'error': str(e)}
                )
        return records

    def add(self, record: R) -> R:
        """Store a record under a generated id and return it with that id."""
        doc_id = self.store.add(self.path, self._encode(record))
        return dataclasses.replace(record, id=doc_id)

    def save(self, record: R, merge: bool = False) -> R:
        """Create or overwrite the document named by record.id."""
        if not getattr(record, 'id', ''):
            raise SchemaValidationError(f"Cannot save {type(record).__name__} without an id")
        self.store.set(self.path, record.id, self._encode(record), merge=merge)
        return record

    def update(self, doc_id: str, changes: Dict[str, Any]) -> None:
        self.store.update(self.path, doc_id, changes)

    def delete(self, doc_id: str) -> None:
        self.store.delete(self.path, doc_id)

    def subscribe(self, callback: Callable[[ChangeEvent, Optional[R]], None]) -> Subscription:
        """
        Attach a listener receiving (event, record).

        record is None for removals and for documents that fail validation.
        """
        def on_change(event: ChangeEvent) -> None:
            record = None
            if event.kind is not ChangeKind.REMOVED and event.data is not None:
                try:
                    record = self._decode(event.doc_id, event.data)
                except SchemaValidationError as e:
                    self.logger.warning(
                        event=LogEvent.SCHEMA_VALIDATION_ERROR,
                        message="Invalid document in change event",
                        metadata={'collection': self.path, 'doc_id': event.doc_id, 'error': str(e)}
                    )
            callback(event, record)

        return self.store.subscribe(self.path, on_change)

    def watch(self) -> ChangeStream:
        return self.store.watch(self.path)


class ProductionRepository:
    """
    Typed access to the documents of one production.

    Attributes:
        production_id: Production document id
        members, prop_notes, line_notes, sessions, cast, check_state:
            RecordCollection views (props are opened through
            cue_props.model.prop_collection, zones by cue_script.registry)
    """

    def __init__(
        self,
        store: DocumentStore,
        production_id: str,
        logger: Optional[StructuredLogger] = None,
    ):
        if not production_id:
            raise ValueError("production_id cannot be empty")
        self.store = store
        self.production_id = production_id
        self.logger = logger or create_logger("repository")

        self.members: RecordCollection[Member] = self.collection("members", Member)
        self.prop_notes: RecordCollection[PropNote] = self.collection("propNotes", PropNote)
        self.line_notes: RecordCollection[LineNote] = self.collection("lineNotes", LineNote)
        self.sessions: RecordCollection[RunSession] = self.collection("sessions", RunSession)
        self.cast: RecordCollection[CastMember] = self.collection("cast", CastMember)
        self.check_state: RecordCollection[CheckStateRecord] = self.collection(
            "checkState", CheckStateRecord
        )

    def path(self, name: str) -> str:
        if name not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {name}. Must be one of {COLLECTIONS}")
        return f"{PRODUCTIONS}/{self.production_id}/{name}"

    def collection(self, name: str, record_type: Type[R]) -> RecordCollection[R]:
        return RecordCollection(self.store, self.path(name), record_type, self.logger)

    def production(self) -> Production:
        data = self.store.get(PRODUCTIONS, self.production_id)
        if data is None:
            raise DocumentNotFoundError(PRODUCTIONS, self.production_id)
        return Production.from_dict({**data, 'id': self.production_id})

    def role_of(self, uid: str) -> Optional[str]:
        member = self.members.get(uid)
        return member.role.value if member else None
