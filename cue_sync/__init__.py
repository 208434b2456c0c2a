"""
Cue Sync
========

Bounded Context: Shared production data and realtime propagation

Every stage-management feature reads and writes the same production
documents. This package owns those documents: the record schemas, a
document store with change subscriptions, a typed repository per
production, and an MQTT relay that keeps stores in separate processes in
step.

Architecture:
- schemas/: Immutable records (productions, members, notes, sessions, cast)
- store.py: DocumentStore interface and the in-memory implementation
- repository.py: Typed collections under productions/<id>/...
- relay.py: MQTT change relay (ChangePublisher, ChangeSubscriber)
- logging/: Structured JSON logging shared by every package
- errors.py: Exception types raised across package boundaries

Public API
----------
Store:
    DocumentStore, MemoryDocumentStore, JsonFileDocumentStore, ChangeEvent, ChangeKind,
    Subscription, ChangeStream, ALL_COLLECTIONS

Repository:
    ProductionRepository, RecordCollection, PRODUCTIONS

Relay:
    ChangePublisher, ChangeSubscriber, RelayClient, change_topic

Logging:
    LogEvent, StructuredLogger, create_logger

Example:
    >>> from cue_sync import MemoryDocumentStore, ProductionRepository
    >>> store = MemoryDocumentStore()
    >>> repo = ProductionRepository(store, "p1")
    >>> sub = repo.cast.subscribe(lambda event, member: print(member.name))
"""

from .errors import (
    DocumentNotFoundError,
    MissingPrerequisiteError,
    PermissionDeniedError,
    SchemaValidationError,
)
from .logging import LogEvent, StructuredLogger, create_logger
from .store import (
    ALL_COLLECTIONS,
    ChangeEvent,
    ChangeKind,
    ChangeStream,
    DocumentStore,
    JsonFileDocumentStore,
    MemoryDocumentStore,
    Subscription,
)
from .repository import PRODUCTIONS, ProductionRepository, RecordCollection
from .relay import ChangePublisher, ChangeSubscriber, RelayClient, change_topic

__version__ = "1.0.0"

__all__ = [
    # Errors
    'DocumentNotFoundError',
    'MissingPrerequisiteError',
    'PermissionDeniedError',
    'SchemaValidationError',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
    # Store
    'ALL_COLLECTIONS',
    'ChangeEvent',
    'ChangeKind',
    'ChangeStream',
    'DocumentStore',
    'JsonFileDocumentStore',
    'MemoryDocumentStore',
    'Subscription',
    # Repository
    'PRODUCTIONS',
    'ProductionRepository',
    'RecordCollection',
    # Relay
    'ChangePublisher',
    'ChangeSubscriber',
    'RelayClient',
    'change_topic',
]
