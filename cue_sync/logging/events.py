"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

Typed event names for the structured logger used across the cue packages.

Event Naming Convention:
    <component>.<category>.<action>

    component: mqtt, store, zone, timer, session, production, error
    category: connected, extraction, checkpoint, joined
    action: success, failed, fallback

Example Log Query (CloudWatch Insights):
    fields @timestamp, event, message, metadata.session_id
    | filter event = "session.checkpoint.failed"
    | stats count() by bin(5m)
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - mqtt.*: MQTT broker interactions (change relay)
    - store.*: Document store writes and subscriptions
    - zone.*: Script zone extraction and edits
    - timer.*: Show timer transitions and warnings
    - session.*: Run sessions, checkpoints, recovery
    - production.*: Membership and join codes
    - error.*: Error conditions
    """

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    """MQTT broker connection established."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """MQTT broker connection lost."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Message successfully published to broker."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Message publication failed."""

    # ========== Store Events ==========
    STORE_SUBSCRIBED = "store.subscribed"
    """Realtime listener attached to a collection."""

    STORE_UNSUBSCRIBED = "store.unsubscribed"
    """Realtime listener detached."""

    STORE_REMOTE_APPLIED = "store.remote.applied"
    """Change event from another process applied locally."""

    # ========== Zone Events ==========
    ZONE_EXTRACTED = "zone.extracted"
    """Zones extracted from a page text layer."""

    ZONE_EXTRACTION_FALLBACK = "zone.extraction.fallback"
    """Page had no usable text layer; synthetic zones generated."""

    ZONE_CACHE_HIT = "zone.cache.hit"
    """Zones served from cache or store."""

    ZONE_EDITED = "zone.edited"
    """Zone boxes or flags changed by an owner."""

    # ========== Timer Events ==========
    TIMER_STARTED = "timer.started"
    """Show timer started fresh or resumed from hold."""

    TIMER_HELD = "timer.held"
    """Show timer put on hold."""

    TIMER_STOPPED = "timer.stopped"
    """Show timer stopped and reset."""

    TIMER_PAGE_CHANGED = "timer.page_changed"
    """Playhead advanced to a new script page."""

    TIMER_PROP_WARNING = "timer.prop_warning"
    """Upcoming prop entrance inside the warning window."""

    TIMER_COMPLETED = "timer.completed"
    """Elapsed time reached the target duration."""

    # ========== Session Events ==========
    SESSION_STARTED = "session.started"
    """Run session document created."""

    SESSION_CHECKPOINT = "session.checkpoint.success"
    """Live timer state written to the store."""

    SESSION_CHECKPOINT_FAILED = "session.checkpoint.failed"
    """Live timer state could not be written."""

    SESSION_RECOVERED = "session.recovered"
    """Interrupted session hydrated from its last checkpoint."""

    SESSION_ENDED = "session.ended"
    """Run session closed with its summary."""

    SESSION_ABANDONED = "session.abandoned"
    """Interrupted session discarded."""

    # ========== Production Events ==========
    PRODUCTION_CREATED = "production.created"
    """Production created with an owner membership."""

    PRODUCTION_JOINED = "production.joined"
    """Member provisioned through a join code."""

    PRODUCTION_JOIN_REJECTED = "production.join.rejected"
    """Join request rejected (auth, argument or code)."""

    PRODUCTION_JOIN_CODE_CHANGED = "production.join_code.changed"
    """Join code regenerated, activated or deactivated."""

    NOTE_SAVED = "production.note.saved"
    """Line note or prop note written."""

    # ========== Error Events ==========
    SERIALIZATION_ERROR = "error.serialization"
    """Failed to serialize message to JSON."""

    DESERIALIZATION_ERROR = "error.deserialization"
    """Failed to deserialize message from JSON."""

    SCHEMA_VALIDATION_ERROR = "error.schema_validation"
    """Record failed schema validation."""

    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    """Failed to connect to MQTT broker."""

    MQTT_PUBLISH_ERROR = "error.mqtt_publish"
    """Error during message publication."""

    LISTENER_ERROR = "error.listener"
    """A subscription or timer callback raised."""

    STORE_ERROR = "error.store"
    """Document store read or write failed."""
