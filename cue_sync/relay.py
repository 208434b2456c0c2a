"""
Change Relay
============

Bounded Context: Realtime Sync

Keeps document stores in separate processes in step. Every store write is a
ChangeEvent; the publisher sends the events a store made itself to
`cue/<production_id>/changes`, and subscribers in other processes apply them
to their own store, which then notifies its local listeners.

Design:
- RelayClient owns the paho-mqtt client (VERSION2 callbacks), the connect /
  disconnect lifecycle and the counters reported by get_stats()
- ChangePublisher listens to every collection of one store and publishes
  only events whose origin is that store; the attach snapshot and remotely
  applied events are not echoed
- ChangeSubscriber resubscribes on every (re)connect, ignores its own
  store's events and drops malformed messages without stopping the loop
- QoS 1 by default: a lost change leaves a store stale until the next write

Message Flow:
    MemoryDocumentStore → ChangeEvent → ChangePublisher → MQTT Broker
    MQTT Broker → ChangeSubscriber → store.apply_remote() → listeners

Example:
    >>> publisher = ChangePublisher("localhost", "prod_123", logger=create_logger("sync"))
    >>> publisher.connect()
    >>> publisher.attach(store)
    >>> subscriber = ChangeSubscriber(other_store, "localhost",
    ...                               topic="cue/prod_123/changes",
    ...                               logger=create_logger("sync"))
    >>> subscriber.connect()
"""

import json
import threading
from collections import Counter
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .logging import LogEvent, StructuredLogger
from .store import ALL_COLLECTIONS, ChangeEvent, DocumentStore, Subscription


DEFAULT_CHANGE_TOPIC = "cue/{production_id}/changes"


def change_topic(production_id: str) -> str:
    return DEFAULT_CHANGE_TOPIC.format(production_id=production_id)


class RelayClient:
    """
    MQTT connection shared by both relay directions.

    Attributes:
        topic: Change topic for one production
        client_id: MQTT client identifier
        qos: Publish / subscribe QoS
        logger: Structured logger

    Thread Safety:
        paho runs its network loop in a background thread (loop_start);
        connection state is a threading.Event and counters take a lock.
    """

    role = "relay"

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        topic: str,
        client_id: str,
        logger: StructuredLogger,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic = topic
        self.client_id = client_id
        self.logger = logger
        self.qos = qos

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username and password:
            self.client.username_pw_set(username, password)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        self._connected = threading.Event()
        self._running = False
        self._counts: Counter = Counter()
        self._stats_lock = threading.Lock()

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    def _count(self, name: str) -> int:
        with self._stats_lock:
            self._counts[name] += 1
            return self._counts[name]

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Change {self.role} failed to connect ({reason_code})",
                metadata={'broker': self.broker}
            )
            return

        self._on_connected(client)
        self._connected.set()
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message=f"Change {self.role} connected",
            metadata={'broker': self.broker, 'client_id': self.client_id, 'topic': self.topic}
        )

    def _on_connected(self, client) -> None:
        """Hook run on every successful (re)connect, before waiters wake."""

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message=f"Change {self.role} disconnected",
            metadata={'broker': self.broker, 'reason_code': str(reason_code)}
        )

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Connect and wait for the CONNACK.

        Returns:
            True if connected within timeout, False otherwise
        """
        try:
            self.client.connect(self.broker_host, self.broker_port)
            self.client.loop_start()
            self._running = True
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Change {self.role} could not reach the broker",
                exc_info=e,
                metadata={'broker': self.broker}
            )
            return False

        if self._connected.wait(timeout=timeout):
            return True
        self.logger.error(
            event=LogEvent.MQTT_CONNECTION_ERROR,
            message="Connection timeout",
            metadata={'broker': self.broker, 'timeout': timeout}
        )
        return False

    def disconnect(self) -> None:
        """Stop the network loop and disconnect. Safe to call twice."""
        if not self._running:
            return
        self._running = False
        try:
            self.client.loop_stop()
            self.client.disconnect()
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Error during disconnect",
                exc_info=e
            )
            return
        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message=f"Change {self.role} stopped",
            metadata=self.get_stats()
        )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    def is_running(self) -> bool:
        return self._running

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            stats = {f"{name}_count": count for name, count in self._counts.items()}
        stats.update(connected=self._connected.is_set(), topic=self.topic, broker=self.broker)
        return stats


class ChangePublisher(RelayClient):
    """Publishes a store's own writes."""

    role = "publisher"

    def __init__(
        self,
        broker_host: str,
        production_id: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        topic: Optional[str] = None,
        client_id: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
    ):
        super().__init__(
            broker_host=broker_host,
            broker_port=broker_port,
            topic=topic or change_topic(production_id),
            client_id=client_id or f"cue_changes_{production_id}",
            logger=logger,
            username=username,
            password=password,
            qos=qos,
        )
        self.production_id = production_id
        self._counts['message'] = 0
        self._store: Optional[DocumentStore] = None
        self._subscription: Optional[Subscription] = None
        self._attached = threading.Event()

    def attach(self, store: DocumentStore) -> Subscription:
        """Start relaying the store's own writes."""
        self._store = store
        self._attached.clear()
        self._subscription = store.subscribe(ALL_COLLECTIONS, self._on_change)
        self._attached.set()
        return self._subscription

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._attached.clear()

    def _on_change(self, event: ChangeEvent) -> None:
        # Snapshot events arrive before _attached is set
        if not self._attached.is_set():
            return
        if self._store is None or event.origin != self._store.origin:
            return
        self.publish_change(event)

    def publish_change(self, event: ChangeEvent) -> bool:
        """
        Returns:
            True if handed to the client, False when offline or rejected
        """
        if not self._connected.is_set():
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message="Cannot publish: not connected to broker",
                metadata={'collection': event.collection, 'doc_id': event.doc_id}
            )
            return False

        try:
            payload = json.dumps(event.to_dict())
        except (TypeError, ValueError) as e:
            self._count('error')
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Failed to serialize change event",
                exc_info=e,
                metadata={'collection': event.collection, 'doc_id': event.doc_id}
            )
            return False

        try:
            result = self.client.publish(topic=self.topic, payload=payload, qos=self.qos)
        except Exception as e:
            self._count('error')
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Error publishing change",
                exc_info=e,
                metadata={'topic': self.topic}
            )
            return False

        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            self._count('error')
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message=f"Publish failed (rc={result.rc})",
                metadata={'topic': self.topic}
            )
            return False

        sent = self._count('message')
        self.logger.debug(
            event=LogEvent.MQTT_PUBLISH_SUCCESS,
            message=f"{event.kind.value} {event.collection}/{event.doc_id}",
            metadata={'topic': self.topic, 'message_count': sent}
        )
        return True


class ChangeSubscriber(RelayClient):
    """Applies changes published by other processes to a local store."""

    role = "subscriber"

    def __init__(
        self,
        store: DocumentStore,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
    ):
        super().__init__(
            broker_host=broker_host,
            broker_port=broker_port,
            topic=topic,
            client_id=client_id or f"cue_sync_{store.origin}",
            logger=logger,
            username=username,
            password=password,
            qos=qos,
        )
        self.store = store
        for name in ('applied', 'skipped', 'error'):
            self._counts[name] = 0
        self.client.on_message = self._on_message

    def _on_connected(self, client) -> None:
        client.subscribe(self.topic, qos=self.qos)

    def _on_message(self, client, userdata, msg) -> None:
        try:
            payload = json.loads(msg.payload.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self._count('error')
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Failed to decode change message",
                exc_info=e,
                metadata={'topic': msg.topic}
            )
            return

        self.handle_payload(payload)

    def handle_payload(self, payload: Any) -> bool:
        """
        Apply one decoded change message.

        Returns:
            True if the change was applied, False if skipped or invalid
        """
        try:
            event = ChangeEvent.from_dict(payload)
        except (ValueError, TypeError, AttributeError) as e:
            self._count('error')
            self.logger.error(
                event=LogEvent.SCHEMA_VALIDATION_ERROR,
                message="Invalid change event",
                exc_info=e,
                metadata={'payload_keys': sorted(payload) if isinstance(payload, dict) else None}
            )
            return False

        if event.origin == self.store.origin:
            self._count('skipped')
            return False

        self.store.apply_remote(event)
        self._count('applied')
        return True

    def stop(self) -> None:
        self.disconnect()
