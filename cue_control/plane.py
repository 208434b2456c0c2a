"""
MQTTControlPlane - MQTT control plane for the run-show service

Bounded Context: MQTT connection management + command reception
Responsibilities:
  - MQTT connection lifecycle (connect, disconnect)
  - Command reception on cue/control/<show_id>/commands
  - Status publishing on cue/control/<show_id>/status
  - Command delegation to CommandRegistry

QoS Policy:
  - Commands: QoS 1 (at-least-once delivery)
  - Status: QoS 1 + retained (a late subscriber sees the current timer)

Threading:
  - MQTT client runs its own background thread (loop_start/loop_stop)
  - Command handlers run in the MQTT thread; timer commands only swap state
"""

import json
import logging
from datetime import datetime
from threading import Event
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .registry import CommandArgumentError, CommandNotAvailableError, CommandRegistry

logger = logging.getLogger(__name__)


COMMAND_TOPIC = "cue/control/{show_id}/commands"
STATUS_TOPIC = "cue/control/{show_id}/status"


def command_topic(show_id: str) -> str:
    return COMMAND_TOPIC.format(show_id=show_id)


def status_topic(show_id: str) -> str:
    return STATUS_TOPIC.format(show_id=show_id)


class MQTTControlPlane:
    """
    Receives run-show commands and publishes timer status.

    Example:
        control_plane = MQTTControlPlane(
            broker_host="localhost",
            broker_port=1883,
            show_id="hamlet_tech",
        )
        control_plane.command_registry.register('hold', handler, "Hold the show")

        if control_plane.connect(timeout=5.0):
            control_plane.publish_status("running", {'page': 12})
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        show_id: str,
        client_id: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        command_topic_name: Optional[str] = None,
        status_topic_name: Optional[str] = None,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.show_id = show_id
        self.command_topic = command_topic_name or command_topic(show_id)
        self.status_topic = status_topic_name or status_topic(show_id)
        self.client_id = client_id or f"cue_runshow_{show_id}"

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=self.client_id)
        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message
        self.client.on_disconnect = self._on_disconnect

        if username and password:
            self.client.username_pw_set(username, password)

        self._connected = Event()
        self._running = False

        self.command_registry = CommandRegistry()

    def connect(self, timeout: float = 5.0) -> bool:
        """Connect and wait up to `timeout` seconds for the broker."""
        try:
            logger.info(f"🔌 Connecting to MQTT broker: {self.broker_host}:{self.broker_port}")
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
            self.client.loop_start()
            self._running = True

            if self._connected.wait(timeout=timeout):
                logger.info("✅ MQTT Control Plane connected")
                return True
            logger.error(f"❌ Connection timeout after {timeout}s")
            return False

        except Exception as e:
            logger.error(f"❌ Error connecting to MQTT: {e}")
            return False

    def disconnect(self) -> None:
        """Publish a final status and disconnect. Safe to call twice."""
        if self._running:
            logger.info("🔌 Disconnecting from MQTT broker")
            self.publish_status("disconnected")
            self.client.loop_stop()
            self.client.disconnect()
            self._running = False
            self._connected.clear()
            logger.info("✅ MQTT Control Plane disconnected")

    def is_connected(self) -> bool:
        return self._connected.is_set()

    def publish_status(self, status: str, payload: Optional[Dict[str, Any]] = None) -> None:
        """
        Publish a retained status message.

        Args:
            status: e.g. "running", "held", "idle", "completed", "error"
            payload: Extra fields merged into the message (timer snapshot,
                command result)
        """
        message = {
            "status": status,
            "timestamp": datetime.now().isoformat(),
            "client_id": self.client_id,
        }
        if payload:
            message.update(payload)

        try:
            self.client.publish(
                self.status_topic,
                json.dumps(message),
                qos=1,
                retain=True,
            )
            logger.debug(f"📤 Status published: {status}")
        except Exception as e:
            logger.error(f"❌ Error publishing status: {e}")

    # ===== MQTT Callbacks (run in MQTT thread) =====

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.error(f"❌ Connection failed ({reason_code})")
            self._connected.clear()
            return

        logger.info(f"✅ Connected to broker ({reason_code})")
        client.subscribe(self.command_topic, qos=1)
        logger.info(f"📥 Subscribed to: {self.command_topic} (QoS 1)")
        self.publish_status("connected")
        self._connected.set()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        if reason_code.is_failure:
            logger.warning(f"⚠️ Unexpected disconnection ({reason_code})")
        else:
            logger.info("✅ Disconnected from broker")
        self._connected.clear()

    def _on_message(self, client, userdata, msg):
        try:
            payload = msg.payload.decode('utf-8')
            logger.debug(f"📦 Command received: {payload}")
            command_data = json.loads(payload)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"❌ Error decoding JSON: {msg.payload!r} ({e})")
            return

        if not isinstance(command_data, dict):
            logger.warning("⚠️ Command payload must be a JSON object")
            return

        self.dispatch(command_data)

    def dispatch(self, command_data: Dict[str, Any]) -> bool:
        """Execute one decoded command. Returns True on success."""
        command = str(command_data.get('command', '')).strip().lower()
        if not command:
            logger.warning("⚠️ Empty command received")
            return False

        logger.info(f"🎯 Executing command: {command}")
        try:
            self.command_registry.execute(command, command_data)
            logger.debug(f"✅ Command '{command}' executed successfully")
            return True

        except CommandNotAvailableError as e:
            logger.warning(f"⚠️ {e}")
            self.publish_status("error", {'command': command, 'error': str(e)})
        except (CommandArgumentError, ValueError) as e:
            logger.warning(f"⚠️ Rejected '{command}': {e}")
            self.publish_status("error", {'command': command, 'error': str(e)})
        except Exception as e:
            logger.error(f"❌ Error processing command '{command}': {e}", exc_info=True)
        return False
