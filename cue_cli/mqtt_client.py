"""
MQTT client wrapper for the run-show control plane.

Publishes commands and reads the retained status message.
"""

import json
import threading
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt


class MQTTCommandClient:
    """
    Short-lived MQTT client: connect, send or read, disconnect.

    Commands go out with QoS 1.
    """

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None
    ):
        self.broker = broker
        self.port = port
        self.username = username
        self.password = password

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)

        if username and password:
            self.client.username_pw_set(username, password)

    def _connect(self) -> None:
        try:
            self.client.connect(self.broker, self.port, keepalive=60)
        except (ConnectionRefusedError, OSError):
            raise ConnectionError(
                f"Unable to connect to MQTT broker at {self.broker}:{self.port}. "
                "Is mosquitto running?"
            )

    def send_command(
        self,
        topic: str,
        command: Dict[str, Any],
        qos: int = 1
    ) -> None:
        """
        Publish one command and wait until the broker has it.

        Raises:
            ConnectionError: Broker unreachable
            ValueError: Command is not JSON serializable
        """
        try:
            payload = json.dumps(command)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid command data: {e}")

        self._connect()
        self.client.loop_start()
        try:
            result = self.client.publish(topic, payload, qos=qos)
            result.wait_for_publish(timeout=5.0)
        finally:
            self.client.loop_stop()
            self.client.disconnect()

        print(f"✅ Command sent: {command.get('command', 'unknown')}")

    def read_status(self, topic: str, timeout: float = 3.0) -> Optional[Dict[str, Any]]:
        """Return the retained status message, or None if none arrives in time."""
        received = threading.Event()
        status: Dict[str, Any] = {}

        def on_message(client, userdata, msg):
            try:
                status.update(json.loads(msg.payload.decode('utf-8')))
            except (UnicodeDecodeError, json.JSONDecodeError):
                return
            received.set()

        self.client.on_message = on_message
        self._connect()
        self.client.subscribe(topic, qos=1)
        self.client.loop_start()
        try:
            received.wait(timeout)
        finally:
            self.client.loop_stop()
            self.client.disconnect()

        return status if received.is_set() else None
