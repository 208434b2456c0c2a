"""
cue_control - Control plane for the run-show service

Bounded Context: MQTT-based command-and-control
Responsibilities:
  - MQTT connection management (MQTTControlPlane)
  - Command registration and validation (CommandRegistry)
  - Status publishing for remote stage-manager consoles

Topics:
  - cue/control/<show_id>/commands  (QoS 1, JSON {"command": ..., ...})
  - cue/control/<show_id>/status    (QoS 1, retained)
"""

from .registry import CommandArgumentError, CommandNotAvailableError, CommandRegistry
from .plane import MQTTControlPlane, command_topic, status_topic

__all__ = [
    "CommandArgumentError",
    "CommandNotAvailableError",
    "CommandRegistry",
    "MQTTControlPlane",
    "command_topic",
    "status_topic",
]
