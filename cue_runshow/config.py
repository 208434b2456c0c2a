"""
Configuration schema for the run-show service.

This module defines the configuration structure for a show run, including
timer targets, the script PDF, checkpointing, and the MQTT broker used for
the control plane and the change relay.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


class ConfigError(ValueError):
    """Raised when a configuration file is missing fields or malformed."""
    pass


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 1  # Control and change relay need delivery

    # Relay store changes to other processes
    sync_changes: bool = False
    change_topic: str = "cue/{production_id}/changes"

    def __post_init__(self):
        """Validate MQTT configuration."""
        if not self.broker:
            raise ValueError("MQTT broker cannot be empty")

        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )

    def change_topic_for(self, production_id: str) -> str:
        return self.change_topic.format(production_id=production_id)


@dataclass(frozen=True)
class ScriptConfig:
    """Script PDF and page calibration."""

    pdf_path: Optional[Path] = None
    scale: float = 1.4
    split_mode: bool = False
    start_page: int = 1
    start_half: str = ""

    def __post_init__(self):
        """Validate script configuration."""
        if self.scale <= 0:
            raise ValueError(f"scale must be > 0, got {self.scale}")

        if self.start_page < 1:
            raise ValueError(f"start_page must be >= 1, got {self.start_page}")

        if self.start_half not in {"", "L", "R"}:
            raise ValueError(
                f"Invalid start_half: {self.start_half}. Must be '', 'L' or 'R'"
            )

        if self.pdf_path is not None and not self.pdf_path.exists():
            raise FileNotFoundError(
                f"Script PDF not found: {self.pdf_path}\n"
                f"Update 'script_config.pdf_path' in config"
            )


@dataclass(frozen=True)
class ShowConfig:
    """
    Main configuration for a run-show service.

    This configuration is loaded from YAML and validated at startup.
    Immutable after construction (frozen dataclass).
    """

    # Identification
    show_id: str
    production_id: str
    title: str = "Run"

    # Timer targets
    total_pages: int = 100
    duration_minutes: float = 120
    warn_pages: int = 5

    # Session durability
    checkpoint_interval: float = 10.0

    # Props exported as JSON (loaded into the store at startup)
    props_file: Optional[Path] = None

    # Document store file (None keeps the store in memory)
    store_file: Optional[Path] = None

    # Stage manager running the show (session created_by)
    user_id: str = "stage-manager"

    mqtt_config: MQTTConfig = field(default_factory=MQTTConfig)
    script_config: ScriptConfig = field(default_factory=ScriptConfig)

    def __post_init__(self):
        """Validate show configuration."""
        if not self.show_id:
            raise ValueError("show_id cannot be empty")

        if not self.production_id:
            raise ValueError("production_id cannot be empty")

        if self.total_pages < 1:
            raise ValueError(f"total_pages must be >= 1, got {self.total_pages}")

        if self.duration_minutes <= 0:
            raise ValueError(
                f"duration_minutes must be > 0, got {self.duration_minutes}"
            )

        if self.warn_pages < 0:
            raise ValueError(f"warn_pages must be >= 0, got {self.warn_pages}")

        if not self.user_id:
            raise ValueError("user_id cannot be empty")

        if self.checkpoint_interval <= 0:
            raise ValueError(
                f"checkpoint_interval must be > 0, got {self.checkpoint_interval}"
            )

        if self.props_file is not None and not self.props_file.exists():
            raise FileNotFoundError(
                f"Props file not found: {self.props_file}\n"
                f"Export props as JSON or update 'props_file' in config"
            )

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "ShowConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            show_id: "hamlet_tech"
            production_id: "prod_123"
            title: "Tech Run 2"
            total_pages: 96
            duration_minutes: 150
            warn_pages: 3
            checkpoint_interval: 10
            props_file: "./props.json"
            store_file: "./data/hamlet.json"
            user_id: "sm1"

            script_config:
              pdf_path: "./hamlet.pdf"
              scale: 1.4
              split_mode: false
              start_page: 3
              start_half: ""

            mqtt_config:
              broker: "localhost"
              port: 1883
              username: null
              password: null
              sync_changes: false
        """
        with open(yaml_path) as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {yaml_path} must contain a mapping")

        try:
            mqtt_config = MQTTConfig(**data.get("mqtt_config", {}))

            script_data = dict(data.get("script_config", {}))
            if script_data.get("pdf_path"):
                script_data["pdf_path"] = Path(script_data["pdf_path"])
            script_config = ScriptConfig(**script_data)

            props_file = data.get("props_file")
            store_file = data.get("store_file")

            return cls(
                show_id=data["show_id"],
                production_id=data["production_id"],
                title=data.get("title", "Run"),
                total_pages=data.get("total_pages", 100),
                duration_minutes=data.get("duration_minutes", 120),
                warn_pages=data.get("warn_pages", 5),
                checkpoint_interval=data.get("checkpoint_interval", 10.0),
                props_file=Path(props_file) if props_file else None,
                store_file=Path(store_file) if store_file else None,
                user_id=data.get("user_id", "stage-manager"),
                mqtt_config=mqtt_config,
                script_config=script_config,
            )
        except KeyError as e:
            raise ConfigError(f"Missing required config field: {e}")
        except TypeError as e:
            raise ConfigError(f"Invalid config section: {e}")
