from pathlib import Path

import pytest

from cue_runshow import ConfigError, MQTTConfig, ScriptConfig, ShowConfig


def write(tmp_path, text):
    path = tmp_path / "show.yaml"
    path.write_text(text)
    return path


def test_from_yaml_full(tmp_path):
    props_file = tmp_path / "props.json"
    props_file.write_text("[]")
    path = write(tmp_path, f"""
show_id: hamlet_tech
production_id: prod_123
title: Tech Run 2
total_pages: 96
duration_minutes: 150
warn_pages: 3
checkpoint_interval: 5
props_file: {props_file}
store_file: {tmp_path / "hamlet.json"}
user_id: sm1
script_config:
  scale: 2.0
  split_mode: true
  start_page: 3
  start_half: R
mqtt_config:
  broker: broker.local
  port: 1884
  sync_changes: true
""")

    config = ShowConfig.from_yaml(path)

    assert config.show_id == "hamlet_tech"
    assert config.total_pages == 96
    assert config.duration_minutes == 150
    assert config.warn_pages == 3
    assert config.props_file == props_file
    assert config.store_file == tmp_path / "hamlet.json"
    assert config.user_id == "sm1"
    assert config.script_config == ScriptConfig(scale=2.0, split_mode=True, start_page=3, start_half="R")
    assert config.mqtt_config.broker == "broker.local"
    assert config.mqtt_config.change_topic_for("prod_123") == "cue/prod_123/changes"


def test_defaults(tmp_path):
    config = ShowConfig.from_yaml(write(tmp_path, "show_id: s\nproduction_id: p\n"))

    assert config.total_pages == 100
    assert config.store_file is None
    assert config.mqtt_config == MQTTConfig()
    assert config.script_config == ScriptConfig()


def test_missing_field(tmp_path):
    with pytest.raises(ConfigError, match="production_id"):
        ShowConfig.from_yaml(write(tmp_path, "show_id: s\n"))


def test_unknown_section_key(tmp_path):
    with pytest.raises(ConfigError, match="Invalid config section"):
        ShowConfig.from_yaml(write(tmp_path, "show_id: s\nproduction_id: p\nmqtt_config:\n  host: x\n"))


def test_not_a_mapping(tmp_path):
    with pytest.raises(ConfigError):
        ShowConfig.from_yaml(write(tmp_path, "- just\n- a list\n"))


@pytest.mark.parametrize("overrides", [
    {'show_id': ""},
    {'total_pages': 0},
    {'duration_minutes': 0},
    {'warn_pages': -1},
    {'checkpoint_interval': 0},
    {'user_id': ""},
])
def test_invalid_values(overrides):
    fields = {'show_id': "s", 'production_id': "p"}
    fields.update(overrides)
    with pytest.raises(ValueError):
        ShowConfig(**fields)


def test_missing_props_file():
    with pytest.raises(FileNotFoundError):
        ShowConfig(show_id="s", production_id="p", props_file=Path("/nonexistent/props.json"))


@pytest.mark.parametrize("fields", [
    {'broker': ""},
    {'port': 0},
    {'qos': 3},
])
def test_invalid_mqtt(fields):
    with pytest.raises(ValueError):
        MQTTConfig(**fields)


def test_invalid_script_half():
    with pytest.raises(ValueError):
        ScriptConfig(start_half="X")
