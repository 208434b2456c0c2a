import json
from unittest.mock import MagicMock, patch

import pytest

from cue_control import (
    CommandArgumentError,
    CommandNotAvailableError,
    CommandRegistry,
    MQTTControlPlane,
    command_topic,
    status_topic,
)


class TestCommandRegistry:

    def test_execute_passes_payload_with_command(self):
        registry = CommandRegistry()
        handler = MagicMock(return_value="ok")
        registry.register("goto_page", handler, "Jump", required=("page",))

        assert registry.execute("goto_page", {'page': 4}) == "ok"
        handler.assert_called_once_with({'page': 4, 'command': "goto_page"})

    def test_missing_required_field(self):
        registry = CommandRegistry()
        registry.register("goto_page", MagicMock(), "Jump", required=("page",))

        with pytest.raises(CommandArgumentError, match="requires: page"):
            registry.execute("goto_page", {'page': None})

    def test_unknown_command_lists_available(self):
        registry = CommandRegistry()
        registry.register("hold", MagicMock(), "Hold")

        with pytest.raises(CommandNotAvailableError, match="Available commands: hold"):
            registry.execute("dance")

    @pytest.mark.parametrize("name", ["", "Hold", "go to", " hold"])
    def test_invalid_names_rejected(self, name):
        with pytest.raises(ValueError):
            CommandRegistry().register(name, MagicMock(), "x")

    def test_duplicate_rejected_and_introspection(self):
        registry = CommandRegistry()
        registry.register("hold", MagicMock(), "Hold the show")

        with pytest.raises(ValueError):
            registry.register("hold", MagicMock(), "again")
        assert registry.is_available("hold")
        assert registry.available_commands == {"hold"}
        assert registry.get_help() == {"hold": "Hold the show"}
        assert registry.count() == 1


def test_topics():
    assert command_topic("hamlet") == "cue/control/hamlet/commands"
    assert status_topic("hamlet") == "cue/control/hamlet/status"


@pytest.fixture
def plane():
    with patch("paho.mqtt.client.Client") as client_cls:
        client_cls.return_value = MagicMock()
        yield MQTTControlPlane(broker_host="localhost", broker_port=1883, show_id="hamlet")


def published(plane):
    """Decoded status messages, in publish order."""
    messages = []
    for call in plane.client.publish.call_args_list:
        topic, payload = call.args[:2]
        assert topic == "cue/control/hamlet/status"
        assert call.kwargs == {'qos': 1, 'retain': True}
        messages.append(json.loads(payload))
    return messages


def test_dispatch_runs_handler(plane):
    handler = MagicMock()
    plane.command_registry.register("hold", handler, "Hold")

    assert plane.dispatch({'command': " HOLD "}) is True
    handler.assert_called_once()


def test_dispatch_publishes_errors(plane):
    plane.command_registry.register("goto_page", MagicMock(), "Jump", required=("page",))

    assert plane.dispatch({'command': "nope"}) is False
    assert plane.dispatch({'command': "goto_page"}) is False

    errors = published(plane)
    assert [m['status'] for m in errors] == ["error", "error"]
    assert errors[0]['command'] == "nope"
    assert "requires: page" in errors[1]['error']


def test_dispatch_handler_value_error_is_reported(plane):
    plane.command_registry.register("goto_page", MagicMock(side_effect=ValueError("bad page")), "Jump")

    assert plane.dispatch({'command': "goto_page"}) is False
    assert published(plane)[0]['error'] == "bad page"


def test_dispatch_unexpected_error_is_logged_only(plane):
    plane.command_registry.register("hold", MagicMock(side_effect=RuntimeError("boom")), "Hold")

    assert plane.dispatch({'command': "hold"}) is False
    assert published(plane) == []


def test_empty_command_ignored(plane):
    assert plane.dispatch({}) is False


def test_on_message_decodes_json(plane):
    handler = MagicMock()
    plane.command_registry.register("hold", handler, "Hold")

    plane._on_message(None, None, MagicMock(payload=b'{"command": "hold"}'))
    plane._on_message(None, None, MagicMock(payload=b'not json'))
    plane._on_message(None, None, MagicMock(payload=b'["hold"]'))

    handler.assert_called_once()


def test_publish_status_merges_payload(plane):
    plane.publish_status("running", {'timer': {'currentPage': 4}})

    message = published(plane)[0]
    assert message['status'] == "running"
    assert message['client_id'] == "cue_runshow_hamlet"
    assert message['timer'] == {'currentPage': 4}
