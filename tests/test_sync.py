from unittest.mock import MagicMock, patch

import pytest

from cue_sync import ChangeEvent, ChangeKind, ChangePublisher, ChangeSubscriber, create_logger


@pytest.fixture
def mqtt_client():
    with patch("paho.mqtt.client.Client") as client_cls:
        client = MagicMock()
        client.publish.return_value.rc = 0
        client_cls.return_value = client
        yield client


@pytest.fixture
def subscriber(store, mqtt_client):
    return ChangeSubscriber(store=store, broker_host="localhost", topic="cue/prod1/changes",
                            logger=create_logger("sync"))


def remote_event(**overrides):
    data = {
        'kind': "added",
        'collection': "productions/prod1/props",
        'doc_id': "p1",
        'data': {'name': "Skull", 'start': "SL"},
        'origin': "other-store",
        'timestamp': 5.0,
    }
    data.update(overrides)
    return data


def test_remote_changes_are_applied(subscriber, store):
    assert subscriber.handle_payload(remote_event()) is True

    assert store.get("productions/prod1/props", "p1") == {'name': "Skull", 'start': "SL"}
    assert subscriber.get_stats()['applied_count'] == 1


def test_own_changes_are_skipped(subscriber, store):
    assert subscriber.handle_payload(remote_event(origin=store.origin)) is False

    assert store.get("productions/prod1/props", "p1") is None
    assert subscriber.get_stats()['skipped_count'] == 1


@pytest.mark.parametrize("payload", [
    {'kind': "added"},
    remote_event(kind="renamed"),
    remote_event(doc_id=""),
])
def test_invalid_events_are_counted(subscriber, payload):
    assert subscriber.handle_payload(payload) is False
    assert subscriber.get_stats()['error_count'] == 1


def test_undecodable_message_is_dropped(subscriber):
    subscriber._on_message(None, None, MagicMock(payload=b"\xff\xfe", topic="t"))

    assert subscriber.get_stats()['error_count'] == 1


def test_subscriber_uses_store_origin_for_client_id(subscriber, store):
    assert subscriber.client_id == f"cue_sync_{store.origin}"


@pytest.fixture
def publisher(mqtt_client):
    publisher = ChangePublisher(broker_host="localhost", production_id="prod1",
                                logger=create_logger("sync"))
    publisher._connected.set()
    return publisher


def test_publisher_relays_only_local_writes(publisher, store, mqtt_client):
    store.set("props", "existing", {'name': "Cup"})
    publisher.attach(store)

    store.set("props", "p1", {'name': "Skull"})
    store.apply_remote(ChangeEvent(ChangeKind.ADDED, "props", "p2", {}, origin="elsewhere"))

    assert mqtt_client.publish.call_count == 1
    kwargs = mqtt_client.publish.call_args.kwargs
    assert kwargs['topic'] == "cue/prod1/changes"
    assert '"doc_id": "p1"' in kwargs['payload']
    assert publisher.get_stats()['message_count'] == 1


def test_detach_stops_relaying(publisher, store, mqtt_client):
    publisher.attach(store)
    publisher.detach()

    store.set("props", "p1", {'name': "Skull"})

    mqtt_client.publish.assert_not_called()
    assert store.listener_count() == 0


def test_publish_requires_connection(publisher, mqtt_client):
    publisher._connected.clear()

    event = ChangeEvent(ChangeKind.REMOVED, "props", "p1", origin="x")
    assert publisher.publish_change(event) is False
    mqtt_client.publish.assert_not_called()
