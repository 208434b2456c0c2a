import json
import threading

import pytest

from cue_sync import (
    ALL_COLLECTIONS,
    ChangeEvent,
    ChangeKind,
    DocumentNotFoundError,
    JsonFileDocumentStore,
    MemoryDocumentStore,
)


def test_set_get_returns_copies(store):
    doc = {'name': "Skull", 'tags': ["bone"]}
    store.set("props", "p1", doc)
    doc['tags'].append("mutated")

    fetched = store.get("props", "p1")
    fetched['name'] = "changed"

    assert store.get("props", "p1") == {'name': "Skull", 'tags': ["bone"]}


def test_merge_and_update(store):
    store.set("props", "p1", {'name': "Skull", 'start': "SL"})
    store.set("props", "p1", {'start': "SR"}, merge=True)
    store.update("props", "p1", {'endLocation': "SL"})

    assert store.get("props", "p1") == {'name': "Skull", 'start': "SR", 'endLocation': "SL"}


def test_update_missing_document_raises(store):
    with pytest.raises(DocumentNotFoundError):
        store.update("props", "nope", {'x': 1})


def test_delete_missing_document_is_noop(store):
    store.delete("props", "nope")


def test_list_filters_by_equality(store):
    store.set("sessions", "a", {'status': "active"})
    store.set("sessions", "b", {'status': "ended"})

    assert [doc_id for doc_id, _ in store.list("sessions", where={'status': "active"})] == ["a"]
    assert len(store.list("sessions")) == 2


def test_subscribe_delivers_snapshot_then_changes(store):
    store.set("props", "p1", {'name': "Skull"})
    events = []

    subscription = store.subscribe("props", events.append)
    store.set("props", "p2", {'name': "Sword"})
    store.update("props", "p1", {'name': "Skull 2"})
    store.delete("props", "p2")
    store.set("cast", "c1", {'name': "Ham"})

    assert [(e.kind, e.doc_id) for e in events] == [
        (ChangeKind.ADDED, "p1"),
        (ChangeKind.ADDED, "p2"),
        (ChangeKind.MODIFIED, "p1"),
        (ChangeKind.REMOVED, "p2"),
    ]
    assert events[-1].data is None
    assert all(e.origin == "test-store" for e in events)

    subscription.unsubscribe()
    subscription.unsubscribe()
    store.set("props", "p3", {'name': "Cup"})
    assert len(events) == 4
    assert store.listener_count("props") == 0


def test_all_collections_listener(store):
    events = []
    store.subscribe(ALL_COLLECTIONS, events.append)

    store.set("props", "p1", {})
    store.set("cast", "c1", {})

    assert [e.collection for e in events] == ["props", "cast"]


def test_listener_errors_do_not_stop_other_listeners(store):
    received = []

    def broken(event):
        raise RuntimeError("boom")

    store.subscribe("props", broken)
    store.subscribe("props", received.append)
    store.set("props", "p1", {})

    assert len(received) == 1


def test_watch_stream_closes(store):
    stream = store.watch("props")
    store.set("props", "p1", {'name': "Skull"})

    event = stream.get(timeout=1)
    assert event.doc_id == "p1"

    stream.close()
    assert stream.closed
    assert list(stream) == []
    assert store.listener_count("props") == 0


def test_apply_remote_keeps_foreign_origin(store):
    events = []
    store.subscribe("props", events.append)

    store.apply_remote(ChangeEvent(ChangeKind.ADDED, "props", "p9", {'name': "Lamp"}, origin="other"))
    store.apply_remote(ChangeEvent(ChangeKind.REMOVED, "props", "p9", origin="other"))
    store.apply_remote(ChangeEvent(ChangeKind.REMOVED, "props", "p9", origin="other"))

    assert store.get("props", "p9") is None
    assert [e.origin for e in events] == ["other", "other"]


def test_change_event_dict_round_trip():
    event = ChangeEvent(ChangeKind.MODIFIED, "props", "p1", {'a': 1}, origin="o", timestamp=3.0)

    assert ChangeEvent.from_dict(event.to_dict()) == event
    with pytest.raises(ValueError):
        ChangeEvent.from_dict({'kind': "added"})


def test_json_file_store_persists_across_instances(tmp_path):
    path = tmp_path / "data" / "show.json"
    first = JsonFileDocumentStore(path, origin="a")
    first.set("productions/p1/sessions", "s1", {'status': "active"})

    assert json.loads(path.read_text())["productions/p1/sessions"]["s1"] == {'status': "active"}

    second = JsonFileDocumentStore(path, origin="b")
    assert second.get("productions/p1/sessions", "s1") == {'status': "active"}
    assert not (tmp_path / "data" / "show.json.tmp").exists()


def test_json_file_store_rejects_non_object(tmp_path):
    path = tmp_path / "show.json"
    path.write_text("[]")

    with pytest.raises(ValueError):
        JsonFileDocumentStore(path)


def test_memory_store_generates_origin():
    assert MemoryDocumentStore().origin.startswith("store-")


def test_json_file_store_concurrent_writers_leave_latest_snapshot(tmp_path):
    path = tmp_path / "show.json"
    store = JsonFileDocumentStore(path, origin="a")

    def write(worker):
        for i in range(25):
            store.set("productions/p1/sessions", f"s{worker}", {'n': i})

    threads = [threading.Thread(target=write, args=(w,)) for w in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    on_disk = json.loads(path.read_text())["productions/p1/sessions"]
    assert on_disk == {f"s{w}": {'n': 24} for w in range(4)}
    assert not (tmp_path / "show.json.tmp").exists()
