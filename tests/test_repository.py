import pytest

from cue_props import Prop, get_prop_status, prop_collection
from cue_sync import DocumentNotFoundError, ProductionRepository, SchemaValidationError
from cue_sync.schemas import Member, Production, Role


def test_paths_are_scoped_to_production(repo):
    assert repo.path("props") == "productions/prod1/props"
    with pytest.raises(ValueError):
        repo.path("secrets")


def test_production_and_roles(repo):
    assert repo.production().title == "Hamlet"
    assert repo.role_of("owner1") == "owner"
    assert repo.role_of("member1") == "member"
    assert repo.role_of("stranger") is None


def test_missing_production_raises(store):
    repo = ProductionRepository(store, "ghost")

    with pytest.raises(DocumentNotFoundError):
        repo.production()


def test_add_assigns_id_and_save_requires_one(repo, skull):
    props = prop_collection(repo)

    added = props.add(Prop(id="", name="Cup", start="SR"))
    assert added.id
    assert props.require(added.id).name == "Cup"

    with pytest.raises(SchemaValidationError):
        props.save(Prop(id="", name="Cup", start="SR"))


def test_list_skips_invalid_documents(repo, store):
    store.set(repo.path("props"), "bad", {'start': "SL"})
    store.set(repo.path("props"), "good", {'name': "Cup", 'start': "SL"})

    assert [p.id for p in prop_collection(repo).list()] == ["good"]


def test_collection_subscribe_decodes_records(repo, skull):
    seen = []
    props = prop_collection(repo)
    subscription = props.subscribe(lambda event, record: seen.append((event.kind.value, record)))

    props.save(skull)
    props.delete(skull.id)
    subscription.unsubscribe()

    assert seen[0][0] == "added" and seen[0][1].name == "Skull"
    assert seen[1] == ("removed", None)


def test_require_missing_record(repo):
    with pytest.raises(DocumentNotFoundError):
        repo.members.require("nobody")


def test_empty_production_id_rejected(store):
    with pytest.raises(ValueError):
        ProductionRepository(store, "")


def test_schema_validation_errors_are_value_errors():
    with pytest.raises(ValueError):
        Production(id="p", title="  ")
    with pytest.raises(SchemaValidationError):
        Production(id="p", title="Show", join_code="abc")
    with pytest.raises(SchemaValidationError):
        Member.from_dict({'role': "director"})
    assert Member.from_dict({'role': "owner", 'id': "u"}).role is Role.OWNER


def test_legacy_prop_with_blank_exits_loads_as_still_on(repo, store):
    store.set(repo.path("props"), "lamp", {'name': "Lamp", 'start': "SL", 'enters': [4, 9], 'exits': [None, ""]})

    props = prop_collection(repo).list()

    assert [p.name for p in props] == ["Lamp"]
    assert props[0].exits == (0, 0)
    assert get_prop_status(props[0], 400).is_on
