import json

import pytest

from cue_props import (
    CueValidationError,
    add_props,
    export_props_csv,
    export_props_json,
    import_props_csv,
    import_props_json,
    prop_collection,
)


def test_csv_header_widens_to_longest_cue_list(skull, sword):
    header = export_props_csv([skull, sword]).splitlines()[0].split(",")

    assert header[:3] == ["name", "start", "endLocation"]
    assert "cue_2_enterPage" in header
    assert "cue_3_enterPage" not in header


def test_csv_export_then_import_keeps_cues(skull, sword):
    imported = import_props_csv(export_props_csv([skull, sword]))

    assert [p.name for p in imported] == ["Skull", "Sword"]
    assert imported[0].cues == skull.cues
    assert imported[1].cues == sword.cues
    assert imported[1].end_location == "SR"


def test_csv_import_skips_blank_cue_groups():
    text = (
        "name,start,endLocation,cue_1_enterLocation,cue_1_enterPage,cue_1_exitPage,"
        "cue_1_exitLocation,cue_1_carrierOn,cue_1_carrierOff,cue_1_mover\n"
        "Chair,SR,SR,,,,,,,\n"
    )

    props = import_props_csv(text)

    assert props[0].cues == ()
    assert props[0].end_location == "SR"


def test_csv_import_reports_row_number():
    text = (
        "name,start,endLocation,cue_1_enterLocation,cue_1_enterPage,cue_1_exitPage,"
        "cue_1_exitLocation,cue_1_carrierOn,cue_1_carrierOff,cue_1_mover\n"
        "Chair,SR,SR,SR,5,2,SR,,,\n"
    )

    with pytest.raises(CueValidationError, match="Row 2: Cue #1: exit must be >= enter."):
        import_props_csv(text)


def test_json_export_then_import(skull):
    imported = import_props_json(export_props_json([skull]))

    assert imported[0].name == "Skull"
    assert imported[0].cues == skull.cues
    assert imported[0].enters == (3, 10)


@pytest.mark.parametrize("payload, message", [
    ({'name': "x"}, "JSON must be an array of props."),
    ([{'start': "SL"}], "Item 1: name is required."),
    ([{'name': "Cup", 'start': "ON"}], "Item 1: start must be SL or SR."),
    ([{'name': "Cup", 'start': "SL", 'cues': {}}], "Item 1: cues must be an array."),
    ([{'name': "Cup", 'start': "SL", 'cues': [{'enterPage': "3", 'exitPage': 4}]}],
     "Item 1, Cue 1: enterPage must be a positive integer."),
])
def test_json_import_validation(payload, message):
    with pytest.raises(CueValidationError) as exc:
        import_props_json(json.dumps(payload))
    assert str(exc.value) == message


def test_json_import_rejects_malformed_text():
    with pytest.raises(CueValidationError, match="Invalid JSON"):
        import_props_json("[{")


def test_add_props_stores_every_prop(repo, skull):
    collection = prop_collection(repo)

    added = add_props(collection, import_props_json(export_props_json([skull, skull])))

    assert len(added) == 2
    assert all(p.id for p in added)
    assert len(collection.list()) == 2
