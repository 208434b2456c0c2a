import pytest

from cue_props import (
    Cue,
    CueValidationError,
    Prop,
    build_checklist,
    build_prop,
    check_progress,
    fill_enter_locations,
    load_check_state,
    sanitize_name,
    save_check_state,
    sort_cues,
    validate_cue,
)
from cue_props.checklist import CheckPhase


def test_sanitize_name_strips_control_characters():
    assert sanitize_name("  Sku\x00ll\n ") == "Skull"
    assert sanitize_name(None) == ""
    assert len(sanitize_name("x" * 500)) == 200


def test_validate_cue_accepts_string_pages():
    cue = validate_cue({'enterPage': "3", 'exitPage': "5", 'carrierOn': " Hamlet "})

    assert (cue.enter_page, cue.exit_page) == (3, 5)
    assert cue.carrier_on == "Hamlet"
    assert cue.exit_location == "SL"


@pytest.mark.parametrize("fields, message", [
    ({'enterPage': "", 'exitPage': "4"}, "Cue #2: enter and exit pages required."),
    ({'enterPage': "6", 'exitPage': "4"}, "Cue #2: exit must be >= enter."),
])
def test_validate_cue_errors_name_the_cue(fields, message):
    with pytest.raises(CueValidationError) as exc:
        validate_cue(fields, index=1)
    assert str(exc.value) == message


def test_cue_rejects_exit_before_enter():
    with pytest.raises(CueValidationError):
        Cue(enter_page=5, exit_page=4)


def test_fill_enter_locations_follows_previous_exit():
    cues = [
        Cue(enter_page=1, exit_page=2, exit_location="SR"),
        Cue(enter_page=4, exit_page=4, exit_location="SL"),
        Cue(enter_page=6, exit_page=6, enter_location="SR"),
    ]

    filled = fill_enter_locations("SL", cues)

    assert [c.enter_location for c in filled] == ["SL", "SR", "SR"]


def test_sort_cues_by_pages():
    cues = [Cue(enter_page=9, exit_page=9), Cue(enter_page=2, exit_page=4), Cue(enter_page=2, exit_page=3)]

    assert [(c.enter_page, c.exit_page) for c in sort_cues(cues)] == [(2, 3), (2, 4), (9, 9)]


def test_build_prop_derives_arrays_and_end_location():
    prop = build_prop("Skull", "SL", [
        {'enterPage': 3, 'exitPage': 3, 'exitLocation': "SR"},
        {'enterPage': 10, 'exitPage': 12, 'exitLocation': "SL"},
    ])

    assert prop.enters == (3, 10)
    assert prop.exits == (3, 12)
    assert prop.end_location == "SL"
    assert prop.cues[1].enter_location == "SR"


def test_build_prop_with_no_cues_ends_in_start_wing():
    prop = build_prop("Chair", "SR", [])

    assert prop.cues == ()
    assert prop.end_location == "SR"


def test_build_prop_validation():
    with pytest.raises(CueValidationError, match="name is required"):
        build_prop("  ", "SL", [])
    with pytest.raises(CueValidationError, match="Start must be SL or SR"):
        build_prop("Chair", "ON", [])


def test_prop_round_trips_through_dict(skull):
    data = skull.to_dict()

    assert data['enters'] == [3, 10]
    assert data['endLocation'] == "SL"
    restored = Prop.from_dict({**data, 'id': "skull"})
    assert restored.cues == skull.cues
    assert restored.resolved_end_location == skull.resolved_end_location


def test_checklist_uses_start_and_end_locations(skull, sword):
    pre = build_checklist([skull, sword], CheckPhase.PRE)
    post = build_checklist([skull, sword], CheckPhase.POST)

    assert [(i.key, i.location) for i in pre] == [("skull", "SL"), ("sword", "SR")]
    assert [i.location for i in post] == ["SL", "SR"]


def test_check_progress_rounds_percentage():
    progress = check_progress({'a': True, 'b': True, 'c': False}, total=3)

    assert (progress.count, progress.total, progress.pct) == (2, 3, 67)
    assert check_progress({}, total=0).pct == 0


def test_check_state_is_per_user(repo):
    assert load_check_state(repo, "member1").pre_checked == {}

    save_check_state(repo, "member1", {'skull': True}, {}, now=5.0)

    assert load_check_state(repo, "member1").pre_checked == {'skull': True}
    assert load_check_state(repo, "owner1").pre_checked == {}
