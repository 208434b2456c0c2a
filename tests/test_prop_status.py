from cue_props import (
    Cue,
    Prop,
    build_stage_columns,
    get_prop_status,
    in_warning_window,
    props_in_warning_window,
)
from cue_runshow import TimerState
from cue_runshow.timer import start, tick


def test_prop_rests_in_start_wing_before_first_cue(skull):
    status = get_prop_status(skull, 1)

    assert status.location == "SL"
    assert not status.is_on
    assert status.upcoming_enter == 3
    assert status.crossover is None


def test_prop_is_on_stage_during_cue(skull):
    status = get_prop_status(skull, 3)

    assert status.is_on
    assert status.location == "ON"
    assert status.carrier == "Hamlet"
    assert status.upcoming_enter is None


def test_crossover_needed_when_next_entrance_is_other_wing(skull):
    status = get_prop_status(skull, 9)

    assert status.location == "SR"
    assert status.upcoming_enter == 10
    assert status.crossover is not None
    assert status.crossover.from_location == "SR"
    assert status.crossover.to_location == "SL"
    assert status.crossover.mover == "Stagehand"
    assert status.crossover.cue_index == 1
    assert status.crossover.describe() == "MOVE SR→SL by Stagehand"


def test_prop_after_last_cue_rests_in_last_exit_wing(skull):
    status = get_prop_status(skull, 50)

    assert status.location == "SL"
    assert status.upcoming_enter is None
    assert status.crossover is None


def test_prop_without_cues_stays_in_start_wing():
    prop = Prop(id="p", name="Chair", start="SR")

    for page in (1, 20, 500):
        status = get_prop_status(prop, page)
        assert status.location == "SR"
        assert not status.is_on


def test_legacy_arrays_drive_status():
    prop = Prop(id="p", name="Lamp", start="SL", enters=(4,), exits=(6,), end_location="SR")

    assert get_prop_status(prop, 2).upcoming_enter == 4
    assert get_prop_status(prop, 5).is_on
    assert get_prop_status(prop, 7).location == "SR"


def test_legacy_missing_exit_stays_on():
    prop = Prop(id="p", name="Lamp", start="SL", enters=(4,))

    assert get_prop_status(prop, 400).is_on


def test_unassigned_mover_is_described():
    prop = Prop(id="p", name="Cup", start="SL", cues=(
        Cue(enter_page=2, exit_page=2, exit_location="SR"),
        Cue(enter_page=6, exit_page=6, enter_location="SL"),
    ))

    assert get_prop_status(prop, 4).crossover.describe() == "MOVE SR→SL by unassigned"


def test_warning_window_is_exclusive_of_current_page(skull):
    assert in_warning_window(get_prop_status(skull, 7), 7, 3)
    assert not in_warning_window(get_prop_status(skull, 6), 6, 3)
    assert not in_warning_window(get_prop_status(skull, 3), 3, 3)


def test_props_in_warning_window_soonest_first(skull, sword):
    hits = props_in_warning_window([skull, sword], page=2, warn_pages=5)

    assert [prop.name for prop, _ in hits] == ["Skull", "Sword"]
    assert [status.upcoming_enter for _, status in hits] == [3, 5]


def test_stage_columns_place_props(skull, sword):
    columns = build_stage_columns([skull, sword], page=5, warn_pages=5, show_warnings=True)

    assert [i.name for i in columns.on_stage] == ["Sword"]
    assert [i.name for i in columns.stage_right] == ["Skull"]
    assert columns.stage_left == []
    skull_item = columns.stage_right[0]
    assert skull_item.warn is True
    assert skull_item.crossover is not None


def test_stage_columns_to_dict_keys(skull):
    data = build_stage_columns([skull], page=1).to_dict()

    assert set(data) == {'page', 'SL', 'ON', 'SR'}
    assert data['SL'][0]['name'] == "Skull"
    assert data['SL'][0]['warn'] is False


def test_skull_walkthrough_across_the_show(skull):
    expected = {
        1: (False, "SL", ""),
        3: (True, "ON", "Hamlet"),
        7: (False, "SR", ""),
        9: (False, "SR", ""),
        11: (False, "SL", ""),
    }
    for page, (is_on, location, carrier) in expected.items():
        status = get_prop_status(skull, page)
        assert (status.is_on, status.location, status.carrier) == (is_on, location, carrier), page

    state = start(TimerState(total_pages=20, duration_minutes=20, warn_pages=3), now=0.0)
    state, warnings, _ = tick(state, now=8 * 60 + 1.0, props=[skull])

    assert state.current_page == 9
    assert [w.message() for w in warnings] == ["Skull: 1 pages (pg 10) | MOVE SR→SL by Stagehand"]

    state, warnings, _ = tick(state, now=10 * 60 + 1.0, props=[skull])
    assert state.current_page == 11
    assert warnings == []
    assert get_prop_status(skull, 11).upcoming_enter is None
