import pytest

from cue_script import (
    ScriptOffset,
    next_position,
    page_key,
    parse_script_label,
    previous_position,
    script_page_label,
)
from cue_sync.schemas import Half


def test_page_keys():
    assert page_key(12, "", False) == "12"
    assert page_key(12, "R", True) == "12R"
    assert page_key(12, "", True) == "12L"


@pytest.mark.parametrize("page, half, expected", [
    (3, "L", (3, Half.RIGHT)),
    (3, "R", (4, Half.LEFT)),
    (10, "R", (10, Half.RIGHT)),
])
def test_next_position_split(page, half, expected):
    assert next_position(page, half, 10, split_mode=True) == expected


@pytest.mark.parametrize("page, half, expected", [
    (3, "R", (3, Half.LEFT)),
    (3, "L", (2, Half.RIGHT)),
    (1, "L", (1, Half.LEFT)),
])
def test_previous_position_split(page, half, expected):
    assert previous_position(page, half, 10, split_mode=True) == expected


def test_single_page_navigation_stops_at_edges():
    assert next_position(3, "", 10, split_mode=False) == (4, Half.LEFT)
    assert next_position(10, "", 10, split_mode=False) == (10, Half.LEFT)
    assert previous_position(1, "", 10, split_mode=False) == (1, Half.LEFT)


def test_labels_before_script_start_are_front_matter():
    offset = ScriptOffset(start_page=3)

    assert script_page_label(3, "", offset, split_mode=False) == "1"
    assert script_page_label(5, "", offset, split_mode=False) == "3"
    assert script_page_label(1, "", offset, split_mode=False) == "i-2"


def test_split_labels_count_halves():
    offset = ScriptOffset(start_page=2, start_half="R")

    assert script_page_label(2, "R", offset, split_mode=True) == "1"
    assert script_page_label(2, "L", offset, split_mode=True) == "i-1"
    assert script_page_label(3, "L", offset, split_mode=True) == "2"
    assert offset.badge() == "PDF p.2R = p.1"
    assert not offset.is_default


def test_parse_labels():
    offset = ScriptOffset(start_page=3)

    assert parse_script_label("3", offset, 50, split_mode=False) == (5, Half.LEFT)
    assert parse_script_label(" i-2 ", offset, 50, split_mode=False) == (1, Half.LEFT)
    assert parse_script_label("i-9", offset, 50, split_mode=False) == (1, Half.LEFT)
    assert parse_script_label("999", offset, 50, split_mode=False) == (50, Half.LEFT)


def test_parse_split_labels():
    offset = ScriptOffset(start_page=2, start_half="R")

    assert parse_script_label("1", offset, 50, split_mode=True) == (2, Half.RIGHT)
    assert parse_script_label("2", offset, 50, split_mode=True) == (3, Half.LEFT)


def test_parse_rejects_garbage():
    with pytest.raises(ValueError):
        parse_script_label("intro", ScriptOffset(), 10, split_mode=False)


def test_parse_split_front_matter_clamps_to_first_left_half():
    offset = ScriptOffset(start_page=2, start_half="R")

    assert parse_script_label("i-9", offset, 50, split_mode=True) == (1, Half.LEFT)
    assert parse_script_label("i-4", offset, 50, split_mode=True) == (1, Half.LEFT)
    assert parse_script_label("i-3", offset, 50, split_mode=True) == (1, Half.LEFT)
    assert parse_script_label("i-1", offset, 50, split_mode=True) == (2, Half.LEFT)
