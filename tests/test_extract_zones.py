from unittest.mock import MagicMock

import pytest

from cue_script import PageZoneRegistry, ScriptZone
from run_extract_zones import extract_all, parse_page_range, positions


@pytest.mark.parametrize("page_range, expected", [
    (None, [1, 2, 3, 4]),
    ("2", [2]),
    ("2-3", [2, 3]),
    ("3-99", [3, 4]),
])
def test_parse_page_range(page_range, expected):
    assert parse_page_range(page_range, page_count=4) == expected


@pytest.mark.parametrize("page_range", ["x", "0-2", "3-1", "2-"])
def test_parse_page_range_rejects(page_range):
    with pytest.raises(ValueError):
        parse_page_range(page_range, page_count=4)


def test_positions():
    assert list(positions([1, 2], split_mode=False)) == [(1, ""), (2, "")]
    assert list(positions([1], split_mode=True)) == [(1, "L"), (1, "R")]


@pytest.fixture
def script():
    script = MagicMock()
    script.extract_page.side_effect = lambda page, half=None, scale=1.4: [
        ScriptZone(x=5, y=10, w=80, h=3, text=f"p{page}{half or ''}")
    ]
    return script


def test_extract_all_keys_by_page(script):
    result = extract_all(script, [1, 2], split_mode=True, scale=1.4)

    assert list(result) == ["1L", "1R", "2L", "2R"]
    assert result["2R"] == [{'x': 5, 'y': 10, 'w': 80, 'h': 3, 'text': "p2R"}]
    script.extract_page.assert_any_call(1, half="L", scale=1.4)


def test_extract_all_keeps_stored_zones(script, repo):
    registry = PageZoneRegistry(repo, uid="owner1")
    registry.get_or_extract(1, "", lambda page, half: [ScriptZone(x=1, y=1, w=1, h=1, text="kept")])

    result = extract_all(script, [1, 2], split_mode=False, scale=1.4, registry=registry)

    assert result["1"][0]['text'] == "kept"
    assert result["2"][0]['text'] == "p2"
    script.extract_page.assert_called_once_with(2, half=None, scale=1.4)
    assert repo.store.get(repo.path("zones"), "2") is not None
