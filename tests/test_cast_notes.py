import pytest

from cue_productions import (
    CAST_COLORS,
    create_line_note,
    delete_line_note,
    flat_characters,
    next_color,
    note_counts,
    note_for_zone,
    notes_for_page,
    prop_notes_by_name,
    save_cast_member,
    set_prop_note,
    sort_cast,
    split_character_key,
    update_line_note,
)
from cue_sync import MissingPrerequisiteError, PermissionDeniedError, SchemaValidationError
from cue_sync.schemas import CastMember, CastType, NoteType


@pytest.fixture
def hamlet(repo, clock):
    return save_cast_member(repo, "owner1", "Ann Actor", characters=["Hamlet", " Hamlet ", "Ghost"], clock=clock)


def test_save_cast_member_assigns_palette_colors(repo, hamlet):
    crew = save_cast_member(repo, "owner1", "Cal Crew", type="Crew")

    assert hamlet.characters == ("Hamlet", "Ghost")
    assert hamlet.color == CAST_COLORS[0]
    assert crew.color == CAST_COLORS[1]
    assert crew.type is CastType.CREW


def test_save_cast_member_validation(repo):
    with pytest.raises(SchemaValidationError, match="Name is required."):
        save_cast_member(repo, "owner1", " \x00 ")
    with pytest.raises(SchemaValidationError):
        save_cast_member(repo, "owner1", "Pat", type="Usher")


def test_save_cast_member_replaces_existing(repo, hamlet):
    updated = save_cast_member(repo, "owner1", "Ann Actor", characters=["Hamlet"], member_id=hamlet.id, color=hamlet.color)

    assert repo.cast.require(hamlet.id).characters == ("Hamlet",)
    assert updated.id == hamlet.id


def test_roster_order_and_character_keys():
    cast = [
        CastMember(id="c3", name="zed", type=CastType.CREW),
        CastMember(id="c2", name="Bea", characters=("Ophelia",)),
        CastMember(id="c1", name="al", characters=("Hamlet", "Ghost")),
    ]

    assert [m.id for m in sort_cast(cast)] == ["c1", "c2", "c3"]
    refs = flat_characters(cast)
    assert [r.key for r in refs] == ["c1::Hamlet", "c1::Ghost", "c2::Ophelia"]
    assert split_character_key("c1::Hamlet") == ("c1", "Hamlet")
    with pytest.raises(ValueError):
        split_character_key("c1Hamlet")


def test_next_color_wraps_when_palette_is_used():
    cast = [CastMember(id=str(i), name="n", color=c) for i, c in enumerate(CAST_COLORS)]

    assert next_color(cast) == CAST_COLORS[0]


def test_notes_need_a_cast(repo):
    with pytest.raises(MissingPrerequisiteError, match="Add cast members before taking notes."):
        create_line_note(repo, "owner1", "c1", "HAMLET", "skp", page=3)


def test_create_zone_note(repo, hamlet, clock):
    note = create_line_note(
        repo, "member1", hamlet.id, "Hamlet", "para", page=12,
        zone_idx=3, bounds={'x': 10, 'y': 20, 'w': 60, 'h': 4}, line_text="To be", clock=clock,
    )

    assert note.id
    assert note.type is NoteType.PARAPHRASE
    assert note.char_color == hamlet.color
    assert note.bounds.w == 60
    assert note.created_at == clock.now
    assert repo.line_notes.require(note.id).zone_idx == 3


@pytest.mark.parametrize("kwargs", [
    {'cast_id': "ghost-id"},
    {'note_type': "typo"},
    {'half': "X"},
    {'zone_idx': 2},
])
def test_create_note_validation(repo, hamlet, kwargs):
    args = {'cast_id': hamlet.id, 'note_type': "skp", **kwargs}

    with pytest.raises(SchemaValidationError):
        create_line_note(repo, "member1", character_name="Hamlet", page=3, **args)


def test_update_and_delete_notes(repo, hamlet):
    note = create_line_note(repo, "member1", hamlet.id, "Hamlet", "skp", page=3)

    updated = update_line_note(repo, note.id, note_type="line", line_text="called")
    assert updated.type is NoteType.LINE
    assert updated.line_text == "called"
    with pytest.raises(SchemaValidationError):
        update_line_note(repo, note.id, page=4)

    with pytest.raises(PermissionDeniedError, match="Can only delete your own notes."):
        delete_line_note(repo, note.id, "someone-else")
    delete_line_note(repo, note.id, "owner1")
    assert repo.line_notes.get(note.id) is None


def test_note_queries(repo, hamlet):
    create_line_note(repo, "m", hamlet.id, "Hamlet", "skp", page=3, half="L",
                     zone_idx=0, bounds={'x': 0, 'y': 0, 'w': 1, 'h': 1})
    create_line_note(repo, "m", hamlet.id, "Ghost", "add", page=3, half="R")
    create_line_note(repo, "m", hamlet.id, "Hamlet", "skp", page=4)
    notes = repo.line_notes.list()

    assert len(notes_for_page(notes, 3)) == 2
    assert len(notes_for_page(notes, 3, "R")) == 1
    assert note_for_zone(notes, 3, "L", 0).character_name == "Hamlet"
    assert note_for_zone(notes, 3, "L", 5) is None

    counts = note_counts(notes)
    assert counts.total == 3
    assert counts.by_type == {'skp': 2, 'add': 1}
    assert counts.by_character == {'Hamlet': 2, 'Ghost': 1}


def test_prop_notes_overwrite(repo, clock):
    first = set_prop_note(repo, "Skull", "Check jaw hinge", "owner1", clock=clock)
    second = set_prop_note(repo, "Skull", "Hinge fixed", "member1", clock=clock)

    assert first.id == second.id
    by_name = prop_notes_by_name(repo)
    assert by_name["Skull"].notes == "Hinge fixed"
    assert by_name["Skull"].updated_by == "member1"
