import pytest

from cue_props import Cue, Prop, prop_collection
from cue_sync import MemoryDocumentStore, ProductionRepository
from cue_sync.repository import PRODUCTIONS
from cue_sync.schemas import Member, Role


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryDocumentStore(origin="test-store", clock=clock)


@pytest.fixture
def production_id(store):
    store.set(PRODUCTIONS, "prod1", {
        'title': "Hamlet",
        'createdBy': "owner1",
        'joinCode': "ABCDEFG",
        'joinCodeActive': True,
    })
    return "prod1"


@pytest.fixture
def repo(store, production_id):
    repo = ProductionRepository(store, production_id)
    repo.members.save(Member(id="owner1", role=Role.OWNER, display_name="Olivia"))
    repo.members.save(Member(id="member1", role=Role.MEMBER, display_name="Mo"))
    return repo


@pytest.fixture
def skull():
    return Prop(
        id="skull",
        name="Skull",
        start="SL",
        cues=(
            Cue(enter_page=3, exit_page=3, enter_location="SL", exit_location="SR", carrier_on="Hamlet"),
            Cue(enter_page=10, exit_page=10, enter_location="SL", exit_location="SL", mover="Stagehand"),
        ),
    )


@pytest.fixture
def sword():
    return Prop(
        id="sword",
        name="Sword",
        start="SR",
        cues=(Cue(enter_page=5, exit_page=8, enter_location="SR", exit_location="SR"),),
    )


@pytest.fixture
def stored_props(repo, skull, sword):
    props = prop_collection(repo)
    props.save(skull)
    props.save(sword)
    return props
