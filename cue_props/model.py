"""
Prop and Cue Records
====================

Bounded Context: Prop Tracking

Design:
- Cue: one scripted entrance/exit (page range, wings, carriers, mover)
- Prop: starting wing plus ordered cues; legacy props carry parallel
  enters/exits page arrays instead of structured cues
- Frozen dataclasses validated at construction (CueValidationError)

Storage:
    productions/<productionId>/props/<propId>
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from cue_sync.errors import SchemaValidationError
from cue_sync.repository import ProductionRepository, RecordCollection
from cue_sync.schemas.common import optional_float


DEFAULT_WING = "SL"


class Wing(str, Enum):
    """Offstage wing."""
    SL = "SL"
    SR = "SR"


ON_STAGE = "ON"
OFF_STAGE = "Off Stage"


class CueValidationError(SchemaValidationError):
    """Raised when a cue or prop fails validation."""
    pass


def _is_page(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def _legacy_exit(value: Any) -> int:
    """Legacy exit page; null or blank means the prop never left (0)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    return int(value)


@dataclass(frozen=True)
class Cue:
    """
    Scripted entrance/exit of a prop.

    Attributes:
        enter_page: Page the prop comes on
        exit_page: Page the prop goes off (>= enter_page)
        enter_location: Wing it enters from ("" = wherever it rests)
        exit_location: Wing it exits to
        carrier_on / carrier_off: Who carries it on / off
        mover: Who performs the offstage crossover before this entrance
        *_cast_id: Roster ids for the above, when picked from the cast list
    """
    enter_page: int
    exit_page: int
    enter_location: str = ""
    exit_location: str = DEFAULT_WING
    carrier_on: str = ""
    carrier_off: str = ""
    mover: str = ""
    carrier_on_cast_id: str = ""
    carrier_off_cast_id: str = ""
    mover_cast_id: str = ""

    def __post_init__(self):
        if not _is_page(self.enter_page) or not _is_page(self.exit_page):
            raise CueValidationError(
                f"Enter and exit pages required (got enter={self.enter_page!r}, exit={self.exit_page!r})"
            )
        if self.exit_page < self.enter_page:
            raise CueValidationError(
                f"Exit page must be >= enter page (got {self.enter_page}-{self.exit_page})"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'enterPage': self.enter_page,
            'exitPage': self.exit_page,
            'enterLocation': self.enter_location,
            'exitLocation': self.exit_location,
            'carrierOn': self.carrier_on,
            'carrierOnCastId': self.carrier_on_cast_id,
            'carrierOff': self.carrier_off,
            'carrierOffCastId': self.carrier_off_cast_id,
            'mover': self.mover,
            'moverCastId': self.mover_cast_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Cue':
        try:
            return cls(
                enter_page=data['enterPage'],
                exit_page=data['exitPage'],
                enter_location=data.get('enterLocation') or '',
                exit_location=data.get('exitLocation') or DEFAULT_WING,
                carrier_on=data.get('carrierOn') or '',
                carrier_off=data.get('carrierOff') or '',
                mover=data.get('mover') or '',
                carrier_on_cast_id=data.get('carrierOnCastId') or '',
                carrier_off_cast_id=data.get('carrierOffCastId') or '',
                mover_cast_id=data.get('moverCastId') or '',
            )
        except KeyError as e:
            raise CueValidationError(f"Missing required Cue field: {e}")


@dataclass(frozen=True)
class Prop:
    """
    Tracked prop.

    Attributes:
        id: Document id
        name: Prop name
        start: Wing the prop starts the show in
        cues: Structured cues in script order
        enters / exits: Legacy page arrays (used only when cues is empty)
        end_location: Wing the prop finishes in (last cue exit, else start)
    """
    id: str
    name: str
    start: str = DEFAULT_WING
    cues: Tuple[Cue, ...] = ()
    enters: Tuple[int, ...] = ()
    exits: Tuple[int, ...] = ()
    end_location: str = ""
    created_at: Optional[float] = None

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise CueValidationError("Prop name is required")
        if self.start not in (Wing.SL.value, Wing.SR.value):
            raise CueValidationError(f"Prop start must be SL or SR, got {self.start!r}")

    @property
    def resolved_end_location(self) -> str:
        if self.cues:
            return self.cues[-1].exit_location
        return self.end_location or self.start

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'start': self.start,
            'cues': [c.to_dict() for c in self.cues],
            'enters': [c.enter_page for c in self.cues] if self.cues else list(self.enters),
            'exits': [c.exit_page for c in self.cues] if self.cues else list(self.exits),
            'endLocation': self.resolved_end_location,
            'createdAt': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Prop':
        try:
            return cls(
                id=data.get('id', ''),
                name=data['name'],
                start=data.get('start') or DEFAULT_WING,
                cues=tuple(Cue.from_dict(c) for c in data.get('cues') or ()),
                enters=tuple(int(p) for p in data.get('enters') or ()),
                exits=tuple(_legacy_exit(p) for p in data.get('exits') or ()),
                end_location=data.get('endLocation') or '',
                created_at=optional_float(data.get('createdAt')),
            )
        except KeyError as e:
            raise CueValidationError(f"Missing required Prop field: {e}")
        except CueValidationError:
            raise
        except (TypeError, ValueError) as e:
            raise CueValidationError(f"Invalid Prop data: {e}")


def prop_collection(repo: ProductionRepository) -> RecordCollection[Prop]:
    """Typed view of a production's props collection."""
    return repo.collection("props", Prop)
