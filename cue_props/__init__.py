"""
Cue Props
=========

Bounded Context: Prop tracking across script pages.

Architecture:

    cue_props/
    ├── model.py       # Prop, Cue records (validated, storable)
    ├── status.py      # get_prop_status: on/off, resting wing, crossovers
    ├── board.py       # Stage Left / ON / Stage Right columns
    ├── editing.py     # Form validation, enter-wing defaults, name sanitizing
    ├── transfer.py    # CSV / JSON import and export
    └── checklist.py   # Pre/post-show check state and progress

Usage:

    from cue_props import Prop, Cue, get_prop_status

    skull = Prop(id="p1", name="Skull", start="SL", cues=(
        Cue(enter_page=3, exit_page=3, exit_location="SR", carrier_on="Hamlet"),
        Cue(enter_page=10, exit_page=10, enter_location="SL", exit_location="SL",
            mover="Stagehand"),
    ))

    status = get_prop_status(skull, 9)
    status.upcoming_enter   # 10
    status.crossover        # SR -> SL by Stagehand
"""

from .model import (
    Cue,
    Prop,
    Wing,
    CueValidationError,
    DEFAULT_WING,
    ON_STAGE,
    OFF_STAGE,
    prop_collection,
)
from .status import (
    Crossover,
    PropStatus,
    get_prop_status,
    in_warning_window,
    props_in_warning_window,
)
from .board import BoardItem, StageColumns, build_stage_columns
from .editing import sanitize_name, validate_cue, fill_enter_locations, sort_cues, build_prop
from .transfer import (
    export_props_csv,
    import_props_csv,
    export_props_json,
    import_props_json,
    add_props,
)
from .checklist import (
    CheckPhase,
    ChecklistItem,
    CheckProgress,
    check_progress,
    build_checklist,
    load_check_state,
    save_check_state,
)

__version__ = "1.0.0"

__all__ = [
    "Cue",
    "Prop",
    "Wing",
    "CueValidationError",
    "DEFAULT_WING",
    "ON_STAGE",
    "OFF_STAGE",
    "prop_collection",
    "Crossover",
    "PropStatus",
    "get_prop_status",
    "in_warning_window",
    "props_in_warning_window",
    "BoardItem",
    "StageColumns",
    "build_stage_columns",
    "sanitize_name",
    "validate_cue",
    "fill_enter_locations",
    "sort_cues",
    "build_prop",
    "export_props_csv",
    "import_props_csv",
    "export_props_json",
    "import_props_json",
    "add_props",
    "CheckPhase",
    "ChecklistItem",
    "CheckProgress",
    "check_progress",
    "build_checklist",
    "load_check_state",
    "save_check_state",
]
