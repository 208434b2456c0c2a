"""
Prop Import / Export
====================

Bounded Context: Prop Tracking (data exchange)

Formats:
- CSV (wide): name, start, endLocation, then seven columns per cue
  (cue_N_enterLocation, cue_N_enterPage, cue_N_exitPage, cue_N_exitLocation,
  cue_N_carrierOn, cue_N_carrierOff, cue_N_mover); at least one cue group
- JSON: array of {name, start, cues: [...]} objects

Export followed by import reproduces names, wings, pages, carriers and movers;
document ids, cast ids and timestamps are not carried.
"""

import csv
import io
import json
from typing import Any, Dict, Iterable, List, Sequence

from cue_sync.repository import RecordCollection

from .editing import sanitize_name, validate_cue
from .model import DEFAULT_WING, Cue, CueValidationError, Prop, Wing


CUE_FIELDS = (
    "enterLocation",
    "enterPage",
    "exitPage",
    "exitLocation",
    "carrierOn",
    "carrierOff",
    "mover",
)

BASE_COLUMNS = ("name", "start", "endLocation")


def csv_header(max_cues: int) -> List[str]:
    header = list(BASE_COLUMNS)
    for n in range(1, max_cues + 1):
        header.extend(f"cue_{n}_{name}" for name in CUE_FIELDS)
    return header


def _cue_cells(cue: Cue) -> List[Any]:
    return [
        cue.enter_location,
        cue.enter_page,
        cue.exit_page,
        cue.exit_location,
        cue.carrier_on,
        cue.carrier_off,
        cue.mover,
    ]


def export_props_csv(props: Sequence[Prop]) -> str:
    """Serialize props to the wide CSV layout."""
    max_cues = max([1] + [len(p.cues) for p in props])
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(csv_header(max_cues))
    for prop in props:
        row: List[Any] = [prop.name, prop.start, prop.resolved_end_location]
        for i in range(max_cues):
            if i < len(prop.cues):
                row.extend(_cue_cells(prop.cues[i]))
            else:
                row.extend([""] * len(CUE_FIELDS))
        writer.writerow(row)
    return buffer.getvalue()


def import_props_csv(text: str) -> List[Prop]:
    """
    Parse the wide CSV layout back into props.

    Blank cue groups are skipped. Raises CueValidationError with the row
    number on bad input.
    """
    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames is None or not set(BASE_COLUMNS) <= set(reader.fieldnames):
        raise CueValidationError(f"CSV header must start with {', '.join(BASE_COLUMNS)}")

    max_cues = 0
    while f"cue_{max_cues + 1}_enterPage" in reader.fieldnames:
        max_cues += 1

    props = []
    for row_number, row in enumerate(reader, start=2):
        name = sanitize_name(row.get("name"))
        start = (row.get("start") or "").strip()
        if not name:
            raise CueValidationError(f"Row {row_number}: name is required.")
        if start not in (Wing.SL.value, Wing.SR.value):
            raise CueValidationError(f"Row {row_number}: start must be SL or SR.")

        cues = []
        for n in range(1, max_cues + 1):
            group = {f: (row.get(f"cue_{n}_{f}") or "") for f in CUE_FIELDS}
            if not any(v.strip() for v in group.values()):
                continue
            try:
                cues.append(validate_cue(group, len(cues)))
            except CueValidationError as e:
                raise CueValidationError(f"Row {row_number}: {e}")

        props.append(Prop(
            id="",
            name=name,
            start=start,
            cues=tuple(cues),
            enters=tuple(c.enter_page for c in cues),
            exits=tuple(c.exit_page for c in cues),
            end_location=cues[-1].exit_location if cues else (row.get("endLocation") or start),
        ))
    return props


def export_props_json(props: Sequence[Prop]) -> str:
    items = []
    for prop in props:
        items.append({
            'name': prop.name,
            'start': prop.start,
            'endLocation': prop.resolved_end_location,
            'cues': [
                {
                    'enterPage': c.enter_page,
                    'exitPage': c.exit_page,
                    'enterLocation': c.enter_location,
                    'exitLocation': c.exit_location,
                    'carrierOn': c.carrier_on,
                    'carrierOff': c.carrier_off,
                    'mover': c.mover,
                }
                for c in prop.cues
            ],
        })
    return json.dumps(items, indent=2)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def import_props_json(text: str) -> List[Prop]:
    """
    Parse and validate a JSON array of props.

    Raises:
        CueValidationError: not an array, missing name, bad start wing, cues
            not an array, or non-integer pages (message names the item/cue)
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CueValidationError(f"Invalid JSON: {e}")

    if not isinstance(data, list):
        raise CueValidationError("JSON must be an array of props.")

    for i, item in enumerate(data, start=1):
        if not isinstance(item, dict):
            raise CueValidationError(f"Item {i}: must be an object.")
        if not item.get('name') or not isinstance(item['name'], str):
            raise CueValidationError(f"Item {i}: name is required.")
        if item.get('start') not in (Wing.SL.value, Wing.SR.value):
            raise CueValidationError(f"Item {i}: start must be SL or SR.")
        cues = item.get('cues', [])
        if not isinstance(cues, list):
            raise CueValidationError(f"Item {i}: cues must be an array.")
        for j, cue in enumerate(cues, start=1):
            if not isinstance(cue, dict):
                raise CueValidationError(f"Item {i}, Cue {j}: must be an object.")
            if not _is_positive_int(cue.get('enterPage')):
                raise CueValidationError(f"Item {i}, Cue {j}: enterPage must be a positive integer.")
            if not _is_positive_int(cue.get('exitPage')):
                raise CueValidationError(f"Item {i}, Cue {j}: exitPage must be a positive integer.")

    props = []
    for item in data:
        cues = tuple(
            Cue(
                enter_page=c['enterPage'],
                exit_page=c['exitPage'],
                enter_location=c.get('enterLocation') or '',
                exit_location=c.get('exitLocation') or DEFAULT_WING,
                carrier_on=c.get('carrierOn') or '',
                carrier_off=c.get('carrierOff') or '',
                mover=c.get('mover') or '',
            )
            for c in item.get('cues', [])
        )
        props.append(Prop(
            id="",
            name=sanitize_name(item['name']),
            start=item['start'],
            cues=cues,
            enters=tuple(c.enter_page for c in cues),
            exits=tuple(c.exit_page for c in cues),
            end_location=cues[-1].exit_location if cues else item['start'],
        ))
    return props


def add_props(collection: RecordCollection[Prop], props: Iterable[Prop]) -> List[Prop]:
    """Store imported props (always added; duplicates are not checked)."""
    return [collection.add(prop) for prop in props]
