"""End-to-end glue: snapshot file → measurements, scan quality and a sheet."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from takeoff.core.types import (
    FixtureType,
    QuantitySheet,
    RoomMeasurements,
    RoomType,
    ScanProgressState,
    ScanSnapshot,
    UnitSystem,
)
from takeoff.pipeline.fixtures import FixtureClassifier
from takeoff.pipeline.quality import ScanQualityEngine
from takeoff.pipeline.sheets import create_from_scan

logger = logging.getLogger(__name__)


class ScanReport(BaseModel):
    """Everything derived from the final snapshot of one scan session."""

    room_type: RoomType
    measurements: RoomMeasurements
    progress: ScanProgressState
    sheet: QuantitySheet
    suggested_fixtures: list[FixtureType] = Field(default_factory=list)


def load_snapshot(path: str | Path) -> ScanSnapshot:
    """Read a snapshot JSON file (``{"surfaces": [...], "objects": [...]}``)."""
    return ScanSnapshot.model_validate_json(Path(path).read_text())


def load_snapshots(path: str | Path) -> list[ScanSnapshot]:
    """Read a JSON list of snapshots, or a single snapshot object."""
    data = json.loads(Path(path).read_text())
    if isinstance(data, list):
        return [ScanSnapshot.model_validate(item) for item in data]
    return [load_snapshot(path)]


def run_session(
    snapshots: Iterable[ScanSnapshot],
    *,
    room_type: RoomType = RoomType.BATHROOM,
    room_capture_id: str,
    confirm_no_openings: bool = False,
    unit_system: UnitSystem = UnitSystem.IMPERIAL,
    classifier: Optional[FixtureClassifier] = None,
) -> ScanReport:
    """Replay *snapshots* through a scan session and seed a quantity sheet.

    With *confirm_no_openings* the operator's confirmation is applied as
    soon as the session asks for it.
    """
    classifier = classifier or FixtureClassifier()
    engine = ScanQualityEngine(room_type, unit_system=unit_system)
    last: Optional[ScanSnapshot] = None
    for i, snapshot in enumerate(snapshots):
        state = engine.update(snapshot)
        logger.info(
            "Snapshot %d: %d walls, %d doors, %d windows, %d objects → score %.2f",
            i, state.wall_count, state.door_count, state.window_count, state.object_count,
            state.quality_score,
        )
        if confirm_no_openings and state.pending_no_openings_confirmation:
            engine.confirm_no_openings()
        last = snapshot
    if last is None:
        raise ValueError("No snapshots to process")

    progress = engine.finish()
    measurements = engine.measurements
    sheet = create_from_scan(
        measurements, last.objects, room_capture_id, room_type, classifier=classifier
    )
    return ScanReport(
        room_type=room_type,
        measurements=measurements,
        progress=progress,
        sheet=sheet,
        suggested_fixtures=classifier.suggest_missing(sheet.fixtures, room_type),
    )


def process_snapshot(snapshot: ScanSnapshot, **kwargs) -> ScanReport:
    """Run a one-snapshot session; see :func:`run_session` for options."""
    return run_session([snapshot], **kwargs)


def process_snapshot_to_json(
    input_path: str | Path,
    output_path: str | Path | None = None,
    **kwargs,
) -> str:
    """Process a snapshot file and write the report JSON next to it.

    Returns the JSON string.
    """
    input_path = Path(input_path)
    kwargs.setdefault("room_capture_id", input_path.stem)
    report = run_session(load_snapshots(input_path), **kwargs)
    json_str = report.model_dump_json(indent=2)

    if output_path is None:
        output_path = input_path.with_suffix(".takeoff.json")
    Path(output_path).write_text(json_str)
    logger.info("Wrote takeoff report → %s", output_path)
    return json_str
