"""End-to-end tests for snapshot processing and the CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from pydantic import ValidationError

from takeoff.core.types import FixtureType, RoomType, ScanSnapshot
from takeoff.pipeline.cli import main
from takeoff.pipeline.process import (
    ScanReport,
    load_snapshot,
    load_snapshots,
    process_snapshot,
    process_snapshot_to_json,
    run_session,
)
from tests.rooms import make_object, rectangular_walls


def _write_snapshots(path: Path, snapshots: list[ScanSnapshot]) -> None:
    path.write_text(json.dumps([s.model_dump(mode="json") for s in snapshots]))


class TestLoadSnapshots:
    def test_single_object(self, kitchen_snapshot: ScanSnapshot, tmp_path: Path):
        snap_file = tmp_path / "kitchen.json"
        snap_file.write_text(kitchen_snapshot.model_dump_json())
        assert load_snapshot(snap_file) == kitchen_snapshot
        assert load_snapshots(snap_file) == [kitchen_snapshot]

    def test_list(self, kitchen_snapshot: ScanSnapshot, bathroom_snapshot: ScanSnapshot, tmp_path: Path):
        snap_file = tmp_path / "session.json"
        _write_snapshots(snap_file, [bathroom_snapshot, kitchen_snapshot])
        assert load_snapshots(snap_file) == [bathroom_snapshot, kitchen_snapshot]

    def test_invalid_snapshot(self, tmp_path: Path):
        snap_file = tmp_path / "bad.json"
        snap_file.write_text('{"surfaces": [{"category": "roof", "width": 1, "height": 1}]}')
        with pytest.raises(ValidationError):
            load_snapshot(snap_file)


class TestProcessSnapshot:
    def test_produces_report(self, kitchen_snapshot: ScanSnapshot):
        report = process_snapshot(kitchen_snapshot, room_type=RoomType.KITCHEN, room_capture_id="cap")
        assert isinstance(report, ScanReport)
        assert report.sheet.version == 1
        assert report.sheet.door_count == 1
        assert report.progress.can_finish
        assert report.suggested_fixtures == []

    def test_suggests_missing_fixtures(self, bathroom_snapshot: ScanSnapshot):
        report = process_snapshot(bathroom_snapshot, room_type=RoomType.BATHROOM, room_capture_id="cap")
        assert report.suggested_fixtures == [FixtureType.SHOWER, FixtureType.VANITY]

    def test_session_applies_confirmation(self, bathroom_snapshot: ScanSnapshot):
        partial = ScanSnapshot(surfaces=bathroom_snapshot.surfaces[:2])
        report = run_session(
            [partial, bathroom_snapshot],
            room_type=RoomType.BATHROOM,
            room_capture_id="cap",
            confirm_no_openings=True,
        )
        assert report.progress.has_confirmed_no_openings
        assert report.progress.has_scanned_openings

    def test_no_snapshots(self):
        with pytest.raises(ValueError, match="No snapshots"):
            run_session([], room_capture_id="cap")


class TestProcessToJson:
    def test_json_output(self, kitchen_snapshot: ScanSnapshot, tmp_path: Path):
        snap_file = tmp_path / "kitchen.json"
        snap_file.write_text(kitchen_snapshot.model_dump_json())
        out_json = tmp_path / "report.json"

        json_str = process_snapshot_to_json(snap_file, output_path=out_json, room_type=RoomType.KITCHEN)

        assert out_json.exists()
        data = json.loads(json_str)
        assert data["sheet"]["room_capture_id"] == "kitchen"
        assert data["room_type"] == "kitchen"
        report = ScanReport.model_validate(data)
        assert report.measurements.floor_area > 0

    def test_default_output_path(self, bathroom_snapshot: ScanSnapshot, tmp_path: Path):
        snap_file = tmp_path / "bath.json"
        _write_snapshots(snap_file, [bathroom_snapshot])
        process_snapshot_to_json(snap_file)
        assert (tmp_path / "bath.takeoff.json").exists()


class TestCli:
    def test_process_command(self, kitchen_snapshot: ScanSnapshot, tmp_path: Path):
        snap_file = tmp_path / "kitchen.json"
        snap_file.write_text(kitchen_snapshot.model_dump_json())
        out = tmp_path / "out.json"
        result = CliRunner().invoke(
            main,
            ["process", str(snap_file), "-o", str(out), "--room-type", "kitchen", "--capture-id", "abc"],
        )
        assert result.exit_code == 0, result.output
        assert json.loads(out.read_text())["sheet"]["room_capture_id"] == "abc"

    def test_replay_command(self, tmp_path: Path):
        snapshots = [
            ScanSnapshot(surfaces=rectangular_walls(2.5, 2.0, 2.5)[:2]),
            ScanSnapshot(surfaces=rectangular_walls(2.5, 2.0, 2.5), objects=[make_object("toilet")]),
        ]
        snap_file = tmp_path / "session.json"
        _write_snapshots(snap_file, snapshots)
        result = CliRunner().invoke(main, ["replay", str(snap_file), "--confirm-no-openings"])
        assert result.exit_code == 0, result.output
        assert "[x] openings" in result.output
        assert "can finish: yes" in result.output
        assert "Shower" in result.output

    def test_rejects_unknown_room_type(self, tmp_path: Path):
        snap_file = tmp_path / "s.json"
        snap_file.write_text(ScanSnapshot(surfaces=[]).model_dump_json())
        result = CliRunner().invoke(main, ["replay", str(snap_file), "--room-type", "garage"])
        assert result.exit_code != 0
