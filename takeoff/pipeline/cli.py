"""CLI entry-point for replaying scan snapshots through the takeoff engine."""

from __future__ import annotations

import logging

import click

from takeoff.core.types import RoomType, UnitSystem
from takeoff.pipeline.process import load_snapshots, process_snapshot_to_json, run_session
from takeoff.pipeline.units import format_measurements

_ROOM_TYPES = click.Choice([t.value for t in RoomType])
_UNIT_SYSTEMS = click.Choice([u.value for u in UnitSystem])


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log per-sample detail.")
def main(verbose: bool):
    """Room-scan measurement and quantity takeoff."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s | %(name)s | %(message)s",
    )


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", "output_file", default=None, help="Output JSON path.")
@click.option("--room-type", type=_ROOM_TYPES, default=RoomType.BATHROOM.value, show_default=True)
@click.option("--capture-id", default=None, help="Room capture id (defaults to the file stem).")
@click.option("--units", "unit_system", type=_UNIT_SYSTEMS, default=UnitSystem.IMPERIAL.value, show_default=True)
@click.option("--confirm-no-openings", is_flag=True, help="Answer yes if asked to confirm no openings.")
def process(
    input_file: str,
    output_file: str | None,
    room_type: str,
    capture_id: str | None,
    unit_system: str,
    confirm_no_openings: bool,
):
    """Process snapshot(s) and write a takeoff report JSON."""
    kwargs = dict(
        room_type=RoomType(room_type),
        unit_system=UnitSystem(unit_system),
        confirm_no_openings=confirm_no_openings,
    )
    if capture_id:
        kwargs["room_capture_id"] = capture_id
    json_str = process_snapshot_to_json(input_file, output_path=output_file, **kwargs)
    click.echo(json_str)


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--room-type", type=_ROOM_TYPES, default=RoomType.BATHROOM.value, show_default=True)
@click.option("--confirm-no-openings", is_flag=True, help="Answer yes if asked to confirm no openings.")
def replay(input_file: str, room_type: str, confirm_no_openings: bool):
    """Print the scan checklist after replaying snapshot(s)."""
    report = run_session(
        load_snapshots(input_file),
        room_type=RoomType(room_type),
        room_capture_id="replay",
        confirm_no_openings=confirm_no_openings,
    )
    state = report.progress
    shown = format_measurements(report.measurements)
    for label, done in (
        ("perimeter", state.has_scanned_perimeter),
        ("openings", state.has_scanned_openings),
        ("fixtures", state.has_scanned_fixtures),
        ("ceiling", state.has_scanned_ceiling),
    ):
        click.echo(f"[{'x' if done else ' '}] {label}")
    click.echo(f"score: {state.quality_score:.2f} ({state.estimated_room_size.display_name} room)")
    click.echo(f"can finish: {'yes' if state.can_finish else 'no'}")
    click.echo(f"floor area: {shown['floor_area']}  perimeter: {shown['perimeter']}")
    if report.suggested_fixtures:
        names = ", ".join(t.display_name for t in report.suggested_fixtures)
        click.echo(f"possibly missing: {names}")


if __name__ == "__main__":
    main()
