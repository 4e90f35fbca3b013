"""Quantity sheet lifecycle: creation, edits, locking and versioning.

Every operation takes a :class:`QuantitySheet` value and returns a new one;
nothing is mutated in place.  A locked sheet is frozen for pricing: every
edit raises :class:`InvalidStateError` and the only way forward is
:func:`create_new_version`, which yields an unlocked copy under a new id
with ``version + 1``.

:class:`QuantitySheetStore` keeps the current value of each sheet id and
serialises writers with a compare-and-swap on the value they read.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from takeoff.core.errors import ConcurrentModificationError, InvalidStateError, SheetNotFoundError
from takeoff.core.types import (
    DetectedObject,
    Dimensions,
    DoorSize,
    Fixture,
    FixtureType,
    OpeningSize,
    QuantitySheet,
    RoomMeasurements,
    RoomType,
    WindowSize,
    new_id,
)
from takeoff.pipeline import units
from takeoff.pipeline.fixtures import FixtureClassifier

logger = logging.getLogger(__name__)

_EDITABLE_MEASUREMENTS = ("floor_area", "wall_area", "perimeter_length", "ceiling_height")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _rebuild(sheet: QuantitySheet, **changes: Any) -> QuantitySheet:
    """Construct a whole new validated sheet from *sheet* plus *changes*."""
    data = sheet.model_dump()
    data.update(changes)
    return QuantitySheet.model_validate(data)


def _require_unlocked(sheet: QuantitySheet, action: str) -> None:
    if sheet.is_locked:
        raise InvalidStateError(
            f"Cannot {action}: quantity sheet {sheet.id} v{sheet.version} is locked for pricing"
        )


def _opening_sizes(dims: list[Dimensions], size_cls: type[OpeningSize], measurements: RoomMeasurements):
    return [
        size_cls(
            width=units.to_inches(d.width, measurements.unit_system),
            height=units.to_inches(d.height, measurements.unit_system),
        )
        for d in dims
    ]


# ── creation ─────────────────────────────────────────────────────────

def create_from_scan(
    measurements: RoomMeasurements,
    objects: Iterable[DetectedObject],
    room_capture_id: str,
    room_type: RoomType = RoomType.BATHROOM,
    *,
    classifier: Optional[FixtureClassifier] = None,
) -> QuantitySheet:
    """Seed version 1 of a sheet from a finished scan."""
    classifier = classifier or FixtureClassifier()
    door_sizes = _opening_sizes(measurements.door_dimensions, DoorSize, measurements)
    window_sizes = _opening_sizes(measurements.window_dimensions, WindowSize, measurements)
    fixtures = classifier.classify(objects, room_type)
    now = _now()

    sheet = QuantitySheet(
        room_capture_id=room_capture_id,
        version=1,
        floor_area=measurements.floor_area,
        wall_area=measurements.wall_area,
        perimeter_length=measurements.perimeter,
        ceiling_height=measurements.ceiling_height,
        unit_system=measurements.unit_system,
        door_count=len(door_sizes),
        door_sizes=door_sizes,
        window_count=len(window_sizes),
        window_sizes=window_sizes,
        fixtures=fixtures,
        is_locked=False,
        created_at=now,
        updated_at=now,
    )
    logger.info(
        "Created quantity sheet %s for capture %s (%d doors, %d windows, %d fixture types)",
        sheet.id, room_capture_id, sheet.door_count, sheet.window_count, len(fixtures),
    )
    return sheet


# ── lock / version ───────────────────────────────────────────────────

def lock_for_pricing(sheet: QuantitySheet) -> QuantitySheet:
    _require_unlocked(sheet, "lock")
    logger.info("🔒 Locking quantity sheet %s v%d for pricing", sheet.id, sheet.version)
    return _rebuild(sheet, is_locked=True, updated_at=_now())


def create_new_version(sheet: QuantitySheet) -> QuantitySheet:
    """Return an editable copy of a locked sheet under a new id."""
    if not sheet.is_locked:
        raise InvalidStateError(
            f"Quantity sheet {sheet.id} v{sheet.version} is not locked; edit it directly"
        )
    now = _now()
    new_sheet = _rebuild(
        sheet,
        id=new_id(),
        version=sheet.version + 1,
        is_locked=False,
        created_at=now,
        updated_at=now,
    )
    logger.info("Quantity sheet %s v%d → %s v%d", sheet.id, sheet.version, new_sheet.id, new_sheet.version)
    return new_sheet


# ── fixtures ─────────────────────────────────────────────────────────

def add_fixture(sheet: QuantitySheet, fixture_type: FixtureType, count: int = 1) -> QuantitySheet:
    """Add *count* of *fixture_type*, merging into an existing entry."""
    _require_unlocked(sheet, "add a fixture")
    if count < 1:
        raise ValueError(f"count must be at least 1, got {count}")

    fixtures = list(sheet.fixtures)
    for i, f in enumerate(fixtures):
        if f.type == fixture_type:
            fixtures[i] = Fixture(id=f.id, type=f.type, count=f.count + count)
            break
    else:
        fixtures.append(Fixture(type=fixture_type, count=count))
    return _rebuild(sheet, fixtures=fixtures, updated_at=_now())


def remove_fixture(sheet: QuantitySheet, fixture_id: str) -> QuantitySheet:
    _require_unlocked(sheet, "remove a fixture")
    fixtures = [f for f in sheet.fixtures if f.id != fixture_id]
    if len(fixtures) == len(sheet.fixtures):
        return sheet
    return _rebuild(sheet, fixtures=fixtures, updated_at=_now())


def set_fixture_count(sheet: QuantitySheet, fixture_id: str, count: int) -> QuantitySheet:
    """Set the count of one fixture; a count of 0 removes it."""
    _require_unlocked(sheet, "change a fixture count")
    if count < 0:
        raise ValueError(f"count must not be negative, got {count}")
    if count == 0:
        return remove_fixture(sheet, fixture_id)
    if not any(f.id == fixture_id for f in sheet.fixtures):
        raise KeyError(fixture_id)
    fixtures = [
        Fixture(id=f.id, type=f.type, count=count) if f.id == fixture_id else f
        for f in sheet.fixtures
    ]
    return _rebuild(sheet, fixtures=fixtures, updated_at=_now())


# ── field edits ──────────────────────────────────────────────────────

def update_measurements(
    sheet: QuantitySheet,
    *,
    floor_area: Optional[float] = None,
    wall_area: Optional[float] = None,
    perimeter_length: Optional[float] = None,
    ceiling_height: Optional[float] = None,
) -> QuantitySheet:
    """Overwrite any of the four headline measurements (operator correction)."""
    _require_unlocked(sheet, "edit measurements")
    values = dict(
        floor_area=floor_area,
        wall_area=wall_area,
        perimeter_length=perimeter_length,
        ceiling_height=ceiling_height,
    )
    changes = {k: v for k, v in values.items() if v is not None}
    if not changes:
        return sheet
    return _rebuild(sheet, **changes, updated_at=_now())


def set_door_sizes(sheet: QuantitySheet, sizes: Iterable[OpeningSize]) -> QuantitySheet:
    """Replace the door list; ``door_count`` follows it."""
    _require_unlocked(sheet, "edit doors")
    door_sizes = [DoorSize(width=s.width, height=s.height) for s in sizes]
    return _rebuild(sheet, door_sizes=door_sizes, door_count=len(door_sizes), updated_at=_now())


def set_window_sizes(sheet: QuantitySheet, sizes: Iterable[OpeningSize]) -> QuantitySheet:
    """Replace the window list; ``window_count`` follows it."""
    _require_unlocked(sheet, "edit windows")
    window_sizes = [WindowSize(width=s.width, height=s.height) for s in sizes]
    return _rebuild(sheet, window_sizes=window_sizes, window_count=len(window_sizes), updated_at=_now())


# ── store ────────────────────────────────────────────────────────────

class QuantitySheetStore:
    """Thread-safe in-memory registry of quantity sheets.

    Writers hand back the value they read as *expected*; if the stored
    value for that id has changed since, the write is rejected with
    :class:`ConcurrentModificationError`.
    """

    def __init__(self, classifier: Optional[FixtureClassifier] = None):
        self.classifier = classifier or FixtureClassifier()
        self._sheets: dict[str, QuantitySheet] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sheets)

    def __contains__(self, sheet_id: object) -> bool:
        with self._lock:
            return sheet_id in self._sheets

    def get(self, sheet_id: str) -> QuantitySheet:
        with self._lock:
            sheet = self._sheets.get(sheet_id)
        if sheet is None:
            raise SheetNotFoundError(sheet_id)
        return sheet

    def versions(self, room_capture_id: str) -> list[QuantitySheet]:
        """All stored sheets for a capture, oldest version first."""
        with self._lock:
            stored = list(self._sheets.values())
        return sorted(
            (s for s in stored if s.room_capture_id == room_capture_id),
            key=lambda s: s.version,
        )

    def latest(self, room_capture_id: str) -> Optional[QuantitySheet]:
        versions = self.versions(room_capture_id)
        return versions[-1] if versions else None

    def save(self, sheet: QuantitySheet, *, expected: Optional[QuantitySheet] = None) -> QuantitySheet:
        """Store *sheet*, checking the current value against *expected*.

        A new id needs no *expected*.  Replacing an existing id requires
        the exact value the writer started from.
        """
        with self._lock:
            current = self._sheets.get(sheet.id)
            if current is not None and current != expected:
                raise ConcurrentModificationError(sheet.id)
            if current is None and expected is not None:
                raise SheetNotFoundError(sheet.id)
            self._sheets[sheet.id] = sheet
        logger.debug("Saved quantity sheet %s v%d", sheet.id, sheet.version)
        return sheet

    # -- operations applied and committed in one step --

    def create_from_scan(
        self,
        measurements: RoomMeasurements,
        objects: Iterable[DetectedObject],
        room_capture_id: str,
        room_type: RoomType = RoomType.BATHROOM,
    ) -> QuantitySheet:
        sheet = create_from_scan(
            measurements, objects, room_capture_id, room_type, classifier=self.classifier
        )
        return self.save(sheet)

    def lock_for_pricing(self, sheet: QuantitySheet) -> QuantitySheet:
        return self.save(lock_for_pricing(sheet), expected=sheet)

    def create_new_version(self, sheet: QuantitySheet) -> QuantitySheet:
        with self._lock:
            if self.get(sheet.id) != sheet:
                raise ConcurrentModificationError(sheet.id)
            latest = self.latest(sheet.room_capture_id)
            if latest is not None and latest.version > sheet.version:
                raise ConcurrentModificationError(
                    sheet.id, f"Capture {sheet.room_capture_id} already has v{latest.version}"
                )
            return self.save(create_new_version(sheet))

    def add_fixture(self, sheet: QuantitySheet, fixture_type: FixtureType, count: int = 1) -> QuantitySheet:
        return self.save(add_fixture(sheet, fixture_type, count), expected=sheet)

    def remove_fixture(self, sheet: QuantitySheet, fixture_id: str) -> QuantitySheet:
        return self.save(remove_fixture(sheet, fixture_id), expected=sheet)

    def set_fixture_count(self, sheet: QuantitySheet, fixture_id: str, count: int) -> QuantitySheet:
        return self.save(set_fixture_count(sheet, fixture_id, count), expected=sheet)

    def update_measurements(self, sheet: QuantitySheet, **values: Optional[float]) -> QuantitySheet:
        unknown = set(values) - set(_EDITABLE_MEASUREMENTS)
        if unknown:
            raise TypeError(f"Not an editable measurement: {', '.join(sorted(unknown))}")
        return self.save(update_measurements(sheet, **values), expected=sheet)

    def set_door_sizes(self, sheet: QuantitySheet, sizes: Iterable[OpeningSize]) -> QuantitySheet:
        return self.save(set_door_sizes(sheet, sizes), expected=sheet)

    def set_window_sizes(self, sheet: QuantitySheet, sizes: Iterable[OpeningSize]) -> QuantitySheet:
        return self.save(set_window_sizes(sheet, sizes), expected=sheet)
