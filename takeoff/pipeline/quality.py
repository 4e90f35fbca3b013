"""Live scan-quality scoring.

Each snapshot from the capture session is folded into a
:class:`ScanProgressState` by :func:`apply_snapshot`, a pure reducer.  The
state carries four checklist flags (perimeter, openings, fixtures,
ceiling), a weighted score and the finish gate, plus two one-shot prompts
for the UI: "confirm this room has no openings" and "large room detected".

The score is rebuilt from the flags on every update, so flags may flip in
any order as the scan refines.  :class:`ScanQualityEngine` wraps the
reducers for a single session and notifies subscribers of new states.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np

from takeoff.core.errors import InvalidStateError
from takeoff.core.types import (
    RoomMeasurements,
    RoomSize,
    RoomType,
    ScanProgressState,
    ScanSnapshot,
    Surface,
    SurfaceCategory,
    UnitSystem,
)
from takeoff.pipeline import units
from takeoff.pipeline.geometry import extract_measurements, valid_surfaces

logger = logging.getLogger(__name__)

SMALL_ROOM_MAX_AREA = 100.0   # sq ft
MEDIUM_ROOM_MAX_AREA = 250.0  # sq ft
MAX_PLAUSIBLE_FLOOR_AREA = 10_000.0  # sq ft
MIN_PERIMETER_WALLS = 4
CEILING_HEIGHT_THRESHOLD = 2.0  # metres
_SCORE_EPSILON = 1e-9

Extractor = Callable[[list[Surface]], RoomMeasurements]
Listener = Callable[[ScanProgressState], None]


def classify_room_size(floor_area: float) -> RoomSize:
    """Bucket a floor area (sq ft); each boundary belongs to the larger class."""
    if floor_area < SMALL_ROOM_MAX_AREA:
        return RoomSize.SMALL
    if floor_area < MEDIUM_ROOM_MAX_AREA:
        return RoomSize.MEDIUM
    return RoomSize.LARGE


def _imperial_extractor(surfaces: list[Surface]) -> RoomMeasurements:
    return extract_measurements(surfaces, unit_system=UnitSystem.IMPERIAL)


def score(state: ScanProgressState) -> tuple[float, bool]:
    """Return ``(quality_score, can_finish)`` for the flags in *state*."""
    config = state.configuration
    weights = config.quality_weights.normalized()
    total = 0.0
    if state.has_scanned_perimeter:
        total += weights.perimeter
    if state.has_scanned_openings:
        total += weights.openings
    if state.has_scanned_fixtures:
        total += weights.fixtures
    if state.has_scanned_ceiling:
        total += weights.ceiling
    total = min(1.0, max(0.0, total))
    return total, total >= config.minimum_quality_score - _SCORE_EPSILON


def _rescored(state: ScanProgressState, **changes) -> ScanProgressState:
    updated = state.model_copy(update=changes)
    quality_score, can_finish = score(updated)
    return updated.model_copy(update={"quality_score": quality_score, "can_finish": can_finish})


def initial_state(room_type: RoomType = RoomType.BATHROOM) -> ScanProgressState:
    return ScanProgressState(room_type=room_type)


def apply_snapshot(
    state: ScanProgressState,
    snapshot: ScanSnapshot,
    *,
    extractor: Extractor = _imperial_extractor,
    measurements: Optional[RoomMeasurements] = None,
) -> ScanProgressState:
    """Fold one snapshot into *state* and return the new state.

    *measurements* may be passed when the caller already extracted them for
    this snapshot; otherwise *extractor* is run.  Room size is always judged
    on the floor area in square feet.
    """
    walls = valid_surfaces(snapshot.surfaces, SurfaceCategory.WALL)
    doors = valid_surfaces(snapshot.surfaces, SurfaceCategory.DOOR)
    windows = valid_surfaces(snapshot.surfaces, SurfaceCategory.WINDOW)
    changes: dict = {
        "wall_count": len(walls),
        "door_count": len(doors),
        "window_count": len(windows),
        "object_count": len(snapshot.objects),
    }

    # Room size: only trust the footprint once the perimeter is closed.
    size = state.estimated_room_size
    if len(walls) >= MIN_PERIMETER_WALLS:
        if measurements is None:
            measurements = extractor(snapshot.surfaces)
        area = measurements.floor_area
        if measurements.unit_system is not UnitSystem.IMPERIAL:
            area = units.meters_squared_to_feet_squared(area)
        if np.isfinite(area) and 0 < area < MAX_PLAUSIBLE_FLOOR_AREA:
            size = classify_room_size(area)
    if size != state.estimated_room_size:
        logger.info("Room size estimate %s → %s", state.estimated_room_size.value, size.value)
        changes["estimated_room_size"] = size
        if size is RoomSize.LARGE and not state.large_room_guidance_raised:
            logger.info("📏 Large room detected; raising scan guidance")
            changes["large_room_detected"] = True
            changes["large_room_guidance_raised"] = True

    perimeter = len(walls) >= MIN_PERIMETER_WALLS
    has_openings = bool(doors or windows)
    confirmed = state.has_confirmed_no_openings
    pending = state.pending_no_openings_confirmation and not has_openings
    if state.room_type.typically_has_windows and not confirmed:
        openings = has_openings
    else:
        openings = confirmed or has_openings
        if perimeter and not openings and not state.no_openings_prompt_raised:
            logger.info("Perimeter complete with no openings; asking operator to confirm")
            pending = True
            changes["no_openings_prompt_raised"] = True
    changes["pending_no_openings_confirmation"] = pending

    changes["has_scanned_perimeter"] = perimeter
    changes["has_scanned_openings"] = openings
    changes["has_scanned_fixtures"] = len(snapshot.objects) > 0
    changes["has_scanned_ceiling"] = any(w.height > CEILING_HEIGHT_THRESHOLD for w in walls)

    new_state = _rescored(state, **changes)
    if new_state.can_finish and not state.can_finish:
        logger.info("✅ Scan quality %.2f reached the finish threshold", new_state.quality_score)
    return new_state


def confirm_no_openings(state: ScanProgressState) -> ScanProgressState:
    """Operator confirmed the room has no doors or windows."""
    return _rescored(
        state,
        has_confirmed_no_openings=True,
        pending_no_openings_confirmation=False,
        has_scanned_openings=True,
    )


def dismiss_no_openings_prompt(state: ScanProgressState) -> ScanProgressState:
    """Operator closed the prompt without confirming; it will not re-fire."""
    return state.model_copy(update={"pending_no_openings_confirmation": False})


def dismiss_large_room_guidance(state: ScanProgressState) -> ScanProgressState:
    return state.model_copy(update={"large_room_detected": False})


class ScanQualityEngine:
    """Drives the quality reducers for one scan session.

    Snapshots must be fed serially by the session owner.  Subscribers are
    called with each new state value, and only when it differs from the
    previous one.
    """

    def __init__(
        self,
        room_type: RoomType = RoomType.BATHROOM,
        *,
        unit_system: UnitSystem = UnitSystem.IMPERIAL,
    ):
        self.room_type = room_type
        self.unit_system = unit_system
        self._state = initial_state(room_type)
        self._measurements: Optional[RoomMeasurements] = None
        self._listeners: list[Listener] = []
        self._finished = False

    @property
    def state(self) -> ScanProgressState:
        return self._state

    @property
    def measurements(self) -> Optional[RoomMeasurements]:
        """Measurements of the latest snapshot in the session's display units."""
        return self._measurements

    @property
    def is_finished(self) -> bool:
        return self._finished

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update(self, snapshot: ScanSnapshot) -> ScanProgressState:
        self._ensure_active()
        self._measurements = extract_measurements(snapshot.surfaces, unit_system=self.unit_system)
        return self._publish(apply_snapshot(self._state, snapshot, measurements=self._measurements))

    def confirm_no_openings(self) -> ScanProgressState:
        self._ensure_active()
        return self._publish(confirm_no_openings(self._state))

    def dismiss_no_openings_prompt(self) -> ScanProgressState:
        self._ensure_active()
        return self._publish(dismiss_no_openings_prompt(self._state))

    def dismiss_large_room_guidance(self) -> ScanProgressState:
        self._ensure_active()
        return self._publish(dismiss_large_room_guidance(self._state))

    def finish(self) -> ScanProgressState:
        """Close the session and return its final state."""
        self._ensure_active()
        self._finished = True
        self._listeners.clear()
        logger.info(
            "Scan finished: score %.2f (%s), can_finish=%s",
            self._state.quality_score, self._state.estimated_room_size.value, self._state.can_finish,
        )
        return self._state

    def _ensure_active(self) -> None:
        if self._finished:
            raise InvalidStateError("Scan session has already finished")

    def _publish(self, new_state: ScanProgressState) -> ScanProgressState:
        if new_state == self._state:
            return new_state
        self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)
        return new_state
