"""Room measurement extraction from wall / door / window surfaces.

Surfaces arrive in sensor metres with a world pose.  The extractor turns a
full surface set into a :class:`RoomMeasurements` in display units:

* per-category width/height lists (input order kept),
* perimeter as the sum of wall widths,
* ceiling height as the mean wall height,
* floor area from the wall footprint polygon (shoelace), with a
  two-widest-walls rectangle fallback when fewer than three walls carry a
  usable pose,
* net wall area (gross wall minus openings, never below zero).

Scanner noise is expected: surfaces with non-finite or near-zero
dimensions are dropped, unusable poses are left out of the footprint, and
ill-conditioned orientations fall back to identity.  Nothing here raises on
bad sample data.

The footprint polygon is ordered by angle around its centroid, which only
reconstructs convex, single-ring floor plans correctly.  L-shaped or
multi-wing captures will be under- or mis-measured.
"""

from __future__ import annotations

import logging
from typing import Iterable

import numpy as np
from scipy.spatial.transform import Rotation

from takeoff.core.types import (
    Dimensions,
    Pose,
    RoomMeasurements,
    Surface,
    SurfaceCategory,
    UnitSystem,
)
from takeoff.pipeline import units

logger = logging.getLogger(__name__)

MIN_DIMENSION = 1e-4  # metres


# ── sample validation ────────────────────────────────────────────────

def is_valid_dimension(value: float, min_dimension: float = MIN_DIMENSION) -> bool:
    """True if *value* is finite and larger than *min_dimension*."""
    return bool(np.isfinite(value)) and value > min_dimension


def valid_surfaces(
    surfaces: Iterable[Surface],
    category: SurfaceCategory,
    *,
    min_dimension: float = MIN_DIMENSION,
) -> list[Surface]:
    """Surfaces of *category* whose width and height are both usable."""
    kept: list[Surface] = []
    for s in surfaces:
        if s.category != category:
            continue
        if is_valid_dimension(s.width, min_dimension) and is_valid_dimension(s.height, min_dimension):
            kept.append(s)
        else:
            logger.debug("Dropping %s with degenerate size %r x %r", category.value, s.width, s.height)
    return kept


# ── pose helpers ─────────────────────────────────────────────────────

def pose_rotation(pose: Pose) -> Rotation:
    """Rotation of *pose*, or identity if the quaternion is unusable."""
    q = pose.orientation
    quat = np.array([q.x, q.y, q.z, q.w], dtype=np.float64)
    if not np.all(np.isfinite(quat)) or np.linalg.norm(quat) < 1e-9:
        logger.debug("Ill-conditioned orientation %s; using identity", quat)
        return Rotation.identity()
    return Rotation.from_quat(quat)


def pose_position(pose: Pose) -> np.ndarray | None:
    """Position of *pose* as an array, or None if any coordinate is non-finite."""
    p = np.array([pose.position.x, pose.position.y, pose.position.z], dtype=np.float64)
    if not np.all(np.isfinite(p)):
        return None
    return p


def wall_footprint(wall: Surface) -> np.ndarray | None:
    """Project a wall onto the floor (XZ) plane as its two width endpoints.

    Returns a (2, 2) array of ``[x, z]`` points, or None when the wall's
    position is unusable.
    """
    centre = pose_position(wall.pose)
    if centre is None:
        return None
    axis = pose_rotation(wall.pose).apply([1.0, 0.0, 0.0])
    half = 0.5 * wall.width * axis
    ends = np.stack([centre - half, centre + half])
    return ends[:, [0, 2]]


# ── area / length primitives ─────────────────────────────────────────

def polygon_area(points: np.ndarray) -> float:
    """Shoelace area of 2-D *points* ordered by angle around their centroid."""
    if len(points) < 3:
        return 0.0
    centroid = points.mean(axis=0)
    angles = np.arctan2(points[:, 1] - centroid[1], points[:, 0] - centroid[0])
    ring = points[np.argsort(angles, kind="stable")]
    x, y = ring[:, 0], ring[:, 1]
    return float(abs(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y)) / 2.0)


def _sum_area(dims: list[Dimensions]) -> float:
    return float(sum(d.width * d.height for d in dims))


def floor_area(walls: list[Surface], unit_system: UnitSystem = UnitSystem.IMPERIAL) -> float:
    """Floor area in display units from already-validated *walls*."""
    footprints = [fp for fp in (wall_footprint(w) for w in walls) if fp is not None]
    if len(footprints) >= 3:
        area_m2 = polygon_area(np.vstack(footprints))
        if not np.isfinite(area_m2):
            return 0.0
        return units.area(area_m2, unit_system)

    # Fewer than three posed walls: treat the two widest as a rectangle.
    widths = sorted((units.length(w.width, unit_system) for w in walls), reverse=True)
    if len(widths) < 2:
        return 0.0
    logger.debug("Floor area from rectangle fallback (%d walls)", len(walls))
    return widths[0] * widths[1]


def _dimensions(surfaces: list[Surface], unit_system: UnitSystem) -> list[Dimensions]:
    return [
        Dimensions(
            width=units.length(s.width, unit_system),
            height=units.length(s.height, unit_system),
        )
        for s in surfaces
    ]


# ── extractor ────────────────────────────────────────────────────────

def extract_measurements(
    surfaces: Iterable[Surface],
    *,
    unit_system: UnitSystem = UnitSystem.IMPERIAL,
    min_dimension: float = MIN_DIMENSION,
) -> RoomMeasurements:
    """Compute :class:`RoomMeasurements` from one full surface set."""
    surfaces = list(surfaces)
    walls = valid_surfaces(surfaces, SurfaceCategory.WALL, min_dimension=min_dimension)
    doors = valid_surfaces(surfaces, SurfaceCategory.DOOR, min_dimension=min_dimension)
    windows = valid_surfaces(surfaces, SurfaceCategory.WINDOW, min_dimension=min_dimension)

    wall_dims = _dimensions(walls, unit_system)
    door_dims = _dimensions(doors, unit_system)
    window_dims = _dimensions(windows, unit_system)

    perimeter = float(sum(d.width for d in wall_dims))
    ceiling_height = float(np.mean([d.height for d in wall_dims])) if wall_dims else 0.0
    wall_area = max(0.0, _sum_area(wall_dims) - _sum_area(door_dims) - _sum_area(window_dims))

    measurements = RoomMeasurements(
        floor_area=floor_area(walls, unit_system),
        wall_area=wall_area,
        perimeter=perimeter,
        ceiling_height=ceiling_height,
        wall_dimensions=wall_dims,
        door_dimensions=door_dims,
        window_dimensions=window_dims,
        unit_system=unit_system,
    )
    if logger.isEnabledFor(logging.DEBUG):
        shown = units.format_measurements(measurements)
        logger.debug(
            "Extracted %d walls, %d doors, %d windows → floor %s, perimeter %s",
            len(walls), len(doors), len(windows), shown["floor_area"], shown["perimeter"],
        )
    return measurements
