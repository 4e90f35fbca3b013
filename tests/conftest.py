"""Shared test fixtures – synthetic surface sets for simple rooms."""

from __future__ import annotations

import numpy as np
import pytest

from takeoff.core.types import ScanSnapshot, Surface, SurfaceCategory
from tests.rooms import make_object, make_surface, rectangular_walls


@pytest.fixture()
def rect_room_walls() -> list[Surface]:
    """A 4 m × 3 m room with 2.5 m walls."""
    return rectangular_walls(4.0, 3.0, 2.5)


@pytest.fixture()
def bathroom_snapshot() -> ScanSnapshot:
    """A small windowless bathroom: four 2.5 m walls and a toilet."""
    return ScanSnapshot(
        surfaces=rectangular_walls(2.5, 2.0, 2.5),
        objects=[make_object("toilet")],
    )


@pytest.fixture()
def kitchen_snapshot() -> ScanSnapshot:
    """A 4 m × 3 m kitchen with a door, a window and a few appliances."""
    surfaces = rectangular_walls(4.0, 3.0, 2.5)
    surfaces.append(make_surface(SurfaceCategory.DOOR, 0.9, 2.0, (0.0, 1.0, -1.5)))
    surfaces.append(make_surface(SurfaceCategory.WINDOW, 1.2, 1.0, (2.0, 1.5, 0.0), yaw=np.pi / 2))
    return ScanSnapshot(
        surfaces=surfaces,
        objects=[make_object("refrigerator"), make_object("stove"), make_object("sink"), make_object("chair")],
    )
