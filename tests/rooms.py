"""Builders for synthetic scan surfaces and objects used across the tests."""

from __future__ import annotations

import numpy as np
from scipy.spatial.transform import Rotation

from takeoff.core.types import (
    DetectedObject,
    Pose,
    Quaternion,
    Surface,
    SurfaceCategory,
    Vec3,
)


def make_pose(x: float, y: float, z: float, yaw: float = 0.0) -> Pose:
    """Pose at (x, y, z) rotated *yaw* radians about the vertical (Y) axis."""
    qx, qy, qz, qw = Rotation.from_euler("y", yaw).as_quat()
    return Pose(
        position=Vec3(x=x, y=y, z=z),
        orientation=Quaternion(x=qx, y=qy, z=qz, w=qw),
    )


def make_surface(
    category: SurfaceCategory,
    width: float,
    height: float,
    centre: tuple[float, float, float] = (0.0, 0.0, 0.0),
    yaw: float = 0.0,
) -> Surface:
    return Surface(category=category, width=width, height=height, pose=make_pose(*centre, yaw=yaw))


def rectangular_walls(
    a: float,
    b: float,
    height: float,
    *,
    origin: tuple[float, float] = (0.0, 0.0),
    rotation: float = 0.0,
) -> list[Surface]:
    """Four walls of an *a* (along X) × *b* (along Z) room.

    The room is centred on *origin* in the floor plane and turned by
    *rotation* radians about the vertical axis.
    """
    ox, oz = origin
    c, s = np.cos(rotation), np.sin(rotation)
    walls = []
    for width, (lx, lz), yaw in (
        (a, (0.0, -b / 2), 0.0),
        (b, (a / 2, 0.0), np.pi / 2),
        (a, (0.0, b / 2), 0.0),
        (b, (-a / 2, 0.0), np.pi / 2),
    ):
        # Rotation about +Y maps (x, z) → (x c + z s, −x s + z c).
        x = ox + lx * c + lz * s
        z = oz - lx * s + lz * c
        walls.append(
            make_surface(SurfaceCategory.WALL, width, height, (x, height / 2, z), yaw=yaw + rotation)
        )
    return walls


def make_object(category: str) -> DetectedObject:
    return DetectedObject(category=category, dimensions=Vec3(x=0.5, y=0.8, z=0.6))
