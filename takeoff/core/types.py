"""Pydantic models for scan samples, measurements, and quantity sheets.

Scan samples (surfaces and detected objects) arrive from the capture
session in metres.  Everything derived from them – room measurements, the
live scan-progress state and the versioned quantity sheet – is an
immutable value: an "update" always builds a new instance.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator
from scipy.spatial.transform import Rotation


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


# ── tiny helpers ──────────────────────────────────────────────────────
class Vec3(BaseModel):
    """A 3-component vector (x, y, z) in metres.  Y is up."""

    x: float
    y: float
    z: float


class Quaternion(BaseModel):
    """Orientation as a unit quaternion in scalar-last (x, y, z, w) order."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0


class Pose(BaseModel):
    """World-space position and orientation of a scan sample."""

    position: Vec3 = Field(default_factory=lambda: Vec3(x=0.0, y=0.0, z=0.0))
    orientation: Quaternion = Field(default_factory=Quaternion)

    @classmethod
    def from_matrix(cls, matrix) -> Pose:
        """Build a pose from a 4×4 rigid transform (column-vector convention).

        A rotation block that is not a proper rotation (non-finite entries,
        determinant far from +1) yields the identity orientation instead of
        raising; the translation column is kept as-is.
        """
        m = np.asarray(matrix, dtype=np.float64)
        if m.shape != (4, 4):
            raise ValueError(f"Expected a 4x4 transform, got shape {m.shape}")
        t = m[:3, 3]
        position = Vec3(x=float(t[0]), y=float(t[1]), z=float(t[2]))

        block = m[:3, :3]
        orientation = Quaternion()
        if np.all(np.isfinite(block)) and abs(np.linalg.det(block) - 1.0) < 1e-2:
            qx, qy, qz, qw = Rotation.from_matrix(block).as_quat()
            orientation = Quaternion(x=float(qx), y=float(qy), z=float(qz), w=float(qw))
        return cls(position=position, orientation=orientation)


# ── scan samples ──────────────────────────────────────────────────────
class SurfaceCategory(str, Enum):
    WALL = "wall"
    DOOR = "door"
    WINDOW = "window"


class Surface(BaseModel):
    """A planar scan element.  ``width`` runs along the local X axis."""

    category: SurfaceCategory
    width: float
    height: float
    pose: Pose = Field(default_factory=Pose)


class ObjectCategory(str, Enum):
    """Raw object categories reported by the capture session."""

    STORAGE = "storage"
    REFRIGERATOR = "refrigerator"
    STOVE = "stove"
    BED = "bed"
    SINK = "sink"
    WASHER_DRYER = "washer_dryer"
    TOILET = "toilet"
    BATHTUB = "bathtub"
    OVEN = "oven"
    DISHWASHER = "dishwasher"
    TABLE = "table"
    SOFA = "sofa"
    CHAIR = "chair"
    FIREPLACE = "fireplace"
    TELEVISION = "television"
    STAIRS = "stairs"


class DetectedObject(BaseModel):
    """A recognised furnishing sample, pending fixture classification.

    ``category`` stays a plain string so categories this package does not
    know about still validate; the classifier simply drops them.
    """

    category: str
    dimensions: Vec3 = Field(default_factory=lambda: Vec3(x=0.0, y=0.0, z=0.0))
    pose: Pose = Field(default_factory=Pose)


class ScanSnapshot(BaseModel):
    """The latest full set of samples for one capture."""

    surfaces: list[Surface] = Field(default_factory=list)
    objects: list[DetectedObject] = Field(default_factory=list)


# ── measurements ─────────────────────────────────────────────────────
class UnitSystem(str, Enum):
    IMPERIAL = "imperial"
    METRIC = "metric"


class Dimensions(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: float
    height: float


class RoomMeasurements(BaseModel):
    """Room figures in display units, computed fresh from one surface set."""

    model_config = ConfigDict(frozen=True)

    floor_area: float = 0.0
    wall_area: float = 0.0
    perimeter: float = 0.0
    ceiling_height: float = 0.0
    wall_dimensions: list[Dimensions] = Field(default_factory=list)
    door_dimensions: list[Dimensions] = Field(default_factory=list)
    window_dimensions: list[Dimensions] = Field(default_factory=list)
    unit_system: UnitSystem = UnitSystem.IMPERIAL


# ── fixtures ─────────────────────────────────────────────────────────
class FixtureType(str, Enum):
    # Bathroom fixtures
    TOILET = "toilet"
    VANITY = "vanity"
    BATHTUB = "bathtub"
    SHOWER = "shower"
    SINK = "sink"
    # Kitchen / utility appliances
    REFRIGERATOR = "refrigerator"
    OVEN = "oven"
    DISHWASHER = "dishwasher"
    MICROWAVE = "microwave"
    WASHER = "washer"
    DRYER = "dryer"
    RANGE_HOOD = "range_hood"

    @property
    def display_name(self) -> str:
        if self is FixtureType.OVEN:
            return "Oven/Range"
        return self.value.replace("_", " ").title()


class Fixture(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    type: FixtureType
    count: int = Field(default=1, ge=1)


# ── quantity sheet ───────────────────────────────────────────────────
class OpeningSize(BaseModel):
    """Opening width and height in inches."""

    model_config = ConfigDict(frozen=True)

    width: float = Field(ge=0)
    height: float = Field(ge=0)


class DoorSize(OpeningSize):
    pass


class WindowSize(OpeningSize):
    pass


class QuantitySheet(BaseModel):
    """Versioned bill of quantities for one room capture.

    Areas and lengths are in ``unit_system`` display units, taken from the
    measurements it was created from (square feet and feet by default);
    opening sizes are always inches.  Once ``is_locked`` is set the record is frozen for pricing;
    further changes require a new version.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    room_capture_id: str
    version: int = Field(default=1, ge=1)
    floor_area: float = Field(default=0.0, ge=0)
    wall_area: float = Field(default=0.0, ge=0)
    perimeter_length: float = Field(default=0.0, ge=0)
    ceiling_height: float = Field(default=0.0, ge=0)
    unit_system: UnitSystem = UnitSystem.IMPERIAL
    door_count: int = Field(default=0, ge=0)
    door_sizes: list[DoorSize] = Field(default_factory=list)
    window_count: int = Field(default=0, ge=0)
    window_sizes: list[WindowSize] = Field(default_factory=list)
    fixtures: list[Fixture] = Field(default_factory=list)
    is_locked: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _check_counts(self) -> QuantitySheet:
        if self.door_count != len(self.door_sizes):
            raise ValueError(
                f"door_count ({self.door_count}) must equal len(door_sizes) ({len(self.door_sizes)})"
            )
        if self.window_count != len(self.window_sizes):
            raise ValueError(
                f"window_count ({self.window_count}) must equal len(window_sizes) ({len(self.window_sizes)})"
            )
        types = [f.type for f in self.fixtures]
        if len(types) != len(set(types)):
            raise ValueError("fixtures must hold at most one entry per fixture type")
        return self

    def fixture_of_type(self, fixture_type: FixtureType) -> Optional[Fixture]:
        return next((f for f in self.fixtures if f.type == fixture_type), None)


# ── scan quality ─────────────────────────────────────────────────────
class RoomType(str, Enum):
    BATHROOM = "bathroom"
    KITCHEN = "kitchen"
    BEDROOM = "bedroom"
    LIVING_ROOM = "living_room"
    UTILITY = "utility"
    OTHER = "other"

    @property
    def typically_has_windows(self) -> bool:
        return self not in (RoomType.BATHROOM, RoomType.UTILITY)


class RoomSize(str, Enum):
    SMALL = "small"    # < 100 sq ft
    MEDIUM = "medium"  # 100–250 sq ft
    LARGE = "large"    # ≥ 250 sq ft (LiDAR range-challenged)

    @property
    def display_name(self) -> str:
        return self.value.title()


class QualityWeights(BaseModel):
    """Per-criterion weights of the scan quality score."""

    model_config = ConfigDict(frozen=True)

    perimeter: float = Field(default=0.25, ge=0)
    openings: float = Field(default=0.25, ge=0)
    fixtures: float = Field(default=0.25, ge=0)
    ceiling: float = Field(default=0.25, ge=0)

    def total(self) -> float:
        return self.perimeter + self.openings + self.fixtures + self.ceiling

    def normalized(self) -> QualityWeights:
        """Return weights scaled to sum to 1 (unchanged if they sum to 0)."""
        s = self.total()
        if s <= 0:
            return self
        return QualityWeights(
            perimeter=self.perimeter / s,
            openings=self.openings / s,
            fixtures=self.fixtures / s,
            ceiling=self.ceiling / s,
        )


class ScanQualityConfiguration(BaseModel):
    """Room-type and room-size context that shapes quality scoring."""

    model_config = ConfigDict(frozen=True)

    room_type: RoomType
    estimated_room_size: RoomSize = RoomSize.MEDIUM
    has_confirmed_no_openings: bool = False

    @property
    def quality_weights(self) -> QualityWeights:
        if not self.room_type.typically_has_windows or self.has_confirmed_no_openings:
            # Openings no longer count; their share moves to the rest.
            return QualityWeights(perimeter=0.35, openings=0.0, fixtures=0.35, ceiling=0.30)
        return QualityWeights()

    @property
    def minimum_quality_score(self) -> float:
        return {
            RoomSize.SMALL: 0.70,
            RoomSize.MEDIUM: 0.65,
            RoomSize.LARGE: 0.55,  # graded leniently: LiDAR degrades with distance
        }[self.estimated_room_size]


class ScanProgressState(BaseModel):
    """Live checklist, score and UI signals for one scan session."""

    model_config = ConfigDict(frozen=True)

    room_type: RoomType = RoomType.BATHROOM
    has_scanned_perimeter: bool = False
    has_scanned_openings: bool = False
    has_scanned_fixtures: bool = False
    has_scanned_ceiling: bool = False
    quality_score: float = Field(default=0.0, ge=0.0, le=1.0)
    can_finish: bool = False
    estimated_room_size: RoomSize = RoomSize.MEDIUM

    wall_count: int = 0
    door_count: int = 0
    window_count: int = 0
    object_count: int = 0

    has_confirmed_no_openings: bool = False
    # One-shot prompts: the *_raised latches keep them from re-firing.
    pending_no_openings_confirmation: bool = False
    no_openings_prompt_raised: bool = False
    large_room_detected: bool = False
    large_room_guidance_raised: bool = False

    @property
    def configuration(self) -> ScanQualityConfiguration:
        return ScanQualityConfiguration(
            room_type=self.room_type,
            estimated_room_size=self.estimated_room_size,
            has_confirmed_no_openings=self.has_confirmed_no_openings,
        )
