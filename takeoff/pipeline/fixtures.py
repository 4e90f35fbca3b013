"""Detected-object → fixture classification with room-type context."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Optional

from takeoff.core.types import DetectedObject, Fixture, FixtureType, ObjectCategory, RoomType

logger = logging.getLogger(__name__)

# Categories that mean the same fixture in any room.
_CATEGORY_FIXTURES: dict[str, FixtureType] = {
    ObjectCategory.TOILET.value: FixtureType.TOILET,
    ObjectCategory.SINK.value: FixtureType.SINK,
    ObjectCategory.BATHTUB.value: FixtureType.BATHTUB,
    ObjectCategory.REFRIGERATOR.value: FixtureType.REFRIGERATOR,
    ObjectCategory.STOVE.value: FixtureType.OVEN,
    ObjectCategory.DISHWASHER.value: FixtureType.DISHWASHER,
}

# Categories whose meaning depends on the room; looked up first.
_CONTEXT_FIXTURES: dict[tuple[str, RoomType], FixtureType] = {
    (ObjectCategory.STORAGE.value, RoomType.BATHROOM): FixtureType.VANITY,
}

_PRESETS: dict[RoomType, tuple[FixtureType, ...]] = {
    RoomType.BATHROOM: (
        FixtureType.TOILET,
        FixtureType.VANITY,
        FixtureType.BATHTUB,
        FixtureType.SHOWER,
        FixtureType.SINK,
    ),
    RoomType.KITCHEN: (
        FixtureType.REFRIGERATOR,
        FixtureType.OVEN,
        FixtureType.DISHWASHER,
        FixtureType.MICROWAVE,
        FixtureType.SINK,
        FixtureType.RANGE_HOOD,
    ),
    RoomType.UTILITY: (FixtureType.WASHER, FixtureType.DRYER, FixtureType.SINK),
}

# What an operator almost always has to account for; a subset of the presets.
_EXPECTED: dict[RoomType, frozenset[FixtureType]] = {
    RoomType.BATHROOM: frozenset({FixtureType.TOILET, FixtureType.VANITY, FixtureType.SHOWER}),
    RoomType.KITCHEN: frozenset({FixtureType.REFRIGERATOR, FixtureType.OVEN, FixtureType.SINK}),
    RoomType.UTILITY: frozenset({FixtureType.WASHER, FixtureType.DRYER}),
}


def _category_key(category: str | ObjectCategory) -> str:
    if isinstance(category, ObjectCategory):
        return category.value
    return str(category).strip().lower()


class FixtureClassifier:
    """Maps raw object categories to fixture types and aggregates counts.

    Washers and dryers have no reliable raw category and are only ever
    added by the operator.
    """

    def map_category(
        self,
        category: str | ObjectCategory,
        room_type: RoomType = RoomType.BATHROOM,
    ) -> Optional[FixtureType]:
        """Return the fixture type for *category* in *room_type*, or None."""
        key = _category_key(category)
        fixture_type = _CONTEXT_FIXTURES.get((key, room_type))
        if fixture_type is None:
            fixture_type = _CATEGORY_FIXTURES.get(key)
        return fixture_type

    def classify(
        self,
        objects: Iterable[DetectedObject],
        room_type: RoomType = RoomType.BATHROOM,
    ) -> list[Fixture]:
        """Aggregate *objects* into fixtures, one per type, ordered by type id."""
        counts: Counter[FixtureType] = Counter()
        dropped = 0
        for obj in objects:
            fixture_type = self.map_category(obj.category, room_type)
            if fixture_type is None:
                dropped += 1
                continue
            counts[fixture_type] += 1

        if dropped:
            logger.debug("Ignored %d object(s) with no fixture mapping in a %s", dropped, room_type.value)
        return [
            Fixture(type=fixture_type, count=count)
            for fixture_type, count in sorted(counts.items(), key=lambda item: item[0].value)
        ]

    def presets_for_room_type(self, room_type: RoomType) -> list[FixtureType]:
        """Full catalogue of fixture types relevant to *room_type*."""
        return list(_PRESETS.get(room_type, ()))

    def suggest_missing(
        self,
        detected: Iterable[Fixture],
        room_type: RoomType = RoomType.BATHROOM,
    ) -> list[FixtureType]:
        """Commonly expected fixture types absent from *detected*."""
        present = {f.type for f in detected}
        missing = _EXPECTED.get(room_type, frozenset()) - present
        return sorted(missing, key=lambda t: t.value)
