"""Tests for unit conversion helpers."""

from __future__ import annotations

import pytest

from takeoff.core.types import RoomMeasurements, UnitSystem
from takeoff.pipeline import units


class TestConversions:
    def test_meters_to_feet(self):
        assert units.meters_to_feet(1.0) == 3.28084
        assert units.meters_to_feet(0.0) == 0.0

    def test_meters_squared_to_feet_squared(self):
        assert units.meters_squared_to_feet_squared(2.0) == pytest.approx(21.5278)

    def test_to_inches(self):
        assert units.to_inches(3.0) == 36.0
        assert units.to_inches(0.0254, UnitSystem.METRIC) == pytest.approx(1.0)

    def test_metric_is_identity(self):
        assert units.length(2.5, UnitSystem.METRIC) == 2.5
        assert units.area(12.0, UnitSystem.METRIC) == 12.0


class TestFormatting:
    def test_imperial_labels(self):
        m = RoomMeasurements(floor_area=123.456, perimeter=40.04, ceiling_height=8.0)
        assert units.format_measurements(m) == {
            "floor_area": "123.5 sq ft",
            "wall_area": "0.0 sq ft",
            "perimeter": "40.0 ft",
            "ceiling_height": "8.0 ft",
        }

    def test_metric_measurements(self):
        m = RoomMeasurements(floor_area=12.0, perimeter=14.0, unit_system=UnitSystem.METRIC)
        shown = units.format_measurements(m)
        assert shown["floor_area"] == "12.0 m²"
        assert shown["perimeter"] == "14.0 m"

    def test_metric_labels(self):
        assert units.format_area(12.0, UnitSystem.METRIC) == "12.0 m²"
        assert units.format_length(2.46, UnitSystem.METRIC) == "2.5 m"
