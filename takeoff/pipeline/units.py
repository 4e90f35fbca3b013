"""Scalar unit conversions between sensor metres and display units."""

from __future__ import annotations

from takeoff.core.types import RoomMeasurements, UnitSystem

METERS_TO_FEET = 3.28084
METERS_SQUARED_TO_FEET_SQUARED = 10.7639
INCHES_PER_FOOT = 12.0
METERS_PER_INCH = 0.0254


def meters_to_feet(x: float) -> float:
    return x * METERS_TO_FEET


def meters_squared_to_feet_squared(x: float) -> float:
    return x * METERS_SQUARED_TO_FEET_SQUARED


def feet_to_inches(x: float) -> float:
    return x * INCHES_PER_FOOT


def meters_to_inches(x: float) -> float:
    return x / METERS_PER_INCH


def length(meters: float, unit_system: UnitSystem = UnitSystem.IMPERIAL) -> float:
    """Convert a sensor length (metres) to the display unit system."""
    if unit_system is UnitSystem.IMPERIAL:
        return meters_to_feet(meters)
    return meters


def area(square_meters: float, unit_system: UnitSystem = UnitSystem.IMPERIAL) -> float:
    """Convert a sensor area (m²) to the display unit system."""
    if unit_system is UnitSystem.IMPERIAL:
        return meters_squared_to_feet_squared(square_meters)
    return square_meters


def to_inches(display_length: float, unit_system: UnitSystem = UnitSystem.IMPERIAL) -> float:
    """Convert a display-unit length to inches (the quantity sheet's opening unit)."""
    if unit_system is UnitSystem.IMPERIAL:
        return feet_to_inches(display_length)
    return meters_to_inches(display_length)


def length_label(unit_system: UnitSystem = UnitSystem.IMPERIAL) -> str:
    return "ft" if unit_system is UnitSystem.IMPERIAL else "m"


def area_label(unit_system: UnitSystem = UnitSystem.IMPERIAL) -> str:
    return "sq ft" if unit_system is UnitSystem.IMPERIAL else "m²"


def format_length(value: float, unit_system: UnitSystem = UnitSystem.IMPERIAL) -> str:
    return f"{value:.1f} {length_label(unit_system)}"


def format_area(value: float, unit_system: UnitSystem = UnitSystem.IMPERIAL) -> str:
    return f"{value:.1f} {area_label(unit_system)}"


def format_measurements(measurements: RoomMeasurements) -> dict[str, str]:
    """Display strings for the headline figures, in their own unit system."""
    system = measurements.unit_system
    return {
        "floor_area": format_area(measurements.floor_area, system),
        "wall_area": format_area(measurements.wall_area, system),
        "perimeter": format_length(measurements.perimeter, system),
        "ceiling_height": format_length(measurements.ceiling_height, system),
    }
