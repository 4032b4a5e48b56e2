"""Length units and sensor calibration.

Lengths are measured in pixels. A :class:`Calibration` holds the sensor's
pixel pitch (stored in microns per pixel) and converts pixel values to
microns, millimetres or metres.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Optional, Union

from .errors import InvalidUnitError, InvalidValueError, MissingCalibrationError


class Unit(str, Enum):
    PIXELS = "pixels"
    MICRONS = "microns"
    MILLI = "milli"
    METRES = "metres"


_ALIASES = {
    "pixels": Unit.PIXELS,
    "pixel": Unit.PIXELS,
    "px": Unit.PIXELS,
    "microns": Unit.MICRONS,
    "micron": Unit.MICRONS,
    "micrometers": Unit.MICRONS,
    "micrometres": Unit.MICRONS,
    "micronmetres": Unit.MICRONS,
    "um": Unit.MICRONS,
    "milli": Unit.MILLI,
    "mili": Unit.MILLI,
    "milimetres": Unit.MILLI,
    "milimeters": Unit.MILLI,
    "millimetres": Unit.MILLI,
    "millimeters": Unit.MILLI,
    "mm": Unit.MILLI,
    "metres": Unit.METRES,
    "meters": Unit.METRES,
    "m": Unit.METRES,
}

# Size of one micron in each physical unit.
_MICRON_SCALE = {
    Unit.MICRONS: 1.0,
    Unit.MILLI: 1e-3,
    Unit.METRES: 1e-6,
}

UnitLike = Union[Unit, str]


def parse_unit(token: Optional[UnitLike]) -> Unit:
    """Resolve a unit token (case-insensitive, aliases allowed)."""
    if isinstance(token, Unit):
        return token
    if not isinstance(token, str):
        raise InvalidUnitError(f"unit must be a string, got {token!r}")
    try:
        return _ALIASES[token.strip().lower()]
    except KeyError:
        raise InvalidUnitError(f"unknown unit {token!r}") from None


def _as_positive_float(value: object, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidValueError(f"{name} has to be a numeric value, got {value!r}")
    val = float(value)
    if not math.isfinite(val) or val <= 0:
        raise InvalidValueError(f"{name} has to be positive and finite, got {val!r}")
    return val


@dataclass
class Calibration:
    """Pixel pitch (microns per pixel) plus the default display unit."""

    pixel_pitch_um: Optional[float] = None
    unit: Unit = Unit.PIXELS

    @property
    def is_calibrated(self) -> bool:
        return self.pixel_pitch_um is not None

    def set_pixel_pitch(self, value: float, unit: UnitLike = Unit.MICRONS) -> None:
        u = parse_unit(unit)
        if u == Unit.PIXELS:
            raise InvalidUnitError("pixel pitch needs a physical unit (microns, milli or metres)")
        pitch = _as_positive_float(value, "pixel pitch")
        self.pixel_pitch_um = pitch / _MICRON_SCALE[u]

    def get_pixel_pitch(self, unit: UnitLike = Unit.MICRONS) -> float:
        u = parse_unit(unit)
        if u == Unit.PIXELS:
            raise InvalidUnitError("pixel pitch is only defined in physical units")
        return self.factor(u)

    def set_unit(self, unit: UnitLike) -> None:
        u = parse_unit(unit)
        if u != Unit.PIXELS and not self.is_calibrated:
            raise MissingCalibrationError(f"cannot display in {u.value}: pixel pitch is not set")
        self.unit = u

    def resolve(self, unit: Optional[UnitLike] = None) -> Unit:
        """Parse ``unit`` (display unit when None) and check it is usable."""
        u = self.unit if unit is None else parse_unit(unit)
        if u != Unit.PIXELS and not self.is_calibrated:
            raise MissingCalibrationError(f"cannot convert to {u.value}: pixel pitch is not set")
        return u

    def factor(self, unit: Optional[UnitLike] = None) -> float:
        """Length of one pixel expressed in ``unit``."""
        u = self.resolve(unit)
        if u == Unit.PIXELS:
            return 1.0
        return float(self.pixel_pitch_um) * _MICRON_SCALE[u]

    def convert(self, value_px: float, unit: Optional[UnitLike] = None) -> float:
        return float(value_px) * self.factor(unit)

    def convert_area(self, area_px: float, unit: Optional[UnitLike] = None) -> float:
        return float(area_px) * self.factor(unit) ** 2

    def to_pixels(self, value: float, unit: Optional[UnitLike] = None) -> float:
        return float(value) / self.factor(unit)
