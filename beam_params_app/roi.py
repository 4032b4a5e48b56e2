"""Region-of-interest resolution.

A ROI can be given as a ``(xmin, ymin, width, height)`` tuple or as any
subset of keyed fields. Fields are converted to pixels first, then combined
per axis:

- ``xmin`` + ``width``   -> ``xmax = xmin + width - 1``
- ``xcentre`` + ``width`` -> ``xmin/xmax = xcentre -/+ width / 2``, clamped
  to the frame (with a warning, not an error)
- fields that are not given keep their current value

The result is validated before it replaces the current ROI, so a rejected
request never leaves a half-updated rectangle behind.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields
from numbers import Real
from typing import Optional, Sequence, Tuple

from .errors import InvalidRoiError, InvalidValueError, MissingInputError
from .models import RoiRect
from .units import Calibration, Unit, UnitLike, parse_unit

logger = logging.getLogger(__name__)

_KEY_ALIASES = {
    "xcenter": "xcentre",
    "ycenter": "ycentre",
}


@dataclass
class RoiSpec:
    xmin: Optional[float] = None
    xmax: Optional[float] = None
    ymin: Optional[float] = None
    ymax: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    xcentre: Optional[float] = None
    ycentre: Optional[float] = None
    unit: UnitLike = Unit.PIXELS

    @classmethod
    def from_rect(cls, rect: Sequence[float], unit: UnitLike = Unit.PIXELS) -> "RoiSpec":
        """Build from ``(xmin, ymin, width, height)``."""
        if isinstance(rect, (str, bytes)) or not hasattr(rect, "__len__") or len(rect) != 4:
            raise InvalidRoiError(f"roi vector must have 4 elements (xmin, ymin, width, height), got {rect!r}")
        xmin, ymin, width, height = rect
        return cls(xmin=xmin, ymin=ymin, width=width, height=height, unit=unit)

    @classmethod
    def from_keys(cls, **kwargs) -> "RoiSpec":
        known = {f.name for f in fields(cls)}
        data = {}
        for key, val in kwargs.items():
            name = _KEY_ALIASES.get(key.lower(), key.lower())
            if name not in known:
                raise InvalidRoiError(f"unknown roi field {key!r}")
            data[name] = val
        return cls(**data)

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in _LENGTH_FIELDS)


_LENGTH_FIELDS = ("xmin", "xmax", "ymin", "ymax", "width", "height", "xcentre", "ycentre")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _check_number(name: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidValueError(f"{name} has to be a numeric value, got {value!r}")
    val = float(value)
    if not math.isfinite(val):
        raise InvalidValueError(f"{name} has to be finite, got {val!r}")
    return val


def _resolve_axis(
    axis: str,
    *,
    lo: Optional[float],
    hi: Optional[float],
    size: Optional[float],
    centre: Optional[float],
    dim: int,
    current: Tuple[int, int],
) -> Tuple[int, int]:
    lo_name, hi_name = f"{axis}min", f"{axis}max"
    size_name = "width" if axis == "x" else "height"
    centre_name = f"{axis}centre"

    if size is not None and (size < 1 or size > dim):
        raise InvalidRoiError(f"{size_name} {size:g} outside [1, {dim}]")

    if centre is not None:
        if size is None:
            raise MissingInputError(f"{centre_name} needs {size_name}")
        if centre < 1 or centre > dim:
            raise InvalidRoiError(f"{centre_name} {centre:g} outside [1, {dim}]")
        lo = centre - size / 2.0
        hi = centre + size / 2.0
        if lo < 1:
            logger.warning("%s %.6g < 1, corrected to 1", lo_name, lo)
            lo = 1.0
        if hi > dim:
            logger.warning("%s %.6g > %d, corrected to %d", hi_name, hi, dim, dim)
            hi = float(dim)
    else:
        if lo is None:
            lo = float(current[0])
        if size is not None:
            derived = lo + size - 1
            if hi is not None and _round_half_up(hi) != _round_half_up(derived):
                raise InvalidRoiError(
                    f"{hi_name} {hi:g} disagrees with {lo_name} + {size_name} - 1 = {derived:g}"
                )
            hi = derived
        elif hi is None:
            hi = float(current[1])

    lo_i = _round_half_up(lo)
    hi_i = _round_half_up(hi)
    if lo_i < 1 or hi_i > dim or lo_i > hi_i:
        raise InvalidRoiError(f"{lo_name}={lo_i}, {hi_name}={hi_i} outside 1 <= {lo_name} <= {hi_name} <= {dim}")
    return lo_i, hi_i


def resolve_roi(
    spec: RoiSpec,
    shape: Tuple[int, int],
    current: RoiRect,
    calibration: Calibration,
) -> RoiRect:
    """Turn ``spec`` into a validated pixel rectangle for an image of ``shape``."""
    unit = calibration.resolve(parse_unit(spec.unit))

    px = {}
    for name in _LENGTH_FIELDS:
        raw = getattr(spec, name)
        if raw is None:
            px[name] = None
            continue
        px[name] = calibration.to_pixels(_check_number(name, raw), unit)

    h, w = shape
    xmin, xmax = _resolve_axis(
        "x",
        lo=px["xmin"],
        hi=px["xmax"],
        size=px["width"],
        centre=px["xcentre"],
        dim=int(w),
        current=(current.xmin, current.xmax),
    )
    ymin, ymax = _resolve_axis(
        "y",
        lo=px["ymin"],
        hi=px["ymax"],
        size=px["height"],
        centre=px["ycentre"],
        dim=int(h),
        current=(current.ymin, current.ymax),
    )

    roi = RoiRect(xmin=xmin, xmax=xmax, ymin=ymin, ymax=ymax)
    logger.debug("Resolved ROI %s from %s", roi, spec)
    return roi
