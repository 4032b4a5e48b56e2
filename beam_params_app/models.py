from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Dict, Optional, Tuple

from .units import Unit


@dataclass(frozen=True)
class RoiRect:
    """Region of interest in pixels, 1-based and inclusive on both ends."""

    xmin: int
    xmax: int
    ymin: int
    ymax: int

    @property
    def width(self) -> int:
        return self.xmax - self.xmin + 1

    @property
    def height(self) -> int:
        return self.ymax - self.ymin + 1

    @classmethod
    def full_frame(cls, shape: Tuple[int, int]) -> "RoiRect":
        h, w = shape
        return cls(xmin=1, xmax=int(w), ymin=1, ymax=int(h))

    def slices(self) -> Tuple[slice, slice]:
        """(rows, cols) slices selecting this ROI from a 0-based array."""
        return slice(self.ymin - 1, self.ymax), slice(self.xmin - 1, self.xmax)

    def as_tuple(self) -> Tuple[int, int, int, int]:
        """(xmin, ymin, width, height)"""
        return self.xmin, self.ymin, self.width, self.height


@dataclass(frozen=True)
class IntensityRange:
    """Noise floor and peak level estimated from the sorted samples."""

    noise_floor: float
    peak_level: float
    sample_count: int

    @property
    def span(self) -> float:
        return self.peak_level - self.noise_floor

    def level(self, fraction: float) -> float:
        return self.noise_floor + float(fraction) * self.span


@dataclass(frozen=True)
class Centroid:
    # Pixels, 1-based (column, row)
    x: float
    y: float


@dataclass
class CentroidOptions:
    threshold_fraction: float = 0.1
    sample_fraction: float = 0.001
    unit: Optional[str] = None


@dataclass
class BeamParameterOptions:
    unit: Optional[str] = None
    threshold_fraction: float = 0.1
    # Absolute threshold; overrides threshold_fraction when set
    threshold: Optional[float] = None
    sample_fraction: float = 0.001
    beam_band: Tuple[float, float] = (0.1, 0.9)


# Report attribute -> published field name
REPORT_FIELDS: Dict[str, str] = {
    "centroid_width": "CentroidWidth",
    "centroid_height": "CentroidHeight",
    "intensity_total": "IntensityTotal",
    "intensity_bottom": "IntensityBottom",
    "intensity_centre": "IntensityCentre",
    "intensity_top": "IntensityTop",
    "area": "Area",
    "diameter": "Diameter",
    "bottom_width_centroid": "BottomWidthCentroid",
    "fwhm_width_centroid": "FWHMWidthCentroid",
    "bottom_height_centroid": "BottomHeightCentroid",
    "fwhm_height_centroid": "FWHMHeightCentroid",
    "top_hat_like": "TopHatLike",
}


@dataclass(frozen=True)
class BeamMetricsReport:
    """Beam metrics for one image. Lengths and areas are in ``unit``."""

    centroid_width: float
    centroid_height: float

    # Mean intensity of all beam pixels and of each band
    intensity_total: float
    intensity_bottom: Optional[float]
    intensity_centre: Optional[float]
    intensity_top: float

    area: float
    diameter: float

    bottom_width_centroid: float
    fwhm_width_centroid: float
    bottom_height_centroid: float
    fwhm_height_centroid: float

    top_hat_like: float

    # Bookkeeping
    unit: Unit = Unit.PIXELS
    threshold: float = 0.0
    noise_floor: float = 0.0
    peak_level: float = 0.0
    pixel_count: int = 0
    count_bottom: int = 0
    count_centre: int = 0
    count_top: int = 0
    fwhm_pixel_count: int = 0
    roi: Optional[RoiRect] = field(default=None, compare=False)

    def as_dict(self) -> Dict[str, float]:
        """Metrics keyed by their published CamelCase names."""
        return {name: getattr(self, attr) for attr, name in REPORT_FIELDS.items()}

    def details(self) -> Dict[str, object]:
        out: Dict[str, object] = {}
        for f in fields(self):
            if f.name in REPORT_FIELDS or f.name == "roi":
                continue
            val = getattr(self, f.name)
            out[f.name] = val.value if isinstance(val, Unit) else val
        return out
