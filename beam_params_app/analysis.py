"""Beam metrics from a single calibrated grayscale image.

Pipeline for :meth:`BeamParameters.get_beam_parameters`:

1. noise floor / peak from the extreme samples of the full image
2. centroid of the full image thresholded with the centroid defaults
   (computed once per instance, independent of this call's threshold)
3. threshold -> working copy with sub-threshold samples zeroed
4. band levels: bottom, top and half-maximum, as fractions of the range
5. one classification pass over the ROI: bottom / centre / top bands
6. band mean intensities, area, equivalent-circle diameter
7. bottom widths: first / last non-zero sample on the centroid row / column
8. FWHM widths: same scans at half of the mean top-band intensity
9. top-hat factor: total intensity over ``count * mean(top band)``

The source image is never modified; every stage works on copies.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .centroid import compute_centroid
from .config import AnalysisConfig
from .errors import (
    EmptyBandError,
    InvalidParameterError,
    InvalidRoiError,
    InvalidValueError,
    MissingInputError,
)
from .intensity import apply_threshold, check_fraction, derive_threshold, estimate_range
from .models import (
    BeamMetricsReport,
    BeamParameterOptions,
    Centroid,
    CentroidOptions,
    IntensityRange,
    RoiRect,
)
from .roi import RoiSpec, resolve_roi
from .units import Calibration, Unit, UnitLike, parse_unit

logger = logging.getLogger(__name__)


# ----------------------- Band classification -----------------------

@dataclass
class BandStats:
    """Pixel counts and intensity sums per band (ROI only)."""

    count_bottom: int
    count_centre: int
    count_top: int
    sum_bottom: float
    sum_centre: float
    sum_top: float

    # Pixels at or above the half-maximum level
    count_fwhm: int

    @property
    def count_total(self) -> int:
        return self.count_bottom + self.count_centre + self.count_top

    @property
    def sum_total(self) -> float:
        return self.sum_bottom + self.sum_centre + self.sum_top


def classify_bands(
    data: np.ndarray,
    *,
    threshold: float,
    bottom_level: float,
    top_level: float,
    half_max_level: float,
) -> BandStats:
    """Sort the non-zero samples of ``data`` into bottom / centre / top bands.

    bottom: ``threshold < v <= bottom_level``
    top:    ``v >= top_level``
    centre: ``bottom_level < v < top_level``
    """
    v = np.asarray(data, dtype=np.float64)
    nonzero = v > 0

    bottom = nonzero & (v > threshold) & (v <= bottom_level)
    top = nonzero & (v >= top_level)
    centre = nonzero & (v > bottom_level) & (v < top_level)
    fwhm = nonzero & (v >= half_max_level)

    return BandStats(
        count_bottom=int(np.count_nonzero(bottom)),
        count_centre=int(np.count_nonzero(centre)),
        count_top=int(np.count_nonzero(top)),
        sum_bottom=float(v[bottom].sum()),
        sum_centre=float(v[centre].sum()),
        sum_top=float(v[top].sum()),
        count_fwhm=int(np.count_nonzero(fwhm)),
    )


def _band_mean(name: str, total: float, count: int, *, strict: bool) -> Optional[float]:
    if count > 0:
        return total / count
    if strict:
        raise EmptyBandError(f"{name} band contains no pixels; mean intensity undefined")
    return None


# ----------------------- Edge scans -----------------------

def _nearest_index(coord: float, size: int) -> int:
    """Nearest 1-based index to ``coord``, kept inside ``[1, size]``."""
    idx = int(math.floor(coord + 0.5))
    return min(max(idx, 1), size)


def edge_span(profile: np.ndarray, level: float) -> int:
    """Distance between the first and last sample of ``profile`` above ``level``.

    Returns 0 when no sample exceeds ``level``.
    """
    above = np.flatnonzero(np.asarray(profile) > level)
    if above.size == 0:
        return 0
    return int(above[-1] - above[0])


def centroid_profiles(data: np.ndarray, roi: RoiRect, centroid: Centroid) -> Tuple[np.ndarray, np.ndarray]:
    """ROI-limited row through the centroid and column through the centroid."""
    h, w = data.shape
    row = _nearest_index(centroid.y, h)
    col = _nearest_index(centroid.x, w)
    horizontal = data[row - 1, roi.xmin - 1:roi.xmax]
    vertical = data[roi.ymin - 1:roi.ymax, col - 1]
    return horizontal, vertical


# ----------------------- Report -----------------------

def _check_band(beam_band: Sequence[float]) -> Tuple[float, float]:
    if isinstance(beam_band, (str, bytes)) or not hasattr(beam_band, "__len__") or len(beam_band) != 2:
        raise InvalidParameterError(f"beam band has to be a (bottom, top) pair, got {beam_band!r}")
    bottom = check_fraction("beam bottom", beam_band[0], 0.0, 0.5)
    top = check_fraction("beam top", beam_band[1], 0.5, 1.0)
    return bottom, top


def compute_report(
    data: np.ndarray,
    *,
    intensity_range: IntensityRange,
    threshold: float,
    centroid: Centroid,
    roi: RoiRect,
    calibration: Calibration,
    unit: Unit,
    beam_band: Tuple[float, float] = (0.1, 0.9),
    strict_bands: bool = False,
) -> BeamMetricsReport:
    """Build the metrics report from an already thresholded image.

    The total and top bands must be populated (the FWHM level and the
    top-hat factor depend on them). Empty bottom / centre bands are reported
    as ``None`` unless ``strict_bands`` is set; with ``strict_bands=True`` any
    empty band raises :class:`EmptyBandError` and no report is returned.
    """
    beam_bottom, beam_top = _check_band(beam_band)
    factor = calibration.factor(unit)

    bottom_level = intensity_range.level(beam_bottom)
    top_level = intensity_range.level(beam_top)
    half_max_level = intensity_range.level(0.5)
    logger.debug(
        "Band levels: threshold=%.6g bottom=%.6g top=%.6g half=%.6g",
        threshold,
        bottom_level,
        top_level,
        half_max_level,
    )

    rows, cols = roi.slices()
    stats = classify_bands(
        data[rows, cols],
        threshold=threshold,
        bottom_level=bottom_level,
        top_level=top_level,
        half_max_level=half_max_level,
    )

    count = stats.count_total
    if count == 0:
        raise EmptyBandError("no pixels above threshold inside the ROI")
    if stats.count_top == 0:
        raise EmptyBandError("top band contains no pixels; FWHM level and top-hat factor undefined")

    intensity_total = stats.sum_total / count
    intensity_top = stats.sum_top / stats.count_top
    intensity_bottom = _band_mean("bottom", stats.sum_bottom, stats.count_bottom, strict=strict_bands)
    intensity_centre = _band_mean("centre", stats.sum_centre, stats.count_centre, strict=strict_bands)

    area = calibration.convert_area(count, unit)
    diameter = 2.0 * math.sqrt(count / math.pi) * factor

    horizontal, vertical = centroid_profiles(data, roi, centroid)
    # Half of the mean top-band intensity, not half of the single peak sample
    half_maximum = intensity_top / 2.0

    return BeamMetricsReport(
        centroid_width=centroid.x * factor,
        centroid_height=centroid.y * factor,
        intensity_total=intensity_total,
        intensity_bottom=intensity_bottom,
        intensity_centre=intensity_centre,
        intensity_top=intensity_top,
        area=area,
        diameter=diameter,
        bottom_width_centroid=edge_span(horizontal, 0.0) * factor,
        fwhm_width_centroid=edge_span(horizontal, half_maximum) * factor,
        bottom_height_centroid=edge_span(vertical, 0.0) * factor,
        fwhm_height_centroid=edge_span(vertical, half_maximum) * factor,
        top_hat_like=stats.sum_total / (count * intensity_top),
        unit=unit,
        threshold=float(threshold),
        noise_floor=intensity_range.noise_floor,
        peak_level=intensity_range.peak_level,
        pixel_count=count,
        count_bottom=stats.count_bottom,
        count_centre=stats.count_centre,
        count_top=stats.count_top,
        fwhm_pixel_count=stats.count_fwhm,
        roi=roi,
    )


# ----------------------- Public entry point -----------------------

_AXES = {
    "horizontal": "horizontal",
    "h": "horizontal",
    "x": "horizontal",
    "width": "horizontal",
    "vertical": "vertical",
    "v": "vertical",
    "y": "vertical",
    "height": "vertical",
}


def _as_image(image) -> np.ndarray:
    if image is None:
        raise MissingInputError("image input missing")
    try:
        arr = np.array(image, dtype=np.float64, copy=True)
    except (TypeError, ValueError) as e:
        raise InvalidValueError(f"image is not a numeric array: {e}") from None
    if arr.ndim == 3 and arr.shape[2] in (3, 4):
        raise InvalidValueError("color image given; convert to grayscale first (image_io.to_grayscale)")
    if arr.ndim != 2 or arr.size == 0:
        raise InvalidValueError(f"image has to be a non-empty 2-D array, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise InvalidValueError("image contains non-finite samples")
    if np.any(arr < 0):
        raise InvalidValueError("image contains negative samples")
    arr.setflags(write=False)
    return arr


class BeamParameters:
    """Beam measurements on one grayscale image.

    >>> bp = BeamParameters(image)
    >>> bp.set_pixel_pitch(5.2, "microns")
    >>> report = bp.get_beam_parameters(unit="mm")
    """

    def __init__(self, image, *, config: Optional[AnalysisConfig] = None):
        self.image = _as_image(image)
        self.config = config if config is not None else AnalysisConfig()
        self.calibration = Calibration()
        if self.config.PIXEL_PITCH is not None:
            self.calibration.set_pixel_pitch(self.config.PIXEL_PITCH, self.config.PIXEL_PITCH_UNIT)
        self.calibration.set_unit(self.config.DISPLAY_UNIT)

        self._roi = RoiRect.full_frame(self.image.shape)
        self._centroid: Optional[Centroid] = None

    # Calibration

    @property
    def shape(self) -> Tuple[int, int]:
        return self.image.shape

    @property
    def units(self) -> Unit:
        return self.calibration.unit

    def set_units(self, unit: UnitLike) -> None:
        self.calibration.set_unit(unit)

    def set_pixel_pitch(self, value: float, unit: UnitLike = Unit.MICRONS) -> None:
        self.calibration.set_pixel_pitch(value, unit)

    def get_pixel_pitch(self, unit: UnitLike = Unit.MICRONS) -> float:
        return self.calibration.get_pixel_pitch(unit)

    def get_image_size(self, axis: str = "horizontal", unit: Optional[UnitLike] = None) -> float:
        key = _AXES.get(str(axis).lower()) if isinstance(axis, str) else None
        if key is None:
            raise InvalidParameterError(f"axis has to be 'horizontal' or 'vertical', got {axis!r}")
        h, w = self.image.shape
        return self.calibration.convert(w if key == "horizontal" else h, unit)

    # Region of interest

    @property
    def roi(self) -> RoiRect:
        return self._roi

    def set_roi(
        self,
        rect: Union[Sequence[float], RoiSpec, None] = None,
        *,
        unit: UnitLike = Unit.PIXELS,
        **fields,
    ) -> RoiRect:
        """Replace the ROI. Without arguments the ROI is reset to the full frame.

        ``rect`` is ``(xmin, ymin, width, height)`` or a :class:`RoiSpec`;
        alternatively pass any of ``xmin, xmax, ymin, ymax, width, height,
        xcentre, ycentre`` as keywords.
        """
        if rect is not None and fields:
            raise InvalidRoiError("give either a roi vector or keyed fields, not both")

        if isinstance(rect, RoiSpec):
            spec = rect
        elif rect is not None:
            spec = RoiSpec.from_rect(rect, unit=unit)
        else:
            spec = RoiSpec.from_keys(unit=unit, **fields)

        if spec.is_empty():
            # Still validates the unit token
            self.calibration.resolve(parse_unit(spec.unit))
            new_roi = RoiRect.full_frame(self.image.shape)
        else:
            new_roi = resolve_roi(spec, self.image.shape, self._roi, self.calibration)

        self._roi = new_roi
        logger.info(
            "ROI set to xmin=%d xmax=%d ymin=%d ymax=%d", new_roi.xmin, new_roi.xmax, new_roi.ymin, new_roi.ymax
        )
        return new_roi

    def get_roi(self, unit: Optional[UnitLike] = None) -> Tuple[float, float, float, float]:
        """(xmin, ymin, width, height) in ``unit`` (display unit by default)."""
        f = self.calibration.factor(unit)
        xmin, ymin, width, height = self._roi.as_tuple()
        return xmin * f, ymin * f, width * f, height * f

    # Measurements

    @property
    def centroid(self) -> Optional[Centroid]:
        """Cached centroid in pixels, or None before the first measurement."""
        return self._centroid

    def thresholded(
        self,
        *,
        threshold_fraction: Optional[float] = 0.1,
        threshold: Optional[float] = None,
        sample_fraction: float = 0.001,
    ) -> Tuple[np.ndarray, IntensityRange, float]:
        """Working copy with sub-threshold samples zeroed, plus the levels used."""
        rng = estimate_range(self.image, sample_fraction)
        thr = derive_threshold(rng, threshold_fraction, absolute=threshold)
        return apply_threshold(self.image, thr), rng, thr

    def _centroid_px(self, opts: Optional[CentroidOptions] = None) -> Centroid:
        """Cached centroid; the first call thresholds with ``opts`` (config defaults when None)."""
        if self._centroid is None:
            if opts is None:
                opts = self.config.centroid_options()
            data, _, _ = self.thresholded(
                threshold_fraction=opts.threshold_fraction,
                sample_fraction=opts.sample_fraction,
            )
            self._centroid = compute_centroid(data)
            logger.debug("Centroid cached at x=%.6g y=%.6g", self._centroid.x, self._centroid.y)
        return self._centroid

    def get_centroid(self, options: Optional[CentroidOptions] = None, **kwargs) -> Tuple[float, float]:
        """Centroid (x, y). Computed on first use, then reused for this image."""
        if options is not None and kwargs:
            raise InvalidParameterError("give either an options record or keyword options, not both")
        opts = options if options is not None else self.config.centroid_options(**kwargs)
        unit = self.calibration.resolve(opts.unit)

        if self._centroid is None:
            self._centroid_px(opts)
        else:
            # Parameters are still validated
            check_fraction("threshold fraction", opts.threshold_fraction)
            check_fraction("sample fraction", opts.sample_fraction)

        f = self.calibration.factor(unit)
        return self._centroid.x * f, self._centroid.y * f

    def get_beam_parameters(
        self,
        options: Optional[BeamParameterOptions] = None,
        *,
        strict_bands: bool = False,
        **kwargs,
    ) -> BeamMetricsReport:
        """Full beam metrics report over the current ROI."""
        if options is not None and kwargs:
            raise InvalidParameterError("give either an options record or keyword options, not both")
        opts = options if options is not None else self.config.beam_options(**kwargs)
        unit = self.calibration.resolve(opts.unit)
        _check_band(opts.beam_band)

        data, rng, thr = self.thresholded(
            threshold_fraction=opts.threshold_fraction,
            threshold=opts.threshold,
            sample_fraction=opts.sample_fraction,
        )
        # Independent of this call's threshold options
        centroid = self._centroid_px()

        report = compute_report(
            data,
            intensity_range=rng,
            threshold=thr,
            centroid=centroid,
            roi=self._roi,
            calibration=self.calibration,
            unit=unit,
            beam_band=opts.beam_band,
            strict_bands=strict_bands,
        )
        logger.info(
            "Beam parameters: diameter=%.6g %s, top-hat=%.4f, %d px",
            report.diameter,
            unit.value,
            report.top_hat_like,
            report.pixel_count,
        )
        return report
