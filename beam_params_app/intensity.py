"""Noise floor / peak estimation and thresholding.

The noise floor and peak are the means of the lowest and highest
``sample_fraction`` of all samples, which is far less sensitive to hot or
dead pixels than the single min / max.
"""

from __future__ import annotations

import logging
import math
from numbers import Real
from typing import Optional

import numpy as np

from .errors import InvalidParameterError
from .models import IntensityRange

logger = logging.getLogger(__name__)


def check_fraction(name: str, value: object, lo: float = 0.0, hi: float = 0.5) -> float:
    """Validate a fraction against ``[lo, hi]`` and return it as float."""
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidParameterError(f"{name} has to be numeric, got {value!r}")
    val = float(value)
    if not math.isfinite(val) or val < lo or val > hi:
        raise InvalidParameterError(f"{name} {val!r} invalid. Value = [{lo:g},{hi:g}].")
    return val


def estimate_range(image: np.ndarray, sample_fraction: float = 0.001) -> IntensityRange:
    """Average the extreme ``sample_fraction`` of the sorted samples.

    ``n = round(sample_fraction * N)`` samples are averaged at each end, with
    a floor of one sample so that ``sample_fraction = 0`` gives the plain
    minimum and maximum.
    """
    frac = check_fraction("sample fraction", sample_fraction)

    values = np.sort(np.asarray(image, dtype=np.float64), axis=None)
    if values.size == 0:
        raise InvalidParameterError("cannot estimate an intensity range of an empty image")

    n = max(1, int(round(frac * values.size)))
    noise_floor = float(values[:n].mean())
    peak_level = float(values[-n:].mean())
    logger.debug("Intensity range from %d samples: floor=%.6g peak=%.6g", n, noise_floor, peak_level)
    return IntensityRange(noise_floor=noise_floor, peak_level=peak_level, sample_count=n)


def derive_threshold(
    intensity_range: IntensityRange,
    fraction: Optional[float] = 0.1,
    *,
    absolute: Optional[float] = None,
) -> float:
    """Threshold level: ``absolute`` when given, else a fraction of the range."""
    if absolute is not None:
        if isinstance(absolute, bool) or not isinstance(absolute, Real):
            raise InvalidParameterError(f"threshold has to be numeric, got {absolute!r}")
        thr = float(absolute)
        if not math.isfinite(thr) or thr < 0:
            raise InvalidParameterError(f"threshold {thr!r} invalid. Value >= 0.")
        return thr

    if fraction is None:
        raise InvalidParameterError("either a threshold fraction or an absolute threshold is required")
    frac = check_fraction("threshold fraction", fraction)
    return intensity_range.level(frac)


def apply_threshold(image: np.ndarray, threshold: float) -> np.ndarray:
    """Copy of ``image`` with every sample below ``threshold`` set to zero."""
    data = np.array(image, dtype=np.float64, copy=True)
    data[data < threshold] = 0.0
    return data
