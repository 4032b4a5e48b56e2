from __future__ import annotations

import numpy as np

from .errors import DegenerateImageError
from .models import Centroid


def compute_centroid(data: np.ndarray) -> Centroid:
    """Intensity-weighted centre of mass over the whole (thresholded) image.

    Coordinates are 1-based: the first column / row is 1.
    """
    weights = np.asarray(data, dtype=np.float64)
    h, w = weights.shape
    row_sums = weights.sum(axis=1, dtype=np.float64)
    col_sums = weights.sum(axis=0, dtype=np.float64)
    total = float(row_sums.sum(dtype=np.float64))
    if not np.isfinite(total) or total <= 0.0:
        raise DegenerateImageError("total intensity is zero after thresholding; centroid undefined")

    x_idx = np.arange(1, w + 1, dtype=np.float64)
    y_idx = np.arange(1, h + 1, dtype=np.float64)

    cx = float(np.dot(col_sums, x_idx) / total)
    cy = float(np.dot(row_sums, y_idx) / total)
    return Centroid(x=cx, y=cy)
