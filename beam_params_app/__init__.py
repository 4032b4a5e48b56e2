"""Beam parameters (centroid, widths, diameter, top-hat factor) from a single image.

This project is intentionally lightweight: numpy for the measurements,
pandas / openpyxl / matplotlib only for exporting results.
"""

from .analysis import BeamParameters, compute_report, classify_bands
from .centroid import compute_centroid
from .config import AnalysisConfig
from .errors import BeamParametersError, ErrorKind
from .intensity import apply_threshold, derive_threshold, estimate_range
from .models import (
    BeamMetricsReport,
    BeamParameterOptions,
    Centroid,
    CentroidOptions,
    IntensityRange,
    RoiRect,
)
from .roi import RoiSpec, resolve_roi
from .units import Calibration, Unit, parse_unit
