"""Single-image report generation (PDF)."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.figure import Figure
from matplotlib.patches import Rectangle

from .analysis import BeamParameters, centroid_profiles
from .image_io import downsample_max_dim
from .models import REPORT_FIELDS, BeamMetricsReport

_LENGTH_FIELDS = {
    "centroid_width",
    "centroid_height",
    "diameter",
    "bottom_width_centroid",
    "fwhm_width_centroid",
    "bottom_height_centroid",
    "fwhm_height_centroid",
}


def _metric_rows(report: BeamMetricsReport) -> List[Tuple[str, str]]:
    unit = report.unit.value
    rows: List[Tuple[str, str]] = []
    for attr, name in REPORT_FIELDS.items():
        val = getattr(report, attr)
        text = "empty band" if val is None else f"{val:.6g}"
        if attr in _LENGTH_FIELDS:
            name = f"{name} ({unit})"
        elif attr == "area":
            name = f"{name} ({unit}²)"
        rows.append((name, text))
    rows.extend(
        [
            ("Threshold", f"{report.threshold:.6g}"),
            ("Noise floor", f"{report.noise_floor:.6g}"),
            ("Peak level", f"{report.peak_level:.6g}"),
            ("Beam pixels", str(report.pixel_count)),
            ("Pixels >= half max", str(report.fwhm_pixel_count)),
        ]
    )
    return rows


def _plot_image(ax, bp: BeamParameters, *, max_dim: int) -> None:
    h, w = bp.shape
    preview = downsample_max_dim(bp.image, max_dim)
    # 1-based pixel centres
    ax.imshow(preview, cmap="gray", extent=(0.5, w + 0.5, h + 0.5, 0.5), interpolation="nearest")

    roi = bp.roi
    ax.add_patch(
        Rectangle(
            (roi.xmin - 0.5, roi.ymin - 0.5),
            roi.width,
            roi.height,
            fill=False,
            edgecolor="tab:orange",
            linewidth=1.2,
            label="ROI",
        )
    )
    if bp.centroid is not None:
        ax.plot([bp.centroid.x], [bp.centroid.y], "+", color="tab:red", markersize=12, label="Centroid")
    ax.set_xlabel("x (px)")
    ax.set_ylabel("y (px)")
    ax.legend(fontsize=8, loc="upper right")
    ax.set_title("Beam image")


def _plot_profiles(ax, bp: BeamParameters, report: BeamMetricsReport, data: np.ndarray) -> None:
    if bp.centroid is None:
        ax.text(0.5, 0.5, "No centroid available", ha="center", va="center")
        return

    roi = bp.roi
    horizontal, vertical = centroid_profiles(data, roi, bp.centroid)
    ax.plot(np.arange(roi.xmin, roi.xmax + 1), horizontal, "-", label="Row through centroid")
    ax.plot(np.arange(roi.ymin, roi.ymax + 1), vertical, "-", label="Column through centroid")
    ax.axhline(report.intensity_top / 2.0, color="black", linestyle="--", linewidth=0.8, label="Half maximum")
    ax.set_xlabel("Position (px)")
    ax.set_ylabel("Intensity (thresholded)")
    ax.grid(True)
    ax.legend(fontsize=8)
    ax.set_title("Centroid Profiles")


def generate_pdf_report(
    bp: BeamParameters,
    report: BeamMetricsReport,
    pdf_path: Union[str, Path],
    *,
    title: Optional[str] = None,
    image_max_dim: int = 512,
) -> Path:
    """One A4 page: image with ROI and centroid, centroid profiles, metrics table."""
    pdf_out = Path(pdf_path).expanduser().resolve()
    pdf_out.parent.mkdir(parents=True, exist_ok=True)

    data, _, _ = bp.thresholded(threshold=report.threshold)

    fig = Figure(figsize=(8.27, 11.69))
    fig.suptitle(title or "Beam Parameters Report", fontsize=16, weight="bold", y=0.98)
    gs = fig.add_gridspec(3, 1, height_ratios=[1.5, 1.0, 1.3], hspace=0.35)
    ax_img = fig.add_subplot(gs[0, 0])
    ax_prof = fig.add_subplot(gs[1, 0])
    ax_table = fig.add_subplot(gs[2, 0])

    _plot_image(ax_img, bp, max_dim=image_max_dim)
    _plot_profiles(ax_prof, bp, report, data)

    ax_table.axis("off")
    table = ax_table.table(
        cellText=[[label, value] for label, value in _metric_rows(report)],
        colLabels=["Metric", "Value"],
        cellLoc="left",
        colLoc="left",
        loc="center",
    )
    table.auto_set_font_size(False)
    table.set_fontsize(8.5)
    table.scale(1.0, 1.2)

    with PdfPages(pdf_out) as pdf:
        pdf.savefig(fig)

    return pdf_out
