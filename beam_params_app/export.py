"""Export utilities (CSV, Excel)."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Optional, Union

import pandas as pd

from .models import BeamMetricsReport


def report_row(report: BeamMetricsReport) -> Dict[str, object]:
    """Flat dict: published metric names first, then bookkeeping fields."""
    row: Dict[str, object] = dict(report.as_dict())
    row.update(report.details())
    if report.roi is not None:
        xmin, ymin, width, height = report.roi.as_tuple()
        row.update({'roi_xmin_px': xmin, 'roi_ymin_px': ymin, 'roi_width_px': width, 'roi_height_px': height})
    return row


def report_to_dataframe(report: BeamMetricsReport) -> pd.DataFrame:
    return pd.DataFrame([report_row(report)])


def reports_to_dataframe(reports: Iterable[BeamMetricsReport]) -> pd.DataFrame:
    return pd.DataFrame([report_row(r) for r in reports])


def settings_dataframe(settings: Dict[str, object]) -> pd.DataFrame:
    return pd.DataFrame([{'setting': k, 'value': v} for k, v in settings.items()])


def export_report_csv(report: BeamMetricsReport, out_path: Union[str, Path]) -> Path:
    out = Path(out_path).expanduser().resolve()
    report_to_dataframe(report).to_csv(out, index=False)
    return out


def export_report_excel(
    report: BeamMetricsReport,
    out_path: Union[str, Path],
    *,
    settings: Optional[Dict[str, object]] = None,
) -> Path:
    """Write a workbook with the metrics (``summary``) and the options used (``settings``)."""
    out = Path(out_path).expanduser().resolve()

    with pd.ExcelWriter(out, engine='openpyxl') as writer:
        report_to_dataframe(report).to_excel(writer, index=False, sheet_name='summary')
        if settings:
            settings_dataframe(settings).to_excel(writer, index=False, sheet_name='settings')

    return out


def summary_stats(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """count / mean / std / min / median / max for each numeric column present."""
    rows = []
    for col in columns:
        if col not in df.columns:
            continue
        s = pd.to_numeric(df[col], errors='coerce').dropna()
        if s.empty:
            continue
        rows.append(
            {
                'metric': col,
                'count': int(s.count()),
                'mean': float(s.mean()),
                'std': float(s.std(ddof=1)) if len(s) > 1 else 0.0,
                'min': float(s.min()),
                'median': float(s.median()),
                'max': float(s.max()),
            }
        )
    return pd.DataFrame(rows)
