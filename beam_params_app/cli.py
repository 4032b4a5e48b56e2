"""Command line entry points.

Useful for batch automation without writing Python.

Examples
--------
Single image:
    python -m beam_params_app.cli beam.tif --pixel-pitch 5.2 --units mm --out results.xlsx

Folder (batch):
    python -m beam_params_app.cli /path/to/folder --batch --pixel-pitch 5.2 --out summary.xlsx
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from .analysis import BeamParameters
from .config import AnalysisConfig
from .errors import BeamParametersError
from .export import export_report_csv, export_report_excel, report_row, summary_stats
from .image_io import IMAGE_SUFFIXES, read_image
from .models import REPORT_FIELDS, BeamMetricsReport
from .report import generate_pdf_report
from .units import parse_unit


def _parse_unit_arg(s: str) -> str:
    try:
        return parse_unit(s).value
    except BeamParametersError:
        raise argparse.ArgumentTypeError(f"Unknown unit: {s}")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description='Beam parameters (centroid, widths, diameter, top-hat) from images')
    ap.add_argument('path', help='Path to an image file or folder')
    ap.add_argument('--batch', action='store_true', help='Treat path as folder and analyze all images inside')
    ap.add_argument('--config', type=str, default=None, help='JSON config file with analysis defaults')
    ap.add_argument('--pixel-pitch', type=float, default=None, help='Sensor pixel pitch')
    ap.add_argument('--pitch-unit', type=_parse_unit_arg, default='microns', help='Unit of --pixel-pitch')
    ap.add_argument('--units', type=_parse_unit_arg, default=None, help='Output unit for lengths and areas')
    ap.add_argument('--roi', type=float, nargs=4, metavar=('XMIN', 'YMIN', 'WIDTH', 'HEIGHT'), default=None,
                    help='Region of interest (1-based, inclusive)')
    ap.add_argument('--roi-unit', type=_parse_unit_arg, default='pixels', help='Unit of --roi values')

    thr = ap.add_mutually_exclusive_group()
    thr.add_argument('--threshold', type=float, default=None, help='Absolute intensity threshold (>= 0)')
    thr.add_argument('--threshold-fraction', type=float, default=None,
                     help='Threshold as fraction of the noise-to-peak range, [0, 0.5]')

    ap.add_argument('--sample-fraction', type=float, default=None,
                    help='Fraction of samples averaged for noise floor / peak, [0, 0.5]')
    ap.add_argument('--beam-band', type=float, nargs=2, metavar=('BOTTOM', 'TOP'), default=None,
                    help='Bottom [0, 0.5] and top [0.5, 1] band fractions')
    ap.add_argument('--strict-bands', action='store_true', help='Fail when any intensity band is empty')
    ap.add_argument('--out', type=str, default='results.xlsx', help='Output .xlsx or .csv path')
    ap.add_argument('--report', type=str, default=None, help='Write a PDF report (single image only)')
    ap.add_argument('-v', '--verbose', action='count', default=0, help='-v for INFO, -vv for DEBUG logging')
    return ap


def _beam_kwargs(args: argparse.Namespace) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    if args.units is not None:
        kwargs['unit'] = args.units
    if args.threshold is not None:
        kwargs['threshold'] = args.threshold
    if args.threshold_fraction is not None:
        kwargs['threshold_fraction'] = args.threshold_fraction
    if args.sample_fraction is not None:
        kwargs['sample_fraction'] = args.sample_fraction
    if args.beam_band is not None:
        kwargs['beam_band'] = tuple(args.beam_band)
    return kwargs


def analyze_file(path: Path, args: argparse.Namespace, cfg: AnalysisConfig) -> BeamMetricsReport:
    bp = BeamParameters(read_image(path), config=cfg)
    if args.pixel_pitch is not None:
        bp.set_pixel_pitch(args.pixel_pitch, args.pitch_unit)
    if args.roi is not None:
        bp.set_roi(tuple(args.roi), unit=args.roi_unit)
    report = bp.get_beam_parameters(strict_bands=args.strict_bands, **_beam_kwargs(args))
    if args.report:
        out = generate_pdf_report(bp, report, args.report, title=path.name)
        print(f"Wrote {out}")
    return report


def _write_table(df: pd.DataFrame, out_path: Path, stats_df: Optional[pd.DataFrame] = None) -> None:
    if out_path.suffix.lower() == '.csv':
        df.to_csv(out_path, index=False)
        return
    with pd.ExcelWriter(out_path, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name='summary')
        if stats_df is not None and not stats_df.empty:
            stats_df.to_excel(writer, index=False, sheet_name='stats')


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose > 1 else logging.INFO,
            format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        )

    cfg = AnalysisConfig.load(Path(args.config).expanduser()) if args.config else AnalysisConfig()
    p = Path(args.path).expanduser().resolve()
    out_path = Path(args.out).expanduser().resolve()

    if not args.batch:
        try:
            report = analyze_file(p, args, cfg)
        except (BeamParametersError, RuntimeError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2

        settings = {'image': str(p), **{k: str(v) for k, v in _beam_kwargs(args).items()}}
        if out_path.suffix.lower() == '.csv':
            export_report_csv(report, out_path)
        else:
            export_report_excel(report, out_path, settings=settings)
        print(f"Wrote {out_path}")
        return 0

    # Batch
    if args.report:
        raise SystemExit("--report is only supported for a single image")
    files = sorted([x for x in p.rglob('*') if x.is_file() and x.suffix.lower() in IMAGE_SUFFIXES])
    if not files:
        raise SystemExit(f"No images found in {p}")

    rows = []
    for f in files:
        try:
            row = report_row(analyze_file(f, args, cfg))
            rows.append({'file': str(f.relative_to(p)), 'status': 'OK', 'error': '', **row})
        except (BeamParametersError, RuntimeError) as e:
            rows.append({'file': str(f.relative_to(p)), 'status': 'ERR', 'error': str(e)})

    out_df = pd.DataFrame(rows)
    _write_table(out_df, out_path, summary_stats(out_df, REPORT_FIELDS.values()))
    print(f"Wrote {out_path}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
