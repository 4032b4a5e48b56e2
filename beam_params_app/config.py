"""Analysis defaults with simple JSON persistence."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

from .errors import InvalidParameterError
from .models import BeamParameterOptions, CentroidOptions

logger = logging.getLogger(__name__)


def _with_overrides(opts, overrides):
    try:
        return replace(opts, **overrides)
    except TypeError as e:
        raise InvalidParameterError(f"unknown option: {e}") from None


def _coerce(default: Any, raw: Any) -> Any:
    if isinstance(default, bool):
        return bool(raw)
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    if isinstance(default, str):
        return str(raw)
    return raw


@dataclass
class AnalysisConfig:
    # Sensor
    PIXEL_PITCH: Optional[float] = None
    PIXEL_PITCH_UNIT: str = "microns"

    # Output
    DISPLAY_UNIT: str = "pixels"

    # Beam measurement
    THRESHOLD_FRACTION: float = 0.1
    SAMPLE_FRACTION: float = 0.001
    BEAM_BOTTOM: float = 0.1
    BEAM_TOP: float = 0.9

    @staticmethod
    def default_path() -> Path:
        return Path.home() / ".beam_params_config.json"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "AnalysisConfig":
        cfg = cls()
        cfg_path = Path(path) if path is not None else cls.default_path()
        if not cfg_path.exists():
            return cfg

        try:
            data = json.loads(cfg_path.read_text())
        except Exception:
            logger.exception("Failed to read config file: %s", cfg_path)
            return cfg

        for f in fields(cfg):
            if f.name not in data:
                continue
            raw = data[f.name]
            try:
                if f.name == "PIXEL_PITCH":
                    val = None if raw is None else float(raw)
                else:
                    val = _coerce(getattr(cfg, f.name), raw)
                setattr(cfg, f.name, val)
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid config value for %s: %r", f.name, raw)

        cfg.normalize()
        return cfg

    def save(self, path: Optional[Path] = None) -> None:
        cfg_path = Path(path) if path is not None else self.default_path()
        cfg_path.write_text(json.dumps(asdict(self), indent=2, sort_keys=True))

    def normalize(self) -> None:
        self.THRESHOLD_FRACTION = min(max(self.THRESHOLD_FRACTION, 0.0), 0.5)
        self.SAMPLE_FRACTION = min(max(self.SAMPLE_FRACTION, 0.0), 0.5)
        if self.BEAM_BOTTOM > self.BEAM_TOP:
            self.BEAM_BOTTOM, self.BEAM_TOP = self.BEAM_TOP, self.BEAM_BOTTOM
        self.BEAM_BOTTOM = min(max(self.BEAM_BOTTOM, 0.0), 0.5)
        self.BEAM_TOP = min(max(self.BEAM_TOP, 0.5), 1.0)
        if self.PIXEL_PITCH is not None and self.PIXEL_PITCH <= 0:
            logger.warning("Ignoring non-positive PIXEL_PITCH %r", self.PIXEL_PITCH)
            self.PIXEL_PITCH = None

    def centroid_options(self, **overrides) -> CentroidOptions:
        opts = CentroidOptions(
            threshold_fraction=self.THRESHOLD_FRACTION,
            sample_fraction=self.SAMPLE_FRACTION,
        )
        return _with_overrides(opts, overrides)

    def beam_options(self, **overrides) -> BeamParameterOptions:
        opts = BeamParameterOptions(
            threshold_fraction=self.THRESHOLD_FRACTION,
            sample_fraction=self.SAMPLE_FRACTION,
            beam_band=(self.BEAM_BOTTOM, self.BEAM_TOP),
        )
        return _with_overrides(opts, overrides)
