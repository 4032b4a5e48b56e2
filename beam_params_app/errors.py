"""Error kinds raised by the measurement pipeline.

Every failure carries an :class:`ErrorKind` so callers (and the batch CLI)
can branch on the kind without parsing messages.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_UNIT = "InvalidUnit"
    INVALID_VALUE = "InvalidValue"
    INVALID_ROI = "InvalidRoi"
    MISSING_CALIBRATION = "MissingCalibration"
    DEGENERATE_IMAGE = "DegenerateImage"
    EMPTY_BAND = "EmptyBand"
    INVALID_PARAMETER = "InvalidParameter"
    MISSING_INPUT = "MissingInput"


class BeamParametersError(ValueError):
    """Base class. ``kind`` identifies the failure, ``message`` explains it."""

    kind: ErrorKind = ErrorKind.INVALID_VALUE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class InvalidUnitError(BeamParametersError):
    kind = ErrorKind.INVALID_UNIT


class InvalidValueError(BeamParametersError):
    kind = ErrorKind.INVALID_VALUE


class InvalidRoiError(BeamParametersError):
    kind = ErrorKind.INVALID_ROI


class MissingCalibrationError(BeamParametersError):
    kind = ErrorKind.MISSING_CALIBRATION


class DegenerateImageError(BeamParametersError):
    kind = ErrorKind.DEGENERATE_IMAGE


class EmptyBandError(BeamParametersError):
    kind = ErrorKind.EMPTY_BAND


class InvalidParameterError(BeamParametersError):
    kind = ErrorKind.INVALID_PARAMETER


class MissingInputError(BeamParametersError):
    kind = ErrorKind.MISSING_INPUT

