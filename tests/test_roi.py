import unittest

import numpy as np

from helpers import make_disc

from beam_params_app.analysis import BeamParameters
from beam_params_app.errors import (
    ErrorKind,
    InvalidRoiError,
    InvalidUnitError,
    InvalidValueError,
    MissingCalibrationError,
    MissingInputError,
)
from beam_params_app.models import RoiRect
from beam_params_app.roi import RoiSpec, resolve_roi
from beam_params_app.units import Calibration


class TestRoiDefaults(unittest.TestCase):
    def test_full_frame_on_construction(self):
        bp = BeamParameters(np.zeros((60, 80)))
        self.assertEqual(bp.roi, RoiRect(xmin=1, xmax=80, ymin=1, ymax=60))
        self.assertEqual(bp.get_roi(), (1, 1, 80, 60))

    def test_reset_without_arguments(self):
        bp = BeamParameters(np.zeros((60, 80)))
        bp.set_roi((10, 10, 5, 5))
        bp.set_roi()
        self.assertEqual(bp.get_roi(), (1, 1, 80, 60))


class TestSetRoi(unittest.TestCase):
    def setUp(self):
        self.bp = BeamParameters(np.zeros((60, 80)))

    def test_vector(self):
        roi = self.bp.set_roi((10, 20, 30, 40))
        self.assertEqual(roi, RoiRect(xmin=10, xmax=39, ymin=20, ymax=59))
        self.assertEqual(self.bp.get_roi(), (10, 20, 30, 40))

    def test_idempotent(self):
        first = self.bp.set_roi((10, 20, 30, 40))
        second = self.bp.set_roi((10, 20, 30, 40))
        self.assertEqual(first, second)
        self.assertEqual(self.bp.roi, second)

    def test_keyed_bounds(self):
        self.bp.set_roi(xmin=5, xmax=25, ymin=3, ymax=13)
        self.assertEqual(self.bp.roi, RoiRect(xmin=5, xmax=25, ymin=3, ymax=13))

    def test_partial_update_keeps_other_bounds(self):
        self.bp.set_roi(xmin=5)
        self.assertEqual(self.bp.roi, RoiRect(xmin=5, xmax=80, ymin=1, ymax=60))
        self.bp.set_roi(ymax=30)
        self.assertEqual(self.bp.roi, RoiRect(xmin=5, xmax=80, ymin=1, ymax=30))

    def test_min_plus_width(self):
        self.bp.set_roi(xmin=11, width=10, ymin=21, height=5)
        self.assertEqual(self.bp.roi, RoiRect(xmin=11, xmax=20, ymin=21, ymax=25))

    def test_consistent_max_and_width_accepted(self):
        self.bp.set_roi(xmin=11, xmax=20, width=10)
        self.assertEqual(self.bp.roi.xmax, 20)

    def test_inconsistent_max_and_width_rejected(self):
        with self.assertRaises(InvalidRoiError):
            self.bp.set_roi(xmin=11, xmax=30, width=10)

    def test_centre_and_width(self):
        self.bp.set_roi(xcentre=40, width=20, ycentre=30, height=10)
        self.assertEqual(self.bp.roi, RoiRect(xmin=30, xmax=50, ymin=25, ymax=35))

    def test_centre_alias(self):
        self.bp.set_roi(xcenter=40, width=20)
        self.assertEqual((self.bp.roi.xmin, self.bp.roi.xmax), (30, 50))

    def test_half_pixel_bounds_round_up(self):
        self.bp.set_roi(xcentre=41, width=21)
        self.assertEqual((self.bp.roi.xmin, self.bp.roi.xmax), (31, 52))
        self.bp.set_roi(xcentre=40, width=21)
        self.assertEqual((self.bp.roi.xmin, self.bp.roi.xmax), (30, 51))

    def test_centre_clamped_with_warning(self):
        with self.assertLogs("beam_params_app.roi", level="WARNING") as logs:
            self.bp.set_roi(xcentre=5, width=20, ycentre=58, height=10)
        self.assertEqual(self.bp.roi, RoiRect(xmin=1, xmax=15, ymin=53, ymax=60))
        self.assertEqual(len(logs.records), 2)

    def test_centre_without_width(self):
        with self.assertRaises(MissingInputError) as ctx:
            self.bp.set_roi(xcentre=40)
        self.assertEqual(ctx.exception.kind, ErrorKind.MISSING_INPUT)

    def test_centre_outside_frame(self):
        with self.assertRaises(InvalidRoiError):
            self.bp.set_roi(xcentre=81, width=10)

    def test_physical_units(self):
        self.bp.set_pixel_pitch(5.0, "microns")
        self.bp.set_roi((50, 100, 100, 200), unit="um")
        self.assertEqual(self.bp.roi, RoiRect(xmin=10, xmax=29, ymin=20, ymax=59))
        xmin, ymin, width, height = self.bp.get_roi("um")
        self.assertAlmostEqual(xmin, 50.0)
        self.assertAlmostEqual(ymin, 100.0)
        self.assertAlmostEqual(width, 100.0)
        self.assertAlmostEqual(height, 200.0)
        self.assertAlmostEqual(self.bp.get_roi("mm")[2], 0.1)

    def test_physical_unit_without_calibration(self):
        with self.assertRaises(MissingCalibrationError):
            self.bp.set_roi((50, 100, 100, 200), unit="microns")
        with self.assertRaises(MissingCalibrationError):
            self.bp.get_roi("mm")

    def test_unknown_unit(self):
        with self.assertRaises(InvalidUnitError):
            self.bp.set_roi((1, 1, 10, 10), unit="inch")

    def test_roi_spec_record(self):
        self.bp.set_roi(RoiSpec(xmin=2, width=4, ymin=3, height=6))
        self.assertEqual(self.bp.roi, RoiRect(xmin=2, xmax=5, ymin=3, ymax=8))


class TestRoiRejection(unittest.TestCase):
    def setUp(self):
        self.bp = BeamParameters(np.zeros((60, 80)))
        self.bp.set_roi((10, 10, 20, 20))
        self.previous = self.bp.roi

    def assertRejected(self, exc_type, *args, **kwargs):
        with self.assertRaises(exc_type):
            self.bp.set_roi(*args, **kwargs)
        self.assertEqual(self.bp.roi, self.previous)

    def test_xmin_below_one(self):
        self.assertRejected(InvalidRoiError, (0, 1, 10, 10))

    def test_ymin_below_one(self):
        self.assertRejected(InvalidRoiError, (1, -3, 10, 10))

    def test_width_too_large(self):
        self.assertRejected(InvalidRoiError, (1, 1, 81, 10))

    def test_height_zero(self):
        self.assertRejected(InvalidRoiError, (1, 1, 10, 0))

    def test_overflow_right_edge(self):
        self.assertRejected(InvalidRoiError, (75, 1, 10, 10))

    def test_xmax_beyond_frame(self):
        self.assertRejected(InvalidRoiError, xmax=81)

    def test_min_after_max(self):
        self.assertRejected(InvalidRoiError, xmin=40, xmax=20)

    def test_wrong_vector_length(self):
        self.assertRejected(InvalidRoiError, (1, 1, 10))

    def test_vector_and_keys(self):
        self.assertRejected(InvalidRoiError, (1, 1, 10, 10), xmin=3)

    def test_unknown_key(self):
        self.assertRejected(InvalidRoiError, left=3)

    def test_non_numeric(self):
        self.assertRejected(InvalidValueError, xmin="3")

    def test_later_axis_failure_leaves_roi_untouched(self):
        self.assertRejected(InvalidRoiError, xmin=2, xmax=30, ymin=50, ymax=70)


class TestResolveRoi(unittest.TestCase):
    def test_direct_resolution(self):
        cal = Calibration()
        current = RoiRect.full_frame((101, 121))
        roi = resolve_roi(RoiSpec.from_rect((1, 1, 121, 101)), (101, 121), current, cal)
        self.assertEqual(roi, current)

    def test_roi_bounds_beam_measurement(self):
        bp = BeamParameters(make_disc())
        bp.set_roi((30, 20, 61, 61))
        report = bp.get_beam_parameters()
        self.assertEqual(report.roi, bp.roi)


if __name__ == "__main__":
    unittest.main()
