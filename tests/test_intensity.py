import unittest

import numpy as np

from helpers import make_disc, make_gaussian

from beam_params_app.centroid import compute_centroid
from beam_params_app.errors import DegenerateImageError, ErrorKind, InvalidParameterError
from beam_params_app.intensity import apply_threshold, derive_threshold, estimate_range
from beam_params_app.models import IntensityRange


class TestEstimateRange(unittest.TestCase):
    def test_averages_extreme_samples(self):
        img = np.arange(1, 1001, dtype=float).reshape(20, 50)
        rng = estimate_range(img, 0.01)  # 10 samples at each end
        self.assertEqual(rng.sample_count, 10)
        self.assertAlmostEqual(rng.noise_floor, 5.5)
        self.assertAlmostEqual(rng.peak_level, 995.5)

    def test_zero_fraction_uses_single_sample(self):
        img = np.arange(1, 101, dtype=float).reshape(10, 10)
        rng = estimate_range(img, 0.0)
        self.assertEqual(rng.sample_count, 1)
        self.assertEqual(rng.noise_floor, 1.0)
        self.assertEqual(rng.peak_level, 100.0)

    def test_tiny_fraction_rounds_up_to_one_sample(self):
        img = np.arange(1, 101, dtype=float).reshape(10, 10)
        rng = estimate_range(img, 0.001)
        self.assertEqual(rng.sample_count, 1)
        self.assertEqual(rng.peak_level, 100.0)

    def test_half_fraction(self):
        img = np.array([[0.0, 0.0], [10.0, 10.0]])
        rng = estimate_range(img, 0.5)
        self.assertEqual((rng.noise_floor, rng.peak_level), (0.0, 10.0))

    def test_robust_against_hot_pixel(self):
        img = make_gaussian(peak=200.0)
        img[0, 0] = 4000.0
        rng = estimate_range(img, 0.01)
        self.assertLess(rng.peak_level, 1000.0)

    def test_fraction_out_of_range(self):
        img = np.ones((4, 4))
        for bad in (-0.1, 0.51, 1.0, float("nan"), "0.1"):
            with self.assertRaises(InvalidParameterError, msg=repr(bad)) as ctx:
                estimate_range(img, bad)
            self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_PARAMETER)


class TestThreshold(unittest.TestCase):
    def setUp(self):
        self.rng = IntensityRange(noise_floor=10.0, peak_level=110.0, sample_count=1)

    def test_fraction(self):
        self.assertAlmostEqual(derive_threshold(self.rng, 0.1), 20.0)
        self.assertAlmostEqual(derive_threshold(self.rng, 0.5), 60.0)
        self.assertAlmostEqual(derive_threshold(self.rng, 0.0), 10.0)

    def test_absolute_overrides_fraction(self):
        self.assertEqual(derive_threshold(self.rng, 0.4, absolute=3.0), 3.0)
        # Fraction is not checked when an absolute threshold is given
        self.assertEqual(derive_threshold(self.rng, 0.9, absolute=0.0), 0.0)

    def test_invalid(self):
        with self.assertRaises(InvalidParameterError):
            derive_threshold(self.rng, 0.6)
        with self.assertRaises(InvalidParameterError):
            derive_threshold(self.rng, -0.01)
        with self.assertRaises(InvalidParameterError):
            derive_threshold(self.rng, absolute=-1.0)
        with self.assertRaises(InvalidParameterError):
            derive_threshold(self.rng, None)

    def test_apply_threshold_copies(self):
        img = np.array([[1.0, 5.0], [10.0, 20.0]])
        out = apply_threshold(img, 10.0)
        np.testing.assert_array_equal(out, [[0.0, 0.0], [10.0, 20.0]])
        np.testing.assert_array_equal(img, [[1.0, 5.0], [10.0, 20.0]])
        self.assertIsNot(out, img)


class TestCentroid(unittest.TestCase):
    def test_disc_centre(self):
        c = compute_centroid(make_disc(cx=60, cy=50, r=20))
        self.assertAlmostEqual(c.x, 60.0)
        self.assertAlmostEqual(c.y, 50.0)

    def test_one_based_coordinates(self):
        img = np.zeros((5, 5))
        img[0, 0] = 1.0
        c = compute_centroid(img)
        self.assertEqual((c.x, c.y), (1.0, 1.0))

    def test_symmetric_image_flip_invariant(self):
        img = make_gaussian(h=41, w=51, cx=26.0, cy=21.0, sigma=4.0)
        base = compute_centroid(img)
        for flipped in (img[:, ::-1], img[::-1, :], img[::-1, ::-1]):
            c = compute_centroid(flipped)
            self.assertAlmostEqual(c.x, base.x)
            self.assertAlmostEqual(c.y, base.y)

    def test_flip_mirrors_asymmetric_centroid(self):
        h, w = 40, 50
        img = make_gaussian(h=h, w=w, cx=12.0, cy=30.0, sigma=3.0)
        base = compute_centroid(img)
        c = compute_centroid(img[:, ::-1])
        self.assertAlmostEqual(c.x, w + 1 - base.x)
        self.assertAlmostEqual(c.y, base.y)

    def test_within_bounds(self):
        rs = np.random.default_rng(1)
        for _ in range(5):
            img = rs.random((17, 23))
            c = compute_centroid(img)
            self.assertTrue(1.0 <= c.x <= 23.0)
            self.assertTrue(1.0 <= c.y <= 17.0)

    def test_all_zero_is_degenerate(self):
        with self.assertRaises(DegenerateImageError) as ctx:
            compute_centroid(np.zeros((10, 10)))
        self.assertEqual(ctx.exception.kind, ErrorKind.DEGENERATE_IMAGE)


if __name__ == "__main__":
    unittest.main()
