import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def make_disc(h=101, w=121, cx=60.0, cy=50.0, r=20.0, value=100.0):
    """Uniform disc on a zero background; centre in 1-based pixel coordinates."""
    y, x = np.mgrid[1:h + 1, 1:w + 1]
    img = np.zeros((h, w), dtype=np.float64)
    img[(x - cx) ** 2 + (y - cy) ** 2 <= r ** 2] = value
    return img


def make_gaussian(h=64, w=64, cx=32.0, cy=32.0, sigma=6.0, peak=200.0):
    y, x = np.mgrid[1:h + 1, 1:w + 1]
    return peak * np.exp(-((x - cx) ** 2 + (y - cy) ** 2) / (2.0 * sigma ** 2))
