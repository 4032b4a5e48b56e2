"""Image I/O utilities.

Pillow handles the common formats (TIFF with LZW, PNG, BMP, JPEG). If
Pillow fails on a TIFF we fall back to `tifffile`. Colour images are
reduced to luminance with the ``rgb2gray`` weights.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

import numpy as np

IMAGE_SUFFIXES = ('.tif', '.tiff', '.png', '.bmp', '.jpg', '.jpeg')

# ITU-R BT.601 luma weights
_GRAY_WEIGHTS = np.array([0.2989, 0.5870, 0.1140], dtype=np.float64)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Return a float64 2-D array; RGB / RGBA input is converted to luminance."""
    arr = np.asarray(image)
    if arr.ndim == 2:
        return arr.astype(np.float64)
    if arr.ndim == 3 and arr.shape[2] in (3, 4):
        # Alpha is ignored
        return arr[..., :3].astype(np.float64) @ _GRAY_WEIGHTS
    if arr.ndim == 3 and arr.shape[2] == 1:
        return arr[..., 0].astype(np.float64)
    raise ValueError(f"Cannot convert array of shape {arr.shape} to grayscale")


def downsample_max_dim(image: np.ndarray, max_dim: int) -> np.ndarray:
    """Downsample an image by simple stride so max(h, w) <= max_dim.

    Intended for previews in reports, not for measurements.
    """
    if max_dim <= 0 or image is None:
        return image

    h, w = image.shape[:2]
    m = max(h, w)
    if m <= max_dim:
        return image

    step = max(int(np.ceil(m / float(max_dim))), 1)
    return image[::step, ::step]


def read_image(path: Union[str, Path]) -> np.ndarray:
    """Read an image file into a 2D float64 numpy array.

    Multi-page files: the first page is used. Paletted images ('P') return
    the index values (the palette is display-only).
    """

    p = Path(path).expanduser().resolve()

    # Pillow first
    try:
        from PIL import Image

        with Image.open(p) as im:
            if getattr(im, 'n_frames', 1) > 1:
                im.seek(0)

            if im.mode in ('I;16', 'I;16B', 'I;16L', 'I', 'F', 'L', 'P'):
                return np.array(im, dtype=np.float64)
            if im.mode in ('RGB', 'RGBA'):
                return to_grayscale(np.array(im))
            return np.array(im.convert('L'), dtype=np.float64)

    except Exception as e:
        if p.suffix.lower() not in ('.tif', '.tiff'):
            raise RuntimeError(f"Failed to read image '{p}': {e}") from e

    # Fallback: tifffile (may require imagecodecs for some compressions)
    try:
        import tifffile

        return to_grayscale(tifffile.imread(str(p)))
    except Exception as e:
        raise RuntimeError(f"Failed to read TIFF '{p}': {e}") from e
