# tilewfc/io/image.py
# Raster load/save through Pillow

from __future__ import annotations
import os

import numpy as np
from PIL import Image

from tilewfc.op.errors import SourceDecodeError


def load_raster(path: str) -> np.ndarray:
    """
    Decode an image file to an (H, W, 4) RGBA uint8 array.

    Raises:
        OSError: if the file cannot be opened (propagated unchanged)
        SourceDecodeError: if the contents are not a decodable image
    """
    with open(path, "rb") as f:
        try:
            with Image.open(f) as img:
                img.load()
                rgba = img.convert("RGBA")
        # file access already succeeded; OSError here is a decode failure
        # (UnidentifiedImageError, truncated data)
        except (OSError, Image.DecompressionBombError, SyntaxError) as e:
            raise SourceDecodeError(path, str(e)) from e
    return np.asarray(rgba, dtype=np.uint8).copy()


def save_raster(path: str, raster: np.ndarray) -> None:
    """
    Encode raster as an image file; format follows the extension.

    Creates parent directories if needed. (H, W, 1) rasters are saved as
    grayscale.
    """
    A = np.asarray(raster, dtype=np.uint8)
    if A.ndim == 3 and A.shape[2] == 1:
        A = A[:, :, 0]
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    Image.fromarray(A).save(path)
