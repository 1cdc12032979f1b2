"""
Read-only RGBA pixel buffers and the shared clamping rule.

Every stage borrows the same PixelBuffer; crops and resizes produce new
buffers and never write into the source array.
"""

import io
from typing import Tuple

import numpy as np
from PIL import Image

from design_extractor.exceptions import InvalidGeometryError, InvalidImageError


def clamp_box(
    x: int, y: int, width: int, height: int, image_width: int, image_height: int
) -> Tuple[int, int, int, int]:
    """
    Clamp a box into the image, keeping it at least one pixel in each dimension.

    Args:
        x, y, width, height: Box in pixel coordinates (may be out of bounds)
        image_width, image_height: Size of the image the box must fit into

    Returns:
        (x, y, width, height) with x+width <= image_width and y+height <= image_height
    """
    if image_width <= 0 or image_height <= 0:
        raise InvalidGeometryError(
            f"Cannot clamp box into an empty image ({image_width}x{image_height})"
        )
    cx = min(max(int(x), 0), image_width - 1)
    cy = min(max(int(y), 0), image_height - 1)
    cw = max(1, min(int(width), image_width - cx))
    ch = max(1, min(int(height), image_height - cy))
    return cx, cy, cw, ch


class PixelBuffer:
    """Immutable RGBA image backed by a uint8 array of shape (height, width, 4)."""

    __slots__ = ("_data",)

    def __init__(self, data: np.ndarray):
        if not isinstance(data, np.ndarray) or data.dtype != np.uint8:
            raise InvalidImageError("Pixel data must be a uint8 numpy array")
        if data.ndim != 3 or data.shape[2] != 4:
            raise InvalidImageError(f"Expected RGBA data of shape (H, W, 4), got {data.shape}")
        if data.shape[0] == 0 or data.shape[1] == 0:
            raise InvalidImageError("Pixel buffer is empty")
        owned = np.array(data, copy=True)
        owned.flags.writeable = False
        self._data = owned

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """Accept gray (H, W), RGB (H, W, 3) or RGBA (H, W, 4) uint8 arrays."""
        array = np.asarray(array)
        if array.dtype != np.uint8:
            raise InvalidImageError(f"Expected uint8 pixels, got {array.dtype}")
        if array.ndim == 2:
            array = np.stack([array, array, array], axis=-1)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise InvalidImageError(f"Unsupported pixel array shape {array.shape}")
        if array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
            array = np.concatenate([array, alpha], axis=-1)
        return cls(array)

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        return cls(np.array(image.convert("RGBA"), dtype=np.uint8))

    @classmethod
    def from_bytes(cls, data: bytes) -> "PixelBuffer":
        """Decode any container format Pillow understands."""
        if not data:
            raise InvalidImageError("Image data is empty")
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                return cls.from_image(image)
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            raise InvalidImageError(f"Could not decode image: {exc}") from exc

    @property
    def width(self) -> int:
        return int(self._data.shape[1])

    @property
    def height(self) -> int:
        return int(self._data.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height), matching PIL's Image.size."""
        return (self.width, self.height)

    @property
    def array(self) -> np.ndarray:
        """The read-only RGBA array."""
        return self._data

    @property
    def rgb(self) -> np.ndarray:
        return self._data[:, :, :3]

    @property
    def alpha(self) -> np.ndarray:
        return self._data[:, :, 3]

    def luminance(self) -> np.ndarray:
        """ITU-R 601 luma, integer-valued (the grayscale used for detection)."""
        rgb = self._data[:, :, :3].astype(np.int32)
        luma = (rgb[:, :, 0] * 299 + rgb[:, :, 1] * 587 + rgb[:, :, 2] * 114) // 1000
        return luma.astype(np.uint8)

    def intensity(self) -> np.ndarray:
        """Unweighted channel mean (R+G+B)//3 (the grayscale used for features and quality)."""
        rgb = self._data[:, :, :3].astype(np.int32)
        return (rgb.sum(axis=2) // 3).astype(np.uint8)

    def crop(self, x: int, y: int, width: int, height: int) -> "PixelBuffer":
        """Crop an in-bounds box. Raises InvalidGeometryError otherwise."""
        if (
            width <= 0 or height <= 0 or x < 0 or y < 0
            or x + width > self.width or y + height > self.height
        ):
            raise InvalidGeometryError(
                f"Crop ({x}, {y}, {width}, {height}) outside {self.width}x{self.height} image"
            )
        return PixelBuffer(self._data[y:y + height, x:x + width])

    def crop_clamped(self, x: int, y: int, width: int, height: int) -> Tuple["PixelBuffer", Tuple[int, int, int, int]]:
        """Clamp the box into the image, then crop. Returns (crop, clamped_box)."""
        box = clamp_box(x, y, width, height, self.width, self.height)
        return self.crop(*box), box

    def resize(self, width: int, height: int) -> "PixelBuffer":
        """Bilinear resize to (width, height)."""
        if width <= 0 or height <= 0:
            raise InvalidGeometryError(f"Cannot resize to {width}x{height}")
        if (width, height) == self.size:
            return self
        resized = self.to_image().resize((width, height), Image.BILINEAR)
        return PixelBuffer.from_image(resized)

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.array(self._data))

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"
