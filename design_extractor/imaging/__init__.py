# Pixel buffers and image filters

from .pixels import PixelBuffer, clamp_box
from .filters import (
    FOUR_CONNECTED,
    sobel_gradients,
    sobel_magnitude,
    local_variance,
    local_contrast,
    connected_component_boxes,
)

__all__ = [
    "PixelBuffer",
    "clamp_box",
    "FOUR_CONNECTED",
    "sobel_gradients",
    "sobel_magnitude",
    "local_variance",
    "local_contrast",
    "connected_component_boxes",
]
