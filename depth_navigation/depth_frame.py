# --- START OF FILE depth_frame.py ---

from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple

import numpy as np

# Depth readings outside (MIN_VALID_DEPTH_M, MAX_VALID_DEPTH_M) are sensor noise or out of range
MIN_VALID_DEPTH_M: float = 0.0
MAX_VALID_DEPTH_M: float = 5.0


def is_valid_depth(depth: float) -> bool:
    """A sample is usable iff 0 < depth < 5.0 meters. NaN is never valid."""
    return MIN_VALID_DEPTH_M < depth < MAX_VALID_DEPTH_M


class Region(IntEnum):
    """Horizontal slices of a frame. Values index a RegionReadings tuple."""
    LEFT = 0
    CENTER = 1
    RIGHT = 2


@dataclass(frozen=True)
class DepthFrame:
    """One depth sample from the sensor as a flat buffer of float meters."""
    width: int
    height: int
    row_stride: int         # Samples per row in the buffer (>= width, may include padding)
    buffer: np.ndarray      # 1-D float32 depth in meters

    @classmethod
    def from_array(cls, depth_m: np.ndarray) -> "DepthFrame":
        """Wraps an HxW array of meters. Padded/strided arrays are copied to a dense buffer."""
        depth = np.ascontiguousarray(depth_m, dtype=np.float32)
        if depth.ndim != 2:
            raise ValueError(f"Depth array must be 2-D (HxW), got shape {depth.shape}")
        height, width = depth.shape
        return cls(width=width, height=height, row_stride=width, buffer=depth.reshape(-1))

    def row(self, y: int) -> np.ndarray:
        """Returns the `width` samples of row y (a view, no copy)."""
        start = y * self.row_stride
        return self.buffer[start:start + self.width]

    def sample(self, x: int, y: int) -> float:
        return float(self.buffer[y * self.row_stride + x])

    def sample_rows(self) -> Tuple[int, int]:
        """(mid, lower) rows used for general and lower-height sensing."""
        return self.height // 2, self.height * 3 // 4

    def region_columns(self, region: Region) -> Tuple[int, int]:
        """[start, end) column range of a region. Remainder columns go to RIGHT."""
        region_width = self.width // 3
        if region == Region.LEFT:
            return 0, region_width
        if region == Region.CENTER:
            return region_width, 2 * region_width
        return 2 * region_width, self.width

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0
