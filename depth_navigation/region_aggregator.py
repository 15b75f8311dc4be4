# --- START OF FILE region_aggregator.py ---

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from depth_navigation.depth_frame import DepthFrame, Region, MIN_VALID_DEPTH_M, MAX_VALID_DEPTH_M

logger = logging.getLogger(__name__)

# A valid sample on the lower row closer than this marks a lower-height obstacle
LOWER_HEIGHT_THRESHOLD_M: float = 1.5


@dataclass(frozen=True)
class RegionReading:
    """Aggregated depth of one region for one frame."""
    region: Region
    mean_depth: Optional[float] = None  # None when the region had no valid samples
    lower_height_hit: bool = False      # Valid sample < 1.5m on the lower sampling row

    @property
    def has_depth(self) -> bool:
        return self.mean_depth is not None


# Indexed by Region: readings[Region.CENTER] etc.
RegionReadings = Tuple[RegionReading, RegionReading, RegionReading]


def empty_readings() -> RegionReadings:
    return tuple(RegionReading(region) for region in Region)


class RegionAggregator:
    """
    Reduces a DepthFrame to one RegionReading per horizontal region.

    Only two rows are sampled: the middle row (general obstacles) and the row at
    three quarters of the height (lower-height obstacles). Every valid sample on
    either row is averaged in as-is, without clamping or outlier rejection.
    """

    def aggregate(self, frame: DepthFrame) -> RegionReadings:
        if frame.is_empty:
            logger.debug(f"Empty depth frame ({frame.width}x{frame.height}), no readings.")
            return empty_readings()

        mid_y, lower_y = frame.sample_rows()
        readings = []
        for region in Region:
            x_start, x_end = frame.region_columns(region)
            total_depth = 0.0
            sample_count = 0
            lower_hit = False

            for y in (mid_y, lower_y):
                values = frame.row(y)[x_start:x_end]
                valid = (values > MIN_VALID_DEPTH_M) & (values < MAX_VALID_DEPTH_M)
                total_depth += float(values[valid].sum(dtype=np.float64))
                sample_count += int(valid.sum())

                if y >= lower_y and np.any(valid & (values < LOWER_HEIGHT_THRESHOLD_M)):
                    lower_hit = True

            mean_depth = total_depth / sample_count if sample_count > 0 else None
            readings.append(RegionReading(region, mean_depth, lower_hit))

        return tuple(readings)
