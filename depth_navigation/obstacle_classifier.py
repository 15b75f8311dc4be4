# --- START OF FILE obstacle_classifier.py ---

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from depth_navigation.depth_frame import Region
from depth_navigation.region_aggregator import RegionReadings

OBSTACLE_THRESHOLD_M: float = 1.0


class Direction(Enum):
    CLEAR = "Clear"
    CENTER = "Center"
    LEFT = "Left"
    RIGHT = "Right"


# Order matters: the first region below the threshold wins
DIRECTION_PRIORITY = (
    (Region.CENTER, Direction.CENTER),
    (Region.LEFT, Direction.LEFT),
    (Region.RIGHT, Direction.RIGHT),
)


@dataclass(frozen=True)
class ObstacleState:
    """Discrete obstacle situation for one frame."""
    direction: Direction = Direction.CLEAR
    center_distance: Optional[float] = None  # Center region mean, unthresholded (for display/haptics)
    lower_height_obstacle: bool = False


class ObstacleClassifier:
    """Maps region readings to an ObstacleState using fixed depth thresholds."""

    def __init__(self, obstacle_threshold: float = OBSTACLE_THRESHOLD_M):
        self.obstacle_threshold = obstacle_threshold

    def classify(self, readings: RegionReadings) -> ObstacleState:
        direction = Direction.CLEAR
        for region, candidate in DIRECTION_PRIORITY:
            reading = readings[region]
            # Regions without valid samples never count as close
            if reading.has_depth and reading.mean_depth < self.obstacle_threshold:
                direction = candidate
                break

        return ObstacleState(
            direction=direction,
            center_distance=readings[Region.CENTER].mean_depth,
            lower_height_obstacle=any(reading.lower_height_hit for reading in readings),
        )
