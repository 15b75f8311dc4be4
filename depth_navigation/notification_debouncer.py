# --- START OF FILE notification_debouncer.py ---

import logging
from dataclasses import dataclass
from typing import Optional

from depth_navigation.obstacle_classifier import Direction, ObstacleState

logger = logging.getLogger(__name__)


@dataclass
class NotificationState:
    """What has already been announced this session. Mutated only by NotificationDebouncer."""
    last_emitted_direction: Direction = Direction.CLEAR
    direction_announced: bool = False
    lower_height_announced: bool = False


@dataclass(frozen=True)
class NotificationDecision:
    """Announcements to emit for one frame."""
    direction: Optional[Direction] = None  # Set when a directional announcement is due
    lower_height: bool = False

    @property
    def announce_direction(self) -> bool:
        return self.direction is not None

    @property
    def is_silent(self) -> bool:
        return self.direction is None and not self.lower_height


class NotificationDebouncer:
    """
    Decides when an obstacle is worth announcing.

    A direction is announced once when an obstacle appears after Clear, and again
    only if the direction changes while still obstructed. The lower-height warning
    fires once per detection and re-arms on the first frame without a hit.
    Not thread-safe: feed it from one pipeline at a time.
    """

    def __init__(self, state: Optional[NotificationState] = None):
        self.state = state if state is not None else NotificationState()

    def update(self, obstacle: ObstacleState) -> NotificationDecision:
        state = self.state
        announce_direction = None

        if obstacle.direction == Direction.CLEAR:
            state.direction_announced = False
        elif obstacle.direction != state.last_emitted_direction or not state.direction_announced:
            announce_direction = obstacle.direction
            state.direction_announced = True
            state.last_emitted_direction = obstacle.direction
            logger.debug(f"Direction announcement due: {obstacle.direction.value}")

        announce_lower = False
        if obstacle.lower_height_obstacle:
            if not state.lower_height_announced:
                announce_lower = True
                state.lower_height_announced = True
                logger.debug("Lower-height announcement due.")
        else:
            state.lower_height_announced = False

        return NotificationDecision(direction=announce_direction, lower_height=announce_lower)

    def reset(self):
        """Forget everything announced so far (used when a session restarts)."""
        self.state = NotificationState()
