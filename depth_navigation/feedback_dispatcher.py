# --- START OF FILE feedback_dispatcher.py ---

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from depth_navigation.depth_frame import MAX_VALID_DEPTH_M
from depth_navigation.messages import MessageCatalog, MessageKey
from depth_navigation.notification_debouncer import NotificationDecision
from depth_navigation.obstacle_classifier import Direction, ObstacleState

logger = logging.getLogger(__name__)

HAPTIC_MAX_DISTANCE_M: float = 5.0

# Proximity bands for spoken distance (meters)
VERY_CLOSE_DISTANCE_M: float = 1.0
ANNOUNCE_DISTANCE_M: float = 2.0


@dataclass(frozen=True)
class ObstacleSnapshot:
    """Read-only view of the latest obstacle state for presentation."""
    distance: float
    direction: Direction
    lower_height_obstacle: bool


SnapshotListener = Callable[[ObstacleSnapshot], None]


def haptic_intensity(distance: Optional[float]) -> float:
    """Closer obstacles vibrate harder: 0m -> 1.0, 5m and beyond -> 0.0."""
    if distance is None:
        return 0.0
    intensity = (HAPTIC_MAX_DISTANCE_M - min(distance, HAPTIC_MAX_DISTANCE_M)) / HAPTIC_MAX_DISTANCE_M
    return max(0.0, min(1.0, intensity))


class FeedbackDispatcher:
    """
    Turns an ObstacleState and the debouncer's decision into audio, haptic and
    presentation output for one frame.

    Args:
        audio_handler: Anything with speak(message). Its own rate limiter decides what is voiced.
        haptic_handler: Anything with play_warning(intensity). Called every frame.
        catalog: Phrase lookup for spoken messages.
    """

    def __init__(self, audio_handler, haptic_handler, catalog: Optional[MessageCatalog] = None):
        self.audio_handler = audio_handler
        self.haptic_handler = haptic_handler
        self.catalog = catalog or MessageCatalog()
        self._listeners: List[SnapshotListener] = []
        self.latest_snapshot: Optional[ObstacleSnapshot] = None

    def add_listener(self, listener: SnapshotListener):
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def dispatch(self, obstacle: ObstacleState, decision: NotificationDecision):
        distance = obstacle.center_distance

        # Haptics are proportional and never debounced
        self._play_haptic(haptic_intensity(distance))

        proximity_message = self.proximity_message(distance)
        if proximity_message:
            self._speak(proximity_message)
        if decision.announce_direction:
            self._speak(self.catalog.direction(decision.direction))
        if decision.lower_height:
            self._speak(self.catalog.get(MessageKey.LOWER_HEIGHT))

        self._publish(ObstacleSnapshot(
            distance=distance if distance is not None else MAX_VALID_DEPTH_M,
            direction=obstacle.direction,
            lower_height_obstacle=obstacle.lower_height_obstacle,
        ))

    def proximity_message(self, distance: Optional[float]) -> Optional[str]:
        if distance is None or distance >= ANNOUNCE_DISTANCE_M:
            return None
        if distance < VERY_CLOSE_DISTANCE_M:
            return self.catalog.get(MessageKey.VERY_CLOSE)
        return self.catalog.get(MessageKey.OBSTACLE_AT_DISTANCE, distance=round(distance, 1))

    def _speak(self, message: str):
        if self.audio_handler is None:
            return
        self.audio_handler.speak(message)

    def _play_haptic(self, intensity: float):
        if self.haptic_handler is None:
            return
        self.haptic_handler.play_warning(intensity)

    def _publish(self, snapshot: ObstacleSnapshot):
        self.latest_snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Snapshot listener {listener!r} failed: {e}", exc_info=True)
