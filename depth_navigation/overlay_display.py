# --- START OF FILE overlay_display.py ---

import logging
import queue
from typing import Optional

import cv2
import numpy as np

from depth_navigation.feedback_dispatcher import ObstacleSnapshot, VERY_CLOSE_DISTANCE_M
from depth_navigation.obstacle_classifier import Direction

logger = logging.getLogger(__name__)

# --- Overlay Appearance ---
WINDOW_NAME = "Indoor Navigation Assistant"
BG_COLOR = (30, 30, 30)
TEXT_COLOR = (230, 230, 230)
TITLE_COLOR = (255, 255, 255)
HINT_COLOR = (150, 150, 150)
DANGER_COLOR = (0, 0, 255)      # BGR red
CLEAR_COLOR = (0, 200, 0)       # BGR green
WARNING_COLOR = (0, 165, 255)   # BGR orange
FONT = cv2.FONT_HERSHEY_SIMPLEX
ESC_KEY = 27

DIRECTION_LABELS = {
    Direction.CLEAR: "Clear",
    Direction.CENTER: "Obstacle ahead",
    Direction.LEFT: "Obstacle left",
    Direction.RIGHT: "Obstacle right",
}


class QueueSnapshotListener:
    """
    Hands snapshots from the frame thread to the thread that owns the window.
    Only the newest snapshot matters, so older ones are discarded when full.
    """
    def __init__(self, maxsize: int = 1):
        self.snapshots = queue.Queue(maxsize=maxsize)

    def __call__(self, snapshot: ObstacleSnapshot):
        while True:
            try:
                self.snapshots.put_nowait(snapshot)
                return
            except queue.Full:
                try:
                    self.snapshots.get_nowait()
                except queue.Empty:
                    pass

    def latest(self, timeout: Optional[float] = None) -> Optional[ObstacleSnapshot]:
        try:
            return self.snapshots.get(timeout=timeout)
        except queue.Empty:
            return None


def _draw_direction_arrow(img: np.ndarray, direction: Direction, center: tuple, size: int):
    cx, cy = center
    if direction == Direction.LEFT:
        start, end = (cx + size, cy), (cx - size, cy)
    elif direction == Direction.RIGHT:
        start, end = (cx - size, cy), (cx + size, cy)
    elif direction == Direction.CENTER:
        start, end = (cx, cy + size), (cx, cy - size)
    else:
        return
    cv2.arrowedLine(img, start, end, DANGER_COLOR, 6, cv2.LINE_AA, tipLength=0.4)


def render_snapshot(snapshot: Optional[ObstacleSnapshot], width: int = 640, height: int = 400) -> np.ndarray:
    """Draws the obstacle overlay for one snapshot. None renders a waiting screen."""
    img = np.full((height, width, 3), BG_COLOR, dtype=np.uint8)
    cv2.putText(img, "Indoor Navigation Assistant", (20, 40), FONT, 0.9, TITLE_COLOR, 2, cv2.LINE_AA)

    if snapshot is None:
        cv2.putText(img, "Waiting for depth frames...", (20, height // 2), FONT, 0.7, HINT_COLOR, 1, cv2.LINE_AA)
        return img

    cv2.putText(img, "Detected Obstacle Distance", (20, 90), FONT, 0.7, TEXT_COLOR, 1, cv2.LINE_AA)
    cv2.putText(img, f"{snapshot.distance:.2f} meters", (20, 130), FONT, 1.0, TEXT_COLOR, 2, cv2.LINE_AA)
    if snapshot.distance < VERY_CLOSE_DISTANCE_M:
        cv2.putText(img, "Obstacle Nearby!", (20, 170), FONT, 0.8, DANGER_COLOR, 2, cv2.LINE_AA)

    label = DIRECTION_LABELS[snapshot.direction]
    label_color = CLEAR_COLOR if snapshot.direction == Direction.CLEAR else DANGER_COLOR
    cv2.putText(img, label, (20, 230), FONT, 0.9, label_color, 2, cv2.LINE_AA)
    _draw_direction_arrow(img, snapshot.direction, (width - 100, 200), 50)

    if snapshot.lower_height_obstacle:
        cv2.putText(img, "Lower-height obstacle", (20, 280), FONT, 0.8, WARNING_COLOR, 2, cv2.LINE_AA)

    cv2.putText(img, "ESC: Quit", (20, height - 20), FONT, 0.5, HINT_COLOR, 1, cv2.LINE_AA)
    return img


class OverlayWindow:
    """OpenCV window showing the latest snapshot. Must be driven from the main thread."""
    def __init__(self, listener: QueueSnapshotListener, width: int = 640, height: int = 400):
        self.listener = listener
        self.width = width
        self.height = height
        self._current: Optional[ObstacleSnapshot] = None

    def poll(self, wait_ms: int = 30) -> bool:
        """Redraws with any new snapshot. Returns False once the user presses ESC."""
        snapshot = self.listener.latest(timeout=0)
        if snapshot is not None:
            self._current = snapshot
        cv2.imshow(WINDOW_NAME, render_snapshot(self._current, self.width, self.height))
        key = cv2.waitKey(wait_ms) & 0xFF
        return key != ESC_KEY

    def close(self):
        try:
            cv2.destroyWindow(WINDOW_NAME)
        except cv2.error as e:
            logger.debug(f"Overlay window already closed: {e}")
