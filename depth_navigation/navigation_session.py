# --- START OF FILE navigation_session.py ---

import logging
import threading
from typing import Optional

from depth_navigation.depth_frame import DepthFrame
from depth_navigation.errors import FrameSourceUnavailableError
from depth_navigation.feedback_dispatcher import FeedbackDispatcher
from depth_navigation.frame_sources import DepthFrameSource
from depth_navigation.messages import MessageCatalog, MessageKey
from depth_navigation.notification_debouncer import NotificationDebouncer, NotificationDecision
from depth_navigation.obstacle_classifier import ObstacleClassifier, ObstacleState
from depth_navigation.region_aggregator import RegionAggregator

logger = logging.getLogger(__name__)


class ObstaclePipeline:
    """One synchronous pass per frame: aggregate -> classify -> debounce -> dispatch."""

    def __init__(self, dispatcher: FeedbackDispatcher,
                 aggregator: Optional[RegionAggregator] = None,
                 classifier: Optional[ObstacleClassifier] = None,
                 debouncer: Optional[NotificationDebouncer] = None):
        self.dispatcher = dispatcher
        self.aggregator = aggregator or RegionAggregator()
        self.classifier = classifier or ObstacleClassifier()
        self.debouncer = debouncer or NotificationDebouncer()

    def process(self, frame: DepthFrame) -> ObstacleState:
        readings = self.aggregator.aggregate(frame)
        obstacle = self.classifier.classify(readings)
        decision: NotificationDecision = self.debouncer.update(obstacle)
        self.dispatcher.dispatch(obstacle, decision)
        return obstacle


class NavigationSession:
    """
    Connects a depth frame source to the obstacle pipeline.

    Frames arriving while the previous frame is still being processed are dropped.
    A frame source failure is announced once; the source is restarted up to
    `max_restarts` times, after which the session stops.
    """

    def __init__(self, source: DepthFrameSource, pipeline: ObstaclePipeline, audio_handler,
                 catalog: Optional[MessageCatalog] = None, max_restarts: int = 1):
        self.source = source
        self.pipeline = pipeline
        self.audio_handler = audio_handler
        self.catalog = catalog or pipeline.dispatcher.catalog
        self.max_restarts = max_restarts

        self._frame_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._counter_lock = threading.Lock()
        self._running = False
        self._restarts_used = 0
        self._error_announced = False
        self.frames_processed = 0
        self.frames_dropped = 0
        self.stopped = threading.Event()

    @property
    def running(self) -> bool:
        return self._running

    def _announce(self, key: MessageKey):
        if self.audio_handler:
            self.audio_handler.speak(self.catalog.get(key))

    def start(self) -> bool:
        """Starts the frame source and announces readiness. Returns False if unsupported."""
        with self._state_lock:
            if self._running:
                logger.debug("Session already running.")
                return True
            self._restarts_used = 0
            self._error_announced = False
            self.pipeline.debouncer.reset()
            self.stopped.clear()
            try:
                self.source.start(self.on_frame, self.on_source_error)
            except FrameSourceUnavailableError as e:
                logger.error(f"Depth source unavailable: {e}")
                self._announce(MessageKey.UNSUPPORTED)
                self.stopped.set()
                return False
            self._running = True

        logger.info("Navigation session started.")
        self._announce(MessageKey.READY)
        return True

    def stop(self):
        """Pauses the frame source and announces termination."""
        with self._state_lock:
            if not self._running:
                return
            self._running = False
            self.source.pause()

        logger.info(f"Navigation session stopped ({self.frames_processed} frames, {self.frames_dropped} dropped).")
        self._announce(MessageKey.STOPPED)
        self.stopped.set()

    def on_frame(self, frame: DepthFrame):
        if not self._running:
            return
        if not self._frame_lock.acquire(blocking=False):
            with self._counter_lock:
                self.frames_dropped += 1
            logger.debug("Pipeline busy, dropping frame.")
            return
        try:
            self.pipeline.process(frame)
            self.frames_processed += 1
        finally:
            self._frame_lock.release()

    def on_source_error(self, error: Exception):
        """Called on the source thread after it failed. Recovery runs on a separate thread."""
        logger.error(f"Depth frame source failed: {error}")
        if not self._error_announced:
            self._error_announced = True
            self._announce(MessageKey.ERROR)
        threading.Thread(target=self._recover, name="SourceRecoveryThread", daemon=True).start()

    def _recover(self):
        self.source.wait(timeout=2.0)
        with self._state_lock:
            if not self._running:
                return
            if self._restarts_used < self.max_restarts:
                self._restarts_used += 1
                logger.info(f"Restarting depth source (attempt {self._restarts_used}/{self.max_restarts})...")
                try:
                    self.source.start(self.on_frame, self.on_source_error)
                    return
                except FrameSourceUnavailableError as e:
                    logger.error(f"Depth source restart failed: {e}")
        logger.warning("Depth source could not be recovered, stopping session.")
        self.stop()
