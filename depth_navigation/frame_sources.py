# --- START OF FILE frame_sources.py ---

import logging
import os
import threading
import time
from typing import Callable, List, Optional

import numpy as np

from depth_navigation.depth_frame import DepthFrame
from depth_navigation.errors import FrameSourceError, FrameSourceUnavailableError

logger = logging.getLogger(__name__)

FrameCallback = Callable[[DepthFrame], None]
ErrorCallback = Callable[[Exception], None]

RECORDING_EXTENSIONS = (".npy", ".npz")
NPZ_DEPTH_KEYS = ("depth", "depth_m", "depth_mm")


def depth_to_meters(depth: np.ndarray) -> np.ndarray:
    """
    Converts a raw depth array to float32 meters:
      - uint16 -> millimeters (z16 sensor format)
      - float  -> already meters
    """
    if depth.dtype == np.uint16:
        return depth.astype(np.float32) / 1000.0
    return depth.astype(np.float32)


class DepthFrameSource:
    """
    Delivers DepthFrames from a background thread.

    start() begins delivery; on_frame runs on the source thread for each frame and
    on_error runs once if the source fails, after which the thread exits. pause()
    stops delivery; start() may be called again afterwards.
    """
    thread_name = "DepthSourceThread"

    def __init__(self):
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.finished = threading.Event()  # Set when the thread exits for any reason
        self.exhausted = False  # True once a finite source ran out of frames

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def open(self):
        """Acquires the device or data. Raises FrameSourceUnavailableError if impossible."""

    def close(self):
        """Releases whatever open() acquired."""

    def read(self) -> Optional[np.ndarray]:
        """
        Returns the next HxW depth array in meters, None when this event carries
        no depth, or raises StopIteration when the source is exhausted.
        """
        raise NotImplementedError

    def start(self, on_frame: FrameCallback, on_error: Optional[ErrorCallback] = None):
        if self.is_running:
            logger.debug(f"{self.__class__.__name__} already running.")
            return
        self.open()
        self._stop_event.clear()
        self.finished.clear()
        self.exhausted = False
        self._thread = threading.Thread(target=self._run, args=(on_frame, on_error),
                                        name=self.thread_name, daemon=True)
        self._thread.start()
        logger.info(f"{self.__class__.__name__} started.")

    def pause(self, join_timeout: float = 2.0):
        self._stop_event.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=join_timeout)
            if self._thread.is_alive():
                logger.warning(f"{self.thread_name} did not stop within {join_timeout}s.")
        logger.info(f"{self.__class__.__name__} paused.")

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self.finished.wait(timeout)

    def _run(self, on_frame: FrameCallback, on_error: Optional[ErrorCallback]):
        try:
            while not self._stop_event.is_set():
                try:
                    depth_m = self.read()
                except StopIteration:
                    logger.info(f"{self.__class__.__name__} has no more frames.")
                    self.exhausted = True
                    break
                if depth_m is None or depth_m.ndim != 2:
                    logger.debug("Frame without a usable depth channel skipped.")
                    continue
                on_frame(DepthFrame.from_array(depth_m))
        except Exception as e:
            logger.error(f"{self.__class__.__name__} failed: {e}", exc_info=True)
            if on_error:
                error = e if isinstance(e, FrameSourceError) else FrameSourceError(str(e))
                on_error(error)
        finally:
            self.close()
            self.finished.set()


class RecordedDepthSource(DepthFrameSource):
    """
    Replays depth recordings: a .npy/.npz file or a directory of them.

    A 3-D array (N x H x W) is treated as N consecutive frames. .npz files must
    hold the depth under one of NPZ_DEPTH_KEYS; entries without depth are skipped.
    """
    thread_name = "RecordedDepthThread"

    def __init__(self, path: str, fps: float = 15.0, loop: bool = False):
        super().__init__()
        self.path = path
        self.fps = fps
        self.loop = loop
        self._files: List[str] = []
        self._pending: List[Optional[np.ndarray]] = []
        self._file_index = 0
        self._last_frame_time: Optional[float] = None

    def open(self):
        if os.path.isdir(self.path):
            self._files = sorted(
                os.path.join(self.path, name) for name in os.listdir(self.path)
                if name.lower().endswith(RECORDING_EXTENSIONS)
            )
        elif os.path.isfile(self.path):
            self._files = [self.path]
        else:
            raise FrameSourceUnavailableError(f"Depth recording not found: {self.path}")
        if not self._files:
            raise FrameSourceUnavailableError(f"No depth recordings (.npy/.npz) in {self.path}")
        # A finished replay starts over; a paused or failed one resumes where it stopped
        if self.exhausted:
            self._file_index = 0
            self._pending = []
        self._last_frame_time = None
        logger.info(f"Replaying {len(self._files)} depth recording(s) from {self.path} at {self.fps} FPS")

    def _load(self, file_path: str) -> List[Optional[np.ndarray]]:
        try:
            data = np.load(file_path, allow_pickle=False)
        except (OSError, ValueError) as e:
            raise FrameSourceError(f"Could not read depth recording {file_path}: {e}") from e

        if isinstance(data, np.lib.npyio.NpzFile):
            with data:
                key = next((k for k in NPZ_DEPTH_KEYS if k in data.files), None)
                if key is None:
                    logger.debug(f"{file_path} has no depth channel, skipping.")
                    return [None]
                depth = data[key]
        else:
            depth = data

        if depth.ndim == 3:
            return [depth_to_meters(frame) for frame in depth]
        if depth.ndim == 2:
            return [depth_to_meters(depth)]
        logger.debug(f"{file_path} has unexpected shape {depth.shape}, skipping.")
        return [None]

    def read(self) -> Optional[np.ndarray]:
        while not self._pending:
            if self._file_index >= len(self._files):
                if not self.loop:
                    raise StopIteration
                self._file_index = 0
            self._pending = self._load(self._files[self._file_index])
            self._file_index += 1

        self._throttle()
        return self._pending.pop(0)

    def _throttle(self):
        if self.fps <= 0:
            return
        interval = 1.0 / self.fps
        now = time.monotonic()
        if self._last_frame_time is not None:
            remaining = interval - (now - self._last_frame_time)
            if remaining > 0:
                self._stop_event.wait(remaining)
        self._last_frame_time = time.monotonic()


class RealSenseDepthSource(DepthFrameSource):
    """Live depth from an Intel RealSense camera (z16 stream scaled to meters)."""
    thread_name = "RealSenseDepthThread"

    def __init__(self, width: int = 640, height: int = 480, fps: int = 30, timeout_ms: int = 5000):
        super().__init__()
        self.width = width
        self.height = height
        self.fps = fps
        self.timeout_ms = timeout_ms
        self._rs = None
        self._pipeline = None
        self._depth_scale = 0.001

    def open(self):
        try:
            import pyrealsense2 as rs
        except ImportError as e:
            raise FrameSourceUnavailableError(f"pyrealsense2 is not installed: {e}") from e

        self._rs = rs
        pipeline = rs.pipeline()
        config = rs.config()
        config.enable_stream(rs.stream.depth, self.width, self.height, rs.format.z16, self.fps)
        try:
            profile = pipeline.start(config)
        except RuntimeError as e:
            raise FrameSourceUnavailableError(f"No RealSense depth stream available: {e}") from e

        self._depth_scale = profile.get_device().first_depth_sensor().get_depth_scale()
        self._pipeline = pipeline
        logger.info(f"RealSense depth stream {self.width}x{self.height}@{self.fps} (scale {self._depth_scale})")

    def read(self) -> Optional[np.ndarray]:
        try:
            frames = self._pipeline.wait_for_frames(self.timeout_ms)
        except RuntimeError as e:
            raise FrameSourceError(f"RealSense frame wait failed: {e}") from e
        depth_frame = frames.get_depth_frame()
        if not depth_frame:
            return None
        depth_raw = np.asanyarray(depth_frame.get_data())
        return depth_raw.astype(np.float32) * self._depth_scale

    def close(self):
        if self._pipeline is not None:
            try:
                self._pipeline.stop()
            except RuntimeError as e:
                logger.warning(f"Error stopping RealSense pipeline: {e}")
            finally:
                self._pipeline = None
