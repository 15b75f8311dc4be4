# --- START OF FILE errors.py ---


class DepthNavigationError(Exception):
    """Base class for errors raised by the depth navigation assistant."""


class FrameSourceError(DepthNavigationError):
    """The depth frame source failed while running."""


class FrameSourceUnavailableError(FrameSourceError):
    """The depth frame source cannot be started on this machine."""


class HapticDeviceError(DepthNavigationError):
    """The haptic actuator could not be written to."""
