# --- START OF FILE config.py ---

from typing import Optional


class Config:
    """Central runtime configuration. Pipeline thresholds live with the pipeline modules."""
    # --- Frame Source ---
    FRAME_SOURCE: str = "recorded"          # "recorded" or "realsense"
    RECORDING_PATH: str = "recordings"      # .npy/.npz file or directory (recorded source)
    REPLAY_FPS: float = 15.0
    REPLAY_LOOP: bool = False
    REALSENSE_WIDTH: int = 640
    REALSENSE_HEIGHT: int = 480
    REALSENSE_FPS: int = 30
    FRAME_SOURCE_MAX_RESTARTS: int = 1      # Restarts after a source failure before the session stops

    # --- Audio ---
    AUDIO_RATE: int = 160                   # Words per minute
    AUDIO_VOLUME: float = 1.0
    SPEECH_WINDOW_SECONDS: float = 2.0      # At most one utterance per window
    LANGUAGE: str = "en"                    # Message catalog and preferred voice ("en", "it")

    # --- Haptics ---
    USE_HAPTICS: bool = True
    HAPTIC_PORT: Optional[str] = None       # e.g. 'COM5', '/dev/ttyACM0'; None to auto-detect
    HAPTIC_BAUDRATE: int = 9600
    HAPTIC_TIMEOUT_S: float = 0.5

    # --- Presentation ---
    DISPLAY_OVERLAY: bool = False
    OVERLAY_WIDTH: int = 640
    OVERLAY_HEIGHT: int = 400
