# --- START OF FILE main_depth_nav.py ---
"""
Depth Navigation Assistant - Main Module

Turns depth frames into spoken and haptic obstacle alerts:
1. Reads depth frames (RealSense camera or recorded .npy/.npz files)
2. Finds obstacles ahead, left, right and at lower height
3. Announces them by voice and vibrates proportionally to the distance

Usage:
    python -m depth_navigation.main_depth_nav --source recorded --path recordings/ --display
    python -m depth_navigation.main_depth_nav --source realsense --haptic-port /dev/ttyACM0
"""

import argparse
import logging
import time
from typing import List, Optional

from depth_navigation.audio_feedback import AudioFeedbackHandler, SpeechRateLimiter
from depth_navigation.config import Config
from depth_navigation.feedback_dispatcher import FeedbackDispatcher
from depth_navigation.frame_sources import DepthFrameSource, RealSenseDepthSource, RecordedDepthSource
from depth_navigation.haptic_feedback import HapticFeedbackHandler
from depth_navigation.messages import MessageCatalog
from depth_navigation.navigation_session import NavigationSession, ObstaclePipeline

logger = logging.getLogger("DepthNavigationMain")


# --- Logging Setup ---
def setup_logging(debug: bool = False):
    """Configure logging settings."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    # Quieten overly verbose loggers from subsystems
    logging.getLogger("pyttsx3.engine").setLevel(logging.INFO)
    logging.getLogger("comtypes").setLevel(logging.WARNING)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Depth Navigation Assistant")
    parser.add_argument("--source", choices=["recorded", "realsense"], default=Config.FRAME_SOURCE,
                        help="Where depth frames come from")
    parser.add_argument("--path", default=Config.RECORDING_PATH,
                        help="Recording file or directory for --source recorded")
    parser.add_argument("--fps", type=float, default=Config.REPLAY_FPS,
                        help="Replay speed for recorded frames")
    parser.add_argument("--loop", action="store_true", default=Config.REPLAY_LOOP,
                        help="Loop recorded frames forever")
    parser.add_argument("--language", default=Config.LANGUAGE,
                        help="Message language ('en' or 'it')")
    parser.add_argument("--rate", type=int, default=Config.AUDIO_RATE,
                        help="Speech rate in words per minute")
    parser.add_argument("--haptic-port", default=Config.HAPTIC_PORT,
                        help="Serial port of the haptic actuator (auto-detect if omitted)")
    parser.add_argument("--no-haptics", action="store_true",
                        help="Disable the haptic actuator")
    parser.add_argument("--display", action="store_true", default=Config.DISPLAY_OVERLAY,
                        help="Show the obstacle overlay window")
    parser.add_argument("--max-restarts", type=int, default=Config.FRAME_SOURCE_MAX_RESTARTS,
                        help="Depth source restarts allowed after a failure")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug output")
    return parser.parse_args(argv)


def build_source(args: argparse.Namespace) -> DepthFrameSource:
    if args.source == "realsense":
        return RealSenseDepthSource(width=Config.REALSENSE_WIDTH, height=Config.REALSENSE_HEIGHT,
                                    fps=Config.REALSENSE_FPS)
    return RecordedDepthSource(args.path, fps=args.fps, loop=args.loop)


def run(args: argparse.Namespace) -> int:
    catalog = MessageCatalog(args.language)
    audio_handler = AudioFeedbackHandler(
        rate=args.rate,
        volume=Config.AUDIO_VOLUME,
        voice_language=args.language,
        rate_limiter=SpeechRateLimiter(Config.SPEECH_WINDOW_SECONDS),
    )
    haptic_handler = None
    if not args.no_haptics and Config.USE_HAPTICS:
        haptic_handler = HapticFeedbackHandler(port=args.haptic_port, baudrate=Config.HAPTIC_BAUDRATE,
                                               timeout=Config.HAPTIC_TIMEOUT_S)

    dispatcher = FeedbackDispatcher(audio_handler, haptic_handler, catalog)
    session = NavigationSession(build_source(args), ObstaclePipeline(dispatcher), audio_handler,
                                catalog=catalog, max_restarts=args.max_restarts)

    overlay = None
    if args.display:
        from depth_navigation.overlay_display import OverlayWindow, QueueSnapshotListener
        listener = QueueSnapshotListener()
        dispatcher.add_listener(listener)
        overlay = OverlayWindow(listener, Config.OVERLAY_WIDTH, Config.OVERLAY_HEIGHT)

    exit_code = 0
    try:
        if not session.start():
            exit_code = 1
            return exit_code
        while session.running and not session.source.exhausted:
            if overlay is not None:
                if not overlay.poll():
                    logger.info("ESC pressed, exiting.")
                    break
            else:
                time.sleep(0.1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    finally:
        session.stop()
        if overlay is not None:
            overlay.close()
        audio_handler.wait_until_idle(timeout=3.0)
        audio_handler.stop()
        if haptic_handler is not None:
            haptic_handler.wait_for_recovery(timeout=3.0)
            haptic_handler.close()
    return exit_code


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.debug)
    logger.info("Starting Depth Navigation Assistant...")
    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
