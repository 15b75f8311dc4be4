# --- START OF FILE audio_feedback.py ---

import pyttsx3
import threading
import queue
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__) # Inherits config from main_depth_nav.py

# Command types for the worker queue
COMMAND_SPEAK = "SPEAK"
COMMAND_FORCE_STOP = "FORCE_STOP"
COMMAND_SHUTDOWN = "SHUTDOWN"

DEFAULT_SPEECH_WINDOW_S = 2.0


class SpeechRateLimiter:
    """
    Allows at most one utterance per rolling window. Requests inside the window
    are dropped, not deferred.
    """
    def __init__(self, window_seconds: float = DEFAULT_SPEECH_WINDOW_S, clock: Callable[[], float] = time.monotonic):
        self.window_seconds = window_seconds
        self.clock = clock
        self._last_voiced: Optional[float] = None
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        with self._lock:
            now = self.clock()
            if self._last_voiced is not None and now - self._last_voiced < self.window_seconds:
                return False
            self._last_voiced = now
            return True

    def reset(self):
        with self._lock:
            self._last_voiced = None


class AudioFeedbackHandler:
    """
    Text-to-speech on a background worker thread.

    speak() never blocks the caller: accepted messages are queued for the worker,
    and anything arriving within the rate-limit window of the last accepted
    message is dropped. If the TTS engine cannot be created, the handler stays
    silent and logs the failure.
    """
    def __init__(self, rate=160, volume=1.0, voice_language: Optional[str] = None,
                 rate_limiter: Optional[SpeechRateLimiter] = None,
                 engine_factory: Callable = pyttsx3.init):
        logger.info("Initializing AudioFeedbackHandler...")
        self.engine = None
        self.message_queue = queue.Queue()
        self.rate_limiter = rate_limiter or SpeechRateLimiter()
        self.speaking_flag_lock = threading.Lock() # Lock for self.speaking
        self._speaking = False
        self._stop_event = threading.Event()
        self.speak_thread = None

        try:
            self.engine = engine_factory()
            if self.engine:
                self.engine.setProperty('rate', rate)
                self.engine.setProperty('volume', volume)
                if voice_language:
                    self._select_voice(voice_language)
                logger.info("TTS engine initialized.")
            else:
                logger.critical("TTS engine factory failed to return an engine instance.")
                return
        except Exception as e:
            logger.critical(f"Failed to initialize TTS engine: {e}", exc_info=True)
            self.engine = None
            return

        self._start_speak_thread()
        logger.info("AudioFeedbackHandler initialized and worker thread started.")

    @property
    def available(self) -> bool:
        return self.engine is not None

    @property
    def speaking(self):
        with self.speaking_flag_lock:
            return self._speaking

    @speaking.setter
    def speaking(self, value):
        with self.speaking_flag_lock:
            self._speaking = value

    def _select_voice(self, language: str):
        """Picks the first installed voice whose id or languages mention `language`."""
        try:
            voices = self.engine.getProperty('voices') or []
        except Exception as e:
            logger.warning(f"Could not list TTS voices: {e}")
            return
        language = language.lower()
        for voice in voices:
            languages = [str(lang).lower() for lang in (getattr(voice, 'languages', None) or [])]
            if language in str(getattr(voice, 'id', '')).lower() or any(language in lang for lang in languages):
                self.engine.setProperty('voice', voice.id)
                logger.info(f"Using TTS voice '{voice.id}' for language '{language}'.")
                return
        logger.warning(f"No TTS voice found for language '{language}', keeping the default voice.")

    def _start_speak_thread(self):
        if self.speak_thread is None or not self.speak_thread.is_alive():
            self._stop_event.clear()
            self.speak_thread = threading.Thread(target=self._process_queue, name="AudioWorkerThread", daemon=True)
            self.speak_thread.start()
            logger.debug("Audio processing thread (re)started.")

    def _process_queue(self):
        logger.debug(f"{threading.current_thread().name} loop started.")
        while True:
            try:
                command_type, message_content = self.message_queue.get(timeout=0.1)
            except queue.Empty:
                if self._stop_event.is_set():
                    break
                continue

            try:
                if command_type == COMMAND_SHUTDOWN:
                    logger.debug(f"{threading.current_thread().name} received SHUTDOWN.")
                    break

                if command_type == COMMAND_SPEAK:
                    self._say(message_content)
                elif command_type == COMMAND_FORCE_STOP:
                    self._drain_pending_speech()
            except Exception as e:
                logger.error(f"Critical error in {threading.current_thread().name} loop: {e}", exc_info=True)
            finally:
                self.message_queue.task_done()

        logger.info(f"{threading.current_thread().name} loop finished.")
        self.speaking = False

    def _say(self, message: str):
        if not self.engine:
            logger.error(f"{threading.current_thread().name}: TTS engine not available. Discarding message.")
            return
        logger.info(f"Speaking: '{message[:60]}'")
        self.speaking = True
        try:
            self.engine.say(message)
            self.engine.runAndWait() # Blocks the worker only
        except RuntimeError as e:
            logger.error(f"RuntimeError during say/runAndWait: {e}", exc_info=True)
        finally:
            self.speaking = False

    def _drain_pending_speech(self):
        discarded = 0
        while True:
            try:
                command_type, message_content = self.message_queue.get_nowait()
            except queue.Empty:
                break
            if command_type == COMMAND_SPEAK:
                discarded += 1
                self.message_queue.task_done()
            else:
                # Keep shutdown requests; re-queue and let the main loop handle them
                self.message_queue.task_done()
                self.message_queue.put((command_type, message_content))
                break
        logger.debug(f"FORCE_STOP discarded {discarded} pending message(s).")

    def speak(self, message: str) -> bool:
        """Queues `message` for speech. Returns False if it was dropped."""
        if not isinstance(message, str) or not message.strip():
            logger.warning(f"Speak called with invalid message: '{message}'")
            return False

        if not self.engine:
            logger.debug(f"TTS engine not available, not speaking: '{message[:30]}'")
            return False

        if self._stop_event.is_set() or not (self.speak_thread and self.speak_thread.is_alive()):
            logger.warning(f"Audio handler shut down, not queueing: '{message[:30]}'")
            return False

        if not self.rate_limiter.try_acquire():
            logger.debug(f"Rate limited, dropping: '{message[:30]}'")
            return False

        logger.debug(f"Queueing SPEAK: '{message[:60]}'")
        self.message_queue.put((COMMAND_SPEAK, message))
        return True

    def force_stop(self):
        """Stops current speech and discards pending messages. Safe from any thread."""
        if not self.engine:
            return
        if self.speaking:
            try:
                self.engine.stop()
            except RuntimeError as e:
                logger.warning(f"RuntimeError during engine.stop() in force_stop: {e}", exc_info=True)
        self.message_queue.put((COMMAND_FORCE_STOP, ""))

    def wait_until_idle(self, timeout: float = 5.0) -> bool:
        """Waits for queued speech to finish. Returns False on timeout."""
        deadline = time.monotonic() + timeout
        while self.message_queue.unfinished_tasks:
            if time.monotonic() >= deadline:
                return False
            time.sleep(0.02)
        return True

    def stop(self, join_timeout: float = 3.0):
        """
        Shuts the worker down after it finishes the current message.
        Call this when the application is closing.
        """
        if self._stop_event.is_set():
            logger.debug("AudioFeedbackHandler already stopped.")
            return

        self._stop_event.set()
        self.message_queue.put((COMMAND_SHUTDOWN, ""))

        if self.speak_thread and self.speak_thread.is_alive():
            self.speak_thread.join(timeout=join_timeout)
            if self.speak_thread.is_alive():
                logger.warning(f"{self.speak_thread.name} did not join, forcing engine.stop().")
                if self.engine:
                    try:
                        self.engine.stop()
                    except Exception as e:
                        logger.error(f"Unexpected error during engine.stop(): {e}", exc_info=True)
                self.speak_thread.join(timeout=join_timeout)
                if self.speak_thread.is_alive():
                    logger.error(f"{self.speak_thread.name} FAILED to join.")

        self.engine = None
        logger.info("AudioFeedbackHandler stopped.")
