# --- START OF FILE haptic_feedback.py ---

import serial
import serial.tools.list_ports
import time
import threading
import logging
from typing import Callable, List, Optional

from depth_navigation.errors import HapticDeviceError

logger = logging.getLogger(__name__)

ResetHandler = Callable[[], None]


class HapticFeedbackHandler:
    """
    Vibration motor driven by an Arduino over serial.

    The firmware accepts one line per pulse: b'V<0-255>\\n' (PWM duty cycle).
    When no actuator is connected every call is a no-op. A failed write is treated
    as an actuator reset: on a background thread the registered reset handlers run
    (the handler's own restart is registered first) and the write is retried once.
    """
    PWM_MAX = 255

    def __init__(self, port: Optional[str] = None, baudrate: int = 9600, timeout: float = 0.5,
                 settle_seconds: float = 2.0, serial_factory: Callable = serial.Serial):
        """
        Args:
            port: Serial port ('COM3', '/dev/ttyACM0'). Auto-detects an Arduino if None.
            baudrate: Serial baud rate.
            timeout: Serial read/write timeout in seconds.
            settle_seconds: Wait after opening the port (Arduino resets on connect).
            serial_factory: Callable returning an open serial port, replaceable in tests.
        """
        self.port_name = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.settle_seconds = settle_seconds
        self.serial_factory = serial_factory
        self.serial_port = None
        self._recovering = threading.Event()
        self._recovery_thread: Optional[threading.Thread] = None
        self._reset_handlers: List[ResetHandler] = []
        self.on_reset(self._restart)
        # Connect initially but don't raise if it fails
        self.connect()

    def is_connected(self) -> bool:
        return self.serial_port is not None and self.serial_port.is_open

    def on_reset(self, handler: ResetHandler):
        """Registers a callback run whenever the actuator needs a restart."""
        self._reset_handlers.append(handler)

    def _auto_detect_arduino_port(self) -> Optional[str]:
        for port in serial.tools.list_ports.comports():
            description = (port.description or "").lower()
            if ('arduino' in description or
                'ch340' in description or
                'usb-serial' in description or
                port.vid == 0x2341):
                return port.device
        return None

    def connect(self) -> bool:
        """Attempts to open the actuator port. Returns False (and logs) on failure."""
        self.close()
        try:
            if self.port_name is None:
                self.port_name = self._auto_detect_arduino_port()
                if self.port_name:
                    logger.info(f"Auto-detected haptic Arduino on port: {self.port_name}")
                else:
                    logger.warning("No haptic actuator found. Haptic feedback disabled.")
                    return False

            logger.info(f"Connecting to haptic actuator on {self.port_name}")
            self.serial_port = self.serial_factory(
                port=self.port_name,
                baudrate=self.baudrate,
                timeout=self.timeout,
                write_timeout=self.timeout
            )
            if self.settle_seconds > 0:
                time.sleep(self.settle_seconds)
            logger.info(f"Haptic actuator connected on {self.port_name}")
            return True
        except (serial.SerialException, OSError, ValueError) as e:
            logger.error(f"Haptic actuator connection failed: {e}")
            self.close()
            return False

    def _write_pulse(self, intensity: float):
        if not self.is_connected():
            raise HapticDeviceError("Haptic actuator not connected")
        duty = int(round(max(0.0, min(1.0, intensity)) * self.PWM_MAX))
        try:
            self.serial_port.write(f"V{duty}\n".encode('ascii'))
        except (serial.SerialException, OSError) as e:
            raise HapticDeviceError(f"Haptic write failed: {e}") from e

    @property
    def recovering(self) -> bool:
        return self._recovering.is_set()

    def play_warning(self, intensity: float):
        """
        Sends one pulse. Never raises and never waits on a restart: while the
        actuator is being restarted in the background, pulses are dropped.
        """
        if self._recovering.is_set() or not self.is_connected():
            return

        try:
            self._write_pulse(intensity)
            return
        except HapticDeviceError as e:
            logger.warning(f"{e}. Restarting haptic actuator...")

        self._recovering.set()
        self._recovery_thread = threading.Thread(target=self._recover, args=(intensity,),
                                                 name="HapticRecoveryThread", daemon=True)
        self._recovery_thread.start()

    def _recover(self, intensity: float):
        try:
            self._notify_reset()
            try:
                self._write_pulse(intensity)
                logger.info("Haptic actuator restarted.")
            except HapticDeviceError as e:
                logger.error(f"Failed to restart haptic actuator: {e}. Haptic feedback disabled.")
                self.close()
        finally:
            self._recovering.clear()

    def wait_for_recovery(self, timeout: Optional[float] = None) -> bool:
        """Waits for a background restart to finish. Returns False on timeout."""
        thread = self._recovery_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        return not self._recovering.is_set()

    def _notify_reset(self):
        for handler in list(self._reset_handlers):
            try:
                handler()
            except Exception as e:
                logger.error(f"Haptic reset handler {handler!r} failed: {e}", exc_info=True)

    def _restart(self):
        self.connect()

    def close(self):
        if self.serial_port:
            try:
                self.serial_port.close()
            except Exception as e:
                logger.error(f"Error closing haptic port: {e}")
            finally:
                self.serial_port = None
