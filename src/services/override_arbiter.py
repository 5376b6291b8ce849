"""Arbitration between sensed readings and remote override values"""
import threading
import logging
from api.models.device_state import DeviceState
from api.models.reading import Reading
from utils.clock import Clock

logger = logging.getLogger(__name__)


class OverrideArbiter:
    """
    Owns the DeviceState and decides which reading is authoritative.

    While an override is active, sensed samples are still returned for
    publishing as raw values but do not replace the current reading.
    The arbiter performs no I/O; clearing the remote override flag after
    expiry is left to the caller.
    """

    def __init__(self, clock: Clock = None):
        """Initialize with a zero reading and no override"""
        self.clock = clock or Clock()
        self.state = DeviceState()
        self.lock = threading.Lock()

    def apply_sample(self, reading: Reading) -> Reading:
        """
        Apply a validated sensor sample

        Args:
            reading: Reading from the sensor

        Returns:
            The reading to publish as the raw sensed value
        """
        with self.lock:
            if not self.state.override_active:
                self.state.current_reading = reading
            else:
                logger.debug(f"Override active, sample {reading} not applied")
        return reading

    def apply_override(self, reading: Reading):
        """
        Activate (or refresh) an override with the given reading

        Args:
            reading: Reading to show instead of sensed values
        """
        with self.lock:
            refreshed = self.state.override_active
            self.state.override_active = True
            self.state.override_since = self.clock.monotonic_ms()
            self.state.current_reading = reading

        if refreshed:
            logger.info(f"Override refreshed: {reading}")
        else:
            logger.info(f"Override activated: {reading}")

    def maybe_expire(self, now: int, timeout: int) -> bool:
        """
        Clear the override once it has been active for timeout milliseconds

        Args:
            now: Current monotonic time in milliseconds
            timeout: Override lifetime in milliseconds

        Returns:
            True exactly when this call cleared the override
        """
        with self.lock:
            if not self.state.override_active:
                return False
            if now - self.state.override_since < timeout:
                return False
            self.state.override_active = False

        logger.info(f"Override expired after {timeout} ms")
        return True

    def is_override_active(self) -> bool:
        with self.lock:
            return self.state.override_active

    def snapshot(self) -> DeviceState:
        """Copy of the current state, safe to hand to other threads"""
        with self.lock:
            return self.state.copy()
