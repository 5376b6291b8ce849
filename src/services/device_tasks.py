"""Periodic tasks run by the device loop"""
from typing import Callable, Optional
import logging
from api.models.device_state import DeviceState
from api.models.reading import Reading
from api.models.remote_record import RemoteRecord
from config.store_config import StoreConfig
from services.override_arbiter import OverrideArbiter
from services.remote_store import RemoteStore
from services.sensors import Sensor
from utils.clock import Clock
from utils.exceptions import SensorReadError, RemoteReadError, RemoteWriteError
from utils.validators import validate_reading, validate_remote_record

logger = logging.getLogger(__name__)


class SensingTask:
    """
    Samples the sensor and publishes the raw values.

    A valid reading goes through the arbiter and is then written as three
    independent leaf writes (temp, hum, timestamp); one failed write does
    not prevent the others. An invalid reading leaves the device state
    untouched and is appended to the device's remote error log instead.
    """

    def __init__(self,
                 sensor: Sensor,
                 arbiter: OverrideArbiter,
                 store: RemoteStore,
                 device_id: str,
                 clock: Clock = None):
        self.sensor = sensor
        self.arbiter = arbiter
        self.store = store
        self.device_id = device_id
        self.clock = clock or Clock()

    def run(self) -> Optional[Reading]:
        """
        Run one sensing cycle

        Returns:
            The raw reading that was published, or None if the read failed
        """
        try:
            reading = self.sensor.read()
            is_valid, error_message = validate_reading(reading.temperature, reading.humidity)
            if not is_valid:
                raise SensorReadError(error_message)
        except SensorReadError as e:
            logger.warning(f"Device {self.device_id}: Sensor read failed - {e}")
            self._log_remote_error(f"Sensor read failed: {e}")
            return None

        raw = self.arbiter.apply_sample(reading)
        timestamp = raw.sampled_at or self.clock.epoch_seconds()

        writes = (
            ('temp', raw.temperature),
            ('hum', raw.humidity),
            ('timestamp', timestamp),
        )
        for field, value in writes:
            try:
                self.store.set(StoreConfig.get_current_path(self.device_id, field), value)
            except RemoteWriteError as e:
                logger.error(f"Device {self.device_id}: Failed to publish {field} - {e}")

        logger.debug(f"Device {self.device_id}: Published temp={raw.temperature}, hum={raw.humidity}, timestamp={timestamp}")
        return raw

    def _log_remote_error(self, message: str):
        record = {
            'timestamp': self.clock.epoch_seconds(),
            'message': message
        }
        try:
            self.store.push(StoreConfig.get_errors_path(self.device_id), record)
        except RemoteWriteError as e:
            logger.error(f"Device {self.device_id}: Failed to append error record - {e}")


class SyncPoller:
    """
    Polls the remote "current" record for override requests.

    An override is activated on the transition of the remote flag, i.e. when
    the record says override=true and no override is active locally. While
    an override is active the record is not re-applied: the sensing task
    keeps publishing raw values into the same record, and re-applying it
    would both replace the operator's values and keep the override from
    ever expiring.
    """

    def __init__(self,
                 store: RemoteStore,
                 arbiter: OverrideArbiter,
                 device_id: str,
                 clock: Clock = None):
        self.store = store
        self.arbiter = arbiter
        self.device_id = device_id
        self.clock = clock or Clock()

    def run(self) -> bool:
        """
        Run one sync cycle

        Returns:
            True if this cycle activated an override
        """
        if not self.store.is_ready():
            logger.debug(f"Device {self.device_id}: Store not ready, skipping sync")
            return False

        try:
            self.store.set(StoreConfig.get_last_online_path(self.device_id), self.clock.epoch_seconds())
        except RemoteWriteError as e:
            logger.warning(f"Device {self.device_id}: Failed to update last_online - {e}")

        try:
            data = self.store.get(StoreConfig.get_current_path(self.device_id))
        except RemoteReadError as e:
            logger.error(f"Device {self.device_id}: Failed to read current record - {e}")
            return False

        if data is None:
            return False

        is_valid, error_message = validate_remote_record(data)
        if not is_valid:
            logger.warning(f"Device {self.device_id}: Ignoring malformed current record - {error_message}")
            return False

        record = RemoteRecord.from_dict(data)
        if not record.override or self.arbiter.is_override_active():
            return False

        current = self.arbiter.snapshot().current_reading
        reading = current.with_values(
            temperature=record.temp,
            humidity=record.hum,
            sampled_at=self.clock.epoch_seconds()
        )
        is_valid, error_message = validate_reading(reading.temperature, reading.humidity)
        if not is_valid:
            logger.warning(f"Device {self.device_id}: Ignoring override - {error_message}")
            return False

        self.arbiter.apply_override(reading)
        logger.info(f"Device {self.device_id}: Override requested remotely - temp={reading.temperature}, hum={reading.humidity}")
        return True


class OverrideExpiryTask:
    """Expires the override and clears the remote flag"""

    def __init__(self,
                 arbiter: OverrideArbiter,
                 store: RemoteStore,
                 device_id: str,
                 timeout_ms: int,
                 clock: Clock = None):
        self.arbiter = arbiter
        self.store = store
        self.device_id = device_id
        self.timeout_ms = timeout_ms
        self.clock = clock or Clock()

    def run(self) -> bool:
        if not self.arbiter.maybe_expire(self.clock.monotonic_ms(), self.timeout_ms):
            return False

        # Local state has already transitioned; the flag write is not retried
        try:
            self.store.set(StoreConfig.get_current_path(self.device_id, 'override'), False)
        except RemoteWriteError as e:
            logger.error(f"Device {self.device_id}: Failed to clear remote override flag - {e}")
        return True


def log_display(state: DeviceState):
    """Display that writes the authoritative reading to the log"""
    reading = state.current_reading
    suffix = ' [OVERRIDE]' if state.override_active else ''
    logger.info(f"Temp: {reading.temperature:.1f}°C  Hum: {reading.humidity:.1f}%{suffix}")


class DisplayRefreshTask:
    """Hands a snapshot of the device state to the display"""

    def __init__(self, arbiter: OverrideArbiter, display: Callable[[DeviceState], None] = None):
        self.arbiter = arbiter
        self.display = display or log_display

    def run(self):
        self.display(self.arbiter.snapshot())
