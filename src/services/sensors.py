"""Sensor collaborators"""
import random
import logging
from api.models.reading import Reading
from utils.clock import Clock
from utils.exceptions import SensorReadError
from utils.validators import validate_reading

logger = logging.getLogger(__name__)


class Sensor:
    """Source of temperature/humidity readings"""

    def read(self) -> Reading:
        """
        Take one reading

        Raises:
            SensorReadError: if the sensor returned nothing usable
        """
        raise NotImplementedError


class SimulatedSensor(Sensor):
    """
    Produces slowly drifting readings for running without hardware.

    With failure_rate > 0 some reads return NaN, as a DHT-style sensor does
    when it misses a read, so the error path can be exercised end to end.
    """

    def __init__(self,
                 base_temperature: float = 22.0,
                 base_humidity: float = 45.0,
                 failure_rate: float = 0.0,
                 clock: Clock = None,
                 rng: random.Random = None):
        self.temperature = base_temperature
        self.humidity = base_humidity
        self.failure_rate = failure_rate
        self.clock = clock or Clock()
        self.rng = rng or random.Random()

    def read(self) -> Reading:
        if self.rng.random() < self.failure_rate:
            temperature, humidity = float('nan'), float('nan')
        else:
            self.temperature = min(max(self.temperature + self.rng.uniform(-0.2, 0.2), -10.0), 50.0)
            self.humidity = min(max(self.humidity + self.rng.uniform(-0.5, 0.5), 0.0), 100.0)
            temperature, humidity = round(self.temperature, 1), round(self.humidity, 1)

        is_valid, error_message = validate_reading(temperature, humidity)
        if not is_valid:
            raise SensorReadError(error_message)

        return Reading(temperature, humidity, self.clock.epoch_seconds())
