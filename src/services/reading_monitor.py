"""Live history of a device's published readings"""
from collections import deque
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import threading
import logging
from api.models.remote_record import RemoteRecord
from config.store_config import StoreConfig
from services.remote_store import RemoteStore
from utils.exceptions import RemoteReadError
from utils.validators import validate_remote_record

logger = logging.getLogger(__name__)


class ReadingMonitor:
    """
    Follows devices/{device_id}/current and keeps the most recent points.

    The device writes temp, hum and timestamp as separate leaf writes, in
    that order. The temp and hum updates of a cycle still carry the previous
    cycle's timestamp, so an update whose timestamp is already recorded
    leaves the history alone; the point is taken from the update that
    brings the new timestamp.

    Each point carries seconds_since_start, measured from the first
    timestamp seen, so a chart can use it as its x axis.
    """

    MAX_DATA_POINTS = 30

    def __init__(self, store: RemoteStore, device_id: str, max_points: int = None):
        self.store = store
        self.device_id = device_id
        self.points = deque(maxlen=max_points or self.MAX_DATA_POINTS)
        self.lock = threading.Lock()
        self.first_timestamp: Optional[int] = None
        self.latest: Optional[RemoteRecord] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> bool:
        """Subscribe to the device's current record"""
        if self._unsubscribe is not None:
            return True
        try:
            self._unsubscribe = self.store.watch(StoreConfig.get_current_path(self.device_id), self.handle_record)
            return True
        except RemoteReadError as e:
            logger.error(f"Device {self.device_id}: Could not start reading monitor - {e}")
            return False

    def stop(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def handle_record(self, data: Optional[Dict[str, Any]]):
        """Add the record to the history; records without a timestamp are skipped"""
        if not data:
            return

        is_valid, error_message = validate_remote_record(data)
        if not is_valid:
            logger.warning(f"Device {self.device_id}: Ignoring malformed record - {error_message}")
            return

        record = RemoteRecord.from_dict(data)
        if record.timestamp is None:
            logger.debug(f"Device {self.device_id}: Record without timestamp skipped")
            return

        timestamp = int(record.timestamp)
        with self.lock:
            if self.first_timestamp is None:
                self.first_timestamp = timestamp

            self.latest = record

            # Timestamp already recorded
            if self.points and self.points[-1]['timestamp'] == timestamp:
                return

            self.points.append({
                'timestamp': timestamp,
                'seconds_since_start': timestamp - self.first_timestamp,
                'temp': record.temp if record.temp is not None else 0.0,
                'hum': record.hum if record.hum is not None else 0.0
            })

    def get_history(self) -> Dict[str, Any]:
        """
        Current values and the retained points

        Returns:
            Dictionary with temperature, humidity, last_update (HH:MM:SS local time),
            override and the list of points, oldest first
        """
        with self.lock:
            points: List[Dict[str, Any]] = [dict(point) for point in self.points]
            latest = self.latest

        if not points:
            return {
                'device_id': self.device_id,
                'temperature': 0.0,
                'humidity': 0.0,
                'last_update': '00:00:00',
                'override': False,
                'points': []
            }

        last = points[-1]
        return {
            'device_id': self.device_id,
            'temperature': last['temp'],
            'humidity': last['hum'],
            'last_update': datetime.fromtimestamp(last['timestamp']).strftime('%H:%M:%S'),
            'override': latest.override if latest else False,
            'points': points
        }
