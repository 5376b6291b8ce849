"""Device loop driver composing the sensing, sync, expiry and display tasks"""
from typing import Callable
import threading
import logging
from api.models.device_state import DeviceState
from config.device_config import DeviceConfig
from services.device_tasks import SensingTask, SyncPoller, OverrideExpiryTask, DisplayRefreshTask
from services.override_arbiter import OverrideArbiter
from services.remote_store import RemoteStore
from services.scheduler import CooperativeScheduler
from services.sensors import Sensor
from utils.clock import Clock

logger = logging.getLogger(__name__)


class DeviceLoop:
    """
    Single-threaded device core.

    All DeviceState mutation happens from the thread running this loop.
    Remote store calls are synchronous but bounded by the store's timeout,
    so a slow store delays the other tasks by at most that long.
    """

    def __init__(self,
                 sensor: Sensor,
                 store: RemoteStore,
                 device_id: str = None,
                 clock: Clock = None,
                 display: Callable[[DeviceState], None] = None,
                 sense_interval_ms: int = None,
                 sync_interval_ms: int = None,
                 override_timeout_ms: int = None,
                 expire_check_interval_ms: int = None,
                 display_interval_ms: int = None,
                 tick_ms: int = None):
        """
        Initialize the loop; unset values come from DeviceConfig

        Args:
            sensor: Sensor collaborator
            store: Remote store client
            device_id: Device identifier used in store paths
            clock: Time source shared by all tasks
            display: Called with a DeviceState snapshot on every display refresh
        """
        self.device_id = device_id or DeviceConfig.DEVICE_ID
        self.clock = clock or Clock()
        self.store = store
        self.tick_ms = tick_ms if tick_ms is not None else DeviceConfig.TICK_MS
        self.override_timeout_ms = override_timeout_ms if override_timeout_ms is not None else DeviceConfig.OVERRIDE_TIMEOUT_MS

        self.arbiter = OverrideArbiter(self.clock)
        self.sensing = SensingTask(sensor, self.arbiter, store, self.device_id, self.clock)
        self.sync = SyncPoller(store, self.arbiter, self.device_id, self.clock)
        self.expiry = OverrideExpiryTask(self.arbiter, store, self.device_id, self.override_timeout_ms, self.clock)
        self.display = DisplayRefreshTask(self.arbiter, display)

        self.scheduler = CooperativeScheduler(self.clock)
        self.scheduler.add_task(
            'sense',
            sense_interval_ms if sense_interval_ms is not None else DeviceConfig.SENSE_INTERVAL_MS,
            self.sensing.run
        )
        self.scheduler.add_task(
            'sync',
            sync_interval_ms if sync_interval_ms is not None else DeviceConfig.SYNC_INTERVAL_MS,
            self.sync.run
        )
        self.scheduler.add_task(
            'expire',
            expire_check_interval_ms if expire_check_interval_ms is not None else DeviceConfig.EXPIRE_CHECK_INTERVAL_MS,
            self.expiry.run
        )
        self.scheduler.add_task(
            'display',
            display_interval_ms if display_interval_ms is not None else DeviceConfig.DISPLAY_INTERVAL_MS,
            self.display.run
        )

        self.stop_event = threading.Event()
        logger.info(f"DeviceLoop initialized for device {self.device_id}")

    def tick(self, now_ms: int = None):
        """Run one pass over the tasks"""
        return self.scheduler.run_pending(now_ms)

    def run_forever(self):
        self.stop_event.clear()
        self.scheduler.run_forever(self.stop_event, self.tick_ms)

    def stop(self):
        self.stop_event.set()

    @property
    def state(self) -> DeviceState:
        return self.arbiter.snapshot()
