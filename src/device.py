"""Entry point for the environmental sensing device"""
import logging
import signal
from config.device_config import DeviceConfig
from services.device_loop import DeviceLoop
from services.remote_store import FirestoreStore
from services.sensors import SimulatedSensor

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_loop() -> DeviceLoop:
    """Wire the device loop from DeviceConfig"""
    if not DeviceConfig.SIMULATE_SENSOR:
        # Hardware drivers implement services.sensors.Sensor and are wired in here
        raise RuntimeError("No hardware sensor configured; set SIMULATE_SENSOR=true")

    sensor = SimulatedSensor()
    logger.info("Simulation mode: ON")
    return DeviceLoop(sensor=sensor, store=FirestoreStore())


def main():
    loop = build_loop()

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, stopping")
        loop.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    loop.run_forever()


if __name__ == '__main__':
    main()
