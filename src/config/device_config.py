"""Device scheduler configuration"""
import os


class DeviceConfig:
    """Sensing device settings, all intervals in milliseconds"""
    
    DEVICE_ID = os.environ.get('DEVICE_ID', 'esp32_001')
    
    SENSE_INTERVAL_MS = int(os.environ.get('SENSE_INTERVAL_MS', '2000'))
    SYNC_INTERVAL_MS = int(os.environ.get('SYNC_INTERVAL_MS', '5000'))
    OVERRIDE_TIMEOUT_MS = int(os.environ.get('OVERRIDE_TIMEOUT_MS', '30000'))
    DISPLAY_INTERVAL_MS = int(os.environ.get('DISPLAY_INTERVAL_MS', '1000'))
    
    # Expiry is checked on every pass of the loop
    EXPIRE_CHECK_INTERVAL_MS = int(os.environ.get('EXPIRE_CHECK_INTERVAL_MS', '0'))
    
    # Sleep between loop passes
    TICK_MS = int(os.environ.get('TICK_MS', '50'))
    
    # Use the simulated sensor instead of hardware
    SIMULATE_SENSOR = os.environ.get('SIMULATE_SENSOR', 'true').lower() in ('1', 'true', 'yes')
