"""Device state model"""
from typing import Dict, Any
from api.models.reading import Reading


class DeviceState:
    """
    Authoritative state of the sensing device.
    
    Owned by the OverrideArbiter; other components only see snapshots.
    """
    
    def __init__(self,
                 current_reading: Reading = None,
                 override_active: bool = False,
                 override_since: int = 0):
        """
        Initialize device state
        
        Args:
            current_reading: Reading shown and published as authoritative
            override_active: Whether a remote override is in effect
            override_since: Monotonic time (ms) the override was last activated
        """
        self.current_reading = current_reading or Reading.zero()
        self.override_active = override_active
        self.override_since = override_since
    
    def copy(self) -> 'DeviceState':
        return DeviceState(
            current_reading=self.current_reading.with_values(),
            override_active=self.override_active,
            override_since=self.override_since
        )
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for status output"""
        return {
            'current_reading': self.current_reading.to_dict(),
            'override_active': self.override_active,
            'override_since': self.override_since
        }
