"""Remote "current" record model"""
from typing import Dict, Any, Optional


class RemoteRecord:
    """
    Represents the per-device record at devices/{device_id}/current.
    
    The device writes temp, hum and timestamp every sensing cycle. An operator
    requests an override by setting override to true together with the
    values to show. Any field may be missing.
    """
    
    def __init__(self,
                 temp: Optional[float] = None,
                 hum: Optional[float] = None,
                 timestamp: Optional[int] = None,
                 override: bool = False):
        self.temp = temp
        self.hum = hum
        self.timestamp = timestamp
        self.override = override
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            'temp': self.temp,
            'hum': self.hum,
            'timestamp': self.timestamp,
            'override': self.override
        }
    
    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'RemoteRecord':
        """Create instance from dictionary"""
        data = data or {}
        temp = data.get('temp')
        hum = data.get('hum')
        return cls(
            temp=float(temp) if temp is not None else None,
            hum=float(hum) if hum is not None else None,
            timestamp=data.get('timestamp'),
            override=bool(data.get('override', False))
        )
