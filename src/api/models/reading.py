"""Sensor reading models"""
from typing import Dict, Any, Optional


class Reading:
    """Represents one temperature/humidity sample"""
    
    def __init__(self,
                 temperature: float,
                 humidity: float,
                 sampled_at: int = 0):
        """
        Initialize reading
        
        Args:
            temperature: Temperature in degrees Celsius
            humidity: Relative humidity in percent
            sampled_at: Unix timestamp in seconds
        """
        self.temperature = temperature
        self.humidity = humidity
        self.sampled_at = sampled_at
    
    @classmethod
    def zero(cls) -> 'Reading':
        """Reading the device starts with before the first sample"""
        return cls(temperature=0.0, humidity=0.0, sampled_at=0)
    
    def with_values(self,
                    temperature: Optional[float] = None,
                    humidity: Optional[float] = None,
                    sampled_at: Optional[int] = None) -> 'Reading':
        """Copy of this reading with the given values replaced, None keeps the current one"""
        return Reading(
            temperature=self.temperature if temperature is None else float(temperature),
            humidity=self.humidity if humidity is None else float(humidity),
            sampled_at=self.sampled_at if sampled_at is None else sampled_at
        )
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            'temp': self.temperature,
            'hum': self.humidity,
            'timestamp': self.sampled_at
        }
    
    def __eq__(self, other):
        if not isinstance(other, Reading):
            return NotImplemented
        return (self.temperature, self.humidity, self.sampled_at) == \
            (other.temperature, other.humidity, other.sampled_at)
    
    def __repr__(self):
        return f"Reading(temperature={self.temperature}, humidity={self.humidity}, sampled_at={self.sampled_at})"
