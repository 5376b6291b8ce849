"""Command channel connection state model"""
from enum import Enum
from typing import Dict, Any, Optional


class ConnectionStatus(Enum):
    """Lifecycle of the command channel"""
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'


class ConnectionState:
    """
    State of one connection attempt to the switch peer.
    
    A fresh instance is created for every attempt; the channel of an
    earlier attempt is never reused.
    """
    
    def __init__(self,
                 status: ConnectionStatus = ConnectionStatus.DISCONNECTED,
                 switch_state: bool = False,
                 status_text: str = 'Disconnected',
                 attempt: int = 0):
        """
        Initialize connection state
        
        Args:
            status: Current lifecycle state
            switch_state: Last switch state reported by the peer
            status_text: Human-readable status
            attempt: Sequence number of the connect attempt that owns this state
        """
        self.status = status
        self.switch_state = switch_state
        self.status_text = status_text
        self.attempt = attempt
        self.channel: Optional[Any] = None
        self.last_heartbeat_at: Optional[float] = None
        self.last_activity_at: Optional[float] = None
    
    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED
    
    def switch_label(self) -> str:
        return 'ON' if self.switch_state else 'OFF'
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for status output"""
        return {
            'status': self.status.value,
            'connected': self.is_connected,
            'switch_state': self.switch_state,
            'status_text': self.status_text,
            'last_heartbeat_at': self.last_heartbeat_at,
            'last_activity_at': self.last_activity_at
        }
