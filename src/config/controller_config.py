"""Switch controller configuration"""
import os


class ControllerConfig:
    """Switch peer address and connection timing, all durations in seconds"""
    
    PEER_HOST = os.environ.get('PEER_HOST', '192.168.75.23')
    PEER_PORT = int(os.environ.get('PEER_PORT', '81'))
    
    CONNECT_TIMEOUT = float(os.environ.get('CONNECT_TIMEOUT', '5'))
    HEARTBEAT_INTERVAL = float(os.environ.get('HEARTBEAT_INTERVAL', '10'))
    RECONNECT_BACKOFF = float(os.environ.get('RECONNECT_BACKOFF', '3'))
    
    # 0 disables the silent-channel check; liveness then relies on close/error only
    HEARTBEAT_TIMEOUT = float(os.environ.get('HEARTBEAT_TIMEOUT', '0'))
    
    # Device whose readings the controller shows
    MONITORED_DEVICE_ID = os.environ.get('DEVICE_ID', 'esp32_001')
    
    @staticmethod
    def get_peer_uri(host: str, port: int) -> str:
        """Get WebSocket URI of the switch peer"""
        return f'ws://{host}:{port}'
