"""Exceptions raised by the device and controller services"""


class MonitorError(Exception):
    """Base exception for the environmental monitor"""
    pass


class SensorReadError(MonitorError):
    """Sensor returned no reading or an invalid one"""
    pass


class RemoteStoreError(MonitorError):
    """Remote store operation failed"""
    pass


class RemoteReadError(RemoteStoreError):
    """Reading a path from the remote store failed"""
    pass


class RemoteWriteError(RemoteStoreError):
    """Writing or appending to a path in the remote store failed"""
    pass


class ConnectError(MonitorError):
    """Opening the command channel failed"""
    pass


class ConnectTimeout(ConnectError):
    """Opening the command channel did not complete within the connect timeout"""
    pass


class ChannelClosed(MonitorError):
    """Command channel was closed by the peer or failed"""
    pass
