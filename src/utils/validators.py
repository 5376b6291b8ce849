"""Data validation utilities"""
import math
import re
from typing import Any, Dict, Tuple

# Hostname or dotted IPv4 address, as typed into the controller
_HOST_PATTERN = re.compile(r'^[A-Za-z0-9]([A-Za-z0-9\-\.]{0,251}[A-Za-z0-9])?$')


def validate_reading(temperature: Any, humidity: Any) -> Tuple[bool, str]:
    """
    Validate a raw sensor reading

    A reading is rejected if either value is missing, not a number,
    or NaN (the value sensors report when a read times out).

    Args:
        temperature: Temperature in degrees Celsius
        humidity: Relative humidity in percent

    Returns:
        Tuple of (is_valid: bool, error_message: str)
    """
    for name, value in (('temperature', temperature), ('humidity', humidity)):
        if value is None:
            return False, f"Missing {name} value"

        # bool is an int subclass but never a valid measurement
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False, f"Field '{name}' must be a number"

        if math.isnan(value):
            return False, f"Failed to read {name} (NaN)"

        if math.isinf(value):
            return False, f"Field '{name}' is infinite"

    return True, ""


def validate_remote_record(data: Dict[str, Any]) -> Tuple[bool, str]:
    """
    Validate the structure of a device's "current" record

    Expected format (every field optional):
    {
        "temp": 22.5,
        "hum": 48.0,
        "timestamp": 1760084970,
        "override": false
    }

    Args:
        data: Record read from the remote store

    Returns:
        Tuple of (is_valid: bool, error_message: str)
    """
    if not isinstance(data, dict):
        return False, "Record must be a dictionary"

    for field in ('temp', 'hum'):
        value = data.get(field)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False, f"Field '{field}' must be a number"
        if math.isnan(value) or math.isinf(value):
            return False, f"Field '{field}' must be a finite number"

    timestamp = data.get('timestamp')
    if timestamp is not None and (isinstance(timestamp, bool) or not isinstance(timestamp, (int, float))):
        return False, "Field 'timestamp' must be a number"

    if 'override' in data and not isinstance(data['override'], bool):
        return False, "Field 'override' must be a boolean"

    return True, ""


def validate_peer_address(host: Any, port: Any) -> Tuple[bool, str]:
    """
    Validate the address of the switch peer

    Args:
        host: Hostname or IPv4 address
        port: TCP port

    Returns:
        Tuple of (is_valid: bool, error_message: str)
    """
    if not isinstance(host, str) or not host:
        return False, "Field 'host' must be a non-empty string"

    if not _HOST_PATTERN.match(host):
        return False, f"Invalid host: {host}"

    if isinstance(port, bool) or not isinstance(port, int):
        return False, "Field 'port' must be an integer"

    if not (1 <= port <= 65535):
        return False, "Field 'port' is out of range"

    return True, ""
