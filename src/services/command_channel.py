"""Switch commands over the connection manager"""
from enum import Enum
from typing import Any, Optional, Tuple
import logging
from services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

FRAME_ON = 'ON'
FRAME_OFF = 'OFF'


class VoiceIntent(Enum):
    """Commands a recognized utterance can map to"""
    TURN_ON = 'turn_on'
    TURN_OFF = 'turn_off'
    RECONNECT = 'reconnect'

    @classmethod
    def parse(cls, value: Any) -> Optional['VoiceIntent']:
        """Intent for a name such as 'turn_on', or None if it is not one"""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class CommandChannel:
    """
    Sends switch commands and maps intents onto them.

    The local switch state is never changed here; it only follows the
    STATE:* frames the peer sends back after acting on a command.
    """

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    def toggle(self) -> Tuple[bool, str]:
        """
        Ask the peer to flip the switch

        Returns:
            Tuple of (sent: bool, message: str); (False, "Not connected")
            when there is no open channel
        """
        connected, switch_state = self.manager.switch_snapshot()
        if not connected:
            return False, "Not connected"

        command = FRAME_OFF if switch_state else FRAME_ON
        if not self.manager.send(command):
            return False, "Not connected"

        logger.info(f"Sent {command}")
        return True, f"Sent {command}"

    def dispatch(self, intent: VoiceIntent) -> Tuple[bool, str]:
        """
        Carry out a voice intent

        Turning the switch to the state it is already in does nothing.

        Args:
            intent: Intent derived from the utterance

        Returns:
            Tuple of (success: bool, message: str) with feedback for the user
        """
        if intent == VoiceIntent.RECONNECT:
            self.manager.disconnect()
            if self.manager.connect():
                return True, "Connecting..."
            return False, self.manager.status_text

        connected, switch_state = self.manager.switch_snapshot()
        if not connected:
            return False, "Not connected to device"

        wanted = intent == VoiceIntent.TURN_ON
        label = 'ON' if wanted else 'OFF'
        if switch_state == wanted:
            return True, f"Already {label}"

        command = FRAME_ON if wanted else FRAME_OFF
        if not self.manager.send(command):
            return False, "Not connected"

        logger.info(f"Sent {command}")
        return True, f"Turning bulb {label}"
