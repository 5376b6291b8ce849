"""Persistent WebSocket connection to the switch peer"""
from typing import Any, Callable, Dict, Tuple
import threading
import logging
from websockets.sync.client import connect as ws_connect
from api.models.connection_state import ConnectionState, ConnectionStatus
from config.controller_config import ControllerConfig
from utils.clock import Clock
from utils.exceptions import ChannelClosed, ConnectError, ConnectTimeout
from utils.validators import validate_peer_address

logger = logging.getLogger(__name__)

# Wire frames
FRAME_PING = 'PING'
FRAME_PONG = 'PONG'
FRAME_STATE_ON = 'STATE:ON'
FRAME_STATE_OFF = 'STATE:OFF'


def open_websocket(uri: str, timeout: float):
    """Open a WebSocket, bounded by timeout; raises TimeoutError when it expires"""
    return ws_connect(uri, open_timeout=timeout)


class ConnectionManager:
    """
    Owns the command channel to the switch and keeps it alive.

    State machine:
        DISCONNECTED --connect()--> CONNECTING --opened--> CONNECTED
        CONNECTING --timeout/failure--> DISCONNECTED (+ reconnect scheduled)
        CONNECTED --channel error/close--> DISCONNECTED (+ reconnect scheduled)
        any --disconnect()--> DISCONNECTED (no reconnect)

    Threads involved:
    - callers (HTTP request threads) invoking connect/send/disconnect
    - one reader thread per connected channel, feeding handle_message()
    - timer threads for the heartbeat and the reconnect backoff

    All of them go through self.lock. Every connect attempt gets a fresh
    ConnectionState tagged with an attempt number; callbacks from an older
    attempt (late reader errors, stale timers) are ignored. At most one
    reconnect timer is pending: scheduling a new one cancels the old one.

    Liveness is detected from channel close/error. Heartbeats are sent
    every heartbeat_interval; a missing PONG is only detected when
    heartbeat_timeout is set (> 0), in which case a channel that has
    been silent for longer is treated as closed.
    """

    def __init__(self,
                 host: str = None,
                 port: int = None,
                 connect_timeout: float = None,
                 heartbeat_interval: float = None,
                 reconnect_backoff: float = None,
                 heartbeat_timeout: float = None,
                 channel_factory: Callable[[str, float], Any] = None,
                 timer_factory: Callable[[float, Callable[[], None]], Any] = None,
                 thread_factory: Callable[..., Any] = None,
                 clock: Clock = None):
        """
        Initialize manager; unset values come from ControllerConfig

        Args:
            host: Switch peer host
            port: Switch peer port
            connect_timeout: Seconds to wait for the channel to open
            heartbeat_interval: Seconds between PING frames
            reconnect_backoff: Seconds before a reconnect attempt
            heartbeat_timeout: Seconds of silence treated as a dead channel, 0 disables
            channel_factory: Opens a channel for (uri, timeout); channels provide send/recv/close
            timer_factory: Builds a startable, cancellable timer for (delay, function)
            thread_factory: Builds the reader thread, called like threading.Thread
            clock: Time source for heartbeat bookkeeping
        """
        self.host = host or ControllerConfig.PEER_HOST
        self.port = port or ControllerConfig.PEER_PORT
        self.connect_timeout = connect_timeout if connect_timeout is not None else ControllerConfig.CONNECT_TIMEOUT
        self.heartbeat_interval = heartbeat_interval if heartbeat_interval is not None else ControllerConfig.HEARTBEAT_INTERVAL
        self.reconnect_backoff = reconnect_backoff if reconnect_backoff is not None else ControllerConfig.RECONNECT_BACKOFF
        self.heartbeat_timeout = heartbeat_timeout if heartbeat_timeout is not None else ControllerConfig.HEARTBEAT_TIMEOUT

        self.channel_factory = channel_factory or open_websocket
        self.timer_factory = timer_factory or threading.Timer
        self.thread_factory = thread_factory or threading.Thread
        self.clock = clock or Clock()

        self.lock = threading.RLock()
        self.state = ConnectionState()
        self._attempt = 0
        self._reconnect_timer = None
        self._reconnect_seq = 0
        self._heartbeat_timer = None

    @property
    def uri(self) -> str:
        return ControllerConfig.get_peer_uri(self.host, self.port)

    @property
    def status(self) -> ConnectionStatus:
        with self.lock:
            return self.state.status

    @property
    def is_connected(self) -> bool:
        with self.lock:
            return self.state.is_connected

    @property
    def switch_state(self) -> bool:
        with self.lock:
            return self.state.switch_state

    def switch_snapshot(self) -> Tuple[bool, bool]:
        """Tuple of (is_connected, switch_state) read under one lock acquisition"""
        with self.lock:
            return self.state.is_connected, self.state.switch_state

    @property
    def status_text(self) -> str:
        with self.lock:
            return self.state.status_text

    @property
    def reconnect_pending(self) -> bool:
        with self.lock:
            return self._reconnect_timer is not None

    def get_status(self) -> Dict[str, Any]:
        """Status dictionary for display"""
        with self.lock:
            status = self.state.to_dict()
            status['peer'] = self.uri
            status['reconnect_pending'] = self._reconnect_timer is not None
            return status

    def set_peer(self, host: str, port: int = None) -> Tuple[bool, str]:
        """
        Change the peer address used by the next connect attempt

        Returns:
            Tuple of (success: bool, message: str)
        """
        port = port if port is not None else ControllerConfig.PEER_PORT
        is_valid, error_message = validate_peer_address(host, port)
        if not is_valid:
            return False, error_message

        with self.lock:
            self.host = host
            self.port = port
        logger.info(f"Peer set to {self.uri}")
        return True, f"Peer set to {self.uri}"

    def connect(self) -> bool:
        """
        Open the channel; only allowed from DISCONNECTED

        Blocks for at most connect_timeout. On failure a reconnect is
        scheduled and the status text says why.

        Returns:
            True if the channel is now connected
        """
        with self.lock:
            if self.state.status != ConnectionStatus.DISCONNECTED:
                logger.debug(f"connect() ignored in state {self.state.status.value}")
                return False

            self._cancel_reconnect()
            self._attempt += 1
            attempt = self._attempt
            self.state = ConnectionState(
                status=ConnectionStatus.CONNECTING,
                switch_state=self.state.switch_state,
                status_text='Connecting...',
                attempt=attempt
            )
            uri = self.uri

        logger.info(f"Connecting to {uri} (attempt {attempt})")

        try:
            channel = self.channel_factory(uri, self.connect_timeout)
        except TimeoutError as e:
            self._connect_failed(attempt, ConnectTimeout(f"Timed out connecting to {uri}: {e}"), 'Connection timeout')
            return False
        except Exception as e:
            self._connect_failed(attempt, ConnectError(f"Failed to connect to {uri}: {e}"), 'Connection failed')
            return False

        with self.lock:
            superseded = self.state.attempt != attempt or self.state.status != ConnectionStatus.CONNECTING
            if not superseded:
                self.state.channel = channel
                self.state.status = ConnectionStatus.CONNECTED
                self.state.last_activity_at = self.clock.monotonic_ms()
                self.state.status_text = f'Connected ({self.state.switch_label()})'
                self._arm_heartbeat(attempt)
                reader = self.thread_factory(
                    target=self._read_loop,
                    args=(channel, attempt),
                    name=f'switch-reader-{attempt}',
                    daemon=True
                )

        if superseded:
            logger.info(f"Connect attempt {attempt} was cancelled, closing its channel")
            self._close_channel(channel)
            return False

        reader.start()
        logger.info(f"Connected to {uri}")
        return True

    def disconnect(self):
        """Tear down the channel and all timers without reconnecting; safe from any state"""
        with self.lock:
            self._cancel_reconnect()
            self._cancel_heartbeat()
            channel = self.state.channel
            was = self.state.status
            self._attempt += 1
            self.state = ConnectionState(
                status=ConnectionStatus.DISCONNECTED,
                switch_state=self.state.switch_state,
                status_text='Disconnected',
                attempt=self._attempt
            )

        if channel is not None:
            self._close_channel(channel)
        if was != ConnectionStatus.DISCONNECTED:
            logger.info(f"Disconnected from {self.uri}")

    def send(self, frame: str) -> bool:
        """
        Send one frame on the open channel

        A send failure is handled like the channel closing.

        Returns:
            True if the frame was handed to the channel
        """
        with self.lock:
            if not self.state.is_connected or self.state.channel is None:
                return False
            channel = self.state.channel
            attempt = self.state.attempt

        try:
            channel.send(frame)
        except Exception as e:
            logger.error(f"Failed to send {frame}: {e}")
            self.handle_channel_closed(attempt, e)
            return False

        logger.debug(f"Sent {frame}")
        return True

    def handle_message(self, frame: Any, attempt: int = None):
        """
        Apply one inbound frame

        Args:
            frame: Text frame from the peer (bytes are decoded as UTF-8)
            attempt: Attempt the frame arrived on; frames from older attempts are dropped
        """
        if isinstance(frame, bytes):
            frame = frame.decode('utf-8', errors='replace')

        with self.lock:
            if attempt is not None and attempt != self.state.attempt:
                return
            if not self.state.is_connected:
                return

            self.state.last_activity_at = self.clock.monotonic_ms()

            if frame == FRAME_STATE_ON:
                self.state.switch_state = True
            elif frame == FRAME_STATE_OFF:
                self.state.switch_state = False
            elif frame != FRAME_PONG:
                logger.debug(f"Ignoring unrecognized frame: {frame!r}")
                return

            self.state.status_text = f'Connected ({self.state.switch_label()})'

        logger.debug(f"Received {frame}")

    def handle_channel_closed(self, attempt: int = None, error: Exception = None) -> bool:
        """
        React to the channel failing or closing

        Args:
            attempt: Attempt whose channel closed; closes of older attempts are ignored
            error: What went wrong, for logging

        Returns:
            True if this call moved the connection to DISCONNECTED
        """
        with self.lock:
            if attempt is not None and attempt != self.state.attempt:
                return False
            if self.state.status == ConnectionStatus.DISCONNECTED:
                return False

            self._cancel_heartbeat()
            channel = self.state.channel
            self.state.channel = None
            self.state.status = ConnectionStatus.DISCONNECTED
            self.state.status_text = 'Disconnected'
            self._schedule_reconnect()

        logger.warning(f"Channel to {self.uri} closed: {error or 'closed by peer'}")
        if channel is not None:
            self._close_channel(channel)
        return True

    def _connect_failed(self, attempt: int, error: Exception, status_text: str):
        with self.lock:
            if attempt != self.state.attempt:
                return
            self.state.status = ConnectionStatus.DISCONNECTED
            self.state.status_text = status_text
            self._schedule_reconnect()
        logger.warning(f"{error}; retrying in {self.reconnect_backoff}s")

    def _read_loop(self, channel: Any, attempt: int):
        """Pump inbound frames until the channel fails"""
        while True:
            try:
                frame = channel.recv()
            except Exception as e:
                self.handle_channel_closed(attempt, ChannelClosed(str(e) or type(e).__name__))
                return
            self.handle_message(frame, attempt)

    def _start_timer(self, delay: float, function: Callable[[], None]):
        timer = self.timer_factory(delay, function)
        timer.daemon = True
        timer.start()
        return timer

    def _schedule_reconnect(self):
        # Caller holds self.lock
        self._cancel_reconnect()
        self._reconnect_seq += 1
        seq = self._reconnect_seq
        self._reconnect_timer = self._start_timer(self.reconnect_backoff, lambda: self._on_reconnect_timer(seq))
        logger.debug(f"Reconnect scheduled in {self.reconnect_backoff}s")

    def _cancel_reconnect(self):
        # Caller holds self.lock
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _on_reconnect_timer(self, seq: int):
        with self.lock:
            if seq != self._reconnect_seq or self._reconnect_timer is None:
                return
            self._reconnect_timer = None
        self.connect()

    def _arm_heartbeat(self, attempt: int):
        # Caller holds self.lock
        self._cancel_heartbeat()
        self._heartbeat_timer = self._start_timer(self.heartbeat_interval, lambda: self._on_heartbeat(attempt))

    def _cancel_heartbeat(self):
        # Caller holds self.lock
        if self._heartbeat_timer is not None:
            self._heartbeat_timer.cancel()
            self._heartbeat_timer = None

    def _on_heartbeat(self, attempt: int):
        with self.lock:
            if attempt != self.state.attempt or not self.state.is_connected:
                return

            now = self.clock.monotonic_ms()
            silent_for = now - (self.state.last_activity_at or now)
            if self.heartbeat_timeout > 0 and silent_for > self.heartbeat_timeout * 1000:
                timed_out = True
            else:
                timed_out = False
                channel = self.state.channel
                self.state.last_heartbeat_at = now
                self._arm_heartbeat(attempt)

        if timed_out:
            self.handle_channel_closed(attempt, ChannelClosed(f"No traffic for {silent_for / 1000:.1f}s"))
            return

        try:
            channel.send(FRAME_PING)
        except Exception as e:
            self.handle_channel_closed(attempt, e)

    @staticmethod
    def _close_channel(channel: Any):
        try:
            channel.close()
        except Exception as e:
            logger.debug(f"Error closing channel: {e}")
