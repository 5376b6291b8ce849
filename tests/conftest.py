"""Shared fixtures: in-memory store, fake clock, fake timers and channels"""
import pytest
from services.remote_store import RemoteStore
from utils.exceptions import RemoteReadError, RemoteWriteError


class InMemoryStore(RemoteStore):
    """RemoteStore keeping a nested dict, with switchable failures"""

    def __init__(self):
        self.data = {}
        self.ready = True
        self.fail_reads = False
        self.fail_write_paths = set()
        self.writes = []
        self.watchers = []

    def is_ready(self):
        return self.ready

    def get(self, path):
        if self.fail_reads:
            raise RemoteReadError(f"Failed to read {path}")
        node = self.data
        for part in path.strip('/').split('/'):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def set(self, path, value):
        if path in self.fail_write_paths:
            raise RemoteWriteError(f"Failed to write {path}")
        parts = path.strip('/').split('/')
        node = self.data
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = value
        self.writes.append((path, value))

    def push(self, path, value):
        if path in self.fail_write_paths:
            raise RemoteWriteError(f"Failed to append to {path}")
        parts = path.strip('/').split('/')
        node = self.data
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        entries = node.setdefault(parts[-1], {})
        key = f"entry{len(entries)}"
        entries[key] = value
        return key

    def watch(self, path, callback):
        self.watchers.append((path, callback))
        return lambda: self.watchers.remove((path, callback))


class FakeClock:
    """Clock driven by the test"""

    def __init__(self, monotonic_ms=0, epoch_seconds=1760084970):
        self.now_ms = monotonic_ms
        self.epoch = epoch_seconds

    def monotonic_ms(self):
        return self.now_ms

    def epoch_seconds(self):
        return self.epoch

    def advance(self, ms):
        self.now_ms += ms
        self.epoch += ms // 1000


class FakeTimer:
    """Timer that only runs when the test fires it"""

    def __init__(self, delay, function):
        self.delay = delay
        self.function = function
        self.started = False
        self.cancelled = False
        self.fired = False
        self.daemon = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled and not self.fired:
            self.fired = True
            self.function()


class TimerRecorder:
    """timer_factory that keeps every timer it builds"""

    def __init__(self):
        self.timers = []

    def __call__(self, delay, function):
        timer = FakeTimer(delay, function)
        self.timers.append(timer)
        return timer

    def pending(self, delay=None):
        return [
            timer for timer in self.timers
            if timer.started and not timer.cancelled and not timer.fired
            and (delay is None or timer.delay == delay)
        ]


class FakeChannel:
    """Channel recording sent frames and replaying queued inbound ones"""

    def __init__(self, inbound=None):
        self.sent = []
        self.inbound = list(inbound or [])
        self.closed = False
        self.fail_send = False

    def send(self, frame):
        if self.fail_send:
            raise ConnectionError("broken pipe")
        self.sent.append(frame)

    def recv(self):
        if self.closed or not self.inbound:
            raise ConnectionError("connection closed")
        return self.inbound.pop(0)

    def close(self):
        self.closed = True


class FakeThread:
    """Reader thread stand-in that never runs its target"""

    def __init__(self, target=None, args=(), name=None, daemon=None):
        self.target = target
        self.args = args
        self.name = name
        self.started = False

    def start(self):
        self.started = True


@pytest.fixture
def memory_store():
    """Empty in-memory store"""
    return InMemoryStore()


@pytest.fixture
def fake_clock():
    """Fake clock starting at 0 ms"""
    return FakeClock()


@pytest.fixture
def timers():
    """Recording timer factory"""
    return TimerRecorder()


@pytest.fixture
def channel():
    """Open fake channel"""
    return FakeChannel()
