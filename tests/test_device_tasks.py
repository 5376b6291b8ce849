"""Tests for the sensing, sync, expiry and display tasks"""
from unittest.mock import MagicMock
import pytest
from api.models.reading import Reading
from services.device_tasks import SensingTask, SyncPoller, OverrideExpiryTask, DisplayRefreshTask
from services.override_arbiter import OverrideArbiter
from utils.exceptions import SensorReadError

DEVICE_ID = 'esp32_001'
CURRENT = f'devices/{DEVICE_ID}/current'


@pytest.fixture
def arbiter(fake_clock):
    return OverrideArbiter(fake_clock)


@pytest.fixture
def sensor():
    """Sensor mock reporting 22.5°C / 48%"""
    mock = MagicMock()
    mock.read.return_value = Reading(22.5, 48.0, 1760084970)
    return mock


def test_sensing_publishes_raw_values(sensor, arbiter, memory_store, fake_clock):
    """A valid sample is applied and written as temp, hum and timestamp"""
    task = SensingTask(sensor, arbiter, memory_store, DEVICE_ID, fake_clock)
    
    raw = task.run()
    
    assert raw == Reading(22.5, 48.0, 1760084970)
    assert arbiter.snapshot().current_reading == Reading(22.5, 48.0, 1760084970)
    assert memory_store.get(f'{CURRENT}/temp') == 22.5
    assert memory_store.get(f'{CURRENT}/hum') == 48.0
    assert memory_store.get(f'{CURRENT}/timestamp') == 1760084970
    assert [path for path, _ in memory_store.writes] == [
        f'{CURRENT}/temp', f'{CURRENT}/hum', f'{CURRENT}/timestamp'
    ]


def test_sensing_publishes_raw_values_during_override(sensor, arbiter, memory_store, fake_clock):
    """During an override the raw sample is still published but not applied"""
    arbiter.apply_override(Reading(30.0, 10.0))
    task = SensingTask(sensor, arbiter, memory_store, DEVICE_ID, fake_clock)
    
    task.run()
    
    assert memory_store.get(f'{CURRENT}/temp') == 22.5
    assert arbiter.snapshot().current_reading.temperature == 30.0


def test_sensing_nan_reading_is_logged_remotely(sensor, arbiter, memory_store, fake_clock):
    """A NaN reading leaves state untouched and appends one error record"""
    sensor.read.return_value = Reading(float('nan'), 48.0, 1760084970)
    task = SensingTask(sensor, arbiter, memory_store, DEVICE_ID, fake_clock)
    
    assert task.run() is None
    
    assert arbiter.snapshot().current_reading == Reading.zero()
    assert memory_store.writes == []
    errors = memory_store.get(f'devices/{DEVICE_ID}/errors')
    assert len(errors) == 1
    record = list(errors.values())[0]
    assert record['timestamp'] == fake_clock.epoch_seconds()
    assert 'temperature' in record['message']


def test_sensing_read_error_appends_each_failure(sensor, arbiter, memory_store, fake_clock):
    """Every failed read gets its own error record"""
    sensor.read.side_effect = SensorReadError("Failed to read from DHT sensor")
    task = SensingTask(sensor, arbiter, memory_store, DEVICE_ID, fake_clock)
    
    task.run()
    task.run()
    
    errors = memory_store.get(f'devices/{DEVICE_ID}/errors')
    assert len(errors) == 2
    assert all('Failed to read from DHT sensor' in e['message'] for e in errors.values())


def test_sensing_error_log_failure_does_not_raise(sensor, arbiter, memory_store, fake_clock):
    """Failing to append the error record is only logged"""
    sensor.read.side_effect = SensorReadError("timeout")
    memory_store.fail_write_paths.add(f'devices/{DEVICE_ID}/errors')
    task = SensingTask(sensor, arbiter, memory_store, DEVICE_ID, fake_clock)
    
    assert task.run() is None


def test_sensing_write_failures_are_independent(sensor, arbiter, memory_store, fake_clock):
    """A failed temp write does not stop the hum and timestamp writes"""
    memory_store.fail_write_paths.add(f'{CURRENT}/temp')
    task = SensingTask(sensor, arbiter, memory_store, DEVICE_ID, fake_clock)
    
    task.run()
    
    assert memory_store.get(f'{CURRENT}/temp') is None
    assert memory_store.get(f'{CURRENT}/hum') == 48.0
    assert memory_store.get(f'{CURRENT}/timestamp') == 1760084970


def test_sync_activates_override(arbiter, memory_store, fake_clock):
    """override=true with temp/hum activates the override with those values"""
    memory_store.set(CURRENT, {'temp': 30, 'hum': 10, 'timestamp': 1760084000, 'override': True})
    poller = SyncPoller(memory_store, arbiter, DEVICE_ID, fake_clock)
    
    assert poller.run() is True
    
    state = arbiter.snapshot()
    assert state.override_active is True
    assert state.current_reading.temperature == 30.0
    assert state.current_reading.humidity == 10.0


def test_sync_missing_fields_keep_current_values(arbiter, memory_store, fake_clock):
    """A field missing from the record leaves that value unchanged"""
    arbiter.apply_sample(Reading(22.5, 48.0, 1))
    memory_store.set(CURRENT, {'temp': 30, 'override': True})
    poller = SyncPoller(memory_store, arbiter, DEVICE_ID, fake_clock)
    
    poller.run()
    
    reading = arbiter.snapshot().current_reading
    assert reading.temperature == 30.0
    assert reading.humidity == 48.0


def test_sync_without_override_flag(arbiter, memory_store, fake_clock):
    """A record without the override flag changes nothing"""
    memory_store.set(CURRENT, {'temp': 30, 'hum': 10, 'override': False})
    poller = SyncPoller(memory_store, arbiter, DEVICE_ID, fake_clock)
    
    assert poller.run() is False
    assert arbiter.is_override_active() is False


def test_sync_updates_last_online(arbiter, memory_store, fake_clock):
    """Each sync cycle marks the device online"""
    poller = SyncPoller(memory_store, arbiter, DEVICE_ID, fake_clock)
    
    poller.run()
    
    assert memory_store.get(f'devices/{DEVICE_ID}/metadata/last_online') == fake_clock.epoch_seconds()


def test_sync_skipped_when_store_not_ready(arbiter, memory_store, fake_clock):
    """Nothing is read or written while the store is not ready"""
    memory_store.ready = False
    memory_store.set(CURRENT, {'override': True, 'temp': 30})
    memory_store.writes.clear()
    poller = SyncPoller(memory_store, arbiter, DEVICE_ID, fake_clock)
    
    assert poller.run() is False
    assert memory_store.writes == []
    assert arbiter.is_override_active() is False


def test_sync_read_failure_skips_cycle(arbiter, memory_store, fake_clock):
    """A failed read is logged and the cycle skipped"""
    memory_store.fail_reads = True
    poller = SyncPoller(memory_store, arbiter, DEVICE_ID, fake_clock)
    
    assert poller.run() is False
    assert arbiter.is_override_active() is False


def test_sync_does_not_reapply_active_override(arbiter, memory_store, fake_clock):
    """While an override is active the record is not applied again"""
    memory_store.set(CURRENT, {'temp': 30, 'hum': 10, 'override': True})
    poller = SyncPoller(memory_store, arbiter, DEVICE_ID, fake_clock)
    poller.run()
    
    # Raw values published by the sensing task land in the same record
    memory_store.set(f'{CURRENT}/temp', 22.5)
    fake_clock.advance(5000)
    
    assert poller.run() is False
    state = arbiter.snapshot()
    assert state.current_reading.temperature == 30.0
    assert state.override_since == 0


def test_sync_ignores_malformed_record(arbiter, memory_store, fake_clock):
    """A record with a non-boolean override flag is ignored"""
    memory_store.set(CURRENT, {'temp': 30, 'override': 'yes'})
    poller = SyncPoller(memory_store, arbiter, DEVICE_ID, fake_clock)
    
    assert poller.run() is False
    assert arbiter.is_override_active() is False


@pytest.mark.parametrize("value", [float('nan'), float('inf')])
def test_sync_ignores_non_finite_override(arbiter, memory_store, fake_clock, value):
    """An override carrying NaN or inf is never applied"""
    memory_store.set(CURRENT, {'override': True, 'temp': value, 'hum': 10.0})
    poller = SyncPoller(memory_store, arbiter, DEVICE_ID, fake_clock)
    
    assert poller.run() is False
    
    state = arbiter.snapshot()
    assert state.override_active is False
    assert state.current_reading == Reading.zero()


def test_override_expires_and_clears_remote_flag(arbiter, memory_store, fake_clock):
    """30 s after activation the override expires and the remote flag is cleared"""
    memory_store.set(CURRENT, {'temp': 30, 'hum': 10, 'override': True})
    SyncPoller(memory_store, arbiter, DEVICE_ID, fake_clock).run()
    expiry = OverrideExpiryTask(arbiter, memory_store, DEVICE_ID, 30000, fake_clock)
    
    fake_clock.advance(29999)
    assert expiry.run() is False
    assert memory_store.get(f'{CURRENT}/override') is True
    
    fake_clock.advance(1)
    assert expiry.run() is True
    assert arbiter.is_override_active() is False
    assert memory_store.get(f'{CURRENT}/override') is False
    
    # Already expired: no second write
    writes = len(memory_store.writes)
    assert expiry.run() is False
    assert len(memory_store.writes) == writes


def test_override_expiry_write_failure_is_not_retried(arbiter, memory_store, fake_clock):
    """If clearing the remote flag fails the local state still expires"""
    arbiter.apply_override(Reading(30.0, 10.0))
    memory_store.fail_write_paths.add(f'{CURRENT}/override')
    expiry = OverrideExpiryTask(arbiter, memory_store, DEVICE_ID, 30000, fake_clock)
    
    fake_clock.advance(30000)
    
    assert expiry.run() is True
    assert arbiter.is_override_active() is False
    assert expiry.run() is False


def test_display_refresh_receives_snapshot(arbiter):
    """The display gets the authoritative reading and override flag"""
    display = MagicMock()
    arbiter.apply_override(Reading(30.0, 10.0))
    
    DisplayRefreshTask(arbiter, display).run()
    
    state = display.call_args[0][0]
    assert state.override_active is True
    assert state.current_reading.temperature == 30.0


def test_display_refresh_default_logs(arbiter, caplog):
    """The default display writes the reading to the log"""
    arbiter.apply_sample(Reading(22.5, 48.0, 1))
    
    with caplog.at_level('INFO'):
        DisplayRefreshTask(arbiter).run()
    
    assert 'Temp: 22.5°C' in caplog.text
