"""Tests for data source lifecycle and retrying fetches."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from conftest import NOW
from elevio.datasource import (
    DataSourceConfig,
    DataSourceStatus,
    FileImportConnector,
    LmsConnector,
    ManualEntryConnector,
    fetch_with_retries,
    parse_datasource,
)
from elevio.errors import InvalidInput
from elevio.models import AuditRecord


@pytest.fixture
def lms():
    return LmsConnector(
        audit=AuditRecord("ds-lms", created_at=NOW, updated_at=NOW),
        tenant_id="school-1",
        base_url="https://lms.example.org",
        config=DataSourceConfig(sync_frequency="hourly", retry_attempts=2, timeout_ms=1500),
    )


# ==================== Lifecycle ====================

def test_new_source_is_configuring_and_unavailable(lms):
    assert lms.status is DataSourceStatus.CONFIGURING
    assert not lms.is_available
    assert lms.last_sync_at is None


def test_transitions_return_new_objects(lms):
    later = NOW + timedelta(hours=1)

    active = lms.activate(now=later)

    assert active.is_available
    assert active.audit.updated_at == later
    assert active.audit.created_at == NOW
    assert lms.status is DataSourceStatus.CONFIGURING


def test_pause_and_resume(lms):
    paused = lms.activate().pause()

    assert paused.status is DataSourceStatus.PAUSED
    assert paused.resume().is_available


def test_resume_requires_paused(lms):
    with pytest.raises(InvalidInput):
        lms.activate().resume()


@pytest.mark.parametrize("path", [
    ["pause"],                      # configuring -> paused
    ["activate", "pause", "mark_error"],  # paused -> error
    ["mark_down", "pause"],         # down -> paused
])
def test_disallowed_transitions(lms, path):
    source = lms
    with pytest.raises(InvalidInput):
        for step in path:
            source = getattr(source, step)()


def test_recovery_from_error_and_down(lms):
    errored = lms.activate().mark_error()
    assert errored.status is DataSourceStatus.ERROR
    assert errored.activate().is_available

    down = errored.mark_down()
    assert down.status is DataSourceStatus.DOWN
    assert down.activate().is_available


def test_record_sync_only_when_active(lms):
    with pytest.raises(InvalidInput):
        lms.record_sync()

    synced = lms.activate().record_sync(at=NOW)
    assert synced.last_sync_at == NOW


# ==================== Config & Variants ====================

def test_config_defaults():
    config = DataSourceConfig()

    assert config.sync_frequency == "daily"
    assert config.retry_attempts == 3
    assert config.timeout_seconds is None


@pytest.mark.parametrize("kwargs", [
    {"sync_frequency": "weekly"},
    {"retry_attempts": -1},
    {"timeout_ms": 0},
])
def test_config_validation(kwargs):
    with pytest.raises(ValidationError):
        DataSourceConfig(**kwargs)


def test_timeout_in_seconds(lms):
    assert lms.config.timeout_seconds == 1.5


@pytest.mark.parametrize("data,cls", [
    ({"kind": "lms", "base_url": "https://lms"}, LmsConnector),
    ({"kind": "file", "path": "/exports"}, FileImportConnector),
    ({"kind": "manual"}, ManualEntryConnector),
])
def test_parse_datasource_picks_variant(data, cls):
    source = parse_datasource({"audit": {"id": "ds"}, "tenant_id": "t", **data})

    assert isinstance(source, cls)
    assert source.id == "ds"


def test_parse_datasource_rejects_unknown_kind():
    with pytest.raises(ValidationError):
        parse_datasource({"audit": {"id": "ds"}, "tenant_id": "t", "kind": "carrier_pigeon"})


# ==================== Retries ====================

def test_fetch_with_retries_backs_off_exponentially():
    calls = []
    sleeps = []

    def fetch():
        calls.append(1)
        if len(calls) < 3:
            raise TimeoutError("slow upstream")
        return "ok"

    result = fetch_with_retries(fetch, DataSourceConfig(retry_attempts=3), sleep=sleeps.append)

    assert result == "ok"
    assert len(calls) == 3
    assert sleeps == [1.0, 2.0]


def test_fetch_with_retries_gives_up():
    sleeps = []

    def fetch():
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        fetch_with_retries(fetch, DataSourceConfig(retry_attempts=2), sleep=sleeps.append)

    assert sleeps == [1.0, 2.0]


def test_zero_retries_calls_once():
    calls = []

    def fetch():
        calls.append(1)
        raise ValueError("bad")

    with pytest.raises(ValueError):
        fetch_with_retries(fetch, DataSourceConfig(retry_attempts=0), sleep=lambda s: None)

    assert len(calls) == 1
