"""
Data Sources - Lifecycle of the connectors that feed submissions in.

The scoring core only reads `is_available` as an upstream signal.
Connector status and sync settings matter to the pipeline, not to scores.

Status transitions:
    configuring -> active | error | down
    active      -> paused | error | down
    paused      -> active | down
    error       -> active | configuring | down
    down        -> active | configuring
"""

import time
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Annotated, Callable, Dict, FrozenSet, Literal, Optional, TypeVar, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidInput
from .models import AuditRecord, utc_now

T = TypeVar("T")


class DataSourceStatus(str, Enum):
    CONFIGURING = "configuring"
    ACTIVE = "active"
    ERROR = "error"
    PAUSED = "paused"
    DOWN = "down"


ALLOWED_TRANSITIONS: Dict[DataSourceStatus, FrozenSet[DataSourceStatus]] = {
    DataSourceStatus.CONFIGURING: frozenset({
        DataSourceStatus.ACTIVE, DataSourceStatus.ERROR, DataSourceStatus.DOWN,
    }),
    DataSourceStatus.ACTIVE: frozenset({
        DataSourceStatus.PAUSED, DataSourceStatus.ERROR, DataSourceStatus.DOWN,
    }),
    DataSourceStatus.PAUSED: frozenset({
        DataSourceStatus.ACTIVE, DataSourceStatus.DOWN,
    }),
    DataSourceStatus.ERROR: frozenset({
        DataSourceStatus.ACTIVE, DataSourceStatus.CONFIGURING, DataSourceStatus.DOWN,
    }),
    DataSourceStatus.DOWN: frozenset({
        DataSourceStatus.ACTIVE, DataSourceStatus.CONFIGURING,
    }),
}


class DataSourceConfig(BaseModel):
    """Sync settings for one data source."""
    model_config = ConfigDict(frozen=True)

    sync_frequency: Literal["daily", "hourly"] = "daily"
    retry_attempts: int = Field(default=3, ge=0)
    timeout_ms: Optional[int] = Field(default=None, gt=0)

    @property
    def timeout_seconds(self) -> Optional[float]:
        return self.timeout_ms / 1000 if self.timeout_ms is not None else None


# ==================== Connectors ====================

class _Connector(BaseModel):
    """Fields and lifecycle shared by every connector kind."""
    model_config = ConfigDict(frozen=True)

    audit: AuditRecord
    tenant_id: str
    status: DataSourceStatus = DataSourceStatus.CONFIGURING
    config: DataSourceConfig = Field(default_factory=DataSourceConfig)
    last_sync_at: Optional[datetime] = None

    @property
    def id(self) -> str:
        return self.audit.id

    @property
    def is_available(self) -> bool:
        return self.status is DataSourceStatus.ACTIVE

    def _transition(self, status: DataSourceStatus, now: Optional[datetime] = None):
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidInput(
                f"Data source {self.id} cannot go from {self.status.value} to {status.value}"
            )
        now = now or utc_now()
        return self.model_copy(update={
            "status": status,
            "audit": replace(self.audit, updated_at=now),
        })

    def activate(self, now: Optional[datetime] = None):
        return self._transition(DataSourceStatus.ACTIVE, now)

    def pause(self, now: Optional[datetime] = None):
        return self._transition(DataSourceStatus.PAUSED, now)

    def resume(self, now: Optional[datetime] = None):
        if self.status is not DataSourceStatus.PAUSED:
            raise InvalidInput(f"Data source {self.id} is not paused")
        return self._transition(DataSourceStatus.ACTIVE, now)

    def mark_error(self, now: Optional[datetime] = None):
        return self._transition(DataSourceStatus.ERROR, now)

    def mark_down(self, now: Optional[datetime] = None):
        return self._transition(DataSourceStatus.DOWN, now)

    def record_sync(self, at: Optional[datetime] = None):
        """Stamp a successful sync. Only active sources sync."""
        if not self.is_available:
            raise InvalidInput(f"Data source {self.id} is {self.status.value}, cannot sync")
        at = at or utc_now()
        return self.model_copy(update={
            "last_sync_at": at,
            "audit": replace(self.audit, updated_at=at),
        })


class LmsConnector(_Connector):
    """Pulls graded submissions from a learning-management system."""
    kind: Literal["lms"] = "lms"
    base_url: str


class FileImportConnector(_Connector):
    """Reads submissions from exported files."""
    kind: Literal["file"] = "file"
    path: str


class ManualEntryConnector(_Connector):
    """Submissions typed in by teachers."""
    kind: Literal["manual"] = "manual"


DataSource = Annotated[
    Union[LmsConnector, FileImportConnector, ManualEntryConnector],
    Field(discriminator="kind"),
]


class _DataSourceEnvelope(BaseModel):
    source: DataSource


def parse_datasource(data: dict) -> Union[LmsConnector, FileImportConnector, ManualEntryConnector]:
    """Build the right connector variant from a dict carrying a `kind` tag."""
    return _DataSourceEnvelope(source=data).source


# ==================== Retries ====================

def fetch_with_retries(
    fetch: Callable[[], T],
    config: DataSourceConfig,
    sleep: Callable[[float], None] = time.sleep,
    base_delay: float = 1.0,
    label: str = "fetch",
) -> T:
    """
    Call fetch, retrying failures with exponential backoff (1s, 2s, 4s ...).

    Makes at most config.retry_attempts + 1 calls, then re-raises the last error.
    """
    attempts = config.retry_attempts + 1
    for attempt in range(attempts):
        try:
            return fetch()
        except Exception as e:
            if attempt == attempts - 1:
                logger.error(f"{label} failed after {attempts} attempts: {e}")
                raise
            wait_time = base_delay * (2 ** attempt)
            logger.warning(
                f"{label} failed (attempt {attempt + 1}/{attempts}): {e}. "
                f"Retrying in {wait_time}s..."
            )
            sleep(wait_time)
