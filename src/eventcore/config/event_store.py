"""Config – EventStoreSettings."""
from __future__ import annotations

import dataclasses
import logging
from typing import ClassVar

from eventcore.config.settings.base import Settings
from eventcore.config.validation import InvalidSettingValueError

BACKENDS = ("memory", "sqlalchemy")


@dataclasses.dataclass
class EventStoreSettings(Settings):
    """Settings read from ``EVENTCORE_*`` environment variables.

    ``EVENTCORE_BACKEND``         ``memory`` (default) or ``sqlalchemy``
    ``EVENTCORE_DATABASE_URL``    async SQLAlchemy URL for the ``sqlalchemy`` backend
    ``EVENTCORE_SNAPSHOT_EVERY``  snapshot cadence in events, ``0`` disables snapshots
    ``EVENTCORE_LOG_LEVEL``       stdlib level name
    ``EVENTCORE_LOG_JSON``        JSON (default) or console log lines
    """

    _prefix: ClassVar[str] = "EVENTCORE"

    backend: str = "memory"
    database_url: str = "sqlite+aiosqlite:///eventcore.db"
    snapshot_every: int = 0
    log_level: str = "INFO"
    log_json: bool = True

    def _validate(self) -> None:
        self.backend = self.backend.strip().lower()
        if self.backend not in BACKENDS:
            raise InvalidSettingValueError(
                "backend", self.backend, f"must be one of {', '.join(BACKENDS)}"
            )
        if self.backend == "sqlalchemy" and not self.database_url:
            raise InvalidSettingValueError(
                "database_url", self.database_url, "required by the sqlalchemy backend"
            )
        if self.snapshot_every < 0:
            raise InvalidSettingValueError("snapshot_every", self.snapshot_every, "must be >= 0")
        self.log_level = self.log_level.strip().upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise InvalidSettingValueError("log_level", self.log_level, "unknown log level")


__all__ = ["BACKENDS", "EventStoreSettings"]
