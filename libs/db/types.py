"""Database-agnostic column types.

Models are declared once and run against PostgreSQL in deployments and
SQLite in local/test runs.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.types import TypeDecorator

from libs.common.datetime_utils import ensure_utc

# JSONB is PostgreSQL-specific, JSON works with both backends
JSONType = JSON

# Renders as native UUID on PostgreSQL and CHAR(32) elsewhere
UUIDType = PG_UUID


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp that always round-trips as UTC.

    SQLite drops tzinfo on read; values are re-tagged as UTC so comparisons
    against ``utc_now()`` never mix naive and aware datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return ensure_utc(value)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return ensure_utc(value)
