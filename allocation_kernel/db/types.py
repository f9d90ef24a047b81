"""
Module: allocation_kernel.db.types
Responsibility: Column types shared by the allocation token models.  Converts
    between the immutable domain values (frozensets, TimedStateMap, aware
    datetimes) and portable JSON / DateTime storage.
Architecture position: Kernel > DB.  May import from domain/ value modules
    (timeline, token_types).  MUST NOT import from models/, services/, or
    selectors/.

Invariants enforced:
    - Datetimes are stored and returned in UTC; naive input is rejected.
    - Set-valued columns are stored as sorted JSON lists so that identical
      sets always serialize identically.
    - Status timelines are stored as an ordered JSON list of
      ``[iso_instant, STATUS_NAME]`` pairs and rebuilt through
      ``TimedStateMap.build``, so a stored timeline is always well-formed.

Failure modes:
    - ValueError on binding a naive datetime.
    - MalformedTimelineError / KeyError on loading a corrupted timeline.
"""

from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime
from sqlalchemy.types import TypeDecorator

from allocation_kernel.domain.timeline import TimedStateMap
from allocation_kernel.domain.token_types import EppAction, TokenStatus


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime normalized to UTC.

    SQLite has no timezone storage, so values are written there as naive UTC
    and re-tagged with UTC on load.  PostgreSQL receives aware UTC values.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime not allowed: {value!r}")
        value = value.astimezone(UTC)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class StringSet(TypeDecorator):
    """frozenset[str] stored as a sorted JSON list."""

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return []
        return sorted(value)

    def process_result_value(self, value, dialect):
        return frozenset(value or ())


class EppActionSet(TypeDecorator):
    """frozenset[EppAction] stored as a sorted JSON list of action names."""

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return []
        return sorted(EppAction(action).name for action in value)

    def process_result_value(self, value, dialect):
        return frozenset(EppAction[name] for name in value or ())


class StatusTransitionsType(TypeDecorator):
    """TimedStateMap[TokenStatus] stored as ``[[iso_instant, NAME], ...]``."""

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return [
            [instant.astimezone(UTC).isoformat(), TokenStatus(status).name]
            for instant, status in value.as_ordered_pairs()
        ]

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return TimedStateMap.build(
            (datetime.fromisoformat(instant), TokenStatus[name])
            for instant, name in value
        )
