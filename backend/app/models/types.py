import enum
import json
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum as SAEnum, Text
from sqlalchemy.types import TypeDecorator


def new_uuid() -> str:
    """Return a canonical UUID string used as a primary key."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def enum_column(enum_cls: type[enum.Enum], name: str) -> SAEnum:
    """Enum column type that persists the enum *values* (e.g. ``DateHold``)."""
    return SAEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime stored as naive UTC.

    SQLite drops offsets on the way back, so values are normalised to UTC on
    write and re-tagged with ``timezone.utc`` on read. Naive inputs are taken
    to already be UTC.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class StringList(TypeDecorator):
    """List of strings stored as a JSON array (TEXT[] on the hosted store)."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return "[]"
        return json.dumps([str(v) for v in value])

    def process_result_value(self, value, dialect):
        if not value:
            return []
        try:
            parsed = json.loads(value)
        except ValueError:
            return []
        return [str(v) for v in parsed] if isinstance(parsed, list) else []
