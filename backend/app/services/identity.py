"""Tell saved rows apart from rows that only exist in the form.

Rows loaded from the database carry their primary key, a canonical UUID
string. Rows added in the browser carry a short random token until they are
saved, and the caller's own organization is represented by the reserved
``current-org`` sentinel. Each incoming row is tagged once, at the boundary,
as :class:`Persisted` or :class:`Draft`; reconcilers match on the tag rather
than looking at the string again.
"""

from __future__ import annotations

import enum
import secrets
import uuid
from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar, Union

CURRENT_ORG_SENTINEL = "current-org"

_CANONICAL_LENGTH = 36


class IdentityKind(str, enum.Enum):
    PERSISTED = "persisted"
    LOCAL = "local"


def classify_id(value: object) -> IdentityKind:
    """Return ``PERSISTED`` only for a canonical hyphenated UUID string."""
    if not isinstance(value, str) or len(value) != _CANONICAL_LENGTH or "-" not in value:
        return IdentityKind.LOCAL
    try:
        parsed = uuid.UUID(value)
    except ValueError:
        return IdentityKind.LOCAL
    # uuid.UUID also accepts braces/urn forms; only the 8-4-4-4-12 layout counts.
    if str(parsed) != value.lower():
        return IdentityKind.LOCAL
    return IdentityKind.PERSISTED


def is_persisted_id(value: object) -> bool:
    return classify_id(value) is IdentityKind.PERSISTED


def local_token() -> str:
    """Mint a short id for a row that has not been saved yet."""
    return secrets.token_hex(5)[:9]


@dataclass(frozen=True)
class Persisted:
    id: str


@dataclass(frozen=True)
class Draft:
    # The client's local id, echoed back in ``created_ids`` after insert.
    token: Optional[str] = None


RowKey = Union[Persisted, Draft]


def tag(value: object) -> RowKey:
    if is_persisted_id(value):
        return Persisted(str(value).lower())
    if isinstance(value, str) and value.strip():
        return Draft(value)
    return Draft()


T = TypeVar("T")


@dataclass
class WriteSet(Generic[T]):
    """Rows to insert and update plus the ids to delete, all explicit."""

    inserts: List[T] = field(default_factory=list)
    updates: List[T] = field(default_factory=list)
    deletes: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.inserts or self.updates or self.deletes)
