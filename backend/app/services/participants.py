"""Turn the form's participant rows into inserts, updates and deletes.

A participant links an organization to a gig with a role (Venue, Act,
Production, ...). The caller's own organization appears in the create form
as the ``current-org`` sentinel row; it is never edited like the other rows
and is added back as an implicit participant when the gig is created.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .errors import DuplicateParticipantError, PartialParticipantError
from .identity import CURRENT_ORG_SENTINEL, Draft, Persisted, RowKey, WriteSet, tag

logger = logging.getLogger(__name__)


@dataclass
class ParticipantRow:
    id: Optional[str]
    organization_id: Optional[str]
    role: Optional[str]
    notes: Optional[str] = None


@dataclass
class ParticipantWrite:
    key: RowKey
    organization_id: str
    role: str
    notes: Optional[str] = None


@dataclass(frozen=True)
class ExistingParticipant:
    id: str
    organization_id: str
    role: str


def _filled(value: Optional[str]) -> bool:
    return bool(value and str(value).strip())


def _role_value(role) -> str:
    return getattr(role, "value", role)


def editable_rows(rows: Iterable[ParticipantRow]) -> List[ParticipantRow]:
    """Drop the sentinel row and rows with neither organization nor role.

    Raises :class:`PartialParticipantError` when a row has only one of them.
    """
    kept: List[ParticipantRow] = []
    partial: List[int] = []
    for index, row in enumerate(rows):
        if row.id == CURRENT_ORG_SENTINEL:
            continue
        has_org = _filled(row.organization_id)
        has_role = _filled(row.role)
        if has_org and has_role:
            kept.append(row)
        elif has_org or has_role:
            partial.append(index)
    if partial:
        raise PartialParticipantError(partial)
    return kept


def reconcile_for_create(
    rows: Sequence[ParticipantRow],
    current_organization_id: str,
    current_organization_type: str,
) -> WriteSet[ParticipantWrite]:
    writes: WriteSet[ParticipantWrite] = WriteSet()
    seen: Set[Tuple[str, str]] = set()

    own_role = _role_value(current_organization_type)
    for row in rows:
        if row.id == CURRENT_ORG_SENTINEL and _filled(row.role):
            own_role = _role_value(row.role)
            break
    writes.inserts.append(
        ParticipantWrite(key=Draft(CURRENT_ORG_SENTINEL), organization_id=current_organization_id, role=own_role)
    )
    seen.add((current_organization_id, own_role))

    for row in editable_rows(rows):
        pair = (row.organization_id, _role_value(row.role))
        if pair in seen:
            continue
        seen.add(pair)
        key = tag(row.id)
        # A create has nothing to update yet.
        if isinstance(key, Persisted):
            key = Draft(key.id)
        writes.inserts.append(ParticipantWrite(key=key, organization_id=pair[0], role=pair[1], notes=row.notes))
    return writes


def reconcile_for_update(
    rows: Sequence[ParticipantRow],
    existing: Sequence[ExistingParticipant],
    protected_organization_id: Optional[str] = None,
) -> WriteSet[ParticipantWrite]:
    """Diff submitted rows against the participants already stored.

    Rows of ``protected_organization_id`` (the editor's own organization) are
    never deleted, since the form does not let the editor remove it.

    Drafts that repeat a kept pair are dropped. Two kept rows ending up with
    the same (organization, role) raise :class:`DuplicateParticipantError`.
    """
    writes: WriteSet[ParticipantWrite] = WriteSet()
    owned: Dict[str, ExistingParticipant] = {p.id: p for p in existing}
    submitted = editable_rows(rows)
    tagged = [(tag(row.id), row) for row in submitted]
    resubmitted = {key.id for key, _ in tagged if isinstance(key, Persisted) and key.id in owned}

    # Protected rows left out of the form stay as stored and hold their pair.
    seen: Set[Tuple[str, str]] = {
        (p.organization_id, _role_value(p.role))
        for p in existing
        if protected_organization_id
        and p.organization_id == protected_organization_id
        and p.id not in resubmitted
    }
    duplicates: List[Tuple[str, str]] = []
    kept_ids: Set[str] = set()
    for key, row in tagged:
        if not (isinstance(key, Persisted) and key.id in owned) or key.id in kept_ids:
            continue
        pair = (row.organization_id, _role_value(row.role))
        if pair in seen:
            duplicates.append(pair)
        seen.add(pair)
        kept_ids.add(key.id)
        writes.updates.append(ParticipantWrite(key=key, organization_id=pair[0], role=pair[1], notes=row.notes))
    if duplicates:
        raise DuplicateParticipantError(duplicates)

    for key, row in tagged:
        if isinstance(key, Persisted) and key.id in owned:
            continue
        pair = (row.organization_id, _role_value(row.role))
        if pair in seen:
            continue
        seen.add(pair)
        if isinstance(key, Persisted):
            key = Draft(key.id)
        writes.inserts.append(ParticipantWrite(key=key, organization_id=pair[0], role=pair[1], notes=row.notes))

    for participant in existing:
        if participant.id in kept_ids:
            continue
        if protected_organization_id and participant.organization_id == protected_organization_id:
            continue
        writes.deletes.append(participant.id)

    if writes.deletes:
        logger.info("Removing %d participant(s) missing from submission", len(writes.deletes))
    return writes


def denormalize_roles(participants: Iterable) -> Dict[str, Optional[dict]]:
    """Pick the first Venue and Act participants for list and card views."""
    result: Dict[str, Optional[dict]] = {"venue": None, "act": None}
    for participant in participants:
        role = _role_value(participant.role)
        slot = {"Venue": "venue", "Act": "act"}.get(role)
        if slot is None or result[slot] is not None:
            continue
        organization = getattr(participant, "organization", None)
        if organization is None:
            continue
        result[slot] = {"id": organization.id, "name": organization.name, "type": getattr(organization, "type", None)}
    return result
