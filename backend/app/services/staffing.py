"""Staff slots and the people assigned to them.

Each slot asks for ``count`` people in a staff role (e.g. "FOH Engineer") and
holds one assignment row per position. Only rows that name a role (for
slots) or a user (for assignments) are written; the blank placeholders the
form keeps for unfilled positions never reach the database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from app.models import AssignmentStatus, StaffRole

from .compensation import RATE, normalize_compensation
from .identity import Draft, Persisted, RowKey, WriteSet, local_token, tag

logger = logging.getLogger(__name__)


@dataclass
class StaffAssignmentRow:
    id: Optional[str] = None
    user_id: Optional[str] = None
    status: str = AssignmentStatus.REQUESTED.value
    compensation_type: str = RATE
    amount: str = ""
    notes: Optional[str] = None


@dataclass
class StaffSlotRow:
    id: Optional[str] = None
    role: Optional[str] = None
    count: int = 1
    notes: Optional[str] = None
    assignments: List[StaffAssignmentRow] = field(default_factory=list)


def blank_assignment() -> StaffAssignmentRow:
    return StaffAssignmentRow(id=local_token())


def resize_assignments(slot: StaffSlotRow, count: int) -> StaffSlotRow:
    """Return a copy of ``slot`` whose assignment list has ``count`` rows.

    Growing appends blank placeholders; shrinking drops rows from the end,
    saved ones included.
    """
    count = max(int(count), 0)
    assignments = list(slot.assignments[:count])
    while len(assignments) < count:
        assignments.append(blank_assignment())
    return replace(slot, count=count, assignments=assignments)


@dataclass
class AssignmentWrite:
    key: RowKey
    user_id: str
    status: str
    rate: Optional[object]
    fee: Optional[object]
    notes: Optional[str] = None


@dataclass
class SlotWrite:
    key: RowKey
    role: str
    required_count: int
    organization_id: str
    notes: Optional[str] = None
    assignments: WriteSet[AssignmentWrite] = field(default_factory=WriteSet)


@dataclass
class StaffPlan:
    """Slot write-set; assignment write-sets hang off each kept slot.

    ``deletes`` of the slot write-set remove the slot with its assignments.
    """

    slots: WriteSet[SlotWrite] = field(default_factory=WriteSet)

    @property
    def assignment_deletes(self) -> List[str]:
        ids: List[str] = []
        for slot in self.slots.inserts + self.slots.updates:
            ids.extend(slot.assignments.deletes)
        return ids


def _filled(value: Optional[str]) -> bool:
    return bool(value and str(value).strip())


def _plan_assignments(
    slot: StaffSlotRow,
    owned_assignment_ids: Sequence[str],
) -> WriteSet[AssignmentWrite]:
    writes: WriteSet[AssignmentWrite] = WriteSet()
    required = slot.count or 1
    rows = slot.assignments
    if len(rows) > required:
        dropped = [r for r in rows[required:] if isinstance(tag(r.id), Persisted) and _filled(r.user_id)]
        if dropped:
            logger.warning(
                "Slot %s shrank to %d; removing %d staffed assignment(s)",
                slot.id,
                required,
                len(dropped),
            )
        rows = resize_assignments(slot, required).assignments

    owned = set(owned_assignment_ids)
    kept: set[str] = set()
    for row in rows:
        if not _filled(row.user_id):
            continue
        pay = normalize_compensation(row.compensation_type or RATE, row.amount)
        key = tag(row.id)
        write = AssignmentWrite(
            key=key,
            user_id=row.user_id.strip(),
            status=row.status or AssignmentStatus.REQUESTED.value,
            rate=pay.rate,
            fee=pay.fee,
            notes=row.notes,
        )
        if isinstance(key, Persisted) and key.id in owned and key.id not in kept:
            kept.add(key.id)
            writes.updates.append(write)
        else:
            if isinstance(key, Persisted):
                write.key = Draft(key.id)
            writes.inserts.append(write)

    writes.deletes = [aid for aid in owned_assignment_ids if aid not in kept]
    return writes


def plan_staffing(
    slots: Sequence[StaffSlotRow],
    existing: Mapping[str, Sequence[str]],
    organization_id: str,
) -> StaffPlan:
    """Diff submitted slots against ``existing`` (slot id -> assignment ids).

    ``existing`` must only hold the slots of ``organization_id``. Every slot
    written belongs to ``organization_id``; slots of other organizations on
    the same gig are never touched.
    """
    plan = StaffPlan()
    kept: set[str] = set()
    for slot in slots:
        if not _filled(slot.role):
            continue
        key = tag(slot.id)
        is_owned = isinstance(key, Persisted) and key.id in existing and key.id not in kept
        owned_assignments = existing.get(key.id, ()) if is_owned else ()
        write = SlotWrite(
            key=key if is_owned or isinstance(key, Draft) else Draft(key.id),
            role=slot.role.strip(),
            required_count=slot.count or 1,
            organization_id=organization_id,
            notes=slot.notes,
            assignments=_plan_assignments(slot, owned_assignments),
        )
        if is_owned:
            kept.add(key.id)
            plan.slots.updates.append(write)
        else:
            plan.slots.inserts.append(write)

    plan.slots.deletes = [sid for sid in existing if sid not in kept]
    return plan


def get_or_create_staff_role(db: Session, name: str) -> StaffRole:
    """Look a staff role up by name, creating it on first use."""
    name = name.strip()
    role = db.query(StaffRole).filter(StaffRole.name == name).first()
    if role is None:
        role = StaffRole(name=name)
        db.add(role)
        db.flush()
        logger.info("Created staff role %s", name)
    return role


def index_existing(slots: Sequence) -> Dict[str, List[str]]:
    return {slot.id: [a.id for a in slot.assignments] for slot in slots}
