"""Save a gig together with its participants, bids, staffing and kit notes.

The gig form is submitted as one nested document but stored as several
independent tables. :class:`GigCompositeWriter` writes them one after the
other in a fixed order:

1. gig core fields
2. participants
3. bids (private to the editing organization)
4. staff slots and assignments (private to the editing organization)
5. kit-assignment notes

Each step commits on its own. When a later step fails the earlier ones stay
written; the failure is recorded in the returned :class:`SaveResult` and the
remaining steps still run. Only a failed *create* of the gig row aborts the
save, since there is nothing to attach the children to.

Rows the form added carry a draft token instead of an id. After insert the
token is mapped to the new primary key in ``SaveResult.created_ids`` so the
client can swap ids and resubmit without creating duplicates. Bids also
store their token, so a resubmission that still carries it updates the row
inserted the first time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from sqlalchemy.orm import Session

from app.models import (
    AssignmentStatus,
    BidResult,
    Gig,
    GigBid,
    GigKitAssignment,
    GigParticipant,
    GigStaffAssignment,
    GigStaffSlot,
    OrganizationType,
)
from app.models.types import utcnow

from .compensation import parse_amount
from .identity import Draft, Persisted, RowKey, WriteSet, tag
from .participants import (
    ExistingParticipant,
    ParticipantRow,
    ParticipantWrite,
    editable_rows,
    reconcile_for_create,
    reconcile_for_update,
)
from .staffing import StaffPlan, StaffSlotRow, get_or_create_staff_role, index_existing, plan_staffing

logger = logging.getLogger(__name__)

IDLE = "idle"
SUBMITTING = "submitting"
SAVED = "saved"
ERROR = "error"

SUB_RESOURCES = ("gig", "participants", "bids", "staff", "kit_notes")


# ---------------------------------------------------------------------------
# Bids
# ---------------------------------------------------------------------------


@dataclass
class BidRow:
    id: Optional[str] = None
    date_given: Optional[date] = None
    amount: Any = None
    result: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ExistingBid:
    id: str
    client_token: Optional[str] = None


@dataclass
class BidWrite:
    key: RowKey
    date_given: date
    amount: Decimal
    result: Optional[str] = None
    notes: Optional[str] = None
    client_token: Optional[str] = None


def plan_bids(rows: Sequence[BidRow], existing: Sequence[ExistingBid]) -> WriteSet[BidWrite]:
    """Only bids with both a date and an amount are written."""
    writes: WriteSet[BidWrite] = WriteSet()
    owned = {bid.id for bid in existing}
    by_token = {bid.client_token: bid.id for bid in existing if bid.client_token}
    kept: set[str] = set()

    for row in rows:
        amount = parse_amount(row.amount)
        if row.date_given is None or amount is None:
            continue
        key = tag(row.id)
        token = key.token if isinstance(key, Draft) else None
        if token and token in by_token:
            # Inserted by an earlier, partially failed submission.
            key = Persisted(by_token[token])
        write = BidWrite(
            key=key,
            date_given=row.date_given,
            amount=amount,
            result=row.result,
            notes=row.notes,
            client_token=token,
        )
        if isinstance(key, Persisted) and key.id in owned and key.id not in kept:
            kept.add(key.id)
            writes.updates.append(write)
        else:
            if isinstance(key, Persisted):
                write.key = Draft(key.id)
                write.client_token = key.id
            writes.inserts.append(write)

    writes.deletes = [bid.id for bid in existing if bid.id not in kept]
    return writes


# ---------------------------------------------------------------------------
# Result bookkeeping
# ---------------------------------------------------------------------------


@dataclass
class SubResourceResult:
    name: str
    status: str = IDLE
    error: Optional[str] = None


@dataclass
class SaveResult:
    gig_id: Optional[str] = None
    created: bool = False
    results: Dict[str, SubResourceResult] = field(
        default_factory=lambda: {name: SubResourceResult(name) for name in SUB_RESOURCES}
    )
    created_ids: Dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return all(r.status != ERROR for r in self.results.values())

    @property
    def failed(self) -> List[str]:
        return [r.name for r in self.results.values() if r.status == ERROR]


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class GigStore(Protocol):
    def create_gig(self, fields: Mapping[str, Any], organization_id: str, actor_id: str) -> str: ...

    def update_gig(self, gig_id: str, fields: Mapping[str, Any], actor_id: str) -> None: ...

    def existing_participants(self, gig_id: str) -> List[ExistingParticipant]: ...

    def apply_participants(self, gig_id: str, writes: WriteSet[ParticipantWrite]) -> Dict[str, str]: ...

    def existing_bids(self, gig_id: str, organization_id: str) -> List[ExistingBid]: ...

    def apply_bids(
        self, gig_id: str, organization_id: str, actor_id: str, writes: WriteSet[BidWrite]
    ) -> Dict[str, str]: ...

    def existing_staff(self, gig_id: str, organization_id: str) -> Dict[str, List[str]]: ...

    def apply_staff(self, gig_id: str, plan: StaffPlan) -> Dict[str, str]: ...

    def update_kit_notes(self, gig_id: str, organization_id: str, notes: Mapping[str, str]) -> None: ...


class SqlGigStore:
    """:class:`GigStore` backed by a SQLAlchemy session.

    Every ``apply_*`` method commits before returning and rolls back on error.
    """

    def __init__(self, db: Session):
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _run(self, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except Exception:
            self.db.rollback()
            raise

    # gig ------------------------------------------------------------------

    def create_gig(self, fields: Mapping[str, Any], organization_id: str, actor_id: str) -> str:
        def _create() -> str:
            gig = Gig(**fields, organization_id=organization_id, created_by=actor_id, updated_by=actor_id)
            self.db.add(gig)
            self.db.flush()
            self._commit()
            return gig.id

        return self._run(_create)

    def update_gig(self, gig_id: str, fields: Mapping[str, Any], actor_id: str) -> None:
        def _update() -> None:
            gig = self.db.get(Gig, gig_id)
            if gig is None:
                raise LookupError(f"Gig {gig_id} not found")
            for name, value in fields.items():
                setattr(gig, name, value)
            gig.updated_by = actor_id
            self._commit()

        self._run(_update)

    # participants ---------------------------------------------------------

    def existing_participants(self, gig_id: str) -> List[ExistingParticipant]:
        rows = self.db.query(GigParticipant).filter(GigParticipant.gig_id == gig_id).all()
        return [ExistingParticipant(p.id, p.organization_id, p.role.value) for p in rows]

    def apply_participants(self, gig_id: str, writes: WriteSet[ParticipantWrite]) -> Dict[str, str]:
        def _apply() -> Dict[str, str]:
            created: Dict[str, str] = {}
            for participant_id in writes.deletes:
                row = self.db.get(GigParticipant, participant_id)
                if row is not None and row.gig_id == gig_id:
                    self.db.delete(row)
            for write in writes.updates:
                row = self.db.get(GigParticipant, write.key.id)
                row.organization_id = write.organization_id
                row.role = OrganizationType(write.role)
                row.notes = write.notes
            inserted = []
            for write in writes.inserts:
                row = GigParticipant(
                    gig_id=gig_id,
                    organization_id=write.organization_id,
                    role=OrganizationType(write.role),
                    notes=write.notes,
                )
                self.db.add(row)
                inserted.append((write.key, row))
            self.db.flush()
            for key, row in inserted:
                if key.token:
                    created[key.token] = row.id
            self._commit()
            return created

        return self._run(_apply)

    # bids -----------------------------------------------------------------

    def existing_bids(self, gig_id: str, organization_id: str) -> List[ExistingBid]:
        rows = (
            self.db.query(GigBid)
            .filter(GigBid.gig_id == gig_id, GigBid.organization_id == organization_id)
            .all()
        )
        return [ExistingBid(b.id, b.client_token) for b in rows]

    def apply_bids(
        self, gig_id: str, organization_id: str, actor_id: str, writes: WriteSet[BidWrite]
    ) -> Dict[str, str]:
        # One commit per bid: a failure part way leaves the earlier bids saved.
        created: Dict[str, str] = {}
        for bid_id in writes.deletes:
            self._run(lambda bid_id=bid_id: self._delete_bid(gig_id, organization_id, bid_id))
        for write in writes.updates:
            self._run(lambda write=write: self._update_bid(write))
            if write.client_token:
                created[write.client_token] = write.key.id
        for write in writes.inserts:
            bid_id = self._run(lambda write=write: self._insert_bid(gig_id, organization_id, actor_id, write))
            if write.key.token:
                created[write.key.token] = bid_id
        return created

    def _delete_bid(self, gig_id: str, organization_id: str, bid_id: str) -> None:
        bid = self.db.get(GigBid, bid_id)
        if bid is not None and bid.gig_id == gig_id and bid.organization_id == organization_id:
            self.db.delete(bid)
            self._commit()

    def _update_bid(self, write: BidWrite) -> None:
        bid = self.db.get(GigBid, write.key.id)
        bid.date_given = write.date_given
        bid.amount = write.amount
        bid.result = BidResult(write.result) if write.result else None
        bid.notes = write.notes
        self._commit()

    def _insert_bid(self, gig_id: str, organization_id: str, actor_id: str, write: BidWrite) -> str:
        bid = GigBid(
            gig_id=gig_id,
            organization_id=organization_id,
            date_given=write.date_given,
            amount=write.amount,
            result=BidResult(write.result) if write.result else None,
            notes=write.notes,
            client_token=write.client_token,
            created_by=actor_id,
        )
        self.db.add(bid)
        self._commit()
        return bid.id

    # staff ----------------------------------------------------------------

    def existing_staff(self, gig_id: str, organization_id: str) -> Dict[str, List[str]]:
        slots = (
            self.db.query(GigStaffSlot)
            .filter(GigStaffSlot.gig_id == gig_id, GigStaffSlot.organization_id == organization_id)
            .all()
        )
        return index_existing(slots)

    def apply_staff(self, gig_id: str, plan: StaffPlan) -> Dict[str, str]:
        def _apply() -> Dict[str, str]:
            created: Dict[str, str] = {}
            for slot_id in plan.slots.deletes:
                slot = self.db.get(GigStaffSlot, slot_id)
                if slot is not None and slot.gig_id == gig_id:
                    self.db.delete(slot)

            for write in plan.slots.updates:
                slot = self.db.get(GigStaffSlot, write.key.id)
                slot.staff_role_id = get_or_create_staff_role(self.db, write.role).id
                slot.required_count = write.required_count
                slot.notes = write.notes
                self._apply_assignments(slot, write.assignments, created)

            for write in plan.slots.inserts:
                slot = GigStaffSlot(
                    gig_id=gig_id,
                    organization_id=write.organization_id,
                    staff_role_id=get_or_create_staff_role(self.db, write.role).id,
                    required_count=write.required_count,
                    notes=write.notes,
                )
                self.db.add(slot)
                self.db.flush()
                if write.key.token:
                    created[write.key.token] = slot.id
                self._apply_assignments(slot, write.assignments, created)

            self._commit()
            return created

        return self._run(_apply)

    def _apply_assignments(self, slot: GigStaffSlot, writes: WriteSet, created: Dict[str, str]) -> None:
        for assignment_id in writes.deletes:
            row = self.db.get(GigStaffAssignment, assignment_id)
            if row is not None and row.slot_id == slot.id:
                self.db.delete(row)
        for write in writes.updates:
            row = self.db.get(GigStaffAssignment, write.key.id)
            status = AssignmentStatus(write.status)
            if status is AssignmentStatus.CONFIRMED and row.status is not AssignmentStatus.CONFIRMED:
                row.confirmed_at = utcnow()
            row.user_id = write.user_id
            row.status = status
            row.rate = write.rate
            row.fee = write.fee
            row.notes = write.notes
        for write in writes.inserts:
            status = AssignmentStatus(write.status)
            row = GigStaffAssignment(
                slot_id=slot.id,
                user_id=write.user_id,
                status=status,
                rate=write.rate,
                fee=write.fee,
                notes=write.notes,
                confirmed_at=utcnow() if status is AssignmentStatus.CONFIRMED else None,
            )
            self.db.add(row)
            self.db.flush()
            if write.key.token:
                created[write.key.token] = row.id

    # kits -----------------------------------------------------------------

    def update_kit_notes(self, gig_id: str, organization_id: str, notes: Mapping[str, str]) -> None:
        def _apply() -> None:
            for assignment_id, text in notes.items():
                row = self.db.get(GigKitAssignment, assignment_id)
                if row is None or row.gig_id != gig_id or row.organization_id != organization_id:
                    continue
                row.notes = text
            self._commit()

        self._run(_apply)


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


class GigCompositeWriter:
    """Write a nested gig form through a :class:`GigStore`.

    ``organization_id`` is the editing organization: bids, staff slots and
    kit notes are written for it only, and on create it becomes the gig's
    owner and first participant.
    """

    def __init__(self, store: GigStore, actor_id: str, organization_id: str, organization_type: str):
        self.store = store
        self.actor_id = actor_id
        self.organization_id = organization_id
        self.organization_type = getattr(organization_type, "value", organization_type)

    def save(
        self,
        core_fields: Mapping[str, Any],
        *,
        participants: Optional[Sequence[ParticipantRow]] = None,
        bids: Optional[Sequence[BidRow]] = None,
        staff_slots: Optional[Sequence[StaffSlotRow]] = None,
        kit_notes: Optional[Iterable[tuple[Optional[str], Optional[str]]]] = None,
        gig_id: Optional[str] = None,
    ) -> SaveResult:
        """Save the form; ``None`` for a child list means it was not submitted."""
        participant_writes = None
        if participants is not None:
            # Raises before anything is written.
            editable_rows(participants)
            if gig_id is not None:
                participant_writes = reconcile_for_update(
                    participants,
                    self.store.existing_participants(gig_id),
                    protected_organization_id=self.organization_id,
                )

        result = SaveResult(gig_id=gig_id)
        if gig_id is None:
            core = result.results["gig"]
            core.status = SUBMITTING
            try:
                result.gig_id = self.store.create_gig(core_fields, self.organization_id, self.actor_id)
            except Exception as exc:
                core.status = ERROR
                core.error = str(exc)
                logger.exception("Failed to create gig %r", core_fields.get("title"))
                raise
            core.status = SAVED
            result.created = True
            logger.info("Created gig %s", result.gig_id)
        else:
            self._attempt(result, "gig", lambda: self.store.update_gig(gig_id, core_fields, self.actor_id))

        gig_id = result.gig_id
        if result.created:
            writes = reconcile_for_create(participants or [], self.organization_id, self.organization_type)
            self._attempt(result, "participants", lambda: self.store.apply_participants(gig_id, writes))
        elif participant_writes is not None:
            self._attempt(result, "participants", lambda: self.store.apply_participants(gig_id, participant_writes))

        if bids is not None:
            self._attempt(
                result,
                "bids",
                lambda: self.store.apply_bids(
                    gig_id,
                    self.organization_id,
                    self.actor_id,
                    plan_bids(bids, self.store.existing_bids(gig_id, self.organization_id)),
                ),
            )

        if staff_slots is not None:
            self._attempt(
                result,
                "staff",
                lambda: self.store.apply_staff(
                    gig_id,
                    plan_staffing(
                        staff_slots,
                        self.store.existing_staff(gig_id, self.organization_id),
                        self.organization_id,
                    ),
                ),
            )

        if kit_notes is not None and not result.created:
            notes = {
                key.id: text
                for key, text in ((tag(kid), text) for kid, text in kit_notes)
                if isinstance(key, Persisted) and text and text.strip()
            }
            self._attempt(
                result,
                "kit_notes",
                lambda: self.store.update_kit_notes(gig_id, self.organization_id, notes),
            )

        if not result.complete:
            logger.warning("Gig %s saved with errors in %s", gig_id, ", ".join(result.failed))
        return result

    def _attempt(self, result: SaveResult, name: str, step: Callable[[], Optional[Dict[str, str]]]) -> None:
        sub = result.results[name]
        sub.status = SUBMITTING
        try:
            created = step()
        except Exception as exc:
            sub.status = ERROR
            sub.error = str(exc) or exc.__class__.__name__
            logger.exception("Saving %s for gig %s failed", name, result.gig_id)
            return
        sub.status = SAVED
        if created:
            result.created_ids.update(created)
