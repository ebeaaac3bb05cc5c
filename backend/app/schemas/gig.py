# backend/app/schemas/gig.py

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from ..models import AssignmentStatus, BidResult, GigStatus, OrganizationType
from ..services.gig_writer import BidRow
from ..services.participants import ParticipantRow
from ..services.staffing import StaffAssignmentRow, StaffSlotRow

DEFAULT_TIMEZONE = "America/Los_Angeles"
AMOUNT_ERROR = "Amount must be a positive number"
END_BEFORE_START_ERROR = "End time must be after start time"


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


def parse_amount_paid(v: Any) -> Optional[Decimal]:
    """Empty means "not paid yet"; anything else must be a number >= 0."""
    v = _blank_to_none(v)
    if v is None:
        return None
    if isinstance(v, bool):
        raise ValueError(AMOUNT_ERROR)
    try:
        amount = Decimal(str(v).strip())
    except InvalidOperation:
        raise ValueError(AMOUNT_ERROR) from None
    if not amount.is_finite() or amount < 0:
        raise ValueError(AMOUNT_ERROR)
    return amount


def localize_datetime(value: Optional[datetime], tz_name: Optional[str]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=ZoneInfo(tz_name or DEFAULT_TIMEZONE))


def _validate_timezone(v: Optional[str]) -> str:
    v = (v or "").strip() or DEFAULT_TIMEZONE
    try:
        ZoneInfo(v)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {v}") from None
    return v


def _dedupe_tags(tags: Optional[List[str]]) -> List[str]:
    seen: List[str] = []
    for tag in tags or []:
        tag = str(tag).strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


# ─── Nested form rows ──────────────────────────────────────────────────────────


class ParticipantIn(BaseModel):
    id: Optional[str] = None
    organization_id: Optional[str] = None
    role: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("organization_id", "role", mode="before")
    @classmethod
    def blank_is_unset(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("role")
    @classmethod
    def known_role(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in {t.value for t in OrganizationType}:
            raise ValueError(f"Unknown participant role: {v}")
        return v


class StaffAssignmentIn(BaseModel):
    id: Optional[str] = None
    user_id: Optional[str] = None
    status: AssignmentStatus = AssignmentStatus.REQUESTED
    compensation_type: Literal["rate", "fee"] = "rate"
    amount: Optional[str] = ""
    notes: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def amount_as_text(cls, v: Any) -> str:
        return "" if v is None else str(v)


class StaffSlotIn(BaseModel):
    id: Optional[str] = None
    role: Optional[str] = None
    count: int = Field(1, ge=0)
    notes: Optional[str] = None
    assignments: List[StaffAssignmentIn] = []


class BidIn(BaseModel):
    id: Optional[str] = None
    date_given: Optional[date] = None
    amount: Optional[str] = None
    result: Optional[BidResult] = None
    notes: Optional[str] = None

    @field_validator("date_given", "result", mode="before")
    @classmethod
    def blank_is_unset(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("amount", mode="before")
    @classmethod
    def amount_as_text(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)


class KitNoteIn(BaseModel):
    id: Optional[str] = None
    notes: Optional[str] = None


# ─── Gig form ──────────────────────────────────────────────────────────────────


class GigForm(BaseModel):
    """The nested gig form as the edit screen submits it.

    A child list that is omitted (``null``) is left untouched on update; an
    empty list means "remove all of mine".
    """

    primary_organization_id: Optional[str] = None
    title: str = Field(..., max_length=200)
    status: GigStatus = GigStatus.DATE_HOLD
    tags: List[str] = []
    # Declared before start/end so naive datetimes can be localized with it.
    timezone: str = DEFAULT_TIMEZONE
    start: datetime
    end: datetime
    amount_paid: Optional[Decimal] = None
    notes: Optional[str] = None

    participants: Optional[List[ParticipantIn]] = None
    staff_slots: Optional[List[StaffSlotIn]] = None
    bids: Optional[List[BidIn]] = None
    kit_assignments: Optional[List[KitNoteIn]] = None

    @field_validator("title")
    @classmethod
    def title_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("timezone", mode="before")
    @classmethod
    def known_timezone(cls, v: Any) -> str:
        return _validate_timezone(v)

    @field_validator("tags", mode="before")
    @classmethod
    def unique_tags(cls, v: Any) -> List[str]:
        return _dedupe_tags(v)

    @field_validator("amount_paid", mode="before")
    @classmethod
    def positive_amount(cls, v: Any) -> Optional[Decimal]:
        return parse_amount_paid(v)

    @field_validator("start")
    @classmethod
    def localize_start(cls, v: datetime, info: ValidationInfo) -> datetime:
        return localize_datetime(v, info.data.get("timezone"))

    @field_validator("end")
    @classmethod
    def end_after_start(cls, v: datetime, info: ValidationInfo) -> datetime:
        v = localize_datetime(v, info.data.get("timezone"))
        start = info.data.get("start")
        if start is not None and v <= start:
            raise ValueError(END_BEFORE_START_ERROR)
        return v

    def core_fields(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "status": self.status,
            "tags": self.tags,
            "start": self.start,
            "end": self.end,
            "timezone": self.timezone,
            "amount_paid": self.amount_paid,
            "notes": self.notes,
        }

    def participant_rows(self) -> Optional[List[ParticipantRow]]:
        if self.participants is None:
            return None
        return [ParticipantRow(p.id, p.organization_id, p.role, p.notes) for p in self.participants]

    def staff_rows(self) -> Optional[List[StaffSlotRow]]:
        if self.staff_slots is None:
            return None
        return [
            StaffSlotRow(
                id=s.id,
                role=s.role,
                count=s.count,
                notes=s.notes,
                assignments=[
                    StaffAssignmentRow(
                        id=a.id,
                        user_id=a.user_id,
                        status=a.status.value,
                        compensation_type=a.compensation_type,
                        amount=a.amount or "",
                        notes=a.notes,
                    )
                    for a in s.assignments
                ],
            )
            for s in self.staff_slots
        ]

    def bid_rows(self) -> Optional[List[BidRow]]:
        if self.bids is None:
            return None
        return [
            BidRow(
                id=b.id,
                date_given=b.date_given,
                amount=b.amount,
                result=b.result.value if b.result else None,
                notes=b.notes,
            )
            for b in self.bids
        ]

    def kit_notes(self) -> Optional[List[tuple]]:
        if self.kit_assignments is None:
            return None
        return [(k.id, k.notes) for k in self.kit_assignments]


class GigPatch(BaseModel):
    """Inline edit of one or a few top-level fields."""

    title: Optional[str] = Field(None, max_length=200)
    status: Optional[GigStatus] = None
    tags: Optional[List[str]] = None
    timezone: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    amount_paid: Optional[Decimal] = None
    notes: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Title is required")
        return v.strip() if v is not None else v

    @field_validator("timezone", mode="before")
    @classmethod
    def known_timezone(cls, v: Any) -> Optional[str]:
        return None if v is None else _validate_timezone(v)

    @field_validator("tags", mode="before")
    @classmethod
    def unique_tags(cls, v: Any) -> Optional[List[str]]:
        return None if v is None else _dedupe_tags(v)

    @field_validator("amount_paid", mode="before")
    @classmethod
    def positive_amount(cls, v: Any) -> Optional[Decimal]:
        return parse_amount_paid(v)

    @model_validator(mode="after")
    def something_to_change(self) -> "GigPatch":
        if not self.model_fields_set:
            raise ValueError("No fields to update")
        return self


# ─── Responses ─────────────────────────────────────────────────────────────────


class OrganizationRef(BaseModel):
    id: str
    name: str
    type: Optional[OrganizationType] = None

    model_config = {"from_attributes": True}


class ParticipantResponse(BaseModel):
    id: str
    organization_id: str
    role: OrganizationType
    notes: Optional[str] = None
    organization: Optional[OrganizationRef] = None

    model_config = {"from_attributes": True}


class StaffAssignmentResponse(BaseModel):
    id: str
    user_id: str
    status: AssignmentStatus
    rate: Optional[Decimal] = None
    fee: Optional[Decimal] = None
    compensation_type: Literal["rate", "fee"] = "rate"
    amount: str = ""
    notes: Optional[str] = None
    assigned_at: datetime
    confirmed_at: Optional[datetime] = None


class StaffSlotResponse(BaseModel):
    id: str
    organization_id: Optional[str] = None
    staff_role_id: str
    role: str
    required_count: int
    notes: Optional[str] = None
    assignments: List[StaffAssignmentResponse] = []


class BidResponse(BaseModel):
    id: str
    organization_id: str
    date_given: date
    amount: Decimal
    result: Optional[BidResult] = None
    notes: Optional[str] = None
    client_token: Optional[str] = None

    model_config = {"from_attributes": True}


class GigKitAssignmentResponse(BaseModel):
    id: str
    gig_id: str
    kit_id: str
    organization_id: str
    notes: Optional[str] = None
    assigned_by: str
    assigned_at: datetime
    kit_name: Optional[str] = None


class GigResponse(BaseModel):
    id: str
    organization_id: str
    title: str
    status: GigStatus
    tags: List[str] = []
    start: datetime
    end: datetime
    timezone: str
    amount_paid: Optional[Decimal] = None
    notes: Optional[str] = None
    parent_gig_id: Optional[str] = None
    hierarchy_depth: int = 0
    created_by: str
    updated_by: str
    created_at: datetime
    updated_at: datetime
    participants: List[ParticipantResponse] = []
    venue: Optional[OrganizationRef] = None
    act: Optional[OrganizationRef] = None


class GigDetailResponse(GigResponse):
    staff_slots: List[StaffSlotResponse] = []
    bids: List[BidResponse] = []
    kit_assignments: List[GigKitAssignmentResponse] = []


class SubResourceStatus(BaseModel):
    status: Literal["idle", "submitting", "saved", "error"]
    error: Optional[str] = None


class SaveReport(BaseModel):
    complete: bool
    results: Dict[str, SubResourceStatus]
    created_ids: Dict[str, str] = {}


class GigSaveResponse(BaseModel):
    gig: GigDetailResponse
    save: SaveReport


class StatusHistoryResponse(BaseModel):
    from_status: Optional[GigStatus] = None
    to_status: GigStatus
    changed_by: Optional[str] = None
    changed_at: datetime

    model_config = {"from_attributes": True}
