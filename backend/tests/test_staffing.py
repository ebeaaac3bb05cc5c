import logging
import uuid
from decimal import Decimal

from app.services.identity import Draft, Persisted, is_persisted_id
from app.services.staffing import (
    StaffAssignmentRow,
    StaffSlotRow,
    plan_staffing,
    resize_assignments,
)

ORG = str(uuid.uuid4())


def _id():
    return str(uuid.uuid4())


def test_resize_grows_with_blank_local_rows():
    slot = StaffSlotRow(id="s1", role="A2", count=1, assignments=[StaffAssignmentRow(id="a1", user_id="u1")])
    grown = resize_assignments(slot, 3)
    assert grown.count == 3
    assert [a.id for a in grown.assignments][:1] == ["a1"]
    assert len(grown.assignments) == 3
    assert all(a.user_id is None and not is_persisted_id(a.id) for a in grown.assignments[1:])
    assert {(a.status, a.compensation_type, a.amount) for a in grown.assignments[1:]} == {("Requested", "rate", "")}
    # The original row list is left alone.
    assert len(slot.assignments) == 1


def test_resize_shrinks_from_the_end():
    rows = [StaffAssignmentRow(id=f"a{i}", user_id=f"u{i}") for i in range(3)]
    shrunk = resize_assignments(StaffSlotRow(role="A2", count=3, assignments=rows), 1)
    assert [a.id for a in shrunk.assignments] == ["a0"]


def test_new_slot_writes_only_filled_assignments():
    slot = StaffSlotRow(
        id="tok-slot",
        role="FOH Engineer",
        count=2,
        assignments=[
            StaffAssignmentRow(id="tok-a", user_id="user-1", compensation_type="rate", amount="45"),
            StaffAssignmentRow(id="tok-b", user_id=None),
        ],
    )
    plan = plan_staffing([slot], {}, ORG)
    assert len(plan.slots.inserts) == 1
    write = plan.slots.inserts[0]
    assert write.key == Draft("tok-slot")
    assert write.role == "FOH Engineer"
    assert write.required_count == 2
    assert write.organization_id == ORG
    assert [(a.user_id, a.rate, a.fee) for a in write.assignments.inserts] == [("user-1", Decimal("45"), None)]


def test_blank_role_slot_is_skipped_and_saved_one_deleted():
    saved = _id()
    slots = [
        StaffSlotRow(id=saved, role="  ", count=1),
        StaffSlotRow(id="tok", role=None, count=2),
    ]
    plan = plan_staffing(slots, {saved: []}, ORG)
    assert plan.slots.inserts == [] and plan.slots.updates == []
    assert plan.slots.deletes == [saved]


def test_zero_count_still_keeps_one_position():
    slot = StaffSlotRow(
        id="tok",
        role="LD",
        count=0,
        assignments=[StaffAssignmentRow(id="a", user_id="u1"), StaffAssignmentRow(id="b", user_id="u2")],
    )
    write = plan_staffing([slot], {}, ORG).slots.inserts[0]
    assert write.required_count == 1
    assert [a.user_id for a in write.assignments.inserts] == ["u1"]


def test_shrinking_deletes_dropped_saved_assignments(caplog):
    caplog.set_level(logging.WARNING, logger="app.services.staffing")
    slot_id, keep_id, drop_id = _id(), _id(), _id()
    slot = StaffSlotRow(
        id=slot_id,
        role="Stagehand",
        count=1,
        assignments=[
            StaffAssignmentRow(id=keep_id, user_id="u1", status="Confirmed", compensation_type="fee", amount="200"),
            StaffAssignmentRow(id=drop_id, user_id="u2"),
        ],
    )
    plan = plan_staffing([slot], {slot_id: [keep_id, drop_id]}, ORG)

    update = plan.slots.updates[0]
    assert update.key == Persisted(slot_id)
    assert [a.key for a in update.assignments.updates] == [Persisted(keep_id)]
    assert update.assignments.updates[0].fee == Decimal("200")
    assert update.assignments.updates[0].rate is None
    assert plan.assignment_deletes == [drop_id]
    assert any("removing 1 staffed assignment" in r.getMessage() for r in caplog.records)


def test_cleared_user_deletes_saved_assignment():
    slot_id, assignment_id = _id(), _id()
    slot = StaffSlotRow(id=slot_id, role="A1", count=1, assignments=[StaffAssignmentRow(id=assignment_id, user_id="")])
    plan = plan_staffing([slot], {slot_id: [assignment_id]}, ORG)
    assert plan.slots.updates[0].assignments.deletes == [assignment_id]


def test_slots_missing_from_submission_are_deleted():
    kept, removed = _id(), _id()
    plan = plan_staffing([StaffSlotRow(id=kept, role="A1")], {kept: [], removed: ["x"]}, ORG)
    assert [w.key for w in plan.slots.updates] == [Persisted(kept)]
    assert plan.slots.deletes == [removed]


def test_slot_of_another_organization_is_inserted_not_updated():
    foreign = _id()
    plan = plan_staffing([StaffSlotRow(id=foreign, role="A1")], {}, ORG)
    assert plan.slots.updates == []
    assert plan.slots.inserts[0].key == Draft(foreign)
