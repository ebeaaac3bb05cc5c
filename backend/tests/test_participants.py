import logging
import uuid

import pytest

from app.services.errors import DuplicateParticipantError, PartialParticipantError
from app.services.identity import Draft, Persisted
from app.services.participants import (
    CURRENT_ORG_SENTINEL,
    ExistingParticipant,
    ParticipantRow,
    denormalize_roles,
    editable_rows,
    reconcile_for_create,
    reconcile_for_update,
)

OWN = str(uuid.uuid4())
VENUE = str(uuid.uuid4())
ACT = str(uuid.uuid4())


def _pid():
    return str(uuid.uuid4())


def test_partial_row_is_rejected_with_its_position():
    rows = [
        ParticipantRow("tok1", VENUE, "Venue"),
        ParticipantRow("tok2", ACT, None),
    ]
    with pytest.raises(PartialParticipantError) as exc:
        editable_rows(rows)
    assert exc.value.rows == [1]
    assert "participants" in exc.value.field_errors


def test_empty_and_sentinel_rows_are_dropped():
    rows = [
        ParticipantRow(CURRENT_ORG_SENTINEL, OWN, "Production"),
        ParticipantRow("tok1", None, None),
        ParticipantRow("tok2", VENUE, "Venue"),
    ]
    assert [r.organization_id for r in editable_rows(rows)] == [VENUE]


def test_create_adds_own_org_first_and_dedupes():
    rows = [
        ParticipantRow(CURRENT_ORG_SENTINEL, OWN, None),
        ParticipantRow("tok1", VENUE, "Venue"),
        ParticipantRow("tok2", VENUE, "Venue"),
        ParticipantRow("tok3", OWN, "Production"),
        ParticipantRow("tok4", ACT, "Act"),
    ]
    writes = reconcile_for_create(rows, OWN, "Production")
    assert [(w.organization_id, w.role) for w in writes.inserts] == [
        (OWN, "Production"),
        (VENUE, "Venue"),
        (ACT, "Act"),
    ]
    assert writes.inserts[0].key == Draft(CURRENT_ORG_SENTINEL)
    assert writes.updates == [] and writes.deletes == []


def test_create_uses_role_chosen_on_sentinel_row():
    rows = [ParticipantRow(CURRENT_ORG_SENTINEL, OWN, "Sound")]
    writes = reconcile_for_create(rows, OWN, "Production")
    assert [(w.organization_id, w.role) for w in writes.inserts] == [(OWN, "Sound")]


def test_update_splits_rows_and_deletes_missing():
    own_row = ExistingParticipant(_pid(), OWN, "Production")
    venue_row = ExistingParticipant(_pid(), VENUE, "Venue")
    act_row = ExistingParticipant(_pid(), ACT, "Act")
    rows = [
        ParticipantRow(venue_row.id, VENUE, "Venue", "load-in at 3"),
        ParticipantRow("newtok", ACT, "Agency"),
    ]
    writes = reconcile_for_update(rows, [own_row, venue_row, act_row], protected_organization_id=OWN)

    assert [w.key for w in writes.updates] == [Persisted(venue_row.id)]
    assert writes.updates[0].notes == "load-in at 3"
    assert [(w.key, w.role) for w in writes.inserts] == [(Draft("newtok"), "Agency")]
    # The editor's own participant stays even though the form omits it.
    assert writes.deletes == [act_row.id]


def test_update_skips_draft_duplicate_of_saved_row():
    venue_row = ExistingParticipant(_pid(), VENUE, "Venue")
    rows = [
        ParticipantRow("dup", VENUE, "Venue"),
        ParticipantRow(venue_row.id, VENUE, "Venue"),
    ]
    writes = reconcile_for_update(rows, [venue_row])
    assert writes.inserts == []
    assert [w.key for w in writes.updates] == [Persisted(venue_row.id)]
    assert writes.deletes == []


def test_update_rejects_saved_rows_edited_into_the_same_pair():
    venue_row = ExistingParticipant(_pid(), VENUE, "Venue")
    act_row = ExistingParticipant(_pid(), ACT, "Act")
    rows = [
        ParticipantRow(venue_row.id, VENUE, "Venue"),
        ParticipantRow(act_row.id, VENUE, "Venue"),
    ]
    with pytest.raises(DuplicateParticipantError) as exc:
        reconcile_for_update(rows, [venue_row, act_row])
    assert exc.value.pairs == [(VENUE, "Venue")]
    assert "participants" in exc.value.field_errors


def test_update_rejects_edit_that_repeats_the_protected_row():
    own_row = ExistingParticipant(_pid(), OWN, "Production")
    act_row = ExistingParticipant(_pid(), ACT, "Act")
    rows = [ParticipantRow(act_row.id, OWN, "Production")]
    with pytest.raises(DuplicateParticipantError):
        reconcile_for_update(rows, [own_row, act_row], protected_organization_id=OWN)


def test_update_allows_saved_rows_to_swap_pairs():
    venue_row = ExistingParticipant(_pid(), VENUE, "Venue")
    act_row = ExistingParticipant(_pid(), ACT, "Act")
    rows = [
        ParticipantRow(venue_row.id, ACT, "Act"),
        ParticipantRow(act_row.id, VENUE, "Venue"),
    ]
    writes = reconcile_for_update(rows, [venue_row, act_row])
    assert [(w.organization_id, w.role) for w in writes.updates] == [(ACT, "Act"), (VENUE, "Venue")]
    assert writes.deletes == []


def test_update_unknown_persisted_id_is_inserted():
    foreign = _pid()
    writes = reconcile_for_update([ParticipantRow(foreign, VENUE, "Venue")], [])
    assert [w.key for w in writes.inserts] == [Draft(foreign)]


def test_update_logs_deletions(caplog):
    caplog.set_level(logging.INFO, logger="app.services.participants")
    gone = ExistingParticipant(_pid(), VENUE, "Venue")
    reconcile_for_update([], [gone])
    assert any("Removing 1 participant" in r.getMessage() for r in caplog.records)


def test_denormalize_roles_picks_first_venue_and_act():
    class Org:
        def __init__(self, id, name, type=None):
            self.id, self.name, self.type = id, name, type

    class P:
        def __init__(self, role, org):
            self.role, self.organization = role, org

    result = denormalize_roles(
        [
            P("Production", Org(OWN, "Us")),
            P("Venue", Org(VENUE, "The Hall", "Venue")),
            P("Venue", Org("other", "Second Hall")),
        ]
    )
    assert result == {"venue": {"id": VENUE, "name": "The Hall", "type": "Venue"}, "act": None}
