from datetime import datetime, timezone

import pytest

from app import models
from app.services.participants import CURRENT_ORG_SENTINEL

from factories import add_member, auth_headers, gig_payload, make_org, make_user


@pytest.fixture
def team(db):
    admin = make_user(db, "admin@acme.example.com", "Ada", "Admin")
    viewer = make_user(db, "viewer@acme.example.com", "Vic", "Viewer")
    crew = make_user(db, "crew@acme.example.com", "Cam", "Crew")
    outsider = make_user(db, "out@else.example.com")
    org = make_org(db, "Acme Production", models.OrganizationType.PRODUCTION)
    venue = make_org(db, "The Hall", models.OrganizationType.VENUE)
    act = make_org(db, "The Band", models.OrganizationType.ACT)
    add_member(db, org, admin, models.MemberRole.ADMIN)
    add_member(db, org, viewer, models.MemberRole.VIEWER)
    add_member(db, org, crew, models.MemberRole.STAFF)
    return {
        "admin": admin,
        "viewer": viewer,
        "crew": crew,
        "outsider": outsider,
        "org": org,
        "venue": venue,
        "act": act,
    }


def _create(client, team, **overrides):
    payload = gig_payload(
        team["org"],
        participants=[
            {"id": CURRENT_ORG_SENTINEL, "organization_id": team["org"].id, "role": "Production"},
            {"id": "venue-row", "organization_id": team["venue"].id, "role": "Venue"},
        ],
        **overrides,
    )
    return client.post("/gigs", json=payload, headers=auth_headers(team["admin"]))


def test_create_gig_returns_detail_and_save_report(client, team):
    res = _create(
        client,
        team,
        amount_paid="2500",
        bids=[{"id": "bid-row", "date_given": "2030-01-10", "amount": "1800"}],
        staff_slots=[
            {
                "id": "slot-row",
                "role": "FOH Engineer",
                "count": 2,
                "assignments": [
                    {"id": "crew-row", "user_id": team["crew"].id, "compensation_type": "fee", "amount": "400"},
                    {"id": "empty-row"},
                ],
            }
        ],
    )
    assert res.status_code == 201, res.text
    body = res.json()
    gig = body["gig"]
    assert gig["title"] == "Summer Festival"
    assert gig["organization_id"] == team["org"].id
    assert gig["venue"] == {"id": team["venue"].id, "name": "The Hall", "type": "Venue"}
    assert gig["act"] is None
    assert float(gig["amount_paid"]) == 2500
    assert {p["role"] for p in gig["participants"]} == {"Production", "Venue"}
    (slot,) = gig["staff_slots"]
    assert slot["role"] == "FOH Engineer"
    (assignment,) = slot["assignments"]
    assert assignment["compensation_type"] == "fee"
    assert float(assignment["amount"]) == 400
    assert len(gig["bids"]) == 1

    save = body["save"]
    assert save["complete"] is True
    assert save["results"]["gig"]["status"] == "saved"
    assert save["results"]["kit_notes"]["status"] == "idle"
    assert {"current-org", "venue-row", "bid-row", "slot-row", "crew-row"} <= set(save["created_ids"])


def test_create_gig_validation_errors(client, team):
    headers = auth_headers(team["admin"])
    res = client.post("/gigs", json=gig_payload(team["org"], amount_paid="-5"), headers=headers)
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "Amount must be a positive number"
    assert "amount_paid" in body["field_errors"]

    start = "2030-05-01T18:00:00+00:00"
    res = client.post("/gigs", json=gig_payload(team["org"], start=start, end=start), headers=headers)
    assert res.status_code == 400
    assert res.json()["field_errors"]["end"] == "End time must be after start time"


def test_partial_participant_row_is_rejected(client, team):
    payload = gig_payload(team["org"], participants=[{"id": "x", "organization_id": team["venue"].id}])
    res = client.post("/gigs", json=payload, headers=auth_headers(team["admin"]))
    assert res.status_code == 400
    assert "participants" in res.json()["field_errors"]


def test_viewer_cannot_create(client, team):
    res = client.post("/gigs", json=gig_payload(team["org"]), headers=auth_headers(team["viewer"]))
    assert res.status_code == 403
    assert "error" in res.json()


def test_missing_token_is_unauthorized(client, team):
    res = client.post("/gigs", json=gig_payload(team["org"]))
    assert res.status_code == 401
    assert res.json() == {"error": "Could not validate credentials"}


def test_list_requires_organization_and_membership(client, team):
    _create(client, team)
    res = client.get("/gigs", headers=auth_headers(team["admin"]))
    assert res.status_code == 400
    assert res.json()["field_errors"] == {"organization_id": "required"}

    res = client.get("/gigs", params={"organization_id": team["org"].id}, headers=auth_headers(team["outsider"]))
    assert res.status_code == 403

    res = client.get("/gigs", params={"organization_id": team["org"].id}, headers=auth_headers(team["viewer"]))
    assert res.status_code == 200
    assert [g["title"] for g in res.json()] == ["Summer Festival"]


def test_participating_org_sees_gig_but_not_owner_private_rows(client, team, db):
    gig_id = _create(client, team, bids=[{"id": "b", "date_given": "2030-01-10", "amount": "100"}]).json()["gig"]["id"]
    venue_manager = make_user(db)
    add_member(db, team["venue"], venue_manager, models.MemberRole.MANAGER)

    res = client.get("/gigs", params={"organization_id": team["venue"].id}, headers=auth_headers(venue_manager))
    assert [g["id"] for g in res.json()] == [gig_id]

    res = client.get(f"/gigs/{gig_id}", headers=auth_headers(venue_manager))
    assert res.status_code == 200
    assert res.json()["bids"] == []

    res = client.get(f"/gigs/{gig_id}", headers=auth_headers(team["outsider"]))
    assert res.status_code == 403


def test_update_with_partial_failure_reports_per_resource(client, team, monkeypatch):
    created = _create(client, team).json()
    gig_id = created["gig"]["id"]

    from app.services import gig_writer

    def broken(self, gig_id, organization_id, actor_id, writes):
        raise RuntimeError("bids unavailable")

    monkeypatch.setattr(gig_writer.SqlGigStore, "apply_bids", broken)
    payload = gig_payload(
        team["org"],
        title="Summer Festival (late)",
        bids=[{"id": "b1", "date_given": "2030-01-10", "amount": "100"}],
        staff_slots=[{"id": "s1", "role": "LD", "count": 1, "assignments": []}],
    )
    res = client.put(f"/gigs/{gig_id}", json=payload, headers=auth_headers(team["admin"]))
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["gig"]["title"] == "Summer Festival (late)"
    assert body["save"]["complete"] is False
    assert body["save"]["results"]["bids"] == {"status": "error", "error": "bids unavailable"}
    assert body["save"]["results"]["staff"]["status"] == "saved"
    assert [s["role"] for s in body["gig"]["staff_slots"]] == ["LD"]


def test_patch_inline_field(client, team):
    gig_id = _create(client, team).json()["gig"]["id"]
    headers = auth_headers(team["admin"])

    res = client.patch(f"/gigs/{gig_id}", json={"status": "Booked"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["status"] == "Booked"

    res = client.patch(f"/gigs/{gig_id}", json={"end": "2030-04-01T00:00:00+00:00"}, headers=headers)
    assert res.status_code == 400
    assert res.json()["field_errors"]["end"] == "End time must be after start time"

    res = client.patch(f"/gigs/{gig_id}", json={"title": "x"}, headers=auth_headers(team["viewer"]))
    assert res.status_code == 403

    history = client.get(f"/gigs/{gig_id}/history", headers=headers).json()
    assert [(h["from_status"], h["to_status"]) for h in history] == [(None, "DateHold"), ("DateHold", "Booked")]


def test_only_owner_admin_deletes(client, team, db):
    gig_id = _create(client, team).json()["gig"]["id"]
    res = client.delete(f"/gigs/{gig_id}", headers=auth_headers(team["viewer"]))
    assert res.status_code == 403

    res = client.delete(f"/gigs/{gig_id}", headers=auth_headers(team["admin"]))
    assert res.status_code == 200
    assert res.json() == {"success": True}
    assert client.get(f"/gigs/{gig_id}", headers=auth_headers(team["admin"])).status_code == 404
    assert db.query(models.GigParticipant).filter(models.GigParticipant.gig_id == gig_id).count() == 0


def test_accept_and_decline_own_assignment(client, team):
    gig_id = _create(
        client,
        team,
        staff_slots=[
            {"id": "s", "role": "A2", "count": 1, "assignments": [{"id": "a", "user_id": team["crew"].id}]}
        ],
    ).json()["gig"]["id"]
    crew_headers = auth_headers(team["crew"])

    res = client.post(f"/gigs/{gig_id}/accept", headers=crew_headers)
    assert res.status_code == 200
    (assignment,) = res.json()["assignments"]
    assert assignment["status"] == "Confirmed"
    assert assignment["confirmed_at"] is not None

    res = client.post(f"/gigs/{gig_id}/decline", headers=crew_headers)
    (assignment,) = res.json()["assignments"]
    assert assignment["status"] == "Declined"
    assert assignment["confirmed_at"] is None

    res = client.post(f"/gigs/{gig_id}/accept", headers=auth_headers(team["viewer"]))
    assert res.status_code == 404


def test_unknown_gig_is_404(client, team):
    res = client.get("/gigs/00000000-0000-0000-0000-000000000000", headers=auth_headers(team["admin"]))
    assert res.status_code == 404
    assert res.json() == {"error": "Gig not found"}


def test_create_publishes_gig_event(client, team, monkeypatch):
    from app.api import api_gig

    published = []

    async def fake_publish(org_ids, event_type, gig):
        published.append((set(org_ids), event_type, gig["id"]))

    monkeypatch.setattr(api_gig.gig_events, "publish", fake_publish)
    gig_id = _create(client, team).json()["gig"]["id"]
    assert published == [({team["org"].id, team["venue"].id}, "INSERT", gig_id)]


def test_times_round_trip_in_utc(client, team):
    gig = _create(client, team, start="2030-07-04T20:00:00", end="2030-07-04T23:30:00", timezone="America/New_York").json()["gig"]
    start = datetime.fromisoformat(gig["start"].replace("Z", "+00:00"))
    assert start.astimezone(timezone.utc) == datetime(2030, 7, 5, 0, 0, tzinfo=timezone.utc)


def test_staff_slots_always_belong_to_the_editing_organization(client, team, db):
    sound = make_org(db, "Loud Sound", models.OrganizationType.SOUND)
    res = _create(
        client,
        team,
        staff_slots=[{"id": "slot-row", "role": "A1", "count": 1, "organization_id": sound.id, "assignments": []}],
    )
    assert res.status_code == 201, res.text
    gig = res.json()["gig"]
    (slot,) = gig["staff_slots"]
    assert slot["organization_id"] == team["org"].id

    payload = gig_payload(
        team["org"],
        staff_slots=[{"id": slot["id"], "role": "A1", "count": 1, "organization_id": sound.id, "assignments": []}],
    )
    res = client.put(f"/gigs/{gig['id']}", json=payload, headers=auth_headers(team["admin"]))
    assert res.status_code == 200, res.text
    db.expire_all()
    stored = db.query(models.GigStaffSlot).filter(models.GigStaffSlot.gig_id == gig["id"]).all()
    assert [(s.id, s.organization_id) for s in stored] == [(slot["id"], team["org"].id)]


def test_update_cannot_turn_two_participants_into_the_same_pair(client, team, db):
    payload = gig_payload(
        team["org"],
        participants=[
            {"id": "hall", "organization_id": team["venue"].id, "role": "Venue"},
            {"id": "band", "organization_id": team["act"].id, "role": "Act"},
        ],
    )
    gig = client.post("/gigs", json=payload, headers=auth_headers(team["admin"])).json()["gig"]
    ids = {p["role"]: p["id"] for p in gig["participants"]}

    payload = gig_payload(
        team["org"],
        title="Renamed",
        participants=[
            {"id": ids["Venue"], "organization_id": team["venue"].id, "role": "Venue"},
            {"id": ids["Act"], "organization_id": team["venue"].id, "role": "Venue"},
        ],
    )
    res = client.put(f"/gigs/{gig['id']}", json=payload, headers=auth_headers(team["admin"]))
    assert res.status_code == 400
    assert "participants" in res.json()["field_errors"]

    db.expire_all()
    stored = db.query(models.GigParticipant).filter(models.GigParticipant.gig_id == gig["id"]).all()
    assert sorted(p.role.value for p in stored) == ["Act", "Production", "Venue"]
    assert db.get(models.Gig, gig["id"]).title == "Summer Festival"
