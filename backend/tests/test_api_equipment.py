import pytest

from app import models

from factories import add_member, auth_headers, gig_payload, make_org, make_user


@pytest.fixture
def crew(db):
    admin = make_user(db)
    viewer = make_user(db)
    org = make_org(db, "Loud Sound", models.OrganizationType.SOUND)
    add_member(db, org, admin, models.MemberRole.ADMIN)
    add_member(db, org, viewer, models.MemberRole.VIEWER)
    return admin, viewer, org


def _asset(client, admin, org, model="SM58", **extra):
    res = client.post(
        "/assets",
        json={"organization_id": org.id, "category": "Audio", "manufacturer_model": model, **extra},
        headers=auth_headers(admin),
    )
    assert res.status_code == 201, res.text
    return res.json()


def test_asset_crud_and_filters(client, crew):
    admin, viewer, org = crew
    mic = _asset(client, admin, org, sub_category="Microphone", cost="99.00")
    _asset(client, admin, org, model="X32", sub_category="Console", insurance_policy_added=True)

    res = client.get(
        "/assets", params={"organization_id": org.id, "insurance_added": True}, headers=auth_headers(viewer)
    )
    assert [a["manufacturer_model"] for a in res.json()] == ["X32"]

    res = client.put(f"/assets/{mic['id']}", json={"serial_number": "SN-1"}, headers=auth_headers(viewer))
    assert res.status_code == 403

    res = client.put(f"/assets/{mic['id']}", json={"serial_number": "SN-1"}, headers=auth_headers(admin))
    assert res.json()["serial_number"] == "SN-1"

    assert client.delete(f"/assets/{mic['id']}", headers=auth_headers(admin)).json() == {"success": True}
    assert client.get(f"/assets/{mic['id']}", headers=auth_headers(admin)).status_code == 404


def test_negative_cost_is_rejected(client, crew):
    admin, _, org = crew
    res = client.post(
        "/assets",
        json={"organization_id": org.id, "category": "Audio", "manufacturer_model": "SM58", "cost": "-1"},
        headers=auth_headers(admin),
    )
    assert res.status_code == 400
    assert "cost" in res.json()["field_errors"]


def test_kit_contents_are_diffed_on_update(client, crew):
    admin, _, org = crew
    mic = _asset(client, admin, org)
    desk = _asset(client, admin, org, model="X32")
    amp = _asset(client, admin, org, model="PLM")
    headers = auth_headers(admin)

    res = client.post(
        "/kits",
        json={
            "organization_id": org.id,
            "name": "Small PA",
            "tags": ["club"],
            "assets": [
                {"id": "r1", "asset_id": mic["id"], "quantity": 4},
                {"id": "r2", "asset_id": desk["id"]},
                {"id": "r3", "asset_id": mic["id"], "quantity": 9},
            ],
        },
        headers=headers,
    )
    assert res.status_code == 201, res.text
    kit = res.json()
    rows = {r["asset_id"]: r for r in kit["kit_assets"]}
    assert rows[mic["id"]]["quantity"] == 4
    assert len(rows) == 2

    res = client.put(
        f"/kits/{kit['id']}",
        json={
            "assets": [
                {"id": rows[mic["id"]]["id"], "asset_id": mic["id"], "quantity": 6},
                {"id": "new", "asset_id": amp["id"], "quantity": 2},
            ]
        },
        headers=headers,
    )
    assert res.status_code == 200, res.text
    updated = {r["asset_id"]: r for r in res.json()["kit_assets"]}
    assert set(updated) == {mic["id"], amp["id"]}
    assert updated[mic["id"]]["id"] == rows[mic["id"]]["id"]
    assert updated[mic["id"]]["quantity"] == 6
    assert res.json()["name"] == "Small PA"


def test_kit_rejects_foreign_assets(client, crew, db):
    admin, _, org = crew
    other = make_org(db)
    other_admin = make_user(db)
    add_member(db, other, other_admin)
    foreign = _asset(client, other_admin, other)

    res = client.post(
        "/kits",
        json={"organization_id": org.id, "name": "Mixed", "assets": [{"asset_id": foreign["id"]}]},
        headers=auth_headers(admin),
    )
    assert res.status_code == 400
    assert "assets" in res.json()["field_errors"]


def test_duplicate_kit(client, crew):
    admin, _, org = crew
    mic = _asset(client, admin, org)
    kit = client.post(
        "/kits",
        json={"organization_id": org.id, "name": "Vocal", "assets": [{"asset_id": mic["id"], "quantity": 2}]},
        headers=auth_headers(admin),
    ).json()

    res = client.post(f"/kits/{kit['id']}/duplicate", headers=auth_headers(admin))
    assert res.status_code == 201
    copy = res.json()
    assert copy["name"] == "Vocal (Copy)"
    assert copy["id"] != kit["id"]
    assert [(r["asset_id"], r["quantity"]) for r in copy["kit_assets"]] == [(mic["id"], 2)]


def test_kit_assignment_and_conflicts(client, crew):
    admin, _, org = crew
    headers = auth_headers(admin)
    mic = _asset(client, admin, org)
    kit = client.post(
        "/kits", json={"organization_id": org.id, "name": "Vocal", "assets": [{"asset_id": mic["id"]}]}, headers=headers
    ).json()
    other_kit = client.post(
        "/kits", json={"organization_id": org.id, "name": "Backup", "assets": [{"asset_id": mic["id"]}]}, headers=headers
    ).json()

    first = client.post("/gigs", json=gig_payload(org, title="First"), headers=headers).json()["gig"]
    second = client.post("/gigs", json=gig_payload(org, title="Second"), headers=headers).json()["gig"]

    res = client.post(f"/gigs/{first['id']}/kits", json={"kit_id": kit["id"], "notes": "truck 1"}, headers=headers)
    assert res.status_code == 201, res.text
    assignment = res.json()
    assert assignment["kit_name"] == "Vocal"

    res = client.post(f"/gigs/{first['id']}/kits", json={"kit_id": kit["id"]}, headers=headers)
    assert res.status_code == 400

    res = client.get(f"/kits/{other_kit['id']}/conflicts", params={"gig_id": second["id"]}, headers=headers)
    assert res.status_code == 200
    (conflict,) = res.json()
    assert conflict["gig_id"] == first["id"]
    assert conflict["asset_ids"] == [mic["id"]]

    res = client.get(
        f"/kits/{other_kit['id']}/conflicts",
        params={"start": "2031-01-01T00:00:00Z", "end": "2031-01-02T00:00:00Z"},
        headers=headers,
    )
    assert res.json() == []

    res = client.get(f"/kits/{other_kit['id']}/conflicts", headers=headers)
    assert res.status_code == 400

    # Kit notes are edited through the gig form.
    payload = gig_payload(org, title="First", kit_assignments=[{"id": assignment["id"], "notes": "truck 2"}])
    res = client.put(f"/gigs/{first['id']}", json=payload, headers=headers)
    assert res.json()["save"]["results"]["kit_notes"]["status"] == "saved"
    (listed,) = client.get(f"/gigs/{first['id']}/kits", headers=headers).json()
    assert listed["notes"] == "truck 2"

    res = client.delete(f"/gigs/{first['id']}/kits/{assignment['id']}", headers=headers)
    assert res.json() == {"success": True}
    assert client.get(f"/gigs/{first['id']}/kits", headers=headers).json() == []
