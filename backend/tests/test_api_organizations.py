from app import models

from factories import add_member, auth_headers, make_org, make_user


def test_create_organization_makes_creator_admin(client, db):
    user = make_user(db)
    res = client.post(
        "/organizations",
        json={"name": "  Bright Lights  ", "type": "Lighting", "city": "Austin"},
        headers=auth_headers(user),
    )
    assert res.status_code == 201, res.text
    org = res.json()
    assert org["name"] == "Bright Lights"
    assert org["type"] == "Lighting"

    members = client.get(f"/organizations/{org['id']}/members", headers=auth_headers(user)).json()
    assert [(m["user_id"], m["role"]) for m in members] == [(user.id, "Admin")]


def test_create_organization_rejects_unknown_type(client, db):
    user = make_user(db)
    res = client.post("/organizations", json={"name": "X", "type": "Caterer"}, headers=auth_headers(user))
    assert res.status_code == 400
    assert "type" in res.json()["field_errors"]


def test_list_organizations_filters(client, db):
    user = make_user(db)
    make_org(db, "Blue Note", models.OrganizationType.VENUE)
    make_org(db, "Blue Sound Co", models.OrganizationType.SOUND)
    make_org(db, "Red Room", models.OrganizationType.VENUE)

    res = client.get("/organizations", params={"type": "Venue"}, headers=auth_headers(user))
    assert [o["name"] for o in res.json()] == ["Blue Note", "Red Room"]

    res = client.get("/organizations", params={"search": "blue"}, headers=auth_headers(user))
    assert [o["name"] for o in res.json()] == ["Blue Note", "Blue Sound Co"]


def test_join_organization(client, db):
    user = make_user(db)
    org = make_org(db)
    headers = auth_headers(user)

    res = client.post(f"/organizations/{org.id}/join", headers=headers)
    assert res.status_code == 200
    assert res.json()["role"] == "Viewer"

    res = client.post(f"/organizations/{org.id}/join", headers=headers)
    assert res.status_code == 400
    assert res.json() == {"error": "Already a member"}

    res = client.post("/organizations/00000000-0000-0000-0000-000000000000/join", headers=headers)
    assert res.status_code == 404
    assert res.json() == {"error": "Organization not found"}


def test_only_admin_updates_organization_and_members(client, db):
    admin = make_user(db)
    manager = make_user(db)
    org = make_org(db, "Acme")
    add_member(db, org, admin, models.MemberRole.ADMIN)
    member = add_member(db, org, manager, models.MemberRole.MANAGER)

    res = client.put(f"/organizations/{org.id}", json={"name": "Acme Live"}, headers=auth_headers(manager))
    assert res.status_code == 403

    res = client.put(f"/organizations/{org.id}", json={"name": "Acme Live"}, headers=auth_headers(admin))
    assert res.json()["name"] == "Acme Live"

    res = client.put(
        f"/organizations/{org.id}/members/{member.id}",
        json={"role": "Staff", "default_staff_role": "Rigger"},
        headers=auth_headers(admin),
    )
    assert res.status_code == 200
    body = res.json()
    assert body["role"] == "Staff"
    role = db.query(models.StaffRole).filter(models.StaffRole.name == "Rigger").one()
    assert body["default_staff_role_id"] == role.id

    res = client.delete(f"/organizations/{org.id}/members/{member.id}", headers=auth_headers(admin))
    assert res.json() == {"success": True}
    assert client.get(f"/organizations/{org.id}/members", headers=auth_headers(manager)).status_code == 403


def test_invitation_creates_pending_member_and_is_accepted(client, db):
    admin = make_user(db)
    org = make_org(db, "Acme")
    add_member(db, org, admin, models.MemberRole.ADMIN)

    res = client.post(
        f"/organizations/{org.id}/invitations",
        json={"email": "New.Hire@Example.com", "role": "Staff", "first_name": "Nia"},
        headers=auth_headers(admin),
    )
    assert res.status_code == 201, res.text
    invitation = res.json()
    assert invitation["email"] == "new.hire@example.com"
    assert invitation["status"] == "pending"

    pending = db.query(models.User).filter(models.User.email == "new.hire@example.com").one()
    assert pending.user_status == models.UserStatus.PENDING
    # The pending user can already be staffed.
    members = client.get(f"/organizations/{org.id}/members", headers=auth_headers(admin)).json()
    assert pending.id in {m["user_id"] for m in members}

    listed = client.get(f"/organizations/{org.id}/invitations", headers=auth_headers(admin)).json()
    assert [i["id"] for i in listed] == [invitation["id"]]

    res = client.post(
        f"/organizations/{org.id}/invitations",
        json={"email": "new.hire@example.com"},
        headers=auth_headers(admin),
    )
    assert res.status_code == 400

    res = client.post(f"/invitations/{invitation['token']}/accept", headers=auth_headers(pending))
    assert res.status_code == 200
    assert res.json()["status"] == "accepted"
    db.expire_all()
    assert db.get(models.User, pending.id).user_status == models.UserStatus.ACTIVE

    res = client.post(f"/invitations/{invitation['token']}/accept", headers=auth_headers(pending))
    assert res.status_code == 400
    assert res.json() == {"error": "Invitation has already been used"}


def test_invitation_requires_manager_and_valid_email(client, db):
    admin = make_user(db)
    viewer = make_user(db)
    org = make_org(db)
    add_member(db, org, admin, models.MemberRole.ADMIN)
    add_member(db, org, viewer, models.MemberRole.VIEWER)

    res = client.post(
        f"/organizations/{org.id}/invitations", json={"email": "a@b.com"}, headers=auth_headers(viewer)
    )
    assert res.status_code == 403

    res = client.post(
        f"/organizations/{org.id}/invitations", json={"email": "not-an-email"}, headers=auth_headers(admin)
    )
    assert res.status_code == 400
    assert "email" in res.json()["field_errors"]


def test_cancel_invitation(client, db):
    admin = make_user(db)
    org = make_org(db)
    add_member(db, org, admin, models.MemberRole.ADMIN)
    invitation = client.post(
        f"/organizations/{org.id}/invitations", json={"email": "c@d.com"}, headers=auth_headers(admin)
    ).json()

    res = client.delete(f"/organizations/{org.id}/invitations/{invitation['id']}", headers=auth_headers(admin))
    assert res.json()["status"] == "cancelled"
    res = client.delete(f"/organizations/{org.id}/invitations/{invitation['id']}", headers=auth_headers(admin))
    assert res.status_code == 400


def test_invitation_can_only_be_accepted_by_the_invited_email(client, db):
    admin = make_user(db)
    org = make_org(db)
    add_member(db, org, admin, models.MemberRole.ADMIN)
    invitation = client.post(
        f"/organizations/{org.id}/invitations",
        json={"email": "hire@example.com", "role": "Manager"},
        headers=auth_headers(admin),
    ).json()

    stranger = make_user(db, "stranger@example.com")
    res = client.post(f"/invitations/{invitation['token']}/accept", headers=auth_headers(stranger))
    assert res.status_code == 403
    assert res.json() == {"error": "Invitation was sent to a different email address"}

    db.expire_all()
    assert db.query(models.OrganizationMember).filter(
        models.OrganizationMember.organization_id == org.id,
        models.OrganizationMember.user_id == stranger.id,
    ).count() == 0
    listed = client.get(f"/organizations/{org.id}/invitations", headers=auth_headers(admin)).json()
    assert [i["status"] for i in listed] == ["pending"]
