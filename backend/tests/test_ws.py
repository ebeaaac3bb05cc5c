import asyncio
from contextlib import contextmanager

import pytest
from starlette.websockets import WebSocketDisconnect

from app import models
from app.api import api_ws
from app.api.api_ws import GigEventManager

from factories import add_member, auth_headers, make_org, make_user


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


def test_publish_fans_out_and_drops_broken_sockets():
    manager = GigEventManager()
    good, broken, elsewhere = FakeSocket(), FakeSocket(fail=True), FakeSocket()

    async def run():
        await manager.connect("org-1", good)
        await manager.connect("org-1", broken)
        await manager.connect("org-2", elsewhere)
        await manager.publish(["org-1", "org-1"], "UPDATE", {"id": "g1", "title": "Show"})

    asyncio.run(run())
    assert good.sent == [{"type": "UPDATE", "gig": {"id": "g1", "title": "Show"}}]
    assert elsewhere.sent == []
    assert manager.org_sockets["org-1"] == {good}


def test_last_disconnect_forgets_organization():
    manager = GigEventManager()
    socket = FakeSocket()
    asyncio.run(manager.connect("org-1", socket))
    manager.disconnect("org-1", socket)
    manager.disconnect("org-1", socket)
    assert manager.org_sockets == {}


def test_unknown_event_type_is_rejected():
    with pytest.raises(ValueError):
        asyncio.run(GigEventManager().publish(["org-1"], "UPSERT", {}))


@pytest.fixture
def ws_db(Session, monkeypatch):
    @contextmanager
    def session_scope():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    monkeypatch.setattr(api_ws, "get_db_session", session_scope)


def _token(user):
    return auth_headers(user)["Authorization"].split(" ", 1)[1]


def test_socket_without_token_is_closed_unauthorized(client, ws_db):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws/gigs?organization_id=org-1"):
            pass
    assert exc.value.code == api_ws.WS_4401_UNAUTHORIZED


def test_non_member_is_closed_forbidden(client, db, ws_db):
    user = make_user(db)
    org = make_org(db)
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(f"/ws/gigs?organization_id={org.id}&token={_token(user)}"):
            pass
    assert exc.value.code == api_ws.WS_4403_FORBIDDEN


def test_member_subscribes_and_pings(client, db, ws_db):
    user = make_user(db)
    org = make_org(db)
    add_member(db, org, user, models.MemberRole.VIEWER)
    with client.websocket_connect(
        f"/ws/gigs?organization_id={org.id}", headers={"Authorization": f"Bearer {_token(user)}"}
    ) as ws:
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}
