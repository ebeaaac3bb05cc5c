# backend/app/api/api_ws.py
# WebSocket transport for gig change events (/ws/gigs). One socket per
# organization the client is looking at; events are fanned out in-process.

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional, Set

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from jose import JWTError
from starlette.exceptions import WebSocketException

from ..database import get_db_session
from .dependencies import get_membership
from ..models import User
from .auth import decode_access_token

logger = logging.getLogger(__name__)
router = APIRouter()

SEND_TIMEOUT = 10.0
WS_4401_UNAUTHORIZED = 4401
WS_4403_FORBIDDEN = 4403

EVENT_TYPES = ("INSERT", "UPDATE", "DELETE")


class GigEventManager:
    """Per-organization sets of sockets subscribed to gig changes.

    Delivery is best effort: a socket that fails to receive is dropped.
    """

    def __init__(self) -> None:
        self.org_sockets: Dict[str, Set[WebSocket]] = {}

    async def connect(self, organization_id: str, websocket: WebSocket) -> None:
        self.org_sockets.setdefault(organization_id, set()).add(websocket)

    def disconnect(self, organization_id: str, websocket: WebSocket) -> None:
        conns = self.org_sockets.get(organization_id)
        if not conns:
            return
        conns.discard(websocket)
        if not conns:
            del self.org_sockets[organization_id]

    async def publish(self, organization_ids: Iterable[str], event_type: str, gig: Any) -> None:
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown gig event type: {event_type}")
        message = {"type": event_type, "gig": jsonable_encoder(gig)}
        for organization_id in set(organization_ids):
            for websocket in list(self.org_sockets.get(organization_id, set())):
                try:
                    await asyncio.wait_for(websocket.send_json(message), timeout=SEND_TIMEOUT)
                except Exception:
                    logger.info("Dropping gig event socket for organization %s", organization_id)
                    self.disconnect(organization_id, websocket)


gig_events = GigEventManager()


def _authorize(token: str, organization_id: str) -> Optional[str]:
    """Return the user id when the token is valid and the user is a member."""
    try:
        claims = decode_access_token(token)
    except JWTError:
        return None
    user_id = claims.get("sub")
    if not user_id:
        return None
    with get_db_session() as db:
        user = db.query(User).filter(User.id == str(user_id)).first()
        if user is None or get_membership(db, organization_id, user.id) is None:
            return None
        return user.id


def _extract_bearer_token(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    if token:
        return token
    header = websocket.headers.get("authorization") or ""
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


@router.websocket("/ws/gigs")
async def gigs_ws(
    websocket: WebSocket,
    organization_id: str = Query(...),
    token: Optional[str] = Query(None),
):
    bearer = _extract_bearer_token(websocket, token)
    if not bearer:
        raise WebSocketException(code=WS_4401_UNAUTHORIZED, reason="Missing token")
    user_id = await run_in_threadpool(_authorize, bearer, organization_id)
    if user_id is None:
        raise WebSocketException(code=WS_4403_FORBIDDEN, reason="Forbidden")

    await websocket.accept()
    await gig_events.connect(organization_id, websocket)
    logger.info("User %s subscribed to gigs of organization %s", user_id, organization_id)
    try:
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        gig_events.disconnect(organization_id, websocket)
