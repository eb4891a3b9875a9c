"""
DevMatch — Chat API

Room history over HTTP and the real-time chat socket.  The socket endpoint
only handles framing; room membership, authorization and fan-out belong to
the ``ChatRoomGateway`` stored on ``app.state.gateway``.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from app.api.deps import get_current_developer, get_repositories
from app.exceptions import AuthenticationError, DevMatchError
from app.models.developer import Developer
from app.realtime import events
from app.realtime.gateway import ChatRoomGateway
from app.repositories import Repositories
from app.schemas.chat import MessageResponse, SenderSummary
from app.services.matching_service import MatchingService

logger = structlog.get_logger("devmatch.api.chat")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET /messages/{room_id} — Ordered room history
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/messages/{room_id}",
    response_model=list[MessageResponse],
    summary="Full message history for a matched room",
)
async def get_messages(
    room_id: str,
    current: Developer = Depends(get_current_developer),
    repos: Repositories = Depends(get_repositories),
) -> list[MessageResponse]:
    record = await MatchingService(repos.matches).authorize_room(room_id, current.id)
    history = await repos.messages.history(record.id)

    senders = await repos.developers.get_many(m.sender_id for m in history)
    result: list[MessageResponse] = []
    for message in history:
        sender = senders.get(message.sender_id)
        summary = (
            SenderSummary.model_validate(sender)
            if sender is not None
            else SenderSummary(id=message.sender_id, name="Unknown developer")
        )
        result.append(
            MessageResponse(
                id=message.id,
                match_id=message.match_id,
                sender=summary,
                content=message.content,
                timestamp=message.timestamp,
                read_by=message.read_by or [],
            )
        )
    return result


# ──────────────────────────────────────────────────────────────────────────────
# WS /ws — Real-time chat
# ──────────────────────────────────────────────────────────────────────────────

def _bearer(websocket: WebSocket) -> str | None:
    header = websocket.headers.get("authorization", "")
    scheme, _, credential = header.partition(" ")
    if scheme.lower() == "bearer" and credential:
        return credential.strip()
    return None


@router.websocket("/ws")
async def chat_socket(websocket: WebSocket, token: str | None = Query(None)) -> None:
    gateway: ChatRoomGateway = websocket.app.state.gateway
    await websocket.accept()

    try:
        session = await gateway.connect(websocket, token or _bearer(websocket))
    except DevMatchError as exc:
        if isinstance(exc, AuthenticationError):
            event, code = events.AUTH_ERROR, status.WS_1008_POLICY_VIOLATION
        else:
            event, code = events.MESSAGE_ERROR, status.WS_1011_INTERNAL_ERROR
        logger.info("chat_connect_rejected", error=exc.kind)
        await websocket.send_json({"event": event, "data": exc.to_dict()})
        await websocket.close(code=code)
        return

    try:
        while True:
            raw = await websocket.receive_text()
            await gateway.handle_frame(session, raw)
    except WebSocketDisconnect:
        pass
    finally:
        gateway.disconnect(session)
