"""
dsa_mentor/realtime/ws_server.py
Relay endpoint: authenticated fan-out of progress events between an account's live sessions

URL: /ws/sync?token={jwt}

Client messages:
- {"type": "progress_update", "data": {...}}  -> progress_sync to the account's OTHER sockets
- {"type": "lesson_complete", "day": n}       -> lesson_completed to ALL the account's sockets
- {"type": "ping"}                            -> pong to the sender

Nothing is persisted, acknowledged or replayed. Clients re-fetch state over
HTTP after reconnecting.
"""
import json
import logging
from typing import Optional

from fastapi import Query, WebSocket, WebSocketDisconnect

from dsa_mentor.database import AsyncSessionLocal
from dsa_mentor.errors import InvalidTokenError
from dsa_mentor.realtime import events
from dsa_mentor.realtime.connection_manager import get_connection_manager
from dsa_mentor.security.session_tokens import resolve_account

logger = logging.getLogger(__name__)

POLICY_VIOLATION = 1008
AUTH_FAILURE_REASON = "Authentication error: Invalid token"


def _token_from(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return None


async def _authenticate(token: Optional[str]) -> int:
    """Resolve the account id in its own session, released before the socket is accepted."""
    async with AsyncSessionLocal() as db:
        account = await resolve_account(db, token)
        return account.id


async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = Query(None)):
    """
    Handshake validates the session token before accepting. A rejected
    handshake is closed with 1008 and never retried by the server.
    """
    try:
        account_id = await _authenticate(_token_from(websocket, token))
    except InvalidTokenError as e:
        logger.warning(f"Relay handshake rejected: {e.message}")
        await websocket.close(code=POLICY_VIOLATION, reason=AUTH_FAILURE_REASON)
        return

    manager = get_connection_manager()
    await manager.connect(websocket, account_id)

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                manager.send_personal(websocket, events.error("Invalid JSON"))
                continue

            msg_type = message.get("type") if isinstance(message, dict) else None

            if msg_type not in events.ALLOWED_CLIENT_MESSAGES:
                manager.send_personal(
                    websocket,
                    events.error(f"Invalid message type. Allowed: {sorted(events.ALLOWED_CLIENT_MESSAGES)}")
                )
                continue

            if msg_type == events.PING:
                manager.send_personal(websocket, events.pong())

            elif msg_type == events.PROGRESS_UPDATE:
                manager.broadcast(account_id, events.progress_sync(message.get("data")), exclude=websocket)

            elif msg_type == events.LESSON_COMPLETE:
                manager.broadcast(account_id, events.lesson_completed(message.get("day")))
                logger.info(f"Lesson complete relayed: account={account_id}, day={message.get('day')}")

    except WebSocketDisconnect:
        logger.debug(f"Relay client went away: account={account_id}")
    finally:
        await manager.disconnect(websocket, account_id)


__all__ = ["websocket_endpoint"]
