"""
UniHelp Backend — Notification Hub (WebSocket)
================================================

What:  WS /notificationHub. Authenticated clients stay connected here and
       receive `ReceiveNotification` frames when someone answers one of
       their questions.
How:

    connect ──▶ token? ──no/invalid──▶ close(1008)  (never accepted)
                  │
                  ▼
               accept ──▶ broadcaster.connect(ws, user_id)
                  │           (no `sub` claim → ungrouped)
                  ▼
               receive loop ──▶ client invocations (test helpers)
                  │
                  ▼
               finally: broadcaster.disconnect(ws)

Token sources, in order: `access_token` query parameter (browsers cannot
set headers on WebSocket upgrades), then `Authorization: Bearer`.

Client → server frames:
    {"target": "SendTestMessage", "arguments": ["hi"]}  echo to this socket only
    {"target": "SendToMyself",    "arguments": ["hi"]}  publish to own group
Anything else, binary frames included, is logged and ignored.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from unihelp.config import get_settings
from unihelp.exceptions import UnauthenticatedError
from unihelp.security import TokenClaims, decode_access_token
from unihelp.services.notification_service import NotificationBroadcaster, notification_frame

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Notifications"])


def _extract_token(websocket: WebSocket) -> Optional[str]:
    token = websocket.query_params.get("access_token")
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def _handle_invocation(
    websocket: WebSocket,
    broadcaster: NotificationBroadcaster,
    claims: TokenClaims,
    raw: str,
) -> None:
    try:
        frame = json.loads(raw)
        target = frame["target"]
        arguments = frame.get("arguments") or []
        message = str(arguments[0]) if arguments else ""
    except (ValueError, KeyError, TypeError, AttributeError):
        logger.warning("Ignoring malformed hub frame: %.100s", raw)
        return

    if target == "SendTestMessage":
        await websocket.send_json(notification_frame(f"Echo: {message}"))
    elif target == "SendToMyself":
        if claims.user_id is None:
            logger.info("SendToMyself from an ungrouped connection ignored")
            return
        await broadcaster.publish(claims.user_id, message)
    else:
        logger.warning("Ignoring unknown hub target '%s'", target)


@router.websocket("/notificationHub")
async def notification_hub(websocket: WebSocket) -> None:
    app = websocket.app
    settings = getattr(app.state, "settings", None) or get_settings()
    broadcaster: NotificationBroadcaster = app.state.broadcaster

    token = _extract_token(websocket)
    if not token:
        logger.info("Hub connection rejected: no token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        claims = decode_access_token(token, settings)
    except UnauthenticatedError as e:
        logger.info("Hub connection rejected: %s", e.context.get("reason", e.message))
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    group = broadcaster.connect(websocket, claims.user_id)
    logger.info("Hub connected (group=%s)", group or "none")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))

            raw = message.get("text")
            if raw is None:
                logger.warning("Ignoring binary hub frame (%d bytes)", len(message.get("bytes") or b""))
                continue
            await _handle_invocation(websocket, broadcaster, claims, raw)
    except WebSocketDisconnect:
        logger.info("Hub disconnected (group=%s)", group or "none")
    finally:
        broadcaster.disconnect(websocket)
