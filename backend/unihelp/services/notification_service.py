"""
UniHelp Backend — Notification Broadcaster
============================================

What:  In-memory registry of live hub connections, grouped per user, plus a
       best-effort `publish()` that pushes one message to every connection
       of one user.
Why:   The answer flow needs to reach "all of user 42's open tabs" without
       knowing anything about sockets.
How:   Two maps kept in step:
           _groups       "user_<id>" → set of connections
           _memberships  connection  → "user_<id>"
       All mutation is plain dict/set work on the event loop thread, so no
       lock is needed. `publish()` iterates over a snapshot of the group
       because a failing send evicts the connection mid-iteration.

Connection lifecycle:
    Connecting ──connect(user_id)──▶ Connected(grouped)
               ──connect(None)─────▶ Connected(ungrouped)
    Connected  ──disconnect()──────▶ Disconnected

Wire frame (hub invocation format):
    {"target": "ReceiveNotification", "arguments": ["<message>"]}

Anything with an async `send_json(payload)` works as a connection, which is
how tests substitute recording fakes for real WebSockets.
"""

import logging
from typing import Any, Dict, Optional, Set

logger = logging.getLogger(__name__)

NOTIFICATION_TARGET = "ReceiveNotification"


def group_name(user_id: Any) -> str:
    """Group key for one user's connections."""
    return f"user_{user_id}"


def notification_frame(message: str) -> Dict[str, Any]:
    return {"target": NOTIFICATION_TARGET, "arguments": [message]}


class NotificationBroadcaster:
    """
    Per-process fan-out of notifications to user groups.

    Delivery is fire-and-forget: no acknowledgement, no persistence, no
    replay. A user with no live connection simply misses the message.
    """

    def __init__(self) -> None:
        self._groups: Dict[str, Set[Any]] = {}
        self._memberships: Dict[Any, str] = {}

    def connect(self, connection: Any, user_id: Optional[int]) -> Optional[str]:
        """
        Register a connection. Returns the group it joined, or None when the
        caller has no user id and the connection stays ungrouped.
        """
        if user_id is None:
            logger.warning("Hub connection without a user id; left ungrouped")
            return None

        group = group_name(user_id)
        self._groups.setdefault(group, set()).add(connection)
        self._memberships[connection] = group
        logger.info(
            "Connection joined %s (%d in group)", group, len(self._groups[group])
        )
        return group

    def disconnect(self, connection: Any) -> None:
        """Remove a connection from its group; empty groups are dropped."""
        group = self._memberships.pop(connection, None)
        if group is None:
            return

        members = self._groups.get(group)
        if members is not None:
            members.discard(connection)
            if not members:
                del self._groups[group]
        logger.info("Connection left %s", group)

    def connection_count(self, user_id: Optional[int] = None) -> int:
        """Open grouped connections, for one user or in total."""
        if user_id is not None:
            return len(self._groups.get(group_name(user_id), ()))
        return len(self._memberships)

    async def publish(self, user_id: Any, message: str) -> int:
        """
        Send `message` to every connection of `user_id`.

        Returns the number of connections the frame was handed to. A
        connection whose send raises is logged and evicted; the others still
        receive the message. An empty group drops the message and returns 0.
        """
        group = group_name(user_id)
        # Snapshot: evictions below mutate the live set
        members = list(self._groups.get(group, ()))
        if not members:
            logger.info("No live connections in %s; notification dropped", group)
            return 0

        frame = notification_frame(message)
        delivered = 0
        for connection in members:
            try:
                await connection.send_json(frame)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "Send to a connection in %s failed (%s); evicting it",
                    group,
                    type(e).__name__,
                )
                self.disconnect(connection)

        logger.info("Notification sent to %s: %d/%d connections", group, delivered, len(members))
        return delivered
