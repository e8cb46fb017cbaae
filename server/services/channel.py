# services/channel.py
"""
Delivery channel: addressable WebSocket connections keyed by connection id.

Sends are fire-and-forget. They go through :func:`websockets.broadcast`, which
writes to the transport without awaiting and skips connections that are
closing or failing, so a slow or vanished peer never stalls the caller.
"""
import json
import logging
import uuid
from datetime import datetime
from typing import Dict, Iterable

from websockets.asyncio.server import ServerConnection, broadcast

from constants import ERROR_MESSAGE

logger = logging.getLogger(__name__)


def structure_message(msg_type: str, payload=None) -> str:
    """
    Build a structured server message.

    The structured message contains:
      - message_id: A new unique identifier for each message.
      - timestamp: The time the message was created.
      - msg_type: The event name.
      - success: False only for ``error-message`` frames.
      - error_code and error_message: Only present on error frames.
      - payload: Event-specific data.

    Args:
        msg_type (str): Event name.
        payload (dict, optional): Event data. Defaults to {}.

    Returns:
        str: The JSON text frame.
    """
    payload = payload if payload is not None else {}
    message = {
        "message_id": str(uuid.uuid4()),
        "timestamp": datetime.now().isoformat(),
        "msg_type": msg_type,
        "success": msg_type != ERROR_MESSAGE,
        "payload": payload,
    }
    if msg_type == ERROR_MESSAGE:
        message["error_code"] = payload.get("code") or "UNKNOWN_ERROR"
        message["error_message"] = payload.get("message") or "An unknown error occurred."
    return json.dumps(message)


class ConnectionManager:
    """
    Tracks open connections and delivers events to them by identity.
    """

    def __init__(self) -> None:
        self._connections: Dict[str, ServerConnection] = {}

    def register(self, websocket: ServerConnection) -> str:
        """
        Register a freshly opened connection.

        Args:
            websocket (ServerConnection): The accepted WebSocket connection.

        Returns:
            str: The identity assigned to it for its whole lifetime.
        """
        conn_id = uuid.uuid4().hex
        self._connections[conn_id] = websocket
        return conn_id

    def unregister(self, conn_id: str) -> None:
        self._connections.pop(conn_id, None)

    def send(self, conn_id: str, msg_type: str, payload=None) -> None:
        """
        Deliver one event to one connection; silently dropped if it is gone.
        """
        websocket = self._connections.get(conn_id)
        if websocket is None:
            logger.debug(f"Dropping {msg_type} for unknown connection {conn_id}")
            return
        broadcast([websocket], structure_message(msg_type, payload))

    def broadcast(self, msg_type: str, payload=None) -> None:
        """Deliver one event to every open connection."""
        broadcast(list(self._connections.values()), structure_message(msg_type, payload))

    def dispatch(self, notifications: Iterable) -> None:
        """
        Send a batch of relay notifications in order.

        Args:
            notifications (Iterable[Notification]): Output of a relay call.
        """
        for note in notifications:
            if note.is_broadcast:
                self.broadcast(note.event, note.payload)
            else:
                self.send(note.target, note.event, note.payload)
