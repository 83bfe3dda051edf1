"""
In-process registry of open notification sockets.

Maps user id -> set of sockets. Messages are JSON envelopes:
    {"type": "notification", "data": {...}}
    {"type": "instagram_dm", "data": {...}}
"""
import json
import logging
import threading
from typing import Any, Dict, Iterable

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Tracks WebSocket connections per user and fans messages out to them.

    Sockets only need a `send(str)` method. A socket whose send raises is
    treated as dead and dropped.
    """

    def __init__(self):
        self.active_connections: Dict[int, set] = {}
        self._lock = threading.Lock()

    def connect(self, user_id: int, ws) -> None:
        with self._lock:
            self.active_connections.setdefault(user_id, set()).add(ws)
            total = len(self.active_connections[user_id])
        logger.info(f"WS client connected for user {user_id}. Total: {total}")

    def disconnect(self, user_id: int, ws) -> None:
        with self._lock:
            sockets = self.active_connections.get(user_id)
            if sockets is not None:
                sockets.discard(ws)
                if not sockets:
                    del self.active_connections[user_id]
        logger.info(f"WS client disconnected for user {user_id}")

    def is_online(self, user_id: int) -> bool:
        with self._lock:
            return bool(self.active_connections.get(user_id))

    def connection_count(self) -> int:
        with self._lock:
            return sum(len(s) for s in self.active_connections.values())

    def _send(self, user_id: int, envelope: Dict[str, Any]) -> int:
        with self._lock:
            sockets = list(self.active_connections.get(user_id, ()))
        if not sockets:
            return 0

        payload = json.dumps(envelope, default=str)
        delivered = 0
        for ws in sockets:
            try:
                ws.send(payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to send WS message to user {user_id}: {e}")
                self.disconnect(user_id, ws)
        return delivered

    def send_to_user(self, user_id: int, notification: Dict[str, Any]) -> int:
        """Push a notification record. Returns the number of sockets reached."""
        return self._send(user_id, {'type': 'notification', 'data': notification})

    def send_event_to_user(self, user_id: int, event_type: str, data: Dict[str, Any]) -> int:
        return self._send(user_id, {'type': event_type, 'data': data})

    def send_event_to_users(self, user_ids: Iterable[int], event_type: str, data: Dict[str, Any]) -> int:
        return sum(self.send_event_to_user(uid, event_type, data) for uid in set(user_ids))


# Global instance
manager = ConnectionManager()
