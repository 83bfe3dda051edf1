"""
Realtime notifications: server-side socket hub and the reconnecting client.
"""
from .hub import ConnectionManager, manager
from .listener import NotificationListener, RECONNECT_DELAY_SECONDS

__all__ = ['ConnectionManager', 'manager', 'NotificationListener', 'RECONNECT_DELAY_SECONDS']
