"""
WebSocket endpoint for live notifications.

    ws://host/ws/notifications?token=<access token>

Connections without a valid access token are closed with 1008 (policy
violation). The server answers {"type": "ping"} with {"type": "pong"} and
sends its own heartbeat when the client is silent.
"""
import json
import logging

from flask import request, current_app
from simple_websocket import ConnectionClosed

from ..extensions import sock
from ..middleware.auth import user_from_token
from .hub import manager

logger = logging.getLogger(__name__)

POLICY_VIOLATION = 1008


@sock.route('/ws/notifications')
def notifications_socket(ws):
    user = user_from_token(request.args.get('token'))
    if not user:
        logger.info('Rejected unauthenticated WS connection')
        ws.close(reason=POLICY_VIOLATION, message='Unauthorized')
        return

    user_id = user.id
    heartbeat = current_app.config.get('WS_HEARTBEAT_INTERVAL', 30)
    manager.connect(user_id, ws)
    try:
        ws.send(json.dumps({'type': 'connected', 'data': {'user_id': user_id}}))
        while ws.connected:
            raw = ws.receive(timeout=heartbeat)
            if raw is None:
                ws.send(json.dumps({'type': 'heartbeat'}))
                continue
            try:
                message = json.loads(raw)
            except (TypeError, ValueError):
                continue
            if isinstance(message, dict) and message.get('type') == 'ping':
                ws.send(json.dumps({'type': 'pong'}))
    except ConnectionClosed:
        pass
    finally:
        manager.disconnect(user_id, ws)
