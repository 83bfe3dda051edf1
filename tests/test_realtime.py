"""
Tests for the live notification hub and the reconnecting listener.
"""
import json
import threading

import simple_websocket

from app.realtime.hub import ConnectionManager, manager
from app.realtime.listener import NotificationListener, RECONNECT_DELAY_SECONDS
from app.services.notification_service import notification_service


class FakeSocket:
    """Server-side socket stand-in recording sent frames."""

    def __init__(self, broken=False):
        self.sent = []
        self.broken = broken

    def send(self, payload):
        if self.broken:
            raise ConnectionResetError('gone')
        self.sent.append(json.loads(payload))


class FakeClient:
    """Client socket that yields queued frames, then reports the connection closed."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.closed = False

    def receive(self, timeout=None):
        if self.closed or not self.frames:
            raise simple_websocket.ConnectionClosed()
        return self.frames.pop(0)

    def close(self):
        self.closed = True


class TestConnectionManager:

    def test_send_reaches_every_socket_of_user(self):
        hub = ConnectionManager()
        first, second, other = FakeSocket(), FakeSocket(), FakeSocket()
        hub.connect(1, first)
        hub.connect(1, second)
        hub.connect(2, other)

        assert hub.send_to_user(1, {'id': 10, 'title': 'Oi'}) == 2
        assert first.sent == [{'type': 'notification', 'data': {'id': 10, 'title': 'Oi'}}]
        assert other.sent == []
        assert hub.connection_count() == 3

    def test_offline_user(self):
        assert ConnectionManager().send_to_user(99, {'id': 1}) == 0

    def test_broken_socket_is_dropped(self):
        hub = ConnectionManager()
        good, bad = FakeSocket(), FakeSocket(broken=True)
        hub.connect(1, good)
        hub.connect(1, bad)

        assert hub.send_event_to_user(1, 'instagram_dm', {'text': 'olá'}) == 1
        assert hub.connection_count() == 1
        assert good.sent[0]['type'] == 'instagram_dm'

    def test_disconnect_last_socket(self):
        hub = ConnectionManager()
        ws = FakeSocket()
        hub.connect(1, ws)
        hub.disconnect(1, ws)
        assert hub.is_online(1) is False
        assert 1 not in hub.active_connections

    def test_send_to_many_users_deduplicates(self):
        hub = ConnectionManager()
        ws = FakeSocket()
        hub.connect(1, ws)
        assert hub.send_event_to_users([1, 1, 2], 'conversation_updated', {'id': 5}) == 1
        assert len(ws.sent) == 1


class TestNotificationPush:

    def test_new_notification_is_pushed_live(self, app, sample_creator):
        ws = FakeSocket()
        manager.connect(sample_creator.id, ws)

        notification = notification_service.notify(sample_creator.id, 'reward', 'Prêmio', 'Seu prêmio chegou')

        assert ws.sent == [{'type': 'notification', 'data': notification.to_dict()}]
        assert notification_service.unread_count(sample_creator.id) == 1
        assert notification_service.mark_all_read(sample_creator.id) == 1
        assert notification_service.unread_count(sample_creator.id) == 0


class TestNotificationListener:
    """Tests for reconnect behaviour with injected connect/wait."""

    def test_connect_url(self):
        listener = NotificationListener('ws://localhost:5000/ws/notifications', token='abc')
        assert listener.connect_url == 'ws://localhost:5000/ws/notifications?token=abc'

    def test_dispatch_by_type_and_wildcard(self):
        listener = NotificationListener('ws://x')
        typed, everything = [], []
        listener.on('instagram_dm', typed.append)
        listener.on('*', everything.append)

        listener.dispatch(json.dumps({'type': 'instagram_dm', 'data': {'text': 'oi'}}))
        listener.dispatch(json.dumps({'type': 'heartbeat'}))
        listener.dispatch('not json')
        listener.dispatch(json.dumps([1, 2]))

        assert [e['type'] for e in typed] == ['instagram_dm']
        assert [e['type'] for e in everything] == ['instagram_dm', 'heartbeat']

    def test_failing_handler_does_not_stop_dispatch(self):
        listener = NotificationListener('ws://x')
        seen = []

        def explode(envelope):
            raise RuntimeError('handler bug')

        listener.on('notification', explode)
        listener.on('notification', seen.append)
        listener.dispatch(json.dumps({'type': 'notification', 'data': {}}))
        assert len(seen) == 1

    def test_reconnects_with_fixed_delay(self):
        waits = []
        connections = []

        def connect(url):
            client = FakeClient([json.dumps({'type': 'notification', 'data': {'n': len(connections)}})])
            connections.append(client)
            return client

        listener = NotificationListener('ws://x', token='t', connect=connect)

        def wait(delay):
            waits.append(delay)
            if len(waits) == 2:
                listener.close()
            return False

        listener._wait = wait
        received = []
        listener.on('notification', received.append)
        listener.run_forever()

        assert waits == [RECONNECT_DELAY_SECONDS, RECONNECT_DELAY_SECONDS]
        assert listener.connect_attempts == 2
        assert listener.reconnect_count == 2
        assert [e['data']['n'] for e in received] == [0, 1]
        assert listener.closed_intentionally is True

    def test_intentional_close_does_not_reconnect(self):
        waits = []
        client = FakeClient([json.dumps({'type': 'notification', 'data': {}})] * 3)
        listener = NotificationListener('ws://x', connect=lambda url: client, wait=waits.append)
        listener.on('notification', lambda envelope: listener.close())

        listener.run_forever()

        assert waits == []
        assert listener.reconnect_count == 0
        assert listener.connect_attempts == 1
        assert client.closed is True

    def test_close_during_connect_releases_socket(self):
        entered = threading.Event()
        client = FakeClient([json.dumps({'type': 'notification', 'data': {}})])

        def connect(url):
            entered.set()
            listener._stop.wait(2)
            return client

        listener = NotificationListener('ws://x', connect=connect)
        thread = listener.start()
        assert entered.wait(2)

        listener.close(timeout=2)

        assert not thread.is_alive()
        assert client.closed is True
        assert listener._ws is None
        assert listener.reconnect_count == 0

    def test_connect_failures_keep_retrying(self):
        waits = []

        def connect(url):
            raise simple_websocket.ConnectionError(503)

        listener = NotificationListener('ws://x', connect=connect, reconnect_delay=0.5)

        def wait(delay):
            waits.append(delay)
            if len(waits) == 3:
                listener.close()

        listener._wait = wait
        listener.run_forever()

        assert listener.connect_attempts == 3
        assert waits == [0.5, 0.5, 0.5]
        assert not listener.connected.is_set()
