"""
Auto-reconnecting client for /ws/notifications.

Reconnects after every close with a fixed delay (3 seconds by default).
Calling close() marks the shutdown as intentional so no reconnect follows.

Usage:
    listener = NotificationListener('ws://localhost:5000/ws/notifications', token)
    listener.on('instagram_dm', handle_dm)
    listener.start()
    ...
    listener.close()
"""
import json
import logging
import threading
from typing import Callable, Dict, List, Optional
from urllib.parse import urlencode

import simple_websocket

logger = logging.getLogger(__name__)

RECONNECT_DELAY_SECONDS = 3.0


class NotificationListener:
    """Consumes typed event envelopes and dispatches them to handlers."""

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        connect: Callable = None,
        wait: Callable[[float], bool] = None,
        receive_timeout: float = None,
    ):
        self.url = url
        self.token = token
        self.reconnect_delay = reconnect_delay
        self.receive_timeout = receive_timeout
        self._connect = connect or simple_websocket.Client.connect
        self._stop = threading.Event()
        self._wait = wait or self._stop.wait
        self._handlers: Dict[str, List[Callable]] = {}
        self._thread: Optional[threading.Thread] = None
        self._ws = None
        self._intentional_close = False

        self.connected = threading.Event()
        self.connect_attempts = 0
        self.reconnect_count = 0

    @property
    def connect_url(self) -> str:
        if not self.token:
            return self.url
        sep = '&' if '?' in self.url else '?'
        return f"{self.url}{sep}{urlencode({'token': self.token})}"

    @property
    def closed_intentionally(self) -> bool:
        return self._intentional_close

    def on(self, event_type: str, handler: Callable[[dict], None]) -> None:
        """Register a handler for an event type; '*' receives every envelope."""
        self._handlers.setdefault(event_type, []).append(handler)

    def start(self) -> threading.Thread:
        """Run the listen loop on a daemon thread."""
        if self._thread and self._thread.is_alive():
            return self._thread
        self._intentional_close = False
        self._stop.clear()
        self._thread = threading.Thread(target=self.run_forever, name='notification-listener', daemon=True)
        self._thread.start()
        return self._thread

    def close(self, timeout: float = None) -> None:
        """Stop listening. No reconnect happens after this call."""
        self._intentional_close = True
        self._stop.set()
        ws = self._ws
        if ws is not None:
            try:
                ws.close()
            except simple_websocket.ConnectionClosed:
                pass
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def run_forever(self) -> None:
        """Connect, consume until the socket closes, wait, repeat."""
        while not self._intentional_close:
            self.connect_attempts += 1
            try:
                self._ws = self._connect(self.connect_url)
            except (simple_websocket.ConnectionError, OSError) as e:
                logger.warning(f"Notification socket connect failed: {e}")
            else:
                self.connected.set()
                logger.info('Notification socket connected')
                try:
                    self._consume(self._ws)
                finally:
                    self.connected.clear()
                    self._release_socket()

            if self._intentional_close:
                break

            self.reconnect_count += 1
            logger.info(f"Notification socket closed, reconnecting in {self.reconnect_delay}s")
            self._wait(self.reconnect_delay)

        logger.info('Notification listener stopped')

    def _release_socket(self) -> None:
        """Close the current socket, if any; close() may already have done so."""
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            ws.close()
        except simple_websocket.ConnectionClosed:
            pass

    def _consume(self, ws) -> None:
        while not self._intentional_close:
            try:
                raw = ws.receive(timeout=self.receive_timeout)
            except simple_websocket.ConnectionClosed:
                return
            if raw is None:
                continue
            self.dispatch(raw)

    def dispatch(self, raw) -> None:
        """Route one raw frame to the handlers registered for its type."""
        try:
            envelope = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning('Ignoring non-JSON notification frame')
            return
        if not isinstance(envelope, dict) or 'type' not in envelope:
            return

        handlers = self._handlers.get(envelope['type'], []) + self._handlers.get('*', [])
        for handler in handlers:
            try:
                handler(envelope)
            except Exception:
                logger.exception(f"Notification handler failed for {envelope['type']}")
