"""
Aurora Transport - Best-effort pushes to connected devices

Devices are allowed to be offline, so a push never raises: a missing
connection or a failing emit is logged at debug level and reported as
False.

Classes:
    Transport: Abstract push interface
    SocketIOTransport: Flask-SocketIO implementation
    RecordingTransport: Keeps pushes in memory (tests, dry runs)
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple
import logging
import threading

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Fire-and-forget push to a single live connection."""

    def emit(self, socket_id: Optional[str], event: str, payload: Any = None) -> bool:
        """
        Push event to the connection identified by socket_id.

        Args:
            socket_id: Live connection id (None = not connected)
            event: Event name
            payload: JSON-able payload

        Returns:
            True if the push was handed to the transport
        """
        if not socket_id:
            return False
        try:
            self._send(socket_id, event, payload)
            return True
        except Exception as e:
            logger.debug(f"Push of {event} to {socket_id} failed: {e}")
            return False

    @abstractmethod
    def _send(self, socket_id: str, event: str, payload: Any) -> None:
        pass


class SocketIOTransport(Transport):
    """Pushes over a flask_socketio.SocketIO server."""

    def __init__(self, socketio, namespace: str = '/'):
        self.socketio = socketio
        self.namespace = namespace

    def _send(self, socket_id, event, payload):
        if payload is None:
            self.socketio.emit(event, to=socket_id, namespace=self.namespace)
        else:
            self.socketio.emit(event, payload, to=socket_id, namespace=self.namespace)


class RecordingTransport(Transport):
    """Transport that records every push instead of sending it."""

    def __init__(self):
        self.sent: List[Tuple[str, str, Any]] = []
        self.lock = threading.Lock()

    def _send(self, socket_id, event, payload):
        with self.lock:
            self.sent.append((socket_id, event, payload))

    def events_for(self, socket_id: str) -> List[Tuple[str, Any]]:
        with self.lock:
            return [(e, p) for s, e, p in self.sent if s == socket_id]

    def clear(self) -> None:
        with self.lock:
            self.sent.clear()
