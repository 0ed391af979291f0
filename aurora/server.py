"""
Aurora Server - Flask-SocketIO endpoint for show devices

Devices (lights controllers, screens, audio players) connect over
Socket.IO with their device name in the auth payload. Connections are
forwarded to the SocketConnectionEmitter so the HandlerManager can route
pushes to them; device reports (audio_loaded, beat) are forwarded to the
matching collaborator of the AppContext.

There are no HTTP routes here: the management API lives in a separate
HTTP layer that calls into the AppContext.

Usage:
    aurora-core            # console script
    python -m aurora.server
"""

from typing import Dict, Optional, Tuple
import logging
import threading

from flask import Flask, request
from flask_socketio import SocketIO

from . import __version__
from .config import CoreConfig
from .context import AppContext
from .entities import DeviceCategory
from .events import BeatEvent
from .logging_setup import configure_logging
from .store import DeviceStore
from .transport import SocketIOTransport

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[CoreConfig] = None,
    store: Optional[DeviceStore] = None,
) -> Tuple[Flask, SocketIO, AppContext]:
    """
    Build the Flask app, its SocketIO server and the AppContext.

    The context is not initialised; call context.init() before serving.
    """
    config = config or CoreConfig.from_env()
    app = Flask(__name__)
    origins = '*' if '*' in config.cors_origins else config.cors_origins
    socketio = SocketIO(app, cors_allowed_origins=origins, async_mode='threading')
    context = AppContext(config, store=store, transport=SocketIOTransport(socketio))
    app.extensions['aurora'] = context

    # socket id -> device name
    identities: Dict[str, str] = {}
    identities_lock = threading.Lock()

    def identity_of(sid: str) -> Optional[str]:
        with identities_lock:
            return identities.get(sid)

    @socketio.on('connect')
    def handle_connect(auth=None):
        name = (auth or {}).get('name')
        if not name:
            logger.warning(f"Refusing connection {request.sid} without device name")
            return False
        with identities_lock:
            identities[request.sid] = name
        context.connection_emitter.emit('connect', name, request.sid)

    @socketio.on('disconnect')
    def handle_disconnect(reason=None):
        with identities_lock:
            name = identities.pop(request.sid, None)
        if name is not None:
            context.connection_emitter.emit('disconnect', name, request.sid)

    @socketio.on('audio_loaded')
    def handle_audio_loaded(data):
        name = identity_of(request.sid)
        url = (data or {}).get('url')
        if name is None or not url:
            return
        handler = context.handler_manager.get_handler('SimpleAudioHandler', DeviceCategory.AUDIO)
        if handler is not None and not handler.mark_loaded(name, url):
            logger.debug(f"audio_loaded from '{name}', which is not a SimpleAudioHandler device")

    @socketio.on('beat')
    def handle_beat(data):
        data = data or {}
        try:
            event = BeatEvent(
                start=float(data['start']),
                duration=float(data['duration']),
                confidence=float(data.get('confidence', 1.0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed beat from {identity_of(request.sid)}: {e}")
            return
        context.music_emitter.emit('beat', event)

    return app, socketio, context


def main():
    config = CoreConfig.from_env()
    configure_logging(config.log_level, config.log_dir)

    app, socketio, context = create_app(config)
    context.init()
    context.start()

    logger.info(f"Aurora core v{__version__} on port {config.api_port}")
    try:
        socketio.run(app, host='0.0.0.0', port=config.api_port, debug=False, allow_unsafe_werkzeug=True)
    finally:
        context.stop()


if __name__ == '__main__':
    main()
