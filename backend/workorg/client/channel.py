import logging

import socketio
from socketio import exceptions as socketio_exceptions

from workorg import config
from workorg.errors import TransportUnavailable
from workorg.services.relay import RELAY_EVENTS

logger = logging.getLogger(__name__)


class SocketChannel:
    """
    Socket.IO connection for one browser-tab equivalent.

    Reconnection is bounded; while the socket is down ``emit`` raises
    TransportUnavailable and the controller falls back to the HTTP path.
    """

    def __init__(self, token: str, url: str = config.SOCKET_URL, client: socketio.AsyncClient = None):
        self.token = token
        self.url = url
        self.client = client or socketio.AsyncClient(
            reconnection=True,
            reconnection_attempts=5,
            reconnection_delay=1,
        )
        self.controller = None
        self.api = None

    def attach(self, controller, api=None):
        """Route server events to the controller and keep the API's socket id current."""
        self.controller = controller
        self.api = api

        async def on_connect():
            logger.info(f"Connected to {self.url} as {self.client.sid}")
            if self.api is not None:
                self.api.socket_id = self.client.sid
            await controller.on_connected()

        async def on_disconnect(*args):
            logger.warning(f"Disconnected from {self.url}")
            controller.on_transport_lost()

        async def on_error(data):
            logger.error(f"Server reported error: {data}")

        self.client.on("connect", on_connect)
        self.client.on("disconnect", on_disconnect)
        self.client.on("error", on_error)

        for event in RELAY_EVENTS:
            self.client.on(event, self._forwarder(event))

    def _forwarder(self, event: str):
        async def forward(data=None):
            await self.controller.handle_event(event, data)
        return forward

    async def connect(self):
        try:
            await self.client.connect(
                self.url,
                auth={"token": self.token},
                transports=["websocket", "polling"],
                socketio_path="/socket.io/",
            )
        except socketio_exceptions.ConnectionError as e:
            logger.error(f"Socket connection error: {e}")
            raise TransportUnavailable(str(e)) from e

    async def emit(self, event: str, data):
        if not self.client.connected:
            raise TransportUnavailable(f"not connected, dropping {event}")
        try:
            await self.client.emit(event, data)
        except socketio_exceptions.SocketIOError as e:
            raise TransportUnavailable(str(e)) from e

    async def disconnect(self):
        await self.client.disconnect()
