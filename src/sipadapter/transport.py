"""WebSocket sockets handed to the user agent."""

import asyncio
import logging
import ssl
from abc import ABC, abstractmethod
from urllib.parse import urlparse

import aiohttp
from pyee.asyncio import AsyncIOEventEmitter

# Optional native implementation
try:
    import websockets
    HAS_WEBSOCKETS = True
except ImportError:
    HAS_WEBSOCKETS = False

logger = logging.getLogger(__name__)

SIP_SUBPROTOCOL = 'sip'


class SocketInterface(AsyncIOEventEmitter, ABC):
    """
    Socket used by a user agent to exchange SIP messages.

    Emits 'connected', 'disconnected' (with ``error`` set when the socket
    closed unexpectedly) and 'data' (one SIP message per frame).
    """

    def __init__(self, url: str, ssl_verify: bool = True):
        super().__init__()
        parsed = urlparse(url)
        if parsed.scheme not in ('ws', 'wss') or not parsed.hostname:
            raise ValueError(f"Invalid WebSocket URL: {url}")
        self.url = url
        self.ssl_verify = ssl_verify
        self.via_transport = parsed.scheme.upper()
        self.sip_uri = f"sip:{parsed.hostname};transport=ws"
        self._listener = None

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    async def connect(self):
        ...

    @abstractmethod
    async def disconnect(self):
        ...

    @abstractmethod
    async def send(self, message: str):
        ...

    def _start_listener(self, frames):
        self._listener = asyncio.create_task(self._listen(frames))

    async def _listen(self, frames):
        error = False
        try:
            async for frame in frames:
                if isinstance(frame, bytes):
                    frame = frame.decode('utf-8', errors='replace')
                logger.debug(f"SIP RX ({self.url}):\n{frame}")
                self.emit('data', frame)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"WebSocket listener error on {self.url}: {e}")
            error = True
        finally:
            self._listener = None
            self._on_closed()
            self.emit('disconnected', error=error)

    def _on_closed(self):
        pass

    def __repr__(self):
        return f"<{type(self).__name__} {self.url}>"


class WebSocketInterface(SocketInterface):
    """SIP over WebSocket on top of an aiohttp client session."""

    def __init__(self, url: str, ssl_verify: bool = True):
        super().__init__(url, ssl_verify=ssl_verify)
        self._session = None
        self._ws = None

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def connect(self):
        if self.is_connected:
            return
        logger.info(f"Connecting to SIP WebSocket: {self.url}")
        connector = aiohttp.TCPConnector(ssl=None if self.ssl_verify else False)
        self._session = aiohttp.ClientSession(connector=connector)
        try:
            self._ws = await self._session.ws_connect(self.url, protocols=[SIP_SUBPROTOCOL])
        except Exception:
            await self._session.close()
            self._session = None
            raise
        self._start_listener(self._frames())
        self.emit('connected')

    async def _frames(self):
        async for msg in self._ws:
            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.ERROR:
                raise ConnectionError(f"WebSocket error: {self._ws.exception()}")

    async def disconnect(self):
        if self._ws:
            logger.info(f"Closing SIP WebSocket: {self.url}")
            await self._ws.close()
        if self._session:
            await self._session.close()
            self._session = None

    def _on_closed(self):
        self._ws = None

    async def send(self, message: str):
        if not self.is_connected:
            raise ConnectionError(f"WebSocket not connected: {self.url}")
        logger.debug(f"SIP TX ({self.url}):\n{message}")
        await self._ws.send_str(message)


class NativeWebSocketInterface(SocketInterface):
    """SIP over WebSocket using the websockets library."""

    def __init__(self, url: str, ssl_verify: bool = True):
        if not HAS_WEBSOCKETS:
            raise ImportError("websockets is required for NativeWebSocketInterface")
        super().__init__(url, ssl_verify=ssl_verify)
        self._ws = None

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    async def connect(self):
        if self.is_connected:
            return
        logger.info(f"Connecting to SIP WebSocket: {self.url}")
        kwargs = {'subprotocols': [SIP_SUBPROTOCOL]}
        if self.via_transport == 'WSS' and not self.ssl_verify:
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            kwargs['ssl'] = context
        self._ws = await websockets.connect(self.url, **kwargs)
        self._start_listener(self._frames())
        self.emit('connected')

    async def _frames(self):
        try:
            async for frame in self._ws:
                yield frame
        except websockets.ConnectionClosedOK:
            return

    async def disconnect(self):
        if self._ws:
            logger.info(f"Closing SIP WebSocket: {self.url}")
            await self._ws.close()

    def _on_closed(self):
        self._ws = None

    async def send(self, message: str):
        if not self.is_connected:
            raise ConnectionError(f"WebSocket not connected: {self.url}")
        logger.debug(f"SIP TX ({self.url}):\n{message}")
        await self._ws.send(message)


def get_socket_interface(endpoint: str, ssl_verify: bool = True) -> SocketInterface:
    """Prefer the websockets implementation, fall back to aiohttp."""
    if HAS_WEBSOCKETS:
        return NativeWebSocketInterface(endpoint, ssl_verify=ssl_verify)
    return WebSocketInterface(endpoint, ssl_verify=ssl_verify)
