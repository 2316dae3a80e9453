import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from sipadapter import transport
from sipadapter.transport import NativeWebSocketInterface, WebSocketInterface, get_socket_interface

URL = 'wss://sip.example.com/ws'
OPTIONS = 'OPTIONS sip:bob@example.com SIP/2.0\r\nContent-Length: 0\r\n\r\n'


class MockWebSocket:
    def __init__(self, frames):
        self._frames = frames
        self.closed = False
        self.close = AsyncMock()
        self.send_str = AsyncMock()

    async def __aiter__(self):
        for data in self._frames:
            msg = MagicMock()
            msg.type = aiohttp.WSMsgType.TEXT
            msg.data = data
            yield msg


class TestSelection:
    def test_prefers_native(self):
        with patch.object(transport, 'HAS_WEBSOCKETS', True):
            assert isinstance(get_socket_interface(URL), NativeWebSocketInterface)

    def test_falls_back_to_aiohttp(self):
        with patch.object(transport, 'HAS_WEBSOCKETS', False):
            socket = get_socket_interface(URL)
        assert isinstance(socket, WebSocketInterface)

    def test_native_requires_websockets(self):
        with patch.object(transport, 'HAS_WEBSOCKETS', False):
            with pytest.raises(ImportError):
                NativeWebSocketInterface(URL)


class TestWebSocketInterface:
    def test_properties(self):
        socket = WebSocketInterface(URL)
        assert socket.url == URL
        assert socket.via_transport == 'WSS'
        assert socket.sip_uri == 'sip:sip.example.com;transport=ws'
        assert not socket.is_connected

    @pytest.mark.parametrize('url', ['http://sip.example.com', 'sip.example.com', 'ws://'])
    def test_invalid_url(self, url):
        with pytest.raises(ValueError):
            WebSocketInterface(url)

    @pytest.mark.asyncio
    async def test_send_requires_connection(self):
        socket = WebSocketInterface(URL)
        with pytest.raises(ConnectionError):
            await socket.send(OPTIONS)

    @pytest.mark.asyncio
    async def test_connect_receive_and_close(self):
        socket = WebSocketInterface(URL, ssl_verify=False)
        ws_mock = MockWebSocket([OPTIONS])

        received = []
        connected = []
        disconnected = asyncio.get_running_loop().create_future()
        socket.on('data', received.append)
        socket.on('connected', lambda: connected.append(True))
        socket.on('disconnected', lambda error=False: disconnected.set_result(error))

        with patch("aiohttp.TCPConnector") as MockConnector, patch("aiohttp.ClientSession") as MockSession:
            session_instance = MockSession.return_value
            session_instance.ws_connect = AsyncMock(return_value=ws_mock)
            session_instance.close = AsyncMock()

            await socket.connect()
            MockConnector.assert_called_once_with(ssl=False)
            session_instance.ws_connect.assert_awaited_once_with(URL, protocols=['sip'])
            assert connected == [True]

            await socket.send('MESSAGE sip:alice@example.com SIP/2.0\r\n\r\n')
            ws_mock.send_str.assert_awaited_once()

            assert await asyncio.wait_for(disconnected, 1) is False
            assert received == [OPTIONS]
            assert not socket.is_connected

            await socket.disconnect()
            session_instance.close.assert_awaited_once()
