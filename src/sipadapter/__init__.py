from .adapter import UserAgentAdapter
from .config import AdapterConfig
from .delegate import Delegate
from .engine import IncomingResponse, MessageFailedEvent, NewMessageEvent, Origin, UserAgent
from .exceptions import (
    ConfigurationError,
    RegistrationError,
    SipAdapterError,
    TargetUriError,
)
from .interface import SipAdapter
from .messages import MessageError, MessageRequest, NewMessage, Party
from .transport import NativeWebSocketInterface, WebSocketInterface, get_socket_interface
from .uri import SipUri, parse_uri

__version__ = "0.1.0"
