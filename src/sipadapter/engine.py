from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pyee.asyncio import AsyncIOEventEmitter

from .uri import SipUri, parse_uri

# Events a user agent emits over its lifetime.
CONNECTING = 'connecting'
CONNECTED = 'connected'
DISCONNECTED = 'disconnected'
REGISTERED = 'registered'
UNREGISTERED = 'unregistered'
REGISTRATION_FAILED = 'registration_failed'
NEW_MESSAGE = 'new_message'

LIFECYCLE_EVENTS = (
    CONNECTING,
    CONNECTED,
    DISCONNECTED,
    REGISTERED,
    UNREGISTERED,
    REGISTRATION_FAILED,
)


class Origin(str, Enum):
    """Who produced a message or a failure."""
    LOCAL = 'local'
    REMOTE = 'remote'
    SYSTEM = 'system'


@dataclass
class IncomingResponse:
    status_code: Optional[int] = None
    reason_phrase: Optional[str] = None


@dataclass
class MessageFailedEvent:
    """Payload of a send's ``failed`` handler.

    ``response`` is None when the request never got a final response,
    e.g. on a transport error or a timeout.
    """
    originator: Origin
    response: Optional[IncomingResponse] = None
    cause: Any = None


@dataclass
class NewMessageEvent:
    """Payload of the ``new_message`` event.

    ``message`` is the engine's message session (it answers with
    ``accept``/``reject``); ``request`` is the engine's parsed MESSAGE
    request.
    """
    originator: Origin
    message: Any
    request: Any


class UserAgent(AsyncIOEventEmitter, ABC):
    """
    Contract for the SIP user agent wrapped by the adapter.

    Implementations own transport, registration, dialog and transaction
    state, and report progress by emitting the events defined in this module.

    Args:
        configuration: Dictionary with at least 'sockets', 'uri',
                       'authorization_user', 'realm', 'display_name',
                       'register', 'user_agent' and 'trace_sip'. Unknown keys
                       are engine specific.
    """

    name = 'UserAgent'
    version = '0'

    def __init__(self, configuration: dict, loop=None):
        super().__init__(loop=loop)
        self.configuration = dict(configuration)
        self.trace_sip = bool(self.configuration.get('trace_sip', False))

    @property
    def loop(self):
        """Loop the emitter was bound to, None when it uses the running loop."""
        return self._loop

    @staticmethod
    def parse_uri(text: str) -> Optional[SipUri]:
        return parse_uri(text)

    @abstractmethod
    def start(self) -> None:
        """Connect the transport and, when 'register' is set, register."""

    @abstractmethod
    def stop(self) -> None:
        """Unregister if needed and close the transport."""

    @abstractmethod
    def unregister(self) -> None:
        """Remove the current registration."""

    @abstractmethod
    def send_message(self, target: SipUri, body: str, **options) -> None:
        """
        Send a SIP MESSAGE request.

        Args:
            target: Parsed destination URI.
            body: Message body.
            options: 'event_handlers' with 'succeeded' and 'failed' callables
                     scoped to this request only, 'from_display_name',
                     'extra_headers', 'content_type' and engine specific keys.
        """
