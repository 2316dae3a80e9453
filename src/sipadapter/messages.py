"""Outbound message failures and the inbound message view."""

import logging
from typing import List, Mapping, Optional, Sequence, Union

from .engine import IncomingResponse, MessageFailedEvent, NewMessageEvent, Origin
from .exceptions import SipAdapterError

logger = logging.getLogger(__name__)

Headers = Optional[Union[Mapping[str, str], Sequence[str]]]

DEFAULT_REASON = 'Internal Server Error'
DEFAULT_STATUS_CODE = 500


def resolve_origin(originator) -> Origin:
    """The engine's originator tag, or ``Origin.SYSTEM`` when it is not one we know."""
    try:
        return Origin(originator)
    except ValueError:
        logger.warning(f"Unknown originator {originator!r}, treating it as system")
        return Origin.SYSTEM


def resolve_reason(response: Optional[IncomingResponse], cause) -> str:
    """Reason phrase of the response, then the engine's cause, then the default."""
    if response is not None and response.reason_phrase:
        return response.reason_phrase
    if cause is not None:
        text = str(cause)
        if text:
            return text
    return DEFAULT_REASON


def resolve_status_code(response: Optional[IncomingResponse]) -> int:
    if response is not None and response.status_code:
        return response.status_code
    return DEFAULT_STATUS_CODE


class MessageError(SipAdapterError):
    """A MESSAGE request failed.

    Attributes:
        origin: Who reported the failure (local, remote or system).
        reason: Human readable reason.
        status_code: SIP status code, 500 when no response was received.
        sip_stack_object: The engine's raw failure event.
    """

    def __init__(self, origin: Origin, reason: str, status_code: int, sip_stack_object=None):
        self.origin = origin
        self.reason = reason
        self.status_code = status_code
        self.sip_stack_object = sip_stack_object
        super().__init__(f"{status_code} {reason}")

    @classmethod
    def from_event(cls, event: MessageFailedEvent) -> "MessageError":
        # Engines may omit the response altogether
        response = getattr(event, 'response', None)
        return cls(
            origin=resolve_origin(getattr(event, 'originator', None)),
            reason=resolve_reason(response, getattr(event, 'cause', None)),
            status_code=resolve_status_code(response),
            sip_stack_object=event,
        )


class Party:
    """One side of a message: display name and a lazily read URI."""

    def __init__(self, name_addr):
        self._name_addr = name_addr
        self.display_name: Optional[str] = getattr(name_addr, 'display_name', None)

    @property
    def uri(self):
        return self._name_addr.uri

    def __repr__(self):
        return f"<Party {self.display_name!r}>"


class MessageRequest:
    """Read-only view of an engine MESSAGE request."""

    def __init__(self, event: NewMessageEvent):
        request = event.request
        self._request = request
        self.body: str = request.body
        self.origin = resolve_origin(event.originator)
        self.from_ = Party(request.from_)
        self.to = Party(request.to)
        self.sip_stack_object = event

    def has_header(self, name: str) -> bool:
        return self._request.has_header(name)

    def get_header(self, name: str) -> Optional[str]:
        return self._request.get_header(name)

    def get_headers(self, name: str) -> List[str]:
        return list(self._request.get_headers(name))


class NewMessage:
    """
    A message sent or received by the user agent, with actuators to answer it.

    ``request.origin`` tells local echoes (``Origin.LOCAL``) apart from
    messages received from a peer (``Origin.REMOTE``).
    """

    def __init__(self, event: NewMessageEvent):
        self._session = event.message
        self.request = MessageRequest(event)

    async def accept(self, body: Optional[str] = None, extra_headers: Headers = None):
        """Answer with a 2xx response."""
        logger.debug(f"Accepting message from {self.request.from_.display_name or 'unknown'}")
        self._session.accept(body=body, extra_headers=normalize_headers(extra_headers))

    async def reject(
        self,
        body: Optional[str] = None,
        reason_phrase: Optional[str] = None,
        extra_headers: Headers = None,
        status_code: Optional[int] = None,
    ):
        """
        Answer with a negative response.

        Args:
            body: Optional response body.
            reason_phrase: Reason phrase, empty when not given.
            extra_headers: Additional header lines.
            status_code: Status code; when omitted the engine picks its default.
        """
        options = {
            'body': body,
            'reason_phrase': reason_phrase if reason_phrase is not None else '',
            'extra_headers': normalize_headers(extra_headers),
        }
        if status_code is not None:
            options['status_code'] = status_code
        logger.debug(f"Rejecting message with status {status_code if status_code is not None else 'default'}")
        self._session.reject(**options)


def normalize_headers(headers: Headers) -> Optional[List[str]]:
    """Turn a header mapping into the 'Name: value' lines engines expect."""
    if headers is None:
        return None
    if isinstance(headers, Mapping):
        return [f"{name}: {value}" for name, value in headers.items()]
    return list(headers)
