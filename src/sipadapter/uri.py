"""Structured SIP addresses.

Message targets are parsed before they are handed to the engine so that
escaped characters in user parts and URI parameters survive the trip
instead of being encoded twice.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import quote, unquote

_SCHEME_RE = re.compile(r"^(?P<scheme>sips?|tel):(?P<rest>\S*)$", re.IGNORECASE)
# The user part may contain ";" and "?" (telephone-subscriber), but "@" is
# never unescaped in parameters or headers, so the last "@" ends the user info.
_USERINFO_RE = re.compile(r"^(?P<user>[^:@]+)(?::(?P<password>[^@]*))?$")
_HOSTPART_RE = re.compile(
    r"^(?P<host>\[[0-9a-fA-F:.]+\]|[^:;?@\[\]]+)"
    r"(?::(?P<port>\d{1,5}))?"
    r"(?P<params>(?:;[^;?]*)*)"
    r"(?:\?(?P<headers>.*))?$"
)

# Characters that may appear unescaped in the user part and in parameters.
_USER_SAFE = "-_.!~*'()&=+$,;?/"
_PARAM_SAFE = "-_.!~*'()[]/:&+$"


@dataclass
class SipUri:
    scheme: str
    host: str
    user: Optional[str] = None
    password: Optional[str] = None
    port: Optional[int] = None
    parameters: Dict[str, Optional[str]] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)

    def get_param(self, name: str) -> Optional[str]:
        return self.parameters.get(name.lower())

    def has_param(self, name: str) -> bool:
        return name.lower() in self.parameters

    @property
    def aor(self) -> str:
        """Address-of-record: scheme, user and host without port or parameters."""
        if self.user:
            return f"{self.scheme}:{quote(self.user, safe=_USER_SAFE)}@{self.host}"
        return f"{self.scheme}:{self.host}"

    def __str__(self) -> str:
        text = f"{self.scheme}:"
        if self.user:
            text += quote(self.user, safe=_USER_SAFE)
            if self.password is not None:
                text += ":" + quote(self.password, safe=_USER_SAFE)
            text += "@"
        text += self.host
        if self.port is not None:
            text += f":{self.port}"
        for name, value in self.parameters.items():
            text += ";" + quote(name, safe=_PARAM_SAFE)
            if value is not None:
                text += "=" + quote(value, safe=_PARAM_SAFE)
        if self.headers:
            text += "?" + "&".join(
                f"{quote(name, safe=_PARAM_SAFE)}={quote(value, safe=_PARAM_SAFE)}"
                for name, value in self.headers.items()
            )
        return text


def parse_uri(text: str) -> Optional[SipUri]:
    """Parse a SIP, SIPS or TEL URI.

    Returns None when ``text`` is not a URI, mirroring how SIP stacks
    report parse failures.
    """
    if not isinstance(text, str):
        return None
    scheme_match = _SCHEME_RE.match(text.strip())
    if not scheme_match:
        return None

    userinfo, at, hostpart = scheme_match.group('rest').rpartition('@')
    user = password = None
    if at:
        userinfo_match = _USERINFO_RE.match(userinfo)
        if not userinfo_match:
            return None
        user = userinfo_match.group('user')
        password = userinfo_match.group('password')

    match = _HOSTPART_RE.match(hostpart)
    if not match:
        return None

    port = match.group('port')
    if port is not None and not 0 < int(port) < 65536:
        return None

    parameters: Dict[str, Optional[str]] = {}
    for chunk in match.group('params').split(';')[1:]:
        if not chunk:
            continue
        name, sep, value = chunk.partition('=')
        parameters[unquote(name).lower()] = unquote(value) if sep else None

    headers: Dict[str, str] = {}
    if match.group('headers'):
        for chunk in match.group('headers').split('&'):
            name, _, value = chunk.partition('=')
            if name:
                headers[unquote(name)] = unquote(value)

    return SipUri(
        scheme=scheme_match.group('scheme').lower(),
        host=match.group('host').lower(),
        user=unquote(user) if user is not None else None,
        password=unquote(password) if password is not None else None,
        port=int(port) if port is not None else None,
        parameters=parameters,
        headers=headers,
    )
