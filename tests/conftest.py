"""Shared test fixtures."""

import pytest

from sipadapter import AdapterConfig, UserAgentAdapter
from sipadapter.engine import NewMessageEvent, Origin, UserAgent


class FakeUserAgent(UserAgent):
    """UserAgent that records actions; tests emit the events themselves."""

    name = 'FakeUA'
    version = '1.2.3'

    def __init__(self, configuration, loop=None):
        super().__init__(configuration, loop=loop)
        self.calls = []
        self.sent = []

    def start(self):
        self.calls.append('start')

    def stop(self):
        self.calls.append('stop')

    def unregister(self):
        self.calls.append('unregister')

    def send_message(self, target, body, **options):
        self.calls.append('send_message')
        self.sent.append((target, body, options))


class FakeNameAddr:
    def __init__(self, display_name, uri):
        self.display_name = display_name
        self._uri = uri
        self.uri_reads = 0

    @property
    def uri(self):
        self.uri_reads += 1
        return self._uri


class FakeRequest:
    def __init__(self, body='', headers=None, from_=None, to=None):
        self.body = body
        self._headers = headers or {}
        self.from_ = from_ or FakeNameAddr('Alice', 'sip:alice@example.com')
        self.to = to or FakeNameAddr(None, 'sip:bob@example.com')

    def has_header(self, name):
        return name.lower() in self._headers

    def get_header(self, name):
        values = self._headers.get(name.lower())
        return values[0] if values else None

    def get_headers(self, name):
        return self._headers.get(name.lower(), [])


class FakeMessageSession:
    def __init__(self):
        self.accepted = []
        self.rejected = []

    def accept(self, **options):
        self.accepted.append(options)

    def reject(self, **options):
        self.rejected.append(options)


def make_new_message_event(originator=Origin.REMOTE, body='Hello', headers=None):
    return NewMessageEvent(
        originator=originator,
        message=FakeMessageSession(),
        request=FakeRequest(body=body, headers=headers),
    )


@pytest.fixture
def config():
    return AdapterConfig(
        endpoint='wss://sip.example.com/ws',
        domain='example.com',
        user='bob',
        origin_sip_uri='sip:bob@example.com',
        user_agent='ng112',
        display_name='Bob',
    )


@pytest.fixture
def adapter(config):
    return UserAgentAdapter(config, FakeUserAgent)


@pytest.fixture
def agent(adapter):
    return adapter.agent


@pytest.fixture
def new_message_event():
    return make_new_message_event
