from abc import ABC, abstractmethod

from .delegate import Delegate


class SipAdapter(ABC):
    """
    Abstract base class for SIP stacks used by session libraries.
    Implement this class around a concrete user agent so that callers can
    connect, register and exchange instant messages without knowing which
    SIP stack is installed.
    """

    delegate: Delegate

    @abstractmethod
    async def start(self):
        """
        Connect to the endpoint and register.

        Returns once the transport is connected and the registration
        succeeded.
        """
        pass

    @abstractmethod
    async def stop(self):
        """
        Disconnect from the endpoint.
        """
        pass

    @abstractmethod
    async def register(self):
        pass

    @abstractmethod
    async def unregister(self):
        pass

    @abstractmethod
    async def message(self, target: str, body: str, **options):
        """
        Send an instant message.

        Args:
            target: SIP URI of the recipient (e.g., 'sip:alice@example.com')
            body: Message body.
            options: Stack specific send options.
        """
        pass

    @abstractmethod
    async def subscribe(self, *args, **kwargs):
        pass

    @abstractmethod
    async def unsubscribe(self, *args, **kwargs):
        pass

    @abstractmethod
    async def notify(self, *args, **kwargs):
        pass
