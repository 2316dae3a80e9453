import asyncio
import logging
from typing import Optional, Type

from . import engine as ua
from .config import AdapterConfig
from .delegate import Delegate
from .exceptions import RegistrationError, TargetUriError
from .interface import SipAdapter
from .messages import Headers, MessageError, normalize_headers
from .transport import get_socket_interface

logger = logging.getLogger(__name__)


class UserAgentAdapter(SipAdapter):
    """
    SipAdapter on top of an event emitting :class:`~sipadapter.engine.UserAgent`.

    Every operation registers one-shot listeners before triggering the user
    agent, then waits for the event that completes it. There is no
    cancellation: wrap calls in ``asyncio.wait_for`` to bound them, knowing
    the user agent may still complete the operation afterwards.

    Args:
        config: Adapter configuration.
        engine_class: UserAgent implementation to instantiate. The adapter
                      owns the instance for its whole lifetime.
        loop: Event loop the user agent emits on, passed to its constructor.
    """

    def __init__(self, config: AdapterConfig, engine_class: Type[ua.UserAgent], *, loop=None):
        self.config = config
        self._agent = engine_class(self._build_configuration(config, engine_class), loop=loop)
        self._agent.on(ua.REGISTRATION_FAILED, self._on_registration_failed)
        self.delegate = Delegate(self._agent)

    @classmethod
    def factory(cls, config: AdapterConfig, engine_class: Type[ua.UserAgent], **kwargs) -> "UserAgentAdapter":
        return cls(config, engine_class, **kwargs)

    @staticmethod
    def _build_configuration(config: AdapterConfig, engine_class: Type[ua.UserAgent]) -> dict:
        ssl_verify = config.engine_options.get('ssl_verify', True)
        configuration = {
            'sockets': [get_socket_interface(config.endpoint, ssl_verify=ssl_verify)],
            'uri': config.origin_sip_uri,
            'authorization_user': config.user,
            'realm': config.domain,
            'display_name': config.display_name,
            'register': True,
            'trace_sip': config.trace_sip,
        }
        configuration.update(config.engine_options)
        # The user agent string identifies the engine and can not be overridden
        configuration['user_agent'] = f"{config.user_agent} {engine_class.name}/{engine_class.version}"
        return configuration

    @property
    def agent(self) -> ua.UserAgent:
        return self._agent

    def _once(self, event: str) -> asyncio.Future:
        """Future settled with the first argument of the next ``event``."""
        future = asyncio.get_running_loop().create_future()

        def handler(*args, **kwargs):
            if not future.done():
                future.set_result(args[0] if args else None)

        def detach(_):
            if handler in self._agent.listeners(event):
                self._agent.remove_listener(event, handler)

        self._agent.once(event, handler)
        future.add_done_callback(detach)
        return future

    def _on_registration_failed(self, event=None, *args, **kwargs):
        logger.warning(f"Registration failed: {getattr(event, 'cause', None) or 'unknown cause'}")

    async def start(self, strict: bool = False):
        """
        Connect and register.

        Returns after both a 'connected' and a 'registered' event, in any
        order. If registration fails this never returns, unless ``strict`` is
        set, in which case :class:`RegistrationError` is raised.
        """
        connected = self._once(ua.CONNECTED)
        registered = self._once(ua.REGISTERED)
        failed = self._once(ua.REGISTRATION_FAILED) if strict else None

        logger.info(f"Starting user agent {self.config.origin_sip_uri} on {self.config.endpoint}")
        self._agent.start()

        joined = asyncio.gather(connected, registered)
        if failed is None:
            await joined
            return

        done, _ = await asyncio.wait({joined, failed}, return_when=asyncio.FIRST_COMPLETED)
        if joined in done:
            failed.cancel()
            await joined
            return

        joined.cancel()
        raise RegistrationError(failed.result())

    async def stop(self):
        disconnected = self._once(ua.DISCONNECTED)
        logger.info("Stopping user agent")
        self._agent.stop()
        await disconnected

    async def register(self):
        # Registration is part of start(), the user agent is configured with register=True
        pass

    async def unregister(self):
        unregistered = self._once(ua.UNREGISTERED)
        logger.info("Unregistering user agent")
        self._agent.unregister()
        await unregistered

    async def message(
        self,
        target: str,
        body: str,
        display_name: Optional[str] = None,
        extra_headers: Headers = None,
        **options,
    ):
        """
        Send a SIP MESSAGE and wait for its outcome.

        Args:
            target: Recipient URI, parsed before sending so escaped parameters
                    are transmitted untouched.
            body: Message body.
            display_name: Takes precedence over the configured display name.
            extra_headers: Mapping or 'Name: value' lines.
            options: Passed through to ``UserAgent.send_message``.

        Raises:
            TargetUriError: ``target`` is not a valid URI; nothing was sent.
            MessageError: The request failed.
        """
        target_uri = self._agent.parse_uri(target)
        if target_uri is None:
            raise TargetUriError(target)

        future = asyncio.get_running_loop().create_future()

        # TODO: resolve with the final response once callers need it
        def succeeded(*args, **kwargs):
            if not future.done():
                future.set_result(None)

        def failed(event: ua.MessageFailedEvent):
            if future.done():
                return
            try:
                error = MessageError.from_event(event)
            except Exception as e:
                logger.exception(f"Could not read failure of MESSAGE to {target_uri.aor}: {e}")
                future.set_exception(e)
                return
            logger.warning(f"MESSAGE to {target_uri.aor} failed: {error}")
            future.set_exception(error)

        logger.debug(f"Sending MESSAGE to {target_uri}")
        self._agent.send_message(target_uri, body, **{
            **options,
            'from_display_name': display_name,
            'extra_headers': normalize_headers(extra_headers),
            'event_handlers': {'succeeded': succeeded, 'failed': failed},
        })
        await future

    async def subscribe(self, *args, **kwargs):
        raise NotImplementedError('Method not implemented.')

    async def unsubscribe(self, *args, **kwargs):
        raise NotImplementedError('Method not implemented.')

    async def notify(self, *args, **kwargs):
        raise NotImplementedError('Method not implemented.')
