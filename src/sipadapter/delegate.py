import asyncio
import logging
from typing import Callable, Dict, List

from . import engine as ua
from .messages import NewMessage

logger = logging.getLogger(__name__)


class Delegate:
    """
    Persistent subscriptions to user agent events.

    One listener per event is attached to the agent when the delegate is
    created; it fans every occurrence out to the callbacks registered so far,
    in registration order. Callbacks stay registered for the lifetime of the
    adapter. Coroutine callbacks are scheduled on the agent's loop, or on the
    running loop when the agent was not bound to one.
    """

    def __init__(self, agent: ua.UserAgent):
        self._agent = agent
        self._callbacks: Dict[str, List[Callable]] = {}
        for event in ua.LIFECYCLE_EVENTS:
            self._callbacks[event] = []
            agent.on(event, self._make_dispatcher(event))
        self._callbacks[ua.NEW_MESSAGE] = []
        agent.on(ua.NEW_MESSAGE, self._on_new_message)

    def on_connect(self, callback: Callable):
        self._subscribe(ua.CONNECTED, callback)

    def on_connecting(self, callback: Callable):
        self._subscribe(ua.CONNECTING, callback)

    def on_disconnect(self, callback: Callable):
        self._subscribe(ua.DISCONNECTED, callback)

    def on_register(self, callback: Callable):
        self._subscribe(ua.REGISTERED, callback)

    def on_unregister(self, callback: Callable):
        self._subscribe(ua.UNREGISTERED, callback)

    def on_registration_fail(self, callback: Callable):
        self._subscribe(ua.REGISTRATION_FAILED, callback)

    def on_new_message(self, callback: Callable[[NewMessage], object]):
        """Receive a :class:`NewMessage` for every message sent or received."""
        self._subscribe(ua.NEW_MESSAGE, callback)

    def callbacks(self, event: str) -> List[Callable]:
        return list(self._callbacks[event])

    def _subscribe(self, event: str, callback: Callable):
        if not callable(callback):
            raise TypeError(f"Callback for '{event}' must be callable, got {callback!r}")
        self._callbacks[event].append(callback)

    def _make_dispatcher(self, event: str):
        def dispatch(*args, **kwargs):
            self._dispatch(event, *args, **kwargs)
        return dispatch

    def _on_new_message(self, event: ua.NewMessageEvent):
        message = NewMessage(event)
        logger.debug(f"New {message.request.origin.value} message, "
                     f"{len(self._callbacks[ua.NEW_MESSAGE])} subscriber(s)")
        self._dispatch(ua.NEW_MESSAGE, message)

    def _dispatch(self, event: str, *args, **kwargs):
        # Copy: a callback may subscribe further callbacks
        for callback in list(self._callbacks[event]):
            try:
                result = callback(*args, **kwargs)
            except Exception as e:
                logger.exception(f"Delegate callback {callback!r} for '{event}' failed: {e}")
                continue
            if asyncio.iscoroutine(result):
                self._schedule(event, callback, result)

    def _schedule(self, event: str, callback: Callable, coro):
        loop = self._agent.loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                coro.close()
                logger.error(f"No event loop to run delegate callback {callback!r} for '{event}'")
                return
        task = loop.create_task(coro)
        task.add_done_callback(self._make_reporter(event, callback))

    @staticmethod
    def _make_reporter(event: str, callback: Callable):
        def report(task: asyncio.Future):
            if task.cancelled():
                return
            exc = task.exception()
            if exc is not None:
                logger.error(f"Delegate callback {callback!r} for '{event}' failed: {exc}", exc_info=exc)
        return report
