"""In-process event bridge between the chart client and the capture host.

Two directions share one object:

* ``request(topic, payload)`` goes client -> host (``channels``, ``trigger``)
* ``publish(topic, payload)`` goes host -> client (``channels``, sample topics)

Delivery is queued onto the Qt event loop so a publisher never re-enters its
own handlers, matching the behaviour of a real out-of-process event channel.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, List

from PySide6.QtCore import QObject, QTimer, Signal

logger = logging.getLogger("CaptureTool.Bridge")

Handler = Callable[[Any], None]


@dataclass(eq=False)
class Subscription:
    topic: str
    handler: Handler
    once: bool = False
    active: bool = True


class HostBridge(QObject):
    """Topic based event bridge with persistent and one-shot subscriptions."""

    host_event = Signal(str, object)  # topic, payload (client -> host)
    view_event = Signal(str, object)  # topic, payload (host -> client)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._view_subs: Dict[str, List[Subscription]] = {}
        self._host_handlers: Dict[str, List[Handler]] = {}

    # ------------------------------------------------------------------
    # client side
    # ------------------------------------------------------------------
    def listen(self, topic: str, handler: Handler) -> Subscription:
        """Call ``handler`` for every event published on ``topic``."""
        return self._add(Subscription(topic, handler, once=False))

    def once(self, topic: str, handler: Handler) -> Subscription:
        """Call ``handler`` for the first event published on ``topic`` only."""
        return self._add(Subscription(topic, handler, once=True))

    def unlisten(self, subscription: Subscription) -> None:
        subscription.active = False
        subs = self._view_subs.get(subscription.topic)
        if not subs:
            return
        try:
            subs.remove(subscription)
        except ValueError:
            return
        if not subs:
            del self._view_subs[subscription.topic]

    def request(self, topic: str, payload: Any = None) -> None:
        """Send an event to the host."""
        logger.debug("request %s %r", topic, payload)
        QTimer.singleShot(0, lambda: self._dispatch_host(topic, payload))

    def subscriber_count(self, topic: str) -> int:
        return len(self._view_subs.get(topic, ()))

    # ------------------------------------------------------------------
    # host side
    # ------------------------------------------------------------------
    def on_host(self, topic: str, handler: Handler) -> None:
        self._host_handlers.setdefault(topic, []).append(handler)

    def publish(self, topic: str, payload: Any) -> None:
        """Send an event to the client."""
        QTimer.singleShot(0, lambda: self._dispatch_view(topic, payload))

    # ------------------------------------------------------------------
    # dispatch
    # ------------------------------------------------------------------
    def _add(self, subscription: Subscription) -> Subscription:
        self._view_subs.setdefault(subscription.topic, []).append(subscription)
        return subscription

    def _dispatch_host(self, topic: str, payload: Any) -> None:
        self.host_event.emit(topic, payload)
        handlers = list(self._host_handlers.get(topic, ()))
        if not handlers:
            logger.debug("No host handler for '%s'", topic)
        for handler in handlers:
            self._invoke(handler, topic, payload)

    def _dispatch_view(self, topic: str, payload: Any) -> None:
        self.view_event.emit(topic, payload)
        subs = list(self._view_subs.get(topic, ()))
        if not subs:
            logger.debug("Dropped event on '%s': no subscriber", topic)
            return
        for sub in subs:
            if not sub.active:
                continue
            if sub.once:
                self.unlisten(sub)
            self._invoke(sub.handler, topic, payload)

    def _invoke(self, handler: Handler, topic: str, payload: Any) -> None:
        try:
            handler(payload)
        except Exception:
            logger.exception("Handler for '%s' raised", topic)
