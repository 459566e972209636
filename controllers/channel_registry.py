from __future__ import annotations

from enum import Enum
from functools import partial
import logging
from typing import Any, Callable, Dict, List, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from controllers.chart_lifecycle import ChartLifecycleController
from controllers.ingestion import IngestionPipeline
from controllers.trigger_emitter import TriggerEmitter
from model.channel import TopicFunc, assign_topics, derive_topic, normalize_identifiers
from model.errors import TopicCollisionError
from views.event_bus import HostBridge, Subscription

logger = logging.getLogger("CaptureTool.Registry")

CHANNELS_TOPIC = "channels"

# identifier, on_activate -> control surface (usually a QPushButton)
SurfaceFactory = Callable[[str, Callable[[], None]], Any]


class RegistryState(Enum):
    AWAITING_CHANNELS = "awaiting_channels"
    CHANNELS_RECEIVED = "channels_received"
    TIMED_OUT = "timed_out"
    REJECTED = "rejected"


class ChannelRegistry(QObject):
    """Requests the channel list once and wires up every announced signal.

    Only the first ``channels`` response is honoured.  For each identifier it
    creates a trigger surface, schedules the chart and subscribes ingestion.
    """

    channels_received = Signal(list)
    channels_timed_out = Signal()
    channels_rejected = Signal(str)  # reason

    def __init__(
        self,
        bridge: HostBridge,
        lifecycle: ChartLifecycleController,
        ingestion: IngestionPipeline,
        trigger: TriggerEmitter,
        surface_factory: Optional[SurfaceFactory] = None,
        topic_for: TopicFunc = derive_topic,
        strict_topics: bool = False,
        channels_timeout_ms: int = 0,
        parent=None,
    ):
        super().__init__(parent)
        self.bridge = bridge
        self.lifecycle = lifecycle
        self.ingestion = ingestion
        self.trigger = trigger
        self.surface_factory = surface_factory
        self.topic_for = topic_for
        self.strict_topics = strict_topics
        self.channels_timeout_ms = int(channels_timeout_ms)
        self.state = RegistryState.AWAITING_CHANNELS
        self.identifiers: List[str] = []
        self.topics: Dict[str, str] = {}
        self.surfaces: Dict[str, Any] = {}
        self._subscription: Optional[Subscription] = None
        self._started = False
        self._deadline: Optional[QTimer] = None

    def start(self) -> None:
        if self._started:
            logger.warning("Channel registry already started")
            return
        self._started = True
        self._subscription = self.bridge.once(CHANNELS_TOPIC, self.on_channels)
        if self.channels_timeout_ms > 0:
            self._deadline = QTimer(self)
            self._deadline.setSingleShot(True)
            self._deadline.timeout.connect(self._on_deadline)
            self._deadline.start(self.channels_timeout_ms)
        self.bridge.request(CHANNELS_TOPIC)
        logger.info("Requested channel list")

    def on_channels(self, payload: Any) -> None:
        if self.state is not RegistryState.AWAITING_CHANNELS:
            logger.warning(
                "Ignoring channel announcement in state %s", self.state.value
            )
            return
        identifiers = normalize_identifiers(payload)
        if self._deadline is not None:
            self._deadline.stop()
        # collisions are checked before anything is built
        try:
            topics = assign_topics(identifiers, self.topic_for, strict=self.strict_topics)
        except TopicCollisionError as exc:
            self.state = RegistryState.REJECTED
            logger.error("Rejected channel list %s: %s", identifiers, exc)
            self.channels_rejected.emit(str(exc))
            return

        self.state = RegistryState.CHANNELS_RECEIVED
        self.identifiers = identifiers
        self.topics = topics
        logger.info("Received %d channel(s): %s", len(identifiers), identifiers)

        for identifier in identifiers:
            self._register(identifier, topics[identifier])
        self.channels_received.emit(list(identifiers))

    def _register(self, identifier: str, topic: str) -> None:
        if self.surface_factory is not None:
            self.surfaces[identifier] = self.surface_factory(
                identifier, partial(self.trigger.emit, identifier)
            )
        entry = self.lifecycle.schedule(identifier)
        self.ingestion.subscribe(identifier, topic, entry)

    def _on_deadline(self) -> None:
        if self.state is not RegistryState.AWAITING_CHANNELS:
            return
        self.state = RegistryState.TIMED_OUT
        if self._subscription is not None:
            self.bridge.unlisten(self._subscription)
        logger.error(
            "Host did not announce channels within %d ms", self.channels_timeout_ms
        )
        self.channels_timed_out.emit()

    def teardown(self) -> None:
        """Dispose of every chart, subscription and surface this registry made."""
        if self._subscription is not None:
            self.bridge.unlisten(self._subscription)
            self._subscription = None
        if self._deadline is not None:
            self._deadline.stop()
        self.ingestion.unsubscribe_all()
        self.lifecycle.teardown_all()
        for surface in self.surfaces.values():
            delete_later = getattr(surface, "deleteLater", None)
            if delete_later is not None:
                delete_later()
        self.surfaces.clear()
        logger.info("Channel registry torn down")
