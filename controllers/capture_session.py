from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject
from PySide6.QtWidgets import QWidget

from controllers.channel_registry import ChannelRegistry, SurfaceFactory
from controllers.chart_lifecycle import ChartFactory, ChartLifecycleController
from controllers.ingestion import IngestionPipeline
from controllers.trigger_emitter import TriggerEmitter
from infra.settings_store import CaptureSettings
from model.channel import TopicFunc, derive_topic
from views.event_bus import HostBridge

logger = logging.getLogger("CaptureTool.Session")


class CaptureSession(QObject):
    """Client half of the tool: registry, charts, ingestion and triggers."""

    def __init__(
        self,
        bridge: HostBridge,
        plot_area: QWidget,
        settings: Optional[CaptureSettings] = None,
        surface_factory: Optional[SurfaceFactory] = None,
        topic_for: TopicFunc = derive_topic,
        strict_topics: bool = False,
        chart_factory: Optional[ChartFactory] = None,
        parent=None,
    ):
        super().__init__(parent)
        self.settings = settings or CaptureSettings()
        self.bridge = bridge
        self.lifecycle = ChartLifecycleController(
            plot_area, self.settings, chart_factory=chart_factory, parent=self
        )
        self.ingestion = IngestionPipeline(bridge, parent=self)
        self.trigger = TriggerEmitter(bridge)
        self.registry = ChannelRegistry(
            bridge,
            self.lifecycle,
            self.ingestion,
            self.trigger,
            surface_factory=surface_factory,
            topic_for=topic_for,
            strict_topics=strict_topics,
            channels_timeout_ms=self.settings.channels_timeout_ms,
            parent=self,
        )

    def start(self) -> None:
        logger.info("Capture session starting")
        self.registry.start()

    def chart(self, identifier: str):
        return self.lifecycle.chart(identifier)

    def close(self) -> None:
        self.registry.teardown()
