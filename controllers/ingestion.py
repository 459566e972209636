from __future__ import annotations

import logging
from typing import Any, Dict, List

from PySide6.QtCore import QObject, Signal

from controllers.chart_lifecycle import ChartEntry
from model.series import SeriesBuffer, build_series, to_samples
from views.event_bus import HostBridge, Subscription

logger = logging.getLogger("CaptureTool.Ingestion")


class IngestionPipeline(QObject):
    """Streams sample batches from topic subscriptions into charts.

    Each batch replaces the chart's series: the buffer is reset, rebuilt as
    ``(0..n-1, samples)`` and committed with a single redraw.  Delivery always
    goes through the entry's readiness gate, so a batch that arrives before
    its chart exists is held back rather than lost.
    """

    batch_rendered = Signal(str, int)  # identifier, sample count
    batch_rejected = Signal(str, str)  # identifier, reason

    def __init__(self, bridge: HostBridge, parent=None):
        super().__init__(parent)
        self.bridge = bridge
        self._subscriptions: Dict[str, Subscription] = {}
        self._topics: Dict[str, str] = {}

    def topic_of(self, identifier: str):
        return self._topics.get(identifier)

    def identifiers_on(self, topic: str) -> List[str]:
        return [ident for ident, t in self._topics.items() if t == topic]

    def subscribe(self, identifier: str, topic: str, entry: ChartEntry) -> Subscription:
        if identifier in self._subscriptions:
            logger.warning("'%s' already subscribed to '%s'", identifier, self._topics[identifier])
            return self._subscriptions[identifier]

        def _on_batch(payload: Any) -> None:
            self.deliver(identifier, entry, payload)

        sub = self.bridge.listen(topic, _on_batch)
        self._subscriptions[identifier] = sub
        self._topics[identifier] = topic
        logger.info("'%s' listening on topic '%s'", identifier, topic)
        return sub

    def unsubscribe(self, identifier: str) -> bool:
        sub = self._subscriptions.pop(identifier, None)
        self._topics.pop(identifier, None)
        if sub is None:
            return False
        self.bridge.unlisten(sub)
        return True

    def unsubscribe_all(self) -> None:
        for identifier in list(self._subscriptions):
            self.unsubscribe(identifier)

    def deliver(self, identifier: str, entry: ChartEntry, payload: Any) -> None:
        try:
            samples = to_samples(payload)
        except (TypeError, ValueError) as exc:
            logger.warning("Rejected batch for '%s': %s", identifier, exc)
            self.batch_rejected.emit(identifier, str(exc))
            return
        entry.gate.when_ready(lambda chart: self._render(identifier, chart, samples))

    def _render(self, identifier: str, chart, samples) -> None:
        chart.set_buffer(SeriesBuffer.empty(), redraw=False)
        series = build_series(samples)
        chart.set_buffer(series, redraw=True)
        logger.debug("'%s' rendered %d samples", identifier, len(series))
        self.batch_rendered.emit(identifier, len(series))
