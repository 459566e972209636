from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable, Dict, List, Optional

from PySide6.QtCore import QObject, QTimer, Signal
from PySide6.QtWidgets import QVBoxLayout, QWidget

from controllers.readiness import GateState, ReadinessGate
from gui.strip_chart import ChartConfig, StripChart
from infra.settings_store import CaptureSettings
from model.errors import ChartConstructionError, ChartNotReadyError
from model.series import SeriesBuffer

logger = logging.getLogger("CaptureTool.Charts")

ChartFactory = Callable[[ChartConfig, SeriesBuffer, QWidget], StripChart]


def container_name(identifier: str) -> str:
    return f"capture_{identifier}"


@dataclass
class ChartEntry:
    identifier: str
    gate: ReadinessGate
    container: Optional[QWidget] = None
    timers: List[QTimer] = field(default_factory=list)

    @property
    def chart(self) -> Optional[StripChart]:
        return self.gate.value if self.gate.is_ready else None


class ChartLifecycleController(QObject):
    """Creates one chart per signal identifier, after a short deferral.

    ``schedule`` returns straight away; the chart is built on a single-shot
    timer so the plot area has been laid out by then.  The entry's readiness
    gate is settled with the chart once it exists.
    """

    chart_created = Signal(str, object)  # identifier, chart
    construction_failed = Signal(str, str)  # identifier, message
    chart_unavailable = Signal(str, str)  # identifier, reason

    def __init__(
        self,
        plot_area: QWidget,
        settings: Optional[CaptureSettings] = None,
        chart_factory: Optional[ChartFactory] = None,
        parent=None,
    ):
        super().__init__(parent)
        self.plot_area = plot_area
        self.settings = settings or CaptureSettings()
        self.chart_factory: ChartFactory = chart_factory or StripChart
        self._entries: Dict[str, ChartEntry] = {}

    @property
    def identifiers(self) -> List[str]:
        return list(self._entries)

    def entry(self, identifier: str) -> Optional[ChartEntry]:
        return self._entries.get(identifier)

    def chart(self, identifier: str) -> Optional[StripChart]:
        entry = self._entries.get(identifier)
        return entry.chart if entry is not None else None

    def config_for(self, identifier: str) -> ChartConfig:
        s = self.settings
        return ChartConfig(
            label=identifier,
            width=s.chart_width,
            height=s.chart_height,
            stroke=s.stroke,
            show_points=s.show_points,
            y_scale=s.y_scale,
        )

    def schedule(self, identifier: str) -> ChartEntry:
        existing = self._entries.get(identifier)
        if existing is not None:
            logger.warning("Chart for '%s' already scheduled", identifier)
            return existing

        gate = ReadinessGate(identifier, self.settings.ready_timeout_ms, parent=self)
        gate.failed.connect(self.chart_unavailable)
        entry = ChartEntry(identifier=identifier, gate=gate)
        self._entries[identifier] = entry

        timer = QTimer(self)
        timer.setSingleShot(True)
        timer.timeout.connect(lambda: self._construct(identifier))
        entry.timers.append(timer)
        timer.start(max(0, self.settings.construction_delay_ms))
        logger.debug(
            "Chart for '%s' scheduled in %d ms",
            identifier,
            self.settings.construction_delay_ms,
        )
        return entry

    def _construct(self, identifier: str) -> None:
        entry = self._entries.get(identifier)
        if entry is None:
            return
        gate = entry.gate
        if gate.state is GateState.READY:
            return
        # a gate that only ran out of time still gets its chart
        if gate.state is GateState.FAILED and not isinstance(gate.error, ChartNotReadyError):
            return
        try:
            entry.container = self._make_container(identifier)
            chart = self.chart_factory(
                self.config_for(identifier), SeriesBuffer.empty(), entry.container
            )
        except Exception as exc:
            logger.exception("Failed to build chart for '%s'", identifier)
            error = ChartConstructionError(f"chart for '{identifier}': {exc}")
            entry.gate.fail(error)
            self.construction_failed.emit(identifier, str(error))
            return
        entry.gate.set_ready(chart)
        logger.info("Chart for '%s' created", identifier)
        self.chart_created.emit(identifier, chart)

    def _make_container(self, identifier: str) -> QWidget:
        layout = self.plot_area.layout()
        if layout is None:
            raise ChartConstructionError("plot area has no layout")
        container = QWidget(self.plot_area)
        container.setObjectName(container_name(identifier))
        inner = QVBoxLayout(container)
        inner.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(container)
        return container

    def teardown(self, identifier: str) -> bool:
        """Dispose of a chart and its container. Returns False if unknown."""
        entry = self._entries.pop(identifier, None)
        if entry is None:
            return False
        for timer in entry.timers:
            timer.stop()
        entry.gate.fail(ChartConstructionError(f"chart for '{identifier}' torn down"))
        if entry.container is not None:
            layout = self.plot_area.layout()
            if layout is not None:
                layout.removeWidget(entry.container)
            entry.container.deleteLater()
            entry.container = None
        entry.gate.deleteLater()
        logger.info("Chart for '%s' torn down", identifier)
        return True

    def teardown_all(self) -> None:
        for identifier in list(self._entries):
            self.teardown(identifier)
