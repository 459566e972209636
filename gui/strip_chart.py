# strip_chart.py
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Optional

import pyqtgraph as pg
from PySide6.QtGui import QColor, QPen
from PySide6.QtWidgets import QVBoxLayout, QWidget

from model.series import SeriesBuffer

pg.setConfigOptions(
    useOpenGL=False,
    enableExperimental=False,
    antialias=True,
    background="w",
    foreground="k",
)

logger = logging.getLogger("CaptureTool.StripChart")

Y_SCALES = ("linear", "log")


@dataclass
class ChartConfig:
    """Configuration surface of one strip chart."""

    label: str
    width: int = 600
    height: int = 300
    stroke: str = "red"
    show_points: bool = False
    y_scale: str = "linear"
    axis_width: int = 100

    def __post_init__(self):
        if self.y_scale not in Y_SCALES:
            raise ValueError(f"y_scale must be one of {Y_SCALES}, got {self.y_scale!r}")
        if self.width <= 0 or self.height <= 0:
            raise ValueError("chart dimensions must be positive")


class PassthroughAxis(pg.AxisItem):
    """Axis whose tick labels are the tick values themselves."""

    def tickStrings(self, values, scale, spacing) -> List[str]:
        return [str(v) for v in values]


class StripChart(QWidget):
    """One signal's chart: slot 0 is the sample index, slot 1 the named series."""

    def __init__(
        self,
        config: ChartConfig,
        buffer: Optional[SeriesBuffer] = None,
        container: Optional[QWidget] = None,
    ):
        super().__init__(container)
        self.config = config
        self._buffer = buffer if buffer is not None else SeriesBuffer.empty()
        self.redraw_count = 0

        self.setFixedSize(config.width, config.height)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        left_axis = PassthroughAxis("left")
        left_axis.setWidth(config.axis_width)
        self.plot_widget = pg.PlotWidget(
            axisItems={"left": left_axis, "bottom": PassthroughAxis("bottom")}
        )
        self.plot_item = self.plot_widget.getPlotItem()
        self.plot_item.showGrid(x=True, y=True, alpha=0.3)
        self.plot_item.setLogMode(x=False, y=config.y_scale == "log")
        self.legend = self.plot_item.addLegend(offset=(-10, 10))

        pen = QPen(QColor(config.stroke))
        pen.setWidth(0)
        pen.setCosmetic(True)
        self.curve = pg.PlotDataItem(
            pen=pen,
            name=config.label,
            symbol="o" if config.show_points else None,
        )
        self.plot_item.addItem(self.curve)
        layout.addWidget(self.plot_widget)

        if container is not None and container.layout() is not None:
            container.layout().addWidget(self)

        if len(self._buffer):
            self._redraw()

    @property
    def label(self) -> str:
        return self.config.label

    @property
    def buffer(self) -> SeriesBuffer:
        return self._buffer

    def set_buffer(self, buffer: SeriesBuffer, redraw: bool = True) -> None:
        """Replace the whole series; draw it when ``redraw`` is set."""
        self._buffer = buffer
        if redraw:
            self._redraw()

    def _redraw(self) -> None:
        self.curve.setData(self._buffer.x, self._buffer.y)
        self.redraw_count += 1
        logger.debug("%s redrawn with %d samples", self.config.label, len(self._buffer))
