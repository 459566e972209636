from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from controllers.capture_session import CaptureSession
from infra.settings_store import (
    CaptureSettings,
    WindowState,
    load_window_state,
    save_window_state,
)
from model.channel import TopicFunc, derive_topic
from views.event_bus import HostBridge

logger = logging.getLogger("CaptureTool")


class CaptureWindow(QMainWindow):
    """Trigger buttons on top, one strip chart per signal underneath."""

    def __init__(
        self,
        bridge: HostBridge,
        settings: Optional[CaptureSettings] = None,
        topic_for: TopicFunc = derive_topic,
        strict_topics: bool = False,
        enable_dialogs: bool = True,
    ):
        super().__init__()
        self.bridge = bridge
        self.settings = settings or CaptureSettings()
        self.enable_dialogs = enable_dialogs
        self.exit_code = 0
        self.init_ui()

        self.session = CaptureSession(
            bridge,
            self.plot_area,
            self.settings,
            surface_factory=self.add_trigger_button,
            topic_for=topic_for,
            strict_topics=strict_topics,
            parent=self,
        )
        self.session.lifecycle.construction_failed.connect(self._on_construction_failed)
        self.session.lifecycle.chart_created.connect(self._on_chart_created)
        self.session.lifecycle.chart_unavailable.connect(self._on_chart_unavailable)
        self.session.registry.channels_received.connect(self._on_channels_received)
        self.session.registry.channels_timed_out.connect(self._on_channels_timed_out)
        self.session.registry.channels_rejected.connect(self._on_channels_rejected)
        self.session.ingestion.batch_rendered.connect(self._on_batch_rendered)
        self.session.ingestion.batch_rejected.connect(self._on_batch_rejected)

    def init_ui(self):
        self.setWindowTitle("Capture Tool")
        self.resize(800, 600)

        central = QWidget(self)
        layout = QVBoxLayout(central)

        self.button_bar = QWidget(central)
        self.button_layout = QHBoxLayout(self.button_bar)
        self.button_layout.setContentsMargins(0, 0, 0, 0)
        self.button_layout.addStretch(1)
        layout.addWidget(self.button_bar)

        self.plot_area = QWidget()
        self.plot_area.setObjectName("Plot")
        plot_layout = QVBoxLayout(self.plot_area)
        plot_layout.setAlignment(Qt.AlignmentFlag.AlignTop)

        scroll = QScrollArea(central)
        scroll.setWidgetResizable(True)
        scroll.setWidget(self.plot_area)
        layout.addWidget(scroll, 1)

        self.status_label = QLabel("Waiting for channels…", central)
        layout.addWidget(self.status_label)

        self.setCentralWidget(central)
        state = load_window_state()
        if state.geometry is not None:
            self.restoreGeometry(state.geometry)

    def start(self) -> None:
        self.session.start()

    def add_trigger_button(self, identifier: str, on_activate: Callable[[], None]) -> QPushButton:
        button = QPushButton(identifier, self.button_bar)
        button.setObjectName(identifier)
        button.clicked.connect(lambda _checked=False: on_activate())
        # keep the trailing stretch last
        self.button_layout.insertWidget(self.button_layout.count() - 1, button)
        return button

    def trigger_button(self, identifier: str) -> Optional[QPushButton]:
        return self.button_bar.findChild(QPushButton, identifier)

    def _set_status(self, text: str) -> None:
        self.status_label.setText(text)

    def _on_channels_received(self, identifiers) -> None:
        self._set_status(f"{len(identifiers)} channel(s) available")

    def _on_channels_timed_out(self) -> None:
        self._set_status("Host did not announce any channels")

    def _on_channels_rejected(self, reason: str) -> None:
        self._set_status(f"Channel list rejected: {reason}")

    def _on_chart_created(self, identifier: str, _chart) -> None:
        logger.debug("Chart ready: %s", identifier)

    def _on_chart_unavailable(self, identifier: str, reason: str) -> None:
        self._set_status(f"{identifier}: chart unavailable ({reason})")

    def _on_batch_rendered(self, identifier: str, count: int) -> None:
        self._set_status(f"{identifier}: {count} samples")

    def _on_batch_rejected(self, identifier: str, reason: str) -> None:
        self._set_status(f"{identifier}: rejected batch ({reason})")

    def _on_construction_failed(self, identifier: str, message: str) -> None:
        logger.critical("Cannot create chart for %s: %s", identifier, message)
        self.exit_code = 1
        if self.enable_dialogs:
            QMessageBox.critical(self, "Capture Tool", message)
        app = QApplication.instance()
        if app is not None:
            app.exit(1)

    def closeEvent(self, event):
        try:
            save_window_state(WindowState(geometry=self.saveGeometry()))
        except Exception:
            logger.exception("Failed to save window state")
        self.session.close()
        super().closeEvent(event)
