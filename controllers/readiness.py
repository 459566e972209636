"""One-shot readiness gate between chart construction and data delivery.

Construction of a chart is deferred while its topic subscription starts at
once, so the first batch can arrive before there is anything to draw into.
Every delivery goes through :meth:`ReadinessGate.when_ready`; callbacks queued
before the chart exists run in arrival order as soon as it is set, and later
ones run immediately.
"""

from __future__ import annotations

from enum import Enum
import logging
from typing import Any, Callable, List, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from model.errors import ChartNotReadyError

logger = logging.getLogger("CaptureTool.Readiness")

ReadyCallback = Callable[[Any], None]


class GateState(Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class ReadinessGate(QObject):
    ready = Signal(str, object)  # identifier, chart
    failed = Signal(str, str)  # identifier, reason

    def __init__(self, identifier: str, timeout_ms: int = 0, parent=None):
        super().__init__(parent)
        self.identifier = identifier
        self.timeout_ms = int(timeout_ms)
        self.state = GateState.PENDING
        self.value: Any = None
        self.error: Optional[Exception] = None
        self._pending: List[ReadyCallback] = []
        self._deadline: Optional[QTimer] = None
        if self.timeout_ms > 0:
            self._deadline = QTimer(self)
            self._deadline.setSingleShot(True)
            self._deadline.timeout.connect(self._on_deadline)
            self._deadline.start(self.timeout_ms)

    @property
    def is_ready(self) -> bool:
        return self.state is GateState.READY

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def when_ready(self, callback: ReadyCallback) -> bool:
        """Run ``callback(value)`` now if ready, else queue it.

        Returns False when the gate has failed and the callback was dropped.
        """
        if self.state is GateState.READY:
            callback(self.value)
            return True
        if self.state is GateState.FAILED:
            logger.warning(
                "Dropping delivery for '%s': %s", self.identifier, self.error
            )
            return False
        self._pending.append(callback)
        return True

    def set_ready(self, value: Any) -> None:
        if value is None:
            raise ValueError("readiness value must not be None")
        if self.state is GateState.READY:
            logger.warning("Gate for '%s' already settled", self.identifier)
            return
        if self.state is GateState.FAILED:
            logger.warning(
                "Chart for '%s' arrived after the gate failed; accepting it",
                self.identifier,
            )
        self._stop_deadline()
        self.state = GateState.READY
        self.value = value
        self.error = None
        self.ready.emit(self.identifier, value)
        pending, self._pending = self._pending, []
        for callback in pending:
            try:
                callback(value)
            except Exception:
                logger.exception("Queued delivery for '%s' raised", self.identifier)

    def fail(self, error: Exception) -> None:
        if self.state is not GateState.PENDING:
            return
        self._stop_deadline()
        self.state = GateState.FAILED
        self.error = error
        dropped = len(self._pending)
        self._pending.clear()
        logger.error(
            "Chart for '%s' failed to materialize (%s); %d queued batch(es) dropped",
            self.identifier,
            error,
            dropped,
        )
        self.failed.emit(self.identifier, str(error))

    def _on_deadline(self) -> None:
        if self.state is GateState.PENDING:
            self.fail(ChartNotReadyError(self.identifier, self.timeout_ms))

    def _stop_deadline(self) -> None:
        if self._deadline is not None:
            self._deadline.stop()
