"""Host side of the bridge: announces channels and runs device captures.

A trigger for ``name`` runs::

    name.capture.trigger
    name.capture.size, name.capture.blocksize
    name.capture.block 0 .. floor(size / blocksize)

and publishes the concatenated blocks, read as little-endian float32, on
the topic derived from ``name``.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

import numpy as np
from PySide6.QtCore import QObject, QThread, QTimer, Signal, Slot

from controllers.channel_registry import CHANNELS_TOPIC
from controllers.device_rpc import DeviceRpc
from controllers.trigger_emitter import TRIGGER_TOPIC
from model.channel import TopicFunc, derive_topic
from model.errors import RpcError, RpcTypeError
from model.rpc_meta import encode_value
from views.event_bus import HostBridge

logger = logging.getLogger("CaptureTool.Capture")


def _read_count(device: DeviceRpc, name: str) -> Optional[int]:
    try:
        value = device.call_typed(name, rep_type="u32")
    except (RpcError, RpcTypeError) as exc:
        logger.warning("%s unavailable: %s", name, exc)
        return None
    if value is None:
        logger.warning("%s returned nothing", name)
        return None
    return int(value)


def block_count(size: Optional[int], blocksize: Optional[int]) -> int:
    """Number of blocks past block 0 to read for a capture of ``size`` bytes."""
    if not size or not blocksize or blocksize <= 0:
        return 0
    return size // blocksize


def decode_samples(raw: bytes) -> np.ndarray:
    usable = len(raw) - len(raw) % 4
    if usable != len(raw):
        logger.warning("Discarding %d trailing capture byte(s)", len(raw) - usable)
    return np.frombuffer(raw[:usable], dtype="<f4").astype(np.float64)


def run_capture(device: DeviceRpc, name: str, block_type: str = "u16") -> np.ndarray:
    """Trigger a capture on ``name`` and read it back as float samples."""
    prefix = f"{name}.capture"
    try:
        device.call(f"{prefix}.trigger")
    except RpcError as exc:
        logger.warning("Trigger for %s failed, reading stale buffer: %s", name, exc)

    size = _read_count(device, f"{prefix}.size")
    blocksize = _read_count(device, f"{prefix}.blocksize")
    blocks = block_count(size, blocksize)

    chunks: List[bytes] = []
    for index in range(blocks + 1):
        try:
            chunks.append(device.call(f"{prefix}.block", encode_value(index, block_type)))
        except (RpcError, RpcTypeError) as exc:
            logger.warning("Skipping block %d of %s: %s", index, name, exc)
    samples = decode_samples(b"".join(chunks))
    logger.info("Captured %d samples from %s in %d block(s)", len(samples), name, blocks + 1)
    return samples


class CaptureWorker(QObject):
    captured = Signal(str, object)  # name, samples
    failed = Signal(str, str)

    def __init__(self, device: DeviceRpc, block_type: str = "u16", parent=None):
        super().__init__(parent)
        self.device = device
        self.block_type = block_type

    @Slot(str)
    def capture(self, name: str) -> None:
        try:
            samples = run_capture(self.device, name, self.block_type)
        except Exception as exc:
            logger.exception("Capture of %s failed", name)
            self.failed.emit(name, str(exc))
            return
        self.captured.emit(name, samples.tolist())


class CaptureService(QObject):
    capture_requested = Signal(str)
    capture_failed = Signal(str, str)

    def __init__(
        self,
        bridge: HostBridge,
        device: DeviceRpc,
        channels: Sequence[str],
        block_type: str = "u16",
        reply_delay_ms: int = 100,
        topic_for: TopicFunc = derive_topic,
        threaded: bool = True,
        parent=None,
    ):
        super().__init__(parent)
        self.bridge = bridge
        self.device = device
        self.channels = list(channels)
        self.reply_delay_ms = int(reply_delay_ms)
        self.topic_for = topic_for
        self.threaded = threaded
        self.worker = CaptureWorker(device, block_type)
        self.worker.captured.connect(self._publish)
        self.worker.failed.connect(self.capture_failed)
        self.thread: Optional[QThread] = None
        if threaded:
            self.thread = QThread()
            self.worker.moveToThread(self.thread)
            self.thread.start()
        self.capture_requested.connect(self.worker.capture)

        bridge.on_host(CHANNELS_TOPIC, self._on_channels_request)
        bridge.on_host(TRIGGER_TOPIC, self._on_trigger)

    def _on_channels_request(self, _payload: Any) -> None:
        QTimer.singleShot(
            self.reply_delay_ms,
            lambda: self.bridge.publish(CHANNELS_TOPIC, list(self.channels)),
        )

    def _on_trigger(self, payload: Any) -> None:
        if not isinstance(payload, str) or not payload:
            logger.warning("Ignoring trigger with payload %r", payload)
            return
        logger.info("Capture requested for %s", payload)
        self.capture_requested.emit(payload)

    @Slot(str, object)
    def _publish(self, name: str, samples) -> None:
        self.bridge.publish(self.topic_for(name), samples)

    def stop(self) -> None:
        if self.thread is not None:
            self.thread.quit()
            self.thread.wait(1000)
            self.thread = None
        self.device.close()
