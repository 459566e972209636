"""RPC access to the sensor device.

``DeviceRpc`` is the seam the capture service talks through.  A transport for
real hardware implements :meth:`DeviceRpc.call`; ``SimulatedDevice`` answers
the same RPC names from memory so the tool runs without a sensor attached.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import Callable, Dict, Iterable, Optional, Tuple

import numpy as np

from model.errors import RpcError
from model.rpc_meta import RpcMeta, Value, decode_value, encode_value

logger = logging.getLogger("CaptureTool.Device")


class DeviceRpc(ABC):
    """Named request/reply calls carrying raw little-endian payloads."""

    @abstractmethod
    def call(self, name: str, arg: bytes = b"") -> bytes:
        """Invoke ``name`` and return the raw reply. Raises RpcError."""
        raise NotImplementedError

    def close(self) -> None:
        return None

    def rpc_type(self, name: str) -> str:
        """Argument type advertised by ``rpc.info``, or "" when unknown."""
        reply = self.call("rpc.info", name.encode("utf-8"))
        return RpcMeta.parse(int(decode_value(reply, "u16"))).arg_type

    def call_typed(
        self,
        name: str,
        value: Optional[Value] = None,
        req_type: Optional[str] = None,
        rep_type: Optional[str] = None,
    ) -> Optional[Value]:
        """Call ``name`` with an optional typed argument and decode the reply.

        Missing types are looked up through ``rpc.info``; an unknown type is
        treated as a string.  Returns None for an empty reply.
        """
        arg = b""
        if value is not None:
            if req_type is None:
                req_type = self.rpc_type(name) or "string"
            arg = encode_value(value, req_type)
        reply = self.call(name, arg)
        if not reply:
            return None
        if rep_type is None:
            rep_type = req_type or self.rpc_type(name) or "string"
        return decode_value(reply, rep_type)


RpcHandler = Callable[[bytes], bytes]


class SimulatedDevice(DeviceRpc):
    """In-memory sensor exposing ``<channel>.capture.*`` RPCs.

    ``capture.trigger`` fills the capture buffer with ``samples`` float32
    values of a sine wave whose phase advances on every trigger.
    ``capture.size`` and ``capture.blocksize`` are byte counts, and
    ``capture.block`` takes a ``u16`` block index and returns that slice of
    the buffer (empty past the end).
    """

    def __init__(
        self,
        channels: Iterable[str] = ("vector",),
        samples: int = 512,
        blocksize: int = 128,
        period: float = 64.0,
        amplitude: float = 1.0,
    ):
        if blocksize <= 0:
            raise ValueError("blocksize must be positive")
        self.samples = int(samples)
        self.blocksize = int(blocksize)
        self.period = float(period)
        self.amplitude = float(amplitude)
        self.calls: list = []
        self._buffers: Dict[str, bytes] = {}
        self._triggers: Dict[str, int] = {}
        self._rpcs: Dict[str, Tuple[RpcMeta, RpcHandler]] = {}
        for channel in channels:
            self.add_channel(channel)

    def add_channel(self, channel: str) -> None:
        prefix = f"{channel}.capture"
        self._buffers.setdefault(channel, b"")
        self._triggers.setdefault(channel, 0)
        u32_ro = RpcMeta.parse(0x0100 | (4 << 4))
        u16_rw = RpcMeta.parse(0x0300 | (2 << 4))
        self._rpcs[f"{prefix}.trigger"] = (RpcMeta.parse(0), lambda _arg: self._trigger(channel))
        self._rpcs[f"{prefix}.size"] = (
            u32_ro,
            lambda _arg: encode_value(len(self._buffers[channel]), "u32"),
        )
        self._rpcs[f"{prefix}.blocksize"] = (
            u32_ro,
            lambda _arg: encode_value(self.blocksize, "u32"),
        )
        self._rpcs[f"{prefix}.block"] = (u16_rw, lambda arg: self._block(channel, arg))

    @property
    def channels(self):
        return list(self._buffers)

    def call(self, name: str, arg: bytes = b"") -> bytes:
        self.calls.append(name)
        if name == "rpc.info":
            target = arg.decode("utf-8", errors="replace")
            if target not in self._rpcs:
                raise RpcError(name, f"no such rpc '{target}'")
            return encode_value(self._rpcs[target][0].to_word(), "u16")
        try:
            _meta, handler = self._rpcs[name]
        except KeyError:
            raise RpcError(name, "no such rpc") from None
        return handler(arg)

    def capture_values(self, channel: str) -> np.ndarray:
        """The float samples currently held in ``channel``'s capture buffer."""
        return np.frombuffer(self._buffers[channel], dtype="<f4").astype(np.float64)

    def _trigger(self, channel: str) -> bytes:
        count = self._triggers[channel]
        self._triggers[channel] = count + 1
        k = np.arange(self.samples, dtype=np.float64)
        phase = count * np.pi / 8.0
        wave = self.amplitude * np.sin(2.0 * np.pi * k / self.period + phase)
        self._buffers[channel] = wave.astype("<f4").tobytes()
        logger.debug("Simulated capture #%d on %s", count + 1, channel)
        return b""

    def _block(self, channel: str, arg: bytes) -> bytes:
        if len(arg) < 2:
            raise RpcError(f"{channel}.capture.block", "missing block index")
        index = int(decode_value(arg, "u16"))
        start = index * self.blocksize
        return self._buffers[channel][start : start + self.blocksize]
