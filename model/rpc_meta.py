"""Device RPC metadata and value codecs.

Every RPC on the sensor answers ``rpc.info`` with a 16 bit metadata word::

    bits 0-3   type class (0 unsigned, 1 signed, 2 float, 3 string)
    bits 4-7   value size in bytes
    bit  8     readable
    bit  9     writable
    bit  10    persistent

A word of zero means the device does not know the RPC's type.  All numeric
values travel little-endian.
"""

from __future__ import annotations

from dataclasses import dataclass
import struct
from typing import Dict, Tuple, Union

from model.errors import RpcTypeError

STRUCT_FORMATS: Dict[str, str] = {
    "u8": "<B",
    "u16": "<H",
    "u32": "<I",
    "u64": "<Q",
    "i8": "<b",
    "i16": "<h",
    "i32": "<i",
    "i64": "<q",
    "f32": "<f",
    "f64": "<d",
}

RPC_TYPES: Tuple[str, ...] = tuple(STRUCT_FORMATS) + ("string",)

_TYPE_NAMES: Dict[Tuple[int, int], str] = {
    (0, 1): "u8",
    (0, 2): "u16",
    (0, 4): "u32",
    (0, 8): "u64",
    (1, 1): "i8",
    (1, 2): "i16",
    (1, 4): "i32",
    (1, 8): "i64",
    (2, 4): "f32",
    (2, 8): "f64",
}

Value = Union[int, float, str]


@dataclass(frozen=True)
class RpcMeta:
    arg_type: str
    size: int
    read: bool
    write: bool
    persistent: bool
    unknown: bool

    @classmethod
    def parse(cls, meta: int) -> "RpcMeta":
        size = (meta >> 4) & 0xF
        type_class = meta & 0xF
        if type_class == 3:
            arg_type = "string"
        else:
            arg_type = _TYPE_NAMES.get((type_class, size), "")
        return cls(
            arg_type=arg_type,
            size=size,
            read=bool(meta & 0x0100),
            write=bool(meta & 0x0200),
            persistent=bool(meta & 0x0400),
            unknown=meta == 0,
        )

    def to_word(self) -> int:
        """Inverse of :meth:`parse` for the known types."""
        if self.unknown:
            return 0
        if self.arg_type == "string":
            type_class = 3
        else:
            type_class = {"u": 0, "i": 1, "f": 2}[self.arg_type[0]]
        word = type_class | ((self.size & 0xF) << 4)
        if self.read:
            word |= 0x0100
        if self.write:
            word |= 0x0200
        if self.persistent:
            word |= 0x0400
        return word


def _struct_format(arg_type: str) -> str:
    try:
        return STRUCT_FORMATS[arg_type]
    except KeyError as exc:
        raise RpcTypeError(f"unknown RPC type '{arg_type}'") from exc


def encode_value(value: Value, arg_type: str) -> bytes:
    """Pack ``value`` (a Python value or its text form) as ``arg_type``."""
    if arg_type == "string":
        return str(value).encode("utf-8")
    fmt = _struct_format(arg_type)
    try:
        if arg_type.startswith("f"):
            number: Value = float(value)
        else:
            number = int(value)
        return struct.pack(fmt, number)
    except (ValueError, struct.error) as exc:
        raise RpcTypeError(f"cannot encode {value!r} as {arg_type}: {exc}") from exc


def decode_value(raw: bytes, arg_type: str) -> Value:
    """Unpack the leading bytes of ``raw`` as ``arg_type``."""
    if arg_type == "string":
        return raw.decode("utf-8", errors="replace")
    fmt = _struct_format(arg_type)
    size = struct.calcsize(fmt)
    if len(raw) < size:
        raise RpcTypeError(f"{arg_type} needs {size} bytes, reply has {len(raw)}")
    return struct.unpack(fmt, raw[:size])[0]
