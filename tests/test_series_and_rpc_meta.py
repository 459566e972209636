import struct

import numpy as np
import pytest

from model.errors import RpcTypeError
from model.rpc_meta import RpcMeta, decode_value, encode_value
from model.series import SeriesBuffer, build_series, to_samples


def test_build_series_pairs_samples_with_index():
    series = build_series(to_samples([3, 1, 4, 1, 5]))
    assert series.as_lists() == ([0.0, 1.0, 2.0, 3.0, 4.0], [3.0, 1.0, 4.0, 1.0, 5.0])


def test_to_samples_accepts_arrays_and_tuples():
    arr = np.array([1, 2, 3], dtype=np.int16)
    out = to_samples(arr)
    assert out.dtype == np.float64
    assert out.tolist() == [1.0, 2.0, 3.0]
    assert to_samples((0.5, True)).tolist() == [0.5, 1.0]
    assert len(to_samples([])) == 0


@pytest.mark.parametrize(
    "batch",
    ["12345", b"\x01\x02", [1, "2"], [1, None], np.zeros((2, 2)), {"a": 1}, 7],
)
def test_to_samples_rejects_non_numeric(batch):
    with pytest.raises((TypeError, ValueError)):
        to_samples(batch)


def test_series_buffer_requires_equal_columns():
    with pytest.raises(ValueError):
        SeriesBuffer(x=np.arange(3.0), y=np.arange(2.0))
    assert len(SeriesBuffer.empty()) == 0


def test_rpc_meta_parse():
    meta = RpcMeta.parse(0x0100 | (4 << 4) | 0)
    assert meta.arg_type == "u32"
    assert meta.size == 4
    assert meta.read and not meta.write and not meta.persistent
    assert not meta.unknown

    meta = RpcMeta.parse(0x0700 | (8 << 4) | 2)
    assert meta.arg_type == "f64"
    assert meta.read and meta.write and meta.persistent

    assert RpcMeta.parse(0x0003).arg_type == "string"
    assert RpcMeta.parse(1 | (2 << 4)).arg_type == "i16"
    # float class with an impossible size has no type name
    assert RpcMeta.parse(2 | (2 << 4)).arg_type == ""

    unknown = RpcMeta.parse(0)
    assert unknown.unknown
    assert unknown.arg_type == ""
    assert unknown.to_word() == 0


def test_rpc_meta_word_round_trip_for_known_types():
    for word in (0x0110 | 0, 0x0320, 0x0441, 0x0182, 0x0103):
        assert RpcMeta.parse(word).to_word() == word


def test_encode_decode_values():
    assert encode_value("7", "u16") == struct.pack("<H", 7)
    assert encode_value(-2, "i32") == struct.pack("<i", -2)
    assert encode_value("1.5", "f32") == struct.pack("<f", 1.5)
    assert encode_value("abc", "string") == b"abc"
    assert decode_value(struct.pack("<Q", 2**40), "u64") == 2**40
    assert decode_value(struct.pack("<d", 0.25) + b"xx", "f64") == 0.25
    assert decode_value(b"hi", "string") == "hi"


def test_encode_decode_errors():
    with pytest.raises(RpcTypeError):
        encode_value(1, "u128")
    with pytest.raises(RpcTypeError):
        encode_value(300, "u8")
    with pytest.raises(RpcTypeError):
        encode_value("x", "u16")
    with pytest.raises(RpcTypeError):
        decode_value(b"\x01", "u32")
