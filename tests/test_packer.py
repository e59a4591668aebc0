import pickle
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest

from bytepack import pack, unpack
from bytepack.buffer import (
    DEFAULT_INITIAL_CAPACITY,
    BufferState,
    CapacityExceeded,
    GrowableBuffer,
    ReadOverflowError,
)
from bytepack.engine import PackConfig, PackFormat, PickleEngine
from bytepack.packer import Packer
from bytepack.stream import OutputStream, Reader, Writer


def test_round_trip():
    objects = [
        None,
        0,
        -(2**70),
        3.25,
        "unicode ✓",
        b"\x00\xff",
        [1, [2, [3]]],
        {"a": (1, 2), "b": {3, 4}},
    ]
    for obj in objects:
        assert unpack(pack(obj)) == obj


def test_round_trip_text_format():
    obj = {"rows": [[1, "a"], [2, "b"]]}
    data = pack(obj, {"format": "text"})
    assert data == pickle.dumps(obj, protocol=0)
    assert unpack(data) == obj


def test_round_trip_ten_thousand_integers():
    values = list(range(10_000))
    result = unpack(pack(values))
    assert len(result) == 10_000
    assert result == values


def test_large_payload_grows_buffer():
    values = list(range(10_000))
    buf = GrowableBuffer()
    PickleEngine().serialize(values, OutputStream(buf), PackConfig())

    assert buf.position > DEFAULT_INITIAL_CAPACITY
    assert buf.growths >= 1
    # Capacity stays a power-of-two multiple of the initial size
    ratio, remainder = divmod(buf.capacity, DEFAULT_INITIAL_CAPACITY)
    assert remainder == 0
    assert ratio & (ratio - 1) == 0

    assert unpack(buf.finalize_write()) == values


def test_pack_result_is_exact_length():
    obj = {"small": True}
    packer = Packer(initial_capacity=1 << 20)
    data = packer.pack(obj)
    assert data == pickle.dumps(obj)
    assert len(data) < 100


def test_pack_forwards_config_verbatim():
    engine = MagicMock()
    config = PackConfig(PackFormat.TEXT, 0)
    Packer(engine=engine).pack("obj", config)

    obj, writer, forwarded = engine.serialize.call_args.args
    assert obj == "obj"
    assert forwarded is config
    assert isinstance(writer, Writer)
    assert not hasattr(writer, "capacity")


def test_pack_uses_default_config():
    engine = MagicMock()
    config = PackConfig(version=2)
    Packer(engine=engine, config=config).pack("obj")
    assert engine.serialize.call_args.args[2] is config


def test_pack_with_custom_engine():
    def serialize(obj, writer, config):
        writer.write_bytes(obj.encode())
        writer.write_byte(0)

    engine = MagicMock()
    engine.serialize.side_effect = serialize
    assert Packer(engine=engine, initial_capacity=2).pack("hello") == b"hello\x00"


def test_pack_engine_failure_propagates():
    captured = []

    def serialize(obj, writer, config):
        captured.append(writer._buffer)
        writer.write_bytes(b"partial")
        raise RuntimeError("engine failed")

    engine = MagicMock()
    engine.serialize.side_effect = serialize
    with pytest.raises(RuntimeError, match="engine failed"):
        Packer(engine=engine).pack("obj")

    # Storage from the failed session is dropped
    assert captured[0].released
    assert captured[0].state == BufferState.INVALID


def test_pack_capacity_ceiling():
    packer = Packer(initial_capacity=16, max_capacity=64)
    with pytest.raises(CapacityExceeded):
        packer.pack(b"x" * 1000)


def test_pack_unpicklable_object():
    with pytest.raises((pickle.PicklingError, AttributeError, TypeError)):
        pack(lambda: None)


def test_unpack_returns_engine_result():
    def deserialize(reader):
        assert isinstance(reader, Reader)
        return reader.read_bytes(reader.read_byte())

    engine = MagicMock()
    engine.deserialize.side_effect = deserialize
    assert Packer(engine=engine).unpack(b"\x03abc") == b"abc"


@pytest.mark.parametrize("value", ["text", bytearray(b"abc"), memoryview(b"abc"), 42, None])
def test_unpack_type_guard(value):
    with patch("bytepack.packer.FixedBuffer") as fixed_buffer:
        with pytest.raises(TypeError):
            unpack(value)
    # Rejected before any buffer exists
    fixed_buffer.assert_not_called()


def test_unpack_truncated_input():
    data = pack(list(range(50)))
    with pytest.raises(ReadOverflowError):
        unpack(data[: len(data) // 2])


def test_unpack_does_not_mutate_input():
    data = pack({"k": [1, 2, 3]})
    snapshot = bytes(bytearray(data))
    unpack(data)
    assert data == snapshot


def test_concurrent_calls_use_independent_buffers():
    payloads = [{"id": i, "body": "x" * (i * 1000)} for i in range(32)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda obj: unpack(pack(obj)), payloads))
    assert results == payloads
