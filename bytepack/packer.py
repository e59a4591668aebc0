# SPDX-License-Identifier: GPL-3.0-or-later OR LicenseRef-Commercial
"""pack/unpack orchestration between buffers, stream adapters and an engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .buffer import DEFAULT_INITIAL_CAPACITY, MAX_CAPACITY, FixedBuffer, GrowableBuffer
from .engine import PackConfig, PickleEngine, SerializationEngine
from .stream import InputStream, OutputStream


@dataclass
class Packer:
    """Runs one write or read session per call.

    Every call gets its own buffer, so a Packer can be shared between threads.
    Any failure from the engine or the buffer propagates unchanged and the
    session's storage is released before it does.
    """

    engine: SerializationEngine = field(default_factory=PickleEngine)
    config: PackConfig = field(default_factory=PackConfig)
    initial_capacity: int = DEFAULT_INITIAL_CAPACITY
    max_capacity: int = MAX_CAPACITY

    def pack(self, obj: Any, config: PackConfig | Mapping[str, Any] | None = None) -> bytes:
        """Serialize ``obj`` and return exactly the bytes the engine wrote."""
        config = _coerce_config(config, self.config)
        with GrowableBuffer(self.initial_capacity, self.max_capacity) as buffer:
            self.engine.serialize(obj, OutputStream(buffer), config)
            return buffer.finalize_write()

    def unpack(self, data: bytes) -> Any:
        """Rebuild an object from ``data`` without copying or mutating it.

        Raises:
            TypeError: If ``data`` is not ``bytes``; checked before any buffer exists.
            ReadOverflowError: If the engine reads past the end of ``data``.
        """
        if not isinstance(data, bytes):
            raise TypeError(f"unpack() requires bytes, got {type(data).__name__}")
        with FixedBuffer(data) as buffer:
            return self.engine.deserialize(InputStream(buffer))


def _coerce_config(
    config: PackConfig | Mapping[str, Any] | None, default: PackConfig
) -> PackConfig:
    if config is None:
        return default
    if isinstance(config, PackConfig):
        return config
    return PackConfig.from_mapping(config)


_default_packer = Packer()


def pack(obj: Any, config: PackConfig | Mapping[str, Any] | None = None) -> bytes:
    """Serialize ``obj`` with the default pickle engine."""
    return _default_packer.pack(obj, config)


def unpack(data: bytes) -> Any:
    """Deserialize ``data`` with the default pickle engine."""
    return _default_packer.unpack(data)
