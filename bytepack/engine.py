# SPDX-License-Identifier: GPL-3.0-or-later OR LicenseRef-Commercial
"""Serialization engine contract and the default pickle-backed engine.

The packer treats the engine as a black box: it hands over a Writer or Reader
plus an opaque PackConfig and never looks at the bytes that flow through.
Only the engine gives meaning to the config's format and version.
"""

from __future__ import annotations

import pickle
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from .stream import Reader, Writer


class PackFormat(str, Enum):
    """Requested encoding family, interpreted by the engine."""

    BINARY = "binary"
    TEXT = "text"


@dataclass(frozen=True)
class PackConfig:
    """Caller options forwarded verbatim to ``SerializationEngine.serialize``."""

    format: PackFormat = PackFormat.BINARY
    version: int | None = None

    _OPTIONS = frozenset({"format", "version"})

    def __post_init__(self) -> None:
        object.__setattr__(self, "format", PackFormat(self.format))
        if self.version is not None and (
            isinstance(self.version, bool) or not isinstance(self.version, int)
        ):
            raise TypeError("version must be an int or None")

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> PackConfig:
        """Build a config from a ``{"format": ..., "version": ...}`` mapping."""
        unknown = set(options) - cls._OPTIONS
        if unknown:
            raise ValueError(f"unknown pack options: {', '.join(sorted(unknown))}")
        return cls(**options)


class SerializationEngine(Protocol):
    """Encodes objects into a Writer and rebuilds them from a Reader."""

    def serialize(self, obj: Any, writer: Writer, config: PackConfig) -> None: ...

    def deserialize(self, reader: Reader) -> Any: ...


class _WriterFile:
    """File-protocol face of a Writer, as pickle.Pickler expects."""

    __slots__ = ("_writer",)

    def __init__(self, writer: Writer):
        self._writer = writer

    def write(self, data) -> int:
        return self._writer.write_bytes(data)


class _ReaderFile:
    """File-protocol face of a Reader, as pickle.Unpickler expects.

    Reads are exact: a request the Reader cannot satisfy raises instead of
    returning fewer bytes, and so does a line that never ends.
    """

    __slots__ = ("_reader",)

    def __init__(self, reader: Reader):
        self._reader = reader

    def read(self, size: int) -> bytes:
        return self._reader.read_bytes(size)

    def readline(self) -> bytes:
        line = bytearray()
        while True:
            value = self._reader.read_byte()
            line.append(value)
            if value == 0x0A:
                return bytes(line)


@dataclass
class PickleEngine:
    """Engine backed by the standard library ``pickle`` module.

    ``TEXT`` selects protocol 0, the ASCII protocol. ``BINARY`` selects
    ``config.version`` or ``pickle.DEFAULT_PROTOCOL`` when no version is given.
    Deserialization accepts every protocol pickle understands.
    """

    fix_imports: bool = True

    def protocol_for(self, config: PackConfig) -> int:
        if config.format is PackFormat.TEXT:
            if config.version not in (None, 0):
                raise ValueError(f"text format only supports version 0, got {config.version}")
            return 0
        if config.version is None:
            return pickle.DEFAULT_PROTOCOL
        if not 1 <= config.version <= pickle.HIGHEST_PROTOCOL:
            raise ValueError(
                f"binary format supports versions 1..{pickle.HIGHEST_PROTOCOL}, "
                f"got {config.version}"
            )
        return config.version

    def serialize(self, obj: Any, writer: Writer, config: PackConfig) -> None:
        pickler = pickle.Pickler(
            _WriterFile(writer),
            protocol=self.protocol_for(config),
            fix_imports=self.fix_imports,
        )
        pickler.dump(obj)

    def deserialize(self, reader: Reader) -> Any:
        unpickler = pickle.Unpickler(_ReaderFile(reader), fix_imports=self.fix_imports)
        return unpickler.load()
