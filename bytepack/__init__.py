# SPDX-License-Identifier: GPL-3.0-or-later OR LicenseRef-Commercial

"""Growable in-memory byte streams bridging object serializers to buffers."""

from .buffer import (
    AllocationFailure,
    BufferState,
    BufferStateError,
    CapacityExceeded,
    FixedBuffer,
    GrowableBuffer,
    ReadOverflowError,
)
from .engine import PackConfig, PackFormat, PickleEngine, SerializationEngine
from .packer import Packer, pack, unpack
from .stream import InputStream, OutputStream, Reader, Writer

__all__ = [
    "AllocationFailure",
    "BufferState",
    "BufferStateError",
    "CapacityExceeded",
    "FixedBuffer",
    "GrowableBuffer",
    "InputStream",
    "OutputStream",
    "PackConfig",
    "PackFormat",
    "Packer",
    "PickleEngine",
    "ReadOverflowError",
    "Reader",
    "SerializationEngine",
    "Writer",
    "pack",
    "unpack",
]
