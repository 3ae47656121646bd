"""Output-buffer sizing and validation.

The engine writes RAM, pixels and encoded states with a plain ``memcpy`` into
whatever pointer it is given. Every size is therefore computed and checked
here, before the pointer crosses the boundary. An undersized buffer is a
programmer error (:class:`BufferTooSmallError`), never a truncated write.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any

import numpy as np

from .errors import BufferTooSmallError, EngineContractError, PreconditionError
from .native import NativeEngine


class ScreenChannels(IntEnum):
    GRAYSCALE = 1
    RGB = 3


def checked_len(value: int, what: str) -> int:
    """Reject negative engine-reported sizes."""

    size = int(value)
    if size < 0:
        raise EngineContractError(f"engine reported a negative {what}: {size}")
    return size


def required_ram_size(native: NativeEngine, handle: int) -> int:
    return checked_len(native.ram_size(handle), "RAM size")


def screen_dims(native: NativeEngine, handle: int) -> tuple[int, int]:
    """Return ``(width, height)``; ROM dependent, so always queried fresh."""

    width = checked_len(native.screen_width(handle), "screen width")
    height = checked_len(native.screen_height(handle), "screen height")
    return width, height


def required_screen_bytes(native: NativeEngine, handle: int, channels: int) -> int:
    try:
        ch = ScreenChannels(int(channels))
    except ValueError:
        raise PreconditionError(f"unsupported channel count: {channels} (expected 1 or 3)") from None
    width, height = screen_dims(native, handle)
    return width * height * int(ch)


def validate(buffer_len: int, required_len: int, what: str = "output") -> None:
    if int(buffer_len) < int(required_len):
        raise BufferTooSmallError(what, buffer_len, required_len)


def as_writable_u8(buf: Any) -> np.ndarray:
    """Return a flat ``uint8`` view sharing memory with ``buf``.

    Accepts ``bytearray``, writable ``memoryview`` and C-contiguous numpy
    arrays of any shape. Anything the engine could not safely write into is
    rejected.
    """

    if isinstance(buf, np.ndarray):
        if buf.dtype != np.uint8:
            raise PreconditionError(f"buffer dtype must be uint8, got {buf.dtype}")
        if not buf.flags.c_contiguous:
            raise PreconditionError("buffer must be C-contiguous")
        if not buf.flags.writeable:
            raise PreconditionError("buffer is read-only")
        return buf.reshape(-1)
    try:
        view = memoryview(buf)
    except TypeError:
        raise PreconditionError(f"object of type {type(buf).__name__} is not a buffer") from None
    if view.readonly:
        raise PreconditionError("buffer is read-only")
    if not view.c_contiguous:
        raise PreconditionError("buffer must be C-contiguous")
    return np.frombuffer(view.cast("B"), dtype=np.uint8)


__all__ = [
    "ScreenChannels",
    "checked_len",
    "required_ram_size",
    "screen_dims",
    "required_screen_bytes",
    "validate",
    "as_writable_u8",
]
