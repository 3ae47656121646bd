"""Detached engine snapshots and their byte encoding.

An :class:`AleState` owns one native ``ALEState*``. It holds no reference to
the engine it was cloned from: releasing either one does not release the
other, and this layer does not track which engine a snapshot came from.

Encoded snapshots are opaque, length-delimited blobs. They routinely contain
NUL bytes and are never treated as C strings.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

import numpy as np

from .buffers import as_writable_u8, checked_len, validate
from .errors import EngineAllocationError, HandleClosedError, NativeCallError
from .native import NativeEngine, load_native


class StateFlavor(str, Enum):
    """Which capture produced a snapshot.

    ENVIRONMENT excludes the pseudorandom generator (deterministic replay);
    SYSTEM includes it (faithful persistence). UNKNOWN marks snapshots decoded
    from bytes, since the encoding does not record its origin.
    """

    ENVIRONMENT = "environment"
    SYSTEM = "system"
    UNKNOWN = "unknown"


class AleState:
    """Owning wrapper around a native ``ALEState*``."""

    def __init__(self, native: NativeEngine, ptr: Optional[int], flavor: StateFlavor) -> None:
        if not ptr:
            raise EngineAllocationError(f"engine returned a null {flavor.value} state")
        self._native = native
        self._ptr: Optional[int] = int(ptr)
        self.flavor = StateFlavor(flavor)

    @property
    def closed(self) -> bool:
        return self._ptr is None

    def raw_pointer(self) -> int:
        """Return the live native pointer; raises once released."""

        if self._ptr is None:
            raise HandleClosedError(f"{self.flavor.value} state has been released")
        return self._ptr

    def close(self) -> None:
        # Clear first: a re-entrant close (e.g. from __del__) sees None.
        ptr, self._ptr = self._ptr, None
        if ptr is None:
            return
        self._native.delete_state(ptr)

    def __enter__(self) -> "AleState":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __del__(self) -> None:  # pragma: no cover
        try:
            self.close()
        except Exception:
            pass

    def __repr__(self) -> str:
        status = "released" if self._ptr is None else "live"
        return f"AleState(flavor={self.flavor.value}, {status})"

    # convenience forwards
    def encode_len(self) -> int:
        return encode_len(self)

    def encode(self, buf: Any = None) -> bytes:
        return encode_state(self, buf)


def encode_len(snapshot: AleState) -> int:
    """Exact number of bytes :func:`encode_state` produces for ``snapshot``."""

    return checked_len(snapshot._native.encode_state_len(snapshot.raw_pointer()), "encoded state length")


def encode_state(snapshot: AleState, buf: Any = None) -> bytes:
    """Serialize ``snapshot``.

    If ``buf`` is given the encoding is also written into it; it must hold at
    least :func:`encode_len` bytes.
    """

    ptr = snapshot.raw_pointer()
    length = encode_len(snapshot)
    if buf is None:
        out = np.zeros((length,), dtype=np.uint8)
    else:
        out = as_writable_u8(buf)
        validate(out.size, length, "encoded state")
    if length:
        snapshot._native.encode_state(ptr, out, length)
    return out[:length].tobytes()


def decode_state(
    data: Any,
    flavor: StateFlavor = StateFlavor.UNKNOWN,
    native: Optional[NativeEngine] = None,
) -> AleState:
    """Rebuild a snapshot from bytes produced by :func:`encode_state`.

    The engine owns the format; beyond the length this layer does not inspect
    the payload.

    Without ``native`` the snapshot is bound to the default library
    (``$ALE_C_LIB`` or the repo build). To restore into an :class:`~safe_ale.engine.Ale`
    built with a custom ``lib_path``, decode through :meth:`Ale.decode_state`
    or pass that engine's ``native``.
    """

    blob = bytes(memoryview(data).cast("B"))
    engine = native if native is not None else load_native()
    ptr = engine.decode_state(blob)
    if not ptr:
        raise NativeCallError(f"decodeState rejected a {len(blob)}-byte payload")
    return AleState(engine, ptr, flavor)


__all__ = ["StateFlavor", "AleState", "encode_len", "encode_state", "decode_state"]
