"""Fresh queries of the engine's legal value sets, and membership checks.

The engine accepts any integer for ``act``/``setMode``/``setDifficulty`` and
silently misbehaves on codes outside its sets. The sets depend on the loaded
ROM and the current mode, so they are re-queried for every check.
"""

from __future__ import annotations

import operator
from typing import Callable, Sequence

import numpy as np

from .buffers import checked_len
from .errors import IllegalActionError, IllegalDifficultyError, IllegalModeError, InvalidCodeError
from .native import NativeEngine


def _query_int_set(
    size_fn: Callable[[int], int],
    fill_fn: Callable[[int, np.ndarray], None],
    handle: int,
    what: str,
) -> list[int]:
    size = checked_len(size_fn(handle), f"{what} size")
    out = np.zeros((size,), dtype=np.intc)
    if size:
        fill_fn(handle, out)
    return [int(v) for v in out]


def legal_actions(native: NativeEngine, handle: int) -> list[int]:
    return _query_int_set(native.legal_action_size, native.legal_action_set, handle, "legal action set")


def minimal_actions(native: NativeEngine, handle: int) -> list[int]:
    return _query_int_set(native.minimal_action_size, native.minimal_action_set, handle, "minimal action set")


def available_modes(native: NativeEngine, handle: int) -> list[int]:
    return _query_int_set(native.available_modes_size, native.available_modes, handle, "mode set")


def available_difficulties(native: NativeEngine, handle: int) -> list[int]:
    return _query_int_set(
        native.available_difficulties_size, native.available_difficulties, handle, "difficulty set"
    )


def as_code(value: object) -> int:
    """Coerce an integer-like code (``int``, numpy integer, IntEnum) to ``int``."""

    if isinstance(value, bool):
        raise InvalidCodeError("expected an integer code, got bool")
    try:
        return operator.index(value)  # type: ignore[arg-type]
    except TypeError:
        raise InvalidCodeError(f"expected an integer code, got {type(value).__name__}") from None


def require_member(value: int, allowed: Sequence[int], error: type) -> int:
    if value not in allowed:
        raise error(value, allowed)
    return value


def check_action(native: NativeEngine, handle: int, action: object) -> int:
    return require_member(as_code(action), legal_actions(native, handle), IllegalActionError)


def check_mode(native: NativeEngine, handle: int, mode: object) -> int:
    return require_member(as_code(mode), available_modes(native, handle), IllegalModeError)


def check_difficulty(native: NativeEngine, handle: int, difficulty: object) -> int:
    return require_member(as_code(difficulty), available_difficulties(native, handle), IllegalDifficultyError)


__all__ = [
    "legal_actions",
    "minimal_actions",
    "available_modes",
    "available_difficulties",
    "as_code",
    "require_member",
    "check_action",
    "check_mode",
    "check_difficulty",
]
