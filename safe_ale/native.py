from __future__ import annotations

"""ctypes boundary for the ALE C library (``libale_c``).

This module loads ``ale/build/libale_c.{so,dylib}`` (or ``ale_c.dll``),
declares the argument and return types of every exported symbol, and exposes
them through :class:`CtypesEngine`, a thin typed adapter.

The adapter performs *no* validation: sizes, memberships and lifetimes are
enforced one layer up (``safe_ale.buffers`` / ``safe_ale.validation`` /
``safe_ale.engine``). Its only job is to make each foreign call well-typed and
to translate foreign failure signals (``OSError`` raised by ctypes for native
faults on Windows, ``ctypes.ArgumentError`` for marshalling failures) into
:class:`~safe_ale.errors.NativeCallError`.
"""

import ctypes as C
import os
import sys
from enum import IntEnum
from pathlib import Path
from typing import Any, Optional, Protocol

import numpy as np

from .errors import AleLibraryError, LibraryNotFoundError, NativeCallError


class LoggerMode(IntEnum):
    """Engine-side log verbosity (``setLoggerMode``). Process-wide."""

    INFO = 0
    WARNING = 1
    ERROR = 2


class NativeEngine(Protocol):
    """Typed face of the engine capability set.

    Handles (engine instances and detached states) are opaque non-zero ints.
    Fill operations write into the numpy array they are given and trust it to
    be large enough; callers must have checked.
    """

    # lifecycle
    def create(self) -> Optional[int]:
        """Allocate an engine instance; ``None``/0 on failure."""

    def destroy(self, handle: int) -> None:
        """Release an engine instance."""

    # settings
    def get_string(self, handle: int, key: str) -> str: ...
    def get_int(self, handle: int, key: str) -> int: ...
    def get_bool(self, handle: int, key: str) -> bool: ...
    def get_float(self, handle: int, key: str) -> float: ...
    def set_string(self, handle: int, key: str, value: str) -> None: ...
    def set_int(self, handle: int, key: str, value: int) -> None: ...
    def set_bool(self, handle: int, key: str, value: bool) -> None: ...
    def set_float(self, handle: int, key: str, value: float) -> None: ...

    # rom + stepping
    def load_rom(self, handle: int, path: str) -> None:
        """Reset the console and load the ROM at ``path``."""

    def act(self, handle: int, action: int) -> int:
        """Apply one action; returns the reward."""

    def game_over(self, handle: int) -> bool: ...
    def reset_game(self, handle: int) -> None: ...

    # value sets
    def available_modes_size(self, handle: int) -> int: ...
    def available_modes(self, handle: int, out: np.ndarray) -> None: ...
    def set_mode(self, handle: int, mode: int) -> None: ...
    def available_difficulties_size(self, handle: int) -> int: ...
    def available_difficulties(self, handle: int, out: np.ndarray) -> None: ...
    def set_difficulty(self, handle: int, difficulty: int) -> None: ...
    def legal_action_size(self, handle: int) -> int: ...
    def legal_action_set(self, handle: int, out: np.ndarray) -> None: ...
    def minimal_action_size(self, handle: int) -> int: ...
    def minimal_action_set(self, handle: int, out: np.ndarray) -> None: ...

    # counters
    def frame_number(self, handle: int) -> int: ...
    def episode_frame_number(self, handle: int) -> int: ...
    def lives(self, handle: int) -> int: ...

    # memory + screen
    def ram_size(self, handle: int) -> int: ...
    def get_ram(self, handle: int, out: np.ndarray) -> None: ...
    def screen_width(self, handle: int) -> int: ...
    def screen_height(self, handle: int) -> int: ...
    def get_screen(self, handle: int, out: np.ndarray) -> None: ...
    def get_screen_rgb(self, handle: int, out: np.ndarray) -> None: ...
    def get_screen_grayscale(self, handle: int, out: np.ndarray) -> None: ...

    # snapshots
    def save_state(self, handle: int) -> None: ...
    def load_state(self, handle: int) -> None: ...
    def clone_state(self, handle: int) -> Optional[int]: ...
    def restore_state(self, handle: int, state: int) -> None: ...
    def clone_system_state(self, handle: int) -> Optional[int]: ...
    def restore_system_state(self, handle: int, state: int) -> None: ...
    def delete_state(self, state: int) -> None: ...
    def encode_state_len(self, state: int) -> int: ...

    def encode_state(self, state: int, out: np.ndarray, length: int) -> None:
        """Copy ``length`` encoded bytes into ``out`` (plain memcpy, no terminator)."""

    def decode_state(self, data: bytes) -> Optional[int]: ...

    # diagnostics
    def save_screen_png(self, handle: int, filename: str) -> None: ...
    def set_logger_mode(self, mode: int) -> None: ...


_PTR = C.c_void_p
_U8P = C.POINTER(C.c_uint8)
_INTP = C.POINTER(C.c_int)
_CHARP = C.POINTER(C.c_char)

# name -> (argtypes, restype), mirrors ale_c_wrapper.h
_SIGNATURES: dict[str, tuple[list[Any], Any]] = {
    "ALE_new": ([], _PTR),
    "ALE_del": ([_PTR], None),
    "getString": ([_PTR, C.c_char_p], C.c_char_p),
    "getInt": ([_PTR, C.c_char_p], C.c_int),
    "getBool": ([_PTR, C.c_char_p], C.c_bool),
    "getFloat": ([_PTR, C.c_char_p], C.c_float),
    "setString": ([_PTR, C.c_char_p, C.c_char_p], None),
    "setInt": ([_PTR, C.c_char_p, C.c_int], None),
    "setBool": ([_PTR, C.c_char_p, C.c_bool], None),
    "setFloat": ([_PTR, C.c_char_p, C.c_float], None),
    "loadROM": ([_PTR, C.c_char_p], None),
    "act": ([_PTR, C.c_int], C.c_int),
    "game_over": ([_PTR], C.c_bool),
    "reset_game": ([_PTR], None),
    "getAvailableModes": ([_PTR, _INTP], None),
    "getAvailableModesSize": ([_PTR], C.c_int),
    "setMode": ([_PTR, C.c_int], None),
    "getAvailableDifficulties": ([_PTR, _INTP], None),
    "getAvailableDifficultiesSize": ([_PTR], C.c_int),
    "setDifficulty": ([_PTR, C.c_int], None),
    "getLegalActionSet": ([_PTR, _INTP], None),
    "getLegalActionSize": ([_PTR], C.c_int),
    "getMinimalActionSet": ([_PTR, _INTP], None),
    "getMinimalActionSize": ([_PTR], C.c_int),
    "getFrameNumber": ([_PTR], C.c_int),
    "getEpisodeFrameNumber": ([_PTR], C.c_int),
    "lives": ([_PTR], C.c_int),
    "getRAMSize": ([_PTR], C.c_int),
    "getRAM": ([_PTR, _U8P], None),
    "getScreenWidth": ([_PTR], C.c_int),
    "getScreenHeight": ([_PTR], C.c_int),
    "getScreen": ([_PTR, _U8P], None),
    "getScreenRGB": ([_PTR, _U8P], None),
    "getScreenGrayscale": ([_PTR, _U8P], None),
    "saveState": ([_PTR], None),
    "loadState": ([_PTR], None),
    "cloneState": ([_PTR], _PTR),
    "restoreState": ([_PTR, _PTR], None),
    "cloneSystemState": ([_PTR], _PTR),
    "restoreSystemState": ([_PTR, _PTR], None),
    "deleteState": ([_PTR], None),
    "saveScreenPNG": ([_PTR, C.c_char_p], None),
    "encodeState": ([_PTR, _CHARP, C.c_int], None),
    "encodeStateLen": ([_PTR], C.c_int),
    "decodeState": ([_CHARP, C.c_int], _PTR),
    "setLoggerMode": ([C.c_int], None),
}


def _default_library_name() -> str:
    if sys.platform == "darwin":
        return "libale_c.dylib"
    if sys.platform.startswith("linux"):
        return "libale_c.so"
    if sys.platform == "win32":
        return "ale_c.dll"
    raise RuntimeError(f"Unsupported platform for the ALE C library: {sys.platform!r}")


def default_library_path() -> Path:
    root = Path(__file__).resolve().parents[1]
    return root / "ale" / "build" / _default_library_name()


def resolve_library_path(path: Optional[str] = None) -> Path:
    """Return the shared library path to load.

    Priority:
      1) explicit ``path`` argument
      2) env var ``ALE_C_LIB``
      3) repo-local default under ``ale/build/``
    """

    if path:
        return Path(path).expanduser()
    env = os.environ.get("ALE_C_LIB")
    if env:
        return Path(env).expanduser()
    return default_library_path()


def is_library_present(path: Optional[str] = None) -> bool:
    try:
        return resolve_library_path(path).is_file()
    except Exception:
        return False


_CDLL_CACHE: dict[str, C.CDLL] = {}


def _load_cdll(path: Path) -> C.CDLL:
    key = str(path)
    cached = _CDLL_CACHE.get(key)
    if cached is not None:
        return cached
    lib = C.CDLL(str(path))
    _CDLL_CACHE[key] = lib
    return lib


def _encode_key(key: str) -> bytes:
    return str(key).encode("utf-8")


def _ptr(arr: np.ndarray, c_type: Any) -> Any:
    return arr.ctypes.data_as(C.POINTER(c_type))


class CtypesEngine:
    """:class:`NativeEngine` implementation over a loaded ``libale_c``."""

    def __init__(self, lib_path: Optional[str] = None) -> None:
        path = resolve_library_path(lib_path)
        if not path.is_file():
            raise LibraryNotFoundError(
                f"ALE C library not found at {path}. "
                "Set ALE_C_LIB or pass lib_path pointing to libale_c."
            )
        self.path = path
        self._lib = _load_cdll(path)

        missing = [name for name in _SIGNATURES if getattr(self._lib, name, None) is None]
        if missing:
            raise AleLibraryError(f"{path} does not export the required symbols: {missing}")
        self._fns: dict[str, Any] = {}
        for name, (argtypes, restype) in _SIGNATURES.items():
            fn = getattr(self._lib, name)
            fn.argtypes = argtypes
            fn.restype = restype
            self._fns[name] = fn

    def _call(self, name: str, *args: Any) -> Any:
        try:
            return self._fns[name](*args)
        except (OSError, C.ArgumentError) as exc:
            raise NativeCallError(f"{name} failed: {exc}") from exc

    # ------------------------------------------------------------------ lifecycle

    def create(self) -> Optional[int]:
        return self._call("ALE_new")

    def destroy(self, handle: int) -> None:
        self._call("ALE_del", handle)

    # ------------------------------------------------------------------ settings

    def get_string(self, handle: int, key: str) -> str:
        raw = self._call("getString", handle, _encode_key(key))
        return "" if raw is None else raw.decode("utf-8", errors="replace")

    def get_int(self, handle: int, key: str) -> int:
        return int(self._call("getInt", handle, _encode_key(key)))

    def get_bool(self, handle: int, key: str) -> bool:
        return bool(self._call("getBool", handle, _encode_key(key)))

    def get_float(self, handle: int, key: str) -> float:
        return float(self._call("getFloat", handle, _encode_key(key)))

    def set_string(self, handle: int, key: str, value: str) -> None:
        self._call("setString", handle, _encode_key(key), str(value).encode("utf-8"))

    def set_int(self, handle: int, key: str, value: int) -> None:
        self._call("setInt", handle, _encode_key(key), int(value))

    def set_bool(self, handle: int, key: str, value: bool) -> None:
        self._call("setBool", handle, _encode_key(key), bool(value))

    def set_float(self, handle: int, key: str, value: float) -> None:
        self._call("setFloat", handle, _encode_key(key), float(value))

    # ------------------------------------------------------------------ rom + stepping

    def load_rom(self, handle: int, path: str) -> None:
        self._call("loadROM", handle, os.fsencode(path))

    def act(self, handle: int, action: int) -> int:
        return int(self._call("act", handle, int(action)))

    def game_over(self, handle: int) -> bool:
        return bool(self._call("game_over", handle))

    def reset_game(self, handle: int) -> None:
        self._call("reset_game", handle)

    # ------------------------------------------------------------------ value sets

    def available_modes_size(self, handle: int) -> int:
        return int(self._call("getAvailableModesSize", handle))

    def available_modes(self, handle: int, out: np.ndarray) -> None:
        self._call("getAvailableModes", handle, _ptr(out, C.c_int))

    def set_mode(self, handle: int, mode: int) -> None:
        self._call("setMode", handle, int(mode))

    def available_difficulties_size(self, handle: int) -> int:
        return int(self._call("getAvailableDifficultiesSize", handle))

    def available_difficulties(self, handle: int, out: np.ndarray) -> None:
        self._call("getAvailableDifficulties", handle, _ptr(out, C.c_int))

    def set_difficulty(self, handle: int, difficulty: int) -> None:
        self._call("setDifficulty", handle, int(difficulty))

    def legal_action_size(self, handle: int) -> int:
        return int(self._call("getLegalActionSize", handle))

    def legal_action_set(self, handle: int, out: np.ndarray) -> None:
        self._call("getLegalActionSet", handle, _ptr(out, C.c_int))

    def minimal_action_size(self, handle: int) -> int:
        return int(self._call("getMinimalActionSize", handle))

    def minimal_action_set(self, handle: int, out: np.ndarray) -> None:
        self._call("getMinimalActionSet", handle, _ptr(out, C.c_int))

    # ------------------------------------------------------------------ counters

    def frame_number(self, handle: int) -> int:
        return int(self._call("getFrameNumber", handle))

    def episode_frame_number(self, handle: int) -> int:
        return int(self._call("getEpisodeFrameNumber", handle))

    def lives(self, handle: int) -> int:
        return int(self._call("lives", handle))

    # ------------------------------------------------------------------ memory + screen

    def ram_size(self, handle: int) -> int:
        return int(self._call("getRAMSize", handle))

    def get_ram(self, handle: int, out: np.ndarray) -> None:
        self._call("getRAM", handle, _ptr(out, C.c_uint8))

    def screen_width(self, handle: int) -> int:
        return int(self._call("getScreenWidth", handle))

    def screen_height(self, handle: int) -> int:
        return int(self._call("getScreenHeight", handle))

    def get_screen(self, handle: int, out: np.ndarray) -> None:
        self._call("getScreen", handle, _ptr(out, C.c_uint8))

    def get_screen_rgb(self, handle: int, out: np.ndarray) -> None:
        self._call("getScreenRGB", handle, _ptr(out, C.c_uint8))

    def get_screen_grayscale(self, handle: int, out: np.ndarray) -> None:
        self._call("getScreenGrayscale", handle, _ptr(out, C.c_uint8))

    # ------------------------------------------------------------------ snapshots

    def save_state(self, handle: int) -> None:
        self._call("saveState", handle)

    def load_state(self, handle: int) -> None:
        self._call("loadState", handle)

    def clone_state(self, handle: int) -> Optional[int]:
        return self._call("cloneState", handle)

    def restore_state(self, handle: int, state: int) -> None:
        self._call("restoreState", handle, state)

    def clone_system_state(self, handle: int) -> Optional[int]:
        return self._call("cloneSystemState", handle)

    def restore_system_state(self, handle: int, state: int) -> None:
        self._call("restoreSystemState", handle, state)

    def delete_state(self, state: int) -> None:
        self._call("deleteState", state)

    def encode_state_len(self, state: int) -> int:
        return int(self._call("encodeStateLen", state))

    def encode_state(self, state: int, out: np.ndarray, length: int) -> None:
        self._call("encodeState", state, _ptr(out, C.c_char), int(length))

    def decode_state(self, data: bytes) -> Optional[int]:
        # Length-delimited blob: embedded NULs are part of the payload.
        size = len(data)
        blob = (C.c_char * max(1, size)).from_buffer_copy(bytes(data) or b"\x00")
        return self._call("decodeState", C.cast(blob, _CHARP), size)

    # ------------------------------------------------------------------ diagnostics

    def save_screen_png(self, handle: int, filename: str) -> None:
        self._call("saveScreenPNG", handle, os.fsencode(filename))

    def set_logger_mode(self, mode: int) -> None:
        self._call("setLoggerMode", int(mode))


_DEFAULT_ENGINES: dict[str, CtypesEngine] = {}


def load_native(lib_path: Optional[str] = None) -> CtypesEngine:
    """Return the process-wide :class:`CtypesEngine` for ``lib_path``."""

    key = str(resolve_library_path(lib_path))
    engine = _DEFAULT_ENGINES.get(key)
    if engine is None:
        engine = CtypesEngine(lib_path)
        _DEFAULT_ENGINES[key] = engine
    return engine


def set_logger_mode(mode: LoggerMode | int, native: Optional[NativeEngine] = None) -> None:
    """Set the engine's log verbosity.

    This is global state inside the native library: it affects every engine
    instance in the process, including ones created earlier.
    """

    level = LoggerMode(int(mode))
    (native or load_native()).set_logger_mode(int(level))


__all__ = [
    "LoggerMode",
    "NativeEngine",
    "CtypesEngine",
    "default_library_path",
    "resolve_library_path",
    "is_library_present",
    "load_native",
    "set_logger_mode",
]
