"""Owning, validating wrapper around one native ALE instance.

:class:`Ale` is the only object that holds an ``ALEInterface*``. Every call
goes through three guards before it crosses the boundary:

  - the handle must still be live (:class:`HandleClosedError` otherwise),
  - action/mode/difficulty codes must be in the engine's *current* sets,
  - output buffers must be at least as large as the engine will write.

Teardown happens exactly once: ``close()``, ``with`` exit and finalization all
funnel through the same path, which clears the pointer before ``ALE_del``.

Not thread-safe. One owner issues calls at a time; share across threads only
behind an external lock.
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path
from typing import Any, Callable, Optional, Union

import numpy as np

from . import validation
from .buffers import (
    ScreenChannels,
    as_writable_u8,
    required_ram_size,
    required_screen_bytes,
    screen_dims,
    validate,
)
from .config import EngineConfig, SettingValue, apply_setting
from .errors import EngineAllocationError, HandleClosedError, SnapshotFlavorWarning
from .native import NativeEngine, load_native, set_logger_mode
from .roms import (
    BundledRom,
    DirectoryRomTable,
    RomLike,
    RomTable,
    resolve_rom_path,
    rom_title,
    transient_rom,
)
from .state import AleState, StateFlavor, decode_state, encode_state


class Ale:
    """Arcade Learning Environment instance with checked operations."""

    def __init__(
        self,
        *,
        config: Optional[EngineConfig] = None,
        native: Optional[NativeEngine] = None,
        rom_table: Optional[RomTable] = None,
    ) -> None:
        cfg = config if config is not None else EngineConfig()
        self._handle: Optional[int] = None
        self._native: NativeEngine = native if native is not None else load_native(cfg.lib_path)
        self._rom_table: RomTable = rom_table if rom_table is not None else DirectoryRomTable(cfg.roms_dir)
        self.rom_path: Optional[Path] = None
        self.rom_name: Optional[str] = None

        handle = self._native.create()
        if not handle:
            raise EngineAllocationError("ALE_new returned a null engine instance")
        self._handle = int(handle)

        try:
            if cfg.logger_mode is not None:
                set_logger_mode(cfg.logger_mode, self._native)
            for key, value in cfg.settings.items():
                apply_setting(self._native, self._handle, key, value)
        except BaseException:
            self.close()
            raise

    # ------------------------------------------------------------------ lifecycle

    @property
    def native(self) -> NativeEngine:
        return self._native

    @property
    def closed(self) -> bool:
        return self._handle is None

    def _live(self) -> int:
        if self._handle is None:
            raise HandleClosedError("engine handle has been released")
        return self._handle

    def close(self) -> None:
        """Release the native instance. Further calls are no-ops."""

        handle, self._handle = self._handle, None
        if handle is None:
            return
        self._native.destroy(handle)

    def __enter__(self) -> "Ale":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __del__(self) -> None:  # pragma: no cover
        try:
            self.close()
        except Exception:
            pass

    def __repr__(self) -> str:
        status = "closed" if self._handle is None else "live"
        return f"Ale(rom={self.rom_name!r}, {status})"

    # ------------------------------------------------------------------ settings

    def get_string(self, key: str) -> str:
        return self._native.get_string(self._live(), key)

    def get_int(self, key: str) -> int:
        return self._native.get_int(self._live(), key)

    def get_bool(self, key: str) -> bool:
        return self._native.get_bool(self._live(), key)

    def get_float(self, key: str) -> float:
        return self._native.get_float(self._live(), key)

    def set_string(self, key: str, value: str) -> None:
        self._native.set_string(self._live(), key, value)

    def set_int(self, key: str, value: int) -> None:
        self._native.set_int(self._live(), key, value)

    def set_bool(self, key: str, value: bool) -> None:
        self._native.set_bool(self._live(), key, value)

    def set_float(self, key: str, value: float) -> None:
        self._native.set_float(self._live(), key, value)

    def set(self, key: str, value: SettingValue) -> None:
        """Set a setting through the setter matching ``type(value)``.

        Settings take effect on the next :meth:`load_rom`.
        """

        apply_setting(self._native, self._live(), key, value)

    # ------------------------------------------------------------------ ROM loading

    def load_rom(self, rom: RomLike) -> None:
        """Reset the console and load a game.

        ``rom`` is either a :class:`BundledRom` or a path to a ROM image.
        Pending setting changes are applied by this call.
        """

        if isinstance(rom, BundledRom):
            self.load_bundled_rom(rom)
            return
        handle = self._live()
        path = resolve_rom_path(rom)
        self._native.load_rom(handle, str(path))
        self.rom_path = path
        self.rom_name = path.stem

    def load_bundled_rom(self, rom: Union[BundledRom, str]) -> None:
        """Load a title from the ROM table via a transient ``<title>.bin`` file."""

        handle = self._live()
        title = rom_title(rom)
        with transient_rom(title, self._rom_table) as path:
            self._native.load_rom(handle, str(path))
        self.rom_path = None
        self.rom_name = title

    # ------------------------------------------------------------------ stepping

    def act(self, action: int) -> int:
        """Apply one action and return the reward.

        ``action`` must be in :meth:`legal_action_set`; anything else raises
        :class:`~safe_ale.errors.IllegalActionError` without touching the
        engine. The game-over screen still accepts actions, so check
        :meth:`is_game_over` and reset when needed.
        """

        handle = self._live()
        code = validation.check_action(self._native, handle, action)
        return int(self._native.act(handle, code))

    def is_game_over(self) -> bool:
        return bool(self._native.game_over(self._live()))

    def reset_game(self) -> None:
        """Reset the episode, not the full system."""

        self._native.reset_game(self._live())

    # ------------------------------------------------------------------ modes / difficulties / actions

    def available_modes(self) -> list[int]:
        return validation.available_modes(self._native, self._live())

    def set_mode(self, mode: int) -> None:
        handle = self._live()
        self._native.set_mode(handle, validation.check_mode(self._native, handle, mode))

    def available_difficulties(self) -> list[int]:
        return validation.available_difficulties(self._native, self._live())

    def set_difficulty(self, difficulty: int) -> None:
        handle = self._live()
        self._native.set_difficulty(handle, validation.check_difficulty(self._native, handle, difficulty))

    def legal_action_set(self) -> list[int]:
        return validation.legal_actions(self._native, self._live())

    def minimal_action_set(self) -> list[int]:
        return validation.minimal_actions(self._native, self._live())

    # ------------------------------------------------------------------ counters

    def frame_number(self) -> int:
        """Frames since the ROM was loaded."""

        return int(self._native.frame_number(self._live()))

    def episode_frame_number(self) -> int:
        return int(self._native.episode_frame_number(self._live()))

    def lives(self) -> int:
        return int(self._native.lives(self._live()))

    # ------------------------------------------------------------------ RAM + screen

    def ram_size(self) -> int:
        return required_ram_size(self._native, self._live())

    def screen_width(self) -> int:
        return screen_dims(self._native, self._live())[0]

    def screen_height(self) -> int:
        return screen_dims(self._native, self._live())[1]

    def _fill(
        self,
        what: str,
        required: int,
        shape: tuple[int, ...],
        fill: Callable[[int, np.ndarray], None],
        buf: Any,
    ) -> Any:
        handle = self._live()
        if buf is None:
            out = np.zeros(shape, dtype=np.uint8)
            fill(handle, out)
            return out
        view = as_writable_u8(buf)
        validate(view.size, required, what)
        fill(handle, view)
        return buf

    def get_ram(self, buf: Any = None) -> Any:
        """Copy console RAM into ``buf`` (or a new ``uint8`` array).

        ``buf`` must hold at least :meth:`ram_size` bytes.
        """

        size = self.ram_size()
        return self._fill("RAM", size, (size,), self._native.get_ram, buf)

    def _screen(self, what: str, channels: ScreenChannels, fill: Callable[[int, np.ndarray], None], buf: Any) -> Any:
        handle = self._live()
        required = required_screen_bytes(self._native, handle, channels)
        width, height = screen_dims(self._native, handle)
        shape = (height, width, 3) if channels is ScreenChannels.RGB else (height, width)
        return self._fill(what, required, shape, fill, buf)

    def get_screen_rgb(self, buf: Any = None) -> Any:
        """RGB pixels; ``(x, y)`` starts at byte ``(y * width + x) * 3``."""

        return self._screen("RGB screen", ScreenChannels.RGB, self._native.get_screen_rgb, buf)

    def get_screen_grayscale(self, buf: Any = None) -> Any:
        """Luminance pixels (0 = black, 255 = white) at byte ``y * width + x``."""

        return self._screen("grayscale screen", ScreenChannels.GRAYSCALE, self._native.get_screen_grayscale, buf)

    def get_screen(self, buf: Any = None) -> Any:
        """Raw palette indices, one byte per pixel."""

        return self._screen("screen", ScreenChannels.GRAYSCALE, self._native.get_screen, buf)

    def save_screen_png(self, filename: Union[str, "os.PathLike[str]"]) -> None:
        handle = self._live()
        path = Path(filename)
        if not path.parent.is_dir():
            raise FileNotFoundError(f"Directory does not exist: {path.parent}")
        self._native.save_screen_png(handle, str(path))

    # ------------------------------------------------------------------ snapshots

    def save_state(self) -> None:
        """Save into the engine's single internal slot (see :meth:`load_state`)."""

        self._native.save_state(self._live())

    def load_state(self) -> None:
        self._native.load_state(self._live())

    def clone_state(self) -> AleState:
        """Detached snapshot without the PRNG state; safe for planning."""

        return AleState(self._native, self._native.clone_state(self._live()), StateFlavor.ENVIRONMENT)

    def clone_system_state(self) -> AleState:
        """Detached snapshot including the PRNG state; for persistence."""

        return AleState(self._native, self._native.clone_system_state(self._live()), StateFlavor.SYSTEM)

    def restore_state(self, state: AleState) -> None:
        handle = self._live()
        _warn_flavor(state, StateFlavor.ENVIRONMENT, "restore_state")
        self._native.restore_state(handle, state.raw_pointer())

    def restore_system_state(self, state: AleState) -> None:
        handle = self._live()
        _warn_flavor(state, StateFlavor.SYSTEM, "restore_system_state")
        self._native.restore_system_state(handle, state.raw_pointer())

    def encode_state(self, state: AleState, buf: Any = None) -> bytes:
        return encode_state(state, buf)

    def decode_state(self, data: Any, flavor: StateFlavor = StateFlavor.UNKNOWN) -> AleState:
        return decode_state(data, flavor, native=self._native)


def _warn_flavor(state: AleState, expected: StateFlavor, op: str) -> None:
    # The engine's behavior on a mismatched restore is unspecified; it is
    # forwarded unchanged.
    if state.flavor is StateFlavor.UNKNOWN or state.flavor is expected:
        return
    warnings.warn(
        f"{op}() received a {state.flavor.value} snapshot; expected {expected.value}",
        SnapshotFlavorWarning,
        stacklevel=3,
    )


__all__ = ["Ale"]
