"""ROM sources and transient materialization.

The engine only loads ROMs from a filesystem path, and it identifies the game
by the file stem (``breakout.bin`` -> Breakout). Bundled ROMs are therefore
written to ``<tmpdir>/<title>.bin`` right before ``loadROM`` and removed
afterwards.

ROM bytes come from a :class:`RomTable`; the repo does not ship ROM images.
:class:`DirectoryRomTable` reads ``<root>/<title>.bin`` where ``root`` defaults
to ``$ALE_ROMS_DIR`` or the repo-local ``roms/`` folder.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
import warnings
from enum import Enum
from pathlib import Path
from typing import Iterator, Mapping, Optional, Protocol, Union

from .errors import RomLoadError, RomMaterializationError


class BundledRom(str, Enum):
    """Standard Atari 2600 titles, valued by their ROM file stem."""

    ADVENTURE = "adventure"
    AIR_RAID = "air_raid"
    ALIEN = "alien"
    AMIDAR = "amidar"
    ASSAULT = "assault"
    ASTERIX = "asterix"
    ASTEROIDS = "asteroids"
    ATLANTIS = "atlantis"
    BANK_HEIST = "bank_heist"
    BATTLE_ZONE = "battle_zone"
    BEAM_RIDER = "beam_rider"
    BERZERK = "berzerk"
    BOWLING = "bowling"
    BOXING = "boxing"
    BREAKOUT = "breakout"
    CARNIVAL = "carnival"
    CENTIPEDE = "centipede"
    CHOPPER_COMMAND = "chopper_command"
    CRAZY_CLIMBER = "crazy_climber"
    DEFENDER = "defender"
    DEMON_ATTACK = "demon_attack"
    DOUBLE_DUNK = "double_dunk"
    ELEVATOR_ACTION = "elevator_action"
    ENDURO = "enduro"
    FISHING_DERBY = "fishing_derby"
    FREEWAY = "freeway"
    FROSTBITE = "frostbite"
    GOPHER = "gopher"
    GRAVITAR = "gravitar"
    HERO = "hero"
    ICE_HOCKEY = "ice_hockey"
    JAMESBOND = "jamesbond"
    JOURNEY_ESCAPE = "journey_escape"
    KABOOM = "kaboom"
    KANGAROO = "kangaroo"
    KRULL = "krull"
    KUNG_FU_MASTER = "kung_fu_master"
    MONTEZUMA_REVENGE = "montezuma_revenge"
    MS_PACMAN = "ms_pacman"
    NAME_THIS_GAME = "name_this_game"
    PHOENIX = "phoenix"
    PITFALL = "pitfall"
    PONG = "pong"
    POOYAN = "pooyan"
    PRIVATE_EYE = "private_eye"
    QBERT = "qbert"
    RIVERRAID = "riverraid"
    ROAD_RUNNER = "road_runner"
    ROBOTANK = "robotank"
    SEAQUEST = "seaquest"
    SKIING = "skiing"
    SOLARIS = "solaris"
    SPACE_INVADERS = "space_invaders"
    STAR_GUNNER = "star_gunner"
    TENNIS = "tennis"
    TIME_PILOT = "time_pilot"
    TUTANKHAM = "tutankham"
    UP_N_DOWN = "up_n_down"
    VENTURE = "venture"
    VIDEO_PINBALL = "video_pinball"
    WIZARD_OF_WOR = "wizard_of_wor"
    YARS_REVENGE = "yars_revenge"
    ZAXXON = "zaxxon"

    @property
    def filename(self) -> str:
        return f"{self.value}.bin"

    @property
    def display_name(self) -> str:
        """CamelCase name, e.g. ``SpaceInvaders``."""

        return "".join(part.capitalize() for part in self.value.split("_"))


RomLike = Union[BundledRom, str, "os.PathLike[str]"]


class RomTable(Protocol):
    """Lookup of ROM bytes by title."""

    def get(self, title: str) -> Optional[bytes]:
        """Return the raw ROM image, or ``None`` if the title is unknown."""

    def titles(self) -> tuple[str, ...]:
        """Titles this table can provide."""


class MappingRomTable:
    """In-memory table, e.g. fed by a packaging step or a test fixture."""

    def __init__(self, roms: Mapping[str, bytes]) -> None:
        self._roms = {str(k): bytes(v) for k, v in roms.items()}

    def get(self, title: str) -> Optional[bytes]:
        return self._roms.get(str(title))

    def titles(self) -> tuple[str, ...]:
        return tuple(sorted(self._roms))


def default_roms_dir() -> Path:
    env = os.environ.get("ALE_ROMS_DIR")
    if env:
        return Path(env).expanduser()
    return Path(__file__).resolve().parents[1] / "roms"


class DirectoryRomTable:
    """Reads ``<root>/<title>.bin`` on demand."""

    def __init__(self, root: Optional[Union[str, Path]] = None) -> None:
        self.root = Path(root).expanduser() if root else default_roms_dir()

    def get(self, title: str) -> Optional[bytes]:
        path = self.root / f"{title}.bin"
        if not path.is_file():
            return None
        return path.read_bytes()

    def titles(self) -> tuple[str, ...]:
        if not self.root.is_dir():
            return ()
        return tuple(sorted(p.stem for p in self.root.glob("*.bin")))


def rom_title(rom: Union[BundledRom, str]) -> str:
    if isinstance(rom, BundledRom):
        return rom.value
    title = str(rom)
    try:
        return BundledRom(title).value
    except ValueError:
        raise RomLoadError(f"unknown bundled ROM title: {title!r}") from None


def rom_bytes(rom: Union[BundledRom, str], table: Optional[RomTable] = None) -> bytes:
    title = rom_title(rom)
    source = table if table is not None else DirectoryRomTable()
    data = source.get(title)
    if data is None:
        where = getattr(source, "root", type(source).__name__)
        raise RomLoadError(f"ROM for {title!r} is not available from {where}")
    return data


def materialize_rom(title: str, data: bytes, directory: Union[str, Path]) -> Path:
    """Write ``data`` to ``<directory>/<title>.bin`` and return the path."""

    path = Path(directory) / f"{title}.bin"
    try:
        path.write_bytes(data)
    except OSError as exc:
        raise RomMaterializationError(f"failed to write ROM {title!r} to {path}: {exc}") from exc
    return path


@contextlib.contextmanager
def transient_rom(rom: Union[BundledRom, str], table: Optional[RomTable] = None) -> Iterator[Path]:
    """Yield a readable path holding the ROM; the file is removed on exit."""

    title = rom_title(rom)
    data = rom_bytes(title, table)
    try:
        tmpdir = tempfile.mkdtemp(prefix="safe_ale_rom_")
    except OSError as exc:
        raise RomMaterializationError(f"failed to create a transient directory for {title!r}: {exc}") from exc
    try:
        yield materialize_rom(title, data, tmpdir)
    finally:
        try:
            shutil.rmtree(tmpdir)
        except OSError as exc:
            warnings.warn(f"Failed to remove transient ROM directory {tmpdir}: {exc}", RuntimeWarning)


def resolve_rom_path(path: Union[str, "os.PathLike[str]"]) -> Path:
    """Check a caller-supplied ROM path is a readable file."""

    p = Path(path).expanduser()
    if not p.is_file():
        raise RomLoadError(f"ROM file not found: {p}")
    if not os.access(p, os.R_OK):
        raise RomLoadError(f"ROM file is not readable: {p}")
    return p


__all__ = [
    "BundledRom",
    "RomLike",
    "RomTable",
    "MappingRomTable",
    "DirectoryRomTable",
    "default_roms_dir",
    "rom_title",
    "rom_bytes",
    "materialize_rom",
    "transient_rom",
    "resolve_rom_path",
]
