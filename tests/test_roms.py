from __future__ import annotations

from pathlib import Path

import pytest

from safe_ale import Ale, BundledRom, DirectoryRomTable, MappingRomTable, RomLoadError, RomMaterializationError
from safe_ale.roms import materialize_rom, rom_title, transient_rom


def test_bundled_rom_materialized_as_title_bin(ale, fake_native, rom_table) -> None:
    path, name, data = fake_native.loaded[-1]
    assert name == "breakout.bin"
    assert data == rom_table.get("breakout")
    assert not Path(path).exists()
    assert ale.rom_name == "breakout"
    assert ale.rom_path is None


def test_load_rom_from_path(fake_native, tmp_path) -> None:
    rom = tmp_path / "pong.bin"
    rom.write_bytes(b"PONG")
    with Ale(native=fake_native, rom_table=MappingRomTable({})) as ale:
        ale.load_rom(rom)
        assert ale.rom_name == "pong"
        assert ale.rom_path == rom
    assert fake_native.loaded[-1][0] == str(rom)


def test_missing_rom_path(fake_native, tmp_path) -> None:
    with Ale(native=fake_native) as ale:
        with pytest.raises(RomLoadError):
            ale.load_rom(tmp_path / "nope.bin")
    assert fake_native.called("load_rom") == 0


def test_unknown_title_and_unavailable_rom(fake_native, rom_table) -> None:
    with pytest.raises(RomLoadError, match="unknown bundled ROM"):
        rom_title("not_a_game")
    with Ale(native=fake_native, rom_table=rom_table) as ale:
        with pytest.raises(RomLoadError, match="not available"):
            ale.load_bundled_rom(BundledRom.SEAQUEST)
        ale.load_bundled_rom("pong")
        assert ale.rom_name == "pong"
    assert fake_native.called("load_rom") == 1


def test_materialize_failure_is_rom_load_error(tmp_path) -> None:
    with pytest.raises(RomMaterializationError) as exc:
        materialize_rom("breakout", b"x", tmp_path / "missing-dir")
    assert isinstance(exc.value, RomLoadError)
    assert isinstance(exc.value, OSError)


def test_transient_rom_cleans_up_even_on_error(rom_table) -> None:
    seen = []
    with pytest.raises(RuntimeError):
        with transient_rom(BundledRom.BREAKOUT, rom_table) as path:
            seen.append(path)
            assert path.read_bytes() == rom_table.get("breakout")
            raise RuntimeError("boom")
    assert not seen[0].exists()
    assert not seen[0].parent.exists()


def test_directory_rom_table(tmp_path, monkeypatch) -> None:
    (tmp_path / "breakout.bin").write_bytes(b"B")
    (tmp_path / "notes.txt").write_text("x")
    monkeypatch.setenv("ALE_ROMS_DIR", str(tmp_path))
    table = DirectoryRomTable()
    assert table.root == tmp_path
    assert table.titles() == ("breakout",)
    assert table.get("breakout") == b"B"
    assert table.get("pong") is None
    assert DirectoryRomTable(tmp_path / "absent").titles() == ()


def test_bundled_rom_names() -> None:
    assert BundledRom("space_invaders").display_name == "SpaceInvaders"
    assert BundledRom.PONG.filename == "pong.bin"
