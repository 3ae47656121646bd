from __future__ import annotations

import struct
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
import pytest

from safe_ale import Ale, BundledRom, MappingRomTable

_STATE_MAGIC = b"FAKE\x00"
_STATE_HEADER = struct.Struct("<5sB6q")


class FakeEngine:
    """Pure-Python stand-in for libale_c.

    Records every call in ``calls`` and asserts on native-side misuse
    (double free, unknown handles, undersized fills) the way a real crash
    would surface it.
    """

    RAM_SIZE = 128
    WIDTH = 160
    HEIGHT = 210

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.instances: Dict[int, Dict[str, Any]] = {}
        self.states: Dict[int, Dict[str, Any]] = {}
        self.destroyed: list[int] = []
        self.deleted: list[int] = []
        self.loaded: list[tuple[str, str, bytes]] = []
        self.logger_mode: Optional[int] = None
        self.fail_create = False
        self.legal = list(range(18))
        self.minimal = [0, 1, 3, 4]
        self.modes = [0, 1, 2]
        self.difficulties = [0, 1]
        self.ram_size_override: Optional[int] = None
        self.episode_length = 1000
        self._next = 1

    # helpers
    def _rec(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    def called(self, name: str) -> int:
        return sum(1 for n, _ in self.calls if n == name)

    def _inst(self, handle: int) -> Dict[str, Any]:
        assert handle in self.instances, f"unknown or released engine handle {handle}"
        return self.instances[handle]

    def _alloc(self) -> int:
        ptr = self._next
        self._next += 1
        return ptr

    @staticmethod
    def _fresh(seed: int = 0) -> Dict[str, Any]:
        return {
            "frame": 0,
            "episode_frame": 0,
            "lives": 3,
            "mode": 0,
            "difficulty": 0,
            "rng": int(seed),
            "ram": (np.arange(FakeEngine.RAM_SIZE, dtype=np.uint8) ^ 0x5A),
        }

    # lifecycle
    def create(self) -> Optional[int]:
        self._rec("create")
        if self.fail_create:
            return None
        handle = self._alloc()
        self.instances[handle] = {"settings": {}, "rom": None, "slot": None, **self._fresh()}
        return handle

    def destroy(self, handle: int) -> None:
        self._rec("destroy", handle)
        self._inst(handle)
        del self.instances[handle]
        self.destroyed.append(handle)

    # settings
    def get_string(self, handle, key):
        return str(self._inst(handle)["settings"].get(key, ""))

    def get_int(self, handle, key):
        return int(self._inst(handle)["settings"].get(key, 0))

    def get_bool(self, handle, key):
        return bool(self._inst(handle)["settings"].get(key, False))

    def get_float(self, handle, key):
        return float(self._inst(handle)["settings"].get(key, 0.0))

    def set_string(self, handle, key, value):
        self._rec("set_string", handle, key, value)
        self._inst(handle)["settings"][key] = value

    def set_int(self, handle, key, value):
        self._rec("set_int", handle, key, value)
        self._inst(handle)["settings"][key] = value

    def set_bool(self, handle, key, value):
        self._rec("set_bool", handle, key, value)
        self._inst(handle)["settings"][key] = value

    def set_float(self, handle, key, value):
        self._rec("set_float", handle, key, value)
        self._inst(handle)["settings"][key] = value

    # rom + stepping
    def load_rom(self, handle, path):
        self._rec("load_rom", handle, path)
        inst = self._inst(handle)
        p = Path(path)
        self.loaded.append((str(p), p.name, p.read_bytes()))
        inst["rom"] = p.stem
        inst.update(self._fresh(inst["settings"].get("random_seed", 0)))

    def act(self, handle, action):
        self._rec("act", handle, action)
        inst = self._inst(handle)
        inst["rng"] = (inst["rng"] * 1103515245 + 12345) % (2**31)
        inst["frame"] += 1
        inst["episode_frame"] += 1
        ram = inst["ram"]
        idx = inst["episode_frame"] % self.RAM_SIZE
        ram[idx] = (int(ram[idx]) * 31 + int(action) + inst["episode_frame"]) & 0xFF
        return 1 if action == 1 else 0

    def game_over(self, handle):
        return self._inst(handle)["episode_frame"] >= self.episode_length

    def reset_game(self, handle):
        self._rec("reset_game", handle)
        inst = self._inst(handle)
        inst["episode_frame"] = 0
        inst["lives"] = 3

    # value sets
    def available_modes_size(self, handle):
        self._inst(handle)
        return len(self.modes)

    def available_modes(self, handle, out):
        self._rec("available_modes", handle)
        out[: len(self.modes)] = self.modes

    def set_mode(self, handle, mode):
        self._rec("set_mode", handle, mode)
        self._inst(handle)["mode"] = mode

    def available_difficulties_size(self, handle):
        self._inst(handle)
        return len(self.difficulties)

    def available_difficulties(self, handle, out):
        self._rec("available_difficulties", handle)
        out[: len(self.difficulties)] = self.difficulties

    def set_difficulty(self, handle, difficulty):
        self._rec("set_difficulty", handle, difficulty)
        self._inst(handle)["difficulty"] = difficulty

    def legal_action_size(self, handle):
        self._inst(handle)
        return len(self.legal)

    def legal_action_set(self, handle, out):
        out[: len(self.legal)] = self.legal

    def minimal_action_size(self, handle):
        self._inst(handle)
        return len(self.minimal)

    def minimal_action_set(self, handle, out):
        out[: len(self.minimal)] = self.minimal

    # counters
    def frame_number(self, handle):
        return self._inst(handle)["frame"]

    def episode_frame_number(self, handle):
        return self._inst(handle)["episode_frame"]

    def lives(self, handle):
        return self._inst(handle)["lives"]

    # memory + screen
    def ram_size(self, handle):
        self._inst(handle)
        return self.RAM_SIZE if self.ram_size_override is None else self.ram_size_override

    def get_ram(self, handle, out):
        self._rec("get_ram", handle)
        ram = self._inst(handle)["ram"]
        assert out.size >= ram.size, "getRAM overflow"
        out.reshape(-1)[: ram.size] = ram

    def screen_width(self, handle):
        self._inst(handle)
        return self.WIDTH

    def screen_height(self, handle):
        self._inst(handle)
        return self.HEIGHT

    def _pixels(self, handle, channels):
        inst = self._inst(handle)
        n = self.WIDTH * self.HEIGHT * channels
        return ((np.arange(n, dtype=np.int64) + inst["episode_frame"] * channels) % 251).astype(np.uint8)

    def _fill_screen(self, name, handle, out, channels):
        self._rec(name, handle)
        px = self._pixels(handle, channels)
        assert out.size >= px.size, f"{name} overflow"
        out.reshape(-1)[: px.size] = px

    def get_screen(self, handle, out):
        self._fill_screen("get_screen", handle, out, 1)

    def get_screen_rgb(self, handle, out):
        self._fill_screen("get_screen_rgb", handle, out, 3)

    def get_screen_grayscale(self, handle, out):
        self._fill_screen("get_screen_grayscale", handle, out, 1)

    # snapshots
    def _snapshot(self, inst, system):
        snap = {k: inst[k] for k in ("frame", "episode_frame", "lives", "mode", "difficulty")}
        snap["ram"] = inst["ram"].copy()
        snap["rng"] = inst["rng"] if system else None
        return snap

    def _restore(self, inst, snap):
        for k in ("frame", "episode_frame", "lives", "mode", "difficulty"):
            inst[k] = snap[k]
        inst["ram"] = snap["ram"].copy()
        if snap["rng"] is not None:
            inst["rng"] = snap["rng"]

    def save_state(self, handle):
        self._rec("save_state", handle)
        inst = self._inst(handle)
        inst["slot"] = self._snapshot(inst, system=False)

    def load_state(self, handle):
        self._rec("load_state", handle)
        inst = self._inst(handle)
        if inst["slot"] is not None:
            self._restore(inst, inst["slot"])

    def clone_state(self, handle):
        self._rec("clone_state", handle)
        ptr = 10_000 + self._alloc()
        self.states[ptr] = self._snapshot(self._inst(handle), system=False)
        return ptr

    def clone_system_state(self, handle):
        self._rec("clone_system_state", handle)
        ptr = 10_000 + self._alloc()
        self.states[ptr] = self._snapshot(self._inst(handle), system=True)
        return ptr

    def restore_state(self, handle, state):
        self._rec("restore_state", handle, state)
        assert state in self.states, f"unknown or deleted state {state}"
        self._restore(self._inst(handle), self.states[state])

    def restore_system_state(self, handle, state):
        self._rec("restore_system_state", handle, state)
        assert state in self.states, f"unknown or deleted state {state}"
        self._restore(self._inst(handle), self.states[state])

    def delete_state(self, state):
        self._rec("delete_state", state)
        assert state in self.states, f"double delete of state {state}"
        del self.states[state]
        self.deleted.append(state)

    def _encode(self, state):
        assert state in self.states, f"unknown or deleted state {state}"
        snap = self.states[state]
        has_rng = snap["rng"] is not None
        header = _STATE_HEADER.pack(
            _STATE_MAGIC,
            int(has_rng),
            snap["frame"],
            snap["episode_frame"],
            snap["lives"],
            snap["mode"],
            snap["difficulty"],
            snap["rng"] if has_rng else 0,
        )
        return header + snap["ram"].tobytes()

    def encode_state_len(self, state):
        return len(self._encode(state))

    def encode_state(self, state, out, length):
        self._rec("encode_state", state, length)
        data = self._encode(state)
        assert length == len(data)
        assert out.size >= length, "encodeState overflow"
        out[:length] = np.frombuffer(data, dtype=np.uint8)

    def decode_state(self, data):
        self._rec("decode_state", len(data))
        if len(data) != _STATE_HEADER.size + self.RAM_SIZE:
            return None
        magic, has_rng, frame, episode_frame, lives, mode, difficulty, rng = _STATE_HEADER.unpack_from(data)
        if magic != _STATE_MAGIC:
            return None
        ptr = 10_000 + self._alloc()
        self.states[ptr] = {
            "frame": frame,
            "episode_frame": episode_frame,
            "lives": lives,
            "mode": mode,
            "difficulty": difficulty,
            "rng": rng if has_rng else None,
            "ram": np.frombuffer(data[_STATE_HEADER.size :], dtype=np.uint8).copy(),
        }
        return ptr

    # diagnostics
    def save_screen_png(self, handle, filename):
        self._rec("save_screen_png", handle, filename)
        self._inst(handle)
        Path(filename).write_bytes(b"\x89PNG\r\n\x1a\n")

    def set_logger_mode(self, mode):
        self._rec("set_logger_mode", mode)
        self.logger_mode = int(mode)


BREAKOUT_BYTES = b"\x00BREAKOUT\x00\xffROM"


@pytest.fixture
def fake_native() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def rom_table() -> MappingRomTable:
    return MappingRomTable({"breakout": BREAKOUT_BYTES, "pong": b"PONG"})


@pytest.fixture
def ale(fake_native, rom_table):
    engine = Ale(native=fake_native, rom_table=rom_table)
    engine.load_rom(BundledRom.BREAKOUT)
    yield engine
    engine.close()
