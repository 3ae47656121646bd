from __future__ import annotations

import os
from typing import Any, Dict, Optional, Tuple, Union

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from safe_ale.config import EngineConfig
from safe_ale.engine import Ale
from safe_ale.native import NativeEngine
from safe_ale.roms import BundledRom, RomTable
from safe_ale.state import AleState, StateFlavor

OBS_TYPES = ("rgb", "grayscale", "ram")


class AtariEnv(gym.Env):
    """Single-agent Gymnasium env over one :class:`~safe_ale.engine.Ale`.

    Observation types:
      - rgb: ``(H, W, 3)`` uint8 screen
      - grayscale: ``(H, W)`` uint8 luminance
      - ram: ``(ram_size,)`` uint8 console RAM

    Actions are indices into the minimal action set (or the legal set with
    ``full_action_space=True``); the engine codes are in ``action_set``.
    """

    metadata = {"render_modes": ["rgb_array"], "render_fps": 60}

    def __init__(
        self,
        game: Union[BundledRom, str, None] = None,
        *,
        rom_path: Optional[Union[str, "os.PathLike[str]"]] = None,
        obs_type: str = "rgb",
        frameskip: int = 4,
        full_action_space: bool = False,
        mode: Optional[int] = None,
        difficulty: Optional[int] = None,
        repeat_action_probability: float = 0.0,
        render_mode: Optional[str] = None,
        config: Optional[EngineConfig] = None,
        native: Optional[NativeEngine] = None,
        rom_table: Optional[RomTable] = None,
    ) -> None:
        if obs_type not in OBS_TYPES:
            raise ValueError(f"Invalid obs_type {obs_type!r}. Expected one of {OBS_TYPES}.")
        if int(frameskip) < 1:
            raise ValueError(f"frameskip must be >= 1, got {frameskip}")
        if render_mode is not None and render_mode not in self.metadata["render_modes"]:
            raise ValueError(f"Unsupported render_mode {render_mode!r}")
        if (game is None) == (rom_path is None):
            raise ValueError("Pass exactly one of game or rom_path.")

        self.obs_type = obs_type
        self.frameskip = int(frameskip)
        self.full_action_space = bool(full_action_space)
        self.render_mode = render_mode
        self._game = game
        self._rom_path = rom_path
        self._mode = mode
        self._difficulty = difficulty

        self.ale = Ale(config=config, native=native, rom_table=rom_table)
        try:
            self.ale.set_float("repeat_action_probability", float(repeat_action_probability))
            self._load()
        except BaseException:
            self.ale.close()
            raise

        self.action_set = self.ale.legal_action_set() if self.full_action_space else self.ale.minimal_action_set()
        self.action_space = spaces.Discrete(len(self.action_set))
        self.observation_space = spaces.Box(low=0, high=255, shape=self._obs_shape(), dtype=np.uint8)

    def _load(self) -> None:
        if self._game is not None:
            self.ale.load_rom(BundledRom(self._game))
        else:
            self.ale.load_rom(self._rom_path)  # type: ignore[arg-type]
        # Mode/difficulty only exist once a ROM is loaded, and a reload resets them.
        if self._mode is not None:
            self.ale.set_mode(self._mode)
        if self._difficulty is not None:
            self.ale.set_difficulty(self._difficulty)

    def _obs_shape(self) -> Tuple[int, ...]:
        if self.obs_type == "ram":
            return (self.ale.ram_size(),)
        height, width = self.ale.screen_height(), self.ale.screen_width()
        if self.obs_type == "rgb":
            return (height, width, 3)
        return (height, width)

    def _obs(self) -> np.ndarray:
        if self.obs_type == "ram":
            return self.ale.get_ram()
        if self.obs_type == "rgb":
            return self.ale.get_screen_rgb()
        return self.ale.get_screen_grayscale()

    def _info(self) -> Dict[str, Any]:
        return {
            "lives": self.ale.lives(),
            "episode_frame_number": self.ale.episode_frame_number(),
            "frame_number": self.ale.frame_number(),
        }

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        super().reset(seed=seed)
        if seed is not None:
            # The engine reads random_seed on ROM load; it only accepts int32.
            engine_seed = int(self.np_random.integers(0, 2**31 - 1))
            self.ale.set_int("random_seed", engine_seed)
            self._load()
        self.ale.reset_game()
        return self._obs(), self._info()

    def step(self, action: int) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        idx = int(action)
        if not 0 <= idx < len(self.action_set):
            raise ValueError(f"Action index {idx} out of range for {len(self.action_set)} actions")
        code = self.action_set[idx]
        reward = 0
        for _ in range(self.frameskip):
            reward += self.ale.act(code)
            if self.ale.is_game_over():
                break
        terminated = self.ale.is_game_over()
        return self._obs(), float(reward), terminated, False, self._info()

    def render(self) -> Optional[np.ndarray]:
        if self.render_mode == "rgb_array":
            return self.ale.get_screen_rgb()
        return None

    # Planning support
    def clone_state(self, include_rng: bool = False) -> AleState:
        return self.ale.clone_system_state() if include_rng else self.ale.clone_state()

    def restore_state(self, state: AleState) -> None:
        if state.flavor is StateFlavor.SYSTEM:
            self.ale.restore_system_state(state)
        else:
            self.ale.restore_state(state)

    def close(self) -> None:
        self.ale.close()
        super().close()
