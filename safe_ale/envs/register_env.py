"""Gymnasium env registration helper for the Atari titles.

Usage:
    from safe_ale.envs.register_env import register_envs
    register_envs()  # registers 'SafeAle/Breakout-v0', 'SafeAle/Pong-v0', ...
    env = gym.make("SafeAle/Breakout-v0", obs_type="grayscale")
"""

from __future__ import annotations

from typing import Iterable, Optional

from gymnasium.envs.registration import register, registry

from safe_ale.roms import BundledRom

_NAMESPACE = "SafeAle"
_ENTRY_POINT = "safe_ale.envs.atari_env:AtariEnv"


def env_id(rom: BundledRom) -> str:
    return f"{_NAMESPACE}/{rom.display_name}-v0"


def register_envs(roms: Optional[Iterable[BundledRom]] = None) -> list[str]:
    """Register one env id per title; safe to call repeatedly."""

    ids = []
    for rom in roms if roms is not None else BundledRom:
        rom_id = env_id(rom)
        ids.append(rom_id)
        # `register()` warns (and overrides) when called repeatedly.
        if rom_id in registry:
            continue
        register(
            id=rom_id,
            entry_point=_ENTRY_POINT,
            kwargs={"game": rom.value},
            max_episode_steps=None,
        )
    return ids


__all__ = ["register_envs", "env_id"]
