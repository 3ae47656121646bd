"""Gymnasium adapter over :class:`safe_ale.Ale`.

This package provides:
- AtariEnv: single-agent Gymnasium Env with rgb/grayscale/ram observations
- register_envs: registers ``SafeAle/<Title>-v0`` ids for the bundled titles
"""

from .atari_env import AtariEnv
from .register_env import env_id, register_envs

__all__ = ["AtariEnv", "env_id", "register_envs"]
