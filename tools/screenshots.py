"""Save one PNG per step while playing random legal actions.

Usage:
  python tools/screenshots.py --game breakout --steps 120 --outdir shots
  python tools/screenshots.py --rom-path ~/roms/pong.bin --seed 7
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from safe_ale import Ale, BundledRom, load_engine_config


def main() -> int:
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--game", type=str, choices=[rom.value for rom in BundledRom])
    src.add_argument("--rom-path", type=Path)
    ap.add_argument("--steps", type=int, default=60)
    ap.add_argument("--outdir", type=Path, default=Path("screenshots"))
    ap.add_argument("--seed", type=int, default=0)
    ap.add_argument("--config", type=Path, default=None, help="Engine config YAML")
    ap.add_argument("--override", type=str, default=None, help="Dotted overrides, e.g. settings.frame_skip=2")
    args = ap.parse_args()

    cfg = load_engine_config(*([args.config] if args.config else []), overrides=args.override)
    cfg.settings.setdefault("random_seed", int(args.seed))
    args.outdir.mkdir(parents=True, exist_ok=True)
    rng = np.random.default_rng(args.seed)

    with Ale(config=cfg) as ale:
        ale.load_rom(BundledRom(args.game) if args.game else args.rom_path)
        actions = ale.legal_action_set()
        total = 0
        saved = 0
        for step in range(int(args.steps)):
            ale.save_screen_png(args.outdir / f"{step:04d}.png")
            saved += 1
            total += ale.act(actions[int(rng.integers(len(actions)))])
            if ale.is_game_over():
                print(f"[screenshots] game over at step {step}", flush=True)
                break
    print(f"[screenshots] saved {saved} frames to {args.outdir} (reward={total})", flush=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
