"""Step a title and dump console RAM to disk, one .npy per frame."""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

import numpy as np

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from safe_ale import Ale, BundledRom, load_engine_config


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument('--game', type=str, default='breakout', choices=[rom.value for rom in BundledRom])
    ap.add_argument('--frames', type=int, default=60)
    ap.add_argument('--outdir', type=str, default='debug_dumps')
    ap.add_argument('--action', type=int, default=None, help='Fixed action code (default: random legal)')
    ap.add_argument('--seed', type=int, default=0)
    ap.add_argument('--config', type=str, default=None)
    args = ap.parse_args()

    os.makedirs(args.outdir, exist_ok=True)
    cfg = load_engine_config(*([args.config] if args.config else []))
    rng = np.random.default_rng(args.seed)
    i = -1
    with Ale(config=cfg) as ale:
        ale.load_rom(BundledRom(args.game))
        legal = ale.legal_action_set()
        ram = np.zeros((ale.ram_size(),), dtype=np.uint8)
        for i in range(args.frames):
            a = args.action if args.action is not None else legal[int(rng.integers(len(legal)))]
            ale.act(a)
            ale.get_ram(ram)
            np.save(os.path.join(args.outdir, f'ram_{i:04d}.npy'), ram)
            if ale.is_game_over():
                break
    print(f"Dumped up to {i+1} frames into {args.outdir}", flush=True)


if __name__ == '__main__':
    main()
