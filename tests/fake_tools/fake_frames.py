"""Writes ``COUNT`` zero-padded PNG frames into ``DIR`` in shuffled order."""

import random
import sys
from pathlib import Path


def main(argv):
    out_dir, count = Path(argv[0]), int(argv[1])
    indices = list(range(1, count + 1))
    random.Random(7).shuffle(indices)
    for index in indices:
        (out_dir / f"frame_{index:04d}.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
