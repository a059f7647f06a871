"""Codec stand-in that exits cleanly but writes bytes no container recognises."""

import sys
from pathlib import Path

Path(sys.argv[-1]).write_bytes(b"this is not a sticker container at all")
