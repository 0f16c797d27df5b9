"""Small helpers: timestamps, bar rendering and site configuration."""

from __future__ import annotations

import math
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

SITE_FILENAME = "site.conf"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_PARTIAL_BLOCKS = {
    1: "▏",
    2: "▎",
    3: "▍",
    4: "▌",
    5: "▋",
    6: "▊",
    7: "▉",
}


def time_t_to_datetime(timestamp: int) -> datetime:
    """Convert a Unix timestamp to an aware UTC datetime, or the epoch if out of range."""
    try:
        return _EPOCH + timedelta(seconds=timestamp)
    except OverflowError:
        return _EPOCH


def _round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero, clamped at zero."""
    if math.isnan(value) or value <= 0:
        return 0
    if math.isinf(value):
        raise OverflowError("cannot render an infinite percentage")
    return math.floor(value + 0.5)


def count_blocks(max_blocks: int, percentage: float) -> tuple[int, int, str | None]:
    """Split a fill fraction into full blocks, empty blocks and an optional partial block.

    Each block is divided into eighths; the partial block is the Unicode
    character for the leftover eighths, or None when there are none.
    """
    filled_segments = _round_half_away(max_blocks * 8.0 * percentage)
    full_blocks, remainder = divmod(filled_segments, 8)
    partial = _PARTIAL_BLOCKS.get(remainder)
    used = full_blocks + (1 if remainder else 0)
    empty_blocks = max(0, max_blocks - used)
    return full_blocks, empty_blocks, partial


def read_site_cluster(directory: str | Path | None = None) -> str | None:
    """Return the trimmed contents of ``site.conf`` in ``directory``, or None.

    Without a directory, the directory of the running program is used.
    """
    if directory is None:
        directory = Path(sys.argv[0]).resolve().parent
    path = Path(directory) / SITE_FILENAME
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    return content.strip()