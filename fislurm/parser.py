"""Parsing and compression of Slurm hostlists and TRES strings."""

from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Iterable

_RANGED_EXPR = re.compile(r"(.*)\[([^\]]+)\](.*)")
_NUMBERED_NAME = re.compile(r"(\D*)(\d+)(\D*)")
_UNSIGNED = re.compile(r"\+?[0-9]+")

_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1

_UNIT_MULTIPLIERS = {
    "k": 1024,
    "m": 1024**2,
    "g": 1024**3,
    "t": 1024**4,
}


def _parse_unsigned(text: str, limit: int) -> int | None:
    """Parse an unsigned decimal integer no greater than ``limit``, or return None."""
    if not _UNSIGNED.fullmatch(text):
        return None
    value = int(text)
    return value if value <= limit else None


def _split_top_level(hostlist: str) -> list[str]:
    """Split a hostlist on commas that are not inside brackets."""
    expressions: list[str] = []
    current: list[str] = []
    depth = 0
    for ch in hostlist:
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
        elif ch == "," and depth == 0:
            if current:
                expressions.append("".join(current).strip())
                current = []
            continue
        current.append(ch)
    if current:
        expressions.append("".join(current).strip())
    return expressions


def _expand_ranges(prefix: str, range_list: str, suffix: str) -> Iterable[str]:
    for spec in range_list.split(","):
        if "-" in spec:
            start_str, end_str = spec.split("-", 1)
            start = _parse_unsigned(start_str, _U32_MAX)
            end = _parse_unsigned(end_str, _U32_MAX)
            if start is None or end is None or start > end:
                continue
            width = len(start_str)
            for number in range(start, end + 1):
                yield f"{prefix}{number:0{width}d}{suffix}"
        else:
            yield f"{prefix}{spec}{suffix}"


def parse_slurm_hostlist(hostlist: str) -> list[str]:
    """Expand a Slurm hostlist such as ``"n[01-03],login"`` into host names.

    Zero padding follows the width of a range's start value; ranges whose
    start exceeds their end are ignored.
    """
    expanded: list[str] = []
    for part in _split_top_level(hostlist):
        match = _RANGED_EXPR.fullmatch(part)
        if match:
            prefix, range_list, suffix = match.groups()
            expanded.extend(_expand_ranges(prefix, range_list, suffix))
        elif part:
            expanded.append(part)
    return expanded


def _format_range(start: int, end: int, width: int) -> str:
    if start == end:
        return f"{start:0{width}d}"
    return f"{start:0{width}d}-{end:0{width}d}"


def _compress_numbers(numbers: list[tuple[int, int]]) -> list[str]:
    """Collapse sorted (number, padding) pairs into range strings."""
    ranges: list[str] = []
    start, width = numbers[0]
    end = start
    for number, padding in numbers[1:]:
        if number == end + 1 and padding == width:
            end = number
            continue
        ranges.append(_format_range(start, end, width))
        start, end, width = number, number, padding
    ranges.append(_format_range(start, end, width))
    return ranges


def compress_hostlist(nodes: Iterable[str]) -> str:
    """Compress host names into a compact Slurm hostlist string.

    This is the inverse of :func:`parse_slurm_hostlist`. Parts are sorted so
    the output is deterministic.
    """
    groups: dict[tuple[str, str], list[tuple[int, int]]] = defaultdict(list)
    parts: list[str] = []

    for name in nodes:
        match = _NUMBERED_NAME.fullmatch(name)
        number = _parse_unsigned(match.group(2), _U32_MAX) if match else None
        if match is None or number is None:
            parts.append(name)
            continue
        prefix, digits, suffix = match.groups()
        groups[(prefix, suffix)].append((number, len(digits)))

    for (prefix, suffix), numbers in groups.items():
        if len(numbers) == 1:
            number, padding = numbers[0]
            parts.append(f"{prefix}{number:0{padding}d}{suffix}")
            continue
        ranges = _compress_numbers(sorted(numbers))
        parts.append(f"{prefix}[{','.join(ranges)}]{suffix}")

    return ",".join(sorted(parts))


def parse_tres_str(tres: str | None) -> dict[str, int]:
    """Parse a TRES string like ``"cpu=4,mem=8G,gres/gpu=1"`` into a mapping.

    Values with a K, M, G or T suffix are converted to bytes using powers of
    1024. Entries that are not ``key=number`` pairs are skipped.
    """
    if not tres:
        return {}

    result: dict[str, int] = {}
    for pair in tres.split(","):
        if "=" not in pair:
            continue
        key, value = pair.split("=", 1)
        end = next(
            (i for i, ch in enumerate(value) if ch not in "0123456789"),
            len(value),
        )
        numeric, unit = value[:end], value[end:]
        base = _parse_unsigned(numeric, _U64_MAX) if numeric else None
        if base is None:
            continue
        multiplier = _UNIT_MULTIPLIERS.get(unit[:1].lower(), 1)
        result[key] = base * multiplier
    return result