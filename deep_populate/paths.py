"""Path normalization, decomposition and leveling.

A request for ``comments.user.manager`` implicitly needs ``comments`` and
``comments.user`` attached first, so every path is broken into its prefix
chain and each prefix is scheduled at a level equal to its depth.
"""

import re
from collections import defaultdict
from typing import Any, Iterable, List, Optional

from . import constants
from .models import LevelPlan

_DELIMITER = re.compile(constants.PATH_DELIMITER_PATTERN)


def normalize(paths: Iterable[str]) -> List[str]:
    """Trim, drop empty entries and remove duplicates (first one wins)."""
    seen = set()
    result = []
    for path in paths:
        path = path.strip()
        if path and path not in seen:
            seen.add(path)
            result.append(path)
    return result


def normalize_paths(raw: Any) -> List[str]:
    """Parse raw path input into an ordered, de-duplicated list.

    Args:
        raw: ``None``, a string delimited by whitespace and/or commas, or a
            sequence of path strings

    Returns:
        List of trimmed paths; empty for absent or unusable input
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        return normalize(_DELIMITER.split(raw))
    if isinstance(raw, (list, tuple)):
        return normalize(p for p in raw if isinstance(p, str))
    return []


def split_path(path: str) -> List[str]:
    return path.split(constants.PATH_SEPARATOR)


def level_of(path: str) -> int:
    """Level of a path: its segment count minus one."""
    return len(split_path(path)) - 1


def decompose(paths: Iterable[str]) -> List[str]:
    """Break ``['a.b.c']`` into ``['a', 'a.b', 'a.b.c']``.

    Segments are trimmed; the combined result is normalized.
    """
    expanded = []
    for path in paths:
        current = None
        for segment in split_path(path):
            segment = segment.strip()
            current = segment if current is None else f"{current}{constants.PATH_SEPARATOR}{segment}"
            expanded.append(current)
    return normalize(expanded)


def apply_whitelist(paths: List[str], whitelist: Optional[List[str]]) -> List[str]:
    """Keep only paths present in the decomposed whitelist.

    ``None`` disables filtering; an empty whitelist filters everything out.
    """
    if whitelist is None:
        return list(paths)
    allowed = set(decompose(whitelist))
    return [path for path in paths if path in allowed]


def build_level_plan(paths: List[str], whitelist: Optional[List[str]] = None) -> LevelPlan:
    """Decompose, filter and group paths by level.

    Args:
        paths: Rewritten, normalized request paths
        whitelist: Rewritten whitelist, or ``None`` for unrestricted mode

    Returns:
        LevelPlan with ``max_level == -1`` when nothing is left to fetch
    """
    surviving = apply_whitelist(decompose(paths), whitelist)

    levels = defaultdict(list)
    for path in surviving:
        levels[level_of(path)].append(path)

    max_level = max(levels) if levels else constants.NO_LEVELS
    return LevelPlan(paths=surviving, max_level=max_level, levels=dict(levels))
