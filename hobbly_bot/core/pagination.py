"""Pagination helpers shared by the models, the directory client and the UI."""

from __future__ import annotations

import math

DEFAULT_LIMIT = 10
DEFAULT_WINDOW = 5


def normalize(page: int, limit: int) -> tuple[int, int]:
    """Clamp ``page`` to ``>= 1`` and ``limit`` to ``>= 1``."""
    return max(1, int(page)), max(1, int(limit))


def offset_for(page: int, limit: int) -> int:
    return (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    return math.ceil(max(0, total) / limit)


def page_window(
    current: int, total: int, window: int = DEFAULT_WINDOW
) -> list[int]:
    """Page numbers to show around ``current``.

    The window is centred on ``current``, clamped to ``[1, total]`` and
    shifted back when it would run past the last page.
    """
    if total < 1 or window < 1:
        return []
    start = max(1, current - window // 2)
    end = min(total, start + window - 1)
    start = max(1, end - window + 1)
    return list(range(start, end + 1))
