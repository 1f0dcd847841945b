"""Spaced-repetition scheduling.

固定の間隔テーブルに対するレベル遷移だけで次回出題時刻を決める、
状態を持たない純粋関数群。
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Iterable, List, Optional, TypeVar

from .logging import logger
from .models.common import SrsFields


# 間隔テーブル（日数）。インデックス 0 = 新規/失敗、最後 = 最大習熟
SRS_INTERVALS_DAYS: tuple[int, ...] = (1, 3, 7, 14, 30, 90, 180)
LAST_LEVEL = len(SRS_INTERVALS_DAYS) - 1
MS_PER_DAY = 24 * 60 * 60 * 1000

_Item = TypeVar("_Item", bound=SrsFields)


class Grade(str, Enum):
    fail = "fail"
    hard = "hard"
    good = "good"
    easy = "easy"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def clamp_level(level: Optional[int]) -> int:
    """Map an absent or out-of-range stored level into the interval table."""
    if level is None:
        return 0
    return max(0, min(int(level), LAST_LEVEL))


def next_level(level: Optional[int], grade: Grade) -> int:
    """Return the level reached after grading an item currently at ``level``.

    - fail: 0 に戻す
    - hard: 据え置き（max(0, L)）
    - good: 1 段階進める（上限で止まる）
    - easy: 2 段階進める（上限で止まる）
    """
    current = clamp_level(level)
    if grade is Grade.fail:
        return 0
    if grade is Grade.hard:
        return max(0, current)
    if grade is Grade.good:
        return min(current + 1, LAST_LEVEL)
    if grade is Grade.easy:
        return min(current + 2, LAST_LEVEL)
    raise ValueError(f"unknown grade: {grade!r}")


def interval_ms(level: int) -> int:
    return SRS_INTERVALS_DAYS[level] * MS_PER_DAY


def rate(item: _Item, grade: Grade | str, now: Optional[int] = None) -> _Item:
    """Grade ``item`` and return an updated copy.

    Only ``srs_level`` and ``next_review`` change; ``next_review`` is always
    ``now + SRS_INTERVALS_DAYS[new_level]`` days in milliseconds.
    """
    g = Grade(grade)
    graded_at = now_ms() if now is None else int(now)
    new_level = next_level(item.srs_level, g)
    updated = item.model_copy(
        update={"srs_level": new_level, "next_review": graded_at + interval_ms(new_level)}
    )
    logger.info(
        "srs_rated",
        grade=g.value,
        previous_level=item.srs_level,
        new_level=new_level,
        next_review=updated.next_review,
    )
    return updated


def is_due(item: SrsFields, now: Optional[int] = None) -> bool:
    """An item is due when it was never scheduled or its time has come."""
    if item.next_review is None:
        return True
    return item.next_review <= (now_ms() if now is None else now)


def due_items(items: Iterable[_Item], now: Optional[int] = None) -> List[_Item]:
    """Filter ``items`` down to the due ones, preserving order."""
    at = now_ms() if now is None else now
    return [it for it in items if is_due(it, at)]
