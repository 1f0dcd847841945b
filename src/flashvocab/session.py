"""Study session state machine.

MODE_SELECT → ACTIVE(flashcard | typing | quiz) → COMPLETE の遷移を管理する。
各項目の採点で SRS スケジューラを呼び、更新済み項目を on_update で
山札へ書き戻してから次の項目へ進む。
"""

from __future__ import annotations

import random
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from . import srs
from .errors import SessionStateError
from .logging import logger
from .models.deck import SavedItem
from .quiz import generate_options
from .speech import Speaker


class SessionState(str, Enum):
    mode_select = "mode_select"
    active = "active"
    complete = "complete"
    cancelled = "cancelled"


class StudyMode(str, Enum):
    flashcard = "flashcard"
    typing = "typing"
    quiz = "quiz"


@dataclass
class SessionStats:
    reviewed: int = 0
    forgotten: int = 0


class StudySession:
    """Drive one pass over a queue of due items.

    queue は呼び出し側で due 抽出・シャッフル済みのものを受け取る。
    deck はクイズの誤答候補を取るための山札全体。
    """

    def __init__(
        self,
        queue: Sequence[SavedItem],
        deck: Sequence[SavedItem],
        *,
        on_update: Callable[[SavedItem], None],
        speaker: Optional[Speaker] = None,
        auto_pronounce: bool = False,
        clock: Callable[[], int] = srs.now_ms,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._queue: list[SavedItem] = list(queue)
        self._deck_texts: list[str] = [item.primary_text for item in deck]
        self._on_update = on_update
        self._speaker = speaker
        self._clock = clock
        self._rng = rng or random.Random()
        self.auto_pronounce = auto_pronounce

        self.stats = SessionStats()
        self.mode: Optional[StudyMode] = None
        self.current_index = 0
        self.closed = False
        self.state = SessionState.mode_select if self._queue else SessionState.complete

        self._reset_item_state()
        self.audio_check_in_progress = False

    # --- properties ---
    @property
    def total(self) -> int:
        return len(self._queue)

    @property
    def current(self) -> Optional[SavedItem]:
        if self.state is not SessionState.active:
            return None
        return self._queue[self.current_index]

    @property
    def can_grade(self) -> bool:
        if self.state is not SessionState.active:
            return False
        return self.is_flipped or self.is_answered

    @property
    def progress(self) -> tuple[int, int]:
        """(1-based position, total) for the header counter."""
        return (min(self.current_index + 1, self.total), self.total)

    # --- transitions ---
    def choose_mode(self, mode: StudyMode | str) -> None:
        if self.state is not SessionState.mode_select:
            raise SessionStateError(f"cannot choose a mode in state {self.state.value}")
        self.mode = StudyMode(mode)
        self.state = SessionState.active
        logger.info("study_session_started", mode=self.mode.value, total=self.total)
        self._prepare_item()

    def flip(self) -> bool:
        """Toggle the flashcard. Returns False while an audio check is running."""
        self._require_active(StudyMode.flashcard)
        if self.audio_check_in_progress:
            return False
        self.is_flipped = not self.is_flipped
        return True

    def submit_typing(self, text: str) -> Optional[bool]:
        """Check a typed answer. Blank input and repeat submissions are ignored."""
        self._require_active(StudyMode.typing)
        if self.is_answered or not (text or "").strip():
            return None
        item = self._queue[self.current_index]
        self.user_input = text
        self.is_correct = text.strip().lower() == item.primary_text.strip().lower()
        self.is_answered = True
        if self.is_correct:
            self._speak(item.primary_text)
        return self.is_correct

    def select_option(self, option: str) -> Optional[bool]:
        """Pick a quiz option; the first selection locks the item."""
        self._require_active(StudyMode.quiz)
        if self.is_answered:
            return None
        if option not in self.quiz_options:
            raise SessionStateError(f"unknown quiz option: {option!r}")
        item = self._queue[self.current_index]
        self.is_correct = option == item.primary_text
        self.is_answered = True
        if self.is_correct:
            self._speak(item.primary_text)
        return self.is_correct

    def grade(self, grade: srs.Grade | str) -> SavedItem:
        """Schedule the current item, write it back and advance."""
        if self.state is not SessionState.active:
            raise SessionStateError(f"cannot grade in state {self.state.value}")
        if not self.can_grade:
            raise SessionStateError("answer must be revealed before grading")
        g = srs.Grade(grade)
        item = self._queue[self.current_index]
        updated = srs.rate(item, g, self._clock())
        self._queue[self.current_index] = updated
        self._on_update(updated)

        if g is srs.Grade.fail:
            self.stats.forgotten += 1
        self.stats.reviewed += 1
        self.current_index += 1

        if self.current_index >= self.total:
            self.state = SessionState.complete
            logger.info("study_session_complete", mode=self.mode.value if self.mode else None, **asdict(self.stats))
        else:
            self._prepare_item()
        return updated

    def cancel(self) -> SessionStats:
        """Leave without touching the remaining items."""
        if self.state in (SessionState.mode_select, SessionState.active):
            self.state = SessionState.cancelled
            logger.info(
                "study_session_cancelled",
                mode=self.mode.value if self.mode else None,
                remaining=self.total - self.current_index,
                **asdict(self.stats),
            )
        self.closed = True
        return self.stats

    def acknowledge(self) -> SessionStats:
        if self.state is not SessionState.complete:
            raise SessionStateError(f"cannot acknowledge in state {self.state.value}")
        self.closed = True
        return self.stats

    def set_auto_pronounce(self, enabled: bool) -> None:
        self.auto_pronounce = enabled
        if enabled and self.state is SessionState.active:
            self._speak(self._queue[self.current_index].primary_text)

    # --- pronunciation check hooks ---
    def begin_audio_check(self) -> None:
        self.audio_check_in_progress = True

    def end_audio_check(self) -> None:
        self.audio_check_in_progress = False

    def snapshot(self) -> dict[str, Any]:
        return {
            "state": self.state,
            "mode": self.mode,
            "index": self.current_index,
            "total": self.total,
            "current": self.current,
            "is_flipped": self.is_flipped,
            "is_answered": self.is_answered,
            "is_correct": self.is_correct,
            "user_input": self.user_input,
            "quiz_options": list(self.quiz_options),
            "can_grade": self.can_grade,
            "audio_check_in_progress": self.audio_check_in_progress,
            "stats": asdict(self.stats),
        }

    # --- internals ---
    def _require_active(self, mode: StudyMode) -> None:
        if self.state is not SessionState.active:
            raise SessionStateError(f"session is not active ({self.state.value})")
        if self.mode is not mode:
            raise SessionStateError(f"action requires {mode.value} mode")

    def _reset_item_state(self) -> None:
        self.is_flipped = False
        self.is_answered = False
        self.is_correct: Optional[bool] = None
        self.user_input = ""
        self.quiz_options: list[str] = []

    def _prepare_item(self) -> None:
        self._reset_item_state()
        item = self._queue[self.current_index]
        if self.mode is StudyMode.quiz:
            self.quiz_options = generate_options(item.primary_text, self._deck_texts, self._rng)
        elif self.mode is StudyMode.flashcard and self.auto_pronounce:
            self._speak(item.primary_text)

    def _speak(self, text: str) -> None:
        if self._speaker is not None:
            self._speaker.speak(text)
