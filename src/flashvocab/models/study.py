from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ..session import SessionState, StudyMode
from ..srs import Grade
from .deck import ItemKind, SavedItem


class StudyStartRequest(BaseModel):
    """Start a study session over the due items of one deck.

    kind=word は単語帳、kind=sentence は文の帳から出題する。
    """

    kind: ItemKind = "word"
    shuffle: bool = True


class StudyModeRequest(BaseModel):
    mode: StudyMode


class TypingAnswerRequest(BaseModel):
    text: str = Field(max_length=500)


class QuizSelectRequest(BaseModel):
    option: str


class GradeRequest(BaseModel):
    grade: Grade


class SessionStatsModel(BaseModel):
    reviewed: int
    forgotten: int


class StudySnapshot(BaseModel):
    """Serializable view of the active study session."""

    state: SessionState
    mode: Optional[StudyMode] = None
    index: int
    total: int
    current: Optional[SavedItem] = None
    is_flipped: bool = False
    is_answered: bool = False
    is_correct: Optional[bool] = None
    user_input: str = ""
    quiz_options: list[str] = Field(default_factory=list)
    can_grade: bool = False
    audio_check_in_progress: bool = False
    stats: SessionStatsModel
