from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from .sentence import SentenceRecord
from .word import WordRecord


SearchMode = Literal["word", "sentence"]


class SearchRequest(BaseModel):
    """Search box submission.

    query は前後空白を除去して扱う。mode=word は大小無視、mode=sentence は大小区別。
    """

    query: str = Field(max_length=500)
    mode: SearchMode = "word"


class SearchStateResponse(BaseModel):
    """Visible state of the search view."""

    mode: SearchMode
    latest_query: str
    loading: bool
    error: Optional[str] = None
    word_result: Optional[WordRecord] = None
    sentence_result: Optional[SentenceRecord] = None
    word_saved: bool = False
    sentence_saved: bool = False
