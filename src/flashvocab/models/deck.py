from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from .sentence import SentenceRecord
from .word import WordRecord


SavedItem = Annotated[Union[WordRecord, SentenceRecord], Field(discriminator="kind")]
"""Tagged variant of everything that can live in a deck (discriminated by ``kind``)."""

ItemKind = Literal["word", "sentence"]

saved_item_adapter: TypeAdapter[SavedItem] = TypeAdapter(SavedItem)
word_list_adapter: TypeAdapter[list[WordRecord]] = TypeAdapter(list[WordRecord])
sentence_list_adapter: TypeAdapter[list[SentenceRecord]] = TypeAdapter(list[SentenceRecord])


class UserSettings(BaseModel):
    """Per-user preferences persisted next to the decks.

    - sheets_url: 保存済み項目を書き出すスプレッドシート Web フック URL
    - auto_pronounce: フラッシュカードで次の項目を自動読み上げするか
    """

    sheets_url: str = ""
    auto_pronounce: bool = False


class SettingsUpdateRequest(BaseModel):
    sheets_url: str | None = Field(default=None, max_length=2048)
    auto_pronounce: bool | None = None


class DeckToggleRequest(BaseModel):
    """Save or unsave a looked-up record (toggle)."""

    record: SavedItem


class DeckToggleResponse(BaseModel):
    saved: bool
    due_count: int


class SentenceDeleteRequest(BaseModel):
    sentence: str = Field(min_length=1)


class DeckResponse(BaseModel):
    words: list[WordRecord]
    sentences: list[SentenceRecord]
    due_count: int


class ExportRequest(BaseModel):
    """Identify a saved item to push to the configured sheet."""

    kind: ItemKind
    key: str = Field(min_length=1, description="単語（大小無視）または文（完全一致）")
