from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .common import SrsFields


class WordLookupRequest(BaseModel):
    """Request model for a word detail sub-lookup."""

    word: str = Field(min_length=1, max_length=64, description="調べる単語（1..64文字）")


class WordRecord(SrsFields):
    """Structured analysis of an English word.

    AI が返す単語解析結果。必須項目が欠けた応答はスキーマ検証で失敗し、
    LookupFailure として扱われる。
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "kind": "word",
                    "word": "apple",
                    "meaning_vi": "quả táo",
                    "definition_en": "a round fruit with red or green skin",
                    "ipa": "/ˈæp.əl/",
                    "example_en": "She ate an apple.",
                    "example_vi": "Cô ấy ăn một quả táo.",
                    "root_word": "apple",
                    "mnemonic": "An apple a day keeps the doctor away.",
                    "synonyms": [],
                    "antonyms": [],
                }
            ]
        },
    )

    kind: Literal["word"] = "word"
    word: str = Field(min_length=1)
    meaning_vi: str
    definition_en: str
    ipa: str
    example_en: str
    example_vi: str
    root_word: str
    mnemonic: str
    synonyms: list[str]
    antonyms: list[str]
    syllables: str | None = None
    spelling_tip: str | None = None
    part_of_speech: str | None = None
    example_b2_en: str | None = None
    example_b2_vi: str | None = None
    word_family: list[str] = Field(default_factory=list)
    collocations: list[str] = Field(default_factory=list)

    @property
    def primary_text(self) -> str:
        return self.word

    @property
    def prompt_text(self) -> str:
        return self.meaning_vi

    @property
    def identity(self) -> str:
        return self.word.strip().lower()
