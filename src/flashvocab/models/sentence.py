from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .common import SrsFields


class SimilarSentence(BaseModel):
    model_config = ConfigDict(extra="ignore")

    en: str
    vi: str


class SentenceRecord(SrsFields):
    """Structured analysis of an English sentence.

    翻訳・文法解説・使用場面・自然さスコア・類似例文を含む。
    同一性は大文字小文字を区別した完全一致で判定する。
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "kind": "sentence",
                    "sentence": "How have you been?",
                    "meaning_vi": "Dạo này bạn thế nào?",
                    "grammar_breakdown": "Present perfect continuous question.",
                    "usage_context": "Greeting someone you have not seen for a while.",
                    "naturalness_score": 9.5,
                    "similar_sentences": [{"en": "How are you doing?", "vi": "Bạn khỏe không?"}],
                }
            ]
        },
    )

    kind: Literal["sentence"] = "sentence"
    sentence: str = Field(min_length=1)
    meaning_vi: str
    grammar_breakdown: str
    usage_context: str
    naturalness_score: float
    similar_sentences: list[SimilarSentence]

    @property
    def primary_text(self) -> str:
        return self.sentence

    @property
    def prompt_text(self) -> str:
        return self.meaning_vi

    @property
    def identity(self) -> str:
        return self.sentence
