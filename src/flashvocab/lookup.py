"""AI lookup client with an in-process result cache.

単語・文の解析と発音フィードバックを LLM へ問い合わせ、
JSON をスキーマ検証してモデルへ変換する。単語は小文字化、文は
前後空白除去のみで正規化したキーでキャッシュする（無期限・追い出しなし）。
"""

from __future__ import annotations

import json
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import LookupFailure
from .logging import logger
from .models.pronunciation import FeedbackRecord
from .models.sentence import SentenceRecord
from .models.word import WordRecord
from .providers import classify_llm_error, get_llm_provider


WORD_SYSTEM_INSTRUCTION = (
    "You are an expert bilingual (English-Vietnamese) dictionary. Provide JSON only. "
    "Distinguish synonyms (matching meaning) and antonyms (opposite meaning) clearly."
)
SENTENCE_SYSTEM_INSTRUCTION = "Analyze the English sentence and rate its naturalness. JSON only."
PRONUNCIATION_SYSTEM_INSTRUCTION = "Bilingual (English-Vietnamese) pronunciation coach. Be concise. JSON only."

_WORD_KEYS = (
    "word, meaning_vi, definition_en, ipa, syllables, spelling_tip, part_of_speech, "
    "example_en, example_vi, example_b2_en, example_b2_vi, root_word, mnemonic, "
    "synonyms (array of strings), antonyms (array of strings), word_family (array of strings), "
    "collocations (array of strings)"
)
_SENTENCE_KEYS = (
    "sentence, meaning_vi, grammar_breakdown, usage_context, naturalness_score (number 0-10), "
    "similar_sentences (array of {en, vi})"
)
_FEEDBACK_KEYS = "score (number 0-100), feedback_en, feedback_vi, tips (array of strings)"

_Model = TypeVar("_Model", bound=BaseModel)


def normalize_word_key(text: str) -> str:
    return text.strip().lower()


def normalize_sentence_key(text: str) -> str:
    return text.strip()


class LookupCache:
    """Unbounded memo of normalized query → structured record for the process lifetime."""

    def __init__(self) -> None:
        self._words: dict[str, WordRecord] = {}
        self._sentences: dict[str, SentenceRecord] = {}

    def get_word(self, text: str) -> Optional[WordRecord]:
        return self._words.get(normalize_word_key(text))

    def put_word(self, text: str, record: WordRecord) -> None:
        self._words[normalize_word_key(text)] = record

    def get_sentence(self, text: str) -> Optional[SentenceRecord]:
        return self._sentences.get(normalize_sentence_key(text))

    def put_sentence(self, text: str, record: SentenceRecord) -> None:
        self._sentences[normalize_sentence_key(text)] = record

    def clear(self) -> None:
        self._words.clear()
        self._sentences.clear()

    def __len__(self) -> int:
        return len(self._words) + len(self._sentences)


def _parse_record(raw: Any, model: Type[_Model], *, kind: str) -> _Model:
    """Decode the LLM text output into ``model`` or raise LookupFailure."""
    if not isinstance(raw, str) or not raw.strip():
        raise LookupFailure(f"empty {kind} response", reason_code="EMPTY")
    text = raw.strip()
    # ```json ... ``` で包まれた応答にも対応
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise LookupFailure(f"malformed {kind} JSON: {exc}", reason_code="PARSE") from exc
    if not isinstance(data, dict):
        raise LookupFailure(f"{kind} response is not an object", reason_code="SCHEMA")
    data.pop("kind", None)
    data.pop("srs_level", None)
    data.pop("next_review", None)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        missing = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
        raise LookupFailure(f"{kind} response failed validation: {missing}", reason_code="SCHEMA") from exc


class LookupClient:
    """Stateless analyses (word/sentence/pronunciation) backed by an LLM."""

    def __init__(self, llm: Any | None = None, cache: Optional[LookupCache] = None) -> None:
        self._llm = llm
        self.cache = cache if cache is not None else LookupCache()

    @property
    def llm(self) -> Any:
        # 未指定時は共有プロバイダを初回呼び出し時に解決する
        return self._llm if self._llm is not None else get_llm_provider()

    def _call(self, prompt: str, *, system: str, kind: str, **audio: Any) -> str:
        try:
            return self.llm.complete(prompt, system=system, **audio)
        except LookupFailure:
            raise
        except Exception as exc:
            reason = classify_llm_error(exc)
            logger.warning("lookup_llm_error", kind=kind, reason_code=reason, error=str(exc)[:200])
            raise LookupFailure(f"{kind} lookup failed", reason_code=reason) from exc

    def analyze_word(self, text: str) -> WordRecord:
        normalized = normalize_word_key(text)
        if not normalized:
            raise LookupFailure("empty query", reason_code="EMPTY")
        cached = self.cache.get_word(normalized)
        if cached is not None:
            logger.info("lookup_cache_hit", kind="word", key=normalized)
            return cached
        prompt = f'Analyze this word: "{normalized}"\nReturn a JSON object with keys: {_WORD_KEYS}.'
        raw = self._call(prompt, system=WORD_SYSTEM_INSTRUCTION, kind="word")
        record = _parse_record(raw, WordRecord, kind="word")
        self.cache.put_word(normalized, record)
        logger.info("lookup_cached", kind="word", key=normalized)
        return record

    def analyze_sentence(self, text: str) -> SentenceRecord:
        normalized = normalize_sentence_key(text)
        if not normalized:
            raise LookupFailure("empty query", reason_code="EMPTY")
        cached = self.cache.get_sentence(normalized)
        if cached is not None:
            logger.info("lookup_cache_hit", kind="sentence", key_chars=len(normalized))
            return cached
        prompt = f'Analyze: "{normalized}"\nReturn a JSON object with keys: {_SENTENCE_KEYS}.'
        raw = self._call(prompt, system=SENTENCE_SYSTEM_INSTRUCTION, kind="sentence")
        record = _parse_record(raw, SentenceRecord, kind="sentence")
        self.cache.put_sentence(normalized, record)
        logger.info("lookup_cached", kind="sentence", key_chars=len(normalized))
        return record

    def check_pronunciation(self, target: str, audio_b64: str, audio_format: str) -> FeedbackRecord:
        """Ask for feedback on a recorded attempt. Results are never cached."""
        prompt = (
            f'Feedback on pronunciation for: "{target.strip()}"\n'
            f"Return a JSON object with keys: {_FEEDBACK_KEYS}."
        )
        raw = self._call(
            prompt,
            system=PRONUNCIATION_SYSTEM_INSTRUCTION,
            kind="pronunciation",
            audio_b64=audio_b64,
            audio_format=audio_format,
        )
        return _parse_record(raw, FeedbackRecord, kind="pronunciation")
