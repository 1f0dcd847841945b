"""Fire-and-forget speech output.

ブラウザの音声合成に相当する出力口。常に「現在の発話」を 1 件だけ保持し、
新しい発話要求は再生中のものを打ち切って置き換える。フロントエンドは
`/api/speech/current` をポーリングして id が変わったら再生する。
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Optional, Protocol

from .config import settings
from .logging import logger


class Speaker(Protocol):
    def speak(self, text: str) -> None:  # pragma: no cover - interface only
        ...


@dataclass(frozen=True)
class Utterance:
    id: int
    text: str
    lang: str = "en-US"
    rate: float = 0.9


class SpeechChannel:
    """Holds the single current utterance; ``speak`` interrupts the previous one."""

    def __init__(self, *, lang: str = "en-US", rate: Optional[float] = None) -> None:
        self._lang = lang
        self._rate = settings.speech_rate if rate is None else rate
        self._ids = itertools.count(1)
        self._current: Optional[Utterance] = None

    @property
    def current(self) -> Optional[Utterance]:
        return self._current

    def speak(self, text: str) -> None:
        cleaned = (text or "").strip()
        if not cleaned:
            return
        interrupted = self._current.id if self._current is not None else None
        self._current = Utterance(id=next(self._ids), text=cleaned, lang=self._lang, rate=self._rate)
        logger.info(
            "speech_requested",
            utterance_id=self._current.id,
            interrupted_id=interrupted,
            text_chars=len(cleaned),
        )

    def cancel(self) -> None:
        self._current = None
