"""Pronunciation recording handling.

録音の開始/停止はユーザー操作で明示的に行い、同時に有効な録音は 1 件のみ。
アップロードされた音声は base64 を検証してから発音チェックへ渡す。
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Optional

from .errors import RecordingFailure
from .logging import logger


# OpenAI の input_audio が受け付ける形式へのマッピング
_MIME_TO_FORMAT = {
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
}


@dataclass(frozen=True)
class AudioSample:
    data: bytes
    mime_type: str
    target_text: str = ""

    @property
    def audio_format(self) -> str:
        return audio_format_for(self.mime_type)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


def audio_format_for(mime_type: str) -> str:
    base = (mime_type or "").split(";", 1)[0].strip().lower()
    fmt = _MIME_TO_FORMAT.get(base)
    if fmt is None:
        raise RecordingFailure(f"unsupported audio format: {mime_type or '-'}")
    return fmt


def decode_audio_sample(audio_b64: str, mime_type: str, target_text: str = "") -> AudioSample:
    """Decode an uploaded recording or raise RecordingFailure."""
    payload = (audio_b64 or "").strip()
    if "," in payload and payload.startswith("data:"):
        payload = payload.split(",", 1)[1]
    if not payload:
        raise RecordingFailure("no audio captured")
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise RecordingFailure("audio payload is not valid base64") from exc
    if not data:
        raise RecordingFailure("no audio captured")
    audio_format_for(mime_type)
    return AudioSample(data=data, mime_type=mime_type, target_text=target_text)


class Recorder:
    """Single active recording built from appended chunks."""

    def __init__(self) -> None:
        self._target: Optional[str] = None
        self._mime_type = "audio/wav"
        self._chunks: list[bytes] = []

    @property
    def is_recording(self) -> bool:
        return self._target is not None

    @property
    def mime_type(self) -> str:
        return self._mime_type

    def start(self, target_text: str, mime_type: str = "audio/wav") -> None:
        if self.is_recording:
            raise RecordingFailure("a recording is already in progress")
        audio_format_for(mime_type)
        self._target = target_text
        self._mime_type = mime_type
        self._chunks = []
        logger.info("recording_started", target_chars=len(target_text))

    def append(self, chunk: bytes) -> None:
        if not self.is_recording:
            raise RecordingFailure("no recording in progress")
        if chunk:
            self._chunks.append(chunk)

    def stop(self) -> AudioSample:
        if not self.is_recording:
            raise RecordingFailure("no recording in progress")
        target = self._target or ""
        data = b"".join(self._chunks)
        self.abort()
        if not data:
            raise RecordingFailure("no audio captured")
        logger.info("recording_stopped", bytes=len(data))
        return AudioSample(data=data, mime_type=self._mime_type, target_text=target)

    def abort(self) -> None:
        self._target = None
        self._chunks = []
