"""読み上げ API。

``/api/speech/*`` はフロントエンドが再生すべき現在の発話（1 件のみ）を扱い、
``/api/tts`` は OpenAI TTS で合成した MP3 をそのままストリームで返す。
"""

from __future__ import annotations

import time
from typing import Any, Iterator, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import StreamingResponse
from openai import APIConnectionError, APIStatusError, AuthenticationError, OpenAI, RateLimitError
from pydantic import BaseModel, ValidationError, constr

from ..config import settings
from ..deps import get_app_state
from ..logging import logger
from ..speech import Utterance
from ..state import AppState


TTS_TEXT_MAX_LENGTH = 500

# 先に一致したものを採用する（AuthenticationError と RateLimitError は APIStatusError の派生）
_OPENAI_ERROR_TABLE: tuple[tuple[type[Exception], int, str, str], ...] = (
    (AuthenticationError, 502, "OpenAI authentication failed", "authentication_error"),
    (RateLimitError, 429, "OpenAI rate limit exceeded", "rate_limit"),
    (APIConnectionError, 502, "OpenAI connection error", "connection_error"),
)

router = APIRouter(tags=["speech"])

client: Any | None = None


def _init_client() -> Any | None:
    if not settings.openai_api_key:
        return None
    return OpenAI(api_key=settings.openai_api_key)


class TTSIn(BaseModel):
    text: constr(min_length=1, max_length=TTS_TEXT_MAX_LENGTH)  # type: ignore[valid-type]
    voice: Optional[str] = None


class UtteranceOut(BaseModel):
    id: int
    text: str
    lang: str
    rate: float

    @classmethod
    def of(cls, utt: Utterance) -> "UtteranceOut":
        return cls(id=utt.id, text=utt.text, lang=utt.lang, rate=utt.rate)


def _validate_tts_request(payload: dict[str, Any]) -> TTSIn:
    """読み上げ対象を検証する。上限超過のみ 413、それ以外は通常の 422。"""
    try:
        return TTSIn.model_validate(payload)
    except ValidationError as exc:
        too_long = any(
            err.get("type") == "string_too_long" and tuple(err.get("loc", ())) == ("text",) for err in exc.errors()
        )
        if not too_long:
            raise RequestValidationError(exc.errors()) from exc
        raise HTTPException(
            status_code=413,
            detail={
                "error": "tts_text_too_long",
                "message": f"Text to speak must be at most {TTS_TEXT_MAX_LENGTH} characters.",
                "max_length": TTS_TEXT_MAX_LENGTH,
            },
        ) from exc


def _map_openai_exception(exc: Exception) -> tuple[int, str, str]:
    """Return ``(status, detail, reason)`` for an error raised by the TTS call."""
    for exc_type, status_code, detail, reason in _OPENAI_ERROR_TABLE:
        if isinstance(exc, exc_type):
            return status_code, detail, reason
    if isinstance(exc, APIStatusError):
        return exc.status_code or 502, "OpenAI returned an error response", "api_status_error"
    return 500, "Text-to-speech failed", "unexpected_error"


@router.get("/api/speech/current", response_model=Optional[UtteranceOut], summary="現在の発話要求")
async def current_utterance(state: AppState = Depends(get_app_state)) -> Optional[UtteranceOut]:
    utt = state.speaker.current
    return None if utt is None else UtteranceOut.of(utt)


@router.post("/api/speech/speak", response_model=UtteranceOut, summary="読み上げを要求")
async def speak(payload: dict[str, Any] = Body(...), state: AppState = Depends(get_app_state)) -> UtteranceOut:
    """Replace the current utterance with ``text``; playback of the previous one stops."""
    req = _validate_tts_request(payload)
    if not req.text.strip():
        raise HTTPException(status_code=400, detail="text is empty")
    state.speaker.speak(req.text)
    utt = state.speaker.current
    assert utt is not None
    return UtteranceOut.of(utt)


@router.post("/api/tts", response_class=StreamingResponse, summary="音声合成（MP3）")
def synth(request: Request, payload: dict[str, Any] = Body(...)) -> StreamingResponse:
    global client
    started = time.perf_counter()
    request_id = getattr(request.state, "request_id", None)
    req = _validate_tts_request(payload)
    voice = req.voice or settings.tts_voice
    logger.info("tts_request", request_id=request_id, voice=voice, text_chars=len(req.text))

    if client is None:
        client = _init_client()
    if client is None:
        logger.error("tts_client_unavailable", request_id=request_id)
        raise HTTPException(status_code=500, detail="OpenAI client is not configured")

    try:
        audio = client.audio.speech.create(model=settings.tts_model, voice=voice, input=req.text, response_format="mp3")
    except Exception as exc:
        status_code, detail, reason = _map_openai_exception(exc)
        logger.warning("tts_request_failed", request_id=request_id, voice=voice, reason=reason, error=str(exc))
        raise HTTPException(status_code=status_code, detail=detail) from exc

    def chunks() -> Iterator[bytes]:
        sent = 0
        try:
            for chunk in audio.iter_bytes():
                sent += len(chunk)
                yield chunk
        finally:
            audio.close()
            logger.info(
                "tts_stream_complete",
                request_id=request_id,
                streamed_bytes=sent,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )

    return StreamingResponse(chunks(), media_type="audio/mpeg")
