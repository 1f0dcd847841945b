from __future__ import annotations

import anyio
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..deps import get_app_state
from ..errors import NO_RESULT_MESSAGE, LookupFailure, RecordingFailure
from ..logging import logger
from ..models.pronunciation import FeedbackRecord, PronunciationCheckRequest
from ..recording import AudioSample, decode_audio_sample
from ..state import AppState

router = APIRouter(tags=["pronunciation"])


class RecordingStartRequest(BaseModel):
    target: str = Field(min_length=1, max_length=500)
    mime_type: str = "audio/wav"


class RecordingChunkRequest(BaseModel):
    audio_base64: str


def _lock_card(state: AppState) -> None:
    if state.session is not None:
        state.session.begin_audio_check()


def _unlock_card(state: AppState) -> None:
    if state.session is not None:
        state.session.end_audio_check()


async def _run_check(state: AppState, sample: AudioSample) -> FeedbackRecord:
    """Call the pronunciation check while the study card is locked against flipping."""
    _lock_card(state)
    try:
        return await anyio.to_thread.run_sync(
            state.client.check_pronunciation,
            sample.target_text,
            sample.to_base64(),
            sample.audio_format,
        )
    except LookupFailure as exc:
        logger.info("pronunciation_check_failed", reason_code=exc.reason_code)
        raise HTTPException(status_code=502, detail=NO_RESULT_MESSAGE) from exc
    finally:
        _unlock_card(state)


@router.post("/check", response_model=FeedbackRecord, summary="録音済み音声の発音チェック")
async def check(req: PronunciationCheckRequest, state: AppState = Depends(get_app_state)) -> FeedbackRecord:
    try:
        sample = decode_audio_sample(req.audio_base64, req.mime_type, target_text=req.target)
    except RecordingFailure as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return await _run_check(state, sample)


@router.post("/start", summary="録音を開始")
async def start_recording(req: RecordingStartRequest, state: AppState = Depends(get_app_state)) -> dict[str, bool]:
    """Open the single recording; the study card cannot be flipped until it ends."""
    try:
        state.recorder.start(req.target, req.mime_type)
    except RecordingFailure as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    _lock_card(state)
    return {"recording": True}


@router.post("/chunk", summary="録音データを追加")
async def append_chunk(req: RecordingChunkRequest, state: AppState = Depends(get_app_state)) -> dict[str, bool]:
    try:
        chunk = decode_audio_sample(req.audio_base64, state.recorder.mime_type)
        state.recorder.append(chunk.data)
    except RecordingFailure as exc:
        state.recorder.abort()
        _unlock_card(state)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"recording": True}


@router.post("/stop", response_model=FeedbackRecord, summary="録音を停止して発音チェック")
async def stop_recording(state: AppState = Depends(get_app_state)) -> FeedbackRecord:
    try:
        sample = state.recorder.stop()
    except RecordingFailure as exc:
        _unlock_card(state)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return await _run_check(state, sample)


@router.post("/abort", summary="録音を破棄")
async def abort_recording(state: AppState = Depends(get_app_state)) -> dict[str, bool]:
    state.recorder.abort()
    _unlock_card(state)
    return {"recording": False}
