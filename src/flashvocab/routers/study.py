from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_app_state, get_session
from ..errors import SessionStateError
from ..models.study import (
    GradeRequest,
    QuizSelectRequest,
    SessionStatsModel,
    StudyModeRequest,
    StudySnapshot,
    StudyStartRequest,
    TypingAnswerRequest,
)
from ..session import StudySession
from ..state import AppState

router = APIRouter(tags=["study"])


def _snapshot(session: StudySession) -> StudySnapshot:
    data = session.snapshot()
    if data["current"] is not None:
        data["current"] = data["current"].model_dump()
    return StudySnapshot.model_validate(data)


def _conflict(exc: SessionStateError) -> HTTPException:
    return HTTPException(status_code=409, detail=str(exc))


@router.post("/start", response_model=StudySnapshot, summary="復習セッションを開始")
async def start_study(req: StudyStartRequest, state: AppState = Depends(get_app_state)) -> StudySnapshot:
    """Create a session over the due items of the chosen deck.

    出題対象が 0 件なら即座に complete 状態で返る。
    """
    return _snapshot(state.start_study(req.kind, shuffle=req.shuffle))


@router.get("", response_model=StudySnapshot, summary="現在のセッション状態")
async def get_study(session: StudySession = Depends(get_session)) -> StudySnapshot:
    return _snapshot(session)


@router.post("/mode", response_model=StudySnapshot, summary="出題形式を選択")
async def choose_mode(req: StudyModeRequest, session: StudySession = Depends(get_session)) -> StudySnapshot:
    try:
        session.choose_mode(req.mode)
    except SessionStateError as exc:
        raise _conflict(exc) from exc
    return _snapshot(session)


@router.post("/flip", response_model=StudySnapshot, summary="カードをめくる")
async def flip(session: StudySession = Depends(get_session)) -> StudySnapshot:
    try:
        session.flip()
    except SessionStateError as exc:
        raise _conflict(exc) from exc
    return _snapshot(session)


@router.post("/answer", response_model=StudySnapshot, summary="タイピング回答を送信")
async def answer(req: TypingAnswerRequest, session: StudySession = Depends(get_session)) -> StudySnapshot:
    try:
        session.submit_typing(req.text)
    except SessionStateError as exc:
        raise _conflict(exc) from exc
    return _snapshot(session)


@router.post("/select", response_model=StudySnapshot, summary="クイズの選択肢を選ぶ")
async def select(req: QuizSelectRequest, session: StudySession = Depends(get_session)) -> StudySnapshot:
    try:
        session.select_option(req.option)
    except SessionStateError as exc:
        raise _conflict(exc) from exc
    return _snapshot(session)


@router.post("/grade", response_model=StudySnapshot, summary="採点して次へ")
async def grade(req: GradeRequest, session: StudySession = Depends(get_session)) -> StudySnapshot:
    """Grade the revealed item (fail/hard/good/easy), persist it and advance."""
    try:
        session.grade(req.grade)
    except SessionStateError as exc:
        raise _conflict(exc) from exc
    return _snapshot(session)


@router.post("/cancel", response_model=SessionStatsModel, summary="セッションを中断")
async def cancel(state: AppState = Depends(get_app_state), session: StudySession = Depends(get_session)) -> SessionStatsModel:
    stats = session.cancel()
    state.end_study()
    return SessionStatsModel(reviewed=stats.reviewed, forgotten=stats.forgotten)


@router.post("/acknowledge", response_model=SessionStatsModel, summary="完了画面を閉じる")
async def acknowledge(
    state: AppState = Depends(get_app_state), session: StudySession = Depends(get_session)
) -> SessionStatsModel:
    try:
        stats = session.acknowledge()
    except SessionStateError as exc:
        raise _conflict(exc) from exc
    state.end_study()
    return SessionStatsModel(reviewed=stats.reviewed, forgotten=stats.forgotten)
