from fastapi import APIRouter, Depends, HTTPException

import anyio

from ..deps import get_app_state
from ..models.deck import (
    DeckResponse,
    DeckToggleRequest,
    DeckToggleResponse,
    ExportRequest,
    SentenceDeleteRequest,
    SettingsUpdateRequest,
    UserSettings,
)
from ..sheets import SheetExportError, export_item
from ..state import AppState

router = APIRouter(tags=["deck"])


@router.get("/deck", response_model=DeckResponse, summary="保存済みの単語・文と出題数")
async def get_deck(state: AppState = Depends(get_app_state)) -> DeckResponse:
    return DeckResponse(
        words=state.saved_words,
        sentences=state.saved_sentences,
        due_count=state.due_count(),
    )


@router.post("/deck/toggle", response_model=DeckToggleResponse, summary="保存/保存解除を切り替え")
async def toggle_saved(req: DeckToggleRequest, state: AppState = Depends(get_app_state)) -> DeckToggleResponse:
    """Save a looked-up record, or remove it when it is already saved.

    新規保存時は srs_level=0・next_review=現在時刻（すぐ出題対象）。
    """
    saved = state.toggle_save(req.record)
    return DeckToggleResponse(saved=saved, due_count=state.due_count())


@router.delete("/deck/words/{word}", summary="単語を削除")
async def delete_word(word: str, state: AppState = Depends(get_app_state)) -> dict[str, bool]:
    if not state.remove_word(word):
        raise HTTPException(status_code=404, detail="word not found")
    return {"ok": True}


@router.post("/deck/sentences/delete", summary="文を削除")
async def delete_sentence(req: SentenceDeleteRequest, state: AppState = Depends(get_app_state)) -> dict[str, bool]:
    if not state.remove_sentence(req.sentence):
        raise HTTPException(status_code=404, detail="sentence not found")
    return {"ok": True}


@router.post("/deck/export", summary="保存済み項目をスプレッドシートへ送信")
async def export_to_sheet(req: ExportRequest, state: AppState = Depends(get_app_state)) -> dict[str, bool]:
    item = state.find(req.kind, req.key)
    if item is None:
        raise HTTPException(status_code=404, detail=f"{req.kind} not found")
    try:
        await anyio.to_thread.run_sync(export_item, state.settings.sheets_url, item)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SheetExportError as exc:
        raise HTTPException(status_code=502, detail="sheet export failed") from exc
    return {"ok": True}


@router.get("/settings", response_model=UserSettings, summary="ユーザー設定を取得")
async def get_settings(state: AppState = Depends(get_app_state)) -> UserSettings:
    return state.settings


@router.put("/settings", response_model=UserSettings, summary="ユーザー設定を更新")
async def put_settings(req: SettingsUpdateRequest, state: AppState = Depends(get_app_state)) -> UserSettings:
    return state.update_settings(sheets_url=req.sheets_url, auto_pronounce=req.auto_pronounce)
