from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_app_state
from ..errors import NO_RESULT_MESSAGE, LookupFailure
from ..logging import logger
from ..models.lookup import SearchRequest, SearchStateResponse
from ..models.word import WordLookupRequest, WordRecord
from ..state import AppState

router = APIRouter(tags=["lookup"])


def _search_state(state: AppState) -> SearchStateResponse:
    search = state.search
    return SearchStateResponse(
        mode=search.mode,
        latest_query=search.latest_query,
        loading=search.loading,
        error=search.error,
        word_result=search.word_result,
        sentence_result=search.sentence_result,
        word_saved=state.is_saved(search.word_result),
        sentence_saved=state.is_saved(search.sentence_result),
    )


@router.post("/search", response_model=SearchStateResponse, summary="単語/文を即時検索")
async def search(req: SearchRequest, state: AppState = Depends(get_app_state)) -> SearchStateResponse:
    """Look up the query now (Enter key) and return the resulting search state.

    失敗時は error に汎用メッセージが入り、結果は前回のまま残る。
    """
    state.search.debouncer.cancel()
    state.search.query = req.query
    await state.search.search(req.query, req.mode)
    return _search_state(state)


@router.post("/type", response_model=SearchStateResponse, summary="入力中クエリ（デバウンス検索）")
async def type_query(req: SearchRequest, state: AppState = Depends(get_app_state)) -> SearchStateResponse:
    """Record a keystroke; the lookup fires once input settles.

    結果は `/api/lookup/state` のポーリングで取得する。
    """
    state.search.type_query(req.query, req.mode)
    return _search_state(state)


@router.get("/state", response_model=SearchStateResponse, summary="検索状態を取得")
async def get_search_state(state: AppState = Depends(get_app_state)) -> SearchStateResponse:
    return _search_state(state)


@router.post("/quick", response_model=WordRecord, summary="詳細表示用の単語サブ検索")
async def quick_lookup(req: WordLookupRequest, state: AppState = Depends(get_app_state)) -> WordRecord:
    """Analyze a word clicked inside a result without touching the search box state."""
    try:
        return await state.search.quick_lookup(req.word)
    except LookupFailure as exc:
        logger.info("quick_lookup_failed", reason_code=exc.reason_code)
        raise HTTPException(status_code=502, detail=NO_RESULT_MESSAGE) from exc
