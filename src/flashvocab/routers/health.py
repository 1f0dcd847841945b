from fastapi import APIRouter

from ..config import settings

router = APIRouter()


@router.get("/healthz")
def health_check() -> dict[str, str]:
    """Simple health check endpoint.

    ライブネス/レディネス確認用の簡易エンドポイント。
    """
    return {"status": "ok"}


@router.get("/api/config")
def get_runtime_config() -> dict[str, object]:
    """Expose runtime config needed by the frontend.

    検索ボックスのデバウンス時間と最小文字数をサーバ設定に揃える。
    """
    return {
        "lookup_debounce_ms": settings.lookup_debounce_ms,
        "lookup_min_chars": settings.lookup_min_chars,
        "llm_model": settings.llm_model,
        "speech_rate": settings.speech_rate,
    }
