from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from .config import settings
from .logging import configure_logging, logger
from .lookup import LookupClient
from .middleware import AccessLogMiddleware, RequestIDMiddleware
from .providers import shutdown_providers
from .routers import deck, health, lookup, pronunciation, speech, study
from .state import AppState
from .store import KeyValueStore


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    # 保留中のデバウンス検索を止め、共有 LLM クライアントを破棄する
    app.state.flashvocab.search.debouncer.cancel()
    shutdown_providers()
    app.state.flashvocab.store.close()
    logger.info("app_shutdown")


def create_app(state: Optional[AppState] = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    ``state`` を渡すとそれを使う（テストでスタブ LLM や一時ストアを差し込む用途）。
    """
    configure_logging()
    app = FastAPI(title="FlashVocab API", version="0.1.0", lifespan=_lifespan)

    configured_origins = list(settings.allowed_cors_origins)
    allow_credentials = bool(configured_origins)
    if not configured_origins:
        configured_origins = ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=configured_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Starlette では後から追加したミドルウェアが外側で実行される。
    # RequestID で採番した ID を AccessLog が参照する。
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.state.flashvocab = state or AppState(KeyValueStore(settings.store_db_path), LookupClient())

    app.include_router(health.router)
    app.include_router(lookup.router, prefix="/api/lookup")
    app.include_router(deck.router, prefix="/api")
    app.include_router(study.router, prefix="/api/study")
    app.include_router(pronunciation.router, prefix="/api/pronunciation")
    app.include_router(speech.router)
    return app


app = create_app()
