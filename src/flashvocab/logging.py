"""Structured JSON logging.

すべてのログは structlog で 1 行 JSON として出力する。出力前に
API キーらしき値を伏せ字にし、録音データ（base64）は長さだけに置き換える。
"""

from __future__ import annotations

import logging
from typing import Any

import structlog
from structlog import contextvars as structlog_contextvars

from .config import settings


_SECRET_KEY_PARTS = ("api_key", "access_token", "secret", "authorization", "password")
_AUDIO_KEY_PARTS = ("audio_base64", "audio_b64")
_MASK = "***"


def mask_secret(raw: object) -> str:
    """Keep the first and last 4 characters of long secrets; hide short ones entirely."""
    text = "" if raw is None else str(raw).strip()
    if len(text) <= 8:
        return _MASK
    return f"{text[:4]}…{text[-4:]}"


def _redact(key: str, value: Any, known_secret: str) -> Any:
    lowered = key.lower()
    if isinstance(value, dict):
        return {k: _redact(str(k), v, known_secret) for k, v in value.items()}
    if any(part in lowered for part in _SECRET_KEY_PARTS):
        return mask_secret(value)
    if isinstance(value, str):
        if any(part in lowered for part in _AUDIO_KEY_PARTS):
            return f"<{len(value)} chars>"
        if known_secret and known_secret in value:
            return value.replace(known_secret, mask_secret(known_secret))
    return value


def redact_event(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog processor: mask secrets and elide audio payloads in every field."""
    known_secret = settings.openai_api_key or ""
    return {key: _redact(str(key), value, known_secret) for key, value in event_dict.items()}


def configure_logging() -> None:
    """Route structlog through stdlib logging as JSON lines (INFO and above).

    何度呼んでも同じ構成になる（create_app ごとに呼ばれる）。
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        handlers=[logging.StreamHandler()],
        force=True,
    )
    structlog.configure(
        processors=[
            structlog_contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_event,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
    if settings.sentry_dsn:
        _enable_sentry(settings.sentry_dsn)


def _enable_sentry(dsn: str) -> None:
    # sentry-sdk は任意の extra（flashvocab[sentry]）
    try:
        import sentry_sdk
        from sentry_sdk.integrations.logging import LoggingIntegration
    except ImportError:
        logging.getLogger(__name__).warning("sentry_sdk not installed; SENTRY_DSN ignored")
        return
    sentry_sdk.init(dsn=dsn, integrations=[LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)])


logger = structlog.get_logger()
