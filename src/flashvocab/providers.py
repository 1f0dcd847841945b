"""LLM プロバイダの初期化と共有インスタンス管理。"""

from __future__ import annotations

from typing import Any, Optional

from openai import (
    APIConnectionError,
    APITimeoutError,
    AuthenticationError,
    OpenAI,
    RateLimitError,
)

from .config import settings
from .logging import logger


# LLM クライアントのシングルトン。テストでは直接差し替える。
_LLM_INSTANCE: Any | None = None


class _LLMBase:
    """LLM クライアントが実装すべき最小インターフェース。"""

    def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        audio_b64: Optional[str] = None,
        audio_format: Optional[str] = None,
    ) -> str:  # pragma: no cover - interface definition
        raise NotImplementedError


class _LocalEchoLLM(_LLMBase):
    """外部依存が利用できない環境でのフォールバック。常に空文字を返す。"""

    def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        audio_b64: Optional[str] = None,
        audio_format: Optional[str] = None,
    ) -> str:
        logger.info("llm_complete_call", provider="local", model="echo", prompt_chars=len(prompt))
        out = ""
        logger.info("llm_complete_result", provider="local", model="echo", content_chars=len(out))
        return out


class _OpenAILLM(_LLMBase):  # pragma: no cover - オンライン利用が前提
    """OpenAI Chat Completions を JSON モードで呼び出すラッパー。

    音声付きの呼び出し（発音チェック）は音声対応モデルへ切り替え、
    input_audio パートとして録音を渡す。
    """

    def __init__(self, *, api_key: str, model: str, audio_model: str, temperature: float) -> None:
        self._client = OpenAI(api_key=api_key)
        self._model = model
        self._audio_model = audio_model
        self._temperature = float(max(0.0, min(1.0, temperature)))

    def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        audio_b64: Optional[str] = None,
        audio_format: Optional[str] = None,
    ) -> str:
        model = self._audio_model if audio_b64 else self._model
        logger.info(
            "llm_complete_call",
            provider="openai",
            model=model,
            prompt_chars=len(prompt),
            with_audio=bool(audio_b64),
        )
        messages: list[dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        if audio_b64:
            messages.append(
                {
                    "role": "user",
                    "content": [
                        {"type": "input_audio", "input_audio": {"data": audio_b64, "format": audio_format or "wav"}},
                        {"type": "text", "text": prompt},
                    ],
                }
            )
        else:
            messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": settings.llm_max_tokens,
        }
        if not audio_b64:
            # 音声モデルは JSON モード非対応のため、テキスト時のみ強制する
            kwargs["response_format"] = {"type": "json_object"}
            kwargs["temperature"] = self._temperature
        resp = self._client.chat.completions.create(**kwargs)
        content = ""
        if resp.choices:
            content = (resp.choices[0].message.content or "").strip()
        logger.info("llm_complete_result", provider="openai", model=model, content_chars=len(content))
        return content


def classify_llm_error(exc: BaseException) -> str:
    """Map a provider exception to a coarse reason code for logs."""
    if isinstance(exc, AuthenticationError):
        return "AUTH"
    if isinstance(exc, RateLimitError):
        return "RATE_LIMIT"
    if isinstance(exc, APITimeoutError):
        return "TIMEOUT"
    if isinstance(exc, APIConnectionError):
        return "CONNECTION"
    low = (str(exc) or "").lower()
    if "rate limit" in low or "429" in low:
        return "RATE_LIMIT"
    if "unauthorized" in low or "invalid api key" in low or "401" in low:
        return "AUTH"
    return "UPSTREAM"


def _build_llm() -> _LLMBase:
    provider = (settings.llm_provider or "").strip().lower()
    if provider == "openai":
        if not settings.openai_api_key:
            if settings.strict_mode:
                raise RuntimeError("OPENAI_API_KEY is required when LLM_PROVIDER=openai (strict mode)")
            logger.warning("llm_provider_fallback", provider="local", reason="missing_api_key")
            return _LocalEchoLLM()
        return _OpenAILLM(
            api_key=settings.openai_api_key,
            model=settings.llm_model,
            audio_model=settings.pronunciation_model,
            temperature=settings.llm_temperature,
        )
    if provider == "local":
        return _LocalEchoLLM()
    raise RuntimeError(f"unsupported LLM_PROVIDER: {settings.llm_provider!r}")


def get_llm_provider() -> _LLMBase:
    """Return the shared LLM client, creating it on first use."""
    global _LLM_INSTANCE
    if _LLM_INSTANCE is None:
        _LLM_INSTANCE = _build_llm()
    return _LLM_INSTANCE


def shutdown_providers() -> None:
    """Drop the shared LLM client so the next call rebuilds it."""
    global _LLM_INSTANCE
    _LLM_INSTANCE = None
