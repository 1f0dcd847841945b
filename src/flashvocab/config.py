from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources.types import NoDecode


DEFAULT_DB_PATH = ".data/flashvocab.sqlite3"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    環境変数から読み込まれるアプリ設定クラス。
    - environment: 実行環境（development/staging/production など）
    - llm_provider: 利用する LLM プロバイダ（openai / local）
    - store_db_path: 単語帳・設定を保存するキー・バリューストアの場所
    """

    environment: str = Field(
        default="development",
        description="Runtime environment / 実行環境",
    )
    llm_provider: str = Field(
        default="openai",
        description="LLM service provider / 利用するLLMプロバイダ",
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="LLM model name for word/sentence analysis / 解析用LLMモデル名",
    )
    pronunciation_model: str = Field(
        default="gpt-4o-audio-preview",
        description="Audio-capable model for pronunciation feedback / 発音評価用モデル名",
    )
    llm_max_tokens: int = Field(
        default=1200,
        description="Max tokens for LLM completion output / LLM出力の最大トークン数",
    )
    llm_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Sampling temperature for lookups / 生成温度",
    )

    # --- API Keys ---
    openai_api_key: str | None = Field(default=None, description="OpenAI API Key")

    # --- TTS ---
    tts_model: str = Field(
        default="gpt-4o-mini-tts",
        description="Text-to-speech model / 音声合成モデル名",
    )
    tts_voice: str = Field(
        default="alloy",
        description="Default text-to-speech voice / 既定の音声",
    )
    speech_rate: float = Field(
        default=0.9,
        gt=0.0,
        description="Playback rate hint for spoken utterances / 読み上げ速度",
    )

    # --- 検索（search-as-you-type） ---
    lookup_debounce_ms: int = Field(
        default=400,
        ge=0,
        description="Debounce delay before a typed query is looked up (ms) / 入力確定までの待機(ms)",
    )
    lookup_min_chars: int = Field(
        default=2,
        ge=1,
        description="Minimum trimmed query length for search-as-you-type / 自動検索の最小文字数",
    )

    # --- 永続化 ---
    store_db_path: str = Field(
        default=DEFAULT_DB_PATH,
        description="Path to the key-value SQLite database / キー・バリューストアのDBパス",
    )

    allowed_cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description="Comma separated CORS origins (empty = allow all) / 許可するCORSオリジン",
    )
    sentry_dsn: str | None = Field(default=None, description="Sentry DSN (enable if set)")

    # --- Strict mode ---
    strict_mode: bool = Field(
        default=True,
        description="Fail fast on missing/invalid configuration (disable only for tests)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("allowed_cors_origins", mode="before")
    @classmethod
    def _parse_origins(cls, value: object) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(origin.strip() for origin in value.split(",") if origin.strip())
        return tuple(str(origin).strip() for origin in value if str(origin).strip())  # type: ignore[union-attr]


settings = Settings()
