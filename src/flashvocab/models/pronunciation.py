from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PronunciationCheckRequest(BaseModel):
    """Uploaded pronunciation attempt.

    ブラウザで録音した音声を base64 で受け取る。録音そのものはクライアント側で行う。
    """

    target: str = Field(min_length=1, max_length=500, description="読み上げ対象の英語")
    audio_base64: str = Field(description="base64 エンコードされた録音データ")
    mime_type: str = Field(default="audio/wav", description="録音データの MIME タイプ（wav / mp3）")


class FeedbackRecord(BaseModel):
    """Bilingual feedback on a recorded pronunciation attempt."""

    model_config = ConfigDict(extra="ignore")

    score: Optional[float] = Field(default=None, ge=0, le=100)
    feedback_en: str
    feedback_vi: str
    tips: list[str] = Field(default_factory=list)
