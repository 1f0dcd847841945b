from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SrsFields(BaseModel):
    """Mutable spaced-repetition fields shared by every saved record.

    - srs_level: 間隔テーブルのインデックス（未設定は 0 扱い）
    - next_review: 次回出題可能時刻（epoch ミリ秒、未設定は「今すぐ」）
    """

    model_config = ConfigDict(extra="ignore")

    srs_level: Optional[int] = Field(default=None, ge=0)
    next_review: Optional[int] = None
