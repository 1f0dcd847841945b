"""Domain exceptions shared by the lookup, store, recording and study layers."""

from __future__ import annotations


NO_RESULT_MESSAGE = "No result found."


class FlashVocabError(Exception):
    """Base class for every error raised by the application core."""


class LookupFailure(FlashVocabError):
    """The AI lookup returned nothing usable (network, parse or schema problem).

    reason_code は上位でのログ分類用。ユーザーには常に汎用メッセージのみ見せる。
    """

    def __init__(self, message: str, *, reason_code: str = "UPSTREAM") -> None:
        super().__init__(message)
        self.reason_code = reason_code


class PersistenceParseFailure(FlashVocabError):
    """A stored collection could not be decoded."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


class RecordingFailure(FlashVocabError):
    """The pronunciation recording could not be captured or decoded."""


class SessionStateError(FlashVocabError):
    """A study-session action was issued in a state that does not accept it."""
