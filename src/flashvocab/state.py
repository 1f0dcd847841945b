"""Application state container.

単語帳・文の帳・ユーザー設定をメモリ上に保持し、変更のたびに
キー・バリューストアへ同期的にスナップショットを書き込む。
起動時の読み込みで壊れたデータを見つけた場合は空として扱う。
"""

from __future__ import annotations

import json
import random
from typing import Any, Callable, Optional

from pydantic import TypeAdapter, ValidationError

from . import srs
from .errors import PersistenceParseFailure
from .logging import logger
from .lookup import LookupClient
from .models.deck import (
    ItemKind,
    SavedItem,
    UserSettings,
    sentence_list_adapter,
    word_list_adapter,
)
from .models.sentence import SentenceRecord
from .models.word import WordRecord
from .recording import Recorder
from .search import SearchController
from .session import StudySession
from .speech import SpeechChannel
from .store import KeyValueStore, load_json


WORDS_KEY = "flashcards"
SENTENCES_KEY = "saved_sentences"
SETTINGS_KEY = "app_settings"


def _load_collection(store: KeyValueStore, key: str, adapter: TypeAdapter) -> list:
    try:
        raw = load_json(store, key, [])
        if not isinstance(raw, list):
            raise PersistenceParseFailure(key, "expected a JSON array")
        return adapter.validate_python(raw)
    except (PersistenceParseFailure, ValidationError) as exc:
        logger.warning("store_parse_failed", key=key, error=str(exc)[:200])
        return []


def _load_settings(store: KeyValueStore) -> UserSettings:
    try:
        raw = load_json(store, SETTINGS_KEY, {})
        if not isinstance(raw, dict):
            raise PersistenceParseFailure(SETTINGS_KEY, "expected a JSON object")
        return UserSettings.model_validate(raw)
    except (PersistenceParseFailure, ValidationError) as exc:
        logger.warning("store_parse_failed", key=SETTINGS_KEY, error=str(exc)[:200])
        return UserSettings()


class AppState:
    """Single owner of decks, settings, search state and the active study session."""

    def __init__(
        self,
        store: KeyValueStore,
        client: LookupClient,
        *,
        speaker: Optional[SpeechChannel] = None,
        clock: Callable[[], int] = srs.now_ms,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.client = client
        self.speaker = speaker or SpeechChannel()
        self.clock = clock
        self.rng = rng or random.Random()
        self.search = SearchController(client)
        self.recorder = Recorder()
        self.session: Optional[StudySession] = None

        self.saved_words: list[WordRecord] = _load_collection(store, WORDS_KEY, word_list_adapter)
        self.saved_sentences: list[SentenceRecord] = _load_collection(store, SENTENCES_KEY, sentence_list_adapter)
        self.settings: UserSettings = _load_settings(store)
        logger.info(
            "app_state_loaded",
            words=len(self.saved_words),
            sentences=len(self.saved_sentences),
            auto_pronounce=self.settings.auto_pronounce,
        )

    # --- persistence snapshots ---
    def _commit_words(self) -> None:
        self.store.set(WORDS_KEY, json.dumps([w.model_dump(mode="json") for w in self.saved_words], ensure_ascii=False))

    def _commit_sentences(self) -> None:
        self.store.set(
            SENTENCES_KEY,
            json.dumps([s.model_dump(mode="json") for s in self.saved_sentences], ensure_ascii=False),
        )

    def _commit_settings(self) -> None:
        self.store.set(SETTINGS_KEY, self.settings.model_dump_json())

    # --- deck queries ---
    def is_saved(self, item: Optional[SavedItem]) -> bool:
        if item is None:
            return False
        if isinstance(item, WordRecord):
            return any(w.identity == item.identity for w in self.saved_words)
        return any(s.identity == item.identity for s in self.saved_sentences)

    def find(self, kind: ItemKind, key: str) -> Optional[SavedItem]:
        if kind == "word":
            wanted = key.strip().lower()
            return next((w for w in self.saved_words if w.identity == wanted), None)
        return next((s for s in self.saved_sentences if s.identity == key), None)

    def due_count(self, now: Optional[int] = None) -> int:
        at = self.clock() if now is None else now
        return len(srs.due_items(self.saved_words, at)) + len(srs.due_items(self.saved_sentences, at))

    # --- deck mutations ---
    def toggle_save(self, item: SavedItem, now: Optional[int] = None) -> bool:
        """Save a looked-up record (new items are due immediately) or remove it if saved.

        Returns True when the item is saved after the call.
        """
        at = self.clock() if now is None else now
        if isinstance(item, WordRecord):
            if self.is_saved(item):
                self.remove_word(item.word)
                return False
            fresh = item.model_copy(update={"srs_level": 0, "next_review": at})
            self.saved_words = [fresh, *self.saved_words]
            self._commit_words()
        else:
            if self.is_saved(item):
                self.remove_sentence(item.sentence)
                return False
            fresh_s = item.model_copy(update={"srs_level": 0, "next_review": at})
            self.saved_sentences = [fresh_s, *self.saved_sentences]
            self._commit_sentences()
        logger.info("deck_item_saved", kind=item.kind)
        return True

    def remove_word(self, word: str) -> bool:
        wanted = word.strip().lower()
        kept = [w for w in self.saved_words if w.identity != wanted]
        removed = len(kept) != len(self.saved_words)
        if removed:
            self.saved_words = kept
            self._commit_words()
            logger.info("deck_item_removed", kind="word")
        return removed

    def remove_sentence(self, sentence: str) -> bool:
        kept = [s for s in self.saved_sentences if s.identity != sentence]
        removed = len(kept) != len(self.saved_sentences)
        if removed:
            self.saved_sentences = kept
            self._commit_sentences()
            logger.info("deck_item_removed", kind="sentence")
        return removed

    def update_item(self, item: SavedItem) -> None:
        """Replace the saved record with the same identity (study write-back)."""
        if isinstance(item, WordRecord):
            self.saved_words = [item if w.identity == item.identity else w for w in self.saved_words]
            self._commit_words()
        else:
            self.saved_sentences = [item if s.identity == item.identity else s for s in self.saved_sentences]
            self._commit_sentences()

    # --- settings ---
    def update_settings(self, *, sheets_url: Optional[str] = None, auto_pronounce: Optional[bool] = None) -> UserSettings:
        changes: dict[str, Any] = {}
        if sheets_url is not None:
            changes["sheets_url"] = sheets_url.strip()
        if auto_pronounce is not None:
            changes["auto_pronounce"] = auto_pronounce
        if changes:
            self.settings = self.settings.model_copy(update=changes)
            self._commit_settings()
            if auto_pronounce is not None and self.session is not None:
                self.session.set_auto_pronounce(auto_pronounce)
        return self.settings

    # --- study ---
    def start_study(self, kind: ItemKind = "word", *, shuffle: bool = True) -> StudySession:
        """Open a session over the due items of one deck (replaces any open session)."""
        deck: list[SavedItem] = list(self.saved_words if kind == "word" else self.saved_sentences)
        queue = srs.due_items(deck, self.clock())
        if shuffle:
            self.rng.shuffle(queue)
        self.session = StudySession(
            queue,
            deck,
            on_update=self.update_item,
            speaker=self.speaker,
            auto_pronounce=self.settings.auto_pronounce,
            clock=self.clock,
            rng=self.rng,
        )
        if self.recorder.is_recording:
            self.session.begin_audio_check()
        logger.info("study_session_created", kind=kind, queue=len(queue), deck=len(deck))
        return self.session

    def end_study(self) -> None:
        self.session = None
