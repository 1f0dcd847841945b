"""Search box controller: debounce, latest-query guard and visible result state.

検索のたびに単調増加する要求番号を採番し、最新でない要求の結果は
到着しても破棄する（同じ文字列の再検索も別要求として扱う。実行中の
呼び出し自体は取り消さない）。latest_query は表示用に保持する。
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Any, Awaitable, Callable, Optional

import anyio

from .config import settings
from .errors import NO_RESULT_MESSAGE, LookupFailure
from .logging import logger
from .lookup import LookupClient
from .models.lookup import SearchMode
from .models.sentence import SentenceRecord
from .models.word import WordRecord


class Debouncer:
    """Cancel-and-restart delay timer; fires the factory once input settles.

    遅延が満了した後に起動した処理は、次の trigger でも取り消さない。
    """

    def __init__(self, delay_s: float) -> None:
        self.delay_s = max(0.0, float(delay_s))
        self._timer: Optional[asyncio.Task[None]] = None
        self._running: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def trigger(self, factory: Callable[[], Awaitable[Any]]) -> None:
        self.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._wait_then_fire(factory))

    def cancel(self) -> None:
        if self.pending:
            assert self._timer is not None
            self._timer.cancel()
        self._timer = None

    async def drain(self) -> None:
        """Wait for the pending timer and any fired work to finish."""
        if self._timer is not None:
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    async def _wait_then_fire(self, factory: Callable[[], Awaitable[Any]]) -> None:
        await asyncio.sleep(self.delay_s)
        task = asyncio.ensure_future(factory())
        self._running.add(task)
        task.add_done_callback(self._running.discard)


class SearchController:
    """Owns the visible search state for the single UI actor."""

    def __init__(self, client: LookupClient, *, debounce_ms: Optional[int] = None, min_chars: Optional[int] = None) -> None:
        self.client = client
        self.mode: SearchMode = "word"
        self.query = ""
        self.latest_query = ""
        self._latest_token = 0
        self.loading = False
        self.error: Optional[str] = None
        self.word_result: Optional[WordRecord] = None
        self.sentence_result: Optional[SentenceRecord] = None
        self.min_chars = settings.lookup_min_chars if min_chars is None else min_chars
        delay_ms = settings.lookup_debounce_ms if debounce_ms is None else debounce_ms
        self.debouncer = Debouncer(delay_ms / 1000.0)

    def set_mode(self, mode: SearchMode) -> None:
        self.mode = mode

    def type_query(self, query: str, mode: Optional[SearchMode] = None) -> bool:
        """Record a keystroke; schedule a lookup when the trimmed query is long enough."""
        if mode is not None:
            self.mode = mode
        self.query = query
        if len(query.strip()) < self.min_chars:
            self.debouncer.cancel()
            return False
        current_mode = self.mode
        self.debouncer.trigger(partial(self.search, query, current_mode))
        return True

    async def search(self, query: str, mode: Optional[SearchMode] = None) -> None:
        clean = query.strip()
        if not clean:
            return
        if mode is not None:
            self.mode = mode
        lookup_mode = self.mode
        self._latest_token += 1
        token = self._latest_token
        self.latest_query = clean
        self.loading = True
        self.error = None
        try:
            if lookup_mode == "word":
                word = await anyio.to_thread.run_sync(self.client.analyze_word, clean)
                if self._is_latest(token):
                    self.word_result = word
            else:
                sentence = await anyio.to_thread.run_sync(self.client.analyze_sentence, clean)
                if self._is_latest(token):
                    self.sentence_result = sentence
        except LookupFailure as exc:
            if self._is_latest(token):
                logger.info("lookup_failed", mode=lookup_mode, reason_code=exc.reason_code)
                self.error = NO_RESULT_MESSAGE
        finally:
            if self._is_latest(token):
                self.loading = False

    async def quick_lookup(self, word: str) -> WordRecord:
        """Sub-lookup for the detail view; leaves the main search state untouched."""
        return await anyio.to_thread.run_sync(self.client.analyze_word, word)

    def _is_latest(self, token: int) -> bool:
        if token == self._latest_token:
            return True
        logger.info("lookup_stale_result_dropped", token=token, latest_token=self._latest_token)
        return False
