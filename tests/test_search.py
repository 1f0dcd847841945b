import asyncio
import json
import threading

from flashvocab.errors import NO_RESULT_MESSAGE
from flashvocab.lookup import LookupClient
from flashvocab.search import Debouncer, SearchController

from tests.fakes import StubLLM, word_payload


def _gated_llm(slow_word: str, gate: threading.Event, *, fail_slow: bool = False) -> StubLLM:
    def _respond(prompt, audio):
        if f'"{slow_word}"' in prompt:
            gate.wait(5)
            if fail_slow:
                return "not json"
        return json.dumps(word_payload(prompt.split('"')[1]))

    return StubLLM(_respond)


def test_stale_result_is_dropped_when_newer_query_finishes_first():
    async def scenario():
        gate = threading.Event()
        ctrl = SearchController(LookupClient(llm=_gated_llm("alpha", gate)), debounce_ms=0)
        slow = asyncio.create_task(ctrl.search("alpha"))
        await asyncio.sleep(0.05)
        assert ctrl.loading is True

        await ctrl.search("beta")
        assert ctrl.word_result.word == "beta"
        assert ctrl.loading is False

        gate.set()
        await slow
        assert ctrl.word_result.word == "beta"
        assert ctrl.latest_query == "beta"
        assert ctrl.loading is False
        assert ctrl.error is None

    asyncio.run(scenario())


def test_stale_failure_does_not_surface_error():
    async def scenario():
        gate = threading.Event()
        ctrl = SearchController(LookupClient(llm=_gated_llm("alpha", gate, fail_slow=True)), debounce_ms=0)
        slow = asyncio.create_task(ctrl.search("alpha"))
        await asyncio.sleep(0.05)
        await ctrl.search("beta")
        gate.set()
        await slow
        assert ctrl.error is None
        assert ctrl.word_result.word == "beta"

    asyncio.run(scenario())


def test_late_failure_of_same_query_does_not_override_newer_success():
    async def scenario():
        gate = threading.Event()
        attempts = []
        lock = threading.Lock()

        def _respond(prompt, audio):
            with lock:
                attempts.append(prompt)
                first = len(attempts) == 1
            if first:
                gate.wait(5)
                return "not json"
            return json.dumps(word_payload("alpha"))

        ctrl = SearchController(LookupClient(llm=StubLLM(_respond)), debounce_ms=0)
        slow = asyncio.create_task(ctrl.search("alpha"))
        await asyncio.sleep(0.05)

        await ctrl.search("alpha")
        assert ctrl.word_result.word == "alpha"

        gate.set()
        await slow
        assert len(attempts) == 2
        assert ctrl.error is None
        assert ctrl.word_result.word == "alpha"
        assert ctrl.loading is False

    asyncio.run(scenario())


def test_failure_keeps_previous_result_and_sets_generic_message():
    async def scenario():
        answers = iter([json.dumps(word_payload("apple")), "garbage"])
        ctrl = SearchController(LookupClient(llm=StubLLM(lambda p, a: next(answers))), debounce_ms=0)
        await ctrl.search("apple")
        await ctrl.search("zzz")
        assert ctrl.error == NO_RESULT_MESSAGE
        assert ctrl.word_result.word == "apple"
        assert ctrl.loading is False

    asyncio.run(scenario())


def test_sentence_mode_fills_sentence_result():
    async def scenario():
        ctrl = SearchController(LookupClient(llm=StubLLM()), debounce_ms=0)
        await ctrl.search("Nice to meet you.", "sentence")
        assert ctrl.mode == "sentence"
        assert ctrl.sentence_result.sentence == "Nice to meet you."
        assert ctrl.word_result is None

    asyncio.run(scenario())


def test_typing_fires_once_after_input_settles():
    async def scenario():
        llm = StubLLM()
        ctrl = SearchController(LookupClient(llm=llm), debounce_ms=20, min_chars=2)
        for partial_query in ("ap", "app", "appl", "apple"):
            assert ctrl.type_query(partial_query) is True
            await asyncio.sleep(0)
        await ctrl.debouncer.drain()
        assert len(llm.calls) == 1
        assert ctrl.word_result.word == "apple"

    asyncio.run(scenario())


def test_short_query_cancels_pending_lookup():
    async def scenario():
        llm = StubLLM()
        ctrl = SearchController(LookupClient(llm=llm), debounce_ms=20, min_chars=2)
        ctrl.type_query("apple")
        assert ctrl.debouncer.pending
        assert ctrl.type_query(" a ") is False
        assert not ctrl.debouncer.pending
        await ctrl.debouncer.drain()
        assert llm.calls == []

    asyncio.run(scenario())


def test_debouncer_does_not_cancel_work_that_already_fired():
    async def scenario():
        gate = threading.Event()
        llm = _gated_llm("alpha", gate)
        ctrl = SearchController(LookupClient(llm=llm), debounce_ms=0)
        ctrl.type_query("alpha")
        await asyncio.sleep(0.05)
        ctrl.type_query("beta")
        gate.set()
        await ctrl.debouncer.drain()
        assert len(llm.calls) == 2
        assert ctrl.word_result.word == "beta"

    asyncio.run(scenario())


def test_debouncer_cancel_before_delay():
    async def scenario():
        fired = []

        async def work():
            fired.append(True)

        debouncer = Debouncer(0.02)
        debouncer.trigger(work)
        debouncer.cancel()
        await asyncio.sleep(0.05)
        assert fired == []

    asyncio.run(scenario())


def test_quick_lookup_leaves_search_state_alone():
    async def scenario():
        ctrl = SearchController(LookupClient(llm=StubLLM()), debounce_ms=0)
        record = await ctrl.quick_lookup("orange")
        assert record.word == "orange"
        assert ctrl.word_result is None
        assert ctrl.latest_query == ""

    asyncio.run(scenario())
