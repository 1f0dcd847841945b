import json

import pytest

from flashvocab.errors import LookupFailure
from flashvocab.lookup import LookupCache, LookupClient, normalize_sentence_key, normalize_word_key
from flashvocab.models.word import WordRecord

from tests.fakes import StubLLM, sentence_payload, word_payload


def test_word_lookup_is_cached_case_insensitively():
    llm = StubLLM()
    client = LookupClient(llm=llm)
    first = client.analyze_word("Hello")
    second = client.analyze_word("  hello ")
    assert isinstance(first, WordRecord)
    assert second is first
    assert len(llm.calls) == 1
    assert '"hello"' in llm.calls[0]["prompt"]


def test_sentence_cache_key_preserves_case():
    llm = StubLLM()
    client = LookupClient(llm=llm)
    client.analyze_sentence("How are you?")
    client.analyze_sentence("  How are you?  ")
    client.analyze_sentence("how are you?")
    assert len(llm.calls) == 2


def test_key_normalization():
    assert normalize_word_key("  HeLLo ") == "hello"
    assert normalize_sentence_key("  Hi There. ") == "Hi There."


def test_failures_are_not_cached():
    answers = iter(["not json", json.dumps(word_payload("retry"))])
    llm = StubLLM(lambda prompt, audio: next(answers))
    client = LookupClient(llm=llm)
    with pytest.raises(LookupFailure) as excinfo:
        client.analyze_word("retry")
    assert excinfo.value.reason_code == "PARSE"
    assert len(client.cache) == 0
    assert client.analyze_word("retry").word == "retry"
    assert len(llm.calls) == 2


def test_missing_required_field_is_a_schema_failure():
    payload = word_payload("apple")
    del payload["meaning_vi"]
    client = LookupClient(llm=StubLLM(lambda prompt, audio: json.dumps(payload)))
    with pytest.raises(LookupFailure) as excinfo:
        client.analyze_word("apple")
    assert excinfo.value.reason_code == "SCHEMA"


def test_empty_response_and_empty_query():
    client = LookupClient(llm=StubLLM(lambda prompt, audio: ""))
    with pytest.raises(LookupFailure) as excinfo:
        client.analyze_sentence("Hello there")
    assert excinfo.value.reason_code == "EMPTY"
    with pytest.raises(LookupFailure):
        client.analyze_word("   ")


def test_fenced_json_is_accepted_and_stored_srs_fields_are_dropped():
    body = json.dumps({**sentence_payload("It works."), "kind": "word", "srs_level": 4})
    client = LookupClient(llm=StubLLM(lambda prompt, audio: f"```json\n{body}\n```"))
    record = client.analyze_sentence("It works.")
    assert record.kind == "sentence"
    assert record.srs_level is None


def test_provider_exception_becomes_lookup_failure():
    def _boom(prompt, audio):
        raise RuntimeError("429 rate limit exceeded")

    client = LookupClient(llm=StubLLM(_boom))
    with pytest.raises(LookupFailure) as excinfo:
        client.analyze_word("apple")
    assert excinfo.value.reason_code == "RATE_LIMIT"


def test_pronunciation_check_passes_audio_and_is_not_cached():
    llm = StubLLM()
    client = LookupClient(llm=llm, cache=LookupCache())
    feedback = client.check_pronunciation("apple", "AAAA", "wav")
    client.check_pronunciation("apple", "AAAA", "wav")
    assert feedback.score == 80
    assert feedback.tips == ["Slow down"]
    assert len(llm.calls) == 2
    assert llm.calls[0]["audio_b64"] == "AAAA"
    assert llm.calls[0]["audio_format"] == "wav"
