import json

import structlog

from flashvocab import logging as app_logging


def test_sensitive_keys_are_masked(monkeypatch):
    monkeypatch.setattr(app_logging.settings, "openai_api_key", None)
    event = app_logging.redact_event(
        None,
        "info",
        {"event": "x", "openai_api_key": "sk-abcdefghijklmnop", "nested": {"authorization": "short"}},
    )
    assert event["openai_api_key"] == "sk-a…mnop"
    assert event["nested"]["authorization"] == "***"
    assert event["event"] == "x"


def test_request_numbers_are_not_masked(monkeypatch):
    monkeypatch.setattr(app_logging.settings, "openai_api_key", None)
    event = app_logging.redact_event(None, "info", {"event": "lookup_stale_result_dropped", "token": 3, "latest_token": 4})
    assert event["token"] == 3
    assert event["latest_token"] == 4


def test_audio_payload_is_replaced_by_its_length(monkeypatch):
    monkeypatch.setattr(app_logging.settings, "openai_api_key", None)
    event = app_logging.redact_event(None, "info", {"event": "x", "audio_base64": "UklGRg" * 10})
    assert event["audio_base64"] == "<60 chars>"


def test_configured_key_is_scrubbed_from_free_text(monkeypatch):
    monkeypatch.setattr(app_logging.settings, "openai_api_key", "sk-live-1234567890")
    event = app_logging.redact_event(None, "info", {"event": "call failed with sk-live-1234567890"})
    assert "sk-live-1234567890" not in event["event"]
    assert "sk-l…7890" in event["event"]


def test_mask_secret_hides_short_values():
    assert app_logging.mask_secret("abc") == "***"
    assert app_logging.mask_secret(None) == "***"


def test_configure_logging_renders_json(monkeypatch, capfd):
    monkeypatch.setattr(app_logging.settings, "sentry_dsn", None)
    app_logging.configure_logging()
    structlog.get_logger().info("srs_rated", grade="good", new_level=1)
    lines = [line for line in capfd.readouterr().err.splitlines() if line.startswith("{")]
    payloads = [json.loads(line) for line in lines]
    assert any(p["event"] == "srs_rated" and p["new_level"] == 1 and p["level"] == "info" for p in payloads)
