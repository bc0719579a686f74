"""Configuration loading, structured logging and operation instrumentation."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from armario_app.config import DEFAULT_GEMINI_MODEL, AppConfig, read_config_file
from armario_app.logging_config import (
    JsonFormatter,
    correlation_context,
    ensure_correlation_id,
    log_event,
    operation_context,
    redact_for_log,
)
from logic.errors import NotFound
from tools.observability import instrument_operation

_ENV_KEYS = [
    "APP_ENV",
    "APP_CONFIG_PATH",
    "ARMARIO_CONFIG_DIR",
    "MODEL",
    "GOOGLE_API_KEY",
    "FIREBASE_API_KEY",
    "IDENTITY_BACKEND",
    "DATABASE_PATH",
    "AI_TIMEOUT_SECONDS",
    "SUGGESTION_TEMPERATURE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_run_offline() -> None:
    config = AppConfig.from_env()

    assert config.model == DEFAULT_GEMINI_MODEL
    assert config.api_key is None
    assert config.identity_backend == "local"
    assert config.suggestion_temperature == pytest.approx(0.95)
    assert config.ai_timeout_seconds == pytest.approx(30.0)


def test_yaml_file_is_overridden_by_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_file = tmp_path / "staging.yaml"
    config_file.write_text(
        "# staging\n"
        'model: "models/gemini-test"\n'
        "identity_backend: Firebase\n"
        "database_path: /tmp/armario-staging.db\n"
        "suggestion_temperature: 0.5\n"
    )
    monkeypatch.setenv("APP_CONFIG_PATH", str(config_file))
    monkeypatch.setenv("SUGGESTION_TEMPERATURE", "0.8")

    config = AppConfig.from_env()

    assert config.model == "models/gemini-test"
    assert config.identity_backend == "firebase"
    assert config.database_path == "/tmp/armario-staging.db"
    assert config.suggestion_temperature == pytest.approx(0.8)


def test_environment_name_selects_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "dev.yaml").write_text("ai_timeout_seconds: 12\n")
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.setenv("ARMARIO_CONFIG_DIR", str(tmp_path))

    config = AppConfig.from_env()

    assert config.environment == "dev"
    assert config.ai_timeout_seconds == pytest.approx(12.0)


def test_explicit_mapping_and_missing_file(tmp_path: Path) -> None:
    config = AppConfig.from_env(
        {"APP_CONFIG_PATH": str(tmp_path / "absent.yaml"), "IDENTITY_BACKEND": "FIREBASE", "GOOGLE_API_KEY": ""}
    )

    assert read_config_file(tmp_path / "absent.yaml") == {}
    assert config.identity_backend == "firebase"
    assert config.api_key is None


def test_redaction_masks_identity_and_images() -> None:
    scrubbed = redact_for_log(
        {
            "owner_id": "user-1",
            "photo_data_uri": "data:image/png;base64,AAAA",
            "note": "contact ana@example.com",
            "nested": [{"email": "ana@example.com"}, "data:image/jpeg;base64,BBBB"],
            "count": 3,
        }
    )

    assert scrubbed == {
        "owner_id": "[redacted]",
        "photo_data_uri": "[redacted]",
        "note": "contact [redacted-email]",
        "nested": [{"email": "[redacted]"}, "[redacted-data-uri]"],
        "count": 3,
    }


def test_json_formatter_emits_event_and_correlation_id() -> None:
    logger = logging.getLogger("armario.test")
    records: list = []

    class _Capture(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            records.append(record)

    handler = _Capture()
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    try:
        with correlation_context("corr-123"):
            log_event(logger, logging.INFO, "collection_renamed", affected=2, owner_id="user-1")
    finally:
        logger.removeHandler(handler)

    payload = json.loads(JsonFormatter().format(records[0]))
    assert payload["event"] == "collection_renamed"
    assert payload["correlation_id"] == "corr-123"
    assert payload["affected"] == 2
    assert payload["owner_id"] == "[redacted]"


def test_ensure_correlation_id_reuses_current_value() -> None:
    with correlation_context("fixed-id"):
        assert ensure_correlation_id() == "fixed-id"


def test_operation_context_names_the_records() -> None:
    record = logging.makeLogRecord({"msg": "agent_call_completed"})

    with operation_context("agent:outfit_suggester", correlation_id="op-1") as correlation_id:
        payload = json.loads(JsonFormatter().format(record))

    assert correlation_id == "op-1"
    assert payload["operation"] == "agent:outfit_suggester"
    assert payload["correlation_id"] == "op-1"
    assert payload["event"] == "agent_call_completed"


def test_instrument_operation_logs_and_reraises(caplog: pytest.LogCaptureFixture) -> None:
    @instrument_operation("lookup")
    def lookup(found: bool) -> str:
        if not found:
            raise NotFound("nope")
        return "ok"

    with caplog.at_level(logging.INFO, logger="tools.observability"):
        assert lookup(True) == "ok"
        with pytest.raises(NotFound):
            lookup(False)

    events = [record.event for record in caplog.records if hasattr(record, "event")]
    assert events == ["operation_started", "operation_completed", "operation_started", "operation_refused"]
    refused = caplog.records[-1]
    assert refused.levelno == logging.WARNING
    assert refused.error_type == "NotFound"
