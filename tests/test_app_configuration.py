import json
from pathlib import Path

import pytest

from modflow.configuration.ai_settings import AISettings
from modflow.configuration.app_configuration import AppConfig
from modflow.configuration.moderation_settings import DEFAULT_HARM_MARKERS, ModerationSettings


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path) -> None:
    config_payload = {
        "ai_settings": {
            "reasoning_model": "test-model",
            "base_url": "http://localhost:9000/v1",
            "temperature": 0.2,
            "request_timeout_seconds": 15,
        },
        "moderation": {
            "replacement_toxicity_threshold": 0.6,
            "harm_markers": ["Gore", " blood "],
        },
        "storage": {
            "database_path": str(config_path.parent / "db" / "modflow.db"),
            "public_base_url": "https://cdn.example.com/blobs/",
        },
    }
    config_path.write_text(json.dumps(config_payload), encoding="utf-8")

    config = AppConfig(config_path)

    ai_settings = config.ai_settings
    assert ai_settings.reasoning_model == "test-model"
    assert ai_settings.base_url == "http://localhost:9000/v1"
    assert ai_settings.temperature == pytest.approx(0.2)
    assert ai_settings.request_timeout_seconds == pytest.approx(15)

    moderation = config.moderation_settings
    assert moderation.replacement_toxicity_threshold == pytest.approx(0.6)
    assert moderation.harm_markers == ["gore", "blood"]

    assert config.database_path == (config_path.parent / "db" / "modflow.db").resolve()
    assert config.public_base_url == "https://cdn.example.com/blobs"


def test_app_config_yaml_syntax(config_path: Path) -> None:
    config_path.write_text(
        "ai_settings:\n  vision_model: gemini-test\nmoderation:\n  prompt_max_length: 120\n",
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.ai_settings.vision_model == "gemini-test"
    assert config.moderation_settings.prompt_max_length == 120


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.ai_settings.reasoning_model == "gpt-4o-mini"
    assert config.moderation_settings.approve_toxicity_below == pytest.approx(0.3)
    assert config.database_path.name == "modflow.db"
    assert config.public_base_url == "http://localhost:8000/blobs"


def test_app_config_non_mapping_is_ignored(config_path: Path) -> None:
    config_path.write_text("- just\n- a\n- list\n", encoding="utf-8")

    config = AppConfig(config_path)

    assert config.data == {}
    assert config.get("ai_settings") is None


def test_app_config_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text(json.dumps({"moderation": {"prompt_max_length": 50}}), encoding="utf-8")
    config = AppConfig(config_path)
    assert config.moderation_settings.prompt_max_length == 50

    config_path.write_text(json.dumps({"moderation": {"prompt_max_length": 80}}), encoding="utf-8")
    config.reload()

    assert config.moderation_settings.prompt_max_length == 80


def test_ai_settings_key_fallbacks(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

    settings = AISettings({"base_url": "http://llm.local/v1"})

    assert settings.api_key == "sk-env"
    assert settings.vision_api_key == "sk-env"
    assert settings.vision_base_url == "http://llm.local/v1"
    assert settings.base_url == "http://llm.local/v1"


def test_ai_settings_separate_vision_endpoint(monkeypatch) -> None:
    monkeypatch.setenv("GOOGLE_API_KEY", "g-key")

    settings = AISettings({
        "api_key": "sk-file",
        "vision_base_url": "https://generativelanguage.googleapis.com/v1beta/openai/",
    })

    assert settings.api_key == "sk-file"
    assert settings.vision_api_key == "g-key"
    assert settings.vision_base_url.startswith("https://generativelanguage")


def test_moderation_settings_defaults() -> None:
    settings = ModerationSettings()

    assert settings.replacement_toxicity_threshold == pytest.approx(0.7)
    assert settings.reject_toxicity_above == pytest.approx(0.7)
    assert settings.reject_issue_toxicity_above == pytest.approx(0.5)
    assert settings.prompt_max_length == 300
    assert settings.harm_markers == DEFAULT_HARM_MARKERS


def test_moderation_settings_invalid_markers_fall_back() -> None:
    assert ModerationSettings({"harm_markers": "gore"}).harm_markers == DEFAULT_HARM_MARKERS
    assert ModerationSettings({"harm_markers": []}).harm_markers == DEFAULT_HARM_MARKERS
