"""Tests for configuration loading."""

import json

import pytest

from casebuilder.config import EditorConfig, load_config
from casebuilder.domain.exceptions import ConfigurationError


class TestDefaults:
    def test_defaults(self) -> None:
        config = load_config(env={})
        assert config == EditorConfig()
        assert config.max_checkpoints == 10
        assert config.rollback_on_failure is True

    def test_resolved_ai_path_from_provider(self) -> None:
        assert EditorConfig().resolved_ai_path == "/api/gemini"
        assert EditorConfig(provider="openai").resolved_ai_path == "/api/openai"
        assert EditorConfig(ai_path="/custom").resolved_ai_path == "/custom"


class TestValidation:
    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown provider 'mystery'"):
            EditorConfig(provider="mystery")

    def test_non_positive_timeout(self) -> None:
        with pytest.raises(ConfigurationError, match="Timeouts must be positive"):
            EditorConfig(stream_timeout=0)

    def test_checkpoint_capacity(self) -> None:
        with pytest.raises(ConfigurationError, match="max_checkpoints"):
            EditorConfig(max_checkpoints=0)


class TestEnvironment:
    def test_env_overrides_and_coercion(self) -> None:
        config = load_config(
            env={
                "CASEBUILDER_BASE_URL": "http://backend.test",
                "CASEBUILDER_MAX_CHECKPOINTS": "5",
                "CASEBUILDER_REQUEST_TIMEOUT": "2.5",
                "CASEBUILDER_ROLLBACK_ON_FAILURE": "off",
                "UNRELATED": "ignored",
            }
        )
        assert config.base_url == "http://backend.test"
        assert config.max_checkpoints == 5
        assert config.request_timeout == 2.5
        assert config.rollback_on_failure is False

    def test_bad_bool(self) -> None:
        with pytest.raises(ConfigurationError, match="CASEBUILDER_ROLLBACK_ON_FAILURE"):
            load_config(env={"CASEBUILDER_ROLLBACK_ON_FAILURE": "maybe"})

    def test_bad_int(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid value"):
            load_config(env={"CASEBUILDER_MAX_CHECKPOINTS": "ten"})


class TestFile:
    def test_file_values_below_env(self, tmp_path) -> None:
        path = tmp_path / "casebuilder.json"
        path.write_text(json.dumps({"provider": "openai", "max_checkpoints": 3}))

        config = load_config(path, env={"CASEBUILDER_MAX_CHECKPOINTS": "7"})

        assert config.provider == "openai"
        assert config.max_checkpoints == 7

    def test_unknown_key(self, tmp_path) -> None:
        path = tmp_path / "casebuilder.json"
        path.write_text(json.dumps({"colour": "blue"}))
        with pytest.raises(ConfigurationError, match="Unknown config keys"):
            load_config(path, env={})

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="Config file not found"):
            load_config(tmp_path / "absent.json", env={})

    def test_invalid_json(self, tmp_path) -> None:
        path = tmp_path / "casebuilder.json"
        path.write_text("{oops")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_config(path, env={})

    def test_non_object(self, tmp_path) -> None:
        path = tmp_path / "casebuilder.json"
        path.write_text("[]")
        with pytest.raises(ConfigurationError, match="Expected dict"):
            load_config(path, env={})

    def test_string_field_rejects_number(self, tmp_path) -> None:
        path = tmp_path / "casebuilder.json"
        path.write_text(json.dumps({"base_url": 3}))
        with pytest.raises(ConfigurationError, match="expected a string"):
            load_config(path, env={})

    def test_optional_string_accepts_null(self, tmp_path) -> None:
        path = tmp_path / "casebuilder.json"
        path.write_text(json.dumps({"ai_path": None}))
        assert load_config(path, env={}).ai_path is None
