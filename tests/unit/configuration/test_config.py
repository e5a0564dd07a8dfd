"""Unit tests for settings, the configuration file loader and logging setup."""

import logging

import pytest
from pydantic import ValidationError

from mcp_orchestrator.configuration.config import Settings
from mcp_orchestrator.configuration.logging_config import configure_logging
from mcp_orchestrator.configuration.server_config import (
    AIModelConfig,
    load_config_file,
    parse_config_file,
)
from mcp_orchestrator.domain.exceptions.mcp import MCPConfigurationError
from mcp_orchestrator.domain.model.mcp import ServerKind
from tests.helpers import make_settings, write_config


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("MCP_REQUEST_TIMEOUT", "AGENT_MAX_ITERATIONS", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)

        assert settings.mcp_request_timeout == 30.0
        assert settings.mcp_init_attempts == 3
        assert settings.agent_max_iterations == 5
        assert settings.document_api_url == "http://localhost:3001"
        assert settings.log_level == "INFO"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("MCP_REQUEST_TIMEOUT", "12.5")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        settings = Settings(_env_file=None)

        assert settings.mcp_request_timeout == 12.5
        assert settings.log_level == "DEBUG"

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValidationError):
            make_settings(LOG_LEVEL="verbose")

    def test_rejects_zero_iterations(self):
        with pytest.raises(ValidationError):
            make_settings(AGENT_MAX_ITERATIONS=0)


class TestParseConfigFile:
    def test_parses_servers_and_models(self, tmp_path):
        path = write_config(
            tmp_path / "conf.json",
            servers={
                "agentdb": {"command": "npx", "args": ["agentdb"], "autoApprove": ["query"]},
                "docs": {"command": "node", "kind": "document_retrieval"},
            },
            models={
                "defaultModel": "local-llama",
                "models": [{"id": "local-llama", "provider": "local", "maxTokens": 2048}],
            },
        )

        config = parse_config_file(path)

        agentdb = config.mcp_servers["agentdb"]
        assert agentdb.name == "agentdb"
        assert agentdb.args == ["agentdb"]
        assert agentdb.auto_approve == ["query"]
        assert agentdb.enabled is True
        assert config.mcp_servers["docs"].kind == ServerKind.DOCUMENT_RETRIEVAL
        assert config.ai_models.default_model == "local-llama"
        assert config.ai_models.models[0].max_tokens == 2048

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(MCPConfigurationError, match="Cannot read"):
            parse_config_file(tmp_path / "missing.json")

    def test_malformed_json_raises(self, tmp_path):
        path = tmp_path / "conf.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(MCPConfigurationError, match="Invalid configuration"):
            parse_config_file(path)

    def test_load_is_tolerant(self, tmp_path):
        config = load_config_file(tmp_path / "missing.json")

        assert config.mcp_servers == {}
        assert config.ai_models.models == []


class TestAIModelConfig:
    def test_model_without_key_env_is_available(self):
        model = AIModelConfig(id="local", provider="local")
        assert model.api_key is None
        assert model.is_available is True

    def test_missing_api_key_disables_model(self, monkeypatch):
        monkeypatch.delenv("TEST_ANTHROPIC_KEY", raising=False)
        model = AIModelConfig.model_validate(
            {"id": "claude", "provider": "anthropic", "apiKeyEnv": "TEST_ANTHROPIC_KEY"}
        )
        assert model.is_available is False

    def test_present_api_key_enables_model(self, monkeypatch):
        monkeypatch.setenv("TEST_ANTHROPIC_KEY", "sk-test")
        model = AIModelConfig.model_validate(
            {"id": "claude", "provider": "anthropic", "apiKeyEnv": "TEST_ANTHROPIC_KEY"}
        )
        assert model.api_key == "sk-test"
        assert model.is_available is True

    def test_disabled_flag_wins(self):
        model = AIModelConfig(id="local", enabled=False)
        assert model.is_available is False


class TestConfigureLogging:
    def test_quiets_http_loggers(self):
        configure_logging(make_settings(LOG_LEVEL="DEBUG"))
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("LiteLLM").level == logging.WARNING
