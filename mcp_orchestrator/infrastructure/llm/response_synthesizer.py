"""
LiteLLM-backed response synthesizer.

Implements the LLMClient port for the configured ``aiModels``. Replies are
generated with ``litellm.acompletion``; the tool-call trace of the current
turn is appended to the last user message as a context block.

When no model is available or the provider call fails, the reply is built
deterministically from the tool results instead, so ``generate_response``
never raises.
"""

import asyncio
import logging
import warnings
from collections.abc import AsyncIterator, Sequence
from pathlib import Path
from typing import Any

# litellm's ModelResponse triggers pydantic serializer warnings for
# provider-specific fields it does not declare.
warnings.filterwarnings(
    "ignore",
    message=r"Pydantic serializer warnings",
    category=UserWarning,
)

from mcp_orchestrator.configuration.config import Settings, get_settings
from mcp_orchestrator.configuration.server_config import (
    AIModelConfig,
    OrchestratorConfigFile,
    load_config_file,
)
from mcp_orchestrator.domain.llm_providers.llm_types import (
    LLMClient,
    LLMResponse,
    Message,
    MessageRole,
)
from mcp_orchestrator.domain.model.mcp import ToolCallRecord
from mcp_orchestrator.infrastructure.llm.sap_formatter import GenericSAPFormatter
from mcp_orchestrator.infrastructure.llm.tool_context import (
    SimulatedReplyBuilder,
    build_tool_context,
)

logger = logging.getLogger(__name__)

# Configured provider name -> LiteLLM provider prefix
PROVIDER_PREFIXES = {
    "openai": "openai",
    "anthropic": "anthropic",
    "google": "gemini",
    "azure": "azure",
    "local": "ollama",
}

DEFAULT_OLLAMA_BASE = "http://localhost:11434"
_OLLAMA_ENDPOINT_SUFFIXES = ("/api/generate", "/api/chat")


class ResponseSynthesizer(LLMClient):
    """
    LLM client over the models declared in the configuration file.

    Usage:
        synthesizer = ResponseSynthesizer("conf.json")
        response = await synthesizer.generate_response(
            [Message.system("You are helpful."), Message.user("Zeige VBAK")],
            tool_results=trace,
        )
    """

    def __init__(
        self,
        config_path: str | Path | None = None,
        settings: Settings | None = None,
        formatter: GenericSAPFormatter | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.config_path = Path(config_path or self._settings.mcp_config_path)
        self._simulator = SimulatedReplyBuilder(formatter)
        self._config = OrchestratorConfigFile()
        self._models: dict[str, AIModelConfig] = {}
        self._default_model_id: str | None = None
        self._initialize_config()

    def _initialize_config(self) -> None:
        self._config = load_config_file(self.config_path)
        self._models = {m.id: m for m in self._config.ai_models.models}
        for model in self._models.values():
            key_state = (
                ("Present" if model.api_key else "Missing") if model.api_key_env else "Not Required"
            )
            logger.info(f"Model {model.id}: API Key {key_state}, Enabled: {model.is_available}")

        configured = self._settings.default_ai_model or self._config.ai_models.default_model
        self._default_model_id = configured
        if configured is None or self.get_model(configured) is None:
            available = self.get_available_models()
            if available:
                self._default_model_id = available[0].id
                logger.warning(
                    f"Default model {configured} not available, using {self._default_model_id}"
                )
            else:
                logger.error("No AI models are available! Please check your API keys.")

        logger.info(
            f"Initialized AI models. Default: {self._default_model_id}. "
            f"Available models: {', '.join(m.name or m.id for m in self.get_available_models())}"
        )

    # ------------------------------------------------------------------
    # Model management
    # ------------------------------------------------------------------

    def get_available_models(self) -> list[AIModelConfig]:
        return [m for m in self._models.values() if m.is_available]

    def get_all_models(self) -> list[AIModelConfig]:
        return list(self._models.values())

    def get_model(self, model_id: str) -> AIModelConfig | None:
        """Return the model if it is configured and available."""
        model = self._models.get(model_id)
        return model if model is not None and model.is_available else None

    def get_default_model(self) -> AIModelConfig | None:
        if self._default_model_id:
            model = self.get_model(self._default_model_id)
            if model is not None:
                return model
        available = self.get_available_models()
        return available[0] if available else None

    def set_default_model(self, model_id: str) -> bool:
        model = self.get_model(model_id)
        if model is None:
            return False
        self._default_model_id = model_id
        logger.info(f"Set default model to: {model.name or model.id}")
        return True

    def update_model_config(self, model_id: str, **updates: Any) -> bool:
        model = self._models.get(model_id)
        if model is None:
            return False
        self._models[model_id] = model.model_copy(update=updates)
        logger.info(f"Updated configuration for model: {model_id}")
        return True

    def reload_configuration(self) -> None:
        logger.info("Reloading AI model configuration...")
        self._initialize_config()

    def get_providers(self) -> dict[str, Any]:
        return dict(self._config.providers)

    # ------------------------------------------------------------------
    # LiteLLM plumbing
    # ------------------------------------------------------------------

    @staticmethod
    def _litellm_model(model: AIModelConfig) -> str:
        if "/" in model.id:
            return model.id
        prefix = PROVIDER_PREFIXES.get(model.provider)
        return f"{prefix}/{model.id}" if prefix else model.id

    @staticmethod
    def _resolve_api_base(model: AIModelConfig) -> str | None:
        """Resolve the API base URL for self-hosted providers."""
        if model.provider == "local":
            endpoint = model.endpoint or DEFAULT_OLLAMA_BASE
            for suffix in _OLLAMA_ENDPOINT_SUFFIXES:
                if endpoint.endswith(suffix):
                    return endpoint[: -len(suffix)]
            return endpoint
        if model.provider == "azure":
            return model.endpoint
        return None

    @staticmethod
    def _build_messages(
        messages: Sequence[Message], tool_results: Sequence[ToolCallRecord] | None
    ) -> list[dict[str, str]]:
        litellm_messages = [m.to_dict() for m in messages]
        if tool_results and litellm_messages:
            last = litellm_messages[-1]
            if last["role"] == MessageRole.USER.value:
                last["content"] += build_tool_context(tool_results)
        return litellm_messages

    def _build_completion_kwargs(
        self,
        model: AIModelConfig,
        messages: Sequence[Message],
        tool_results: Sequence[ToolCallRecord] | None,
        **extra: Any,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self._litellm_model(model),
            "messages": self._build_messages(messages, tool_results),
            "max_tokens": model.max_tokens,
            "temperature": model.temperature,
            "timeout": self._settings.llm_timeout,
            "num_retries": self._settings.llm_max_retries,
            **extra,
        }
        if model.api_key:
            kwargs["api_key"] = model.api_key
        api_base = self._resolve_api_base(model)
        if api_base:
            kwargs["api_base"] = api_base
        return kwargs

    def _resolve_model(self, model_id: str | None) -> AIModelConfig | None:
        if model_id:
            model = self.get_model(model_id)
            if model is None:
                logger.warning(f"Model {model_id} not found or not enabled")
            return model
        return self.get_default_model()

    # ------------------------------------------------------------------
    # LLMClient
    # ------------------------------------------------------------------

    async def _generate_response(
        self,
        messages: list[Message],
        model_id: str | None = None,
        tool_results: Sequence[ToolCallRecord] | None = None,
    ) -> LLMResponse:
        import litellm

        model = self._resolve_model(model_id)
        if model is None:
            return self._simulate(messages, model_id or "simulated", tool_results)

        logger.info(f"Generating response using model: {model.name or model.id}")
        try:
            response = await litellm.acompletion(
                **self._build_completion_kwargs(model, messages, tool_results)
            )
            if not response.choices:
                raise ValueError("No choices in response")
            content = response.choices[0].message.content or ""
        except Exception as e:
            logger.error(f"Error generating response with {model.id}: {e}")
            return self._simulate(messages, model.id, tool_results)

        usage: dict[str, int] = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": getattr(response.usage, "prompt_tokens", 0) or 0,
                "completion_tokens": getattr(response.usage, "completion_tokens", 0) or 0,
                "total_tokens": getattr(response.usage, "total_tokens", 0) or 0,
            }
        return LLMResponse(content=content, model=model.id, usage=usage)

    async def generate_response_stream(
        self,
        messages: list[Message],
        model_id: str | None = None,
        tool_results: Sequence[ToolCallRecord] | None = None,
    ) -> AsyncIterator[str]:
        """
        Yield reply text as it arrives.

        Falls back to word-by-word chunks of ``generate_response`` when no
        model is available or the stream fails before its first chunk. A
        failure after text has been yielded is raised.
        """
        import litellm

        model = self._resolve_model(model_id)
        if model is not None:
            logger.info(f"Generating streaming response using model: {model.name or model.id}")
            started = False
            try:
                stream = await litellm.acompletion(
                    **self._build_completion_kwargs(model, messages, tool_results, stream=True)
                )
                async for chunk in stream:
                    if not chunk.choices:
                        continue
                    delta = getattr(chunk.choices[0].delta, "content", None)
                    if delta:
                        started = True
                        yield delta
                return
            except Exception as e:
                logger.error(f"LiteLLM streaming error with {model.id}: {e}")
                if started:
                    raise

        response = await self.generate_response(messages, model_id, tool_results)
        for word in response.content.split(" "):
            yield word + " "
            await asyncio.sleep(self._settings.stream_fallback_delay)

    def _simulate(
        self,
        messages: Sequence[Message],
        model_id: str,
        tool_results: Sequence[ToolCallRecord] | None,
    ) -> LLMResponse:
        last_user = next(
            (m.content for m in reversed(messages) if m.role == MessageRole.USER.value), ""
        )
        content = self._simulator.build(last_user, tool_results)
        prompt_chars = sum(len(m.content) for m in messages)
        usage = {
            "prompt_tokens": prompt_chars // 4,
            "completion_tokens": len(content) // 4,
            "total_tokens": (prompt_chars + len(content)) // 4,
        }
        return LLMResponse(content=content, model=model_id, usage=usage)
