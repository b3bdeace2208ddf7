"""Configuration for tool-loop.

Settings are read from environment variables (or any mapping with the same
keys) with defaults suited to local inference servers:

    DEFAULT_AI_PROVIDER_QA / DEFAULT_AI_PROVIDER_AGENT    ollama | openai
    DEFAULT_OLLAMA_MODEL_QA / DEFAULT_OLLAMA_MODEL_AGENT
    DEFAULT_OPENAI_MODEL_QA / DEFAULT_OPENAI_MODEL_AGENT
    OLLAMA_ENDPOINT, OPENAI_COMPATIBLE_ENDPOINT, OPENAI_API_KEY
    DEFAULT_TEMPERATURE, DEFAULT_TOP_P, DEFAULT_MAX_TOKENS
    MAX_TOOL_ITERATIONS, ENABLE_DEBUG_LOGS
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from tool_loop.agent import DEFAULT_MAX_ITERATIONS, Agent
from tool_loop.exceptions import ConfigError
from tool_loop.executor import ToolExecutor
from tool_loop.model import GenerationParams, ModelAdaptor


class ModelProvider(str, Enum):
    OLLAMA = "ollama"
    OPENAI = "openai"


class AIMode(str, Enum):
    QA = "qa"
    AGENT = "agent"


@dataclass(frozen=True)
class AIConfig:
    provider_qa: ModelProvider = ModelProvider.OLLAMA
    provider_agent: ModelProvider = ModelProvider.OLLAMA
    ollama_model_qa: str = "llama3.2:1B"
    openai_model_qa: str = "openai-compatible-generic"
    ollama_model_agent: str = "qwen2.5-coder:7b"
    openai_model_agent: str = "openai-compatible-generic"
    ollama_endpoint: str = "http://127.0.0.1:11434"
    openai_endpoint: str = "http://127.0.0.1:8033"
    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: int = 2048
    openai_api_key: Optional[str] = None
    enable_debug_logs: bool = False
    max_tool_iterations: int = DEFAULT_MAX_ITERATIONS


def _provider(value: str, key: str) -> ModelProvider:
    try:
        return ModelProvider(value.strip().lower())
    except ValueError:
        valid = [p.value for p in ModelProvider]
        raise ConfigError(f"{key}: unknown provider '{value}'. Valid providers: {valid}")


def _number(env: Mapping[str, str], key: str, default, cast):
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{key}: expected {cast.__name__}, got '{raw}'")


def load_config(environ: Optional[Mapping[str, str]] = None) -> AIConfig:
    """Resolve an AIConfig from ``environ`` (os.environ by default).

    Raises:
        ConfigError: If a provider name or numeric value can't be parsed.
    """
    env = os.environ if environ is None else environ
    defaults = AIConfig()

    max_iterations = _number(env, "MAX_TOOL_ITERATIONS", defaults.max_tool_iterations, int)
    if max_iterations < 1:
        raise ConfigError(f"MAX_TOOL_ITERATIONS must be at least 1, got {max_iterations}")

    return AIConfig(
        provider_qa=_provider(env.get("DEFAULT_AI_PROVIDER_QA", defaults.provider_qa.value), "DEFAULT_AI_PROVIDER_QA"),
        provider_agent=_provider(
            env.get("DEFAULT_AI_PROVIDER_AGENT", defaults.provider_agent.value),
            "DEFAULT_AI_PROVIDER_AGENT",
        ),
        ollama_model_qa=env.get("DEFAULT_OLLAMA_MODEL_QA", defaults.ollama_model_qa),
        openai_model_qa=env.get("DEFAULT_OPENAI_MODEL_QA", defaults.openai_model_qa),
        ollama_model_agent=env.get("DEFAULT_OLLAMA_MODEL_AGENT", defaults.ollama_model_agent),
        openai_model_agent=env.get("DEFAULT_OPENAI_MODEL_AGENT", defaults.openai_model_agent),
        ollama_endpoint=env.get("OLLAMA_ENDPOINT", defaults.ollama_endpoint),
        openai_endpoint=env.get("OPENAI_COMPATIBLE_ENDPOINT", defaults.openai_endpoint),
        temperature=_number(env, "DEFAULT_TEMPERATURE", defaults.temperature, float),
        top_p=_number(env, "DEFAULT_TOP_P", defaults.top_p, float),
        max_tokens=_number(env, "DEFAULT_MAX_TOKENS", defaults.max_tokens, int),
        openai_api_key=env.get("OPENAI_API_KEY") or None,
        enable_debug_logs=env.get("ENABLE_DEBUG_LOGS", "false").lower() == "true",
        max_tool_iterations=max_iterations,
    )


def get_default_provider(mode: AIMode = AIMode.QA, config: Optional[AIConfig] = None) -> ModelProvider:
    cfg = config or load_config()
    return cfg.provider_agent if mode == AIMode.AGENT else cfg.provider_qa


def get_default_endpoint(provider: ModelProvider, config: Optional[AIConfig] = None) -> str:
    cfg = config or load_config()
    if provider == ModelProvider.OLLAMA:
        return cfg.ollama_endpoint
    return cfg.openai_endpoint


def get_default_model_id(
    provider: ModelProvider, mode: AIMode = AIMode.QA, config: Optional[AIConfig] = None
) -> str:
    cfg = config or load_config()
    if provider == ModelProvider.OLLAMA:
        return cfg.ollama_model_agent if mode == AIMode.AGENT else cfg.ollama_model_qa
    return cfg.openai_model_agent if mode == AIMode.AGENT else cfg.openai_model_qa


def generation_params(config: Optional[AIConfig] = None) -> GenerationParams:
    cfg = config or load_config()
    return GenerationParams(
        temperature=cfg.temperature, top_p=cfg.top_p, max_tokens=cfg.max_tokens
    )


def create_adaptor(
    provider: Optional[ModelProvider] = None,
    mode: AIMode = AIMode.AGENT,
    config: Optional[AIConfig] = None,
) -> ModelAdaptor:
    """Build the model adaptor for ``provider`` (or the mode's default provider).

    The OpenAI-compatible endpoint is used as the API base, so a server at
    ``http://host:8033`` is called at ``http://host:8033/v1/chat/completions``.
    """
    cfg = config or load_config()
    provider = ModelProvider(provider) if provider is not None else get_default_provider(mode, cfg)
    model = get_default_model_id(provider, mode, cfg)
    endpoint = get_default_endpoint(provider, cfg)

    if provider == ModelProvider.OLLAMA:
        from tool_loop.adaptors.ollama import OllamaAdaptor

        return OllamaAdaptor(model=model, host=endpoint)

    from tool_loop.adaptors.openai import OpenAIAdaptor

    base_url = endpoint.rstrip("/")
    if not base_url.endswith("/v1"):
        base_url = f"{base_url}/v1"
    return OpenAIAdaptor(api_key=cfg.openai_api_key, model=model, base_url=base_url)


def configure_logging(config: Optional[AIConfig] = None) -> None:
    """Set the tool_loop logger level from ENABLE_DEBUG_LOGS."""
    cfg = config or load_config()
    logging.getLogger("tool_loop").setLevel(logging.DEBUG if cfg.enable_debug_logs else logging.INFO)


def create_agent(
    executor: ToolExecutor,
    provider: Optional[ModelProvider] = None,
    mode: AIMode = AIMode.AGENT,
    config: Optional[AIConfig] = None,
    **agent_kwargs,
) -> Agent:
    """Build an Agent for ``executor`` with the configured adaptor and iteration ceiling.

    Extra keyword arguments (``name``, ``hooks``, ``middlewares``, ``tools``)
    are passed to Agent.
    """
    cfg = config or load_config()
    return Agent(
        model=create_adaptor(provider, mode, cfg),
        executor=executor,
        max_iterations=cfg.max_tool_iterations,
        **agent_kwargs,
    )
