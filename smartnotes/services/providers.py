"""
Model catalogue, provider profiles and client construction.

Every model's capabilities (JSON mode, reasoning parameters, token budget) are
resolved once, when the registry is built. Call sites ask the registry for a
ModelSpec and never inspect the model id themselves.
"""
from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import structlog
from openai import AsyncOpenAI

logger = structlog.get_logger(__name__)

DEFAULT_MODEL = os.getenv("DEFAULT_MODEL_ID", "google/gemini-2.0-flash-001")

DEFAULT_MAX_TOKENS = 4000
LIMITED_MAX_TOKENS = 8192
REASONING_MAX_TOKENS = 16384


class Provider(str, enum.Enum):
    OPENROUTER = "OpenRouter"
    NVIDIA = "NVIDIA"


@dataclass(frozen=True)
class ProviderProfile:
    provider: Provider
    base_url: str
    env_keys: Tuple[str, ...]
    default_headers: Dict[str, str] = field(default_factory=dict)
    # NVIDIA Integrate answers 400 to chat_template_kwargs / reasoning_budget
    accepts_reasoning_params: bool = True
    # ...and to response_format on most of its models
    accepts_json_mode: bool = True


@dataclass(frozen=True)
class ModelSpec:
    id: str
    name: str
    provider: Provider
    description: str = ""
    supports_json_mode: bool = True
    supports_extended_reasoning: bool = False
    reasoning_params: Dict[str, object] = field(default_factory=dict)
    max_tokens: int = DEFAULT_MAX_TOKENS
    is_free: bool = False


def _provider_profiles() -> Dict[Provider, ProviderProfile]:
    return {
        Provider.OPENROUTER: ProviderProfile(
            provider=Provider.OPENROUTER,
            base_url="https://openrouter.ai/api/v1",
            env_keys=("OPENROUTER_API_KEY_1", "OPENROUTER_API_KEY_2"),
            default_headers={
                "HTTP-Referer": os.getenv("APP_URL", "http://localhost:8000"),
                "X-Title": "OpenSchool AI",
            },
        ),
        Provider.NVIDIA: ProviderProfile(
            provider=Provider.NVIDIA,
            base_url="https://integrate.api.nvidia.com/v1",
            env_keys=("NVIDIA_API_KEY",),
            accepts_reasoning_params=False,
            accepts_json_mode=False,
        ),
    }


# Thinking-mode request parameters per recognised reasoning model
THINKING_PARAMS: Dict[str, Dict[str, object]] = {
    "moonshotai/kimi-k2.5": {"chat_template_kwargs": {"thinking": True}},
    "qwen/qwen3-next-80b-a3b-thinking": {"chat_template_kwargs": {"thinking": True}},
    "deepseek-ai/deepseek-v3.1": {"chat_template_kwargs": {"thinking": True}},
    "nvidia/nemotron-3-nano-30b-a3b": {
        "reasoning_budget": 16384,
        "chat_template_kwargs": {"enable_thinking": True},
    },
}

# (id, name, description, provider, reasoning)
CATALOGUE: List[Tuple[str, str, str, Provider, bool]] = [
    ("google/gemini-2.0-flash-001", "Gemini 2.0 Flash", "Ultra-fast, massive context", Provider.OPENROUTER, False),
    ("qwen/qwen-2.5-72b-instruct", "Qwen 2.5 72B", "Excellent instruction following", Provider.OPENROUTER, False),
    ("liquid/lfm-2.5-1.2b-thinking:free", "Liquid LFM 2.5 (Free)", "Reasoning model", Provider.OPENROUTER, True),
    ("google/gemma-3-27b-it:free", "Gemma 3 27B (Free)", "Google's latest open model", Provider.OPENROUTER, False),
    ("mistralai/mistral-small-3.1-24b-instruct:free", "Mistral Small 3.1 (Free)", "Balanced performance", Provider.OPENROUTER, False),
    ("z-ai/glm-4.5-air:free", "GLM 4.5 Air (Free)", "High-speed reasoning", Provider.OPENROUTER, False),
    ("openai/gpt-oss-120b:free", "GPT-OSS 120B (Free)", "Large scale open model", Provider.OPENROUTER, False),
    ("nvidia/nemotron-3-nano-30b-a3b:free", "NVIDIA Nemotron 3 Nano (Free)", "Small but powerful agentic MoE", Provider.OPENROUTER, True),
    ("moonshotai/kimi-k2.5", "Kimi k2.5 (Thinking)", "Moonshot's reasoning model", Provider.NVIDIA, True),
    ("qwen/qwen3-next-80b-a3b-thinking", "Qwen 3 Next 80B (Thinking)", "Qwen's latest reasoning model", Provider.NVIDIA, True),
    ("nvidia/nemotron-3-nano-30b-a3b", "Nemotron 3 Nano (Thinking)", "NVIDIA's fast reasoning model", Provider.NVIDIA, True),
    ("deepseek-ai/deepseek-v3.1", "DeepSeek v3.1 (Thinking)", "DeepSeek's high-performance reasoning", Provider.NVIDIA, True),
]


def build_spec(
    model_id: str,
    name: str,
    provider: Provider,
    description: str = "",
    reasoning: bool = False,
    profiles: Optional[Dict[Provider, ProviderProfile]] = None,
) -> ModelSpec:
    """Derive a model's capability record from its provider and tier."""
    profile = (profiles or _provider_profiles())[provider]
    is_free = model_id.endswith(":free")
    limited = is_free or provider is Provider.NVIDIA

    if limited:
        max_tokens = LIMITED_MAX_TOKENS
    elif reasoning:
        max_tokens = REASONING_MAX_TOKENS
    else:
        max_tokens = DEFAULT_MAX_TOKENS

    reasoning_params: Dict[str, object] = {}
    if profile.accepts_reasoning_params:
        reasoning_params = dict(THINKING_PARAMS.get(model_id, {}))

    return ModelSpec(
        id=model_id,
        name=name,
        provider=provider,
        description=description,
        supports_json_mode=profile.accepts_json_mode and not is_free,
        supports_extended_reasoning=reasoning,
        reasoning_params=reasoning_params,
        max_tokens=max_tokens,
        is_free=is_free,
    )


class ModelRegistry:
    """Static lookup of ModelSpec by id, with a permissive default."""

    def __init__(self, catalogue: Iterable[Tuple[str, str, str, Provider, bool]] = CATALOGUE,
                 profiles: Optional[Dict[Provider, ProviderProfile]] = None):
        self.profiles = profiles or _provider_profiles()
        self._specs: Dict[str, ModelSpec] = {}
        for model_id, name, description, provider, reasoning in catalogue:
            self._specs[model_id] = build_spec(
                model_id, name, provider, description, reasoning, self.profiles
            )

    def __contains__(self, model_id: str) -> bool:
        return model_id in self._specs

    def all(self) -> List[ModelSpec]:
        return list(self._specs.values())

    def get(self, model_id: Optional[str]) -> ModelSpec:
        model_id = model_id or DEFAULT_MODEL
        spec = self._specs.get(model_id)
        if spec is None:
            logger.warning("unknown_model_id", model_id=model_id, fallback=Provider.OPENROUTER.value)
            spec = build_spec(model_id, model_id, Provider.OPENROUTER, profiles=self.profiles)
        return spec

    def profile_for(self, spec: ModelSpec) -> ProviderProfile:
        return self.profiles[spec.provider]

    def resolve_credential(self, spec: ModelSpec, explicit: Optional[str] = None,
                           account_index: int = 1) -> Optional[str]:
        """Explicit key first, then the provider's environment default.

        account_index picks between multiple environment keys of one provider
        (OpenRouter carries two accounts).
        """
        if explicit:
            return explicit
        env_keys = self.profile_for(spec).env_keys
        position = min(max(account_index, 1), len(env_keys)) - 1
        return os.getenv(env_keys[position]) or None


class ClientFactory:
    """Builds AsyncOpenAI clients per (provider, credential); cached per factory instance."""

    def __init__(self, registry: ModelRegistry, timeout: Optional[float] = None):
        self.registry = registry
        if timeout is None:
            timeout = float(os.getenv("LLM_REQUEST_TIMEOUT", "300"))
        self.timeout = timeout
        self._clients: Dict[Tuple[Provider, str], AsyncOpenAI] = {}

    def resolve_client(self, spec: ModelSpec, credential: str) -> AsyncOpenAI:
        key = (spec.provider, credential)
        client = self._clients.get(key)
        if client is None:
            profile = self.registry.profile_for(spec)
            logger.info("llm_client_initialized", provider=spec.provider.value, model_id=spec.id)
            client = AsyncOpenAI(
                api_key=credential,
                base_url=profile.base_url,
                default_headers=profile.default_headers or None,
                timeout=self.timeout,
                # retries belong to callers
                max_retries=0,
            )
            self._clients[key] = client
        return client
