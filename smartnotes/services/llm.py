from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import openai
import structlog

from smartnotes.services.errors import EmptyCompletionError, ProviderError
from smartnotes.services.monitoring import LLM_CALL_DURATION
from smartnotes.services.providers import ClientFactory, ModelRegistry, ModelSpec

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CompletionRequest:
    model_id: str
    system_prompt: str
    user_prompt: str
    temperature: float
    max_tokens: Optional[int] = None
    json_mode: bool = False
    extra_params: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model_id,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": self.user_prompt},
            ],
            "temperature": self.temperature,
        }
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        if self.json_mode:
            payload["response_format"] = {"type": "json_object"}
        if self.extra_params:
            # provider specific fields the SDK does not model
            payload["extra_body"] = dict(self.extra_params)
        return payload


@dataclass(frozen=True)
class RawCompletion:
    text: str
    model_id: str = ""
    finish_reason: Optional[str] = None

    @property
    def truncated(self) -> bool:
        return self.finish_reason == "length"


def build_request(spec: ModelSpec, system_prompt: str, user_prompt: str, temperature: float = 0.5,
                  json_output: bool = True, max_tokens: Optional[int] = None,
                  use_model_budget: bool = True) -> CompletionRequest:
    """Assemble the request for a model from its capability record."""
    if max_tokens is None and use_model_budget:
        max_tokens = spec.max_tokens
    return CompletionRequest(
        model_id=spec.id,
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        temperature=temperature,
        max_tokens=max_tokens,
        json_mode=json_output and spec.supports_json_mode,
        extra_params=dict(spec.reasoning_params),
    )


class ModelInvoker:
    """Issues one chat completion per call. Never retries."""

    def __init__(self, registry: Optional[ModelRegistry] = None, clients: Optional[ClientFactory] = None):
        self.registry = registry or ModelRegistry()
        self.clients = clients or ClientFactory(self.registry)

    async def invoke(
        self,
        model_id: Optional[str],
        system_prompt: str,
        user_prompt: str,
        *,
        credential: Optional[str] = None,
        temperature: float = 0.5,
        json_output: bool = True,
        max_tokens: Optional[int] = None,
        use_model_budget: bool = True,
    ) -> RawCompletion:
        spec = self.registry.get(model_id)
        provider = spec.provider.value
        api_key = self.registry.resolve_credential(spec, credential)
        if not api_key:
            raise ProviderError(f"API key for {provider} is not configured", provider=provider)

        request = build_request(
            spec, system_prompt, user_prompt, temperature, json_output, max_tokens, use_model_budget
        )
        client = self.clients.resolve_client(spec, api_key)

        start = time.time()
        try:
            response = await client.chat.completions.create(**request.to_payload())
        except openai.APIStatusError as e:
            logger.error("llm_request_failed", model_id=spec.id, provider=provider,
                         status_code=e.status_code, error=str(e))
            raise ProviderError(f"{provider} returned {e.status_code}: {e.message}",
                                status_code=e.status_code, provider=provider) from e
        except openai.APIError as e:
            logger.error("llm_request_failed", model_id=spec.id, provider=provider, error=str(e))
            raise ProviderError(f"{provider} request failed: {e}", provider=provider) from e
        finally:
            LLM_CALL_DURATION.labels(provider=provider).observe(time.time() - start)

        choice = response.choices[0] if response.choices else None
        content = choice.message.content if choice and choice.message else None
        if not content or not content.strip():
            raise EmptyCompletionError(f"No content received from {spec.id}")

        completion = RawCompletion(text=content, model_id=spec.id, finish_reason=choice.finish_reason)
        if completion.truncated:
            logger.warning("llm_completion_truncated", model_id=spec.id, max_tokens=request.max_tokens)
        logger.info("llm_request_completed", model_id=spec.id, provider=provider,
                    duration_seconds=round(time.time() - start, 3), chars=len(content))
        return completion
