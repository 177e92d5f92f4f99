"""
Unit tests for the model registry, credentials and request building
"""
from unittest.mock import patch

from smartnotes.services.llm import build_request
from smartnotes.services.providers import (
    DEFAULT_MAX_TOKENS,
    LIMITED_MAX_TOKENS,
    REASONING_MAX_TOKENS,
    ClientFactory,
    ModelRegistry,
    Provider,
)


class TestModelRegistry:
    def setup_method(self):
        self.registry = ModelRegistry()

    def test_known_openrouter_model(self):
        spec = self.registry.get("google/gemini-2.0-flash-001")
        assert spec.provider is Provider.OPENROUTER
        assert spec.supports_json_mode
        assert spec.max_tokens == DEFAULT_MAX_TOKENS
        assert spec.reasoning_params == {}

    def test_free_models_skip_json_mode_and_get_larger_budget(self):
        spec = self.registry.get("google/gemma-3-27b-it:free")
        assert spec.is_free
        assert not spec.supports_json_mode
        assert spec.max_tokens == LIMITED_MAX_TOKENS

    def test_nvidia_thinking_model_sends_no_reasoning_params(self):
        """NVIDIA Integrate rejects reasoning params and response_format"""
        spec = self.registry.get("moonshotai/kimi-k2.5")
        assert spec.provider is Provider.NVIDIA
        assert spec.supports_extended_reasoning
        assert spec.reasoning_params == {}
        assert not spec.supports_json_mode
        assert spec.max_tokens == LIMITED_MAX_TOKENS

    def test_reasoning_model_on_accepting_provider(self):
        registry = ModelRegistry(catalogue=[
            ("deepseek-ai/deepseek-v3.1", "DeepSeek", "", Provider.OPENROUTER, True),
        ])
        spec = registry.get("deepseek-ai/deepseek-v3.1")
        assert spec.reasoning_params == {"chat_template_kwargs": {"thinking": True}}
        assert spec.max_tokens == REASONING_MAX_TOKENS

    def test_unknown_model_falls_back_to_openrouter(self):
        spec = self.registry.get("someone/typo-model")
        assert spec.id == "someone/typo-model"
        assert spec.provider is Provider.OPENROUTER
        assert "someone/typo-model" not in self.registry

    def test_missing_model_id_uses_default(self):
        assert self.registry.get(None).id == "google/gemini-2.0-flash-001"

    def test_catalogue_listing(self):
        ids = [s.id for s in self.registry.all()]
        assert "deepseek-ai/deepseek-v3.1" in ids
        assert len(ids) == len(set(ids))


class TestCredentials:
    def test_explicit_key_wins(self, api_keys):
        registry = ModelRegistry()
        spec = registry.get("google/gemini-2.0-flash-001")
        assert registry.resolve_credential(spec, "caller-key") == "caller-key"

    def test_environment_default_per_provider(self, api_keys):
        registry = ModelRegistry()
        assert registry.resolve_credential(registry.get("google/gemini-2.0-flash-001")) == "or-key-1"
        assert registry.resolve_credential(registry.get("moonshotai/kimi-k2.5")) == "nv-key"

    def test_second_openrouter_account(self, api_keys):
        registry = ModelRegistry()
        spec = registry.get("google/gemini-2.0-flash-001")
        assert registry.resolve_credential(spec, account_index=2) == "or-key-2"

    def test_no_credential(self, monkeypatch):
        monkeypatch.delenv("NVIDIA_API_KEY", raising=False)
        registry = ModelRegistry()
        assert registry.resolve_credential(registry.get("moonshotai/kimi-k2.5")) is None


class TestBuildRequest:
    def test_json_mode_only_when_supported(self):
        registry = ModelRegistry()
        paid = build_request(registry.get("google/gemini-2.0-flash-001"), "sys", "user")
        free = build_request(registry.get("google/gemma-3-27b-it:free"), "sys", "user")
        assert paid.to_payload()["response_format"] == {"type": "json_object"}
        assert "response_format" not in free.to_payload()

    def test_payload_shape(self):
        spec = ModelRegistry().get("qwen/qwen-2.5-72b-instruct")
        payload = build_request(spec, "system text", "user text", temperature=0.7).to_payload()
        assert payload["model"] == "qwen/qwen-2.5-72b-instruct"
        assert payload["messages"] == [
            {"role": "system", "content": "system text"},
            {"role": "user", "content": "user text"},
        ]
        assert payload["temperature"] == 0.7
        assert payload["max_tokens"] == DEFAULT_MAX_TOKENS
        assert "extra_body" not in payload

    def test_reasoning_params_go_to_extra_body(self):
        registry = ModelRegistry(catalogue=[
            ("nvidia/nemotron-3-nano-30b-a3b", "Nemotron", "", Provider.OPENROUTER, True),
        ])
        payload = build_request(registry.get("nvidia/nemotron-3-nano-30b-a3b"), "s", "u").to_payload()
        assert payload["extra_body"]["reasoning_budget"] == 16384
        assert payload["extra_body"]["chat_template_kwargs"] == {"enable_thinking": True}

    def test_no_budget_when_disabled(self):
        spec = ModelRegistry().get("google/gemini-2.0-flash-001")
        request = build_request(spec, "s", "u", json_output=False, use_model_budget=False)
        payload = request.to_payload()
        assert "max_tokens" not in payload
        assert "response_format" not in payload


class TestClientFactory:
    @patch("smartnotes.services.providers.AsyncOpenAI")
    def test_clients_cached_per_provider_and_key(self, mock_client_cls):
        registry = ModelRegistry()
        factory = ClientFactory(registry, timeout=5)
        gemini = registry.get("google/gemini-2.0-flash-001")
        qwen = registry.get("qwen/qwen-2.5-72b-instruct")

        first = factory.resolve_client(gemini, "key-a")
        second = factory.resolve_client(qwen, "key-a")
        third = factory.resolve_client(gemini, "key-b")

        assert first is second
        assert mock_client_cls.call_count == 2
        assert third is not None
        kwargs = mock_client_cls.call_args_list[0].kwargs
        assert kwargs["base_url"] == "https://openrouter.ai/api/v1"
        assert kwargs["max_retries"] == 0
        assert kwargs["timeout"] == 5

    @patch("smartnotes.services.providers.AsyncOpenAI")
    def test_nvidia_endpoint(self, mock_client_cls):
        registry = ModelRegistry()
        ClientFactory(registry, timeout=5).resolve_client(registry.get("deepseek-ai/deepseek-v3.1"), "nv")
        assert mock_client_cls.call_args.kwargs["base_url"] == "https://integrate.api.nvidia.com/v1"
