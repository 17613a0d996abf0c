"""Text generation collaborators."""

from __future__ import annotations

import os
from typing import Protocol

from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from play_chain.errors import UnsupportedProviderError
from play_chain.models.model_spec import ModelSpec

SUPPORTED_PROVIDERS = ("openai", "openai-compatible")


class TextGenerator(Protocol):
    async def __call__(
        self,
        system_text: str,
        user_text: str,
        provider: str | None = None,
        model: str | None = None,
    ) -> str: ...


def build_model(model_spec: ModelSpec) -> OpenAIChatModel:
    if model_spec.provider not in SUPPORTED_PROVIDERS:
        raise UnsupportedProviderError(f"Unsupported model provider: {model_spec.provider!r}")
    api_key = os.environ.get(model_spec.api_key_env, "noop")
    provider = OpenAIProvider(base_url=model_spec.base_url, api_key=api_key)
    return OpenAIChatModel(model_spec.model_name, provider=provider)


class PydanticAITextGenerator:
    """Runs one system/user prompt pair through a pydantic-ai agent and returns its text."""

    def __init__(self, default_model: ModelSpec | None = None) -> None:
        self.default_model: ModelSpec = default_model or ModelSpec()
        self._models: dict[tuple[str, str], OpenAIChatModel] = {}

    def resolve_model_spec(self, provider: str | None, model: str | None) -> ModelSpec:
        # A step overrides the default model only when it names both provider and model.
        if provider and model:
            return self.default_model.model_copy(update={"provider": provider, "model_name": model})
        return self.default_model

    def _get_model(self, model_spec: ModelSpec) -> OpenAIChatModel:
        key = (model_spec.provider, model_spec.model_name)
        if key not in self._models:
            self._models[key] = build_model(model_spec)
        return self._models[key]

    def _model_settings(self, model_spec: ModelSpec) -> ModelSettings:
        return {"temperature": model_spec.temperature, "max_tokens": model_spec.max_tokens}

    async def __call__(
        self,
        system_text: str,
        user_text: str,
        provider: str | None = None,
        model: str | None = None,
    ) -> str:
        model_spec = self.resolve_model_spec(provider, model)
        agent = Agent(
            self._get_model(model_spec),
            system_prompt=system_text,
            output_type=str,
            model_settings=self._model_settings(model_spec),
        )
        result = await agent.run(user_text)
        return result.output
