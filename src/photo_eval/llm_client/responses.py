"""Vision model backends (OpenAI-compatible chat completions and Gemini)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol, Union

from openai import OpenAI
import google.generativeai as genai

from photo_eval.config import AppConfig
from photo_eval.io.image_loader import ImagePayload
from photo_eval.llm_client.prompts import WARM_UP_PROMPT


class VisionBackendError(RuntimeError):
    pass


@dataclass(frozen=True)
class StructuredOutput:
    """Reply that arrived already decoded as JSON."""

    data: Any


@dataclass(frozen=True)
class TextOutput:
    """Free-text reply, possibly containing JSON."""

    text: str


RawOutput = Union[StructuredOutput, TextOutput]


class VisionClient(Protocol):
    """Interface for vision-capable model clients."""
    def infer(
        self,
        model: str,
        system_text: str,
        user_text: str,
        image: ImagePayload,
        schema: dict | None = None,
    ) -> RawOutput: ...

    def warm_up(self, model: str) -> None: ...


def _to_raw_output(text: str, schema_requested: bool) -> RawOutput:
    if schema_requested:
        try:
            data = json.loads(text)
        except ValueError:
            return TextOutput(text)
        if isinstance(data, dict):
            return StructuredOutput(data)
    return TextOutput(text)


class OpenAIBackend:
    """Client for OpenAI-compatible Chat Completions endpoints.

    Pointing ``OPENAI_BASE_URL`` at Cloudflare's
    ``/client/v4/accounts/<id>/ai/v1`` serves the Workers AI vision models.
    """
    def __init__(self, config: AppConfig) -> None:
        self._client = OpenAI(api_key=config.openai_api_key, base_url=config.openai_base_url)
        self._max_tokens = config.max_output_tokens
        self._temperature = config.temperature
        self._logger = logging.getLogger(self.__class__.__name__)

    def infer(
        self,
        model: str,
        system_text: str,
        user_text: str,
        image: ImagePayload,
        schema: dict | None = None,
    ) -> RawOutput:
        request: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_text},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": user_text},
                        {"type": "image_url", "image_url": {"url": image.data_url}},
                    ],
                },
            ],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }
        if schema is not None:
            request["response_format"] = {"type": "json_schema", "json_schema": schema}

        response = self._client.chat.completions.create(**request)
        if not response.choices:
            raise VisionBackendError(f"Model {model} returned no choices")
        output_text = response.choices[0].message.content or ""
        self._logger.debug("Model %s returned %d chars", model, len(output_text))
        return _to_raw_output(output_text, schema is not None)

    def warm_up(self, model: str) -> None:
        self._client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": WARM_UP_PROMPT}],
            max_tokens=8,
        )


class GeminiBackend:
    """Client for Google's Gemini API."""
    # Gemini does not support these JSON schema validation keywords
    UNSUPPORTED_KEYS = {"additionalProperties", "minimum", "maximum", "minItems", "maxItems"}

    def __init__(self, config: AppConfig) -> None:
        genai.configure(api_key=config.google_api_key)
        self._max_tokens = config.max_output_tokens
        self._temperature = config.temperature
        self._logger = logging.getLogger("GeminiBackend")

    def _clean_schema(self, schema: Any) -> Any:
        """Recursively remove unsupported keys from schema for Gemini compatibility."""
        if isinstance(schema, dict):
            return {
                k: self._clean_schema(v)
                for k, v in schema.items()
                if k not in self.UNSUPPORTED_KEYS
            }
        if isinstance(schema, list):
            return [self._clean_schema(item) for item in schema]
        return schema

    def infer(
        self,
        model: str,
        system_text: str,
        user_text: str,
        image: ImagePayload,
        schema: dict | None = None,
    ) -> RawOutput:
        config_kwargs: dict[str, Any] = {
            "max_output_tokens": self._max_tokens,
            "temperature": self._temperature,
        }
        if schema is not None:
            config_kwargs["response_mime_type"] = "application/json"
            config_kwargs["response_schema"] = self._clean_schema(schema.get("schema", schema))

        generative_model = genai.GenerativeModel(
            model,
            system_instruction=system_text,
            generation_config=genai.GenerationConfig(**config_kwargs),
        )
        response = generative_model.generate_content(
            [user_text, {"mime_type": image.mime_type, "data": image.data}]
        )
        return _to_raw_output(response.text, schema is not None)

    def warm_up(self, model: str) -> None:
        genai.GenerativeModel(model).generate_content(WARM_UP_PROMPT)


def create_client(config: AppConfig) -> VisionClient:
    """Factory to create the appropriate vision client."""
    if config.llm_provider == "google":
        if not config.google_api_key:
            raise ValueError("LLM_PROVIDER is 'google' but GOOGLE_API_KEY is missing")
        return GeminiBackend(config)

    # Default to OpenAI-compatible endpoints
    if not config.openai_api_key:
        raise ValueError("OPENAI_API_KEY is missing")
    return OpenAIBackend(config)
