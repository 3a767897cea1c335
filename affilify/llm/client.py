from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from anthropic import Anthropic
import google.generativeai as genai
from openai import OpenAI


class LLMClientConfigError(Exception):
    pass


logger = logging.getLogger(__name__)
_DEFAULT_MODEL = "gemini-2.5-flash"
_DEFAULT_TIMEOUT = 120
_ANTHROPIC_DEFAULT_MAX_TOKENS = 8192


@dataclass
class LLMGenerationParams:
    model: str
    max_tokens: Optional[int] = None
    temperature: float = 0.7


class LLMClient:
    """
    Lightweight wrapper for single-shot text generation.
    Routes to the appropriate provider client based on the requested model name. Every call is a
    single attempt: provider SDK retries are disabled so callers own the fallback policy.
    """

    def __init__(
        self,
        default_model: Optional[str] = None,
        *,
        gemini_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        timeout_seconds: int = _DEFAULT_TIMEOUT,
    ) -> None:
        self.default_model = default_model or _DEFAULT_MODEL
        self._gemini_api_key = gemini_api_key
        self._openai_api_key = openai_api_key
        self._anthropic_api_key = anthropic_api_key
        self._timeout = timeout_seconds
        self._gemini_configured = False
        self._anthropic_client: Optional[Anthropic] = None
        self._openai_client: Optional[OpenAI] = None

    def is_configured(self, model: Optional[str] = None) -> bool:
        """True when a credential exists for the provider that serves ``model``."""
        provider = self.provider_for_model(model or self.default_model)
        if provider == "openai":
            return bool(self._openai_api_key)
        if provider == "anthropic":
            return bool(self._anthropic_api_key)
        return bool(self._gemini_api_key)

    @staticmethod
    def provider_for_model(model: str) -> str:
        lower = model.lower()
        if lower.startswith("claude"):
            return "anthropic"
        if any(lower.startswith(prefix) for prefix in ("gpt-", "chatgpt-", "o1", "o3", "o4", "omni-")):
            return "openai"
        return "gemini"

    def generate_text(self, prompt: str, params: Optional[LLMGenerationParams] = None) -> str:
        model = params.model if params and params.model else self.default_model
        provider = self.provider_for_model(model)
        if provider == "openai":
            return self._generate_with_openai(prompt, model, params)
        if provider == "anthropic":
            return self._generate_with_anthropic(prompt, model, params)
        return self._generate_with_gemini(prompt, model, params)

    def _extract_response_text(self, response: Any) -> Optional[str]:
        text = getattr(response, "output_text", None)
        if text:
            return text
        maybe_output = getattr(response, "output", None)
        if not maybe_output:
            return None
        parts: list[str] = []
        for item in maybe_output:
            content = getattr(item, "content", None)
            if not content:
                continue
            for chunk in content:
                chunk_text = getattr(chunk, "text", None)
                if chunk_text:
                    parts.append(chunk_text)
        return "".join(parts) if parts else None

    def _generate_with_openai(self, prompt: str, model: str, params: Optional[LLMGenerationParams]) -> str:
        if not self._openai_api_key:
            raise LLMClientConfigError("OPENAI_API_KEY not configured")

        if not self._openai_client:
            self._openai_client = OpenAI(
                api_key=self._openai_api_key,
                timeout=float(self._timeout),
                max_retries=0,
            )

        request_kwargs: dict[str, Any] = {"model": model, "input": prompt}
        if params and params.max_tokens:
            request_kwargs["max_output_tokens"] = params.max_tokens
        # Reasoning models reject the temperature parameter.
        if not model.lower().startswith("o"):
            request_kwargs["temperature"] = params.temperature if params else 0.7

        response = self._openai_client.responses.create(**request_kwargs)
        text = self._extract_response_text(response)
        if text:
            return text
        raise RuntimeError(f"OpenAI returned no content for model {model}")

    def _generate_with_gemini(self, prompt: str, model: str, params: Optional[LLMGenerationParams]) -> str:
        if not self._gemini_api_key:
            raise LLMClientConfigError("GEMINI_API_KEY not configured")

        if not self._gemini_configured:
            genai.configure(api_key=self._gemini_api_key)
            self._gemini_configured = True

        generation_config: dict[str, Any] = {
            "temperature": params.temperature if params else 0.7,
        }
        if params and params.max_tokens:
            generation_config["max_output_tokens"] = params.max_tokens

        model_name = model if model.startswith("models/") else f"models/{model}"
        model_client = genai.GenerativeModel(model_name=model_name, generation_config=generation_config)
        try:
            result = model_client.generate_content(prompt, request_options={"timeout": self._timeout})
            text = None
            if result and getattr(result, "candidates", None):
                first = result.candidates[0]
                if first and first.content and getattr(first.content, "parts", None):
                    parts = first.content.parts
                    if parts and getattr(parts[0], "text", None):
                        text = parts[0].text
            if not text and hasattr(result, "text"):
                text = result.text
        except Exception:
            logger.exception("Gemini generation failed", extra={"model": model})
            raise

        if text:
            return text

        raise RuntimeError(f"Gemini returned no content for model {model}")

    def _generate_with_anthropic(self, prompt: str, model: str, params: Optional[LLMGenerationParams]) -> str:
        if not self._anthropic_api_key:
            raise LLMClientConfigError("ANTHROPIC_API_KEY not configured")

        if not self._anthropic_client:
            self._anthropic_client = Anthropic(api_key=self._anthropic_api_key, max_retries=0)

        max_tokens = params.max_tokens if params and params.max_tokens else _ANTHROPIC_DEFAULT_MAX_TOKENS
        temperature = params.temperature if params else 0.7
        response = self._anthropic_client.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
            timeout=self._timeout,
        )
        text_parts = [content.text for content in response.content if getattr(content, "text", None)]
        text = "".join(text_parts) if text_parts else None
        if text:
            return text

        raise RuntimeError(f"Anthropic returned no content for model {model}")
