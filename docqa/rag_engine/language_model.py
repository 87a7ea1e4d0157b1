"""
Language Model Clients

Chat completion against an OpenAI-compatible API (Groq by default), plus a
stand-in used when no API key is configured. Both raise ``ModelError``
subclasses on failure so the pipeline can take its fallback path.
"""

from abc import ABC, abstractmethod
from typing import Optional

import openai
from openai import OpenAI
import structlog

from .config import LLMConfig
from .exceptions import ModelTimeout, ModelUnavailable

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = ("You are an expert AI assistant with access to relevant documentation. "
                 "Answer using the provided context and be clear about what it does not cover.")


class LanguageModel(ABC):
    """Turns a prompt into completion text."""

    model_name: str = "none"

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """Return the model's answer to ``prompt``."""


class UnconfiguredLanguageModel(LanguageModel):
    """Stand-in for a missing API key; every call fails."""

    def __init__(self, model_name: str):
        self.model_name = model_name

    def complete(self, prompt: str) -> str:
        raise ModelUnavailable("Language model not configured",
                               {"model": self.model_name, "setting": "GROQ_API_KEY"})


class OpenAIChatModel(LanguageModel):
    """Chat model reached through the OpenAI client."""

    def __init__(self, config: LLMConfig, client: Optional[OpenAI] = None):
        self.config = config
        self.model_name = config.model
        # One attempt per request; the pipeline falls back instead of retrying
        self.client = client or OpenAI(api_key=config.api_key,
                                       base_url=config.base_url,
                                       timeout=config.timeout,
                                       max_retries=0)

        logger.info("OpenAIChatModel initialized",
                    model=config.model,
                    base_url=config.base_url)

    def complete(self, prompt: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt}
                ],
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                top_p=self.config.top_p
            )
        except openai.APITimeoutError as e:
            logger.error("Language model timed out", model=self.model_name, timeout=self.config.timeout)
            raise ModelTimeout("Language model timed out",
                               {"model": self.model_name, "timeout": self.config.timeout}) from e
        except openai.OpenAIError as e:
            logger.error("Language model call failed", model=self.model_name, error=str(e))
            raise ModelUnavailable(f"Language model call failed: {e}", {"model": self.model_name}) from e

        content = response.choices[0].message.content if response.choices else None
        text = (content or "").strip()
        if not text:
            raise ModelUnavailable("Language model returned an empty response", {"model": self.model_name})

        logger.info("Response generated successfully",
                    model=self.model_name,
                    response_length=len(text))
        return text


def build_language_model(config: LLMConfig) -> LanguageModel:
    """Chat model when an API key is set, otherwise the unconfigured stand-in."""
    if not config.is_configured:
        logger.warning("No LLM API key found, answers will use the fallback path",
                       model=config.model)
        return UnconfiguredLanguageModel(config.model)
    return OpenAIChatModel(config)
