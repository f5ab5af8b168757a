"""
LLM Client for the Token Signal Agent, supporting multiple providers.

Every supported provider speaks the OpenAI chat-completions protocol, so a
single OpenAI SDK client is configured per provider with its base URL, key
and default model.
"""
import asyncio
import hashlib
from typing import Optional

import httpx
from openai import OpenAI

from signal_agent.config.settings import settings
from signal_agent.data.cache import CacheManager
from signal_agent.utils.logging import get_logger
from signal_agent.utils.performance import time_function

logger = get_logger(__name__)

SUPPORTED_PROVIDERS = ("mistral", "openrouter", "openai_direct")


class LLMClient:
    """
    A client for interacting with chat-completion language models.
    Supports Mistral, OpenRouter and direct OpenAI access.
    """
    def __init__(
        self,
        api_key: Optional[str] = None,
        provider: Optional[str] = None,
        client: Optional[OpenAI] = None,
        cache: Optional[CacheManager] = None,
    ):
        """
        Initializes the LLMClient with configurable provider.

        Args:
            api_key: The API key. Can also be set via provider-specific env vars.
            provider: Overrides LLM_PROVIDER.
            client: A preconfigured OpenAI-compatible client, mainly for tests.
            cache: Response cache; a private one is created when omitted.
        """
        self.provider = (provider or settings.llm.PROVIDER).lower()
        self.cache = cache or CacheManager()
        self.temperature = settings.llm.TEMPERATURE
        self.last_usage = None

        if self.provider == "mistral":
            base_url = settings.llm.MISTRAL_BASE_URL
            self.api_key = api_key or settings.MISTRAL_API_KEY
            self.default_model = settings.llm.MISTRAL_DEFAULT_MODEL
            key_name = "MISTRAL_API_KEY"
            headers = None
        elif self.provider == "openrouter":
            base_url = settings.llm.OPENROUTER_BASE_URL
            self.api_key = api_key or settings.OPENROUTER_API_KEY
            self.default_model = settings.llm.OPENROUTER_DEFAULT_MODEL
            key_name = "OPENROUTER_API_KEY"
            headers = {
                "HTTP-Referer": settings.llm.SITE_URL,
                "X-Title": settings.llm.APP_NAME,
            }
        elif self.provider == "openai_direct":
            base_url = settings.llm.OPENAI_BASE_URL
            self.api_key = api_key or settings.llm.OPENAI_API_KEY
            self.default_model = settings.llm.OPENAI_DEFAULT_MODEL
            key_name = "LLM_OPENAI_API_KEY"
            headers = None
        else:
            raise ValueError(
                f"Unsupported LLM provider: {self.provider}. Supported: {', '.join(SUPPORTED_PROVIDERS)}"
            )

        if client is not None:
            self.client = client
            return

        if not self.api_key:
            raise ValueError(f"{key_name} environment variable not set for {self.provider} provider.")

        http_client = httpx.Client(
            limits=httpx.Limits(
                max_keepalive_connections=10,
                max_connections=20,
                keepalive_expiry=30.0,
            )
        )

        self.client = OpenAI(
            base_url=base_url,
            api_key=self.api_key,
            default_headers=headers,
            http_client=http_client,
        )

    @time_function(operation_name="llm_generate")
    async def generate(self, model: Optional[str], prompt: str, system_prompt: str) -> str:
        """
        Generates a response from the configured language model.

        The blocking SDK call runs in a worker thread so callers can bound it
        with ``asyncio.wait_for``.

        Args:
            model: The name of the language model to use. If None, uses provider default.
            prompt: The user-level prompt for the LLM.
            system_prompt: The system-level prompt for the LLM.

        Returns:
            The stripped textual response from the language model.

        Raises:
            RuntimeError: If the model returns an empty response.
        """
        if model is None:
            model = self.default_model

        cache_key_data = f"{model}:{system_prompt}:{prompt}"
        cache_key = hashlib.sha256(cache_key_data.encode()).hexdigest()

        cached_response = self.cache.get(cache_key)
        if cached_response is not None:
            logger.debug("LLM cache hit", key=cache_key)
            return cached_response

        chat_completion = await asyncio.to_thread(
            self.client.chat.completions.create,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            model=model,
            temperature=self.temperature,
        )
        response = chat_completion.choices[0].message.content if chat_completion.choices else None
        self.last_usage = getattr(chat_completion, "usage", None)

        if not response or not response.strip():
            raise RuntimeError(f"{self.provider} returned an empty response")

        response = response.strip()
        self.cache.set(cache_key, response, settings.llm.CACHE_TTL_SECONDS)
        return response
