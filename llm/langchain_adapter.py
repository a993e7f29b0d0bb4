"""
LangChain Adapter

Encapsulates all LangChain logic for the AI provider call.
Exposes simple Python types only - NO LangChain objects leak out.

DESIGN RULES (LOCK THIS IN):
- LangChain stays INSIDE this module
- Returns (str, dict) tuple only - no LangChain types
- No retries; provider failures propagate to the orchestrator
- Timing and token estimation belong to the caller
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage
from langchain_openai import AzureChatOpenAI, ChatOpenAI


OPENAI_ENDPOINT = "https://api.openai.com/v1"


@dataclass(frozen=True)
class ProviderSettings:
    """Credentials and defaults for the chat provider."""

    api_key: str
    default_model: str = "gpt-3.5-turbo"
    default_temperature: float = 0.7
    default_max_tokens: int = 1000
    base_url: Optional[str] = None
    request_timeout: float = 60.0
    # Azure OpenAI (used when azure_endpoint is set)
    azure_endpoint: Optional[str] = None
    azure_api_version: str = "2024-02-15-preview"
    azure_deployment: Optional[str] = None


class ChatProvider:
    """
    Calls the configured chat model with a single user message.

    Usage:
        provider = ChatProvider(settings)
        text, metadata = await provider.generate(prompt, model="gpt-4o")
    """

    def __init__(self, settings: ProviderSettings):
        self._settings = settings

    @property
    def name(self) -> str:
        return "azure_openai" if self._settings.azure_endpoint else "openai"

    @property
    def endpoint(self) -> str:
        return self._settings.azure_endpoint or self._settings.base_url or OPENAI_ENDPOINT

    @property
    def default_model(self) -> str:
        return self._settings.azure_deployment or self._settings.default_model

    def _get_llm(self, model: str, temperature: float, max_tokens: int) -> BaseChatModel:
        """Get a configured chat model instance."""
        if self._settings.azure_endpoint:
            return AzureChatOpenAI(
                azure_deployment=model,
                openai_api_version=self._settings.azure_api_version,
                azure_endpoint=self._settings.azure_endpoint,
                api_key=self._settings.api_key,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=self._settings.request_timeout,
                max_retries=0,
            )
        return ChatOpenAI(
            model=model,
            api_key=self._settings.api_key,
            base_url=self._settings.base_url,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=self._settings.request_timeout,
            max_retries=0,
        )

    async def generate(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Tuple[str, Dict[str, Any]]:
        """
        Generate a response for a single prompt.

        Args:
            prompt: Provider-ready prompt (already augmented)
            model: Model or deployment name (defaults from settings)
            temperature: Sampling temperature (defaults from settings)
            max_tokens: Completion cap (defaults from settings)

        Returns:
            Tuple of (output_text, metadata)
            - metadata: dict with model, provider, temperature, max_tokens
        """
        model = model or self.default_model
        temperature = self._settings.default_temperature if temperature is None else temperature
        max_tokens = max_tokens or self._settings.default_max_tokens

        llm = self._get_llm(model, temperature, max_tokens)
        response = await llm.ainvoke([HumanMessage(content=prompt)])

        # Extract content as plain string
        output = response.content if hasattr(response, "content") else str(response)

        metadata = {
            "model": model,
            "provider": self.name,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        return str(output), metadata
