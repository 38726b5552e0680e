import structlog
from typing import Optional, Dict, List
from enum import Enum

import openai
import anthropic

from ..config import get_settings
from ..exceptions import LLMServiceError

logger = structlog.get_logger(__name__)


class LLMProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class LLMService:
    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        openai_model_name: str = "gpt-4o-mini",
        anthropic_model_name: str = "claude-3-haiku-20240307",
        timeout_seconds: float = 120.0,
    ):
        self.openai_model_name = openai_model_name
        self.anthropic_model_name = anthropic_model_name

        # Initialize clients
        self.openai_client = None
        self.anthropic_client = None

        if openai_api_key:
            try:
                self.openai_client = openai.AsyncOpenAI(api_key=openai_api_key, timeout=timeout_seconds)
                logger.info("OpenAI client initialized")
            except Exception as e:
                logger.warning("Failed to initialize OpenAI client", error=str(e))

        if anthropic_api_key:
            try:
                self.anthropic_client = anthropic.AsyncAnthropic(api_key=anthropic_api_key, timeout=timeout_seconds)
                logger.info("Anthropic client initialized")
            except Exception as e:
                logger.warning("Failed to initialize Anthropic client", error=str(e))

    def _is_provider_available(self, provider: LLMProvider) -> bool:
        if provider == LLMProvider.OPENAI:
            return self.openai_client is not None
        if provider == LLMProvider.ANTHROPIC:
            return self.anthropic_client is not None
        return False

    async def generate(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 2000,
        preferred_provider: Optional[LLMProvider] = None
    ) -> str:
        """
        Generate a reply for an ordered list of role/content messages.

        Providers are tried in order (OpenAI, then Anthropic) unless
        preferred_provider is given, in which case it goes first. Raises
        LLMServiceError when every available provider fails or returns no text.
        """
        providers_to_try = [LLMProvider.OPENAI, LLMProvider.ANTHROPIC]
        if preferred_provider:
            providers_to_try.remove(preferred_provider)
            providers_to_try.insert(0, preferred_provider)

        available = [p for p in providers_to_try if self._is_provider_available(p)]
        if not available:
            raise LLMServiceError("No LLM provider configured")

        last_error: Optional[Exception] = None
        for provider in available:
            try:
                logger.info("llm_generation_attempt", provider=provider.value)
                return await self._generate_with_provider(provider, messages, temperature, max_tokens)
            except LLMServiceError as e:
                last_error = e
                logger.warning("llm_provider_failed", provider=provider.value, error=str(e))

        raise LLMServiceError(f"All LLM providers failed: {last_error}")

    async def _generate_with_provider(
        self,
        provider: LLMProvider,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: int
    ) -> str:
        if provider == LLMProvider.OPENAI:
            return await self._generate_openai(messages, temperature, max_tokens)
        elif provider == LLMProvider.ANTHROPIC:
            return await self._generate_anthropic(messages, temperature, max_tokens)
        else:
            raise LLMServiceError(f"Unknown provider: {provider}")

    async def _generate_openai(self, messages: List[Dict[str, str]], temperature: float, max_tokens: int) -> str:
        try:
            response = await self.openai_client.chat.completions.create(
                model=self.openai_model_name,
                temperature=temperature,
                max_tokens=max_tokens,
                messages=messages
            )
        except openai.AuthenticationError as e:
            raise LLMServiceError(f"OpenAI authentication failed: {str(e)}")
        except openai.RateLimitError as e:
            raise LLMServiceError(f"OpenAI rate limit exceeded: {str(e)}")
        except openai.APIError as e:
            raise LLMServiceError(f"OpenAI generation failed: {str(e)}")

        result = response.choices[0].message.content if response.choices else None
        if not result or not result.strip():
            raise LLMServiceError("OpenAI returned an empty reply")

        logger.info("OpenAI generation completed", model=self.openai_model_name, response_length=len(result))
        return result

    async def _generate_anthropic(self, messages: List[Dict[str, str]], temperature: float, max_tokens: int) -> str:
        # Claude takes the system prompt separately from the conversation
        system_prompt = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        conversation = [m for m in messages if m["role"] != "system"]

        try:
            response = await self.anthropic_client.messages.create(
                model=self.anthropic_model_name,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=conversation
            )
        except anthropic.APIError as e:
            raise LLMServiceError(f"Anthropic generation failed: {str(e)}")

        result = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
        if not result.strip():
            raise LLMServiceError("Anthropic returned an empty reply")

        logger.info("Anthropic generation completed", model=self.anthropic_model_name, response_length=len(result))
        return result


def get_llm_service() -> LLMService:
    settings = get_settings()
    return LLMService(
        openai_api_key=settings.openai_api_key,
        anthropic_api_key=settings.anthropic_api_key,
        openai_model_name=settings.openai_model_name,
        anthropic_model_name=settings.anthropic_model_name,
        timeout_seconds=settings.generation_timeout_seconds,
    )
