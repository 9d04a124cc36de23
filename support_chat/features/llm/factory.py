import logging

from ...core.config import Settings
from ...core.exceptions import ConfigurationError
from .providers.anthropic_provider import AnthropicProvider
from .providers.gemini_provider import GeminiProvider
from .providers.openai_provider import OpenAIProvider, OpenRouterProvider
from .types import LLMProvider, ProviderType

logger = logging.getLogger(__name__)


def create_provider(settings: Settings) -> LLMProvider:
    """
    Build the provider selected by ``LLM_PROVIDER``.

    Raises:
        ConfigurationError: unknown provider name or missing API key
    """
    try:
        provider_type = ProviderType(settings.LLM_PROVIDER)
    except ValueError:
        raise ConfigurationError(
            f"Unknown LLM provider: {settings.LLM_PROVIDER}. "
            f"Supported: {', '.join(p.value for p in ProviderType)}"
        ) from None

    if not settings.LLM_API_KEY:
        raise ConfigurationError(f"API key is required for {provider_type.value} provider")

    logger.info(f"🧠 Creating LLM provider: {provider_type.value}, model={settings.LLM_MODEL}")

    common = dict(
        max_tokens=settings.LLM_MAX_TOKENS,
        temperature=settings.LLM_TEMPERATURE,
        timeout=settings.LLM_TIMEOUT,
    )

    if provider_type is ProviderType.OPENAI:
        return OpenAIProvider(
            settings.LLM_API_KEY, settings.LLM_MODEL, base_url=settings.OPENAI_BASE_URL, **common
        )
    if provider_type is ProviderType.OPENROUTER:
        return OpenRouterProvider(
            settings.LLM_API_KEY,
            settings.LLM_MODEL,
            referer=settings.OPENROUTER_REFERER,
            title=settings.OPENROUTER_TITLE,
            **common,
        )
    if provider_type is ProviderType.ANTHROPIC:
        return AnthropicProvider(settings.LLM_API_KEY, settings.LLM_MODEL, **common)
    if provider_type is ProviderType.GEMINI:
        return GeminiProvider(settings.LLM_API_KEY, settings.LLM_MODEL, **common)

    raise ConfigurationError(f"No factory for LLM provider {provider_type.value}")
