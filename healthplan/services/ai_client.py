"""AI provider abstraction layer.

Abstract base class and factory for AI provider clients. Plan generation
talks to ``BaseAIClient`` only, so the Claude and OpenAI SDKs are
interchangeable.
"""

import abc

from healthplan.config import Settings
from healthplan.logging_config import get_logger
from healthplan.schemas.ai_response import AIMessage, AIProviderType, AIResponse

logger = get_logger(__name__)

# Default models when settings leave ai_model empty
DEFAULT_MODELS: dict[AIProviderType, str] = {
    AIProviderType.CLAUDE: "claude-sonnet-4-5-20250929",
    AIProviderType.OPENAI: "gpt-4o",
}


class BaseAIClient(abc.ABC):
    """Abstract base class for AI provider clients.

    Subclasses implement provider-specific API calls while
    returning a normalized AIResponse.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
    ) -> None:
        self._api_key = api_key
        self.model = model
        self._base_url = base_url

    @abc.abstractmethod
    async def generate(
        self,
        messages: list[AIMessage],
        system_prompt: str | None = None,
        max_tokens: int = 1024,
    ) -> AIResponse:
        """Generate an AI response.

        Args:
            messages: List of conversation messages.
            system_prompt: Optional system-level instruction.
            max_tokens: Maximum tokens in the response.

        Returns:
            Normalized AIResponse with content, model, provider, and usage.
        """


def get_ai_client(config: Settings) -> BaseAIClient:
    """Build the AI client selected by ``config.ai_provider``.

    Args:
        config: Application settings.

    Returns:
        A configured BaseAIClient subclass instance.

    Raises:
        ValueError: If the provider is unknown or no model can be chosen.
    """
    from healthplan.integrations.claude import ClaudeClient
    from healthplan.integrations.openai_client import OpenAIClient

    try:
        provider = AIProviderType(config.ai_provider.lower())
    except ValueError:
        raise ValueError(f"Unsupported AI provider: {config.ai_provider}") from None

    model = config.ai_model or DEFAULT_MODELS[provider]

    if not config.ai_api_key:
        logger.warning("AI API key is not configured", provider=provider.value)

    if provider == AIProviderType.CLAUDE:
        return ClaudeClient(api_key=config.ai_api_key, model=model)

    if config.ai_base_url and not config.ai_model:
        raise ValueError("AI_MODEL must be set when AI_BASE_URL is configured")

    return OpenAIClient(
        api_key=config.ai_api_key,
        model=model,
        base_url=config.ai_base_url,
    )
