"""Claude (Anthropic) AI client integration.

Implements the BaseAIClient interface for Claude models.
"""

from typing import Any

import anthropic

from healthplan.logging_config import get_logger
from healthplan.schemas.ai_response import AIMessage, AIProviderType, AIResponse, AIUsage
from healthplan.services.ai_client import BaseAIClient

logger = get_logger(__name__)


class ClaudeClient(BaseAIClient):
    """Claude AI client using the Anthropic SDK."""

    async def generate(
        self,
        messages: list[AIMessage],
        system_prompt: str | None = None,
        max_tokens: int = 1024,
    ) -> AIResponse:
        """Generate a response using the Anthropic Messages API."""
        client = anthropic.AsyncAnthropic(api_key=self._api_key)

        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = await client.messages.create(**kwargs)
        except anthropic.AuthenticationError:
            logger.error("Claude API authentication failed", model=self.model)
            raise
        except anthropic.RateLimitError:
            logger.warning("Claude API rate limited", model=self.model)
            raise
        except anthropic.APIConnectionError as e:
            logger.error("Claude API connection error", model=self.model, error=str(e))
            raise
        except Exception as e:
            logger.error(
                "Unexpected error during Claude generation",
                model=self.model,
                error=str(e),
            )
            raise

        # Concatenate text blocks; tool-use and thinking blocks carry no text
        content = "".join(
            getattr(block, "text", "") for block in (response.content or [])
        )

        usage = AIUsage()
        if response.usage:
            usage = AIUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            )

        return AIResponse(
            content=content,
            model=response.model,
            provider=AIProviderType.CLAUDE,
            usage=usage,
        )
