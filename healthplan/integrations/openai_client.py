"""OpenAI AI client integration.

Implements the BaseAIClient interface for OpenAI models and any
OpenAI-compatible endpoint reachable through ``base_url``.
"""

from typing import Any

import openai

from healthplan.logging_config import get_logger
from healthplan.schemas.ai_response import AIMessage, AIProviderType, AIResponse, AIUsage
from healthplan.services.ai_client import BaseAIClient

logger = get_logger(__name__)


class OpenAIClient(BaseAIClient):
    """OpenAI AI client using the OpenAI SDK."""

    async def generate(
        self,
        messages: list[AIMessage],
        system_prompt: str | None = None,
        max_tokens: int = 1024,
    ) -> AIResponse:
        """Generate a response using the OpenAI Chat Completions API.

        Plan replies are requested in JSON mode so the model emits a single
        JSON object.
        """
        client_kwargs: dict[str, Any] = {"api_key": self._api_key}
        if self._base_url:
            client_kwargs["base_url"] = self._base_url
        client = openai.AsyncOpenAI(**client_kwargs)

        openai_messages: list[dict[str, Any]] = []
        if system_prompt:
            openai_messages.append({"role": "system", "content": system_prompt})
        openai_messages.extend({"role": m.role, "content": m.content} for m in messages)

        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=openai_messages,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.AuthenticationError:
            logger.error("OpenAI API authentication failed", model=self.model)
            raise
        except openai.RateLimitError:
            logger.warning("OpenAI API rate limited", model=self.model)
            raise
        except openai.APIConnectionError as e:
            logger.error("OpenAI API connection error", model=self.model, error=str(e))
            raise
        except Exception as e:
            logger.error(
                "Unexpected error during OpenAI generation",
                model=self.model,
                error=str(e),
            )
            raise

        choice = response.choices[0] if response.choices else None
        content = (choice.message.content or "") if choice else ""

        usage = AIUsage()
        if response.usage:
            usage = AIUsage(
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens or 0,
            )

        return AIResponse(
            content=content,
            model=response.model,
            provider=AIProviderType.OPENAI,
            usage=usage,
        )
