"""Tests for the AI provider abstraction layer."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import openai
import pytest

from healthplan.config import Settings
from healthplan.integrations.claude import ClaudeClient
from healthplan.integrations.openai_client import OpenAIClient
from healthplan.schemas.ai_response import AIMessage, AIProviderType, AIResponse
from healthplan.services.ai_client import DEFAULT_MODELS, get_ai_client


def _user_message(content: str = "Plan my week") -> list[AIMessage]:
    """Create a single user message list for testing."""
    return [AIMessage(role="user", content=content)]


def _settings(**overrides) -> Settings:
    fields = {"ai_provider": "claude", "ai_api_key": "sk-test", "ai_model": ""}
    fields.update(overrides)
    return Settings(_env_file=None, **fields)


class TestClaudeClient:
    """Tests for ClaudeClient.generate()."""

    @patch("healthplan.integrations.claude.anthropic.AsyncAnthropic")
    async def test_generate_returns_normalized_response(self, mock_cls):
        """Test that Claude generate() returns a normalized AIResponse."""
        mock_client = AsyncMock()
        mock_cls.return_value = mock_client
        mock_client.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(text='{"name": '), SimpleNamespace(text='"x"}')],
            model="claude-sonnet-4-5-20250929",
            usage=SimpleNamespace(input_tokens=10, output_tokens=5),
        )

        client = ClaudeClient(api_key="sk-test", model="claude-sonnet-4-5-20250929")
        result = await client.generate(_user_message())

        assert isinstance(result, AIResponse)
        assert result.content == '{"name": "x"}'
        assert result.model == "claude-sonnet-4-5-20250929"
        assert result.provider == AIProviderType.CLAUDE
        assert result.usage.input_tokens == 10
        assert result.usage.output_tokens == 5
        mock_cls.assert_called_once_with(api_key="sk-test")

    @patch("healthplan.integrations.claude.anthropic.AsyncAnthropic")
    async def test_generate_with_system_prompt(self, mock_cls):
        """Test that system prompt and max_tokens reach the Anthropic API."""
        mock_client = AsyncMock()
        mock_cls.return_value = mock_client
        mock_client.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(text="response")],
            model="claude-sonnet-4-5-20250929",
            usage=SimpleNamespace(input_tokens=20, output_tokens=10),
        )

        client = ClaudeClient(api_key="sk-test", model="claude-sonnet-4-5-20250929")
        await client.generate(
            _user_message(),
            system_prompt="You are an expert nutritionist.",
            max_tokens=8192,
        )

        call_kwargs = mock_client.messages.create.call_args[1]
        assert call_kwargs["system"] == "You are an expert nutritionist."
        assert call_kwargs["max_tokens"] == 8192
        assert call_kwargs["messages"] == [{"role": "user", "content": "Plan my week"}]

    @patch("healthplan.integrations.claude.anthropic.AsyncAnthropic")
    async def test_generate_without_system_prompt(self, mock_cls):
        """Test that system key is omitted when no system prompt given."""
        mock_client = AsyncMock()
        mock_cls.return_value = mock_client
        mock_client.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(text="response")],
            model="claude-sonnet-4-5-20250929",
            usage=SimpleNamespace(input_tokens=5, output_tokens=3),
        )

        client = ClaudeClient(api_key="sk-test", model="claude-sonnet-4-5-20250929")
        await client.generate(_user_message())

        call_kwargs = mock_client.messages.create.call_args[1]
        assert "system" not in call_kwargs

    @patch("healthplan.integrations.claude.anthropic.AsyncAnthropic")
    async def test_generate_skips_non_text_blocks(self, mock_cls):
        """Test that blocks without text contribute nothing."""
        mock_client = AsyncMock()
        mock_cls.return_value = mock_client
        mock_client.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(type="thinking"), SimpleNamespace(text="{}")],
            model="claude-sonnet-4-5-20250929",
            usage=None,
        )

        client = ClaudeClient(api_key="sk-test", model="claude-sonnet-4-5-20250929")
        result = await client.generate(_user_message())

        assert result.content == "{}"
        assert result.usage.input_tokens == 0
        assert result.usage.output_tokens == 0

    @patch("healthplan.integrations.claude.anthropic.AsyncAnthropic")
    async def test_authentication_error_propagates(self, mock_cls):
        """Test that SDK errors are re-raised unchanged."""
        mock_client = AsyncMock()
        mock_cls.return_value = mock_client
        mock_client.messages.create.side_effect = anthropic.AuthenticationError(
            message="invalid key",
            response=MagicMock(status_code=401),
            body=None,
        )

        client = ClaudeClient(api_key="bad", model="claude-sonnet-4-5-20250929")
        with pytest.raises(anthropic.AuthenticationError):
            await client.generate(_user_message())

    @patch("healthplan.integrations.claude.anthropic.AsyncAnthropic")
    async def test_connection_error_propagates(self, mock_cls):
        """Test that connection errors are re-raised unchanged."""
        mock_client = AsyncMock()
        mock_cls.return_value = mock_client
        mock_client.messages.create.side_effect = anthropic.APIConnectionError(
            request=MagicMock()
        )

        client = ClaudeClient(api_key="sk-test", model="claude-sonnet-4-5-20250929")
        with pytest.raises(anthropic.APIConnectionError):
            await client.generate(_user_message())


class TestOpenAIClient:
    """Tests for OpenAIClient.generate()."""

    @patch("healthplan.integrations.openai_client.openai.AsyncOpenAI")
    async def test_generate_returns_normalized_response(self, mock_cls):
        """Test that OpenAI generate() returns a normalized AIResponse."""
        mock_client = AsyncMock()
        mock_cls.return_value = mock_client
        mock_client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='{"a": 1}'))],
            model="gpt-4o",
            usage=SimpleNamespace(prompt_tokens=8, completion_tokens=4),
        )

        client = OpenAIClient(api_key="sk-test", model="gpt-4o")
        result = await client.generate(_user_message(), system_prompt="Be brief.")

        assert result.content == '{"a": 1}'
        assert result.provider == AIProviderType.OPENAI
        assert result.usage.input_tokens == 8
        assert result.usage.output_tokens == 4
        mock_cls.assert_called_once_with(api_key="sk-test")

        call_kwargs = mock_client.chat.completions.create.call_args[1]
        assert call_kwargs["messages"][0] == {"role": "system", "content": "Be brief."}
        assert call_kwargs["response_format"] == {"type": "json_object"}

    @patch("healthplan.integrations.openai_client.openai.AsyncOpenAI")
    async def test_generate_with_base_url(self, mock_cls):
        """Test that base_url is passed to AsyncOpenAI constructor."""
        mock_client = AsyncMock()
        mock_cls.return_value = mock_client
        mock_client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="{}"))],
            model="llama3",
            usage=None,
        )

        client = OpenAIClient(
            api_key="not-needed",
            model="llama3",
            base_url="http://localhost:11434/v1",
        )
        await client.generate(_user_message())

        mock_cls.assert_called_once_with(
            api_key="not-needed",
            base_url="http://localhost:11434/v1",
        )

    @patch("healthplan.integrations.openai_client.openai.AsyncOpenAI")
    async def test_generate_empty_choices(self, mock_cls):
        """Test that a reply with no choices yields empty content."""
        mock_client = AsyncMock()
        mock_cls.return_value = mock_client
        mock_client.chat.completions.create.return_value = SimpleNamespace(
            choices=[],
            model="gpt-4o",
            usage=SimpleNamespace(prompt_tokens=8, completion_tokens=None),
        )

        client = OpenAIClient(api_key="sk-test", model="gpt-4o")
        result = await client.generate(_user_message())

        assert result.content == ""
        assert result.usage.output_tokens == 0

    @patch("healthplan.integrations.openai_client.openai.AsyncOpenAI")
    async def test_rate_limit_propagates(self, mock_cls):
        """Test that rate limit errors are re-raised unchanged."""
        mock_client = AsyncMock()
        mock_cls.return_value = mock_client
        mock_client.chat.completions.create.side_effect = openai.RateLimitError(
            message="slow down",
            response=MagicMock(status_code=429),
            body=None,
        )

        client = OpenAIClient(api_key="sk-test", model="gpt-4o")
        with pytest.raises(openai.RateLimitError):
            await client.generate(_user_message())


class TestGetAIClient:
    """Tests for the get_ai_client factory."""

    def test_claude_default_model(self):
        client = get_ai_client(_settings())

        assert isinstance(client, ClaudeClient)
        assert client.model == DEFAULT_MODELS[AIProviderType.CLAUDE]

    def test_openai_with_explicit_model(self):
        client = get_ai_client(_settings(ai_provider="OpenAI", ai_model="gpt-4.1"))

        assert isinstance(client, OpenAIClient)
        assert client.model == "gpt-4.1"

    def test_openai_compatible_endpoint(self):
        client = get_ai_client(
            _settings(
                ai_provider="openai",
                ai_model="llama3",
                ai_base_url="http://localhost:11434/v1",
            )
        )

        assert isinstance(client, OpenAIClient)
        assert client._base_url == "http://localhost:11434/v1"

    def test_base_url_requires_model(self):
        with pytest.raises(ValueError, match="AI_MODEL must be set"):
            get_ai_client(
                _settings(ai_provider="openai", ai_base_url="http://localhost:11434/v1")
            )

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported AI provider: gemini"):
            get_ai_client(_settings(ai_provider="gemini"))

    def test_missing_key_still_builds_client(self):
        client = get_ai_client(_settings(ai_api_key=""))

        assert isinstance(client, ClaudeClient)
