"""
Tests for LLM client configuration and behavior.
"""
from unittest.mock import MagicMock, patch

import pytest


def _completion(content, usage=None):
    completion = MagicMock()
    completion.choices = [MagicMock(message=MagicMock(content=content))]
    completion.usage = usage
    return completion


@pytest.fixture
def fake_client(monkeypatch):
    """Install a mocked OpenAI client in place of the lazily created one."""
    from storedesk import llm_client

    client = MagicMock()
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(llm_client, "_client", client)
    return client


class TestConfiguration:
    def test_not_configured_without_key(self):
        from storedesk import llm_client
        assert llm_client.is_openai_configured() is False

    def test_configured_with_key(self, monkeypatch):
        from storedesk import llm_client
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert llm_client.is_openai_configured() is True

    def test_get_client_without_key_raises(self, monkeypatch):
        """Test that the client is never created without a key."""
        from storedesk import llm_client
        monkeypatch.setattr(llm_client, "_client", None)

        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            llm_client.get_client()

    def test_default_model_is_a_chat_model(self):
        from storedesk import config
        assert config.OPENAI_MODEL.startswith("gpt-")


class TestChatCompletion:
    def test_uses_default_model(self, fake_client):
        from storedesk import config, llm_client
        fake_client.chat.completions.create.return_value = _completion("Сайн байна уу")

        result = llm_client.chat_completion([{"role": "user", "content": "hi"}])

        assert result == "Сайн байна уу"
        call_kwargs = fake_client.chat.completions.create.call_args[1]
        assert call_kwargs["model"] == config.OPENAI_MODEL
        assert call_kwargs["max_tokens"] == config.LLM_MAX_TOKENS

    def test_allows_model_and_limits_override(self, fake_client):
        from storedesk import llm_client
        fake_client.chat.completions.create.return_value = _completion("ok")

        llm_client.chat_completion(
            [{"role": "user", "content": "hi"}],
            max_tokens=50, temperature=0.0, model="gpt-4o",
        )

        call_kwargs = fake_client.chat.completions.create.call_args[1]
        assert call_kwargs["model"] == "gpt-4o"
        assert call_kwargs["max_tokens"] == 50
        assert call_kwargs["temperature"] == 0.0

    def test_empty_content_raises(self, fake_client):
        from storedesk import llm_client
        fake_client.chat.completions.create.return_value = _completion("")

        with pytest.raises(ValueError, match="Empty response"):
            llm_client.chat_completion([{"role": "user", "content": "hi"}])


class TestJsonCompletion:
    def test_returns_parsed_data_and_usage(self, fake_client):
        from storedesk import llm_client
        usage = MagicMock(prompt_tokens=10, completion_tokens=5, total_tokens=15)
        fake_client.chat.completions.create.return_value = _completion('{"intent": "greeting"}', usage)

        result = llm_client.json_completion("system", "user")

        assert result["data"] == {"intent": "greeting"}
        assert result["usage"] == {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}
        call_kwargs = fake_client.chat.completions.create.call_args[1]
        assert call_kwargs["response_format"] == {"type": "json_object"}

    def test_missing_usage_reports_zero(self, fake_client):
        from storedesk import llm_client
        fake_client.chat.completions.create.return_value = _completion("{}", None)

        result = llm_client.json_completion("system", "user")
        assert result["usage"]["total_tokens"] == 0


class TestInstructorClient:
    def test_wraps_shared_client(self, fake_client):
        from storedesk import llm_client

        with patch.object(llm_client.instructor, "from_openai", return_value="wrapped") as wrap:
            assert llm_client.get_instructor_client() == "wrapped"
            wrap.assert_called_once_with(fake_client)
