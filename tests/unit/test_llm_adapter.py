"""Tests for LLM adapter and OpenAI client."""

import json
from unittest.mock import MagicMock, patch

import pytest

from liftpatch.core.errors import UpstreamFormatError
from liftpatch.examples import PUSH_PROGRAM, SAMPLE_CATALOG, load_example
from liftpatch.llm.adapter import LLMAdapter, extract_json_object
from liftpatch.llm.clients.openai import OpenAIClient


@pytest.fixture(autouse=True)
def no_config_file(monkeypatch):
    monkeypatch.setenv("LIFTPATCH_CONFIG", "/nonexistent/liftpatch-config.json")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_MODEL", raising=False)


def _fake_client(response, model="gpt-4o-mini"):
    client = MagicMock()
    client.model = model
    client.chat.return_value = response
    return client


PROGRAM_REPLY = {
    "type": "program",
    "message": "Narrowed bench to 3 sets.",
    "operations": [
        {"op": "edit", "target": "exercise", "week_number": 1, "day_name": "Push",
         "exercise_name": "Bench Press", "sets": "3"},
    ],
}


class FakeClock:
    """Stands in for the time module; sleeping and hanging requests advance it."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def monotonic(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _hang_then_time_out(clock, seconds):
    from openai import APITimeoutError

    def create(**kwargs):
        clock.now += min(seconds, kwargs["timeout"])
        raise APITimeoutError(request=MagicMock())

    return create


class TestLLMAdapter:
    """Tests for LLMAdapter class."""

    @patch("liftpatch.llm.clients.openai.OpenAI")
    def test_create_with_openai_client(self, mock_openai_class):
        """Test creating adapter with OpenAI client."""
        adapter = LLMAdapter(api_key="sk-test-key", model="gpt-4o")

        assert adapter.client_type == "openai"
        assert isinstance(adapter.client, OpenAIClient)
        assert adapter.model == "gpt-4o"
        mock_openai_class.assert_called_once()

    def test_missing_api_key(self):
        with pytest.raises(ValueError, match="API key required"):
            LLMAdapter()

    def test_unknown_client_type(self):
        with pytest.raises(ValueError, match="Unknown client type"):
            LLMAdapter(client_type="anthropic")

    def test_program_reply(self):
        client = _fake_client(json.dumps(PROGRAM_REPLY))
        adapter = LLMAdapter(client=client)

        reply = adapter.propose_reply(
            load_example(PUSH_PROGRAM), SAMPLE_CATALOG, [], "Drop bench to 3 sets", timeout=5.0
        )

        assert reply.type == "program"
        assert reply.operations == PROGRAM_REPLY["operations"]
        kwargs = client.chat.call_args[1]
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["timeout"] == 5.0
        assert kwargs["messages"][-1] == {"role": "user", "content": "Drop bench to 3 sets"}

    def test_exactly_one_call_even_on_bad_reply(self):
        client = _fake_client("I think you should squat more.")
        adapter = LLMAdapter(client=client)

        with pytest.raises(UpstreamFormatError):
            adapter.propose_reply(load_example(PUSH_PROGRAM), SAMPLE_CATALOG, [], "Help")
        assert client.chat.call_count == 1

    def test_question_reply(self):
        client = _fake_client(json.dumps({"type": "question", "message": "How many weeks?"}))
        reply = LLMAdapter(client=client).propose_reply(None, SAMPLE_CATALOG, [], "Build me a plan")
        assert reply.is_question
        assert reply.message == "How many weeks?"

    def test_non_json_mode_model_gets_extraction(self):
        fenced = "```json\n" + json.dumps(PROGRAM_REPLY) + "\n```"
        client = _fake_client(fenced, model="gpt-4")
        adapter = LLMAdapter(client=client)

        reply = adapter.propose_reply(load_example(PUSH_PROGRAM), SAMPLE_CATALOG, [], "Drop bench")

        assert reply.type == "program"
        kwargs = client.chat.call_args[1]
        assert "response_format" not in kwargs
        assert "Return ONLY valid JSON" in kwargs["messages"][0]["content"]

    def test_history_is_forwarded(self):
        client = _fake_client(json.dumps({"type": "question", "message": "Which day?"}))
        history = [
            {"role": "user", "content": "Add face pulls"},
            {"role": "assistant", "content": "Added to Push."},
        ]
        LLMAdapter(client=client).propose_reply(
            load_example(PUSH_PROGRAM), SAMPLE_CATALOG, history, "Move them first"
        )
        messages = client.chat.call_args[1]["messages"]
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]

    def test_client_errors_propagate(self):
        client = MagicMock()
        client.model = "gpt-4o-mini"
        client.chat.side_effect = RuntimeError("OpenAI API error after 3 attempts")
        with pytest.raises(RuntimeError):
            LLMAdapter(client=client).propose_reply(None, [], [], "Hi")


class TestExtractJsonObject:
    """Tests for extract_json_object()."""

    def test_extracts_from_fence(self):
        assert extract_json_object('Here:\n```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_returns_text_without_braces(self):
        assert extract_json_object("no json here") == "no json here"


class TestOpenAIClient:
    """Tests for OpenAIClient with the SDK mocked out."""

    @patch("liftpatch.llm.clients.openai.OpenAI")
    def test_defaults(self, mock_openai_class):
        client = OpenAIClient(api_key="sk-test")
        assert client.model == "gpt-4o-mini"
        assert client.temperature == 0.6
        assert client.timeout == 30.0
        assert client.max_retries == 2
        mock_openai_class.assert_called_once_with(api_key="sk-test", timeout=30.0, max_retries=0)

    @patch("liftpatch.llm.clients.openai.OpenAI")
    def test_env_api_key(self, mock_openai_class, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert OpenAIClient().api_key == "sk-env"

    @patch("liftpatch.llm.clients.openai.OpenAI")
    def test_chat_returns_content(self, mock_openai_class):
        mock_response = MagicMock()
        mock_response.choices[0].message.content = '{"type": "question", "message": "?"}'
        mock_openai_class.return_value.chat.completions.create.return_value = mock_response

        client = OpenAIClient(api_key="sk-test")
        text = client.chat([{"role": "user", "content": "hi"}], response_format={"type": "json_object"})

        assert text == '{"type": "question", "message": "?"}'
        kwargs = mock_openai_class.return_value.chat.completions.create.call_args[1]
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.6
        assert kwargs["response_format"] == {"type": "json_object"}

    @patch("liftpatch.llm.clients.openai.OpenAI")
    def test_timeouts_share_one_deadline(self, mock_openai_class):
        from openai import APITimeoutError

        clock = FakeClock()
        create = mock_openai_class.return_value.chat.completions.create
        create.side_effect = _hang_then_time_out(clock, 10.0)

        client = OpenAIClient(api_key="sk-test", timeout=30.0, max_retries=2)
        with patch("liftpatch.llm.clients.openai.time", clock):
            with pytest.raises(RuntimeError, match="after 3 attempts") as exc_info:
                client.chat([{"role": "user", "content": "hi"}])

        assert isinstance(exc_info.value.__cause__, APITimeoutError)
        assert clock.now <= 30.0
        assert [c[1]["timeout"] for c in create.call_args_list] == [30.0, 19.0, 7.0]
        assert clock.sleeps == [1, 2]

    @patch("liftpatch.llm.clients.openai.OpenAI")
    def test_no_retry_when_the_wait_would_pass_the_deadline(self, mock_openai_class):
        clock = FakeClock()
        create = mock_openai_class.return_value.chat.completions.create
        create.side_effect = _hang_then_time_out(clock, 60.0)

        client = OpenAIClient(api_key="sk-test", timeout=30.0, max_retries=2)
        with patch("liftpatch.llm.clients.openai.time", clock):
            with pytest.raises(RuntimeError, match="after 1 attempts"):
                client.chat([{"role": "user", "content": "hi"}])

        assert create.call_count == 1
        assert clock.sleeps == []
        assert clock.now == 30.0

    @patch("liftpatch.llm.clients.openai.OpenAI")
    def test_retry_gets_the_time_left(self, mock_openai_class):
        clock = FakeClock()
        mock_response = MagicMock()
        mock_response.choices[0].message.content = "ok"
        hang = _hang_then_time_out(clock, 2.0)

        def create_once_hanging(**kwargs):
            if create.call_count == 1:
                hang(**kwargs)
            return mock_response

        create = mock_openai_class.return_value.chat.completions.create
        create.side_effect = create_once_hanging

        client = OpenAIClient(api_key="sk-test", max_retries=2)
        with patch("liftpatch.llm.clients.openai.time", clock):
            assert client.chat([{"role": "user", "content": "hi"}], timeout=5.0) == "ok"

        assert [c[1]["timeout"] for c in create.call_args_list] == [5.0, 2.0]
        assert clock.now == 3.0

    @patch("liftpatch.llm.clients.openai.OpenAI")
    def test_empty_content_is_an_error(self, mock_openai_class):
        mock_response = MagicMock()
        mock_response.choices[0].message.content = ""
        mock_openai_class.return_value.chat.completions.create.return_value = mock_response

        with pytest.raises(RuntimeError, match="empty response"):
            OpenAIClient(api_key="sk-test", max_retries=0).chat([{"role": "user", "content": "hi"}])
