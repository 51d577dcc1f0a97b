from unittest.mock import MagicMock, patch

import pytest
import requests

from ai_client import INTENT_SYSTEM_PROMPT, SITE_SYSTEM_PROMPT, ChatClient
from errors import UpstreamModelError


def _response(content="hello", status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.text = "body"
    resp.json.return_value = {"choices": [{"message": {"content": content}}]}
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return resp


@pytest.fixture
def chat():
    return ChatClient("sk-test", base_url="https://llm.example/v1/", timeout=120)


class TestComplete:
    def test_posts_to_chat_completions_with_timeout(self, chat):
        with patch("ai_client.requests.post", return_value=_response("ok")) as post:
            assert chat.complete([{"role": "user", "content": "hi"}], model="m") == "ok"
        args, kwargs = post.call_args
        assert args[0] == "https://llm.example/v1/chat/completions"
        assert kwargs["timeout"] == 120
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["json"]["model"] == "m"

    def test_timeout_raises_upstream_error(self, chat):
        with patch("ai_client.requests.post", side_effect=requests.Timeout("slow")):
            with pytest.raises(UpstreamModelError, match="timed out"):
                chat.complete([], model="m")

    def test_http_error_raises_upstream_error(self, chat):
        with patch("ai_client.requests.post", return_value=_response(status=503)):
            with pytest.raises(UpstreamModelError):
                chat.complete([], model="m")

    def test_unexpected_shape_raises_upstream_error(self, chat):
        resp = _response()
        resp.json.return_value = {"error": "nope"}
        with patch("ai_client.requests.post", return_value=resp):
            with pytest.raises(UpstreamModelError):
                chat.complete([], model="m")

    def test_missing_key_fails_without_calling_out(self):
        with patch("ai_client.requests.post") as post:
            with pytest.raises(UpstreamModelError):
                ChatClient(None).complete([], model="m")
        post.assert_not_called()


class TestPrompts:
    def test_detect_intent_uses_small_model_and_strips(self, chat):
        with patch("ai_client.requests.post", return_value=_response("  A bakery site \n")) as post:
            assert chat.detect_intent("ஒரு பேக்கரி") == "A bakery site"
        payload = post.call_args.kwargs["json"]
        assert payload["model"] == "gpt-4o-mini"
        assert payload["max_tokens"] == 500
        assert payload["messages"][0]["content"] == INTENT_SYSTEM_PROMPT
        assert "ஒரு பேக்கரி" in payload["messages"][1]["content"]

    def test_generate_site_requests_marker_format(self, chat):
        with patch("ai_client.requests.post", return_value=_response("--- a.txt ---\nX")) as post:
            assert chat.generate_site("A bakery site") == "--- a.txt ---\nX"
        payload = post.call_args.kwargs["json"]
        assert payload["model"] == "gpt-4o"
        assert payload["max_tokens"] == 3000
        assert payload["messages"][0]["content"] == SITE_SYSTEM_PROMPT
        assert "--- index.html ---" in SITE_SYSTEM_PROMPT
        assert payload["messages"][1]["content"].startswith("Intent: A bakery site")
