"""
Tests for adapters.openai_compat.

requests.post is patched; no network access.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from adapters.openai_compat import _DONE, OpenAICompatAdapter, parse_sse_line
from errors import CompletionError


def _sse(*texts, done=True):
    lines = []
    for t in texts:
        lines.append('data: {"choices":[{"delta":{"content":%s}}]}' % ('"' + t + '"'))
        lines.append("")
    if done:
        lines.append("data: [DONE]")
    return lines


def _response(status=200, lines=None, json_body=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    resp.iter_lines.return_value = iter(lines or [])
    resp.json.return_value = json_body
    return resp


async def _collect(stream):
    return [f["text"] async for f in stream]


@pytest.fixture
def adapter(registry):
    return OpenAICompatAdapter(registry, timeout=5)


@pytest.fixture(autouse=True)
def api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")


class TestParseSseLine:

    @pytest.mark.parametrize("line,expected", [
        ('data: {"choices":[{"delta":{"content":"Hi"}}]}', "Hi"),
        ('data: {"choices":[{"delta":{"role":"assistant"}}]}', None),
        ('data: {"choices":[]}', None),
        ("data: not json", None),
        (": keep-alive", None),
        ("", None),
        (None, None),
    ])
    def test_lines(self, line, expected):
        assert parse_sse_line(line) == expected

    def test_done(self):
        assert parse_sse_line("data: [DONE]") is _DONE


class TestChat:

    @pytest.mark.asyncio
    async def test_streams_fragments(self, adapter):
        resp = _response(lines=_sse("Hi", " there"))
        with patch("adapters.openai_compat.requests.post", return_value=resp) as post:
            stream = await adapter.chat("Hello", None, {"model": "gpt-4o", "stream": True})
            assert await _collect(stream) == ["Hi", " there"]
        args, kwargs = post.call_args
        assert args[0] == "https://api.openai.com/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["json"]["model"] == "gpt-4o"
        assert kwargs["json"]["messages"] == [{"role": "user", "content": "Hello"}]
        assert kwargs["stream"] is True
        resp.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_ends_without_done_marker(self, adapter):
        resp = _response(lines=_sse("a", done=False))
        with patch("adapters.openai_compat.requests.post", return_value=resp):
            assert await _collect(await adapter.chat("x", options={"model": "gpt-4o-mini"})) == ["a"]

    @pytest.mark.asyncio
    async def test_image_sent_as_content_part(self, adapter):
        resp = _response(lines=_sse("ok"))
        with patch("adapters.openai_compat.requests.post", return_value=resp) as post:
            await _collect(await adapter.chat("what is this", "data:image/png;base64,AA", {"model": "gpt-4o"}))
        content = post.call_args.kwargs["json"]["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "what is this"}
        assert content[1] == {"type": "image_url", "image_url": {"url": "data:image/png;base64,AA"}}

    @pytest.mark.asyncio
    async def test_local_model_needs_no_key(self, adapter, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY")
        resp = _response(lines=_sse("hey"))
        with patch("adapters.openai_compat.requests.post", return_value=resp) as post:
            await _collect(await adapter.chat("x", options={"model": "llama3.1"}))
        assert post.call_args.args[0] == "http://localhost:11434/v1/chat/completions"
        assert "Authorization" not in post.call_args.kwargs["headers"]

    @pytest.mark.asyncio
    async def test_non_streaming(self, adapter):
        resp = _response(json_body={"choices": [{"message": {"content": "whole reply"}}]})
        with patch("adapters.openai_compat.requests.post", return_value=resp):
            stream = await adapter.chat("x", options={"model": "gpt-4o", "stream": False})
            assert await _collect(stream) == ["whole reply"]


class TestErrors:

    @pytest.mark.asyncio
    async def test_missing_key(self, adapter, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY")
        with pytest.raises(CompletionError, match="OPENAI_API_KEY"):
            await adapter.chat("x", options={"model": "gpt-4o"})

    @pytest.mark.asyncio
    async def test_unknown_model(self, adapter):
        with pytest.raises(CompletionError, match="not found"):
            await adapter.chat("x", options={"model": "nope"})

    @pytest.mark.asyncio
    async def test_unauthorized(self, adapter):
        with patch("adapters.openai_compat.requests.post", return_value=_response(status=401, text="bad key")):
            with pytest.raises(CompletionError) as exc:
                await adapter.chat("x", options={"model": "gpt-4o"})
        assert exc.value.status == 401
        assert "Unauthorized" in exc.value.message

    @pytest.mark.asyncio
    async def test_server_error(self, adapter):
        with patch("adapters.openai_compat.requests.post", return_value=_response(status=500, text="overloaded")):
            with pytest.raises(CompletionError, match="500: overloaded"):
                await adapter.chat("x", options={"model": "gpt-4o"})

    @pytest.mark.asyncio
    async def test_connection_error(self, adapter):
        with patch("adapters.openai_compat.requests.post", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(CompletionError, match="Request failed"):
                await adapter.chat("x", options={"model": "gpt-4o"})

    @pytest.mark.asyncio
    async def test_interrupted_stream(self, adapter):
        def lines():
            yield 'data: {"choices":[{"delta":{"content":"par"}}]}'
            raise requests.exceptions.ChunkedEncodingError("reset")

        resp = _response()
        resp.iter_lines.return_value = lines()
        with patch("adapters.openai_compat.requests.post", return_value=resp):
            stream = await adapter.chat("x", options={"model": "gpt-4o"})
            got = []
            with pytest.raises(CompletionError, match="Stream interrupted"):
                async for fragment in stream:
                    got.append(fragment["text"])
        assert got == ["par"]
        resp.close.assert_called_once()

