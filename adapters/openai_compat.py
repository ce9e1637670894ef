# adapters/openai_compat.py
from __future__ import annotations

import asyncio
import json
import os
import time
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional, Protocol

import requests
from loguru import logger

from errors import CompletionError
from models import LLMModel, ModelRegistry

Fragment = Dict[str, str]

_DONE = object()


class CompletionService(Protocol):
    """
    chat(prompt, image, options) -> async iterator of {"text": ...} fragments.
    options carries at least {"model": str, "stream": True}. Failures raise with a
    human-readable message, either when awaited or while iterating.
    """

    async def chat(
        self, prompt: str, image: Optional[str] = None, options: Optional[Dict[str, Any]] = None
    ) -> AsyncIterator[Fragment]:
        ...


def parse_sse_line(line: Optional[str]):
    """
    One SSE line -> delta text, None (nothing to append) or _DONE.
    Tool-call deltas and keep-alive comments carry no user-facing text.
    """
    if not line or not line.startswith("data:"):
        return None
    data = line[5:].strip()
    if data == "[DONE]":
        return _DONE
    try:
        obj = json.loads(data)
    except json.JSONDecodeError:
        logger.debug("openai_compat: unparseable SSE data ({} chars)", len(data))
        return None
    choices = obj.get("choices") or []
    if not choices:
        return None
    delta = choices[0].get("delta") or choices[0].get("message") or {}
    text = delta.get("content")
    return text if isinstance(text, str) else None


class OpenAICompatAdapter:
    def __init__(self, registry: ModelRegistry, *, timeout: float = 300.0):
        self.registry = registry
        self.timeout = timeout

    def _headers(self, model: LLMModel) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if model.api_key_reqd:
            key = os.getenv(model.api_key_env or "")
            if not key:
                msg = (f"API key env '{model.api_key_env}' not found in environment. "
                       f"Did you add it to your .env?")
                logger.error("_headers: {}", msg)
                raise CompletionError(msg)
            headers["Authorization"] = f"Bearer {key}"
        return headers

    def _messages(self, prompt: str, image: Optional[str]) -> List[Dict[str, Any]]:
        if not image:
            return [{"role": "user", "content": prompt}]
        return [{
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": image}},
            ],
        }]

    def _post(self, url: str, headers: Dict[str, str], payload: Dict[str, Any]) -> requests.Response:
        try:
            resp = requests.post(url, headers=headers, json=payload, stream=payload["stream"], timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("openai_compat.chat ✗ request failed: {}", e)
            raise CompletionError(f"Request failed: {e}") from e
        if resp.status_code >= 400:
            try:
                server_text = resp.text[:500]
            except Exception:
                server_text = "<no body>"
            logger.error("openai_compat.chat ✗ status={} body≈{}", resp.status_code, server_text)
            if resp.status_code == 401:
                raise CompletionError("401 Unauthorized. Check the API key for this model.", status=401)
            raise CompletionError(f"Completion error {resp.status_code}: {server_text}", status=resp.status_code)
        return resp

    async def chat(
        self, prompt: str, image: Optional[str] = None, options: Optional[Dict[str, Any]] = None
    ) -> AsyncIterator[Fragment]:
        opts = {"stream": True, **(options or {})}
        try:
            model = self.registry.get(opts.get("model"))
        except ValueError as e:
            raise CompletionError(str(e)) from e

        url = (model.endpoint or "https://api.openai.com/v1").rstrip("/") + "/chat/completions"
        payload = {
            "model": model.resolved_model(),
            "messages": self._messages(prompt, image),
            "temperature": model.temperature,
            "stream": bool(opts["stream"]),
        }
        headers = self._headers(model)
        logger.info("openai_compat.chat → url='{}' model='{}' stream={} image={}",
                    url, payload["model"], payload["stream"], bool(image))

        t0 = time.time()
        resp = await asyncio.to_thread(self._post, url, headers, payload)
        if not payload["stream"]:
            return self._single(resp)
        return self._stream(resp, t0)

    async def _single(self, resp: requests.Response) -> AsyncIterator[Fragment]:
        try:
            data = resp.json()
        except ValueError as e:
            raise CompletionError(f"Invalid completion response: {e}") from e
        msg = (data.get("choices") or [{}])[0].get("message") or {}
        yield {"text": msg.get("content") or ""}

    async def _stream(self, resp: requests.Response, t0: float) -> AsyncIterator[Fragment]:
        lines: Iterator[str] = resp.iter_lines(decode_unicode=True)
        chunks = 0
        try:
            while True:
                # blocking socket read off the event loop
                line = await asyncio.to_thread(next, lines, _DONE)
                if line is _DONE:
                    break
                text = parse_sse_line(line)
                if text is _DONE:
                    break
                if text:
                    chunks += 1
                    yield {"text": text}
        except requests.RequestException as e:
            logger.error("openai_compat.chat_stream ✗ after {} chunk(s): {}", chunks, e)
            raise CompletionError(f"Stream interrupted: {e}") from e
        finally:
            resp.close()
        logger.info("openai_compat.chat_stream ✓ chunks={} time_ms≈{:.0f}", chunks, (time.time() - t0) * 1000.0)
