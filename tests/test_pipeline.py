"""
Tests for rendering.pipeline.StreamRenderPipeline.

Covers:
  - final markup depends only on the concatenated text, not on how it was split or timed
  - fragments without text are skipped (no render)
  - unclosed code fence mid-stream, single copy button once closed
  - stream failure propagates, partial text kept
  - None / sync iterables / async iterables all accepted
"""

import asyncio

import pytest

from conversations import Sender
from rendering.pipeline import StreamRenderPipeline, fragment_text, render_static
from surface import MemoryMessageView

REPLY = "Here is code:\n\n```python\ndef f(x):\n    return x * 2\n```\n\n| a | b |\n|---|---|\n| 1 | 2 |\n"


async def _agen(fragments, delays=None):
    for i, fragment in enumerate(fragments):
        await asyncio.sleep((delays or {}).get(i, 0))
        yield fragment


def _split(text, size):
    return [{"text": text[i:i + size]} for i in range(0, len(text), size)]


def _view():
    return MemoryMessageView(sender=Sender.BOT)


class TestFragmentText:

    @pytest.mark.parametrize("fragment,expected", [
        (None, None),
        ("abc", "abc"),
        ({"text": "abc"}, "abc"),
        ({"text": None}, None),
        ({"other": "abc"}, None),
        ({"text": 5}, None),
    ])
    def test_shapes(self, fragment, expected):
        assert fragment_text(fragment) == expected

    def test_object_with_text(self):
        class Chunk:
            text = "hi"
        assert fragment_text(Chunk()) == "hi"


class TestDeterminism:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", [1, 3, 7, len(REPLY)])
    async def test_final_markup_independent_of_split(self, size):
        view = _view()
        pipeline = StreamRenderPipeline(view)
        text = await pipeline.consume(_agen(_split(REPLY, size)))
        assert text == REPLY
        assert view.html == render_static(REPLY)
        assert pipeline.markup == view.html

    @pytest.mark.asyncio
    async def test_final_markup_independent_of_timing(self):
        fast, slow = _view(), _view()
        await StreamRenderPipeline(fast).consume(_agen(_split(REPLY, 5)))
        await StreamRenderPipeline(slow).consume(_agen(_split(REPLY, 5), delays={0: 0.01, 3: 0.02}))
        assert fast.html == slow.html

    def test_highlight_cached_across_passes(self):
        pipeline = StreamRenderPipeline(_view())
        pipeline.feed("```python\nx = 1\n```\n")
        for word in ["one ", "two ", "three"]:
            pipeline.feed(word)
        pipeline.finish()
        assert pipeline.decorator.highlight_runs == 1


class TestFragments:

    @pytest.mark.asyncio
    async def test_empty_and_absent_fragments_skipped(self):
        view = _view()
        pipeline = StreamRenderPipeline(view)
        text = await pipeline.consume(_agen([None, {"text": ""}, {"meta": 1}, {"text": "ok"}, {}]))
        assert text == "ok"
        # one render for "ok", one final pass
        assert pipeline.renders == 2

    def test_feed_returns_false_without_text(self):
        pipeline = StreamRenderPipeline(_view())
        assert pipeline.feed({"text": ""}) is False
        assert pipeline.feed(None) is False
        assert pipeline.renders == 0

    @pytest.mark.asyncio
    async def test_sync_iterable(self):
        view = _view()
        text = await StreamRenderPipeline(view).consume([{"text": "a"}, {"text": "b"}])
        assert text == "ab"
        assert view.html == render_static("ab")

    @pytest.mark.asyncio
    async def test_none_stream(self):
        view = _view()
        pipeline = StreamRenderPipeline(view)
        assert await pipeline.consume(None) == ""
        assert view.html == ""
        assert pipeline.renders == 0

    @pytest.mark.asyncio
    async def test_consume_clears_typing(self):
        view = _view()
        view.show_typing()
        await StreamRenderPipeline(view).consume([])
        assert view.typing is False
        assert view.html == ""


class TestPartialStructures:

    def test_unclosed_fence_then_closed(self):
        view = _view()
        pipeline = StreamRenderPipeline(view)
        pipeline.feed("```python\nprint(1)")
        mid = view.html
        assert mid == render_static("```python\nprint(1)")
        pipeline.feed("\n```\nafter")
        pipeline.finish()
        assert view.html.count('class="copy-button"') == 1
        assert "after" in view.html


class TestFailures:

    @pytest.mark.asyncio
    async def test_stream_error_propagates_with_partial_text(self):
        async def broken():
            yield {"text": "partial "}
            raise RuntimeError("connection reset")

        pipeline = StreamRenderPipeline(_view())
        with pytest.raises(RuntimeError, match="connection reset"):
            await pipeline.consume(broken())
        assert pipeline.text == "partial "

    def test_custom_stages(self):
        view = _view()
        pipeline = StreamRenderPipeline(view, render=lambda t: f"<p>{t}</p>", sanitize=lambda m: m.replace("x", "y"))
        pipeline.feed("x")
        assert view.html == "<p>y</p>"
