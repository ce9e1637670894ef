# rendering/pipeline.py
"""
Each fragment is appended to the buffer and the *whole* buffer is rendered again:
markdown -> sanitize -> decorate, then the message view's markup is replaced.

Cost: O(len(buffer)) per fragment, O(n^2) over a reply. Replies are short next to
network latency between fragments, so this stays well under the delta rate. Very
long replies would want incremental rendering; the final markup must not change.
"""
from __future__ import annotations

from typing import Any, AsyncIterable, Callable, Iterable, List, Optional, Union

from loguru import logger

from rendering.decorate import Decorator
from rendering.markdown_renderer import render_markdown
from rendering.sanitizer import sanitize_html

Fragments = Union[AsyncIterable[Any], Iterable[Any], None]


def fragment_text(fragment: Any) -> Optional[str]:
    """`{"text": ...}` mappings, objects with .text, or bare strings; anything else is no text."""
    if fragment is None:
        return None
    if isinstance(fragment, str):
        return fragment
    if isinstance(fragment, dict):
        text = fragment.get("text")
    else:
        text = getattr(fragment, "text", None)
    return text if isinstance(text, str) else None


def render_static(content: str, decorator: Optional[Decorator] = None) -> str:
    """Markup for a finished bot message (history replay)."""
    return (decorator or Decorator()).decorate(sanitize_html(render_markdown(content)))


class StreamRenderPipeline:
    def __init__(
        self,
        view,
        *,
        render: Callable[[str], str] = render_markdown,
        sanitize: Callable[[str], str] = sanitize_html,
        decorator: Optional[Decorator] = None,
    ):
        self._view = view
        self._render = render
        self._sanitize = sanitize
        self.decorator = decorator or Decorator()
        self._parts: List[str] = []
        self.markup = ""
        self.renders = 0

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def _refresh(self) -> None:
        markup = self._sanitize(self._render(self.text))
        self.markup = self.decorator.decorate(markup)
        self._view.set_html(self.markup)
        self.renders += 1

    def feed(self, fragment: Any) -> bool:
        """Append one fragment and re-render. Returns False when it carried no text."""
        text = fragment_text(fragment)
        if not text:
            return False
        self._parts.append(text)
        self._refresh()
        return True

    def finish(self) -> str:
        """Final decoration pass, so every code block/table ends up decorated exactly once."""
        if self._parts:
            self._refresh()
        logger.debug("pipeline.finish → len={} renders={} highlights={}",
                     len(self.text), self.renders, self.decorator.highlight_runs)
        return self.text

    async def consume(self, fragments: Fragments) -> str:
        """
        Drive the pipeline over the completion stream and return the full reply text.
        A failure raised by the stream propagates; whatever was fed stays in .text.
        """
        self._view.set_html("")  # typing indicator -> empty bot message
        if fragments is None:
            return self.finish()
        if hasattr(fragments, "__aiter__"):
            async for fragment in fragments:
                self.feed(fragment)
        else:
            for fragment in fragments:
                self.feed(fragment)
        return self.finish()
