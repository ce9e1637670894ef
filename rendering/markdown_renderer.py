# rendering/markdown_renderer.py
from __future__ import annotations

import html
from functools import lru_cache

from loguru import logger
from markdown_it import MarkdownIt
from mdit_py_plugins.deflist import deflist_plugin
from mdit_py_plugins.tasklists import tasklists_plugin


@lru_cache(maxsize=1)
def _md_renderer() -> MarkdownIt:
    """
    CommonMark plus GFM tables/strikethrough, hard line breaks and smart typography.
    Raw HTML in the source is passed through; sanitize_html() runs on the output.
    No highlighter here: code blocks are highlighted by rendering.decorate.
    """
    md = MarkdownIt("commonmark", {"breaks": True, "html": True, "typographer": True})
    md.enable(["table", "strikethrough", "replacements", "smartquotes"])
    md.use(tasklists_plugin)
    md.use(deflist_plugin)
    return md


def render_markdown(text: str) -> str:
    """
    Pure text → markup. Incomplete structures (an unclosed fence, half a table)
    come out however markdown-it renders them; nothing here tries to hide them.
    """
    src = text or ""
    try:
        return _md_renderer().render(src)
    except Exception as e:
        logger.warning("render_markdown failed (len={}): {}", len(src), e)
        return f"<pre>{html.escape(src)}</pre>"
