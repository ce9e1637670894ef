# rendering/decorate.py: syntax highlighting, copy buttons, scrollable tables
from __future__ import annotations

from functools import lru_cache
from typing import Dict, Optional, Tuple

from bs4 import BeautifulSoup, Tag
from loguru import logger
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound

DECORATED_ATTR = "data-decorated"
HIGHLIGHT_CLASS = "codehilite"
CODE_COPY_CLASS = "copy-button"
TABLE_COPY_CLASS = "table-copy-button"
TABLE_WRAPPER_CLASS = "table-wrapper"
COPY_ICON = "📋"


@lru_cache(maxsize=1)
def _pygments_formatter() -> HtmlFormatter:
    # nowrap: only the token <span>s, the surrounding <pre><code> stays markdown-it's
    return HtmlFormatter(nowrap=True)


def pygments_css(style: str = "default") -> str:
    """Token colours for highlighted blocks, inlined by the host page."""
    try:
        return HtmlFormatter(style=style).get_style_defs(f"code.{HIGHLIGHT_CLASS}")
    except ClassNotFound:
        return HtmlFormatter().get_style_defs(f"code.{HIGHLIGHT_CLASS}")


def _language_of(code: Tag) -> str:
    for cls in code.get("class") or []:
        if cls.startswith("language-"):
            return cls[len("language-"):]
    return ""


def _lexer_for(lang: str):
    if not lang:
        return TextLexer()
    try:
        return get_lexer_by_name(lang)
    except ClassNotFound:
        return TextLexer()


def _has_child_button(parent: Tag, css_class: str) -> bool:
    return parent.find("button", class_=css_class, recursive=False) is not None


class Decorator:
    """
    Idempotent post-render enhancement of sanitized markup.

    decorate() can be given fresh markup on every streaming pass, or markup it already
    decorated: elements carrying data-decorated are not highlighted again, and a copy
    button is only attached where none exists. Highlighted output is cached per
    (language, code), so a block that did not change since the previous delta costs
    a dict lookup instead of another pygments run.
    """

    def __init__(self):
        self._cache: Dict[Tuple[str, str], str] = {}
        self.highlight_runs = 0

    def decorate(self, markup: str) -> str:
        soup = BeautifulSoup(markup or "", "html.parser")
        for code in soup.select("pre > code"):
            try:
                self._decorate_code(soup, code)
            except Exception as e:
                logger.warning("decorate: code block skipped: {}", e)
        for index, table in enumerate(soup.find_all("table")):
            try:
                self._decorate_table(soup, table, index)
            except Exception as e:
                logger.warning("decorate: table {} skipped: {}", index, e)
        return str(soup)

    # ---------- code ----------

    def _highlighted(self, lang: str, source: str) -> str:
        key = (lang, source)
        cached = self._cache.get(key)
        if cached is None:
            cached = highlight(source, _lexer_for(lang), _pygments_formatter())
            self._cache[key] = cached
            self.highlight_runs += 1
        return cached

    def _decorate_code(self, soup: BeautifulSoup, code: Tag) -> None:
        pre = code.parent
        source = code.get_text()

        if code.get(DECORATED_ATTR) is None:
            lang = _language_of(code)
            try:
                fragment = BeautifulSoup(self._highlighted(lang, source), "html.parser")
            except Exception as e:
                logger.warning("decorate: highlighting '{}' failed: {}", lang or "plain", e)
            else:
                code.clear()
                for node in list(fragment.contents):
                    code.append(node.extract())
                code["class"] = [c for c in (code.get("class") or []) if c != HIGHLIGHT_CLASS] + [HIGHLIGHT_CLASS]
                code[DECORATED_ATTR] = "true"

        if not _has_child_button(pre, CODE_COPY_CLASS):
            button = soup.new_tag(
                "button",
                attrs={"class": CODE_COPY_CLASS, "type": "button", "title": "Copy code", "data-code": source},
            )
            button.string = COPY_ICON
            pre.append(button)

    # ---------- tables ----------

    def _decorate_table(self, soup: BeautifulSoup, table: Tag, index: int) -> None:
        wrapper: Optional[Tag] = table.parent
        if not (isinstance(wrapper, Tag) and TABLE_WRAPPER_CLASS in (wrapper.get("class") or [])):
            wrapper = table.wrap(soup.new_tag("div", attrs={"class": TABLE_WRAPPER_CLASS}))

        if not _has_child_button(wrapper, TABLE_COPY_CLASS):
            button = soup.new_tag(
                "button",
                attrs={"class": TABLE_COPY_CLASS, "type": "button", "title": "Copy table",
                       "data-table-index": str(index)},
            )
            button.string = COPY_ICON
            wrapper.append(button)
        table[DECORATED_ATTR] = "true"
