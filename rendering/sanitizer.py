# rendering/sanitizer.py
"""
This is a removal list, not an allowlist. It guarantees the absence of:

- <script> elements (with everything inside them),
- the event-handler attributes in EVENT_HANDLER_ATTRS, on any element,
- href/src values starting with ``javascript:`` (the attribute is dropped, not blanked),
- onclick/onload/onerror/style on <pre> and <code>.

Nothing else is promised. A deployment facing adversarial content should put a
vetted allowlist sanitizer in front of the display instead.

User-authored text never comes through here: it is shown as literal text.
"""
from __future__ import annotations

from bs4 import BeautifulSoup

EVENT_HANDLER_ATTRS = (
    "onclick",
    "onload",
    "onerror",
    "onmouseover",
    "onmouseout",
    "onfocus",
    "onblur",
    "onchange",
    "onsubmit",
    "onkeydown",
    "onkeyup",
    "onkeypress",
)

URL_ATTRS = ("href", "src")

CODE_TAGS = ("pre", "code")
CODE_STRIP_ATTRS = ("onclick", "onload", "onerror", "style")


def _is_javascript_url(value) -> bool:
    if isinstance(value, list):  # multi-valued attribute, should not happen for href/src
        value = " ".join(value)
    # browsers ignore leading whitespace/control chars when resolving the URL
    return str(value).lstrip(" \t\r\n\f\x00").lower().startswith("javascript:")


def sanitize_html(markup: str) -> str:
    soup = BeautifulSoup(markup or "", "html.parser")

    for script in soup.find_all("script"):
        script.decompose()

    # html.parser lower-cases tag and attribute names, so ONCLICK is caught too
    for el in soup.find_all(True):
        for attr in EVENT_HANDLER_ATTRS:
            if attr in el.attrs:
                del el.attrs[attr]

        for attr in URL_ATTRS:
            if attr in el.attrs and _is_javascript_url(el.attrs[attr]):
                del el.attrs[attr]

        if el.name in CODE_TAGS:
            for attr in CODE_STRIP_ATTRS:
                el.attrs.pop(attr, None)

    return str(soup)
