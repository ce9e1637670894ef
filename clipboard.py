# clipboard.py
from __future__ import annotations

import base64
import html
from typing import Callable, List, Optional, Tuple

from bs4 import BeautifulSoup
from loguru import logger

from rendering.decorate import CODE_COPY_CLASS, TABLE_WRAPPER_CLASS
from rendering.table_text import table_element_to_text

Writer = Callable[[str], None]


class ClipboardWriter:
    """
    Primary writer first, legacy writer if it raises. When both fail the copy
    silently does not happen: nothing is surfaced to the user.
    """

    def __init__(self, primary: Optional[Writer] = None, legacy: Optional[Writer] = None):
        self.primary = primary
        self.legacy = legacy
        self.last_copied: Optional[str] = None

    def write(self, text: str) -> bool:
        for label, writer in (("primary", self.primary), ("legacy", self.legacy)):
            if writer is None:
                continue
            try:
                writer(text)
            except Exception as e:
                logger.debug("clipboard: {} writer failed: {}", label, e)
                continue
            self.last_copied = text
            return True
        return False


def copy_payloads(markup: str) -> List[Tuple[str, str]]:
    """
    ("code", text) for each code copy button and ("table", text) for each table,
    in document order. Table text is computed now, not stored in the markup.
    """
    soup = BeautifulSoup(markup or "", "html.parser")
    out: List[Tuple[str, str]] = []
    for el in soup.find_all(["button", "table"]):
        if el.name == "button" and CODE_COPY_CLASS in (el.get("class") or []):
            out.append(("code", el.get("data-code", "")))
        elif el.name == "table" and TABLE_WRAPPER_CLASS in (el.parent.get("class") or []):
            out.append(("table", table_element_to_text(el)))
    return out


def copy_button_html(text: str, key: str, label: str = "Copy") -> str:
    """
    Browser-side copy widget. Text is base64-encoded to avoid escaping issues.
    navigator.clipboard first, then the textarea + execCommand("copy") fallback.
    """
    b64 = base64.b64encode((text or "").encode("utf-8")).decode("ascii")
    return f"""
    <button class="copy-btn" id="{html.escape(key)}" title="Copy to clipboard"
      style="border:1px solid #e2e8f0;border-radius:6px;background:#fff;cursor:pointer">{html.escape(label)}</button>
    <script>
      (function () {{
        const btn = document.getElementById("{html.escape(key)}");
        const text = new TextDecoder().decode(Uint8Array.from(atob("{b64}"), c => c.charCodeAt(0)));
        function legacyCopy() {{
          try {{
            const ta = document.createElement("textarea");
            ta.value = text;
            document.body.appendChild(ta);
            ta.select();
            document.execCommand("copy");
            document.body.removeChild(ta);
            return true;
          }} catch (e) {{ return false; }}
        }}
        function done(ok) {{
          if (!ok) return;
          const original = btn.textContent;
          btn.textContent = "✅";
          setTimeout(() => {{ btn.textContent = original; }}, 2000);
        }}
        btn.addEventListener("click", async () => {{
          try {{ await navigator.clipboard.writeText(text); done(true); }}
          catch (e) {{ done(legacyCopy()); }}
        }});
      }})();
    </script>
    """
