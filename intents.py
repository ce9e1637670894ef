# intents.py
from __future__ import annotations

from loguru import logger

_TABLE_KEYWORDS = (
    "table",
    "tabular",
    "data in table",
    "format as table",
    "show in table",
    "list in table",
    "display as table",
    "create table",
    "make table",
    "table format",
    "tabular format",
    "in a table",
    "as a table",
)

TABLE_DIRECTIVE = "Please format your response as a markdown table when appropriate."

REFERENCES_DIRECTIVE = (
    "Please include relevant reference links and sources when providing information, "
    "especially for factual data, statistics, research findings, or technical information. "
    "Format references as markdown links at the end of your response."
)


def wants_table(user_prompt: str) -> bool:
    p = (user_prompt or "").lower()
    matched = next((k for k in _TABLE_KEYWORDS if k in p), None)
    logger.debug("intents.wants_table → {} matched='{}'", bool(matched), matched)
    return matched is not None


def build_prompt(user_prompt: str) -> str:
    """
    Text actually sent to the completion service.
    The stored user message keeps the raw input; only the request carries the directives.
    """
    out = user_prompt
    if wants_table(user_prompt):
        out = f"{out}\n\n{TABLE_DIRECTIVE}"
    out = f"{out}\n\n{REFERENCES_DIRECTIVE}"
    logger.debug("intents.build_prompt → in_len={} out_len={}", len(user_prompt or ""), len(out))
    return out
