# logging_setup.py
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional, Union
from loguru import logger

# -----------------------------
# Globals
# -----------------------------
_SINK_IDS: list[int] = []
_LAST_CFG = {
    "console": True,
    "log_file": None,
    "rotation": "5 MB",
    "retention": 5,
    "enqueue": False,
}
_DEFAULT_FMT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "{level:<7} | "
    "{name}:{line} | "
    "{message}"
)

_VALID_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


# -----------------------------
# Helpers
# -----------------------------
def _resolve_level(level: Optional[str]) -> str:
    """Explicit arg, else env CHATPANE_LOG_LEVEL, else INFO."""
    val = (level or os.getenv("CHATPANE_LOG_LEVEL") or "INFO").strip().upper()
    val = {"WARN": "WARNING"}.get(val, val)
    return val if val in _VALID_LEVELS else "INFO"


def _coerce_log_file(path_like: Optional[Union[str, Path]]) -> str:
    """None -> <chatpane home>/.logs/app.log; a bare directory gets app.log inside."""
    if path_like is None:
        from config_home import LOG_DIR
        log_path = LOG_DIR / "app.log"
    else:
        log_path = Path(path_like)
        if log_path.suffix == "":
            log_path = log_path / "app.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return str(log_path)


def _reconfigure(level: str) -> None:
    global _SINK_IDS
    for sid in _SINK_IDS:
        try:
            logger.remove(sid)
        except ValueError:
            pass
    _SINK_IDS = []

    if _LAST_CFG.get("console", True):
        _SINK_IDS.append(
            logger.add(sys.stderr, level=level, format=_DEFAULT_FMT, enqueue=_LAST_CFG["enqueue"])
        )

    if _LAST_CFG.get("log_file") is not False:
        _SINK_IDS.append(
            logger.add(
                _coerce_log_file(_LAST_CFG.get("log_file")),
                level=level,
                format=_DEFAULT_FMT,
                rotation=_LAST_CFG["rotation"],
                retention=_LAST_CFG["retention"],
                encoding="utf-8",
                enqueue=_LAST_CFG["enqueue"],
            )
        )


# -----------------------------
# Public API
# -----------------------------
def configure_logging(
    level: Optional[str] = None,
    *,
    console: bool = True,
    log_file: Optional[Union[str, Path, bool]] = None,
    rotation: str = "5 MB",
    retention: Union[int, str] = 5,
    enqueue: bool = False,
) -> None:
    """
    Configure Loguru once at app start.

    The default loguru stderr handler is dropped so messages are not printed twice.
    Pass log_file=False to keep logging to the console only.
    """
    _LAST_CFG.update(
        dict(console=console, log_file=log_file, rotation=rotation, retention=retention, enqueue=enqueue)
    )
    try:
        logger.remove(0)
    except ValueError:
        pass  # already removed
    _reconfigure(_resolve_level(level))


def set_level(level: str) -> None:
    """Change level at runtime."""
    _reconfigure(_resolve_level(level))


def current_config() -> dict:
    return {**_LAST_CFG, "level": _resolve_level(None), "sinks": len(_SINK_IDS)}
