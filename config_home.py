# config_home.py — Chatpane home, file paths and storage keys
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

# ---------- App home ----------

def _resolve_home() -> Path:
    env = os.getenv("CHATPANE_HOME", "").strip()
    base = Path(os.path.expanduser(env)) if env else (Path.home() / ".chatpane")
    try:
        base.mkdir(parents=True, exist_ok=True)
    except Exception as e:
        logger.error("Failed to create Chatpane home at '{}': {}", str(base), e)
        base = Path.cwd() / ".chatpane"
        base.mkdir(parents=True, exist_ok=True)
    return base

APP_DIR: Path = _resolve_home()
LOG_DIR: Path = APP_DIR / ".logs"

ENV_PATH: Path = APP_DIR / ".env"
MODELS_JSON_PATH: Path = APP_DIR / "models.json"
STORE_DB_PATH: Path = APP_DIR / "chat.db"

# ---------- Durable storage keys ----------

CONVERSATIONS_KEY = "chatpane_conversations"
CURRENT_CONVERSATION_KEY = "chatpane_current_conversation"
MODEL_KEY = "chatpane_model"
THEME_KEY = "chatpane_theme"

# Rough browser localStorage budget; 0 disables the check
STORAGE_QUOTA_BYTES: int = int(os.getenv("CHATPANE_STORAGE_QUOTA", "0") or 0)


def load_env(path: Optional[Path] = None) -> bool:
    """Load the app-level .env (API keys for the completion adapters)."""
    p = path or ENV_PATH
    if not p.exists():
        logger.debug("No .env at {}", str(p))
        return False
    loaded = load_dotenv(dotenv_path=p, override=False)
    logger.info("Environment loaded from {}", str(p.resolve()))
    return loaded


__all__ = [
    "APP_DIR",
    "LOG_DIR",
    "ENV_PATH",
    "MODELS_JSON_PATH",
    "STORE_DB_PATH",
    "CONVERSATIONS_KEY",
    "CURRENT_CONVERSATION_KEY",
    "MODEL_KEY",
    "THEME_KEY",
    "STORAGE_QUOTA_BYTES",
    "load_env",
]
