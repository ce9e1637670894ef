# preferences.py
from __future__ import annotations

from loguru import logger

from config_home import MODEL_KEY, THEME_KEY
from models import ModelRegistry
from storage import KeyValueStorage

THEMES = ("light", "dark")


class Preferences:
    def __init__(self, storage: KeyValueStorage, registry: ModelRegistry):
        self._storage = storage
        self._registry = registry

    def _read(self, key: str):
        try:
            return self._storage.get(key)
        except Exception as e:
            logger.warning("Preferences: read '{}' failed: {}", key, e)
            return None

    def _write(self, key: str, value: str) -> None:
        try:
            self._storage.set(key, value)
        except Exception as e:
            logger.warning("Preferences: write '{}' failed: {}", key, e)

    @property
    def model(self) -> str:
        saved = self._read(MODEL_KEY)
        if saved and saved in self._registry:
            return saved
        if saved:
            logger.info("Saved model '{}' no longer in catalog; using default", saved)
        return self._registry.get(None).name

    @model.setter
    def model(self, name: str) -> None:
        self._registry.get(name)  # raises ValueError for unknown names
        self._write(MODEL_KEY, name)

    @property
    def theme(self) -> str:
        saved = self._read(THEME_KEY)
        return saved if saved in THEMES else "light"

    @theme.setter
    def theme(self, value: str) -> None:
        if value not in THEMES:
            raise ValueError(f"theme must be one of {THEMES}, got {value!r}")
        self._write(THEME_KEY, value)
