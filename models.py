# models.py
import json
from pathlib import Path
from dataclasses import dataclass
from typing import Optional, Dict, Any, List

from loguru import logger


@dataclass
class LLMModel:
    name: str
    provider: str = "openai"
    endpoint: str = "https://api.openai.com/v1"
    model: Optional[str] = None
    temperature: float = 0.7
    supports_images: bool = False
    api_key_reqd: bool = False               # if true, api_key_env must name a set env var
    api_key_env: Optional[str] = None
    label: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LLMModel":
        m = cls(
            name=d.get("name"),
            provider=d.get("provider", "openai"),
            endpoint=d.get("endpoint", "https://api.openai.com/v1"),
            model=d.get("model"),
            temperature=float(d.get("temperature", 0.7)),
            supports_images=bool(d.get("supports_images", False)),
            api_key_reqd=bool(d.get("api_key_reqd", False)),
            api_key_env=d.get("api_key_env"),
            label=d.get("label"),
        )
        logger.debug(
            "LLMModel.from_dict → name='{}', provider='{}', endpoint='{}', model='{}'",
            m.name, m.provider, m.endpoint, m.model,
        )
        return m

    def resolved_model(self) -> str:
        return self.model or self.name

    @property
    def display_name(self) -> str:
        return self.label or self.name


# Used when no models.json exists in the Chatpane home
BUILTIN_MODELS: List[LLMModel] = [
    LLMModel(name="gpt-4o-mini", label="GPT-4o mini", supports_images=True,
             api_key_reqd=True, api_key_env="OPENAI_API_KEY"),
    LLMModel(name="gpt-4o", label="GPT-4o", supports_images=True,
             api_key_reqd=True, api_key_env="OPENAI_API_KEY"),
    LLMModel(name="llama3.1", label="Llama 3.1 (local)", provider="ollama",
             endpoint="http://localhost:11434/v1"),
]


class ModelRegistry:
    """
    Reads models.json in the layout:
    {
      "default_llm_model": "gpt-4o-mini",
      "llm_models": [ {...}, {...} ]
    }
    A missing file falls back to BUILTIN_MODELS; a broken one raises.
    """
    def __init__(self, config_path: Optional[str] = None):
        self.models: Dict[str, LLMModel] = {}
        self.default_name: Optional[str] = None
        if config_path and Path(config_path).exists():
            self.load(config_path)
        else:
            if config_path:
                logger.info("No model config at '{}'; using built-in catalog", config_path)
            self._register(BUILTIN_MODELS)
            self.default_name = BUILTIN_MODELS[0].name

    def _register(self, models: List[LLMModel]) -> None:
        for m in models:
            self.models[m.name] = m

    def load(self, path: str):
        cfg_path = Path(path)
        logger.info("Loading model config from '{}'", str(cfg_path.resolve()))
        try:
            data = json.loads(cfg_path.read_text(encoding="utf-8"))
        except Exception as e:
            logger.exception("Failed to parse model config JSON: {}", e)
            raise

        if not isinstance(data, dict) or not isinstance(data.get("llm_models"), list):
            logger.error("Invalid model config: expected an 'llm_models' array")
            raise ValueError("Invalid model config: expected an 'llm_models' array.")

        for entry in data["llm_models"]:
            if not isinstance(entry, dict) or not entry.get("name"):
                logger.warning("Skipping invalid model entry: {}", entry)
                continue
            m = LLMModel.from_dict(entry)
            self.models[m.name] = m

        self.default_name = data.get("default_llm_model")
        if self.default_name not in self.models:
            self.default_name = next(iter(self.models), None)
        logger.info("ModelRegistry loaded {} model(s); default='{}'", len(self.models), self.default_name)
        if not self.models:
            raise ValueError(f"No models defined in {cfg_path}")

    def __contains__(self, name: object) -> bool:
        return name in self.models

    def get(self, name: Optional[str]) -> LLMModel:
        if name:
            if name not in self.models:
                logger.error("Requested model '{}' not found. Available: {}", name, ", ".join(self.models.keys()))
                raise ValueError(f"Model '{name}' not found. Available: {', '.join(self.models.keys())}")
            return self.models[name]
        return self.models[self.default_name]

    def list(self) -> List[LLMModel]:
        return list(self.models.values())
