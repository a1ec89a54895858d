"""
Runtime configuration.

Configuration is a YAML file:

    intents:
      echo: https://example.com/activities/echo.html
      picker: ./activities/picker.html
    retrieval_timeout: 10
    base_path: /srv/activities
    allowed_imports: [asyncio, json, math]

If no path is given, ACTIVITY_CORE_CONFIG names the file. Without either,
defaults apply.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel
from pydantic import Field

from .retrieval import DEFAULT_TIMEOUT
from .sandbox import DEFAULT_ALLOWED_IMPORTS

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ACTIVITY_CORE_CONFIG"


class RuntimeConfig(BaseModel):
    """Launcher configuration."""

    intents: dict[str, str] = Field(default_factory=dict, description="Intent name -> source locator")
    retrieval_timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="Seconds per HTTP fetch")
    base_path: Path | None = Field(default=None, description="Base for relative file locators")
    allowed_imports: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_IMPORTS),
        description="Top-level modules activity code may import",
    )


def load_config(path: Path | str | None = None) -> RuntimeConfig:
    """
    Load configuration from YAML.

    Relative locators in ``intents`` and a missing ``base_path`` resolve
    against the config file's directory.

    Raises:
        FileNotFoundError: If an explicit path does not exist
        yaml.YAMLError: If the file is not valid YAML
        pydantic.ValidationError: If values have the wrong shape
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if not env_path:
            return RuntimeConfig()
        path = env_path

    path = Path(path)
    data: dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config {path} must be a mapping, got {type(data).__name__}")

    data.setdefault("base_path", str(path.resolve().parent))
    config = RuntimeConfig.model_validate(data)
    logger.debug(f"Loaded config from {path}: {len(config.intents)} intent(s)")
    return config
