"""Configuration: generation service connection and controller tuning.

Stored as a JSON file merged over defaults. Connection fields can be
overridden from the environment (a `.env` file next to the working
directory is loaded first).
"""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from storyloom.llm import HttpLLM
from storyloom.models import GenerationSettings

load_dotenv()

_CONFIG_DEFAULTS: dict[str, Any] = {
    "llm": {
        "provider_url": "http://localhost:5001",
        "api_key": "",
        "provider_format": "koboldcpp",
        "model": "",
        "timeout": 120.0,
    },
    "generation": GenerationSettings().model_dump(),
}

_ENV_OVERRIDES: dict[str, str] = {
    "STORYLOOM_PROVIDER_URL": "provider_url",
    "STORYLOOM_API_KEY": "api_key",
    "STORYLOOM_PROVIDER_FORMAT": "provider_format",
    "STORYLOOM_MODEL": "model",
}


def get_config(path: Path | None = None) -> dict[str, Any]:
    """Read config, returning defaults merged with stored values and env overrides."""
    config = copy.deepcopy(_CONFIG_DEFAULTS)
    if path is not None and path.is_file():
        stored = json.loads(path.read_text())
        for section in ("llm", "generation"):
            if isinstance(stored.get(section), dict):
                config[section].update(stored[section])
    for env_name, key in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            config["llm"][key] = value
    return config


def update_config(path: Path, fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into the stored config and persist. Returns full config."""
    stored: dict[str, Any] = {}
    if path.is_file():
        stored = json.loads(path.read_text())
    for section in ("llm", "generation"):
        if isinstance(fields.get(section), dict):
            stored.setdefault(section, {}).update(fields[section])
    path.write_text(json.dumps(stored, indent=2))
    return get_config(path)


def generation_settings(config: dict[str, Any]) -> GenerationSettings:
    return GenerationSettings.model_validate(config["generation"])


def llm_from_config(config: dict[str, Any]) -> HttpLLM:
    llm = config["llm"]
    return HttpLLM(
        provider_url=llm["provider_url"],
        api_key=llm.get("api_key", ""),
        provider_format=llm.get("provider_format", "koboldcpp"),
        model=llm.get("model", ""),
        timeout=float(llm.get("timeout", 120.0)),
    )
