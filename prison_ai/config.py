from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml
from dotenv import load_dotenv

load_dotenv()

DEFAULT_CONFIG_PATH = Path("config/prison_records.yaml")


def _parse_int(value: Any, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except (TypeError, ValueError):
        return default


def _parse_float(value: Any, default: float) -> float:
    try:
        return float(value) if value is not None else default
    except (TypeError, ValueError):
        return default


@dataclass
class Settings:
    ollama_host: str = "http://localhost:11434"
    chat_model: str = "llama3"
    keep_alive: str = "5m"
    request_timeout: float = 300.0
    facility_name: str = "District Prison Malir"
    ai_import_row_limit: int = 100
    log_level: str = "INFO"


def load_config_file(path: Path | None = None) -> Dict[str, Any]:
    """Read optional YAML defaults; a missing file yields an empty mapping."""

    path = path or Path(os.getenv("PRISON_RECORDS_CONFIG", str(DEFAULT_CONFIG_PATH)))
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping.")
    return data


def load_settings(config_path: Path | None = None, env: Mapping[str, str] | None = None) -> Settings:
    """Environment variables win over the YAML file, which wins over built-in defaults."""

    env = os.environ if env is None else env
    file_values = load_config_file(config_path)
    defaults = Settings()

    def pick(env_key: str, file_key: str, default: Any) -> Any:
        if env.get(env_key) is not None:
            return env[env_key]
        return file_values.get(file_key, default)

    return Settings(
        ollama_host=str(pick("OLLAMA_HOST", "ollama_host", defaults.ollama_host)),
        chat_model=str(pick("CHAT_MODEL", "chat_model", defaults.chat_model)),
        keep_alive=str(pick("KEEP_ALIVE", "keep_alive", defaults.keep_alive)),
        request_timeout=_parse_float(
            pick("REQUEST_TIMEOUT", "request_timeout", defaults.request_timeout), defaults.request_timeout
        ),
        facility_name=str(pick("FACILITY_NAME", "facility_name", defaults.facility_name)),
        ai_import_row_limit=_parse_int(
            pick("AI_IMPORT_ROW_LIMIT", "ai_import_row_limit", defaults.ai_import_row_limit),
            defaults.ai_import_row_limit,
        ),
        log_level=str(pick("LOG_LEVEL", "log_level", defaults.log_level)).upper(),
    )
