"""
Launch configuration for the desktop app.

Read once from the environment (and an optional ``.env`` file at the project
root) when main.py starts:

    REPHRASE_ENDPOINT=http://localhost:1234/v1/chat/completions
    REPHRASE_TIMEOUT=60
    REPHRASE_SETTINGS_PATH=~/.rephrase_trainer/settings.json
    REPHRASE_DEBUG=1

The endpoint here only seeds the settings store the first time; once the
learner saves settings, the stored endpoint wins.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .api import DEFAULT_TIMEOUT
from .logger import logger
from .settings import DEFAULT_SETTINGS_PATH


@dataclass(frozen=True)
class AppConfig:
    endpoint: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    settings_path: Path = DEFAULT_SETTINGS_PATH
    debug: bool = True


def _parse_bool(value: str) -> bool:
    return value.strip().lower() not in ("0", "false", "no", "off", "")


def load_config(dotenv: bool = True) -> AppConfig:
    if dotenv:
        if load_dotenv():
            logger.env_success(".env file loaded")
        else:
            logger.env("No .env file found, using environment only")

    timeout = DEFAULT_TIMEOUT
    raw_timeout = os.getenv("REPHRASE_TIMEOUT")
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            logger.env_error(f"Ignoring invalid REPHRASE_TIMEOUT={raw_timeout!r}")

    settings_path = os.getenv("REPHRASE_SETTINGS_PATH")
    config = AppConfig(
        endpoint=os.getenv("REPHRASE_ENDPOINT") or None,
        timeout=timeout,
        settings_path=Path(settings_path).expanduser() if settings_path else DEFAULT_SETTINGS_PATH,
        debug=_parse_bool(os.getenv("REPHRASE_DEBUG", "1")),
    )
    logger.env(f"Endpoint override: {config.endpoint or '(none)'}; timeout={config.timeout:.0f}s")
    return config
