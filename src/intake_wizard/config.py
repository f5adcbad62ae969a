from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_ANALYSIS_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_RELAY_URL = "http://localhost:8000/"
STATE_ENTRY_NAME = "formState"
STEP_COUNT = 5


def _repo_root() -> Path:
    # `src/intake_wizard/config.py` -> repo root
    return Path(__file__).resolve().parents[2]


def load_env_files() -> None:
    # Real environment wins; `.env.local` only fills what `.env` left unset.
    load_dotenv(_repo_root() / ".env", override=False)
    load_dotenv(_repo_root() / ".env.local", override=False)


def _env_str(name: str, default: str = "") -> str:
    v = (os.getenv(name) or "").strip()
    return v or default


def _env_bool(name: str, default: bool = False) -> bool:
    v = (os.getenv(name) or "").strip().lower()
    if not v:
        return default
    return v in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class RelaySettings:
    """Everything the submission relay needs to reach its two upstreams."""

    storage_webhook_url: str = ""
    openai_api_key: str = ""
    analysis_api_url: str = DEFAULT_ANALYSIS_API_URL
    analysis_model: str = "gpt-4"
    analysis_temperature: float = 0.7
    timeout_sec: float = 20.0
    allow_origin: str = "*"

    @property
    def is_configured(self) -> bool:
        return bool(self.storage_webhook_url and self.openai_api_key)

    @classmethod
    def from_env(cls) -> "RelaySettings":
        return cls(
            storage_webhook_url=_env_str("STORAGE_WEBHOOK_URL"),
            openai_api_key=_env_str("OPENAI_API_KEY"),
            analysis_api_url=_env_str("ANALYSIS_API_URL", DEFAULT_ANALYSIS_API_URL),
            analysis_model=_env_str("ANALYSIS_MODEL", "gpt-4"),
            analysis_temperature=_env_float("ANALYSIS_TEMPERATURE", 0.7),
            timeout_sec=_env_float("RELAY_TIMEOUT_SEC", 20.0),
            allow_origin=_env_str("RELAY_ALLOW_ORIGIN", "*"),
        )


@dataclass(frozen=True)
class WizardSettings:
    relay_url: str = DEFAULT_RELAY_URL
    state_dir: Path = Path(".intake_state")
    timeout_sec: float = 30.0

    @classmethod
    def from_env(cls) -> "WizardSettings":
        return cls(
            relay_url=_env_str("INTAKE_RELAY_URL", DEFAULT_RELAY_URL),
            state_dir=Path(_env_str("INTAKE_STATE_DIR", ".intake_state")),
            timeout_sec=_env_float("INTAKE_TIMEOUT_SEC", 30.0),
        )


def configure_logging(level: Optional[str] = None) -> None:
    lvl = (level or _env_str("INTAKE_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, lvl, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
