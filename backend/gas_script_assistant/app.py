"""Backend application factory.

Uses the same lightweight "service container" style as the UI expects: a
dictionary of settings and long-lived dependencies. Per-session objects
(credential gate, ledger, controller) are built from it by ``new_session``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

from .ai.gemini_client import DEFAULT_BASE_URL, DEFAULT_MODEL, GeminiClient
from .controller import Session, ViewController
from .credentials import CREDENTIAL_FILE_NAME, CredentialGate, CredentialStore
from .history import HistoryLedger
from .prompts import DEFAULT_LANGUAGE

# Ensure local `.env` values are available when running via Streamlit/CLI.
load_dotenv(Path(__file__).resolve().parents[2] / ".env", override=False)

DEFAULT_HOME = Path.home() / ".gas_script_assistant"


def _read_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _read_flag(name: str, default: bool) -> bool:
    value = _read_env(name)
    if value is None:
        return default
    return value.lower() not in ("0", "false", "no", "off")


@dataclass(frozen=True)
class Settings:
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    language: str = DEFAULT_LANGUAGE
    home: Path = DEFAULT_HOME
    persist_credential: bool = True
    log_level: str = "INFO"
    seed_credential: str | None = None

    @property
    def credential_path(self) -> Path:
        return self.home / CREDENTIAL_FILE_NAME


def load_settings() -> Settings:
    """Read settings from the environment, falling back to defaults."""
    home = _read_env("GAS_ASSISTANT_HOME")
    return Settings(
        model=_read_env("GAS_ASSISTANT_MODEL") or DEFAULT_MODEL,
        base_url=_read_env("GAS_ASSISTANT_BASE_URL") or DEFAULT_BASE_URL,
        language=_read_env("GAS_ASSISTANT_LANGUAGE") or DEFAULT_LANGUAGE,
        home=Path(home).expanduser() if home else DEFAULT_HOME,
        persist_credential=_read_flag("GAS_ASSISTANT_PERSIST_CREDENTIAL", True),
        log_level=(_read_env("GAS_ASSISTANT_LOG_LEVEL") or "INFO").upper(),
        seed_credential=_read_env("GEMINI_API_KEY"),
    )


def create_app(settings: Settings | None = None) -> Dict[str, Any]:
    """Create the backend dependency container."""
    settings = settings or load_settings()
    store = CredentialStore(settings.credential_path) if settings.persist_credential else None
    return {
        "settings": settings,
        "generation_client": GeminiClient(
            model=settings.model,
            base_url=settings.base_url,
            language=settings.language,
        ),
        "credential_store": store,
    }


def new_session(app: Dict[str, Any]) -> ViewController:
    """Build a fresh session and its controller, restoring any stored credential."""
    settings: Settings = app["settings"]
    gate = CredentialGate(app["credential_store"])
    gate.load(fallback=settings.seed_credential)
    session = Session(credential=gate, ledger=HistoryLedger())
    return ViewController(session, app["generation_client"], language=settings.language)
