# src/flow_mentor/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "FLOW"

STORE_BACKENDS = ("memory", "sqlite", "firebase")
ASSISTANT_BACKENDS = ("auto", "gemini", "openrouter", "offline")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    raw = _env(name, default).strip().lower()
    return raw if raw in choices else default


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Session ----
    user_id: str

    # ---- Store ----
    store_backend: str
    store_db_path: Path
    firebase_database_url: str
    firebase_auth_token: str | None
    stream_reconnect_seconds: float

    # ---- Assistant ----
    assistant_backend: str
    gemini_api_key: str | None
    gemini_model: str
    gemini_base_url: str
    openrouter_api_key: str | None
    openrouter_base_url: str
    llm_models: list[str]
    extra_headers: dict[str, str]

    # ---- HTTP ----
    http_connect_timeout: float
    http_read_timeout: float

    # ---- Views ----
    recent_tasks_limit: int

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "flow-mentor") or "flow-mentor"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/flow"))

        user_id = (_env(_k("USER_ID"), "local-user") or "local-user").strip()

        store_backend = _env_choice(_k("STORE_BACKEND"), STORE_BACKENDS, "sqlite")
        store_db_path = _env_path(_k("STORE_DB_PATH"), data_dir / "store.sqlite3")
        firebase_database_url = (_env(_k("FIREBASE_DATABASE_URL"), "") or "").strip()
        firebase_auth_token = _first_env(_k("FIREBASE_AUTH_TOKEN"), default=None)
        stream_reconnect_seconds = _env_float(_k("STREAM_RECONNECT_SECONDS"), 3.0)

        assistant_backend = _env_choice(_k("ASSISTANT_BACKEND"), ASSISTANT_BACKENDS, "auto")
        gemini_api_key = _first_env(_k("GEMINI_API_KEY"), "GEMINI_API_KEY", default=None)
        gemini_model = _env(_k("GEMINI_MODEL"), "gemini-1.5-flash")
        gemini_base_url = _env(_k("GEMINI_BASE_URL"), "https://generativelanguage.googleapis.com/v1")
        openrouter_api_key = _first_env(_k("OPENROUTER_API_KEY"), "OPENROUTER_API_KEY", default=None)
        openrouter_base_url = _env(_k("OPENROUTER_BASE_URL"), "https://openrouter.ai/api/v1")
        llm_models = _env_list(
            _k("LLM_MODELS"),
            [
                "qwen/qwen-2.5-72b-instruct:free",
                "deepseek/deepseek-chat-v3-0324:free",
            ],
        )

        http_referer = _env(_k("HTTP_REFERER"), "https://example.com")
        extra_headers = {
            "HTTP-Referer": http_referer,
            "X-Title": app_name,
        }

        connect_timeout = _env_float(_k("HTTP_CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout = _env_float(_k("HTTP_READ_TIMEOUT_SECONDS"), 25.0)

        recent_tasks_limit = _env_int(_k("RECENT_TASKS_LIMIT"), 5)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            user_id=user_id,
            store_backend=store_backend,
            store_db_path=store_db_path,
            firebase_database_url=firebase_database_url,
            firebase_auth_token=firebase_auth_token,
            stream_reconnect_seconds=stream_reconnect_seconds,
            assistant_backend=assistant_backend,
            gemini_api_key=gemini_api_key,
            gemini_model=gemini_model,
            gemini_base_url=gemini_base_url,
            openrouter_api_key=openrouter_api_key,
            openrouter_base_url=openrouter_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
            http_connect_timeout=connect_timeout,
            http_read_timeout=max(read_timeout, connect_timeout),
            recent_tasks_limit=recent_tasks_limit,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
