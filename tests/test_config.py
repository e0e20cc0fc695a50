# tests/test_config.py

from __future__ import annotations

from pathlib import Path

from flow_mentor.config import Settings

_VARS = (
    "FLOW_STORE_BACKEND",
    "FLOW_ASSISTANT_BACKEND",
    "FLOW_LLM_MODELS",
    "FLOW_USER_ID",
    "FLOW_DATA_DIR",
    "FLOW_STORE_DB_PATH",
    "FLOW_HTTP_CONNECT_TIMEOUT_SECONDS",
    "FLOW_HTTP_READ_TIMEOUT_SECONDS",
    "FLOW_RECENT_TASKS_LIMIT",
    "FLOW_GEMINI_API_KEY",
    "GEMINI_API_KEY",
)


def _clean(monkeypatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch) -> None:
    _clean(monkeypatch)
    s = Settings.from_env()
    assert s.store_backend == "sqlite"
    assert s.assistant_backend == "auto"
    assert s.user_id == "local-user"
    assert s.store_db_path == Path(".local/flow") / "store.sqlite3"
    assert s.recent_tasks_limit == 5
    assert s.gemini_api_key is None


def test_env_overrides_and_parsing(monkeypatch, tmp_path: Path) -> None:
    _clean(monkeypatch)
    monkeypatch.setenv("FLOW_STORE_BACKEND", "Firebase")
    monkeypatch.setenv("FLOW_LLM_MODELS", "a/one, b/two  c/three")
    monkeypatch.setenv("FLOW_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("FLOW_RECENT_TASKS_LIMIT", "3")
    monkeypatch.setenv("GEMINI_API_KEY", "from-plain-name")

    s = Settings.from_env()
    assert s.store_backend == "firebase"
    assert s.llm_models == ["a/one", "b/two", "c/three"]
    assert s.store_db_path == tmp_path / "store.sqlite3"
    assert s.recent_tasks_limit == 3
    assert s.gemini_api_key == "from-plain-name"


def test_invalid_values_fall_back(monkeypatch) -> None:
    _clean(monkeypatch)
    monkeypatch.setenv("FLOW_STORE_BACKEND", "postgres")
    monkeypatch.setenv("FLOW_ASSISTANT_BACKEND", "gpt")
    monkeypatch.setenv("FLOW_RECENT_TASKS_LIMIT", "many")
    monkeypatch.setenv("FLOW_HTTP_CONNECT_TIMEOUT_SECONDS", "9")
    monkeypatch.setenv("FLOW_HTTP_READ_TIMEOUT_SECONDS", "2")

    s = Settings.from_env()
    assert s.store_backend == "sqlite"
    assert s.assistant_backend == "auto"
    assert s.recent_tasks_limit == 5
    assert s.http_read_timeout == 9.0
