# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "FLOW_APP_NAME": "App display name (default: flow-mentor).",
    "FLOW_LOG_LEVEL": "Console logging level (default: INFO).",
    "FLOW_DATA_DIR": "Local data directory for logs and the SQLite store (default: .local/flow).",
    # Session
    "FLOW_USER_ID": "Signed-in user id; selects the tasks/<id> and chats/<id> partition.",
    # Store
    "FLOW_STORE_BACKEND": "memory | sqlite | firebase (default: sqlite).",
    "FLOW_STORE_DB_PATH": "SqliteStore file (default: <data_dir>/store.sqlite3).",
    "FLOW_FIREBASE_DATABASE_URL": "Realtime Database URL, e.g. https://<project>.firebaseio.com.",
    "FLOW_FIREBASE_AUTH_TOKEN": "ID token or database secret sent as ?auth=... (optional).",
    "FLOW_STREAM_RECONNECT_SECONDS": "Delay before reopening a dropped event stream (default: 3).",
    # Assistant
    "FLOW_ASSISTANT_BACKEND": "auto | gemini | openrouter | offline (default: auto).",
    "FLOW_GEMINI_API_KEY": "Google AI API key for generateContent.",
    "FLOW_GEMINI_MODEL": "Gemini model (default: gemini-1.5-flash).",
    "FLOW_GEMINI_BASE_URL": "Gemini REST base URL (default: https://generativelanguage.googleapis.com/v1).",
    "FLOW_OPENROUTER_API_KEY": "OpenRouter API key (used when no Gemini key is set).",
    "FLOW_OPENROUTER_BASE_URL": "OpenRouter base URL (default: https://openrouter.ai/api/v1).",
    "FLOW_LLM_MODELS": "Comma/space separated list of OpenRouter models to try in order.",
    "FLOW_HTTP_REFERER": "Optional OpenRouter metadata header.",
    # HTTP
    "FLOW_HTTP_CONNECT_TIMEOUT_SECONDS": "Connect timeout for store/assistant calls (default: 5).",
    "FLOW_HTTP_READ_TIMEOUT_SECONDS": "Read timeout for store/assistant calls (default: 25).",
    # Views
    "FLOW_RECENT_TASKS_LIMIT": "How many tasks /stats lists as recent (default: 5).",
}
