# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use:
- .env (local, gitignored)
- config_local.py (local safe overrides, gitignored)

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "GEMDESK_APP_NAME": "App display name (default: gemdesk).",
    "GEMDESK_LOG_LEVEL": "Logging level (default: INFO).",
    # Connectors
    "GEMDESK_CONSOLE_ENABLED": "Enable console REPL (true/false). Off => delay sweep only.",
    # Paths (gitignored)
    "GEMDESK_DATA_DIR": "Local data directory (default: .local/gemdesk).",
    "GEMDESK_DB_PATH": "SQLite record store path (default: <data_dir>/gemdesk.sqlite3).",
    "GEMDESK_CUSTOM_MESSAGES_PATH": (
        "Custom reminder message history JSON (default: <data_dir>/custom_messages.json)."
    ),
    # Engine timing
    "GEMDESK_SWEEP_INTERVAL_SECONDS": "Seconds between auto-delay sweeps (default: 60).",
    "GEMDESK_DELAY_COOLDOWN_SECONDS": (
        "Seconds a task stays leased after its auto-delay write (default: 5)."
    ),
    # Presentation
    "GEMDESK_CUSTOM_MESSAGE_LIMIT": "How many custom messages to remember (default: 10).",
    "GEMDESK_TIMEZONE": "IANA zone for day boundaries, e.g. Asia/Kolkata (default: local time).",
    "GEMDESK_GEM_ID": "Restrict the task view to one gem (worker session). Empty => admin view.",
}
