# config_local.example.py

"""
Example local overrides.

Usage:
  1) Copy this file to `config_local.py`
  2) Adjust values for your machine
  3) Never commit `config_local.py` (it is gitignored)

Prefer `.env` for secrets. This file should contain only safe overrides.
"""

# Example: run headless (delay sweep only, no REPL)
# CONSOLE_ENABLED = False

# Example: sweep more often while testing deadlines by hand
# SWEEP_INTERVAL_SECONDS = 5.0
