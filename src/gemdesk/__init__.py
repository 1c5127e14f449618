"""Gem task tracking: task lifecycle, auto-delay and client commitment progress."""

__version__ = "0.1.0"
