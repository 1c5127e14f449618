"""Reminder message templates and custom message history."""
