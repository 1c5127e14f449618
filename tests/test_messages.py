# tests/test_messages.py

from __future__ import annotations

import pytest

from gemdesk.notify.messages import TEMPLATES, CustomMessageHistory, MessageKind, render_message


def test_every_kind_has_a_template() -> None:
    assert set(TEMPLATES) == set(MessageKind)


def test_render_fills_gem_and_task() -> None:
    text = render_message("delayed", "Ravi", "Cafe reel")
    assert text.startswith("Hi Ravi!")
    assert '"Cafe reel"' in text
    assert "DELAYED" in text


def test_unknown_kind_is_rejected() -> None:
    with pytest.raises(ValueError):
        render_message("shout", "Ravi", "x")


def test_history_keeps_last_n_distinct_most_recent_first() -> None:
    history = CustomMessageHistory(limit=3)
    for text in ("one", "two", "three", "two", "four"):
        history.remember(text)

    assert history.items() == ["four", "two", "three"]
    assert len(history) == 3


def test_history_ignores_blank_and_strips() -> None:
    history = CustomMessageHistory()
    assert history.remember("   ") is False
    assert history.remember("  call me  ") is True
    assert history.items() == ["call me"]
    assert history.limit == 10


def test_history_initial_order_is_preserved() -> None:
    history = CustomMessageHistory(limit=2, initial=["newest", "older", "oldest"])
    assert history.items() == ["newest", "older"]
