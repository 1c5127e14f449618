# src/gemdesk/core/errors.py

"""Exceptions raised by gemdesk services."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from enum import StrEnum
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=StrEnum)


class GemDeskError(Exception):
    """Base exception for gemdesk errors."""


class ValidationError(GemDeskError):
    """Input rejected before any write was attempted."""


class NotFoundError(GemDeskError):
    """The targeted record is not (or no longer) present."""

    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"{collection} record not found: {record_id}")
        self.collection = collection
        self.record_id = record_id


class StoreWriteError(GemDeskError):
    """The record store failed to persist a write."""


def parse_enum(cls: type[E], raw: Any, what: str) -> E:
    """Coerce operator input to an enum member or raise ValidationError."""
    try:
        return cls(raw)
    except ValueError:
        choices = ", ".join(m.value for m in cls)
        raise ValidationError(f"unknown {what} {raw!r} (one of: {choices})") from None


@contextmanager
def store_write(action: str) -> Iterator[None]:
    """
    Wrap a store call made on behalf of an operator.

    gemdesk errors pass through untouched; anything else the store raises
    becomes StoreWriteError. No retry: the operator re-attempts.
    """
    try:
        yield
    except GemDeskError:
        raise
    except Exception as e:
        logger.exception("%s failed", action)
        raise StoreWriteError(f"{action} failed: {e}") from e
