"""Helpers shared by the services."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TypeVar

from ticketing.domain.errors import InvalidIdError

Clock = Callable[[], datetime]

IdT = TypeVar("IdT")


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_id(id_type: type[IdT], raw: object, kind: str) -> IdT:
    """Build a typed identifier from raw input.

    Raises:
        InvalidIdError: If raw is not a valid UUID string.
    """
    try:
        return id_type.from_string(str(raw))  # type: ignore[attr-defined]
    except (TypeError, ValueError) as exc:
        raise InvalidIdError(kind) from exc
