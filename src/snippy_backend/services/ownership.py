from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, TypeVar

from fastapi import HTTPException, status


class _Owned(Protocol):
    user_id: str


OwnedT = TypeVar("OwnedT", bound=_Owned)


def require_owner(row: OwnedT | None, *, user_id: str, not_found: str) -> OwnedT:
    """Mutation gate: missing -> 404, owned by someone else -> 403."""

    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
    if row.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="access denied")
    return row


def dedupe_ids(ids: Iterable[str]) -> list[str]:
    """Strip blanks and repeats, keeping first-seen order."""

    out: dict[str, None] = {}
    for raw in ids:
        v = (raw or "").strip()
        if v:
            out.setdefault(v, None)
    return list(out)


def require_known_ids(requested: list[str], known: set[str], *, label: str) -> None:
    for value in requested:
        if value not in known:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=f"unknown {label}: {value}"
            )
