"""Shared plumbing for the SQLModel repositories."""

from __future__ import annotations

from typing import TypeVar

from sqlmodel import Session, SQLModel

from ..models import utcnow

ModelT = TypeVar("ModelT", bound=SQLModel)


class SessionRepository:
    """Repositories flush but never commit; the caller owns the transaction."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _save(self, instance: ModelT, *, touch: bool = False) -> ModelT:
        if touch:
            instance.updated_at = utcnow()  # type: ignore[attr-defined]
        self.session.add(instance)
        self.session.flush()
        return instance

    def _remove(self, instance: SQLModel) -> None:
        self.session.delete(instance)
        self.session.flush()
