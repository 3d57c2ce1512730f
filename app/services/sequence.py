from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import StorageUnavailableError
from app.models.tow_request import RequestSequence

log = structlog.get_logger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def format_request_number(year: int, counter: int) -> str:
    return f"{settings.TOW_NUMBER_PREFIX}-{year}-{str(counter).zfill(settings.TOW_NUMBER_PAD)}"


class SequenceAllocator:
    """
    Hands out TOW-<year>-<NNNNN> numbers from a per-year counter row.

    The increment runs inside the caller's transaction, so the number is only
    consumed if the caller commits.
    """

    def __init__(self, db: Session):
        self.db = db

    def allocate(self, year: int) -> str:
        try:
            counter = self._next_counter(year)
        except DBAPIError as e:
            self.db.rollback()
            log.error("sequence_allocation_failed", year=year, error=str(e.orig))
            raise StorageUnavailableError(f"Could not allocate a tow request number: {e.orig}") from e
        return format_request_number(year, counter)

    def _next_counter(self, year: int) -> int:
        insert_fn = _UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)
        if insert_fn is not None:
            stmt = (
                insert_fn(RequestSequence)
                .values(year=year, last_number=1)
                .on_conflict_do_update(
                    index_elements=[RequestSequence.year],
                    set_={"last_number": RequestSequence.last_number + 1},
                )
                .returning(RequestSequence.last_number)
            )
            return self.db.execute(stmt).scalar_one()

        # No native upsert: lock the year's row for the rest of the transaction
        row = self.db.execute(
            select(RequestSequence).where(RequestSequence.year == year).with_for_update()
        ).scalar_one_or_none()
        if row is None:
            row = RequestSequence(year=year, last_number=1)
            self.db.add(row)
        else:
            row.last_number += 1
        self.db.flush()
        return row.last_number

    def peek(self, year: int) -> int:
        """Last number issued for ``year`` (0 if none)."""
        value = self.db.execute(
            select(RequestSequence.last_number).where(RequestSequence.year == year)
        ).scalar_one_or_none()
        return value or 0
