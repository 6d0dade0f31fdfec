"""
Sequence service: per-company monotonic counters.

Numbers come from a counter row that is incremented with a
single UPDATE inside the caller's transaction. The UPDATE takes
the row (PostgreSQL) or database (SQLite) write lock, so a
concurrent allocation for the same company waits until this
transaction ends and then sees the incremented value. Counting
existing rows and adding one is never used: two transactions
would read the same count.

The increment is only visible after the caller commits; a
rollback gives the number back.
"""

import structlog
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from erp_ledger.models.base import insert_missing
from erp_ledger.models.entry_sequence import EntrySequence

logger = structlog.get_logger(__name__)


class SequenceService:

    # Well-known sequence names
    JOURNAL_ENTRY = "journal_entry"

    def __init__(self, db: Session):
        self.db = db

    def ensure(self, company_id: int, name: str = JOURNAL_ENTRY) -> None:
        """Create the counter row for a company if it does not exist yet."""
        if self.current_value(company_id, name) is None:
            insert_missing(
                self.db,
                EntrySequence,
                [{"company_id": company_id, "name": name, "next_value": 1}],
                ["company_id", "name"],
            )

    def next_value(self, company_id: int, name: str = JOURNAL_ENTRY) -> int:
        """
        Allocate the next value of a company's sequence.

        Returns an integer >= 1, strictly greater than every value
        previously allocated (and committed) for the same company
        and name.
        """
        increment = (
            update(EntrySequence)
            .where(
                EntrySequence.company_id == company_id,
                EntrySequence.name == name,
            )
            .values(next_value=EntrySequence.next_value + 1)
            .execution_options(synchronize_session=False)
        )

        if self.db.execute(increment).rowcount == 0:
            self.ensure(company_id, name)
            self.db.execute(increment)

        # Read back inside the same transaction: we hold the lock
        next_value = self.db.execute(
            select(EntrySequence.next_value).where(
                EntrySequence.company_id == company_id,
                EntrySequence.name == name,
            )
        ).scalar_one()

        value = next_value - 1
        logger.debug(
            "sequence_allocated",
            company_id=company_id,
            sequence_name=name,
            value=value,
        )
        return value

    def current_value(
        self, company_id: int, name: str = JOURNAL_ENTRY
    ) -> int | None:
        """
        Last value handed out, without allocating.

        Returns 0 if the counter exists but nothing was allocated,
        None if the counter does not exist.
        """
        next_value = self.db.execute(
            select(EntrySequence.next_value).where(
                EntrySequence.company_id == company_id,
                EntrySequence.name == name,
            )
        ).scalar_one_or_none()
        return None if next_value is None else next_value - 1
