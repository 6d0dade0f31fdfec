"""
Audit log model.

Records ledger-level actions (manual entries, reversals,
chart of accounts changes) for traceability. Automatic
postings are already traceable through their reference
type and id and are not duplicated here.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from erp_ledger.models.base import Base


class AuditLog(Base):
    """
    Immutable record of a ledger action.

    Like journal entries, audit logs are append-only.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(nullable=False, index=True)
    actor_id: Mapped[int | None] = mapped_column(nullable=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
