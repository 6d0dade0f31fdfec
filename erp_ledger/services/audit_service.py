"""Audit trail for ledger-level actions."""

import json

from sqlalchemy.orm import Session

from erp_ledger.models.audit_log import AuditLog


class AuditService:

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        company_id: int,
        event_type: str,
        actor_id: int | None = None,
        **details,
    ) -> AuditLog:
        """Add an audit row to the current unit of work. The caller commits."""
        entry = AuditLog(
            company_id=company_id,
            actor_id=actor_id,
            event_type=event_type,
            details=json.dumps(details, default=str, sort_keys=True),
        )
        self.db.add(entry)
        return entry
