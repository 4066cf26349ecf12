"""Repository for account records."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from registry_core.db.models import AccountRecord


class AccountRepository:
    def get(self, account_id: str, *, session: Session) -> Optional[AccountRecord]:
        return session.get(AccountRecord, account_id)

    def save(self, record: AccountRecord, *, session: Session) -> AccountRecord:
        session.add(record)
        return record
