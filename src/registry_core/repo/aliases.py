"""Repository for alias records."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from registry_core.db.models import AliasRecord


class AliasRepository:
    def get(
        self,
        key: str,
        *,
        session: Session,
        for_update: bool = False,
    ) -> Optional[AliasRecord]:
        stmt = select(AliasRecord).where(AliasRecord.key == key)
        if for_update:
            stmt = stmt.with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    def list_by_package(self, package_pk: int, *, session: Session) -> list[AliasRecord]:
        stmt = (
            select(AliasRecord)
            .where(AliasRecord.package_id == package_pk)
            .order_by(AliasRecord.key)
        )
        return list(session.execute(stmt).scalars().all())

    def save(self, record: AliasRecord, *, session: Session) -> AliasRecord:
        session.add(record)
        return record

    def delete(self, record: AliasRecord, *, session: Session) -> None:
        session.delete(record)
