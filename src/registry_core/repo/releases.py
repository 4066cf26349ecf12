"""Repository for release records."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from registry_core.db.models import ReleaseRecord


class ReleaseRepository:
    def get(self, release_id: int, *, session: Session) -> Optional[ReleaseRecord]:
        return session.get(ReleaseRecord, release_id)

    def get_by_version(
        self,
        *,
        package_pk: int,
        version: str,
        session: Session,
    ) -> Optional[ReleaseRecord]:
        stmt = select(ReleaseRecord).where(
            ReleaseRecord.package_id == package_pk,
            ReleaseRecord.version == version,
        )
        return session.execute(stmt).scalar_one_or_none()

    def list_by_package(self, package_pk: int, *, session: Session) -> list[ReleaseRecord]:
        stmt = select(ReleaseRecord).where(ReleaseRecord.package_id == package_pk)
        return list(session.execute(stmt).scalars().all())

    def group_by_packages(
        self,
        package_pks: Iterable[int],
        *,
        session: Session,
    ) -> dict[int, list[ReleaseRecord]]:
        ids = list(package_pks)
        grouped: dict[int, list[ReleaseRecord]] = defaultdict(list)
        if not ids:
            return grouped
        stmt = select(ReleaseRecord).where(ReleaseRecord.package_id.in_(ids))
        for record in session.execute(stmt).scalars():
            grouped[record.package_id].append(record)
        return grouped

    def save(self, record: ReleaseRecord, *, session: Session) -> ReleaseRecord:
        session.add(record)
        return record
