"""Repository for package records."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from registry_core.db.models import PackageRecord


class PackageRepository:
    def get(self, package_pk: int, *, session: Session) -> Optional[PackageRecord]:
        return session.get(PackageRecord, package_pk)

    def get_by_name(
        self,
        *,
        owner_id: str,
        name_key: str,
        session: Session,
        for_update: bool = False,
    ) -> Optional[PackageRecord]:
        stmt = select(PackageRecord).where(
            PackageRecord.owner_id == owner_id,
            PackageRecord.name_key == name_key,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    def list_searchable(
        self,
        *,
        text: str,
        language: Optional[str],
        include_private: bool,
        viewer_id: Optional[str],
        session: Session,
    ) -> list[PackageRecord]:
        stmt = select(PackageRecord).where(PackageRecord.active.is_(True))

        if not include_private:
            visible = PackageRecord.visibility == "public"
            if viewer_id:
                visible = or_(visible, PackageRecord.owner_id == viewer_id)
            stmt = stmt.where(visible)

        if language:
            stmt = stmt.where(func.lower(PackageRecord.language) == language.lower())

        if text:
            stmt = stmt.where(PackageRecord.search_text.contains(text.lower(), autoescape=True))

        return list(session.execute(stmt).scalars().all())

    def count_active(self, *, session: Session) -> int:
        stmt = select(func.count()).select_from(PackageRecord).where(PackageRecord.active.is_(True))
        return int(session.execute(stmt).scalar_one())

    def increment_downloads(self, package_pk: int, *, session: Session) -> None:
        session.execute(
            update(PackageRecord)
            .where(PackageRecord.id == package_pk)
            .values(download_count=PackageRecord.download_count + 1)
        )

    def save(self, record: PackageRecord, *, session: Session) -> PackageRecord:
        session.add(record)
        return record
