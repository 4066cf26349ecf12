"""Repository for daily download buckets."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from registry_core.db.models import DownloadStatRecord

_UPSERT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


class DownloadStatRepository:
    def increment(
        self,
        *,
        release_id: int,
        package_pk: int,
        day: date,
        at: datetime,
        session: Session,
    ) -> None:
        """Add one download to the (release, day) bucket without reading it first."""

        insert = _UPSERT_INSERTS.get(session.get_bind().dialect.name)
        if insert is not None:
            stmt = insert(DownloadStatRecord).values(
                release_id=release_id,
                day=day,
                package_id=package_pk,
                download_count=1,
                last_downloaded_at=at,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[DownloadStatRecord.release_id, DownloadStatRecord.day],
                set_={
                    "download_count": DownloadStatRecord.download_count + 1,
                    "last_downloaded_at": at,
                },
            )
            session.execute(stmt)
            return

        if self._bump(release_id=release_id, day=day, at=at, session=session):
            return
        try:
            with session.begin_nested():
                session.add(
                    DownloadStatRecord(
                        release_id=release_id,
                        day=day,
                        package_id=package_pk,
                        download_count=1,
                        last_downloaded_at=at,
                    )
                )
        except IntegrityError:
            # Another writer created the bucket first.
            self._bump(release_id=release_id, day=day, at=at, session=session)

    def _bump(self, *, release_id: int, day: date, at: datetime, session: Session) -> bool:
        result = session.execute(
            update(DownloadStatRecord)
            .where(
                DownloadStatRecord.release_id == release_id,
                DownloadStatRecord.day == day,
            )
            .values(
                download_count=DownloadStatRecord.download_count + 1,
                last_downloaded_at=at,
            )
        )
        return bool(result.rowcount)

    def daily_counts(
        self,
        *,
        package_pk: int,
        start: date,
        end: date,
        release_id: Optional[int],
        session: Session,
    ) -> dict[date, int]:
        stmt = (
            select(DownloadStatRecord.day, func.sum(DownloadStatRecord.download_count))
            .where(
                DownloadStatRecord.package_id == package_pk,
                DownloadStatRecord.day >= start,
                DownloadStatRecord.day <= end,
            )
            .group_by(DownloadStatRecord.day)
        )
        if release_id is not None:
            stmt = stmt.where(DownloadStatRecord.release_id == release_id)
        return {day: int(total or 0) for day, total in session.execute(stmt).all()}

    def total(self, *, session: Session, day: Optional[date] = None) -> int:
        stmt = select(func.coalesce(func.sum(DownloadStatRecord.download_count), 0))
        if day is not None:
            stmt = stmt.where(DownloadStatRecord.day == day)
        return int(session.execute(stmt).scalar_one())
