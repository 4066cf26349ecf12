"""Download recording and daily summaries."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from registry_core.domain.models import DownloadBucket, DownloadOverview, DownloadSummary
from registry_core.repo.common import _day, _now
from registry_core.repo.download_stats import DownloadStatRepository
from registry_core.repo.packages import PackageRepository
from registry_core.repo.releases import ReleaseRepository
from registry_core.service.errors import (
    InvalidQueryError,
    UnknownPackageError,
    UnknownReleaseError,
)
from registry_core.service.naming import format_package_id, package_name_key, split_package_id
from registry_core.service.store import RegistryStore


class DownloadAggregator:
    """Counts downloads into daily (release, day) buckets and reads them back.

    Summaries only ever touch the aggregated buckets.
    """

    def __init__(
        self,
        store: RegistryStore,
        *,
        max_days: int = 366,
        packages: Optional[PackageRepository] = None,
        releases: Optional[ReleaseRepository] = None,
        downloads: Optional[DownloadStatRepository] = None,
    ) -> None:
        self._store = store
        self._max_days = max_days
        self._packages = packages or PackageRepository()
        self._releases = releases or ReleaseRepository()
        self._downloads = downloads or DownloadStatRepository()

    def record(self, release_id: int, *, at: Optional[datetime] = None) -> None:
        self._store.record_download(release_id, at=at)

    def summarize(
        self,
        package_id: str,
        start: date,
        end: date,
        *,
        version: Optional[str] = None,
    ) -> DownloadSummary:
        if start > end:
            raise InvalidQueryError("start must not be after end.")
        span = (end - start).days + 1
        if span > self._max_days:
            raise InvalidQueryError(f"Summaries may cover at most {self._max_days} days.")
        owner_id, name = split_package_id(package_id)

        def _summarize(session: Session) -> DownloadSummary:
            package = self._packages.get_by_name(
                owner_id=owner_id,
                name_key=package_name_key(name),
                session=session,
            )
            if package is None:
                raise UnknownPackageError(f"Package '{package_id}' not found.")
            release_id = None
            if version is not None:
                release = self._releases.get_by_version(
                    package_pk=package.id,
                    version=version,
                    session=session,
                )
                if release is None:
                    raise UnknownReleaseError(
                        f"Version {version} of '{package_id}' not found."
                    )
                release_id = release.id
            counts = self._downloads.daily_counts(
                package_pk=package.id,
                start=start,
                end=end,
                release_id=release_id,
                session=session,
            )
            buckets = tuple(
                DownloadBucket(day=day, count=counts.get(day, 0))
                for day in (start + timedelta(days=offset) for offset in range(span))
            )
            return DownloadSummary(
                package_id=format_package_id(package.owner_id, package.name),
                start=start,
                end=end,
                version=version,
                buckets=buckets,
            )

        return self._store.database.run_in_session(_summarize)

    def overview(self, *, today: Optional[date] = None) -> DownloadOverview:
        day = today or _day(_now())

        def _overview(session: Session) -> DownloadOverview:
            return DownloadOverview(
                total_packages=self._packages.count_active(session=session),
                total_downloads=self._downloads.total(session=session),
                downloads_today=self._downloads.total(session=session, day=day),
            )

        return self._store.database.run_in_session(_overview)


__all__ = ["DownloadAggregator"]
