from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone

import pytest

from registry_core.service.errors import (
    InvalidQueryError,
    UnknownPackageError,
    UnknownReleaseError,
)

DAY = date(2026, 3, 14)


def _at(day: date, hour: int = 12) -> datetime:
    return datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc)


@pytest.fixture()
def releases(registry, owner):
    first = registry.publish(owner, "pkg", "1.0.0")
    second = registry.publish(owner, "pkg", "1.1.0")
    return first, second


def test_summary_is_zero_filled_and_inclusive(registry, releases):
    first, second = releases
    registry.record_download(first, at=_at(DAY))
    registry.record_download(first, at=_at(DAY, 23))
    registry.record_download(second, at=_at(DAY + timedelta(days=2)))

    summary = registry.summarize_downloads("alice/pkg", DAY, DAY + timedelta(days=3))

    assert [bucket.day for bucket in summary.buckets] == [DAY + timedelta(days=n) for n in range(4)]
    assert [bucket.count for bucket in summary.buckets] == [2, 0, 1, 0]
    assert summary.total == 3


def test_summary_filtered_by_version(registry, releases):
    first, second = releases
    registry.record_download(first, at=_at(DAY))
    registry.record_download(second, at=_at(DAY))

    summary = registry.summarize_downloads("alice/pkg", DAY, DAY, version="1.1.0")
    assert summary.total == 1
    with pytest.raises(UnknownReleaseError):
        registry.summarize_downloads("alice/pkg", DAY, DAY, version="9.9.9")


def test_single_day_window(registry, releases):
    summary = registry.summarize_downloads("alice/pkg", DAY, DAY)
    assert len(summary.buckets) == 1
    assert summary.total == 0


def test_summary_rejects_bad_windows(registry, releases):
    with pytest.raises(InvalidQueryError):
        registry.summarize_downloads("alice/pkg", DAY, DAY - timedelta(days=1))
    with pytest.raises(InvalidQueryError):
        registry.summarize_downloads("alice/pkg", DAY, DAY + timedelta(days=400))


def test_unknown_targets(registry, releases):
    with pytest.raises(UnknownReleaseError):
        registry.record_download(999_999)
    with pytest.raises(UnknownPackageError):
        registry.summarize_downloads("alice/nope", DAY, DAY)


def test_package_counter_and_overview(registry, releases):
    first, _ = releases
    today = datetime.now(timezone.utc)
    registry.record_download(first, at=today)
    registry.record_download(first, at=today - timedelta(days=5))

    assert registry.get_package("alice/pkg").download_count == 2
    overview = registry.download_overview()
    assert overview.total_packages == 1
    assert overview.total_downloads == 2
    assert overview.downloads_today == 1


def test_concurrent_downloads_are_not_lost(registry, releases):
    first, _ = releases
    moment = _at(DAY)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: registry.record_download(first, at=moment), range(1000)))

    summary = registry.summarize_downloads("alice/pkg", DAY, DAY)
    assert summary.total == 1000
    assert registry.get_package("alice/pkg").download_count == 1000
