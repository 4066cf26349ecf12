"""Snapshots returned by the registry core.

ORM records never leave a transaction; every operation converts them into
one of these frozen dataclasses before returning.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional, Tuple

VISIBILITY_PUBLIC = "public"
VISIBILITY_PRIVATE = "private"
VISIBILITY_VALUES = {VISIBILITY_PUBLIC, VISIBILITY_PRIVATE}

ACCOUNT_KIND_INDIVIDUAL = "individual"
ACCOUNT_KIND_ORGANIZATION = "organization"
ACCOUNT_KIND_VALUES = {ACCOUNT_KIND_INDIVIDUAL, ACCOUNT_KIND_ORGANIZATION}

SORT_RELEVANCE = "relevance"
SORT_STARS = "stars"
SORT_CREATED_AT = "createdAt"
SORT_UPDATED_AT = "updatedAt"
SORT_DOWNLOADS = "downloads"
SORT_VALUES = {SORT_RELEVANCE, SORT_STARS, SORT_CREATED_AT, SORT_UPDATED_AT, SORT_DOWNLOADS}


@dataclass(frozen=True)
class Account:
    id: str
    display_name: Optional[str]
    kind: str
    public_key: Optional[str]
    active: bool
    created_at: datetime


@dataclass(frozen=True)
class PackageMetadata:
    """Package-level attributes supplied with a publish.

    ``None`` leaves the stored value untouched on an existing package.
    """

    description: Optional[str] = None
    topics: Optional[Tuple[str, ...]] = None
    language: Optional[str] = None
    license: Optional[str] = None
    homepage: Optional[str] = None
    source_url: Optional[str] = None
    visibility: Optional[str] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> "PackageMetadata":
        payload = payload or {}
        topics = payload.get("topics")
        return cls(
            description=payload.get("description"),
            topics=tuple(topics) if topics is not None else None,
            language=payload.get("language"),
            license=payload.get("license"),
            homepage=payload.get("homepage"),
            source_url=payload.get("sourceUrl", payload.get("source_url")),
            visibility=payload.get("visibility"),
        )


@dataclass(frozen=True)
class ReleaseDraft:
    version: str
    checksum: Optional[str] = None
    download_url: Optional[str] = None
    title: Optional[str] = None
    notes: Optional[str] = None
    draft: bool = False
    prerelease: bool = False
    file_size: int = 0


@dataclass(frozen=True)
class Release:
    id: int
    package_id: str
    version: str
    title: Optional[str]
    notes: Optional[str]
    draft: bool
    prerelease: bool
    checksum: Optional[str]
    download_url: Optional[str]
    file_size: int
    published_at: datetime

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "packageId": self.package_id,
            "version": self.version,
            "name": self.title,
            "body": self.notes,
            "draft": self.draft,
            "prerelease": self.prerelease,
            "checksum": self.checksum,
            "downloadUrl": self.download_url,
            "fileSize": self.file_size,
            "publishedAt": self.published_at,
        }


@dataclass(frozen=True)
class PackageDetail:
    package_id: str
    owner_id: str
    name: str
    description: Optional[str]
    topics: Tuple[str, ...]
    language: Optional[str]
    license: Optional[str]
    homepage: Optional[str]
    source_url: Optional[str]
    stars: int
    download_count: int
    visibility: str
    active: bool
    created_at: datetime
    updated_at: datetime
    latest_version: Optional[str] = None
    release_count: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.package_id,
            "owner": self.owner_id,
            "name": self.name,
            "description": self.description,
            "topics": list(self.topics),
            "language": self.language,
            "license": self.license,
            "homepage": self.homepage,
            "sourceUrl": self.source_url,
            "stars": self.stars,
            "downloads": self.download_count,
            "visibility": self.visibility,
            "active": self.active,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "latestVersion": self.latest_version,
            "releaseCount": self.release_count,
        }


@dataclass(frozen=True)
class PackageSummary:
    package_id: str
    owner_id: str
    name: str
    description: Optional[str]
    topics: Tuple[str, ...]
    language: Optional[str]
    stars: int
    download_count: int
    visibility: str
    latest_version: Optional[str]
    created_at: datetime
    updated_at: datetime
    score: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.package_id,
            "owner": self.owner_id,
            "name": self.name,
            "description": self.description,
            "topics": list(self.topics),
            "language": self.language,
            "stars": self.stars,
            "downloads": self.download_count,
            "visibility": self.visibility,
            "latestVersion": self.latest_version,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "score": self.score,
        }


@dataclass(frozen=True)
class Alias:
    key: str
    package_id: str
    created_by: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class SearchQuery:
    text: str = ""
    language: Optional[str] = None
    sort_by: Optional[str] = None
    descending: bool = True
    offset: int = 0
    limit: Optional[int] = None
    include_private: bool = False
    viewer_id: Optional[str] = None


@dataclass(frozen=True)
class DownloadBucket:
    day: date
    count: int


@dataclass(frozen=True)
class DownloadSummary:
    package_id: str
    start: date
    end: date
    version: Optional[str]
    buckets: Tuple[DownloadBucket, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return sum(bucket.count for bucket in self.buckets)


@dataclass(frozen=True)
class DownloadOverview:
    total_packages: int
    total_downloads: int
    downloads_today: int
