"""Filtered, ranked package search."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from registry_core.db.models import PackageRecord
from registry_core.db.session import Database
from registry_core.domain.models import (
    SORT_CREATED_AT,
    SORT_DOWNLOADS,
    SORT_RELEVANCE,
    SORT_STARS,
    SORT_UPDATED_AT,
    SORT_VALUES,
    PackageSummary,
    SearchQuery,
)
from registry_core.repo.packages import PackageRepository
from registry_core.repo.releases import ReleaseRepository
from registry_core.service.errors import InvalidQueryError
from registry_core.service.naming import format_package_id
from registry_core.service.versioning import select_latest

# Name tiers are spaced wider than the sum of all secondary hits.
SCORE_EXACT_NAME = 3000
SCORE_NAME_PREFIX = 2000
SCORE_NAME_CONTAINS = 1000
SCORE_TOPIC = 150
SCORE_DESCRIPTION = 100
SCORE_OWNER = 50

MAX_QUERY_LENGTH = 256

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _as_aware(value: Optional[datetime]) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def score_package(
    text: str,
    *,
    name: str,
    owner_id: str = "",
    description: Optional[str] = None,
    topics: Iterable[str] = (),
) -> int:
    """Relevance of one package for a lowercase query.

    Name matches dominate: an exact name (or ``owner/name``) beats a name
    prefix, which beats the query appearing elsewhere in the name. Topic,
    description and exact owner hits only add on top. Zero means no match.
    """

    if not text:
        return 0
    name_key = name.lower()
    full_key = format_package_id(owner_id.lower(), name_key) if owner_id else name_key
    score = 0
    if text == name_key or text == full_key:
        score += SCORE_EXACT_NAME
    elif name_key.startswith(text) or full_key.startswith(text):
        score += SCORE_NAME_PREFIX
    elif text in name_key:
        score += SCORE_NAME_CONTAINS
    topic_keys = [topic.lower() for topic in topics if isinstance(topic, str)]
    if text in topic_keys:
        score += SCORE_TOPIC
    elif any(text in topic for topic in topic_keys):
        score += SCORE_TOPIC // 2
    if description and text in description.lower():
        score += SCORE_DESCRIPTION
    if owner_id and text == owner_id.lower():
        score += SCORE_OWNER
    return score


class SearchEngine:
    def __init__(
        self,
        database: Database,
        *,
        default_limit: int = 20,
        max_limit: int = 100,
        packages: Optional[PackageRepository] = None,
        releases: Optional[ReleaseRepository] = None,
    ) -> None:
        self._database = database
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._packages = packages or PackageRepository()
        self._releases = releases or ReleaseRepository()

    def _validate(self, query: SearchQuery) -> tuple[str, int]:
        if query.offset is None or query.offset < 0:
            raise InvalidQueryError("offset must be zero or positive.")
        limit = self._default_limit if query.limit is None else query.limit
        if limit < 0:
            raise InvalidQueryError("limit must be zero or positive.")
        if limit > self._max_limit:
            raise InvalidQueryError(f"limit may not exceed {self._max_limit}.")
        if query.sort_by is not None and query.sort_by not in SORT_VALUES:
            raise InvalidQueryError(f"Unsupported sort field '{query.sort_by}'.")
        text = (query.text or "").strip().lower()
        if len(text) > MAX_QUERY_LENGTH:
            raise InvalidQueryError(f"Query text may not exceed {MAX_QUERY_LENGTH} characters.")
        return text, limit

    def search(self, query: SearchQuery) -> list[PackageSummary]:
        """Return one page of ranked package summaries.

        Ordering always ends on the package id, so consecutive pages read
        against an unchanged candidate set neither repeat nor skip rows.
        """

        text, limit = self._validate(query)
        if limit == 0:
            return []

        def _search(session: Session) -> list[PackageSummary]:
            records = self._packages.list_searchable(
                text=text,
                language=(query.language or "").strip() or None,
                include_private=query.include_private,
                viewer_id=query.viewer_id.strip().lower() if query.viewer_id else None,
                session=session,
            )
            scored = [
                (
                    record,
                    score_package(
                        text,
                        name=record.name,
                        owner_id=record.owner_id,
                        description=record.description,
                        topics=record.topics or (),
                    ),
                )
                for record in records
            ]
            if text:
                scored = [item for item in scored if item[1] > 0]
            ordered = self._order(scored, query.sort_by, query.descending, has_text=bool(text))
            page = ordered[query.offset : query.offset + limit]
            return self._summaries(page, session)

        return self._database.run_in_session(_search)

    def _order(
        self,
        scored: list[tuple[PackageRecord, int]],
        sort_by: Optional[str],
        descending: bool,
        *,
        has_text: bool,
    ) -> list[tuple[PackageRecord, int]]:
        # Stable sorts: the id pass first provides the final tie-break.
        items = sorted(scored, key=lambda item: (item[0].owner_id, item[0].name_key))
        field = sort_by or (SORT_RELEVANCE if has_text else SORT_STARS)
        if field == SORT_RELEVANCE:
            items.sort(key=lambda item: (item[1], item[0].stars or 0), reverse=descending)
        elif field == SORT_STARS:
            items.sort(key=lambda item: item[0].stars or 0, reverse=descending)
        elif field == SORT_DOWNLOADS:
            items.sort(key=lambda item: item[0].download_count or 0, reverse=descending)
        elif field == SORT_CREATED_AT:
            items.sort(key=lambda item: _as_aware(item[0].created_at), reverse=descending)
        elif field == SORT_UPDATED_AT:
            items.sort(key=lambda item: _as_aware(item[0].updated_at), reverse=descending)
        return items

    def _summaries(
        self,
        page: list[tuple[PackageRecord, int]],
        session: Session,
    ) -> list[PackageSummary]:
        releases = self._releases.group_by_packages(
            (record.id for record, _ in page),
            session=session,
        )
        summaries = []
        for record, score in page:
            latest = select_latest(releases.get(record.id, []))
            summaries.append(
                PackageSummary(
                    package_id=format_package_id(record.owner_id, record.name),
                    owner_id=record.owner_id,
                    name=record.name,
                    description=record.description,
                    topics=tuple(record.topics or ()),
                    language=record.language,
                    stars=record.stars or 0,
                    download_count=record.download_count or 0,
                    visibility=record.visibility,
                    latest_version=latest.version if latest else None,
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                    score=score,
                )
            )
        return summaries


__all__ = ["SearchEngine", "score_package"]
