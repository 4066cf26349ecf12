"""Transactional persistence layer for packages, releases, aliases and downloads.

Every public method runs as exactly one transaction through
:meth:`Database.run_in_session`. Writes open their transaction in write
mode, which serializes writers on SQLite and takes row locks on server
databases; uniqueness constraints remain the final arbiter either way.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from registry_core.db.models import (
    AccountRecord,
    AliasRecord,
    PackageRecord,
    ReleaseRecord,
)
from registry_core.db.session import Database
from registry_core.domain.models import (
    ACCOUNT_KIND_INDIVIDUAL,
    ACCOUNT_KIND_VALUES,
    VISIBILITY_PUBLIC,
    VISIBILITY_VALUES,
    Account,
    Alias,
    PackageDetail,
    PackageMetadata,
    Release,
    ReleaseDraft,
)
from registry_core.repo.accounts import AccountRepository
from registry_core.repo.aliases import AliasRepository
from registry_core.repo.common import _day, _now
from registry_core.repo.download_stats import DownloadStatRepository
from registry_core.repo.packages import PackageRepository
from registry_core.repo.registry_settings import (
    DEFAULT_REGISTRY_SETTINGS,
    RegistrySettingRepository,
)
from registry_core.repo.releases import ReleaseRepository
from registry_core.service.errors import (
    AliasConflictError,
    AliasNotFoundError,
    DuplicateAccountError,
    DuplicatePackageError,
    DuplicateVersionError,
    InvalidError,
    UnknownOwnerError,
    UnknownPackageError,
    UnknownReleaseError,
)
from registry_core.service.naming import (
    format_package_id,
    normalize_account_id,
    normalize_alias_key,
    package_name_key,
    split_package_id,
    validate_package_name,
)
from registry_core.service.versioning import Version, select_latest

LOGGER = logging.getLogger(__name__)


def _package_id(record: PackageRecord) -> str:
    return format_package_id(record.owner_id, record.name)


def _account_to_snapshot(record: AccountRecord) -> Account:
    return Account(
        id=record.id,
        display_name=record.display_name,
        kind=record.kind,
        public_key=record.public_key,
        active=record.active,
        created_at=record.created_at,
    )


def _release_to_snapshot(package: PackageRecord, record: ReleaseRecord) -> Release:
    return Release(
        id=record.id,
        package_id=_package_id(package),
        version=record.version,
        title=record.title,
        notes=record.notes,
        draft=record.draft,
        prerelease=record.prerelease,
        checksum=record.checksum,
        download_url=record.download_url,
        file_size=record.file_size or 0,
        published_at=record.published_at,
    )


def _package_to_detail(
    record: PackageRecord,
    releases: list[ReleaseRecord],
) -> PackageDetail:
    latest = select_latest(releases)
    return PackageDetail(
        package_id=_package_id(record),
        owner_id=record.owner_id,
        name=record.name,
        description=record.description,
        topics=tuple(record.topics or ()),
        language=record.language,
        license=record.license,
        homepage=record.homepage,
        source_url=record.source_url,
        stars=record.stars or 0,
        download_count=record.download_count or 0,
        visibility=record.visibility,
        active=record.active,
        created_at=record.created_at,
        updated_at=record.updated_at,
        latest_version=latest.version if latest else None,
        release_count=len(releases),
    )


def _alias_to_snapshot(record: AliasRecord, package: PackageRecord) -> Alias:
    return Alias(
        key=record.key,
        package_id=_package_id(package),
        created_by=record.created_by,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _clean_topics(topics) -> list[str]:
    seen: dict[str, None] = {}
    for topic in topics or ():
        if isinstance(topic, str) and topic.strip():
            seen.setdefault(topic.strip().lower(), None)
    return list(seen)


def _check_visibility(value: Optional[str]) -> None:
    if value is not None and value not in VISIBILITY_VALUES:
        raise InvalidError(f"Invalid visibility '{value}'.")


def _search_text(record: PackageRecord) -> str:
    """Lowercased haystack the search prefilter matches against."""

    owner = record.owner_id.lower()
    name_key = package_name_key(record.name)
    parts = [owner, format_package_id(owner, name_key), record.description or ""]
    parts.extend(record.topics or ())
    return "\n".join(part.lower() for part in parts)


def _apply_metadata(record: PackageRecord, metadata: PackageMetadata) -> None:
    if metadata.description is not None:
        record.description = metadata.description
    if metadata.topics is not None:
        record.topics = _clean_topics(metadata.topics)
    if metadata.language is not None:
        record.language = metadata.language.strip() or None
    if metadata.license is not None:
        record.license = metadata.license
    if metadata.homepage is not None:
        record.homepage = metadata.homepage
    if metadata.source_url is not None:
        record.source_url = metadata.source_url
    if metadata.visibility is not None:
        record.visibility = metadata.visibility
    record.search_text = _search_text(record)


class RegistryStore:
    def __init__(
        self,
        database: Database,
        *,
        default_visibility: str = VISIBILITY_PUBLIC,
        accounts: Optional[AccountRepository] = None,
        packages: Optional[PackageRepository] = None,
        releases: Optional[ReleaseRepository] = None,
        aliases: Optional[AliasRepository] = None,
        downloads: Optional[DownloadStatRepository] = None,
        registry_settings: Optional[RegistrySettingRepository] = None,
    ) -> None:
        self._database = database
        self._default_visibility = default_visibility
        self._accounts = accounts or AccountRepository()
        self._packages = packages or PackageRepository()
        self._releases = releases or ReleaseRepository()
        self._aliases = aliases or AliasRepository()
        self._downloads = downloads or DownloadStatRepository()
        self._registry_settings = registry_settings or RegistrySettingRepository()

    @property
    def database(self) -> Database:
        return self._database

    # accounts -----------------------------------------------------------

    def create_account(
        self,
        account_id: str,
        *,
        display_name: Optional[str] = None,
        kind: str = ACCOUNT_KIND_INDIVIDUAL,
        public_key: Optional[str] = None,
    ) -> Account:
        handle = normalize_account_id(account_id)
        if kind not in ACCOUNT_KIND_VALUES:
            raise InvalidError(f"Invalid account kind '{kind}'.")
        now = _now()

        def _create(session: Session) -> Account:
            if self._accounts.get(handle, session=session) is not None:
                raise DuplicateAccountError(f"Account '{handle}' already exists.")
            record = AccountRecord(
                id=handle,
                display_name=display_name,
                kind=kind,
                public_key=public_key,
                active=True,
                created_at=now,
                updated_at=now,
            )
            self._accounts.save(record, session=session)
            try:
                session.flush()
            except IntegrityError as exc:
                raise DuplicateAccountError(f"Account '{handle}' already exists.") from exc
            return _account_to_snapshot(record)

        account = self._database.run_in_session(_create, write=True)
        LOGGER.info("Created %s account %s", kind, handle)
        return account

    def get_account(self, account_id: str) -> Optional[Account]:
        handle = normalize_account_id(account_id)

        def _get(session: Session) -> Optional[Account]:
            record = self._accounts.get(handle, session=session)
            return _account_to_snapshot(record) if record else None

        return self._database.run_in_session(_get)

    def set_account_active(self, account_id: str, active: bool) -> Account:
        handle = normalize_account_id(account_id)

        def _update(session: Session) -> Account:
            record = self._accounts.get(handle, session=session)
            if record is None:
                raise UnknownOwnerError(f"Account '{handle}' not found.")
            record.active = active
            record.updated_at = _now()
            return _account_to_snapshot(record)

        account = self._database.run_in_session(_update, write=True)
        LOGGER.info("Account %s marked %s", handle, "active" if active else "inactive")
        return account

    # packages -----------------------------------------------------------

    def _require_owner(self, owner_id: str, session: Session) -> AccountRecord:
        owner = self._accounts.get(owner_id, session=session)
        if owner is None or not owner.active:
            raise UnknownOwnerError(f"Owner '{owner_id}' not found or inactive.")
        return owner

    def _load_package(
        self,
        package_id: str,
        session: Session,
        *,
        for_update: bool = False,
    ) -> Optional[PackageRecord]:
        owner_id, name = split_package_id(package_id)
        return self._packages.get_by_name(
            owner_id=owner_id,
            name_key=package_name_key(name),
            session=session,
            for_update=for_update,
        )

    def _require_package(
        self,
        package_id: str,
        session: Session,
        *,
        for_update: bool = False,
    ) -> PackageRecord:
        record = self._load_package(package_id, session, for_update=for_update)
        if record is None:
            raise UnknownPackageError(f"Package '{package_id}' not found.")
        return record

    def _insert_package(
        self,
        session: Session,
        *,
        owner_id: str,
        name: str,
        metadata: PackageMetadata,
        now: datetime,
    ) -> PackageRecord:
        record = PackageRecord(
            owner_id=owner_id,
            name=name,
            name_key=package_name_key(name),
            topics=[],
            stars=0,
            download_count=0,
            visibility=self._default_visibility,
            active=True,
            created_at=now,
            updated_at=now,
        )
        _apply_metadata(record, metadata)
        with session.begin_nested():
            self._packages.save(record, session=session)
        return record

    def create_package(
        self,
        owner_id: str,
        name: str,
        metadata: Optional[PackageMetadata] = None,
    ) -> PackageDetail:
        handle = normalize_account_id(owner_id)
        name = validate_package_name(name)
        metadata = metadata or PackageMetadata()
        _check_visibility(metadata.visibility)
        now = _now()

        def _create(session: Session) -> PackageDetail:
            self._require_owner(handle, session)
            existing = self._packages.get_by_name(
                owner_id=handle,
                name_key=package_name_key(name),
                session=session,
            )
            if existing is not None:
                raise DuplicatePackageError(f"Package '{_package_id(existing)}' already exists.")
            try:
                record = self._insert_package(
                    session,
                    owner_id=handle,
                    name=name,
                    metadata=metadata,
                    now=now,
                )
            except IntegrityError as exc:
                raise DuplicatePackageError(
                    f"Package '{format_package_id(handle, name)}' already exists."
                ) from exc
            return _package_to_detail(record, [])

        detail = self._database.run_in_session(_create, write=True)
        LOGGER.info("Created package %s", detail.package_id)
        return detail

    def get_package(self, package_id: str) -> Optional[PackageDetail]:
        def _get(session: Session) -> Optional[PackageDetail]:
            record = self._load_package(package_id, session)
            if record is None:
                return None
            releases = self._releases.list_by_package(record.id, session=session)
            return _package_to_detail(record, releases)

        return self._database.run_in_session(_get)

    def update_stars(self, package_id: str, stars: int) -> PackageDetail:
        if stars < 0:
            raise InvalidError("Star count cannot be negative.")

        def _update(session: Session) -> PackageDetail:
            record = self._require_package(package_id, session, for_update=True)
            record.stars = stars
            releases = self._releases.list_by_package(record.id, session=session)
            return _package_to_detail(record, releases)

        return self._database.run_in_session(_update, write=True)

    def set_package_active(self, package_id: str, active: bool) -> PackageDetail:
        def _update(session: Session) -> PackageDetail:
            record = self._require_package(package_id, session, for_update=True)
            record.active = active
            record.updated_at = _now()
            releases = self._releases.list_by_package(record.id, session=session)
            return _package_to_detail(record, releases)

        detail = self._database.run_in_session(_update, write=True)
        LOGGER.info("Package %s marked %s", detail.package_id, "active" if active else "inactive")
        return detail

    # releases -----------------------------------------------------------

    def add_release(
        self,
        package_id: str,
        draft: ReleaseDraft,
        *,
        metadata: Optional[PackageMetadata] = None,
        auto_create: bool = False,
    ) -> Release:
        """Insert a release, creating its package first when ``auto_create`` is set.

        Package creation and release insertion share one transaction, so a
        failed insert never leaves a freshly created package behind.
        """

        owner_id, name = split_package_id(package_id)
        parsed = Version.parse(draft.version)
        metadata = metadata or PackageMetadata()
        _check_visibility(metadata.visibility)
        now = _now()

        def _add(session: Session) -> Release:
            self._require_owner(owner_id, session)
            package = self._packages.get_by_name(
                owner_id=owner_id,
                name_key=package_name_key(name),
                session=session,
                for_update=True,
            )
            if package is None:
                if not auto_create:
                    raise UnknownPackageError(f"Package '{package_id}' not found.")
                try:
                    package = self._insert_package(
                        session,
                        owner_id=owner_id,
                        name=name,
                        metadata=metadata,
                        now=now,
                    )
                except IntegrityError:
                    # A concurrent publish created it; continue against that row.
                    package = self._packages.get_by_name(
                        owner_id=owner_id,
                        name_key=package_name_key(name),
                        session=session,
                        for_update=True,
                    )
                    if package is None:
                        raise

            existing = self._releases.get_by_version(
                package_pk=package.id,
                version=draft.version,
                session=session,
            )
            if existing is not None:
                raise DuplicateVersionError(
                    f"Version {draft.version} of '{_package_id(package)}' already exists."
                )

            record = ReleaseRecord(
                package_id=package.id,
                version=draft.version,
                title=draft.title,
                notes=draft.notes,
                draft=draft.draft,
                prerelease=draft.prerelease or parsed.is_prerelease,
                checksum=draft.checksum,
                download_url=draft.download_url,
                file_size=draft.file_size or 0,
                published_at=now,
            )
            self._releases.save(record, session=session)
            try:
                session.flush()
            except IntegrityError as exc:
                raise DuplicateVersionError(
                    f"Version {draft.version} of '{_package_id(package)}' already exists."
                ) from exc

            _apply_metadata(package, metadata)
            package.active = True
            package.updated_at = now
            return _release_to_snapshot(package, record)

        return self._database.run_in_session(_add, write=True)

    def get_release(self, release_id: int) -> Optional[Release]:
        def _get(session: Session) -> Optional[Release]:
            record = self._releases.get(release_id, session=session)
            if record is None:
                return None
            package = self._packages.get(record.package_id, session=session)
            return _release_to_snapshot(package, record)

        return self._database.run_in_session(_get)

    def list_releases(self, package_id: str) -> list[Release]:
        """Return releases of a package, highest version first."""

        def _list(session: Session) -> list[Release]:
            package = self._require_package(package_id, session)
            records = self._releases.list_by_package(package.id, session=session)
            records.sort(key=lambda item: Version.parse(item.version), reverse=True)
            return [_release_to_snapshot(package, record) for record in records]

        return self._database.run_in_session(_list)

    # aliases ------------------------------------------------------------

    def upsert_alias(
        self,
        key: str,
        package_id: str,
        *,
        overwrite: bool = False,
        created_by: Optional[str] = None,
    ) -> Alias:
        alias_key = normalize_alias_key(key)
        now = _now()

        def _upsert(session: Session) -> Alias:
            package = self._require_package(package_id, session)
            record = self._aliases.get(alias_key, session=session, for_update=True)
            if record is not None:
                if record.package_id != package.id and not overwrite:
                    bound = self._packages.get(record.package_id, session=session)
                    raise AliasConflictError(
                        f"Alias '{alias_key}' is bound to '{_package_id(bound)}'."
                    )
                if record.package_id != package.id:
                    record.package_id = package.id
                    record.created_by = created_by or record.created_by
                    record.updated_at = now
                return _alias_to_snapshot(record, package)

            record = AliasRecord(
                key=alias_key,
                package_id=package.id,
                created_by=created_by,
                created_at=now,
                updated_at=now,
            )
            self._aliases.save(record, session=session)
            try:
                session.flush()
            except IntegrityError as exc:
                raise AliasConflictError(f"Alias '{alias_key}' was registered concurrently.") from exc
            return _alias_to_snapshot(record, package)

        alias = self._database.run_in_session(_upsert, write=True)
        LOGGER.info("Alias %s -> %s", alias.key, alias.package_id)
        return alias

    def delete_alias(self, key: str) -> None:
        alias_key = normalize_alias_key(key)

        def _delete(session: Session) -> None:
            record = self._aliases.get(alias_key, session=session, for_update=True)
            if record is None:
                raise AliasNotFoundError(f"Alias '{alias_key}' not found.")
            self._aliases.delete(record, session=session)

        self._database.run_in_session(_delete, write=True)
        LOGGER.info("Removed alias %s", alias_key)

    def find_by_alias(self, key: str) -> Optional[str]:
        """Return the id of the active package bound to ``key``, if any."""

        alias_key = normalize_alias_key(key)

        def _find(session: Session) -> Optional[str]:
            record = self._aliases.get(alias_key, session=session)
            if record is None:
                return None
            package = self._packages.get(record.package_id, session=session)
            if package is None or not package.active:
                return None
            return _package_id(package)

        return self._database.run_in_session(_find)

    def list_aliases(self, package_id: str) -> list[Alias]:
        def _list(session: Session) -> list[Alias]:
            package = self._require_package(package_id, session)
            records = self._aliases.list_by_package(package.id, session=session)
            return [_alias_to_snapshot(record, package) for record in records]

        return self._database.run_in_session(_list)

    # downloads ----------------------------------------------------------

    def record_download(self, release_id: int, *, at: Optional[datetime] = None) -> None:
        moment = at or _now()

        def _record(session: Session) -> None:
            release = self._releases.get(release_id, session=session)
            if release is None:
                raise UnknownReleaseError(f"Release {release_id} not found.")
            self._downloads.increment(
                release_id=release.id,
                package_pk=release.package_id,
                day=_day(moment),
                at=moment,
                session=session,
            )
            self._packages.increment_downloads(release.package_id, session=session)

        self._database.run_in_session(_record, write=True)
        LOGGER.debug("Recorded download of release %s", release_id)

    # registry settings --------------------------------------------------

    def get_registry_setting(self, key: str) -> Optional[str]:
        def _get(session: Session) -> Optional[str]:
            record = self._registry_settings.get(key, session=session)
            if record is None:
                return DEFAULT_REGISTRY_SETTINGS.get(key)
            return record.value

        return self._database.run_in_session(_get)

    def set_registry_setting(self, key: str, value: Optional[str]) -> None:
        if not key or not key.strip():
            raise InvalidError("Setting key is required.")
        now = _now()

        def _put(session: Session) -> None:
            self._registry_settings.put(key.strip(), value, now=now, session=session)

        self._database.run_in_session(_put, write=True)
        LOGGER.info("Registry setting %s updated", key)


__all__ = ["RegistryStore"]
