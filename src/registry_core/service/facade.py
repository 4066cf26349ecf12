"""Single entry point the outer layers call into."""

from __future__ import annotations

import logging
from datetime import date, datetime
from functools import lru_cache
from typing import Any, Mapping, Optional, Union

from registry_core.config.settings import RegistrySettings, get_settings
from registry_core.db.session import Database, get_database
from registry_core.domain.models import (
    ACCOUNT_KIND_INDIVIDUAL,
    Account,
    Alias,
    DownloadOverview,
    DownloadSummary,
    PackageDetail,
    PackageMetadata,
    PackageSummary,
    Release,
    ReleaseDraft,
    SearchQuery,
)
from registry_core.service.aliases import AliasResolver
from registry_core.service.downloads import DownloadAggregator
from registry_core.service.errors import (
    InvalidNameError,
    UnknownOwnerError,
    UnknownPackageError,
    UnknownReleaseError,
)
from registry_core.service.naming import (
    format_package_id,
    is_package_id,
    normalize_account_id,
    validate_package_name,
)
from registry_core.service.search import SearchEngine
from registry_core.service.store import RegistryStore
from registry_core.service.versioning import Version

LOGGER = logging.getLogger(__name__)

MetadataInput = Union[PackageMetadata, Mapping[str, Any], None]


def _coerce_metadata(metadata: MetadataInput) -> PackageMetadata:
    if isinstance(metadata, PackageMetadata):
        return metadata
    return PackageMetadata.from_mapping(metadata)


def _release_options(metadata: MetadataInput) -> Mapping[str, Any]:
    if isinstance(metadata, Mapping):
        return metadata
    return {}


class RegistryFacade:
    def __init__(
        self,
        database: Optional[Database] = None,
        settings: Optional[RegistrySettings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._database = database or Database.from_settings(self._settings)
        self.store = RegistryStore(
            self._database,
            default_visibility=self._settings.default_visibility,
        )
        self.aliases = AliasResolver(self.store)
        self.search_engine = SearchEngine(
            self._database,
            default_limit=self._settings.search_default_limit,
            max_limit=self._settings.search_max_limit,
        )
        self.downloads = DownloadAggregator(
            self.store,
            max_days=self._settings.summary_max_days,
        )

    @property
    def database(self) -> Database:
        return self._database

    # publish ------------------------------------------------------------

    def publish(
        self,
        owner_id: str,
        name: str,
        version: str,
        metadata: MetadataInput = None,
        checksum: Optional[str] = None,
        *,
        download_url: Optional[str] = None,
        draft: bool = False,
        prerelease: bool = False,
    ) -> int:
        """Publish ``version`` of ``owner_id/name`` and return the new release id.

        The package row is created on first publish. Creation and release
        insertion commit together or not at all.
        """

        handle = normalize_account_id(owner_id)
        name = validate_package_name(name)
        Version.parse(version)
        package_metadata = _coerce_metadata(metadata)
        options = _release_options(metadata)
        release_draft = ReleaseDraft(
            version=version,
            checksum=checksum,
            download_url=download_url or options.get("downloadUrl"),
            title=options.get("name"),
            notes=options.get("body"),
            draft=draft or bool(options.get("draft", False)),
            prerelease=prerelease or bool(options.get("prerelease", False)),
            file_size=int(options.get("fileSize", 0) or 0),
        )
        package_id = format_package_id(handle, name)
        release = self.store.add_release(
            package_id,
            release_draft,
            metadata=package_metadata,
            auto_create=True,
        )
        LOGGER.info("Published %s@%s as release %s", release.package_id, release.version, release.id)
        return release.id

    # lookups ------------------------------------------------------------

    def resolve(self, name_or_alias: str) -> str:
        """Map ``owner/name`` or an alias key to a canonical package id."""

        if is_package_id(name_or_alias):
            try:
                detail = self.store.get_package(name_or_alias)
            except InvalidNameError as exc:
                raise UnknownPackageError(f"Package '{name_or_alias}' not found.") from exc
            if detail is None or not detail.active:
                raise UnknownPackageError(f"Package '{name_or_alias}' not found.")
            return detail.package_id
        return self.aliases.resolve(name_or_alias)

    def get_package(self, package_id: str) -> PackageDetail:
        detail = self.store.get_package(package_id)
        if detail is None:
            raise UnknownPackageError(f"Package '{package_id}' not found.")
        return detail

    def list_releases(self, package_id: str) -> list[Release]:
        return self.store.list_releases(package_id)

    def get_release(self, release_id: int) -> Release:
        release = self.store.get_release(release_id)
        if release is None:
            raise UnknownReleaseError(f"Release {release_id} not found.")
        return release

    def search(
        self,
        text: str = "",
        language: Optional[str] = None,
        sort_by: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
        *,
        descending: bool = True,
        include_private: bool = False,
        viewer_id: Optional[str] = None,
    ) -> list[PackageSummary]:
        return self.search_engine.search(
            SearchQuery(
                text=text,
                language=language,
                sort_by=sort_by,
                descending=descending,
                offset=offset,
                limit=limit,
                include_private=include_private,
                viewer_id=viewer_id,
            )
        )

    # aliases ------------------------------------------------------------

    def register_alias(
        self,
        key: str,
        package_id: str,
        overwrite: bool = False,
        *,
        created_by: Optional[str] = None,
    ) -> None:
        self.aliases.register(key, package_id, overwrite=overwrite, created_by=created_by)

    def remove_alias(self, key: str) -> None:
        self.aliases.remove(key)

    def list_aliases(self, package_id: str) -> list[Alias]:
        return self.aliases.list_for_package(package_id)

    # downloads ----------------------------------------------------------

    def record_download(self, release_id: int, *, at: Optional[datetime] = None) -> None:
        self.downloads.record(release_id, at=at)

    def summarize_downloads(
        self,
        package_id: str,
        start: date,
        end: date,
        *,
        version: Optional[str] = None,
    ) -> DownloadSummary:
        return self.downloads.summarize(package_id, start, end, version=version)

    def download_overview(self) -> DownloadOverview:
        return self.downloads.overview()

    # accounts and package state -----------------------------------------

    def create_account(
        self,
        account_id: str,
        *,
        display_name: Optional[str] = None,
        kind: str = ACCOUNT_KIND_INDIVIDUAL,
        public_key: Optional[str] = None,
    ) -> Account:
        return self.store.create_account(
            account_id,
            display_name=display_name,
            kind=kind,
            public_key=public_key,
        )

    def get_account(self, account_id: str) -> Account:
        account = self.store.get_account(account_id)
        if account is None:
            raise UnknownOwnerError(f"Account '{account_id}' not found.")
        return account

    def deactivate_account(self, account_id: str) -> Account:
        return self.store.set_account_active(account_id, False)

    def update_stars(self, package_id: str, stars: int) -> PackageDetail:
        return self.store.update_stars(package_id, stars)

    def deactivate_package(self, package_id: str) -> PackageDetail:
        return self.store.set_package_active(package_id, False)

    def reactivate_package(self, package_id: str) -> PackageDetail:
        return self.store.set_package_active(package_id, True)

    def get_registry_setting(self, key: str) -> Optional[str]:
        return self.store.get_registry_setting(key)

    def set_registry_setting(self, key: str, value: Optional[str]) -> None:
        self.store.set_registry_setting(key, value)


@lru_cache()
def get_registry_facade() -> RegistryFacade:
    return RegistryFacade(database=get_database(), settings=get_settings())


__all__ = ["RegistryFacade", "get_registry_facade"]
