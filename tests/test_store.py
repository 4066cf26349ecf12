from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.exc import OperationalError

from registry_core.domain.models import PackageMetadata, ReleaseDraft
from registry_core.repo.releases import ReleaseRepository
from registry_core.service.errors import (
    DuplicateAccountError,
    DuplicatePackageError,
    DuplicateVersionError,
    InvalidError,
    InvalidVersionError,
    UnavailableError,
    UnknownOwnerError,
    UnknownPackageError,
)
from registry_core.service.store import RegistryStore


class _FailingReleases(ReleaseRepository):
    def save(self, record, *, session):
        session.add(record)
        raise OperationalError("INSERT INTO releases", {}, Exception("disk I/O error"))


def test_create_account_normalizes_handle(registry):
    account = registry.create_account("  Alice ", display_name="Alice")
    assert account.id == "alice"
    assert account.active
    with pytest.raises(DuplicateAccountError):
        registry.create_account("ALICE")


def test_create_account_rejects_unknown_kind(registry):
    with pytest.raises(InvalidError):
        registry.create_account("bob", kind="robot")


def test_create_package_then_duplicate(registry, owner):
    detail = registry.store.create_package(
        owner,
        "Widget",
        PackageMetadata(description="A widget", topics=("UI", "ui", " tools ")),
    )
    assert detail.package_id == "alice/Widget"
    assert detail.topics == ("ui", "tools")
    assert detail.latest_version is None
    with pytest.raises(DuplicatePackageError):
        registry.store.create_package(owner, "widget")


def test_add_release_requires_existing_package(registry, owner):
    with pytest.raises(UnknownPackageError):
        registry.store.add_release("alice/missing", ReleaseDraft(version="1.0.0"))


def test_add_release_requires_active_owner(registry):
    with pytest.raises(UnknownOwnerError):
        registry.store.add_release("ghost/pkg", ReleaseDraft(version="1.0.0"), auto_create=True)
    registry.create_account("carol")
    registry.deactivate_account("carol")
    with pytest.raises(UnknownOwnerError):
        registry.store.add_release("carol/pkg", ReleaseDraft(version="1.0.0"), auto_create=True)


def test_duplicate_version_leaves_first_release_untouched(registry, owner):
    registry.publish(owner, "pkg", "1.0.0", {"description": "original", "topics": ["a"]}, checksum="first")
    before = registry.get_package("alice/pkg")
    with pytest.raises(DuplicateVersionError):
        registry.publish(owner, "pkg", "1.0.0", {"description": "changed", "topics": ["b"]}, checksum="second")
    releases = registry.list_releases("alice/pkg")
    assert [release.checksum for release in releases] == ["first"]
    assert registry.get_package("alice/pkg") == before


def test_invalid_version_creates_nothing(registry, owner):
    with pytest.raises(InvalidVersionError):
        registry.publish(owner, "fresh", "1.0")
    assert registry.store.get_package("alice/fresh") is None


def test_prerelease_tag_forces_flag(registry, owner):
    release_id = registry.publish(owner, "pkg", "2.0.0-rc.1")
    assert registry.get_release(release_id).prerelease


def test_list_releases_highest_first(registry, owner):
    for version in ("1.0.0", "1.10.0", "1.2.0", "1.10.0-beta"):
        registry.publish(owner, "pkg", version)
    versions = [release.version for release in registry.list_releases("alice/pkg")]
    assert versions == ["1.10.0", "1.10.0-beta", "1.2.0", "1.0.0"]


def test_update_stars_and_reject_negative(registry, owner):
    registry.publish(owner, "pkg", "1.0.0")
    assert registry.update_stars("alice/pkg", 42).stars == 42
    with pytest.raises(InvalidError):
        registry.update_stars("alice/pkg", -1)


def test_registry_settings_defaults_and_overrides(registry):
    assert registry.get_registry_setting("api_version") == "v1"
    assert registry.get_registry_setting("missing") is None
    registry.set_registry_setting("registry_name", "Internal")
    registry.set_registry_setting("registry_name", "Internal Mirror")
    assert registry.get_registry_setting("registry_name") == "Internal Mirror"


def test_concurrent_publish_of_same_version_inserts_once(registry, owner):
    def _publish(_):
        try:
            return registry.publish(owner, "race", "1.0.0")
        except DuplicateVersionError:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(_publish, range(16)))

    assert len([result for result in results if result is not None]) == 1
    assert len(registry.list_releases("alice/race")) == 1


def test_concurrent_first_publish_of_distinct_versions(registry, owner):
    versions = [f"1.0.{patch}" for patch in range(12)]
    with ThreadPoolExecutor(max_workers=6) as pool:
        list(pool.map(lambda version: registry.publish(owner, "burst", version), versions))

    detail = registry.get_package("alice/burst")
    assert detail.release_count == len(versions)
    assert detail.latest_version == "1.0.11"


def test_failed_release_insert_rolls_back_auto_created_package(registry, owner):
    store = RegistryStore(registry.database, releases=_FailingReleases())
    with pytest.raises(UnavailableError):
        store.add_release("alice/fresh", ReleaseDraft(version="1.0.0"), auto_create=True)
    assert registry.store.get_package("alice/fresh") is None
    assert registry.search("fresh") == []
