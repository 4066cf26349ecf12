import pytest

from registry_core import RegistryFacade
from registry_core.config.settings import RegistrySettings
from registry_core.db.session import Database
from registry_core.domain.models import PackageMetadata
from registry_core.service.errors import (
    AliasNotFoundError,
    InvalidNameError,
    NotFoundError,
    RegistryError,
    UnavailableError,
    UnknownOwnerError,
    UnknownPackageError,
)


def test_publish_creates_package_with_metadata(registry, owner):
    release_id = registry.publish(
        owner,
        "Widget",
        "1.0.0",
        {"description": "Widgets", "topics": ["ui"], "language": "Python", "name": "First"},
        checksum="sha256:abc",
        download_url="https://example.invalid/widget-1.0.0.tgz",
    )

    release = registry.get_release(release_id)
    assert release.package_id == "alice/Widget"
    assert release.title == "First"
    assert release.checksum == "sha256:abc"

    detail = registry.get_package("alice/widget")
    assert detail.description == "Widgets"
    assert detail.topics == ("ui",)
    assert detail.latest_version == "1.0.0"


def test_later_publish_only_overrides_given_metadata(registry, owner):
    registry.publish(owner, "pkg", "1.0.0", PackageMetadata(description="one", language="Go"))
    registry.publish(owner, "pkg", "1.1.0", {"description": "two"})
    detail = registry.get_package("alice/pkg")
    assert detail.description == "two"
    assert detail.language == "Go"
    assert detail.release_count == 2
    assert detail.latest_version == "1.1.0"


def test_publish_rejects_bad_names(registry, owner):
    with pytest.raises(InvalidNameError):
        registry.publish(owner, "bad/name", "1.0.0")
    with pytest.raises(InvalidNameError):
        registry.publish("", "pkg", "1.0.0")


def test_resolve_by_id_is_case_insensitive(registry, owner):
    registry.publish(owner, "Widget", "1.0.0")
    assert registry.resolve("ALICE/widget") == "alice/Widget"


def test_resolve_unknown(registry, owner):
    with pytest.raises(UnknownPackageError):
        registry.resolve("alice/missing")
    with pytest.raises(AliasNotFoundError):
        registry.resolve("missing")


def test_resolve_hides_inactive_and_publish_reactivates(registry, owner):
    registry.publish(owner, "pkg", "1.0.0")
    registry.deactivate_package("alice/pkg")
    with pytest.raises(NotFoundError):
        registry.resolve("alice/pkg")

    registry.publish(owner, "pkg", "1.0.1")
    assert registry.resolve("alice/pkg") == "alice/pkg"


def test_account_lookup(registry, owner):
    assert registry.get_account("Alice").display_name == "Alice"
    with pytest.raises(UnknownOwnerError):
        registry.get_account("nobody")


def test_errors_serialize(registry):
    with pytest.raises(RegistryError) as excinfo:
        registry.resolve("nothing-here")
    payload = excinfo.value.to_dict()
    assert payload["error"] == "not_found"
    assert payload["retryable"] is False


def test_locked_store_surfaces_as_unavailable(tmp_path):
    settings = RegistrySettings(
        database_url=f"sqlite:///{tmp_path / 'locked.db'}",
        database_timeout_seconds=0.2,
    )
    database = Database.from_settings(settings)
    database.create_all()
    registry = RegistryFacade(database=database, settings=settings)
    registry.create_account("alice")

    blocker = database.engine.raw_connection()
    try:
        cursor = blocker.cursor()
        cursor.execute("BEGIN IMMEDIATE")
        with pytest.raises(UnavailableError) as excinfo:
            registry.publish("alice", "pkg", "1.0.0")
        assert excinfo.value.retryable
        cursor.execute("ROLLBACK")
    finally:
        blocker.close()
        database.dispose()

    assert registry.store.get_package("alice/pkg") is None


def test_resolve_id_and_alias_agree(registry):
    registry.create_account("acme", kind="organization")
    registry.publish("acme", "widget", "1.0.0", {"description": "Widgets"})
    registry.register_alias("widget", "acme/widget")
    assert registry.resolve("acme/widget") == registry.resolve("widget") == "acme/widget"
