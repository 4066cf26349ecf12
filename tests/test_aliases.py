from concurrent.futures import ThreadPoolExecutor

import pytest

from registry_core.service.errors import (
    AliasConflictError,
    AliasNotFoundError,
    InvalidNameError,
    NotFoundError,
    UnknownPackageError,
)


@pytest.fixture()
def packages(registry, owner):
    registry.publish(owner, "http-client", "1.0.0")
    registry.publish(owner, "http-server", "1.0.0")
    return "alice/http-client", "alice/http-server"


def test_register_and_resolve(registry, packages):
    client, _ = packages
    registry.register_alias("HTTP", client)
    assert registry.resolve("http") == client
    assert registry.resolve("Http") == client


def test_register_same_target_is_idempotent(registry, packages):
    client, _ = packages
    registry.register_alias("http", client)
    registry.register_alias("http", client)
    assert [alias.key for alias in registry.list_aliases(client)] == ["http"]


def test_rebinding_requires_overwrite(registry, packages):
    client, server = packages
    registry.register_alias("http", client)
    with pytest.raises(AliasConflictError):
        registry.register_alias("http", server)
    assert registry.resolve("http") == client

    registry.register_alias("http", server, overwrite=True)
    assert registry.resolve("http") == server
    assert registry.list_aliases(client) == []


def test_alias_target_must_exist(registry, owner):
    with pytest.raises(UnknownPackageError):
        registry.register_alias("ghost", "alice/ghost")


def test_alias_key_cannot_look_like_package_id(registry, packages):
    client, _ = packages
    with pytest.raises(InvalidNameError):
        registry.register_alias("alice/http", client)


def test_remove_alias(registry, packages):
    client, _ = packages
    registry.register_alias("http", client)
    registry.remove_alias("http")
    with pytest.raises(AliasNotFoundError):
        registry.resolve("http")
    with pytest.raises(AliasNotFoundError):
        registry.remove_alias("http")


def test_alias_to_inactive_package_does_not_resolve(registry, packages):
    client, _ = packages
    registry.register_alias("http", client)
    registry.deactivate_package(client)
    with pytest.raises(AliasNotFoundError):
        registry.resolve("http")
    registry.reactivate_package(client)
    assert registry.resolve("http") == client


def test_concurrent_registration_of_one_key_binds_once(registry, owner):
    targets = [f"alice/pkg-{index}" for index in range(8)]
    for target in targets:
        registry.publish(owner, target.split("/")[1], "1.0.0")

    def _register(target):
        try:
            registry.register_alias("shared", target)
            return target
        except AliasConflictError:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        winners = [target for target in pool.map(_register, targets) if target is not None]

    assert len(winners) == 1
    assert registry.resolve("shared") == winners[0]


@pytest.mark.parametrize("value", ["", "no such alias!", "a/b/c", "/", "alice/"])
def test_unusable_keys_resolve_as_not_found(registry, owner, value):
    with pytest.raises(NotFoundError):
        registry.resolve(value)
