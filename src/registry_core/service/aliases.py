"""Alias resolution on top of the registry store."""

from __future__ import annotations

from typing import Optional

from registry_core.domain.models import Alias
from registry_core.service.errors import AliasNotFoundError, InvalidNameError
from registry_core.service.store import RegistryStore


class AliasResolver:
    """Single-hop alias lookup.

    An alias always names a package id directly. Aliases never point at
    other aliases, so resolution cannot loop.
    """

    def __init__(self, store: RegistryStore) -> None:
        self._store = store

    def resolve(self, key: str) -> str:
        try:
            package_id = self._store.find_by_alias(key)
        except InvalidNameError as exc:
            raise AliasNotFoundError(f"Alias '{key}' not found.") from exc
        if package_id is None:
            raise AliasNotFoundError(f"Alias '{key}' not found.")
        return package_id

    def register(
        self,
        key: str,
        package_id: str,
        *,
        overwrite: bool = False,
        created_by: Optional[str] = None,
    ) -> Alias:
        return self._store.upsert_alias(
            key,
            package_id,
            overwrite=overwrite,
            created_by=created_by,
        )

    def remove(self, key: str) -> None:
        self._store.delete_alias(key)

    def list_for_package(self, package_id: str) -> list[Alias]:
        return self._store.list_aliases(package_id)
