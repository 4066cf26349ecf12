"""Error taxonomy surfaced by the registry core."""

from __future__ import annotations

ERROR_KIND_NOT_FOUND = "not_found"
ERROR_KIND_CONFLICT = "conflict"
ERROR_KIND_INVALID = "invalid"
ERROR_KIND_UNAVAILABLE = "unavailable"


class RegistryError(Exception):
    """Base error for registry core operations."""

    kind: str = "error"
    retryable: bool = False
    default_message = "Registry operation failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, object]:
        return {
            "error": self.kind,
            "type": type(self).__name__,
            "message": self.message,
            "retryable": self.retryable,
        }


class NotFoundError(RegistryError):
    kind = ERROR_KIND_NOT_FOUND
    default_message = "Not found."


class UnknownPackageError(NotFoundError):
    default_message = "Package not found."


class UnknownReleaseError(NotFoundError):
    default_message = "Release not found."


class UnknownOwnerError(NotFoundError):
    default_message = "Owner not found or inactive."


class AliasNotFoundError(NotFoundError):
    default_message = "Alias not found."


class ConflictError(RegistryError):
    kind = ERROR_KIND_CONFLICT
    default_message = "Conflicting registry state."


class DuplicateVersionError(ConflictError):
    default_message = "Package version already exists."


class DuplicatePackageError(ConflictError):
    default_message = "Package already exists."


class AliasConflictError(ConflictError):
    default_message = "Alias is bound to another package."


class DuplicateAccountError(ConflictError):
    default_message = "Account already exists."


class InvalidError(RegistryError):
    kind = ERROR_KIND_INVALID
    default_message = "Invalid input."


class InvalidVersionError(InvalidError):
    default_message = "Invalid version string."


class InvalidQueryError(InvalidError):
    default_message = "Invalid query parameters."


class InvalidNameError(InvalidError):
    default_message = "Invalid name."


class UnavailableError(RegistryError):
    """Transient storage failure. The caller may retry with backoff."""

    kind = ERROR_KIND_UNAVAILABLE
    retryable = True
    default_message = "Registry storage is unavailable."


__all__ = [
    "AliasConflictError",
    "AliasNotFoundError",
    "ConflictError",
    "DuplicateAccountError",
    "DuplicatePackageError",
    "DuplicateVersionError",
    "InvalidError",
    "InvalidNameError",
    "InvalidQueryError",
    "InvalidVersionError",
    "NotFoundError",
    "RegistryError",
    "UnavailableError",
    "UnknownOwnerError",
    "UnknownPackageError",
    "UnknownReleaseError",
]
