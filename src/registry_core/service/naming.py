"""Validation and normalization of account handles, package names and alias keys."""

from __future__ import annotations

import re

from registry_core.service.errors import InvalidNameError

_ACCOUNT_PATTERN = re.compile(r"[a-z0-9](?:[a-z0-9._-]{0,62})", re.ASCII)
_PACKAGE_PATTERN = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9._-]{0,127})", re.ASCII)
_ALIAS_PATTERN = re.compile(r"[a-z0-9](?:[a-z0-9._-]{0,63})", re.ASCII)

PACKAGE_ID_SEPARATOR = "/"


def normalize_account_id(value: str) -> str:
    handle = (value or "").strip().lower()
    if not _ACCOUNT_PATTERN.fullmatch(handle):
        raise InvalidNameError(f"Invalid account id '{value}'.")
    return handle


def validate_package_name(value: str) -> str:
    name = (value or "").strip()
    if not _PACKAGE_PATTERN.fullmatch(name):
        raise InvalidNameError(f"Invalid package name '{value}'.")
    return name


def package_name_key(name: str) -> str:
    return name.lower()


def normalize_alias_key(value: str) -> str:
    key = (value or "").strip().lower()
    if not _ALIAS_PATTERN.fullmatch(key):
        raise InvalidNameError(f"Invalid alias key '{value}'.")
    return key


def format_package_id(owner_id: str, name: str) -> str:
    return f"{owner_id}{PACKAGE_ID_SEPARATOR}{name}"


def split_package_id(package_id: str) -> tuple[str, str]:
    """Split ``owner/name`` into a normalized owner handle and a validated name."""

    owner, separator, name = (package_id or "").strip().partition(PACKAGE_ID_SEPARATOR)
    if not separator:
        raise InvalidNameError(f"Package id '{package_id}' must look like 'owner/name'.")
    return normalize_account_id(owner), validate_package_name(name)


def is_package_id(value: str) -> bool:
    return PACKAGE_ID_SEPARATOR in (value or "")
