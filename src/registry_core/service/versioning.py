"""Semantic version parsing and precedence.

Versions follow Semantic Versioning 2.0.0: ``MAJOR.MINOR.PATCH`` with an
optional ``-prerelease`` and ``+build`` suffix. Numeric components may not
carry leading zeros and nothing is ever coerced: ``v1.0`` or ``1.0`` are
rejected rather than guessed at.

Build metadata has no say in precedence between different versions. It
only breaks the tie between two strings that are otherwise identical, so
that :func:`compare` stays a strict total order over distinct strings.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Iterable, Optional, Sequence, Tuple, TypeVar, Union

from registry_core.service.errors import InvalidVersionError

_NUMERIC = r"0|[1-9]\d*"
_IDENTIFIER = r"(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
_SEMVER_PATTERN = re.compile(
    rf"^(?P<major>{_NUMERIC})\.(?P<minor>{_NUMERIC})\.(?P<patch>{_NUMERIC})"
    rf"(?:-(?P<prerelease>{_IDENTIFIER}(?:\.{_IDENTIFIER})*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$",
    re.ASCII,
)
MAX_VERSION_LENGTH = 64

Identifier = Union[int, str]


class Ordering(enum.IntEnum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


def _identifier(value: str) -> Identifier:
    return int(value) if value.isdigit() else value


def _identifier_key(value: Identifier) -> Tuple[int, Identifier]:
    # Numeric identifiers sort below alphanumeric ones.
    if isinstance(value, int):
        return (0, value)
    return (1, value)


@total_ordering
@dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int
    prerelease: Tuple[Identifier, ...] = ()
    build: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, value: str) -> "Version":
        if not isinstance(value, str):
            raise InvalidVersionError("Version must be a string.")
        if len(value) > MAX_VERSION_LENGTH:
            raise InvalidVersionError(f"Version is longer than {MAX_VERSION_LENGTH} characters.")
        match = _SEMVER_PATTERN.fullmatch(value)
        if match is None:
            raise InvalidVersionError(f"'{value}' is not a valid semantic version.")
        prerelease = match.group("prerelease")
        build = match.group("build")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            prerelease=tuple(_identifier(part) for part in prerelease.split(".")) if prerelease else (),
            build=tuple(build.split(".")) if build else (),
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def precedence_key(self) -> tuple:
        if self.prerelease:
            pre_key: tuple = (0, tuple(_identifier_key(part) for part in self.prerelease))
        else:
            pre_key = (1, ())
        return (self.major, self.minor, self.patch, pre_key, self.build)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.precedence_key() < other.precedence_key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(str(part) for part in self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text


def parse(value: str) -> Version:
    return Version.parse(value)


def compare(a: Union[str, Version], b: Union[str, Version]) -> Ordering:
    left = a if isinstance(a, Version) else Version.parse(a)
    right = b if isinstance(b, Version) else Version.parse(b)
    left_key = left.precedence_key()
    right_key = right.precedence_key()
    if left_key < right_key:
        return Ordering.LESS
    if left_key > right_key:
        return Ordering.GREATER
    return Ordering.EQUAL


def sort_versions(values: Iterable[str], *, descending: bool = False) -> list[str]:
    return sorted(values, key=lambda item: Version.parse(item), reverse=descending)


R = TypeVar("R")


def select_latest(
    releases: Sequence[R],
    *,
    version_of=lambda release: release.version,
    is_draft=lambda release: release.draft,
    is_prerelease=lambda release: release.prerelease,
) -> Optional[R]:
    """Pick the release that counts as "latest".

    That is the highest version that is neither a draft nor a prerelease,
    or, when every release is one or the other, the highest version overall.
    """

    if not releases:
        return None
    stable = [
        release
        for release in releases
        if not is_draft(release) and not is_prerelease(release)
    ]
    pool = stable or list(releases)
    return max(pool, key=lambda release: Version.parse(version_of(release)))


__all__ = [
    "MAX_VERSION_LENGTH",
    "Ordering",
    "Version",
    "compare",
    "parse",
    "select_latest",
    "sort_versions",
]
