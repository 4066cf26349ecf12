import itertools
from types import SimpleNamespace

import pytest

from registry_core.service.errors import InvalidVersionError
from registry_core.service.versioning import (
    Ordering,
    Version,
    compare,
    select_latest,
    sort_versions,
)


def _release(version: str, *, draft: bool = False, prerelease: bool = False):
    return SimpleNamespace(version=version, draft=draft, prerelease=prerelease)


def test_parse_components():
    version = Version.parse("1.2.3-alpha.1+build.7")
    assert (version.major, version.minor, version.patch) == (1, 2, 3)
    assert version.prerelease == ("alpha", 1)
    assert version.build == ("build", "7")
    assert version.is_prerelease
    assert str(version) == "1.2.3-alpha.1+build.7"


@pytest.mark.parametrize(
    "value",
    ["", "1", "1.0", "v1.0.0", "01.0.0", "1.0.0-", "1.0.0-01", "1.0.0+", "1.0.0\n", "１.0.0", " 1.0.0"],
)
def test_parse_rejects_malformed(value):
    with pytest.raises(InvalidVersionError):
        Version.parse(value)


def test_parse_rejects_overlong():
    with pytest.raises(InvalidVersionError):
        Version.parse("1.0.0-" + "a" * 64)


def test_semver_precedence_chain():
    chain = [
        "1.0.0-alpha",
        "1.0.0-alpha.1",
        "1.0.0-alpha.beta",
        "1.0.0-beta",
        "1.0.0-beta.2",
        "1.0.0-beta.11",
        "1.0.0-rc.1",
        "1.0.0",
        "1.0.1",
        "1.1.0",
        "2.0.0",
        "10.0.0",
    ]
    for lower, higher in zip(chain, chain[1:]):
        assert compare(lower, higher) is Ordering.LESS
        assert compare(higher, lower) is Ordering.GREATER


def test_compare_is_numeric_not_lexical():
    assert compare("1.10.0", "1.9.0") is Ordering.GREATER
    assert compare("1.0.0-2", "1.0.0-10") is Ordering.LESS


def test_build_metadata_only_breaks_ties():
    assert compare("1.0.0+a", "1.0.1") is Ordering.LESS
    assert compare("1.0.0+b", "1.0.0+a") is Ordering.GREATER
    assert compare("1.0.0", "1.0.0") is Ordering.EQUAL


def test_sort_versions_descending():
    assert sort_versions(["1.0.0", "1.0.0-rc.1", "0.9.0", "1.2.0"], descending=True) == [
        "1.2.0",
        "1.0.0",
        "1.0.0-rc.1",
        "0.9.0",
    ]


def test_select_latest_prefers_stable():
    releases = [
        _release("1.0.0"),
        _release("2.0.0-beta.1", prerelease=True),
        _release("1.5.0", draft=True),
        _release("1.1.0"),
    ]
    assert select_latest(releases).version == "1.1.0"


def test_select_latest_falls_back_to_highest_overall():
    releases = [
        _release("1.0.0-alpha", prerelease=True),
        _release("1.0.0-beta", prerelease=True),
        _release("0.9.0", draft=True),
    ]
    assert select_latest(releases).version == "1.0.0-beta"


def test_select_latest_empty():
    assert select_latest([]) is None


_SAMPLE = [
    "0.0.1",
    "0.9.0",
    "1.0.0-0",
    "1.0.0-alpha",
    "1.0.0-alpha.1",
    "1.0.0-alpha.beta",
    "1.0.0-beta.11",
    "1.0.0-rc.1",
    "1.0.0",
    "1.0.0+build.1",
    "1.0.0+build.2",
    "1.2.0",
    "1.10.0",
    "2.0.0-rc.1+meta",
    "2.0.0",
]


def test_compare_is_antisymmetric_over_distinct_strings():
    for a, b in itertools.product(_SAMPLE, repeat=2):
        forward = compare(a, b)
        assert compare(b, a) == -forward
        assert (forward is Ordering.EQUAL) == (a == b)


def test_compare_is_transitive():
    for a, b, c in itertools.product(_SAMPLE, repeat=3):
        if compare(a, b) is Ordering.LESS and compare(b, c) is Ordering.LESS:
            assert compare(a, c) is Ordering.LESS


def test_prerelease_precedes_release():
    assert compare("1.0.0-alpha", "1.0.0") is Ordering.LESS
