"""Tests for runtime version resolution."""

import itertools

import pytest

from errors import NoMatchingVersion, NoVersionsAvailable, ResolutionError
from versioning.parser import parse_requirement, parse_version
from versioning.resolver import needs_remote, resolve

from conftest import catalog_entry


def versions(*texts):
    return [parse_version(t) for t in texts]


def remote(*texts):
    return [catalog_entry(t) for t in texts]


class TestLatest:
    """``latest`` picks the highest stable version across local and remote."""

    def test_prefers_stable_over_higher_prerelease(self):
        """Catalog [1.0.0, 1.2.0, 2.0.0-beta] resolves to 1.2.0."""
        chosen = resolve(parse_requirement("latest"), [], remote("1.0.0", "1.2.0", "2.0.0-beta"))
        assert str(chosen) == "1.2.0"

    def test_installed_newer_than_catalog(self):
        chosen = resolve(parse_requirement("latest"), versions("3.1.0"), remote("1.0.0", "2.0.0"))
        assert str(chosen) == "3.1.0"

    def test_remote_newer_than_installed(self):
        chosen = resolve(parse_requirement("latest"), versions("1.0.0"), remote("1.0.0", "1.1.0"))
        assert str(chosen) == "1.1.0"

    def test_only_prereleases_available(self):
        chosen = resolve(parse_requirement("latest"), [], remote("0.1.0-rc.1", "0.1.0-rc.2"))
        assert str(chosen) == "0.1.0-rc.2"

    def test_prerelease_ordering_follows_semver(self):
        chosen = resolve(parse_requirement("latest"), [], remote("1.0.0-alpha", "1.0.0-alpha.1", "1.0.0-beta"))
        assert str(chosen) == "1.0.0-beta"

    def test_offline_uses_installed(self):
        chosen = resolve(parse_requirement("latest"), versions("0.9.0", "1.0.0"), None)
        assert str(chosen) == "1.0.0"

    def test_nothing_known_raises(self):
        with pytest.raises(NoVersionsAvailable):
            resolve(parse_requirement("latest"), [], [])

    def test_offline_nothing_installed_has_hint(self):
        with pytest.raises(NoVersionsAvailable) as excinfo:
            resolve(parse_requirement("latest"), [], None)
        assert "catalog" in excinfo.value.hint

    def test_monotonic_when_catalog_grows(self):
        """Adding newer releases never makes ``latest`` go backwards."""
        before = resolve(parse_requirement("latest"), versions("1.0.0"), remote("1.0.0", "1.1.0"))
        after = resolve(parse_requirement("latest"), versions("1.0.0"), remote("1.0.0", "1.1.0", "1.2.0", "2.0.0-rc.1"))
        assert after >= before
        assert str(after) == "1.2.0"


class TestExact:
    """Exact pins resolve to themselves without consulting anything."""

    def test_exact_returns_pin(self):
        chosen = resolve(parse_requirement("0.3.1"), [], None)
        assert str(chosen) == "0.3.1"

    def test_exact_never_needs_remote(self):
        assert needs_remote(parse_requirement("0.3.1"), [], None) is False

    def test_leading_v_is_accepted(self):
        chosen = resolve(parse_requirement("v2.0.0"), [], None)
        assert str(chosen) == "2.0.0"


class TestRange:
    """Ranges prefer the default, then installed, then remote."""

    def test_default_wins_when_it_matches(self):
        installed = versions("1.1.0", "1.4.0")
        chosen = resolve(parse_requirement("^1.0"), installed, remote("1.9.0"), default=parse_version("1.1.0"))
        assert str(chosen) == "1.1.0"

    def test_highest_installed_match_without_default(self):
        installed = versions("1.1.0", "1.4.0", "2.0.0")
        chosen = resolve(parse_requirement("^1.0"), installed, remote("1.9.0"))
        assert str(chosen) == "1.4.0"

    def test_default_outside_range_is_ignored(self):
        installed = versions("1.4.0", "2.0.0")
        chosen = resolve(parse_requirement("^1.0"), installed, None, default=parse_version("2.0.0"))
        assert str(chosen) == "1.4.0"

    def test_falls_back_to_remote(self):
        chosen = resolve(parse_requirement("~0.3"), versions("0.2.0"), remote("0.3.0", "0.3.4", "0.4.0"))
        assert str(chosen) == "0.3.4"

    def test_range_skips_prereleases(self):
        chosen = resolve(parse_requirement("^1.0"), [], remote("1.0.0", "1.1.0-rc.1"))
        assert str(chosen) == "1.0.0"

    def test_comma_separated_range(self):
        chosen = resolve(parse_requirement(">=1.0,<2"), [], remote("0.9.0", "1.5.0", "2.0.0"))
        assert str(chosen) == "1.5.0"

    def test_no_match_raises(self):
        with pytest.raises(NoMatchingVersion):
            resolve(parse_requirement("^5.0"), versions("1.0.0"), remote("1.0.0", "2.0.0"))

    def test_no_match_is_a_resolution_error(self):
        with pytest.raises(ResolutionError):
            resolve(parse_requirement("^5.0"), [], [])

    def test_needs_remote_only_without_local_match(self):
        req = parse_requirement("^1.0")
        assert needs_remote(req, versions("1.2.0"), None) is False
        assert needs_remote(req, versions("2.0.0"), None) is True

    def test_latest_always_needs_remote(self):
        assert needs_remote(parse_requirement("latest"), versions("9.9.9"), parse_version("9.9.9")) is True


class TestDeterminism:
    """The same inputs resolve to the same version regardless of ordering."""

    @pytest.mark.parametrize("requirement", ["latest", "^1.0", "1.x", ">=0.5.0 <2.0.0"])
    def test_input_order_does_not_matter(self, requirement):
        local = ["0.5.0", "1.2.0", "1.0.0"]
        published = ["1.3.0", "0.9.0", "2.0.0-beta", "1.2.0"]
        answers = set()
        for loc, rem in itertools.product(itertools.permutations(local), itertools.permutations(published)):
            answers.add(str(resolve(parse_requirement(requirement), versions(*loc), remote(*rem))))
        assert len(answers) == 1
