"""Parsing utilities for runtime versions and version requirements."""

import re
from typing import Optional

import semantic_version

from .models import ResolutionMode, Version, VersionRequirement

_LATEST_TOKENS = ("latest", "")
_PRERELEASE_HINTS = ("pre", "rc", "alpha", "beta", "nightly", "dev")


def parse_version(text: str) -> Version:
    """Parse a concrete version, tolerating a leading ``v``.

    Raises:
        ValueError: If ``text`` is not a full major.minor.patch version.
    """
    s = (text or "").strip()
    if s[:1] in ("v", "V"):
        s = s[1:]
    return semantic_version.Version(s)


def try_parse_version(text: str) -> Optional[Version]:
    """Like parse_version but returns None instead of raising."""
    try:
        return parse_version(text)
    except ValueError:
        return None


def _determine_include_prerelease(spec: str) -> bool:
    """Ranges only admit pre-releases when they mention one themselves."""
    lowered = spec.lower()
    if any(hint in lowered for hint in _PRERELEASE_HINTS):
        return True
    # e.g. ">=1.0.0-0" or "^2.0.0-1"
    return re.search(r"\d+\.\d+\.\d+-", spec) is not None


def _normalize_spec(spec_str: str) -> str:
    """Normalize hyphen and x-ranges into SimpleSpec-compatible form."""
    s = spec_str.strip()

    # Hyphen ranges: "1.2.3 - 1.4.5" => ">=1.2.3,<=1.4.5"
    m = re.match(r'^\s*([0-9A-Za-z\.\-\+]+)\s+-\s+([0-9A-Za-z\.\-\+]+)\s*$', s)
    if m:
        return f">={m.group(1)},<={m.group(2)}"

    s2 = s.replace('*', 'x').lower()
    m = re.match(r'^\s*(\d+)\.(\d+)\.x\s*$', s2)
    if m:
        major, minor = int(m.group(1)), int(m.group(2))
        return f">={major}.{minor}.0,<{major}.{minor + 1}.0"

    m = re.match(r'^\s*(\d+)(?:\.x)?\s*$', s2)
    if m:
        major = int(m.group(1))
        return f">={major}.0.0,<{major + 1}.0.0"

    return s


def _parse_range(spec_str: str):
    """Build a range matcher, preferring npm semantics."""
    try:
        return semantic_version.NpmSpec(spec_str)
    except ValueError:
        # SimpleSpec understands comma-separated comparators such as ">=1.0,<2"
        return semantic_version.SimpleSpec(_normalize_spec(spec_str))


def parse_requirement(text: Optional[str]) -> VersionRequirement:
    """Parse a CLI/manifest requirement into a VersionRequirement.

    ``latest`` (or nothing) selects the newest stable release, a full version
    is an exact pin, anything else is treated as a semantic range.

    Raises:
        ValueError: If the text is neither a version nor a valid range.
    """
    raw = (text or "").strip()
    if raw.lower() in _LATEST_TOKENS:
        return VersionRequirement(raw="latest", mode=ResolutionMode.LATEST)

    exact = try_parse_version(raw)
    if exact is not None:
        return VersionRequirement(raw=raw, mode=ResolutionMode.EXACT, version=exact)

    candidate = raw[1:] if raw[:1] in ("v", "V") and raw[1:2].isdigit() else raw
    try:
        spec = _parse_range(candidate)
    except ValueError as exc:
        raise ValueError(f"invalid version requirement '{raw}': {exc}") from exc
    return VersionRequirement(
        raw=raw,
        mode=ResolutionMode.RANGE,
        spec=spec,
        include_prerelease=_determine_include_prerelease(candidate),
    )


_BARE_VERSION = re.compile(r'^[vV]?(\d+(?:\.\d+){0,2}(?:-[0-9A-Za-z.\-]+)?)$')


def parse_manifest_requirement(text: Optional[str]) -> VersionRequirement:
    """Parse ``ambient_version`` from a project manifest.

    Manifests use Cargo semantics: a bare or partial version is a caret
    range, so ``0.3.0`` accepts ``0.3.1`` and ``1.2`` accepts ``1.9.0``.
    Anything with an operator is parsed like a CLI requirement.

    Raises:
        ValueError: If the text is not a valid requirement.
    """
    raw = (text or "").strip()
    m = _BARE_VERSION.match(raw)
    if m is None:
        return parse_requirement(raw)
    core = m.group(1)
    try:
        spec = semantic_version.NpmSpec(f"^{core}")
    except ValueError as exc:
        raise ValueError(f"invalid version requirement '{raw}': {exc}") from exc
    return VersionRequirement(
        raw=raw,
        mode=ResolutionMode.RANGE,
        spec=spec,
        include_prerelease=_determine_include_prerelease(core),
    )
