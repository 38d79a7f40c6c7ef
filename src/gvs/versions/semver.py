"""
Version specifier parsing and matching.

A specifier is a partial or full version such as "1", "1.21", "1.21.3" or
"1.21rc2". It is matched against the catalog by prefix, so the first entry
in catalog order wins; the catalog lists the newest release first, which makes
"1.21" resolve to the newest 1.21 patch release.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from gvs.constants import DEFAULT_VERSION_PREFIX
from gvs.exceptions import InvalidVersionFormat
from gvs.log_utils import logger

from .interfaces import ResolvedVersion

SEMVER_RX = re.compile(r"^(\d+)(?:\.(\d+))?(?:\.(\d+)|rc(\d+))?$")


@dataclass(frozen=True)
class SemverPattern:
    """A version specifier; any trailing component may be missing."""

    major: Optional[int] = None
    minor: Optional[int] = None
    patch: Optional[int] = None
    release_candidate: Optional[int] = None

    def __post_init__(self) -> None:
        if self.patch is not None and self.release_candidate is not None:
            raise ValueError("a version has either a patch or a release candidate")

    def render(self) -> str:
        """
        Return the canonical form of the pattern, e.g. "1", "1.21", "1.21.3" or "1.21rc2".

        An empty pattern (no major) renders as an empty string, which matches
        every version.
        """
        if self.major is None:
            return ""

        rendered = str(self.major)
        if self.minor is not None:
            rendered += f".{self.minor}"
        if self.patch is not None:
            rendered += f".{self.patch}"
        elif self.release_candidate is not None:
            rendered += f"rc{self.release_candidate}"
        return rendered

    def __str__(self) -> str:
        return self.render()


def parse_semver(raw: str, prefix: str = DEFAULT_VERSION_PREFIX) -> SemverPattern:
    """
    Parse a user supplied version specifier.

    Surrounding whitespace and a leading runtime prefix ("go1.21") are ignored.

    Parameters:
        raw (str): The specifier, e.g. "1.21", "go1.21.3" or "1.22rc1".
        prefix (str): Runtime prefix accepted in front of the number.

    Returns:
        SemverPattern: The parsed pattern; patch and release candidate are never both set.

    Raises:
        InvalidVersionFormat: If the specifier does not follow major[.minor][.patch|rcN].
    """
    if not isinstance(raw, str):
        raise InvalidVersionFormat(str(raw))

    candidate = raw.strip()
    if prefix and candidate.startswith(prefix):
        candidate = candidate[len(prefix) :]

    match = SEMVER_RX.match(candidate)
    if not match:
        raise InvalidVersionFormat(raw)

    major, minor, patch, rc = (
        int(group) if group is not None else None for group in match.groups()
    )
    return SemverPattern(major=major, minor=minor, patch=patch, release_candidate=rc)


def find_match(
    resolved: Iterable[ResolvedVersion], pattern: SemverPattern
) -> Optional[ResolvedVersion]:
    """
    Return the first version whose display name starts with the rendered pattern.

    No sorting happens here; the result is the newest match only because the
    catalog is ordered newest first.

    Returns:
        Optional[ResolvedVersion]: The first match, or None.
    """
    expected = pattern.render()
    for version in resolved:
        if version.display_name.startswith(expected):
            logger.debug(f"Specifier {expected!r} matched {version.version}")
            return version
    logger.debug(f"Specifier {expected!r} matched no version")
    return None
