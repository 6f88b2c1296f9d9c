"""Maven-style version ranges and version selection.

Supported range syntax:
- [1.0,2.0]   1.0 <= x <= 2.0
- [1.0,2.0)   1.0 <= x <  2.0
- (1.0,2.0]   1.0 <  x <= 2.0
- [1.5,)      x >= 1.5
- (,1.0]      x <= 1.0
- [1.0]       x == 1.0
- (,1.0],[1.2,)  union of several restrictions

Versions are compared with semantic_version after coercion, so "3.5" is
treated as "3.5.0" and qualifiers such as "-rc-1" sort before the release.
"""

import re
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Iterable, Optional, Union

from semantic_version import Version

from protogen.exceptions import ConfigurationError
from protogen.logging_config import logger

_RESTRICTION = re.compile(r"\s*([\[(])([^\[\]()]*)([\])])\s*")


def parse_version(text: str) -> Optional[Version]:
    """
    Parse a published version string into a comparable Version.

    Returns:
        The coerced Version, or None if the text is not a version at all
    """
    try:
        return Version.coerce(text.strip())
    except ValueError:
        return None


def _require_version(text: str, range_text: str) -> Version:
    version = parse_version(text)
    if version is None:
        raise ConfigurationError(f"Invalid version '{text}' in range '{range_text}'")
    return version


@dataclass(frozen=True)
class Restriction:
    """One interval of a version range. A None bound is unbounded."""

    lower: Optional[Version] = None
    lower_inclusive: bool = False
    upper: Optional[Version] = None
    upper_inclusive: bool = False

    def contains(self, version: Version) -> bool:
        if self.lower is not None:
            if version < self.lower or (not self.lower_inclusive and not version > self.lower):
                return False
        if self.upper is not None:
            if version > self.upper or (not self.upper_inclusive and not version < self.upper):
                return False
        return True


@dataclass(frozen=True)
class VersionRange:
    """A union of restrictions parsed from a Maven range expression."""

    text: str
    restrictions: tuple[Restriction, ...]

    @classmethod
    def parse(cls, text: str) -> "VersionRange":
        """
        Parse a Maven version range.

        Raises:
            ConfigurationError: If the expression is malformed or empty
        """
        body = text.strip()
        restrictions = []
        position = 0

        while position < len(body):
            match = _RESTRICTION.match(body, position)
            if not match:
                raise ConfigurationError(f"Invalid version range '{text}'")
            restrictions.append(_parse_restriction(match.group(1), match.group(2), match.group(3), text))
            position = match.end()
            if position < len(body):
                if body[position] != ",":
                    raise ConfigurationError(f"Invalid version range '{text}'")
                position += 1
                if position >= len(body):
                    raise ConfigurationError(f"Invalid version range '{text}': trailing comma")

        if not restrictions:
            raise ConfigurationError(f"Invalid version range '{text}'")

        return cls(text=body, restrictions=tuple(restrictions))

    def contains(self, version: Union[str, Version]) -> bool:
        if isinstance(version, str):
            parsed = parse_version(version)
            if parsed is None:
                return False
            version = parsed
        return any(restriction.contains(version) for restriction in self.restrictions)

    def __str__(self) -> str:
        return self.text


def _parse_restriction(opening: str, body: str, closing: str, range_text: str) -> Restriction:
    lower_inclusive = opening == "["
    upper_inclusive = closing == "]"

    if "," not in body:
        # [1.0] pins a single version
        if not (lower_inclusive and upper_inclusive) or not body.strip():
            raise ConfigurationError(f"Single version restriction must be written as [x] in '{range_text}'")
        version = _require_version(body, range_text)
        return Restriction(version, True, version, True)

    parts = body.split(",")
    if len(parts) != 2:
        raise ConfigurationError(f"Restriction must have exactly two bounds in '{range_text}'")

    lower_text, upper_text = parts[0].strip(), parts[1].strip()
    lower = _require_version(lower_text, range_text) if lower_text else None
    upper = _require_version(upper_text, range_text) if upper_text else None

    if lower is not None and upper is not None:
        if lower > upper:
            raise ConfigurationError(f"Lower bound is greater than upper bound in '{range_text}'")
        if lower == upper and not (lower_inclusive and upper_inclusive):
            raise ConfigurationError(f"Restriction matches no versions in '{range_text}'")

    return Restriction(lower, lower_inclusive, upper, upper_inclusive)


def select_version(version_range: Union[str, VersionRange], catalog: Iterable[str]) -> Optional[str]:
    """
    Pick the highest catalog version that satisfies a range.

    Catalog entries that cannot be parsed are skipped. When two entries
    compare equal (e.g. "3.5" and "3.5.0") the lexically greater text wins
    so the choice never depends on catalog order.

    Args:
        version_range: Range expression or parsed VersionRange
        catalog: Published version strings

    Returns:
        The selected version string, or None if nothing matches
    """
    if isinstance(version_range, str):
        version_range = VersionRange.parse(version_range)

    candidates = []
    for text in catalog:
        version = parse_version(text)
        if version is None:
            logger.debug(f"Ignoring unparseable version '{text}'")
            continue
        if version_range.contains(version):
            candidates.append((version, text))

    if not candidates:
        return None

    return max(candidates, key=cmp_to_key(_compare_candidates))[1]


def _compare_candidates(a: tuple[Version, str], b: tuple[Version, str]) -> int:
    if a[0] < b[0]:
        return -1
    if a[0] > b[0]:
        return 1
    return (a[1] > b[1]) - (a[1] < b[1])
