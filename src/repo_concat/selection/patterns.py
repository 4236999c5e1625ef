import enum
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern as RegexPattern

from ..errors import PatternError


class PatternKind(str, enum.Enum):
    REGEX = "regex"
    GLOB = "glob"
    PATH_PREFIX = "path_prefix"


def classify(raw: str) -> PatternKind:
    """
    Decides the kind of a raw pattern string.

    *   Leading `/` -> path prefix (`/src` selects top-level entries starting with "src").
    *   Contains `*` or `?` -> glob.
    *   Anything else -> regex.
    """
    if raw.startswith("/"):
        return PatternKind.PATH_PREFIX
    if "*" in raw or "?" in raw:
        return PatternKind.GLOB
    return PatternKind.REGEX


def glob_to_regex(glob: str) -> str:
    """
    Translates a glob into an anchored regex.

    Every regex metacharacter is escaped except `*` (-> `.*`) and `?` (-> `.`). The
    result is anchored with `^`/`$` unless it already starts/ends with `.*`, so
    `*.go` becomes `.*\\.go$`.
    """
    result = re.escape(glob)
    result = result.replace(r"\*", ".*").replace(r"\?", ".")
    if not result.startswith(".*"):
        result = "^" + result
    if not result.endswith(".*"):
        result = result + "$"
    return result


@dataclass(frozen=True)
class Pattern:
    """
    Immutable, pre-validated selection pattern.

    The kind is decided once by `parse_pattern` and never re-sniffed while matching.
    `regex` is set for REGEX and GLOB patterns; `prefix` for PATH_PREFIX.
    """

    raw: str
    kind: PatternKind
    regex: Optional[RegexPattern] = None
    prefix: str = ""

    def matches(self, rel_path: str, base_name: str) -> bool:
        if self.kind is PatternKind.PATH_PREFIX:
            first_segment = rel_path.split("/", 1)[0]
            return first_segment.startswith(self.prefix)
        return bool(self.regex.search(rel_path) or self.regex.search(base_name))


def parse_pattern(raw: str, role: str = "exclusion") -> Pattern:
    """
    Parses and validates one pattern.

    Raises:
        PatternError: if the regex (or the regex translated from a glob) does not compile.
    """
    kind = classify(raw)
    if kind is PatternKind.PATH_PREFIX:
        # A segment never contains "/", so "/src/" means the same as "/src"
        return Pattern(raw=raw, kind=kind, prefix=raw[1:].rstrip("/"))

    source = glob_to_regex(raw) if kind is PatternKind.GLOB else raw
    try:
        compiled = re.compile(source)
    except re.error as e:
        raise PatternError(raw, role, str(e)) from e
    return Pattern(raw=raw, kind=kind, regex=compiled)


def parse_patterns(raws: Iterable[str], role: str) -> List[Pattern]:
    return [parse_pattern(raw, role) for raw in raws]


def matches(pattern: Pattern, rel_path: str, base_name: str) -> bool:
    return pattern.matches(rel_path, base_name)


def matches_any(patterns: Iterable[Pattern], rel_path: str, base_name: str) -> Optional[Pattern]:
    """Returns the first pattern matching the path, or None."""
    for pattern in patterns:
        if pattern.matches(rel_path, base_name):
            return pattern
    return None
