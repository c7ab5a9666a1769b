"""Exclude-pattern matching for repository paths"""

import fnmatch
from collections.abc import Iterable


def _normalize(path: str) -> str:
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def pattern_matches(path: str, pattern: str) -> bool:
    """
    Check whether a repository-relative path matches one glob

    `*` crosses directory separators as in fnmatch. A leading `**/` also
    matches at the repository root, and a trailing `/**` matches the
    directory itself and everything below it.
    """
    normalized = _normalize(path)
    pattern = pattern.replace("\\", "/")

    if fnmatch.fnmatchcase(normalized, pattern):
        return True
    if pattern.startswith("**/") and pattern_matches(normalized, pattern[3:]):
        return True
    if pattern.endswith("/**"):
        prefix = pattern[:-3]
        if normalized == prefix or fnmatch.fnmatchcase(normalized, f"{prefix}/*"):
            return True
    if pattern.endswith("/"):
        return normalized.startswith(pattern)
    return False


def is_excluded(path: str, patterns: Iterable[str]) -> bool:
    """A path is excluded if any pattern matches, independent of pattern order"""
    return any(pattern_matches(path, pattern) for pattern in patterns)
