"""Unit tests for exclude-pattern matching"""

import pytest

from docsync.models.configuration import DEFAULT_EXCLUDE_PATTERNS
from docsync.utils.globs import is_excluded, pattern_matches


@pytest.mark.parametrize(
    "path,pattern",
    [
        ("src/app.test.ts", "**/*.test.*"),
        ("app.test.js", "**/*.test.*"),
        ("pkg/calc_test.go", "**/*_test.*"),
        ("tests/unit/test_x.py", "tests/**"),
        ("tests", "tests/**"),
        ("documentation/public/functions/x.md", "documentation/**"),
        ("web/node_modules/lib/index.js", "**/node_modules/**"),
        ("./vendor/x.go", "vendor/**"),
        ("build/out.js", "build/"),
    ],
)
def test_pattern_matches(path, pattern):
    assert pattern_matches(path, pattern)


@pytest.mark.parametrize(
    "path,pattern",
    [
        ("src/app.ts", "**/*.test.*"),
        ("testsuite/x.py", "tests/**"),
        ("src/documentation.py", "documentation/**"),
        ("buildx/out.js", "build/"),
    ],
)
def test_pattern_does_not_match(path, pattern):
    assert not pattern_matches(path, pattern)


def test_any_pattern_excludes_regardless_of_order():
    patterns = ["docs/**", "**/*.test.*"]

    assert is_excluded("src/a.test.ts", patterns)
    assert is_excluded("src/a.test.ts", list(reversed(patterns)))
    assert not is_excluded("src/a.ts", patterns)


def test_default_patterns_exclude_tests_and_documentation():
    assert is_excluded("documentation/config.json", DEFAULT_EXCLUDE_PATTERNS)
    assert is_excluded("pkg/server_test.go", DEFAULT_EXCLUDE_PATTERNS)
    assert is_excluded("lib/widget.test.js", DEFAULT_EXCLUDE_PATTERNS)
    assert not is_excluded("pkg/server.go", DEFAULT_EXCLUDE_PATTERNS)
