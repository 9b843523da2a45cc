"""Index and alias name validation (Elasticsearch naming rules)."""

from __future__ import annotations

from index_duplicator.errors import UsageError

MAX_NAME_BYTES = 255
FORBIDDEN_CHARS = frozenset('\\/*?"<>|,# :')
FORBIDDEN_PREFIXES = ("-", "_", "+")


def name_problem(name: str) -> str | None:
    """Return why ``name`` is not a valid index/alias name, or ``None``."""
    if not name:
        return "must not be empty"
    if name in (".", ".."):
        return "must not be '.' or '..'"
    if name != name.lower():
        return "must be lowercase"
    if name.startswith(FORBIDDEN_PREFIXES):
        return "must not start with '-', '_' or '+'"
    bad = sorted(set(name) & FORBIDDEN_CHARS)
    if bad:
        return f"contains forbidden characters: {' '.join(repr(c) for c in bad)}"
    if len(name.encode("utf-8")) > MAX_NAME_BYTES:
        return f"is longer than {MAX_NAME_BYTES} bytes"
    return None


def validate_name(name: str, kind: str = "index") -> str:
    """Return ``name`` unchanged, or raise :class:`UsageError`."""
    problem = name_problem(name)
    if problem:
        raise UsageError(f"Invalid {kind} name {name!r}: {problem}")
    return name
