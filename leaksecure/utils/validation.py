"""Input sanitisation helpers."""

import re

_RE_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]")


def sanitize_input(value: str) -> str:
    """Remove null bytes and control characters, keeping newlines and tabs."""
    return _RE_CONTROL_CHARS.sub("", value)


def sanitize_repository_name(name: str) -> str:
    """Trim and sanitise an owner, repository or branch name."""
    return sanitize_input(name.strip())
