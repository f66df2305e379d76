"""Date parsing helpers for provider payloads."""

from __future__ import annotations

from datetime import date


def parse_date(value: str | None) -> date | None:
    """Parse YYYY, YYYY-MM, YYYY-MM-DD, or ISO timestamp strings into dates."""
    if not value:
        return None
    value = value.strip()
    try:
        if len(value) == 4:
            return date.fromisoformat(f"{value}-01-01")
        if len(value) == 7:
            return date.fromisoformat(f"{value}-01")
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def parse_year(value: str | None, default: int | None = None) -> int:
    """Return the release year of a provider date string, or ``default``/this year."""
    parsed = parse_date(value)
    if parsed:
        return parsed.year
    if value and value[:4].isdigit():
        return int(value[:4])
    return default if default is not None else date.today().year
