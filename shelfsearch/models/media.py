"""Media categories, search filters, and per-category id conventions."""

from __future__ import annotations

import enum


class Category(str, enum.Enum):
    """Supported media categories for search results."""
    GAMES = "games"
    MOVIES = "movies"
    MUSIC = "music"
    BOOKS = "books"


class CategoryFilter(str, enum.Enum):
    """Category selector accepted by the aggregator, including the fan-out wildcard."""
    ALL = "all"
    GAMES = "games"
    MOVIES = "movies"
    MUSIC = "music"
    BOOKS = "books"

    def categories(self) -> tuple[Category, ...]:
        """Return the categories selected by this filter."""
        if self is CategoryFilter.ALL:
            return tuple(Category)
        return (Category(self.value),)


ID_PREFIXES: dict[Category, tuple[str, ...]] = {
    Category.GAMES: ("game-",),
    Category.MOVIES: ("movie-", "tv-"),
    Category.MUSIC: ("album-", "track-", "music-"),
    Category.BOOKS: ("book-",),
}

CREATOR_PLACEHOLDERS: dict[Category, str] = {
    Category.GAMES: "Unknown Developer",
    Category.MOVIES: "Unknown Director",
    Category.MUSIC: "Unknown Artist",
    Category.BOOKS: "Unknown Author",
}

# Values providers (or older library rows) use in place of a real creator.
PLACEHOLDER_CREATORS = frozenset(
    {
        "",
        "unknown",
        "n/a",
        "game studio",
        "unknown developer",
        "unknown director",
        "unknown artist",
        "unknown author",
    }
)


def category_for_id(identifier: str) -> Category | None:
    """Return the category encoded by an id prefix, if any."""
    for category, prefixes in ID_PREFIXES.items():
        if identifier.startswith(prefixes):
            return category
    return None
