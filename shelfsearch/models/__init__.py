from shelfsearch.models.media import (
    CREATOR_PLACEHOLDERS,
    ID_PREFIXES,
    PLACEHOLDER_CREATORS,
    Category,
    CategoryFilter,
    category_for_id,
)
