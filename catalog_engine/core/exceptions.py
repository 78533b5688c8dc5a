"""Error taxonomy for the catalog engine.

User-input shaped conditions (unknown SKU, unknown sort, bad paging) never
raise; they resolve to empty results or defaults. Only the conditions below
are exceptions.
"""


class CatalogError(Exception):
    """Base class for catalog engine errors."""


class CatalogLoadError(CatalogError):
    """The catalog could not be read or parsed."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class CatalogUnavailableError(CatalogError):
    """The catalog store failed its initial load and holds no data."""
