"""Local catalog query engine: search, facets and recommendations over an in-memory catalog."""

__version__ = "0.1.0"
