"""Catalog store, search, facet and recommendation services."""
