"""Engine entry point: wires settings, logging, the catalog store and services."""

import logging
from dataclasses import dataclass

from catalog_engine.core.config import Settings, get_settings
from catalog_engine.core.logging_config import setup_logging
from catalog_engine.services.catalog_loader import CatalogLoader, InMemoryCatalogLoader, JsonCatalogLoader
from catalog_engine.services.catalog_store import CatalogStore
from catalog_engine.services.recommendation_service import RecommendationService
from catalog_engine.services.search_service import SearchService

logger = logging.getLogger(__name__)


@dataclass
class CatalogEngine:
    """Shared store plus the services that read it."""

    store: CatalogStore
    search: SearchService
    recommendations: RecommendationService

    async def start(self) -> None:
        """Load the catalog ahead of the first request."""
        await self.store.initialize()


def default_loader(settings: Settings) -> CatalogLoader:
    """JSON file loader when a products file is configured, else an empty catalog."""
    if settings.products_path is None:
        logger.warning("No products file configured; catalog will be empty")
        return InMemoryCatalogLoader([])
    return JsonCatalogLoader(settings.products_path, settings.stock_path)


def create_engine(
    settings: Settings | None = None,
    loader: CatalogLoader | None = None,
    *,
    configure_logging: bool = True,
) -> CatalogEngine:
    """Create and configure the catalog engine."""
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(debug=settings.debug)
    logger.info("Starting %s v%s", settings.project_name, settings.version)
    logger.info("Environment: %s", settings.environment)

    store = CatalogStore(loader or default_loader(settings))
    return CatalogEngine(
        store=store,
        search=SearchService(store, settings),
        recommendations=RecommendationService(store, settings.recommendation_config()),
    )
