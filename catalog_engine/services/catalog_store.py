"""In-memory catalog store with single-flight loading and atomic reloads."""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence

from catalog_engine.core.exceptions import CatalogLoadError
from catalog_engine.schemas.product import Product, StockRecord, StockSummary
from catalog_engine.services.catalog_loader import CatalogData, CatalogLoader

logger = logging.getLogger(__name__)


class CatalogSnapshot:
    """Immutable view of one load generation.

    Readers hold on to a snapshot for the duration of a request, so a
    concurrent reload never exposes a half-replaced catalog.
    """

    def __init__(self, data: CatalogData, generation: int) -> None:
        self.generation = generation
        self.products: tuple[Product, ...] = tuple(data.products)
        self._by_sku: Mapping[str, Product] = {p.sku: p for p in self.products}

        stock_by_sku: defaultdict[str, list[StockRecord]] = defaultdict(list)
        for row in data.stock:
            stock_by_sku[row.product_code].append(row)
        self._stock_by_sku: Mapping[str, tuple[StockRecord, ...]] = {
            sku: tuple(rows) for sku, rows in stock_by_sku.items()
        }
        self.stock_count = len(data.stock)

    @classmethod
    def empty(cls, generation: int = 0) -> "CatalogSnapshot":
        return cls(CatalogData(), generation)

    def __len__(self) -> int:
        return len(self.products)

    def get(self, sku: str) -> Product | None:
        return self._by_sku.get(sku)

    def stock_for(self, sku: str) -> tuple[StockRecord, ...]:
        return self._stock_by_sku.get(sku, ())

    def warehouses_for(self, sku: str) -> set[str]:
        return {row.warehouse for row in self.stock_for(sku) if row.warehouse}


class CatalogStore:
    """Shared, lazily loaded catalog injected into the search and recommendation services."""

    def __init__(self, loader: CatalogLoader) -> None:
        self.loader = loader
        self.load_error: BaseException | None = None
        self.load_count = 0
        self._snapshot: CatalogSnapshot | None = None
        self._load_task: asyncio.Task[CatalogSnapshot] | None = None
        self._reload_lock = asyncio.Lock()
        self._generation = 0

    @property
    def initialized(self) -> bool:
        return self._snapshot is not None

    @property
    def load_failed(self) -> bool:
        """True when the initial load failed and no reload has succeeded since."""
        return self.load_error is not None

    @property
    def snapshot(self) -> CatalogSnapshot:
        """Current snapshot, or an empty one before initialization."""
        return self._snapshot if self._snapshot is not None else CatalogSnapshot.empty()

    async def initialize(self) -> CatalogSnapshot:
        """Load the catalog exactly once.

        Concurrent callers share the in-flight load. A failed load leaves the
        store initialized with an empty catalog; the error is logged once and
        kept on ``load_error`` instead of being raised to every caller.

        Returns:
            The loaded (possibly empty) snapshot
        """
        if self._snapshot is not None:
            return self._snapshot
        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self._initial_load())
        # A cancelled caller must not cancel the load other callers await
        return await asyncio.shield(self._load_task)

    async def _initial_load(self) -> CatalogSnapshot:
        try:
            snapshot = await self._build_snapshot()
        except Exception as exc:
            logger.exception("Catalog load failed; serving an empty catalog")
            self.load_error = exc
            snapshot = CatalogSnapshot.empty(self._next_generation())
        if self._snapshot is None:
            self._snapshot = snapshot
        return self._snapshot

    async def reload(self) -> CatalogSnapshot:
        """Replace the whole catalog with a fresh load.

        The swap is a single reference assignment. On failure the previous
        snapshot stays in place and the error propagates.

        Raises:
            CatalogLoadError: If the loader fails
        """
        async with self._reload_lock:
            if self._snapshot is None:
                await self.initialize()
            try:
                snapshot = await self._build_snapshot()
            except CatalogLoadError:
                logger.exception("Catalog reload failed; keeping generation %d", self.snapshot.generation)
                raise
            except Exception as exc:
                logger.exception("Catalog reload failed; keeping generation %d", self.snapshot.generation)
                raise CatalogLoadError(f"Catalog reload failed: {exc}") from exc
            self._snapshot = snapshot
            self.load_error = None
            return snapshot

    async def _build_snapshot(self) -> CatalogSnapshot:
        self.load_count += 1
        data = await self.loader.load()
        snapshot = CatalogSnapshot(data, self._next_generation())
        logger.info(
            "Catalog generation %d loaded with %d products and %d stock records",
            snapshot.generation,
            len(snapshot),
            snapshot.stock_count,
        )
        return snapshot

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def get_by_sku(self, sku: str) -> Product | None:
        return self.snapshot.get(sku)

    def all_products(self) -> Sequence[Product]:
        """Read-only view of every searchable product."""
        return self.snapshot.products

    def stock_for(self, sku: str) -> list[StockRecord]:
        return list(self.snapshot.stock_for(sku))

    def stock_summary(self, sku: str) -> StockSummary:
        """Aggregate a product's stock rows across warehouses."""
        rows = self.snapshot.stock_for(sku)
        return StockSummary(
            sku=sku,
            available_quantity=sum(r.available_quantity for r in rows if r.is_active),
            total_stock=sum(r.available_quantity for r in rows),
            warehouse_count=len({r.warehouse for r in rows if r.warehouse}),
        )
