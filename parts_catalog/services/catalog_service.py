import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from parts_catalog.config import Config
from parts_catalog.models.part_models import CanonicalPart, Part, ReconcileResult
from parts_catalog.models.predicates import Predicate
from parts_catalog.services.filter_compiler import compile_filters
from parts_catalog.services.paginator import SORT_ORDER, PageRequest, PageResult, paginate
from parts_catalog.services.part_generator import PartGenerator
from parts_catalog.services.reconciler import ReconcileMode, ReferenceReconciler

logger = logging.getLogger(__name__)


class InvalidPartId(ValueError):
    """Identifier is not a well-formed part id"""


def create_store():
    """Build the store selected by STORE_BACKEND"""
    if Config.STORE_BACKEND == "supabase":
        from parts_catalog.database.supabase_store import SupabasePartStore
        return SupabasePartStore()

    from parts_catalog.database.sqlite_store import SqlitePartStore
    return SqlitePartStore()


@dataclass
class ListingResult:
    predicate: Optional[Predicate]
    page: PageResult


@dataclass
class GenerationResult:
    created: List[Part]
    sample: List[Part] = field(default_factory=list)
    reconcile: Optional[ReconcileResult] = None


class CatalogService:
    """
    Parts catalog operations

    Key responsibilities:
    1. Filtered, paginated listing
    2. Bulk generation of synthetic parts with linked child references
    3. Repair of child references against a pool of canonical parts
    4. Lookups by id and by child main part reference
    """

    def __init__(self, store=None, generator: Optional[PartGenerator] = None, reconciler: Optional[ReferenceReconciler] = None):
        self.store = store or create_store()
        self.generator = generator or PartGenerator()
        self.reconciler = reconciler or ReferenceReconciler(self.store)
        logger.info("Catalog service initialized")

    async def start(self):
        await self.store.connect()

    async def stop(self):
        await self.store.close()

    # ================================================================
    # Listing
    # ================================================================
    async def list_parts(self, params: Mapping[str, str]) -> ListingResult:
        predicate = compile_filters(params)
        request = PageRequest.from_params(params)
        page = await paginate(self.store, predicate, request)
        logger.info(f"LIST: page {request.page}, {page.count} of {page.total} parts")
        return ListingResult(predicate=predicate, page=page)

    # ================================================================
    # Bulk generation
    # ================================================================
    async def generate_parts(self, count: Optional[int] = None, sample_size: Optional[int] = None) -> GenerationResult:
        """
        Generate, insert and link a batch of synthetic parts

        Process Flow:
        1. Fabricate parents with unlinked child placeholders, avoiding stored part numbers
        2. Insert the batch
        3. Link every child to a random part of the inserted batch
        4. Re-fetch a sample of the linked records
        """
        count = Config.GENERATE_BATCH_SIZE if count is None else count
        sample_size = Config.GENERATE_SAMPLE_SIZE if sample_size is None else sample_size
        start_time = time.time()

        existing = await self.store.part_numbers()
        parts = self.generator.generate(count, existing_numbers=existing)
        created = await self.store.insert_many(parts)
        logger.info(f"GENERATE: Inserted {len(created)} parts")

        pool = [CanonicalPart.from_part(p) for p in created]
        reconcile = await self.reconciler.reconcile(created, pool, ReconcileMode.RANDOM)

        fetched = await asyncio.gather(*(self.store.find_by_id(p.id) for p in created[:sample_size]))
        sample = [p for p in fetched if p is not None]

        logger.info(f"GENERATE: Completed in {time.time() - start_time:.3f}s")
        return GenerationResult(created=created, sample=sample, reconcile=reconcile)

    # ================================================================
    # Reference repair
    # ================================================================
    async def repair_child_references(
        self,
        mode: ReconcileMode = ReconcileMode.RANDOM,
        pool_size: Optional[int] = None,
    ) -> ReconcileResult:
        """Rewrite child entries of every parent against a capped pool of canonical parts"""
        pool_size = Config.REPAIR_POOL_SIZE if pool_size is None else pool_size

        canonical = await self.store.find(None, sort=SORT_ORDER, limit=pool_size)
        pool = [CanonicalPart.from_part(p) for p in canonical]
        parents = await self.store.find_parents_with_children()
        logger.info(f"REPAIR: {len(parents)} parents with children, pool of {len(pool)}")

        return await self.reconciler.reconcile(parents, pool, mode)

    # ================================================================
    # Lookups
    # ================================================================
    async def get_part(self, part_id: str) -> Optional[Part]:
        if not self.store.is_valid_id(part_id):
            raise InvalidPartId(part_id)
        return await self.store.find_by_id(part_id)

    async def get_main_part(self, main_part_id: str) -> Optional[Part]:
        """Resolve the part a child entry's main part reference points at"""
        return await self.get_part(main_part_id)
