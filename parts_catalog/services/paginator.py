"""
Offset pagination over a part store
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from parts_catalog.config import Config
from parts_catalog.models.part_models import Part
from parts_catalog.models.predicates import Predicate

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1

# Newest first; id breaks createdAt ties so pages stay stable
SORT_ORDER = (("created_at", True), ("id", True))


def coerce_positive_int(raw: Any, default: int) -> int:
    """Parse a positive integer, falling back to default on garbage or values < 1"""
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value >= 1 else default


@dataclass(frozen=True)
class PageRequest:
    page: int = DEFAULT_PAGE
    limit: int = Config.DEFAULT_PAGE_SIZE

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "PageRequest":
        return cls(
            page=coerce_positive_int(params.get("page"), DEFAULT_PAGE),
            limit=coerce_positive_int(params.get("limit"), Config.DEFAULT_PAGE_SIZE),
        )

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class PageResult:
    request: PageRequest
    total: int
    items: List[Part] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.request.limit)

    @property
    def has_more(self) -> bool:
        return self.request.skip + self.count < self.total

    def pagination(self):
        return {
            "currentPage": self.request.page,
            "totalPages": self.total_pages,
            "hasMore": self.has_more,
        }


async def paginate(store, predicate: Optional[Predicate], request: PageRequest) -> PageResult:
    """Count matches, then fetch the requested window in stable order"""
    total = await store.count(predicate)
    items = await store.find(
        predicate,
        sort=SORT_ORDER,
        skip=request.skip,
        limit=request.limit,
    )
    logger.debug(f"Page {request.page} (limit {request.limit}): {len(items)} of {total}")
    return PageResult(request=request, total=total, items=items)
