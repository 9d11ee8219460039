import logging
from typing import Any, Callable, List, Optional, Sequence, Set, Tuple

from supabase import AsyncClient, acreate_client

from parts_catalog.config import Config
from parts_catalog.models.part_models import (
    ARRAY_FIELDS,
    ChildPartRef,
    Part,
    format_timestamp,
    is_valid_id,
    new_id,
    utc_now,
)
from parts_catalog.models.predicates import (
    And,
    ContainsAll,
    ContainsAny,
    Equals,
    Or,
    Predicate,
    RangeClosed,
    Regex,
)

logger = logging.getLogger(__name__)

# PostgREST caps responses at max-rows (1000 by default); larger windows are fetched in chunks
CHUNK_SIZE = 1000

RESERVED_CHARS = set(',.:()"\\ {}')


def search_column(field: str) -> str:
    """Array columns are regex-matched through their generated text column"""
    return f"{field}_search" if field in ARRAY_FIELDS else field


def quote_value(value: Any) -> str:
    """Double-quote a value for a PostgREST logic expression when needed"""
    text = str(value)
    if not text or any(ch in RESERVED_CHARS for ch in text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def array_literal(values: Sequence[str]) -> str:
    """Postgres array literal with every element quoted"""
    elements = []
    for value in values:
        escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
        elements.append(f'"{escaped}"')
    return "{" + ",".join(elements) + "}"


def render_condition(predicate: Predicate) -> str:
    """Render a predicate as a PostgREST logic tree condition (used inside or=(...))"""
    if isinstance(predicate, Equals):
        return f"{predicate.field}.eq.{quote_value(predicate.value)}"
    if isinstance(predicate, Regex):
        return f"{search_column(predicate.field)}.imatch.{quote_value(predicate.pattern)}"
    if isinstance(predicate, ContainsAll):
        return f"{predicate.field}.cs.{quote_value(array_literal(predicate.values))}"
    if isinstance(predicate, ContainsAny):
        return f"{predicate.field}.ov.{quote_value(array_literal(predicate.values))}"
    if isinstance(predicate, RangeClosed):
        return (
            f"and({predicate.field}.gte.{quote_value(format_timestamp(predicate.low))},"
            f"{predicate.field}.lte.{quote_value(format_timestamp(predicate.high))})"
        )
    if isinstance(predicate, And):
        return "and(" + ",".join(render_condition(c) for c in predicate.clauses) + ")"
    if isinstance(predicate, Or):
        return "or(" + ",".join(render_condition(c) for c in predicate.clauses) + ")"
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def apply_predicate(query, predicate: Optional[Predicate]):
    """Chain a predicate onto a postgrest request builder"""
    if predicate is None:
        return query
    if isinstance(predicate, And):
        for clause in predicate.clauses:
            query = apply_predicate(query, clause)
        return query
    if isinstance(predicate, Or):
        return query.or_(",".join(render_condition(c) for c in predicate.clauses))
    if isinstance(predicate, Equals):
        if predicate.field in ARRAY_FIELDS:
            return query.filter(predicate.field, "cs", array_literal([predicate.value]))
        return query.eq(predicate.field, predicate.value)
    if isinstance(predicate, Regex):
        return query.filter(search_column(predicate.field), "imatch", predicate.pattern)
    if isinstance(predicate, ContainsAll):
        return query.filter(predicate.field, "cs", array_literal(predicate.values))
    if isinstance(predicate, ContainsAny):
        return query.filter(predicate.field, "ov", array_literal(predicate.values))
    if isinstance(predicate, RangeClosed):
        return query.gte(predicate.field, format_timestamp(predicate.low)).lte(
            predicate.field, format_timestamp(predicate.high)
        )
    raise TypeError(f"Unsupported predicate: {predicate!r}")


class SupabasePartStore:
    """Part store on a Supabase table (schema in schema.sql)"""

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None, table: Optional[str] = None):
        self.url = url or Config.SUPABASE_URL
        self.key = key or Config.SUPABASE_KEY
        self.table_name = table or Config.PARTS_TABLE
        self.client: Optional[AsyncClient] = None

    async def connect(self):
        if self.client is None:
            self.client = await acreate_client(self.url, self.key)
            logger.info("Supabase part store initialized")

    async def close(self):
        if self.client is not None:
            await self.client.postgrest.aclose()
            self.client = None
            logger.info("Supabase part store closed")

    def is_valid_id(self, value: Any) -> bool:
        return is_valid_id(value)

    def _table(self):
        return self.client.table(self.table_name)

    async def _fetch_window(
        self,
        build_query: Callable[[], Any],
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Part]:
        """Fetch [skip, skip + limit) in CHUNK_SIZE slices; limit None reads to the end"""
        parts: List[Part] = []
        offset = skip
        while limit is None or len(parts) < limit:
            size = CHUNK_SIZE if limit is None else min(CHUNK_SIZE, limit - len(parts))
            response = await build_query().range(offset, offset + size - 1).execute()
            rows = response.data or []
            parts.extend(Part.from_row(row) for row in rows)
            if len(rows) < size:
                break
            offset += size
        return parts

    async def count(self, predicate: Optional[Predicate] = None) -> int:
        query = apply_predicate(self._table().select("id", count="exact", head=True), predicate)
        response = await query.execute()
        return response.count or 0

    async def find(
        self,
        predicate: Optional[Predicate] = None,
        sort: Sequence[Tuple[str, bool]] = (),
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Part]:
        def build_query():
            query = apply_predicate(self._table().select("*"), predicate)
            for column, descending in sort:
                query = query.order(column, desc=descending)
            return query

        return await self._fetch_window(build_query, skip, limit)

    async def find_by_id(self, part_id: str) -> Optional[Part]:
        response = await self._table().select("*").eq("id", part_id).limit(1).execute()
        rows = response.data or []
        return Part.from_row(rows[0]) if rows else None

    async def part_numbers(self) -> Set[str]:
        numbers: Set[str] = set()
        offset = 0
        while True:
            response = await (
                self._table().select("part_number").order("id").range(offset, offset + CHUNK_SIZE - 1).execute()
            )
            rows = response.data or []
            numbers.update(row["part_number"] for row in rows)
            if len(rows) < CHUNK_SIZE:
                return numbers
            offset += CHUNK_SIZE

    async def find_parents_with_children(self) -> List[Part]:
        def build_query():
            return (
                self._table()
                .select("*")
                .neq("child_parts", "[]")
                .order("created_at", desc=True)
                .order("id", desc=True)
            )

        return await self._fetch_window(build_query)

    async def insert_many(self, parts: Sequence[Part]) -> List[Part]:
        """Insert a batch; all records share one timestamp"""
        now = format_timestamp(utc_now())
        rows = []
        for part in parts:
            row = part.to_row()
            row["id"] = row.get("id") or new_id()
            row["created_at"] = now
            row["updated_at"] = now
            rows.append(row)

        response = await self._table().insert(rows).execute()
        inserted = [Part.from_row(row) for row in response.data or []]
        logger.info(f"Inserted {len(inserted)} parts")
        return inserted

    async def update_child_parts(self, part_id: str, child_parts: Sequence[ChildPartRef]) -> Optional[Part]:
        """Replace the whole child list of a part"""
        response = await (
            self._table()
            .update({
                "child_parts": [c.to_row() for c in child_parts],
                "updated_at": format_timestamp(utc_now()),
            })
            .eq("id", part_id)
            .execute()
        )
        rows = response.data or []
        return Part.from_row(rows[0]) if rows else None
