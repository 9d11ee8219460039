"""
SQLite part store (aiosqlite)
Local/demo backend; array, object and embedded-list columns are stored as JSON text
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import aiosqlite

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

JSON_COLUMNS = ARRAY_FIELDS | {"specifications", "documentation", "child_parts"}

COLUMNS = (
    "id",
    "part_number",
    "part_name",
    "part_description",
    "alternative_part_numbers",
    "category",
    "sub_category",
    "supplier",
    "supplier_contact",
    "internal_contact",
    "specifications",
    "documentation",
    "child_parts",
    "created_at",
    "updated_at",
)

SORTABLE_COLUMNS = frozenset({"id", "part_number", "part_name", "created_at", "updated_at"})

# LIMIT and OFFSET are bound as signed 64-bit integers
SQLITE_MAX_INT = 2**63 - 1


def _regexp(pattern: str, value: Any) -> bool:
    if value is None:
        return False
    return re.search(pattern, str(value), re.IGNORECASE) is not None


def compile_predicate(predicate: Optional[Predicate]) -> Tuple[str, List[Any]]:
    """Translate a predicate into a SQL WHERE fragment and its parameters"""
    if predicate is None:
        return "1=1", []

    if isinstance(predicate, Equals):
        if predicate.field in ARRAY_FIELDS:
            return (
                f"EXISTS (SELECT 1 FROM json_each({predicate.field}) WHERE json_each.value = ?)",
                [predicate.value],
            )
        return f"{predicate.field} = ?", [predicate.value]

    if isinstance(predicate, Regex):
        if predicate.field in ARRAY_FIELDS:
            return (
                f"EXISTS (SELECT 1 FROM json_each({predicate.field}) WHERE json_each.value REGEXP ?)",
                [predicate.pattern],
            )
        return f"{predicate.field} REGEXP ?", [predicate.pattern]

    if isinstance(predicate, ContainsAll):
        if not predicate.values:
            return "1=1", []
        parts = [
            f"EXISTS (SELECT 1 FROM json_each({predicate.field}) WHERE json_each.value = ?)"
            for _ in predicate.values
        ]
        return "(" + " AND ".join(parts) + ")", list(predicate.values)

    if isinstance(predicate, ContainsAny):
        if not predicate.values:
            return "1=0", []
        placeholders = ", ".join("?" for _ in predicate.values)
        return (
            f"EXISTS (SELECT 1 FROM json_each({predicate.field}) WHERE json_each.value IN ({placeholders}))",
            list(predicate.values),
        )

    if isinstance(predicate, RangeClosed):
        return (
            f"({predicate.field} >= ? AND {predicate.field} <= ?)",
            [format_timestamp(predicate.low), format_timestamp(predicate.high)],
        )

    if isinstance(predicate, (And, Or)):
        if not predicate.clauses:
            return ("1=1" if isinstance(predicate, And) else "1=0"), []
        joiner = " AND " if isinstance(predicate, And) else " OR "
        fragments = []
        params: List[Any] = []
        for clause in predicate.clauses:
            sql, clause_params = compile_predicate(clause)
            fragments.append(sql)
            params.extend(clause_params)
        return "(" + joiner.join(fragments) + ")", params

    raise TypeError(f"Unsupported predicate: {predicate!r}")


def compile_sort(sort: Sequence[Tuple[str, bool]]) -> str:
    terms = []
    for column, descending in sort:
        if column not in SORTABLE_COLUMNS:
            raise ValueError(f"Cannot sort on {column!r}")
        terms.append(f"{column} {'DESC' if descending else 'ASC'}")
    return ", ".join(terms) if terms else "created_at DESC, id DESC"


class SqlitePartStore:
    """Part store backed by a SQLite file (or :memory:)"""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or Config.SQLITE_DB_PATH
        self.conn: Optional[aiosqlite.Connection] = None

    async def connect(self):
        """Open the connection and create the schema if not exists"""
        if self.conn is not None:
            return
        self.conn = await aiosqlite.connect(self.db_path)
        self.conn.row_factory = aiosqlite.Row
        await self.conn.create_function("regexp", 2, _regexp, deterministic=True)

        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS parts (
                id TEXT PRIMARY KEY,
                part_number TEXT NOT NULL UNIQUE,
                part_name TEXT NOT NULL,
                part_description TEXT,
                alternative_part_numbers TEXT NOT NULL DEFAULT '[]',
                category TEXT NOT NULL DEFAULT '[]',
                sub_category TEXT NOT NULL DEFAULT '[]',
                supplier TEXT NOT NULL DEFAULT '[]',
                supplier_contact TEXT,
                internal_contact TEXT,
                specifications TEXT NOT NULL DEFAULT '{}',
                documentation TEXT NOT NULL DEFAULT '[]',
                child_parts TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        await self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_parts_created ON parts (created_at DESC, id DESC)"
        )
        await self.conn.commit()
        logger.info(f"SQLite part store initialized: {self.db_path}")

    async def close(self):
        """Close database connection"""
        if self.conn is not None:
            await self.conn.close()
            self.conn = None
            logger.info("SQLite part store closed")

    def is_valid_id(self, value: Any) -> bool:
        return is_valid_id(value)

    def _to_part(self, row: aiosqlite.Row) -> Part:
        data: Dict[str, Any] = dict(row)
        for column in JSON_COLUMNS:
            if data.get(column) is not None:
                data[column] = json.loads(data[column])
        return Part.from_row(data)

    async def count(self, predicate: Optional[Predicate] = None) -> int:
        where, params = compile_predicate(predicate)
        async with self.conn.execute(f"SELECT COUNT(*) FROM parts WHERE {where}", params) as cursor:
            row = await cursor.fetchone()
        return row[0]

    async def find(
        self,
        predicate: Optional[Predicate] = None,
        sort: Sequence[Tuple[str, bool]] = (),
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Part]:
        where, params = compile_predicate(predicate)
        sql = f"SELECT * FROM parts WHERE {where} ORDER BY {compile_sort(sort)} LIMIT ? OFFSET ?"
        limit = -1 if limit is None else min(limit, SQLITE_MAX_INT)
        params = params + [limit, min(skip, SQLITE_MAX_INT)]
        async with self.conn.execute(sql, params) as cursor:
            rows = await cursor.fetchall()
        return [self._to_part(row) for row in rows]

    async def find_by_id(self, part_id: str) -> Optional[Part]:
        async with self.conn.execute("SELECT * FROM parts WHERE id = ?", (part_id,)) as cursor:
            row = await cursor.fetchone()
        return self._to_part(row) if row is not None else None

    async def part_numbers(self) -> Set[str]:
        async with self.conn.execute("SELECT part_number FROM parts") as cursor:
            rows = await cursor.fetchall()
        return {row[0] for row in rows}

    async def find_parents_with_children(self) -> List[Part]:
        async with self.conn.execute(
            "SELECT * FROM parts WHERE json_array_length(child_parts) > 0 ORDER BY created_at DESC, id DESC"
        ) as cursor:
            rows = await cursor.fetchall()
        return [self._to_part(row) for row in rows]

    async def insert_many(self, parts: Sequence[Part]) -> List[Part]:
        """Insert a batch in one transaction; all records share one timestamp"""
        now = utc_now()
        rows = []
        for part in parts:
            row = part.to_row()
            row["id"] = row.get("id") or new_id()
            row["created_at"] = format_timestamp(now)
            row["updated_at"] = format_timestamp(now)
            rows.append(row)

        placeholders = ", ".join("?" for _ in COLUMNS)
        values = [
            tuple(json.dumps(row.get(c)) if c in JSON_COLUMNS else row.get(c) for c in COLUMNS)
            for row in rows
        ]
        try:
            await self.conn.executemany(
                f"INSERT INTO parts ({', '.join(COLUMNS)}) VALUES ({placeholders})",
                values,
            )
            await self.conn.commit()
        except Exception:
            await self.conn.rollback()
            raise

        logger.info(f"Inserted {len(rows)} parts")
        return [Part.from_row(row) for row in rows]

    async def update_child_parts(self, part_id: str, child_parts: Sequence[ChildPartRef]) -> Optional[Part]:
        """Replace the whole child list of a part"""
        payload = json.dumps([c.to_row() for c in child_parts])
        cursor = await self.conn.execute(
            "UPDATE parts SET child_parts = ?, updated_at = ? WHERE id = ?",
            (payload, format_timestamp(utc_now()), part_id),
        )
        await self.conn.commit()
        if cursor.rowcount == 0:
            return None
        return await self.find_by_id(part_id)

    async def clear(self):
        """Delete all parts (for testing)"""
        await self.conn.execute("DELETE FROM parts")
        await self.conn.commit()
        logger.info("All parts cleared")
