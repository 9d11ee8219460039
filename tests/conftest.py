"""
Pytest configuration and fixtures
"""
from typing import List, Optional

import pytest
import pytest_asyncio

from parts_catalog.database.sqlite_store import SqlitePartStore
from parts_catalog.models.part_models import ChildPartRef, Part


def make_part(
    part_number: str,
    part_name: Optional[str] = None,
    category: Optional[List[str]] = None,
    supplier: Optional[List[str]] = None,
    child_parts: Optional[List[ChildPartRef]] = None,
    **kwargs,
) -> Part:
    """Build a Part with sensible defaults for tests"""
    return Part(
        part_number=part_number,
        part_name=part_name or f"Part {part_number}",
        part_description=kwargs.pop("part_description", f"Description of {part_number}"),
        category=category or [],
        supplier=supplier or [],
        child_parts=child_parts or [],
        **kwargs,
    )


def make_child(part_number: str, quantity: int = 1, supplier: Optional[str] = None, main_part_id=None) -> ChildPartRef:
    return ChildPartRef(
        part_number=part_number,
        part_name=f"Child {part_number}",
        supplier=supplier,
        quantity=quantity,
        main_part_id=main_part_id,
    )


@pytest_asyncio.fixture
async def store():
    """In-memory SQLite part store, fresh for every test"""
    part_store = SqlitePartStore(":memory:")
    await part_store.connect()
    yield part_store
    await part_store.close()


@pytest.fixture
def sample_parts():
    """Small catalog covering the filterable fields"""
    return [
        make_part(
            "PX1-1001",
            part_name="Sealed Valve Component",
            category=["Hydraulics", "Mechanical"],
            supplier=["ABC Corp"],
            alternative_part_numbers=["ALT-AAA111"],
        ),
        make_part(
            "PX2-2002",
            part_name="Compact Relay Component",
            category=["Electronics"],
            supplier=["XYZ Industries", "ABC Corp"],
            sub_category=["Electronics Type R"],
        ),
        make_part(
            "PQ3-3003",
            part_name="Precision Bearing Component",
            category=["Mechanical"],
            supplier=["Global Parts"],
            part_description="Steel bearing rated for high loads",
        ),
        make_part(
            "PQ4-4004",
            part_name="Insulated Connector Component",
            category=["Electrical", "Electronics", "Mechanical"],
            supplier=["Tech Solutions"],
            alternative_part_numbers=["ALT-BBB222", "ALT-CCC333"],
        ),
    ]
