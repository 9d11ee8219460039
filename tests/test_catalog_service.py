"""
End-to-end tests of the catalog service on the SQLite store
"""
import pytest

from parts_catalog.models.part_models import new_id
from parts_catalog.services.catalog_service import CatalogService, InvalidPartId
from parts_catalog.services.paginator import SORT_ORDER
from parts_catalog.services.part_generator import PartGenerator
from parts_catalog.services.reconciler import ReconcileMode
from conftest import make_child, make_part


@pytest.fixture
def service(store):
    return CatalogService(store=store, generator=PartGenerator(seed=11))


@pytest.mark.asyncio
async def test_generated_children_reference_batch_members(service, store):
    result = await service.generate_parts(count=40, sample_size=5)

    batch_ids = {p.id for p in result.created}
    assert len(result.created) == 40
    assert len(result.sample) == 5
    assert result.reconcile.failed == 0

    parents = await store.find_parents_with_children()
    assert parents
    for parent in parents:
        for child in parent.child_parts:
            assert child.main_part_id in batch_ids
            target = await store.find_by_id(child.main_part_id)
            assert child.part_number == target.part_number
            assert child.part_name == target.part_name


@pytest.mark.asyncio
async def test_generation_sample_is_refetched_after_linking(service):
    result = await service.generate_parts(count=30, sample_size=30)

    for part in result.sample:
        assert all(c.main_part_id is not None for c in part.child_parts)


@pytest.mark.asyncio
async def test_repair_by_code_after_generation_changes_nothing(service):
    await service.generate_parts(count=20)

    result = await service.repair_child_references(ReconcileMode.BY_CODE)

    assert result.updated == 0
    assert result.needs_update == 0


@pytest.mark.asyncio
async def test_repair_pool_is_capped(service, store):
    await store.insert_many([make_part(f"PC-{i:03d}") for i in range(5)])
    await store.insert_many([make_part("PP-001", child_parts=[make_child("PC-000"), make_child("PC-004")])])

    result = await service.repair_child_references(ReconcileMode.BY_CODE, pool_size=2)

    pool_ids = {p.id for p in await store.find(None, sort=SORT_ORDER, limit=2)}
    assert result.examined == 1
    [parent] = await store.find_parents_with_children()
    for child in parent.child_parts:
        assert child.main_part_id is None or child.main_part_id in pool_ids


@pytest.mark.asyncio
async def test_random_repair_reports_updated_count(service, store):
    await store.insert_many([make_part(f"PC-{i:03d}") for i in range(3)])
    await store.insert_many([
        make_part("PP-001", child_parts=[make_child("X-1", quantity=2, supplier="ABC Corp")]),
        make_part("PP-002", child_parts=[make_child("X-2", quantity=9)]),
        make_part("PP-003"),
    ])

    result = await service.repair_child_references(ReconcileMode.RANDOM)

    assert result.examined == 2
    assert result.updated == 2
    parents = {p.part_number: p for p in await store.find_parents_with_children()}
    assert parents["PP-001"].child_parts[0].quantity == 2
    assert parents["PP-001"].child_parts[0].supplier == "ABC Corp"
    assert parents["PP-002"].child_parts[0].quantity == 9


@pytest.mark.asyncio
async def test_list_parts_applies_filter_and_window(service, store, sample_parts):
    await store.insert_many(sample_parts)

    listing = await service.list_parts({"category": "Mechanical", "limit": "2", "page": "2"})

    assert listing.page.total == 3
    assert listing.page.count == 1
    assert listing.page.has_more is False
    assert listing.page.total_pages == 2


@pytest.mark.asyncio
async def test_get_part_validates_identifier(service):
    with pytest.raises(InvalidPartId):
        await service.get_part("not-an-id")
    assert await service.get_part(new_id()) is None


@pytest.mark.asyncio
async def test_get_main_part_resolves_child_reference(service):
    await service.generate_parts(count=10)
    parents = await service.store.find_parents_with_children()
    child = parents[0].child_parts[0]

    main = await service.get_main_part(child.main_part_id)

    assert main.id == child.main_part_id
    assert main.part_number == child.part_number


class NarrowGenerator(PartGenerator):
    """Draws part numbers from a space of 20 codes so batches overlap quickly"""

    def part_number(self, taken):
        while True:
            number = self.fake.bothify("P?-#", letters="AB")
            if number not in taken:
                taken.add(number)
                return number


@pytest.mark.asyncio
async def test_repeated_generation_avoids_stored_part_numbers(store):
    service = CatalogService(store=store, generator=NarrowGenerator(seed=2))

    for _ in range(4):
        result = await service.generate_parts(count=5, sample_size=0)
        assert len(result.created) == 5

    numbers = await store.part_numbers()
    assert len(numbers) == 20
    assert await store.count() == 20


@pytest.mark.asyncio
async def test_repeated_default_generation_succeeds(service, store):
    for _ in range(3):
        await service.generate_parts(count=200, sample_size=0)

    assert await store.count() == 600
