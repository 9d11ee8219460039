"""
Child part reference reconciliation

Child entries embedded in a parent carry a main_part_id pointing at a
canonical part. Bulk-created parents start with unlinked placeholders since
the canonical ids only exist once the insert has completed, so linking is a
second pass over persisted parents:

1. For every child pick a canonical part from the pool (by part number, or
   uniformly at random for synthetic data)
2. Build a replacement entry carrying the canonical part's number, name and
   description plus its id, keeping the original quantity and supplier
3. Replace the parent's whole child list when any entry changed
"""
import asyncio
import logging
import random
import time
from dataclasses import replace
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from parts_catalog.models.part_models import CanonicalPart, ChildPartRef, Part, ReconcileResult

logger = logging.getLogger(__name__)


class ReconcileMode(str, Enum):
    RANDOM = "random"
    BY_CODE = "code"


def index_pool(pool: Sequence[CanonicalPart]) -> Dict[str, CanonicalPart]:
    """Map part number -> canonical entry; the first entry for a number wins"""
    by_code: Dict[str, CanonicalPart] = {}
    for entry in pool:
        by_code.setdefault(entry.part_number, entry)
    return by_code


class ReferenceReconciler:
    """Rewrites embedded child entries so they point at canonical parts"""

    def __init__(self, store, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()

    def select_canonical(
        self,
        child: ChildPartRef,
        pool: Sequence[CanonicalPart],
        pool_by_code: Dict[str, CanonicalPart],
        mode: ReconcileMode,
    ) -> Optional[CanonicalPart]:
        if not pool:
            return None
        if mode is ReconcileMode.RANDOM:
            return self.rng.choice(pool)
        return pool_by_code.get(child.part_number)

    def build_replacement(
        self,
        child: ChildPartRef,
        pool: Sequence[CanonicalPart],
        pool_by_code: Dict[str, CanonicalPart],
        mode: ReconcileMode,
    ) -> ChildPartRef:
        canonical = self.select_canonical(child, pool, pool_by_code, mode)

        if canonical is None:
            # Keep the entry as is, only resolving the reference if the number is known
            resolved = pool_by_code.get(child.part_number)
            return replace(child, main_part_id=resolved.id if resolved else child.main_part_id)

        return ChildPartRef(
            part_number=canonical.part_number,
            part_name=canonical.part_name,
            part_description=canonical.part_description,
            supplier=child.supplier,
            quantity=child.quantity,
            main_part_id=canonical.id,
        )

    def plan_parent(
        self,
        parent: Part,
        pool: Sequence[CanonicalPart],
        pool_by_code: Dict[str, CanonicalPart],
        mode: ReconcileMode,
    ) -> Optional[List[ChildPartRef]]:
        """
        Compute the replacement child list for a parent

        Returns None when the parent has no children or every replacement
        equals the entry it would replace.
        """
        if not parent.child_parts:
            return None

        replacements = [
            self.build_replacement(child, pool, pool_by_code, mode)
            for child in parent.child_parts
        ]
        # A child left unresolved with nothing else changed does not count as an update
        if replacements == list(parent.child_parts):
            return None
        return replacements

    async def _save(self, parent: Part, children: List[ChildPartRef]) -> Part:
        updated = await self.store.update_child_parts(parent.id, children)
        if updated is None:
            raise LookupError(f"Part {parent.id} no longer exists")
        return updated

    async def reconcile(
        self,
        parents: Sequence[Part],
        pool: Sequence[CanonicalPart],
        mode: ReconcileMode = ReconcileMode.BY_CODE,
    ) -> ReconcileResult:
        """
        Reconcile child references of the given parents against a pool

        Saves are issued together and awaited jointly. A failed save is
        logged and counted; saves that already went through stay committed.
        """
        start_time = time.time()
        result = ReconcileResult(mode=mode.value)
        pool_by_code = index_pool(pool)

        plans: List[Tuple[Part, List[ChildPartRef]]] = []
        for parent in parents:
            if not parent.child_parts:
                continue
            result.examined += 1
            children = self.plan_parent(parent, pool, pool_by_code, mode)
            if children is not None:
                plans.append((parent, children))

        result.needs_update = len(plans)
        logger.info(
            f"RECONCILE ({mode.value}): {result.examined} parents with children, "
            f"{result.needs_update} need update, pool size {len(pool)}"
        )

        outcomes = await asyncio.gather(
            *(self._save(parent, children) for parent, children in plans),
            return_exceptions=True,
        )

        for (parent, _), outcome in zip(plans, outcomes):
            if isinstance(outcome, Exception):
                result.failed += 1
                message = f"{parent.part_number}: {outcome}"
                result.error_messages.append(message)
                logger.error(f"RECONCILE: Save failed - {message}")
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.updated += 1

        result.duration_seconds = time.time() - start_time
        logger.info(
            f"RECONCILE: Updated={result.updated}, Failed={result.failed}, "
            f"Duration={result.duration_seconds:.3f}s"
        )
        return result
