"""Allocation engine.

Turns a validated percentage tree into absolute amounts. Category amounts
are a share of the total; sub-category amounts are a share of their parent
category's amount, so percentages compose down the tree.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import structlog

from common.numeric import parse_amount, parse_number
from policy.validation import DEFAULT_TOLERANCE, validate
from portfolio.allocation_tree import AllocationTree

logger = structlog.get_logger(__name__)


class AllocationError(ValueError):
    """Raised when amounts are requested for a tree that does not validate."""

    pass


@dataclass(frozen=True)
class DerivedSubCategory:
    id: str
    name: str
    percentage: float
    amount: float


@dataclass(frozen=True)
class DerivedCategory:
    id: str
    name: str
    percentage: float
    amount: float
    sub_categories: List[DerivedSubCategory]

    @property
    def sub_category_total(self) -> float:
        return sum(s.amount for s in self.sub_categories)


@dataclass(frozen=True)
class DerivedTree:
    """Amounts for every node, in the same order as the source tree."""

    total_amount: float
    categories: List[DerivedCategory]

    def category(self, category_id: str) -> Optional[DerivedCategory]:
        return next((c for c in self.categories if c.id == category_id), None)

    @property
    def allocated_total(self) -> float:
        return sum(c.amount for c in self.categories)


def derive(tree: AllocationTree, tolerance: float = DEFAULT_TOLERANCE) -> DerivedTree:
    """Derive amounts for every category and sub-category of ``tree``.

    Args:
        tree: The percentage tree.
        tolerance: Allowed deviation from 100% for the sum checks.

    Returns:
        DerivedTree with parsed percentages and amounts.

    Raises:
        AllocationError: If the tree does not pass validation.
    """
    result = validate(tree, tolerance)
    if not result.is_valid:
        raise AllocationError(result.message)

    total = parse_amount(tree.total_amount)
    categories: List[DerivedCategory] = []
    for cat in tree.categories:
        pct = parse_number(cat.percentage)
        cat_amount = total * pct / 100
        subs = []
        for sub in cat.sub_categories:
            sub_pct = parse_number(sub.percentage)
            subs.append(
                DerivedSubCategory(
                    id=sub.id,
                    name=sub.name,
                    percentage=sub_pct,
                    amount=cat_amount * sub_pct / 100,
                )
            )
        categories.append(
            DerivedCategory(
                id=cat.id,
                name=cat.name,
                percentage=pct,
                amount=cat_amount,
                sub_categories=subs,
            )
        )

    logger.debug("allocation_derived", total_amount=total, categories=len(categories))
    return DerivedTree(total_amount=total, categories=categories)


def try_derive(tree: AllocationTree, tolerance: float = DEFAULT_TOLERANCE) -> Optional[DerivedTree]:
    """Like :func:`derive`, but returns ``None`` for an invalid tree."""
    try:
        return derive(tree, tolerance)
    except AllocationError:
        return None
