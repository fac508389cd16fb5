from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from common.numeric import parse_amount, parse_number
from portfolio.allocation_tree import AllocationTree, Category

logger = structlog.get_logger(__name__)

DEFAULT_TOLERANCE = 1e-4

INVALID_TOTAL_MESSAGE = "invalid total amount"
MAIN_SUM_MESSAGE = "main category percentages must sum to 100%"
SUB_SUM_MESSAGE = "sub-categories under {name} must sum to 100%"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a tree.

    ``message`` is the single message shown to the user. ``issues`` keeps
    every message produced during the pass, in the order they were found.
    """

    message: Optional[str] = None
    issues: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.message is None


def within_tolerance(total: float, tolerance: float = DEFAULT_TOLERANCE) -> bool:
    return 100.0 - tolerance <= total <= 100.0 + tolerance


def category_percentage_total(tree: AllocationTree) -> float:
    return sum(parse_number(c.percentage) for c in tree.categories)


def sub_category_percentage_total(category: Category) -> float:
    return sum(parse_number(s.percentage) for s in category.sub_categories)


def validate(tree: AllocationTree, tolerance: float = DEFAULT_TOLERANCE) -> ValidationResult:
    """Check the sum invariants of ``tree``.

    An invalid total short-circuits. Otherwise the main-level sum is checked
    first and then every category's sub-categories, in category order. Each
    failing check overwrites the message, so the last failing sub-category
    check is the one reported.
    """
    amount = parse_amount(tree.total_amount)
    if amount is None or amount <= 0:
        logger.debug("validation_failed", reason="total_amount", total_amount=tree.total_amount)
        return ValidationResult(message=INVALID_TOTAL_MESSAGE, issues=[INVALID_TOTAL_MESSAGE])

    message: Optional[str] = None
    issues: List[str] = []

    main_total = category_percentage_total(tree)
    if not within_tolerance(main_total, tolerance):
        message = MAIN_SUM_MESSAGE
        issues.append(message)

    for cat in tree.categories:
        if parse_number(cat.percentage) > 0 and cat.sub_categories:
            if not within_tolerance(sub_category_percentage_total(cat), tolerance):
                message = SUB_SUM_MESSAGE.format(name=cat.name)
                issues.append(message)

    if message is not None:
        logger.debug("validation_failed", message=message, issue_count=len(issues))
    return ValidationResult(message=message, issues=issues)
