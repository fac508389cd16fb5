"""Percentage tree of investment categories and sub-categories.

The tree stores what the user typed: percentages and the total amount are
kept as raw text (or numbers when restored from a profile) and are only
coerced when validating or deriving amounts. Categories and sub-categories
are addressed by their stable ``id``, never by position.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from common.config_loader import DEFAULT_CATEGORIES
from common.numeric import RawNumber, sanitize_numeric_text, to_storable


class AllocationTreeError(KeyError):
    """Raised for operations on unknown ids or on fixed categories."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


@dataclass
class SubCategory:
    id: str
    name: str = ""
    percentage: RawNumber = "0"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "percentage": to_storable(self.percentage)}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SubCategory":
        return cls(id=str(raw["id"]), name=raw.get("name", ""), percentage=raw.get("percentage", ""))


@dataclass
class Category:
    id: str
    name: str
    percentage: RawNumber = ""
    sub_categories: List[SubCategory] = field(default_factory=list)
    fixed: bool = False

    def get_sub_category(self, sub_id: str) -> SubCategory:
        for sub in self.sub_categories:
            if sub.id == sub_id:
                return sub
        raise AllocationTreeError(f"Sub-category {sub_id!r} not found under {self.id!r}")

    def _next_sub_id(self) -> str:
        taken = {s.id for s in self.sub_categories}
        n = len(self.sub_categories) + 1
        while f"{self.id}-{n}" in taken:
            n += 1
        return f"{self.id}-{n}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "percentage": to_storable(self.percentage),
            "subCategories": [s.to_dict() for s in self.sub_categories],
            "isFixed": self.fixed,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Category":
        return cls(
            id=str(raw["id"]),
            name=raw.get("name", ""),
            percentage=raw.get("percentage", ""),
            sub_categories=[SubCategory.from_dict(s) for s in raw.get("subCategories") or []],
            fixed=bool(raw.get("isFixed", False)),
        )


@dataclass
class AllocationTree:
    """Total amount plus an ordered list of categories."""

    total_amount: RawNumber = ""
    categories: List[Category] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def get_category(self, category_id: str) -> Category:
        for cat in self.categories:
            if cat.id == category_id:
                return cat
        raise AllocationTreeError(f"Category {category_id!r} not found")

    def find_category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def set_total_amount(self, value: RawNumber) -> None:
        self.total_amount = _clean(value)

    def add_category(self, category_id: str, name: str, percentage: RawNumber = "") -> Category:
        if self.find_category(category_id) is not None:
            raise AllocationTreeError(f"Category {category_id!r} already exists")
        cat = Category(id=category_id, name=name, percentage=_clean(percentage))
        self.categories.append(cat)
        return cat

    def remove_category(self, category_id: str) -> None:
        cat = self.get_category(category_id)
        if cat.fixed:
            raise AllocationTreeError(f"Category {category_id!r} is fixed and cannot be removed")
        self.categories.remove(cat)

    def rename_category(self, category_id: str, name: str) -> None:
        self.get_category(category_id).name = name

    def set_category_percentage(self, category_id: str, value: RawNumber) -> None:
        self.get_category(category_id).percentage = _clean(value)

    def add_sub_category(
        self,
        category_id: str,
        name: str = "",
        percentage: RawNumber = "0",
        sub_id: Optional[str] = None,
    ) -> SubCategory:
        cat = self.get_category(category_id)
        if sub_id is None:
            sub_id = cat._next_sub_id()
        elif any(s.id == sub_id for s in cat.sub_categories):
            raise AllocationTreeError(f"Sub-category {sub_id!r} already exists under {category_id!r}")
        sub = SubCategory(id=sub_id, name=name, percentage=_clean(percentage))
        cat.sub_categories.append(sub)
        return sub

    def remove_sub_category(self, category_id: str, sub_id: str) -> None:
        cat = self.get_category(category_id)
        cat.sub_categories.remove(cat.get_sub_category(sub_id))

    def rename_sub_category(self, category_id: str, sub_id: str, name: str) -> None:
        self.get_category(category_id).get_sub_category(sub_id).name = name

    def set_sub_category_percentage(self, category_id: str, sub_id: str, value: RawNumber) -> None:
        self.get_category(category_id).get_sub_category(sub_id).percentage = _clean(value)

    def reset(self, default_categories: Iterable[Tuple[str, str]] = DEFAULT_CATEGORIES) -> None:
        fresh = default_tree(default_categories)
        self.total_amount = fresh.total_amount
        self.categories = fresh.categories

    # ------------------------------------------------------------------
    # Copy / serialization
    # ------------------------------------------------------------------
    def copy(self) -> "AllocationTree":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalAmount": to_storable(self.total_amount),
            "categories": [c.to_dict() for c in self.categories],
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AllocationTree":
        return cls(
            total_amount=raw.get("totalAmount", ""),
            categories=[Category.from_dict(c) for c in raw.get("categories") or []],
        )


def _clean(value: RawNumber) -> RawNumber:
    return sanitize_numeric_text(value) if isinstance(value, str) else to_storable(value)


def default_tree(default_categories: Iterable[Tuple[str, str]] = DEFAULT_CATEGORIES) -> AllocationTree:
    """Return the initial tree: fixed categories, no percentages, no total."""
    return AllocationTree(
        total_amount="",
        categories=[Category(id=cid, name=name, fixed=True) for cid, name in default_categories],
    )
