"""Chart-ready records for the category and sub-category views.

Whether real or sample data is charted is decided in one place,
:func:`has_valid_data`. Sample records carry ``is_sample=True`` so the
renderer can label them.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import List, Optional, Sequence

import pandas as pd

from common.config_loader import DEFAULT_PALETTE, DEFAULT_SAMPLE, SampleCategory, SampleData
from engine.allocation_engine import DerivedTree

UNNAMED = "Unnamed"

FRAME_COLUMNS = ["name", "percentage", "amount", "color_index", "is_sample", "color"]


@dataclass(frozen=True)
class ChartRecord:
    name: str
    percentage: float
    amount: float
    color_index: int
    is_sample: bool = False


def has_valid_data(derived: Optional[DerivedTree]) -> bool:
    return (
        derived is not None
        and derived.total_amount > 0
        and any(c.percentage > 0 for c in derived.categories)
    )


def _sample_category_series(sample: SampleData, palette_size: int) -> List[ChartRecord]:
    return [
        ChartRecord(
            name=cat.name,
            percentage=cat.percentage,
            amount=sample.total_amount * cat.percentage / 100,
            color_index=i % palette_size,
            is_sample=True,
        )
        for i, cat in enumerate(sample.categories)
    ]


def _sample_sub_series(
    sample: SampleData, cat: SampleCategory, color_index: int
) -> List[ChartRecord]:
    cat_amount = sample.total_amount * cat.percentage / 100
    return [
        ChartRecord(
            name=sub.name,
            percentage=sub.percentage,
            amount=cat_amount * sub.percentage / 100,
            color_index=color_index,
            is_sample=True,
        )
        for sub in cat.sub_categories
        if sub.percentage > 0
    ]


def to_chart_series(
    derived: Optional[DerivedTree],
    palette_size: int = len(DEFAULT_PALETTE),
    sample: SampleData = DEFAULT_SAMPLE,
) -> List[ChartRecord]:
    """One record per category, or the sample series when nothing valid exists."""
    if not has_valid_data(derived):
        return _sample_category_series(sample, palette_size)
    return [
        ChartRecord(
            name=cat.name,
            percentage=cat.percentage,
            amount=cat.amount,
            color_index=i % palette_size,
        )
        for i, cat in enumerate(derived.categories)
    ]


def sub_category_series(
    derived: Optional[DerivedTree],
    category_id: str,
    palette_size: int = len(DEFAULT_PALETTE),
    sample: SampleData = DEFAULT_SAMPLE,
    category_position: Optional[int] = None,
) -> List[ChartRecord]:
    """Records for the sub-categories of one category.

    All records share the category's color. Sub-categories with a zero or
    negative percentage are left out. Without valid data the sample
    sub-series at ``category_position`` is returned; a real category with
    no sub-categories shows the sample breakdown of the same name, if any.
    """
    if not has_valid_data(derived):
        if category_position is None or not 0 <= category_position < len(sample.categories):
            return []
        cat = sample.categories[category_position]
        return _sample_sub_series(sample, cat, category_position % palette_size)

    position = next((i for i, c in enumerate(derived.categories) if c.id == category_id), None)
    if position is None:
        return []
    cat = derived.categories[position]
    color_index = position % palette_size

    if not cat.sub_categories:
        sample_cat = sample.category(cat.name)
        return _sample_sub_series(sample, sample_cat, color_index) if sample_cat else []

    return [
        ChartRecord(
            name=sub.name or UNNAMED,
            percentage=sub.percentage,
            amount=sub.amount,
            color_index=color_index,
        )
        for sub in cat.sub_categories
        if sub.percentage > 0
    ]


def display_total(derived: Optional[DerivedTree], sample: SampleData = DEFAULT_SAMPLE) -> float:
    """Total shown alongside the category chart."""
    return derived.total_amount if has_valid_data(derived) else sample.total_amount


def series_to_frame(records: Sequence[ChartRecord], palette: Sequence[str] = DEFAULT_PALETTE) -> pd.DataFrame:
    df = pd.DataFrame([asdict(r) for r in records], columns=FRAME_COLUMNS[:-1])
    df["color"] = [palette[i % len(palette)] for i in df["color_index"]]
    return df
