"""Allocation session: the in-memory tree plus its latest computed view.

Every change to the tree bumps a generation counter and triggers a
synchronous recompute (validate, derive, chart). A recompute only commits
its snapshot when its token still matches the latest generation, so a
result computed from a superseded tree never replaces a newer one.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from common.config_loader import AllocatorSettings
from common.numeric import RawNumber
from engine.allocation_engine import DerivedTree, try_derive
from policy.validation import ValidationResult, validate
from portfolio.allocation_tree import AllocationTree, SubCategory, default_tree
from reporting import chart_data
from reporting.chart_data import ChartRecord
from storage.profile_store import ProfileStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AllocationSnapshot:
    """Everything derived from one version of the tree."""

    generation: int
    validation: ValidationResult
    derived: Optional[DerivedTree]
    chart_series: List[ChartRecord] = field(default_factory=list)

    @property
    def message(self) -> Optional[str]:
        return self.validation.message

    @property
    def is_sample(self) -> bool:
        return not chart_data.has_valid_data(self.derived)


class AllocationSession:
    def __init__(self, profiles: ProfileStore, settings: Optional[AllocatorSettings] = None) -> None:
        self.settings = settings or AllocatorSettings()
        self.profiles = profiles
        self.tree: AllocationTree = default_tree(self.settings.default_categories)
        self.current_profile: str = ""
        self._generation = 0
        self._started = False
        self.snapshot: AllocationSnapshot = self._compute(self._generation)

    # ------------------------------------------------------------------
    # Recompute
    # ------------------------------------------------------------------
    @property
    def generation(self) -> int:
        return self._generation

    def begin_recompute(self) -> int:
        """Mark the tree as changed and return the token for its recompute."""
        self._generation += 1
        return self._generation

    def _compute(self, token: int) -> AllocationSnapshot:
        tolerance = self.settings.tolerance
        result = validate(self.tree, tolerance)
        derived = try_derive(self.tree, tolerance) if result.is_valid else None
        series = chart_data.to_chart_series(derived, self.settings.palette_size, self.settings.sample)
        return AllocationSnapshot(generation=token, validation=result, derived=derived, chart_series=series)

    def recompute(self, token: Optional[int] = None) -> bool:
        """Recompute for ``token`` and commit unless a newer change exists.

        Returns True when the snapshot was committed.
        """
        if token is None:
            token = self._generation
        snapshot = self._compute(token)
        if token != self._generation:
            logger.debug("stale_recompute_dropped", token=token, latest=self._generation)
            return False
        self.snapshot = snapshot
        return True

    def _changed(self) -> AllocationSnapshot:
        self.recompute(self.begin_recompute())
        return self.snapshot

    # ------------------------------------------------------------------
    # Tree edits
    # ------------------------------------------------------------------
    def set_total_amount(self, value: RawNumber) -> AllocationSnapshot:
        self.tree.set_total_amount(value)
        return self._changed()

    def add_category(self, category_id: str, name: str, percentage: RawNumber = "") -> AllocationSnapshot:
        self.tree.add_category(category_id, name, percentage)
        return self._changed()

    def remove_category(self, category_id: str) -> AllocationSnapshot:
        self.tree.remove_category(category_id)
        return self._changed()

    def rename_category(self, category_id: str, name: str) -> AllocationSnapshot:
        self.tree.rename_category(category_id, name)
        return self._changed()

    def set_category_percentage(self, category_id: str, value: RawNumber) -> AllocationSnapshot:
        self.tree.set_category_percentage(category_id, value)
        return self._changed()

    def add_sub_category(self, category_id: str, name: str = "", percentage: RawNumber = "0") -> SubCategory:
        sub = self.tree.add_sub_category(category_id, name, percentage)
        self._changed()
        return sub

    def remove_sub_category(self, category_id: str, sub_id: str) -> AllocationSnapshot:
        self.tree.remove_sub_category(category_id, sub_id)
        return self._changed()

    def rename_sub_category(self, category_id: str, sub_id: str, name: str) -> AllocationSnapshot:
        self.tree.rename_sub_category(category_id, sub_id, name)
        return self._changed()

    def set_sub_category_percentage(self, category_id: str, sub_id: str, value: RawNumber) -> AllocationSnapshot:
        self.tree.set_sub_category_percentage(category_id, sub_id, value)
        return self._changed()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def sub_category_series(self, category_id: str) -> List[ChartRecord]:
        position = next((i for i, c in enumerate(self.tree.categories) if c.id == category_id), None)
        return chart_data.sub_category_series(
            self.snapshot.derived,
            category_id,
            palette_size=self.settings.palette_size,
            sample=self.settings.sample,
            category_position=position,
        )

    def display_total(self) -> float:
        return chart_data.display_total(self.snapshot.derived, self.settings.sample)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------
    def start(self) -> Optional[str]:
        """Load the last-used profile, once per session.

        Returns the name of the loaded profile, if any.
        """
        if self._started:
            return None
        self._started = True
        profile = self.profiles.initialize()
        if profile is None:
            return None
        self.replace_tree(profile.tree, profile.name)
        return profile.name

    def replace_tree(self, tree: AllocationTree, profile_name: str = "") -> AllocationSnapshot:
        """Swap in a whole new tree, as when a profile is loaded."""
        self.tree = tree
        self.current_profile = profile_name
        return self._changed()

    def save_profile(self, name: str) -> None:
        self.profiles.save(name, self.tree)
        self.current_profile = name

    def load_profile(self, name: str) -> bool:
        tree = self.profiles.load(name)
        if tree is None:
            return False
        self.replace_tree(tree, name)
        return True

    def delete_profile(self, name: str) -> bool:
        deleted = self.profiles.delete(name)
        if self.current_profile == name:
            self.current_profile = ""
        return deleted

    def clear_all(self) -> AllocationSnapshot:
        """Wipe every stored profile and reset the session to its initial state."""
        self.profiles.clear_all()
        self.current_profile = ""
        self.tree.reset(self.settings.default_categories)
        logger.info("session_reset")
        return self._changed()
