"""Tests for the allocation session (recompute flow and profile handling)."""
from __future__ import annotations

import pytest

from engine.session import AllocationSession
from policy.validation import INVALID_TOTAL_MESSAGE, MAIN_SUM_MESSAGE
from portfolio.allocation_tree import default_tree
from storage.kv_store import InMemoryStore
from storage.profile_store import ProfileStore


@pytest.fixture
def session():
    return AllocationSession(ProfileStore(InMemoryStore()))


def fill_reference(session: AllocationSession) -> None:
    """Enter the 1,000,000 / 60-40 scenario through the session."""
    session.set_total_amount("1000000")
    session.set_category_percentage("mutualFunds", "60")
    session.set_category_percentage("stocks", "40")
    for name, pct in [("Large Cap", "40"), ("Mid Cap", "35"), ("Small Cap", "25")]:
        session.add_sub_category("mutualFunds", name, pct)


class TestRecompute:
    """Tests for validate -> derive -> chart on every edit."""

    def test_initial_snapshot_is_sample(self, session):
        assert session.snapshot.message == INVALID_TOTAL_MESSAGE
        assert session.snapshot.derived is None
        assert session.snapshot.is_sample
        assert [r.name for r in session.snapshot.chart_series] == ["Mutual Funds", "Stocks"]

    def test_reference_scenario(self, session):
        fill_reference(session)
        snap = session.snapshot

        assert snap.message is None
        mf = snap.derived.category("mutualFunds")
        assert mf.amount == pytest.approx(600000)
        assert mf.sub_categories[0].amount == pytest.approx(240000)
        assert not snap.is_sample
        assert session.display_total() == 1000000

    def test_99_percent_falls_back_to_sample(self, session):
        session.set_total_amount("1000000")
        session.set_category_percentage("mutualFunds", "59")
        snap = session.set_category_percentage("stocks", "40")

        assert snap.message == MAIN_SUM_MESSAGE
        assert snap.derived is None
        assert all(r.is_sample for r in snap.chart_series)

    def test_message_clears_after_fix(self, session):
        fill_reference(session)
        session.set_category_percentage("stocks", "30")
        assert session.snapshot.message == MAIN_SUM_MESSAGE

        session.set_category_percentage("stocks", "40")
        assert session.snapshot.message is None

    def test_each_edit_bumps_generation(self, session):
        start = session.generation
        session.set_total_amount("10")
        session.rename_category("stocks", "Equities")
        assert session.generation == start + 2
        assert session.snapshot.generation == session.generation

    def test_stale_result_not_committed(self, session):
        fill_reference(session)
        stale = session.begin_recompute()
        latest = session.begin_recompute()

        assert session.recompute(stale) is False
        assert session.snapshot.generation != stale
        assert session.recompute(latest) is True
        assert session.snapshot.generation == latest

    def test_recompute_idempotent(self, session):
        fill_reference(session)
        before = session.snapshot

        session.recompute()

        assert session.snapshot.validation == before.validation
        assert session.snapshot.derived == before.derived
        assert session.snapshot.chart_series == before.chart_series

    def test_sub_category_series(self, session):
        fill_reference(session)
        sub = session.add_sub_category("mutualFunds", "Debt", "0")

        names = [r.name for r in session.sub_category_series("mutualFunds")]

        assert sub.name == "Debt"
        assert names == ["Large Cap", "Mid Cap", "Small Cap"]

    def test_sub_category_series_sample_position(self, session):
        names = [r.name for r in session.sub_category_series("stocks")]
        assert names == ["IT Sector", "Banking", "FMCG"]


class TestProfiles:
    """Tests for profile handling through the session."""

    def test_save_sets_current_profile(self, session):
        fill_reference(session)
        session.save_profile("Plan")

        assert session.current_profile == "Plan"
        assert session.profiles.last_used() == "Plan"

    def test_profile_gone_after_clear_all(self, session):
        fill_reference(session)
        session.save_profile("Plan")
        session.clear_all()

        assert session.load_profile("Plan") is False

    def test_load_profile(self, session):
        fill_reference(session)
        session.save_profile("Plan")
        saved = session.tree.copy()
        session.set_total_amount("5")

        assert session.load_profile("Plan") is True
        assert session.tree == saved
        assert session.current_profile == "Plan"
        assert session.snapshot.derived.total_amount == 1000000

    def test_load_missing_is_noop(self, session):
        fill_reference(session)
        before = session.tree.copy()

        assert session.load_profile("nope") is False
        assert session.tree == before

    def test_delete_active_profile_keeps_tree(self, session):
        fill_reference(session)
        session.save_profile("Plan")
        before = session.tree.copy()

        session.delete_profile("Plan")

        assert session.current_profile == ""
        assert session.tree == before
        assert session.snapshot.message is None

    def test_delete_inactive_profile_keeps_indicator(self, session):
        fill_reference(session)
        session.save_profile("Other")
        session.save_profile("Plan")

        session.delete_profile("Other")

        assert session.current_profile == "Plan"
        assert session.profiles.names() == ["Plan"]

    def test_clear_all_resets_everything(self, session):
        fill_reference(session)
        session.save_profile("Plan")

        snap = session.clear_all()

        assert session.profiles.list() == []
        assert session.profiles.last_used() is None
        assert session.current_profile == ""
        assert session.tree == default_tree()
        assert snap.message == INVALID_TOTAL_MESSAGE
        assert snap.is_sample

    def test_clear_all_resets_tree_in_place(self, session):
        fill_reference(session)
        session.add_category("gold", "Gold", "0")
        tree = session.tree

        session.clear_all()

        assert session.tree is tree
        assert [c.id for c in tree.categories] == ["mutualFunds", "stocks"]
        assert tree.total_amount == ""


class TestStart:
    """Tests for restoring the last-used profile at start-up."""

    def test_start_loads_last_used(self):
        kv = InMemoryStore()
        first = AllocationSession(ProfileStore(kv))
        fill_reference(first)
        first.save_profile("Plan")

        second = AllocationSession(ProfileStore(kv))

        assert second.start() == "Plan"
        assert second.current_profile == "Plan"
        assert second.tree == first.tree
        assert second.snapshot.message is None

    def test_start_runs_once(self):
        kv = InMemoryStore()
        first = AllocationSession(ProfileStore(kv))
        fill_reference(first)
        first.save_profile("Plan")

        second = AllocationSession(ProfileStore(kv))
        second.start()
        second.set_total_amount("42")

        assert second.start() is None
        assert second.tree.total_amount == "42"

    def test_start_without_profiles(self, session):
        assert session.start() is None
        assert session.tree == default_tree()
