"""Smoke tests for module imports and basic functionality."""
from __future__ import annotations


def test_imports():
    """All main modules should be importable."""
    import cli.main
    import common.config_loader
    import common.logging_setup
    import common.numeric
    import engine.allocation_engine
    import engine.session
    import policy.validation
    import portfolio.allocation_tree
    import reporting.chart_data
    import reporting.currency
    import storage.kv_store
    import storage.profile_store


def test_cli_main_help(capsys):
    """CLI should show help without error."""
    import sys
    from cli.main import main

    sys.argv = ["cli.main", "--help"]
    try:
        main()
    except SystemExit as e:
        assert e.code == 0

    captured = capsys.readouterr()
    assert "plan" in captured.out or "profiles" in captured.out


def test_configure_logging():
    """Logging setup should accept both modes."""
    import logging

    import structlog

    from common.logging_setup import configure_logging

    configure_logging(debug=True)
    configure_logging(debug=False)
    structlog.get_logger("smoke").info("smoke_test")
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


def test_end_to_end_session():
    """Session built from bundled config should derive the reference scenario."""
    from common.config_loader import load_settings
    from engine.session import AllocationSession
    from storage.kv_store import InMemoryStore
    from storage.profile_store import ProfileStore

    session = AllocationSession(ProfileStore(InMemoryStore()), load_settings())
    session.set_total_amount("1000000")
    session.set_category_percentage("mutualFunds", "60")
    session.set_category_percentage("stocks", "40")

    assert session.snapshot.message is None
    assert session.snapshot.derived.allocated_total == 1000000
