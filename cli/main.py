"""Allocation planner CLI.

Provides commands for:
- plan: Validate a tree file and show the amount breakdown
- profiles: List, show, save, delete or clear saved profiles
- current: Show the profile restored at start-up
"""
from __future__ import annotations

import argparse
import os
from typing import Any, Dict, List, Optional

from common.config_loader import AllocatorSettings, load_settings, load_yaml
from common.logging_setup import configure_logging
from engine.allocation_engine import DerivedTree
from engine.session import AllocationSession, AllocationSnapshot
from portfolio.allocation_tree import AllocationTree, Category, SubCategory
from reporting.chart_data import series_to_frame
from reporting.currency import format_rupees
from storage.kv_store import JsonFileStore
from storage.profile_store import ProfileError, ProfileStore


def build_tree(raw: Dict[str, Any]) -> AllocationTree:
    """Build an allocation tree from a YAML tree file."""
    categories: List[Category] = []
    for i, c in enumerate(raw.get("categories") or []):
        cat_id = str(c.get("id") or f"category-{i + 1}")
        subs = [
            SubCategory(
                id=str(s.get("id") or f"{cat_id}-{j + 1}"),
                name=str(s.get("name", "")),
                percentage=s.get("percentage", ""),
            )
            for j, s in enumerate(c.get("sub_categories") or [])
        ]
        categories.append(
            Category(
                id=cat_id,
                name=str(c.get("name", "")),
                percentage=c.get("percentage", ""),
                sub_categories=subs,
                fixed=bool(c.get("fixed", False)),
            )
        )
    return AllocationTree(total_amount=raw.get("total_amount", ""), categories=categories)


def build_session(args) -> AllocationSession:
    settings: AllocatorSettings = args.settings
    store = JsonFileStore(args.store or settings.storage_path)
    return AllocationSession(ProfileStore(store), settings)


def print_derived(derived: DerivedTree) -> None:
    print(f"\nBreakdown of {format_rupees(derived.total_amount)}:")
    for cat in derived.categories:
        print(f"  {cat.name}: {format_rupees(round(cat.amount, 2))} ({cat.percentage:g}%)")
        for sub in cat.sub_categories:
            print(f"    {sub.name or 'Unnamed'}: {format_rupees(round(sub.amount, 2))} ({sub.percentage:g}%)")


def print_snapshot(session: AllocationSession, snapshot: AllocationSnapshot) -> None:
    if snapshot.message:
        print(f"Validation: {snapshot.message}")
        if len(snapshot.validation.issues) > 1:
            print("\nAll issues:")
            for issue in snapshot.validation.issues:
                print(f"  - {issue}")
    else:
        print("Validation: OK")

    if snapshot.derived is not None:
        print_derived(snapshot.derived)

    label = " (Sample Data)" if snapshot.is_sample else ""
    print(f"\nChart{label}: total {format_rupees(session.display_total())}")
    frame = series_to_frame(snapshot.chart_series, session.settings.palette)
    print(frame.to_string(index=False))


def cmd_plan(args) -> int:
    """Handle plan command: validate a tree file and show amounts."""
    session = build_session(args)
    snapshot = session.replace_tree(build_tree(load_yaml(args.file)))

    print(f"Allocation Plan: {args.file}")
    print("=" * 50)
    print_snapshot(session, snapshot)
    return 0 if snapshot.validation.is_valid else 1


def cmd_profiles(args) -> int:
    """Handle profiles command: manage saved profiles."""
    session = build_session(args)
    profiles = session.profiles

    if args.profiles_cmd == "list":
        names = profiles.names()
        if not names:
            print("No saved profiles.")
            return 0
        last_used = profiles.last_used()
        print("Saved Profiles:")
        for name in names:
            marker = " *" if name == last_used else ""
            print(f"  {name}{marker}")
        return 0

    if args.profiles_cmd == "show":
        if not session.load_profile(args.name):
            print(f"Error: profile {args.name!r} not found")
            return 1
        print(f"Profile: {args.name}")
        print("=" * 50)
        print_snapshot(session, session.snapshot)
        return 0

    if args.profiles_cmd == "save":
        session.replace_tree(build_tree(load_yaml(args.file)))
        try:
            session.save_profile(args.name)
        except ProfileError as e:
            print(f"Error: {e}")
            return 1
        print(f"Saved profile {args.name!r}")
        return 0

    if args.profiles_cmd == "delete":
        if not session.delete_profile(args.name):
            print(f"Error: profile {args.name!r} not found")
            return 1
        print(f"Deleted profile {args.name!r}")
        return 0

    if args.profiles_cmd == "clear":
        session.clear_all()
        print("Cleared all saved profiles.")
        return 0

    print(f"Unknown profiles command: {args.profiles_cmd}")
    return 1


def cmd_current(args) -> int:
    """Handle current command: restore the last-used profile and show it."""
    session = build_session(args)
    name = session.start()
    print(f"Current profile: {name or '(none)'}")
    print("=" * 50)
    print_snapshot(session, session.snapshot)
    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    p = argparse.ArgumentParser(
        prog="cli.main",
        description="Allocation planner CLI: split an amount across categories and sub-categories",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # Common arguments for all commands
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default=os.environ.get("ALLOCATOR_CONFIG"),
        help="Allocator config file (default: bundled config/allocator.yaml)",
    )
    common.add_argument("--store", default=None, help="Profile store file (default: from config)")
    common.add_argument("--debug", action="store_true", help="Verbose console logging")

    # Plan command
    plan_p = sub.add_parser("plan", parents=[common], help="Validate a tree file and show amounts")
    plan_p.add_argument("file", help="YAML file with total_amount and categories")
    plan_p.set_defaults(func=cmd_plan)

    # Profiles command
    prof = sub.add_parser("profiles", help="Manage saved profiles")
    prof_sub = prof.add_subparsers(dest="profiles_cmd", required=True)

    prof_sub.add_parser("list", parents=[common], help="List saved profiles")

    prof_show = prof_sub.add_parser("show", parents=[common], help="Load a profile and show its breakdown")
    prof_show.add_argument("name", help="Profile name")

    prof_save = prof_sub.add_parser("save", parents=[common], help="Save a tree file as a profile")
    prof_save.add_argument("name", help="Profile name")
    prof_save.add_argument("file", help="YAML file with total_amount and categories")

    prof_delete = prof_sub.add_parser("delete", parents=[common], help="Delete a profile")
    prof_delete.add_argument("name", help="Profile name")

    prof_sub.add_parser("clear", parents=[common], help="Delete every profile and the last-used pointer")

    prof.set_defaults(func=cmd_profiles)

    # Current command
    cur = sub.add_parser("current", parents=[common], help="Show the last-used profile")
    cur.set_defaults(func=cmd_current)

    args = p.parse_args(argv)
    args.settings = load_settings(args.config)
    configure_logging(debug=args.debug or args.settings.debug)
    raise SystemExit(args.func(args))


if __name__ == "__main__":
    main()
