"""Named snapshots of allocation trees.

Profiles live under two keys of a :class:`~storage.kv_store.KeyValueStore`:

- ``investmentProfiles``: JSON array of ``{name, totalAmount, categories}``
- ``lastUsedProfile``: the plain name of the last saved or loaded profile

Loading never validates; a stored tree is trusted as-is.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog

from portfolio.allocation_tree import AllocationTree
from storage.kv_store import KeyValueStore

logger = structlog.get_logger(__name__)

PROFILES_KEY = "investmentProfiles"
LAST_USED_KEY = "lastUsedProfile"


class ProfileError(ValueError):
    """Raised for profile names that cannot be stored."""

    pass


@dataclass(frozen=True)
class Profile:
    name: str
    tree: AllocationTree

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, **self.tree.to_dict()}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Profile":
        return cls(name=str(raw["name"]), tree=AllocationTree.from_dict(raw))


class ProfileStore:
    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def _read_profiles(self) -> List[Dict[str, Any]]:
        raw = self.store.get_item(PROFILES_KEY)
        if not raw:
            return []
        return json.loads(raw)

    def _write_profiles(self, profiles: List[Dict[str, Any]]) -> None:
        self.store.set_item(PROFILES_KEY, json.dumps(profiles, allow_nan=False))

    def list(self) -> List[Profile]:
        return [Profile.from_dict(p) for p in self._read_profiles()]

    def names(self) -> List[str]:
        return [str(p["name"]) for p in self._read_profiles()]

    def save(self, name: str, tree: AllocationTree) -> Profile:
        """Store a copy of ``tree`` under ``name``, replacing any profile of that name.

        The saved profile goes to the end of the collection and becomes the
        last-used one.
        """
        if not name or not name.strip():
            raise ProfileError("Profile name must not be empty")
        profile = Profile(name=name, tree=tree.copy())
        profiles = [p for p in self._read_profiles() if p.get("name") != name]
        profiles.append(profile.to_dict())
        self._write_profiles(profiles)
        self.store.set_item(LAST_USED_KEY, name)
        logger.info("profile_saved", profile=name, profile_count=len(profiles))
        return profile

    def get(self, name: str) -> Optional[Profile]:
        raw = next((p for p in self._read_profiles() if p.get("name") == name), None)
        return Profile.from_dict(raw) if raw is not None else None

    def load(self, name: str) -> Optional[AllocationTree]:
        """Return a fresh copy of the stored tree, or ``None`` if there is none."""
        profile = self.get(name)
        if profile is None:
            logger.info("profile_not_found", profile=name)
            return None
        self.store.set_item(LAST_USED_KEY, name)
        logger.info("profile_loaded", profile=name)
        return profile.tree

    def delete(self, name: str) -> bool:
        """Remove ``name``; returns False when no such profile existed."""
        profiles = self._read_profiles()
        remaining = [p for p in profiles if p.get("name") != name]
        if len(remaining) == len(profiles):
            return False
        self._write_profiles(remaining)
        if self.store.get_item(LAST_USED_KEY) == name:
            self.store.remove_item(LAST_USED_KEY)
        logger.info("profile_deleted", profile=name)
        return True

    def last_used(self) -> Optional[str]:
        return self.store.get_item(LAST_USED_KEY) or None

    def clear_all(self) -> None:
        self.store.remove_item(PROFILES_KEY)
        self.store.remove_item(LAST_USED_KEY)
        logger.info("profiles_cleared")

    def initialize(self) -> Optional[Profile]:
        """Resolve the last-used pointer once at start-up.

        Returns the profile it names, or ``None`` when there is no pointer
        or it names a profile that no longer exists.
        """
        name = self.last_used()
        if name is None:
            return None
        profile = self.get(name)
        if profile is None:
            logger.warning("last_used_profile_missing", profile=name)
        return profile
