from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import yaml

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "allocator.yaml"

DEFAULT_PALETTE: Tuple[str, ...] = (
    "#1E88E5",
    "#00C853",
    "#FF4081",
    "#FFC107",
    "#7C4DFF",
    "#00BCD4",
)

def load_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

@dataclass(frozen=True)
class SampleSubCategory:
    name: str
    percentage: float

@dataclass(frozen=True)
class SampleCategory:
    name: str
    percentage: float
    sub_categories: Tuple[SampleSubCategory, ...] = ()

@dataclass(frozen=True)
class SampleData:
    total_amount: float
    categories: Tuple[SampleCategory, ...]

    def category(self, name: str) -> Optional[SampleCategory]:
        return next((c for c in self.categories if c.name == name), None)

DEFAULT_SAMPLE = SampleData(
    total_amount=1000000.0,
    categories=(
        SampleCategory(
            "Mutual Funds",
            60.0,
            (
                SampleSubCategory("Large Cap", 40.0),
                SampleSubCategory("Mid Cap", 35.0),
                SampleSubCategory("Small Cap", 25.0),
            ),
        ),
        SampleCategory(
            "Stocks",
            40.0,
            (
                SampleSubCategory("IT Sector", 45.0),
                SampleSubCategory("Banking", 35.0),
                SampleSubCategory("FMCG", 20.0),
            ),
        ),
    ),
)

DEFAULT_CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("mutualFunds", "Mutual Funds"),
    ("stocks", "Stocks"),
)

@dataclass(frozen=True)
class AllocatorSettings:
    tolerance: float = 1e-4
    palette: Tuple[str, ...] = DEFAULT_PALETTE
    default_categories: Tuple[Tuple[str, str], ...] = DEFAULT_CATEGORIES
    sample: SampleData = DEFAULT_SAMPLE
    storage_path: Path = field(default_factory=lambda: Path(".wealthsplit/store.json"))
    debug: bool = False

    @property
    def palette_size(self) -> int:
        return len(self.palette)

def _parse_sample(raw: Dict[str, Any]) -> SampleData:
    categories: List[SampleCategory] = []
    for cat in raw.get("categories") or []:
        subs = tuple(
            SampleSubCategory(name=str(s["name"]), percentage=float(s["percentage"]))
            for s in cat.get("sub_categories") or []
        )
        categories.append(
            SampleCategory(name=str(cat["name"]), percentage=float(cat["percentage"]), sub_categories=subs)
        )
    return SampleData(total_amount=float(raw.get("total_amount", 0.0)), categories=tuple(categories))

def settings_from_dict(raw: Dict[str, Any]) -> AllocatorSettings:
    """Build settings from a parsed config mapping; absent keys keep their defaults."""
    base = AllocatorSettings()

    palette = tuple(str(c) for c in raw.get("palette") or ()) or base.palette

    defaults = raw.get("default_categories")
    default_categories = (
        tuple((str(c["id"]), str(c["name"])) for c in defaults) if defaults else base.default_categories
    )

    sample = _parse_sample(raw["sample"]) if raw.get("sample") else base.sample

    storage = raw.get("storage") or {}
    storage_path = Path(storage["path"]) if storage.get("path") else base.storage_path

    logging_cfg = raw.get("logging") or {}

    return AllocatorSettings(
        tolerance=float(raw.get("tolerance", base.tolerance)),
        palette=palette,
        default_categories=default_categories,
        sample=sample,
        storage_path=storage_path,
        debug=bool(logging_cfg.get("debug", base.debug)),
    )

def load_settings(path: str | Path | None = None) -> AllocatorSettings:
    # The bundled file is absent from non-editable installs; an explicit path must exist.
    if path is None and not DEFAULT_CONFIG_PATH.exists():
        return AllocatorSettings()
    return settings_from_dict(load_yaml(path or DEFAULT_CONFIG_PATH))
