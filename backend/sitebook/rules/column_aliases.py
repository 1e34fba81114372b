"""
BOQ column vocabulary: loaded from config/boq_column_aliases.yaml so new header spellings
can be added without a code change. The built-in default matches the shipped YAML.
"""
from pathlib import Path
from typing import Dict, List

import yaml

MAPPABLE_FIELDS = ("description", "unit", "quantity", "rate", "category")


def _config_path() -> Path:
    # sitebook/rules -> sitebook -> backend, then config/
    return Path(__file__).resolve().parents[2] / "config" / "boq_column_aliases.yaml"


def _default_aliases() -> Dict[str, List[str]]:
    return {
        "description": ["desc", "item"],
        "unit": ["unit"],
        "quantity": ["qty", "quantity"],
        "rate": ["rate", "price"],
        "category": ["cat", "group"],
    }


def _default_required() -> List[str]:
    return ["description", "unit", "quantity", "rate"]


def _load() -> dict:
    path = _config_path()
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_column_aliases() -> Dict[str, List[str]]:
    fields = _load().get("fields") or _default_aliases()
    # keep field order stable and drop anything the importer does not know
    return {
        name: [str(a).lower() for a in fields.get(name, [])]
        for name in MAPPABLE_FIELDS
        if fields.get(name)
    }


def load_required_fields() -> List[str]:
    return list(_load().get("required") or _default_required())
