"""Static sample data for the fallback store."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List

from app.entities import ENTITIES

logger = logging.getLogger("scholar.store")

SEED_DIR = Path(__file__).resolve().parent / "seed_data"


def load_table(path: Path) -> List[dict]:
    """Read one ``<table>.json`` file; a missing or malformed file yields no rows."""
    if not path.exists():
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("seed_load_failed path=%s error=%s", path, exc)
        return []
    if not isinstance(data, list):
        logger.warning("seed_load_failed path=%s error=expected a list", path)
        return []
    return [item for item in data if isinstance(item, dict) and isinstance(item.get("Id"), int)]


def load_seed(directory: Path | str | None = None) -> Dict[str, List[dict]]:
    base = Path(directory) if directory else SEED_DIR
    seed: Dict[str, List[dict]] = {}
    for schema in ENTITIES.values():
        rows = load_table(base / f"{schema.table}.json")
        seed[schema.table] = rows
        logger.info("seed_loaded table=%s rows=%s", schema.table, len(rows))
    return seed
