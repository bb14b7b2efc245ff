from __future__ import annotations
import logging
import tomllib
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent
TEMPLATES_DIR = CONTENT_DIR / "templates"

_cache: dict[str, dict[str, Any]] = {}


def load_toml(filepath: Path) -> dict[str, Any]:
    with open(filepath, "rb") as f:
        return tomllib.load(f)


def _load_cached(filename: str) -> dict[str, Any]:
    if filename not in _cache:
        path = CONTENT_DIR / filename
        if not path.exists():
            logger.warning(f"Content file missing: {path}")
            _cache[filename] = {}
        else:
            _cache[filename] = load_toml(path)
    return _cache[filename]


def clear_cache() -> None:
    _cache.clear()


def load_enemy_templates() -> dict[str, dict[str, Any]]:
    """Enemy templates keyed by template id (the TOML table name)."""
    data = _load_cached("enemies.toml")
    templates = {}
    for template_id, template in data.items():
        if not isinstance(template, dict) or "name" not in template:
            logger.warning(f"Skipping malformed enemy template: {template_id!r}")
            continue
        templates[template_id] = {"id": template_id, **template}
    return templates


def load_loot_tables() -> dict[str, Any]:
    """Loot tables: ``tables``/``boss_tables`` keyed by actor type, plus rarity multipliers."""
    data = _load_cached("loot_tables.toml")
    return {
        "tables": data.get("tables", {}),
        "boss_tables": data.get("boss_tables", {}),
        "rarity_multiplier": data.get("rarity_multiplier", {}),
    }


def load_item_stats() -> dict[str, dict[str, dict[str, Any]]]:
    """Known equipment stats: ``weapons`` and ``armor`` keyed by lower-case name."""
    data = _load_cached("item_stats.toml")
    return {
        "weapons": data.get("weapons", {}),
        "armor": data.get("armor", {}),
    }
