"""Read-only rule tables: creature and spell definitions stored as JSON."""

from __future__ import annotations

import json
import logging
import os

from pydantic import BaseModel, ValidationError

from config import CONTENT_DIR
from models.actions import Action, ActionKind
from models.characters import EnemyTemplate

logger = logging.getLogger(__name__)

CREATURES_FILE = "creatures.json"
SPELLS_FILE = "spells.json"


class CatalogError(Exception):
    """A rule table is missing, unreadable, or doesn't match the models."""


def _load_table(path: str) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Cannot read rule table {path}: {e}") from e
    if not isinstance(data, dict):
        raise CatalogError(f"Rule table {path} must be a JSON object keyed by id")
    return data


def _validate(path: str, data: dict, model: type[BaseModel], **defaults) -> dict:
    entries = {}
    for key, raw in data.items():
        try:
            entries[key] = model.model_validate({**defaults, **raw})
        except ValidationError as e:
            raise CatalogError(f"Invalid entry '{key}' in {path}: {e}") from e
    logger.debug("Loaded %d entries from %s", len(entries), path)
    return entries


def load_creatures(content_dir: str = CONTENT_DIR) -> dict[str, EnemyTemplate]:
    """Load the bestiary, keyed by creature id (e.g. "goblin").

    Raises:
        CatalogError: If the file can't be read or an entry is invalid.
    """
    path = os.path.join(content_dir, CREATURES_FILE)
    return _validate(path, _load_table(path), EnemyTemplate)


def load_spells(content_dir: str = CONTENT_DIR) -> dict[str, Action]:
    """Load spell definitions as actions, keyed by spell id (e.g. "fire_bolt").

    Raises:
        CatalogError: If the file can't be read or an entry is invalid.
    """
    path = os.path.join(content_dir, SPELLS_FILE)
    return _validate(path, _load_table(path), Action, kind=ActionKind.SPELL.value)


def resolve_creatures(
    keys: list[str],
    creatures: dict[str, EnemyTemplate],
) -> list[EnemyTemplate]:
    """Turn creature ids into templates, numbering repeats ("goblin_1", "goblin_2").

    Raises:
        CatalogError: If a key isn't in the bestiary.
    """
    templates = []
    seen: dict[str, int] = {}
    for key in keys:
        if key not in creatures:
            raise CatalogError(f"Unknown creature '{key}'")
        seen[key] = seen.get(key, 0) + 1
        template = creatures[key].model_copy(update={"instance_id": f"{key}_{seen[key]}"})
        templates.append(template)
    return templates
