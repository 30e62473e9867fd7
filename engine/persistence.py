"""Save and load a combat session as a single JSON blob."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel

from models.characters import CharacterRecord
from models.combat_state import CombatState

logger = logging.getLogger(__name__)


class SessionSnapshot(BaseModel):
    """Everything needed to resume an encounter after a restart."""
    state: CombatState
    player: CharacterRecord | None = None


def save_snapshot(snapshot: SessionSnapshot, path: str) -> None:
    """Persist a session snapshot to a JSON file.

    Writes to a temporary file first, then renames for atomicity.

    Args:
        snapshot: The snapshot to save.
        path: File path to write to.
    """
    tmp_path = path + ".tmp"
    data = snapshot.model_dump(mode="json", by_alias=True)
    with open(tmp_path, "w") as f:
        json.dump(data, f)
    os.replace(tmp_path, path)
    logger.debug("Saved combat session to %s", path)


def load_snapshot(path: str) -> SessionSnapshot | None:
    """Load a session snapshot from a JSON file.

    Args:
        path: File path to read from.

    Returns:
        The loaded SessionSnapshot, or None if the file doesn't exist.
    """
    if not Path(path).exists():
        return None
    with open(path) as f:
        data = json.load(f)
    return SessionSnapshot.model_validate(data)
