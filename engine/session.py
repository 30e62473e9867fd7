"""A single owned combat encounter with its RNG, AI scheduler, and UI selection."""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence

from engine.combat import (
    dash,
    end_combat_session,
    handle_tile_click,
    next_turn,
    run_ai_turn,
    skip_turn,
    start_combat,
)
from engine.scheduler import TickScheduler
from models.actions import Action, ActionResult
from models.characters import CharacterRecord, EnemyTemplate
from models.combat_state import CombatState
from models.combatant import Combatant, Faction

logger = logging.getLogger(__name__)


class CombatSession:
    """Owns one CombatState and drives it from UI events.

    Every mutating call finishes by pumping the scheduler, so enemy turns
    (and skipped turns) have fully played out by the time it returns and
    control is back with the player or the encounter is decided.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()
        self.state = CombatState()
        self.scheduler = TickScheduler()
        self.processing = False     # An AI or skip routine is in flight
        self.generation = 0         # Bumped whenever the encounter is replaced
        self.player: CharacterRecord | None = None
        self.selected_action: Action | None = None

    # --- lifecycle -------------------------------------------------------

    def start(
        self,
        player: CharacterRecord,
        enemies: Sequence[EnemyTemplate],
        hazards: Sequence[Combatant] = (),
    ) -> CombatState:
        """Open a new encounter, replacing any running one."""
        state = start_combat(player, enemies, hazards, rng=self.rng)
        self._reset()
        self.player = player
        self.state = state
        self.pump()
        return self.state

    def end(self) -> CombatState:
        """Close the encounter. Safe at any time, including mid AI turn."""
        self._reset()
        self.state = end_combat_session(self.state)
        self.player = None
        return self.state

    def restore(self, state: CombatState, player: CharacterRecord | None) -> CombatState:
        """Swap in a previously saved encounter."""
        self._reset()
        self.state = state
        self.player = player
        self.pump()
        return self.state

    def _reset(self) -> None:
        self.generation += 1
        self.scheduler.cancel_all()
        self.processing = False
        self.selected_action = None

    # --- player input ----------------------------------------------------

    def select_action(self, name: str | None) -> Action | None:
        """Pick one of the current actor's actions by name, or clear the selection.

        Raises:
            ValueError: If the actor has no action with that name.
        """
        if name is None:
            self.selected_action = None
            return None
        current = self.state.current()
        actions = list(current.actions) if current is not None else []
        for action in actions:
            if action.name.lower() == name.lower():
                self.selected_action = action
                return action
        raise ValueError(f"Unknown action '{name}'")

    def click(self, x: int, y: int) -> ActionResult:
        """Forward a grid click, then let any enemy turns play out."""
        result = handle_tile_click(self.state, x, y, self.selected_action, self.player, self.rng)
        if result.success and self.selected_action is not None:
            self.selected_action = None
        self.pump()
        return result

    def dash(self) -> ActionResult:
        result = dash(self.state)
        self.pump()
        return result

    def end_turn(self) -> None:
        """End the turn of the player or one of their allies.

        Ignored while an AI turn is in flight.
        """
        if self.processing:
            return
        current = self.state.current()
        if current is None or not current.is_player_side:
            return
        self.selected_action = None
        next_turn(self.state, self.rng)
        self.pump()

    # --- scheduling ------------------------------------------------------

    def pump(self) -> None:
        """Run queued AI and skip routines until the player is up again."""
        while self._schedule_turn_routine():
            self.scheduler.drain()

    def _schedule_turn_routine(self) -> bool:
        state = self.state
        if self.processing or not state.is_active or state.result is not None:
            return False
        current = state.current()
        if current is None:
            return False
        if not current.is_active:
            routine = skip_turn(self)
        elif current.faction == Faction.ENEMY:
            routine = run_ai_turn(self)
        else:
            return False
        logger.debug("Scheduling turn routine for %s", current.id)
        self.processing = True
        self.scheduler.spawn(routine)
        return True
