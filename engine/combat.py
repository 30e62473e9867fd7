"""Combat orchestration: encounter setup, action resolution, turns, win conditions."""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from typing import TYPE_CHECKING

from config import (
    AI_END_TICKS,
    AI_MOVE_PAUSE_TICKS,
    AI_THINK_TICKS,
    DEAD_SKIP_TICKS,
    DEFAULT_DAMAGE_DICE,
    DEFAULT_PUSH_DISTANCE_M,
    ENEMY_START_X,
    ENEMY_START_Y,
    PLAYER_START,
)
from engine.conditions import (
    apply_condition,
    apply_damage,
    apply_healing,
    apply_temporary_hp,
    has_condition,
    is_immobilized,
    is_incapacitated,
    tick_conditions,
)
from engine.dice import evaluate_expression
from engine.grid import AreaShape, Tile, affected_tiles, distance
from engine.hazards import check_hazard_interactions
from engine.movement import forced_movement, is_occupied, is_valid_teleport
from engine.npc import pick_target, plan_ai_move
from engine.rules import (
    ability_modifier,
    cantrip_dice,
    initiative_bonus,
    resolve_attack_roll,
    resolve_saving_throw,
    roll_initiative,
    spell_attack_bonus,
    spell_save_dc,
    spellcasting_modifier,
    speed_to_tiles,
    weapon_attack_bonus,
    weapon_range_tiles,
)
from engine.scheduler import Routine
from engine.special_effects import end_banishment, process_special_effect
from models.actions import (
    Action,
    ActionKind,
    ActionResult,
    Effect,
    EffectType,
    SaveOutcome,
    SpecialEffect,
)
from models.characters import CharacterRecord, EnemyTemplate
from models.combat_state import CombatResult, CombatState, TurnResources
from models.combatant import Combatant, Faction
from models.conditions import ConditionType, HazardTrigger

if TYPE_CHECKING:
    from engine.session import CombatSession

logger = logging.getLogger(__name__)

# Effects that resolve per target through hit/save and then change HP or conditions
_TARGETED_EFFECTS = {
    EffectType.DAMAGE,
    EffectType.HEALING,
    EffectType.TEMP_HP,
    EffectType.APPLY_CONDITION,
    EffectType.SPECIAL,
}
_ROLLED_EFFECTS = {EffectType.DAMAGE, EffectType.HEALING, EffectType.TEMP_HP}
_TARGETLESS_EFFECTS = {EffectType.TELEPORT, EffectType.SUMMON}


# ---------------------------------------------------------------------------
# Encounter lifecycle
# ---------------------------------------------------------------------------


def player_combatant(player: CharacterRecord, rng: random.Random | None = None) -> Combatant:
    """Build the player's combatant from the character record, rolling initiative."""
    stats = player.stats
    abilities = stats.abilities
    return Combatant(
        id=player.id,
        name=player.name,
        faction=Faction.PLAYER,
        hp=stats.hp if stats.hp is not None else stats.max_hp,
        max_hp=stats.max_hp,
        x=PLAYER_START[0],
        y=PLAYER_START[1],
        armor_class=stats.armor_class,
        initiative=roll_initiative(abilities.dexterity, initiative_bonus(player), rng),
        speed=stats.speed,
        abilities=abilities,
        attack_bonus=spell_attack_bonus(player),
        save_dc=spell_save_dc(player),
        actions=player.actions,
    )


def enemy_combatant(
    template: EnemyTemplate,
    index: int,
    rng: random.Random | None = None,
) -> Combatant:
    """Build an enemy combatant from a creature template, rolling initiative."""
    hp = template.hit_points()
    return Combatant(
        id=template.instance_id or f"enemy_{index}",
        name=template.name or f"Enemy {index + 1}",
        faction=Faction.ENEMY,
        hp=hp,
        max_hp=hp,
        x=ENEMY_START_X,
        y=ENEMY_START_Y + index,
        armor_class=template.armor_class,
        initiative=roll_initiative(template.stats.dexterity, 0, rng),
        speed=template.speed,
        abilities=template.stats,
        attack_bonus=template.attack_bonus,
        save_dc=template.save_dc,
        actions=template.actions,
    )


def start_combat(
    player: CharacterRecord,
    enemies: Sequence[EnemyTemplate],
    hazards: Sequence[Combatant] = (),
    rng: random.Random | None = None,
) -> CombatState:
    """Roll initiative and open a new encounter.

    Turn order is sorted once, descending by initiative; ties keep the
    order the combatants were given in (player first). Hazards never act
    and are placed after every creature.

    Args:
        player: The player's character record.
        enemies: Creature templates to fight.
        hazards: Hazard tokens already placed on the map.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        A CombatState in round 1 with the first combatant to act.

    Raises:
        ValueError: If there are no enemies.
    """
    if not enemies:
        raise ValueError("Need at least one enemy to start combat")

    actors = [player_combatant(player, rng)]
    actors += [enemy_combatant(t, i, rng) for i, t in enumerate(enemies)]
    actors = sorted(actors, key=lambda c: c.initiative, reverse=True)

    placed = [h.model_copy(update={"faction": Faction.HAZARD}) for h in hazards]

    first = actors[0]
    state = CombatState(
        is_active=True,
        round=1,
        turn_index=0,
        combatants=actors + placed,
        log=[f"Combat started! {first.name} begins."],
        turn_resources=_fresh_resources(first),
    )
    logger.debug(
        "Combat started: %s",
        ", ".join(f"{c.name} ({c.initiative})" for c in actors),
    )
    return state


def end_combat_session(state: CombatState) -> CombatState:
    """Close an encounter unconditionally, returning an empty inactive state."""
    if state.is_active:
        logger.debug("Combat session closed in round %d", state.round)
    return CombatState()


def check_result(state: CombatState) -> CombatResult | None:
    """Decide the encounter if one side has no living combatant left.

    Defeat is checked first, so a mutual wipe counts as a defeat. The
    result is sticky once set.

    Args:
        state: Current combat state (mutated in place).

    Returns:
        The encounter result, or None while the fight goes on.
    """
    if state.result is not None or not state.is_active:
        return state.result

    players_alive = any(c.faction == Faction.PLAYER and c.is_alive for c in state.combatants)
    enemies_alive = any(c.faction == Faction.ENEMY and c.is_alive for c in state.combatants)

    if not players_alive:
        state.result = CombatResult.DEFEAT
        state.log.append("Defeat! You have fallen.")
    elif not enemies_alive:
        state.result = CombatResult.VICTORY
        state.log.append("Victory! All enemies are defeated.")
    if state.result is not None:
        logger.info("Combat decided: %s after %d round(s)", state.result.value, state.round)
    return state.result


# ---------------------------------------------------------------------------
# Action resolution
# ---------------------------------------------------------------------------


def perform_action(
    state: CombatState,
    attacker_id: str,
    target_ids: Sequence[str],
    action: Action,
    target_coords: Tile | None = None,
    player: CharacterRecord | None = None,
    rng: random.Random | None = None,
) -> ActionResult:
    """Validate and resolve an action against one or more targets.

    Range is checked against ``target_coords`` when given, else the first
    target. An out-of-range action only adds a log line. Otherwise the
    action is resolved through its structured effects, or as a plain
    weapon attack when it has none, and the actor's action is spent
    whether it hit or not.

    Args:
        state: Current combat state (mutated in place).
        attacker_id: ID of the acting combatant.
        target_ids: IDs of the targeted combatants.
        action: The action being performed.
        target_coords: Clicked square, for areas, teleports and summons.
        player: The player's character record, for spell bonuses and DCs.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        ActionResult with the log lines this action produced.
    """
    if state.result is not None:
        return ActionResult(
            success=False, action_name=action.name, error="Combat is already over",
        )
    if not state.is_active:
        return ActionResult(success=False, action_name=action.name, error="No active combat")

    attacker = state.get(attacker_id)
    targets = [t for t in (state.get(tid) for tid in target_ids) if t is not None and t.is_active]
    targetless = any(e.type in _TARGETLESS_EFFECTS for e in action.effects)
    if attacker is None or not attacker.is_active or (not targets and not targetless):
        # Caller error: nothing to resolve
        return ActionResult(success=False, action_name=action.name, error="Invalid attacker or target")

    reference = target_coords if target_coords is not None else (targets[0].position if targets else None)
    if reference is not None:
        max_range = weapon_range_tiles(action)
        dist = distance(attacker.position, tuple(reference))
        if dist > max_range:
            line = f"{action.name} is out of range ({dist} > {max_range} squares)."
            state.log.append(line)
            return ActionResult(
                success=False, action_name=action.name, log=[line], error="Target out of range",
            )

    if player is not None and attacker.faction != Faction.PLAYER:
        player = None

    logger.debug("%s uses %s on %s", attacker.id, action.name, [t.id for t in targets])

    if action.effects:
        logs, hit, dealt = _resolve_effects(state, attacker, targets, action, target_coords, player, rng)
    else:
        logs, hit, dealt = _resolve_weapon_attack(state, attacker, targets, action, player, rng)

    current = state.current()
    if current is not None and current.id == attacker.id:
        state.turn_resources.has_action = False

    state.log.extend(logs)
    check_result(state)
    return ActionResult(
        success=True,
        action_name=action.name,
        log=logs,
        hit=hit,
        damage_dealt=dealt,
    )


def _resolve_weapon_attack(
    state: CombatState,
    attacker: Combatant,
    targets: list[Combatant],
    action: Action,
    player: CharacterRecord | None,
    rng: random.Random | None,
) -> tuple[list[str], bool, int]:
    """Plain d20-vs-AC attack with the action's damage dice."""
    logs: list[str] = []
    any_hit = False
    total = 0

    if action.attack_bonus is None and attacker.faction == Faction.ENEMY:
        bonus = attacker.attack_bonus
    else:
        bonus = weapon_attack_bonus(action, player)
    dice = action.damage.dice if action.damage else DEFAULT_DAMAGE_DICE
    damage_bonus = action.damage.bonus if action.damage else 0
    damage_type = action.damage.type if action.damage else "force"

    for target in targets:
        attack = resolve_attack_roll(bonus, target.armor_class, rng)
        if not attack.hit:
            logs.append(
                f"{attacker.name} misses {target.name} with {action.name} "
                f"({attack.total} vs AC {target.armor_class})."
            )
            continue

        damage = evaluate_expression(dice, rng).total
        if attack.critical:
            damage += sum(evaluate_expression(dice, rng).rolls)
        damage = max(0, damage + damage_bonus)

        updated = apply_damage(target, damage)
        state.replace(updated)
        any_hit = True
        total += damage

        line = f"{attacker.name} hits {target.name} with {action.name} for {damage} {damage_type} damage."
        if attack.critical:
            line += " Critical hit!"
        logs.append(line)
        logs.extend(_death_notice(target, updated))

        if action.special is not None:
            logs.extend(_run_special(state, attacker.id, updated, action.special, damage))

    return logs, any_hit, total


def _resolve_effects(
    state: CombatState,
    attacker: Combatant,
    targets: list[Combatant],
    action: Action,
    target_coords: Tile | None,
    player: CharacterRecord | None,
    rng: random.Random | None,
) -> tuple[list[str], bool, int]:
    """Resolve every structured effect of an action, in order."""
    logs: list[str] = []
    any_hit = False
    total = 0

    for i, effect in enumerate(action.effects):
        # An action-level special rides on the first effect
        special = effect.special or (action.special if i == 0 else None)

        if effect.type == EffectType.SUMMON:
            logs.extend(_summon(state, attacker, effect, target_coords))
        elif effect.type == EffectType.TELEPORT:
            logs.extend(_teleport(state, attacker.id, target_coords, rng))
        elif effect.type in (EffectType.PUSH, EffectType.PULL):
            for target in targets:
                logs.extend(_forced_move(state, attacker.id, target.id, effect, player, rng))
        elif effect.type in _TARGETED_EFFECTS:
            lines, hit, dealt = _apply_targeted_effect(
                state, attacker, targets, action, effect, special, player, rng,
            )
            logs.extend(lines)
            any_hit = any_hit or hit
            total += dealt

    return logs, any_hit, total


def _apply_targeted_effect(
    state: CombatState,
    attacker: Combatant,
    targets: list[Combatant],
    action: Action,
    effect: Effect,
    special: SpecialEffect | None,
    player: CharacterRecord | None,
    rng: random.Random | None,
) -> tuple[list[str], bool, int]:
    """Attack roll, saving throw, or auto-hit, then damage/healing/condition."""
    logs: list[str] = []
    any_hit = False
    total = 0

    dice = effect.damage.dice if effect.damage else DEFAULT_DAMAGE_DICE
    if effect.scaling is not None and player is not None:
        dice = cantrip_dice(player.level, effect.scaling) or dice
    damage_type = effect.damage.type if effect.damage else "force"

    # One roll per effect, shared by every target
    base = 0
    if effect.type in _ROLLED_EFFECTS:
        base = evaluate_expression(dice, rng).total
        if effect.damage:
            base += effect.damage.bonus
        if effect.add_modifier and player is not None:
            base += spellcasting_modifier(player)

    for target in targets:
        target = state.get(target.id)
        if target is None or not target.is_active:
            continue

        amount = base
        applies = True
        suffix = ""
        prefix = ""

        if effect.attack_roll:
            bonus = spell_attack_bonus(player) if player is not None else attacker.attack_bonus
            attack = resolve_attack_roll(bonus, target.armor_class, rng)
            if not attack.hit:
                applies = False
                if effect.damage_on_miss and effect.type == EffectType.DAMAGE:
                    half = base // 2
                    updated = apply_damage(target, half)
                    state.replace(updated)
                    total += half
                    logs.append(f"{action.name} misses {target.name} but still deals {half} {damage_type} damage.")
                    logs.extend(_death_notice(target, updated))
                else:
                    logs.append(f"{action.name} misses {target.name}.")
            elif attack.critical:
                if effect.type == EffectType.DAMAGE:
                    amount += sum(evaluate_expression(dice, rng).rolls)
                suffix = " Critical hit!"

        elif effect.saving_throw is not None:
            dc = spell_save_dc(player) if player is not None else attacker.save_dc
            modifier = ability_modifier(target.abilities.score(effect.saving_throw.ability))
            save = resolve_saving_throw(modifier, dc, rng)
            ability = effect.saving_throw.ability[:3].upper()
            if not save.success:
                prefix = f"{target.name} fails the {ability} save ({save.total} vs DC {dc}). "
            elif (
                effect.saving_throw.effect_on_success == SaveOutcome.NEGATES_DAMAGE
                or effect.type not in _ROLLED_EFFECTS
            ):
                applies = False
                logs.append(f"{target.name} succeeds on the {ability} save and avoids {action.name}.")
            else:
                amount = amount // 2
                prefix = f"{target.name} succeeds on the {ability} save (half damage). "

        if not applies:
            continue

        any_hit = True
        if effect.type == EffectType.HEALING:
            updated = apply_healing(target, amount)
            logs.append(f"{prefix}{action.name} heals {target.name} for {updated.hp - target.hp} HP.")
        elif effect.type == EffectType.TEMP_HP:
            updated = apply_temporary_hp(target, amount)
            logs.append(f"{prefix}{target.name} gains {amount} temporary HP.")
        elif effect.type == EffectType.DAMAGE:
            amount = max(0, amount)
            updated = apply_damage(target, amount)
            total += amount
            logs.append(f"{prefix}{action.name} hits {target.name} for {amount} {damage_type} damage.{suffix}")
        elif effect.type == EffectType.APPLY_CONDITION and effect.condition is not None:
            updated = apply_condition(target, effect.condition)
            logs.append(f"{prefix}{target.name} is now {effect.condition.type.value.lower()}.")
        else:
            updated = target
            logs.append(f"{prefix}{action.name} strikes {target.name}.{suffix}")

        state.replace(updated)
        logs.extend(_death_notice(target, updated))

        if special is not None:
            dealt = amount if effect.type == EffectType.DAMAGE else 0
            logs.extend(_run_special(state, attacker.id, updated, special, dealt))

    return logs, any_hit, total


def _run_special(
    state: CombatState,
    attacker_id: str,
    target: Combatant,
    special: SpecialEffect,
    damage_dealt: int,
) -> list[str]:
    """Run a special effect and apply both its target and attacker side."""
    attacker = state.get(attacker_id)
    outcome = process_special_effect(special, attacker, target, state.combatants, damage_dealt)
    logs = list(outcome.logs)
    if outcome.target.is_alive != target.is_alive:
        logs.extend(_death_notice(target, outcome.target))
    state.replace(outcome.target)

    if outcome.attacker_heal > 0:
        # Re-read: the attacker may also have been the target
        attacker = state.get(attacker_id)
        state.replace(apply_healing(attacker, outcome.attacker_heal))
    return logs


def _forced_move(
    state: CombatState,
    attacker_id: str,
    target_id: str,
    effect: Effect,
    player: CharacterRecord | None,
    rng: random.Random | None,
) -> list[str]:
    """Push or pull a target, allowing a save if the effect grants one."""
    attacker = state.get(attacker_id)
    target = state.get(target_id)
    if attacker is None or target is None or not target.is_active:
        return []

    if effect.saving_throw is not None:
        dc = spell_save_dc(player) if player is not None else attacker.save_dc
        modifier = ability_modifier(target.abilities.score(effect.saving_throw.ability))
        if resolve_saving_throw(modifier, dc, rng).success:
            return [f"{target.name} holds their ground."]

    distance_m = effect.distance_m or DEFAULT_PUSH_DISTANCE_M
    x, y = forced_movement(target, attacker, effect.type.value, distance_m, state.combatants)
    if (x, y) == target.position:
        return []

    verb = "pushed" if effect.type == EffectType.PUSH else "pulled"
    moved = target.model_copy(update={"x": x, "y": y})
    state.replace(moved)
    return [f"{target.name} is {verb} to ({x}, {y})."] + _enter_square(state, moved.id, rng)


def _teleport(
    state: CombatState,
    attacker_id: str,
    coords: Tile | None,
    rng: random.Random | None,
) -> list[str]:
    attacker = state.get(attacker_id)
    if coords is None or not is_valid_teleport(coords, state.combatants):
        return ["Teleport blocked."]
    moved = attacker.model_copy(update={"x": coords[0], "y": coords[1]})
    state.replace(moved)
    return [f"{attacker.name} teleports to ({coords[0]}, {coords[1]})."] + _enter_square(
        state, attacker_id, rng,
    )


def _summon(
    state: CombatState,
    attacker: Combatant,
    effect: Effect,
    coords: Tile | None,
) -> list[str]:
    """Place a summoned token on the map without touching the turn order.

    Allies are creatures and need a free square; they take their turns
    after everyone already in the order. Hazard tokens may share squares.
    """
    if effect.entity is None:
        return []
    entity = effect.entity
    x, y = coords if coords is not None else attacker.position
    faction = Faction(entity.faction)
    if faction == Faction.ALLY and not is_valid_teleport((x, y), state.combatants):
        return [f"{entity.name} cannot appear at ({x}, {y}): the square is occupied."]

    count = sum(1 for c in state.combatants if c.controlled_by == attacker.id)
    token = Combatant(
        id=f"{attacker.id}_summon_{count + 1}",
        name=entity.name,
        faction=faction,
        hp=entity.hp,
        max_hp=entity.max_hp,
        armor_class=entity.armor_class,
        speed=entity.speed,
        actions=list(entity.actions),
        x=x,
        y=y,
        initiative=attacker.initiative,
        hazard_profile=entity.hazard_profile,
        controlled_by=attacker.id,
    )
    state.combatants.append(token)
    logger.info("%s summoned %s (%s)", attacker.id, token.id, faction.value)
    return [f"{attacker.name} summons {entity.name} at ({x}, {y})."]


def _enter_square(state: CombatState, combatant_id: str, rng: random.Random | None) -> list[str]:
    """Fire ENTER hazards for a combatant that just arrived on a square."""
    combatant = state.get(combatant_id)
    outcome = check_hazard_interactions(combatant, state.combatants, HazardTrigger.ENTER, rng)
    state.replace(outcome.combatant)
    return outcome.logs + _death_notice(combatant, outcome.combatant)


def _death_notice(before: Combatant, after: Combatant) -> list[str]:
    if before.is_alive and not after.is_alive:
        return [f"{after.name} is defeated!"]
    return []


# ---------------------------------------------------------------------------
# Movement and clicks
# ---------------------------------------------------------------------------


def move_combatant(
    state: CombatState,
    combatant_id: str,
    x: int,
    y: int,
    rng: random.Random | None = None,
) -> ActionResult:
    """Move the acting combatant to an empty square within its movement budget.

    Args:
        state: Current combat state (mutated in place).
        combatant_id: ID of the moving combatant; must be the current actor.
        x: Destination column.
        y: Destination row.
        rng: Optional Random instance for hazard damage rolls.

    Returns:
        ActionResult; failures add a log line only when the player could fix them.
    """
    current = state.current()
    if state.result is not None or current is None or current.id != combatant_id:
        return ActionResult(success=False, action_name="Move", error="Not this combatant's turn")

    if is_occupied((x, y), state.combatants, ignore_id=combatant_id):
        return ActionResult(success=False, action_name="Move", error="Square is occupied")

    cost = distance(current.position, (x, y))
    if cost > state.turn_resources.movement_left:
        line = f"Not enough movement ({cost} needed, {state.turn_resources.movement_left} left)."
        state.log.append(line)
        return ActionResult(success=False, action_name="Move", log=[line], error="Not enough movement")

    state.replace(current.model_copy(update={"x": x, "y": y}))
    state.turn_resources.movement_left -= cost
    logs = _enter_square(state, combatant_id, rng)
    state.log.extend(logs)
    check_result(state)
    return ActionResult(success=True, action_name="Move", log=logs)


def dash(state: CombatState) -> ActionResult:
    """Spend the current actor's action to double its movement for the turn."""
    current = state.current()
    if state.result is not None or current is None or not current.is_active:
        return ActionResult(success=False, action_name="Dash", error="No combatant can dash now")
    if not state.turn_resources.has_action:
        line = f"{current.name} has no action left to dash."
        state.log.append(line)
        return ActionResult(success=False, action_name="Dash", log=[line], error="No action left")

    state.turn_resources.has_action = False
    if not is_immobilized(current):
        state.turn_resources.movement_left += speed_to_tiles(current.speed)
    line = f"{current.name} dashes."
    state.log.append(line)
    return ActionResult(success=True, action_name="Dash", log=[line])


def area_for(action: Action) -> AreaShape | None:
    """The area an action covers, or None for a single-target action."""
    target = action.target
    if target is None:
        return None
    if not (target.shape or target.radius_m or target.type == "POINT"):
        return None
    return AreaShape(
        type=target.shape or ("SPHERE" if target.radius_m else "POINT"),
        size_m=target.length_m or target.width_m or 0,
        radius_m=target.radius_m,
    )


def handle_tile_click(
    state: CombatState,
    x: int,
    y: int,
    selected_action: Action | None,
    player: CharacterRecord | None = None,
    rng: random.Random | None = None,
) -> ActionResult:
    """Turn a click on the grid into an action or a move for the player.

    With an action selected (and the action still available) the click
    aims it: areas hit every creature on the covered squares, single
    target actions need an enemy on the square (or any creature for
    healing). Without an action the player walks to the square.

    Args:
        state: Current combat state (mutated in place).
        x: Clicked column.
        y: Clicked row.
        selected_action: The action chosen in the action bar, if any.
        player: The player's character record.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        The ActionResult of whatever the click triggered.
    """
    current = state.current()
    name = selected_action.name if selected_action else "Move"
    if state.result is not None or current is None or not current.is_player_side:
        return ActionResult(success=False, action_name=name, error="Not the player's turn")

    clicked = next(
        (c for c in state.combatants if c.position == (x, y) and c.is_active),
        None,
    )

    if selected_action is None:
        if clicked is not None:
            return ActionResult(success=False, action_name=name, error="Square is occupied")
        return move_combatant(state, current.id, x, y, rng)

    if selected_action.kind == ActionKind.DASH:
        return dash(state)

    if not state.turn_resources.has_action:
        line = "No action left this turn."
        state.log.append(line)
        return ActionResult(success=False, action_name=name, log=[line], error="No action left")

    max_range = weapon_range_tiles(selected_action)
    if distance(current.position, (x, y)) > max_range:
        line = "Too far away!"
        state.log.append(line)
        return ActionResult(success=False, action_name=name, log=[line], error="Target out of range")

    targeting_self = selected_action.target is not None and selected_action.target.type == "SELF"
    shape = area_for(selected_action)

    if shape is not None:
        tiles = set(affected_tiles(current.position, (x, y), shape))
        target_ids = [
            c.id for c in state.combatants
            if c.is_active and c.position in tiles and (c.id != current.id or targeting_self)
        ]
        targetless = any(e.type in _TARGETLESS_EFFECTS for e in selected_action.effects)
        if target_ids or targetless:
            return perform_action(state, current.id, target_ids, selected_action, (x, y), player, rng)
    elif targeting_self:
        return perform_action(state, current.id, [current.id], selected_action, None, player, rng)
    elif clicked is not None and (clicked.faction == Faction.ENEMY or _is_supportive(selected_action)):
        return perform_action(state, current.id, [clicked.id], selected_action, (x, y), player, rng)

    line = "No valid target."
    state.log.append(line)
    return ActionResult(success=False, action_name=name, log=[line], error="No valid target")


def _is_supportive(action: Action) -> bool:
    return bool(action.effects) and all(
        e.type in (EffectType.HEALING, EffectType.TEMP_HP) for e in action.effects
    )


# ---------------------------------------------------------------------------
# Turn order
# ---------------------------------------------------------------------------


def _fresh_resources(combatant: Combatant) -> TurnResources:
    return TurnResources(
        has_action=not is_incapacitated(combatant),
        has_bonus_action=not is_incapacitated(combatant),
        movement_left=0 if is_immobilized(combatant) else speed_to_tiles(combatant.speed),
    )


def next_turn(state: CombatState, rng: random.Random | None = None) -> None:
    """End the current turn and hand over to the next combatant who can act.

    The finishing combatant's conditions tick down and END_TURN hazards
    fire on it. The turn index then advances (a new round starts on wrap),
    START_TURN hazards fire on the next combatant, and anyone dead,
    banished, or a hazard token is skipped. Banished creatures still count
    down their banishment while skipped and come back when it runs out.

    Args:
        state: Current combat state (mutated in place).
        rng: Optional Random instance for hazard damage rolls.
    """
    if not state.is_active or state.result is not None or not state.combatants:
        return

    logs: list[str] = []
    ending = state.current()
    if ending is not None and ending.is_active:
        ticked = tick_conditions(ending)
        state.replace(ticked)
        outcome = check_hazard_interactions(ticked, state.combatants, HazardTrigger.END_TURN, rng)
        state.replace(outcome.combatant)
        logs += outcome.logs + _death_notice(ticked, outcome.combatant)

    count = len(state.combatants)
    for _ in range(count):
        state.turn_index = (state.turn_index + 1) % count
        if state.turn_index == 0:
            state.round += 1

        candidate = state.combatants[state.turn_index]
        if candidate.is_banished and candidate.is_alive:
            logs += _pass_banished_turn(state, candidate)
            candidate = state.get(candidate.id)
        if not candidate.is_active:
            continue

        outcome = check_hazard_interactions(candidate, state.combatants, HazardTrigger.START_TURN, rng)
        state.replace(outcome.combatant)
        logs += outcome.logs + _death_notice(candidate, outcome.combatant)
        if outcome.combatant.is_active:
            break

    state.log.extend(logs)
    if check_result(state) is not None:
        return

    actor = state.combatants[state.turn_index]
    state.turn_resources = _fresh_resources(actor)
    state.log.append(f"--- Round {state.round}: {actor.name} ---")
    logger.debug("Turn %d.%d: %s", state.round, state.turn_index, actor.id)


def _pass_banished_turn(state: CombatState, combatant: Combatant) -> list[str]:
    """Count down a banishment; bring the creature back once it expires."""
    ticked = tick_conditions(combatant)
    if has_condition(ticked, ConditionType.BANISHED):
        state.replace(ticked)
        return []
    returned = end_banishment(ticked, state.combatants)
    state.replace(returned)
    return [f"{returned.name} returns from banishment at ({returned.x}, {returned.y})."]


# ---------------------------------------------------------------------------
# Scheduled routines: AI turns and skipping turns nobody can take
# ---------------------------------------------------------------------------


def run_ai_turn(session: CombatSession) -> Routine:
    """Play the current enemy's turn in paced steps.

    Yields tick delays between thinking, moving and attacking. Failures
    are logged and the turn still ends: the finishing step is scheduled
    from ``finally`` unless the encounter was closed or decided meanwhile.
    """
    generation = session.generation
    npc = session.state.current()
    npc_id = npc.id if npc is not None else None
    try:
        yield AI_THINK_TICKS
        if not _turn_still_running(session, generation, npc_id):
            return

        state = session.state
        npc = state.get(npc_id)
        if is_incapacitated(npc):
            state.log.append(f"{npc.name} cannot act.")
            return

        target = pick_target(npc, state.combatants)
        if target is None:
            return

        action = npc.actions[0] if npc.actions else Action()
        reach = weapon_range_tiles(action)
        path = plan_ai_move(npc, target, state.combatants, reach, state.turn_resources.movement_left)
        if path:
            x, y = path[-1]
            state.replace(npc.model_copy(update={"x": x, "y": y}))
            state.turn_resources.movement_left -= len(path)
            state.log.append(f"{npc.name} moves.")
            state.log.extend(_enter_square(state, npc_id, session.rng))
            check_result(state)
            yield AI_MOVE_PAUSE_TICKS
            if not _turn_still_running(session, generation, npc_id):
                return

        npc = state.get(npc_id)
        target = state.get(target.id)
        if (
            npc.is_active
            and target is not None
            and target.is_active
            and state.turn_resources.has_action
            and distance(npc.position, target.position) <= reach
        ):
            perform_action(state, npc_id, [target.id], action, rng=session.rng)
    except Exception:
        logger.exception("AI turn for %s failed", npc_id)
    finally:
        if session.generation == generation:
            if session.state.is_active and session.state.result is None:
                session.scheduler.spawn(_finish_turn(session, generation), delay=AI_END_TICKS)
            else:
                session.processing = False


def skip_turn(session: CombatSession) -> Routine:
    """Pass the turn of a combatant that can't act, after a short pause."""
    generation = session.generation
    yield DEAD_SKIP_TICKS
    yield from _finish_turn(session, generation)


def _finish_turn(session: CombatSession, generation: int) -> Routine:
    if session.generation != generation:
        return
    session.processing = False
    next_turn(session.state, session.rng)
    # Keeps this a generator even though it never waits
    yield from ()


def _turn_still_running(session: CombatSession, generation: int, npc_id: str | None) -> bool:
    state = session.state
    if session.generation != generation or not state.is_active or state.result is not None:
        return False
    current = state.current()
    return current is not None and current.id == npc_id and current.is_active
