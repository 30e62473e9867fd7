"""Tests for hazard squares."""

import random

from engine.hazards import check_hazard_interactions
from models.combatant import Combatant, Faction
from models.conditions import (
    Condition,
    ConditionType,
    HazardDamage,
    HazardProfile,
    HazardTrigger,
)


def _make_creature(pos: tuple[int, int] = (3, 3), hp: int = 20) -> Combatant:
    """Helper to create a creature standing on a square."""
    return Combatant(id="hero", name="Hero", faction=Faction.PLAYER, hp=hp, max_hp=20, x=pos[0], y=pos[1])


def _make_hazard(
    hid: str,
    pos: tuple[int, int],
    trigger,
    damage: HazardDamage | None = None,
    condition: Condition | None = None,
) -> Combatant:
    """Helper to create a hazard token."""
    return Combatant(
        id=hid,
        name=hid.title(),
        faction=Faction.HAZARD,
        hp=10,
        max_hp=10,
        x=pos[0],
        y=pos[1],
        hazard_profile=HazardProfile(trigger=trigger, damage=damage, apply_condition=condition),
    )


class TestCheckHazardInteractions:
    """Tests for check_hazard_interactions()."""

    def test_flat_damage_on_matching_phase(self):
        hero = _make_creature()
        fire = _make_hazard("fire", (3, 3), HazardTrigger.START_TURN, HazardDamage(amount=5, type="fire"))
        outcome = check_hazard_interactions(hero, [hero, fire], HazardTrigger.START_TURN)
        assert outcome.combatant.hp == 15
        assert outcome.logs == ["Hero takes 5 fire damage from Fire."]

    def test_bare_number_damage(self):
        profile = HazardProfile(trigger="ENTER", damage=4)
        assert profile.damage == HazardDamage(amount=4)
        hero = _make_creature()
        spikes = _make_hazard("spikes", (3, 3), HazardTrigger.ENTER, profile.damage)
        outcome = check_hazard_interactions(hero, [hero, spikes], HazardTrigger.ENTER)
        assert outcome.combatant.hp == 16

    def test_other_phase_does_nothing(self):
        hero = _make_creature()
        fire = _make_hazard("fire", (3, 3), HazardTrigger.START_TURN, HazardDamage(amount=5))
        outcome = check_hazard_interactions(hero, [hero, fire], HazardTrigger.END_TURN)
        assert outcome.combatant.hp == 20
        assert outcome.logs == []

    def test_other_square_does_nothing(self):
        hero = _make_creature((0, 0))
        fire = _make_hazard("fire", (3, 3), HazardTrigger.ENTER, HazardDamage(amount=5))
        outcome = check_hazard_interactions(hero, [hero, fire], HazardTrigger.ENTER)
        assert outcome.combatant.hp == 20

    def test_dice_damage(self):
        hero = _make_creature()
        blades = _make_hazard("blades", (3, 3), HazardTrigger.ENTER, HazardDamage(dice="4d4"))
        outcome = check_hazard_interactions(hero, [hero, blades], HazardTrigger.ENTER, random.Random(2))
        assert 4 <= 20 - outcome.combatant.hp <= 16

    def test_applies_condition(self):
        hero = _make_creature()
        web = _make_hazard(
            "web", (3, 3), HazardTrigger.ENTER,
            condition=Condition(type=ConditionType.RESTRAINED, duration=2),
        )
        outcome = check_hazard_interactions(hero, [hero, web], HazardTrigger.ENTER)
        assert outcome.combatant.conditions[0].type == ConditionType.RESTRAINED
        assert outcome.logs == ["Hero is restrained by Web."]

    def test_multiple_triggers(self):
        hero = _make_creature()
        cloud = _make_hazard(
            "cloud", (3, 3), [HazardTrigger.ENTER, HazardTrigger.END_TURN], HazardDamage(amount=2),
        )
        assert check_hazard_interactions(hero, [hero, cloud], HazardTrigger.END_TURN).combatant.hp == 18
        assert check_hazard_interactions(hero, [hero, cloud], HazardTrigger.START_TURN).combatant.hp == 20

    def test_stacked_hazards_apply_in_order(self):
        hero = _make_creature()
        first = _make_hazard("first", (3, 3), HazardTrigger.ENTER, HazardDamage(amount=1))
        second = _make_hazard("second", (3, 3), HazardTrigger.ENTER, HazardDamage(amount=2))
        outcome = check_hazard_interactions(hero, [first, hero, second], HazardTrigger.ENTER)
        assert outcome.combatant.hp == 17
        assert outcome.logs[0].endswith("from First.")
        assert outcome.logs[1].endswith("from Second.")

    def test_input_not_mutated(self):
        hero = _make_creature()
        fire = _make_hazard("fire", (3, 3), HazardTrigger.ENTER, HazardDamage(amount=5))
        check_hazard_interactions(hero, [hero, fire], HazardTrigger.ENTER)
        assert hero.hp == 20
