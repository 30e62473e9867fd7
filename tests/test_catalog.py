"""Tests for the JSON rule tables."""

import json

import pytest

from engine.catalog import CatalogError, load_creatures, load_spells, resolve_creatures
from models.actions import ActionKind, Banish, EffectType


def _write_tables(directory, creatures=None, spells=None) -> str:
    """Helper to write rule tables into a temporary content directory."""
    (directory / "creatures.json").write_text(json.dumps(creatures or {}))
    (directory / "spells.json").write_text(json.dumps(spells or {}))
    return str(directory)


class TestShippedTables:
    """Tests against the tables bundled with the server."""

    def test_creatures_load(self):
        creatures = load_creatures()
        goblin = creatures["goblin"]
        assert goblin.name == "Goblin"
        assert goblin.hit_points() == 7
        assert goblin.armor_class == 15
        assert goblin.actions[0].damage.dice == "1d6+2"

    def test_bare_damage_strings_are_parsed(self):
        wolf = load_creatures()["wolf"]
        assert wolf.actions[0].damage.dice == "2d4+2"

    def test_spells_load_as_spell_actions(self):
        spells = load_spells()
        bolt = spells["fire_bolt"]
        assert bolt.kind == ActionKind.SPELL
        assert bolt.effects[0].type == EffectType.DAMAGE
        assert bolt.effects[0].attack_roll
        assert bolt.effects[0].scaling.dice_at_levels[5] == "2d10"

    def test_special_effects_are_typed(self):
        banishment = load_spells()["banishment"]
        assert isinstance(banishment.effects[0].special, Banish)
        assert banishment.effects[0].special.duration == 10


    def test_summon_spells_carry_their_faction(self):
        spells = load_spells()
        daggers = spells["cloud_of_daggers"].effects[0].entity
        beast = spells["summon_beast"].effects[0].entity
        assert daggers.faction == "hazard"
        assert beast.faction == "ally"
        assert beast.actions[0].name == "Maul"
        assert beast.actions[0].damage.dice == "1d8+4"


class TestLoadErrors:
    """Tests for malformed rule tables."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError):
            load_creatures(str(tmp_path))

    def test_bad_json(self, tmp_path):
        (tmp_path / "spells.json").write_text("{not json")
        with pytest.raises(CatalogError):
            load_spells(str(tmp_path))

    def test_not_an_object(self, tmp_path):
        (tmp_path / "creatures.json").write_text("[]")
        with pytest.raises(CatalogError):
            load_creatures(str(tmp_path))

    def test_unknown_special_tag(self, tmp_path):
        content = _write_tables(tmp_path, spells={
            "weird": {
                "name": "Weird",
                "effects": [{"type": "SPECIAL", "special": {"type": "TIME_STOP"}}],
            },
        })
        with pytest.raises(CatalogError, match="weird"):
            load_spells(content)

    def test_unknown_effect_type(self, tmp_path):
        content = _write_tables(tmp_path, spells={"x": {"effects": [{"type": "EXPLODE"}]}})
        with pytest.raises(CatalogError):
            load_spells(content)

    def test_custom_directory(self, tmp_path):
        content = _write_tables(tmp_path, creatures={"rat": {"name": "Rat", "hp": 2}})
        assert load_creatures(content)["rat"].hit_points() == 2


class TestResolveCreatures:
    """Tests for resolve_creatures()."""

    def test_repeats_are_numbered(self):
        creatures = load_creatures()
        templates = resolve_creatures(["goblin", "orc", "goblin"], creatures)
        assert [t.instance_id for t in templates] == ["goblin_1", "orc_1", "goblin_2"]
        # The bestiary entry itself is untouched
        assert creatures["goblin"].instance_id is None

    def test_unknown_key(self):
        with pytest.raises(CatalogError):
            resolve_creatures(["dragon"], load_creatures())
