"""Tests for RolledThing, BossReward, RoundState and ActionResult."""

from loot_gen.ir.things import AttributeDefinition, ModDefinition
from loot_gen.sim.core.game_state import BossReward, RolledThing, RoundState
from loot_gen.sim.core.results import ActionError, ActionResult


def _make_thing(**kwargs) -> RolledThing:
    defaults = dict(id="STONE", name="Stone", tier="common", value=6, base_value=6)
    defaults.update(kwargs)
    return RolledThing(**defaults)


class TestRolledThing:
    def test_display_name_without_attribute(self):
        assert _make_thing().display_name == "Stone"

    def test_display_name_hides_normal_attribute(self):
        normal = AttributeDefinition(id="normal", name="Normal", value=1.0)
        assert _make_thing(attribute=normal).display_name == "Stone"

    def test_display_name_with_attribute(self):
        huge = AttributeDefinition(id="huge", name="Huge", value=1.65)
        assert _make_thing(attribute=huge).display_name == "Huge Stone"

    def test_mod_ids(self):
        mods = [
            ModDefinition(id="golden", name="Golden", value=2.0),
            ModDefinition(id="cursed", name="Cursed", value=-0.3),
        ]
        assert _make_thing(mods=mods).mod_ids == ["golden", "cursed"]


class TestBossReward:
    def test_remaining_picks_capped_by_options(self):
        reward = BossReward(boss_id="boss1", perk_options=["a", "b"], pick_count=3)
        assert reward.remaining_picks == 2
        assert not reward.is_complete

    def test_complete_after_picks(self):
        reward = BossReward(boss_id="boss1", perk_options=["a", "b", "c", "d"], pick_count=3)
        reward.picked.extend(["a", "b", "c"])
        assert reward.remaining_picks == 0
        assert reward.is_complete

    def test_no_options_is_complete(self):
        assert BossReward(boss_id="boss1").is_complete


class TestRoundState:
    def test_defaults(self):
        state = RoundState()
        assert state.round == 1
        assert state.rolls_used == 0
        assert state.inventory == []
        assert state.pending_boss_reward is None

    def test_inventory_value_sums_things(self):
        state = RoundState(inventory=[_make_thing(value=6), _make_thing(value=10)])
        assert state.inventory_value == 16


class TestActionResult:
    def test_ok_is_truthy(self):
        result = ActionResult.ok("done")
        assert result
        assert result.error is None
        assert result.is_boss_reward is False

    def test_fail_is_falsy(self):
        result = ActionResult.fail(ActionError.NOT_FOUND, "missing")
        assert not result
        assert result.error is ActionError.NOT_FOUND
        assert result.message == "missing"

    def test_ok_carries_thing(self):
        thing = _make_thing()
        assert ActionResult.ok("rolled", thing=thing).thing is thing
