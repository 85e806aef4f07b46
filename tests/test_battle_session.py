import pytest

from pokechain.battle.factory import build_creature, move_from_template
from pokechain.battle.session import BattleSession, BattleState, RecoveryOption
from pokechain.core.errors import (
    InvalidOpponentCount, NoActiveCreature, MoveOutOfPP, BattleNotReady, InvariantViolation,
    CatalogNotFound, CreatureFainted, InvalidAction, AlreadyActive,
)
from pokechain.game.roster import Roster
from pokechain.inventory import REVIVE

from arena_support import ScriptedRandom


def new_session(catalog, parts, *, total=1, draws=(), pool=(2,)):
    roster, inventory, progression = parts
    rng = ScriptedRandom(draws=draws)
    return BattleSession(roster, inventory, progression, catalog, total_opponents=total,
                         rng=rng, opponent_pool=list(pool))


def test_start_heals_team_and_builds_first_opponent(catalog, battle_parts):
    roster = battle_parts[0]
    roster.team[0].current_hp = 1
    roster.team[0].status = "psn"
    roster.team[0].moves[0].pp = 0
    s = new_session(catalog, battle_parts, total=2)
    result = s.start()
    assert result.state == BattleState.IN_PROGRESS
    assert s.turn == "player"
    assert s.current_round == 1 and s.defeated == 0
    active = roster.active()
    assert active.current_hp == active.max_hp
    assert active.status == "none"
    assert active.moves[0].pp == active.moves[0].max_pp
    assert s.opponent.name == "Beta"
    assert s.opponent.level == active.level
    assert s.opponent.ivs["attack"] == 15
    assert "opponent_appeared" in result.kinds()


@pytest.mark.parametrize("count", [0, 6])
def test_start_rejects_bad_opponent_count(catalog, battle_parts, count):
    s = new_session(catalog, battle_parts, total=count)
    with pytest.raises(InvalidOpponentCount):
        s.start()
    assert s.state == BattleState.SETUP


def test_start_requires_a_team(catalog, battle_parts):
    _, inventory, progression = battle_parts
    s = new_session(catalog, (Roster(), inventory, progression))
    with pytest.raises(NoActiveCreature):
        s.start()


def test_start_rejects_fainted_active(catalog, battle_parts):
    roster = battle_parts[0]
    roster.active().current_hp = 0
    s = new_session(catalog, battle_parts)
    with pytest.raises(NoActiveCreature):
        s.start()
    assert s.state == BattleState.SETUP
    assert roster.active().current_hp == 0


def test_start_catalog_failure_leaves_setup(catalog, battle_parts):
    s = new_session(catalog, battle_parts, pool=(999,))
    with pytest.raises(CatalogNotFound):
        s.start()
    assert s.state == BattleState.SETUP
    assert s.opponent is None


def test_knockout_awards_exp_and_wins(catalog, battle_parts):
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99])
    s.start()
    s.opponent.current_hp = 1
    result = s.act(0)
    assert result.state == BattleState.VICTORY
    assert s.defeated == 1
    assert battle_parts[0].active().exp == 37  # floor(5 * 15 * 1 / 2)
    kinds = result.kinds()
    assert kinds.index("fainted") < kinds.index("exp_gained") < kinds.index("victory")
    with pytest.raises(BattleNotReady):
        s.act(0)


def test_rotation_builds_next_opponent_at_active_level(catalog, battle_parts):
    s = new_session(catalog, battle_parts, total=2, draws=[0.0, 0.99])
    s.start()
    first = s.opponent
    first.current_hp = 1
    result = s.act(0)
    assert result.state == BattleState.IN_PROGRESS
    assert s.current_round == 2
    assert s.opponent is not first
    assert s.opponent.level == battle_parts[0].active().level
    assert s.turn == "player"


def test_rotation_catalog_failure_aborts(catalog, battle_parts):
    s = new_session(catalog, battle_parts, total=2, draws=[0.0, 0.99])
    s.start()
    s.opponent_pool = [999]
    s.opponent.current_hp = 1
    result = s.act(0)
    assert result.state == BattleState.ABORTED
    assert "aborted" in result.kinds()


def test_pp_is_consumed_and_empty_move_rejected(catalog, battle_parts):
    # player hit, no crit; opponent hit, no crit
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99, 0.0, 0.99])
    s.start()
    active = battle_parts[0].active()
    active.moves[0].pp = 1
    s.act(0)
    assert active.moves[0].pp == 0
    assert s.turn == "player"
    before = len(s.log)
    with pytest.raises(MoveOutOfPP):
        s.act(0)
    assert len(s.log) == before
    assert s.state == BattleState.IN_PROGRESS


def test_struggle_only_when_every_move_is_empty(catalog, battle_parts):
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99, 0.0, 0.99])
    s.start()
    active = battle_parts[0].active()
    with pytest.raises(InvalidAction):
        s.struggle()
    for m in active.moves:
        m.pp = 0
    hp = s.opponent.current_hp
    with pytest.raises(MoveOutOfPP):
        s.act(0)
    assert s.opponent.current_hp == hp
    assert s.turn == "player"
    result = s.struggle()
    assert s.opponent.current_hp < hp
    assert "struggle" in result.kinds()
    assert any("used Struggle" in t for t in result.texts())
    assert any(e.kind == "recoil" for e in result.events)


def test_empty_move_list_is_an_invariant_violation(catalog, battle_parts):
    s = new_session(catalog, battle_parts)
    s.start()
    battle_parts[0].active().moves = []
    with pytest.raises(InvariantViolation):
        s.act(0)


def test_opponent_acts_after_player(catalog, battle_parts):
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99, 0.0, 0.99])
    s.start()
    active = battle_parts[0].active()
    result = s.act(0)
    movers = [e.data.get("attacker") for e in result.events if e.kind == "move_used"]
    assert movers == [active.name, s.opponent.name]
    assert s.opponent.current_hp == s.opponent.max_hp - 5
    assert active.current_hp == active.max_hp - 4


def test_forced_switch_gives_opponent_free_turn(catalog, battle_parts):
    roster = battle_parts[0]
    roster.add(build_creature(catalog, 2, 5))
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99, 0.0, 0.99, 0.0, 0.99])
    s.start()
    roster.team[0].current_hp = 1
    result = s.act(0)
    assert result.state == BattleState.AWAITING_SWITCH
    with pytest.raises(BattleNotReady):
        s.act(0)
    with pytest.raises(CreatureFainted):
        s.switch(0)
    result = s.switch(1)
    assert result.state == BattleState.IN_PROGRESS
    assert roster.active_index == 1
    movers = [e.data.get("attacker") for e in result.events if e.kind == "move_used"]
    assert movers == [s.opponent.name]
    assert s.turn == "player"


def test_scenario_c_wipe_offers_backup_and_defeat(catalog, battle_parts):
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99, 0.0, 0.99])
    s.start()
    battle_parts[0].active().current_hp = 1
    result = s.act(0)
    assert result.state == BattleState.AWAITING_RECOVERY_CHOICE
    assert s.recovery_choices == [RecoveryOption.EMERGENCY_BACKUP, RecoveryOption.ACCEPT_DEFEAT]
    with pytest.raises(InvalidAction):
        s.choose_recovery(RecoveryOption.FULL_HEAL)
    result = s.choose_recovery(RecoveryOption.ACCEPT_DEFEAT)
    assert result.state == BattleState.DEFEAT
    assert s.is_over


def test_emergency_backup_joins_and_battle_resumes(catalog, battle_parts):
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99, 0.0, 0.99])
    s.start()
    battle_parts[0].active().current_hp = 1
    s.act(0)
    result = s.choose_recovery(RecoveryOption.EMERGENCY_BACKUP)
    roster = battle_parts[0]
    assert result.state == BattleState.IN_PROGRESS
    assert len(roster.team) == 2
    assert roster.active().name == "Rattata"
    assert roster.active().level == 5
    assert s.turn == "player"


def test_recovery_options_reflect_resources(catalog, battle_parts):
    roster, inventory, progression = battle_parts
    progression.free_revive_available = True
    progression.currency = 250
    inventory.add(REVIVE)
    s = new_session(catalog, battle_parts)
    assert s.recovery_options() == [
        RecoveryOption.FREE_REVIVE, RecoveryOption.REVIVE_ITEM, RecoveryOption.EMERGENCY_BACKUP,
        RecoveryOption.FULL_HEAL, RecoveryOption.ACCEPT_DEFEAT,
    ]
    for _ in range(5):
        roster.add(build_creature(catalog, 2, 5))
    assert RecoveryOption.EMERGENCY_BACKUP not in s.recovery_options()


def test_revive_item_purchased_when_not_owned(catalog, battle_parts):
    roster, inventory, progression = battle_parts
    progression.currency = 300
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99, 0.0, 0.99])
    s.start()
    roster.active().current_hp = 1
    s.act(0)
    assert RecoveryOption.REVIVE_ITEM in s.recovery_choices
    s.choose_recovery(RecoveryOption.REVIVE_ITEM)
    assert progression.currency == 0
    assert roster.active().current_hp == max(1, roster.active().max_hp // 2)


def test_free_revive_is_single_use(catalog, battle_parts):
    roster, _, progression = battle_parts
    progression.free_revive_available = True
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99, 0.0, 0.99])
    s.start()
    roster.active().current_hp = 1
    s.act(0)
    s.choose_recovery(RecoveryOption.FREE_REVIVE)
    assert progression.free_revive_available is False
    assert not roster.active().is_fainted()


def test_run_success_and_failure(catalog, battle_parts):
    s = new_session(catalog, battle_parts, draws=[0.5])
    s.start()
    assert s.run().state == BattleState.FLED

    s2 = new_session(catalog, battle_parts, draws=[0.9, 0.0, 0.99])
    s2.start()
    result = s2.run()
    assert result.state == BattleState.IN_PROGRESS
    assert "run_failed" in result.kinds()
    assert any(e.kind == "move_used" for e in result.events)


def test_item_use_costs_the_turn(catalog, battle_parts):
    roster, inventory, _ = battle_parts
    inventory.add("potion", 1)
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99])
    s.start()
    roster.active().current_hp = 5
    result = s.use_item("potion")
    assert inventory.count("potion") == 0
    assert result.kinds()[0] == "item_used"
    assert "move_used" in result.kinds()


def test_level_up_learns_into_placeholder_and_evolves(catalog, battle_parts):
    roster, inventory, progression = battle_parts
    roster.team[0] = build_creature(catalog, 10, 5)
    sprout = roster.team[0]
    sprout.exp = 200
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99])
    s.start()
    s.opponent.current_hp = 1
    result = s.act(0)
    assert result.state == BattleState.VICTORY
    assert sprout.level == 6
    assert sprout.name == "Bloom"
    assert "vine-whip" in [m.name for m in sprout.moves]
    assert {"level_up", "evolved", "move_learned"} <= set(result.kinds())


def test_full_move_set_pauses_for_replacement(catalog, battle_parts):
    roster = battle_parts[0]
    roster.team[0] = build_creature(catalog, 10, 5)
    sprout = roster.team[0]
    sprout.moves = [move_from_template(catalog.get_move_details(n))
                    for n in ("tackle", "ember", "thunder-wave", "lick")]
    sprout.exp = 200
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99])
    s.start()
    s.opponent.current_hp = 1
    result = s.act(0)
    assert result.state == BattleState.AWAITING_MOVE_REPLACEMENT_CHOICE
    assert s.pending_offer.move.name == "vine-whip"
    with pytest.raises(BattleNotReady):
        s.run()
    result = s.choose_move_replacement(1)
    assert sprout.moves[1].name == "vine-whip"
    assert result.state == BattleState.VICTORY


def test_voluntary_switch_costs_the_turn(catalog, battle_parts):
    roster = battle_parts[0]
    roster.add(build_creature(catalog, 2, 5))
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99, 0.5])
    s.start()
    with pytest.raises(AlreadyActive):
        s.switch(0)
    result = s.switch(1)
    assert result.kinds()[:2] == ["recalled", "switched"]
    movers = [e.data.get("attacker") for e in result.events if e.kind == "move_used"]
    assert movers == [s.opponent.name]
    assert roster.active_index == 1
    assert s.turn == "player"
    s.run()
    with pytest.raises(BattleNotReady):
        s.switch(0)


def test_full_heal_recovery_restores_team(catalog, battle_parts):
    roster, _, progression = battle_parts
    progression.currency = 200
    s = new_session(catalog, battle_parts, draws=[0.0, 0.99, 0.0, 0.99])
    s.start()
    active = roster.active()
    active.current_hp = 1
    s.act(0)
    assert s.recovery_choices == [
        RecoveryOption.EMERGENCY_BACKUP, RecoveryOption.FULL_HEAL, RecoveryOption.ACCEPT_DEFEAT,
    ]
    result = s.choose_recovery(RecoveryOption.FULL_HEAL)
    assert progression.currency == 0
    assert active.current_hp == active.max_hp
    assert active.moves[0].pp == active.moves[0].max_pp
    assert len(roster.team) == 1
    assert result.state == BattleState.IN_PROGRESS
    assert s.turn == "player"
