import hashlib
import random
from datetime import datetime, timezone

import pytest

from pokechain.battle.session import BattleState, RecoveryOption
from pokechain.core.errors import (
    ProfileExists, ProfileNotFound, InvalidTarget, InsufficientFunds, ItemUnavailable, BattleNotReady,
    LedgerError, NoActiveCreature,
)
from pokechain.data.ledger import SimulatedLedger, ACTION_MINT_STARTER, ACTION_RECORD_BATTLE, ACTION_BUY_CREATURE
from pokechain.game.context import GameContext
from pokechain.game.market import Listing
from pokechain.game.registry import ProfileRegistry
from pokechain.inventory import POTION
from pokechain.system.save import SnapshotStore
from pokechain.system.settings import Settings, SettingsData

from arena_support import ScriptedRandom

IDENTITY = "0xAbC123"


def fixed_clock():
    return datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    return SnapshotStore(tmp_path / "saves")


@pytest.fixture
def ledger():
    return SimulatedLedger(rng=random.Random(7))


def new_context(catalog, store, ledger, *, draws=(), settings=None, identity=IDENTITY):
    return GameContext(identity, catalog=catalog, ledger=ledger, store=store, settings=settings,
                       rng=ScriptedRandom(draws=draws), clock=fixed_clock, opponent_pool=[2])


@pytest.fixture
def ctx(catalog, store, ledger):
    c = new_context(catalog, store, ledger)
    c.create_profile("Ash", 1)
    return c


def test_create_profile_mints_and_saves(ctx, store, ledger):
    profile = ctx.profile
    assert profile.trainer_name == "Ash"
    assert [c.name for c in profile.roster.team] == ["Alpha"]
    assert profile.roster.team[0].level == 5
    assert profile.progression.currency == 500
    assert ctx.inventory.snapshot() == {"potion": 3, "poke-ball": 5}
    minted = ledger.actions(ACTION_MINT_STARTER)
    assert len(minted) == 1 and minted[0]["receipt"].startswith("0x")
    assert len(minted[0]["receipt"]) == 66
    expected = hashlib.sha1(IDENTITY.lower().encode("utf-8")).hexdigest() + ".json"
    assert store.path_for(IDENTITY).name == expected
    assert store.exists(IDENTITY)


def test_snapshot_reloads_in_new_context(ctx, catalog, store, ledger):
    ctx.buy_item(POTION, 2)
    fresh = new_context(catalog, store, ledger)
    assert fresh.load()
    assert fresh.profile.roster.team[0].name == "Alpha"
    assert fresh.inventory.count(POTION) == 5
    assert fresh.profile.progression.currency == 400


def test_create_profile_rejections(ctx, catalog, store, ledger):
    with pytest.raises(ProfileExists):
        ctx.create_profile("Again", 1)
    other = new_context(catalog, store, ledger, identity="0xother")
    with pytest.raises(InvalidTarget):
        other.create_profile("Gary", 2)
    assert not store.exists("0xother")


def test_commands_need_a_profile(catalog, store, ledger):
    c = new_context(catalog, store, ledger)
    assert not c.load()
    with pytest.raises(ProfileNotFound):
        c.start_battle()
    with pytest.raises(ProfileNotFound):
        c.buy_item(POTION)


def test_autosave_can_be_disabled(catalog, store, ledger, tmp_path):
    settings = Settings(SettingsData(autosave=False), tmp_path / "settings.json")
    c = new_context(catalog, store, ledger, settings=settings)
    c.create_profile("Ash", 1)
    assert not store.exists(IDENTITY)
    c.save()
    assert store.exists(IDENTITY)


def test_ledger_rejection_keeps_local_state(catalog, store):
    c = new_context(catalog, store, SimulatedLedger(rng=random.Random(1), failure_rate=1.0))
    c.create_profile("Ash", 1)
    assert c.has_profile
    notices = c.drain_notices()
    assert len(notices) == 1 and "mint_starter" in notices[0]
    assert c.drain_notices() == []


def test_ledger_error_becomes_notice(catalog, store):
    class BrokenLedger:
        def submit(self, action_kind, payload):
            raise LedgerError(action_kind, "connection refused")

    c = new_context(catalog, store, BrokenLedger())
    c.create_profile("Ash", 1)
    assert c.has_profile
    assert any("not recorded" in n for n in c.drain_notices())


def test_victory_updates_progression_and_ledger(ctx, ledger):
    ctx.rng.script(0.0, 0.99)
    ctx.start_battle(1)
    ctx.session.opponent.current_hp = 1
    result = ctx.act(0)
    assert result.state == BattleState.VICTORY
    assert ctx.session is None
    assert ctx.last_outcome == BattleState.VICTORY
    prog = ctx.profile.progression
    assert prog.wins == 1
    assert "first_win" in prog.achievements
    assert prog.currency == 500 + 50 + 100
    assert ctx.last_reward.currency == 50
    battles = ledger.actions(ACTION_RECORD_BATTLE)
    assert [b["payload"]["result"] for b in battles] == ["victory"]
    assert prog.battle_history[-1]["timestamp"].startswith("2026-10-18T12:00:00")


def test_scenario_c_defeat_through_context(ctx, ledger):
    ctx.rng.script(0.0, 0.99, 0.0, 0.99)
    ctx.start_battle(1)
    ctx.profile.roster.active().current_hp = 1
    result = ctx.act(0)
    assert result.state == BattleState.AWAITING_RECOVERY_CHOICE
    with pytest.raises(BattleNotReady):
        ctx.switch_active(0)
    result = ctx.choose_recovery(RecoveryOption.ACCEPT_DEFEAT)
    assert result.state == BattleState.DEFEAT
    assert ctx.session is None
    assert ctx.profile.progression.losses == 1
    assert ledger.actions(ACTION_RECORD_BATTLE)[0]["payload"]["result"] == "defeat"


def test_scenario_e_flee_records_nothing(ctx, ledger):
    ctx.rng.script(0.5)
    ctx.start_battle(1)
    assert ctx.run().state == BattleState.FLED
    prog = ctx.profile.progression
    assert ctx.session is None
    assert ctx.last_outcome == BattleState.FLED
    assert prog.wins == 0 and prog.losses == 0
    assert prog.battle_history == []
    assert ledger.actions(ACTION_RECORD_BATTLE) == []


def test_battle_commands_without_session(ctx):
    with pytest.raises(BattleNotReady):
        ctx.act(0)
    ctx.start_battle(1)
    with pytest.raises(BattleNotReady):
        ctx.start_battle(1)


def test_shop_market_and_save_locked_during_battle(ctx, catalog):
    ctx.start_battle(1)
    with pytest.raises(BattleNotReady):
        ctx.buy_item(POTION)
    with pytest.raises(BattleNotReady):
        ctx.purchase(Listing(catalog.get_creature(2), price=120))
    with pytest.raises(BattleNotReady):
        ctx.save()
    with pytest.raises(BattleNotReady):
        ctx.heal_team()
    assert ctx.profile.progression.currency == 500
    assert len(ctx.profile.roster.team) == 1


def test_heal_team_lets_a_fainted_team_battle_again(ctx, catalog, store, ledger):
    ctx.profile.roster.active().current_hp = 0
    with pytest.raises(NoActiveCreature):
        ctx.start_battle(1)
    assert ctx.session is None
    assert ctx.heal_team() == 1
    active = ctx.profile.roster.active()
    assert active.current_hp == active.max_hp
    fresh = new_context(catalog, store, ledger)
    assert fresh.load()
    assert fresh.profile.roster.active().current_hp == active.max_hp
    assert ctx.start_battle(1).state == BattleState.IN_PROGRESS


def test_purchase_and_first_purchase_achievement(ctx, catalog, ledger):
    listing = Listing(catalog.get_creature(2), price=120)
    ctx.market = [listing]
    assert ctx.purchase(listing) == "team"
    prog = ctx.profile.progression
    assert prog.first_purchase_made
    assert prog.currency == 500 - 120 + 50
    assert [c.name for c in ctx.profile.roster.team] == ["Alpha", "Beta"]
    assert ctx.market == []
    assert ledger.actions(ACTION_BUY_CREATURE)[0]["payload"]["price"] == 120


def test_purchase_rejected_without_funds(ctx, catalog, ledger):
    listing = Listing(catalog.get_creature(2), price=10_000)
    with pytest.raises(InsufficientFunds):
        ctx.purchase(listing)
    assert len(ctx.profile.roster.team) == 1
    assert ledger.actions(ACTION_BUY_CREATURE) == []


def test_market_listings_come_from_pool(ctx):
    stock = ctx.refresh_market()
    assert [l.name for l in stock] == ["Beta"]
    assert 100 <= stock[0].price <= 600


def test_shop_and_items_outside_battle(ctx):
    assert ctx.buy_item(POTION, 2) == 5
    assert ctx.profile.progression.currency == 400
    with pytest.raises(ItemUnavailable):
        ctx.buy_item("master-ball")
    active = ctx.profile.roster.active()
    active.current_hp = 1
    res = ctx.use_item(POTION)
    assert res.amount == 20
    assert ctx.inventory.count(POTION) == 4


def test_registry_shares_context_per_identity(catalog, store, ledger):
    registry = ProfileRegistry(lambda ident: new_context(catalog, store, ledger, identity=ident))
    first = registry.get(IDENTITY)
    assert registry.get(" 0xabc123 ") is first
    assert not registry.exists(IDENTITY)
    with registry.session(IDENTITY) as ctx:
        ctx.create_profile("Ash", 1)
    assert registry.exists(IDENTITY)
    assert registry.identities() == ["0xabc123"]
