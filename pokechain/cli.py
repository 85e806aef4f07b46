"""Terminal client: profile creation, battles, marketplace, shop and team management.

Every command goes through ``GameContext``; ``ArenaError`` messages are shown
and the menu continues, so no recoverable error ends the program.
"""
from __future__ import annotations
import argparse
import os
import random
import time
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt, IntPrompt, Confirm
from rich.table import Table
from rich.box import ROUNDED

from pokechain import __version__
from pokechain.battle.render import creature_card, move_table, team_table, event_lines
from pokechain.battle.session import BattleState, RecoveryOption, TurnResult
from pokechain.core.errors import ArenaError
from pokechain.core.logging import logger
from pokechain.core.types import format_types
from pokechain.data.catalog import CachedCatalog, load_default_catalog, Catalog
from pokechain.data.ledger import SimulatedLedger
from pokechain.data.pokeapi import PokeApiCatalog
from pokechain.game.context import GameContext, starter_choices
from pokechain.game.registry import ProfileRegistry
from pokechain.inventory import ITEM_PRICES, ITEM_LABELS, ITEM_KINDS
from pokechain.system.save import SnapshotStore
from pokechain.system.settings import Settings

console = Console()

# 1 = fast, 2 = normal, 3 = slow
SPEED_MAP = {1: 0.05, 2: 0.25, 3: 0.5}

RECOVERY_LABELS = {
    RecoveryOption.FREE_REVIVE: "Free revive (once per profile)",
    RecoveryOption.REVIVE_ITEM: "Use a Revive",
    RecoveryOption.EMERGENCY_BACKUP: "Call an emergency backup",
    RecoveryOption.FULL_HEAL: "Pay for a full team heal",
    RecoveryOption.ACCEPT_DEFEAT: "Accept defeat",
}


def build_catalog(settings: Settings) -> Catalog:
    if settings.data.catalog_source == "pokeapi":
        return CachedCatalog(PokeApiCatalog(settings.data.catalog_url, timeout=settings.data.request_timeout))
    return CachedCatalog(load_default_catalog())


def build_registry(settings: Settings, rng: random.Random) -> ProfileRegistry:
    catalog = build_catalog(settings)
    ledger = SimulatedLedger(rng=rng, latency=0.0)
    store = SnapshotStore(settings.data.resolved_save_dir())
    return ProfileRegistry(lambda identity: GameContext(identity, catalog=catalog, ledger=ledger, store=store,
                                                       settings=settings, rng=rng))


def _pause(settings: Settings):
    if os.getenv("PYTEST_CURRENT_TEST"):
        return
    time.sleep(SPEED_MAP.get(settings.data.text_speed, 0.25))


def show_events(result: TurnResult, settings: Settings):
    for line in event_lines(result.events):
        console.print(line)
        _pause(settings)


def show_notices(ctx: GameContext):
    for note in ctx.drain_notices():
        console.print(f"[yellow]! {note}[/yellow]")


def choose(title: str, options: List[str], allow_cancel: bool = True) -> Optional[int]:
    table = Table(title=title, box=ROUNDED, show_header=False)
    for i, label in enumerate(options, start=1):
        table.add_row(str(i), label)
    if allow_cancel:
        table.add_row("0", "Back")
    console.print(table)
    lo = 0 if allow_cancel else 1
    while True:
        pick = IntPrompt.ask("Choice", default=lo)
        if lo <= pick <= len(options):
            return None if pick == 0 else pick - 1
        console.print("[red]Invalid choice[/red]")

# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------

def create_profile_flow(ctx: GameContext):
    console.print(Panel("Welcome to PokeChain Arena! Let's register your trainer.", box=ROUNDED))
    name = Prompt.ask("Trainer name", default="Red")
    with console.status("Loading starters..."):
        starters = starter_choices(ctx.catalog)
    if not starters:
        raise ArenaError("No starter could be loaded from the catalog")
    labels = [f"{t.name.capitalize():<12} {format_types(t.types)}" for t in starters]
    idx = choose("Choose your starter", labels, allow_cancel=False)
    ctx.create_profile(name, starters[idx].id)
    console.print(f"[green]{starters[idx].name.capitalize()} joined your team![/green]")
    show_notices(ctx)


def battle_flow(ctx: GameContext, settings: Settings):
    count = IntPrompt.ask("How many opponents (1-5)?", default=3)
    show_events(ctx.start_battle(count), settings)
    while ctx.session is not None:
        session = ctx.session
        try:
            if session.state == BattleState.AWAITING_SWITCH:
                console.print(team_table(session.roster.team, session.roster.active_index))
                idx = choose("Send out", [c.name for c in session.roster.team], allow_cancel=False)
                result = ctx.switch(idx)
            elif session.state == BattleState.AWAITING_RECOVERY_CHOICE:
                opts = session.recovery_choices
                idx = choose("All your creatures fainted", [RECOVERY_LABELS[o] for o in opts], allow_cancel=False)
                result = ctx.choose_recovery(opts[idx])
            elif session.state == BattleState.AWAITING_MOVE_REPLACEMENT_CHOICE:
                offer = session.pending_offer
                console.print(offer.describe())
                console.print(move_table(offer.creature))
                slot = choose(f"Forget which move for {offer.move.name}?", [m.name for m in offer.creature.moves])
                result = ctx.choose_move_replacement(slot)
            else:
                console.print(creature_card(session.opponent, title="Opponent"))
                console.print(creature_card(session.active, title="You", show_exp=True))
                action = choose("What will you do?", ["Fight", "Team", "Bag", "Run"], allow_cancel=False)
                if action == 0 and not session.active.has_usable_move():
                    result = ctx.struggle()
                elif action == 0:
                    console.print(move_table(session.active))
                    slot = choose("Move", [m.name for m in session.active.moves])
                    if slot is None:
                        continue
                    result = ctx.act(slot)
                elif action == 1:
                    console.print(team_table(session.roster.team, session.roster.active_index))
                    idx = choose("Switch to", [c.name for c in session.roster.team])
                    if idx is None:
                        continue
                    result = ctx.switch(idx)
                elif action == 2:
                    kinds = [k for k in ITEM_KINDS if ctx.inventory.has(k)]
                    idx = choose("Bag", [f"{ITEM_LABELS[k]} x{ctx.inventory.count(k)}" for k in kinds])
                    if idx is None:
                        continue
                    result = ctx.use_item(kinds[idx])
                else:
                    result = ctx.run()
        except ArenaError as e:
            console.print(f"[red]{e}[/red]")
            continue
        show_events(result, settings)
    outcome = ctx.last_outcome
    if outcome == BattleState.VICTORY and ctx.last_reward:
        r = ctx.last_reward
        console.print(f"[bold green]Victory![/bold green] +{r.currency} coins, +{r.trainer_xp} trainer XP")
        if r.quest_bonus:
            console.print(f"[green]Daily quest complete! +{r.quest_bonus} coins[/green]")
        for ach in r.achievements:
            console.print(f"[yellow]Achievement unlocked: {ach}[/yellow]")
    elif outcome is not None:
        console.print(f"Battle over: {outcome.value}")
    show_notices(ctx)


def market_flow(ctx: GameContext):
    with console.status("Stocking the marketplace..."):
        listings = ctx.refresh_market()
    if not listings:
        console.print("[yellow]The marketplace is empty right now.[/yellow]")
        return
    labels = [f"{l.name:<12} {format_types(l.template.types)}  Lv.{l.level}  {l.price} coins" for l in listings]
    idx = choose(f"Marketplace ({ctx.profile.progression.currency} coins)", labels)
    if idx is None:
        return
    listing = listings[idx]
    if Confirm.ask(f"Buy {listing.name} for {listing.price} coins?"):
        dest = ctx.purchase(listing)
        console.print(f"[green]{listing.name} was sent to your {dest}.[/green]")
    show_notices(ctx)


def shop_flow(ctx: GameContext):
    kinds = list(ITEM_PRICES)
    idx = choose(f"Item shop ({ctx.profile.progression.currency} coins)",
                 [f"{ITEM_LABELS[k]:<13} {ITEM_PRICES[k]} coins (own {ctx.inventory.count(k)})" for k in kinds])
    if idx is None:
        return
    qty = IntPrompt.ask("Quantity", default=1)
    total = ctx.buy_item(kinds[idx], qty)
    console.print(f"[green]You now have {total} {ITEM_LABELS[kinds[idx]]}.[/green]")


def team_flow(ctx: GameContext):
    roster = ctx.profile.roster
    console.print(team_table(roster.team, roster.active_index))
    if roster.storage:
        console.print(f"{len(roster.storage)} creature(s) in storage.")
    idx = choose("Make active", [c.name for c in roster.team])
    if idx is not None:
        target = ctx.switch_active(idx)
        console.print(f"{target.name} is now your active creature.")


def profile_panel(ctx: GameContext) -> Panel:
    p = ctx.profile
    pr = p.progression
    body = (f"Trainer [bold]{p.trainer_name}[/bold]  Lv.{pr.trainer_level} ({pr.trainer_xp} XP)\n"
            f"Coins {pr.currency}   Wins {pr.wins}   Losses {pr.losses}\n"
            f"Achievements: {', '.join(pr.achievements) or '-'}")
    return Panel(body, title="Profile", box=ROUNDED, expand=False)


def main_loop(ctx: GameContext, settings: Settings):
    while True:
        console.print(profile_panel(ctx))
        action = choose("Main menu", ["Battle", "Marketplace", "Item shop", "Team", "Heal team", "Save"], allow_cancel=True)
        try:
            if action is None:
                ctx.save()
                console.print("Progress saved. Goodbye!")
                return
            if action == 0:
                battle_flow(ctx, settings)
            elif action == 1:
                market_flow(ctx)
            elif action == 2:
                shop_flow(ctx)
            elif action == 3:
                team_flow(ctx)
            elif action == 4:
                ctx.heal_team()
                console.print("[green]Your team was restored to full health.[/green]")
            else:
                console.print(f"Saved to {ctx.save()}")
        except ArenaError as e:
            console.print(f"[red]{e}[/red]")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pokechain", description="PokeChain Arena battle simulator")
    parser.add_argument("--identity", help="wallet/identity string for the profile")
    parser.add_argument("--seed", type=int, help="seed the RNG for reproducible battles")
    parser.add_argument("--catalog", choices=["bundled", "pokeapi"], help="override the catalog source")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def run(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    settings = Settings.load()
    if args.catalog:
        settings.data.catalog_source = args.catalog
    logger.set_level(settings.data.effective_log_level())  # type: ignore[arg-type]
    rng = random.Random(args.seed)
    registry = build_registry(settings, rng)
    identity = args.identity or Prompt.ask("Identity (wallet address)", default="0xtrainer")
    try:
        with registry.session(identity) as ctx:
            if not ctx.has_profile:
                create_profile_flow(ctx)
            main_loop(ctx, settings)
    except ArenaError as e:
        console.print(f"[red]{e}[/red]")
    except (KeyboardInterrupt, EOFError):
        console.print("\nBye!")


__all__ = ["run", "build_catalog", "build_registry"]
