"""Per-identity game context: profile lifecycle, battles, shop and marketplace.

A ``GameContext`` owns one profile and at most one battle session. Every
profile mutation is followed by an autosave (when enabled) and notable
actions are reported to the ledger. Ledger problems never roll back local
state; they are logged and surfaced through ``notices``.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence
import random
import time

from pokechain.battle.factory import build_creature, creature_from_template
from pokechain.battle.session import BattleSession, BattleState, RecoveryOption, TurnResult
from pokechain.core.errors import (
    ProfileExists, ProfileNotFound, BattleNotReady, InvalidTarget, ItemUnavailable, LedgerError,
    InsufficientFunds,
)
from pokechain.core.logging import logger
from pokechain.data.catalog import Catalog, CreatureTemplate, fetch_many
from pokechain.data.ledger import (
    Ledger, LedgerReceipt, ACTION_MINT_STARTER, ACTION_RECORD_BATTLE, ACTION_BUY_CREATURE,
)
from pokechain.game import progression as prog
from pokechain.game.market import Listing, listings as stock_listings
from pokechain.inventory import Inventory, ITEM_PRICES, STARTING_ITEMS, use_item as apply_item
from pokechain.system.save import ProfileState, SnapshotStore
from pokechain.system.settings import Settings

STARTER_IDS = (1, 4, 7, 25, 152, 155, 158, 252, 255, 258)
STARTER_LEVEL = 5
DEFAULT_OPPONENTS = 3


def starter_choices(catalog: Catalog) -> List[CreatureTemplate]:
    return fetch_many(STARTER_IDS, catalog.get_creature)


class GameContext:
    def __init__(self, identity: str, *, catalog: Catalog, ledger: Ledger, store: SnapshotStore,
                 settings: Optional[Settings] = None, rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 opponent_pool: Optional[Sequence[int]] = None):
        self.identity = identity
        self.catalog = catalog
        self.ledger = ledger
        self.store = store
        self.settings = settings
        self.rng = rng or random.Random()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.opponent_pool = opponent_pool
        self.profile: Optional[ProfileState] = None
        self.inventory = Inventory()
        self.session: Optional[BattleSession] = None
        self.last_outcome: Optional[BattleState] = None
        self.last_reward: Optional[prog.VictoryReward] = None
        self.market: List[Listing] = []
        self.notices: List[str] = []

    # ------------------------------------------------------------------
    # Profile lifecycle
    # ------------------------------------------------------------------
    def load(self) -> bool:
        """Load the snapshot for this identity; False when none exists yet."""
        profile = self.store.load_snapshot(self.identity)
        if profile is None:
            return False
        self._attach(profile)
        logger.info("ProfileLoaded", identity=self.identity, trainer=profile.trainer_name)
        return True

    @property
    def has_profile(self) -> bool:
        return self.profile is not None

    def _attach(self, profile: ProfileState):
        self.profile = profile
        self.inventory = Inventory(profile.inventory)
        profile.roster.ensure_active_eligible()

    def _require_profile(self) -> ProfileState:
        if self.profile is None:
            raise ProfileNotFound(f"No profile for {self.identity}; create one first")
        return self.profile

    def create_profile(self, trainer_name: str, starter: int) -> ProfileState:
        if self.profile is not None or self.store.exists(self.identity):
            raise ProfileExists(f"A profile already exists for {self.identity}")
        if starter not in STARTER_IDS:
            raise InvalidTarget(f"{starter} is not a starter choice")
        creature = build_creature(self.catalog, starter, STARTER_LEVEL)
        profile = ProfileState(identity=self.identity, trainer_name=trainer_name.strip() or "TRAINER",
                               inventory=dict(STARTING_ITEMS), created_at=time.time())
        profile.roster.add(creature)
        self._attach(profile)
        logger.info("ProfileCreated", identity=self.identity, starter=creature.name)
        self._record(ACTION_MINT_STARTER, {"species_id": creature.species_id, "name": creature.name})
        prog.evaluate_achievements(profile.progression, profile.roster)
        self._autosave()
        return profile

    def save(self):
        profile = self._require_profile()
        self._require_idle("save")
        profile.inventory = self.inventory.snapshot()
        return self.store.save_snapshot(profile)

    def _require_idle(self, what: str):
        if self.session is not None:
            raise BattleNotReady(f"Can't {what} during a battle")

    def _autosave(self):
        if self.settings is not None and not self.settings.data.autosave:
            return
        self.save()

    def _today(self) -> str:
        return self.clock().date().isoformat()

    def _record(self, action: str, payload: dict) -> Optional[LedgerReceipt]:
        try:
            receipt = self.ledger.submit(action, {"identity": self.identity, **payload})
        except LedgerError as e:
            logger.warn("LedgerFailed", action=action, error=str(e))
            self.notices.append(f"Ledger unavailable: {action} was not recorded.")
            return None
        if not receipt.accepted:
            logger.warn("LedgerRejected", action=action)
            self.notices.append(f"Ledger rejected {action}; your progress is kept locally.")
        return receipt

    def drain_notices(self) -> List[str]:
        out, self.notices = self.notices, []
        return out

    # ------------------------------------------------------------------
    # Team & items outside battle
    # ------------------------------------------------------------------
    @property
    def in_battle(self) -> bool:
        return self.session is not None

    def switch_active(self, index: int):
        profile = self._require_profile()
        if self.in_battle:
            raise BattleNotReady("Use the battle switch command during a battle")
        target = profile.roster.switch_active(index)
        self._autosave()
        return target

    def use_item(self, kind: str, target_index: Optional[int] = None):
        profile = self._require_profile()
        if self.in_battle:
            return self._battle(lambda s: s.use_item(kind, target_index))
        res = apply_item(self.inventory, profile.roster.team, profile.roster.active_index, kind, target_index)
        profile.roster.ensure_active_eligible()
        self._autosave()
        return res

    def heal_team(self) -> int:
        """Free full heal outside battle; returns how many members were fainted."""
        profile = self._require_profile()
        self._require_idle("heal at the center")
        fainted = sum(1 for c in profile.roster.team if c.is_fainted())
        profile.roster.heal_team()
        profile.roster.ensure_active_eligible()
        logger.info("TeamHealed", identity=self.identity, revived=fainted)
        self._autosave()
        return fainted

    def buy_item(self, kind: str, qty: int = 1) -> int:
        profile = self._require_profile()
        self._require_idle("shop")
        if kind not in ITEM_PRICES:
            raise ItemUnavailable(f"The shop doesn't sell {kind}")
        if qty < 1:
            raise InvalidTarget("Quantity must be at least 1")
        prog.spend_currency(profile.progression, ITEM_PRICES[kind] * qty)
        self.inventory.add(kind, qty)
        logger.info("ItemPurchased", item=kind, qty=qty)
        self._autosave()
        return self.inventory.count(kind)

    # ------------------------------------------------------------------
    # Marketplace
    # ------------------------------------------------------------------
    def refresh_market(self, count: int = 8) -> List[Listing]:
        self._require_profile()
        self.market = stock_listings(self.catalog, self.rng, count, self.opponent_pool)
        return self.market

    def purchase(self, listing: Listing) -> str:
        profile = self._require_profile()
        self._require_idle("buy creatures")
        if listing.price > profile.progression.currency:
            raise InsufficientFunds(listing.price, profile.progression.currency)
        creature = creature_from_template(listing.template, listing.level, self.catalog)
        self._record(ACTION_BUY_CREATURE, {"species_id": creature.species_id, "price": listing.price})
        prog.spend_currency(profile.progression, listing.price)
        destination = profile.roster.add(creature)
        profile.progression.first_purchase_made = True
        prog.evaluate_achievements(profile.progression, profile.roster)
        if listing in self.market:
            self.market.remove(listing)
        logger.info("CreaturePurchased", name=creature.name, price=listing.price, destination=destination)
        self._autosave()
        return destination

    # ------------------------------------------------------------------
    # Battles
    # ------------------------------------------------------------------
    def start_battle(self, opponents: int = DEFAULT_OPPONENTS) -> TurnResult:
        profile = self._require_profile()
        if self.in_battle:
            raise BattleNotReady("A battle is already in progress")
        session = BattleSession(profile.roster, self.inventory, profile.progression, self.catalog,
                                total_opponents=opponents, rng=self.rng, opponent_pool=self.opponent_pool)
        result = session.start()
        self.session = session
        self.last_outcome = None
        self.last_reward = None
        return result

    def _battle(self, command: Callable[[BattleSession], TurnResult]) -> TurnResult:
        if self.session is None:
            raise BattleNotReady("No battle in progress")
        result = command(self.session)
        if self.session.is_over:
            self._conclude()
        return result

    def act(self, move_index: int) -> TurnResult:
        return self._battle(lambda s: s.act(move_index))

    def struggle(self) -> TurnResult:
        return self._battle(lambda s: s.struggle())

    def switch(self, index: int) -> TurnResult:
        return self._battle(lambda s: s.switch(index))

    def run(self) -> TurnResult:
        return self._battle(lambda s: s.run())

    def choose_recovery(self, option: RecoveryOption) -> TurnResult:
        return self._battle(lambda s: s.choose_recovery(option))

    def choose_move_replacement(self, slot: Optional[int]) -> TurnResult:
        return self._battle(lambda s: s.choose_move_replacement(slot))

    def _conclude(self):
        session, profile = self.session, self._require_profile()
        state = session.state
        stamp = self.clock().isoformat(timespec="seconds")
        if state == BattleState.VICTORY:
            self.last_reward = prog.record_victory(profile.progression, session.defeated,
                                                   today=self._today(), timestamp=stamp, roster=profile.roster)
            self._record(ACTION_RECORD_BATTLE, {"result": "victory", "defeated": session.defeated})
        elif state == BattleState.DEFEAT:
            prog.record_defeat(profile.progression, session.defeated, timestamp=stamp)
            self._record(ACTION_RECORD_BATTLE, {"result": "defeat", "defeated": session.defeated})
        elif state == BattleState.ABORTED:
            prog.record_aborted(profile.progression, session.defeated, timestamp=stamp)
        self.last_outcome = state
        self.session = None
        profile.roster.ensure_active_eligible()
        self._autosave()


__all__ = ["GameContext", "STARTER_IDS", "STARTER_LEVEL", "starter_choices"]
