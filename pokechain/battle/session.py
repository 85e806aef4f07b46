"""Battle session: a command-driven state machine over a sequence of opponents.

The player fights ``total_opponents`` catalog creatures one after another.
Every command validates the current state first (raising an
:class:`~pokechain.core.errors.InvalidAction` subclass without side effects),
then appends :class:`~pokechain.battle.core.BattleEvent` records to
``session.log`` and returns a :class:`TurnResult` carrying only the events
the command produced.

Modal decisions (forced switch, recovery after a full wipe, learning a move
with a full move set) are explicit ``AWAITING_*`` states resolved by their
own commands.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence
import random

from .core import BattleCore, BattleEvent
from .models import Creature, Move, STATUS_NONE, struggle as struggle_move
from .factory import build_opponent, build_creature
from .experience import award_experience, knockout_exp, apply_move_offer, MoveOffer
from pokechain.core.errors import (
    BattleNotReady, InvalidOpponentCount, NoActiveCreature, InvariantViolation, InvalidTarget,
    MoveOutOfPP, InvalidAction, CatalogError,
)
from pokechain.core.logging import logger
from pokechain.data.catalog import Catalog
from pokechain.game.progression import ProgressionState, spend_currency
from pokechain.game.roster import Roster, TEAM_LIMIT
from pokechain.inventory import Inventory, use_item as apply_item, REVIVE, ITEM_PRICES

MIN_OPPONENTS = 1
MAX_OPPONENTS = 5
RUN_SUCCESS_CHANCE = 0.8
FULL_HEAL_COST = 200
EMERGENCY_SPECIES = "rattata"
EMERGENCY_LEVEL = 5

PLAYER = "player"
OPPONENT = "opponent"


class BattleState(str, Enum):
    SETUP = "setup"
    IN_PROGRESS = "in_progress"
    AWAITING_SWITCH = "awaiting_switch"
    AWAITING_RECOVERY_CHOICE = "awaiting_recovery_choice"
    AWAITING_MOVE_REPLACEMENT_CHOICE = "awaiting_move_replacement_choice"
    VICTORY = "victory"
    DEFEAT = "defeat"
    FLED = "fled"
    ABORTED = "aborted"

TERMINAL_STATES = frozenset({BattleState.VICTORY, BattleState.DEFEAT, BattleState.FLED, BattleState.ABORTED})


class RecoveryOption(str, Enum):
    FREE_REVIVE = "free_revive"
    REVIVE_ITEM = "revive_item"
    EMERGENCY_BACKUP = "emergency_backup"
    FULL_HEAL = "full_heal"
    ACCEPT_DEFEAT = "accept_defeat"


@dataclass
class TurnResult:
    state: BattleState
    events: List[BattleEvent] = field(default_factory=list)

    def texts(self) -> List[str]:
        return [e.text for e in self.events]

    def kinds(self) -> List[str]:
        return [e.kind for e in self.events]


class BattleSession:
    def __init__(self, roster: Roster, inventory: Inventory, progression: ProgressionState,
                 catalog: Catalog, *, total_opponents: int = 3, rng: Optional[random.Random] = None,
                 opponent_pool: Optional[Sequence[int]] = None):
        self.roster = roster
        self.inventory = inventory
        self.progression = progression
        self.catalog = catalog
        self.total_opponents = total_opponents
        self.rng = rng or random.Random()
        self.opponent_pool = opponent_pool
        self.log: List[BattleEvent] = []
        self.core = BattleCore(self.rng, self.log.append)
        self.state = BattleState.SETUP
        self.turn = PLAYER
        self.opponent: Optional[Creature] = None
        self.current_round = 0
        self.defeated = 0
        self.pending_offers: List[MoveOffer] = []
        self.recovery_choices: List[RecoveryOption] = []

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @property
    def active(self) -> Optional[Creature]:
        return self.roster.active()

    @property
    def is_over(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def pending_offer(self) -> Optional[MoveOffer]:
        return self.pending_offers[0] if self.pending_offers else None

    def _emit(self, kind: str, text: str, **data) -> BattleEvent:
        evt = BattleEvent(kind, text, data)
        self.log.append(evt)
        return evt

    def _result(self, mark: int) -> TurnResult:
        return TurnResult(self.state, self.log[mark:])

    def _require(self, *states: BattleState):
        if self.state not in states:
            raise BattleNotReady(f"Not possible right now ({self.state.value})")

    def _require_player_turn(self):
        self._require(BattleState.IN_PROGRESS)
        if self.turn != PLAYER:
            raise BattleNotReady("It's not your turn")

    def _new_opponent(self, level: int) -> Creature:
        return build_opponent(self.catalog, self.rng, level, self.opponent_pool)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def start(self) -> TurnResult:
        self._require(BattleState.SETUP)
        if not (MIN_OPPONENTS <= self.total_opponents <= MAX_OPPONENTS):
            raise InvalidOpponentCount(
                f"Opponent count must be between {MIN_OPPONENTS} and {MAX_OPPONENTS}")
        active = self.active
        if active is None:
            raise NoActiveCreature("You need a creature on your team to battle")
        if active.is_fainted():
            raise NoActiveCreature(f"{active.name} has fainted; heal your team before battling")
        opponent = self._new_opponent(active.level)
        self.roster.heal_team()
        self.opponent = opponent
        self.current_round = 1
        self.defeated = 0
        self.state = BattleState.IN_PROGRESS
        self.turn = PLAYER
        mark = len(self.log)
        self._emit("battle_start", f"Battle started! {self.total_opponents} opponent(s) to defeat.",
                   total=self.total_opponents)
        self._announce_opponent()
        logger.info("BattleStart", opponents=self.total_opponents, active=active.name, level=active.level)
        return self._result(mark)

    def _ready_attacker(self) -> Creature:
        self._require_player_turn()
        active = self.active
        if active is None or active.is_fainted():
            raise NoActiveCreature("Your active creature can't battle")
        if not active.moves:
            raise InvariantViolation(f"{active.name} has no moves")
        return active

    def act(self, move_index: int) -> TurnResult:
        active = self._ready_attacker()
        if not (0 <= move_index < len(active.moves)):
            raise InvalidTarget(f"Move slot must be between 1 and {len(active.moves)}")
        move = active.moves[move_index]
        if not move.usable():
            raise MoveOutOfPP(f"{move.name} has no PP left")
        mark = len(self.log)
        self._player_attack(active, move)
        return self._result(mark)

    def struggle(self) -> TurnResult:
        """Attack with Struggle; only allowed once every move is out of PP."""
        active = self._ready_attacker()
        if active.has_usable_move():
            raise InvalidAction(f"{active.name} still has moves with PP left")
        mark = len(self.log)
        self._emit("struggle", f"{active.name} has no moves left!")
        self._player_attack(active, struggle_move())
        return self._result(mark)

    def _player_attack(self, active: Creature, move: Move):
        tick = self.core.apply_status_pre_turn(active)
        if tick.fainted:
            self._on_player_fainted()
            return
        if not tick.skip_turn:
            self._use_move(active, self.opponent, move)
            if self._check_knockouts():
                return
        self._opponent_turn()

    def switch(self, index: int) -> TurnResult:
        if self.state == BattleState.AWAITING_SWITCH:
            target = self.roster.switch_active(index)
            mark = len(self.log)
            self.state = BattleState.IN_PROGRESS
            self._emit("switched", f"Go, {target.name}!", index=index)
            self._opponent_turn()
            return self._result(mark)
        self._require_player_turn()
        old = self.active
        target = self.roster.switch_active(index)
        mark = len(self.log)
        if old is not None:
            self._emit("recalled", f"{old.name}, come back!")
        self._emit("switched", f"Go, {target.name}!", index=index)
        self._opponent_turn()
        return self._result(mark)

    def use_item(self, kind: str, target_index: Optional[int] = None) -> TurnResult:
        self._require_player_turn()
        res = apply_item(self.inventory, self.roster.team, self.roster.active_index, kind, target_index)
        mark = len(self.log)
        self._emit("item_used", res.message, item=kind, target=res.target.name, amount=res.amount)
        self._opponent_turn()
        return self._result(mark)

    def run(self) -> TurnResult:
        self._require_player_turn()
        mark = len(self.log)
        if self.rng.random() < RUN_SUCCESS_CHANCE:
            self._emit("fled", "Got away safely!")
            self._finish(BattleState.FLED)
            return self._result(mark)
        self._emit("run_failed", "Couldn't get away!")
        self._opponent_turn()
        return self._result(mark)

    def recovery_options(self) -> List[RecoveryOption]:
        opts = []
        if self.progression.free_revive_available:
            opts.append(RecoveryOption.FREE_REVIVE)
        if self.inventory.has(REVIVE) or self.progression.currency >= ITEM_PRICES[REVIVE]:
            opts.append(RecoveryOption.REVIVE_ITEM)
        if len(self.roster.team) < TEAM_LIMIT:
            opts.append(RecoveryOption.EMERGENCY_BACKUP)
        if self.progression.currency >= FULL_HEAL_COST:
            opts.append(RecoveryOption.FULL_HEAL)
        opts.append(RecoveryOption.ACCEPT_DEFEAT)
        return opts

    def choose_recovery(self, option: RecoveryOption) -> TurnResult:
        self._require(BattleState.AWAITING_RECOVERY_CHOICE)
        option = RecoveryOption(option)
        if option not in self.recovery_choices:
            raise InvalidAction(f"{option.value} is not available")
        mark = len(self.log)
        if option == RecoveryOption.ACCEPT_DEFEAT:
            self._emit("defeat", "You have no creatures left that can battle...")
            self._finish(BattleState.DEFEAT)
            return self._result(mark)
        if option == RecoveryOption.EMERGENCY_BACKUP:
            backup = build_creature(self.catalog, EMERGENCY_SPECIES, EMERGENCY_LEVEL)
            self.roster.team.append(backup)
            self.roster.active_index = len(self.roster.team) - 1
            self._emit("recovered", f"An emergency {backup.name} joins your team!", option=option.value)
        elif option == RecoveryOption.FULL_HEAL:
            spend_currency(self.progression, FULL_HEAL_COST)
            self.roster.heal_team()
            self._emit("recovered", "Your whole team was fully healed!", option=option.value, cost=FULL_HEAL_COST)
        else:
            if option == RecoveryOption.FREE_REVIVE:
                self.progression.free_revive_available = False
            elif self.inventory.has(REVIVE):
                self.inventory.remove(REVIVE)
            else:
                spend_currency(self.progression, ITEM_PRICES[REVIVE])
            target = self.active
            target.current_hp = max(1, target.max_hp // 2)
            target.status = STATUS_NONE
            self._emit("recovered", f"{target.name} was revived!", option=option.value, hp=target.current_hp)
        logger.info("BattleRecovery", option=option.value)
        self.recovery_choices = []
        self.state = BattleState.IN_PROGRESS
        self.turn = PLAYER
        return self._result(mark)

    def choose_move_replacement(self, slot: Optional[int]) -> TurnResult:
        self._require(BattleState.AWAITING_MOVE_REPLACEMENT_CHOICE)
        offer = self.pending_offers[0]
        forgotten = apply_move_offer(offer, slot)
        self.pending_offers.pop(0)
        mark = len(self.log)
        if forgotten is None:
            self._emit("move_declined", f"{offer.creature.name} did not learn {offer.move.name}.")
        else:
            self._emit("move_learned", f"{offer.creature.name} forgot {forgotten} and learned {offer.move.name}!",
                       forgot=forgotten, move=offer.move.name)
        if self.pending_offers:
            self._emit("move_offer", self.pending_offers[0].describe())
        else:
            self._advance_after_knockout()
        return self._result(mark)

    # ------------------------------------------------------------------
    # Turn flow
    # ------------------------------------------------------------------
    def _use_move(self, attacker: Creature, defender: Creature, move: Move):
        if any(m is move for m in attacker.moves):
            move.pp = max(0, move.pp - 1)
        self.core.execute_move(attacker, defender, move)

    def _choose_opponent_move(self, opp: Creature) -> Move:
        usable = [m for m in opp.moves if m.usable()]
        if not usable:
            return struggle_move()
        return self.rng.choice(usable)

    def _opponent_turn(self):
        if self.state != BattleState.IN_PROGRESS:
            return
        self.turn = OPPONENT
        opp = self.opponent
        tick = self.core.apply_status_pre_turn(opp)
        if tick.fainted:
            self._check_knockouts()
            return
        if not tick.skip_turn:
            self._use_move(opp, self.active, self._choose_opponent_move(opp))
            if self._check_knockouts():
                return
        self.turn = PLAYER

    def _check_knockouts(self) -> bool:
        """Route faints after an action; True when the normal turn flow stops."""
        opp_down = self.opponent is not None and self.opponent.is_fainted()
        player_down = self.active is not None and self.active.is_fainted()
        if opp_down:
            self._on_opponent_fainted()
            return True
        if player_down:
            self._on_player_fainted()
            return True
        return False

    def _announce_opponent(self):
        opp = self.opponent
        self._emit("opponent_appeared",
                   f"Round {self.current_round}: a wild {opp.name} (Lv. {opp.level}) appeared!",
                   round=self.current_round, name=opp.name, level=opp.level)

    def _on_opponent_fainted(self):
        self.defeated += 1
        active = self.active
        if active is not None:
            gained = knockout_exp(self.opponent.level, self.current_round)
            result = award_experience(active, gained, self.catalog)
            if result.gained:
                self._emit("exp_gained", f"{active.name} gained {result.gained} EXP!", amount=result.gained)
            for lvl in range(result.from_level + 1, result.to_level + 1):
                self._emit("level_up", f"{active.name} grew to level {lvl}!", level=lvl)
            for name in result.evolutions:
                self._emit("evolved", f"Your creature evolved into {name}!", name=name)
            for name in result.learned:
                self._emit("move_learned", f"{active.name} learned {name}!", move=name)
            self.pending_offers.extend(result.offers)
        logger.info("OpponentDefeated", round=self.current_round, defeated=self.defeated, total=self.total_opponents)
        if self.pending_offers:
            self.state = BattleState.AWAITING_MOVE_REPLACEMENT_CHOICE
            self._emit("move_offer", self.pending_offers[0].describe())
            return
        self._advance_after_knockout()

    def _advance_after_knockout(self):
        if self.defeated >= self.total_opponents:
            self._emit("victory", f"You defeated all {self.total_opponents} opponent(s)!", defeated=self.defeated)
            self._finish(BattleState.VICTORY)
            return
        self.current_round += 1
        active = self.active
        level = active.level if active is not None else self.opponent.level
        try:
            self.opponent = self._new_opponent(level)
        except CatalogError as e:
            logger.error("OpponentRotationFailed", round=self.current_round, error=str(e))
            self._emit("aborted", "The next opponent could not be loaded. The battle was called off.")
            self._finish(BattleState.ABORTED)
            return
        self.state = BattleState.IN_PROGRESS
        self.turn = PLAYER
        self._announce_opponent()
        logger.debug("OpponentRotated", round=self.current_round, name=self.opponent.name)
        if active is not None and active.is_fainted():
            self._on_player_fainted()

    def _on_player_fainted(self):
        self.turn = PLAYER
        if self.roster.has_living():
            self.state = BattleState.AWAITING_SWITCH
            self._emit("switch_required", "Choose your next creature!")
            return
        self.recovery_choices = self.recovery_options()
        self.state = BattleState.AWAITING_RECOVERY_CHOICE
        self._emit("recovery_required", "All your creatures have fainted!",
                   options=[o.value for o in self.recovery_choices])

    def _finish(self, state: BattleState):
        self.state = state
        self.turn = PLAYER
        logger.info("BattleEnd", result=state.value, defeated=self.defeated, total=self.total_opponents)


__all__ = [
    "BattleSession", "BattleState", "RecoveryOption", "TurnResult", "TERMINAL_STATES",
    "RUN_SUCCESS_CHANCE", "FULL_HEAL_COST", "EMERGENCY_SPECIES", "EMERGENCY_LEVEL",
    "MIN_OPPONENTS", "MAX_OPPONENTS",
]
