"""Battle mechanics: type chart, move resolution and the pre-turn status engine.

Every probability is drawn from the injected ``random.Random`` so a seeded
(or scripted) source makes whole battles reproducible.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Callable, Sequence
import math
import random
from .models import Creature, Move, STATUS_NONE, STATUS_NAMES
from .stats import ATTACK, DEFENSE, SP_ATK, SP_DEF

TYPE_CHART: Dict[str, Dict[str, float]] = {
    "normal":  {"rock": 0.5, "ghost": 0.0, "steel": 0.5},
    "fire":    {"fire": 0.5, "water": 0.5, "grass": 2.0, "ice": 2.0, "bug": 2.0, "rock": 0.5, "dragon": 0.5, "steel": 2.0},
    "water":   {"fire": 2.0, "water": 0.5, "grass": 0.5, "ground": 2.0, "rock": 2.0, "dragon": 0.5},
    "grass":   {"fire": 0.5, "water": 2.0, "grass": 0.5, "poison": 0.5, "ground": 2.0, "flying": 0.5, "bug": 0.5, "rock": 2.0, "dragon": 0.5, "steel": 0.5},
    "electric":{"water": 2.0,"electric": 0.5,"grass": 0.5,"ground": 0.0,"flying": 2.0,"dragon": 0.5},
    "ice":     {"fire": 0.5,"water": 0.5,"grass": 2.0,"ice": 0.5,"ground": 2.0,"flying": 2.0,"dragon": 2.0,"steel": 0.5},
    "fighting":{"normal": 2.0,"ice": 2.0,"rock": 2.0,"dark": 2.0,"steel": 2.0,"poison": 0.5,"flying": 0.5,"psychic": 0.5,"bug": 0.5,"ghost": 0.0,"fairy": 0.5},
    "poison":  {"grass": 2.0,"poison": 0.5,"ground": 0.5,"rock": 0.5,"ghost": 0.5,"steel": 0.0,"fairy": 2.0},
    "ground":  {"fire": 2.0,"electric": 2.0,"poison": 2.0,"rock": 2.0,"steel": 2.0,"grass": 0.5,"bug": 0.5,"flying": 0.0},
    "flying":  {"grass": 2.0,"fighting": 2.0,"bug": 2.0,"electric": 0.5,"rock": 0.5,"steel": 0.5},
    "psychic": {"fighting": 2.0,"poison": 2.0,"psychic": 0.5,"steel": 0.5,"dark": 0.0},
    "bug":     {"grass": 2.0,"psychic": 2.0,"dark": 2.0,"fire": 0.5,"fighting": 0.5,"poison": 0.5,"flying": 0.5,"ghost": 0.5,"steel": 0.5,"fairy": 0.5},
    "rock":    {"fire": 2.0,"ice": 2.0,"flying": 2.0,"bug": 2.0,"fighting": 0.5,"ground": 0.5,"steel": 0.5},
    "ghost":   {"ghost": 2.0,"psychic": 2.0,"dark": 0.5,"normal": 0.0},
    "dragon":  {"dragon": 2.0,"steel": 0.5,"fairy": 0.0},
    "dark":    {"ghost": 2.0,"psychic": 2.0,"fighting": 0.5,"dark": 0.5,"fairy": 0.5},
    "steel":   {"ice": 2.0,"rock": 2.0,"fairy": 2.0,"fire": 0.5,"water": 0.5,"electric": 0.5,"steel": 0.5},
    "fairy":   {"fighting": 2.0,"dragon": 2.0,"dark": 2.0,"fire": 0.5,"poison": 0.5,"steel": 0.5},
}

CRIT_CHANCE = 1/16
CRIT_MULTIPLIER = 1.5
STAB_MULTIPLIER = 1.5
VARIANCE_RANGE = (0.85, 1.0)

PARALYSIS_SKIP_CHANCE = 0.25
SLEEP_WAKE_CHANCE = 0.5
FREEZE_THAW_CHANCE = 0.2


def effectiveness(attack_type: str, defender_types: Sequence[str]) -> float:
    mult = 1.0
    offense = TYPE_CHART.get(attack_type.lower(), {})
    for t in defender_types:
        mult *= offense.get(t.lower(), 1.0)
    return mult


def base_damage(level: int, power: int, attack: int, defense: int) -> int:
    return math.floor((((2 * level / 5) + 2) * power * attack / max(1, defense)) / 50) + 2

# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------
@dataclass
class BattleEvent:
    kind: str
    text: str
    data: Dict[str, Any] = field(default_factory=dict)

@dataclass
class MoveOutcome:
    damage: int = 0
    is_critical: bool = False
    effectiveness: float = 1.0
    missed: bool = False
    inflicted_status: Optional[str] = None

@dataclass
class StatusTick:
    skip_turn: bool = False
    fainted: bool = False


class BattleCore:
    def __init__(self, rng: Optional[random.Random] = None, event_cb: Optional[Callable[[BattleEvent], None]] = None):
        self.rng = rng or random.Random()
        self.event_cb = event_cb

    def _emit(self, kind: str, text: str, **data: Any) -> BattleEvent:
        evt = BattleEvent(kind, text, data)
        if self.event_cb:
            self.event_cb(evt)
        return evt

    # ------------------------------------------------------------------
    # Mechanics
    # ------------------------------------------------------------------
    def get_effectiveness(self, move_type: str, target_types: Sequence[str]) -> float:
        return effectiveness(move_type, target_types)

    def roll_crit(self) -> bool:
        return self.rng.random() < CRIT_CHANCE

    def accuracy_check(self, move: Move) -> bool:
        accuracy = 100 if move.accuracy is None else move.accuracy
        return self.rng.random() * 100 < accuracy

    def resolve_move(self, attacker: Creature, defender: Creature, move: Move) -> MoveOutcome:
        """Hit/miss, damage, critical, effectiveness and secondary status for one action.

        Does not touch HP; the defender's status is assigned here when a
        secondary effect lands.
        """
        if move.power <= 0:
            return MoveOutcome(inflicted_status=self._roll_secondary(defender, move))
        if not self.accuracy_check(move):
            return MoveOutcome(missed=True)
        if move.category == "special":
            atk, dfn = attacker.stat(SP_ATK), defender.stat(SP_DEF)
        else:
            atk, dfn = attacker.stat(ATTACK), defender.stat(DEFENSE)
        dmg = float(base_damage(attacker.level, move.power, atk, dfn))
        if move.type.lower() in attacker.types:
            dmg *= STAB_MULTIPLIER
        eff = self.get_effectiveness(move.type, defender.types)
        dmg *= eff
        crit = self.roll_crit()
        if crit:
            dmg *= CRIT_MULTIPLIER
        dmg *= self.rng.uniform(*VARIANCE_RANGE)
        if eff == 0:
            return MoveOutcome(damage=0, is_critical=crit, effectiveness=0.0)
        inflicted = self._roll_secondary(defender, move)
        return MoveOutcome(damage=max(1, math.floor(dmg)), is_critical=crit, effectiveness=eff,
                           inflicted_status=inflicted)

    def _roll_secondary(self, defender: Creature, move: Move) -> Optional[str]:
        if not move.ailment or move.ailment_chance <= 0 or defender.status != STATUS_NONE:
            return None
        if self.rng.random() * 100 < move.ailment_chance:
            if self.apply_status(defender, move.ailment):
                return move.ailment
        return None

    def execute_move(self, attacker: Creature, defender: Creature, move: Move) -> MoveOutcome:
        """Resolve a move, apply its damage/recoil and emit log events."""
        self._emit("move_used", f"{attacker.name} used {move.name}!", attacker=attacker.name, move=move.name)
        outcome = self.resolve_move(attacker, defender, move)
        if outcome.missed:
            self._emit("miss", f"{attacker.name}'s attack missed!", attacker=attacker.name)
            return outcome
        if move.power > 0:
            if outcome.effectiveness == 0:
                self._emit("no_effect", f"It doesn't affect {defender.name}...", target=defender.name)
                return outcome
            if outcome.is_critical:
                self._emit("critical", "A critical hit!")
            if outcome.effectiveness > 1:
                self._emit("effectiveness", "It's super effective!", multiplier=outcome.effectiveness)
            elif outcome.effectiveness < 1:
                self._emit("effectiveness", "It's not very effective...", multiplier=outcome.effectiveness)
            self.apply_damage(defender, outcome.damage, cause="move", move=move.name)
            if move.recoil_ratio and outcome.damage > 0:
                num, den = move.recoil_ratio
                self._emit("recoil", f"{attacker.name} is damaged by recoil!")
                self.apply_damage(attacker, max(1, (outcome.damage * num) // den), cause="recoil")
        if outcome.inflicted_status:
            label = STATUS_NAMES.get(outcome.inflicted_status, outcome.inflicted_status)
            self._emit("status_inflicted", f"{defender.name} is {label}!",
                       target=defender.name, status=outcome.inflicted_status)
        elif move.power <= 0:
            self._emit("no_effect", "But nothing happened.")
        return outcome

    def apply_damage(self, target: Creature, amount: int, *, cause: str = "damage", **meta: Any) -> int:
        was_standing = not target.is_fainted()
        lost = target.take_damage(amount)
        self._emit("damage", f"{target.name} lost {lost} HP.", target=target.name, amount=lost,
                   hp=target.current_hp, max_hp=target.max_hp, cause=cause, **meta)
        if was_standing and target.is_fainted():
            self._emit("fainted", f"{target.name} fainted!", target=target.name)
        return lost

    def apply_heal(self, target: Creature, amount: int, *, cause: str = "other") -> int:
        gained = target.heal(amount)
        self._emit("heal", f"{target.name} recovered {gained} HP.", target=target.name, amount=gained,
                   hp=target.current_hp, max_hp=target.max_hp, cause=cause)
        return gained

    # ------------------------------------------------------------------
    # Status helpers
    # ------------------------------------------------------------------
    def apply_status(self, target: Creature, code: str) -> bool:
        if target.status != STATUS_NONE or target.is_fainted():
            return False
        target.status = code
        return True

    def cure_status(self, target: Creature):
        target.status = STATUS_NONE

    def apply_status_pre_turn(self, creature: Creature) -> StatusTick:
        code = creature.status
        if code == "psn" or code == "brn":
            divisor = 8 if code == "psn" else 16
            reason = "poison" if code == "psn" else "its burn"
            self._emit("status_damage", f"{creature.name} is hurt by {reason}!", target=creature.name, status=code)
            self.apply_damage(creature, max(1, creature.max_hp // divisor), cause="status", status=code)
            fainted = creature.is_fainted()
            return StatusTick(skip_turn=fainted, fainted=fainted)
        if code == "par":
            if self.rng.random() < PARALYSIS_SKIP_CHANCE:
                self._emit("status_skip", f"{creature.name} is fully paralyzed! It can't move!", target=creature.name, status=code)
                return StatusTick(skip_turn=True)
            return StatusTick()
        if code == "slp":
            if self.rng.random() < SLEEP_WAKE_CHANCE:
                self.cure_status(creature)
                self._emit("status_cleared", f"{creature.name} woke up!", target=creature.name, status=code)
                return StatusTick()
            self._emit("status_skip", f"{creature.name} is fast asleep.", target=creature.name, status=code)
            return StatusTick(skip_turn=True)
        if code == "frz":
            if self.rng.random() < FREEZE_THAW_CHANCE:
                self.cure_status(creature)
                self._emit("status_cleared", f"{creature.name} thawed out!", target=creature.name, status=code)
                return StatusTick()
            self._emit("status_skip", f"{creature.name} is frozen solid!", target=creature.name, status=code)
            return StatusTick(skip_turn=True)
        return StatusTick()


__all__ = [
    "BattleCore", "BattleEvent", "MoveOutcome", "StatusTick", "TYPE_CHART",
    "effectiveness", "base_damage",
]
