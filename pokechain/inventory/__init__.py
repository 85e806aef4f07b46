"""Item counts and item effects.

Kinds: ``potion`` (+20 HP), ``super-potion`` (+60 HP), ``revive`` (half HP to
a fainted member) and ``poke-ball`` (capture, never allowed against trainer
creatures). Effects are validated fully before an item is consumed.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional
from pokechain.battle.models import Creature, STATUS_NONE
from pokechain.core.errors import (
    ItemUnavailable, TargetFullHP, CreatureFainted, InvalidTarget, CaptureNotAllowed, NoActiveCreature,
)

POTION = "potion"
SUPER_POTION = "super-potion"
REVIVE = "revive"
POKE_BALL = "poke-ball"

HEAL_AMOUNTS: Dict[str, int] = {POTION: 20, SUPER_POTION: 60}
ITEM_KINDS = (POTION, SUPER_POTION, REVIVE, POKE_BALL)
ITEM_PRICES: Dict[str, int] = {POTION: 50, SUPER_POTION: 150, REVIVE: 300, POKE_BALL: 100}
ITEM_LABELS: Dict[str, str] = {
    POTION: "Potion", SUPER_POTION: "Super Potion", REVIVE: "Revive", POKE_BALL: "Poke Ball",
}
STARTING_ITEMS: Dict[str, int] = {POTION: 3, POKE_BALL: 5}


class Inventory:
    def __init__(self, items: Optional[Dict[str, int]] = None):
        self._items: Dict[str, int] = {}
        for k, v in (items or {}).items():
            if int(v) > 0:
                self._items[k] = int(v)

    def add(self, item_id: str, qty: int = 1):
        self._items[item_id] = self._items.get(item_id, 0) + qty

    def remove(self, item_id: str, qty: int = 1):
        if self._items.get(item_id, 0) < qty:
            raise ItemUnavailable(f"Not enough {ITEM_LABELS.get(item_id, item_id)}")
        self._items[item_id] -= qty
        if self._items[item_id] <= 0:
            del self._items[item_id]

    def has(self, item_id: str, qty: int = 1) -> bool:
        return self._items.get(item_id, 0) >= qty

    def count(self, item_id: str) -> int:
        return self._items.get(item_id, 0)

    def snapshot(self) -> Dict[str, int]:
        return dict(self._items)


@dataclass
class ItemResult:
    kind: str
    target: Creature
    amount: int = 0

    @property
    def message(self) -> str:
        label = ITEM_LABELS.get(self.kind, self.kind)
        if self.kind == REVIVE:
            return f"{self.target.name} was revived with {self.amount} HP!"
        return f"{label} restored {self.amount} HP to {self.target.name}."


def use_item(inventory: Inventory, team, active_index: int, kind: str,
             target_index: Optional[int] = None) -> ItemResult:
    """Apply an item to the team; raises before consuming when the use is invalid."""
    if kind not in ITEM_KINDS or not inventory.has(kind):
        raise ItemUnavailable(f"You have no {ITEM_LABELS.get(kind, kind)}")
    if kind == POKE_BALL:
        raise CaptureNotAllowed("You can't catch another trainer's creature!")
    if kind == REVIVE:
        if target_index is None:
            target_index = next((i for i, c in enumerate(team) if c.is_fainted()), None)
            if target_index is None:
                raise InvalidTarget("No fainted team member to revive")
        if not (0 <= target_index < len(team)):
            raise InvalidTarget(f"No team member in slot {target_index + 1}")
        target = team[target_index]
        if not target.is_fainted():
            raise InvalidTarget(f"{target.name} hasn't fainted")
        inventory.remove(kind)
        target.current_hp = max(1, target.max_hp // 2)
        target.status = STATUS_NONE
        return ItemResult(kind, target, target.current_hp)
    if not (0 <= active_index < len(team)):
        raise NoActiveCreature("No active creature")
    target = team[active_index]
    if target.is_fainted():
        raise CreatureFainted(f"{target.name} has fainted")
    if target.current_hp >= target.max_hp:
        raise TargetFullHP(f"{target.name} is already at full HP")
    inventory.remove(kind)
    gained = target.heal(HEAL_AMOUNTS[kind])
    return ItemResult(kind, target, gained)


__all__ = [
    "Inventory", "ItemResult", "use_item", "ITEM_KINDS", "ITEM_PRICES", "ITEM_LABELS",
    "HEAL_AMOUNTS", "STARTING_ITEMS", "POTION", "SUPER_POTION", "REVIVE", "POKE_BALL",
]
