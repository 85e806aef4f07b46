"""Level-scaled stat formulas.

Pure functions over base stats, individual values (IV, 0-31) and effort
values (EV). Inputs are not range-checked.
"""
from __future__ import annotations
from typing import Any

STAT_KEYS = ("hp", "attack", "defense", "sp_atk", "sp_def", "speed")

HP, ATTACK, DEFENSE, SP_ATK, SP_DEF, SPEED = range(6)

DEFAULT_IV = 31
DEFAULT_EV = 0
# Auto-generated opponents roll with flat 15s; player creatures keep 31.
PLAYER_IV = 31
OPPONENT_IV = 15


def compute_hp(base: int, level: int, iv: int, ev: int) -> int:
    return ((2 * base + iv + ev // 4) * level) // 100 + level + 10


def compute_stat(base: int, level: int, iv: int, ev: int) -> int:
    return ((2 * base + iv + ev // 4) * level) // 100 + 5


def uniform_spread(value: int) -> dict[str, int]:
    return {k: value for k in STAT_KEYS}


def actual_stat(creature: Any, stat_index: int) -> int:
    """Resolve IV/EV for one stat of a creature and apply the matching formula."""
    key = STAT_KEYS[stat_index]
    base = int(creature.base_stats.get(key, 0))
    iv = (creature.ivs or {}).get(key)
    ev = (creature.evs or {}).get(key)
    iv = DEFAULT_IV if iv is None else int(iv)
    ev = DEFAULT_EV if ev is None else int(ev)
    if stat_index == HP:
        return compute_hp(base, creature.level, iv, ev)
    return compute_stat(base, creature.level, iv, ev)


__all__ = [
    "STAT_KEYS", "HP", "ATTACK", "DEFENSE", "SP_ATK", "SP_DEF", "SPEED",
    "PLAYER_IV", "OPPONENT_IV", "compute_hp", "compute_stat", "actual_stat", "uniform_spread",
]
