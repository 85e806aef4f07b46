"""Factory helpers for constructing Creature instances from catalog templates.

Shared by the battle session (opponents), the profile context (starters,
purchases, emergency backups) and tests.
"""
from __future__ import annotations
from typing import List, Optional, Sequence
import random
from .models import Creature, Move, MAX_MOVES
from .stats import uniform_spread, PLAYER_IV, OPPONENT_IV, DEFAULT_EV
from pokechain.core.errors import MoveUnavailable
from pokechain.core.logging import logger
from pokechain.data.catalog import Catalog, CreatureTemplate, MoveTemplate, CreatureRef

# Opponents are drawn from species 1-150 unless the catalog
# exposes its own species list.
DEFAULT_OPPONENT_POOL = tuple(range(1, 151))

PLACEHOLDER_MOVE = "Tackle"


def placeholder_move() -> Move:
    return Move(name=PLACEHOLDER_MOVE, type="normal", category="physical", power=40,
                accuracy=100, max_pp=35, pp=35, effect="Inflicts regular damage.", placeholder=True)


def move_from_template(tpl: MoveTemplate) -> Move:
    category = tpl.damage_class if tpl.damage_class in ("physical", "special", "status") else "status"
    power = 0 if category == "status" else int(tpl.power or 0)
    return Move(
        name=tpl.name, type=tpl.type.lower(), category=category, power=power,
        accuracy=tpl.accuracy, max_pp=tpl.pp, pp=tpl.pp,
        ailment=tpl.ailment, ailment_chance=tpl.ailment_chance if tpl.ailment else 0,
        effect=tpl.effect,
    )


def pad_moves(moves: List[Move]) -> List[Move]:
    moves = list(moves[:MAX_MOVES])
    while len(moves) < MAX_MOVES:
        moves.append(placeholder_move())
    return moves


def load_moves(catalog: Catalog, names: Sequence[str]) -> List[Move]:
    """Resolve up to four move names; unavailable moves are skipped."""
    out: List[Move] = []
    for name in names:
        if len(out) >= MAX_MOVES:
            break
        try:
            out.append(move_from_template(catalog.get_move_details(name)))
        except MoveUnavailable as e:
            logger.warn("MoveSkipped", move=name, error=str(e))
    return out


def creature_from_template(tpl: CreatureTemplate, level: int, catalog: Catalog, *,
                           iv: int = PLAYER_IV, nickname: Optional[str] = None) -> Creature:
    moves = load_moves(catalog, tpl.moves)
    return Creature(
        species_id=tpl.id,
        name=nickname or tpl.name.capitalize(),
        level=level,
        types=tuple(t.lower() for t in tpl.types),
        base_stats=dict(tpl.base_stats),
        ivs=uniform_spread(iv),
        evs=uniform_spread(DEFAULT_EV),
        moves=pad_moves(moves),
        learned=[m.name for m in moves],
        sprite=tpl.sprite,
        legendary=tpl.legendary,
    )


def build_creature(catalog: Catalog, ref: CreatureRef, level: int, *, iv: int = PLAYER_IV) -> Creature:
    """Look up a species and build it; catalog errors propagate."""
    return creature_from_template(catalog.get_creature(ref), level, catalog, iv=iv)


def opponent_pool(catalog: Catalog) -> Sequence[int]:
    ids = getattr(catalog, "species_ids", None)
    if callable(ids):
        pool = list(ids())
        if pool:
            return pool
    return DEFAULT_OPPONENT_POOL


def build_opponent(catalog: Catalog, rng: random.Random, level: int,
                   pool: Optional[Sequence[int]] = None) -> Creature:
    species_id = rng.choice(list(pool or opponent_pool(catalog)))
    return build_creature(catalog, species_id, level, iv=OPPONENT_IV)


__all__ = [
    "placeholder_move", "move_from_template", "pad_moves", "load_moves",
    "creature_from_template", "build_creature", "build_opponent", "opponent_pool",
    "PLACEHOLDER_MOVE",
]
