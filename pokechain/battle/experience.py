"""Experience, level-up handling, evolution & move learning.

- EXP needed to clear a level is ``(level + 1) ** 3`` and resets on level-up.
- Each level-up fully heals, checks the species' evolution step and then
  teaches the moves learnable at exactly the new level.
- A new move fills a placeholder slot when one exists; otherwise it becomes a
  :class:`MoveOffer` the player must resolve (replace a slot or decline).
- Catalog failures skip evolution/learning with a warning; they never undo
  the experience already applied.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional
from .models import Creature, Move, MAX_MOVES
from .factory import move_from_template
from pokechain.core.errors import CatalogError, InvalidTarget
from pokechain.core.logging import logger
from pokechain.data.catalog import Catalog

# Experience per defeated opponent: floor(level * KO_EXP_FACTOR * round / 2)
KO_EXP_FACTOR = 15


def required_exp(level: int) -> int:
    return (level + 1) ** 3


def knockout_exp(opponent_level: int, round_no: int) -> int:
    return (opponent_level * KO_EXP_FACTOR * round_no) // 2


@dataclass
class MoveOffer:
    creature: Creature
    move: Move

    def describe(self) -> str:
        return f"{self.creature.name} wants to learn {self.move.name}."

@dataclass
class ExperienceResult:
    gained: int = 0
    from_level: int = 0
    to_level: int = 0
    evolutions: List[str] = field(default_factory=list)
    learned: List[str] = field(default_factory=list)
    offers: List[MoveOffer] = field(default_factory=list)

    @property
    def leveled(self) -> bool:
        return self.to_level > self.from_level


def award_experience(creature: Creature, amount: int, catalog: Catalog) -> ExperienceResult:
    result = ExperienceResult(gained=0, from_level=creature.level, to_level=creature.level)
    if creature.is_fainted() or amount <= 0:
        return result
    result.gained = amount
    creature.exp += amount
    while creature.exp >= required_exp(creature.level):
        creature.exp -= required_exp(creature.level)
        level_up(creature, catalog, result)
    result.to_level = creature.level
    return result


def level_up(creature: Creature, catalog: Catalog, result: Optional[ExperienceResult] = None) -> ExperienceResult:
    result = result or ExperienceResult(from_level=creature.level)
    creature.level += 1
    logger.info("LevelUp", creature=creature.name, level=creature.level)
    evolved = check_evolution(creature, catalog)
    if evolved:
        result.evolutions.append(evolved)
    creature.current_hp = creature.max_hp
    learn_level_moves(creature, catalog, result)
    result.to_level = creature.level
    return result


def check_evolution(creature: Creature, catalog: Catalog) -> Optional[str]:
    """Evolve in place when the level threshold is met; returns the new name."""
    try:
        step = catalog.get_evolution(creature.species_id)
        if step is None or creature.level < step.min_level:
            return None
        tpl = catalog.get_creature(step.next_species_id)
    except CatalogError as e:
        logger.warn("EvolutionSkipped", creature=creature.name, error=str(e))
        return None
    old = creature.name
    creature.species_id = tpl.id
    creature.name = tpl.name.capitalize()
    creature.types = tuple(t.lower() for t in tpl.types)
    creature.base_stats = dict(tpl.base_stats)
    creature.sprite = tpl.sprite or creature.sprite
    creature.legendary = tpl.legendary
    creature.clamp_hp()
    logger.info("Evolved", old=old, new=creature.name, level=creature.level)
    return creature.name


def learn_level_moves(creature: Creature, catalog: Catalog, result: ExperienceResult) -> None:
    try:
        entries = [e for e in catalog.get_learnable_moves(creature.species_id) if e.level == creature.level]
    except CatalogError as e:
        logger.warn("LearnsetUnavailable", creature=creature.name, error=str(e))
        return
    for entry in entries:
        if entry.name in creature.learned or any(m.name == entry.name for m in creature.moves):
            continue
        try:
            move = move_from_template(catalog.get_move_details(entry.name))
        except CatalogError as e:
            logger.warn("MoveSkipped", move=entry.name, error=str(e))
            continue
        if teach_move(creature, move):
            result.learned.append(move.name)
        else:
            result.offers.append(MoveOffer(creature, move))


def teach_move(creature: Creature, move: Move) -> bool:
    """Place a move in a free or placeholder slot; False when all four are real."""
    for i, existing in enumerate(creature.moves):
        if existing.placeholder:
            creature.moves[i] = move
            creature.learned.append(move.name)
            return True
    if len(creature.moves) < MAX_MOVES:
        creature.moves.append(move)
        creature.learned.append(move.name)
        return True
    return False


def apply_move_offer(offer: MoveOffer, slot: Optional[int]) -> Optional[str]:
    """Resolve an offer. ``None`` declines; returns the forgotten move name."""
    creature = offer.creature
    if slot is None:
        logger.info("MoveDeclined", creature=creature.name, move=offer.move.name)
        return None
    if not (0 <= slot < len(creature.moves)):
        raise InvalidTarget(f"Move slot must be between 1 and {len(creature.moves)}")
    forgotten = creature.moves[slot].name
    creature.moves[slot] = offer.move
    creature.learned.append(offer.move.name)
    logger.info("MoveReplaced", creature=creature.name, forgot=forgotten, learned=offer.move.name)
    return forgotten


__all__ = [
    "required_exp", "knockout_exp", "award_experience", "level_up", "check_evolution",
    "learn_level_moves", "teach_move", "apply_move_offer", "MoveOffer", "ExperienceResult",
]
