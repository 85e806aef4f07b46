"""Trainer progression: wins/losses, currency, trainer XP, achievements, daily quest.

All mutation of :class:`ProgressionState` goes through the functions in
this module so rewards stay consistent between the battle flow, the
marketplace and snapshots.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional, Callable, Tuple
from pokechain.core.errors import InsufficientFunds
from pokechain.core.logging import logger

STARTING_CURRENCY = 500
VICTORY_CURRENCY_PER_KO = 50
VICTORY_TRAINER_XP_PER_KO = 20
TRAINER_XP_PER_LEVEL = 100  # multiplied by the current trainer level
DAILY_QUEST_WINS = 3
DAILY_QUEST_REWARD = 150
HISTORY_LIMIT = 50

RESULT_VICTORY = "victory"
RESULT_DEFEAT = "defeat"
RESULT_ABORTED = "aborted"


@dataclass
class ProgressionState:
    wins: int = 0
    losses: int = 0
    currency: int = STARTING_CURRENCY
    trainer_level: int = 1
    trainer_xp: int = 0
    achievements: List[str] = field(default_factory=list)
    daily_quests: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    free_revive_available: bool = True
    first_purchase_made: bool = False
    battle_history: List[Dict[str, Any]] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ProgressionState":
        known = set(cls.__dataclass_fields__)
        return cls(**{k: v for k, v in (data or {}).items() if k in known})


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str
    reward: int
    check: Callable[[ProgressionState, Any], bool]

def _owned(roster) -> list:
    return list(roster.team) + list(roster.storage) if roster is not None else []

ACHIEVEMENTS: Tuple[Achievement, ...] = (
    Achievement("first_win", "First Victory", "Win your first battle", 100,
                lambda s, r: s.wins >= 1),
    Achievement("collector", "Collector", "Own 5 different species", 200,
                lambda s, r: len({c.species_id for c in _owned(r)}) >= 5),
    Achievement("veteran", "Veteran", "Win 10 battles", 300,
                lambda s, r: s.wins >= 10),
    Achievement("first_purchase", "First Purchase", "Buy a creature on the marketplace", 50,
                lambda s, r: s.first_purchase_made),
    Achievement("legendary_owner", "Legendary Owner", "Own a legendary creature", 500,
                lambda s, r: any(c.legendary for c in _owned(r))),
)
ACHIEVEMENTS_BY_ID: Dict[str, Achievement] = {a.id: a for a in ACHIEVEMENTS}


def unlock_achievement(state: ProgressionState, achievement_id: str) -> bool:
    """Idempotent; the currency bonus is paid only on the first unlock."""
    if achievement_id in state.achievements:
        return False
    ach = ACHIEVEMENTS_BY_ID[achievement_id]
    state.achievements.append(achievement_id)
    state.currency += ach.reward
    logger.info("AchievementUnlocked", id=achievement_id, reward=ach.reward)
    return True


def evaluate_achievements(state: ProgressionState, roster=None) -> List[str]:
    unlocked = []
    for ach in ACHIEVEMENTS:
        if ach.id not in state.achievements and ach.check(state, roster):
            unlock_achievement(state, ach.id)
            unlocked.append(ach.id)
    return unlocked

# ---------------------------------------------------------------------------
# Currency / XP
# ---------------------------------------------------------------------------
def award_currency(state: ProgressionState, amount: int) -> int:
    state.currency += max(0, int(amount))
    return state.currency


def spend_currency(state: ProgressionState, amount: int) -> int:
    if amount > state.currency:
        raise InsufficientFunds(amount, state.currency)
    state.currency -= amount
    return state.currency


def award_trainer_xp(state: ProgressionState, amount: int) -> int:
    """Add trainer XP; returns the number of trainer levels gained."""
    state.trainer_xp += max(0, int(amount))
    gained = 0
    while state.trainer_xp >= state.trainer_level * TRAINER_XP_PER_LEVEL:
        state.trainer_xp -= state.trainer_level * TRAINER_XP_PER_LEVEL
        state.trainer_level += 1
        gained += 1
    if gained:
        logger.info("TrainerLevelUp", level=state.trainer_level)
    return gained


def record_daily_win(state: ProgressionState, today: str) -> int:
    """Count a win toward today's quest; returns the bonus paid (0 or the reward)."""
    quest = state.daily_quests.setdefault(today, {"wins": 0, "claimed": False})
    quest["wins"] += 1
    if quest["wins"] >= DAILY_QUEST_WINS and not quest["claimed"]:
        quest["claimed"] = True
        state.currency += DAILY_QUEST_REWARD
        logger.info("DailyQuestComplete", date=today, reward=DAILY_QUEST_REWARD)
        return DAILY_QUEST_REWARD
    return 0

# ---------------------------------------------------------------------------
# Battle outcomes
# ---------------------------------------------------------------------------
@dataclass
class VictoryReward:
    currency: int = 0
    trainer_xp: int = 0
    trainer_levels: int = 0
    quest_bonus: int = 0
    achievements: List[str] = field(default_factory=list)


def _append_history(state: ProgressionState, result: str, opponents: int, timestamp: str):
    state.battle_history.append({"result": result, "opponents": opponents, "timestamp": timestamp})
    if len(state.battle_history) > HISTORY_LIMIT:
        del state.battle_history[: len(state.battle_history) - HISTORY_LIMIT]


def record_victory(state: ProgressionState, defeated: int, *, today: str, timestamp: str,
                   roster=None) -> VictoryReward:
    state.wins += 1
    reward = VictoryReward(currency=VICTORY_CURRENCY_PER_KO * defeated,
                           trainer_xp=VICTORY_TRAINER_XP_PER_KO * defeated)
    award_currency(state, reward.currency)
    reward.trainer_levels = award_trainer_xp(state, reward.trainer_xp)
    reward.quest_bonus = record_daily_win(state, today)
    _append_history(state, RESULT_VICTORY, defeated, timestamp)
    reward.achievements = evaluate_achievements(state, roster)
    return reward


def record_defeat(state: ProgressionState, defeated: int, *, timestamp: str):
    state.losses += 1
    _append_history(state, RESULT_DEFEAT, defeated, timestamp)


def record_aborted(state: ProgressionState, defeated: int, *, timestamp: str):
    _append_history(state, RESULT_ABORTED, defeated, timestamp)


def daily_progress(state: ProgressionState, today: str) -> Optional[Dict[str, Any]]:
    return state.daily_quests.get(today)


__all__ = [
    "ProgressionState", "Achievement", "ACHIEVEMENTS", "VictoryReward",
    "unlock_achievement", "evaluate_achievements", "award_currency", "spend_currency",
    "award_trainer_xp", "record_daily_win", "record_victory", "record_defeat", "record_aborted",
    "daily_progress", "STARTING_CURRENCY", "DAILY_QUEST_REWARD", "DAILY_QUEST_WINS",
]
