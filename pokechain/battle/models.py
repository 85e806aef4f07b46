"""Creature and move records shared by the battle engine, roster and snapshots."""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Optional, Tuple, Dict, List, Any
from .stats import actual_stat, HP, STAT_KEYS

MAX_MOVES = 4

STATUS_NONE = "none"
# Status codes follow the short battle-log spelling.
STATUS_NAMES: Dict[str, str] = {
    "psn": "poisoned",
    "brn": "burned",
    "par": "paralyzed",
    "slp": "asleep",
    "frz": "frozen",
}
AILMENT_CODES: Dict[str, str] = {
    "poison": "psn", "burn": "brn", "paralysis": "par", "sleep": "slp", "freeze": "frz",
}

@dataclass
class Move:
    name: str
    type: str
    category: str  # physical | special | status
    power: int = 0
    accuracy: Optional[int] = 100
    max_pp: int = 10
    pp: int = 10
    ailment: Optional[str] = None
    ailment_chance: int = 0
    effect: str = ""
    placeholder: bool = False  # padding slot; first to be overwritten when learning
    recoil_ratio: Optional[Tuple[int, int]] = None

    def usable(self) -> bool:
        return self.pp > 0

    def restore_pp(self):
        self.pp = self.max_pp

    def to_json(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Move":
        rr = data.get("recoil_ratio")
        return cls(**{**data, "recoil_ratio": tuple(rr) if rr else None})


def struggle() -> Move:
    return Move(name="Struggle", type="normal", category="physical", power=50,
                accuracy=100, max_pp=1, pp=1, recoil_ratio=(1, 4))


@dataclass
class Creature:
    species_id: int
    name: str
    level: int
    types: Tuple[str, ...]
    base_stats: Dict[str, int]
    ivs: Dict[str, int] = field(default_factory=dict)
    evs: Dict[str, int] = field(default_factory=dict)
    moves: List[Move] = field(default_factory=list)
    exp: int = 0
    status: str = STATUS_NONE
    current_hp: Optional[int] = None  # lazily initialized to max HP
    learned: List[str] = field(default_factory=list)
    sprite: str = ""
    legendary: bool = False

    def __post_init__(self):
        self.types = tuple(self.types)
        self.level = max(1, int(self.level))
        if self.current_hp is None:
            self.current_hp = self.max_hp
        self.current_hp = max(0, min(int(self.current_hp), self.max_hp))
        if len(self.moves) > MAX_MOVES:
            self.moves = self.moves[:MAX_MOVES]

    @property
    def max_hp(self) -> int:
        return actual_stat(self, HP)

    def stat(self, index: int) -> int:
        return actual_stat(self, index)

    def is_fainted(self) -> bool:
        return (self.current_hp or 0) <= 0

    def real_moves(self) -> List[Move]:
        return [m for m in self.moves if not m.placeholder]

    def has_usable_move(self) -> bool:
        return any(m.usable() for m in self.moves)

    def take_damage(self, amount: int) -> int:
        """Lower HP (never below 0); returns HP actually lost."""
        old = int(self.current_hp or 0)
        self.current_hp = max(0, old - max(0, int(amount)))
        return old - self.current_hp

    def heal(self, amount: int) -> int:
        old = int(self.current_hp or 0)
        self.current_hp = min(self.max_hp, old + max(0, int(amount)))
        return self.current_hp - old

    def restore(self):
        """Full HP, PP and status reset."""
        self.current_hp = self.max_hp
        self.status = STATUS_NONE
        for m in self.moves:
            m.restore_pp()

    def clamp_hp(self):
        self.current_hp = max(0, min(int(self.current_hp or 0), self.max_hp))

    def to_json(self) -> Dict[str, Any]:
        data = asdict(self)
        data["types"] = list(self.types)
        return data

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Creature":
        payload = dict(data)
        payload["moves"] = [Move.from_json(m) for m in data.get("moves", [])]
        payload["types"] = tuple(data.get("types", ()))
        for key in ("base_stats", "ivs", "evs"):
            payload[key] = {k: int(v) for k, v in (data.get(key) or {}).items() if k in STAT_KEYS}
        return cls(**payload)


__all__ = [
    "Move", "Creature", "struggle", "MAX_MOVES",
    "STATUS_NONE", "STATUS_NAMES", "AILMENT_CODES",
]
