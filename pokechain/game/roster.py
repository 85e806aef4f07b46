"""Team (max 6) + unlimited storage, with the active-member pointer."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Set
from pokechain.battle.models import Creature
from pokechain.core.errors import InvalidTarget, CreatureFainted, AlreadyActive

TEAM_LIMIT = 6

@dataclass
class Roster:
    team: List[Creature] = field(default_factory=list)
    storage: List[Creature] = field(default_factory=list)
    active_index: int = 0

    def active(self) -> Optional[Creature]:
        if 0 <= self.active_index < len(self.team):
            return self.team[self.active_index]
        return None

    def is_full(self) -> bool:
        return len(self.team) >= TEAM_LIMIT

    def add(self, creature: Creature) -> str:
        """Append to the team while under the limit, otherwise to storage."""
        if not self.is_full():
            self.team.append(creature)
            return "team"
        self.storage.append(creature)
        return "storage"

    def living_indices(self) -> List[int]:
        return [i for i, c in enumerate(self.team) if not c.is_fainted()]

    def has_living(self) -> bool:
        return bool(self.living_indices())

    def first_fainted_index(self) -> Optional[int]:
        for i, c in enumerate(self.team):
            if c.is_fainted():
                return i
        return None

    def validate_switch(self, index: int) -> Creature:
        if not (0 <= index < len(self.team)):
            raise InvalidTarget(f"No team member in slot {index + 1}")
        target = self.team[index]
        if target.is_fainted():
            raise CreatureFainted(f"{target.name} has fainted and can't battle")
        if index == self.active_index:
            raise AlreadyActive(f"{target.name} is already in battle")
        return target

    def switch_active(self, index: int) -> Creature:
        target = self.validate_switch(index)
        self.active_index = index
        return target

    def ensure_active_eligible(self) -> Optional[Creature]:
        """Point at a living member when the current one fainted (outside battle)."""
        active = self.active()
        if active is not None and not active.is_fainted():
            return active
        living = self.living_indices()
        if not living:
            return None
        self.active_index = living[0]
        return self.team[self.active_index]

    def heal_team(self):
        for c in self.team:
            c.restore()

    def species_owned(self) -> Set[int]:
        return {c.species_id for c in self.team + self.storage}

    def to_json(self) -> Dict[str, Any]:
        return {
            "team": [c.to_json() for c in self.team],
            "storage": [c.to_json() for c in self.storage],
            "active_index": self.active_index,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Roster":
        members = [Creature.from_json(c) for c in data.get("team", [])]
        # members past the limit move to storage
        team, overflow = members[:TEAM_LIMIT], members[TEAM_LIMIT:]
        storage = overflow + [Creature.from_json(c) for c in data.get("storage", [])]
        idx = int(data.get("active_index", 0))
        if not (0 <= idx < len(team)):
            idx = 0
        return cls(team=team, storage=storage, active_index=idx)


__all__ = ["Roster", "TEAM_LIMIT"]
