from __future__ import annotations
import hashlib
import json, time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional
from pokechain.core.errors import DataLoadError
from pokechain.core.logging import logger
from pokechain.core.paths import default_save_dir
from pokechain.game.roster import Roster
from pokechain.game.progression import ProgressionState

SNAPSHOT_VERSION = 1

@dataclass
class ProfileState:
    """Everything persisted for one identity. A running battle is never saved."""
    identity: str
    trainer_name: str = "TRAINER"
    roster: Roster = field(default_factory=Roster)
    inventory: Dict[str, int] = field(default_factory=dict)
    progression: ProgressionState = field(default_factory=ProgressionState)
    created_at: float = 0.0
    last_save_ts: float = 0.0
    version: int = SNAPSHOT_VERSION

    def to_json(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "trainer_name": self.trainer_name,
            "roster": self.roster.to_json(),
            "inventory": dict(self.inventory),
            "progression": self.progression.to_json(),
            "created_at": self.created_at,
            "last_save_ts": self.last_save_ts,
            "version": self.version,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ProfileState":
        return cls(
            identity=data["identity"],
            trainer_name=data.get("trainer_name", "TRAINER"),
            roster=Roster.from_json(data.get("roster", {})),
            inventory={k: int(v) for k, v in data.get("inventory", {}).items()},
            progression=ProgressionState.from_json(data.get("progression", {})),
            created_at=data.get("created_at", 0.0),
            last_save_ts=data.get("last_save_ts", 0.0),
            version=data.get("version", SNAPSHOT_VERSION),
        )


class SnapshotStore:
    """One JSON file per identity; file names are the SHA-1 of the identity."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory else default_save_dir()

    def path_for(self, identity: str) -> Path:
        digest = hashlib.sha1(identity.strip().lower().encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def exists(self, identity: str) -> bool:
        return self.path_for(identity).exists()

    def save_snapshot(self, profile: ProfileState) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        profile.last_save_ts = time.time()
        path = self.path_for(profile.identity)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(profile.to_json(), indent=2), encoding="utf-8")
        tmp.replace(path)
        logger.debug("SnapshotSaved", file=str(path))
        return path

    def load_snapshot(self, identity: str) -> Optional[ProfileState]:
        path = self.path_for(identity)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return ProfileState.from_json(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("SnapshotLoadFailed", file=str(path), error=str(e))
            raise DataLoadError(str(path), str(e)) from e

    def delete(self, identity: str) -> bool:
        path = self.path_for(identity)
        if path.exists():
            path.unlink()
            logger.debug("SnapshotDeleted", file=str(path))
            return True
        return False


__all__ = ["ProfileState", "SnapshotStore", "SNAPSHOT_VERSION"]
