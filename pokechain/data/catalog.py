"""Catalog collaborator: creature/move/evolution/learnset lookups.

The engine only depends on the :class:`Catalog` protocol. Two sources ship:

- :class:`StaticCatalog` - an in-memory document (the bundled
  ``catalog.json`` or test fixtures), validated against
  ``catalog.schema.json`` with jsonschema.
- :class:`pokechain.data.pokeapi.PokeApiCatalog` - live PokeAPI lookups.

Upstream data is immutable, so :class:`CachedCatalog` memoises every call
for the lifetime of the process.
"""
from __future__ import annotations
import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Protocol, Dict, Any, List, Optional, Tuple, Iterable, Callable, TypeVar, Union

import jsonschema

from pokechain.core.errors import CatalogNotFound, MoveUnavailable, DataLoadError, CatalogError
from pokechain.core.logging import logger
from pokechain.core.paths import CATALOG_FILE, CATALOG_SCHEMA

CreatureRef = Union[int, str]

@dataclass(frozen=True)
class MoveTemplate:
    name: str
    type: str
    damage_class: str  # physical | special | status
    power: int = 0
    accuracy: Optional[int] = 100
    pp: int = 10
    ailment: Optional[str] = None  # status code (psn/brn/par/slp/frz)
    ailment_chance: int = 0
    effect: str = ""

@dataclass(frozen=True)
class CreatureTemplate:
    id: int
    name: str
    types: Tuple[str, ...]
    base_stats: Dict[str, int] = field(hash=False)
    moves: Tuple[str, ...] = ()
    sprite: str = ""
    legendary: bool = False

@dataclass(frozen=True)
class EvolutionStep:
    next_species_id: int
    min_level: int

@dataclass(frozen=True)
class LearnableMove:
    name: str
    level: int


class Catalog(Protocol):
    def get_creature(self, ref: CreatureRef) -> CreatureTemplate: ...
    def get_move_details(self, name: str) -> MoveTemplate: ...
    def get_evolution(self, species_id: int) -> Optional[EvolutionStep]: ...
    def get_learnable_moves(self, species_id: int) -> List[LearnableMove]: ...

# ---------------------------------------------------------------------------
# Static document
# ---------------------------------------------------------------------------

@lru_cache(maxsize=None)
def _schema() -> Dict[str, Any]:
    return json.loads(CATALOG_SCHEMA.read_text(encoding="utf-8"))


def validate_document(data: Dict[str, Any], source: str = "<catalog>") -> None:
    try:
        jsonschema.validate(data, _schema())
    except jsonschema.ValidationError as e:
        raise DataLoadError(source, f"schema: {e.message}") from e


class StaticCatalog:
    def __init__(self, creatures: Iterable[Dict[str, Any]], moves: Iterable[Dict[str, Any]]):
        self._creatures: Dict[int, CreatureTemplate] = {}
        self._by_name: Dict[str, int] = {}
        self._evolutions: Dict[int, EvolutionStep] = {}
        self._learnsets: Dict[int, List[LearnableMove]] = {}
        self._moves: Dict[str, MoveTemplate] = {}
        for m in moves:
            tpl = MoveTemplate(
                name=m["name"], type=m["type"], damage_class=m["damage_class"],
                power=int(m.get("power") or 0), accuracy=m.get("accuracy", 100),
                pp=int(m.get("pp") or 10), ailment=m.get("ailment"),
                ailment_chance=int(m.get("ailment_chance") or 0), effect=m.get("effect", ""),
            )
            self._moves[tpl.name] = tpl
        for c in creatures:
            sid = int(c["id"])
            self._creatures[sid] = CreatureTemplate(
                id=sid, name=c["name"], types=tuple(c["types"]),
                base_stats={k: int(v) for k, v in c["base_stats"].items()},
                moves=tuple(c.get("moves", [])), sprite=c.get("sprite", ""),
                legendary=bool(c.get("legendary", False)),
            )
            self._by_name[c["name"].lower()] = sid
            evo = c.get("evolution")
            if evo:
                self._evolutions[sid] = EvolutionStep(int(evo["next_species_id"]), int(evo["min_level"]))
            self._learnsets[sid] = [LearnableMove(e["name"], int(e["level"])) for e in c.get("learnset", [])]

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, validate: bool = True, source: str = "<catalog>") -> "StaticCatalog":
        if validate:
            validate_document(data, source)
        return cls(data.get("creatures", []), data.get("moves", []))

    @classmethod
    def from_file(cls, path: Path) -> "StaticCatalog":
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise DataLoadError(str(path), str(e)) from e
        return cls.from_dict(data, source=str(path))

    def species_ids(self) -> List[int]:
        return sorted(self._creatures)

    def get_creature(self, ref: CreatureRef) -> CreatureTemplate:
        key = str(ref).strip().lower()
        sid = int(key) if key.isdigit() else self._by_name.get(key)
        if sid is None or sid not in self._creatures:
            raise CatalogNotFound(str(ref))
        return self._creatures[sid]

    def get_move_details(self, name: str) -> MoveTemplate:
        tpl = self._moves.get(name)
        if tpl is None:
            raise MoveUnavailable(name, "not in catalog")
        return tpl

    def get_evolution(self, species_id: int) -> Optional[EvolutionStep]:
        return self._evolutions.get(int(species_id))

    def get_learnable_moves(self, species_id: int) -> List[LearnableMove]:
        return list(self._learnsets.get(int(species_id), []))


@lru_cache(maxsize=None)
def load_default_catalog() -> StaticCatalog:
    """Bundled starter-era catalog (works offline)."""
    return StaticCatalog.from_file(CATALOG_FILE)

# ---------------------------------------------------------------------------
# Caching & batch helpers
# ---------------------------------------------------------------------------

class CachedCatalog:
    """Memoising wrapper; entries never expire. Errors are not cached."""

    def __init__(self, inner: Catalog):
        self.inner = inner
        self._cache: Dict[Tuple[str, str], Any] = {}
        self.misses = 0

    def _get(self, kind: str, key: Any, loader: Callable[[], Any]) -> Any:
        ck = (kind, str(key).lower())
        if ck not in self._cache:
            self.misses += 1
            self._cache[ck] = loader()
        return self._cache[ck]

    def species_ids(self) -> List[int]:
        ids = getattr(self.inner, "species_ids", None)
        return list(ids()) if callable(ids) else []

    def get_creature(self, ref: CreatureRef) -> CreatureTemplate:
        return self._get("creature", ref, lambda: self.inner.get_creature(ref))

    def get_move_details(self, name: str) -> MoveTemplate:
        return self._get("move", name, lambda: self.inner.get_move_details(name))

    def get_evolution(self, species_id: int) -> Optional[EvolutionStep]:
        return self._get("evolution", species_id, lambda: self.inner.get_evolution(species_id))

    def get_learnable_moves(self, species_id: int) -> List[LearnableMove]:
        return list(self._get("learnset", species_id, lambda: self.inner.get_learnable_moves(species_id)))


T = TypeVar("T")

def fetch_many(refs: Iterable[CreatureRef], fetch: Callable[[CreatureRef], T], *, max_workers: int = 8) -> List[T]:
    """Fetch a batch concurrently, dropping entries whose lookup fails.

    Result order follows ``refs``.
    """
    refs = list(refs)
    if not refs:
        return []
    def _one(ref: CreatureRef) -> Optional[T]:
        try:
            return fetch(ref)
        except CatalogError as e:
            logger.warn("CatalogBatchEntryFailed", ref=ref, error=str(e))
            return None
    with ThreadPoolExecutor(max_workers=min(max_workers, len(refs))) as pool:
        results = list(pool.map(_one, refs))
    return [r for r in results if r is not None]


__all__ = [
    "Catalog", "CachedCatalog", "StaticCatalog", "CreatureTemplate", "MoveTemplate",
    "EvolutionStep", "LearnableMove", "load_default_catalog", "validate_document", "fetch_many",
]
