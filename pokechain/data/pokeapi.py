"""Live catalog backed by PokeAPI (https://pokeapi.co).

Every method performs blocking HTTP calls; wrap the instance in
:class:`pokechain.data.catalog.CachedCatalog` so each resource is fetched
once per process.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional

import requests

from pokechain.battle.models import AILMENT_CODES
from pokechain.core.errors import CatalogNotFound, CatalogUnavailable, MoveUnavailable
from pokechain.core.logging import logger
from .catalog import CreatureTemplate, MoveTemplate, EvolutionStep, LearnableMove, CreatureRef

POKEAPI_BASE = "https://pokeapi.co/api/v2"

# Damaging moves with a null power (fixed/variable damage) fall back to this.
FALLBACK_POWER = 40

_STAT_NAMES = {
    "hp": "hp",
    "attack": "attack",
    "defense": "defense",
    "special-attack": "sp_atk",
    "special-defense": "sp_def",
    "speed": "speed",
}


class PokeApiCatalog:
    def __init__(self, base_url: str = POKEAPI_BASE, *, timeout: float = 10.0,
                 session: Optional[requests.Session] = None, move_limit: int = 4):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.move_limit = move_limit

    def _get(self, url: str, ref: str) -> Dict[str, Any]:
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warn("CatalogRequestFailed", url=url, error=str(e))
            raise CatalogUnavailable(f"{ref}: {e}") from e
        if response.status_code == 404:
            raise CatalogNotFound(ref)
        try:
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warn("CatalogBadResponse", url=url, status=response.status_code)
            raise CatalogUnavailable(f"{ref}: {e}") from e

    def _url(self, *parts: Any) -> str:
        return "/".join([self.base_url, *(str(p).strip().lower() for p in parts)])

    # ------------------------------------------------------------------
    # Catalog protocol
    # ------------------------------------------------------------------
    def get_creature(self, ref: CreatureRef) -> CreatureTemplate:
        data = self._get(self._url("pokemon", ref), str(ref))
        stats = {}
        for entry in data.get("stats", []):
            key = _STAT_NAMES.get(entry["stat"]["name"])
            if key:
                stats[key] = int(entry["base_stat"])
        types = tuple(t["type"]["name"] for t in sorted(data.get("types", []), key=lambda t: t.get("slot", 0)))
        sprites = data.get("sprites") or {}
        artwork = ((sprites.get("other") or {}).get("official-artwork") or {}).get("front_default")
        moves = tuple(m["move"]["name"] for m in data.get("moves", [])[: self.move_limit])
        legendary = False
        species_url = (data.get("species") or {}).get("url")
        if species_url:
            try:
                species = self._get(species_url, str(ref))
                legendary = bool(species.get("is_legendary") or species.get("is_mythical"))
            except CatalogUnavailable:
                pass
        return CreatureTemplate(
            id=int(data["id"]), name=data["name"], types=types, base_stats=stats,
            moves=moves, sprite=artwork or sprites.get("front_default") or "", legendary=legendary,
        )

    def get_move_details(self, name: str) -> MoveTemplate:
        try:
            data = self._get(self._url("move", name), name)
        except CatalogNotFound as e:
            raise MoveUnavailable(name, "not found") from e
        except CatalogUnavailable as e:
            raise MoveUnavailable(name) from e
        damage_class = (data.get("damage_class") or {}).get("name") or "status"
        power = data.get("power")
        if damage_class != "status" and not power:
            power = FALLBACK_POWER
        meta = data.get("meta") or {}
        ailment = AILMENT_CODES.get((meta.get("ailment") or {}).get("name", ""))
        chance = int(meta.get("ailment_chance") or 0)
        if ailment and damage_class == "status" and chance == 0:
            chance = 100
        effect = "Deals damage"
        for entry in data.get("effect_entries", []):
            if (entry.get("language") or {}).get("name", "en") == "en":
                effect = entry.get("short_effect") or effect
                break
        return MoveTemplate(
            name=data["name"], type=data["type"]["name"], damage_class=damage_class,
            power=int(power or 0), accuracy=data.get("accuracy") or 100, pp=int(data.get("pp") or 10),
            ailment=ailment, ailment_chance=chance if ailment else 0, effect=effect,
        )

    def _species(self, species_id: int) -> Dict[str, Any]:
        return self._get(self._url("pokemon-species", species_id), str(species_id))

    def get_evolution(self, species_id: int) -> Optional[EvolutionStep]:
        species = self._species(species_id)
        chain_url = (species.get("evolution_chain") or {}).get("url")
        if not chain_url:
            return None
        node = self._get(chain_url, str(species_id)).get("chain")
        name = species.get("name")
        # depth-first walk to this species' node
        stack = [node] if node else []
        while stack:
            current = stack.pop()
            if current["species"]["name"] == name:
                for nxt in current.get("evolves_to", []):
                    for detail in nxt.get("evolution_details", []):
                        lvl = detail.get("min_level")
                        if lvl and (detail.get("trigger") or {}).get("name", "level-up") == "level-up":
                            next_id = int(nxt["species"]["url"].rstrip("/").rsplit("/", 1)[-1])
                            return EvolutionStep(next_species_id=next_id, min_level=int(lvl))
                return None
            stack.extend(current.get("evolves_to", []))
        return None

    def get_learnable_moves(self, species_id: int) -> List[LearnableMove]:
        data = self._get(self._url("pokemon", species_id), str(species_id))
        out: Dict[str, int] = {}
        for entry in data.get("moves", []):
            for detail in entry.get("version_group_details", []):
                if (detail.get("move_learn_method") or {}).get("name") != "level-up":
                    continue
                lvl = int(detail.get("level_learned_at") or 0)
                if lvl <= 0:
                    continue
                name = entry["move"]["name"]
                out[name] = min(lvl, out.get(name, lvl))
        return sorted((LearnableMove(n, l) for n, l in out.items()), key=lambda m: (m.level, m.name))


__all__ = ["PokeApiCatalog", "POKEAPI_BASE", "FALLBACK_POWER"]
