"""Marketplace: randomly stocked creature listings fetched concurrently."""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence
import random
from pokechain.battle.factory import opponent_pool
from pokechain.core.logging import logger
from pokechain.data.catalog import Catalog, CreatureTemplate, fetch_many

LISTING_COUNT = 8
PRICE_RANGE = (100, 600)
LISTING_LEVEL = 5

@dataclass(frozen=True)
class Listing:
    template: CreatureTemplate
    price: int
    level: int = LISTING_LEVEL

    @property
    def name(self) -> str:
        return self.template.name.capitalize()


def listings(catalog: Catalog, rng: random.Random, count: int = LISTING_COUNT,
             pool: Optional[Sequence[int]] = None) -> List[Listing]:
    """Stock ``count`` distinct species; failed lookups are dropped."""
    candidates = list(pool or opponent_pool(catalog))
    ids = rng.sample(candidates, min(count, len(candidates)))
    templates = fetch_many(ids, catalog.get_creature)
    out = [Listing(t, rng.randint(*PRICE_RANGE)) for t in templates]
    logger.debug("MarketStocked", requested=len(ids), listed=len(out))
    return out


__all__ = ["Listing", "listings", "LISTING_COUNT", "PRICE_RANGE"]
