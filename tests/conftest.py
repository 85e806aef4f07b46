import pytest

from pokechain.battle.factory import build_creature
from pokechain.core.logging import logger
from pokechain.data.catalog import StaticCatalog
from pokechain.game.progression import ProgressionState
from pokechain.game.roster import Roster
from pokechain.inventory import Inventory

from arena_support import CATALOG_DOC


@pytest.fixture(autouse=True)
def quiet_logger():
    logger.set_level("ERROR")
    yield
    logger.set_level("INFO")


@pytest.fixture
def catalog():
    return StaticCatalog.from_dict(CATALOG_DOC)


@pytest.fixture
def battle_parts(catalog):
    """A one-member roster (alpha, Lv.5), empty bag and a broke trainer."""
    roster = Roster()
    roster.add(build_creature(catalog, 1, 5))
    progression = ProgressionState(currency=0, free_revive_available=False)
    return roster, Inventory(), progression
