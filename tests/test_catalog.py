import copy

import pytest

from pokechain.core.errors import CatalogNotFound, MoveUnavailable, DataLoadError, CatalogError
from pokechain.data.catalog import StaticCatalog, CachedCatalog, load_default_catalog, fetch_many
from pokechain.game.context import STARTER_IDS

from arena_support import CATALOG_DOC


def test_lookup_by_id_and_name(catalog):
    assert catalog.get_creature(1).name == "alpha"
    assert catalog.get_creature("Beta").id == 2
    assert catalog.get_creature("150").legendary
    with pytest.raises(CatalogNotFound):
        catalog.get_creature("nobody")


def test_moves_evolution_and_learnset(catalog):
    wave = catalog.get_move_details("thunder-wave")
    assert wave.damage_class == "status"
    assert wave.power == 0
    assert wave.ailment == "par" and wave.ailment_chance == 100
    with pytest.raises(MoveUnavailable):
        catalog.get_move_details("hyper-beam")
    step = catalog.get_evolution(10)
    assert (step.next_species_id, step.min_level) == (11, 6)
    assert catalog.get_evolution(1) is None
    assert [m.name for m in catalog.get_learnable_moves(10)] == ["vine-whip"]
    assert catalog.get_learnable_moves(1) == []


def test_schema_violation_raises_data_load_error():
    doc = copy.deepcopy(CATALOG_DOC)
    doc["creatures"][0]["types"] = []
    with pytest.raises(DataLoadError):
        StaticCatalog.from_dict(doc)
    doc = copy.deepcopy(CATALOG_DOC)
    doc["moves"][0]["ailment"] = "confusion"
    with pytest.raises(DataLoadError):
        StaticCatalog.from_dict(doc)


def test_unreadable_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(DataLoadError) as info:
        StaticCatalog.from_file(path)
    assert info.value.path == str(path)


def test_bundled_catalog_is_consistent():
    cat = load_default_catalog()
    ids = cat.species_ids()
    for sid in STARTER_IDS:
        assert sid in ids
    for sid in ids:
        tpl = cat.get_creature(sid)
        assert 1 <= len(tpl.types) <= 2
        for name in tpl.moves:
            cat.get_move_details(name)
        for entry in cat.get_learnable_moves(sid):
            cat.get_move_details(entry.name)
        step = cat.get_evolution(sid)
        if step is not None:
            assert cat.get_creature(step.next_species_id)
    assert cat.get_creature("rattata").id == 19


class CountingCatalog:
    def __init__(self, inner):
        self.inner = inner
        self.calls = 0

    def get_creature(self, ref):
        self.calls += 1
        return self.inner.get_creature(ref)

    def get_move_details(self, name):
        self.calls += 1
        return self.inner.get_move_details(name)

    def get_evolution(self, species_id):
        return self.inner.get_evolution(species_id)

    def get_learnable_moves(self, species_id):
        return self.inner.get_learnable_moves(species_id)


def test_cached_catalog_memoises_hits_not_errors(catalog):
    inner = CountingCatalog(catalog)
    cached = CachedCatalog(inner)
    assert cached.get_creature("Alpha") is cached.get_creature("alpha")
    cached.get_move_details("tackle")
    cached.get_move_details("tackle")
    assert inner.calls == 2
    assert cached.misses == 2
    for _ in range(2):
        with pytest.raises(CatalogNotFound):
            cached.get_creature(999)
    assert inner.calls == 4
    assert cached.species_ids() == []


def test_fetch_many_keeps_order_and_drops_failures(catalog):
    got = fetch_many([2, 999, 1, "gastly"], catalog.get_creature)
    assert [t.name for t in got] == ["beta", "alpha", "gastly"]
    assert fetch_many([], catalog.get_creature) == []


def test_fetch_many_propagates_unexpected_errors():
    def boom(ref):
        raise RuntimeError("bug")
    with pytest.raises(RuntimeError):
        fetch_many([1], boom)


def test_errors_share_a_base():
    assert issubclass(MoveUnavailable, CatalogError)
