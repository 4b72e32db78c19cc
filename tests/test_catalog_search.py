# tests/test_catalog_search.py
from pharmacy_pos.modules.pos.search import CatalogSearch, SearchState

from conftest import FakeCatalog, ManualRunner, make_lot, make_medicine


def _search(qapp, **kwargs):
    runner = ManualRunner()
    catalog = FakeCatalog([
        make_medicine("med-1", "Napa 500mg"),
        make_medicine("med-2", "Napa Extra"),
        make_medicine("med-3", "Seclo 20mg"),
    ])
    return CatalogSearch(catalog, runner, delay_ms=10_000, **kwargs), runner, catalog


def test_limit_is_passed_through(qapp):
    s, runner, catalog = _search(qapp, limit=1)
    s.set_query("Napa")
    s.flush()
    runner.run_all()

    assert catalog.calls == [("Napa", 1)]
    assert [m.medicine_id for m in s.results] == ["med-1"]


def test_disabled_search_makes_no_calls(qapp):
    s, runner, catalog = _search(qapp)
    changes = []
    s.availability_changed.connect(lambda ok, why: changes.append((ok, why)))

    s.set_enabled(False, "No active counter selected.")
    s.set_query("Napa")
    s.flush()

    assert runner.pending == []
    assert catalog.calls == []
    assert s.query == ""
    assert s.disabled_reason == "No active counter selected."
    assert changes == [(False, "No active counter selected.")]


def test_disabling_drops_in_flight_results(qapp):
    s, runner, _ = _search(qapp)
    s.set_query("Seclo")
    s.flush()
    job = runner.pending[0]

    s.set_enabled(False)
    assert job.token.cancelled
    assert s.results is None
    assert s.state is SearchState.IDLE
    assert s.disabled_reason == "Search is unavailable."


def test_reenabling_allows_search_again(qapp):
    s, runner, catalog = _search(qapp)
    s.set_enabled(False, "Loading counters…")
    s.set_enabled(True)
    assert s.enabled and s.disabled_reason == ""

    s.set_query("Seclo")
    s.flush()
    runner.run_all()
    assert catalog.calls == [("Seclo", 10)]


def test_out_of_stock_lots_are_not_selectable():
    med = make_medicine("med-2", "Seclo 20mg", lots=[
        make_lot("lot-2", "med-2", "Seclo 20mg", qty=2),
        make_lot("lot-3", "med-2", "Seclo 20mg", qty=0),
    ])
    assert [lot.lot_id for lot in med.selectable_lots] == ["lot-2"]
