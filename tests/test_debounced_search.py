# tests/test_debounced_search.py
"""
DebouncedSearch: quiescence window, cancel-previous, and the
"only the latest response lands" guarantee.
"""

import pytest

from pharmacy_pos.api.errors import ApiError, RequestCancelled
from pharmacy_pos.modules.pos.search import DebouncedSearch, SearchState

from conftest import ManualRunner


class LeakyRunner(ManualRunner):
    """Delivers results even for cancelled tokens (a worst-case transport)."""

    def _deliver_ok(self, job, result):
        job.done = True
        job.on_success(result)


def _fetch_recorder():
    calls = []

    def fetch(term, token):
        calls.append(term)
        return [f"result:{term}"]

    return fetch, calls


# --------------------------- quiescence ---------------------------

def test_short_query_never_calls_and_clears(qtbot):
    runner = ManualRunner()
    fetch, calls = _fetch_recorder()
    s = DebouncedSearch(fetch, runner, delay_ms=10)

    s.set_query("Na")
    s.flush()
    runner.run_all()
    assert s.results == ["result:Na"]

    s.set_query("N")
    qtbot.wait(30)
    assert s.results is None
    assert s.state is SearchState.IDLE
    assert calls == ["Na"]
    assert runner.pending == []


def test_keystrokes_inside_window_collapse_to_one_call(qtbot):
    runner = ManualRunner()
    fetch, calls = _fetch_recorder()
    s = DebouncedSearch(fetch, runner, delay_ms=40)

    for text in ("Na", "Nap", "Napa"):
        s.set_query(text)
    assert s.is_pending
    assert runner.pending == []

    qtbot.waitUntil(lambda: len(runner.pending) == 1, timeout=1000)
    assert s.state is SearchState.SEARCHING
    runner.run_all()
    assert calls == ["Napa"]
    assert s.results == ["result:Napa"]
    assert s.state is SearchState.RESULTS_READY


def test_flush_fires_immediately(qapp):
    runner = ManualRunner()
    fetch, _ = _fetch_recorder()
    s = DebouncedSearch(fetch, runner, delay_ms=10_000)
    s.set_query("Seclo")
    s.flush()
    assert len(runner.pending) == 1
    assert not s.is_pending


# --------------------------- races ---------------------------

def test_late_response_for_A_does_not_overwrite_AB(qtbot):
    """Query "A" then "AB"; "A" resolves last and must be discarded."""
    runner = ManualRunner()
    s = DebouncedSearch(lambda term, token: None, runner, delay_ms=300, min_length=1)
    seen = []
    s.results_changed.connect(seen.append)

    s.set_query("A")
    s.flush()
    s.set_query("AB")
    s.flush()
    assert len(runner.pending) == 2
    first, second = runner.pending

    runner.resolve(1, ["AB-1", "AB-2"])
    runner._deliver_ok(first, ["A-1"])

    assert s.results == ["AB-1", "AB-2"]
    assert seen == [["AB-1", "AB-2"]]
    assert first.token.cancelled
    assert not second.token.cancelled


def test_generation_guard_drops_late_result_even_if_delivered(qapp):
    runner = LeakyRunner()
    s = DebouncedSearch(lambda term, token: None, runner, min_length=1)

    s.set_query("A")
    s.flush()
    s.set_query("AB")
    s.flush()
    a_job, ab_job = runner.pending

    runner._deliver_ok(ab_job, ["AB"])
    runner._deliver_ok(a_job, ["A"])
    assert s.results == ["AB"]


def test_cancellation_is_silent(qtbot):
    runner = ManualRunner()
    s = DebouncedSearch(lambda term, token: None, runner, min_length=1)
    errors = []
    s.failed.connect(errors.append)

    s.set_query("A")
    s.flush()
    job = runner.pending[0]
    s.cancel()
    assert job.token.cancelled
    runner.fail(0, RequestCancelled())

    assert errors == []
    assert s.state is SearchState.IDLE


def test_remote_failure_surfaces_error_state(qapp):
    runner = ManualRunner()
    s = DebouncedSearch(lambda term, token: None, runner)
    errors = []
    s.failed.connect(errors.append)

    s.set_query("Napa")
    s.flush()
    runner.fail(0, ApiError())

    assert s.state is SearchState.ERROR
    assert len(errors) == 1


def test_typing_after_fire_cancels_in_flight_request(qapp):
    runner = ManualRunner()
    s = DebouncedSearch(lambda term, token: None, runner, delay_ms=10_000)
    s.set_query("Napa")
    s.flush()
    job = runner.pending[0]

    s.set_query("Napa Extra")
    assert job.token.cancelled
    assert s.state is not SearchState.SEARCHING


@pytest.mark.parametrize("text", ["", "  ", "x"])
def test_clear_and_short_inputs_emit_no_calls(qapp, text):
    runner = ManualRunner()
    fetch, calls = _fetch_recorder()
    s = DebouncedSearch(fetch, runner, delay_ms=0)
    s.set_query(text)
    s.flush()
    assert calls == []
    assert runner.pending == []
