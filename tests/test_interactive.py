import asyncio

from conftest import FakeBackend, FakeExecutor, until

from zap.backends.linux import AptBackend
from zap.core.errors import ProcessExecutionError
from zap.core.interactive import EngineStatus, SearchEngine


def names(engine: SearchEngine) -> list[str]:
    return [record.name for record in engine.state.records]


async def test_results_keep_backend_order():
    backend = FakeBackend({"fire": ["firefox", "firebase-cli"]})
    engine = SearchEngine(backend, debounce=0)

    engine.set_query("fire")
    await engine.wait_idle()

    assert names(engine) == ["firefox", "firebase-cli"]
    assert engine.status is EngineStatus.DISPLAYING
    assert engine.state.error is None


async def test_stale_result_is_discarded():
    backend = FakeBackend({"fi": ["fish"], "fir": ["firefox"]})
    slow = backend.hold("fi", ignore_cancel=True)
    engine = SearchEngine(backend, debounce=0)

    engine.set_query("fi")
    await until(lambda: "start:fi" in backend.events)

    engine.set_query("fir")
    await until(lambda: "done:fir" in backend.events)
    assert names(engine) == ["firefox"]

    # the superseded process finishes late anyway
    slow.set()
    await engine.wait_idle()

    assert "done:fi" in backend.events
    assert names(engine) == ["firefox"]
    assert backend.tokens["fi"].cancelled
    assert engine.state.sequence == 2


async def test_new_query_cancels_inflight_search_first():
    backend = FakeBackend({"fir": ["firefox"]})
    backend.hold("fi")
    engine = SearchEngine(backend, debounce=0.05)

    engine.set_query("fi")
    await until(lambda: "start:fi" in backend.events)

    engine.set_query("fir")
    assert backend.tokens["fi"].cancelled
    await engine.wait_idle()

    assert backend.events == ["start:fi", "cancel:fi", "start:fir", "done:fir"]
    assert names(engine) == ["firefox"]


async def test_superseded_search_process_is_cancelled_before_next_run():
    executor = FakeExecutor(responses={"apt-cache search fir": (0, "firefox - Mozilla Firefox\n")})
    executor.hold("apt-cache search fi")
    engine = SearchEngine(AptBackend(executor), debounce=0)

    engine.set_query("fi")
    await until(lambda: len(executor.runs) == 1)
    first = executor.tokens[0]
    assert first is not None and not first.cancelled

    cancelled_at_next_run = []
    executor.on_run = lambda argv: cancelled_at_next_run.append(first.cancelled)
    engine.set_query("fir")
    await engine.wait_idle()

    assert executor.runs == [["apt-cache", "search", "fi"], ["apt-cache", "search", "fir"]]
    assert cancelled_at_next_run == [True]
    assert names(engine) == ["firefox"]


async def test_debounce_collapses_fast_typing():
    backend = FakeBackend({"fire": ["firefox"]})
    engine = SearchEngine(backend, debounce=0.05)

    for query in ("fi", "fir", "fire"):
        engine.set_query(query)
    await engine.wait_idle()

    assert backend.events == ["start:fire", "done:fire"]
    assert names(engine) == ["firefox"]


async def test_short_query_clears_results_without_searching():
    backend = FakeBackend({"fire": ["firefox"]})
    engine = SearchEngine(backend, debounce=0)
    engine.set_query("fire")
    await engine.wait_idle()

    engine.set_query("f")
    await engine.wait_idle()

    assert names(engine) == []
    assert engine.status is EngineStatus.IDLE
    assert backend.events == ["start:fire", "done:fire"]


async def test_unchanged_query_is_ignored():
    backend = FakeBackend({"fire": ["firefox"]})
    engine = SearchEngine(backend, debounce=0)

    engine.set_query("fire")
    await engine.wait_idle()
    engine.set_query("fire")
    await engine.wait_idle()

    assert backend.events.count("start:fire") == 1
    assert engine.state.sequence == 1


async def test_search_error_is_reported_and_engine_keeps_running():
    backend = FakeBackend({"fire": ["firefox"]})
    backend.failures["bad"] = ProcessExecutionError(command="fake search bad", returncode=100)
    engine = SearchEngine(backend, debounce=0)

    engine.set_query("bad")
    await engine.wait_idle()
    assert engine.state.error == "Command failed with exit code 100"
    assert names(engine) == []

    engine.set_query("fire")
    await engine.wait_idle()
    assert engine.state.error is None
    assert names(engine) == ["firefox"]


async def test_toggle_is_idempotent_in_pairs():
    backend = FakeBackend({"fire": ["firefox", "firebase-cli"]})
    engine = SearchEngine(backend, debounce=0)
    engine.set_query("fire")
    await engine.wait_idle()

    assert engine.toggle("firefox") is True
    assert engine.toggle("firefox") is False
    assert engine.toggle("firefox") is True
    engine.select("firebase-cli")
    engine.select("firebase-cli")

    assert engine.state.selected_names == ["firefox", "firebase-cli"]

    engine.deselect("firebase-cli")
    engine.deselect("firebase-cli")
    assert engine.state.selected_names == ["firefox"]


async def test_toggle_ignores_records_not_displayed():
    engine = SearchEngine(FakeBackend(), debounce=0)

    assert engine.toggle("ghost") is False
    assert engine.state.selected_names == []


async def test_confirm_installs_selection_exactly_once():
    backend = FakeBackend({"fire": ["firefox", "firebase-cli"]})
    engine = SearchEngine(backend, debounce=0)
    engine.set_query("fire")
    await engine.wait_idle()
    engine.toggle("firefox")

    first = await engine.confirm()
    second = await engine.confirm()

    assert backend.installs == [["firefox"]]
    assert first is second
    assert first.ok
    assert engine.status is EngineStatus.CONFIRMED


async def test_confirm_with_empty_selection_installs_nothing():
    backend = FakeBackend()
    engine = SearchEngine(backend, debounce=0)

    assert await engine.confirm() is None
    assert backend.installs == []


async def test_confirm_cancels_inflight_search():
    backend = FakeBackend({"fire": ["firefox"]})
    backend.hold("fire")
    engine = SearchEngine(backend, debounce=0)
    engine.set_query("fire")
    await until(lambda: "start:fire" in backend.events)

    await engine.confirm()
    await engine.wait_idle()

    assert backend.tokens["fire"].cancelled
    assert names(engine) == []


async def test_quit_has_no_side_effects():
    backend = FakeBackend({"fire": ["firefox"]})
    engine = SearchEngine(backend, debounce=0)
    engine.set_query("fire")
    await engine.wait_idle()
    engine.toggle("firefox")

    engine.quit()

    assert engine.status is EngineStatus.EXITED
    assert await engine.confirm() is None
    assert backend.installs == []

    engine.set_query("other")
    await asyncio.sleep(0)
    assert engine.state.query == "fire"


async def test_listeners_see_every_change():
    backend = FakeBackend({"fire": ["firefox"]})
    engine = SearchEngine(backend, debounce=0)
    seen = []
    engine.on_change(lambda e: seen.append(e.status))

    engine.set_query("fire")
    await engine.wait_idle()

    assert seen == [EngineStatus.TYPING, EngineStatus.SEARCHING, EngineStatus.DISPLAYING]
