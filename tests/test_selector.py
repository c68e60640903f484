import pytest
from conftest import FakeExecutor

from zap.core.bootstrap import BootstrapManager
from zap.core.config import Settings
from zap.core.errors import (
    BootstrapDeclinedError,
    BootstrapFailedError,
    NoBackendAvailableError,
    UnknownBackendError,
)
from zap.core.models import BackendId
from zap.core.selector import BackendSelector


def make_selector(executor, candidates, confirm=lambda prompt: False, settings=None):
    consulted = []

    def detect():
        consulted.append(True)
        return list(candidates)

    bootstrap = BootstrapManager(executor, settings, confirm=confirm, system="Linux")
    selector = BackendSelector(executor, bootstrap, detect, settings)
    return selector, consulted


async def test_first_available_candidate_wins():
    executor = FakeExecutor(available={"pacman", "flatpak"})
    selector, _ = make_selector(executor, [BackendId.AUR, BackendId.PACMAN, BackendId.FLATPAK])

    backend = await selector.select()

    assert backend.id is BackendId.PACMAN
    assert executor.runs == []


async def test_override_never_consults_detector():
    executor = FakeExecutor(available={"pip3", "apt-get"})
    selector, consulted = make_selector(executor, [BackendId.APT])

    backend = await selector.select("pip")

    assert backend.id is BackendId.PIP
    assert consulted == []


async def test_override_from_settings():
    executor = FakeExecutor(available={"npm"})
    selector, consulted = make_selector(executor, [BackendId.APT], settings=Settings(backend="npm"))

    assert (await selector.select()).id is BackendId.NPM
    assert consulted == []


async def test_auto_override_uses_detection():
    executor = FakeExecutor(available={"apt-get"})
    selector, consulted = make_selector(executor, [BackendId.APT])

    assert (await selector.select("auto")).id is BackendId.APT
    assert consulted == [True]


async def test_unknown_override():
    selector, consulted = make_selector(FakeExecutor(), [BackendId.APT])

    with pytest.raises(UnknownBackendError):
        await selector.select("portage")
    assert consulted == []


async def test_unavailable_override_bootstraps_only_that_backend():
    executor = FakeExecutor(available={"apt-get", "sudo"})

    def on_run(argv):
        if "nodejs" in argv:
            executor.available.add("npm")

    executor.on_run = on_run
    selector, consulted = make_selector(executor, [BackendId.PIP], confirm=lambda prompt: True)

    backend = await selector.select("npm")

    assert backend.id is BackendId.NPM
    assert consulted == []
    assert selector.bootstrap.attempted == {BackendId.NPM}


async def test_unavailable_override_without_recipe():
    selector, _ = make_selector(FakeExecutor(), [])

    with pytest.raises(NoBackendAvailableError):
        await selector.select("apt")


async def test_nothing_available_and_bootstrap_declined():
    executor = FakeExecutor()
    selector, _ = make_selector(executor, [BackendId.PIP, BackendId.NPM])

    with pytest.raises(NoBackendAvailableError) as excinfo:
        await selector.select()

    assert isinstance(excinfo.value.__cause__, BootstrapDeclinedError)
    assert excinfo.value.context["candidates"] == "pip, npm"
    assert selector.bootstrap.attempted == {BackendId.PIP}
    assert executor.runs == []


async def test_only_top_candidate_is_bootstrapped_once():
    executor = FakeExecutor(available={"apt-get"})
    selector, _ = make_selector(executor, [BackendId.PIP, BackendId.NPM], confirm=lambda prompt: True)

    with pytest.raises(BootstrapFailedError):
        await selector.select()

    assert selector.bootstrap.attempted == {BackendId.PIP}
    assert not any("nodejs" in argv for argv in executor.runs)


async def test_top_candidate_without_recipe():
    selector, _ = make_selector(FakeExecutor(), [BackendId.APT, BackendId.FLATPAK])

    with pytest.raises(NoBackendAvailableError):
        await selector.select()


async def test_no_candidates():
    selector, _ = make_selector(FakeExecutor(), [])

    with pytest.raises(NoBackendAvailableError):
        await selector.select()
