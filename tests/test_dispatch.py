import io

import pytest
from conftest import FakeBackend, FakeExecutor
from rich.console import Console

from zap.backends.language import PipBackend
from zap.backends.linux import AptBackend
from zap.core.dispatch import Dispatcher, resolve_command
from zap.core.errors import (
    ProcessExecutionError,
    UnsupportedOperationError,
    UserError,
    exit_code_for,
)
from zap.core.update import ReleaseChecker

SEARCH = "firefox - Mozilla Firefox web browser\nfirebase-cli - Firebase tools\n"
SHOW = "Package: firefox\nVersion: 128.0\nDescription: Mozilla Firefox web browser\n"


def make_console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None)


def output(console: Console) -> str:
    return console.file.getvalue()


def apt(responses=None) -> tuple[AptBackend, FakeExecutor]:
    executor = FakeExecutor(available={"apt-get"}, responses=responses, root=True)
    return AptBackend(executor), executor


def test_resolve_command_aliases():
    assert resolve_command("s") == "search"
    assert resolve_command("i") == "install"
    assert resolve_command("ls") == "list"
    assert resolve_command("int") == "interactive"
    assert resolve_command("info") == "info"
    with pytest.raises(UserError):
        resolve_command("frobnicate")


async def test_search_renders_table():
    backend, _ = apt({"apt-cache search fire": (0, SEARCH)})
    console = make_console()

    code = await Dispatcher(backend, console, check_updates=False).dispatch("s", ["fire"])

    assert code == 0
    text = output(console)
    assert "firefox" in text
    assert text.index("firefox") < text.index("firebase-cli")


async def test_search_with_info_describes_first_result():
    backend, executor = apt({"apt-cache search fire": (0, SEARCH), "apt-cache show firefox": (0, SHOW)})
    console = make_console()

    await Dispatcher(backend, console, check_updates=False).dispatch("search", ["fire"], show_info=True)

    assert executor.runs[-1] == ["apt-cache", "show", "firefox"]
    assert "128.0" in output(console)


async def test_search_without_results():
    backend, _ = apt()
    console = make_console()

    await Dispatcher(backend, console, check_updates=False).dispatch("search", ["zzz"])

    assert "No packages found." in output(console)


async def test_failed_install_propagates_return_code():
    backend, _ = apt({"apt-get install -y vim": (100, "")})
    dispatcher = Dispatcher(backend, make_console(), check_updates=False)

    with pytest.raises(ProcessExecutionError) as excinfo:
        await dispatcher.dispatch("install", ["vim"])

    assert excinfo.value.context["action"] == "install"
    assert excinfo.value.context["command"] == "apt-get install -y vim"
    assert exit_code_for(excinfo.value) == 100


async def test_install_requires_names():
    backend, executor = apt()

    with pytest.raises(UserError):
        await Dispatcher(backend, make_console(), check_updates=False).dispatch("install", [])
    assert executor.runs == []


async def test_unsupported_operation_is_a_user_error():
    executor = FakeExecutor(available={"pip3"})
    dispatcher = Dispatcher(PipBackend(executor), make_console(), check_updates=False)

    with pytest.raises(UnsupportedOperationError) as excinfo:
        await dispatcher.dispatch("update")

    assert exit_code_for(excinfo.value) == 1
    assert executor.runs == []


async def test_interactive_installs_after_ui_confirms():
    backend = FakeBackend({"fire": ["firefox", "firebase-cli"]})
    ui_calls = []

    async def ui(engine):
        ui_calls.append(engine)
        engine.set_query("fire")
        await engine.wait_idle()
        engine.toggle("firefox")
        assert backend.installs == []
        return True

    console = make_console()
    dispatcher = Dispatcher(backend, console, check_updates=False, run_ui=ui)
    dispatcher.settings = dispatcher.settings.with_overrides(debounce_ms=0)

    assert await dispatcher.dispatch("int") == 0
    assert backend.installs == [["firefox"]]
    assert len(ui_calls) == 1
    assert "Installed firefox" in output(console)


async def test_interactive_quit_installs_nothing():
    backend = FakeBackend({"fire": ["firefox"]})

    async def ui(engine):
        engine.set_query("fire")
        await engine.wait_idle()
        engine.toggle("firefox")
        return False

    dispatcher = Dispatcher(backend, make_console(), check_updates=False, run_ui=ui)
    dispatcher.settings = dispatcher.settings.with_overrides(debounce_ms=0)

    assert await dispatcher.dispatch("interactive") == 0
    assert backend.installs == []


async def test_search_pick_seeds_interactive_session():
    backend = FakeBackend({"fire": ["firefox", "firebase-cli"]})
    seen = []

    async def ui(engine):
        seen.append(engine.state.query)
        await engine.wait_idle()
        engine.toggle("firebase-cli")
        return True

    console = make_console()
    dispatcher = Dispatcher(backend, console, check_updates=False, run_ui=ui)
    dispatcher.settings = dispatcher.settings.with_overrides(debounce_ms=0)

    assert await dispatcher.dispatch("search", ["fire"], pick=True) == 0
    assert seen == ["fire"]
    assert backend.events == ["start:fire", "done:fire"]
    assert backend.installs == [["firebase-cli"]]
    assert "No packages found." not in output(console)


async def test_release_notice_when_enabled():
    backend, _ = apt({"apt-cache search fire": (0, SEARCH)})
    executor = FakeExecutor(
        available={"pip3"},
        responses={"/usr/bin/pip3 index versions zap-pm": (0, "zap-pm (9.9.9)\nAvailable versions: 9.9.9\n")},
    )
    console = make_console()
    dispatcher = Dispatcher(backend, console, releases=ReleaseChecker(executor, current="0.1.0"))

    await dispatcher.dispatch("search", ["fire"])

    assert "Update available" in output(console)
    assert "9.9.9" in output(console)


async def test_release_check_disabled_runs_nothing():
    backend, _ = apt({"apt-cache search fire": (0, SEARCH)})
    executor = FakeExecutor(available={"pip3"})
    dispatcher = Dispatcher(
        backend, make_console(), check_updates=False, releases=ReleaseChecker(executor, current="0.1.0")
    )

    await dispatcher.dispatch("search", ["fire"])

    assert executor.runs == []
