"""UI tests driving the Textual host with Pilot."""

from __future__ import annotations

import pytest

from sqldeck.app import DeckBody, SqlDeckApp
from sqldeck.domains.connections.store.connections import ConnectionConfig
from sqldeck.domains.shell.app.view_controller import ViewMode
from tests.fakes import FakeDataAccess, make_services


async def settle(app, pilot, rounds: int = 4) -> None:
    """Let worker threads finish and their completions reach the loop."""
    for _ in range(rounds):
        await app.workers.wait_for_complete()
        await pilot.pause()


def startup_app(access=None) -> SqlDeckApp:
    services = make_services(access or FakeDataAccess(name="shop"), connected=False)
    return SqlDeckApp(services, startup_connection=ConnectionConfig("shop", "shop.db"))


class TestStartup:
    @pytest.mark.asyncio
    async def test_startup_connection_opens_browser(self):
        app = startup_app()
        async with app.run_test(size=(100, 35)) as pilot:
            await settle(app, pilot)
            assert app.controller.connected
            assert app.controller.mode is ViewMode.BROWSER
            browser = app.controller.screen(ViewMode.BROWSER)
            assert [t.name for t in browser.tables] == ["orders", "products", "users"]
            assert app.focused is app.query_one(DeckBody)

    @pytest.mark.asyncio
    async def test_startup_error_is_shown_and_dismissed(self):
        app = SqlDeckApp(make_services(connected=False), fatal_error="Database file not found: nope.db")
        async with app.run_test(size=(100, 35)) as pilot:
            await pilot.pause()
            assert app.controller.fatal_error == "Database file not found: nope.db"
            await pilot.press("escape")
            await pilot.pause()
            assert app.controller.fatal_error is None
            assert app.controller.mode is ViewMode.CONNECTION


class TestKeyboardFlow:
    @pytest.mark.asyncio
    async def test_tab_reaches_editor_and_query_runs(self):
        app = startup_app()
        async with app.run_test(size=(100, 35)) as pilot:
            await settle(app, pilot)
            await pilot.press("tab")
            await pilot.pause()
            assert app.controller.mode is ViewMode.EDITOR

            await pilot.press(*"SELECT 1")
            await pilot.press("ctrl+e")
            await settle(app, pilot)

            assert app.controller.mode is ViewMode.RESULTS
            assert app.controller.screen(ViewMode.RESULTS).rows == [(1,)]
            assert app.services.history.entries[0] == ("SELECT 1", True, "shop")

    @pytest.mark.asyncio
    async def test_help_overlay_toggles(self):
        app = startup_app()
        async with app.run_test(size=(100, 35)) as pilot:
            await settle(app, pilot)
            await pilot.press("question_mark")
            await pilot.pause()
            assert app.controller.help_visible
            await pilot.press("escape")
            await pilot.pause()
            assert not app.controller.help_visible
            assert app.controller.mode is ViewMode.BROWSER

    @pytest.mark.asyncio
    async def test_open_table_and_go_back(self):
        app = startup_app()
        async with app.run_test(size=(100, 35)) as pilot:
            await settle(app, pilot)
            await pilot.press("down", "down", "enter")
            await settle(app, pilot)
            results = app.controller.screen(ViewMode.RESULTS)
            assert app.controller.mode is ViewMode.RESULTS
            assert results.table == "users"
            assert results.rows[0][1] == "alice"
            await pilot.press("escape")
            await pilot.pause()
            assert app.controller.mode is ViewMode.BROWSER

    @pytest.mark.asyncio
    async def test_ctrl_c_quits(self):
        app = startup_app()
        async with app.run_test(size=(100, 35)) as pilot:
            await settle(app, pilot)
            await pilot.press("ctrl+c")
            assert app.controller.should_quit
