"""Tests for the TUI dashboard."""

import asyncio
from unittest.mock import patch

import pytest
from textual.widgets import RichLog

from vpsrun.dashboard import Dashboard, HostPanel, StatusBar
from vpsrun.executor import ExecutionOutcome, Executor, FailureKind, HostStatus


def finish(executor, outcome):
    executor._emit_status(
        outcome.host, HostStatus.SUCCESS if outcome.success else HostStatus.FAILED
    )
    executor.on_outcome(outcome)
    return outcome


async def fake_dispatch(self, targets):
    results = []
    for host in targets:
        self._emit_status(host, HostStatus.CONNECTING)
        if host.name == "worker12":
            outcome = ExecutionOutcome(
                host=host,
                success=False,
                failure=FailureKind.CONNECT_FAILED,
                error="failed to connect: Connection refused",
            )
        else:
            outcome = ExecutionOutcome(host=host, success=True, stdout="up\n", exit_code=0)
        results.append(finish(self, outcome))
    return results


@pytest.mark.asyncio
async def test_dashboard_runs_dispatch_and_tracks_status(worker_hosts):
    targets = worker_hosts[:2]

    with patch.object(Executor, "dispatch", fake_dispatch):
        app = Dashboard(targets, "uptime")
        async with app.run_test() as pilot:
            await app.workers.wait_for_complete()
            await pilot.pause()
            await pilot.pause()

            panels = list(app.query(HostPanel))
            assert [p.host for p in panels] == targets
            assert [p.status for p in panels] == [HostStatus.SUCCESS, HostStatus.FAILED]
            assert [p.outcome.success for p in panels] == [True, False]

            status_bar = app.query_one("#status-bar", StatusBar)
            assert status_bar.total == 2
            assert status_bar.completed == 2
            assert status_bar.running is False

    assert [r.success for r in app.results] == [True, False]
    assert [r.host for r in app.results] == targets


@pytest.mark.asyncio
async def test_panel_fills_while_sibling_still_running(worker_hosts):
    targets = worker_hosts[:2]
    release = asyncio.Event()

    async def staggered_dispatch(self, targets):
        first = finish(self, ExecutionOutcome(host=targets[0], success=True, stdout="up\n", exit_code=0))
        self._emit_status(targets[1], HostStatus.RUNNING)
        await release.wait()
        second = finish(self, ExecutionOutcome(host=targets[1], success=True, stdout="up\n", exit_code=0))
        return [first, second]

    with patch.object(Executor, "dispatch", staggered_dispatch):
        app = Dashboard(targets, "uptime")
        async with app.run_test() as pilot:
            await pilot.pause()
            await pilot.pause()

            first, second = app.panels
            assert first.outcome is not None
            assert len(app.query_one("#log-0", RichLog).lines) > 0
            assert second.outcome is None
            assert second.status == HostStatus.RUNNING
            assert len(app.query_one("#log-1", RichLog).lines) == 0
            assert app.results is None

            release.set()
            await app.workers.wait_for_complete()
            await pilot.pause()

            assert second.outcome is not None
            assert len(app.query_one("#log-1", RichLog).lines) > 0


@pytest.mark.asyncio
async def test_duplicate_targets_each_get_an_outcome(worker_hosts):
    host = worker_hosts[0]

    async def duplicate_dispatch(self, targets):
        return [
            finish(self, ExecutionOutcome(host=target, success=True, stdout="up\n", exit_code=0))
            for target in targets
        ]

    with patch.object(Executor, "dispatch", duplicate_dispatch):
        app = Dashboard([host, host], "uptime")
        async with app.run_test() as pilot:
            await app.workers.wait_for_complete()
            await pilot.pause()

            assert all(panel.outcome is not None for panel in app.panels)


@pytest.mark.asyncio
async def test_dashboard_quit_before_completion(worker_hosts):
    async def never_finishes(self, targets):
        await asyncio.Event().wait()

    with patch.object(Executor, "dispatch", never_finishes):
        app = Dashboard(worker_hosts[:1], "sleep 100")
        async with app.run_test() as pilot:
            await pilot.press("q")

    assert app.results is None
