"""TUI Dashboard for vpsrun."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from rich.text import Text
from textual.app import App, ComposeResult
from textual.message import Message
from textual.reactive import reactive
from textual.widgets import Footer, Header, Label, RichLog, Static
from textual.worker import Worker, WorkerState

from .config import HostRecord
from .executor import ExecutionOutcome, Executor, HostStatus

STATUS_ICONS = {
    HostStatus.PENDING: ("○", "dim"),
    HostStatus.CONNECTING: ("◐", "yellow"),
    HostStatus.RUNNING: ("▶", "yellow"),
    HostStatus.SUCCESS: ("✔", "green"),
    HostStatus.FAILED: ("✘", "red"),
}


class HostPanel(Static):
    """A panel displaying the outcome for a single host."""

    status: reactive[HostStatus] = reactive(HostStatus.PENDING)

    def __init__(self, host: HostRecord, index: int, **kwargs) -> None:
        super().__init__(**kwargs)
        self.host = host
        self.index = index
        self.outcome: ExecutionOutcome | None = None

    def compose(self) -> ComposeResult:
        yield Label(self._get_header(), id=f"header-{self.index}")
        yield RichLog(
            id=f"log-{self.index}",
            highlight=False,
            markup=False,
            wrap=True,
            auto_scroll=True,
        )

    def _get_header(self) -> str:
        icon, color = STATUS_ICONS.get(self.status, ("?", "white"))
        host = self.host
        return (
            f"[{color}]{icon}[/] [{color}][bold]{host.label}[/bold][/] "
            f"[{color}]{host.username}@{host.address}:{host.port}[/]"
        )

    def watch_status(self, status: HostStatus) -> None:
        """Update header when status changes."""
        if not self.is_mounted:
            return
        header = self.query_one(f"#header-{self.index}", Label)
        header.update(self._get_header())

    def show_outcome(self, outcome: ExecutionOutcome) -> None:
        """Write the captured output and any failure into this panel."""
        self.outcome = outcome
        log = self.query_one(f"#log-{self.index}", RichLog)
        if outcome.stdout:
            log.write(Text(outcome.stdout.rstrip("\n")))
        if outcome.stderr:
            log.write(Text(outcome.stderr.rstrip("\n"), style="red"))
        if not outcome.success and outcome.error:
            log.write(Text(outcome.error, style="bold red"))
        elif outcome.success and not outcome.stdout:
            log.write(Text("(no output)", style="green"))


class StatusBar(Static):
    """Bottom status bar showing overall progress."""

    completed: reactive[int] = reactive(0)
    total: reactive[int] = reactive(0)
    running: reactive[bool] = reactive(True)

    def render(self) -> str:
        status = "Running..." if self.running else "Complete"
        return f"Progress: {self.completed}/{self.total} hosts complete | {status} | Press 'q' to quit"


@dataclass
class HostStatusChange(Message):
    """Message for host status change."""
    host: HostRecord
    status: HostStatus


@dataclass
class HostFinished(Message):
    """Message carrying a host's final outcome."""
    outcome: ExecutionOutcome


class Dashboard(App):
    """Live view of a dispatch, one panel per target."""

    CSS = """
    Screen {
        layout: grid;
        grid-size: 2;
        grid-gutter: 1;
    }

    HostPanel {
        border: solid $primary;
        height: 100%;
        min-height: 10;
    }

    HostPanel Label {
        dock: top;
        padding: 0 1;
        background: $surface;
    }

    HostPanel RichLog {
        height: 1fr;
        padding: 0 1;
    }

    StatusBar {
        dock: bottom;
        height: 1;
        background: $surface;
        padding: 0 1;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("escape", "quit", "Quit"),
    ]

    def __init__(
        self,
        targets: Sequence[HostRecord],
        command: str,
        known_hosts: Path | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.targets = list(targets)
        self.command = command
        self.known_hosts = known_hosts
        self.panels: list[HostPanel] = []
        self.results: list[ExecutionOutcome] | None = None
        self._worker: Worker | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        for index, host in enumerate(self.targets):
            panel = HostPanel(host, index, id=f"panel-{index}")
            self.panels.append(panel)
            yield panel

        yield StatusBar(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        """Start execution when the app mounts."""
        self.title = f"vpsrun: {self.command}"
        status_bar = self.query_one("#status-bar", StatusBar)
        status_bar.total = len(self.targets)

        executor = Executor(
            self.command,
            on_status=self._on_status,
            known_hosts=self.known_hosts,
            on_outcome=self._on_outcome,
        )
        self._worker = self.run_worker(self._run_dispatch(executor), exclusive=True)

    async def _run_dispatch(self, executor: Executor) -> None:
        """Run the dispatch; panels fill in as each host finishes."""
        self.results = await executor.dispatch(self.targets)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        """Handle worker completion."""
        if event.worker == self._worker and event.state == WorkerState.SUCCESS:
            status_bar = self.query_one("#status-bar", StatusBar)
            status_bar.running = False

    def _on_status(self, host: HostRecord, status: HostStatus) -> None:
        self.post_message(HostStatusChange(host, status))

    def on_host_status_change(self, message: HostStatusChange) -> None:
        """Handle HostStatusChange message."""
        for panel in self.panels:
            if panel.host == message.host:
                panel.status = message.status

        if message.status in (HostStatus.SUCCESS, HostStatus.FAILED):
            status_bar = self.query_one("#status-bar", StatusBar)
            status_bar.completed += 1

    def _on_outcome(self, outcome: ExecutionOutcome) -> None:
        self.post_message(HostFinished(outcome))

    def on_host_finished(self, message: HostFinished) -> None:
        """Show the outcome in the first panel of that host still waiting for one."""
        for panel in self.panels:
            if panel.host == message.outcome.host and panel.outcome is None:
                panel.show_outcome(message.outcome)
                break

    async def action_quit(self) -> None:
        """Quit the application."""
        if self._worker and self._worker.is_running:
            self._worker.cancel()
        self.exit()
