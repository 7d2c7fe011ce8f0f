"""SSH execution engine for vpsrun."""

from __future__ import annotations

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Sequence

import paramiko

from .config import HostRecord

logger = logging.getLogger(__name__)

# Blocking calls a single host can have in flight at once:
# the stdout drain, the stderr drain and the exit-status wait.
THREADS_PER_HOST = 3

_SSH_ERRORS = (paramiko.SSHException, EOFError, OSError)


class HostStatus(Enum):
    """Status of a host's execution."""

    PENDING = "pending"
    CONNECTING = "connecting"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class FailureKind(Enum):
    """Why an execution attempt did not succeed."""

    CONNECT_FAILED = "connect_failed"
    SESSION_FAILED = "session_failed"
    START_FAILED = "start_failed"
    REMOTE_NONZERO_EXIT = "remote_nonzero_exit"
    STREAM_ERROR = "stream_error"


@dataclass(frozen=True)
class ExecutionOutcome:
    """Complete record of one host's execution attempt."""

    host: HostRecord
    success: bool
    stdout: str = ""
    stderr: str = ""
    failure: FailureKind | None = None
    exit_code: int | None = None
    error: str | None = None


# Type alias for status callback
StatusCallback = Callable[[HostRecord, HostStatus], None]  # (host, status) -> None
OutcomeCallback = Callable[[ExecutionOutcome], None]


class Executor:
    """Runs one command over SSH on any number of hosts."""

    def __init__(
        self,
        command: str,
        on_status: StatusCallback | None = None,
        known_hosts: Path | None = None,
        on_outcome: OutcomeCallback | None = None,
    ):
        self.command = command
        self.on_status = on_status
        self.on_outcome = on_outcome
        # None means every remote host key is accepted without verification.
        self.known_hosts = known_hosts

    def _emit_status(self, host: HostRecord, status: HostStatus) -> None:
        if self.on_status:
            self.on_status(host, status)

    async def dispatch(self, targets: Sequence[HostRecord]) -> list[ExecutionOutcome]:
        """Run the command on all targets in parallel.

        ``result[i]`` always belongs to ``targets[i]``, whatever order the
        hosts finish in.
        """
        if not targets:
            return []

        for host in targets:
            self._emit_status(host, HostStatus.PENDING)

        pool = ThreadPoolExecutor(
            max_workers=THREADS_PER_HOST * len(targets),
            thread_name_prefix="vpsrun",
        )
        try:
            results = await asyncio.gather(*(self.run(host, pool) for host in targets))
        finally:
            # Calls can still be blocked in connect after a cancel; do not join them.
            pool.shutdown(wait=False, cancel_futures=True)

        failed = sum(1 for r in results if not r.success)
        logger.debug("Dispatch done: %d/%d hosts OK", len(results) - failed, len(results))
        return list(results)

    async def run(
        self, host: HostRecord, pool: ThreadPoolExecutor | None = None
    ) -> ExecutionOutcome:
        """Run the command on a single host.

        Protocol errors never propagate; they are recorded in the outcome.
        """
        loop = asyncio.get_running_loop()

        def call(fn, *args, **kwargs):
            return loop.run_in_executor(pool, functools.partial(fn, *args, **kwargs))

        self._emit_status(host, HostStatus.CONNECTING)
        client = paramiko.SSHClient()
        try:
            outcome = await self._run_session(host, client, call)
        finally:
            await call(client.close)

        self._emit_status(host, HostStatus.SUCCESS if outcome.success else HostStatus.FAILED)
        if self.on_outcome:
            self.on_outcome(outcome)
        return outcome

    def _connect(self, client: paramiko.SSHClient, host: HostRecord) -> None:
        if self.known_hosts is None:
            logger.debug("Host key verification disabled for %s", host.address)
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        else:
            client.load_host_keys(str(self.known_hosts))
            client.set_missing_host_key_policy(paramiko.RejectPolicy())

        client.connect(
            host.address,
            port=host.port,
            username=host.username,
            password=host.credential,
            look_for_keys=False,
            allow_agent=False,
        )

    async def _run_session(self, host: HostRecord, client: paramiko.SSHClient, call) -> ExecutionOutcome:
        logger.debug("Connecting to %s@%s:%d", host.username, host.address, host.port)
        try:
            await call(self._connect, client, host)
        except _SSH_ERRORS as e:
            return _failed(host, FailureKind.CONNECT_FAILED, f"failed to connect: {e}")

        try:
            transport = client.get_transport()
            if transport is None:
                raise paramiko.SSHException("transport is not open")
            channel = await call(transport.open_session)
        except _SSH_ERRORS as e:
            return _failed(host, FailureKind.SESSION_FAILED, f"failed to create session: {e}")

        with channel:
            # Readers must exist before the command starts producing output.
            stdout = channel.makefile("rb")
            stderr = channel.makefile_stderr("rb")

            try:
                await call(channel.exec_command, self.command)
            except _SSH_ERRORS + (UnicodeError,) as e:
                return _failed(host, FailureKind.START_FAILED, f"failed to start command: {e}")

            self._emit_status(host, HostStatus.RUNNING)

            try:
                out, err, exit_status = await asyncio.gather(
                    call(stdout.read),
                    call(stderr.read),
                    call(channel.recv_exit_status),
                )
            except _SSH_ERRORS as e:
                return _failed(host, FailureKind.STREAM_ERROR, f"command execution error: {e}")

        out_text = out.decode("utf-8", errors="replace")
        err_text = err.decode("utf-8", errors="replace")
        logger.debug("%s exited with status %d", host.label, exit_status)

        if exit_status == -1:
            return _failed(
                host,
                FailureKind.STREAM_ERROR,
                "command execution error: no exit status received",
                stdout=out_text,
                stderr=err_text,
            )
        if exit_status != 0:
            return ExecutionOutcome(
                host=host,
                success=False,
                stdout=out_text,
                stderr=err_text,
                failure=FailureKind.REMOTE_NONZERO_EXIT,
                exit_code=exit_status,
                error=f"command exited with code {exit_status}",
            )
        return ExecutionOutcome(
            host=host, success=True, stdout=out_text, stderr=err_text, exit_code=0
        )


def _failed(
    host: HostRecord, kind: FailureKind, error: str, stdout: str = "", stderr: str = ""
) -> ExecutionOutcome:
    logger.debug("%s: %s", host.label, error)
    return ExecutionOutcome(
        host=host, success=False, stdout=stdout, stderr=stderr, failure=kind, error=error
    )
