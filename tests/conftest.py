"""Shared pytest fixtures for vpsrun tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

from vpsrun.config import HostRecord


def make_host(name: str | None, address: str = "10.0.0.1", **kwargs) -> HostRecord:
    return HostRecord(
        name=name,
        address=address,
        username=kwargs.pop("username", "root"),
        credential=kwargs.pop("credential", "secret"),
        **kwargs,
    )


def make_client(
    stdout: bytes = b"",
    stderr: bytes = b"",
    exit_status: int = 0,
    connect_error: Exception | None = None,
    session_error: Exception | None = None,
    start_error: Exception | None = None,
    stream_error: Exception | None = None,
) -> MagicMock:
    """Build a stand-in for paramiko.SSHClient with a scripted session."""
    client = MagicMock(name="SSHClient")
    if connect_error:
        client.connect.side_effect = connect_error

    transport = client.get_transport.return_value
    if session_error:
        transport.open_session.side_effect = session_error

    channel = transport.open_session.return_value
    channel.makefile.return_value.read.return_value = stdout
    channel.makefile_stderr.return_value.read.return_value = stderr
    if stream_error:
        channel.makefile.return_value.read.side_effect = stream_error
    if start_error:
        channel.exec_command.side_effect = start_error
    channel.recv_exit_status.return_value = exit_status
    return client


@pytest.fixture
def worker_hosts() -> list[HostRecord]:
    """worker5, worker12 and an unnumbered host, in that order."""
    return [
        make_host("worker5", "10.0.0.5", credential="pw5"),
        make_host("worker12", "10.0.0.12", credential="pw12"),
        make_host("x", "10.0.0.99"),
    ]


@pytest.fixture
def config_file(tmp_path: Path):
    """Write a YAML config and return its path."""

    def _write(data) -> Path:
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    return _write
