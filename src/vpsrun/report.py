"""Rendering of execution outcomes and the aggregate exit code."""

from __future__ import annotations

import logging
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence, TextIO

import yaml

from .executor import ExecutionOutcome

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]")


def render_outcome(outcome: ExecutionOutcome, stream: TextIO) -> None:
    """Write one host's outcome in the ``[name] STATUS`` block format."""
    status = "SUCCESS" if outcome.success else "FAILED"
    print(f"[{outcome.host.label}] {status}", file=stream)

    if outcome.stdout:
        print("STDOUT:", file=stream)
        print(outcome.stdout, file=stream)

    if outcome.stderr:
        print("STDERR:", file=stream)
        print(outcome.stderr, file=stream)

    if not outcome.success and outcome.error:
        if not outcome.stderr:
            print("STDERR:", file=stream)
        print(outcome.error, file=stream)


def exit_code(results: Sequence[ExecutionOutcome]) -> int:
    """0 if every outcome succeeded, 1 otherwise."""
    return 0 if all(r.success for r in results) else 1


def report(
    results: Sequence[ExecutionOutcome],
    stream: TextIO | None = None,
    separate: bool = True,
) -> int:
    """Print every outcome in order and return the process exit code.

    With ``separate`` each outcome is followed by a blank line, which is
    how multi-host runs are laid out.
    """
    stream = stream or sys.stdout
    for outcome in results:
        render_outcome(outcome, stream)
        if separate:
            print(file=stream)
    return exit_code(results)


def write_logs(
    results: Sequence[ExecutionOutcome],
    log_dir: Path,
    source_path: Path | None = None,
) -> Path:
    """Write each outcome to ``<log_dir>/<timestamp>/<host>.log``.

    The source config is copied alongside with passwords masked.
    Returns the directory that was written.
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = Path(log_dir).expanduser() / timestamp
    run_dir.mkdir(parents=True, exist_ok=True)

    for outcome in results:
        log_file = run_dir / f"{_UNSAFE_FILENAME.sub('_', outcome.host.label)}.log"
        with open(log_file, "a") as f:
            render_outcome(outcome, f)

    if source_path and source_path.exists():
        with open(source_path) as f:
            raw = yaml.safe_load(f)
        with open(run_dir / "config.yaml", "w") as f:
            yaml.safe_dump(_mask_credentials(raw), f, sort_keys=False)

    logger.debug("Wrote %d host logs to %s", len(results), run_dir)
    return run_dir


def _mask_credentials(raw: Any) -> Any:
    if isinstance(raw, dict):
        return {
            key: "***" if key in ("password", "secret") and value else _mask_credentials(value)
            for key, value in raw.items()
        }
    if isinstance(raw, list):
        return [_mask_credentials(item) for item in raw]
    return raw
