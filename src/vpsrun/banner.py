"""Startup banner and version line."""

import sys

from . import __version__

BANNER = r"""
 _   _____  ___  _____ __ __ ____
| | / / _ \/ __// ___// // // __ \
| |/ / ___/\ \ / /   / /_/ // / / /
|___/_/  /___//_/    \____//_/ /_/
"""


def version_line() -> str:
    return f"Current vpsrun version v{__version__}"


def print_version() -> None:
    print(version_line())


def print_banner() -> None:
    # stdout carries host reports only.
    print(f"{BANNER}\n{version_line():>40}\n", file=sys.stderr)
