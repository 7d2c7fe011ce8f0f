"""vpsrun: Run one command on selected SSH hosts in parallel."""

__version__ = "0.1.0"

from .config import Config, ConfigError, Defaults, HostRecord, load_config
from .executor import ExecutionOutcome, Executor, FailureKind, HostStatus
from .selector import (
    HostNotFoundError,
    IndexList,
    InvalidIndexError,
    InvalidRangeError,
    NoTargetsError,
    Range,
    SelectionError,
    Single,
    extract_ordinal,
    parse_selection,
    resolve,
)

__all__ = [
    "Config",
    "ConfigError",
    "Defaults",
    "HostRecord",
    "load_config",
    "Executor",
    "ExecutionOutcome",
    "FailureKind",
    "HostStatus",
    "SelectionError",
    "InvalidIndexError",
    "InvalidRangeError",
    "HostNotFoundError",
    "NoTargetsError",
    "Single",
    "IndexList",
    "Range",
    "extract_ordinal",
    "parse_selection",
    "resolve",
]
