"""Target selection: resolve host ordinals against the configured hosts.

A host's ordinal is the number at the end of its name (``worker60`` -> 60).
Hosts without a trailing number can never be selected.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Sequence, Union

from .config import HostRecord

logger = logging.getLogger(__name__)

_TRAILING_DIGITS = re.compile(r"([0-9]+)\Z")
_INTEGER = re.compile(r"[+-]?[0-9]+\Z")


class SelectionError(ValueError):
    """Base class for errors raised before any host is contacted."""


class InvalidIndexError(SelectionError):
    """An index token is not an integer or is below 1."""


class InvalidRangeError(SelectionError):
    """A range is not of the form ``start-end`` with 1 <= start <= end."""


class HostNotFoundError(SelectionError):
    """No host carries the requested ordinal."""

    def __init__(self, ordinal: int):
        super().__init__(f"host with number {ordinal} not found")
        self.ordinal = ordinal


class NoTargetsError(SelectionError):
    """The selection matched no hosts at all."""


@dataclass(frozen=True)
class Single:
    ordinal: int


@dataclass(frozen=True)
class IndexList:
    ordinals: tuple[int, ...]


@dataclass(frozen=True)
class Range:
    start: int
    end: int


Selection = Union[Single, IndexList, Range]


def extract_ordinal(name: str | None) -> int | None:
    """Return the trailing number of ``name``, or None if it has none."""
    if not name:
        return None
    match = _TRAILING_DIGITS.search(name)
    if match is None:
        return None
    try:
        return int(match.group(1))
    except ValueError:
        # More digits than int() will convert
        return None


def _parse_int(token: str) -> int | None:
    token = token.strip()
    if not _INTEGER.match(token):
        return None
    try:
        return int(token)
    except ValueError:
        return None


def parse_index(index_str: str) -> Single:
    """Parse a single index such as ``"42"``."""
    value = _parse_int(index_str)
    if value is None:
        raise InvalidIndexError(f"invalid index '{index_str}'")
    if value < 1:
        raise InvalidIndexError(f"index must be >= 1, got {value}")
    return Single(value)


def parse_index_list(indices_str: str) -> IndexList:
    """Parse a comma-separated list of indices such as ``"52,42,53"``.

    Empty tokens are dropped; order and duplicates are kept.
    """
    ordinals = []
    for part in indices_str.split(","):
        part = part.strip()
        if not part:
            continue
        ordinals.append(parse_index(part).ordinal)
    if not ordinals:
        raise InvalidIndexError("no valid indices provided")
    return IndexList(tuple(ordinals))


def parse_range(range_str: str) -> Range:
    """Parse a range string like ``"1-20"``."""
    parts = range_str.split("-")
    if len(parts) != 2:
        raise InvalidRangeError("invalid range format: expected 'start-end'")

    start = _parse_int(parts[0])
    if start is None:
        raise InvalidRangeError(f"invalid start index '{parts[0].strip()}'")
    end = _parse_int(parts[1])
    if end is None:
        raise InvalidRangeError(f"invalid end index '{parts[1].strip()}'")

    if start < 1:
        raise InvalidRangeError("start index must be >= 1")
    if end < start:
        raise InvalidRangeError("end index must be >= start index")
    return Range(start, end)


def parse_selection(index: str | None = None, range_: str | None = None) -> Selection:
    """Build a Selection from the ``-i`` or ``-l`` option value."""
    if index and range_:
        raise SelectionError("an index and a range cannot be used together")
    if range_:
        return parse_range(range_)
    if index:
        if "," in index:
            return parse_index_list(index)
        return parse_index(index)
    raise SelectionError("either an index or a range must be provided")


def find_by_ordinal(hosts: Sequence[HostRecord], ordinal: int) -> HostRecord:
    """Return the first host whose ordinal equals ``ordinal``."""
    for host in hosts:
        if extract_ordinal(host.name) == ordinal:
            return host
    raise HostNotFoundError(ordinal)


def find_in_range(hosts: Sequence[HostRecord], start: int, end: int) -> list[HostRecord]:
    """Return every host with an ordinal in ``[start, end]``, in list order."""
    matched = []
    for host in hosts:
        ordinal = extract_ordinal(host.name)
        if ordinal is not None and start <= ordinal <= end:
            matched.append(host)
    if not matched:
        raise NoTargetsError(f"no hosts found in range {start}-{end}")
    return matched


def find_by_ordinals(
    hosts: Sequence[HostRecord], ordinals: Sequence[int]
) -> tuple[list[HostRecord], list[int]]:
    """Look up each ordinal in turn.

    Returns the hosts found and the ordinals that matched nothing.
    """
    matched = []
    not_found = []
    for ordinal in ordinals:
        try:
            matched.append(find_by_ordinal(hosts, ordinal))
        except HostNotFoundError:
            not_found.append(ordinal)
    return matched, not_found


def resolve(
    hosts: Sequence[HostRecord], selection: Selection
) -> tuple[list[HostRecord], list[int]]:
    """Resolve ``selection`` into an ordered target list.

    Returns ``(targets, not_found)``. Only an IndexList can report
    unmatched ordinals; for the other forms ``not_found`` is empty and a
    miss raises instead.
    """
    if isinstance(selection, Single):
        return [find_by_ordinal(hosts, selection.ordinal)], []

    if isinstance(selection, Range):
        return find_in_range(hosts, selection.start, selection.end), []

    if isinstance(selection, IndexList):
        targets, not_found = find_by_ordinals(hosts, selection.ordinals)
        if not_found:
            logger.debug("Unmatched host numbers: %s", not_found)
        if not targets:
            raise NoTargetsError("no hosts found")
        return targets, not_found

    raise TypeError(f"unsupported selection: {selection!r}")
