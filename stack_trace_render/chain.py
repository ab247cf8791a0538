"""Exception chain splitting.

The first line(s) of a trace hold every exception header of the chain,
outermost first:

    Outer: message 1 ---> Inner: message 2 ---> Innermost: message 3

while the body carries one "--- End of inner exception stack trace ---" line
per inner exception. A message may itself contain " ---> ", so a split is
only trusted when the segment count is exactly boundaries + 1; otherwise the
header stays as it was.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from .errors import MalformedExceptionMessageError
from .frames import split_exception_messages


@dataclass(frozen=True)
class ExceptionHeader:
    type_name: str
    message: str


def parse_exception_header(segment: str) -> ExceptionHeader:
    """Split "Type: message" at the first ': '."""
    type_name, sep, message = (segment or "").partition(": ")
    if not segment or not sep:
        raise MalformedExceptionMessageError(segment)
    return ExceptionHeader(type_name=type_name, message=message)


def count_boundaries(lines: Iterable[str], marker: str) -> int:
    """Number of lines consisting of `marker` alone (surrounding whitespace ignored)."""
    marker = marker.strip()
    return sum(1 for line in lines if line.strip() == marker)


def split_header(header: str, body_lines: Iterable[str], inner_boundary: str) -> Optional[List[str]]:
    """Split a chained header and reorder it innermost-first.

    Returns None when the split can't be reconciled with the number of
    inner-exception boundaries found in `body_lines`.
    """
    if not header:
        return None

    segments = split_exception_messages(header)
    if len(segments) != count_boundaries(body_lines, inner_boundary) + 1:
        return None

    segments.reverse()
    return segments


__all__ = [
    "ExceptionHeader",
    "count_boundaries",
    "parse_exception_header",
    "split_header",
]
