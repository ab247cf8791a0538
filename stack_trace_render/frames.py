"""Stack frame grammar: classify trace lines and pull them apart.

A line either parses into a `StackFrame` or it does not; lines that do not
(exception messages, separator banners, blank lines) are rendered as opaque
text by the caller. That is a classification, never an error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern

from .regexes import (
    CHAIN_BOUNDARY_RE,
    FRAME_LINE_RE,
    FRAME_PARAM_ITEM_RE,
    SPECIAL_NAME_RE,
    SUFFIX_CLR_RE,
    SUFFIX_MONO_RE,
    build_clr_suffix_re,
    build_frame_line_re,
)


@dataclass(frozen=True)
class TraceGrammar:
    """Compiled, locale-specific patterns used to read one trace."""

    frame_line_re: Pattern[str] = FRAME_LINE_RE
    clr_suffix_re: Pattern[str] = SUFFIX_CLR_RE
    mono_suffix_re: Pattern[str] = SUFFIX_MONO_RE

    @classmethod
    def for_tokens(cls, at_word: Optional[str] = None, file_line_template: Optional[str] = None) -> "TraceGrammar":
        return cls(
            frame_line_re=build_frame_line_re(at_word),
            clr_suffix_re=build_clr_suffix_re(file_line_template),
        )


DEFAULT_GRAMMAR = TraceGrammar()


@dataclass
class Parameter:
    """Method parameter as written in the trace ("String path")."""

    type_name: str
    name: str


@dataclass
class StackFrame:
    """
    Single call-site line of a stack trace.

    Fields:
        prefix:      Leading whitespace plus lead-in word, verbatim (e.g. '   at ').
        type_name:   Dotted type name as it appeared in text.
        method_name: Method name as it appeared in text (may carry an arity marker).
        parameters:  Parsed parameters; empty when the call had none.
        suffix:      Trailing text (e.g. ' in /src/x.cs:line 12'); '' when absent.

    The resolver rewrites type/method/parameter names in place once it has
    identified the method unambiguously.
    """

    prefix: str
    type_name: str
    method_name: str
    parameters: List[Parameter] = field(default_factory=list)
    suffix: str = ""


def _parse_parameters(text: str) -> Optional[List[Parameter]]:
    params: List[Parameter] = []
    pos = 0
    while pos < len(text):
        m = FRAME_PARAM_ITEM_RE.match(text, pos)
        if not m or m.end() == pos:
            return None
        params.append(Parameter(m.group("paramtype"), m.group("paramname")))
        pos = m.end()
    return params


def parse_frame_line(line: str, grammar: Optional[TraceGrammar] = None) -> Optional[StackFrame]:
    """
    Try to parse a single line as a stack frame.

    Returns:
        StackFrame if the whole line matches the frame grammar; otherwise None.
    """
    if not line:
        return None

    m = (grammar or DEFAULT_GRAMMAR).frame_line_re.match(line)
    if not m:
        return None

    parameters: List[Parameter] = []
    if m.group("params") is not None:
        parsed = _parse_parameters(m.group("params"))
        if parsed is None:
            # The line matched as a whole but the list could not be split back
            # into items; keep it opaque rather than guess.
            return None
        parameters = parsed

    return StackFrame(
        prefix=m.group("prefix"),
        type_name=m.group("type"),
        method_name=m.group("method"),
        parameters=parameters,
        suffix=m.group("suffix") or "",
    )


def decode_original_name(name: str) -> Optional[str]:
    """Return the source name encoded in a compiler-generated name.

    `<ProcessAsync>d__12` -> `ProcessAsync`. Anything that is not exactly of
    that shape (including `<>c` display classes) yields None.
    """
    if not name:
        raise ValueError("name must be a non-empty string")

    m = SPECIAL_NAME_RE.fullmatch(name)
    return m.group("name") if m else None


def split_exception_messages(text: str) -> List[str]:
    """Split a chained header ("A: x ---> B: y") into its "Type: message" segments, outermost first."""
    if not text:
        raise ValueError("text must be a non-empty string")

    return CHAIN_BOUNDARY_RE.split(text)


def iter_lines(text: str) -> List[str]:
    """Split text on CR, LF or CRLF; a trailing line break does not add an empty line."""
    if not text:
        return []
    lines = re.split(r"\r\n|\r|\n", text)
    if lines and lines[-1] == "":
        lines.pop()
    return lines


__all__ = [
    "DEFAULT_GRAMMAR",
    "Parameter",
    "StackFrame",
    "TraceGrammar",
    "decode_original_name",
    "iter_lines",
    "parse_frame_line",
    "split_exception_messages",
]
