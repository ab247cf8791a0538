"""HTML rendering for managed-runtime stack traces."""

from __future__ import annotations

import html
import logging
from typing import List, Optional

from .chain import parse_exception_header, split_header
from .config import TraceMarkers
from .frames import StackFrame, iter_lines, parse_frame_line
from .resolver import FrameResolver, ResolvedFrame
from .type_cache import SymbolCache, get_default_cache

logger = logging.getLogger(__name__)

_PRE_OPEN = '<pre class="stack-trace">\n'
_PRE_OPEN_CHAINED = '<pre class="stack-trace" style="font-weight:normal !important">\n'
_PRE_CLOSE = "</pre>\n"
_EXCEPTION_SEPARATOR = '<hr style="border-top:1px dashed #999; margin:10px 0"/>\n'
_BADGE_STYLE = "color:#00f"


def _esc(text: Optional[str]) -> str:
    return html.escape(text or "")


class StackTraceRenderer:
    """Render raw stack trace text as annotated HTML.

    Output is a single `<pre class="stack-trace">` block, or, when the chained
    exception header could be split, one header + `<pre>` block per exception,
    innermost exception first.
    """

    def __init__(
        self,
        cache: Optional[SymbolCache] = None,
        markers: Optional[TraceMarkers] = None,
        *,
        separate_stack_traces: bool = True,
    ):
        self.cache = cache if cache is not None else get_default_cache()
        self.markers = markers or TraceMarkers()
        self.separate_stack_traces = separate_stack_traces
        self.grammar = self.markers.grammar()
        self.resolver = FrameResolver(self.cache)

    def render(self, stack_trace: Optional[str]) -> str:
        if not stack_trace:
            return ""

        lines = iter_lines(stack_trace)
        out: List[str] = [_PRE_OPEN]

        header_lines: List[str] = []
        processing_header = True
        segments: Optional[List[str]] = None
        segment_index = -1
        skip_rethrow = False

        for i, line in enumerate(lines):
            frame = parse_frame_line(line, self.grammar)
            if frame is None:
                # Exception message, boundary marker, or anything else that is not a frame.
                if processing_header:
                    # Message lines before the first frame (messages may span lines).
                    header_lines.append(line)
                    continue

                if self.markers.is_inner_boundary(line):
                    if segments is not None and segment_index + 1 < len(segments):
                        segment_index += 1
                        out.append(self.render_exception_message(segments[segment_index], segment_index))
                    else:
                        out.append(f'<i class="text-muted">{_esc(line)}</i>\n')
                    continue

                if self.markers.is_rethrow_boundary(line):
                    # Same exception re-thrown; the dispatch helper frame that follows is noise.
                    skip_rethrow = True
                    continue

                out.append(_esc(line) + "\n")
                continue

            if processing_header:
                processing_header = False
                header = "\n".join(header_lines).rstrip("\r\n")
                if header:
                    if self.separate_stack_traces:
                        segments = split_header(header, lines[i:], self.markers.inner_exception_boundary)
                    if segments is not None:
                        # Each exception gets its own heading + <pre>; drop the generic opening block.
                        out = []
                        segment_index = 0
                        out.append(self.render_exception_message(segments[0], 0))
                    else:
                        out.append(_esc(header) + "\n")

            if skip_rethrow:
                skip_rethrow = False
                if self.markers.is_rethrow_helper(frame.type_name, frame.method_name):
                    continue

            resolved = self.resolver.resolve(frame)
            if resolved is None:
                continue
            out.append(self.render_frame(resolved))

        if processing_header:
            # No frame at all: the whole text is opaque.
            header = "\n".join(header_lines).rstrip("\r\n")
            if header:
                out.append(_esc(header) + "\n")

        out.append(_PRE_CLOSE)
        return "".join(out)

    def render_exception_message(self, segment: str, index: int) -> str:
        """Heading for one exception of a split chain ("Type: message")."""
        header = parse_exception_header(segment)

        parts: List[str] = []
        if index > 0:
            parts.append(_PRE_CLOSE)
        parts.append(_EXCEPTION_SEPARATOR)
        parts.append("<p>\n")
        parts.append(f'<span class="st-type">{_esc(header.type_name)}</span>: \n')
        parts.append(f'<span class="text-muted">{_esc(header.message)}</span>\n')
        parts.append("</p>\n")
        parts.append(_PRE_OPEN_CHAINED)
        return "".join(parts)

    def render_frame(self, resolved: ResolvedFrame) -> str:
        frame: StackFrame = resolved.frame

        parts: List[str] = [_esc(frame.prefix)]
        if resolved.badge:
            parts.append(f'<span style="{_BADGE_STYLE}">{resolved.badge}</span> ')

        parts.append(
            f'<span class="st-type">{_esc(frame.type_name)}</span>.'
            f'<span class="st-method">{_esc(frame.method_name)}</span>'
        )

        parts.append("(")
        parts.append(", ".join(
            '<span class="st-param">'
            f'<span class="st-param-type">{_esc(p.type_name)}</span>&nbsp;'
            f'<span class="st-param-name">{_esc(p.name)}</span>'
            "</span>"
            for p in frame.parameters
        ))
        parts.append(")")

        parts.append(self.render_file_and_line(frame.suffix))
        return "".join(parts)

    def render_file_and_line(self, suffix: str) -> str:
        """Frame tail: CLR " in file:line N" or Mono " [addr] in <file>:N"; anything else as plain text."""
        m = self.grammar.clr_suffix_re.match(suffix) or self.grammar.mono_suffix_re.match(suffix)
        if not m:
            return _esc(suffix) + "\n"

        groups = m.groupdict()
        parts: List[str] = []
        if groups.get("addr"):
            parts.append(f" [{_esc(groups['addr'])}]")
        if groups.get("in"):
            parts.append(f" {_esc(groups['in'])}")
        parts.append(
            f' <span class="st-file">{_esc(groups["file"])}</span>'
            f':<span class="st-line">{groups["line"]}</span>\n'
        )
        return "".join(parts)


def render_stack_trace(
    stack_trace: Optional[str],
    *,
    cache: Optional[SymbolCache] = None,
    markers: Optional[TraceMarkers] = None,
    separate_stack_traces: bool = True,
) -> str:
    """HTML: render a raw stack trace (empty input renders as "")."""
    renderer = StackTraceRenderer(cache, markers, separate_stack_traces=separate_stack_traces)
    return renderer.render(stack_trace)


__all__ = [
    "StackTraceRenderer",
    "render_stack_trace",
]
