"""Error types for stack_trace_render.

Classification misses (a line that is not a frame, a type that is not in the
cache, an ambiguous overload) are not errors and never show up here.
"""

from __future__ import annotations


class StackTraceRenderError(Exception):
    pass


class MalformedExceptionMessageError(StackTraceRenderError, ValueError):
    """An exception header segment lacks the "Type: message" delimiter."""

    def __init__(self, segment: str):
        super().__init__(f"exception header segment has no 'Type: message' delimiter: {segment!r}")
        self.segment = str(segment or "")


class ManifestError(StackTraceRenderError):
    def __init__(self, *, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = str(source or "")


class ConfigError(StackTraceRenderError):
    def __init__(self, *, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = str(source or "")
