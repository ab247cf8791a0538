"""
Stack trace rendering library (stack_trace_render).

This package turns a raw .NET / Mono exception stack trace into annotated
HTML for an operations dashboard:
- frame grammar (which lines are call sites, and their parts)
- exception chain splitting (one heading per exception, innermost first)
- symbol-backed resolution (async/iterator state machines, overloads)
- markup rendering

Public API is re-exported from:
- `stack_trace_render.render` for trace rendering
- `stack_trace_render.failed_state` for the failed-job panel
- `stack_trace_render.type_cache` / `manifest` for symbol loading
"""

from .config import (  # noqa: F401
    RenderConfig,
    TraceMarkers,
    load_config,
)
from .errors import (  # noqa: F401
    ConfigError,
    MalformedExceptionMessageError,
    ManifestError,
    StackTraceRenderError,
)
from .failed_state import (  # noqa: F401
    FailedJobState,
    render_failed_state,
    render_trace_page,
)
from .frames import (  # noqa: F401
    StackFrame,
    decode_original_name,
    parse_frame_line,
    split_exception_messages,
)
from .manifest import (  # noqa: F401
    ManifestDirectoryLoader,
    load_manifest,
)
from .render import (  # noqa: F401
    StackTraceRenderer,
    render_stack_trace,
)
from .type_cache import (  # noqa: F401
    SymbolCache,
    get_default_cache,
)

__all__ = [
    "ConfigError",
    "FailedJobState",
    "MalformedExceptionMessageError",
    "ManifestDirectoryLoader",
    "ManifestError",
    "RenderConfig",
    "StackFrame",
    "StackTraceRenderError",
    "StackTraceRenderer",
    "SymbolCache",
    "TraceMarkers",
    "decode_original_name",
    "get_default_cache",
    "load_config",
    "load_manifest",
    "parse_frame_line",
    "render_failed_state",
    "render_stack_trace",
    "render_trace_page",
    "split_exception_messages",
]
