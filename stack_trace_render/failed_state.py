"""Failed-job panel: exception heading, message and rendered stack trace.

The host (dashboard page, job storage) is responsible for fetching the job's
failure data; this module only consumes the already-extracted strings plus,
optionally, the symbol module of the job's type so its frames resolve.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .config import RenderConfig
from .render import StackTraceRenderer
from .symbols import ModuleRecord
from .type_cache import ModuleLoader, SymbolCache, get_default_cache

logger = logging.getLogger(__name__)


@dataclass
class FailedJobState:
    exception_type: str = ""
    exception_message: str = ""
    exception_details: str = ""
    culture: Optional[str] = None
    ui_culture: Optional[str] = None
    job_module: Optional[ModuleRecord] = None

    @classmethod
    def from_state_data(
        cls,
        state_data: Mapping[str, str],
        *,
        culture: Optional[str] = None,
        ui_culture: Optional[str] = None,
        job_module: Optional[ModuleRecord] = None,
    ) -> "FailedJobState":
        """From a job's "Failed" state data (ExceptionType / ExceptionMessage / ExceptionDetails)."""
        return cls(
            exception_type=str(state_data.get("ExceptionType") or ""),
            exception_message=str(state_data.get("ExceptionMessage") or ""),
            exception_details=str(state_data.get("ExceptionDetails") or ""),
            culture=culture,
            ui_culture=ui_culture,
            job_module=job_module,
        )


@functools.lru_cache(maxsize=1)
def _template_env() -> Environment:
    template_dir = Path(__file__).resolve().parent
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "j2"]),
    )


def render_failed_state_trace(
    state: FailedJobState,
    *,
    cache: Optional[SymbolCache] = None,
    loader: Optional[ModuleLoader] = None,
    config: Optional[RenderConfig] = None,
) -> str:
    """Render only the stack trace part of a failed state."""
    config = config or RenderConfig()
    cache = cache if cache is not None else get_default_cache()

    if state.job_module is not None:
        # Make the job's own types (and what they reference) resolvable.
        try:
            cache.load(state.job_module, loader)
        except Exception as e:
            logger.warning("Could not load symbols for %s: %s", state.job_module.identity, e)

    # Boundary texts are localized with the UI culture the job failed under.
    markers = config.markers_for(state.ui_culture or state.culture)
    renderer = StackTraceRenderer(cache, markers, separate_stack_traces=config.separate_stack_traces)
    return renderer.render(state.exception_details)


def render_failed_state(
    state: FailedJobState,
    *,
    cache: Optional[SymbolCache] = None,
    loader: Optional[ModuleLoader] = None,
    config: Optional[RenderConfig] = None,
) -> str:
    """HTML fragment for a failed job: exception type, message and stack trace."""
    trace_html = render_failed_state_trace(state, cache=cache, loader=loader, config=config)
    template = _template_env().get_template("failed_state.j2")
    return template.render(
        exception_type=state.exception_type,
        exception_message=state.exception_message,
        stack_trace_html=Markup(trace_html),
    )


def render_trace_page(
    state: FailedJobState,
    *,
    cache: Optional[SymbolCache] = None,
    loader: Optional[ModuleLoader] = None,
    config: Optional[RenderConfig] = None,
    page_title: Optional[str] = None,
) -> str:
    """Standalone HTML page around `render_failed_state` (CLI `--page`)."""
    trace_html = render_failed_state_trace(state, cache=cache, loader=loader, config=config)
    template = _template_env().get_template("trace_page.j2")
    return template.render(
        page_title=page_title or state.exception_type or "Stack trace",
        generated_time=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
        exception_type=state.exception_type,
        exception_message=state.exception_message,
        stack_trace_html=Markup(trace_html),
    )


__all__ = [
    "FailedJobState",
    "render_failed_state",
    "render_failed_state_trace",
    "render_trace_page",
]
