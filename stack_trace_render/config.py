"""Configuration: locale marker tokens and render options.

Resolution order for the config file:
- explicit path (CLI `--config`)
- $STACK_TRACE_RENDER_CONFIG
- the packaged `markers.yaml`

Marker tokens are looked up per culture ("de-DE" -> "de" -> "default"), each
culture section overriding only the keys it sets on top of "default".
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .errors import ConfigError
from .frames import TraceGrammar

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "STACK_TRACE_RENDER_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "markers.yaml"
DEFAULT_CULTURE = "default"


@dataclass(frozen=True)
class TraceMarkers:
    """Locale-specific tokens the runtime writes into a trace.

    `at_word` / `file_line_template` left as None match any single word /
    any "<word> <file>:<word> <line>" suffix.
    """

    at_word: Optional[str] = None
    inner_exception_boundary: str = "--- End of inner exception stack trace ---"
    rethrow_boundaries: Tuple[str, ...] = (
        "--- End of stack trace from previous location where exception was thrown ---",
        "--- End of stack trace from previous location ---",
    )
    file_line_template: Optional[str] = None
    rethrow_helper_type: str = "System.Runtime.ExceptionServices.ExceptionDispatchInfo"
    rethrow_helper_method: str = "Throw"

    def grammar(self) -> TraceGrammar:
        return TraceGrammar.for_tokens(self.at_word, self.file_line_template)

    def is_inner_boundary(self, line: str) -> bool:
        return line.strip() == self.inner_exception_boundary.strip()

    def is_rethrow_boundary(self, line: str) -> bool:
        trimmed = line.strip()
        return any(trimmed == b.strip() for b in self.rethrow_boundaries)

    def is_rethrow_helper(self, type_name: str, method_name: str) -> bool:
        return type_name == self.rethrow_helper_type and method_name == self.rethrow_helper_method

    def merged(self, data: Mapping[str, Any], *, source: str) -> "TraceMarkers":
        """Copy with the keys present in `data` overridden."""
        changes: Dict[str, Any] = {}
        if "at" in data:
            changes["at_word"] = str(data["at"]) if data["at"] else None
        if "inner_exception_boundary" in data:
            changes["inner_exception_boundary"] = str(data["inner_exception_boundary"] or "")
        if "rethrow_boundary" in data:
            value = data["rethrow_boundary"]
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, list):
                raise ConfigError(source=source, message="'rethrow_boundary' must be a string or a list")
            changes["rethrow_boundaries"] = tuple(str(v) for v in value if v)
        if "file_line_template" in data:
            changes["file_line_template"] = str(data["file_line_template"]) if data["file_line_template"] else None
        helper = data.get("rethrow_helper")
        if isinstance(helper, Mapping):
            if helper.get("type"):
                changes["rethrow_helper_type"] = str(helper["type"])
            if helper.get("method"):
                changes["rethrow_helper_method"] = str(helper["method"])

        markers = dataclasses.replace(self, **changes)
        if not markers.inner_exception_boundary.strip():
            raise ConfigError(source=source, message="'inner_exception_boundary' must not be empty")
        try:
            markers.grammar()
        except ValueError as e:
            raise ConfigError(source=source, message=str(e)) from e
        return markers


@dataclass
class RenderConfig:
    separate_stack_traces: bool = True
    symbols_dir: Optional[Path] = None
    markers: Dict[str, TraceMarkers] = field(default_factory=lambda: {DEFAULT_CULTURE: TraceMarkers()})

    def markers_for(self, culture: Optional[str] = None) -> TraceMarkers:
        """Markers for a culture name, falling back to its language and then to the default."""
        by_lower = {k.lower(): v for k, v in self.markers.items()}
        name = (culture or "").strip().lower()
        candidates = [name, name.split("-", 1)[0]] if name else []
        for c in candidates:
            if c and c in by_lower:
                return by_lower[c]
        return by_lower.get(DEFAULT_CULTURE, TraceMarkers())


def config_from_mapping(data: Any, *, source: str = "<config>") -> RenderConfig:
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigError(source=source, message="config must be a mapping")

    sections = data.get("markers") or {}
    if not isinstance(sections, Mapping):
        raise ConfigError(source=source, message="'markers' must be a mapping of culture -> tokens")

    default_section = sections.get(DEFAULT_CULTURE) or {}
    if not isinstance(default_section, Mapping):
        raise ConfigError(source=source, message=f"markers.{DEFAULT_CULTURE} must be a mapping")
    default = TraceMarkers().merged(default_section, source=source)

    markers: Dict[str, TraceMarkers] = {DEFAULT_CULTURE: default}
    for culture, section in sections.items():
        if str(culture) == DEFAULT_CULTURE:
            continue
        if not isinstance(section, Mapping):
            raise ConfigError(source=source, message=f"markers.{culture} must be a mapping")
        markers[str(culture)] = default.merged(section, source=source)

    symbols_dir = data.get("symbols_dir")
    return RenderConfig(
        separate_stack_traces=bool(data.get("separate_stack_traces", True)),
        symbols_dir=Path(str(symbols_dir)).expanduser() if symbols_dir else None,
        markers=markers,
    )


def resolve_config_path(path: Optional[Path] = None) -> Path:
    if path is not None:
        return Path(path).expanduser()
    override = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(path: Optional[Path] = None) -> RenderConfig:
    """Load the render config (see module docstring for the lookup order)."""
    p = resolve_config_path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(source=str(p), message=f"cannot read config: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(source=str(p), message=f"invalid YAML: {e}") from e
    logger.debug("Loaded config from %s", p)
    return config_from_mapping(data, source=str(p))


__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "RenderConfig",
    "TraceMarkers",
    "config_from_mapping",
    "load_config",
    "resolve_config_path",
]
