"""
CLI wrapper for stack_trace_render.

We keep CLI glue in its own module so the library (`render.py`, `resolver.py`)
stays easy to reuse from dashboards.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

import argparse
import logging
import sys

from .config import load_config
from .errors import ConfigError, MalformedExceptionMessageError, ManifestError
from .failed_state import FailedJobState, render_failed_state, render_failed_state_trace, render_trace_page
from .manifest import MANIFEST_SUFFIXES, ManifestDirectoryLoader
from .symbols import ModuleIdentity
from .type_cache import SymbolCache

logger = logging.getLogger(__name__)


def _manifest_module_names(root: Path) -> List[str]:
    names = {p.stem for p in root.iterdir() if p.is_file() and p.suffix in MANIFEST_SUFFIXES}
    return sorted(names)


def _load_symbols(cache: SymbolCache, symbols_dir: Path, modules: Sequence[str]) -> None:
    loader = ManifestDirectoryLoader(symbols_dir)
    for name in modules or _manifest_module_names(loader.root):
        try:
            cache.load(loader(ModuleIdentity(name)), loader)
        except (OSError, ManifestError) as e:
            logger.warning(f"WARNING: skipping symbols for {name}: {e}")


def _cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Render a .NET/Mono exception stack trace as annotated HTML.",
        epilog="Examples:\n"
               "  %(prog)s trace.txt\n"
               "  %(prog)s trace.txt --symbols-dir ./symbols --module MyApp --page -o trace.html\n"
               "  some-tool | %(prog)s - --exception-type System.InvalidOperationException",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("trace", help="Path to a file holding the raw stack trace, or '-' for stdin.")
    parser.add_argument("--config", default=None, help="Config YAML (default: $STACK_TRACE_RENDER_CONFIG or the packaged markers.yaml).")
    parser.add_argument("--symbols-dir", default=None, help="Directory of <module>.yaml symbol manifests (overrides config symbols_dir).")
    parser.add_argument(
        "--module",
        action="append",
        default=[],
        help="Entry module to load from --symbols-dir (repeatable; default: every manifest in the directory).",
    )
    parser.add_argument("--culture", default=None, help="Culture the exception was thrown under, e.g. de-DE (selects marker tokens).")
    parser.add_argument("--exception-type", default="", help="Exception type heading (adds the failed-state panel).")
    parser.add_argument("--exception-message", default="", help="Exception message (adds the failed-state panel).")
    parser.add_argument("--page", action="store_true", help="Emit a complete standalone HTML page.")
    parser.add_argument("--no-separate", action="store_true", help="Don't split chained exception headers.")
    parser.add_argument("-o", "--output", default=None, help="Write HTML here instead of stdout.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")

    try:
        config = load_config(Path(args.config) if args.config else None)
    except ConfigError as e:
        logger.error(f"ERROR: {e}")
        return 2
    if args.no_separate:
        config.separate_stack_traces = False

    if args.trace == "-":
        text = sys.stdin.read()
    else:
        trace_path = Path(args.trace).expanduser()
        if not trace_path.is_file():
            logger.error(f"ERROR: file not found: {trace_path}")
            return 2
        text = trace_path.read_text(encoding="utf-8", errors="replace")

    cache = SymbolCache()
    symbols_dir = Path(args.symbols_dir).expanduser() if args.symbols_dir else config.symbols_dir
    if symbols_dir is not None:
        if not symbols_dir.is_dir():
            logger.error(f"ERROR: symbols directory not found: {symbols_dir}")
            return 2
        _load_symbols(cache, symbols_dir, args.module)
        logger.debug(f"Symbol cache: {len(cache)} types from {len(cache.modules())} modules")

    state = FailedJobState(
        exception_type=args.exception_type,
        exception_message=args.exception_message,
        exception_details=text,
        culture=args.culture,
        ui_culture=args.culture,
    )

    try:
        if args.page:
            out = render_trace_page(state, cache=cache, config=config)
        elif args.exception_type or args.exception_message:
            out = render_failed_state(state, cache=cache, config=config)
        else:
            out = render_failed_state_trace(state, cache=cache, config=config)
    except MalformedExceptionMessageError as e:
        logger.error(f"ERROR: {e}")
        return 1

    if not out.strip():
        logger.info("(empty stack trace)")
        return 0

    if not out.endswith("\n"):
        out += "\n"
    if args.output:
        Path(args.output).expanduser().write_text(out, encoding="utf-8")
        logger.info(f"Wrote {args.output}")
    else:
        sys.stdout.write(out)
    return 0
