#!/usr/bin/env python3
"""Module entrypoint for `stack_trace_render`.

Usage:
  - `python3 -m stack_trace_render trace.txt --page -o trace.html`
"""

from __future__ import annotations

from .cli import _cli


if __name__ == "__main__":
    raise SystemExit(_cli())
