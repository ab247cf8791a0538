"""Regex catalog for `stack_trace_render`.

Goal: keep the stack-trace grammar *discoverable* and *stable*.

Conventions:
- FRAME_*  : call-site lines ("   at Type.Method(Params) in file:line 1")
- CHAIN_*  : exception-chain headers ("Type: msg ---> Inner: msg")
- SPECIAL_*: compiler-generated names ("<RunAsync>d__12")
- SUFFIX_* : file/line tail of a frame (CLR and Mono dialects)

This module is intentionally "boring":
- no side effects
- no imports from other `stack_trace_render` modules (avoid cycles)
- every group in the building blocks is non-capturing, so the blocks can be
  embedded anywhere (including `re.split` patterns)
"""

from __future__ import annotations

import functools
import re
from typing import Optional, Pattern

#
# =============================================================================
# Building blocks
# =============================================================================
#

# One name segment. Excludes whitespace, '.', '+', backtick and '['.
FRAME_LITERAL = r"[^\s.+`\[]+"

# Segment with optional generic arity ("List`1") and bracketed argument list
# ("Run[T]", "Map[TKey,TValue]").
FRAME_MEMBER_NAME = rf"{FRAME_LITERAL}(?:`\d+)?(?:\[{FRAME_LITERAL}(?:,\s*{FRAME_LITERAL})*\])?"

FRAME_FULL_TYPE_NAME = rf"(?:{FRAME_LITERAL}\.)*{FRAME_MEMBER_NAME}(?:\.{FRAME_MEMBER_NAME})*"

FRAME_METHOD_PARAMETER = rf"{FRAME_FULL_TYPE_NAME}\s+{FRAME_LITERAL}"

#
# =============================================================================
# FRAME_* (call-site lines)
# =============================================================================
#


def _frame_line_pattern(lead_in: str) -> str:
    return (
        rf"^(?P<prefix>\s*{lead_in}\s+)"
        rf"(?P<type>{FRAME_FULL_TYPE_NAME})"
        r"\."
        rf"(?P<method>{FRAME_MEMBER_NAME})"
        r"\("
        rf"(?P<params>{FRAME_METHOD_PARAMETER}(?:,\s*{FRAME_METHOD_PARAMETER})*)?"
        r"\)"
        r"(?P<suffix>\s+.+)?"
        r"\s*$"
    )


# Any single word as the lead-in ("at", "bei", "в", ...), so the default grammar is locale-agnostic.
FRAME_LINE_RE: Pattern[str] = re.compile(_frame_line_pattern(r"\w+"))

# One item of the "params" group above. The trailing separator keeps a greedy
# name literal from swallowing the comma of the next parameter.
FRAME_PARAM_ITEM_RE: Pattern[str] = re.compile(
    rf"(?P<paramtype>{FRAME_FULL_TYPE_NAME})\s+(?P<paramname>{FRAME_LITERAL})(?:,\s*|\Z)"
)

#
# =============================================================================
# SPECIAL_* (compiler-generated names)
# =============================================================================
#

# "<OriginalName>d__71", "<Main>b__0_0", "<GetItems>d__3`1"
SPECIAL_NAME_RE: Pattern[str] = re.compile(rf"<(?P<name>{FRAME_LITERAL})>{FRAME_MEMBER_NAME}")

#
# =============================================================================
# CHAIN_* (exception-chain headers)
# =============================================================================
#

# " ---> " is emitted by the runtime regardless of culture. Only split where the next
# segment starts like "Some.Type: ", so arrows inside a message body survive.
CHAIN_BOUNDARY_RE: Pattern[str] = re.compile(rf"\s--->\s(?={FRAME_FULL_TYPE_NAME}:\s)")

#
# =============================================================================
# SUFFIX_* (file/line tail)
# =============================================================================
#

# .NET style: " in /src/Worker.cs:line 42"
SUFFIX_CLR_RE: Pattern[str] = re.compile(r"^\s+(?P<in>\w+)\s+(?P<file>.+):\w+\s+(?P<line>\d+)\s*$")

# Mono style: " [0x00012] in <8f2c4843b51944a1a13a14c0266>:0"
SUFFIX_MONO_RE: Pattern[str] = re.compile(
    r"^\s+(?:\[(?P<addr>.+)\]\s+)?(?P<in>\w+)\s+<(?P<file>.+)>:(?P<line>\d+)\s*$"
)


def _loose(text: str) -> str:
    """Escape literal template text, letting any run of spaces match any whitespace."""
    return r"\s+".join(re.escape(part) for part in text.split(" "))


@functools.lru_cache(maxsize=None)
def build_frame_line_re(at_word: Optional[str] = None) -> Pattern[str]:
    """Frame-line regex for a localized lead-in word (None: any word)."""
    if not at_word:
        return FRAME_LINE_RE
    return re.compile(_frame_line_pattern(_loose(at_word.strip())))


@functools.lru_cache(maxsize=None)
def build_clr_suffix_re(template: Optional[str] = None) -> Pattern[str]:
    """CLR suffix regex for a localized template such as "in {file}:line {line}".

    The text before `{file}` is captured as the `in` group; None keeps the
    locale-agnostic default.
    """
    if not template:
        return SUFFIX_CLR_RE

    head, sep_file, rest = template.partition("{file}")
    middle, sep_line, tail = rest.partition("{line}")
    if not sep_file or not sep_line:
        raise ValueError(f"file/line template must contain {{file}} and {{line}}: {template!r}")

    pattern = r"^\s+"
    lead = head.strip()
    if lead:
        pattern += rf"(?P<in>{_loose(lead)})\s+"
    pattern += rf"(?P<file>.+){_loose(middle)}(?P<line>\d+){_loose(tail.rstrip())}\s*$"
    return re.compile(pattern)
