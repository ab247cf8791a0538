"""
Frame resolver: turn parsed frames into canonical, symbol-backed frames.

Per frame whose type is in the symbol cache:
  - awaiter plumbing (types implementing INotifyCompletion) is dropped;
  - compiler-generated state machines (`Outer.<RunAsync>d__3.MoveNext()`) are
    collapsed back to the method they implement and tagged await/yield;
  - otherwise the overload is identified by parameter types, accepting either
    the simple or the fully-qualified spelling of each type.

Anything that can't be resolved unambiguously is left as parsed. Resolution
never fails a render.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .frames import Parameter, StackFrame, decode_original_name
from .symbols import (
    MethodDescriptor,
    StateMachineKind,
    TypeDescriptor,
    find_methods,
    format_method_name,
    format_type_name,
)
from .type_cache import SymbolCache

logger = logging.getLogger(__name__)


@dataclass
class ResolvedFrame:
    frame: StackFrame
    state_machine: StateMachineKind = StateMachineKind.NONE
    resolved_type: Optional[TypeDescriptor] = None
    method: Optional[MethodDescriptor] = None

    @property
    def badge(self) -> Optional[str]:
        return self.state_machine.badge


def _split_method_name(text: str) -> Tuple[str, int]:
    """("Map[T,U]") -> ("Map", 2); ("Run") -> ("Run", 0)."""
    name, bracket, args = text.partition("[")
    name = name.split("`", 1)[0]
    if not bracket:
        return name, 0
    return name, args.count(",") + 1


def _parameters_match(method: MethodDescriptor, parsed: List[Parameter]) -> bool:
    if len(method.parameters) != len(parsed):
        return False
    for declared, text in zip(method.parameters, parsed):
        # CLR prints the simple name ("String"), Mono the full name ("System.String").
        if declared.type.name != text.type_name and declared.type.full_name != text.type_name:
            return False
    return True


class FrameResolver:
    def __init__(self, cache: SymbolCache):
        self.cache = cache

    def lookup(self, type_name: str) -> Optional[TypeDescriptor]:
        return self.cache.lookup(type_name) if type_name else None

    def _state_machine_methods(self, type_: TypeDescriptor) -> Optional[List[MethodDescriptor]]:
        """Methods of the declaring type implemented by this nested state machine type.

        None when the type name doesn't encode a source method at all.
        """
        original = decode_original_name(type_.name)
        if not original:
            return None
        assert type_.declaring_type is not None
        full_name = type_.full_name
        return find_methods(
            type_.declaring_type,
            original,
            lambda m: m.state_machine_type_name is not None and m.state_machine_type_name == full_name,
            lookup=self.lookup,
        )

    def resolve(self, frame: StackFrame) -> Optional[ResolvedFrame]:
        """Resolve one frame in place. Returns None if the frame should be dropped."""
        type_ = self.lookup(frame.type_name)
        if type_ is None:
            return ResolvedFrame(frame)

        if type_.is_async_completion:
            logger.debug("Dropping awaiter frame %s.%s", frame.type_name, frame.method_name)
            return None

        state_machine = StateMachineKind.NONE
        methods: Optional[List[MethodDescriptor]] = None

        if type_.is_nested and type_.is_compiler_generated:
            methods = self._state_machine_methods(type_)
            if methods is not None and len(methods) == 1:
                assert type_.declaring_type is not None
                type_ = type_.declaring_type
                state_machine = methods[0].state_machine_kind

        if methods is None:
            parsed = frame.parameters
            name, generic_count = _split_method_name(frame.method_name)
            methods = find_methods(
                type_,
                name,
                lambda m: len(m.generic_arguments) == generic_count and _parameters_match(m, parsed),
                lookup=self.lookup,
            )

        frame.type_name = format_type_name(type_)

        if len(methods) != 1:
            if methods:
                logger.debug("Ambiguous method %s.%s (%d candidates)", frame.type_name, frame.method_name, len(methods))
            return ResolvedFrame(frame, resolved_type=type_)

        method = methods[0]
        frame.method_name = format_method_name(method)
        keep_names = len(frame.parameters) == len(method.parameters)
        frame.parameters = [
            Parameter(
                format_type_name(p.type, with_namespace=False),
                frame.parameters[i].name if keep_names else p.name,
            )
            for i, p in enumerate(method.parameters)
        ]
        return ResolvedFrame(frame, state_machine=state_machine, resolved_type=type_, method=method)


__all__ = [
    "FrameResolver",
    "ResolvedFrame",
]
