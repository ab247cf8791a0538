"""
Symbol descriptors and canonical name formatting.

These are the read-only facts the resolver needs about a type or method:
nesting, generic shape, compiler-generated markers and state-machine
attributes. How they are produced (debug symbols, bytecode inspection, an
exported manifest) is up to the symbol source; see `manifest.py` for the one
this package ships.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

# Interfaces implemented by awaiters (TaskAwaiter, ConfiguredTaskAwaitable.ConfiguredTaskAwaiter, ...).
ASYNC_COMPLETION_INTERFACES = (
    "System.Runtime.CompilerServices.INotifyCompletion",
    "System.Runtime.CompilerServices.ICriticalNotifyCompletion",
)

_ARITY_RE = re.compile(r"`(\d+)")
_TYPE_SUFFIX_RE = re.compile(r"(?:\[,*\]|[*&])*$")


class StateMachineKind(str, Enum):
    """Kind of compiler-synthesized state machine a method is implemented by."""

    NONE = "none"
    ASYNC = "async"
    ITERATOR = "iterator"

    @property
    def badge(self) -> Optional[str]:
        """Keyword shown in front of a collapsed state-machine frame."""
        if self is StateMachineKind.ASYNC:
            return "await"
        if self is StateMachineKind.ITERATOR:
            return "yield"
        return None


@dataclass(frozen=True)
class ModuleIdentity:
    """Module (assembly) identity. Equal by simple name only; version/culture/key are informational."""

    name: str
    version: Optional[str] = field(default=None, compare=False)
    culture: Optional[str] = field(default=None, compare=False)
    public_key_token: Optional[str] = field(default=None, compare=False)

    def __str__(self) -> str:
        return self.name


@dataclass(eq=False)
class TypeDescriptor:
    """
    Type as known to the symbol cache.

    `name` is the simple reflection name ("Inner`1", "String[]", "<RunAsync>d__3");
    `namespace` is empty for nested types and generic parameters.
    """

    name: str
    namespace: str = ""
    declaring_type: Optional["TypeDescriptor"] = field(default=None, repr=False)
    generic_arguments: Tuple["TypeDescriptor", ...] = ()
    is_generic_parameter: bool = False
    is_compiler_generated: bool = False
    interfaces: Tuple[str, ...] = ()
    base_type_name: Optional[str] = None
    methods: List["MethodDescriptor"] = field(default_factory=list, repr=False)
    module: Optional[ModuleIdentity] = None

    @property
    def is_nested(self) -> bool:
        return self.declaring_type is not None

    @property
    def full_name(self) -> Optional[str]:
        """Reflection spelling ("MyApp.Outer+Inner`1"); None for generic parameters."""
        if self.is_generic_parameter:
            return None
        if self.declaring_type is not None:
            return f"{self.declaring_type.full_name}+{self.name}"
        return f"{self.namespace}.{self.name}" if self.namespace else self.name

    @property
    def dotted_name(self) -> Optional[str]:
        """Full name as stack traces spell it (nested types joined with '.')."""
        full = self.full_name
        return full.replace("+", ".") if full is not None else None

    @property
    def generic_arity(self) -> int:
        m = _ARITY_RE.search(self.name)
        if m:
            return int(m.group(1))
        return len(self.generic_arguments)

    @property
    def is_generic_type(self) -> bool:
        return self.generic_arity > 0

    @property
    def assembly_identity(self) -> Optional[ModuleIdentity]:
        return self.module

    @property
    def is_async_completion(self) -> bool:
        return any(i in ASYNC_COMPLETION_INTERFACES for i in self.interfaces)


@dataclass
class ParameterDescriptor:
    type: TypeDescriptor
    name: str


@dataclass
class MethodDescriptor:
    name: str
    parameters: Tuple[ParameterDescriptor, ...] = ()
    generic_arguments: Tuple[TypeDescriptor, ...] = ()
    state_machine_kind: StateMachineKind = StateMachineKind.NONE
    # Full name of the compiler-generated type implementing the state machine, if any.
    state_machine_type_name: Optional[str] = None

    @property
    def is_generic(self) -> bool:
        return bool(self.generic_arguments)

    @property
    def parameter_type_names(self) -> List[str]:
        return [p.type.full_name or p.type.name for p in self.parameters]


@dataclass
class ModuleRecord:
    """One loadable module: its declared types and the modules it references."""

    identity: ModuleIdentity
    types: List[TypeDescriptor] = field(default_factory=list)
    references: List[ModuleIdentity] = field(default_factory=list)


# =============================================================================
# Formatting
# =============================================================================


def _split_type_suffix(name: str) -> Tuple[str, str]:
    """("List`1[]") -> ("List`1", "[]")"""
    m = _TYPE_SUFFIX_RE.search(name)
    idx = m.start() if m else len(name)
    return name[:idx], name[idx:]


def _append_generic_arguments(name: str, args: Sequence[TypeDescriptor], with_namespace: bool) -> str:
    base, suffix = _split_type_suffix(name)
    idx = base.find("`")
    if idx > 0:
        base = base[:idx]
    if args:
        base += "<" + ", ".join(format_type_name(a, with_namespace) for a in args) + ">"
    return base + suffix


def format_type_name(type_: TypeDescriptor, with_namespace: bool = True) -> str:
    """Canonical display name: `MyApp.Outer.Inner<System.String>`.

    Nested types are joined with '.', generic arity markers are replaced by the
    argument list and generic parameters render as their bare name. With
    `with_namespace=False` (used for parameter types) namespaces are dropped,
    including those of generic arguments.
    """
    if type_.is_generic_parameter:
        return type_.name

    prefix = ""
    if type_.declaring_type is not None:
        prefix = format_type_name(type_.declaring_type, with_namespace) + "."
    elif with_namespace and type_.namespace:
        prefix = type_.namespace + "."

    name = type_.name
    if type_.is_generic_type:
        name = _append_generic_arguments(name, type_.generic_arguments, with_namespace)
    return prefix + name


def format_method_name(method: MethodDescriptor) -> str:
    """`Run`, or `Map<TKey, TValue>` for generic methods."""
    if method.is_generic:
        return _append_generic_arguments(method.name, method.generic_arguments, False)
    return method.name


def find_methods(
    type_: TypeDescriptor,
    name: str,
    predicate: Callable[[MethodDescriptor], bool],
    lookup: Optional[Callable[[str], Optional[TypeDescriptor]]] = None,
) -> List[MethodDescriptor]:
    """Methods named `name` accepted by `predicate`, declared on the type or (with `lookup`) its bases.

    A base method is skipped when a more derived type already declared one
    with the same parameter types (override or hide). Matches declared on the
    same type are all kept.
    """
    if type_ is None:
        raise ValueError("type_ is required")
    if not name:
        raise ValueError("name must be a non-empty string")

    found: List[MethodDescriptor] = []
    signatures: Set[Tuple[str, ...]] = set()
    seen: Set[int] = set()

    current: Optional[TypeDescriptor] = type_
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        declared: Set[Tuple[str, ...]] = set()
        for method in current.methods:
            if method.name != name or not predicate(method):
                continue
            sig = tuple(method.parameter_type_names)
            if sig in signatures:
                continue
            declared.add(sig)
            found.append(method)
        signatures |= declared
        if lookup is None or not current.base_type_name:
            break
        current = lookup(current.base_type_name)
    return found


# =============================================================================
# Parsing reflection type names
# =============================================================================


class _TypeNameReader:
    """Recursive-descent reader for reflection type names.

    Handles namespaces, '+' nesting, arity markers, generic argument lists
    (`[A,B]` and assembly-qualified `[[A, asm],[B, asm]]`) and array/pointer/
    by-ref suffixes. A trailing top-level ", Assembly" qualifier is ignored.
    """

    _NAME_STOP = "[],*&"

    def __init__(self, text: str, generic_parameters: Iterable[str]):
        self.text = text
        self.pos = 0
        self.generic_parameters = set(generic_parameters)

    def error(self, what: str) -> ValueError:
        return ValueError(f"invalid type name {self.text!r} at {self.pos}: {what}")

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_ws(self) -> None:
        while self.peek().isspace():
            self.pos += 1

    def read_type(self) -> TypeDescriptor:
        self.skip_ws()
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in self._NAME_STOP:
            self.pos += 1
        qualified = self.text[start:self.pos].strip()
        if not qualified:
            raise self.error("expected a type name")

        args: List[TypeDescriptor] = []
        if self.peek() == "[" and self.text[self.pos + 1:self.pos + 2] not in ("]", ","):
            args = self.read_generic_arguments()

        suffix_start = self.pos
        while True:
            if self.text.startswith("[", self.pos):
                end = self.pos + 1
                while self.text[end:end + 1] == ",":
                    end += 1
                if self.text[end:end + 1] != "]":
                    raise self.error("unterminated array suffix")
                self.pos = end + 1
            elif self.peek() in ("*", "&"):
                self.pos += 1
            else:
                break
        suffix = self.text[suffix_start:self.pos]

        return self.build(qualified, args, suffix)

    def read_generic_arguments(self) -> List[TypeDescriptor]:
        args: List[TypeDescriptor] = []
        self.pos += 1  # '['
        while True:
            self.skip_ws()
            if self.peek() == "[":
                self.pos += 1
                args.append(self.read_type())
                self.skip_to_closing_bracket()
            else:
                args.append(self.read_type())
            self.skip_ws()
            ch = self.peek()
            self.pos += 1
            if ch == "]":
                return args
            if ch != ",":
                raise self.error("expected ',' or ']' in generic argument list")

    def skip_to_closing_bracket(self) -> None:
        """Skip an assembly qualifier (", mscorlib, Version=...") up to the matching ']'."""
        depth = 0
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            self.pos += 1
            if ch == "[":
                depth += 1
            elif ch == "]":
                if depth == 0:
                    return
                depth -= 1
        raise self.error("unterminated generic argument")

    def build(self, qualified: str, args: List[TypeDescriptor], suffix: str) -> TypeDescriptor:
        pieces = qualified.split("+")
        if len(pieces) == 1 and not suffix and not args and qualified in self.generic_parameters:
            return TypeDescriptor(name=qualified, is_generic_parameter=True)

        namespace, _, outer = pieces[0].rpartition(".")
        names = [outer] + pieces[1:]

        remaining = list(args)
        current: Optional[TypeDescriptor] = None
        for i, name in enumerate(names):
            last = i == len(names) - 1
            m = _ARITY_RE.search(name)
            arity = int(m.group(1)) if m else 0
            if last:
                own, remaining = remaining, []
            else:
                own, remaining = remaining[:arity], remaining[arity:]
            current = TypeDescriptor(
                name=name + (suffix if last else ""),
                namespace=namespace if current is None else "",
                declaring_type=current,
                generic_arguments=tuple(own),
            )
        assert current is not None
        return current


def parse_type_name(text: str, generic_parameters: Iterable[str] = ()) -> TypeDescriptor:
    """Parse a reflection type name into a standalone descriptor.

    `parse_type_name("MyApp.Outer+Inner`1[System.String]")` gives a nested
    generic type whose `format_type_name` is `MyApp.Outer.Inner<System.String>`.
    Bare names listed in `generic_parameters` become generic parameters.
    """
    if not text or not text.strip():
        raise ValueError("type name must be a non-empty string")

    reader = _TypeNameReader(text, generic_parameters)
    result = reader.read_type()
    reader.skip_ws()
    if reader.pos < len(text) and reader.peek() != ",":
        raise reader.error("unexpected trailing text")
    return result


__all__ = [
    "ASYNC_COMPLETION_INTERFACES",
    "MethodDescriptor",
    "ModuleIdentity",
    "ModuleRecord",
    "ParameterDescriptor",
    "StateMachineKind",
    "TypeDescriptor",
    "find_methods",
    "format_method_name",
    "format_type_name",
    "parse_type_name",
]
