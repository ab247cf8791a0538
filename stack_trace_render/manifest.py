"""Symbol manifests: a file-based symbol source for the SymbolCache.

A build step exports one manifest per module (YAML; JSON is accepted since it
is valid YAML). Example:

    module: MyApp
    version: 1.0.0
    references: [System.Runtime]
    types:
      - name: MyApp.Worker
        methods:
          - name: RunAsync
            parameters: [{type: System.String, name: path}]
            state_machine: {kind: async, type: MyApp.Worker+<RunAsync>d__3}
      - name: MyApp.Worker+<RunAsync>d__3
        compiler_generated: true
        methods:
          - name: MoveNext

Nested types ('+' in the name) are linked to their declaring type when it is
declared in the same manifest.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from .errors import ManifestError
from .symbols import (
    MethodDescriptor,
    ModuleIdentity,
    ModuleRecord,
    ParameterDescriptor,
    StateMachineKind,
    TypeDescriptor,
    parse_type_name,
)

logger = logging.getLogger(__name__)

MANIFEST_SUFFIXES = (".yaml", ".yml", ".json")


def _as_list(value: Any, *, what: str, source: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ManifestError(source=source, message=f"'{what}' must be a list")
    return value


def _parse_identity(value: Any, *, source: str) -> ModuleIdentity:
    if isinstance(value, str) and value.strip():
        return ModuleIdentity(value.strip())
    if isinstance(value, Mapping) and str(value.get("name") or "").strip():
        return ModuleIdentity(
            str(value["name"]).strip(),
            version=value.get("version"),
            culture=value.get("culture"),
            public_key_token=value.get("public_key_token"),
        )
    raise ManifestError(source=source, message=f"invalid module reference: {value!r}")


def _parse_type_ref(text: Any, generic_parameters: Sequence[str], *, source: str) -> TypeDescriptor:
    try:
        return parse_type_name(str(text or ""), generic_parameters)
    except ValueError as e:
        raise ManifestError(source=source, message=str(e)) from e


def _parse_state_machine(value: Any, *, source: str) -> Tuple[StateMachineKind, Optional[str]]:
    if not value:
        return StateMachineKind.NONE, None
    if not isinstance(value, Mapping):
        raise ManifestError(source=source, message="'state_machine' must be a mapping")
    try:
        kind = StateMachineKind(str(value.get("kind") or "").lower())
    except ValueError as e:
        raise ManifestError(source=source, message=f"unknown state machine kind: {value.get('kind')!r}") from e
    type_name = value.get("type")
    return kind, (str(type_name) if type_name else None)


def _parse_method(data: Any, type_generics: Sequence[str], *, source: str) -> MethodDescriptor:
    if not isinstance(data, Mapping) or not data.get("name"):
        raise ManifestError(source=source, message=f"method entry needs a 'name': {data!r}")

    method_generics = [str(g) for g in _as_list(data.get("generic_parameters"), what="generic_parameters", source=source)]
    in_scope = list(type_generics) + method_generics

    params: List[ParameterDescriptor] = []
    for p in _as_list(data.get("parameters"), what="parameters", source=source):
        if not isinstance(p, Mapping) or not p.get("type"):
            raise ManifestError(source=source, message=f"parameter entry needs a 'type': {p!r}")
        params.append(ParameterDescriptor(_parse_type_ref(p["type"], in_scope, source=source), str(p.get("name") or "")))

    kind, sm_type = _parse_state_machine(data.get("state_machine"), source=source)
    return MethodDescriptor(
        name=str(data["name"]),
        parameters=tuple(params),
        generic_arguments=tuple(TypeDescriptor(name=g, is_generic_parameter=True) for g in method_generics),
        state_machine_kind=kind,
        state_machine_type_name=sm_type,
    )


def module_from_manifest(data: Any, *, source: str = "<manifest>") -> ModuleRecord:
    """Build a ModuleRecord from parsed manifest data."""
    if not isinstance(data, Mapping):
        raise ManifestError(source=source, message="manifest must be a mapping")

    module = data.get("module")
    if isinstance(module, str):
        module = {"name": module, "version": data.get("version")}
    identity = _parse_identity(module, source=source)
    references = [_parse_identity(r, source=source) for r in _as_list(data.get("references"), what="references", source=source)]

    by_name: Dict[str, TypeDescriptor] = {}
    types: List[TypeDescriptor] = []
    pending: List[tuple] = []
    for entry in _as_list(data.get("types"), what="types", source=source):
        if not isinstance(entry, Mapping) or not entry.get("name"):
            raise ManifestError(source=source, message=f"type entry needs a 'name': {entry!r}")

        full_name = str(entry["name"]).strip()
        generics = [str(g) for g in _as_list(entry.get("generic_parameters"), what="generic_parameters", source=source)]
        declaring_name, plus, simple = full_name.rpartition("+")
        if plus:
            namespace = ""
        else:
            namespace, _, simple = full_name.rpartition(".")

        type_ = TypeDescriptor(
            name=simple,
            namespace=namespace,
            generic_arguments=tuple(TypeDescriptor(name=g, is_generic_parameter=True) for g in generics),
            is_compiler_generated=bool(entry.get("compiler_generated", False)),
            interfaces=tuple(str(i) for i in _as_list(entry.get("interfaces"), what="interfaces", source=source)),
            base_type_name=str(entry["base"]) if entry.get("base") else None,
            module=identity,
        )
        if full_name in by_name:
            raise ManifestError(source=source, message=f"duplicate type: {full_name}")
        by_name[full_name] = type_
        types.append(type_)
        pending.append((type_, declaring_name if plus else None, entry, generics))

    for type_, declaring_name, entry, generics in pending:
        if declaring_name is not None:
            declaring = by_name.get(declaring_name)
            if declaring is None:
                raise ManifestError(source=source, message=f"declaring type {declaring_name} of {type_.name} is not in this manifest")
            type_.declaring_type = declaring
        type_.methods = [
            _parse_method(m, generics, source=source)
            for m in _as_list(entry.get("methods"), what="methods", source=source)
        ]

    return ModuleRecord(identity=identity, types=types, references=references)


def load_manifest(path: Path) -> ModuleRecord:
    """Read and parse one manifest file."""
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ManifestError(source=str(path), message=f"invalid YAML: {e}") from e
    return module_from_manifest(data, source=str(path))


class ManifestDirectoryLoader:
    """ModuleLoader reading `<root>/<module name>.yaml` (or .yml / .json)."""

    def __init__(self, root: Path):
        self.root = Path(root).expanduser()

    def find(self, identity: ModuleIdentity) -> Optional[Path]:
        for suffix in MANIFEST_SUFFIXES:
            p = self.root / f"{identity.name}{suffix}"
            if p.is_file():
                return p
        return None

    def __call__(self, identity: ModuleIdentity) -> ModuleRecord:
        path = self.find(identity)
        if path is None:
            raise FileNotFoundError(f"no symbol manifest for {identity.name} under {self.root}")
        logger.debug("Reading symbol manifest %s", path)
        return load_manifest(path)


__all__ = [
    "MANIFEST_SUFFIXES",
    "ManifestDirectoryLoader",
    "load_manifest",
    "module_from_manifest",
]
