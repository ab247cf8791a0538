"""
Symbol cache: fully-qualified type name -> TypeDescriptor, across modules.

Loading a module registers its declared types and then walks the modules it
references, transitively. The walk is bounded by the visited set (keyed by
simple module name) and a module that fails to load is skipped without
aborting its siblings.

Thread-safe: inserts are first-writer-wins under one lock, lookups are plain
dict reads and never block.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, List, Optional

from .symbols import ModuleIdentity, ModuleRecord, TypeDescriptor

logger = logging.getLogger(__name__)

# Resolves a referenced module identity to its record; may raise for anything it can't load.
ModuleLoader = Callable[[ModuleIdentity], ModuleRecord]


@dataclass
class SymbolCacheStats:
    """Basic counters, updated without locking (approximate under concurrency)."""
    hit: int = 0
    miss: int = 0
    modules_loaded: int = 0
    load_failures: int = 0


class SymbolCache:
    def __init__(self) -> None:
        self._mu = Lock()
        self._modules: Dict[ModuleIdentity, ModuleRecord] = {}
        self._types: Dict[str, TypeDescriptor] = {}
        self.stats = SymbolCacheStats()

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._types

    def modules(self) -> List[ModuleIdentity]:
        return list(self._modules)

    def _try_add_module(self, module: ModuleRecord) -> bool:
        with self._mu:
            if module.identity in self._modules:
                return False
            self._modules[module.identity] = module
            return True

    def _add_types(self, module: ModuleRecord) -> None:
        with self._mu:
            for type_ in module.types:
                full_name = type_.full_name
                if not full_name:
                    continue
                self._types.setdefault(full_name, type_)
                if type_.is_nested:
                    # Traces spell nested types with dots ("Outer.Inner"), reflection with '+'.
                    self._types.setdefault(full_name.replace("+", "."), type_)

    def load(self, module: ModuleRecord, loader: Optional[ModuleLoader] = None) -> None:
        """Register a module's types, then its referenced modules via `loader`.

        Modules already visited are skipped. Exceptions raised while loading a
        referenced module are logged and ignored.
        """
        if module is None:
            raise ValueError("module is required")

        if not self._try_add_module(module):
            # this module was already added to cache
            return

        self._add_types(module)
        self.stats.modules_loaded += 1
        logger.debug("Loaded %d types from %s", len(module.types), module.identity)

        if loader is None:
            return

        for ref in module.references:
            if ref in self._modules:
                continue
            try:
                self.load(loader(ref), loader)
            except Exception as e:
                self.stats.load_failures += 1
                logger.debug("Skipping referenced module %s of %s: %s", ref, module.identity, e)

    def lookup(self, type_name: str) -> Optional[TypeDescriptor]:
        """Resolve a type by its full name (either '+' or '.' nesting)."""
        if not type_name:
            raise ValueError("type_name must be a non-empty string")

        type_ = self._types.get(type_name)
        if type_ is None:
            self.stats.miss += 1
        else:
            self.stats.hit += 1
        return type_


_DEFAULT_CACHE = SymbolCache()


def get_default_cache() -> SymbolCache:
    """Process-wide cache shared by renders that don't bring their own."""
    return _DEFAULT_CACHE


__all__ = [
    "ModuleLoader",
    "SymbolCache",
    "SymbolCacheStats",
    "get_default_cache",
]
