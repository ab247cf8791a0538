"""
Pytest tests for the symbol cache (type_cache.py).

Run from the repository root:
    pytest stack_trace_render/test_type_cache.py -v
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from stack_trace_render.symbols import ModuleIdentity, ModuleRecord, TypeDescriptor
from stack_trace_render.type_cache import SymbolCache, get_default_cache


def _module(name, *type_names, references=()):
    identity = ModuleIdentity(name)
    types = []
    for full_name in type_names:
        namespace, _, simple = full_name.rpartition(".")
        types.append(TypeDescriptor(name=simple, namespace=namespace, module=identity))
    return ModuleRecord(identity=identity, types=types, references=[ModuleIdentity(r) for r in references])


def _loader(*modules):
    by_name = {m.identity.name: m for m in modules}

    def load(identity):
        if identity.name not in by_name:
            raise FileNotFoundError(identity.name)
        return by_name[identity.name]

    return load


# ============================================================================
# load() / lookup()
# ============================================================================

def test_lookup_after_load():
    cache = SymbolCache()
    cache.load(_module("MyApp", "MyApp.Worker", "MyApp.Program"))

    assert len(cache) == 2
    assert "MyApp.Worker" in cache
    assert cache.lookup("MyApp.Worker").name == "Worker"
    assert cache.lookup("MyApp.Missing") is None
    assert cache.stats.hit == 1
    assert cache.stats.miss == 1


def test_lookup_rejects_empty_name():
    with pytest.raises(ValueError):
        SymbolCache().lookup("")


def test_nested_types_registered_under_both_spellings(app_module):
    cache = SymbolCache()
    cache.load(app_module)

    by_plus = cache.lookup("MyApp.Worker+<ProcessAsync>d__12")
    by_dot = cache.lookup("MyApp.Worker.<ProcessAsync>d__12")
    assert by_plus is not None
    assert by_plus is by_dot
    assert by_plus.declaring_type is cache.lookup("MyApp.Worker")


def test_first_registration_wins():
    """Two modules declaring the same full name: the first loaded one is kept."""
    first = _module("First", "Shared.Thing")
    second = _module("Second", "Shared.Thing")

    cache = SymbolCache()
    cache.load(first)
    cache.load(second)

    assert cache.lookup("Shared.Thing").module == ModuleIdentity("First")
    assert len(cache.modules()) == 2


def test_module_loaded_once_by_simple_name():
    cache = SymbolCache()
    cache.load(_module("MyApp", "MyApp.Worker"))
    cache.load(ModuleRecord(identity=ModuleIdentity("MyApp", version="2.0"), types=[TypeDescriptor(name="Extra", namespace="MyApp")]))

    assert "MyApp.Extra" not in cache
    assert cache.stats.modules_loaded == 1


# ============================================================================
# Transitive loading
# ============================================================================

def test_references_loaded_transitively():
    app = _module("App", "App.Main", references=["Lib"])
    lib = _module("Lib", "Lib.Helper", references=["Core"])
    core = _module("Core", "Core.Base")

    cache = SymbolCache()
    cache.load(app, _loader(lib, core))

    assert {m.name for m in cache.modules()} == {"App", "Lib", "Core"}
    assert "Core.Base" in cache


def test_failing_reference_is_skipped():
    """A reference that can't be loaded doesn't stop its siblings."""
    app = _module("App", "App.Main", references=["Broken", "Good"])
    good = _module("Good", "Good.Thing")

    cache = SymbolCache()
    cache.load(app, _loader(good))

    assert "App.Main" in cache
    assert "Good.Thing" in cache
    assert cache.stats.load_failures == 1


def test_reference_cycle_terminates():
    a = _module("A", "A.One", references=["B"])
    b = _module("B", "B.Two", references=["A"])
    calls = []

    def load(identity):
        calls.append(identity.name)
        return {"A": a, "B": b}[identity.name]

    cache = SymbolCache()
    cache.load(a, load)

    assert calls == ["B"]
    assert "A.One" in cache
    assert "B.Two" in cache


def test_references_ignored_without_loader():
    cache = SymbolCache()
    cache.load(_module("App", "App.Main", references=["Lib"]))
    assert [m.name for m in cache.modules()] == ["App"]


def test_concurrent_loads_register_each_module_once():
    core = _module("Core", "Core.Base")
    apps = [_module(f"App{i}", f"App{i}.Main", references=["Core"]) for i in range(8)]
    cache = SymbolCache()

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(lambda m: cache.load(m, _loader(core)), apps + apps))

    assert len(cache.modules()) == 9
    assert len(cache) == 9
    assert all(cache.lookup(f"App{i}.Main") is not None for i in range(8))


def test_default_cache_is_shared():
    assert get_default_cache() is get_default_cache()
