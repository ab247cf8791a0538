"""Shared pytest fixtures: a small two-module symbol set mirroring a typical app."""

import pytest

from stack_trace_render.manifest import module_from_manifest
from stack_trace_render.type_cache import SymbolCache


APP_MANIFEST = {
    "module": "MyApp",
    "version": "1.0.0",
    "references": ["System.Private.CoreLib"],
    "types": [
        {
            "name": "MyApp.Worker",
            "base": "MyApp.WorkerBase",
            "methods": [
                {"name": "Run"},
                {"name": "Process", "parameters": [{"type": "System.String", "name": "path"}]},
                {"name": "Process", "parameters": [{"type": "System.Int32", "name": "id"}]},
                {"name": "Twin", "parameters": [{"type": "System.String", "name": "a"}]},
                {"name": "Twin", "parameters": [{"type": "Legacy.String", "name": "a"}]},
                {
                    "name": "ProcessAsync",
                    "parameters": [{"type": "System.Threading.CancellationToken", "name": "token"}],
                    "state_machine": {"kind": "async", "type": "MyApp.Worker+<ProcessAsync>d__12"},
                },
                {
                    "name": "GetItems",
                    "state_machine": {"kind": "iterator", "type": "MyApp.Worker+<GetItems>d__7"},
                },
                {
                    "name": "Map",
                    "generic_parameters": ["T"],
                    "parameters": [{"type": "System.Collections.Generic.List`1[T]", "name": "items"}],
                },
                # Conversion operators differing only by return type.
                {"name": "op_Explicit", "parameters": [{"type": "System.String", "name": "value"}]},
                {"name": "op_Explicit", "parameters": [{"type": "System.String", "name": "text"}]},
                {
                    "name": "RunAsync",
                    "parameters": [{"type": "System.String", "name": "path"}],
                    "state_machine": {"kind": "async", "type": "MyApp.Worker+<RunAsync>d__1"},
                },
                {
                    "name": "RunAsync",
                    "parameters": [{"type": "System.Int32", "name": "id"}],
                    "state_machine": {"kind": "async", "type": "MyApp.Worker+<RunAsync>d__1"},
                },
            ],
        },
        {
            "name": "MyApp.WorkerBase",
            "methods": [
                {"name": "Stop"},
                {"name": "Run"},
            ],
        },
        {"name": "MyApp.Worker+<ProcessAsync>d__12", "compiler_generated": True, "methods": [{"name": "MoveNext"}]},
        {"name": "MyApp.Worker+<GetItems>d__7", "compiler_generated": True, "methods": [{"name": "MoveNext"}]},
        {"name": "MyApp.Worker+<Orphan>d__1", "compiler_generated": True, "methods": [{"name": "MoveNext"}]},
        {"name": "MyApp.Worker+<RunAsync>d__1", "compiler_generated": True, "methods": [{"name": "MoveNext"}]},
        {"name": "MyApp.Worker+<>c", "compiler_generated": True, "methods": [{"name": "<Run>b__0_0"}]},
        {
            "name": "MyApp.Outer+Inner`1",
            "generic_parameters": ["T"],
            "methods": [{"name": "Get", "parameters": [{"type": "T", "name": "key"}]}],
        },
        {"name": "MyApp.Outer"},
    ],
}

CORE_MANIFEST = {
    "module": "System.Private.CoreLib",
    "types": [
        {
            "name": "System.Runtime.CompilerServices.TaskAwaiter",
            "interfaces": [
                "System.Runtime.CompilerServices.ICriticalNotifyCompletion",
                "System.Runtime.CompilerServices.INotifyCompletion",
            ],
            "methods": [
                {"name": "ThrowForNonSuccess", "parameters": [{"type": "System.Threading.Tasks.Task", "name": "task"}]},
            ],
        },
        {"name": "System.Runtime.ExceptionServices.ExceptionDispatchInfo", "methods": [{"name": "Throw"}]},
    ],
}


@pytest.fixture
def app_manifest():
    return APP_MANIFEST


@pytest.fixture
def core_manifest():
    return CORE_MANIFEST


@pytest.fixture
def app_module():
    return module_from_manifest(APP_MANIFEST, source="MyApp.yaml")


@pytest.fixture
def core_module():
    return module_from_manifest(CORE_MANIFEST, source="System.Private.CoreLib.yaml")


@pytest.fixture
def app_cache(app_module, core_module):
    """Fresh cache with MyApp loaded and CoreLib pulled in through its reference."""
    cache = SymbolCache()
    cache.load(app_module, lambda identity: core_module)
    return cache
