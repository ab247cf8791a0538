"""
Pytest tests for HTML rendering (render.py, chain.py).

Run from the repository root:
    pytest stack_trace_render/test_render.py -v
"""

import pytest

from stack_trace_render.chain import count_boundaries, parse_exception_header, split_header
from stack_trace_render.config import TraceMarkers
from stack_trace_render.errors import MalformedExceptionMessageError
from stack_trace_render.render import StackTraceRenderer, render_stack_trace
from stack_trace_render.type_cache import SymbolCache


INNER_BOUNDARY = "   --- End of inner exception stack trace ---"


def _render(text, cache=None, **kwargs):
    return render_stack_trace(text, cache=cache if cache is not None else SymbolCache(), **kwargs)


# ============================================================================
# Single frames
# ============================================================================

def test_render_single_frame():
    html = _render("   at MyApp.Worker.Run() in /src/Worker.cs:line 42")

    assert html == (
        '<pre class="stack-trace">\n'
        '   at <span class="st-type">MyApp.Worker</span>.<span class="st-method">Run</span>()'
        ' in <span class="st-file">/src/Worker.cs</span>:<span class="st-line">42</span>\n'
        "</pre>\n"
    )


def test_render_empty_input():
    assert _render("") == ""
    assert _render(None) == ""


def test_render_parameters_unresolved():
    html = _render("   at Some.Lib.Thing.Do(String a, Int32 b)")

    assert (
        '(<span class="st-param"><span class="st-param-type">String</span>&nbsp;<span class="st-param-name">a</span></span>, '
        '<span class="st-param"><span class="st-param-type">Int32</span>&nbsp;<span class="st-param-name">b</span></span>)\n'
    ) in html


def test_render_mono_suffix():
    html = _render("   at MyApp.Worker.Run() [0x00012] in <8f2c4843>:0")
    assert ' [0x00012] in <span class="st-file">8f2c4843</span>:<span class="st-line">0</span>\n' in html


def test_render_unrecognized_suffix_escaped():
    html = _render("   at MyApp.Worker.Run() <native & friends>")
    assert "() &lt;native &amp; friends&gt;\n" in html


def test_render_non_frame_lines_escaped():
    html = _render("   at MyApp.Worker.Run()\n<script>alert(1)</script>")

    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;\n" in html


def test_render_header_without_frames_kept():
    html = _render("Something went wrong <badly>")
    assert html == '<pre class="stack-trace">\nSomething went wrong &lt;badly&gt;\n</pre>\n'


# ============================================================================
# Resolved frames
# ============================================================================

def test_render_async_frame(app_cache):
    html = _render("   at MyApp.Worker.<ProcessAsync>d__12.MoveNext() in /src/Worker.cs:line 30", app_cache)

    assert (
        '   at <span style="color:#00f">await</span> '
        '<span class="st-type">MyApp.Worker</span>.<span class="st-method">ProcessAsync</span>('
        '<span class="st-param"><span class="st-param-type">CancellationToken</span>&nbsp;'
        '<span class="st-param-name">token</span></span>)'
    ) in html


def test_render_drops_awaiter_frames(app_cache):
    """Each awaiter frame removes exactly one rendered frame."""
    text = "\n".join([
        "System.InvalidOperationException: boom",
        "   at System.Runtime.CompilerServices.TaskAwaiter.ThrowForNonSuccess(Task task)",
        "   at MyApp.Worker.<ProcessAsync>d__12.MoveNext() in /src/Worker.cs:line 30",
        "   at System.Runtime.CompilerServices.TaskAwaiter.ThrowForNonSuccess(Task task)",
        "   at MyApp.Worker.Run() in /src/Worker.cs:line 42",
    ])
    unresolved = _render(text)
    resolved = _render(text, app_cache)

    assert unresolved.count('<span class="st-method">') == 4
    assert resolved.count('<span class="st-method">') == 2
    assert "TaskAwaiter" not in resolved
    assert '<span class="st-method">ProcessAsync</span>' in resolved
    assert '<span class="st-method">Run</span>' in resolved


def test_render_generic_names_escaped(app_cache):
    html = _render("   at MyApp.Worker.Map[T](List`1 items)", app_cache)

    assert '<span class="st-method">Map&lt;T&gt;</span>' in html
    assert '<span class="st-param-type">List&lt;T&gt;</span>' in html


# ============================================================================
# Exception chains
# ============================================================================

CHAINED_TRACE = "\n".join([
    "System.Exception: outer ---> System.IO.IOException: inner",
    "   at MyApp.Io.Read() in /src/Io.cs:line 10",
    INNER_BOUNDARY,
    "   at MyApp.Worker.Run() in /src/Worker.cs:line 42",
])


def test_render_chain_split_innermost_first():
    html = _render(CHAINED_TRACE)

    assert html.startswith("<hr ")
    assert html.count("<hr ") == 2
    assert html.count("<pre ") == 2
    assert html.count("</pre>") == 2
    assert "End of inner exception stack trace" not in html

    inner = html.index('<span class="st-type">System.IO.IOException</span>')
    read = html.index("MyApp.Io")
    outer = html.index('<span class="st-type">System.Exception</span>')
    run = html.index("MyApp.Worker")
    assert inner < read < outer < run

    assert '<span class="text-muted">inner</span>' in html
    assert '<span class="text-muted">outer</span>' in html


def test_render_chain_not_split_when_counts_disagree():
    """An arrow in the header without a matching boundary line: header is kept verbatim."""
    text = "\n".join([
        "System.Exception: a ---> System.Foo: b",
        "   at MyApp.Worker.Run()",
    ])
    html = _render(text)

    assert html.startswith('<pre class="stack-trace">\nSystem.Exception: a ---&gt; System.Foo: b\n')
    assert "<hr " not in html


def test_render_chain_split_disabled():
    html = _render(CHAINED_TRACE, separate_stack_traces=False)

    assert html.startswith('<pre class="stack-trace">\nSystem.Exception: outer ---&gt; System.IO.IOException: inner\n')
    assert '<i class="text-muted">   --- End of inner exception stack trace ---</i>\n' in html
    assert "<hr " not in html


def test_render_malformed_header_raises():
    with pytest.raises(MalformedExceptionMessageError):
        _render("Something bad happened\n   at MyApp.Worker.Run()")


# ============================================================================
# Re-throw markers
# ============================================================================

def test_render_rethrow_marker_and_helper_frame_suppressed():
    text = "\n".join([
        "System.InvalidOperationException: boom",
        "   at MyApp.Worker.Run() in /src/Worker.cs:line 42",
        "--- End of stack trace from previous location where exception was thrown ---",
        "   at System.Runtime.ExceptionServices.ExceptionDispatchInfo.Throw()",
        "   at MyApp.Program.Main() in /src/Program.cs:line 5",
    ])
    html = _render(text)

    assert "End of stack trace" not in html
    assert "ExceptionDispatchInfo" not in html
    assert "MyApp.Program" in html


def test_render_helper_frame_kept_without_marker():
    html = _render("   at System.Runtime.ExceptionServices.ExceptionDispatchInfo.Throw()")
    assert "ExceptionDispatchInfo" in html


# ============================================================================
# Localized markers
# ============================================================================

def test_render_with_localized_markers():
    markers = TraceMarkers(
        at_word="bei",
        inner_exception_boundary="--- Ende der internen Ausnahmestapelüberwachung ---",
        file_line_template="in {file}:Zeile {line}",
    )
    text = "\n".join([
        "System.Exception: außen ---> System.IO.IOException: innen",
        "   bei MyApp.Io.Read() in C:\\src\\Io.cs:Zeile 10",
        "   --- Ende der internen Ausnahmestapelüberwachung ---",
        "   bei MyApp.Worker.Run() in C:\\src\\Worker.cs:Zeile 42",
    ])
    html = StackTraceRenderer(SymbolCache(), markers).render(text)

    assert html.count("<hr ") == 2
    assert ' in <span class="st-file">C:\\src\\Worker.cs</span>:<span class="st-line">42</span>\n' in html


# ============================================================================
# chain.py helpers
# ============================================================================

def test_parse_exception_header():
    header = parse_exception_header("System.IO.IOException: disk: full")
    assert header.type_name == "System.IO.IOException"
    assert header.message == "disk: full"

    for bad in ["", "no delimiter here", "System.Exception:"]:
        with pytest.raises(MalformedExceptionMessageError):
            parse_exception_header(bad)


def test_split_header():
    header = "A.X: one ---> B.Y: two ---> C.Z: three"
    body = ["   at A.B.C()", INNER_BOUNDARY, "   at D.E.F()", INNER_BOUNDARY]

    assert count_boundaries(body, "--- End of inner exception stack trace ---") == 2
    assert split_header(header, body, "--- End of inner exception stack trace ---") == [
        "C.Z: three",
        "B.Y: two",
        "A.X: one",
    ]
    assert split_header(header, body[:2], "--- End of inner exception stack trace ---") is None
    assert split_header("", body, "--- End of inner exception stack trace ---") is None
