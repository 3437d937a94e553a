import asyncio
import os
import sys
import threading
from unittest.mock import MagicMock

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from designer.script import ScriptError, ScriptSandbox, ScriptSyntaxError, declared_names
from designer.script.completions import build_completions
from designer.script.lexer import tokenize
from designer.script.runner import ScriptRunner
from designer.models import FieldMeta, ScriptExecutionResult


# ── 词法 / 语法 ──────────────────────────────────────────

def test_tokenize_declaration():
    tokens = tokenize("let total = $.a + 1;")
    assert [t.type for t in tokens] == ["KEYWORD", "IDENT", "PUNCT", "IDENT", "PUNCT", "IDENT", "PUNCT", "NUM", "PUNCT", "EOF"]
    assert tokens[0].value == "let"
    assert tokens[1].value == "total"


def test_tokenize_reports_position():
    with pytest.raises(ScriptSyntaxError) as exc:
        tokenize("let a = 1;\nlet b = #;")
    assert exc.value.line == 2


def test_declared_names_order_and_nesting():
    code = """
    const first = 1;
    if ($.ok) { let second = 2; } else { var third = 3; }
    for (const item of $.items) { let inner = item; }
    let __hidden = 4;
    var first = 5;
    """
    assert declared_names(code) == ["first", "second", "third", "item", "inner"]


def test_declared_names_raises_on_syntax_error():
    with pytest.raises(ScriptError):
        declared_names("let = ;")


# ── 沙箱执行 ──────────────────────────────────────────

def test_value_mode_returns_output():
    result = ScriptSandbox().execute("return $.a * 2 + 1;", {"a": 4})
    assert result.success
    assert result.output == 9
    assert result.error is None


def test_value_mode_supports_array_helpers():
    code = "return $.items.filter(x => x.on).map(x => x.name).join(', ');"
    data = {"items": [{"name": "a", "on": True}, {"name": "b", "on": False}, {"name": "c", "on": True}]}
    assert ScriptSandbox().execute(code, data).output == "a, c"


def test_template_mode_collects_variables():
    code = "const greeting = `Hi ${$.name}`;\nlet count = $.items.length;\nlet unset;"
    result = ScriptSandbox().execute(code, {"name": "Sam", "items": [1, 2]}, mode="template")
    assert result.success
    assert result.variables == {"greeting": "Hi Sam", "count": 2}


def test_script_cannot_mutate_bound_data():
    data = {"items": [1]}
    ScriptSandbox().execute("$.items.push(2); return $.items.length;", data)
    assert data == {"items": [1]}


def test_runtime_error_is_captured():
    result = ScriptSandbox().execute("return nothing.here;", {})
    assert not result.success
    assert "ReferenceError" in result.error


def test_syntax_error_is_captured():
    result = ScriptSandbox().execute("return (;", {})
    assert not result.success
    assert result.error


def test_python_builtins_are_unreachable():
    result = ScriptSandbox().execute("return __import__('os');", {})
    assert not result.success


def test_infinite_loop_times_out():
    result = ScriptSandbox(timeout_ms=50).execute("while (true) {}", {})
    assert not result.success
    assert "too long" in result.error


# ── 防抖执行 ──────────────────────────────────────────

def test_runner_publishes_only_latest_result():
    published = []

    async def scenario():
        runner = ScriptRunner(ScriptSandbox(), debounce_ms=20, on_result=published.append)
        runner.schedule("return 1;", {})
        runner.schedule("return 2;", {})
        runner.schedule("return $.v;", {"v": 3})
        return await runner.wait()

    result = asyncio.run(scenario())

    assert result.output == 3
    assert [r.output for r in published] == [3]


def test_runner_cancel_discards_pending_run():
    published = []

    async def scenario():
        runner = ScriptRunner(ScriptSandbox(), debounce_ms=20, on_result=published.append)
        runner.schedule("return 1;", {})
        runner.cancel()
        await asyncio.sleep(0.05)
        return runner.result

    assert asyncio.run(scenario()) is None
    assert published == []


def test_runner_drops_result_of_run_already_executing():
    started = threading.Event()
    release = threading.Event()
    published = []

    sandbox = MagicMock()

    def execute(code, data, mode):
        if code == "slow":
            started.set()
            release.wait(2)
        return ScriptExecutionResult(success=True, output=code)

    sandbox.execute.side_effect = execute

    async def scenario():
        runner = ScriptRunner(sandbox, debounce_ms=0, on_result=published.append)
        runner.schedule("slow", {})
        await asyncio.to_thread(started.wait, 2)
        runner.schedule("fast", {})
        release.set()
        result = await runner.wait()
        while runner.discarded == 0:
            await asyncio.sleep(0.01)
        return result

    result = asyncio.run(asyncio.wait_for(scenario(), 5))

    assert result.output == "fast"
    assert [r.output for r in published] == ["fast"]
    assert sandbox.execute.call_count == 2


# ── 自动补全 ──────────────────────────────────────────

def test_completions_list_fields_before_helpers():
    fields = [
        FieldMeta(path="user.avatar", type="string", sample="https://example.com/a.png", isImageUrl=True),
        FieldMeta(path="count", type="number", sample=3),
    ]
    completions = build_completions(fields)

    assert completions[0]["label"] == "$.user.avatar"
    assert completions[0]["info"] == "string (image URL)"
    assert completions[0]["detail"] == '"https://example.com/a.png"'
    assert completions[1]["detail"] == "3"
    assert completions[2]["label"] == "Math.round"
    assert all(c["boost"] == 0 for c in completions[2:])
