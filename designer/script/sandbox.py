"""
脚本沙箱：在受限全局环境中执行用户脚本，返回结构化结果。
捕捉所有异常，绝不向调用方抛出。
"""

import copy
import logging
import time
from typing import Any, List

from designer.models import ScriptExecutionResult
from designer.script import nodes as n
from designer.script.errors import ScriptError, ScriptTimeout
from designer.script.interpreter import Interpreter
from designer.script.natives import build_globals
from designer.script.parser import parse
from designer.script.values import export_value

logger = logging.getLogger(__name__)

VALUE_MODE = "value"
TEMPLATE_MODE = "template"


def _collect_declarations(body, names: List[str]) -> None:
    for stmt in body:
        if isinstance(stmt, n.VarDecl):
            names.extend(name for name, _ in stmt.declarations)
        elif isinstance(stmt, n.Block):
            _collect_declarations(stmt.body, names)
        elif isinstance(stmt, n.If):
            _collect_declarations([stmt.consequent], names)
            if stmt.alternate is not None:
                _collect_declarations([stmt.alternate], names)
        elif isinstance(stmt, n.For):
            if stmt.init is not None:
                _collect_declarations([stmt.init], names)
            _collect_declarations([stmt.body], names)
        elif isinstance(stmt, n.ForOf):
            names.append(stmt.name)
            _collect_declarations([stmt.body], names)
        elif isinstance(stmt, n.While):
            _collect_declarations([stmt.body], names)


def declared_names(code: str | n.Program) -> List[str]:
    """
    Names declared with var/let/const, in first-occurrence order.
    Names starting with ``__`` are internal and skipped.
    """
    program = parse(code) if isinstance(code, str) else code
    names: List[str] = []
    _collect_declarations(program.body, names)
    seen = set()
    result = []
    for name in names:
        if name.startswith("__") or name in seen:
            continue
        seen.add(name)
        result.append(name)
    return result


class ScriptSandbox:
    """
    Runs widget scripts against bound data.

    - value 模式：使用脚本顶层 return 的值
    - template 模式：收集脚本声明的变量，供模板插值使用
    """

    def __init__(self, timeout_ms: int = 1000):
        self.timeout_ms = timeout_ms

    def execute(self, code: str, data: Any, mode: str = VALUE_MODE) -> ScriptExecutionResult:
        start = time.perf_counter()
        try:
            program = parse(code or "")
            interpreter = Interpreter(
                build_globals(copy.deepcopy(data)),
                deadline=start + self.timeout_ms / 1000,
            )
            scope, returned = interpreter.run(program)

            elapsed_ms = (time.perf_counter() - start) * 1000
            if elapsed_ms > self.timeout_ms:
                raise ScriptTimeout()

            if mode == TEMPLATE_MODE:
                variables = {}
                for name in declared_names(program):
                    value = scope.vars.get(name)
                    if value is not None:
                        variables[name] = export_value(value)
                return ScriptExecutionResult(success=True, variables=variables, duration_ms=elapsed_ms)

            return ScriptExecutionResult(success=True, output=export_value(returned), duration_ms=elapsed_ms)

        except ScriptError as e:
            message = str(e)
        except RecursionError:
            message = "RangeError: Maximum call stack size exceeded"
        except Exception as e:
            message = f"{type(e).__name__}: {e}"

        logger.warning(f"Script execution failed: {message}")
        return ScriptExecutionResult(
            success=False,
            error=message,
            duration_ms=(time.perf_counter() - start) * 1000,
        )
