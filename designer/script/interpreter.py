"""
Tree-walking evaluator for parsed widget scripts.
"""

import math
import time
from typing import Any, Dict, Optional

from designer.script import nodes as n
from designer.script.errors import ScriptError, ScriptRuntimeError, ScriptTimeout
from designer.script.natives import (
    JSDate,
    array_methods,
    date_methods,
    number_methods,
    power,
    string_methods,
)
from designer.script.values import (
    Namespace,
    NativeFunction,
    is_callable,
    is_number,
    js_string,
    loose_equals,
    strict_equals,
    to_number,
    to_primitive,
    truthy,
    type_of,
)

MAX_CALL_DEPTH = 64


class _ReturnSignal(Exception):
    def __init__(self, value):
        self.value = value


class _BreakSignal(Exception):
    pass


class _ContinueSignal(Exception):
    pass


class Scope:
    def __init__(self, parent: Optional["Scope"] = None, function: bool = False):
        self.parent = parent
        self.function = function
        self.vars: Dict[str, Any] = {}
        self.consts: set = set()
        self.lexical: set = set()

    def find(self, name: str) -> Optional["Scope"]:
        scope = self
        while scope is not None:
            if name in scope.vars:
                return scope
            scope = scope.parent
        return None

    def function_scope(self) -> "Scope":
        scope = self
        while not scope.function and scope.parent is not None:
            scope = scope.parent
        return scope

    def declare(self, kind: str, name: str, value: Any) -> None:
        if kind == "var":
            target = self.function_scope()
            if name in target.lexical:
                raise ScriptRuntimeError(f"SyntaxError: Identifier '{name}' has already been declared")
            target.vars[name] = value
            return
        if name in self.vars:
            raise ScriptRuntimeError(f"SyntaxError: Identifier '{name}' has already been declared")
        self.vars[name] = value
        self.lexical.add(name)
        if kind == "const":
            self.consts.add(name)


class Closure:
    """An arrow function value."""

    def __init__(self, node: n.Arrow, scope: Scope, interpreter: "Interpreter"):
        self.node = node
        self.scope = scope
        self.interpreter = interpreter
        self.name = "anonymous"

    def __call__(self, *args):
        return self.interpreter.call_closure(self, args)


class Interpreter:
    def __init__(self, global_vars: Dict[str, Any], deadline: Optional[float] = None):
        self.globals = Scope(function=True)
        self.globals.vars.update(global_vars)
        self.deadline = deadline
        self.depth = 0

    # ── entry points ──────────────────────────────────

    def run(self, program: n.Program) -> tuple:
        """Execute a program; returns (top-level scope, returned value)."""
        scope = Scope(self.globals, function=True)
        try:
            self.exec_block(program.body, scope)
        except _ReturnSignal as ret:
            return scope, ret.value
        except (_BreakSignal, _ContinueSignal):
            raise ScriptRuntimeError("SyntaxError: Illegal break or continue statement") from None
        return scope, None

    def call_closure(self, closure: Closure, args) -> Any:
        node = closure.node
        if self.depth >= MAX_CALL_DEPTH:
            raise ScriptRuntimeError("RangeError: Maximum call stack size exceeded")
        scope = Scope(closure.scope, function=True)
        for i, name in enumerate(node.params):
            scope.vars[name] = args[i] if i < len(args) else None
        self.depth += 1
        try:
            if node.expression:
                return self.eval(node.body, scope)
            try:
                self.exec_block(node.body.body, scope)
            except _ReturnSignal as ret:
                return ret.value
            except (_BreakSignal, _ContinueSignal):
                raise ScriptRuntimeError("SyntaxError: Illegal break or continue statement") from None
            return None
        finally:
            self.depth -= 1

    # ── statements ────────────────────────────────────

    def _check_deadline(self) -> None:
        if self.deadline is not None and time.perf_counter() > self.deadline:
            raise ScriptTimeout()

    def exec_block(self, body, scope: Scope) -> None:
        for stmt in body:
            self.exec(stmt, scope)

    def exec(self, node: n.Node, scope: Scope) -> None:
        self._check_deadline()

        if isinstance(node, n.ExprStmt):
            self.eval(node.expr, scope)
        elif isinstance(node, n.VarDecl):
            for name, init in node.declarations:
                value = self.eval(init, scope) if init is not None else None
                if isinstance(value, Closure) and value.name == "anonymous":
                    value.name = name
                scope.declare(node.kind, name, value)
        elif isinstance(node, n.Return):
            raise _ReturnSignal(self.eval(node.argument, scope) if node.argument else None)
        elif isinstance(node, n.If):
            if truthy(self.eval(node.test, scope)):
                self.exec(node.consequent, scope)
            elif node.alternate is not None:
                self.exec(node.alternate, scope)
        elif isinstance(node, n.Block):
            self.exec_block(node.body, Scope(scope))
        elif isinstance(node, n.For):
            self._exec_for(node, scope)
        elif isinstance(node, n.ForOf):
            self._exec_for_of(node, scope)
        elif isinstance(node, n.While):
            while truthy(self.eval(node.test, scope)):
                try:
                    self.exec(node.body, scope)
                except _BreakSignal:
                    break
                except _ContinueSignal:
                    continue
        elif isinstance(node, n.Break):
            raise _BreakSignal()
        elif isinstance(node, n.Continue):
            raise _ContinueSignal()
        elif isinstance(node, n.Empty):
            pass
        else:
            raise ScriptRuntimeError(f"Unsupported statement: {type(node).__name__}")

    def _exec_for(self, node: n.For, scope: Scope) -> None:
        loop_scope = Scope(scope)
        if node.init is not None:
            self.exec(node.init, loop_scope)
        while node.test is None or truthy(self.eval(node.test, loop_scope)):
            self._check_deadline()
            try:
                self.exec(node.body, loop_scope)
            except _BreakSignal:
                break
            except _ContinueSignal:
                pass
            if node.update is not None:
                self.eval(node.update, loop_scope)

    def _exec_for_of(self, node: n.ForOf, scope: Scope) -> None:
        iterable = self.eval(node.iterable, scope)
        if isinstance(iterable, (list, str)):
            items = list(iterable)
        else:
            raise ScriptRuntimeError(f"TypeError: {js_string(iterable)} is not iterable")
        for item in items:
            self._check_deadline()
            body_scope = Scope(scope)
            body_scope.declare(node.kind, node.name, item)
            try:
                self.exec(node.body, body_scope)
            except _BreakSignal:
                break
            except _ContinueSignal:
                continue

    # ── expressions ───────────────────────────────────

    def eval(self, node: n.Node, scope: Scope) -> Any:
        if isinstance(node, n.Literal):
            return node.value
        if isinstance(node, n.Ident):
            return self.lookup(node.name, scope)
        if isinstance(node, n.Member):
            obj = self.eval(node.obj, scope)
            if obj is None and node.optional:
                return None
            return self.get_member(obj, node.prop)
        if isinstance(node, n.Index):
            obj = self.eval(node.obj, scope)
            if obj is None and node.optional:
                return None
            return self.get_member(obj, self.eval(node.index, scope))
        if isinstance(node, n.Call):
            return self._eval_call(node, scope)
        if isinstance(node, n.Binary):
            return self.binary(node.op, self.eval(node.left, scope), self.eval(node.right, scope))
        if isinstance(node, n.Logical):
            left = self.eval(node.left, scope)
            if node.op == "&&":
                return self.eval(node.right, scope) if truthy(left) else left
            if node.op == "||":
                return left if truthy(left) else self.eval(node.right, scope)
            return self.eval(node.right, scope) if left is None else left
        if isinstance(node, n.Unary):
            return self._eval_unary(node, scope)
        if isinstance(node, n.Conditional):
            branch = node.consequent if truthy(self.eval(node.test, scope)) else node.alternate
            return self.eval(branch, scope)
        if isinstance(node, n.Assign):
            return self._eval_assign(node, scope)
        if isinstance(node, n.Update):
            return self._eval_update(node, scope)
        if isinstance(node, n.TemplateLit):
            out = [node.quasis[0]]
            for expr, quasi in zip(node.expressions, node.quasis[1:]):
                out.append(js_string(self.eval(expr, scope)))
                out.append(quasi)
            return "".join(out)
        if isinstance(node, n.ArrayLit):
            items = []
            for element in node.elements:
                if isinstance(element, n.Spread):
                    items.extend(self._spread(self.eval(element.argument, scope)))
                else:
                    items.append(self.eval(element, scope))
            return items
        if isinstance(node, n.ObjectLit):
            return self._eval_object(node, scope)
        if isinstance(node, n.Arrow):
            return Closure(node, scope, self)
        if isinstance(node, n.New):
            return self._eval_new(node, scope)
        raise ScriptRuntimeError(f"Unsupported expression: {type(node).__name__}")

    def lookup(self, name: str, scope: Scope) -> Any:
        found = scope.find(name)
        if found is None:
            raise ScriptRuntimeError(f"ReferenceError: {name} is not defined")
        return found.vars[name]

    def _spread(self, value: Any) -> list:
        if isinstance(value, (list, str)):
            return list(value)
        raise ScriptRuntimeError(f"TypeError: {js_string(value)} is not iterable")

    def _eval_object(self, node: n.ObjectLit, scope: Scope) -> dict:
        obj: Dict[str, Any] = {}
        for key, value_node in node.properties:
            if key is None:
                value = self.eval(value_node, scope)
                if isinstance(value, dict):
                    obj.update(value)
                elif isinstance(value, (list, str)):
                    obj.update({str(i): v for i, v in enumerate(value)})
                continue
            if isinstance(key, n.Node):
                key = self._property_key(self.eval(key, scope))
            obj[key] = self.eval(value_node, scope)
        return obj

    def _eval_unary(self, node: n.Unary, scope: Scope) -> Any:
        if node.op == "typeof":
            if isinstance(node.argument, n.Ident) and scope.find(node.argument.name) is None:
                return "undefined"
            return type_of(self.eval(node.argument, scope))
        value = self.eval(node.argument, scope)
        if node.op == "!":
            return not truthy(value)
        number = to_number(value)
        return -number if node.op == "-" else number

    def _eval_call(self, node: n.Call, scope: Scope) -> Any:
        fn = self.eval(node.callee, scope)
        if fn is None and node.optional:
            return None
        args = []
        for arg in node.args:
            if isinstance(arg, n.Spread):
                args.extend(self._spread(self.eval(arg.argument, scope)))
            else:
                args.append(self.eval(arg, scope))
        if not is_callable(fn):
            raise ScriptRuntimeError(f"TypeError: {self._describe(node.callee)} is not a function")
        return self.invoke(fn, args)

    def invoke(self, fn, args) -> Any:
        if isinstance(fn, Closure):
            return fn(*args)
        try:
            return fn(*args)
        except ScriptError:
            raise
        except (_ReturnSignal, _BreakSignal, _ContinueSignal):
            raise
        except (TypeError, ValueError, OverflowError, OSError, IndexError, KeyError) as e:
            name = getattr(fn, "name", "function")
            raise ScriptRuntimeError(f"TypeError: {name}: {e}") from None

    def _eval_new(self, node: n.New, scope: Scope) -> Any:
        ctor = self.eval(node.callee, scope)
        if not isinstance(ctor, NativeFunction) or ctor.constructor is None:
            raise ScriptRuntimeError(f"TypeError: {self._describe(node.callee)} is not a constructor")
        args = [self.eval(arg, scope) for arg in node.args]
        return self.invoke(ctor.constructor, args)

    def _describe(self, node: n.Node) -> str:
        if isinstance(node, n.Ident):
            return node.name
        if isinstance(node, n.Member):
            return f"{self._describe(node.obj)}.{node.prop}"
        if isinstance(node, n.Index):
            return f"{self._describe(node.obj)}[...]"
        return "expression"

    # ── assignment ────────────────────────────────────

    def _eval_assign(self, node: n.Assign, scope: Scope) -> Any:
        if node.op == "=":
            value = self.eval(node.value, scope)
        else:
            current = self.eval(node.target, scope)
            value = self.binary(node.op[:-1], current, self.eval(node.value, scope))
        self.assign(node.target, value, scope)
        return value

    def _eval_update(self, node: n.Update, scope: Scope) -> Any:
        old = to_number(self.eval(node.target, scope))
        new = old + 1 if node.op == "++" else old - 1
        self.assign(node.target, new, scope)
        return new if node.prefix else old

    def assign(self, target: n.Node, value: Any, scope: Scope) -> None:
        if isinstance(target, n.Ident):
            found = scope.find(target.name)
            if found is None:
                raise ScriptRuntimeError(f"ReferenceError: {target.name} is not defined")
            if found is self.globals or target.name in found.consts:
                raise ScriptRuntimeError("TypeError: Assignment to constant variable.")
            found.vars[target.name] = value
            return
        obj = self.eval(target.obj, scope)
        key = target.prop if isinstance(target, n.Member) else self.eval(target.index, scope)
        self.set_member(obj, key, value)

    # ── member access ─────────────────────────────────

    @staticmethod
    def _property_key(key: Any) -> str:
        return key if isinstance(key, str) else js_string(key)

    @staticmethod
    def _array_index(key: Any) -> Optional[int]:
        if isinstance(key, bool):
            return None
        if isinstance(key, int):
            return key
        if isinstance(key, float) and key.is_integer():
            return int(key)
        if isinstance(key, str) and key.isdigit():
            return int(key)
        return None

    def get_member(self, obj: Any, key: Any) -> Any:
        if obj is None:
            raise ScriptRuntimeError(
                f"TypeError: Cannot read properties of undefined (reading '{js_string(key)}')"
            )
        name = self._property_key(key)

        if isinstance(obj, dict):
            if name in obj:
                return obj[name]
            if name == "hasOwnProperty":
                return NativeFunction("hasOwnProperty", lambda k=None, *_: self._property_key(k) in obj)
            return None
        if isinstance(obj, (list, str)):
            index = self._array_index(key)
            if index is not None:
                return obj[index] if 0 <= index < len(obj) else None
            if name == "length":
                return len(obj)
            methods = array_methods(obj) if isinstance(obj, list) else string_methods(obj)
            return self._method(methods, name)
        if isinstance(obj, Namespace):
            return obj.members.get(name)
        if isinstance(obj, NativeFunction):
            if name == "name":
                return obj.name
            return obj.members.get(name)
        if isinstance(obj, Closure):
            return obj.name if name == "name" else None
        if isinstance(obj, JSDate):
            return self._method(date_methods(obj), name)
        if isinstance(obj, bool):
            if name == "toString":
                return NativeFunction("toString", lambda *_: js_string(obj))
            return None
        if is_number(obj):
            return self._method(number_methods(obj), name)
        return None

    @staticmethod
    def _method(methods: dict, name: str) -> Any:
        fn = methods.get(name)
        return NativeFunction(name, fn) if fn is not None else None

    def set_member(self, obj: Any, key: Any, value: Any) -> None:
        if isinstance(obj, dict):
            obj[self._property_key(key)] = value
            return
        if isinstance(obj, list):
            index = self._array_index(key)
            if index is not None:
                if index >= len(obj):
                    obj.extend([None] * (index + 1 - len(obj)))
                obj[index] = value
                return
            if self._property_key(key) == "length" and is_number(value):
                del obj[int(value):]
                return
        if obj is None:
            raise ScriptRuntimeError(
                f"TypeError: Cannot set properties of undefined (setting '{js_string(key)}')"
            )
        # assignments to primitives and builtins are ignored, as in sloppy-mode JS

    # ── operators ─────────────────────────────────────

    def binary(self, op: str, a: Any, b: Any) -> Any:
        if op == "+":
            pa, pb = to_primitive(a), to_primitive(b)
            if isinstance(pa, str) or isinstance(pb, str):
                return js_string(pa) + js_string(pb)
            return self._arith("+", to_number(pa), to_number(pb))
        if op in ("-", "*", "/", "%", "**"):
            return self._arith(op, to_number(a), to_number(b))
        if op == "===":
            return strict_equals(a, b)
        if op == "!==":
            return not strict_equals(a, b)
        if op == "==":
            return loose_equals(a, b)
        if op == "!=":
            return not loose_equals(a, b)
        if op in ("<", ">", "<=", ">="):
            return self._compare(op, a, b)
        raise ScriptRuntimeError(f"Unsupported operator {op}")

    @staticmethod
    def _arith(op: str, x, y):
        if op == "+":
            return x + y
        if op == "-":
            return x - y
        if op == "*":
            return x * y
        if op == "/":
            if y == 0:
                if x == 0 or (isinstance(x, float) and math.isnan(x)):
                    return float("nan")
                negative = (x < 0) != (math.copysign(1, y) < 0)
                return float("-inf") if negative else float("inf")
            result = x / y
            return int(result) if isinstance(x, int) and isinstance(y, int) and result.is_integer() else result
        if op == "%":
            if y == 0 or (isinstance(x, float) and math.isinf(x)):
                return float("nan")
            if isinstance(y, float) and math.isinf(y):
                return x
            result = math.fmod(x, y)
            return int(result) if isinstance(x, int) and isinstance(y, int) else result
        return power(x, y)

    @staticmethod
    def _compare(op: str, a: Any, b: Any) -> bool:
        pa, pb = to_primitive(a), to_primitive(b)
        if isinstance(a, JSDate) or isinstance(b, JSDate):
            pa, pb = to_number(a), to_number(b)
        if not (isinstance(pa, str) and isinstance(pb, str)):
            pa, pb = to_number(pa), to_number(pb)
            if (isinstance(pa, float) and math.isnan(pa)) or (isinstance(pb, float) and math.isnan(pb)):
                return False
        if op == "<":
            return pa < pb
        if op == ">":
            return pa > pb
        if op == "<=":
            return pa <= pb
        return pa >= pb


__all__ = ["Closure", "Interpreter", "Scope"]
