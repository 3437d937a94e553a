"""
Recursive-descent parser for widget scripts.

Only the grammar listed in ``nodes.py`` is accepted; anything else is a
syntax error rather than a silent pass-through.
"""

from typing import List, Optional

from designer.script import nodes as n
from designer.script.errors import ScriptSyntaxError
from designer.script.lexer import DECLARATION_KEYWORDS, Token, tokenize
from designer.script.values import format_number

ASSIGN_OPS = ("=", "+=", "-=", "*=", "/=", "%=", "**=")

# lowest to highest precedence
_BINARY_LEVELS = (
    ("??",),
    ("||",),
    ("&&",),
    ("==", "!=", "===", "!=="),
    ("<", ">", "<=", ">="),
    ("+", "-"),
    ("*", "/", "%"),
)
_LOGICAL = {"??", "||", "&&"}


class Parser:
    def __init__(self, source: str):
        self.tokens: List[Token] = tokenize(source)
        self.pos = 0

    # ── token helpers ─────────────────────────────────

    @property
    def tok(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int = 1) -> Token:
        i = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[i]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.type != "EOF":
            self.pos += 1
        return token

    def error(self, token: Optional[Token] = None, message: Optional[str] = None) -> ScriptSyntaxError:
        token = token or self.tok
        if message is None:
            if token.type == "EOF":
                message = "Unexpected end of input"
            else:
                message = f"Unexpected token '{token.value}'"
        return ScriptSyntaxError(message, token.line, token.column)

    def expect(self, value: str) -> Token:
        if not self.tok.is_punct(value):
            raise self.error()
        return self.advance()

    def accept(self, value: str) -> bool:
        if self.tok.is_punct(value):
            self.advance()
            return True
        return False

    def expect_ident(self) -> str:
        if self.tok.type != "IDENT":
            raise self.error()
        return self.advance().value

    def consume_semicolon(self) -> None:
        self.accept(";")

    # ── statements ────────────────────────────────────

    def parse_program(self) -> n.Program:
        body = []
        while self.tok.type != "EOF":
            body.append(self.statement())
        return n.Program(tuple(body))

    def parse_expression_only(self) -> n.Node:
        expr = self.expression()
        if self.tok.type != "EOF":
            raise self.error()
        return expr

    def statement(self) -> n.Node:
        tok = self.tok
        if tok.type == "KEYWORD":
            if tok.value in DECLARATION_KEYWORDS:
                decl = self.var_decl()
                self.consume_semicolon()
                return decl
            if tok.value == "return":
                return self.return_stmt()
            if tok.value == "if":
                return self.if_stmt()
            if tok.value == "for":
                return self.for_stmt()
            if tok.value == "while":
                self.advance()
                self.expect("(")
                test = self.expression()
                self.expect(")")
                return n.While(test, self.statement())
            if tok.value in ("break", "continue"):
                self.advance()
                self.consume_semicolon()
                return n.Break() if tok.value == "break" else n.Continue()
        if tok.is_punct("{"):
            return self.block()
        if tok.is_punct(";"):
            self.advance()
            return n.Empty()

        expr = self.expression()
        self.consume_semicolon()
        return n.ExprStmt(expr)

    def block(self) -> n.Block:
        self.expect("{")
        body = []
        while not self.tok.is_punct("}"):
            if self.tok.type == "EOF":
                raise self.error()
            body.append(self.statement())
        self.advance()
        return n.Block(tuple(body))

    def var_decl(self) -> n.VarDecl:
        kind = self.advance().value
        declarations = []
        while True:
            name_tok = self.tok
            name = self.expect_ident()
            init = None
            if self.accept("="):
                init = self.assignment()
            elif kind == "const":
                raise self.error(name_tok, "Missing initializer in const declaration")
            declarations.append((name, init))
            if not self.accept(","):
                break
        return n.VarDecl(kind, tuple(declarations))

    def return_stmt(self) -> n.Return:
        ret = self.advance()
        nxt = self.tok
        if nxt.type == "EOF" or nxt.is_punct(";", "}") or nxt.line != ret.line:
            self.consume_semicolon()
            return n.Return(None)
        arg = self.expression()
        self.consume_semicolon()
        return n.Return(arg)

    def if_stmt(self) -> n.If:
        self.advance()
        self.expect("(")
        test = self.expression()
        self.expect(")")
        consequent = self.statement()
        alternate = None
        if self.tok.is_keyword("else"):
            self.advance()
            alternate = self.statement()
        return n.If(test, consequent, alternate)

    def for_stmt(self) -> n.Node:
        self.advance()
        self.expect("(")

        if (
            self.tok.type == "KEYWORD"
            and self.tok.value in DECLARATION_KEYWORDS
            and self.peek(1).type == "IDENT"
            and self.peek(2).is_keyword("of")
        ):
            kind = self.advance().value
            name = self.expect_ident()
            self.advance()  # of
            iterable = self.assignment()
            self.expect(")")
            return n.ForOf(kind, name, iterable, self.statement())

        init = None
        if not self.tok.is_punct(";"):
            if self.tok.type == "KEYWORD" and self.tok.value in DECLARATION_KEYWORDS:
                init = self.var_decl()
            else:
                init = n.ExprStmt(self.expression())
        self.expect(";")
        test = None if self.tok.is_punct(";") else self.expression()
        self.expect(";")
        update = None if self.tok.is_punct(")") else self.expression()
        self.expect(")")
        return n.For(init, test, update, self.statement())

    # ── expressions ───────────────────────────────────

    def expression(self) -> n.Node:
        return self.assignment()

    def assignment(self) -> n.Node:
        if self.tok.type == "IDENT" and self.peek().is_punct("=>"):
            param = self.advance().value
            self.advance()
            return self.arrow_body((param,))
        if self.tok.is_punct("(") and self._is_arrow_params():
            return self.arrow()

        target_tok = self.tok
        left = self.conditional()
        if self.tok.type == "PUNCT" and self.tok.value in ASSIGN_OPS:
            if not isinstance(left, (n.Ident, n.Member, n.Index)):
                raise self.error(target_tok, "Invalid left-hand side in assignment")
            op = self.advance().value
            return n.Assign(op, left, self.assignment())
        return left

    def _is_arrow_params(self) -> bool:
        i = 1
        if self.peek(i).is_punct(")"):
            return self.peek(i + 1).is_punct("=>")
        while True:
            if self.peek(i).type != "IDENT":
                return False
            i += 1
            if self.peek(i).is_punct(")"):
                return self.peek(i + 1).is_punct("=>")
            if not self.peek(i).is_punct(","):
                return False
            i += 1

    def arrow(self) -> n.Arrow:
        self.expect("(")
        params = []
        while not self.tok.is_punct(")"):
            params.append(self.expect_ident())
            if not self.accept(","):
                break
        self.expect(")")
        self.expect("=>")
        return self.arrow_body(tuple(params))

    def arrow_body(self, params) -> n.Arrow:
        if self.tok.is_punct("{"):
            return n.Arrow(params, self.block(), expression=False)
        return n.Arrow(params, self.assignment(), expression=True)

    def conditional(self) -> n.Node:
        test = self.binary(0)
        if self.accept("?"):
            consequent = self.assignment()
            self.expect(":")
            alternate = self.assignment()
            return n.Conditional(test, consequent, alternate)
        return test

    def binary(self, level: int) -> n.Node:
        if level == len(_BINARY_LEVELS):
            return self.exponent()
        ops = _BINARY_LEVELS[level]
        left = self.binary(level + 1)
        while self.tok.type == "PUNCT" and self.tok.value in ops:
            op = self.advance().value
            right = self.binary(level + 1)
            if op in _LOGICAL:
                left = n.Logical(op, left, right)
            else:
                left = n.Binary(op, left, right)
        return left

    def exponent(self) -> n.Node:
        base = self.unary()
        if self.accept("**"):
            return n.Binary("**", base, self.exponent())
        return base

    def unary(self) -> n.Node:
        tok = self.tok
        if tok.is_punct("!", "-", "+"):
            self.advance()
            return n.Unary(tok.value, self.unary())
        if tok.is_keyword("typeof"):
            self.advance()
            return n.Unary("typeof", self.unary())
        if tok.is_punct("++", "--"):
            self.advance()
            target = self.unary()
            self._check_update_target(target, tok)
            return n.Update(tok.value, True, target)
        return self.postfix()

    def postfix(self) -> n.Node:
        start = self.tok
        expr = self.call_member()
        tok = self.tok
        if tok.is_punct("++", "--") and tok.line == self.tokens[self.pos - 1].line:
            self._check_update_target(expr, start)
            self.advance()
            return n.Update(tok.value, False, expr)
        return expr

    def _check_update_target(self, target: n.Node, tok: Token) -> None:
        if not isinstance(target, (n.Ident, n.Member, n.Index)):
            raise self.error(tok, "Invalid left-hand side expression in update operation")

    def property_name(self) -> str:
        tok = self.tok
        if tok.type in ("IDENT", "KEYWORD"):
            self.advance()
            return tok.value
        raise self.error()

    def call_member(self) -> n.Node:
        if self.tok.is_keyword("new"):
            self.advance()
            callee: n.Node = n.Ident(self.expect_ident())
            while self.accept("."):
                callee = n.Member(callee, self.property_name())
            args = self.arguments() if self.tok.is_punct("(") else ()
            expr: n.Node = n.New(callee, args)
        else:
            expr = self.primary()

        while True:
            if self.accept("."):
                expr = n.Member(expr, self.property_name())
            elif self.accept("?."):
                if self.tok.is_punct("("):
                    expr = n.Call(expr, self.arguments(), optional=True)
                elif self.accept("["):
                    index = self.expression()
                    self.expect("]")
                    expr = n.Index(expr, index, optional=True)
                else:
                    expr = n.Member(expr, self.property_name(), optional=True)
            elif self.accept("["):
                index = self.expression()
                self.expect("]")
                expr = n.Index(expr, index)
            elif self.tok.is_punct("("):
                expr = n.Call(expr, self.arguments())
            else:
                return expr

    def arguments(self) -> tuple:
        self.expect("(")
        args = []
        while not self.tok.is_punct(")"):
            if self.accept("..."):
                args.append(n.Spread(self.assignment()))
            else:
                args.append(self.assignment())
            if not self.accept(","):
                break
        self.expect(")")
        return tuple(args)

    def primary(self) -> n.Node:
        tok = self.tok
        if tok.type in ("NUM", "STR"):
            self.advance()
            return n.Literal(tok.value)
        if tok.type == "TEMPLATE":
            self.advance()
            return self.template_literal(tok)
        if tok.type == "IDENT":
            self.advance()
            return n.Ident(tok.value)
        if tok.type == "KEYWORD":
            if tok.value in ("true", "false"):
                self.advance()
                return n.Literal(tok.value == "true")
            if tok.value in ("null", "undefined"):
                self.advance()
                return n.Literal(None)
            raise self.error()
        if tok.is_punct("("):
            self.advance()
            expr = self.expression()
            self.expect(")")
            return expr
        if tok.is_punct("["):
            return self.array_literal()
        if tok.is_punct("{"):
            return self.object_literal()
        raise self.error()

    def template_literal(self, tok: Token) -> n.TemplateLit:
        quasis, expressions = [], []
        for part in tok.value:
            if part[0] == "str":
                quasis.append(part[1])
            else:
                _, source, line, column = part
                try:
                    expressions.append(Parser(source).parse_expression_only())
                except ScriptSyntaxError as e:
                    raise ScriptSyntaxError(f"Invalid template expression: {e}", line, column) from None
        return n.TemplateLit(tuple(quasis), tuple(expressions))

    def array_literal(self) -> n.ArrayLit:
        self.expect("[")
        elements = []
        while not self.tok.is_punct("]"):
            if self.accept("..."):
                elements.append(n.Spread(self.assignment()))
            else:
                elements.append(self.assignment())
            if not self.accept(","):
                break
        self.expect("]")
        return n.ArrayLit(tuple(elements))

    def object_literal(self) -> n.ObjectLit:
        self.expect("{")
        props = []
        while not self.tok.is_punct("}"):
            tok = self.tok
            if self.accept("..."):
                props.append((None, self.assignment()))
            elif self.accept("["):
                key = self.assignment()
                self.expect("]")
                self.expect(":")
                props.append((key, self.assignment()))
            else:
                if tok.type in ("IDENT", "KEYWORD", "STR"):
                    key = tok.value
                elif tok.type == "NUM":
                    key = format_number(tok.value)
                else:
                    raise self.error()
                self.advance()
                if self.accept(":"):
                    props.append((key, self.assignment()))
                elif tok.type == "IDENT":
                    props.append((key, n.Ident(key)))
                else:
                    raise self.error()
            if not self.accept(","):
                break
        self.expect("}")
        return n.ObjectLit(tuple(props))


def parse(source: str) -> n.Program:
    return Parser(source).parse_program()
