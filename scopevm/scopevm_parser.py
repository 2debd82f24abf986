"""
The single-pass scanner that builds a SyntaxTree straight from source text.

There is no token stream. Each character is either part of a quoted region,
a structural Symbol that moves the cursor through the tree, or ordinary text
collected in the accumulator until the next symbol decides what it was.
"""
import sys
from typing import Callable, Dict, List, Optional

from scopevm.scopevm_ast import SyntaxNode, SyntaxTree
from scopevm.scopevm_datatypes import (
    Keyword, Location, NodeKind, ScriptIOError, ScriptState, ScriptSyntaxError,
    Symbol, UnknownError, Value,
)
from scopevm.scopevm_options import VmOptions
from scopevm.scopevm_script import Script

# Keywords that open a scope as soon as they are recognised.
SCOPE_KEYWORDS: Dict[Keyword, NodeKind] = {
    Keyword.FUNCTION: NodeKind.FUNCTION,
    Keyword.CLASS: NodeKind.CLASS,
    Keyword.ENUM: NodeKind.ENUM,
}

TYPE_KINDS = (NodeKind.CLASS, NodeKind.ENUM)


class Parser:
    """Scans a Script into a SyntaxTree rooted at a Global node."""

    def __init__(self, options: Optional[VmOptions] = None):
        self.options = options or VmOptions()
        self._handlers: Dict[Symbol, Callable[[Symbol], None]] = {
            Symbol.LPAREN: self._parse_lparen,
            Symbol.RPAREN: self._parse_rparen,
            Symbol.LBRACE: self._parse_lbrace,
            Symbol.RBRACE: self._parse_rbrace,
            Symbol.LBRACKET: self._parse_bracket,
            Symbol.RBRACKET: self._parse_bracket,
            Symbol.COMMA: self._parse_comma,
            Symbol.SEMICOLON: self._parse_semicolon,
            Symbol.TAB: self._parse_space,
            Symbol.SPACE: self._parse_space,
            Symbol.NEWLINE: self._parse_eol,
        }
        self.reset()

    def reset(self):
        self.location = Location()
        self.tree = SyntaxTree(location=self.location)
        self.cursor: SyntaxNode = self.tree.root
        self.quote: Optional[str] = None
        self.keywords: List[Keyword] = []
        self._clear_accu()

    def _dbg(self, *parts):
        if self.options.debug:
            print("[DBG]", *parts, file=sys.stderr)

    def parse(self, script: Script) -> SyntaxTree:
        self.reset()
        if not script.content:
            raise ScriptIOError(f"script '{script.name}' has no content")
        self.location.file = script.name
        self.tree.name = script.name
        self.tree.root.location = self.location.snapshot()

        for ch in script.content:
            self._scan(ch)
            self.location.advance()
        self._finish()

        script.advance(ScriptState.PARSED)
        if self.options.debug:
            from scopevm.scopevm_printer import Printer
            self._dbg(f"tree for '{script.name}':\n{Printer().dump(self.tree.root)}")
        return self.tree

    # --- Character dispatch ---

    def _scan(self, ch: str):
        if self.quote is not None:
            if ch == self.quote:
                self.quote = None
            else:
                self._append(ch)
                self.accu_quoted = True
            return
        sym = Symbol.parse(ch)
        if sym is None:
            self._append(ch)
            return
        if sym.is_quote:
            self._parse_keyword()
            if self.accu_start is None:
                self.accu_start = self.location.snapshot()
            self.quote = ch
            self.accu_quoted = True
            return
        self._parse_keyword()
        self._handlers[sym](sym)

    def _finish(self):
        if self.quote is not None:
            raise ScriptSyntaxError("unterminated string", self._token_location())
        self._parse_keyword()
        if self._pending():
            self._flush_expression()
        if not self.cursor.is_root:
            raise ScriptSyntaxError(f"unclosed {self.cursor.kind} scope", self.cursor.location)

    # --- Accumulator ---

    def _append(self, ch: str):
        if self.accu_start is None:
            self.accu_start = self.location.snapshot()
        self.accu += ch

    def _clear_accu(self):
        self.accu = ""
        self.accu_quoted = False
        self.accu_start: Optional[Location] = None

    def _pending(self) -> bool:
        return self.accu_quoted or bool(self.accu.strip())

    def _literal(self) -> str:
        return self.accu if self.accu_quoted else self.accu.strip()

    def _token_location(self) -> Location:
        if self.accu_start is not None:
            return self.accu_start
        return self.location.snapshot()

    def _flush_expression(self) -> SyntaxNode:
        # Expressions are not evaluated; the literal is kept as a leaf.
        leaf = self.cursor.create_child(NodeKind.NONE, self._token_location())
        self._fill_literal(leaf)
        self._dbg("expression:", repr(leaf.value))
        return leaf

    def _fill_literal(self, node: SyntaxNode):
        literal = self._literal()
        node.value = Value.string(literal)
        node.quoted = self.accu_quoted
        if not self.accu_quoted:
            node.name = literal
        self._clear_accu()

    def _push_fn_param(self, named: bool) -> SyntaxNode:
        param = self.cursor.create_child(NodeKind.FUNCTION_PARAM, self._token_location())
        if named:
            param.name = self._literal()
            param.quoted = self.accu_quoted
            self._clear_accu()
        elif self._pending():
            self._fill_literal(param)
        else:
            self._clear_accu()
        return param

    # --- Scopes ---

    def push_scope(self, kind: NodeKind, location: Optional[Location] = None) -> SyntaxNode:
        last = self.cursor
        self.cursor = last.create_child(kind, location or self.location)
        self._dbg("push_scope:", last.kind, "->", kind)
        return self.cursor

    def pop_scope(self) -> SyntaxNode:
        if self.cursor.is_root:
            raise UnknownError("no active scope", self.location.snapshot())
        if self._pending():
            raise ScriptSyntaxError("unprocessed expression", self._token_location())
        self._clear_accu()
        last = self.cursor
        self.cursor = last.parent
        self._dbg("pop_scope:", last.kind, "->", self.cursor.kind)
        return self.cursor

    def _parse_keyword(self):
        if self.accu_quoted:
            return
        kw = Keyword.parse(self.accu)
        if kw is None:
            return
        loc = self._token_location()
        self._clear_accu()
        self._dbg("keyword:", kw)
        kind = SCOPE_KEYWORDS.get(kw)
        if kind is not None:
            self.push_scope(kind, loc)
        self.keywords.append(kw)

    # --- Symbol handlers ---

    def _error(self, sym: Symbol) -> ScriptSyntaxError:
        return ScriptSyntaxError(f"unexpected '{sym.repr()}'", self.location.snapshot())

    def _parse_lparen(self, sym: Symbol):
        cur = self.cursor
        if cur.kind is NodeKind.FUNCTION:
            if self._pending():
                cur.name = self._literal()
                self._clear_accu()
            if cur.child_by_kind(NodeKind.FUNCTION_PARAMS) is not None:
                raise self._error(sym)
            self.push_scope(NodeKind.FUNCTION_PARAMS)
            return
        name = self._literal().strip()
        if not name:
            raise self._error(sym)
        call = self.push_scope(NodeKind.CALL, self._token_location())
        call.name = name
        self._clear_accu()

    def _parse_rparen(self, sym: Symbol):
        kind = self.cursor.kind
        if kind is NodeKind.FUNCTION_PARAMS:
            if self._pending():
                self._push_fn_param(named=True)
        elif kind is NodeKind.CALL:
            if self._pending():
                self._push_fn_param(named=False)
        else:
            raise self._error(sym)
        self.pop_scope()

    def _parse_comma(self, sym: Symbol):
        kind = self.cursor.kind
        if kind is NodeKind.FUNCTION_PARAMS:
            if not self._pending():
                raise self._error(sym)
            self._push_fn_param(named=True)
        elif kind is NodeKind.CALL:
            self._push_fn_param(named=False)
        else:
            raise self._error(sym)

    def _parse_lbrace(self, sym: Symbol):
        cur = self.cursor
        if cur.kind is NodeKind.FUNCTION:
            if self._pending():
                if cur.name is not None:
                    raise ScriptSyntaxError("unprocessed expression", self._token_location())
                cur.name = self._literal()
                self._clear_accu()
            self.push_scope(NodeKind.FUNCTION_IMPL)
            self.keywords.clear()
            return
        if cur.kind in TYPE_KINDS:
            if self._pending():
                cur.name = self._literal()
                self._clear_accu()
            self.push_scope(NodeKind.NONE)
            return
        name = self._literal() if self._pending() else None
        block = self.push_scope(NodeKind.NONE, self._token_location())
        block.name = name
        self._clear_accu()

    def _parse_rbrace(self, sym: Symbol):
        cur = self.cursor
        if cur.kind in (NodeKind.CALL, NodeKind.FUNCTION_PARAMS):
            raise self._error(sym)
        if self._pending():
            self._flush_expression()
        parent = cur.parent
        self.pop_scope()
        # An impl or type body closes together with the scope that owns it.
        if cur.kind is NodeKind.FUNCTION_IMPL or (
            cur.kind is NodeKind.NONE and parent is not None and parent.kind in TYPE_KINDS
        ):
            self.pop_scope()
        self.keywords.clear()

    def _parse_semicolon(self, sym: Symbol):
        cur = self.cursor
        if cur.kind in (NodeKind.CALL, NodeKind.FUNCTION_PARAMS):
            raise self._error(sym)
        header = cur.kind is NodeKind.FUNCTION and cur.child_by_kind(NodeKind.FUNCTION_IMPL) is None
        if header and cur.name is None and self._pending():
            cur.name = self._literal()
            self._clear_accu()
        if self._pending():
            self._flush_expression()
        if header:
            # A function header with no body is a call statement.
            cur.kind = NodeKind.CALL
            self._hoist_params(cur)
            self._dbg("reclassify:", cur.name, "-> Call")
            self.pop_scope()
        self.keywords.clear()

    def _hoist_params(self, call: SyntaxNode):
        """Turns the header's parameter list into the call's arguments."""
        params = call.child_by_kind(NodeKind.FUNCTION_PARAMS)
        if params is None:
            return
        for param in params.children:
            param.parent_id = call.index
            param.value = Value.string(param.name)
            if param.quoted:
                param.name = None
        pos = call.child_ids.index(params.index)
        call.child_ids[pos:pos + 1] = params.child_ids
        # The emptied list stays in the arena but is no longer reachable.
        params.child_ids = []

    def _parse_bracket(self, sym: Symbol):
        pass

    def _parse_space(self, sym: Symbol):
        pass

    def _parse_eol(self, sym: Symbol):
        self.location.newline()
