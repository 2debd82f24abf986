# scopevm_runtime.py

import os
import sys
from dataclasses import dataclass
from typing import Callable, Dict, List, Literal, Optional

from scopevm.scopevm_ast import SyntaxNode, SyntaxTree
from scopevm.scopevm_datatypes import (
    Location, NodeKind, ScriptIOError, ScriptState, UnknownError, Value, VmError,
)
from scopevm.scopevm_options import VmOptions
from scopevm.scopevm_parser import Parser
from scopevm.scopevm_printer import Printer
from scopevm.scopevm_script import Script

BANNER = "scopevm"
VERSION = "0.1.0"

NativeFn = Callable[[List[Value]], Value]


# ===================================================================
# 1. The Vm
# ===================================================================

class Vm:
    """Owns scripts, their parsed trees and the native function registry."""

    def __init__(self, options: Optional[VmOptions] = None):
        self.options = options or VmOptions()
        self.version = VERSION
        self.scripts: List[Script] = []
        self.asts: List[SyntaxTree] = []
        self.native_funcs: Dict[str, NativeFn] = {}
        # Parameter bindings of user functions being invoked, innermost last.
        self.frames: List[Dict[str, Value]] = []
        self.add_native_func("println", self.native_println)
        self.add_native_func("print", self.native_print)

    def _dbg(self, *parts):
        if self.options.debug:
            print("[DBG]", *parts, file=sys.stderr)

    # --- Registry and scripts ---

    def add_native_func(self, name: str, func: NativeFn):
        if not callable(func):
            raise TypeError(f"native function '{name}' must be callable")
        if name in self.native_funcs:
            raise UnknownError(f"native function '{name}' already registered")
        self.native_funcs[name] = func

    def add_script(self, script: Script) -> Script:
        if self.script(script.name) is not None:
            raise UnknownError(f"script '{script.name}' already registered")
        self.scripts.append(script)
        return script

    def script(self, name: str) -> Optional[Script]:
        for s in self.scripts:
            if s.name == name:
                return s
        return None

    def load(self, path: str | os.PathLike, name: Optional[str] = None, *, base_dir: Optional[str] = None) -> Script:
        return self.add_script(Script.import_(path, name, base_dir=base_dir))

    def reset(self):
        self.scripts.clear()
        self.asts.clear()
        self.frames.clear()

    # --- Execution ---

    def run(self):
        parser = Parser(self.options)
        for script in self.scripts:
            if script.state is ScriptState.INITIAL:
                self._dbg("Load Script:", script.name)
                script.load()
            if script.state is ScriptState.LOADED:
                self._dbg("Parse Script:", script.name)
                self.asts.append(parser.parse(script))

        for tree in self.asts:
            self.execute_tree(tree)

    def execute_tree(self, tree: SyntaxTree):
        self._dbg("Execute AST:", tree.name)
        script = self.script(tree.name)
        if script is not None:
            script.advance(ScriptState.RUNNING)
        self.execute_node(tree.root)
        if script is not None:
            script.advance(ScriptState.FINISHED)

    def execute_node(self, node: SyntaxNode):
        """Pre-order walk from `node`, dispatching every Call on the way.

        The walk keeps its own stack, and invoked function bodies are pushed
        onto it, so neither tree depth nor call depth uses Python frames.
        A None entry marks the end of an invoked body and pops its frame.
        """
        base = len(self.frames)
        stack: List[Optional[SyntaxNode]] = [node]
        try:
            while stack:
                cur = stack.pop()
                if cur is None:
                    self.frames.pop()
                    continue
                self._dbg("Execute node:", cur)
                if cur.kind is NodeKind.FUNCTION and self.options.invoke_user_functions:
                    # Bodies only run when the function is called.
                    continue
                stack.extend(reversed(cur.children))
                if cur.kind is not NodeKind.CALL:
                    continue
                func = self.find_function(cur) if self.options.invoke_user_functions else None
                if func is None:
                    self.execute_function_call(cur)
                    continue
                impl = self._enter_function(func, cur)
                stack.append(None)
                if impl is not None:
                    stack.extend(reversed(impl.children))
        finally:
            del self.frames[base:]

    def reachable_nodes(self, node: SyntaxNode) -> List[SyntaxNode]:
        """The call site's ancestors plus the top-level nodes of every parsed tree."""
        out = node.ancestors()
        for tree in self.asts:
            out.extend(tree.root.children)
        return out

    def find_function(self, call: SyntaxNode) -> Optional[SyntaxNode]:
        if call.name is None:
            return None
        for candidate in self.reachable_nodes(call):
            if candidate.kind is NodeKind.FUNCTION and candidate.name == call.name:
                return candidate
        return None

    def execute_function_call(self, node: SyntaxNode) -> Value:
        func = self.find_function(node)
        if func is not None:
            if not self.options.invoke_user_functions:
                self._dbg("Script function", node.name, "found, invocation disabled")
                return Value.none()
            return self.invoke_function(func, node)

        native = self.native_funcs.get(node.name) if node.name is not None else None
        if native is not None:
            result = native(self.call_args(node))
            return result if isinstance(result, Value) else Value.from_python(result)

        name = f"'{node.name}'" if node.name is not None else "<unnamed>"
        raise UnknownError(f"Unknown function {name}", node.location)

    def call_args(self, call: SyntaxNode) -> List[Value]:
        return [self._arg_value(p) for p in call.children_by_kind(NodeKind.FUNCTION_PARAM)]

    def _arg_value(self, param: SyntaxNode) -> Value:
        if param.value is None:
            return Value.none()
        # Bare identifiers resolve against the innermost call frame.
        if self.frames and not param.quoted and param.name in self.frames[-1]:
            return self.frames[-1][param.name]
        return param.value

    def _enter_function(self, func: SyntaxNode, call: SyntaxNode) -> Optional[SyntaxNode]:
        """Binds the call's arguments in a new frame and returns the body to run."""
        if len(self.frames) >= self.options.max_call_depth:
            raise UnknownError("maximum call depth exceeded", call.location)
        params = func.child_by_kind(NodeKind.FUNCTION_PARAMS)
        names = [p.name for p in params.children_by_kind(NodeKind.FUNCTION_PARAM)] if params else []
        args = self.call_args(call)
        if len(args) > len(names):
            raise UnknownError(
                f"function '{func.name}' expects {len(names)} argument(s), got {len(args)}",
                call.location,
            )
        args += [Value.none()] * (len(names) - len(args))
        self._dbg("Invoke", func.name, "with", dict(zip(names, args)))
        self.frames.append(dict(zip(names, args)))
        return func.child_by_kind(NodeKind.FUNCTION_IMPL)

    def invoke_function(self, func: SyntaxNode, call: SyntaxNode) -> Value:
        impl = self._enter_function(func, call)
        try:
            if impl is not None:
                for child in impl.children:
                    self.execute_node(child)
        finally:
            self.frames.pop()
        return Value.none()

    # --- Natives ---

    @staticmethod
    def _write_values(args: List[Value], end: str = "") -> Value:
        printer = Printer()
        try:
            out = sys.stdout
            for a in args:
                out.write(printer.display(a))
            out.write(end)
        except OSError as e:
            raise ScriptIOError(f"cannot write to stdout: {e}") from e
        return Value.none()

    def native_print(self, args: List[Value]) -> Value:
        return self._write_values(args)

    def native_println(self, args: List[Value]) -> Value:
        return self._write_values(args, end="\n")


# ===================================================================
# 2. Script Execution
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Optional[Value] = None
    error_message: Optional[str] = None
    error_location: Optional[Location] = None
    error: Optional[VmError] = None

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_location is not None and not msg.startswith("Error on line "):
            return f"Error on line {self.error_location.line}, col {self.error_location.column}: {msg}"
        return msg


class ScriptRunner:
    """Parses and executes inline source through a Vm."""

    def __init__(self, vm: Optional[Vm] = None, options: Optional[VmOptions] = None):
        self.vm = vm or Vm(options)

    def _source_context(self, source: str, line: int, col: Optional[int], radius: int = 2) -> str:
        lines = source.splitlines()
        if not line or line < 1 or line > len(lines):
            return ""
        start = max(1, line - radius)
        end = min(len(lines), line + radius)
        width = len(str(end))
        out = []
        for i in range(start, end + 1):
            prefix = ">" if i == line else " "
            ln = str(i).rjust(width)
            out.append(f"{prefix} {ln} | {lines[i - 1]}")
            if i == line and col is not None:
                caret = " " * max(col - 1, 0)
                out.append(f"  {' ' * width} | {caret}^")
        return "\n".join(out)

    def format_vm_error(self, e: VmError, source: str) -> str:
        msg = e.format()
        loc = e.location
        if loc is not None:
            context = self._source_context(source, loc.line, loc.column)
            if context:
                msg = f"{msg}\n{context}"
        return msg

    def handle_script(self, source_code: str, name: str = "script") -> ExecutionResult:
        """The main entry point to execute a script."""
        self.vm.reset()
        if not source_code:
            return ExecutionResult(status='success', value=Value.none())
        try:
            self.vm.add_script(Script(f"virtual://{name}", name, source_code))
            self.vm.run()
        except VmError as e:
            return ExecutionResult(
                status='error',
                error_message=self.format_vm_error(e, source_code),
                error_location=e.location,
                error=e,
            )
        return ExecutionResult(status='success', value=Value.none())
