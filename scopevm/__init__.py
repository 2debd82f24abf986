from scopevm.scopevm_datatypes import (
    Keyword, Location, NodeKind, ScriptIOError, ScriptState, ScriptSyntaxError,
    Symbol, UnknownError, Value, ValueKind, VmError,
)
from scopevm.scopevm_ast import SyntaxNode, SyntaxTree
from scopevm.scopevm_options import VmOptions
from scopevm.scopevm_script import Script
from scopevm.scopevm_parser import Parser
from scopevm.scopevm_runtime import BANNER, VERSION, ExecutionResult, ScriptRunner, Vm

__all__ = [
    "BANNER", "VERSION",
    "ExecutionResult", "Keyword", "Location", "NodeKind", "Parser", "Script",
    "ScriptIOError", "ScriptRunner", "ScriptState", "ScriptSyntaxError",
    "Symbol", "SyntaxNode", "SyntaxTree", "UnknownError", "Value", "ValueKind",
    "Vm", "VmError", "VmOptions",
]
