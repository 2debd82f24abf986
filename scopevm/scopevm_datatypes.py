"""
Defines the core data types for the scopevm runtime.

This module provides the source locations, the closed Value union, the
keyword/symbol tables the scanner dispatches on, node kinds, script states
and the error hierarchy shared by the parser and the Vm.
"""

import collections.abc
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Optional

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


# =================================================================
# Locations
# =================================================================

@dataclass
class Location:
    """A position in a script: file identifier, offset, line and column.

    The scanner owns one live Location and advances it in place; nodes and
    errors only ever keep a snapshot.
    """
    file: str = ""
    offset: int = 1
    line: int = 1
    column: int = 1

    def snapshot(self) -> 'Location':
        return replace(self)

    def advance(self):
        self.offset += 1
        self.column += 1

    def newline(self):
        self.line += 1
        self.column = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


# =================================================================
# Errors
# =================================================================

class VmError(Exception):
    """Base class for every failure raised by the scanner or the Vm."""
    def __init__(self, message: str, location: Optional[Location] = None):
        super().__init__(message)
        self.message = message
        self.location = location

    def format(self) -> str:
        if self.location is not None:
            return f"{self.message} at {self.location}"
        return self.message

    def __str__(self) -> str:
        return self.format()


class ScriptIOError(VmError):
    """A script could not be read, or has no content to scan."""
    def format(self) -> str:
        return f"I/O: {self.message}"


class ScriptSyntaxError(VmError):
    """A structural scanning violation. Always carries a location."""
    def __init__(self, message: str, location: Location):
        super().__init__(message, location)

    def format(self) -> str:
        return f"Syntax: {self.message} at {self.location}"


class UnknownError(VmError):
    """Scope misuse, unresolved calls and registry conflicts."""
    pass


# =================================================================
# Values
# =================================================================

class ValueKind(Enum):
    STRING = "string"
    OBJECT = "object"
    ARRAY = "array"
    INTEGER = "integer"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    FUNCTION = "function"
    NONE = "none"


class Value:
    """A dynamically tagged script value.

    The variant is fixed at construction and payloads are never coerced from
    one variant to another: use the named constructors.
    """
    __slots__ = ("kind", "data")

    def __init__(self, kind: ValueKind, data: Any = None):
        self.kind = kind
        self.data = data

    @classmethod
    def string(cls, text: str) -> 'Value':
        if not isinstance(text, str):
            raise TypeError(f"string value expects str, not {type(text).__name__}")
        return cls(ValueKind.STRING, text)

    @classmethod
    def object(cls, entries: Optional[Dict[str, 'Value']] = None) -> 'Value':
        entries = dict(entries or {})
        for k, v in entries.items():
            if not isinstance(k, str):
                raise TypeError(f"object keys must be str, not {type(k).__name__}")
            if not isinstance(v, Value):
                raise TypeError(f"object entry {k!r} is not a Value")
        return cls(ValueKind.OBJECT, entries)

    @classmethod
    def array(cls, items: Optional[List['Value']] = None) -> 'Value':
        items = list(items or [])
        for item in items:
            if not isinstance(item, Value):
                raise TypeError("array items must be Values")
        return cls(ValueKind.ARRAY, items)

    @classmethod
    def integer(cls, number: int) -> 'Value':
        # bool is a subclass of int, so check it before int
        if isinstance(number, bool) or not isinstance(number, int):
            raise TypeError(f"integer value expects int, not {type(number).__name__}")
        if not INT64_MIN <= number <= INT64_MAX:
            raise OverflowError(f"integer {number} does not fit in 64 bits")
        return cls(ValueKind.INTEGER, number)

    @classmethod
    def double(cls, number: float) -> 'Value':
        if not isinstance(number, float):
            raise TypeError(f"double value expects float, not {type(number).__name__}")
        return cls(ValueKind.DOUBLE, number)

    @classmethod
    def boolean(cls, flag: bool) -> 'Value':
        if not isinstance(flag, bool):
            raise TypeError(f"boolean value expects bool, not {type(flag).__name__}")
        return cls(ValueKind.BOOLEAN, flag)

    @classmethod
    def function(cls) -> 'Value':
        return cls(ValueKind.FUNCTION)

    @classmethod
    def none(cls) -> 'Value':
        return cls(ValueKind.NONE)

    @classmethod
    def from_python(cls, obj: Any) -> 'Value':
        """Converts plain Python data (as returned by host code) into a Value."""
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls.none()
        if isinstance(obj, bool):
            return cls.boolean(obj)
        if isinstance(obj, int):
            return cls.integer(obj)
        if isinstance(obj, float):
            return cls.double(obj)
        if isinstance(obj, str):
            return cls.string(obj)
        if isinstance(obj, collections.abc.Mapping):
            return cls.object({str(k): cls.from_python(v) for k, v in obj.items()})
        if isinstance(obj, (list, tuple)):
            return cls.array([cls.from_python(v) for v in obj])
        if callable(obj):
            return cls.function()
        raise TypeError(f"cannot convert {type(obj).__name__} to a script value")

    def to_python(self) -> Any:
        match self.kind:
            case ValueKind.OBJECT:
                return {k: v.to_python() for k, v in self.data.items()}
            case ValueKind.ARRAY:
                return [v.to_python() for v in self.data]
            case ValueKind.FUNCTION:
                return "<function>"
            case _:
                return self.data

    @property
    def is_none(self) -> bool:
        return self.kind is ValueKind.NONE

    def __eq__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        return self.kind is other.kind and self.data == other.data

    def __hash__(self):
        if self.kind in (ValueKind.OBJECT, ValueKind.ARRAY):
            raise TypeError(f"unhashable value kind: {self.kind.value}")
        return hash((self.kind, self.data))

    def __repr__(self) -> str:
        if self.kind in (ValueKind.FUNCTION, ValueKind.NONE):
            return f"Value.{self.kind.value}()"
        return f"Value.{self.kind.value}({self.data!r})"

    def __str__(self) -> str:
        from scopevm.scopevm_printer import Printer
        return Printer().display(self)


# =================================================================
# Keywords and Symbols
# =================================================================

class Keyword(Enum):
    FUNCTION = "function"
    CLASS = "class"
    ENUM = "enum"
    RETURN = "return"
    PUBLIC = "public"
    PRIVATE = "private"
    PROTECTED = "protected"
    THROW = "throw"
    LET = "let"
    CONST = "const"

    @classmethod
    def parse(cls, text: str) -> Optional['Keyword']:
        return _KEYWORDS.get(text.strip())

    def __str__(self) -> str:
        return self.value


class Symbol(Enum):
    LPAREN = "("
    RPAREN = ")"
    LBRACE = "{"
    RBRACE = "}"
    LBRACKET = "["
    RBRACKET = "]"
    SINGLE_QUOTE = "'"
    DOUBLE_QUOTE = '"'
    COMMA = ","
    SEMICOLON = ";"
    TAB = "\t"
    SPACE = " "
    NEWLINE = "\n"

    @classmethod
    def parse(cls, ch: str) -> Optional['Symbol']:
        return _SYMBOLS.get(ch)

    def repr(self) -> str:
        return self.value

    @property
    def is_quote(self) -> bool:
        return self in (Symbol.SINGLE_QUOTE, Symbol.DOUBLE_QUOTE)


_KEYWORDS: Dict[str, Keyword] = {kw.value: kw for kw in Keyword}
_SYMBOLS: Dict[str, Symbol] = {sym.value: sym for sym in Symbol}


# =================================================================
# Node kinds and script states
# =================================================================

class NodeKind(Enum):
    GLOBAL = "Global"
    FUNCTION = "Function"
    FUNCTION_PARAMS = "FunctionParams"
    FUNCTION_PARAM = "FunctionParam"
    FUNCTION_IMPL = "FunctionImpl"
    CLASS = "Class"
    ENUM = "Enum"
    METHOD = "Method"
    CALL = "Call"
    # A leaf / expression accumulator, not "no kind".
    NONE = "None"

    def __str__(self) -> str:
        return self.value


class ScriptState(Enum):
    INITIAL = "initial"
    LOADED = "loaded"
    PARSED = "parsed"
    RUNNING = "running"
    FINISHED = "finished"

    @property
    def rank(self) -> int:
        return _STATE_ORDER.index(self)

    def __str__(self) -> str:
        return self.value


_STATE_ORDER: List[ScriptState] = list(ScriptState)
