"""
A pretty-printer for scopevm values and syntax trees.
"""
from scopevm.scopevm_ast import SyntaxNode, SyntaxTree
from scopevm.scopevm_datatypes import NodeKind, Value, ValueKind

LEAF_KINDS = (NodeKind.NONE, NodeKind.FUNCTION_PARAM)


class Printer:
    """Formats values for display (what `print` writes) and trees for debugging."""

    def __init__(self, indent_width=4, indent_char=" "):
        self._indent = indent_char * indent_width
        self._handlers = self._create_handlers()

    def display(self, value: Value) -> str:
        """Display form: strings are written bare, everything else as in pformat."""
        if value.kind is ValueKind.STRING:
            return value.data
        return self.pformat(value)

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        if isinstance(obj, Value):
            return self._handlers[obj.kind](obj, level)
        if isinstance(obj, SyntaxTree):
            return self.dump(obj.root, level)
        if isinstance(obj, SyntaxNode):
            return self.dump(obj, level)
        return repr(obj)

    def _create_handlers(self):
        return {
            ValueKind.STRING: self._pformat_str,
            ValueKind.OBJECT: self._pformat_object,
            ValueKind.ARRAY: self._pformat_array,
            ValueKind.INTEGER: self._pformat_primitive,
            ValueKind.DOUBLE: self._pformat_primitive,
            ValueKind.BOOLEAN: self._pformat_bool,
            ValueKind.FUNCTION: self._pformat_function,
            ValueKind.NONE: self._pformat_none,
        }

    def _pformat_primitive(self, value, level):
        return repr(value.data)

    def _pformat_str(self, value, level):
        # Basic quoting, does not handle complex escapes
        escaped = value.data.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        return f'"{escaped}"'

    def _pformat_bool(self, value, level):
        return 'true' if value.data else 'false'

    def _pformat_none(self, value, level):
        return 'none'

    def _pformat_function(self, value, level):
        return '<function>'

    def _pformat_array(self, value, level):
        return "[" + ", ".join(self.pformat(v, level) for v in value.data) + "]"

    def _pformat_object(self, value, level):
        items = ", ".join(f"{k}: {self.pformat(v, level)}" for k, v in value.data.items())
        return "{" + items + "}"

    # --- Tree dump ---

    def _node_header(self, node: SyntaxNode) -> str:
        out = str(node.kind)
        if node.name is not None:
            out += f" {node.name}"
        if node.value is not None:
            out += f" = {self.pformat(node.value)}"
        return out

    def dump(self, node: SyntaxNode, level=0) -> str:
        """Indented dump of a node and its descendants, one line per leaf."""
        lines = []
        # (node, level, closing) entries; closing entries emit a scope's "}".
        stack = [(node, level, False)]
        while stack:
            cur, depth, closing = stack.pop()
            indent = self._indent * depth
            if closing:
                lines.append(f"{indent}}}")
                continue
            children = cur.children
            if cur.kind in LEAF_KINDS and not children:
                lines.append(f"{indent}{self._node_header(cur)}")
                continue
            lines.append(f"{indent}{self._node_header(cur)} {{")
            stack.append((cur, depth, True))
            stack.extend((child, depth + 1, False) for child in reversed(children))
        return "\n".join(lines)
