"""
The scope/syntax tree built by the scanner.

Nodes live in an arena (`SyntaxTree.nodes`) and refer to each other by index:
a node records its parent's index and the ordered indices of its children.
The tree owns every node; a node reaches its relatives through the arena.
"""
from typing import Iterator, List, Optional

from scopevm.scopevm_datatypes import Location, NodeKind, Value


class SyntaxNode:
    """A single scope or leaf in a SyntaxTree."""

    def __init__(self, tree: 'SyntaxTree', index: int, kind: NodeKind,
                 location: Location, parent_id: Optional[int] = None):
        self.tree = tree
        self.index = index
        self.kind = kind
        self.location = location
        self.parent_id = parent_id
        self.child_ids: List[int] = []
        self.name: Optional[str] = None
        self.value: Optional[Value] = None
        # Literal came from a quoted region (string) rather than a bare token.
        self.quoted = False

    def create_child(self, kind: NodeKind, location: Location) -> 'SyntaxNode':
        return self.tree.create_child(self, kind, location)

    @property
    def parent(self) -> Optional['SyntaxNode']:
        if self.parent_id is None:
            return None
        return self.tree.nodes[self.parent_id]

    @property
    def children(self) -> List['SyntaxNode']:
        nodes = self.tree.nodes
        return [nodes[i] for i in self.child_ids]

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def children_by_kind(self, kind: NodeKind) -> List['SyntaxNode']:
        return [child for child in self.children if child.kind is kind]

    def child_by_kind(self, kind: NodeKind) -> Optional['SyntaxNode']:
        for child in self.children:
            if child.kind is kind:
                return child
        return None

    def child_by_name(self, name: str) -> Optional['SyntaxNode']:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def ancestors(self) -> List['SyntaxNode']:
        """Parent chain from the direct parent up to and including the root."""
        out = []
        cur = self.parent
        while cur is not None:
            out.append(cur)
            cur = cur.parent
        return out

    def root(self) -> 'SyntaxNode':
        cur = self
        while cur.parent is not None:
            cur = cur.parent
        return cur

    def __repr__(self) -> str:
        parts = [f"#{self.index}", str(self.kind)]
        if self.name is not None:
            parts.append(repr(self.name))
        if self.value is not None:
            parts.append(f"-> {self.value!r}")
        return f"<SyntaxNode {' '.join(parts)}>"

    def __str__(self) -> str:
        out = str(self.kind)
        if self.name is not None:
            out += f" {self.name}"
        if self.value is not None:
            out += f" -> {self.value}"
        return out


class SyntaxTree:
    """The arena owning every node of one parsed script. Node 0 is the Global root."""

    def __init__(self, name: str = "", location: Optional[Location] = None):
        self.name = name
        self.nodes: List[SyntaxNode] = []
        root_loc = location.snapshot() if location is not None else Location(file=name)
        self.nodes.append(SyntaxNode(self, 0, NodeKind.GLOBAL, root_loc))

    @property
    def root(self) -> SyntaxNode:
        return self.nodes[0]

    def node(self, index: int) -> SyntaxNode:
        return self.nodes[index]

    def create_child(self, parent: SyntaxNode, kind: NodeKind, location: Location) -> SyntaxNode:
        if parent.tree is not self:
            raise ValueError("parent node belongs to another tree")
        child = SyntaxNode(self, len(self.nodes), kind, location.snapshot(), parent.index)
        self.nodes.append(child)
        parent.child_ids.append(child.index)
        return child

    def walk(self, start: Optional[SyntaxNode] = None) -> Iterator[SyntaxNode]:
        """Depth-first pre-order traversal, children left to right."""
        stack = [start if start is not None else self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[SyntaxNode]:
        return self.walk()

    def __repr__(self) -> str:
        return f"<SyntaxTree name={self.name!r} nodes={len(self.nodes)}>"
