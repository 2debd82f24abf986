import pytest
from scopevm.scopevm_ast import SyntaxTree
from scopevm.scopevm_datatypes import Location, NodeKind, Value


def _loc(line=1, column=1):
    return Location("t", 1, line, column)


def test_new_tree_has_single_global_root():
    tree = SyntaxTree("t")
    assert len(tree) == 1
    assert tree.root.kind is NodeKind.GLOBAL
    assert tree.root.parent is None
    assert tree.root.is_root
    assert tree.root.index == 0


def test_create_child_links_both_ways():
    tree = SyntaxTree("t")
    fn = tree.root.create_child(NodeKind.FUNCTION, _loc())
    params = fn.create_child(NodeKind.FUNCTION_PARAMS, _loc(1, 5))
    assert fn.parent is tree.root
    assert params.parent is fn
    assert tree.root.children == [fn]
    assert fn.child_ids == [params.index]
    assert tree.node(params.index) is params


def test_child_location_is_a_snapshot():
    tree = SyntaxTree("t")
    live = _loc()
    child = tree.root.create_child(NodeKind.CALL, live)
    live.advance()
    assert child.location.column == 1


def test_lookups_by_kind_and_name():
    tree = SyntaxTree("t")
    root = tree.root
    a = root.create_child(NodeKind.FUNCTION, _loc())
    a.name = "a"
    b = root.create_child(NodeKind.CALL, _loc())
    b.name = "b"
    c = root.create_child(NodeKind.FUNCTION, _loc())
    c.name = "c"
    assert root.children_by_kind(NodeKind.FUNCTION) == [a, c]
    assert root.child_by_kind(NodeKind.FUNCTION) is a
    assert root.child_by_kind(NodeKind.ENUM) is None
    assert root.child_by_name("b") is b
    assert root.child_by_name("zzz") is None


def test_ancestors_and_root():
    tree = SyntaxTree("t")
    fn = tree.root.create_child(NodeKind.FUNCTION, _loc())
    impl = fn.create_child(NodeKind.FUNCTION_IMPL, _loc())
    call = impl.create_child(NodeKind.CALL, _loc())
    assert call.ancestors() == [impl, fn, tree.root]
    assert call.root() is tree.root
    assert tree.root.ancestors() == []


def test_walk_is_preorder_left_to_right():
    tree = SyntaxTree("t")
    a = tree.root.create_child(NodeKind.FUNCTION, _loc())
    a1 = a.create_child(NodeKind.FUNCTION_PARAMS, _loc())
    a2 = a.create_child(NodeKind.FUNCTION_IMPL, _loc())
    b = tree.root.create_child(NodeKind.CALL, _loc())
    assert list(tree.walk()) == [tree.root, a, a1, a2, b]
    assert list(tree.walk(a)) == [a, a1, a2]


def test_create_child_rejects_foreign_parent():
    one = SyntaxTree("one")
    two = SyntaxTree("two")
    with pytest.raises(ValueError):
        one.create_child(two.root, NodeKind.CALL, _loc())


def test_node_str_shows_kind_name_and_value():
    tree = SyntaxTree("t")
    param = tree.root.create_child(NodeKind.FUNCTION_PARAM, _loc())
    param.value = Value.string("hi")
    assert str(param) == "FunctionParam -> hi"
    call = tree.root.create_child(NodeKind.CALL, _loc())
    call.name = "println"
    assert str(call) == "Call println"
