import pytest

from scopevm.scopevm_ast import SyntaxTree
from scopevm.scopevm_datatypes import (
    Location, NodeKind, ScriptIOError, ScriptState, ScriptSyntaxError, UnknownError, Value,
)
from scopevm.scopevm_options import VmOptions
from scopevm.scopevm_parser import Parser
from scopevm.scopevm_runtime import BANNER, VERSION, Vm
from scopevm.scopevm_script import Script


def run_source(source, vm=None, name="test"):
    vm = vm or Vm()
    vm.add_script(Script(f"virtual://{name}", name, source))
    vm.run()
    return vm


def _call_tree(name, *args):
    tree = SyntaxTree("manual")
    call = tree.root.create_child(NodeKind.CALL, Location("manual", 1, 3, 7))
    call.name = name
    for a in args:
        p = call.create_child(NodeKind.FUNCTION_PARAM, Location("manual"))
        p.value = a
    return tree, call


# --- Native dispatch ---

def test_println_dispatch_writes_line(capsys):
    vm = Vm()
    tree, _ = _call_tree("println", Value.string("Hello!"))
    vm.execute_node(tree.root)
    assert capsys.readouterr().out == "Hello!\n"


def test_print_has_no_line_break(capsys):
    run_source('print("a", "b");\nprint("c");')
    assert capsys.readouterr().out == "abc"


def test_print_display_forms(capsys):
    vm = Vm()
    tree, _ = _call_tree("println", Value.integer(3), Value.string(" "), Value.boolean(True), Value.none())
    vm.execute_node(tree.root)
    assert capsys.readouterr().out == "3 truenone\n"


def test_missing_argument_value_passes_none():
    seen = []
    vm = Vm()
    vm.add_native_func("probe", lambda args: seen.extend(args))
    run_source('probe(, "x");', vm)
    assert seen == [Value.none(), Value.string("x")]


def test_native_result_is_coerced_to_value():
    vm = Vm()
    vm.add_native_func("answer", lambda args: 42)
    _, call = _call_tree("answer")
    assert vm.execute_function_call(call) == Value.integer(42)


def test_native_errors_propagate():
    def boom(args):
        raise UnknownError("boom")
    vm = Vm()
    vm.add_native_func("boom", boom)
    with pytest.raises(UnknownError, match="boom"):
        run_source("boom();", vm)


# --- Registry ---

def test_default_natives_registered():
    vm = Vm()
    assert set(vm.native_funcs) == {"print", "println"}


def test_duplicate_native_registration_rejected(capsys):
    vm = Vm()
    calls = []
    vm.add_native_func("hook", lambda args: calls.append("first"))
    with pytest.raises(UnknownError) as exc:
        vm.add_native_func("hook", lambda args: calls.append("second"))
    assert "hook" in exc.value.message
    run_source("hook();", vm)
    assert calls == ["first"]
    with pytest.raises(UnknownError):
        vm.add_native_func("println", lambda args: None)


def test_native_must_be_callable():
    with pytest.raises(TypeError):
        Vm().add_native_func("x", "not callable")


# --- Resolution ---

def test_unknown_function_fails_with_name_and_location():
    vm = Vm()
    tree, _ = _call_tree("nope")
    with pytest.raises(UnknownError) as exc:
        vm.execute_node(tree.root)
    assert exc.value.message == "Unknown function 'nope'"
    assert exc.value.location == Location("manual", 1, 3, 7)


def test_unknown_unnamed_call():
    vm = Vm()
    tree, call = _call_tree(None)
    with pytest.raises(UnknownError, match="<unnamed>"):
        vm.execute_function_call(call)


def test_unknown_function_from_script_source():
    with pytest.raises(UnknownError) as exc:
        run_source('\n  missing("x");')
    assert "'missing'" in exc.value.message
    assert (exc.value.location.line, exc.value.location.column) == (2, 3)


def test_user_function_shadows_native(capsys):
    run_source('function println(a) { }\nprintln("shadowed");')
    assert capsys.readouterr().out == ""


def test_definition_walk_visits_function_bodies(capsys):
    # Function bodies are walked where they are declared; calling the
    # function is resolved but does not run the body again.
    run_source('function hello() { print("Hello!"); }\nhello();\nhello();')
    assert capsys.readouterr().out == "Hello!"


def test_functions_resolve_across_scripts(capsys):
    vm = Vm()
    vm.add_script(Script("virtual://lib", "lib", "function helper() { }"))
    vm.add_script(Script("virtual://main", "main", "helper();"))
    vm.run()
    assert [t.name for t in vm.asts] == ["lib", "main"]


def test_reachable_nodes_are_ancestors_plus_top_levels():
    vm = Vm()
    tree = Parser().parse(Script("virtual://t", "t", "function f() { g(); }\nfunction h() { }"))
    vm.asts.append(tree)
    f, h = tree.root.children
    call = f.child_by_kind(NodeKind.FUNCTION_IMPL).children[0]
    reachable = vm.reachable_nodes(call)
    assert reachable[:3] == [f.child_by_kind(NodeKind.FUNCTION_IMPL), f, tree.root]
    assert reachable[3:] == [f, h]


def test_nested_function_not_reachable_from_outside():
    with pytest.raises(UnknownError):
        run_source("{ function inner() { } }\ninner();")


# --- Invoking script functions ---

def invoking_vm():
    return Vm(VmOptions(invoke_user_functions=True))


def test_invocation_binds_parameters(capsys):
    src = """
    function greet(who, punct) {
        print("Hello, ", who, punct);
        println();
    }
    greet("World", "!");
    greet("again");
    """
    run_source(src, invoking_vm())
    assert capsys.readouterr().out == "Hello, World!\nHello, againnone\n"


def test_invocation_skips_bodies_at_declaration(capsys):
    run_source('function hello() { print("Hello!"); }', invoking_vm())
    assert capsys.readouterr().out == ""


def test_invocation_passes_bound_values_through(capsys):
    src = """
    function inner(x) { println(x); }
    function outer(y) { inner(y); }
    outer("deep");
    """
    run_source(src, invoking_vm())
    assert capsys.readouterr().out == "deep\n"


def test_quoted_argument_is_not_a_parameter_reference(capsys):
    run_source('function f(a) { println("a", a); }\nf("v");', invoking_vm())
    assert capsys.readouterr().out == "av\n"


def test_invocation_rejects_surplus_arguments():
    with pytest.raises(UnknownError, match="expects 1 argument"):
        run_source('function f(a) { }\nf("1", "2");', invoking_vm())


def test_recursion_is_bounded():
    vm = Vm(VmOptions(invoke_user_functions=True, max_call_depth=8))
    with pytest.raises(UnknownError, match="maximum call depth"):
        run_source("function loop() { loop(); }\nloop();", vm)
    assert vm.frames == []


def test_recursion_limit_holds_with_default_options():
    vm = invoking_vm()
    with pytest.raises(UnknownError, match="maximum call depth"):
        run_source("function loop() { { loop(); } }\nloop();", vm)
    assert vm.frames == []


def test_call_arguments_run_after_the_invoked_body(capsys):
    src = 'function f(a) { print("body "); }\nf(println("args"));'
    run_source(src, invoking_vm())
    assert capsys.readouterr().out == "body args\n"


def test_invoke_function_directly():
    vm = run_source('function f(a) { }', invoking_vm())
    fn = vm.asts[0].root.children[0]
    _, call = _call_tree("f", Value.string("x"))
    assert vm.invoke_function(fn, call) == Value.none()
    assert vm.frames == []


# --- run() lifecycle ---

def test_run_advances_script_states():
    vm = run_source('print("");')
    assert vm.script("test").state is ScriptState.FINISHED
    assert len(vm.asts) == 1


def test_run_loads_initial_scripts_from_disk(tmp_path, capsys):
    f = tmp_path / "hello.svm"
    f.write_text('println("from disk");', encoding="utf-8")
    vm = Vm()
    s = vm.add_script(Script(str(f)))
    assert s.name == "hello"
    assert s.state is ScriptState.INITIAL
    vm.run()
    assert capsys.readouterr().out == "from disk\n"
    assert s.state is ScriptState.FINISHED


def test_vm_load_imports_script(tmp_path):
    f = tmp_path / "lib.svm"
    f.write_text("function f() { }", encoding="utf-8")
    vm = Vm()
    s = vm.load(f, name="library")
    assert s.name == "library"
    assert s.state is ScriptState.LOADED
    assert vm.script("library") is s


def test_run_fails_for_unloadable_script():
    vm = Vm()
    vm.add_script(Script("virtual://ghost"))
    with pytest.raises(ScriptIOError):
        vm.run()
    assert vm.asts == []


def test_run_stops_at_first_failing_script(capsys):
    vm = Vm()
    vm.add_script(Script("virtual://bad", "bad", "oops,"))
    vm.add_script(Script("virtual://good", "good", 'println("never");'))
    with pytest.raises(ScriptSyntaxError):
        vm.run()
    assert vm.script("good").state is ScriptState.LOADED
    assert capsys.readouterr().out == ""


def test_parse_happens_before_any_execution(capsys):
    vm = Vm()
    vm.add_script(Script("virtual://one", "one", 'println("one");'))
    vm.add_script(Script("virtual://two", "two", "broken("))
    with pytest.raises(ScriptSyntaxError):
        vm.run()
    assert capsys.readouterr().out == ""


def test_duplicate_script_names_rejected():
    vm = Vm()
    vm.add_script(Script("virtual://a", "same", "x;"))
    with pytest.raises(UnknownError):
        vm.add_script(Script("virtual://b", "same", "y;"))


def test_reset_clears_scripts_and_trees():
    vm = run_source('print("");')
    vm.reset()
    assert vm.scripts == [] and vm.asts == []
    assert "println" in vm.native_funcs


def test_debug_trace_goes_to_stderr(capsys):
    run_source('println("x");', Vm(VmOptions(debug=True)))
    captured = capsys.readouterr()
    assert captured.out == "x\n"
    assert "[DBG] Parse Script: test" in captured.err
    assert "[DBG] Execute node: Call println" in captured.err


def test_banner_and_version():
    assert BANNER == "scopevm"
    assert Vm().version == VERSION


def test_header_without_body_calls_native_with_its_arguments(capsys):
    run_source('function println("hi", there);')
    assert capsys.readouterr().out == "hithere\n"


def test_deeply_nested_blocks_execute(capsys):
    depth = 1500
    source = "{" * depth + 'print("x");' + "}" * depth
    run_source(source)
    assert capsys.readouterr().out == "x"
    run_source(source, Vm(VmOptions(debug=True)))
    captured = capsys.readouterr()
    assert captured.out == "x"
    assert "Call print {" in captured.err
