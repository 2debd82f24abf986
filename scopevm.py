import argparse
import sys
from pathlib import Path

from scopevm.scopevm_datatypes import VmError
from scopevm.scopevm_options import VmOptions
from scopevm.scopevm_parser import Parser
from scopevm.scopevm_runtime import BANNER, VERSION, ScriptRunner, Vm
from scopevm.scopevm_script import Script
from scopevm.scopevm_serialize import dump_tree


def build_options(args) -> VmOptions:
    opts = VmOptions.from_file(args.config) if args.config else VmOptions.from_env()
    if args.debug:
        opts.debug = True
    if args.invoke:
        opts.invoke_user_functions = True
    return opts


def dump_scripts(paths, fmt: str, opts: VmOptions) -> int:
    """Parse each file and print its tree instead of running it."""
    parser = Parser(opts)
    for path in paths:
        try:
            tree = parser.parse(Script.import_(Path(path).resolve()))
        except VmError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(dump_tree(tree, fmt))
    return 0


def run_script_files(paths, opts: VmOptions) -> int:
    """Run script files non-interactively; returns the exit status."""
    vm = Vm(opts)
    try:
        for path in paths:
            vm.add_script(Script(Path(path).resolve()))
    except VmError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    for it in vm.scripts:
        print(f" - {it}")
    try:
        vm.run()
    except VmError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def repl(opts: VmOptions):
    print(f"{BANNER} REPL v{VERSION}")
    print("Type 'exit' or press Ctrl+D to quit.")
    runner = ScriptRunner(options=opts)
    while True:
        try:
            line = input(">> ").strip()
        except EOFError:
            print("\nExiting.")
            break
        if not line:
            continue
        if line == "exit":
            break
        result = runner.handle_script(line, name="repl")
        if result.status == 'error':
            print(result.format_error(), file=sys.stderr)
        else:
            sys.stdout.flush()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog=BANNER, add_help=True)
    parser.add_argument("--debug", action="store_true",
                        help="Trace scanning and execution and dump trees to stderr.")
    parser.add_argument("--invoke", action="store_true",
                        help="Execute script-defined function bodies when they are called.")
    parser.add_argument("--config", help="Options file (.json, .yaml, .toml).")
    parser.add_argument("--dump", choices=("json", "yaml", "toml", "xml"),
                        help="Print the parsed tree of each file instead of running it.")
    parser.add_argument("sources", nargs="*", help="Script files")
    args = parser.parse_args(argv)

    try:
        opts = build_options(args)
    except (OSError, ValueError) as e:
        print(f"Error: invalid options: {e}", file=sys.stderr)
        return 2

    if not args.sources:
        repl(opts)
        return 0
    print(f"{BANNER} v{VERSION}")
    if args.dump:
        return dump_scripts(args.sources, args.dump, opts)
    return run_script_files(args.sources, opts)


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except KeyboardInterrupt:
        print("\nExiting.")
