"""
Explicit configuration for the scanner and the Vm.

Options are plain values passed in at construction; nothing here is global.
`from_env` and `from_file` only build a VmOptions, they never install one.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

POSITIVE_ANSWERS = ("yes", "y", "1", "on", "ok")
NEGATIVE_ANSWERS = ("no", "n", "0", "off")


def is_positive_answer(s: str) -> bool:
    return s.strip().lower() in POSITIVE_ANSWERS


def is_negative_answer(s: str) -> bool:
    return s.strip().lower() in NEGATIVE_ANSWERS


@dataclass
class VmOptions:
    # Debug: structural trace plus a tree dump on stderr.
    debug: bool = False
    # Execute the bodies of script-defined functions when they are called.
    invoke_user_functions: bool = False
    max_call_depth: int = 256

    def __post_init__(self):
        if not isinstance(self.max_call_depth, int) or self.max_call_depth < 1:
            raise ValueError(f"max_call_depth must be a positive integer, got {self.max_call_depth!r}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'VmOptions':
        env = os.environ if environ is None else environ
        opts = cls()
        raw_debug = env.get("VM_PARSER_DEBUG")
        if raw_debug is not None and not is_negative_answer(raw_debug):
            opts.debug = True
        raw_invoke = env.get("VM_INVOKE_FUNCTIONS")
        if raw_invoke is not None and is_positive_answer(raw_invoke):
            opts.invoke_user_functions = True
        return opts

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'VmOptions':
        known = {f.name for f in fields(cls)}
        cfg = {}
        for key, value in data.items():
            name = str(key).replace("-", "_")
            if name not in known:
                raise ValueError(f"unknown option: {key!r}")
            cfg[name] = value
        for flag in ("debug", "invoke_user_functions"):
            if flag in cfg and not isinstance(cfg[flag], bool):
                raise ValueError(f"option {flag!r} must be a boolean")
        return cls(**cfg)

    @classmethod
    def from_file(cls, path: str | Path) -> 'VmOptions':
        """Loads options from a .json, .yaml/.yml or .toml file."""
        from scopevm.scopevm_serialize import deserialize
        p = Path(path)
        ext = p.suffix.lower()
        fmt = {".json": "json", ".yaml": "yaml", ".yml": "yaml", ".toml": "toml"}.get(ext)
        if fmt is None:
            raise ValueError(f"unsupported options file type: {p.name}")
        data = deserialize(p.read_bytes(), fmt=fmt)
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError(f"options file {p.name} must contain a mapping")
        # Allow the options to live under a [scopevm] table / key.
        if "scopevm" in data and isinstance(data["scopevm"], Mapping):
            data = data["scopevm"]
        return cls.from_mapping(data)
