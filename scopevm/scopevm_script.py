from __future__ import annotations

import os
from typing import Optional

from scopevm.scopevm_datatypes import ScriptIOError, ScriptState
from scopevm.scopevm_file import locator_stem, read_source


class Script:
    """A named unit of source text and its lifecycle state.

    The state only moves forward: INITIAL → LOADED → PARSED → RUNNING → FINISHED.
    """

    def __init__(self, path: str | os.PathLike, name: Optional[str] = None, content: Optional[str] = None):
        self.path = str(path)
        self.name = name if name is not None else locator_stem(path)
        self.content = content if content else None
        self.state = ScriptState.LOADED if self.content is not None else ScriptState.INITIAL

    @classmethod
    def import_(cls, path: str | os.PathLike, name: Optional[str] = None, *, base_dir: Optional[str] = None) -> 'Script':
        script = cls(path, name)
        script.load(base_dir=base_dir)
        return script

    def advance(self, state: ScriptState) -> bool:
        """Moves to `state` if it is later than the current one. Returns whether it moved."""
        if state.rank <= self.state.rank:
            return False
        self.state = state
        return True

    def load(self, base_dir: Optional[str] = None):
        try:
            text = read_source(self.path, base_dir)
        except (OSError, UnicodeDecodeError) as e:
            raise ScriptIOError(f"cannot read script '{self.name}' from {self.path}: {e}") from e
        if not text:
            raise ScriptIOError(f"script '{self.name}' is empty")
        self.content = text
        self.advance(ScriptState.LOADED)

    def __repr__(self) -> str:
        return f"<Script name={self.name!r} path={self.path!r} state={self.state}>"

    def __str__(self) -> str:
        return f"{self.name} ({self.state})"
