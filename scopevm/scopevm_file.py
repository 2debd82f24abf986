from __future__ import annotations
import os
from pathlib import Path
from typing import Optional

VIRTUAL_SCHEME = "virtual://"
FILE_SCHEME = "file://"


def is_virtual(locator: str | os.PathLike) -> bool:
    return str(locator).startswith(VIRTUAL_SCHEME)


def locator_stem(locator: str | os.PathLike) -> str:
    """Default script name for a locator: the file stem, scheme stripped."""
    s = str(locator)
    for scheme in (VIRTUAL_SCHEME, FILE_SCHEME):
        if s.startswith(scheme):
            s = s[len(scheme):]
            break
    stem = Path(s).stem
    if not stem:
        raise ValueError(f"cannot derive a script name from {str(locator)!r}")
    return stem


def resolve_locator(locator: str | os.PathLike, base_dir: Optional[str] = None) -> str:
    """Maps a script locator to a filesystem path.

    `file:///abs`, `file://~/x`, `file://./x`, `file://../x` and `file://x`
    are understood; anything without a scheme is a plain path. Relative paths
    resolve against base_dir (or the working directory).
    """
    s = str(locator)
    if is_virtual(s):
        raise FileNotFoundError(f"{s} has no backing file")
    if not s.startswith(FILE_SCHEME):
        s = os.path.expanduser(s)
        if os.path.isabs(s):
            return os.path.normpath(s)
        return os.path.normpath(os.path.join(base_dir or os.getcwd(), s))
    rest = s[len(FILE_SCHEME):]
    # Absolute filesystem root
    if rest.startswith("/"):
        return "/" + rest.lstrip("/")
    # Home directory
    if rest.startswith("~"):
        tail = rest[1:]
        return os.path.expanduser("~" + (tail if tail.startswith("/") else ("/" + tail if tail else "")))
    # Empty → base dir or CWD
    if rest == "":
        return base_dir or os.getcwd()
    base = base_dir or os.getcwd()
    if rest.startswith("./"):
        rest = rest[2:]
    return os.path.normpath(os.path.join(base, rest))


def read_source(locator: str | os.PathLike, base_dir: Optional[str] = None) -> str:
    """Reads a whole script as UTF-8 text. Raises OSError subclasses on failure."""
    path = resolve_locator(locator, base_dir)
    if os.path.isdir(path):
        raise IsADirectoryError(path)
    with open(path, "r", encoding="utf-8") as f:
        return f.read()
