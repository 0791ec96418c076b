"""Writer for Java ``.properties`` style manifests."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Tuple

from .errors import IOFailure

DEFAULT_COMMENT = "generated by lavender-plugin"

_SIMPLE_ESCAPES = {"\t": "\\t", "\n": "\\n", "\r": "\\r", "\f": "\\f"}
_SPECIAL = "=:#!"


def escape(text: str, *, is_key: bool) -> str:
    """Escape ``text`` the way ``java.util.Properties.store`` does."""
    out: List[str] = []
    for index, char in enumerate(text):
        if char == "\\":
            out.append("\\\\")
        elif char == " ":
            out.append("\\ " if is_key or index == 0 else " ")
        elif char in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[char])
        elif char in _SPECIAL:
            out.append("\\" + char)
        elif " " < char <= "~":
            out.append(char)
        else:
            out.extend(f"\\u{unit:04X}" for unit in _utf16_units(char))
    return "".join(out)


def _utf16_units(char: str) -> Tuple[int, ...]:
    code = ord(char)
    if code <= 0xFFFF:
        return (code,)
    code -= 0x10000
    return (0xD800 + (code >> 10), 0xDC00 + (code & 0x3FF))


def render_properties(items: Iterable[Tuple[str, str]], comment: str | None = DEFAULT_COMMENT) -> str:
    """Render ``key=value`` lines in the given order, preceded by a comment header."""
    lines: List[str] = []
    if comment:
        lines.extend(f"#{line}" for line in comment.splitlines())
    for key, value in items:
        lines.append(f"{escape(key, is_key=True)}={escape(value, is_key=False)}")
    return "\n".join(lines) + "\n"


def write_properties(
    path: Path, items: Iterable[Tuple[str, str]], comment: str | None = DEFAULT_COMMENT
) -> Path:
    """Atomically write the rendered properties to ``path``."""
    text = render_properties(items, comment)
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        with os.fdopen(fd, "w", encoding="latin-1", newline="\n") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise IOFailure(f"cannot write {path}: {exc.strerror or exc}") from exc
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
    return path


__all__ = ["DEFAULT_COMMENT", "escape", "render_properties", "write_properties"]
