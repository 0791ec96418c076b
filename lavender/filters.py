"""Include/exclude glob filtering over slash-separated relative paths."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Pattern, Sequence, Tuple

from .errors import ConfigurationError

_SEPARATOR = "/"
_DOUBLE_STAR = "**"


def split_patterns(value: str | Iterable[str] | None) -> Tuple[str, ...]:
    """Split a comma-separated pattern list, trimming items and dropping empty ones."""
    if value is None:
        return ()
    if isinstance(value, str):
        items: Iterable[str] = value.split(",")
    else:
        items = value
    return tuple(item.strip() for item in items if item and item.strip())


@dataclass(frozen=True)
class GlobPattern:
    """A compiled glob where ``*`` stays inside a segment and ``**`` spans segments."""

    regex: Pattern[str]

    def matches(self, rel_path: str) -> bool:
        return self.regex.match(rel_path) is not None


@dataclass(frozen=True)
class PathFilter:
    """Accepts a path iff it matches some include (or there are none) and no exclude."""

    includes: Tuple[GlobPattern, ...]
    excludes: Tuple[GlobPattern, ...]

    @classmethod
    def compile(
        cls, include_patterns: Sequence[str], exclude_patterns: Sequence[str]
    ) -> "PathFilter":
        return cls(
            includes=tuple(compile_glob(pattern) for pattern in include_patterns),
            excludes=tuple(compile_glob(pattern) for pattern in exclude_patterns),
        )

    def accepts(self, rel_path: str) -> bool:
        if self.includes and not any(glob.matches(rel_path) for glob in self.includes):
            return False
        return not any(glob.matches(rel_path) for glob in self.excludes)

    __call__ = accepts


def compile_glob(pattern: str) -> GlobPattern:
    """Translate ``pattern`` into an anchored, case-sensitive regular expression."""
    if not pattern:
        raise ConfigurationError("empty glob pattern")
    if "\\" in pattern:
        raise ConfigurationError(f"invalid glob {pattern!r}: use '/' as separator")
    if pattern.startswith(_SEPARATOR):
        raise ConfigurationError(f"invalid glob {pattern!r}: patterns are relative")

    segments = pattern.split(_SEPARATOR)
    parts = []
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == _DOUBLE_STAR:
            # Zero or more whole segments; trailing ** also swallows the file name.
            parts.append(".*" if last else f"(?:[^{_SEPARATOR}]+{_SEPARATOR})*")
            continue
        if not segment:
            raise ConfigurationError(f"invalid glob {pattern!r}: empty path segment")
        if _DOUBLE_STAR in segment:
            raise ConfigurationError(
                f"invalid glob {pattern!r}: '**' must be a whole path segment"
            )
        parts.append(_translate_segment(segment, pattern))
        if not last:
            parts.append(_SEPARATOR)

    try:
        regex = re.compile(r"\A" + "".join(parts) + r"\Z")
    except re.error as exc:
        raise ConfigurationError(f"invalid glob {pattern!r}: {exc}") from exc
    return GlobPattern(regex=regex)


def _translate_segment(segment: str, pattern: str) -> str:
    result = []
    index = 0
    length = len(segment)
    while index < length:
        char = segment[index]
        index += 1
        if char == "*":
            result.append(f"[^{_SEPARATOR}]*")
        elif char == "?":
            result.append(f"[^{_SEPARATOR}]")
        elif char == "[":
            start = index
            if segment[start:start + 1] == "!":
                start += 1
            if segment[start:start + 1] == "]":
                start += 1
            end = segment.find("]", start)
            if end < 0:
                raise ConfigurationError(
                    f"invalid glob {pattern!r}: unterminated character class"
                )
            body = segment[index:end].replace("\\", "\\\\").replace("]", "\\]")
            index = end + 1
            if body.startswith("!"):
                body = "^" + body[1:]
            elif body.startswith("^"):
                body = "\\" + body
            result.append(f"[{body}]")
        else:
            result.append(re.escape(char))
    return "".join(result)


__all__ = ["GlobPattern", "PathFilter", "compile_glob", "split_patterns"]
