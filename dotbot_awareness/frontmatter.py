"""Line-oriented parser for the front-matter block at the head of an artifact.

Supported grammar (anything else is reported as a :class:`Violation` and the
offending line is skipped, never raised):

* ``key: value`` scalars: quoted strings, ``true``/``false``, ``null``/``~``,
  integers, floats, bare strings, and (on top-level keys) inline ``[a, b]``
  lists of scalars
* ``key:`` followed by ``- item`` lines (block list)
* list items that are one-level maps: ``- key: value`` followed by further
  ``key: value`` lines indented to the item's first key
* ``key:`` followed by indented ``key: value`` lines (one-level nested map)
* ``# comment`` lines, and trailing comments after whitespace outside quotes

Anchors, aliases, tags, block scalars, flow maps, nested flow lists and any
nesting deeper than two levels are outside the grammar.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from .models import Violation

DELIMITER = "---"

_KEY_PATTERN = re.compile(r"^(?P<key>[A-Za-z0-9_][\w.\-]*)\s*:(?:\s+(?P<value>.*))?$")
_UNSUPPORTED_PREFIXES = {
    "&": "anchors are not supported",
    "*": "aliases are not supported",
    "!": "tags are not supported",
    "|": "block scalars are not supported",
    ">": "block scalars are not supported",
    "{": "flow mappings are not supported",
}


@dataclass
class FrontMatterResult:
    """Parsed block plus any grammar violations and the remaining body text."""

    data: Dict[str, Any] = field(default_factory=dict)
    violations: List[Violation] = field(default_factory=list)
    body: str = ""
    end_line: int = 0


class _Line(NamedTuple):
    number: int
    indent: int
    text: str


def split_front_matter(text: str) -> Optional[Tuple[List[str], str, int]]:
    """Return ``(block_lines, body, closing_line_number)`` or ``None``.

    The opening delimiter must sit at byte 0 on a line of its own.
    """
    if not text.startswith(DELIMITER):
        return None
    lines = text.splitlines(keepends=True)
    if lines[0].rstrip("\r\n").rstrip() != DELIMITER:
        return None
    for index in range(1, len(lines)):
        if lines[index].rstrip("\r\n").rstrip() == DELIMITER:
            block = [line.rstrip("\r\n") for line in lines[1:index]]
            body = "".join(lines[index + 1 :])
            return block, body, index + 1
    return None


def parse_front_matter(text: str) -> Optional[FrontMatterResult]:
    """Parse the front-matter block of ``text``; ``None`` when there is none."""
    split = split_front_matter(text)
    if split is None:
        return None
    block, body, end_line = split
    parser = _BlockParser(block)
    data = parser.parse()
    return FrontMatterResult(data=data, violations=parser.violations, body=body, end_line=end_line)


def read_front_matter(path: Path) -> Tuple[Optional[FrontMatterResult], str]:
    """Read ``path`` and return its parsed front-matter alongside the full text."""
    text = path.read_bytes().decode("utf-8", errors="replace")
    return parse_front_matter(text), text


class _BlockParser:
    def __init__(self, raw_lines: Sequence[str]) -> None:
        self.lines: List[_Line] = []
        self.violations: List[Violation] = []
        for offset, raw in enumerate(raw_lines):
            stripped = raw.strip()
            if not stripped or stripped.startswith("#"):
                continue
            expanded = raw.replace("\t", "    ")
            indent = len(expanded) - len(expanded.lstrip(" "))
            # Line 1 is the opening delimiter.
            self.lines.append(_Line(offset + 2, indent, stripped))

    def parse(self) -> Dict[str, Any]:
        if not self.lines:
            return {}
        base = self.lines[0].indent
        result: Dict[str, Any] = {}
        index = 0
        while index < len(self.lines):
            line = self.lines[index]
            if line.indent != base:
                self._violate(line, "unexpected indentation")
                index += 1
                continue
            index = self._parse_entry(result, index, base, nested=False)
        return result

    # ------------------------------------------------------------------
    # Grammar productions

    def _parse_entry(self, target: Dict[str, Any], index: int, indent: int, *, nested: bool) -> int:
        line = self.lines[index]
        if line.text.startswith("- ") or line.text == "-":
            self._violate(line, "list item outside of a list")
            return self._skip_deeper(index + 1, line.indent)

        match = _KEY_PATTERN.match(line.text)
        if match is None:
            self._violate(line, "expected 'key: value'")
            return self._skip_deeper(index + 1, line.indent)

        key = match.group("key")
        raw_value = match.group("value")
        if key in target:
            self._violate(line, f"duplicate key '{key}'")

        if raw_value is not None and raw_value.strip():
            value, ok = self._parse_value(line, raw_value, allow_nested=not nested)
            if ok:
                target[key] = value
            return self._skip_deeper(index + 1, line.indent, report=True)

        next_index = index + 1
        if next_index >= len(self.lines):
            target[key] = None
            return next_index
        following = self.lines[next_index]

        if _is_list_item(following.text) and following.indent >= indent:
            if nested:
                self._violate(following, "nesting deeper than two levels is not supported")
                return self._skip_deeper(next_index, indent, include_equal_items=True)
            items, next_index = self._parse_list(next_index, following.indent)
            target[key] = items
            return next_index

        if following.indent > indent:
            if nested:
                self._violate(following, "nesting deeper than two levels is not supported")
                return self._skip_deeper(next_index, indent)
            mapping, next_index = self._parse_flat_map(next_index, following.indent)
            target[key] = mapping
            return next_index

        target[key] = None
        return next_index

    def _parse_list(self, index: int, indent: int) -> Tuple[List[Any], int]:
        items: List[Any] = []
        while index < len(self.lines):
            line = self.lines[index]
            if line.indent < indent:
                break
            if line.indent > indent:
                self._violate(line, "unexpected indentation in list")
                index += 1
                continue
            if not _is_list_item(line.text):
                break

            item_text = line.text[1:].strip()
            if not item_text:
                self._violate(line, "empty list item")
                index = self._skip_deeper(index + 1, line.indent)
                continue

            match = _KEY_PATTERN.match(item_text)
            if match is not None and not item_text.startswith(("'", '"')):
                item_indent = line.indent + (len(line.text) - len(item_text))
                item: Dict[str, Any] = {}
                key = match.group("key")
                value_text = match.group("value")
                if value_text is not None and value_text.strip():
                    value, ok = self._parse_value(line, value_text, allow_nested=False)
                    if ok:
                        item[key] = value
                else:
                    item[key] = None
                index += 1
                while index < len(self.lines) and self.lines[index].indent > line.indent:
                    continuation = self.lines[index]
                    if continuation.indent != item_indent:
                        self._violate(continuation, "nesting deeper than two levels is not supported")
                        index += 1
                        continue
                    index = self._parse_scalar_entry(item, index)
                items.append(item)
                continue

            value, ok = self._parse_value(line, item_text, allow_nested=False)
            if ok:
                items.append(value)
            index = self._skip_deeper(index + 1, line.indent, report=True)
        return items, index

    def _parse_flat_map(self, index: int, indent: int) -> Tuple[Dict[str, Any], int]:
        mapping: Dict[str, Any] = {}
        while index < len(self.lines):
            line = self.lines[index]
            if line.indent < indent:
                break
            if line.indent > indent:
                self._violate(line, "unexpected indentation in mapping")
                index += 1
                continue
            index = self._parse_entry(mapping, index, indent, nested=True)
        return mapping, index

    def _parse_scalar_entry(self, target: Dict[str, Any], index: int) -> int:
        line = self.lines[index]
        match = _KEY_PATTERN.match(line.text)
        if match is None:
            self._violate(line, "expected 'key: value'")
            return index + 1
        value_text = match.group("value")
        if value_text is None or not value_text.strip():
            next_index = index + 1
            if next_index < len(self.lines) and self.lines[next_index].indent > line.indent:
                self._violate(self.lines[next_index], "nesting deeper than two levels is not supported")
                return self._skip_deeper(next_index, line.indent)
            target[match.group("key")] = None
            return next_index
        value, ok = self._parse_value(line, value_text, allow_nested=False)
        if ok:
            target[match.group("key")] = value
        return index + 1

    # ------------------------------------------------------------------
    # Values

    def _parse_value(self, line: _Line, raw: str, *, allow_nested: bool = True) -> Tuple[Any, bool]:
        value = _strip_comment(raw.strip())
        if not value:
            return None, True
        reason = _UNSUPPORTED_PREFIXES.get(value[0])
        if reason is not None:
            self._violate(line, reason)
            return None, False
        if value.startswith("["):
            if not allow_nested:
                self._violate(line, "nesting deeper than two levels is not supported")
                return None, False
            if not value.endswith("]"):
                self._violate(line, "unterminated inline list")
                return None, False
            inner = value[1:-1]
            if "[" in inner or "{" in inner:
                self._violate(line, "nested flow collections are not supported")
                return None, False
            return _parse_inline_sequence(value), True
        return _parse_scalar(value), True

    def _skip_deeper(
        self,
        index: int,
        indent: int,
        *,
        report: bool = False,
        include_equal_items: bool = False,
    ) -> int:
        while index < len(self.lines):
            line = self.lines[index]
            deeper = line.indent > indent
            same_level_item = include_equal_items and line.indent == indent and _is_list_item(line.text)
            if not (deeper or same_level_item):
                break
            if report:
                self._violate(line, "unexpected indentation")
            index += 1
        return index

    def _violate(self, line: _Line, message: str) -> None:
        self.violations.append(Violation(line=line.number, message=message))


def _is_list_item(text: str) -> bool:
    return text == "-" or text.startswith("- ")


def _strip_comment(value: str) -> str:
    """Drop a ``#`` comment that starts the value or follows whitespace, outside quotes."""
    quote: Optional[str] = None
    for index, char in enumerate(value):
        if quote is not None:
            if char == quote:
                quote = None
        elif char in {'"', "'"} and (index == 0 or value[index - 1] in " \t[,"):
            quote = char
        elif char == "#" and (index == 0 or value[index - 1] in " \t"):
            return value[:index].rstrip()
    return value


def _parse_inline_sequence(value: str) -> List[Any]:
    inner = value[1:-1].strip()
    if not inner:
        return []
    parts: List[str] = []
    current: List[str] = []
    in_quote: Optional[str] = None
    for char in inner:
        if char in {'"', "'"}:
            if in_quote == char:
                in_quote = None
            elif in_quote is None:
                in_quote = char
            current.append(char)
            continue
        if char == "," and in_quote is None:
            part = "".join(current).strip()
            if part:
                parts.append(part)
            current = []
            continue
        current.append(char)
    if current:
        parts.append("".join(current).strip())
    return [_parse_scalar(part) for part in parts if part]


def _parse_scalar(value: str) -> Any:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    if len(value) >= 2 and value.startswith("'") and value.endswith("'"):
        return value[1:-1]
    lower = value.lower()
    if lower in {"null", "~"}:
        return None
    if lower == "true":
        return True
    if lower == "false":
        return False
    try:
        if re.fullmatch(r"[-+]?\d+", value):
            return int(value)
        if re.fullmatch(r"[-+]?(\d+\.\d*|\.\d+)([eE][-+]?\d+)?|[-+]?\d+[eE][-+]?\d+", value):
            return float(value)
    except ValueError:
        return value
    return value


__all__ = [
    "DELIMITER",
    "FrontMatterResult",
    "parse_front_matter",
    "read_front_matter",
    "split_front_matter",
]
