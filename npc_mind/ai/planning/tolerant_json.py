"""Forgiving scanners for JSON-ish text produced by language models.

These never raise. They look for structure (brackets, quoted keys) rather
than validating a grammar, so prose around the payload, trailing commas or
a missing closing brace do not stop extraction.
"""

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple


def _scan(text: str, start: int = 0) -> Iterator[Tuple[int, str, bool]]:
    """Yield ``(index, char, inside_string)`` honouring backslash escapes."""

    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
                yield idx, ch, False
                continue
            yield idx, ch, True
        else:
            if ch == '"':
                in_string = True
            yield idx, ch, in_string


def balanced_span(text: str, opener: str = "[", closer: str = "]") -> Optional[str]:
    """Return the contents of the first balanced ``opener...closer`` group.

    When the group never closes (a reply cut off mid-array) everything
    after ``opener`` is returned.
    """

    if not text:
        return None
    begin = text.find(opener)
    if begin == -1:
        return None
    depth = 0
    for idx, ch, in_string in _scan(text, begin):
        if in_string:
            continue
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return text[begin + 1:idx]
    return text[begin + 1:]


def split_objects(body: str) -> List[str]:
    """Split the inside of an array into top-level ``{...}`` chunks.

    An object left open at the end of ``body`` is still returned.
    """

    chunks: List[str] = []
    depth = 0
    begin = -1
    for idx, ch, in_string in _scan(body):
        if in_string:
            continue
        if ch == "{":
            if depth == 0:
                begin = idx
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                chunks.append(body[begin:idx + 1])
                begin = -1
    if depth > 0 and begin != -1:
        chunks.append(body[begin:])
    return chunks


def _unescape(raw: str) -> str:
    out: List[str] = []
    chars = iter(raw)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "")
            out.append({"n": "\n", "t": "\t"}.get(nxt, nxt))
        else:
            out.append(ch)
    return "".join(out)


def _quoted_at(text: str, start: int) -> Optional[Tuple[str, int]]:
    """Read the string literal whose opening quote is at or after ``start``."""

    open_quote = text.find('"', start)
    if open_quote == -1:
        return None
    for idx, ch, in_string in _scan(text, open_quote):
        if idx > open_quote and ch == '"' and not in_string:
            return _unescape(text[open_quote + 1:idx]), idx + 1
    return None


def _after_key(text: str, key: str) -> Optional[int]:
    idx = text.find(f'"{key}"')
    if idx == -1:
        return None
    colon = text.find(":", idx + len(key) + 2)
    return None if colon == -1 else colon + 1


def quoted_value(text: str, key: str) -> Optional[str]:
    """Return the string value following ``"key":`` or ``None``."""

    pos = _after_key(text, key)
    if pos is None:
        return None
    # The value must be a string: reject ``"key": [..`` or ``"key": 3``.
    rest = text[pos:].lstrip()
    if not rest.startswith('"'):
        return None
    found = _quoted_at(text, pos)
    return found[0] if found else None


def quoted_list(text: str, key: str) -> List[str]:
    """Return the string items of the array following ``"key":``.

    Unquoted items are accepted with surrounding quotes and blanks removed;
    empty items are dropped.
    """

    pos = _after_key(text, key)
    if pos is None:
        return []
    rest = text[pos:].lstrip()
    if not rest.startswith("["):
        return []
    body = balanced_span(rest, "[", "]") or ""
    items: List[str] = []
    cursor = 0
    while cursor < len(body):
        ch = body[cursor]
        if ch == '"':
            found = _quoted_at(body, cursor)
            if found is None:
                tail = body[cursor + 1:].strip()
                if tail:
                    items.append(tail)
                break
            value, cursor = found
            if value.strip():
                items.append(value.strip())
        elif ch in ", \t\r\n":
            cursor += 1
        else:
            end = body.find(",", cursor)
            end = len(body) if end == -1 else end
            value = body[cursor:end].strip().strip("'\"")
            if value:
                items.append(value)
            cursor = end + 1
    return items


__all__ = ["balanced_span", "split_objects", "quoted_value", "quoted_list"]
