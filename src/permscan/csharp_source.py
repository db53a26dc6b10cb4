"""
Structural view of C# source files.

This is not a C# parser. It masks comments and string literals, matches
braces, and uses a handful of regular expressions to recover what the
endpoint extractor needs: type declarations with their base lists, the
top-level methods of each type, and the invocations inside each method
together with the value of a plain string literal first argument.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from permscan.errors import AdapterError
from permscan.models import CallExpr, Declaration, Method

log = logging.getLogger(__name__)

_TYPE_DECL = re.compile(
    r"\b(?P<kind>record\s+(?:class|struct)|class|record|struct|interface)\s+(?P<name>[A-Za-z_]\w*)"
)

_METHOD_DECL = re.compile(
    r"(?P<name>[A-Za-z_]\w*)\s*"
    r"(?:<[^<>;{}()=]*(?:<[^<>;{}()=]*>[^<>;{}()=]*)*>)?\s*"
    r"\((?P<params>(?:[^;{}()\[\]]|\([^;{}()]*\)|\[[^;{}\[\]]*\])*)\)\s*"
    r"(?:where\b[^{;]*?)?"
    r"(?P<open>\{|=>)"
)

_CALL = re.compile(
    r"(?P<name>[A-Za-z_]\w*)\s*"
    r"(?:<(?:[^<>;{}()]|<[^<>;{}()]*>)*>)?\s*"
    r"\("
)

_WHERE = re.compile(r"\bwhere\b")

_KEYWORDS = frozenset(
    {
        "if", "else", "for", "foreach", "while", "do", "switch", "case", "catch",
        "using", "lock", "fixed", "return", "throw", "new", "nameof", "typeof",
        "sizeof", "default", "checked", "unchecked", "base", "this", "await",
        "when", "is", "as", "in", "out", "ref", "var", "stackalloc", "async",
    }
)

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


@dataclass(frozen=True)
class _StringToken:
    start: int
    end: int
    value_start: int
    value_end: int
    verbatim: bool
    interpolated: bool
    raw: bool


@dataclass(frozen=True)
class _TypeSpan:
    name: str
    header_start: int
    open: int
    close: int
    capabilities: tuple[str, ...]
    interface: bool = False


class CSharpSourceAdapter:
    """Source model adapter for ``*.cs`` files."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def list_declarations(self, path: str | Path) -> list[Declaration]:
        file_path = Path(path)
        try:
            text = file_path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            raise AdapterError(f"Could not read {file_path}: {exc}") from exc
        return parse_declarations(text, source=str(file_path))


def parse_declarations(text: str, source: str = "<string>") -> list[Declaration]:
    masked = mask_source(text)
    spans = _type_spans(masked, source)

    declarations: list[Declaration] = []
    for span in spans:
        # Interfaces only shape nesting, they never declare endpoint bodies.
        if span.interface:
            continue
        nested = [s for s in spans if span.open < s.header_start and s.close < span.close]
        body = _blank_regions(masked, [(s.header_start, s.close + 1) for s in nested])
        methods = tuple(_methods(text, body, span.open + 1, span.close, source))
        declarations.append(
            Declaration(name=span.name, capabilities=span.capabilities, methods=methods)
        )
    return declarations


def mask_source(text: str) -> str:
    """Blank out comments and string/char literal contents, preserving offsets."""
    out = list(text)
    n = len(text)
    i = 0
    while i < n:
        c = text[i]
        if c == "/" and text.startswith("//", i):
            end = text.find("\n", i)
            end = n if end == -1 else end
            _blank(out, i, end)
            i = end
            continue
        if c == "/" and text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            _blank(out, i, end)
            i = end
            continue
        if c in "\"@$":
            token = _scan_string(text, i)
            if token is not None:
                _blank(out, token.start + 1, token.end - 1)
                i = token.end
                continue
        if c == "'":
            end = _char_literal_end(text, i)
            if end is not None:
                _blank(out, i + 1, end - 1)
                i = end
                continue
        i += 1
    return "".join(out)


def _blank(out: list[str], start: int, end: int) -> None:
    for k in range(start, end):
        if out[k] != "\n":
            out[k] = " "


def _blank_regions(text: str, regions: list[tuple[int, int]]) -> str:
    if not regions:
        return text
    out = list(text)
    for start, end in regions:
        _blank(out, start, end)
    return "".join(out)


def _scan_string(text: str, i: int) -> Optional[_StringToken]:
    n = len(text)
    j = i
    verbatim = interpolated = False
    while j < n and text[j] in "@$" and j - i < 2:
        if text[j] == "@":
            verbatim = True
        else:
            interpolated = True
        j += 1
    if j >= n or text[j] != '"':
        return None

    if text.startswith('"""', j):
        quotes = 3
        while j + quotes < n and text[j + quotes] == '"':
            quotes += 1
        close = text.find('"' * quotes, j + quotes)
        if close == -1:
            return _StringToken(i, n, j + quotes, n, False, interpolated, True)
        return _StringToken(i, close + quotes, j + quotes, close, False, interpolated, True)

    k = j + 1
    while k < n:
        ch = text[k]
        if verbatim:
            if ch == '"':
                if k + 1 < n and text[k + 1] == '"':
                    k += 2
                    continue
                return _StringToken(i, k + 1, j + 1, k, True, interpolated, False)
        else:
            if ch == "\\":
                k += 2
                continue
            if ch == '"':
                return _StringToken(i, k + 1, j + 1, k, False, interpolated, False)
            if ch == "\n":
                return _StringToken(i, k, j + 1, k, False, interpolated, False)
        k += 1
    return _StringToken(i, n, j + 1, n, verbatim, interpolated, False)


def _char_literal_end(text: str, i: int) -> Optional[int]:
    k = i + 1
    if k < len(text) and text[k] == "\\":
        k += 2
    else:
        k += 1
    end = text.find("'", k)
    if end == -1 or end - i > 10:
        return None
    return end + 1


def _match_brace(masked: str, open_index: int, source: str) -> int:
    depth = 0
    for k in range(open_index, len(masked)):
        ch = masked[k]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return k
    raise AdapterError(f"Unbalanced braces in {source} at offset {open_index}")


def _type_spans(masked: str, source: str) -> list[_TypeSpan]:
    spans: list[_TypeSpan] = []
    for match in _TYPE_DECL.finditer(masked):
        open_index = _find_body_open(masked, match.end())
        if open_index is None:
            continue
        header = masked[match.end() : open_index]
        spans.append(
            _TypeSpan(
                name=match.group("name"),
                header_start=match.start(),
                open=open_index,
                close=_match_brace(masked, open_index, source),
                capabilities=_base_list(header),
                interface=match.group("kind") == "interface",
            )
        )
    return spans


def _find_body_open(masked: str, start: int) -> Optional[int]:
    depth = 0
    for k in range(start, len(masked)):
        ch = masked[k]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif depth == 0 and ch == "{":
            return k
        elif depth == 0 and ch in ";}":
            return None
    return None


def _base_list(header: str) -> tuple[str, ...]:
    colon = _top_level_index(header, ":")
    if colon is None:
        return ()
    bases = header[colon + 1 :]
    where = _WHERE.search(bases)
    if where:
        bases = bases[: where.start()]
    return tuple(
        " ".join(part.split()) for part in _split_top_level(bases, ",") if part.strip()
    )


def _top_level_index(text: str, target: str) -> Optional[int]:
    depth = 0
    for k, ch in enumerate(text):
        if ch in "<(":
            depth += 1
        elif ch in ">)":
            depth -= 1
        elif ch == target and depth == 0:
            return k
    return None


def _split_top_level(text: str, separator: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch in "<([":
            depth += 1
        elif ch in ">)]":
            depth -= 1
        if ch == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return parts


def _methods(text: str, masked: str, start: int, end: int, source: str) -> list[Method]:
    methods: list[Method] = []
    depth = 0
    cursor = start
    consumed_until = start
    for match in _METHOD_DECL.finditer(masked, start, end):
        segment = masked[cursor : match.start()]
        depth += segment.count("{") - segment.count("}")
        cursor = match.start()
        name = match.group("name")
        if depth != 0 or match.start() < consumed_until or name in _KEYWORDS:
            continue

        if match.group("open") == "{":
            body_start = match.end()
            body_end = _match_brace(masked, match.end() - 1, source)
        else:
            body_start = match.end()
            body_end = _expression_end(masked, body_start, end)

        consumed_until = body_end
        calls = tuple(_calls(text, masked, body_start, body_end))
        methods.append(Method(name=name, calls=calls))
    return methods


def _expression_end(masked: str, start: int, limit: int) -> int:
    depth = 0
    for k in range(start, limit):
        ch = masked[k]
        if ch in "({[":
            depth += 1
        elif ch in ")}]":
            depth -= 1
        elif ch == ";" and depth == 0:
            return k
    return limit


def _calls(text: str, masked: str, start: int, end: int) -> list[CallExpr]:
    calls: list[CallExpr] = []
    for match in _CALL.finditer(masked, start, end):
        name = match.group("name")
        if name in _KEYWORDS or _preceded_by_new(masked, match.start()):
            continue
        calls.append(
            CallExpr(
                callee_name=name,
                first_literal_arg=_first_literal_arg(text, masked, match.end()),
            )
        )
    return calls


def _preceded_by_new(masked: str, index: int) -> bool:
    head = masked[max(0, index - 16) : index].rstrip()
    return head.endswith("new") and (len(head) == 3 or not (head[-4].isalnum() or head[-4] == "_"))


def _first_literal_arg(text: str, masked: str, index: int) -> Optional[str]:
    n = len(masked)
    k = index
    while k < n and masked[k].isspace():
        k += 1
    if k >= n or text[k] not in "\"@$":
        return None

    token = _scan_string(text, k)
    if token is None or token.interpolated:
        return None

    after = token.end
    while after < n and masked[after].isspace():
        after += 1
    if after >= n or masked[after] not in ",)":
        return None
    return _decode(text[token.value_start : token.value_end], token)


def _decode(raw: str, token: _StringToken) -> str:
    if token.raw:
        return _dedent_raw(raw)
    if token.verbatim:
        return raw.replace('""', '"')

    out: list[str] = []
    k = 0
    while k < len(raw):
        ch = raw[k]
        if ch == "\\" and k + 1 < len(raw):
            out.append(_ESCAPES.get(raw[k + 1], raw[k + 1]))
            k += 2
            continue
        out.append(ch)
        k += 1
    return "".join(out)


def _dedent_raw(raw: str) -> str:
    if "\n" not in raw:
        return raw
    lines = raw.split("\n")
    closing_indent = lines[-1] if not lines[-1].strip() else ""
    body = lines[1:-1] if not lines[0].strip() else lines[:-1]
    return "\n".join(
        line[len(closing_indent) :] if line.startswith(closing_indent) else line
        for line in body
    )
