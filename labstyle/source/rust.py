"""
Rust Structural Scanner

A lenient, dependency-free scanner that recovers the item structure of a
Rust file: structs, enums, functions, traits, impls, modules and their
attributes. It never compiles or type-checks anything.

Scanning happens in two passes:
1. `mask_source` blanks comments (and, for the skeleton, literal
   contents) while preserving every offset and newline.
2. `parse_source` walks the skeleton at brace depth 0 of each container,
   recursing into inline modules, impls and traits.

Malformed input never raises. An unbalanced delimiter makes the scanner
treat the remainder of the file as the open block.
"""

from __future__ import annotations

import bisect
import logging
import re
from typing import List, Optional, Tuple

from .model import (
    Attribute,
    EnumDef,
    FieldDef,
    FnDef,
    ImplDef,
    Item,
    ModDef,
    Param,
    SourceFile,
    StructDef,
    StructKind,
    TraitDef,
    Visibility,
)

logger = logging.getLogger(__name__)

IDENT = r"[A-Za-z_][A-Za-z0-9_]*"

_RAW_STRING_START = re.compile(r'b?r(#*)"')

_ITEM_PATTERN = (
    r"(?<![\w#])"
    r"(?P<vis>pub(?:\s*\(\s*(?:crate|super|self|in\s+[\w:]+)\s*\))?\s+)?"
    r"(?P<quals>(?:(?:default|const|async|unsafe|extern(?:\s*\"[^\"]*\")?)\s+)*)"
    r"(?P<kw>struct|enum|union|trait|impl|fn|mod)\b"
)

_SCAN_RE = re.compile(
    r"(?P<attr>#!?\[)|(?P<open>\{)|(?P<semi>;)|" + _ITEM_PATTERN
)

_NAME_RE = re.compile(r"\s*(?:r#)?(" + IDENT + r")")
_VIS_RE = re.compile(r"pub(?:\s*\([^)]*\))?\s+")
_FIELD_RE = re.compile(r"(?:r#)?(" + IDENT + r")\s*:(?!:)")
_RECEIVER_RE = re.compile(
    r"^(?:&\s*(?:'" + IDENT + r"\s+)?(?:mut\s+)?)?(?:mut\s+)?self\b(?:\s*:\s*(?P<type>.+))?$",
    re.DOTALL,
)
_CALLABLE_BOUND_RE = re.compile(
    r"\b(" + IDENT + r")\s*:\s*[^,;{<>]*?\b(?:FnOnce|FnMut|Fn)\s*\("
)
_WHERE_RE = re.compile(r"\bwhere\b")

_OPENERS = {"(": ")", "[": "]", "{": "}", "<": ">"}
_CLOSERS = {")", "]", "}", ">"}


# ---------- Masking ----------


def mask_source(text: str) -> Tuple[str, str]:
    """
    Blank comments and literals without moving any character.

    Returns:
        (code, skeleton): `code` has comments replaced by spaces;
        `skeleton` additionally has the contents of string, raw string
        and char literals replaced by spaces.
    """
    code = list(text)
    skeleton = list(text)
    n = len(text)
    i = 0

    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""

        if ch == "/" and nxt == "/":
            end = text.find("\n", i)
            end = n if end == -1 else end
            _blank(code, i, end)
            _blank(skeleton, i, end)
            i = end
        elif ch == "/" and nxt == "*":
            end = _block_comment_end(text, i)
            _blank(code, i, end)
            _blank(skeleton, i, end)
            i = end
        elif ch in "br" and not _is_ident_char(text, i - 1) and _RAW_STRING_START.match(text, i):
            m = _RAW_STRING_START.match(text, i)
            closing = '"' + m.group(1)
            end = text.find(closing, m.end())
            end = n if end == -1 else end
            _blank(skeleton, m.end(), end)
            i = min(n, end + len(closing))
        elif ch == '"':
            end = _string_end(text, i)
            _blank(skeleton, i + 1, end - 1)
            i = end
        elif ch == "'":
            end = _char_literal_end(text, i)
            if end is None:
                i += 1  # lifetime or label
            else:
                _blank(skeleton, i + 1, end - 1)
                i = end
        else:
            i += 1

    return "".join(code), "".join(skeleton)


def _blank(chars: List[str], start: int, end: int) -> None:
    for j in range(start, min(end, len(chars))):
        if chars[j] != "\n":
            chars[j] = " "


def _is_ident_char(text: str, i: int) -> bool:
    return i >= 0 and (text[i].isalnum() or text[i] == "_")


def _block_comment_end(text: str, i: int) -> int:
    """Index just past the block comment starting at i; block comments nest."""
    depth = 0
    n = len(text)
    while i < n:
        if text.startswith("/*", i):
            depth += 1
            i += 2
        elif text.startswith("*/", i):
            depth -= 1
            i += 2
            if depth == 0:
                return i
        else:
            i += 1
    return n


def _string_end(text: str, i: int) -> int:
    """Index just past the closing quote of the string opened at i."""
    j = i + 1
    n = len(text)
    while j < n:
        if text[j] == "\\":
            j += 2
        elif text[j] == '"':
            return j + 1
        else:
            j += 1
    return n


def _char_literal_end(text: str, i: int) -> Optional[int]:
    """Index past a char literal opened at i, or None for a lifetime."""
    n = len(text)
    if i + 1 < n and text[i + 1] == "\\":
        close = text.find("'", i + 3)
        return None if close == -1 else close + 1
    if i + 2 < n and text[i + 2] == "'" and text[i + 1] != "\n":
        return i + 3
    return None


# ---------- Delimiters ----------


def match_delimiter(text: str, open_idx: int) -> int:
    """
    Index of the delimiter closing the one at `open_idx`.

    Nested brackets of every kind are balanced together; `->` and `=>`
    never close an angle bracket. Returns len(text) - 1 when unbalanced.
    """
    stack: List[str] = []
    n = len(text)
    for j in range(open_idx, n):
        ch = text[j]
        if ch in _OPENERS:
            if ch == "<" and text[open_idx] != "<":
                continue
            stack.append(_OPENERS[ch])
        elif ch in _CLOSERS:
            if ch == ">":
                if text[open_idx] != "<" or text[j - 1] in "-=":
                    continue
            if stack and stack[-1] == ch:
                stack.pop()
            elif stack and ch != ">":
                # mismatched closer; drop frames until it matches
                while stack and stack[-1] != ch:
                    stack.pop()
                if stack:
                    stack.pop()
            if not stack:
                return j
    logger.debug("Unbalanced delimiter %r at offset %d", text[open_idx], open_idx)
    return n - 1


def split_top_level(text: str, start: int, end: int, sep: str = ",") -> List[Tuple[int, int]]:
    """Split text[start:end] on `sep` at nesting depth 0, returning spans."""
    spans = []
    depth = 0
    seg_start = start
    for j in range(start, end):
        ch = text[j]
        if ch in "([{<":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif ch == ">" and text[j - 1] not in "-=":
            depth -= 1
        elif ch == sep and depth == 0:
            spans.append((seg_start, j))
            seg_start = j + 1
    spans.append((seg_start, end))
    return [(s, e) for s, e in spans if text[s:e].strip()]


def _squash(text: str) -> str:
    return " ".join(text.split())


# ---------- Parser ----------


class _Scanner:
    """Item scanner over a masked file."""

    def __init__(self, path: str, text: str, code: str, skeleton: str):
        self.path = path
        self.text = text
        self.code = code
        self.sk = skeleton
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", text)]

    def line_of(self, offset: int) -> int:
        return bisect.bisect_right(self._line_starts, offset)

    def _skip_ws(self, pos: int, end: int) -> int:
        while pos < end and self.sk[pos].isspace():
            pos += 1
        return pos

    def _find_any(self, chars: str, pos: int, end: int) -> int:
        """First of `chars` outside square brackets (`[u8; 4]` holds a `;`)."""
        depth = 0
        for j in range(pos, end):
            ch = self.sk[j]
            if ch == "[":
                depth += 1
            elif ch == "]":
                depth = max(0, depth - 1)
            elif depth == 0 and ch in chars:
                return j
        return -1

    def _read_attributes(self, pos: int, end: int) -> Tuple[List[Attribute], int]:
        """Consume leading `#[...]` attributes at pos."""
        attributes = []
        pos = self._skip_ws(pos, end)
        while self.sk.startswith("#[", pos):
            close = match_delimiter(self.sk, pos + 1)
            attributes.append(Attribute(
                text=_squash(self.code[pos:close + 1]),
                line=self.line_of(pos),
            ))
            pos = self._skip_ws(close + 1, end)
        return attributes, pos

    def parse_items(self, start: int, end: int) -> Tuple[List[Item], List[Attribute]]:
        """Scan [start, end) for items; returns (items, inner_attributes)."""
        items: List[Item] = []
        inner: List[Attribute] = []
        pending: List[Attribute] = []
        pos = start

        while pos < end:
            m = _SCAN_RE.search(self.sk, pos, end)
            if m is None:
                break

            if m.group("attr"):
                bracket = m.end() - 1
                close = min(match_delimiter(self.sk, bracket), end - 1)
                attr = Attribute(
                    text=_squash(self.code[m.start():close + 1]),
                    line=self.line_of(m.start()),
                    inner=m.group("attr") == "#![",
                )
                (inner if attr.inner else pending).append(attr)
                pos = close + 1
            elif m.group("open"):
                pos = min(match_delimiter(self.sk, m.start()), end - 1) + 1
                pending = []
            elif m.group("semi"):
                pos = m.end()
                pending = []
            else:
                item, pos = self._parse_item(m, end)
                if item is not None:
                    item.attributes = pending
                    items.append(item)
                pending = []

        return items, inner

    def _parse_item(self, m: "re.Match[str]", end: int) -> Tuple[Optional[Item], int]:
        kw = m.group("kw")
        visibility = Visibility.parse(m.group("vis"))
        line = self.line_of(m.start("kw") if not m.group("vis") else m.start())
        quals = tuple(re.findall(r"default|const|async|unsafe|extern", m.group("quals")))

        if kw == "impl":
            return self._parse_impl(m.end(), end, line)

        name_match = _NAME_RE.match(self.sk, m.end())
        if name_match is None or name_match.end() > end:
            # `fn(u8) -> u8` pointer types, `impl` traits in type position
            return None, m.end()
        name = name_match.group(1)
        pos = name_match.end()

        if kw == "fn":
            return self._parse_fn(name, visibility, line, quals, pos, end)
        if kw in ("struct", "union"):
            return self._parse_struct(name, visibility, line, pos, end)
        if kw == "enum":
            return self._parse_enum(name, visibility, line, pos, end)
        if kw == "trait":
            return self._parse_trait(name, visibility, line, pos, end)
        return self._parse_mod(name, line, pos, end)

    def _skip_generics(self, pos: int, end: int) -> Tuple[str, int]:
        pos = self._skip_ws(pos, end)
        if pos < end and self.sk[pos] == "<":
            close = min(match_delimiter(self.sk, pos), end - 1)
            return _squash(self.code[pos:close + 1]), close + 1
        return "", pos

    def _block_end(self, open_idx: int, end: int) -> int:
        return min(match_delimiter(self.sk, open_idx), end - 1)

    def _parse_struct(self, name, visibility, line, pos, end):
        _, pos = self._skip_generics(pos, end)
        stop = self._find_any("{(;", pos, end)
        struct = StructDef(name=name, visibility=visibility, line=line)
        if stop == -1:
            struct.kind = StructKind.UNIT
            return struct, end
        if self.sk[stop] == ";":
            struct.kind = StructKind.UNIT
            return struct, stop + 1
        close = self._block_end(stop, end)
        if self.sk[stop] == "{":
            struct.kind = StructKind.NAMED
            struct.fields = self._parse_fields(stop + 1, close)
            return struct, close + 1
        struct.kind = StructKind.TUPLE
        struct.fields = self._parse_tuple_fields(stop + 1, close)
        semi = self._find_any(";{", close + 1, end)
        return struct, (end if semi == -1 else semi + 1)

    def _parse_fields(self, start: int, end: int) -> List[FieldDef]:
        fields = []
        for s, e in split_top_level(self.sk, start, end):
            attributes, pos = self._read_attributes(s, e)
            vis_match = _VIS_RE.match(self.sk, pos)
            vis_text = None
            if vis_match and vis_match.end() <= e:
                vis_text = vis_match.group(0)
                pos = vis_match.end()
            field_match = _FIELD_RE.match(self.sk, pos)
            if field_match is None or field_match.end() > e:
                logger.debug("%s: unrecognized field %r", self.path, self.sk[s:e].strip())
                continue
            fields.append(FieldDef(
                name=field_match.group(1),
                type_text=_squash(self.code[field_match.end():e]),
                visibility=Visibility.parse(vis_text),
                line=self.line_of(field_match.start()),
                attributes=attributes,
            ))
        return fields

    def _parse_tuple_fields(self, start: int, end: int) -> List[FieldDef]:
        fields = []
        for index, (s, e) in enumerate(split_top_level(self.sk, start, end)):
            attributes, pos = self._read_attributes(s, e)
            vis_match = _VIS_RE.match(self.sk, pos)
            vis_text = None
            if vis_match and vis_match.end() <= e:
                vis_text = vis_match.group(0)
                pos = vis_match.end()
            fields.append(FieldDef(
                name=str(index),
                type_text=_squash(self.code[pos:e]),
                visibility=Visibility.parse(vis_text),
                line=self.line_of(pos),
                attributes=attributes,
            ))
        return fields

    def _parse_enum(self, name, visibility, line, pos, end):
        stop = self._find_any("{;", pos, end)
        enum = EnumDef(name=name, visibility=visibility, line=line)
        if stop == -1:
            return enum, end
        if self.sk[stop] == ";":
            return enum, stop + 1
        return enum, self._block_end(stop, end) + 1

    def _parse_fn(self, name, visibility, line, quals, pos, end):
        generics, pos = self._skip_generics(pos, end)
        pos = self._skip_ws(pos, end)
        if pos >= end or self.sk[pos] != "(":
            return None, pos
        params_close = self._block_end(pos, end)
        params = self._parse_params(pos + 1, params_close)

        stop = self._find_any("{;", params_close + 1, end)
        stop = end if stop == -1 else stop
        tail = self.code[params_close + 1:stop]
        where_match = _WHERE_RE.search(self.sk, params_close + 1, stop)
        if where_match:
            where_clause = _squash(self.code[where_match.start():stop])
            tail = self.code[params_close + 1:where_match.start()]
        else:
            where_clause = ""
        tail = tail.strip()
        return_type = _squash(tail[2:]) if tail.startswith("->") else None

        fn = FnDef(
            name=name,
            visibility=visibility,
            line=line,
            params=params,
            return_type=return_type,
            generics=generics,
            where_clause=where_clause,
            qualifiers=quals,
            callable_generics=tuple(dict.fromkeys(
                _CALLABLE_BOUND_RE.findall(generics + " " + where_clause)
            )),
        )
        if stop >= end:
            return fn, end
        if self.sk[stop] == ";":
            fn.has_body = False
            return fn, stop + 1
        return fn, self._block_end(stop, end) + 1

    def _parse_params(self, start: int, end: int) -> List[Param]:
        params = []
        for s, e in split_top_level(self.sk, start, end):
            _, pos = self._read_attributes(s, e)
            text = _squash(self.code[pos:e])
            line = self.line_of(pos)
            receiver = _RECEIVER_RE.match(text)
            if receiver:
                params.append(Param(
                    name="self",
                    type_text=receiver.group("type") or text,
                    line=line,
                    is_receiver=True,
                ))
                continue
            colon = _top_level_colon(text)
            if colon == -1:
                params.append(Param(name=text, type_text="", line=line))
                continue
            pattern = text[:colon].strip()
            if pattern.startswith("mut "):
                pattern = pattern[4:].strip()
            params.append(Param(
                name=pattern,
                type_text=text[colon + 1:].strip(),
                line=line,
            ))
        return params

    def _parse_trait(self, name, visibility, line, pos, end):
        _, pos = self._skip_generics(pos, end)
        stop = self._find_any("{;", pos, end)
        trait = TraitDef(name=name, visibility=visibility, line=line)
        if stop == -1:
            return trait, end
        header = self.code[pos:stop]
        where_match = re.search(r"\bwhere\b", header)
        if where_match:
            header = header[:where_match.start()]
        header = header.strip()
        if header.startswith(":"):
            trait.supertraits = _squash(header[1:])
        if self.sk[stop] == ";":
            return trait, stop + 1
        close = self._block_end(stop, end)
        trait.items, _ = self.parse_items(stop + 1, close)
        return trait, close + 1

    def _parse_impl(self, pos, end, line):
        _, pos = self._skip_generics(pos, end)
        stop = self._find_any("{;", pos, end)
        if stop == -1:
            return None, end
        header = self.code[pos:stop]
        where_match = re.search(r"\bwhere\b", header)
        if where_match:
            header = header[:where_match.start()]
        header = _squash(header)
        for_match = re.search(r"\s+for\s+", header)
        if for_match and not header.startswith("for<"):
            impl = ImplDef(
                self_type=header[for_match.end():].strip(),
                trait_name=header[:for_match.start()].lstrip("!").strip(),
                line=line,
            )
        else:
            impl = ImplDef(self_type=header, line=line)
        if self.sk[stop] == ";":
            return impl, stop + 1
        close = self._block_end(stop, end)
        impl.items, _ = self.parse_items(stop + 1, close)
        return impl, close + 1

    def _parse_mod(self, name, line, pos, end):
        stop = self._find_any("{;", pos, end)
        if stop == -1:
            return ModDef(name=name, line=line, inline=False), end
        if self.sk[stop] == ";":
            return ModDef(name=name, line=line, inline=False), stop + 1
        close = self._block_end(stop, end)
        items, inner = self.parse_items(stop + 1, close)
        return ModDef(
            name=name,
            line=line,
            inline=True,
            items=items,
            inner_attributes=inner,
        ), close + 1


def _top_level_colon(text: str) -> int:
    """Index of the first `:` that is not part of `::` at depth 0."""
    depth = 0
    for j, ch in enumerate(text):
        if ch in "([{<":
            depth += 1
        elif ch in ")]}>":
            depth -= 1
        elif ch == ":" and depth == 0:
            before = text[j - 1] if j > 0 else ""
            after = text[j + 1] if j + 1 < len(text) else ""
            if before != ":" and after != ":":
                return j
    return -1


def parse_source(text: str, path: str = "<memory>") -> SourceFile:
    """
    Scan a Rust file into a `SourceFile`.

    Args:
        text: Full file contents
        path: Crate-relative path, used for reporting

    Returns:
        SourceFile with top-level items and inner attributes
    """
    code, skeleton = mask_source(text)
    scanner = _Scanner(path, text, code, skeleton)
    items, inner = scanner.parse_items(0, len(skeleton))
    logger.debug("Parsed %s: %d top-level items", path, len(items))
    return SourceFile(
        path=path,
        text=text,
        code=code,
        skeleton=skeleton,
        items=items,
        inner_attributes=inner,
    )
