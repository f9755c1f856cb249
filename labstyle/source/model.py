"""
Structural Model of Rust Source

The scanner does not build a syntax tree. It records only the shapes the
style guide talks about:
- structures and the order of their fields
- function signatures and the order of their parameters
- traits, impls and modules (for naming and test layout)
- attributes attached to each of them

Every node carries the 1-based line it starts on so findings can point
back into the file.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple, Union


class Visibility(str, Enum):
    """Declared visibility of an item or field."""

    PUBLIC = "pub"
    CRATE = "pub(crate)"
    RESTRICTED = "pub(restricted)"  # pub(super), pub(self), pub(in path)
    PRIVATE = "private"

    @staticmethod
    def parse(text: Optional[str]) -> "Visibility":
        if not text:
            return Visibility.PRIVATE
        compact = re.sub(r"\s+", "", text)
        if compact == "pub":
            return Visibility.PUBLIC
        if compact == "pub(crate)":
            return Visibility.CRATE
        return Visibility.RESTRICTED


class StructKind(str, Enum):
    NAMED = "named"
    TUPLE = "tuple"
    UNIT = "unit"


_CFG_TOKEN_RE = re.compile(
    r'\s*(?:(?P<string>r?#*"(?:\\.|[^"\\])*"#*)|(?P<ident>[A-Za-z_]\w*)|(?P<punct>[(),=]))'
)


def _cfg_tokens(text: str) -> Optional[List[str]]:
    tokens = []
    pos = 0
    while pos < len(text):
        m = _CFG_TOKEN_RE.match(text, pos)
        if m is None:
            if text[pos:].strip():
                return None
            break
        tokens.append(m.group(m.lastgroup) if m.lastgroup != "string" else '""')
        pos = m.end()
    return tokens


class _CfgPredicate:
    """
    Recursive reader for `cfg(...)` predicates.

    `requires_test()` is True when the predicate can only hold in a test
    build: a bare `test`, an `all(...)` with such a member, or an
    `any(...)` whose members all are. `not(...)`, key-value options such
    as `feature = "test-utils"` and other names never are.
    """

    def __init__(self, tokens: List[str]):
        self.tokens = tokens
        self.pos = 0

    def _peek(self) -> Optional[str]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> Optional[str]:
        token = self._peek()
        self.pos += 1
        return token

    def expect(self, token: str) -> None:
        if self._next() != token:
            raise ValueError(f"expected {token!r} in cfg predicate")

    def _list(self) -> List[bool]:
        self.expect("(")
        members = []
        while self._peek() not in (")", None):
            members.append(self.requires_test())
            if self._peek() == ",":
                self.pos += 1
        self.expect(")")
        return members

    def requires_test(self) -> bool:
        name = self._next()
        if name is None or not re.match(r"[A-Za-z_]", name):
            raise ValueError("expected a cfg option")
        if name in ("all", "any", "not") and self._peek() == "(":
            members = self._list()
            if name == "all":
                return any(members)
            if name == "any":
                return bool(members) and all(members)
            if len(members) != 1:
                raise ValueError("not() takes one predicate")
            return False
        if self._peek() == "=":
            self.pos += 1
            self._next()
            return False
        return name == "test"


def cfg_requires_test(attribute_body: str) -> bool:
    """True if `cfg(<predicate>)` compiles its item only in test builds."""
    tokens = _cfg_tokens(attribute_body)
    if not tokens or tokens[0] != "cfg":
        return False
    reader = _CfgPredicate(tokens[1:])
    try:
        reader.expect("(")
        result = reader.requires_test()
        reader.expect(")")
    except ValueError:
        return False
    return result and reader.pos == len(tokens) - 1


@dataclass(frozen=True)
class Attribute:
    """An outer `#[...]` or inner `#![...]` attribute."""

    text: str
    line: int
    inner: bool = False

    @property
    def body(self) -> str:
        """Attribute content without the `#[`/`#![` and `]` delimiters."""
        start = 3 if self.inner else 2
        return self.text[start:-1].strip()

    @property
    def name(self) -> str:
        """Path of the attribute, e.g. `derive`, `cfg`, `tokio::test`."""
        match = re.match(r"[A-Za-z_][\w:]*", self.body)
        return match.group(0) if match else ""

    @property
    def is_cfg_test(self) -> bool:
        return cfg_requires_test(self.body)


@dataclass
class FieldDef:
    name: str
    type_text: str
    visibility: Visibility
    line: int
    attributes: List[Attribute] = field(default_factory=list)


@dataclass
class StructDef:
    name: str
    visibility: Visibility
    line: int
    kind: StructKind = StructKind.NAMED
    fields: List[FieldDef] = field(default_factory=list)
    attributes: List[Attribute] = field(default_factory=list)


@dataclass
class EnumDef:
    name: str
    visibility: Visibility
    line: int
    attributes: List[Attribute] = field(default_factory=list)


@dataclass
class Param:
    """A single function parameter; `name` is the binding pattern."""

    name: str
    type_text: str
    line: int
    is_receiver: bool = False


@dataclass
class FnDef:
    """
    A function or method signature.

    `callable_generics` lists the generic parameters bound by one of the
    `Fn` traits, so `f: F` can be recognized as a callback.
    """

    name: str
    visibility: Visibility
    line: int
    params: List[Param] = field(default_factory=list)
    return_type: Optional[str] = None
    generics: str = ""
    where_clause: str = ""
    qualifiers: Tuple[str, ...] = ()
    has_body: bool = True
    attributes: List[Attribute] = field(default_factory=list)
    callable_generics: Tuple[str, ...] = ()

    @property
    def is_test(self) -> bool:
        return any(a.name == "test" or a.name.endswith("::test") for a in self.attributes)

    @property
    def receiver(self) -> Optional[Param]:
        for param in self.params:
            if param.is_receiver:
                return param
        return None


@dataclass
class TraitDef:
    name: str
    visibility: Visibility
    line: int
    supertraits: str = ""
    items: List["Item"] = field(default_factory=list)
    attributes: List[Attribute] = field(default_factory=list)


@dataclass
class ImplDef:
    """An `impl` block. `trait_name` is None for inherent impls."""

    self_type: str
    line: int
    trait_name: Optional[str] = None
    items: List["Item"] = field(default_factory=list)
    attributes: List[Attribute] = field(default_factory=list)


@dataclass
class ModDef:
    """A module; `inline` is False for `mod name;` declarations."""

    name: str
    line: int
    inline: bool = True
    items: List["Item"] = field(default_factory=list)
    attributes: List[Attribute] = field(default_factory=list)
    inner_attributes: List[Attribute] = field(default_factory=list)

    @property
    def is_cfg_test(self) -> bool:
        return any(a.is_cfg_test for a in self.attributes + self.inner_attributes)


Item = Union[StructDef, EnumDef, FnDef, TraitDef, ImplDef, ModDef]
Container = Union[TraitDef, ImplDef, ModDef]


@dataclass
class SourceFile:
    """
    A scanned Rust file.

    `code` is the original text with comments blanked out; `skeleton`
    also blanks literal contents. Offsets and line numbers match `text`
    exactly.
    """

    path: str
    text: str
    code: str
    skeleton: str = ""
    items: List[Item] = field(default_factory=list)
    inner_attributes: List[Attribute] = field(default_factory=list)

    def iter_items(self) -> Iterator[Tuple[Item, Tuple[Container, ...]]]:
        """Yield every item depth-first along with its enclosing containers."""
        yield from _walk(self.items, ())

    def structs(self) -> List[StructDef]:
        return [i for i, _ in self.iter_items() if isinstance(i, StructDef)]

    def enums(self) -> List[EnumDef]:
        return [i for i, _ in self.iter_items() if isinstance(i, EnumDef)]

    def functions(self) -> List[FnDef]:
        return [i for i, _ in self.iter_items() if isinstance(i, FnDef)]

    def traits(self) -> List[TraitDef]:
        return [i for i, _ in self.iter_items() if isinstance(i, TraitDef)]

    def impls(self) -> List[ImplDef]:
        return [i for i, _ in self.iter_items() if isinstance(i, ImplDef)]

    def modules(self) -> List[ModDef]:
        return [i for i, _ in self.iter_items() if isinstance(i, ModDef)]

    def line_text(self, line: int) -> str:
        lines = self.text.splitlines()
        if 1 <= line <= len(lines):
            return lines[line - 1].strip()
        return ""


def _walk(
    items: List[Item],
    parents: Tuple[Container, ...],
) -> Iterator[Tuple[Item, Tuple[Container, ...]]]:
    for item in items:
        yield item, parents
        if isinstance(item, (ModDef, ImplDef, TraitDef)):
            yield from _walk(item.items, parents + (item,))
