"""Parser for legacy UDL interface files.

Supports the WebIDL-flavoured subset ffigen understands::

    namespace arithmetic {
      [Throws=ArithmeticError]
      u64 add(u64 a, u64 b);
    };
    dictionary Point { i32 x; i32 y; };
    [Error]
    enum ArithmeticError { "IntegerOverflow" };
    interface Counter {
      constructor(u32 start);
      [Name=from_name] constructor(string name);
      [Async] u32 value();
    };
    callback interface Logger { void log(string message); };
    typedef string Url;

The result is a :class:`MetadataGroup` shaped exactly like in-library metadata.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from .errors import UdlParseError
from .metadata.records import (
    CallbackInterfaceMetadata,
    ConstructorMetadata,
    CustomTypeMetadata,
    EnumMetadata,
    FieldMetadata,
    FnMetadata,
    Metadata,
    MetadataGroup,
    MethodMetadata,
    NamespaceMetadata,
    ObjectMetadata,
    RecordMetadata,
    VariantMetadata,
)

_COMMENT = re.compile(r"//[^\n]*")
_DEFINITION = re.compile(
    r"\s*(?:\[(?P<attrs>[^\]]*)\]\s*)?"
    r"(?P<keyword>namespace|dictionary|enum|interface|callback\s+interface)\s+"
    r"(?P<name>\w+)\s*\{(?P<body>[^{}]*)\}\s*;",
)
_TYPEDEF = re.compile(
    r"\s*(?:\[(?P<attrs>[^\]]*)\]\s*)?typedef\s+(?P<builtin>[\w<>?,\s]+?)\s+(?P<name>\w+)\s*;"
)
_CALLABLE = re.compile(
    r"(?:\[(?P<attrs>[^\]]*)\]\s*)?(?P<ret>[\w<>?,\s]+?)\s+(?P<name>\w+)\s*\((?P<args>[^()]*)\)",
    re.S,
)
_CONSTRUCTOR = re.compile(
    r"(?:\[(?P<attrs>[^\]]*)\]\s*)?constructor\s*\((?P<args>[^()]*)\)",
    re.S,
)
_FIELD = re.compile(r"(?P<type>[\w<>?,\s]+?)\s+(?P<name>\w+)", re.S)
_VARIANT = re.compile(r'"(?P<name>\w+)"')


def parse_udl(text: str, crate_name: str) -> MetadataGroup:
    """Parse UDL ``text`` for ``crate_name`` into a metadata group."""
    source = _COMMENT.sub(lambda m: " " * len(m.group(0)), text)
    parser = _Parser(source, crate_name)
    return parser.parse()


class _Parser:
    def __init__(self, source: str, crate_name: str) -> None:
        self.source = source
        self.crate_name = crate_name
        self.namespace: Optional[NamespaceMetadata] = None
        self.items: List[Metadata] = []

    def parse(self) -> MetadataGroup:
        position = 0
        length = len(self.source)
        while position < length:
            if not self.source[position:].strip():
                break
            match = _DEFINITION.match(self.source, position)
            if match is not None:
                self._definition(match)
                position = match.end()
                continue
            match = _TYPEDEF.match(self.source, position)
            if match is not None:
                self.items.append(
                    CustomTypeMetadata(
                        module_path=self.crate_name,
                        name=match.group("name"),
                        builtin=_normalise_type(match.group("builtin")),
                    )
                )
                position = match.end()
                continue
            offset = position + (len(self.source[position:]) - len(self.source[position:].lstrip()))
            raise UdlParseError("expected a definition", line=self._line(offset))

        if self.namespace is None:
            raise UdlParseError("missing namespace definition")
        return MetadataGroup(namespace=self.namespace, items=tuple(self.items))

    def _definition(self, match: re.Match[str]) -> None:
        keyword = " ".join(match.group("keyword").split())
        name = match.group("name")
        attrs = _parse_attributes(match.group("attrs"))
        body = match.group("body")
        body_offset = match.start("body")

        if keyword == "namespace":
            if self.namespace is not None:
                raise UdlParseError(
                    f"duplicate namespace {name} (already {self.namespace.name})",
                    line=self._line(match.start("name")),
                )
            self.namespace = NamespaceMetadata(crate_name=self.crate_name, name=name)
            for member, offset in self._members(body, body_offset):
                self.items.append(self._function(member, offset))
        elif keyword == "dictionary":
            fields = tuple(self._field(member, offset) for member, offset in self._members(body, body_offset))
            self.items.append(RecordMetadata(module_path=self.crate_name, name=name, fields=fields))
        elif keyword == "enum":
            self.items.append(
                EnumMetadata(
                    module_path=self.crate_name,
                    name=name,
                    variants=self._variants(body, body_offset),
                    is_error="Error" in attrs,
                )
            )
        elif keyword == "interface":
            self.items.append(ObjectMetadata(module_path=self.crate_name, name=name))
            for member, offset in self._members(body, body_offset):
                self.items.append(self._object_member(name, member, offset))
        else:
            methods = tuple(self._function(member, offset) for member, offset in self._members(body, body_offset))
            self.items.append(
                CallbackInterfaceMetadata(module_path=self.crate_name, name=name, methods=methods)
            )

    def _members(self, body: str, body_offset: int) -> List[Tuple[str, int]]:
        members: List[Tuple[str, int]] = []
        cursor = 0
        for chunk in body.split(";"):
            start = cursor + (len(chunk) - len(chunk.lstrip()))
            cursor += len(chunk) + 1
            if chunk.strip():
                members.append((chunk.strip(), body_offset + start))
        if body.rstrip() and not body.rstrip().endswith(";"):
            raise UdlParseError("missing ';' after member", line=self._line(members[-1][1]))
        return members

    def _function(self, member: str, offset: int) -> FnMetadata:
        match = _CALLABLE.fullmatch(member)
        if match is None:
            raise UdlParseError(f"invalid function declaration `{member}`", line=self._line(offset))
        attrs = _parse_attributes(match.group("attrs"))
        return FnMetadata(
            module_path=self.crate_name,
            name=match.group("name"),
            inputs=self._arguments(match.group("args"), offset),
            return_type=_return_type(match.group("ret")),
            throws=attrs.get("Throws"),
            is_async="Async" in attrs,
        )

    def _object_member(self, object_name: str, member: str, offset: int) -> Metadata:
        constructor = _CONSTRUCTOR.fullmatch(member)
        if constructor is not None:
            attrs = _parse_attributes(constructor.group("attrs"))
            return ConstructorMetadata(
                module_path=self.crate_name,
                self_name=object_name,
                name=attrs.get("Name") or "new",
                inputs=self._arguments(constructor.group("args"), offset),
                throws=attrs.get("Throws"),
            )
        method = self._function(member, offset)
        return MethodMetadata(
            module_path=self.crate_name,
            self_name=object_name,
            name=method.name,
            inputs=method.inputs,
            return_type=method.return_type,
            throws=method.throws,
            is_async=method.is_async,
        )

    def _field(self, member: str, offset: int) -> FieldMetadata:
        match = _FIELD.fullmatch(member)
        if match is None:
            raise UdlParseError(f"invalid field `{member}`", line=self._line(offset))
        return FieldMetadata(name=match.group("name"), type=_normalise_type(match.group("type")))

    def _arguments(self, text: str, offset: int) -> Tuple[FieldMetadata, ...]:
        return tuple(self._field(part, offset) for part in _split_top_level(text) if part)

    def _variants(self, body: str, body_offset: int) -> Tuple[VariantMetadata, ...]:
        variants: List[VariantMetadata] = []
        for part in body.split(","):
            stripped = part.strip()
            if not stripped:
                continue
            match = _VARIANT.fullmatch(stripped)
            if match is None:
                raise UdlParseError(f"invalid enum variant `{stripped}`", line=self._line(body_offset))
            variants.append(VariantMetadata(name=match.group("name")))
        return tuple(variants)

    def _line(self, offset: int) -> int:
        return self.source.count("\n", 0, offset) + 1


def _parse_attributes(raw: Optional[str]) -> Dict[str, Optional[str]]:
    attributes: Dict[str, Optional[str]] = {}
    if not raw:
        return attributes
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        key, sep, value = part.partition("=")
        attributes[key.strip()] = value.strip() if sep else None
    return attributes


def _split_top_level(text: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in text:
        if char == "<":
            depth += 1
        elif char == ">":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    parts.append("".join(current).strip())
    return parts


def _normalise_type(raw: str) -> str:
    return re.sub(r"\s*([<>,])\s*", r"\1", " ".join(raw.split())).replace(",", ", ")


def _return_type(raw: str) -> Optional[str]:
    normalised = _normalise_type(raw)
    return None if normalised == "void" else normalised


__all__ = ["parse_udl"]
