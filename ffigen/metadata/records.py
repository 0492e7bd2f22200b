"""Metadata records describing the interface surface of a crate.

Records are produced by the library extractor (from symbols embedded in a
compiled artifact) and by the UDL parser. Both sources yield the same shapes so
the interface model can fold them uniformly.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Mapping, Optional, Tuple, Type, Union


@dataclass(frozen=True)
class FieldMetadata:
    """A named, typed slot: function argument, record field or variant field."""

    name: str
    type: str


@dataclass(frozen=True)
class NamespaceMetadata:
    """Declares the namespace exported by a crate."""

    crate_name: str
    name: str


@dataclass(frozen=True)
class UdlFileMetadata:
    """Declares that a crate's interface starts from ``src/<file_stub>.udl``."""

    module_path: str
    namespace: str
    file_stub: str


@dataclass(frozen=True)
class FnMetadata:
    module_path: str
    name: str
    inputs: Tuple[FieldMetadata, ...] = ()
    return_type: Optional[str] = None
    throws: Optional[str] = None
    is_async: bool = False
    docstring: Optional[str] = None


@dataclass(frozen=True)
class ConstructorMetadata:
    module_path: str
    self_name: str
    name: str
    inputs: Tuple[FieldMetadata, ...] = ()
    throws: Optional[str] = None
    docstring: Optional[str] = None


@dataclass(frozen=True)
class MethodMetadata:
    module_path: str
    self_name: str
    name: str
    inputs: Tuple[FieldMetadata, ...] = ()
    return_type: Optional[str] = None
    throws: Optional[str] = None
    is_async: bool = False
    docstring: Optional[str] = None


@dataclass(frozen=True)
class RecordMetadata:
    module_path: str
    name: str
    fields: Tuple[FieldMetadata, ...] = ()
    docstring: Optional[str] = None


@dataclass(frozen=True)
class VariantMetadata:
    name: str
    fields: Tuple[FieldMetadata, ...] = ()


@dataclass(frozen=True)
class EnumMetadata:
    module_path: str
    name: str
    variants: Tuple[VariantMetadata, ...] = ()
    is_error: bool = False
    docstring: Optional[str] = None


@dataclass(frozen=True)
class ObjectMetadata:
    module_path: str
    name: str
    docstring: Optional[str] = None


@dataclass(frozen=True)
class CallbackInterfaceMetadata:
    module_path: str
    name: str
    methods: Tuple[FnMetadata, ...] = ()
    docstring: Optional[str] = None


@dataclass(frozen=True)
class CustomTypeMetadata:
    module_path: str
    name: str
    builtin: str


Metadata = Union[
    NamespaceMetadata,
    UdlFileMetadata,
    FnMetadata,
    ConstructorMetadata,
    MethodMetadata,
    RecordMetadata,
    EnumMetadata,
    ObjectMetadata,
    CallbackInterfaceMetadata,
    CustomTypeMetadata,
]

RECORD_KINDS: Dict[str, Type[Any]] = {
    "namespace": NamespaceMetadata,
    "udl_file": UdlFileMetadata,
    "function": FnMetadata,
    "constructor": ConstructorMetadata,
    "method": MethodMetadata,
    "record": RecordMetadata,
    "enum": EnumMetadata,
    "object": ObjectMetadata,
    "callback_interface": CallbackInterfaceMetadata,
    "custom_type": CustomTypeMetadata,
}

_KIND_BY_TYPE: Dict[Type[Any], str] = {cls: kind for kind, cls in RECORD_KINDS.items()}


@dataclass(frozen=True)
class MetadataGroup:
    """All records belonging to one crate namespace, in extraction order."""

    namespace: NamespaceMetadata
    items: Tuple[Metadata, ...] = field(default_factory=tuple)

    @property
    def crate_name(self) -> str:
        return self.namespace.crate_name


def record_kind(record: Metadata) -> str:
    """Return the wire ``kind`` tag for a record instance."""
    try:
        return _KIND_BY_TYPE[type(record)]
    except KeyError:
        raise TypeError(f"Not a metadata record: {record!r}") from None


def crate_name_of(record: Metadata) -> str:
    """Return the crate a record belongs to (first ``::`` segment of its module path)."""
    if isinstance(record, NamespaceMetadata):
        return record.crate_name
    return record.module_path.split("::", 1)[0]


def record_to_dict(record: Metadata) -> Dict[str, Any]:
    payload = asdict(record)
    payload["kind"] = record_kind(record)
    return payload


def record_from_dict(payload: Mapping[str, Any]) -> Metadata:
    """Build a record from its JSON form.

    Raises ``ValueError`` for unknown kinds, missing or unexpected keys.
    """
    kind = payload.get("kind")
    cls = RECORD_KINDS.get(kind) if isinstance(kind, str) else None
    if cls is None:
        raise ValueError(f"unknown metadata kind {kind!r}")
    values = {key: value for key, value in payload.items() if key != "kind"}
    return _build(cls, values)


def _build(cls: Type[Any], values: Mapping[str, Any]) -> Any:
    if not isinstance(values, Mapping):
        raise ValueError(f"{cls.__name__} payload must be an object")
    known = {f.name for f in fields(cls)}
    unexpected = sorted(set(values) - known)
    if unexpected:
        raise ValueError(f"{cls.__name__} got unexpected keys: {', '.join(unexpected)}")
    converted: Dict[str, Any] = {}
    for name, value in values.items():
        if name in {"inputs", "fields"}:
            converted[name] = _field_tuple(value)
        elif name == "variants":
            converted[name] = tuple(
                VariantMetadata(name=str(item["name"]), fields=_field_tuple(item.get("fields", ())))
                for item in _as_list(value)
            )
        elif name == "methods":
            converted[name] = tuple(_build(FnMetadata, item) for item in _as_list(value))
        else:
            converted[name] = value
    try:
        return cls(**converted)
    except TypeError as exc:
        raise ValueError(f"{cls.__name__}: {exc}") from exc


def _field_tuple(value: Any) -> Tuple[FieldMetadata, ...]:
    return tuple(FieldMetadata(name=str(item["name"]), type=str(item["type"])) for item in _as_list(value))


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ValueError(f"expected a list, got {type(value).__name__}")


__all__ = [
    "CallbackInterfaceMetadata",
    "ConstructorMetadata",
    "CustomTypeMetadata",
    "EnumMetadata",
    "FieldMetadata",
    "FnMetadata",
    "Metadata",
    "MetadataGroup",
    "MethodMetadata",
    "NamespaceMetadata",
    "ObjectMetadata",
    "RECORD_KINDS",
    "RecordMetadata",
    "UdlFileMetadata",
    "VariantMetadata",
    "crate_name_of",
    "record_from_dict",
    "record_kind",
    "record_to_dict",
]
