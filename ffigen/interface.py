"""The language-agnostic interface model of one component."""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional, TypeVar

from .errors import MetadataConflictError
from .metadata.records import (
    CallbackInterfaceMetadata,
    ConstructorMetadata,
    CustomTypeMetadata,
    EnumMetadata,
    FnMetadata,
    Metadata,
    MetadataGroup,
    MethodMetadata,
    NamespaceMetadata,
    ObjectMetadata,
    RecordMetadata,
    UdlFileMetadata,
)

_Decl = TypeVar("_Decl")

# Records are applied in this order within one group so that members never
# precede the object they belong to.
_FOLD_ORDER = (
    CustomTypeMetadata,
    RecordMetadata,
    EnumMetadata,
    ObjectMetadata,
    CallbackInterfaceMetadata,
    FnMetadata,
    ConstructorMetadata,
    MethodMetadata,
)


@dataclass
class ObjectDefinition:
    """An object together with its constructors and methods."""

    declaration: ObjectMetadata
    constructors: Dict[str, ConstructorMetadata] = field(default_factory=dict)
    methods: Dict[str, MethodMetadata] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.declaration.name


@dataclass
class ComponentInterface:
    """Everything a binding emitter needs to know about one crate's surface.

    Built by folding one or more :class:`MetadataGroup` values with
    :meth:`add_metadata`; a UDL-derived group is folded before the in-library
    group so in-library records can refine UDL declarations.
    """

    namespace: Optional[str] = None
    crate_name: Optional[str] = None
    functions: Dict[str, FnMetadata] = field(default_factory=dict)
    objects: Dict[str, ObjectDefinition] = field(default_factory=dict)
    records: Dict[str, RecordMetadata] = field(default_factory=dict)
    enums: Dict[str, EnumMetadata] = field(default_factory=dict)
    callback_interfaces: Dict[str, CallbackInterfaceMetadata] = field(default_factory=dict)
    custom_types: Dict[str, CustomTypeMetadata] = field(default_factory=dict)

    def add_metadata(self, group: MetadataGroup) -> None:
        """Fold every record of ``group`` into the model.

        Raises :class:`MetadataConflictError` on a conflicting redeclaration,
        a namespace mismatch or a member of an unknown object.
        """
        self._set_namespace(group.namespace)
        for kind in _FOLD_ORDER:
            for item in group.items:
                if type(item) is kind:
                    self.add_item(item)

    def add_item(self, item: Metadata) -> None:
        if isinstance(item, (NamespaceMetadata, UdlFileMetadata)):
            return
        if isinstance(item, FnMetadata):
            self._declare(self.functions, item.name, item, "function")
        elif isinstance(item, RecordMetadata):
            self._declare(self.records, item.name, item, "record")
        elif isinstance(item, EnumMetadata):
            self._declare(self.enums, item.name, item, "enum")
        elif isinstance(item, CallbackInterfaceMetadata):
            self._declare(self.callback_interfaces, item.name, item, "callback interface")
        elif isinstance(item, CustomTypeMetadata):
            self._declare(self.custom_types, item.name, item, "custom type")
        elif isinstance(item, ObjectMetadata):
            existing = self.objects.get(item.name)
            if existing is None:
                self.objects[item.name] = ObjectDefinition(declaration=item)
            else:
                existing.declaration = _merge(existing.declaration, item, f"object {item.name}")
        elif isinstance(item, ConstructorMetadata):
            obj = self._object_for(item.self_name, f"constructor {item.name}")
            self._declare(obj.constructors, item.name, item, f"constructor {item.self_name}.")
        elif isinstance(item, MethodMetadata):
            obj = self._object_for(item.self_name, f"method {item.name}")
            self._declare(obj.methods, item.name, item, f"method {item.self_name}.")
        else:  # pragma: no cover - closed record family
            raise TypeError(f"Unsupported metadata item: {item!r}")

    def is_empty(self) -> bool:
        return not any(
            (
                self.functions,
                self.objects,
                self.records,
                self.enums,
                self.callback_interfaces,
                self.custom_types,
            )
        )

    def error_names(self) -> List[str]:
        return sorted(name for name, enum in self.enums.items() if enum.is_error)

    def to_dict(self) -> Dict[str, Any]:
        """Return a deterministic, JSON-serialisable view of the model."""
        return {
            "namespace": self.namespace,
            "crate_name": self.crate_name,
            "functions": _sorted_dump(self.functions),
            "objects": {
                name: {
                    "declaration": asdict(obj.declaration),
                    "constructors": _sorted_dump(obj.constructors),
                    "methods": _sorted_dump(obj.methods),
                }
                for name, obj in sorted(self.objects.items())
            },
            "records": _sorted_dump(self.records),
            "enums": _sorted_dump(self.enums),
            "callback_interfaces": _sorted_dump(self.callback_interfaces),
            "custom_types": _sorted_dump(self.custom_types),
        }

    def checksum(self) -> str:
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def _set_namespace(self, namespace: NamespaceMetadata) -> None:
        if self.namespace is None:
            self.namespace = namespace.name
            self.crate_name = namespace.crate_name
            return
        if self.namespace != namespace.name:
            raise MetadataConflictError(
                f"Namespace mismatch for crate {namespace.crate_name}: "
                f"{self.namespace} vs {namespace.name}"
            )

    def _object_for(self, name: str, member: str) -> ObjectDefinition:
        obj = self.objects.get(name)
        if obj is None:
            raise MetadataConflictError(f"{member} declared for unknown object {name}")
        return obj

    @staticmethod
    def _declare(table: Dict[str, _Decl], name: str, item: _Decl, label: str) -> None:
        existing = table.get(name)
        if existing is None:
            table[name] = item
            return
        separator = "" if label.endswith(".") else " "
        table[name] = _merge(existing, item, f"{label}{separator}{name}")


def _merge(existing: _Decl, incoming: _Decl, label: str) -> _Decl:
    if existing == incoming:
        return existing
    # An undocumented declaration may be refined by a documented but otherwise identical one.
    if (
        getattr(existing, "docstring", "") is None
        and getattr(incoming, "docstring", None) is not None
        and replace(existing, docstring=incoming.docstring) == incoming  # type: ignore[type-var]
    ):
        return incoming
    if (
        getattr(incoming, "docstring", "") is None
        and replace(incoming, docstring=getattr(existing, "docstring", None)) == existing  # type: ignore[type-var]
    ):
        return existing
    raise MetadataConflictError(f"Conflicting definitions for {label}")


def _sorted_dump(table: Dict[str, Any]) -> Dict[str, Any]:
    return {name: asdict(value) for name, value in sorted(table.items())}


__all__ = ["ComponentInterface", "ObjectDefinition"]
