"""Partition extracted metadata records into per-crate groups."""

from __future__ import annotations

from typing import Dict, Iterable, List

from ..errors import GroupingError
from .records import (
    Metadata,
    MetadataGroup,
    NamespaceMetadata,
    UdlFileMetadata,
    crate_name_of,
    record_kind,
)


def group_metadata(items: Iterable[Metadata]) -> List[MetadataGroup]:
    """Group ``items`` by crate, one group per declared namespace.

    Namespaces come from ``NamespaceMetadata`` records and from
    ``UdlFileMetadata`` records (a UDL file names its namespace). Groups are
    returned sorted by crate name; records keep their original order.
    """
    records = list(items)
    namespaces: Dict[str, NamespaceMetadata] = {}
    for record in records:
        declared = _declared_namespace(record)
        if declared is None:
            continue
        existing = namespaces.get(declared.crate_name)
        if existing is not None and existing.name != declared.name:
            raise GroupingError(
                f"Crate {declared.crate_name} declares two namespaces: "
                f"{existing.name} and {declared.name}"
            )
        namespaces[declared.crate_name] = declared

    members: Dict[str, List[Metadata]] = {crate: [] for crate in namespaces}
    for record in records:
        if isinstance(record, NamespaceMetadata):
            continue
        crate_name = crate_name_of(record)
        bucket = members.get(crate_name)
        if bucket is None:
            raise GroupingError(
                f"Unknown namespace for {record_kind(record)} `{_describe(record)}` ({crate_name})"
            )
        if record in bucket:
            raise GroupingError(f"Duplicate metadata item: {record_kind(record)} `{_describe(record)}`")
        bucket.append(record)

    return [
        MetadataGroup(namespace=namespaces[crate], items=tuple(members[crate]))
        for crate in sorted(namespaces)
    ]


def _declared_namespace(record: Metadata) -> NamespaceMetadata | None:
    if isinstance(record, NamespaceMetadata):
        return record
    if isinstance(record, UdlFileMetadata):
        return NamespaceMetadata(crate_name=crate_name_of(record), name=record.namespace)
    return None


def _describe(record: Metadata) -> str:
    if isinstance(record, UdlFileMetadata):
        return record.namespace
    self_name = getattr(record, "self_name", None)
    name = getattr(record, "name", "?")
    return f"{self_name}.{name}" if self_name else name


__all__ = ["group_metadata"]
