"""Metadata records, their binary extraction and per-crate grouping."""

from .extractor import encode_record, extract_from_bytes, extract_from_library
from .grouping import group_metadata
from .records import (
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
    UdlFileMetadata,
    VariantMetadata,
)

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
    "RecordMetadata",
    "UdlFileMetadata",
    "VariantMetadata",
    "encode_record",
    "extract_from_bytes",
    "extract_from_library",
    "group_metadata",
]
