"""Swift binding emitter."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..interface import ComponentInterface
from .templated import TemplateEmitter

_C_TYPES = {
    "u8": "uint8_t",
    "u16": "uint16_t",
    "u32": "uint32_t",
    "u64": "uint64_t",
    "i8": "int8_t",
    "i16": "int16_t",
    "i32": "int32_t",
    "i64": "int64_t",
    "f32": "float",
    "f64": "double",
    "bool": "bool",
}


class SwiftEmitter(TemplateEmitter):
    """Writes ``<module>.swift`` plus the ``<module>FFI.h`` C header.

    Swift links the static library, so a cdylib is not required.
    """

    language = "swift"
    requires_cdylib = False
    templates = (
        ("swift.swift.j2", "{module}.swift"),
        ("swift_header.h.j2", "{module}FFI.h"),
    )
    formatter = ("swiftformat",)
    camel_case_functions = True
    builtin_types = {
        "void": "Void",
        "u8": "UInt8",
        "u16": "UInt16",
        "u32": "UInt32",
        "u64": "UInt64",
        "i8": "Int8",
        "i16": "Int16",
        "i32": "Int32",
        "i64": "Int64",
        "f32": "Float",
        "f64": "Double",
        "bool": "Bool",
        "string": "String",
        "bytes": "Data",
    }
    sequence_format = "[{inner}]"
    map_format = "[{key}: {value}]"
    optional_format = "{inner}?"

    def build_context(
        self, ci: ComponentInterface, settings: Dict[str, Any], module: str
    ) -> Dict[str, Any]:
        context = super().build_context(ci, settings, module)
        context["c_type"] = c_type
        return context


def c_type(type_name: Optional[str]) -> str:
    """C spelling of a type in the FFI header; non-scalar values cross as opaque pointers."""
    if type_name is None:
        return "void"
    return _C_TYPES.get(type_name, "void *")
