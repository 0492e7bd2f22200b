"""Kotlin binding emitter."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from ..interface import ComponentInterface
from .templated import TemplateEmitter


class KotlinEmitter(TemplateEmitter):
    """Writes ``<package path>/<module>.kt`` loading the cdylib through JNA."""

    language = "kotlin"
    requires_cdylib = True
    templates = (("kotlin.kt.j2", "{module}.kt"),)
    formatter = ("ktlint", "-F")
    camel_case_functions = True
    builtin_types = {
        "void": "Unit",
        "u8": "UByte",
        "u16": "UShort",
        "u32": "UInt",
        "u64": "ULong",
        "i8": "Byte",
        "i16": "Short",
        "i32": "Int",
        "i64": "Long",
        "f32": "Float",
        "f64": "Double",
        "bool": "Boolean",
        "string": "String",
        "bytes": "ByteArray",
    }
    sequence_format = "List<{inner}>"
    map_format = "Map<{key}, {value}>"
    optional_format = "{inner}?"

    def output_dir(self, out_dir: Path, settings: Dict[str, Any]) -> Path:
        return out_dir.joinpath(*self.package_name(settings).split("."))

    def build_context(
        self, ci: ComponentInterface, settings: Dict[str, Any], module: str
    ) -> Dict[str, Any]:
        context = super().build_context(ci, settings, module)
        context["package_name"] = self.package_name(settings)
        return context

    @staticmethod
    def package_name(settings: Dict[str, Any]) -> str:
        value = settings.get("package_name")
        if value:
            return str(value)
        return f"ffigen.{settings.get('module_name') or settings.get('crate_name') or 'bindings'}"
