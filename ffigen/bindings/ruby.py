"""Ruby binding emitter."""

from __future__ import annotations

from .templated import TemplateEmitter


class RubyEmitter(TemplateEmitter):
    """Writes a ``<module>.rb`` FFI module; types only appear in YARD tags."""

    language = "ruby"
    requires_cdylib = True
    templates = (("ruby.rb.j2", "{module}.rb"),)
    formatter = ("rubocop", "-a")
    builtin_types = {
        "void": "nil",
        "u8": "Integer",
        "u16": "Integer",
        "u32": "Integer",
        "u64": "Integer",
        "i8": "Integer",
        "i16": "Integer",
        "i32": "Integer",
        "i64": "Integer",
        "f32": "Float",
        "f64": "Float",
        "bool": "Boolean",
        "string": "String",
        "bytes": "String",
    }
    sequence_format = "Array<{inner}>"
    map_format = "Hash{{{key} => {value}}}"
    optional_format = "{inner}, nil"
