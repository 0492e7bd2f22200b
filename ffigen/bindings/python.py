"""Python binding emitter."""

from __future__ import annotations

from .templated import TemplateEmitter


class PythonEmitter(TemplateEmitter):
    """Writes a ``<module>.py`` ctypes wrapper around the cdylib."""

    language = "python"
    requires_cdylib = True
    templates = (("python.py.j2", "{module}.py"),)
    formatter = ("black", "--quiet")
    builtin_types = {
        "void": "None",
        "u8": "int",
        "u16": "int",
        "u32": "int",
        "u64": "int",
        "i8": "int",
        "i16": "int",
        "i32": "int",
        "i64": "int",
        "f32": "float",
        "f64": "float",
        "bool": "bool",
        "string": "str",
        "bytes": "bytes",
    }
    sequence_format = "typing.List[{inner}]"
    map_format = "typing.Dict[{key}, {value}]"
    optional_format = "typing.Optional[{inner}]"
