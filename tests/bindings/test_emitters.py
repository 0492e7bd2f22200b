"""Tests for the built-in binding emitters and their discovery."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import List

import pytest

from ffigen import bindings
from ffigen.bindings import (
    BindingEmitter,
    KotlinEmitter,
    PythonEmitter,
    RubyEmitter,
    SwiftEmitter,
    TargetLanguage,
    TemplateEmitter,
    discover_emitters,
)
from ffigen.bindings.templated import create_environment
from ffigen.config import Config
from ffigen.errors import BindingValidationError, EmitterError
from ffigen.interface import ComponentInterface
from ffigen.metadata import (
    ConstructorMetadata,
    EnumMetadata,
    FieldMetadata,
    FnMetadata,
    MetadataGroup,
    MethodMetadata,
    NamespaceMetadata,
    ObjectMetadata,
    RecordMetadata,
    VariantMetadata,
)


def _interface() -> ComponentInterface:
    ci = ComponentInterface()
    ci.add_metadata(
        MetadataGroup(
            namespace=NamespaceMetadata(crate_name="geo", name="geometry"),
            items=(
                FnMetadata(
                    module_path="geo",
                    name="length_of",
                    inputs=(FieldMetadata("items", "sequence<string>"),),
                    return_type="u64",
                    docstring="Count the items.",
                ),
                FnMetadata(
                    module_path="geo",
                    name="scores",
                    return_type="record<string, u32>",
                ),
                RecordMetadata(
                    module_path="geo",
                    name="point",
                    fields=(FieldMetadata("x", "f64"), FieldMetadata("y", "f64?")),
                ),
                EnumMetadata(
                    module_path="geo",
                    name="GeoError",
                    variants=(VariantMetadata("Invalid"),),
                    is_error=True,
                ),
                ObjectMetadata(module_path="geo", name="Polygon"),
                ConstructorMetadata(module_path="geo", self_name="Polygon", name="new"),
                MethodMetadata(module_path="geo", self_name="Polygon", name="area", return_type="f64"),
            ),
        )
    )
    return ci


def _config(**settings) -> Config:
    config = Config(settings={"cdylib_name": "geo", **settings})
    config.update_from_ci(_interface())
    return config


class _RecordingRunner:
    def __init__(self, error: Exception | None = None) -> None:
        self.commands: List[List[str]] = []
        self.error = error

    def __call__(self, command) -> None:
        self.commands.append(list(command))
        if self.error is not None:
            raise self.error


def test_discover_emitters_returns_builtins() -> None:
    emitters = discover_emitters()

    assert {"kotlin", "swift", "python", "ruby"} <= set(emitters)
    assert emitters["swift"].requires_cdylib is False
    assert emitters["kotlin"].requires_cdylib is True


def test_discover_emitters_honours_enabled_names() -> None:
    emitters = discover_emitters(["Kotlin"])

    assert list(emitters) == ["kotlin"]


def test_discover_emitters_rejects_unknown_names() -> None:
    with pytest.raises(ValueError, match="cobol"):
        discover_emitters(["kotlin", "cobol"])


def test_entry_points_add_languages_but_never_replace_builtins(monkeypatch) -> None:
    class ZigEmitter(BindingEmitter):
        language = "zig"

        def write_bindings(self, ci, config, out_dir, *, try_format_code=True):
            return []

    plugins = [
        SimpleNamespace(name="zig", load=lambda: ZigEmitter),
        SimpleNamespace(name="kotlin", load=lambda: ZigEmitter),
    ]
    monkeypatch.setattr(bindings, "_iter_entry_points", lambda: plugins)

    emitters = discover_emitters()

    assert isinstance(emitters["zig"], ZigEmitter)
    assert isinstance(emitters["kotlin"], KotlinEmitter)


def test_entry_point_must_provide_an_emitter(monkeypatch) -> None:
    monkeypatch.setattr(
        bindings, "_iter_entry_points", lambda: [SimpleNamespace(name="bad", load=lambda: "nope")]
    )

    with pytest.raises(TypeError, match="BindingEmitter"):
        discover_emitters()


def test_target_language_parse() -> None:
    assert TargetLanguage.parse(" Swift ") is TargetLanguage.SWIFT
    assert TargetLanguage.SWIFT.requires_cdylib is False
    assert str(TargetLanguage.RUBY) == "ruby"
    with pytest.raises(BindingValidationError, match="Unknown target language"):
        TargetLanguage.parse("cobol")


def test_kotlin_bindings_land_in_package_directory(tmp_path: Path) -> None:
    emitter = KotlinEmitter(format_runner=_RecordingRunner())
    config = _config()
    config.bindings["kotlin"] = {"package_name": "org.example.geo"}

    (path,) = emitter.write_bindings(_interface(), config, tmp_path, try_format_code=False)

    assert path == tmp_path / "org" / "example" / "geo" / "geometry.kt"
    text = path.read_text(encoding="utf-8")
    assert "package org.example.geo" in text
    assert 'Native.load("geo", FfiLib::class.java)' in text
    assert "fun lengthOf(items: List<String>): ULong =" in text
    assert "fun scores(): Map<String, UInt> =" in text
    assert "data class Point(" in text
    assert "sealed class GeoError(message: String) : Exception(message)" in text
    assert "ffigen_geo_fn_constructor_polygon_new()" in text
    assert "/** Count the items. */" in text


def test_kotlin_default_package_uses_module_name(tmp_path: Path) -> None:
    emitter = KotlinEmitter()

    (path,) = emitter.write_bindings(_interface(), _config(), tmp_path, try_format_code=False)

    assert path == tmp_path / "ffigen" / "geometry" / "geometry.kt"


def test_swift_bindings_include_c_header(tmp_path: Path) -> None:
    emitter = SwiftEmitter()

    swift, header = emitter.write_bindings(_interface(), _config(), tmp_path, try_format_code=False)

    assert swift.name == "geometry.swift"
    assert header.name == "geometryFFI.h"
    assert "public func lengthOf(items: [String]) -> UInt64 {" in swift.read_text(encoding="utf-8")
    header_text = header.read_text(encoding="utf-8")
    assert "uint64_t ffigen_geo_fn_func_length_of(void * items);" in header_text
    assert "void *ffigen_geo_fn_constructor_polygon_new(void);" in header_text
    assert "double ffigen_geo_fn_method_polygon_area(void *ptr);" in header_text


def test_python_bindings(tmp_path: Path) -> None:
    emitter = PythonEmitter()

    (path,) = emitter.write_bindings(_interface(), _config(), tmp_path, try_format_code=False)

    text = path.read_text(encoding="utf-8")
    assert path.name == "geometry.py"
    assert "def length_of(items: typing.List[str]) -> int:" in text
    assert "def scores() -> typing.Dict[str, int]:" in text
    assert "    y: typing.Optional[float]" in text
    assert "class GeoError(Exception):" in text
    assert "def area(self) -> float:" in text


def test_ruby_bindings(tmp_path: Path) -> None:
    emitter = RubyEmitter()

    (path,) = emitter.write_bindings(_interface(), _config(), tmp_path, try_format_code=False)

    text = path.read_text(encoding="utf-8")
    assert path.name == "geometry.rb"
    assert "module Geometry" in text
    assert "ffi_lib 'geo'" in text
    assert "# @return [Hash{String => Integer}]" in text
    assert "def self.length_of(items)" in text


def test_external_modules_are_imported(tmp_path: Path) -> None:
    emitter = PythonEmitter()
    config = _config(external_modules={"geo_core": "geometry_core"})

    (path,) = emitter.write_bindings(_interface(), config, tmp_path, try_format_code=False)

    assert "from . import geometry_core" in path.read_text(encoding="utf-8")


def test_compact_render_style_drops_docstrings_and_blank_lines(tmp_path: Path) -> None:
    emitter = PythonEmitter()
    config = _config(render_style="compact")

    (path,) = emitter.write_bindings(_interface(), config, tmp_path, try_format_code=False)

    text = path.read_text(encoding="utf-8")
    assert "Count the items." not in text
    assert "\n\n" not in text


def test_header_carries_interface_checksum(tmp_path: Path) -> None:
    ci = _interface()

    (path,) = RubyEmitter().write_bindings(ci, _config(), tmp_path, try_format_code=False)

    assert f"# Interface checksum: {ci.checksum()}" in path.read_text(encoding="utf-8")


def test_formatter_runs_over_written_files(tmp_path: Path) -> None:
    runner = _RecordingRunner()
    emitter = PythonEmitter(format_runner=runner)

    (path,) = emitter.write_bindings(_interface(), _config(), tmp_path)

    assert runner.commands == [["black", "--quiet", str(path)]]


def test_formatter_is_skipped_when_disabled(tmp_path: Path) -> None:
    runner = _RecordingRunner()

    SwiftEmitter(format_runner=runner).write_bindings(_interface(), _config(), tmp_path, try_format_code=False)

    assert runner.commands == []


def test_missing_formatter_only_warns(tmp_path: Path, monkeypatch) -> None:
    runner = _RecordingRunner(error=FileNotFoundError("ktlint"))
    emitter = KotlinEmitter(format_runner=runner)
    warnings: List[str] = []
    monkeypatch.setattr(emitter.logger, "warning", lambda message, *args: warnings.append(message % args))

    written = emitter.write_bindings(_interface(), _config(), tmp_path)

    assert len(written) == 1
    assert written[0].exists()
    assert warnings == ["Unable to auto-format kotlin bindings using ktlint: ktlint"]


def test_missing_template_is_an_emitter_error(tmp_path: Path) -> None:
    class BrokenEmitter(TemplateEmitter):
        language = "broken"
        templates = (("missing.j2", "{module}.txt"),)

    with pytest.raises(EmitterError, match="Missing template missing.j2"):
        BrokenEmitter().write_bindings(_interface(), _config(), tmp_path)


@pytest.mark.parametrize(
    "source",
    ["{% if %}broken{% endif %}", "{{ nothing.at.all }}"],
)
def test_invalid_template_is_an_emitter_error(tmp_path: Path, source: str) -> None:
    templates_dir = tmp_path / "templates"
    templates_dir.mkdir()
    (templates_dir / "plugin.j2").write_text(source, encoding="utf-8")

    class PluginEmitter(TemplateEmitter):
        language = "plugin"
        templates = (("plugin.j2", "{module}.txt"),)

    emitter = PluginEmitter(environment=create_environment(templates_dir))

    with pytest.raises(EmitterError, match="Failed to render plugin.j2 for plugin"):
        emitter.write_bindings(_interface(), _config(), tmp_path / "out")


def test_unwritable_output_is_an_emitter_error(tmp_path: Path) -> None:
    blocker = tmp_path / "taken"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(EmitterError, match="Failed to write ruby bindings for geo"):
        RubyEmitter().write_bindings(_interface(), _config(), blocker / "out")
