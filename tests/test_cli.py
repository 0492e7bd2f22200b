"""CLI parser and entrypoint behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from ffigen import cli
from ffigen.buildgraph import PackageRecord
from ffigen.cli import _build_parser
from ffigen.config import Config
from ffigen.errors import CrateNotFoundError
from ffigen.interface import ComponentInterface
from ffigen.library_mode import Source


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "inspect", "libfoo.so"])
    assert args.verbose is True
    assert args.command == "inspect"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["inspect", "libfoo.so", "--verbose"])
    assert args.verbose is True
    assert args.library == "libfoo.so"


def test_cli_generate_collects_languages() -> None:
    parser = _build_parser()
    args = parser.parse_args(
        [
            "generate",
            "target/libfoo.so",
            "-l",
            "Kotlin",
            "--language",
            "swift",
            "-o",
            "out",
            "--crate",
            "foo",
            "--no-format",
            "--config",
            "override.toml",
        ]
    )
    assert args.languages == ["kotlin", "swift"]
    assert args.out_dir == Path("out")
    assert args.crate_name == "foo"
    assert args.no_format is True
    assert args.config == Path("override.toml")
    assert args.manifest_path is None


def test_cli_generate_requires_language_and_out_dir() -> None:
    parser = _build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["generate", "libfoo.so", "-o", "out"])
    with pytest.raises(SystemExit):
        parser.parse_args(["generate", "libfoo.so", "-l", "kotlin"])


def test_cli_serve_defaults() -> None:
    args = _build_parser().parse_args(["serve"])
    assert (args.host, args.port) == ("127.0.0.1", 8000)


class _StubGenerator:
    error: Exception | None = None
    instances: list = []
    logging_calls: list = []

    def __init__(self, build_graph=None, **_: object) -> None:
        self.build_graph = build_graph
        self.calls: list = []
        _StubGenerator.instances.append(self)

    def _sources(self):
        if self.error is not None:
            raise self.error
        return [
            Source(
                package=PackageRecord(name="geo-core", manifest_path=Path("/ws/geo/Cargo.toml"), version="1.2.0"),
                crate_name="geo_core",
                ci=ComponentInterface(namespace="geometry", crate_name="geo_core"),
                config=Config(inherited_from=["base"]),
            )
        ]

    def generate_bindings(self, library, crate_name, languages, out_dir, try_format_code=True, *, config_override=None):
        self.calls.append(("generate", library, crate_name, languages, out_dir, try_format_code, config_override))
        return self._sources()

    def load_sources(self, library, crate_name=None, *, config_override=None):
        self.calls.append(("inspect", library, crate_name, config_override))
        return self._sources()


@pytest.fixture
def stub_generator(monkeypatch):
    _StubGenerator.instances = []
    _StubGenerator.error = None
    monkeypatch.setattr(cli, "BindingGenerator", _StubGenerator)
    _StubGenerator.logging_calls = []
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: _StubGenerator.logging_calls.append(kwargs))
    return _StubGenerator


def test_cli_accepts_quiet_before_or_after_command() -> None:
    parser = _build_parser()
    assert parser.parse_args(["-q", "inspect", "libfoo.so"]).quiet is True
    assert parser.parse_args(["inspect", "libfoo.so", "--quiet"]).quiet is True
    assert parser.parse_args(["inspect", "libfoo.so"]).quiet is False


def test_main_forwards_quiet_to_logging(stub_generator) -> None:
    cli.main(["inspect", "libgeo.so", "--quiet"])

    assert stub_generator.logging_calls == [{"verbose": False, "quiet": True, "log_file": None}]


def test_main_generate_runs_generator(stub_generator, capsys, tmp_path: Path) -> None:
    cli.main(["generate", "libgeo.so", "-l", "python", "-o", str(tmp_path), "--no-format"])

    (generator,) = stub_generator.instances
    assert generator.calls == [("generate", "libgeo.so", None, ["python"], tmp_path, False, None)]
    output = capsys.readouterr().out
    assert "Generated python bindings in" in output
    assert "geo_core (geo-core 1.2.0) namespace=geometry" in output
    assert "inherits=base" in output


def test_main_inspect_lists_sources(stub_generator, capsys) -> None:
    cli.main(["inspect", "libgeo.so", "--crate", "geo_core"])

    (generator,) = stub_generator.instances
    assert generator.calls == [("inspect", "libgeo.so", "geo_core", None)]
    assert capsys.readouterr().out.startswith("geo_core (geo-core 1.2.0)")


def test_main_exits_non_zero_on_failure(stub_generator, capsys) -> None:
    stub_generator.error = CrateNotFoundError("Crate app not found in libgeo.so")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["inspect", "libgeo.so", "--crate", "app"])

    assert excinfo.value.code == 1
    assert "ffigen inspect failed: Crate app not found in libgeo.so" in capsys.readouterr().err
