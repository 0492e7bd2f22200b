"""CLI entrypoints for ffigen commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from .buildgraph import CargoMetadata
from .errors import FfigenError
from .library_mode import BindingGenerator, Source
from .logging import configure_logging


def _add_verbosity_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    default = argparse.SUPPRESS if suppress_default else False
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=default,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=default,
        help="Only report warnings and errors.",
    )


def _add_library_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("library", help="Path to the compiled library (cdylib or staticlib).")
    parser.add_argument(
        "--crate",
        dest="crate_name",
        default=None,
        help="Only handle the crate with this name (defaults to every crate in the library).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Config file laid over every crate's own ffigen.toml/.ffigen.yml.",
    )
    parser.add_argument(
        "--manifest-path",
        type=Path,
        default=None,
        help="Cargo.toml of the workspace to query (defaults to the current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ffigen",
        description="Generate foreign-language bindings for the crates linked into a library.",
    )
    _add_verbosity_options(parser)
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate bindings for the crates in a compiled library.",
    )
    _add_verbosity_options(generate_parser, suppress_default=True)
    _add_library_options(generate_parser)
    generate_parser.add_argument(
        "-l",
        "--language",
        dest="languages",
        action="append",
        type=str.lower,
        required=True,
        help="Target language (kotlin, swift, python, ruby); repeat for several.",
    )
    generate_parser.add_argument(
        "-o",
        "--out-dir",
        type=Path,
        required=True,
        help="Directory to write generated sources into.",
    )
    generate_parser.add_argument(
        "--no-format",
        action="store_true",
        help="Skip running language formatters on generated sources.",
    )

    inspect_parser = subparsers.add_parser(
        "inspect",
        help="List the crates found in a library and their resolved settings.",
    )
    _add_verbosity_options(inspect_parser, suppress_default=True)
    _add_library_options(inspect_parser)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbosity_options(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for ffigen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), quiet=bool(args.quiet), log_file=args.log_file)

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return

    generator = BindingGenerator(build_graph=CargoMetadata(manifest_path=args.manifest_path))

    if args.command == "generate":
        try:
            sources = generator.generate_bindings(
                args.library,
                args.crate_name,
                args.languages,
                args.out_dir,
                try_format_code=not args.no_format,
                config_override=args.config,
            )
        except FfigenError as exc:
            parser.exit(1, f"ffigen generate failed: {exc}\nRun with --verbose for more details.\n")
        print(f"Generated {', '.join(args.languages)} bindings in {_relativize(args.out_dir)}:")
        for line in _describe_sources(sources):
            print(f"  {line}")
    elif args.command == "inspect":
        try:
            sources = generator.load_sources(
                args.library, args.crate_name, config_override=args.config
            )
        except FfigenError as exc:
            parser.exit(1, f"ffigen inspect failed: {exc}\nRun with --verbose for more details.\n")
        for line in _describe_sources(sources):
            print(line)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _describe_sources(sources: List[Source]) -> List[str]:
    lines = []
    for source in sorted(sources, key=lambda s: s.crate_name):
        line = (
            f"{source.crate_name} ({source.package.name} {source.package.version}) "
            f"namespace={source.ci.namespace} checksum={source.ci.checksum()[:12]}"
        )
        if source.config.inherited_from:
            line += f" inherits={','.join(source.config.inherited_from)}"
        lines.append(line)
    return lines


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
