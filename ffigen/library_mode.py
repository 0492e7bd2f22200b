"""Generate bindings for every crate linked into one compiled library.

Instead of being pointed at a single crate's UDL file and config, library mode
is given the built library. It recovers the components embedded in the
library's metadata, finds the package each belongs to via ``cargo metadata``,
and builds one :class:`Source` per crate. Configuration declared by a crate is
inherited by the crates that directly depend on it before any code is
generated.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .bindings import BindingEmitter, discover_emitters
from .buildgraph import BuildGraph, CargoMetadata, PackageRecord, normalise_crate_name
from .config import Config, load_config
from .errors import (
    AmbiguousCrateError,
    AmbiguousPackageError,
    BindingValidationError,
    CrateNotFoundError,
    EmitterError,
    MultipleUdlFilesError,
    PackageNotFoundError,
    UdlFileNotFoundError,
)
from .interface import ComponentInterface
from .logging import get_logger
from .metadata import Metadata, MetadataGroup, UdlFileMetadata, extract_from_library, group_metadata
from .udl import parse_udl

CDYLIB_EXTENSIONS = (".so", ".dll", ".dylib")
UDL_EXTENSION = ".udl"

Extractor = Callable[[Path], List[Metadata]]
Grouper = Callable[[Iterable[Metadata]], List[MetadataGroup]]
UdlParser = Callable[[str, str], MetadataGroup]
ConfigLoader = Callable[[Path, Optional[Path]], Config]


@dataclass
class Source:
    """One crate to generate bindings for."""

    package: PackageRecord
    crate_name: str
    ci: ComponentInterface
    config: Config


def calc_cdylib_name(library_path: Path | str) -> Optional[str]:
    """Return the library name when ``library_path`` looks like a C dynamic library.

    The ``lib`` prefix is stripped unconditionally, so ``libfoo.dll`` yields
    ``foo`` even though Windows libraries carry no such prefix.
    """
    filename = Path(library_path).name
    if not filename:
        return None
    if filename.startswith("lib"):
        filename = filename[len("lib"):]
    for extension in CDYLIB_EXTENSIONS:
        if filename.endswith(extension):
            stem = filename[: -len(extension)]
            if stem:
                return stem
    return None


def find_package_by_crate_name(packages: Sequence[PackageRecord], crate_name: str) -> PackageRecord:
    matching = [
        package
        for package in packages
        if any(target.crate_name == crate_name for target in package.targets)
    ]
    if not matching:
        raise PackageNotFoundError(f"cargo metadata returned 0 packages for crate name {crate_name}")
    if len(matching) > 1:
        names = ", ".join(sorted(package.name for package in matching))
        raise AmbiguousPackageError(
            f"cargo metadata returned {len(matching)} packages for crate name {crate_name} ({names})"
        )
    return matching[0]


def load_udl_metadata(
    group: MetadataGroup,
    crate_root: Path,
    crate_name: str,
    parser: UdlParser = parse_udl,
) -> Optional[MetadataGroup]:
    """Parse the UDL file ``group`` refers to, if any."""
    udl_items = [item for item in group.items if isinstance(item, UdlFileMetadata)]
    if not udl_items:
        return None
    if len(udl_items) > 1:
        raise MultipleUdlFilesError(f"{len(udl_items)} UDL files found for {crate_name}")

    udl_path = Path(crate_root) / "src" / f"{udl_items[0].file_stub}{UDL_EXTENSION}"
    if not udl_path.is_file():
        raise UdlFileNotFoundError(f"{udl_path} not found")
    return parser(udl_path.read_text(encoding="utf-8"), crate_name)


def apply_dependency_configs(sources: Sequence[Source]) -> None:
    """Fold each source's direct-dependency configs into its own config.

    Every config is snapshotted before the first fold, so a source always
    inherits its dependencies' own settings and the outcome does not depend on
    the order of ``sources``.
    """
    snapshots = [copy.deepcopy(source.config) for source in sources]
    plans: List[Dict[str, Config]] = []
    for index, source in enumerate(sources):
        dependencies = source.package.dependency_names()
        plans.append(
            {
                other.crate_name: snapshots[other_index]
                for other_index, other in enumerate(sources)
                if other_index != index
                and (
                    normalise_crate_name(other.package.name) in dependencies
                    or other.crate_name in dependencies
                )
            }
        )
    for source, config_map in zip(sources, plans):
        source.config.update_from_dependency_configs(config_map)


def select_sources(
    sources: List[Source], crate_name: Optional[str], library_path: Path | str | None = None
) -> List[Source]:
    """Narrow ``sources`` to the crate named ``crate_name`` (all when ``None``)."""
    if crate_name is None:
        return sources
    matches = [source for source in sources if source.crate_name == crate_name]
    location = f" in {library_path}" if library_path is not None else ""
    if not matches:
        raise CrateNotFoundError(f"Crate {crate_name} not found{location}")
    if len(matches) > 1:
        raise AmbiguousCrateError(f"{len(matches)} crates named {crate_name} found{location}")
    return matches


class BindingGenerator:
    """Coordinates library-mode generation for one compiled library."""

    def __init__(
        self,
        build_graph: BuildGraph | None = None,
        extractor: Extractor | None = None,
        grouper: Grouper | None = None,
        udl_parser: UdlParser | None = None,
        config_loader: ConfigLoader | None = None,
        emitters: Mapping[str, BindingEmitter] | None = None,
    ) -> None:
        self.build_graph = build_graph or CargoMetadata()
        self.extractor = extractor or extract_from_library
        self.grouper = grouper or group_metadata
        self.udl_parser = udl_parser or parse_udl
        self.config_loader = config_loader or load_config
        self._emitters = dict(emitters) if emitters is not None else None
        self.logger = get_logger("library_mode")

    def generate_bindings(
        self,
        library_path: Path | str,
        crate_name: Optional[str],
        target_languages: Sequence[str],
        out_dir: Path | str,
        try_format_code: bool = True,
        *,
        config_override: Path | None = None,
    ) -> List[Source]:
        """Generate bindings and return the sources they were generated from."""
        if not target_languages:
            raise BindingValidationError("At least one target language is required")
        emitters = self._resolve_emitters(target_languages)

        library_path = Path(library_path)
        cdylib_name = calc_cdylib_name(library_path)
        sources = self.load_sources(library_path, crate_name, config_override=config_override)

        out_path = Path(out_dir)
        out_path.mkdir(parents=True, exist_ok=True)
        for source in sources:
            for language in target_languages:
                emitter = emitters[language.lower()]
                if cdylib_name is None and emitter.requires_cdylib:
                    raise BindingValidationError(
                        f"Generate bindings for {language} requires a cdylib, but {library_path} was given"
                    )
                self._emit(emitter, source, out_path, try_format_code)
        return sources

    def load_sources(
        self,
        library_path: Path | str,
        crate_name: Optional[str] = None,
        *,
        config_override: Path | None = None,
    ) -> List[Source]:
        """Resolve, materialize, configure and select sources without emitting."""
        library_path = Path(library_path)
        self.logger.info("Loading components from %s", library_path)
        packages = self.build_graph.packages()
        self.logger.debug("Build graph lists %d packages", len(packages))

        cdylib_name = calc_cdylib_name(library_path)
        if cdylib_name is None:
            self.logger.debug("%s is not a dynamic library", library_path)

        sources = self.find_sources(packages, library_path, cdylib_name, config_override)
        apply_dependency_configs(sources)
        selected = select_sources(sources, crate_name, library_path)
        self.logger.debug("Selected %d of %d sources", len(selected), len(sources))
        return selected

    def find_sources(
        self,
        packages: Sequence[PackageRecord],
        library_path: Path,
        cdylib_name: Optional[str],
        config_override: Path | None = None,
    ) -> List[Source]:
        groups = self.grouper(self.extractor(library_path))
        self.logger.debug("Found %d components in %s", len(groups), library_path)

        sources: List[Source] = []
        for group in groups:
            crate_name = group.namespace.crate_name
            package = find_package_by_crate_name(packages, crate_name)
            crate_root = package.root

            ci = ComponentInterface()
            udl_group = load_udl_metadata(group, crate_root, crate_name, self.udl_parser)
            if udl_group is not None:
                self.logger.debug("Loaded UDL metadata for %s", crate_name)
                ci.add_metadata(udl_group)
            ci.add_metadata(group)

            config = self.config_loader(crate_root, config_override)
            if cdylib_name is not None:
                config.update_from_cdylib_name(cdylib_name)
            config.update_from_ci(ci)

            sources.append(Source(package=package, crate_name=crate_name, ci=ci, config=config))
        return sources

    def _resolve_emitters(self, target_languages: Sequence[str]) -> Dict[str, BindingEmitter]:
        if self._emitters is None:
            self._emitters = discover_emitters()
        missing = sorted({language for language in target_languages if language.lower() not in self._emitters})
        if missing:
            known = ", ".join(sorted(self._emitters))
            raise BindingValidationError(
                f"No emitter for target language(s) {', '.join(missing)} (available: {known})"
            )
        return self._emitters

    def _emit(self, emitter: BindingEmitter, source: Source, out_dir: Path, try_format_code: bool) -> None:
        self.logger.debug("Emitting %s bindings for %s", emitter.language, source.crate_name)
        try:
            emitter.write_bindings(source.ci, source.config, out_dir, try_format_code=try_format_code)
        except OSError as exc:
            raise EmitterError(
                f"Failed to write {emitter.language} bindings for {source.crate_name}: {exc}"
            ) from exc


def generate_bindings(
    library_path: Path | str,
    crate_name: Optional[str],
    target_languages: Sequence[str],
    out_dir: Path | str,
    try_format_code: bool = True,
) -> List[Source]:
    """Run library mode with the default collaborators."""
    return BindingGenerator().generate_bindings(
        library_path, crate_name, target_languages, out_dir, try_format_code
    )


__all__ = [
    "BindingGenerator",
    "Source",
    "apply_dependency_configs",
    "calc_cdylib_name",
    "find_package_by_crate_name",
    "generate_bindings",
    "load_udl_metadata",
    "select_sources",
]
