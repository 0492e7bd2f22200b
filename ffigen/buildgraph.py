"""Build-graph queries backed by ``cargo metadata``."""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence, Tuple

from .errors import CannotQueryBuildGraphError
from .logging import get_logger

CommandRunner = Callable[[Sequence[str], Optional[Path]], str]


@dataclass(frozen=True)
class TargetRecord:
    """A build target (lib, cdylib, bin, ...) exposed by a package."""

    name: str
    kinds: Tuple[str, ...] = ()

    @property
    def crate_name(self) -> str:
        return normalise_crate_name(self.name)


@dataclass(frozen=True)
class DependencyRecord:
    name: str
    kind: Optional[str] = None


@dataclass(frozen=True)
class PackageRecord:
    """One package of the build graph and its declared direct dependencies."""

    name: str
    manifest_path: Path
    version: str = "0.0.0"
    dependencies: Tuple[DependencyRecord, ...] = ()
    targets: Tuple[TargetRecord, ...] = field(default_factory=tuple)

    @property
    def root(self) -> Path:
        return self.manifest_path.parent

    def dependency_names(self) -> set[str]:
        """Return dependency names normalised to crate identities."""
        return {normalise_crate_name(dep.name) for dep in self.dependencies}


class BuildGraph(Protocol):
    """Anything that can list the packages of the current project."""

    def packages(self) -> List[PackageRecord]:
        ...


def normalise_crate_name(name: str) -> str:
    return name.replace("-", "_")


class CargoMetadata:
    """Loads the package graph of the current project via ``cargo metadata``."""

    COMMAND = ("cargo", "metadata", "--format-version", "1")

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        cwd: Path | None = None,
        manifest_path: Path | None = None,
    ) -> None:
        self._runner = runner or self._default_runner
        self._cwd = cwd
        self._manifest_path = manifest_path
        self.logger = get_logger("buildgraph")

    def packages(self) -> List[PackageRecord]:
        """Run the query and return every package in the graph."""
        command = list(self.COMMAND)
        if self._manifest_path is not None:
            command.extend(["--manifest-path", str(self._manifest_path)])
        self.logger.debug("Querying build graph: %s", " ".join(command))
        try:
            output = self._runner(command, self._cwd)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise CannotQueryBuildGraphError(f"error running cargo metadata: {_describe(exc)}") from exc

        try:
            payload = json.loads(output)
        except json.JSONDecodeError as exc:
            raise CannotQueryBuildGraphError(f"cargo metadata returned invalid JSON: {exc}") from exc
        return parse_packages(payload)

    @staticmethod
    def _default_runner(command: Sequence[str], cwd: Optional[Path]) -> str:
        completed = subprocess.run(
            list(command),
            cwd=str(cwd) if cwd is not None else None,
            check=True,
            capture_output=True,
            text=True,
        )
        return completed.stdout


def parse_packages(payload: Any) -> List[PackageRecord]:
    """Decode the ``packages`` array of ``cargo metadata`` output."""
    if not isinstance(payload, Mapping) or not isinstance(payload.get("packages"), list):
        raise CannotQueryBuildGraphError("cargo metadata output has no `packages` array")

    packages: List[PackageRecord] = []
    for entry in payload["packages"]:
        try:
            packages.append(_package_from_dict(entry))
        except (KeyError, TypeError) as exc:
            raise CannotQueryBuildGraphError(f"malformed package entry in cargo metadata: {exc}") from exc
    return packages


def _package_from_dict(entry: Mapping[str, Any]) -> PackageRecord:
    dependencies = tuple(
        DependencyRecord(name=str(dep["name"]), kind=dep.get("kind"))
        for dep in entry.get("dependencies") or []
    )
    targets = tuple(
        TargetRecord(name=str(target["name"]), kinds=tuple(target.get("kind") or ()))
        for target in entry.get("targets") or []
    )
    return PackageRecord(
        name=str(entry["name"]),
        version=str(entry.get("version", "0.0.0")),
        manifest_path=Path(entry["manifest_path"]),
        dependencies=dependencies,
        targets=targets,
    )


def _describe(exc: Exception) -> str:
    if isinstance(exc, subprocess.CalledProcessError):
        stderr = (exc.stderr or "").strip() if isinstance(exc.stderr, str) else ""
        return stderr or f"exit status {exc.returncode}"
    return str(exc)


__all__ = [
    "BuildGraph",
    "CargoMetadata",
    "CommandRunner",
    "DependencyRecord",
    "PackageRecord",
    "TargetRecord",
    "normalise_crate_name",
    "parse_packages",
]
