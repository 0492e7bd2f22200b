"""Exception taxonomy for binding generation runs.

Every error is fatal to the run that raised it. Messages name the path, crate
or count involved so the user can act on them directly.
"""

from __future__ import annotations


class FfigenError(RuntimeError):
    """Base class for all errors raised by ffigen."""


# Attribution: a crate cannot be tied to exactly one build-graph package.


class AttributionError(FfigenError):
    """Raised when a crate identity cannot be attributed to a single package."""


class PackageNotFoundError(AttributionError):
    """No package exposes a target matching the crate identity."""


class AmbiguousPackageError(AttributionError):
    """Several packages expose a target matching the crate identity."""


# Interface: legacy UDL references and metadata folding.


class InterfaceError(FfigenError):
    """Raised when a component's interface model cannot be built."""


class UdlFileNotFoundError(InterfaceError):
    """The UDL file referenced by a component does not exist on disk."""


class MultipleUdlFilesError(InterfaceError):
    """A component references more than one UDL file."""


class MetadataConflictError(InterfaceError):
    """Two metadata records disagree about the same interface item."""


class BindingValidationError(FfigenError):
    """The requested target languages cannot be satisfied by the artifact."""


# Selection: the explicit --crate filter.


class SelectionError(FfigenError):
    """Raised when a crate filter does not select exactly one source."""


class CrateNotFoundError(SelectionError):
    """No source matches the crate filter."""


class AmbiguousCrateError(SelectionError):
    """Several sources match the crate filter."""


# Collaborators: build graph, extractor, grouper, parser, emitters.


class CollaboratorError(FfigenError):
    """Raised when one of the pipeline's collaborators fails."""


class CannotQueryBuildGraphError(CollaboratorError):
    """`cargo metadata` could not be run or returned unusable output."""


class MetadataExtractionError(CollaboratorError):
    """The library could not be read or carries no usable metadata."""


class GroupingError(CollaboratorError):
    """Extracted metadata records cannot be partitioned into components."""


class UdlParseError(CollaboratorError):
    """A UDL file contains a syntax error."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class EmitterError(CollaboratorError):
    """A binding emitter failed while writing generated sources."""


__all__ = [
    "AmbiguousCrateError",
    "AmbiguousPackageError",
    "AttributionError",
    "BindingValidationError",
    "CannotQueryBuildGraphError",
    "CollaboratorError",
    "CrateNotFoundError",
    "EmitterError",
    "FfigenError",
    "GroupingError",
    "InterfaceError",
    "MetadataConflictError",
    "MetadataExtractionError",
    "MultipleUdlFilesError",
    "PackageNotFoundError",
    "SelectionError",
    "UdlFileNotFoundError",
    "UdlParseError",
]
