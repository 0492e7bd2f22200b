"""Binding emitter implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, Iterable, Sequence

from .base import BindingEmitter, TargetLanguage
from .kotlin import KotlinEmitter
from .python import PythonEmitter
from .ruby import RubyEmitter
from .swift import SwiftEmitter
from .templated import TemplateEmitter

_ENTRY_POINT_GROUP = "ffigen.emitters"

_BUILTIN_FACTORIES: dict[str, Callable[[], BindingEmitter]] = {
    TargetLanguage.KOTLIN.value: KotlinEmitter,
    TargetLanguage.SWIFT.value: SwiftEmitter,
    TargetLanguage.PYTHON.value: PythonEmitter,
    TargetLanguage.RUBY.value: RubyEmitter,
}


def discover_emitters(enabled: Sequence[str] | None = None) -> Dict[str, BindingEmitter]:
    """Return emitters keyed by language, honoring optional enabled names.

    Built-in emitters are registered first; entry points in the
    ``ffigen.emitters`` group may add languages but never replace a built-in.
    """

    enabled_set: set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    emitters: Dict[str, BindingEmitter] = {}

    def _add(name: str, factory: Callable[[], BindingEmitter]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in emitters:
            return
        instance = factory()
        if not isinstance(instance, BindingEmitter):
            raise TypeError(f"Emitter factory for '{name}' did not return a BindingEmitter instance")
        emitters[key] = instance

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - third-party plugin failure
            raise RuntimeError(f"Failed to load emitter entry point '{entry.name}': {exc}") from exc

        def _factory(obj: object = loaded) -> BindingEmitter:
            return _coerce_emitter(obj)

        _add(entry.name, _factory)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set - set(emitters)))
        if missing:
            raise ValueError(f"Unknown target languages requested: {missing}")

    return emitters


def _coerce_emitter(obj: object) -> BindingEmitter:
    if isinstance(obj, BindingEmitter):
        return obj
    if isinstance(obj, type) and issubclass(obj, BindingEmitter):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, BindingEmitter):
            return instance
    raise TypeError("Emitter entry point must be a BindingEmitter subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "BindingEmitter",
    "KotlinEmitter",
    "PythonEmitter",
    "RubyEmitter",
    "SwiftEmitter",
    "TargetLanguage",
    "TemplateEmitter",
    "discover_emitters",
]
