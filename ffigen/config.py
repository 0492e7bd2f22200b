"""Per-crate generation settings (``ffigen.toml`` / ``.ffigen.yml``)."""

from __future__ import annotations

import copy
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, MutableMapping, Optional

import yaml

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .interface import ComponentInterface

from .errors import FfigenError

CONFIG_FILENAMES = ("ffigen.toml", ".ffigen.yml", ".ffigen.yaml")

# Settings naming the crate itself; they never flow to dependent crates.
IDENTITY_KEYS = frozenset(
    {"package_name", "module_name", "cdylib_name", "crate_name", "namespace", "external_modules"}
)


class ConfigError(FfigenError):
    """Raised when a configuration file cannot be parsed."""


@dataclass
class Config:
    """Generation settings for one crate.

    ``settings`` holds the shared top-level keys, ``bindings`` the
    per-language tables (``[bindings.kotlin]`` and friends). A language table
    always wins over a shared key of the same name.
    """

    root: Optional[Path] = None
    settings: Dict[str, Any] = field(default_factory=dict)
    bindings: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    inherited_from: List[str] = field(default_factory=list)
    _dependencies_applied: bool = field(default=False, init=False, repr=False, compare=False)

    @property
    def module_name(self) -> Optional[str]:
        value = self.settings.get("module_name")
        return str(value) if value is not None else None

    @property
    def cdylib_name(self) -> Optional[str]:
        value = self.settings.get("cdylib_name")
        return str(value) if value is not None else None

    def get(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)

    def bindings_for(self, language: str) -> Dict[str, Any]:
        """Return the effective settings for ``language``."""
        merged = copy.deepcopy(self.settings)
        _overlay(merged, self.bindings.get(language, {}))
        return merged

    def update_from_cdylib_name(self, cdylib_name: str) -> None:
        self.settings.setdefault("cdylib_name", cdylib_name)

    def update_from_ci(self, ci: "ComponentInterface") -> None:
        if ci.crate_name:
            self.settings.setdefault("crate_name", ci.crate_name)
        if ci.namespace:
            self.settings.setdefault("namespace", ci.namespace)
            self.settings.setdefault("module_name", ci.namespace)

    def update_from_dependency_configs(self, dependency_configs: Mapping[str, "Config"]) -> None:
        """Fill unset keys from the configs of direct dependencies.

        Keys this config already defines are never overwritten, neither in
        ``settings`` nor through a language table, and identity keys
        (``IDENTITY_KEYS``) are never inherited. Each dependency's module
        name is recorded under ``external_modules`` so emitters can reference
        types that live in another crate's bindings. May be applied once per
        config.
        """
        if self._dependencies_applied:
            raise ConfigError("Dependency configs were already applied to this config")
        self._dependencies_applied = True

        own_settings = set(self.settings)
        own_tables = {language: set(table) for language, table in self.bindings.items()}
        for crate_name in sorted(dependency_configs):
            dependency = dependency_configs[crate_name]
            _fill(self.settings, _inheritable(dependency.settings))
            for language, table in dependency.bindings.items():
                own_table = own_tables.get(language, set())
                inherited = {
                    key: value
                    for key, value in _inheritable(table).items()
                    if key in own_table or key not in own_settings
                }
                if inherited:
                    _fill(self.bindings.setdefault(language, {}), inherited)
            external = self.settings.setdefault("external_modules", {})
            if isinstance(external, dict):
                external.setdefault(crate_name, dependency.module_name or crate_name)
            self.inherited_from.append(crate_name)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "settings": copy.deepcopy(self.settings),
            "bindings": copy.deepcopy(self.bindings),
        }


def load_config(crate_root: Path, override: Path | None = None) -> Config:
    """Load the initial config for the crate rooted at ``crate_root``.

    An ``override`` file is laid over the crate's own file; its values win.
    A crate without a config file gets an empty config.
    """
    root = Path(crate_root).expanduser().resolve()
    data: Dict[str, Any] = {}

    config_file = find_config_file(root)
    if config_file is not None:
        data = _read_config(config_file)

    if override is not None:
        override_path = Path(override).expanduser()
        if not override_path.exists():
            raise ConfigError(f"Config override {override_path} not found")
        _overlay(data, _read_config(override_path))

    bindings_data = data.pop("bindings", None)
    bindings: Dict[str, Dict[str, Any]] = {}
    if bindings_data is not None:
        if not isinstance(bindings_data, dict):
            raise ConfigError("`bindings` must be a table of per-language tables")
        for language, table in bindings_data.items():
            if not isinstance(table, dict):
                raise ConfigError(f"`bindings.{language}` must be a table")
            bindings[str(language)] = table

    return Config(root=root, settings=data, bindings=bindings)


def find_config_file(crate_root: Path) -> Optional[Path]:
    for name in CONFIG_FILENAMES:
        candidate = crate_root / name
        if candidate.is_file():
            return candidate
    return None


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}

    if path.suffix == ".toml":
        try:
            loaded: Any = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    else:
        try:
            loaded = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _inheritable(source: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in source.items() if key not in IDENTITY_KEYS}


def _fill(target: MutableMapping[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        if key not in target:
            target[key] = copy.deepcopy(value)
        elif isinstance(target[key], dict) and isinstance(value, Mapping):
            _fill(target[key], value)


def _overlay(target: MutableMapping[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(target.get(key), dict) and isinstance(value, Mapping):
            _overlay(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


__all__ = ["CONFIG_FILENAMES", "IDENTITY_KEYS", "Config", "ConfigError", "find_config_file", "load_config"]
