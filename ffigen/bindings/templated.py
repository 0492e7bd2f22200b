"""Shared machinery for emitters that render jinja2 templates."""

from __future__ import annotations

import re
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader, TemplateError, TemplateNotFound

from .. import __version__
from ..config import Config
from ..errors import EmitterError
from ..interface import ComponentInterface
from ..logging import get_logger
from .base import BindingEmitter

TEMPLATES_DIR = Path(__file__).parent / "templates"

FormatRunner = Callable[[Sequence[str]], None]

_CAMEL_BOUNDARY = re.compile(r"_+([a-zA-Z0-9])")


def create_environment(templates_dir: Path | None = None) -> Environment:
    loader = FileSystemLoader(str(templates_dir or TEMPLATES_DIR))
    return Environment(
        loader=loader,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


class TemplateEmitter(BindingEmitter):
    """Renders ``templates`` for a component and optionally runs a formatter.

    Subclasses describe the language: output file names, builtin type names,
    container type syntax, identifier casing and the formatter command.
    """

    templates: Tuple[Tuple[str, str], ...] = ()
    """Pairs of (template name, output file pattern); the pattern sees ``{module}``."""

    formatter: Tuple[str, ...] = ()
    builtin_types: Dict[str, str] = {}
    sequence_format = "{inner}[]"
    map_format = "{key}->{value}"
    optional_format = "{inner}?"
    camel_case_functions = False

    def __init__(
        self,
        environment: Environment | None = None,
        format_runner: FormatRunner | None = None,
    ) -> None:
        self._env = environment or create_environment()
        self._format_runner = format_runner or self._default_format_runner
        self.logger = get_logger(f"bindings.{self.language}")

    def write_bindings(
        self,
        ci: ComponentInterface,
        config: Config,
        out_dir: Path,
        *,
        try_format_code: bool = True,
    ) -> List[Path]:
        settings = config.bindings_for(self.language)
        module = self.module_name(ci, settings)
        context = self.build_context(ci, settings, module)
        target_dir = self.output_dir(Path(out_dir), settings)

        written: List[Path] = []
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            for template_name, pattern in self.templates:
                text = self._render(template_name, context)
                path = target_dir / pattern.format(module=module)
                path.write_text(text, encoding="utf-8")
                self.logger.info("Wrote %s bindings for %s to %s", self.language, ci.crate_name, path)
                written.append(path)
        except OSError as exc:
            raise EmitterError(
                f"Failed to write {self.language} bindings for {ci.crate_name} to {target_dir}: {exc}"
            ) from exc

        if try_format_code:
            self._format(written)
        return written

    def module_name(self, ci: ComponentInterface, settings: Dict[str, Any]) -> str:
        value = settings.get("module_name") or ci.namespace or ci.crate_name
        return str(value)

    def output_dir(self, out_dir: Path, settings: Dict[str, Any]) -> Path:
        return out_dir

    def build_context(
        self, ci: ComponentInterface, settings: Dict[str, Any], module: str
    ) -> Dict[str, Any]:
        external = settings.get("external_modules")
        return {
            "ci": ci,
            "module_name": module,
            "settings": settings,
            "cdylib_name": settings.get("cdylib_name"),
            "external_modules": dict(external) if isinstance(external, dict) else {},
            "compact": settings.get("render_style") == "compact",
            "checksum": ci.checksum(),
            "version": __version__,
            "functions": [ci.functions[name] for name in sorted(ci.functions)],
            "records": [ci.records[name] for name in sorted(ci.records)],
            "enums": [ci.enums[name] for name in sorted(ci.enums)],
            "objects": [ci.objects[name] for name in sorted(ci.objects)],
            "callback_interfaces": [
                ci.callback_interfaces[name] for name in sorted(ci.callback_interfaces)
            ],
            "custom_types": [ci.custom_types[name] for name in sorted(ci.custom_types)],
            "render_type": self.render_type,
            "fn_name": self.fn_name,
            "class_name": class_name,
        }

    def render_type(self, type_name: Optional[str]) -> str:
        if type_name is None:
            return self.builtin_types.get("void", "void")
        name = type_name.strip()
        if name.endswith("?"):
            return self.optional_format.format(inner=self.render_type(name[:-1]))
        if name.startswith("sequence<") and name.endswith(">"):
            return self.sequence_format.format(inner=self.render_type(name[len("sequence<"):-1]))
        if name.startswith("record<") and name.endswith(">"):
            key, _, value = _split_pair(name[len("record<"):-1])
            return self.map_format.format(key=self.render_type(key), value=self.render_type(value))
        return self.builtin_types.get(name, class_name(name))

    def fn_name(self, name: str) -> str:
        if not self.camel_case_functions:
            return name
        return _CAMEL_BOUNDARY.sub(lambda m: m.group(1).upper(), name)

    def _render(self, template_name: str, context: Dict[str, Any]) -> str:
        try:
            template = self._env.get_template(template_name)
            text = template.render(**context)
        except TemplateNotFound as exc:
            raise EmitterError(f"Missing template {template_name} for {self.language}") from exc
        except TemplateError as exc:
            raise EmitterError(f"Failed to render {template_name} for {self.language}: {exc}") from exc
        if context["compact"]:
            text = "\n".join(line for line in text.splitlines() if line.strip()) + "\n"
        return text

    def _format(self, paths: Sequence[Path]) -> None:
        if not self.formatter or not paths:
            return
        command = [*self.formatter, *(str(path) for path in paths)]
        try:
            self._format_runner(command)
        except (OSError, subprocess.CalledProcessError) as exc:
            self.logger.warning(
                "Unable to auto-format %s bindings using %s: %s", self.language, self.formatter[0], exc
            )

    @staticmethod
    def _default_format_runner(command: Sequence[str]) -> None:
        subprocess.run(list(command), check=True, capture_output=True, text=True)


def class_name(name: str) -> str:
    if "_" not in name and name[:1].isupper():
        return name
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


def _split_pair(text: str) -> Tuple[str, str, str]:
    depth = 0
    for index, char in enumerate(text):
        if char == "<":
            depth += 1
        elif char == ">":
            depth -= 1
        elif char == "," and depth == 0:
            return text[:index].strip(), ",", text[index + 1 :].strip()
    return text.strip(), "", "string"


__all__ = ["FormatRunner", "TEMPLATES_DIR", "TemplateEmitter", "class_name", "create_environment"]
